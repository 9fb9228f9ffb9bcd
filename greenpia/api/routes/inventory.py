"""
Inventory and handover bag API routes

GET/POST /api/inventory, PATCH/DELETE /api/inventory/{id}
GET/POST /api/handover-bag, PATCH/DELETE /api/handover-bag/{id}
POST /api/handover-bag/{id}/toggle - Flip the checked flag
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from greenpia.api.auth import get_current_user, require_editor
from greenpia.api.schemas import (
    HandoverItemCreate, HandoverItemInfo, HandoverItemUpdate,
    InventoryCreate, InventoryInfo, InventoryUpdate, SuccessResponse,
)
from greenpia.database import ChangeRecorder, HandoverBagItem, InventoryItem, User, get_db
from greenpia.utils import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _get_inventory(session: Session, item_id: int) -> InventoryItem:
    item = session.get(InventoryItem, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Inventory item {item_id} not found")
    return item


def _get_handover(session: Session, item_id: int) -> HandoverBagItem:
    item = session.get(HandoverBagItem, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Handover item {item_id} not found")
    return item


# =============================================================================
# INVENTORY
# =============================================================================

@router.get("/inventory", response_model=List[InventoryInfo])
def list_inventory(
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    items = session.query(InventoryItem).order_by(InventoryItem.location, InventoryItem.name).all()
    return [InventoryInfo.model_validate(i) for i in items]


@router.post("/inventory", response_model=InventoryInfo, status_code=201)
def create_inventory_item(
    payload: InventoryCreate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    item = InventoryItem(**payload.model_dump())
    session.add(item)
    session.flush()

    ChangeRecorder.record(
        session, f"備品「{item.name}」を登録", "inventory", item.id,
        author_id=editor.id, author_role=editor.role
    )
    return InventoryInfo.model_validate(item)


@router.patch("/inventory/{item_id}", response_model=InventoryInfo)
def update_inventory_item(
    item_id: int,
    payload: InventoryUpdate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    item = _get_inventory(session, item_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(item, field, value)
    session.flush()

    ChangeRecorder.record(
        session, f"備品「{item.name}」を更新", "inventory", item_id,
        author_id=editor.id, author_role=editor.role
    )
    return InventoryInfo.model_validate(item)


@router.delete("/inventory/{item_id}", response_model=SuccessResponse)
def delete_inventory_item(
    item_id: int,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    session.delete(_get_inventory(session, item_id))
    ChangeRecorder.record(
        session, f"備品 (ID: {item_id}) を削除", "inventory", item_id,
        author_id=editor.id, author_role=editor.role
    )
    return SuccessResponse()


# =============================================================================
# HANDOVER BAG
# =============================================================================

@router.get("/handover-bag", response_model=List[HandoverItemInfo])
def list_handover_items(
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    items = session.query(HandoverBagItem).order_by(HandoverBagItem.id).all()
    return [HandoverItemInfo.model_validate(i) for i in items]


@router.post("/handover-bag", response_model=HandoverItemInfo, status_code=201)
def create_handover_item(
    payload: HandoverItemCreate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    item = HandoverBagItem(**payload.model_dump(), is_checked=False)
    session.add(item)
    session.flush()

    ChangeRecorder.record(
        session, f"引き継ぎ袋に「{item.name}」を追加", "handoverBagItems", item.id,
        author_id=editor.id, author_role=editor.role
    )
    return HandoverItemInfo.model_validate(item)


@router.patch("/handover-bag/{item_id}", response_model=HandoverItemInfo)
def update_handover_item(
    item_id: int,
    payload: HandoverItemUpdate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    item = _get_handover(session, item_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(item, field, value)
    session.flush()

    ChangeRecorder.record(
        session, f"引き継ぎ袋「{item.name}」を更新", "handoverBagItems", item_id,
        author_id=editor.id, author_role=editor.role
    )
    return HandoverItemInfo.model_validate(item)


@router.post("/handover-bag/{item_id}/toggle", response_model=HandoverItemInfo)
def toggle_handover_item(
    item_id: int,
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    item = _get_handover(session, item_id)
    item.is_checked = not item.is_checked
    session.flush()
    return HandoverItemInfo.model_validate(item)


@router.delete("/handover-bag/{item_id}", response_model=SuccessResponse)
def delete_handover_item(
    item_id: int,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    session.delete(_get_handover(session, item_id))
    ChangeRecorder.record(
        session, f"引き継ぎ袋 (ID: {item_id}) を削除", "handoverBagItems", item_id,
        author_id=editor.id, author_role=editor.role
    )
    return SuccessResponse()
