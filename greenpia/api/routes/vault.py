"""
Vault API routes (door codes, contact numbers and other secrets)

GET /api/vault - Entries with masked values only (member)
POST /api/vault/{id}/reveal - Actual value, audit-logged (admin)
POST /api/vault - Create (admin, audit-logged)
PATCH /api/vault/{id} - Update (admin, audit-logged)
DELETE /api/vault/{id} - Delete (admin, audit-logged)
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from greenpia.api.auth import get_current_user, require_admin
from greenpia.api.schemas import (
    SuccessResponse, VaultEntryCreate, VaultEntryInfo, VaultEntryUpdate, VaultReveal
)
from greenpia.database import ChangeRecorder, User, VaultEntry, get_db
from greenpia.utils import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def _get_entry(session: Session, entry_id: int) -> VaultEntry:
    entry = session.get(VaultEntry, entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Vault entry {entry_id} not found")
    return entry


@router.get("/vault", response_model=List[VaultEntryInfo])
def list_vault(
    category: Optional[str] = None,
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    query = session.query(VaultEntry)
    if category:
        query = query.filter(VaultEntry.category == category)
    entries = query.order_by(VaultEntry.category, VaultEntry.key).all()
    return [VaultEntryInfo.model_validate(e) for e in entries]


@router.post("/vault/{entry_id}/reveal", response_model=VaultReveal)
def reveal_vault_entry(
    entry_id: int,
    request: Request,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    entry = _get_entry(session, entry_id)

    ChangeRecorder.audit(
        session, "reveal", "vault_entries", entry.id,
        user_id=admin.id, details=f"{entry.category}/{entry.key}", ip_address=_client_ip(request)
    )
    logger.info(f"Vault entry {entry_id} revealed by admin {admin.id}")
    return VaultReveal(id=entry.id, key=entry.key, actual_value=entry.actual_value)


@router.post("/vault", response_model=VaultEntryInfo, status_code=201)
def create_vault_entry(
    payload: VaultEntryCreate,
    request: Request,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    entry = VaultEntry(**payload.model_dump(), created_by=admin.id)
    session.add(entry)
    session.flush()

    ChangeRecorder.audit(
        session, "create", "vault_entries", entry.id,
        user_id=admin.id, details=f"{entry.category}/{entry.key}", ip_address=_client_ip(request)
    )
    return VaultEntryInfo.model_validate(entry)


@router.patch("/vault/{entry_id}", response_model=VaultEntryInfo)
def update_vault_entry(
    entry_id: int,
    payload: VaultEntryUpdate,
    request: Request,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    entry = _get_entry(session, entry_id)
    changes = payload.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(entry, field, value)
    session.flush()

    ChangeRecorder.audit(
        session, "update", "vault_entries", entry.id,
        user_id=admin.id, details=f"fields: {', '.join(sorted(changes))}", ip_address=_client_ip(request)
    )
    return VaultEntryInfo.model_validate(entry)


@router.delete("/vault/{entry_id}", response_model=SuccessResponse)
def delete_vault_entry(
    entry_id: int,
    request: Request,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    entry = _get_entry(session, entry_id)
    details = f"{entry.category}/{entry.key}"
    session.delete(entry)

    ChangeRecorder.audit(
        session, "delete", "vault_entries", entry_id,
        user_id=admin.id, details=details, ip_address=_client_ip(request)
    )
    return SuccessResponse()
