"""
Household registry API routes

GET /api/households - List households (ascending household id)
POST /api/households - Register a household (admin)
PATCH /api/households/{household_id} - Update move-in date / leader history / notes (admin)
GET /api/resident-emails - Registered contact e-mails (admin)
PUT /api/resident-emails - Register or replace a household's e-mail (admin)
DELETE /api/resident-emails/{id} - Remove a contact e-mail (admin)
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from greenpia.api.auth import get_current_user, require_admin
from greenpia.api.schemas import (
    HouseholdCreate, HouseholdInfo, HouseholdUpdate, ResidentEmailInfo,
    ResidentEmailUpsert, SuccessResponse,
)
from greenpia.database import ChangeRecorder, Household, ResidentEmail, User, get_db
from greenpia.utils import get_logger

logger = get_logger(__name__)

router = APIRouter()


# =============================================================================
# HOUSEHOLDS
# =============================================================================

@router.get("/households", response_model=List[HouseholdInfo])
def list_households(
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    households = session.query(Household).order_by(Household.household_id).all()
    return [HouseholdInfo.model_validate(h) for h in households]


@router.post("/households", response_model=HouseholdInfo, status_code=201)
def create_household(
    payload: HouseholdCreate,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    existing = session.query(Household).filter(Household.household_id == payload.household_id).first()
    if existing:
        raise HTTPException(status_code=409, detail=f"Household {payload.household_id} already exists")

    household = Household(**payload.model_dump())
    session.add(household)
    session.flush()

    ChangeRecorder.record(
        session, f"住戸 {household.household_id} を登録", "households", household.id,
        author_id=admin.id, author_role=admin.role
    )
    return HouseholdInfo.model_validate(household)


@router.patch("/households/{household_id}", response_model=HouseholdInfo)
def update_household(
    household_id: str,
    payload: HouseholdUpdate,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    household = session.query(Household).filter(Household.household_id == household_id).first()
    if household is None:
        raise HTTPException(status_code=404, detail=f"Household {household_id} not found")

    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(household, field, value)
    session.flush()

    ChangeRecorder.record(
        session, f"住戸 {household_id} の情報を更新", "households", household.id,
        author_id=admin.id, author_role=admin.role
    )
    logger.info(f"Household {household_id} updated by admin {admin.id}")
    return HouseholdInfo.model_validate(household)


# =============================================================================
# RESIDENT E-MAILS
# =============================================================================

@router.get("/resident-emails", response_model=List[ResidentEmailInfo])
def list_resident_emails(
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    emails = session.query(ResidentEmail).order_by(ResidentEmail.household_id).all()
    return [ResidentEmailInfo.model_validate(e) for e in emails]


@router.put("/resident-emails", response_model=ResidentEmailInfo)
def upsert_resident_email(
    payload: ResidentEmailUpsert,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """One e-mail per household: replaces the existing address if any."""
    entry = session.query(ResidentEmail).filter(ResidentEmail.household_id == payload.household_id).first()

    if entry:
        entry.email = payload.email
        summary = f"住戸{payload.household_id}のメールを更新"
    else:
        entry = ResidentEmail(household_id=payload.household_id, email=payload.email, registered_by=admin.id)
        session.add(entry)
        summary = f"住戸{payload.household_id}のメールを登録"
    session.flush()

    ChangeRecorder.record(session, summary, "residentEmails", entry.id, author_id=admin.id, author_role=admin.role)
    return ResidentEmailInfo.model_validate(entry)


@router.delete("/resident-emails/{email_id}", response_model=SuccessResponse)
def delete_resident_email(
    email_id: int,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    entry = session.get(ResidentEmail, email_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Resident e-mail {email_id} not found")

    session.delete(entry)
    ChangeRecorder.record(
        session, f"住民メール (ID: {email_id}) を削除", "residentEmails", email_id,
        author_id=admin.id, author_role=admin.role
    )
    return SuccessResponse()
