"""
Exemption request API routes

POST /api/exemptions - Submit a request (own household unless admin)
GET /api/exemptions - List requests, filter by year / status (admin)
POST /api/exemptions/{id}/approve - Approve (admin)
POST /api/exemptions/{id}/reject - Reject (admin)
"""
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from greenpia.api.auth import get_current_user, require_admin
from greenpia.api.schemas import ExemptionCreate, ExemptionInfo
from greenpia.database import ChangeRecorder, ExemptionRequest, User, get_db
from greenpia.utils import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/exemptions", response_model=ExemptionInfo, status_code=201)
def submit_exemption(
    payload: ExemptionCreate,
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Each resubmission for the same household and year gets the next version."""
    if user.role != "admin" and user.household_id != payload.household_id:
        raise HTTPException(status_code=403, detail="Requests can only be filed for your own household")

    previous = (
        session.query(func.count(ExemptionRequest.id))
        .filter(ExemptionRequest.household_id == payload.household_id)
        .filter(ExemptionRequest.year == payload.year)
        .scalar()
    ) or 0

    request = ExemptionRequest(
        household_id=payload.household_id,
        year=payload.year,
        version=previous + 1,
        reason=payload.reason,
        status="pending",
    )
    session.add(request)
    session.flush()

    ChangeRecorder.record(
        session, f"住戸 {payload.household_id} が{payload.year}年度の免除を申請", "exemptionRequests",
        request.id, author_id=user.id, author_role=user.role
    )
    logger.info(f"Exemption request {request.id} v{request.version} for {payload.household_id}/{payload.year}")
    return ExemptionInfo.model_validate(request)


@router.get("/exemptions", response_model=List[ExemptionInfo])
def list_exemptions(
    year: Optional[int] = None,
    status: Optional[Literal["pending", "approved", "rejected"]] = Query(default=None),
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    query = session.query(ExemptionRequest)
    if year is not None:
        query = query.filter(ExemptionRequest.year == year)
    if status is not None:
        query = query.filter(ExemptionRequest.status == status)

    requests = query.order_by(ExemptionRequest.created_at.desc(), ExemptionRequest.id.desc()).all()
    return [ExemptionInfo.model_validate(r) for r in requests]


def _decide(session: Session, request_id: int, status: str, admin: User) -> ExemptionRequest:
    request = session.get(ExemptionRequest, request_id)
    if request is None:
        raise HTTPException(status_code=404, detail=f"Exemption request {request_id} not found")

    request.status = status
    request.approved_by = admin.id
    request.approved_at = datetime.utcnow()
    session.flush()

    verb = "承認" if status == "approved" else "却下"
    ChangeRecorder.record(
        session, f"免除申請 (ID: {request_id}) を{verb}", "exemptionRequests", request_id,
        author_id=admin.id, author_role=admin.role
    )
    logger.info(f"Exemption request {request_id} {status} by admin {admin.id}")
    return request


@router.post("/exemptions/{request_id}/approve", response_model=ExemptionInfo)
def approve_exemption(
    request_id: int,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return ExemptionInfo.model_validate(_decide(session, request_id, "approved", admin))


@router.post("/exemptions/{request_id}/reject", response_model=ExemptionInfo)
def reject_exemption(
    request_id: int,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return ExemptionInfo.model_validate(_decide(session, request_id, "rejected", admin))
