"""
Inquiry API routes

POST /api/inquiries - Send an inquiry to the year's leader
GET /api/inquiries - List inquiries (year / status / household filters, newest first)
GET /api/inquiries/pending - Reply queue, oldest first (admin)
GET /api/inquiries/{id} - Inquiry with its replies
POST /api/inquiries/{id}/replies - Reply (status becomes "replied")
POST /api/inquiries/{id}/close - Close the thread (admin)
"""
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from greenpia.api.auth import get_current_user, require_admin
from greenpia.api.schemas import (
    InquiryCreate, InquiryDetail, InquiryInfo, InquiryReplyCreate, InquiryReplyInfo
)
from greenpia.database import (
    ChangeRecorder, Inquiry, InquiryReply, LeaderSchedule, ResidentEmail, User, get_db
)
from greenpia.notifications import Notifier, get_notifier
from greenpia.utils import get_logger

logger = get_logger(__name__)

router = APIRouter()

CATEGORY_LABELS = {
    "participation": "参加",
    "opinion": "意見",
    "repair": "修繕",
    "other": "その他",
}


def _has_email(session: Session, household_id: str) -> bool:
    return session.query(ResidentEmail.id).filter(ResidentEmail.household_id == household_id).first() is not None


def _get_inquiry(session: Session, inquiry_id: int) -> Inquiry:
    inquiry = session.get(Inquiry, inquiry_id)
    if inquiry is None:
        raise HTTPException(status_code=404, detail=f"Inquiry {inquiry_id} not found")
    return inquiry


@router.post("/inquiries", response_model=InquiryInfo, status_code=201)
def create_inquiry(
    payload: InquiryCreate,
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Store the inquiry and alert the year's primary leader.

    The notification is only sent when the leader household has a
    registered e-mail; delivery failures never fail the request.
    """
    inquiry = Inquiry(
        household_id=payload.household_id,
        year=payload.year,
        title=payload.title,
        content=payload.content,
        category=payload.category,
        status="pending",
    )
    session.add(inquiry)
    session.flush()

    schedule = (
        session.query(LeaderSchedule)
        .filter(LeaderSchedule.year == payload.year)
        .order_by(LeaderSchedule.id)
        .first()
    )
    if schedule and _has_email(session, schedule.primary_household_id):
        notifier.notify(
            f"問い合わせ: {payload.household_id}号室から（{CATEGORY_LABELS[payload.category]}）",
            f"{payload.household_id}号室から問い合わせがありました。\n\n"
            f"タイトル: {payload.title}\n内容: {payload.content}\n\n"
            f"返信待ちキューで確認してください。",
        )

    ChangeRecorder.record(
        session, f"問い合わせ「{payload.title}」を受付", "inquiries", inquiry.id,
        author_id=user.id, author_role=user.role
    )
    return InquiryInfo.model_validate(inquiry)


@router.get("/inquiries", response_model=List[InquiryInfo])
def list_inquiries(
    year: Optional[int] = None,
    status: Optional[Literal["pending", "replied", "closed"]] = None,
    household_id: Optional[str] = None,
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    query = session.query(Inquiry)
    if year is not None:
        query = query.filter(Inquiry.year == year)
    if status is not None:
        query = query.filter(Inquiry.status == status)
    if household_id is not None:
        query = query.filter(Inquiry.household_id == household_id)

    inquiries = query.order_by(Inquiry.created_at.desc(), Inquiry.id.desc()).all()
    return [InquiryInfo.model_validate(i) for i in inquiries]


@router.get("/inquiries/pending", response_model=List[InquiryInfo])
def pending_inquiries(
    year: Optional[int] = None,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    query = session.query(Inquiry).filter(Inquiry.status == "pending")
    if year is not None:
        query = query.filter(Inquiry.year == year)

    inquiries = query.order_by(Inquiry.created_at, Inquiry.id).all()
    return [InquiryInfo.model_validate(i) for i in inquiries]


@router.get("/inquiries/{inquiry_id}", response_model=InquiryDetail)
def get_inquiry(
    inquiry_id: int,
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return InquiryDetail.model_validate(_get_inquiry(session, inquiry_id))


@router.post("/inquiries/{inquiry_id}/replies", response_model=InquiryReplyInfo, status_code=201)
def reply_to_inquiry(
    inquiry_id: int,
    payload: InquiryReplyCreate,
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
):
    inquiry = _get_inquiry(session, inquiry_id)

    reply = InquiryReply(
        inquiry_id=inquiry.id,
        replied_by_household_id=payload.replied_by_household_id,
        reply_content=payload.reply_content,
    )
    session.add(reply)
    inquiry.status = "replied"
    session.flush()

    if _has_email(session, inquiry.household_id):
        notifier.notify(
            f"問い合わせへの返信: \"{inquiry.title}\"",
            f"{payload.replied_by_household_id}号室から返信がありました。\n\n返信内容: {payload.reply_content}",
        )

    ChangeRecorder.record(
        session, f"問い合わせ「{inquiry.title}」に返信", "inquiries", inquiry.id,
        author_id=user.id, author_role=user.role
    )
    return InquiryReplyInfo.model_validate(reply)


@router.post("/inquiries/{inquiry_id}/close", response_model=InquiryInfo)
def close_inquiry(
    inquiry_id: int,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    inquiry = _get_inquiry(session, inquiry_id)
    inquiry.status = "closed"
    session.flush()

    ChangeRecorder.record(
        session, f"問い合わせ「{inquiry.title}」をクローズ", "inquiries", inquiry.id,
        author_id=admin.id, author_role=admin.role
    )
    return InquiryInfo.model_validate(inquiry)
