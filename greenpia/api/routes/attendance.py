"""
Attendance API routes (river cleaning and other all-household events)

GET /api/attendance/events - List events (optional year filter)
POST /api/attendance/events - Create an event (editor)
POST /api/attendance/events/{id}/close - Stop accepting answers (editor)
POST /api/attendance/events/{id}/responses - Answer for a household (resubmission updates)
GET /api/attendance/events/{id}/summary - Counts, answers and missing households
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from greenpia.api.auth import get_current_user, require_editor
from greenpia.api.schemas import (
    AttendanceEventCreate, AttendanceEventInfo, AttendanceResponseInfo,
    AttendanceSubmit, AttendanceSummary,
)
from greenpia.database import (
    AttendanceEvent, AttendanceResponse, ChangeRecorder, Household, User, get_db
)
from greenpia.utils import get_logger

logger = get_logger(__name__)

router = APIRouter()

ANSWERS = ("attend", "absent", "undecided")


def _get_event(session: Session, event_id: int) -> AttendanceEvent:
    event = session.get(AttendanceEvent, event_id)
    if event is None:
        raise HTTPException(status_code=404, detail=f"Attendance event {event_id} not found")
    return event


@router.get("/attendance/events", response_model=List[AttendanceEventInfo])
def list_events(
    year: Optional[int] = None,
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    query = session.query(AttendanceEvent)
    if year is not None:
        query = query.filter(AttendanceEvent.year == year)
    events = query.order_by(AttendanceEvent.scheduled_date.desc()).all()
    return [AttendanceEventInfo.model_validate(e) for e in events]


@router.post("/attendance/events", response_model=AttendanceEventInfo, status_code=201)
def create_event(
    payload: AttendanceEventCreate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    event = AttendanceEvent(**payload.model_dump(), status="open", created_by=editor.id)
    session.add(event)
    session.flush()

    ChangeRecorder.record(
        session, f"出欠確認「{event.title}」を作成", "attendanceEvents", event.id,
        author_id=editor.id, author_role=editor.role
    )
    return AttendanceEventInfo.model_validate(event)


@router.post("/attendance/events/{event_id}/close", response_model=AttendanceEventInfo)
def close_event(
    event_id: int,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    event = _get_event(session, event_id)
    event.status = "closed"
    session.flush()

    ChangeRecorder.record(
        session, f"出欠確認「{event.title}」を締切", "attendanceEvents", event.id,
        author_id=editor.id, author_role=editor.role
    )
    return AttendanceEventInfo.model_validate(event)


@router.post("/attendance/events/{event_id}/responses", response_model=AttendanceResponseInfo)
def submit_attendance(
    event_id: int,
    payload: AttendanceSubmit,
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """One answer per household per event; answering again replaces it."""
    event = _get_event(session, event_id)
    if event.status != "open":
        raise HTTPException(status_code=409, detail=f"Attendance event {event_id} is closed")

    response = (
        session.query(AttendanceResponse)
        .filter(AttendanceResponse.event_id == event_id)
        .filter(AttendanceResponse.household_id == payload.household_id)
        .first()
    )
    if response:
        response.response = payload.response
        response.respondent_name = payload.respondent_name
    else:
        response = AttendanceResponse(event_id=event_id, **payload.model_dump())
        session.add(response)
    session.flush()

    logger.debug(f"Attendance {event_id}: {payload.household_id} -> {payload.response}")
    return AttendanceResponseInfo.model_validate(response)


@router.get("/attendance/events/{event_id}/summary", response_model=AttendanceSummary)
def attendance_summary(
    event_id: int,
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    event = _get_event(session, event_id)
    responses = (
        session.query(AttendanceResponse)
        .filter(AttendanceResponse.event_id == event_id)
        .order_by(AttendanceResponse.household_id)
        .all()
    )

    counts = {answer: 0 for answer in ANSWERS}
    for r in responses:
        counts[r.response] += 1

    answered = {r.household_id for r in responses}
    not_responded = [
        h.household_id
        for h in session.query(Household).order_by(Household.household_id).all()
        if h.household_id not in answered
    ]

    return AttendanceSummary(
        event=AttendanceEventInfo.model_validate(event),
        counts=counts,
        responses=[AttendanceResponseInfo.model_validate(r) for r in responses],
        not_responded=not_responded,
    )
