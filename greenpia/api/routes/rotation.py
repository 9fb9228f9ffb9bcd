"""
Leader rotation API routes

POST /api/rotation/calculate - Pick next year's leaders (exemptions only)
POST /api/rotation/recalculate - Rebuild a year's schedule (A/B/C exclusions)
GET /api/rotation/{year}/reasons - Every household with its exclusion codes
GET /api/rotation/schedules - Schedules from a year onwards (member top page)
POST /api/rotation/schedules/{id}/confirm - Mark conditional / confirmed
GET /api/rotation/logic - Latest rotation logic version
POST /api/rotation/logic - Append a new rotation logic version
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from greenpia.api.auth import get_current_user, require_admin
from greenpia.api.schemas import (
    CalculationResponse, HouseholdReasons, RecalculationResponse, RotationLogicInfo,
    RotationLogicUpdate, RotationReasonsResponse, ScheduleConfirmRequest, ScheduleInfo,
    YearRequest,
)
from greenpia.config import load_config
from greenpia.database import User, get_db
from greenpia.rotation import RotationService
from greenpia.utils import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_rotation_service() -> RotationService:
    """Rotation service built from the loaded config."""
    return RotationService(load_config()._raw_config)


@router.post("/rotation/calculate", response_model=CalculationResponse)
def calculate_next_year(
    payload: YearRequest,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    service: RotationService = Depends(get_rotation_service),
):
    """
    Pick primary and backup leaders for a year.

    Only approved exemptions exclude households here. Fails with 409 when
    no rotation logic is defined or no household is eligible.
    """
    result = service.calculate_next_year(session, payload.year, author_id=admin.id)
    return CalculationResponse(primary=result['primary'], backup=result['backup'])


@router.post("/rotation/recalculate", response_model=RecalculationResponse)
def recalculate_schedules(
    payload: YearRequest,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    service: RotationService = Depends(get_rotation_service),
):
    """
    Replace a year's schedule using all exclusion codes.

    Returns candidate_count; schedule is null when nobody was eligible.
    """
    result = service.recalculate_schedules(session, payload.year, author_id=admin.id)
    return RecalculationResponse(
        year=result.year,
        candidate_count=result.candidate_count,
        schedule=ScheduleInfo.model_validate(result.schedule) if result.schedule else None,
    )


@router.get("/rotation/schedules", response_model=List[ScheduleInfo])
def list_schedules(
    from_year: Optional[int] = Query(default=None, description="Defaults to the current calendar year"),
    span: Optional[int] = Query(default=None, ge=0, le=50),
    session: Session = Depends(get_db),
    service: RotationService = Depends(get_rotation_service),
):
    from_year = from_year or datetime.now().year
    schedules = service.list_schedules(session, from_year, span)
    return [ScheduleInfo.model_validate(s) for s in schedules]


@router.post("/rotation/schedules/{schedule_id}/confirm", response_model=ScheduleInfo)
def confirm_schedule(
    schedule_id: int,
    payload: ScheduleConfirmRequest,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    service: RotationService = Depends(get_rotation_service),
):
    schedule = service.confirm_schedule(session, schedule_id, payload.status, author_id=admin.id)
    return ScheduleInfo.model_validate(schedule)


@router.get("/rotation/logic", response_model=Optional[RotationLogicInfo])
def get_latest_logic(
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    logic = RotationService.latest_logic(session)
    return RotationLogicInfo.model_validate(logic) if logic else None


@router.post("/rotation/logic", response_model=RotationLogicInfo, status_code=201)
def update_logic(
    payload: RotationLogicUpdate,
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    service: RotationService = Depends(get_rotation_service),
):
    record = service.update_logic(
        session, payload.priority, payload.exclude_conditions, payload.reason, author_id=admin.id
    )
    return RotationLogicInfo.model_validate(record)


@router.get("/rotation/{year}/reasons", response_model=RotationReasonsResponse)
def get_rotation_with_reasons(
    year: int,
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    service: RotationService = Depends(get_rotation_service),
):
    """Read-only: exclusion codes per household and the year's schedule (if any)."""
    view = service.get_rotation_with_reasons(session, year)
    schedule = view['schedule']
    return RotationReasonsResponse(
        year=view['year'],
        households=[HouseholdReasons.model_validate(h) for h in view['households']],
        schedule=ScheduleInfo.model_validate(schedule) if schedule else None,
    )
