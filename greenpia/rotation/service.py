"""
Rotation Service - Leader Schedule Operations

Persists what the RotationSelector decides:
- calculate_next_year: exemptions-only policy, appends a draft entry
- recalculate_schedules: strict policy, replaces the year's entry
- get_rotation_with_reasons: read-only view of every household's exclusion codes
- confirm_schedule / update_logic / list_schedules: admin maintenance

The two selection entry points intentionally differ:
calculate_next_year fails when nobody is eligible and never deletes
existing rows, recalculate_schedules never fails on an empty candidate
list and leaves the year without a schedule instead.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from greenpia.database.changelog import ChangeRecorder
from greenpia.database.models import (
    ExemptionRequest, Household, LeaderRotationLogic, LeaderSchedule
)
from greenpia.rotation.errors import InvalidScheduleTransition, RotationLogicMissing, ScheduleNotFound
from greenpia.rotation.selector import (
    EXEMPTIONS_ONLY, STRICT, RotationSelector, select_leaders
)
from greenpia.utils import get_logger

logger = get_logger(__name__)


AUTO_CALCULATION_REASON = "自動計算: 前回担当からの経過年数、入居開始日、住戸ID昇順で選定"

CONFIRMABLE_STATUSES = ("conditional", "confirmed")
# Status each confirmation step must start from
PREVIOUS_STATUS = {"conditional": "draft", "confirmed": "conditional"}


@dataclass
class RecalculationResult:
    """Outcome of recalculate_schedules (schedule is None when nobody is eligible)"""
    year: int
    candidate_count: int
    schedule: Optional[LeaderSchedule] = None

    @property
    def produced_schedule(self) -> bool:
        return self.schedule is not None


class RotationService:
    """
    Leader rotation operations on top of a database session.

    Single Responsibility: persistence around RotationSelector decisions.
    """

    def __init__(self, config: dict):
        """
        Initialize service with config.

        Args:
            config: Configuration dict with a 'rotation' section

        Raises:
            KeyError: If required config keys are missing (Fast Fail)
        """
        self.selector = RotationSelector(config)
        self.schedule_span_years = config['rotation']['schedule_span_years']

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    @staticmethod
    def _approved_exemptions(session: Session, year: int) -> set:
        rows = (
            session.query(ExemptionRequest.household_id)
            .filter(ExemptionRequest.year == year)
            .filter(ExemptionRequest.status == 'approved')
            .all()
        )
        return {row.household_id for row in rows}

    @staticmethod
    def _previous_primary(session: Session, year: int) -> Optional[str]:
        previous = (
            session.query(LeaderSchedule)
            .filter(LeaderSchedule.year == year - 1)
            .order_by(LeaderSchedule.id)
            .first()
        )
        return previous.primary_household_id if previous else None

    @staticmethod
    def latest_logic(session: Session) -> Optional[LeaderRotationLogic]:
        return (
            session.query(LeaderRotationLogic)
            .order_by(LeaderRotationLogic.version.desc())
            .first()
        )

    # =========================================================================
    # SELECTION ENTRY POINTS
    # =========================================================================

    def calculate_next_year(
        self,
        session: Session,
        year: int,
        now: Optional[datetime] = None,
        author_id: Optional[int] = None,
    ) -> Dict[str, str]:
        """
        Pick leaders for `year` using approved exemptions only.

        Appends a draft entry; existing entries for the year are kept.

        Returns:
            {'primary': household_id, 'backup': household_id}

        Raises:
            RotationLogicMissing: If no rotation logic record exists
            InsufficientCandidates: If no household is eligible
        """
        if self.latest_logic(session) is None:
            raise RotationLogicMissing()

        now = now or datetime.now()
        households = session.query(Household).all()
        ranked = self.selector.eligible(
            households,
            self._approved_exemptions(session, year),
            now,
            policy=EXEMPTIONS_ONLY,
            previous_primary_id=self._previous_primary(session, year),
        )
        primary, backup = select_leaders(ranked, year)

        schedule = LeaderSchedule(
            year=year,
            primary_household_id=primary,
            backup_household_id=backup,
            status='draft',
            reason=AUTO_CALCULATION_REASON,
        )
        session.add(schedule)
        session.flush()

        ChangeRecorder.record(
            session, f"{year}年度ローテを自動計算", "leaderSchedule", schedule.id, author_id=author_id
        )
        logger.info(f"Calculated {year} leaders: primary={primary}, backup={backup} ({len(ranked)} eligible)")

        return {'primary': primary, 'backup': backup}

    def recalculate_schedules(
        self,
        session: Session,
        year: int,
        now: Optional[datetime] = None,
        author_id: Optional[int] = None,
    ) -> RecalculationResult:
        """
        Replace the schedule for `year` using the strict policy (A, B, C).

        Any existing entry for the year is deleted first. With no eligible
        household the year is left without a schedule.
        """
        now = now or datetime.now()
        households = session.query(Household).order_by(Household.household_id).all()
        exempted_ids = self._approved_exemptions(session, year)
        ranked = self.selector.eligible(
            households,
            exempted_ids,
            now,
            policy=STRICT,
            previous_primary_id=self._previous_primary(session, year),
        )

        deleted = (
            session.query(LeaderSchedule)
            .filter(LeaderSchedule.year == year)
            .delete(synchronize_session=False)
        )

        schedule = None
        if ranked:
            primary, backup = select_leaders(ranked, year)
            schedule = LeaderSchedule(
                year=year,
                primary_household_id=primary,
                backup_household_id=backup,
                status='draft',
                reason=self.selector.describe(self.selector.assess(households, exempted_ids, now), primary),
            )
            session.add(schedule)
            session.flush()
        else:
            logger.warning(f"No eligible households for {year}; schedule left empty")

        ChangeRecorder.record(
            session, f"{year}年度ローテを再計算", "leaderSchedule",
            schedule.id if schedule else None, author_id=author_id
        )
        logger.info(f"Recalculated {year}: {len(ranked)} candidates, {deleted} old entries replaced")

        return RecalculationResult(year=year, candidate_count=len(ranked), schedule=schedule)

    def get_rotation_with_reasons(
        self,
        session: Session,
        year: int,
        now: Optional[datetime] = None,
    ) -> Dict:
        """
        Every household with its exclusion codes for `year` (read-only).

        Returns:
            {'year', 'households': [HouseholdAssessment...], 'schedule': LeaderSchedule | None}
        """
        now = now or datetime.now()
        households = session.query(Household).order_by(Household.household_id).all()
        assessments = self.selector.assess(households, self._approved_exemptions(session, year), now)

        schedule = (
            session.query(LeaderSchedule)
            .filter(LeaderSchedule.year == year)
            .order_by(LeaderSchedule.id)
            .first()
        )

        return {'year': year, 'households': assessments, 'schedule': schedule}

    # =========================================================================
    # MAINTENANCE
    # =========================================================================

    def confirm_schedule(
        self,
        session: Session,
        schedule_id: int,
        status: str,
        author_id: Optional[int] = None,
    ) -> LeaderSchedule:
        """
        Advance a schedule one step: draft -> conditional -> confirmed.

        Raises:
            ValueError: If status is not conditional/confirmed
            ScheduleNotFound: If the schedule does not exist
            InvalidScheduleTransition: If the move skips or reverses a step
        """
        if status not in CONFIRMABLE_STATUSES:
            raise ValueError(f"Invalid schedule status '{status}', expected one of {CONFIRMABLE_STATUSES}")

        schedule = session.get(LeaderSchedule, schedule_id)
        if schedule is None:
            raise ScheduleNotFound(schedule_id)
        if schedule.status != PREVIOUS_STATUS[status]:
            raise InvalidScheduleTransition(schedule_id, schedule.status, status)

        schedule.status = status
        session.flush()

        ChangeRecorder.record(
            session, f"ローテステータスを「{status}」に変更", "leaderSchedule", schedule_id, author_id=author_id
        )
        logger.info(f"Schedule {schedule_id} ({schedule.year}) -> {status}")
        return schedule

    def update_logic(
        self,
        session: Session,
        priority: List[str],
        exclude_conditions: List[str],
        reason: str,
        author_id: Optional[int] = None,
    ) -> LeaderRotationLogic:
        """Append a new rotation logic version (latest + 1)."""
        latest = self.latest_logic(session)
        next_version = (latest.version if latest else 0) + 1

        record = LeaderRotationLogic(
            version=next_version,
            logic={'priority': list(priority), 'excludeConditions': list(exclude_conditions)},
            reason=reason,
        )
        session.add(record)
        session.flush()

        ChangeRecorder.record(
            session, f"ローテロジック v{next_version} を更新", "leaderRotationLogic", record.id, author_id=author_id
        )
        logger.info(f"Rotation logic updated to v{next_version}")
        return record

    def list_schedules(self, session: Session, from_year: int, span: Optional[int] = None) -> List[LeaderSchedule]:
        """Schedules with from_year <= year <= from_year + span, ascending."""
        span = self.schedule_span_years if span is None else span
        return (
            session.query(LeaderSchedule)
            .filter(LeaderSchedule.year >= from_year)
            .filter(LeaderSchedule.year <= from_year + span)
            .order_by(LeaderSchedule.year, LeaderSchedule.id)
            .all()
        )
