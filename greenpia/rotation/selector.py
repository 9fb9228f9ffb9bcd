"""
Rotation Selector - Pick the Leader and Backup Households for a Year

Single Responsibility: ranking and exclusion only (no persistence).

Exclusion codes (evaluated in this order):
- A: moved in within the grace period (default 12 months) before "now"
- B: has already served as leader (leader_history_count > 0)
- C: has an approved exemption for the target year

Ranking (stable, total order):
1. The previous year's primary goes last
2. move_in_date ascending (missing dates last)
3. household_id ascending

Two policies share the ranking but differ in which codes exclude:
- EXEMPTIONS_ONLY: C only (next-year calculation)
- STRICT: A, B and C (recalculation and the reasons view)
"""

import calendar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from greenpia.rotation.errors import InsufficientCandidates
from greenpia.utils import get_logger

logger = get_logger(__name__)


RECENT_MOVE_IN = "A"
PAST_LEADER = "B"
EXEMPTED = "C"

EXEMPTIONS_ONLY = (EXEMPTED,)
STRICT = (RECENT_MOVE_IN, PAST_LEADER, EXEMPTED)


@dataclass
class HouseholdAssessment:
    """Exclusion verdict for one household"""
    household_id: str
    move_in_date: Optional[datetime]
    leader_history_count: int
    reasons: List[str] = field(default_factory=list)

    @property
    def is_candidate(self) -> bool:
        return not self.reasons


def _naive(value: Optional[datetime]) -> Optional[datetime]:
    """Drop tzinfo after converting to UTC so naive and aware values compare."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def months_before(now: datetime, months: int) -> datetime:
    """
    Same calendar day `months` months before `now`.

    The day is clamped to the end of the target month, so
    2024-03-31 minus one month is 2024-02-29.
    """
    total = now.year * 12 + (now.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def exclusion_reasons(
    household,
    exempted_ids: Set[str],
    now: datetime,
    grace_months: int = 12,
) -> List[str]:
    """
    Evaluate exclusion codes for one household.

    Args:
        household: Object with household_id, move_in_date, leader_history_count
        exempted_ids: Household ids with an approved exemption for the target year
        now: Evaluation time (code A compares against this, not the target year)
        grace_months: Length of the recent move-in window

    Returns:
        Codes in evaluation order A, B, C (empty list = candidate)
    """
    reasons = []

    move_in = _naive(household.move_in_date)
    if move_in is not None and move_in > months_before(_naive(now), grace_months):
        reasons.append(RECENT_MOVE_IN)

    if (household.leader_history_count or 0) > 0:
        reasons.append(PAST_LEADER)

    if household.household_id in exempted_ids:
        reasons.append(EXEMPTED)

    return reasons


def rank_candidates(households: Iterable, previous_primary_id: Optional[str] = None) -> list:
    """Sort households into leader order (best candidate first)."""
    def sort_key(household):
        move_in = _naive(household.move_in_date)
        return (
            household.household_id == previous_primary_id,
            move_in is None,
            move_in or datetime.min,
            household.household_id,
        )

    return sorted(households, key=sort_key)


def select_leaders(ranked: Sequence, year: int) -> Tuple[str, str]:
    """
    Take primary and backup from a ranked candidate list.

    A single candidate serves as both primary and backup.

    Raises:
        InsufficientCandidates: If the list is empty
    """
    if not ranked:
        raise InsufficientCandidates(year, 0)

    primary = ranked[0].household_id
    backup = ranked[1].household_id if len(ranked) > 1 else primary
    return primary, backup


class RotationSelector:
    """
    Applies an exclusion policy and ranking to a household list.

    Single Responsibility: selection only (no scheduling, no persistence).
    """

    def __init__(self, config: dict):
        """
        Initialize selector with config.

        Args:
            config: Configuration dict with a 'rotation' section

        Raises:
            KeyError: If required config keys are missing (Fast Fail)
        """
        rotation_config = config['rotation']
        self.grace_months = rotation_config['move_in_grace_months']

        logger.debug(f"RotationSelector initialized: grace_months={self.grace_months}")

    def assess(self, households: Iterable, exempted_ids: Set[str], now: datetime) -> List[HouseholdAssessment]:
        """Evaluate every household against all exclusion codes."""
        return [
            HouseholdAssessment(
                household_id=h.household_id,
                move_in_date=h.move_in_date,
                leader_history_count=h.leader_history_count or 0,
                reasons=exclusion_reasons(h, exempted_ids, now, self.grace_months),
            )
            for h in households
        ]

    def describe(self, assessments: Iterable[HouseholdAssessment], primary_id: str) -> str:
        """
        Schedule reason text naming the skipped households and the pick.

        Example:
            "202は入居12ヶ月未満 → 免除候補（A）、301は直近組長 → 免除候補（B） → 繰上げで102"
            "入居年月順で101" when nobody was skipped
        """
        labels = {
            RECENT_MOVE_IN: f"入居{self.grace_months}ヶ月未満 → 免除候補（A）",
            PAST_LEADER: "直近組長 → 免除候補（B）",
            EXEMPTED: "免除申請承認済 → 免除（C）",
        }
        parts = [
            f"{a.household_id}は" + "／".join(labels[code] for code in a.reasons)
            for a in assessments
            if a.reasons
        ]
        if not parts:
            return f"入居年月順で{primary_id}"
        return f"{'、'.join(parts)} → 繰上げで{primary_id}"

    def eligible(
        self,
        households: Iterable,
        exempted_ids: Set[str],
        now: datetime,
        policy: Sequence[str] = STRICT,
        previous_primary_id: Optional[str] = None,
    ) -> list:
        """
        Ranked households that carry none of the policy's exclusion codes.

        Args:
            households: Household rows
            exempted_ids: Approved exemptions for the target year
            now: Evaluation time
            policy: Codes that exclude (EXEMPTIONS_ONLY or STRICT)
            previous_primary_id: Last year's primary, ranked last

        Returns:
            Ranked list of household rows
        """
        households = list(households)
        kept = [
            h for h in households
            if not set(exclusion_reasons(h, exempted_ids, now, self.grace_months)) & set(policy)
        ]

        ranked = rank_candidates(kept, previous_primary_id)
        logger.debug(
            f"Eligible households: {len(ranked)}/{len(households)} "
            f"(policy={''.join(policy)})"
        )
        return ranked
