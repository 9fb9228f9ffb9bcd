"""
Leader role synchronization

Households serving as primary or backup leader for the current fiscal
year get the admin role. Called once per authenticated request; calling
it again without schedule changes has no effect.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from greenpia.database.models import LeaderSchedule, User
from greenpia.utils import get_logger

logger = get_logger(__name__)


def fiscal_year(now: datetime, start_month: int = 4) -> int:
    """Fiscal year containing `now` (April start: 2025-03-31 -> 2024)."""
    return now.year if now.month >= start_month else now.year - 1


def sync_leader_role(
    session: Session,
    user: User,
    now: Optional[datetime] = None,
    start_month: int = 4,
) -> bool:
    """
    Promote `user` to admin when their household leads this fiscal year.

    Roles are never lowered here; demotion at the end of a term is an
    admin decision.

    Returns:
        True if the stored role changed
    """
    if not user.household_id or user.role == 'admin':
        return False

    year = fiscal_year(now or datetime.now(), start_month)
    leading = (
        session.query(LeaderSchedule.id)
        .filter(LeaderSchedule.year == year)
        .filter(or_(
            LeaderSchedule.primary_household_id == user.household_id,
            LeaderSchedule.backup_household_id == user.household_id,
        ))
        .first()
    )
    if leading is None:
        return False

    previous_role = user.role
    user.role = 'admin'
    session.flush()

    logger.info(
        f"User {user.id} (household {user.household_id}) promoted "
        f"{previous_role} -> admin as {year} leader"
    )
    return True
