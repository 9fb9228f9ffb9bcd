"""
ROTATION Module - Annual Leader Selection

Single Responsibility: decide which households lead the association each year

Components:
- Selector: exclusion codes (A/B/C) and candidate ranking
- Service: schedule persistence (calculate, recalculate, confirm, logic versions)
- Role sync: admin role for the current year's leaders
"""

from greenpia.rotation.errors import (
    InsufficientCandidates, InvalidScheduleTransition, RotationError, RotationLogicMissing,
    ScheduleNotFound,
)
from greenpia.rotation.role_sync import fiscal_year, sync_leader_role
from greenpia.rotation.selector import RotationSelector
from greenpia.rotation.service import RecalculationResult, RotationService

__all__ = [
    'InsufficientCandidates',
    'InvalidScheduleTransition',
    'RotationError',
    'RotationLogicMissing',
    'ScheduleNotFound',
    'RotationSelector',
    'RotationService',
    'RecalculationResult',
    'fiscal_year',
    'sync_leader_role',
]
