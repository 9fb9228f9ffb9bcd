"""
Rotation errors

Raised by the rotation service and mapped to HTTP statuses by the API
(see greenpia.api.main exception handlers).
"""


class RotationError(Exception):
    """Base class for leader rotation failures"""


class InsufficientCandidates(RotationError):
    """No household is eligible for the target year"""

    def __init__(self, year: int, candidate_count: int = 0):
        self.year = year
        self.candidate_count = candidate_count
        super().__init__(
            f"Not enough eligible households for {year} (found {candidate_count})"
        )


class RotationLogicMissing(RotationError):
    """No leader_rotation_logic record has been defined yet"""

    def __init__(self):
        super().__init__("Leader rotation logic is not defined")


class ScheduleNotFound(RotationError):
    """Leader schedule entry does not exist"""

    def __init__(self, schedule_id: int):
        self.schedule_id = schedule_id
        super().__init__(f"Leader schedule {schedule_id} not found")


class InvalidScheduleTransition(RotationError):
    """Schedule status may only move draft -> conditional -> confirmed"""

    def __init__(self, schedule_id: int, current: str, requested: str):
        self.schedule_id = schedule_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Leader schedule {schedule_id} cannot move from '{current}' to '{requested}'"
        )
