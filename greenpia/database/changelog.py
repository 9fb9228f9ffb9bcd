"""
Change and audit recording

Two append-only feeds:
- changelog: human-readable "what changed" entries shown to members
- audit_logs: access trail for confidential data (vault reveals, edits)

Usage:
    from greenpia.database.changelog import ChangeRecorder

    ChangeRecorder.record(
        session,
        summary="2027年度のリーダーを自動計算しました",
        entity_type="leaderSchedule",
        entity_id=schedule.id,
        author_id=user.id,
        author_role=user.role,
    )
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from greenpia.database.models import AuditLog, ChangeLog
from greenpia.utils import get_logger

logger = get_logger(__name__)


class ChangeRecorder:
    """
    Static helper class for writing changelog and audit entries.

    Entries are added to the caller's session so they commit (or roll
    back) together with the change they describe. Failures are logged
    but never block the operation being recorded.
    """

    @staticmethod
    def record(
        session: Session,
        summary: str,
        entity_type: str,
        entity_id: Optional[int] = None,
        author_id: Optional[int] = None,
        author_role: Optional[str] = None,
    ) -> bool:
        """
        Append a changelog entry.

        Args:
            session: Open session of the operation being recorded
            summary: One-line description (truncated to 255 chars)
            entity_type: Table/entity name (e.g. "leaderSchedule")
            entity_id: Primary key of the changed row (optional)
            author_id: Acting user id (None for system jobs)
            author_role: Role of the acting user

        Returns:
            True if the entry was added, False if an error occurred
        """
        try:
            session.add(ChangeLog(
                summary=summary[:255],
                date=datetime.utcnow(),
                author_id=author_id,
                author_role=author_role,
                related_entity_type=entity_type,
                related_entity_id=entity_id,
            ))
            return True

        except Exception as e:
            logger.warning(f"Failed to record change '{summary}': {e}")
            return False

    @staticmethod
    def audit(
        session: Session,
        action: str,
        entity_type: str,
        entity_id: int,
        user_id: Optional[int] = None,
        details: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> bool:
        """
        Append an audit log entry (e.g. action="reveal" on a vault entry).

        Returns:
            True if the entry was added, False if an error occurred
        """
        try:
            session.add(AuditLog(
                user_id=user_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                details=details,
                ip_address=ip_address,
                timestamp=datetime.utcnow(),
            ))
            return True

        except Exception as e:
            logger.warning(f"Failed to write audit entry {action} {entity_type}#{entity_id}: {e}")
            return False
