"""
Database module for Greenpia

Provides:
- SQLAlchemy models
- Database connection management
- Session management
- Changelog / audit recording
"""

from .models import (
    Base, User, Household, ResidentEmail, LeaderSchedule, LeaderRotationLogic,
    ExemptionRequest, Inquiry, InquiryReply, Form, FormQuestion, FormChoice,
    FormResponse, FormResponseItem, AttendanceEvent, AttendanceResponse,
    Post, Event, Rule, RuleVersion, FAQ, Template, PendingQueueItem,
    MemberTopSummary, InventoryItem, HandoverBagItem, VaultEntry, ChangeLog, AuditLog,
)
from .connection import (
    DataStoreUnavailable, get_engine, get_session, get_session_factory, get_db, init_db, reset_engine
)
from .changelog import ChangeRecorder

__all__ = [
    "Base",
    "User",
    "Household",
    "ResidentEmail",
    "LeaderSchedule",
    "LeaderRotationLogic",
    "ExemptionRequest",
    "Inquiry",
    "InquiryReply",
    "Form",
    "FormQuestion",
    "FormChoice",
    "FormResponse",
    "FormResponseItem",
    "AttendanceEvent",
    "AttendanceResponse",
    "Post",
    "Event",
    "Rule",
    "RuleVersion",
    "FAQ",
    "Template",
    "PendingQueueItem",
    "MemberTopSummary",
    "InventoryItem",
    "HandoverBagItem",
    "VaultEntry",
    "ChangeLog",
    "AuditLog",
    "DataStoreUnavailable",
    "get_engine",
    "get_session",
    "get_session_factory",
    "get_db",
    "init_db",
    "reset_engine",
    "ChangeRecorder",
]
