"""
SQLAlchemy Models for Greenpia

Database schema for:
- Users and households (registry, resident e-mails)
- Leader rotation (schedule, rotation logic versions, exemption requests)
- Inquiries, forms/surveys, attendance
- Content (posts, events, rules, FAQ, templates, pending queue)
- Inventory, handover bag, vault, changelog and audit log
"""

from datetime import datetime

from sqlalchemy import (
    Column, String, Integer, DateTime, Boolean, Text, JSON,
    ForeignKey, Enum, Index, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


USER_ROLES = ("public", "member", "editor", "admin")
SCHEDULE_STATUSES = ("draft", "conditional", "confirmed")
EXEMPTION_STATUSES = ("pending", "approved", "rejected")


# ==============================================================================
# USERS & HOUSEHOLDS
# ==============================================================================

class User(Base):
    """
    Portal account

    Role "admin" is also granted automatically to the households serving
    as leader for the current fiscal year (see rotation.role_sync).
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    open_id = Column(String(64), unique=True, nullable=True)
    password_hash = Column(Text, nullable=True)
    name = Column(Text)
    email = Column(String(320), unique=True, nullable=True, index=True)
    login_method = Column(String(64))  # "password" or "oauth"
    household_id = Column(String(50), nullable=True, index=True)

    role = Column(
        Enum(*USER_ROLES, name="user_role"),
        nullable=False,
        default="member"
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    last_signed_in = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class Household(Base):
    """
    Household (dwelling unit) in the association registry

    leader_history_count is maintained by admins whenever a household
    completes a leader term.
    """
    __tablename__ = "households"

    id = Column(Integer, primary_key=True, autoincrement=True)
    household_id = Column(String(50), unique=True, nullable=False, index=True)
    # Example: "101", "203"

    move_in_date = Column(DateTime, nullable=True)
    leader_history_count = Column(Integer, nullable=False, default=0)
    notes = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Household(household_id={self.household_id}, leader_history={self.leader_history_count})>"


class ResidentEmail(Base):
    """Contact e-mail registered for a household (one per household)"""
    __tablename__ = "resident_emails"

    id = Column(Integer, primary_key=True, autoincrement=True)
    household_id = Column(String(50), nullable=False, index=True)
    email = Column(String(320), nullable=False)
    registered_by = Column(Integer, nullable=True)
    registered_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


# ==============================================================================
# LEADER ROTATION
# ==============================================================================

class LeaderSchedule(Base):
    """
    Leader assignment for one fiscal year

    Lifecycle: draft -> conditional -> confirmed
    """
    __tablename__ = "leader_schedule"

    id = Column(Integer, primary_key=True, autoincrement=True)
    year = Column(Integer, nullable=False, index=True)
    primary_household_id = Column(String(50), nullable=False)
    backup_household_id = Column(String(50), nullable=False)

    status = Column(
        Enum(*SCHEDULE_STATUSES, name="schedule_status"),
        nullable=False,
        default="draft"
    )
    reason = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return (
            f"<LeaderSchedule(year={self.year}, primary={self.primary_household_id}, "
            f"backup={self.backup_household_id}, status={self.status})>"
        )


class LeaderRotationLogic(Base):
    """
    Versioned rotation rule set (append-only)

    logic example: {"priority": ["years_since_last", "move_in_date", "household_id"],
                    "excludeConditions": ["A", "B", "C"]}
    """
    __tablename__ = "leader_rotation_logic"

    id = Column(Integer, primary_key=True, autoincrement=True)
    version = Column(Integer, nullable=False, default=1, index=True)
    logic = Column(JSON, nullable=False)
    reason = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ExemptionRequest(Base):
    """Request to be excused from leader duty for one year"""
    __tablename__ = "exemption_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    household_id = Column(String(50), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    version = Column(Integer, nullable=False, default=1)
    reason = Column(Text)

    status = Column(
        Enum(*EXEMPTION_STATUSES, name="exemption_status"),
        nullable=False,
        default="pending"
    )
    approved_by = Column(Integer, nullable=True)
    approved_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_exemption_year_status', 'year', 'status'),
    )


# ==============================================================================
# INQUIRIES
# ==============================================================================

class Inquiry(Base):
    """Question or request sent by a household to the year's leader"""
    __tablename__ = "inquiries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    household_id = Column(String(50), nullable=False, index=True)
    year = Column(Integer, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)

    category = Column(
        Enum("participation", "opinion", "repair", "other", name="inquiry_category"),
        nullable=False
    )
    status = Column(
        Enum("pending", "replied", "closed", name="inquiry_status"),
        nullable=False,
        default="pending",
        index=True
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    replies = relationship(
        "InquiryReply",
        back_populates="inquiry",
        cascade="all, delete-orphan",
        order_by="InquiryReply.created_at",
    )


class InquiryReply(Base):
    """Reply in an inquiry thread"""
    __tablename__ = "inquiry_replies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    inquiry_id = Column(Integer, ForeignKey("inquiries.id", ondelete="CASCADE"), nullable=False, index=True)
    replied_by_household_id = Column(String(50), nullable=False)
    reply_content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    inquiry = relationship("Inquiry", back_populates="replies")


# ==============================================================================
# FORMS / SURVEYS
# ==============================================================================

class Form(Base):
    """
    Survey form

    Lifecycle: draft -> active -> closed
    """
    __tablename__ = "forms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    created_by = Column(Integer, nullable=True)
    due_date = Column(DateTime, nullable=True)

    status = Column(
        Enum("draft", "active", "closed", name="form_status"),
        nullable=False,
        default="draft",
        index=True
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    questions = relationship(
        "FormQuestion",
        back_populates="form",
        cascade="all, delete-orphan",
        order_by="FormQuestion.order_index",
    )
    responses = relationship("FormResponse", back_populates="form", cascade="all, delete-orphan")


class FormQuestion(Base):
    __tablename__ = "form_questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    form_id = Column(Integer, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False, index=True)
    question_text = Column(String(500), nullable=False)
    question_type = Column(
        Enum("single_choice", "multiple_choice", name="question_type"),
        nullable=False,
        default="single_choice"
    )
    required = Column(Boolean, nullable=False, default=True)
    order_index = Column(Integer, nullable=False)

    form = relationship("Form", back_populates="questions")
    choices = relationship(
        "FormChoice",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="FormChoice.order_index",
    )


class FormChoice(Base):
    __tablename__ = "form_choices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_id = Column(Integer, ForeignKey("form_questions.id", ondelete="CASCADE"), nullable=False, index=True)
    choice_text = Column(String(255), nullable=False)
    order_index = Column(Integer, nullable=False)

    question = relationship("FormQuestion", back_populates="choices")


class FormResponse(Base):
    """One submission of a form (household_id is None for anonymous answers)"""
    __tablename__ = "form_responses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    form_id = Column(Integer, ForeignKey("forms.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, nullable=True)
    household_id = Column(String(50), nullable=True, index=True)
    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    form = relationship("Form", back_populates="responses")
    items = relationship("FormResponseItem", back_populates="response", cascade="all, delete-orphan")


class FormResponseItem(Base):
    __tablename__ = "form_response_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    response_id = Column(Integer, ForeignKey("form_responses.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, nullable=False, index=True)
    choice_id = Column(Integer, nullable=True)
    text_answer = Column(Text)

    response = relationship("FormResponse", back_populates="items")


# ==============================================================================
# ATTENDANCE
# ==============================================================================

class AttendanceEvent(Base):
    """Event that asks every household for attendance (e.g. river cleaning)"""
    __tablename__ = "attendance_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    year = Column(Integer, nullable=False, index=True)
    scheduled_date = Column(DateTime, nullable=False)
    deadline = Column(DateTime, nullable=True)
    status = Column(
        Enum("open", "closed", name="attendance_status"),
        nullable=False,
        default="open"
    )
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    responses = relationship("AttendanceResponse", back_populates="event", cascade="all, delete-orphan")


class AttendanceResponse(Base):
    __tablename__ = "attendance_responses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, ForeignKey("attendance_events.id", ondelete="CASCADE"), nullable=False, index=True)
    household_id = Column(String(50), nullable=False)
    response = Column(
        Enum("attend", "absent", "undecided", name="attendance_answer"),
        nullable=False
    )
    respondent_name = Column(String(100))
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    event = relationship("AttendanceEvent", back_populates="responses")

    __table_args__ = (
        UniqueConstraint('event_id', 'household_id', name='uq_attendance_event_household'),
    )


# ==============================================================================
# CONTENT
# ==============================================================================

class Post(Base):
    """Year-log entry"""
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    year = Column(Integer, nullable=False, index=True)
    category = Column(
        Enum("inquiry", "answer", "decision", "pending", "trouble", "improvement", name="post_category"),
        nullable=False
    )
    status = Column(
        Enum("draft", "pending", "published", name="post_status"),
        nullable=False,
        default="draft"
    )
    author_id = Column(Integer, nullable=True)
    is_hypothesis = Column(Boolean, nullable=False, default=False)
    related_links = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    published_at = Column(DateTime, nullable=True)


class Event(Base):
    """Annual calendar event"""
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    date = Column(DateTime, nullable=False)
    category = Column(String(100), nullable=False)
    checklist = Column(JSON, nullable=False, default=list)
    # Example: [{"id": "1", "text": "Book the hall", "completed": false}]
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Rule(Base):
    """Association rule or decision"""
    __tablename__ = "rules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    status = Column(
        Enum("draft", "decided", "pending", "published", name="rule_status"),
        nullable=False,
        default="decided"
    )
    summary = Column(Text, nullable=False)
    details = Column(Text, nullable=False)
    evidence_links = Column(JSON, nullable=False, default=list)
    is_hypothesis = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    versions = relationship(
        "RuleVersion",
        back_populates="rule",
        cascade="all, delete-orphan",
        order_by="RuleVersion.version",
    )


class RuleVersion(Base):
    """Snapshot of a rule taken before every update"""
    __tablename__ = "rule_versions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rule_id = Column(Integer, ForeignKey("rules.id", ondelete="CASCADE"), nullable=False, index=True)
    version = Column(Integer, nullable=False, default=1)
    title = Column(String(255), nullable=False)
    summary = Column(Text, nullable=False)
    details = Column(Text, nullable=False)
    reason = Column(Text)
    changed_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    rule = relationship("Rule", back_populates="versions")


class FAQ(Base):
    __tablename__ = "faq"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question = Column(String(500), nullable=False)
    answer = Column(Text, nullable=False)
    related_rule_ids = Column(JSON, nullable=False, default=list)
    related_post_ids = Column(JSON, nullable=False, default=list)
    is_hypothesis = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Template(Base):
    """Reusable message template (notices, letters)"""
    __tablename__ = "templates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    category = Column(String(100), nullable=False, index=True)
    tags = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class PendingQueueItem(Base):
    """Item waiting for a reply from someone outside the association"""
    __tablename__ = "pending_queue"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    to_whom = Column(String(100), nullable=False)
    status = Column(
        Enum("pending", "resolved", "transferred", name="pending_status"),
        nullable=False,
        default="pending"
    )
    priority = Column(
        Enum("low", "medium", "high", name="pending_priority"),
        nullable=False,
        default="medium"
    )
    transferred_to_next_year = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    resolved_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class MemberTopSummary(Base):
    """Weekly digest shown on the member top page"""
    __tablename__ = "member_top_summary"

    id = Column(Integer, primary_key=True, autoincrement=True)
    year = Column(Integer, nullable=False, index=True)
    week_start_date = Column(DateTime, nullable=False)
    this_week_tasks = Column(JSON, nullable=False, default=list)
    top_priorities = Column(JSON, nullable=False, default=list)
    unresolved_issues = Column(JSON, nullable=False, default=list)
    pending_replies = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


# ==============================================================================
# INVENTORY & HANDOVER
# ==============================================================================

class InventoryItem(Base):
    """Association equipment ledger"""
    __tablename__ = "inventory"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    photo = Column(String(500))
    qty = Column(Integer, nullable=False, default=0)
    location = Column(String(255), nullable=False)
    condition = Column(String(100))
    last_checked_at = Column(DateTime, nullable=True)
    notes = Column(Text)
    tags = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class HandoverBagItem(Base):
    """Item in the bag handed from one year's leader to the next"""
    __tablename__ = "handover_bag_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    location = Column(String(255), nullable=False)
    is_checked = Column(Boolean, nullable=False, default=False)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


# ==============================================================================
# VAULT, CHANGELOG, AUDIT
# ==============================================================================

class VaultEntry(Base):
    """
    Confidential value (door codes, contact numbers)

    Only masked_value leaves the API unless an admin reveals the entry.
    """
    __tablename__ = "vault_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category = Column(String(100), nullable=False, index=True)
    key = Column(String(255), nullable=False)
    masked_value = Column(String(500), nullable=False)
    actual_value = Column(Text, nullable=False)
    classification = Column(
        Enum("public", "internal", "confidential", name="classification"),
        nullable=False,
        default="confidential"
    )
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class ChangeLog(Base):
    """Human-readable "what changed" feed"""
    __tablename__ = "changelog"

    id = Column(Integer, primary_key=True, autoincrement=True)
    summary = Column(String(255), nullable=False)
    date = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    author_id = Column(Integer, nullable=True)
    author_role = Column(String(20), nullable=True)
    related_entity_type = Column(String(100), nullable=False)
    related_entity_id = Column(Integer, nullable=True)


class AuditLog(Base):
    """Access log for confidential data"""
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=True)
    action = Column(String(50), nullable=False)
    entity_type = Column(String(100), nullable=False, index=True)
    entity_id = Column(Integer, nullable=False)
    details = Column(Text)
    ip_address = Column(String(45))
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
