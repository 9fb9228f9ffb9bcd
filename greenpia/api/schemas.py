"""
Pydantic schemas for API request/response models
"""
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, EmailStr, Field, model_validator


class PartialUpdate(BaseModel):
    """
    PATCH body: omitted fields stay unchanged.

    An explicit null is only accepted for fields listed in `nullable_fields`
    (columns that allow NULL).
    """
    nullable_fields: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def _reject_nulls(self):
        for name in self.model_fields_set:
            if getattr(self, name) is None and name not in self.nullable_fields:
                raise ValueError(f"{name} cannot be null")
        return self


Role = Literal["public", "member", "editor", "admin"]


# =============================================================================
# AUTH & USERS
# =============================================================================

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserInfo(BaseModel):
    """Authenticated user as seen by the client"""
    id: int
    name: Optional[str] = None
    email: Optional[str] = None
    role: str
    household_id: Optional[str] = None
    last_signed_in: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=8)
    role: Role = "member"
    household_id: Optional[str] = None


class UserRoleUpdate(BaseModel):
    role: Role


# =============================================================================
# HOUSEHOLDS
# =============================================================================

class HouseholdInfo(BaseModel):
    id: int
    household_id: str
    move_in_date: Optional[datetime] = None
    leader_history_count: int = 0
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class HouseholdCreate(BaseModel):
    household_id: str = Field(min_length=1, max_length=50)
    move_in_date: Optional[datetime] = None
    leader_history_count: int = Field(default=0, ge=0)
    notes: Optional[str] = None


class HouseholdUpdate(PartialUpdate):
    nullable_fields = ("move_in_date", "notes")

    move_in_date: Optional[datetime] = None
    leader_history_count: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


class ResidentEmailInfo(BaseModel):
    id: int
    household_id: str
    email: str
    registered_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ResidentEmailUpsert(BaseModel):
    household_id: str = Field(min_length=1)
    email: EmailStr


# =============================================================================
# LEADER ROTATION
# =============================================================================

class YearRequest(BaseModel):
    year: int = Field(ge=2000, le=2100)


class ScheduleInfo(BaseModel):
    """Leader schedule entry"""
    id: int
    year: int
    primary_household_id: str
    backup_household_id: str
    status: str  # draft, conditional, confirmed
    reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CalculationResponse(BaseModel):
    success: bool = True
    primary: str
    backup: str


class RecalculationResponse(BaseModel):
    success: bool = True
    year: int
    candidate_count: int
    schedule: Optional[ScheduleInfo] = None


class HouseholdReasons(BaseModel):
    """Household with its exclusion codes (A: recent move-in, B: past leader, C: exempted)"""
    household_id: str
    move_in_date: Optional[datetime] = None
    leader_history_count: int
    reasons: List[str]
    is_candidate: bool

    class Config:
        from_attributes = True


class RotationReasonsResponse(BaseModel):
    year: int
    households: List[HouseholdReasons]
    schedule: Optional[ScheduleInfo] = None


class ScheduleConfirmRequest(BaseModel):
    status: Literal["conditional", "confirmed"]


class RotationLogicInfo(BaseModel):
    id: int
    version: int
    logic: Dict[str, Any]
    reason: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class RotationLogicUpdate(BaseModel):
    priority: List[str]
    exclude_conditions: List[str]
    reason: str


# =============================================================================
# EXEMPTIONS
# =============================================================================

class ExemptionCreate(BaseModel):
    household_id: str = Field(min_length=1)
    year: int
    reason: str = Field(min_length=1)


class ExemptionInfo(BaseModel):
    id: int
    household_id: str
    year: int
    version: int
    reason: Optional[str] = None
    status: str  # pending, approved, rejected
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# INQUIRIES
# =============================================================================

InquiryCategory = Literal["participation", "opinion", "repair", "other"]


class InquiryCreate(BaseModel):
    household_id: str = Field(min_length=1)
    year: int
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    category: InquiryCategory


class InquiryReplyCreate(BaseModel):
    replied_by_household_id: str = Field(min_length=1)
    reply_content: str = Field(min_length=1)


class InquiryReplyInfo(BaseModel):
    id: int
    inquiry_id: int
    replied_by_household_id: str
    reply_content: str
    created_at: datetime

    class Config:
        from_attributes = True


class InquiryInfo(BaseModel):
    id: int
    household_id: str
    year: int
    title: str
    content: str
    category: str
    status: str  # pending, replied, closed
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InquiryDetail(InquiryInfo):
    replies: List[InquiryReplyInfo] = []


# =============================================================================
# FORMS
# =============================================================================

class QuestionCreate(BaseModel):
    text: str = Field(min_length=1)
    type: Literal["single_choice", "multiple_choice"] = "single_choice"
    choices: List[str]


class FormCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    questions: List[QuestionCreate] = []


class FormUpdate(PartialUpdate):
    nullable_fields = ("description", "due_date")

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    status: Optional[Literal["draft", "active", "closed"]] = None


class ChoiceInfo(BaseModel):
    id: int
    choice_text: str
    order_index: int

    class Config:
        from_attributes = True


class QuestionInfo(BaseModel):
    id: int
    question_text: str
    question_type: str
    required: bool
    order_index: int
    choices: List[ChoiceInfo] = []

    class Config:
        from_attributes = True


class FormInfo(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class FormDetail(FormInfo):
    questions: List[QuestionInfo] = []


class AnswerIn(BaseModel):
    question_id: int
    choice_id: Optional[int] = None
    text_answer: Optional[str] = None


class FormSubmission(BaseModel):
    household_id: Optional[str] = None
    answers: List[AnswerIn]


class FormSubmissionResponse(BaseModel):
    success: bool = True
    response_id: int


class ChoiceStats(BaseModel):
    id: int
    text: str
    count: int


class QuestionStats(BaseModel):
    id: int
    text: str
    type: str
    choices: List[ChoiceStats]


class RespondentInfo(BaseModel):
    id: int
    household_id: Optional[str] = None
    submitted_at: datetime
    answer_count: int


class FormStats(BaseModel):
    form: FormInfo
    questions: List[QuestionStats]
    respondents: List[RespondentInfo]
    total_households: int
    responded_count: int
    unanswered_count: int
    unanswered_households: List[str]


class ReminderResult(BaseModel):
    success: bool = True
    forms_processed: int
    notifications_sent: int


# =============================================================================
# ATTENDANCE
# =============================================================================

AttendanceAnswer = Literal["attend", "absent", "undecided"]


class AttendanceEventCreate(BaseModel):
    title: str = Field(min_length=1)
    year: int
    scheduled_date: datetime
    deadline: Optional[datetime] = None


class AttendanceEventInfo(BaseModel):
    id: int
    title: str
    year: int
    scheduled_date: datetime
    deadline: Optional[datetime] = None
    status: str  # open, closed
    created_at: datetime

    class Config:
        from_attributes = True


class AttendanceSubmit(BaseModel):
    household_id: str = Field(min_length=1)
    response: AttendanceAnswer
    respondent_name: Optional[str] = None


class AttendanceResponseInfo(BaseModel):
    id: int
    event_id: int
    household_id: str
    response: str
    respondent_name: Optional[str] = None
    updated_at: datetime

    class Config:
        from_attributes = True


class AttendanceSummary(BaseModel):
    event: AttendanceEventInfo
    counts: Dict[str, int]
    responses: List[AttendanceResponseInfo]
    not_responded: List[str]


# =============================================================================
# CONTENT
# =============================================================================

PostCategory = Literal["inquiry", "answer", "decision", "pending", "trouble", "improvement"]


class PostCreate(BaseModel):
    title: str = Field(min_length=1)
    body: str
    tags: List[str] = []
    category: PostCategory
    year: int
    is_hypothesis: bool = False
    related_links: List[str] = []


class PostUpdate(PartialUpdate):
    title: Optional[str] = None
    body: Optional[str] = None
    tags: Optional[List[str]] = None
    category: Optional[PostCategory] = None
    status: Optional[Literal["draft", "pending", "published"]] = None
    is_hypothesis: Optional[bool] = None
    related_links: Optional[List[str]] = None


class PostInfo(BaseModel):
    id: int
    title: str
    body: str
    tags: List[str] = []
    year: int
    category: str
    status: str
    is_hypothesis: bool
    related_links: List[str] = []
    created_at: datetime
    updated_at: datetime
    published_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ChecklistItem(BaseModel):
    id: str
    text: str
    completed: bool = False


class EventCreate(BaseModel):
    title: str = Field(min_length=1)
    date: datetime
    category: str
    checklist: List[ChecklistItem] = []
    notes: Optional[str] = None


class EventUpdate(PartialUpdate):
    nullable_fields = ("notes",)

    title: Optional[str] = None
    date: Optional[datetime] = None
    category: Optional[str] = None
    checklist: Optional[List[ChecklistItem]] = None
    notes: Optional[str] = None


class EventInfo(BaseModel):
    id: int
    title: str
    date: datetime
    category: str
    checklist: List[ChecklistItem] = []
    notes: Optional[str] = None

    class Config:
        from_attributes = True


RuleStatus = Literal["draft", "decided", "pending", "published"]


class RuleCreate(BaseModel):
    title: str = Field(min_length=1)
    summary: str
    details: str
    status: RuleStatus = "decided"
    evidence_links: List[str] = []
    is_hypothesis: bool = False


class RuleUpdate(PartialUpdate):
    nullable_fields = ("reason",)

    title: Optional[str] = None
    summary: Optional[str] = None
    details: Optional[str] = None
    status: Optional[RuleStatus] = None
    evidence_links: Optional[List[str]] = None
    is_hypothesis: Optional[bool] = None
    reason: Optional[str] = None


class RuleInfo(BaseModel):
    id: int
    title: str
    status: str
    summary: str
    details: str
    evidence_links: List[str] = []
    is_hypothesis: bool
    updated_at: datetime

    class Config:
        from_attributes = True


class RuleVersionInfo(BaseModel):
    id: int
    rule_id: int
    version: int
    title: str
    summary: str
    details: str
    reason: Optional[str] = None
    changed_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class FAQCreate(BaseModel):
    question: str = Field(min_length=1)
    answer: str
    related_rule_ids: List[int] = []
    related_post_ids: List[int] = []
    is_hypothesis: bool = False


class FAQUpdate(PartialUpdate):
    question: Optional[str] = None
    answer: Optional[str] = None
    related_rule_ids: Optional[List[int]] = None
    related_post_ids: Optional[List[int]] = None
    is_hypothesis: Optional[bool] = None


class FAQInfo(BaseModel):
    id: int
    question: str
    answer: str
    related_rule_ids: List[int] = []
    related_post_ids: List[int] = []
    is_hypothesis: bool
    updated_at: datetime

    class Config:
        from_attributes = True


class TemplateCreate(BaseModel):
    title: str = Field(min_length=1)
    body: str
    category: str
    tags: List[str] = []


class TemplateUpdate(PartialUpdate):
    title: Optional[str] = None
    body: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None


class TemplateInfo(BaseModel):
    id: int
    title: str
    body: str
    category: str
    tags: List[str] = []
    updated_at: datetime

    class Config:
        from_attributes = True


PendingPriority = Literal["low", "medium", "high"]


class PendingItemCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str
    to_whom: str
    priority: PendingPriority = "medium"


class PendingItemUpdate(PartialUpdate):
    title: Optional[str] = None
    description: Optional[str] = None
    to_whom: Optional[str] = None
    priority: Optional[PendingPriority] = None
    status: Optional[Literal["pending", "resolved", "transferred"]] = None
    transferred_to_next_year: Optional[bool] = None


class PendingItemInfo(BaseModel):
    id: int
    title: str
    description: str
    to_whom: str
    status: str
    priority: str
    transferred_to_next_year: bool
    created_at: datetime
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MemberTopSummaryInfo(BaseModel):
    id: int
    year: int
    week_start_date: datetime
    this_week_tasks: List[Any] = []
    top_priorities: List[Any] = []
    unresolved_issues: List[Any] = []
    pending_replies: List[Any] = []
    updated_at: datetime

    class Config:
        from_attributes = True


class SearchHit(BaseModel):
    id: int
    title: str
    snippet: str


class SearchResponse(BaseModel):
    query: str
    posts: List[SearchHit] = []
    inventory: List[SearchHit] = []
    rules: List[SearchHit] = []
    faq: List[SearchHit] = []
    templates: List[SearchHit] = []


# =============================================================================
# INVENTORY & HANDOVER
# =============================================================================

class InventoryCreate(BaseModel):
    name: str = Field(min_length=1)
    photo: Optional[str] = None
    qty: int = Field(default=0, ge=0)
    location: str
    condition: Optional[str] = None
    last_checked_at: Optional[datetime] = None
    notes: Optional[str] = None
    tags: List[str] = []


class InventoryUpdate(PartialUpdate):
    nullable_fields = ("photo", "condition", "last_checked_at", "notes")

    name: Optional[str] = None
    photo: Optional[str] = None
    qty: Optional[int] = Field(default=None, ge=0)
    location: Optional[str] = None
    condition: Optional[str] = None
    last_checked_at: Optional[datetime] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None


class InventoryInfo(BaseModel):
    id: int
    name: str
    photo: Optional[str] = None
    qty: int
    location: str
    condition: Optional[str] = None
    last_checked_at: Optional[datetime] = None
    notes: Optional[str] = None
    tags: List[str] = []
    updated_at: datetime

    class Config:
        from_attributes = True


class HandoverItemCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    location: str
    notes: Optional[str] = None


class HandoverItemUpdate(PartialUpdate):
    nullable_fields = ("description", "notes")

    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    is_checked: Optional[bool] = None
    notes: Optional[str] = None


class HandoverItemInfo(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    location: str
    is_checked: bool
    notes: Optional[str] = None
    updated_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# VAULT, CHANGELOG, AUDIT
# =============================================================================

Classification = Literal["public", "internal", "confidential"]


class VaultEntryCreate(BaseModel):
    category: str = Field(min_length=1)
    key: str = Field(min_length=1)
    masked_value: str = Field(min_length=1)
    actual_value: str = Field(min_length=1)
    classification: Classification = "confidential"


class VaultEntryUpdate(PartialUpdate):
    category: Optional[str] = None
    key: Optional[str] = None
    masked_value: Optional[str] = None
    actual_value: Optional[str] = None
    classification: Optional[Classification] = None


class VaultEntryInfo(BaseModel):
    """Vault entry without its secret value"""
    id: int
    category: str
    key: str
    masked_value: str
    classification: str
    updated_at: datetime

    class Config:
        from_attributes = True


class VaultReveal(BaseModel):
    id: int
    key: str
    actual_value: str


class ChangeLogInfo(BaseModel):
    id: int
    summary: str
    date: datetime
    author_id: Optional[int] = None
    author_role: Optional[str] = None
    related_entity_type: str
    related_entity_id: Optional[int] = None

    class Config:
        from_attributes = True


class AuditLogInfo(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    entity_type: str
    entity_id: int
    details: Optional[str] = None
    ip_address: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
