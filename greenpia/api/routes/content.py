"""
Content API routes

Rules (with version history), FAQ, templates, year-log posts, calendar
events, pending-reply queue, member top summary and global search.

Reads of rules and FAQ are public; everything else needs a login.
Writes need the editor (or admin) role.
"""
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from greenpia.api.auth import get_current_user, require_editor
from greenpia.api.schemas import (
    EventCreate, EventInfo, EventUpdate, FAQCreate, FAQInfo, FAQUpdate,
    MemberTopSummaryInfo, PendingItemCreate, PendingItemInfo, PendingItemUpdate,
    PostCreate, PostInfo, PostUpdate, RuleCreate, RuleInfo, RuleUpdate, RuleVersionInfo,
    SearchHit, SearchResponse, SuccessResponse, TemplateCreate, TemplateInfo, TemplateUpdate,
)
from greenpia.database import (
    FAQ, ChangeRecorder, Event, InventoryItem, MemberTopSummary, PendingQueueItem,
    Post, Rule, RuleVersion, Template, User, get_db
)
from greenpia.utils import get_logger

logger = get_logger(__name__)

router = APIRouter()

SEARCH_LIMIT = 5
PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}


def _get_or_404(session: Session, model, item_id: int, label: str):
    item = session.get(model, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"{label} {item_id} not found")
    return item


def _apply(item, changes: dict) -> None:
    for field, value in changes.items():
        setattr(item, field, value)


def _record(session: Session, user: User, summary: str, entity_type: str, entity_id: Optional[int]) -> None:
    ChangeRecorder.record(session, summary, entity_type, entity_id, author_id=user.id, author_role=user.role)


# =============================================================================
# RULES
# =============================================================================

@router.get("/rules", response_model=List[RuleInfo])
def list_rules(session: Session = Depends(get_db)):
    rules = session.query(Rule).order_by(Rule.updated_at.desc(), Rule.id.desc()).all()
    return [RuleInfo.model_validate(r) for r in rules]


@router.get("/rules/{rule_id}", response_model=RuleInfo)
def get_rule(rule_id: int, session: Session = Depends(get_db)):
    return RuleInfo.model_validate(_get_or_404(session, Rule, rule_id, "Rule"))


@router.get("/rules/{rule_id}/versions", response_model=List[RuleVersionInfo])
def list_rule_versions(rule_id: int, session: Session = Depends(get_db)):
    rule = _get_or_404(session, Rule, rule_id, "Rule")
    return [RuleVersionInfo.model_validate(v) for v in rule.versions]


@router.post("/rules", response_model=RuleInfo, status_code=201)
def create_rule(
    payload: RuleCreate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    rule = Rule(**payload.model_dump())
    session.add(rule)
    session.flush()

    _record(session, editor, f"ルール「{rule.title}」を作成", "rules", rule.id)
    return RuleInfo.model_validate(rule)


@router.patch("/rules/{rule_id}", response_model=RuleInfo)
def update_rule(
    rule_id: int,
    payload: RuleUpdate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    """Snapshot the current text into rule_versions, then apply the changes."""
    rule = _get_or_404(session, Rule, rule_id, "Rule")
    changes = payload.model_dump(exclude_unset=True)
    reason = changes.pop('reason', None)

    version_count = (
        session.query(func.count(RuleVersion.id)).filter(RuleVersion.rule_id == rule_id).scalar()
    ) or 0
    session.add(RuleVersion(
        rule_id=rule.id,
        version=version_count + 1,
        title=rule.title,
        summary=rule.summary,
        details=rule.details,
        reason=reason,
        changed_by=editor.id,
    ))

    _apply(rule, changes)
    session.flush()

    _record(session, editor, f"ルール「{rule.title}」を更新", "rules", rule.id)
    return RuleInfo.model_validate(rule)


@router.delete("/rules/{rule_id}", response_model=SuccessResponse)
def delete_rule(
    rule_id: int,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    session.delete(_get_or_404(session, Rule, rule_id, "Rule"))
    _record(session, editor, f"ルール (ID: {rule_id}) を削除", "rules", rule_id)
    return SuccessResponse()


# =============================================================================
# FAQ
# =============================================================================

@router.get("/faq", response_model=List[FAQInfo])
def list_faq(session: Session = Depends(get_db)):
    return [FAQInfo.model_validate(f) for f in session.query(FAQ).order_by(FAQ.id).all()]


@router.post("/faq", response_model=FAQInfo, status_code=201)
def create_faq(
    payload: FAQCreate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    faq = FAQ(**payload.model_dump())
    session.add(faq)
    session.flush()

    _record(session, editor, f"FAQ「{faq.question[:50]}」を作成", "faq", faq.id)
    return FAQInfo.model_validate(faq)


@router.patch("/faq/{faq_id}", response_model=FAQInfo)
def update_faq(
    faq_id: int,
    payload: FAQUpdate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    faq = _get_or_404(session, FAQ, faq_id, "FAQ")
    _apply(faq, payload.model_dump(exclude_unset=True))
    session.flush()

    _record(session, editor, f"FAQ (ID: {faq_id}) を更新", "faq", faq_id)
    return FAQInfo.model_validate(faq)


@router.delete("/faq/{faq_id}", response_model=SuccessResponse)
def delete_faq(
    faq_id: int,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    session.delete(_get_or_404(session, FAQ, faq_id, "FAQ"))
    _record(session, editor, f"FAQ (ID: {faq_id}) を削除", "faq", faq_id)
    return SuccessResponse()


# =============================================================================
# TEMPLATES
# =============================================================================

@router.get("/templates", response_model=List[TemplateInfo])
def list_templates(
    category: Optional[str] = None,
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    query = session.query(Template)
    if category:
        query = query.filter(Template.category == category)
    return [TemplateInfo.model_validate(t) for t in query.order_by(Template.category, Template.id).all()]


@router.post("/templates", response_model=TemplateInfo, status_code=201)
def create_template(
    payload: TemplateCreate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    template = Template(**payload.model_dump())
    session.add(template)
    session.flush()

    _record(session, editor, f"テンプレート「{template.title}」を作成", "templates", template.id)
    return TemplateInfo.model_validate(template)


@router.patch("/templates/{template_id}", response_model=TemplateInfo)
def update_template(
    template_id: int,
    payload: TemplateUpdate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    template = _get_or_404(session, Template, template_id, "Template")
    _apply(template, payload.model_dump(exclude_unset=True))
    session.flush()

    _record(session, editor, f"テンプレート (ID: {template_id}) を更新", "templates", template_id)
    return TemplateInfo.model_validate(template)


@router.delete("/templates/{template_id}", response_model=SuccessResponse)
def delete_template(
    template_id: int,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    session.delete(_get_or_404(session, Template, template_id, "Template"))
    _record(session, editor, f"テンプレート (ID: {template_id}) を削除", "templates", template_id)
    return SuccessResponse()


# =============================================================================
# POSTS (YEAR LOG)
# =============================================================================

@router.get("/posts", response_model=List[PostInfo])
def list_posts(
    year: Optional[int] = None,
    category: Optional[str] = None,
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    query = session.query(Post)
    if year is not None:
        query = query.filter(Post.year == year)
    if category:
        query = query.filter(Post.category == category)
    posts = query.order_by(Post.created_at.desc(), Post.id.desc()).all()
    return [PostInfo.model_validate(p) for p in posts]


@router.post("/posts", response_model=PostInfo, status_code=201)
def create_post(
    payload: PostCreate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    """Posts are published immediately."""
    post = Post(
        **payload.model_dump(),
        status="published",
        author_id=editor.id,
        published_at=datetime.utcnow(),
    )
    session.add(post)
    session.flush()

    _record(session, editor, f"投稿「{post.title}」を作成", "posts", post.id)
    return PostInfo.model_validate(post)


@router.patch("/posts/{post_id}", response_model=PostInfo)
def update_post(
    post_id: int,
    payload: PostUpdate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    post = _get_or_404(session, Post, post_id, "Post")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get('status') == "published" and post.published_at is None:
        post.published_at = datetime.utcnow()
    _apply(post, changes)
    session.flush()

    _record(session, editor, f"投稿「{post.title}」を更新", "posts", post_id)
    return PostInfo.model_validate(post)


@router.delete("/posts/{post_id}", response_model=SuccessResponse)
def delete_post(
    post_id: int,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    session.delete(_get_or_404(session, Post, post_id, "Post"))
    _record(session, editor, f"投稿 (ID: {post_id}) を削除", "posts", post_id)
    return SuccessResponse()


# =============================================================================
# CALENDAR EVENTS
# =============================================================================

@router.get("/events", response_model=List[EventInfo])
def list_events(
    year: Optional[int] = None,
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    query = session.query(Event)
    if year is not None:
        query = query.filter(Event.date >= datetime(year, 1, 1)).filter(Event.date < datetime(year + 1, 1, 1))
    return [EventInfo.model_validate(e) for e in query.order_by(Event.date).all()]


@router.post("/events", response_model=EventInfo, status_code=201)
def create_event(
    payload: EventCreate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    event = Event(**payload.model_dump())
    session.add(event)
    session.flush()

    _record(session, editor, f"イベント「{event.title}」を作成", "events", event.id)
    return EventInfo.model_validate(event)


@router.patch("/events/{event_id}", response_model=EventInfo)
def update_event(
    event_id: int,
    payload: EventUpdate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    event = _get_or_404(session, Event, event_id, "Event")
    _apply(event, payload.model_dump(exclude_unset=True))
    session.flush()

    _record(session, editor, f"イベント「{event.title}」を更新", "events", event_id)
    return EventInfo.model_validate(event)


@router.delete("/events/{event_id}", response_model=SuccessResponse)
def delete_event(
    event_id: int,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    session.delete(_get_or_404(session, Event, event_id, "Event"))
    _record(session, editor, f"イベント (ID: {event_id}) を削除", "events", event_id)
    return SuccessResponse()


# =============================================================================
# PENDING QUEUE
# =============================================================================

@router.get("/pending-queue", response_model=List[PendingItemInfo])
def list_pending(
    status: Optional[Literal["pending", "resolved", "transferred"]] = "pending",
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Highest priority first, then oldest first."""
    query = session.query(PendingQueueItem)
    if status:
        query = query.filter(PendingQueueItem.status == status)
    items = sorted(query.all(), key=lambda i: (PRIORITY_RANK[i.priority], i.created_at, i.id))
    return [PendingItemInfo.model_validate(i) for i in items]


@router.post("/pending-queue", response_model=PendingItemInfo, status_code=201)
def create_pending(
    payload: PendingItemCreate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    item = PendingQueueItem(**payload.model_dump(), status="pending")
    session.add(item)
    session.flush()

    _record(session, editor, f"返信待ち「{item.title}」を追加", "pendingQueue", item.id)
    return PendingItemInfo.model_validate(item)


@router.patch("/pending-queue/{item_id}", response_model=PendingItemInfo)
def update_pending(
    item_id: int,
    payload: PendingItemUpdate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    item = _get_or_404(session, PendingQueueItem, item_id, "Pending item")
    changes = payload.model_dump(exclude_unset=True)

    if changes.get('status') == "resolved" and item.status != "resolved":
        item.resolved_at = datetime.utcnow()
    elif changes.get('status') in ("pending", "transferred"):
        item.resolved_at = None
    _apply(item, changes)
    session.flush()

    _record(session, editor, f"返信待ち「{item.title}」を更新", "pendingQueue", item_id)
    return PendingItemInfo.model_validate(item)


@router.delete("/pending-queue/{item_id}", response_model=SuccessResponse)
def delete_pending(
    item_id: int,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
):
    session.delete(_get_or_404(session, PendingQueueItem, item_id, "Pending item"))
    _record(session, editor, f"返信待ち (ID: {item_id}) を削除", "pendingQueue", item_id)
    return SuccessResponse()


# =============================================================================
# MEMBER TOP & SEARCH
# =============================================================================

@router.get("/member-top/summary", response_model=Optional[MemberTopSummaryInfo])
def member_top_summary(
    year: int,
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    summary = (
        session.query(MemberTopSummary)
        .filter(MemberTopSummary.year == year)
        .order_by(MemberTopSummary.week_start_date.desc())
        .first()
    )
    return MemberTopSummaryInfo.model_validate(summary) if summary else None


def _snippet(text: Optional[str], length: int = 80) -> str:
    text = (text or "").replace("\n", " ")
    return text if len(text) <= length else text[:length] + "…"


@router.get("/search", response_model=SearchResponse)
def search(
    q: str = Query(min_length=1),
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Case-insensitive substring match, up to five hits per content type."""
    pattern = f"%{q.strip()}%"

    posts = (
        session.query(Post)
        .filter(or_(Post.title.ilike(pattern), Post.body.ilike(pattern)))
        .order_by(Post.id.desc()).limit(SEARCH_LIMIT).all()
    )
    inventory = (
        session.query(InventoryItem)
        .filter(or_(InventoryItem.name.ilike(pattern), InventoryItem.location.ilike(pattern),
                    InventoryItem.notes.ilike(pattern)))
        .order_by(InventoryItem.id).limit(SEARCH_LIMIT).all()
    )
    rules = (
        session.query(Rule)
        .filter(or_(Rule.title.ilike(pattern), Rule.summary.ilike(pattern), Rule.details.ilike(pattern)))
        .order_by(Rule.id).limit(SEARCH_LIMIT).all()
    )
    faq = (
        session.query(FAQ)
        .filter(or_(FAQ.question.ilike(pattern), FAQ.answer.ilike(pattern)))
        .order_by(FAQ.id).limit(SEARCH_LIMIT).all()
    )
    templates = (
        session.query(Template)
        .filter(or_(Template.title.ilike(pattern), Template.body.ilike(pattern)))
        .order_by(Template.id).limit(SEARCH_LIMIT).all()
    )

    return SearchResponse(
        query=q,
        posts=[SearchHit(id=p.id, title=p.title, snippet=_snippet(p.body)) for p in posts],
        inventory=[SearchHit(id=i.id, title=i.name, snippet=_snippet(i.location)) for i in inventory],
        rules=[SearchHit(id=r.id, title=r.title, snippet=_snippet(r.summary)) for r in rules],
        faq=[SearchHit(id=f.id, title=f.question, snippet=_snippet(f.answer)) for f in faq],
        templates=[SearchHit(id=t.id, title=t.title, snippet=_snippet(t.body)) for t in templates],
    )
