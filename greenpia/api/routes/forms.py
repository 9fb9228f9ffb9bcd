"""
Forms API routes

GET /api/forms - List forms
GET /api/forms/active - Active forms with questions and choices
GET /api/forms/{id} - Form with questions and choices
POST /api/forms - Create a draft form (editor)
PATCH /api/forms/{id} - Update title / description / due date / status (editor)
DELETE /api/forms/{id} - Delete a form and its responses (editor)
POST /api/forms/{id}/responses - Submit answers (anonymous allowed)
GET /api/forms/{id}/stats - Answer statistics (editor)
POST /api/forms/reminders - Remind unanswered households of forms due soon (admin)
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from greenpia.api.auth import get_current_user, get_optional_user, require_admin, require_editor
from greenpia.api.schemas import (
    FormCreate, FormDetail, FormInfo, FormStats, FormSubmission, FormSubmissionResponse,
    FormUpdate, ReminderResult, SuccessResponse,
)
from greenpia.config import load_config
from greenpia.database import Form, User, get_db
from greenpia.forms import FormService
from greenpia.notifications import Notifier, get_notifier
from greenpia.utils import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_form_service(notifier: Notifier = Depends(get_notifier)) -> FormService:
    hours = load_config().get('forms.reminder_window_hours', 24)
    return FormService(notifier, reminder_window_hours=hours)


@router.get("/forms", response_model=List[FormInfo])
def list_forms(
    session: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    forms = session.query(Form).order_by(Form.created_at.desc(), Form.id.desc()).all()
    return [FormInfo.model_validate(f) for f in forms]


@router.get("/forms/active", response_model=List[FormDetail])
def active_forms(session: Session = Depends(get_db)):
    return [FormDetail.model_validate(f) for f in FormService.active_forms(session)]


@router.post("/forms/reminders", response_model=ReminderResult)
def send_form_reminders(
    session: Session = Depends(get_db),
    admin: User = Depends(require_admin),
    service: FormService = Depends(get_form_service),
):
    result = service.send_reminders(session)
    return ReminderResult(**result)


@router.get("/forms/{form_id}", response_model=FormDetail)
def get_form(form_id: int, session: Session = Depends(get_db)):
    return FormDetail.model_validate(FormService.get_form(session, form_id))


@router.post("/forms", response_model=FormDetail, status_code=201)
def create_form(
    payload: FormCreate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
    service: FormService = Depends(get_form_service),
):
    form = service.create_form(
        session,
        title=payload.title,
        description=payload.description,
        due_date=payload.due_date,
        questions=[q.model_dump() for q in payload.questions],
        created_by=editor.id,
    )
    return FormDetail.model_validate(form)


@router.patch("/forms/{form_id}", response_model=FormInfo)
def update_form(
    form_id: int,
    payload: FormUpdate,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
    service: FormService = Depends(get_form_service),
):
    form = service.update_form(session, form_id, payload.model_dump(exclude_unset=True), author_id=editor.id)
    return FormInfo.model_validate(form)


@router.delete("/forms/{form_id}", response_model=SuccessResponse)
def delete_form(
    form_id: int,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
    service: FormService = Depends(get_form_service),
):
    service.delete_form(session, form_id, author_id=editor.id)
    return SuccessResponse()


@router.post("/forms/{form_id}/responses", response_model=FormSubmissionResponse, status_code=201)
def submit_form_response(
    form_id: int,
    payload: FormSubmission,
    session: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
    service: FormService = Depends(get_form_service),
):
    household_id = payload.household_id or (user.household_id if user else None)
    response = service.submit_response(
        session,
        form_id,
        answers=[a.model_dump() for a in payload.answers],
        household_id=household_id,
        user_id=user.id if user else None,
    )
    return FormSubmissionResponse(response_id=response.id)


@router.get("/forms/{form_id}/stats", response_model=FormStats)
def form_stats(
    form_id: int,
    session: Session = Depends(get_db),
    editor: User = Depends(require_editor),
    service: FormService = Depends(get_form_service),
):
    stats = service.form_stats(session, form_id)
    stats['form'] = FormInfo.model_validate(stats['form'])
    return FormStats(**stats)
