"""
Form Service - Surveys, Responses and Reminders

Single Responsibility: form lifecycle on top of a database session.

- create_form: draft form with ordered questions and non-blank choices
- submit_response: store answers, alert the owner (best effort)
- form_stats: choice counts, respondents, unanswered households
- send_reminders: one alert per unanswered household for active forms due soon
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from greenpia.database.changelog import ChangeRecorder
from greenpia.database.models import (
    Form, FormChoice, FormQuestion, FormResponse, FormResponseItem, Household
)
from greenpia.notifications import Notifier
from greenpia.utils import get_logger

logger = get_logger(__name__)


class FormNotFound(Exception):
    """Form does not exist"""

    def __init__(self, form_id: int):
        self.form_id = form_id
        super().__init__(f"Form {form_id} not found")


class FormService:
    """
    Survey operations.

    Notification failures are logged by the Notifier and never fail
    the operation that triggered them.
    """

    def __init__(self, notifier: Notifier, reminder_window_hours: int = 24):
        self.notifier = notifier
        self.reminder_window = timedelta(hours=reminder_window_hours)

    @staticmethod
    def get_form(session: Session, form_id: int) -> Form:
        form = session.get(Form, form_id)
        if form is None:
            raise FormNotFound(form_id)
        return form

    # =========================================================================
    # BUILDER
    # =========================================================================

    def create_form(
        self,
        session: Session,
        title: str,
        questions: List[Dict],
        description: Optional[str] = None,
        due_date: Optional[datetime] = None,
        created_by: Optional[int] = None,
    ) -> Form:
        """
        Create a draft form.

        Args:
            questions: [{'text': str, 'type': 'single_choice'|'multiple_choice',
                         'choices': [str, ...]}, ...]
                       Blank choices are skipped but keep their position index.
        """
        form = Form(
            title=title,
            description=description or None,
            due_date=due_date,
            status='draft',
            created_by=created_by,
        )

        for q_index, question in enumerate(questions):
            form_question = FormQuestion(
                question_text=question['text'],
                question_type=question.get('type', 'single_choice'),
                required=True,
                order_index=q_index,
            )
            for c_index, choice in enumerate(question.get('choices', [])):
                if choice.strip():
                    form_question.choices.append(FormChoice(choice_text=choice, order_index=c_index))
            form.questions.append(form_question)

        session.add(form)
        session.flush()

        ChangeRecorder.record(session, f"フォーム「{title}」を作成", "forms", form.id, author_id=created_by)
        logger.info(f"Form {form.id} created with {len(questions)} questions")
        return form

    def update_form(self, session: Session, form_id: int, changes: Dict, author_id: Optional[int] = None) -> Form:
        """Apply title / description / due_date / status changes (only keys present)."""
        form = self.get_form(session, form_id)

        if changes.get('title'):
            form.title = changes['title']
        if 'description' in changes:
            form.description = changes['description'] or None
        if 'due_date' in changes:
            form.due_date = changes['due_date']
        if changes.get('status'):
            form.status = changes['status']
        session.flush()

        ChangeRecorder.record(session, f"フォーム (ID: {form_id}) を更新", "forms", form_id, author_id=author_id)
        return form

    def delete_form(self, session: Session, form_id: int, author_id: Optional[int] = None) -> None:
        """Delete a form with its questions, choices and responses."""
        form = self.get_form(session, form_id)
        session.delete(form)
        session.flush()

        ChangeRecorder.record(session, f"フォーム (ID: {form_id}) を削除", "forms", form_id, author_id=author_id)
        logger.info(f"Form {form_id} deleted")

    @staticmethod
    def active_forms(session: Session) -> List[Form]:
        return (
            session.query(Form)
            .filter(Form.status == 'active')
            .order_by(Form.due_date.is_(None), Form.due_date, Form.id)
            .all()
        )

    # =========================================================================
    # RESPONSES
    # =========================================================================

    def submit_response(
        self,
        session: Session,
        form_id: int,
        answers: List[Dict],
        household_id: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> FormResponse:
        """
        Store one submission.

        Args:
            answers: [{'question_id': int, 'choice_id': int|None, 'text_answer': str|None}, ...]
            household_id: Responding household (None = anonymous)
        """
        form = self.get_form(session, form_id)

        response = FormResponse(
            form_id=form.id,
            household_id=household_id or None,
            user_id=user_id,
            submitted_at=datetime.utcnow(),
        )
        for answer in answers:
            response.items.append(FormResponseItem(
                question_id=answer['question_id'],
                choice_id=answer.get('choice_id'),
                text_answer=answer.get('text_answer') or None,
            ))
        session.add(response)
        session.flush()

        self.notifier.notify(
            f"フォーム回答: {form.title}",
            f"{household_id or '匿名'} から「{form.title}」への回答がありました。",
        )

        ChangeRecorder.record(session, f"フォーム「{form.title}」に回答", "formResponses", response.id, author_id=user_id)
        logger.info(f"Form {form.id}: response {response.id} from {household_id or 'anonymous'}")
        return response

    def form_stats(self, session: Session, form_id: int) -> Dict:
        """
        Aggregate answers for a form.

        Returns:
            Dict with form, questions (choice counts), respondents,
            total_households, responded_count, unanswered_count,
            unanswered_households
        """
        form = self.get_form(session, form_id)

        counts = dict(
            session.query(FormResponseItem.choice_id, func.count(FormResponseItem.id))
            .join(FormResponse, FormResponse.id == FormResponseItem.response_id)
            .filter(FormResponse.form_id == form_id)
            .filter(FormResponseItem.choice_id.isnot(None))
            .group_by(FormResponseItem.choice_id)
            .all()
        )

        questions = [
            {
                'id': question.id,
                'text': question.question_text,
                'type': question.question_type,
                'choices': [
                    {'id': choice.id, 'text': choice.choice_text, 'count': counts.get(choice.id, 0)}
                    for choice in question.choices
                ],
            }
            for question in form.questions
        ]

        responses = (
            session.query(FormResponse)
            .filter(FormResponse.form_id == form_id)
            .order_by(FormResponse.submitted_at, FormResponse.id)
            .all()
        )
        respondents = [
            {
                'id': r.id,
                'household_id': r.household_id,
                'submitted_at': r.submitted_at,
                'answer_count': len(r.items),
            }
            for r in responses
        ]

        all_households = [h.household_id for h in session.query(Household).order_by(Household.household_id).all()]
        responded = {r.household_id for r in responses if r.household_id}
        unanswered = [h for h in all_households if h not in responded]

        return {
            'form': form,
            'questions': questions,
            'respondents': respondents,
            'total_households': len(all_households),
            'responded_count': len(respondents),
            'unanswered_count': len(unanswered),
            'unanswered_households': unanswered,
        }

    # =========================================================================
    # REMINDERS
    # =========================================================================

    def send_reminders(self, session: Session, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        Remind unanswered households of active forms due within the window.

        Returns:
            {'forms_processed': int, 'notifications_sent': int}
        """
        now = now or datetime.utcnow()
        upcoming = (
            session.query(Form)
            .filter(Form.status == 'active')
            .filter(Form.due_date >= now)
            .filter(Form.due_date <= now + self.reminder_window)
            .all()
        )

        sent = 0
        for form in upcoming:
            responded = {
                row.household_id
                for row in session.query(FormResponse.household_id)
                .filter(FormResponse.form_id == form.id)
                .filter(FormResponse.household_id.isnot(None))
                .all()
            }
            query = session.query(Household.household_id)
            if responded:
                query = query.filter(Household.household_id.notin_(responded))
            unanswered = query.order_by(Household.household_id).all()

            for row in unanswered:
                delivered = self.notifier.notify(
                    f"フォーム回答リマインダー: {form.title}",
                    f"住戸 {row.household_id} へ\n\n"
                    f"下記のフォームの回答期限が近づいています。\n\n"
                    f"フォーム: {form.title}\n"
                    f"期限: {form.due_date:%Y/%m/%d %H:%M}\n\n"
                    f"お早めに回答いただけるようお願いします。",
                )
                sent += int(delivered)

        ChangeRecorder.record(session, f"リマインダーメール送信: {len(upcoming)}件", "reminder")
        logger.info(f"Reminder sweep: {len(upcoming)} forms, {sent} notifications delivered")

        return {'forms_processed': len(upcoming), 'notifications_sent': sent}
