"""Initial Greenpia schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

Adds:
- users, households, resident_emails
- leader_schedule, leader_rotation_logic, exemption_requests
- inquiries, inquiry_replies
- forms, form_questions, form_choices, form_responses, form_response_items
- attendance_events, attendance_responses
- posts, events, rules, rule_versions, faq, templates, pending_queue, member_top_summary
- inventory, handover_bag_items, vault_entries, changelog, audit_logs
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    # =========================================================================
    # USERS & HOUSEHOLDS
    # =========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('open_id', sa.String(64), nullable=True, unique=True),
        sa.Column('password_hash', sa.Text(), nullable=True),
        sa.Column('name', sa.Text(), nullable=True),
        sa.Column('email', sa.String(320), nullable=True, unique=True),
        sa.Column('login_method', sa.String(64), nullable=True),
        sa.Column('household_id', sa.String(50), nullable=True),
        sa.Column('role', sa.Enum('public', 'member', 'editor', 'admin', name='user_role'), nullable=False),
        *_timestamps(),
        sa.Column('last_signed_in', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_household_id', 'users', ['household_id'])

    op.create_table(
        'households',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('household_id', sa.String(50), nullable=False, unique=True),
        sa.Column('move_in_date', sa.DateTime(), nullable=True),
        sa.Column('leader_history_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_households_household_id', 'households', ['household_id'])

    op.create_table(
        'resident_emails',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('household_id', sa.String(50), nullable=False),
        sa.Column('email', sa.String(320), nullable=False),
        sa.Column('registered_by', sa.Integer(), nullable=True),
        sa.Column('registered_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_resident_emails_household_id', 'resident_emails', ['household_id'])

    # =========================================================================
    # LEADER ROTATION
    # =========================================================================
    op.create_table(
        'leader_schedule',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('primary_household_id', sa.String(50), nullable=False),
        sa.Column('backup_household_id', sa.String(50), nullable=False),
        sa.Column('status', sa.Enum('draft', 'conditional', 'confirmed', name='schedule_status'), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_leader_schedule_year', 'leader_schedule', ['year'])

    op.create_table(
        'leader_rotation_logic',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('logic', sa.JSON(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_leader_rotation_logic_version', 'leader_rotation_logic', ['version'])

    op.create_table(
        'exemption_requests',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('household_id', sa.String(50), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('status', sa.Enum('pending', 'approved', 'rejected', name='exemption_status'), nullable=False),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_exemption_requests_household_id', 'exemption_requests', ['household_id'])
    op.create_index('idx_exemption_year_status', 'exemption_requests', ['year', 'status'])

    # =========================================================================
    # INQUIRIES
    # =========================================================================
    op.create_table(
        'inquiries',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('household_id', sa.String(50), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('category', sa.Enum('participation', 'opinion', 'repair', 'other', name='inquiry_category'),
                  nullable=False),
        sa.Column('status', sa.Enum('pending', 'replied', 'closed', name='inquiry_status'), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_inquiries_household_id', 'inquiries', ['household_id'])
    op.create_index('ix_inquiries_year', 'inquiries', ['year'])
    op.create_index('ix_inquiries_status', 'inquiries', ['status'])

    op.create_table(
        'inquiry_replies',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('inquiry_id', sa.Integer(), sa.ForeignKey('inquiries.id', ondelete='CASCADE'), nullable=False),
        sa.Column('replied_by_household_id', sa.String(50), nullable=False),
        sa.Column('reply_content', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_inquiry_replies_inquiry_id', 'inquiry_replies', ['inquiry_id'])

    # =========================================================================
    # FORMS
    # =========================================================================
    op.create_table(
        'forms',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('due_date', sa.DateTime(), nullable=True),
        sa.Column('status', sa.Enum('draft', 'active', 'closed', name='form_status'), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_forms_status', 'forms', ['status'])

    op.create_table(
        'form_questions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('form_id', sa.Integer(), sa.ForeignKey('forms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_text', sa.String(500), nullable=False),
        sa.Column('question_type', sa.Enum('single_choice', 'multiple_choice', name='question_type'),
                  nullable=False),
        sa.Column('required', sa.Boolean(), nullable=False),
        sa.Column('order_index', sa.Integer(), nullable=False),
    )
    op.create_index('ix_form_questions_form_id', 'form_questions', ['form_id'])

    op.create_table(
        'form_choices',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('question_id', sa.Integer(), sa.ForeignKey('form_questions.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('choice_text', sa.String(255), nullable=False),
        sa.Column('order_index', sa.Integer(), nullable=False),
    )
    op.create_index('ix_form_choices_question_id', 'form_choices', ['question_id'])

    op.create_table(
        'form_responses',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('form_id', sa.Integer(), sa.ForeignKey('forms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('household_id', sa.String(50), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_form_responses_form_id', 'form_responses', ['form_id'])
    op.create_index('ix_form_responses_household_id', 'form_responses', ['household_id'])

    op.create_table(
        'form_response_items',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('response_id', sa.Integer(), sa.ForeignKey('form_responses.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=False),
        sa.Column('choice_id', sa.Integer(), nullable=True),
        sa.Column('text_answer', sa.Text(), nullable=True),
    )
    op.create_index('ix_form_response_items_response_id', 'form_response_items', ['response_id'])
    op.create_index('ix_form_response_items_question_id', 'form_response_items', ['question_id'])

    # =========================================================================
    # ATTENDANCE
    # =========================================================================
    op.create_table(
        'attendance_events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('scheduled_date', sa.DateTime(), nullable=False),
        sa.Column('deadline', sa.DateTime(), nullable=True),
        sa.Column('status', sa.Enum('open', 'closed', name='attendance_status'), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_attendance_events_year', 'attendance_events', ['year'])

    op.create_table(
        'attendance_responses',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('event_id', sa.Integer(), sa.ForeignKey('attendance_events.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('household_id', sa.String(50), nullable=False),
        sa.Column('response', sa.Enum('attend', 'absent', 'undecided', name='attendance_answer'), nullable=False),
        sa.Column('respondent_name', sa.String(100), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('event_id', 'household_id', name='uq_attendance_event_household'),
    )
    op.create_index('ix_attendance_responses_event_id', 'attendance_responses', ['event_id'])

    # =========================================================================
    # CONTENT
    # =========================================================================
    op.create_table(
        'posts',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('category', sa.Enum('inquiry', 'answer', 'decision', 'pending', 'trouble', 'improvement',
                                      name='post_category'), nullable=False),
        sa.Column('status', sa.Enum('draft', 'pending', 'published', name='post_status'), nullable=False),
        sa.Column('author_id', sa.Integer(), nullable=True),
        sa.Column('is_hypothesis', sa.Boolean(), nullable=False),
        sa.Column('related_links', sa.JSON(), nullable=False),
        *_timestamps(),
        sa.Column('published_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_posts_year', 'posts', ['year'])

    op.create_table(
        'events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('checklist', sa.JSON(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'rules',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('status', sa.Enum('draft', 'decided', 'pending', 'published', name='rule_status'), nullable=False),
        sa.Column('summary', sa.Text(), nullable=False),
        sa.Column('details', sa.Text(), nullable=False),
        sa.Column('evidence_links', sa.JSON(), nullable=False),
        sa.Column('is_hypothesis', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'rule_versions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('rule_id', sa.Integer(), sa.ForeignKey('rules.id', ondelete='CASCADE'), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('summary', sa.Text(), nullable=False),
        sa.Column('details', sa.Text(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('changed_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_rule_versions_rule_id', 'rule_versions', ['rule_id'])

    op.create_table(
        'faq',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('question', sa.String(500), nullable=False),
        sa.Column('answer', sa.Text(), nullable=False),
        sa.Column('related_rule_ids', sa.JSON(), nullable=False),
        sa.Column('related_post_ids', sa.JSON(), nullable=False),
        sa.Column('is_hypothesis', sa.Boolean(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'templates',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_templates_category', 'templates', ['category'])

    op.create_table(
        'pending_queue',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('to_whom', sa.String(100), nullable=False),
        sa.Column('status', sa.Enum('pending', 'resolved', 'transferred', name='pending_status'), nullable=False),
        sa.Column('priority', sa.Enum('low', 'medium', 'high', name='pending_priority'), nullable=False),
        sa.Column('transferred_to_next_year', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'member_top_summary',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('week_start_date', sa.DateTime(), nullable=False),
        sa.Column('this_week_tasks', sa.JSON(), nullable=False),
        sa.Column('top_priorities', sa.JSON(), nullable=False),
        sa.Column('unresolved_issues', sa.JSON(), nullable=False),
        sa.Column('pending_replies', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_member_top_summary_year', 'member_top_summary', ['year'])

    # =========================================================================
    # INVENTORY, HANDOVER, VAULT, CHANGELOG, AUDIT
    # =========================================================================
    op.create_table(
        'inventory',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('photo', sa.String(500), nullable=True),
        sa.Column('qty', sa.Integer(), nullable=False),
        sa.Column('location', sa.String(255), nullable=False),
        sa.Column('condition', sa.String(100), nullable=True),
        sa.Column('last_checked_at', sa.DateTime(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'handover_bag_items',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('location', sa.String(255), nullable=False),
        sa.Column('is_checked', sa.Boolean(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'vault_entries',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('key', sa.String(255), nullable=False),
        sa.Column('masked_value', sa.String(500), nullable=False),
        sa.Column('actual_value', sa.Text(), nullable=False),
        sa.Column('classification', sa.Enum('public', 'internal', 'confidential', name='classification'),
                  nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_vault_entries_category', 'vault_entries', ['category'])

    op.create_table(
        'changelog',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('summary', sa.String(255), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('author_id', sa.Integer(), nullable=True),
        sa.Column('author_role', sa.String(20), nullable=True),
        sa.Column('related_entity_type', sa.String(100), nullable=False),
        sa.Column('related_entity_id', sa.Integer(), nullable=True),
    )
    op.create_index('ix_changelog_date', 'changelog', ['date'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('entity_type', sa.String(100), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_audit_logs_entity_type', 'audit_logs', ['entity_type'])
    op.create_index('ix_audit_logs_timestamp', 'audit_logs', ['timestamp'])


def downgrade() -> None:
    for table in (
        'audit_logs', 'changelog', 'vault_entries', 'handover_bag_items', 'inventory',
        'member_top_summary', 'pending_queue', 'templates', 'faq', 'rule_versions', 'rules',
        'events', 'posts', 'attendance_responses', 'attendance_events',
        'form_response_items', 'form_responses', 'form_choices', 'form_questions', 'forms',
        'inquiry_replies', 'inquiries', 'exemption_requests', 'leader_rotation_logic',
        'leader_schedule', 'resident_emails', 'households', 'users',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        for enum_name in (
            'user_role', 'schedule_status', 'exemption_status', 'inquiry_category', 'inquiry_status',
            'form_status', 'question_type', 'attendance_status', 'attendance_answer', 'post_category',
            'post_status', 'rule_status', 'pending_status', 'pending_priority', 'classification',
        ):
            sa.Enum(name=enum_name).drop(bind, checkfirst=True)
