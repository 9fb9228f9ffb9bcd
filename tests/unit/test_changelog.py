"""
Tests for changelog and audit recording
"""

from greenpia.database import AuditLog, ChangeLog, ChangeRecorder


class TestChangeRecorder:

    def test_record_adds_entry(self, db_session):
        assert ChangeRecorder.record(db_session, '住戸 101 を登録', 'households', 1, author_id=3, author_role='admin')
        db_session.flush()

        entry = db_session.query(ChangeLog).one()
        assert entry.summary == '住戸 101 を登録'
        assert entry.related_entity_type == 'households'
        assert entry.related_entity_id == 1
        assert entry.author_role == 'admin'
        assert entry.date is not None

    def test_long_summary_truncated(self, db_session):
        ChangeRecorder.record(db_session, 'x' * 400, 'posts')
        db_session.flush()

        assert len(db_session.query(ChangeLog).one().summary) == 255

    def test_entry_rolls_back_with_operation(self, db_session):
        ChangeRecorder.record(db_session, 'discarded', 'posts')
        db_session.rollback()

        assert db_session.query(ChangeLog).count() == 0

    def test_audit_adds_entry(self, db_session):
        assert ChangeRecorder.audit(
            db_session, 'reveal', 'vault_entries', 5, user_id=1, details='door/main', ip_address='10.0.0.8'
        )
        db_session.flush()

        entry = db_session.query(AuditLog).one()
        assert (entry.action, entry.entity_type, entry.entity_id) == ('reveal', 'vault_entries', 5)
        assert entry.ip_address == '10.0.0.8'
