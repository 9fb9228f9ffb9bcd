"""
Tests for the leader role synchronization step
"""

from datetime import datetime

import pytest

from greenpia.database.models import LeaderSchedule
from greenpia.rotation import fiscal_year, sync_leader_role


class TestFiscalYear:
    """April-start fiscal year"""

    @pytest.mark.parametrize("now, expected", [
        (datetime(2025, 3, 31, 23, 59), 2024),
        (datetime(2025, 4, 1, 0, 0), 2025),
        (datetime(2025, 12, 31), 2025),
        (datetime(2026, 1, 1), 2025),
    ])
    def test_april_start(self, now, expected):
        assert fiscal_year(now) == expected

    def test_custom_start_month(self):
        assert fiscal_year(datetime(2025, 3, 1), start_month=1) == 2025


class TestSyncLeaderRole:
    """Promotion of the current year's leader households"""

    NOW = datetime(2025, 6, 1)

    @pytest.fixture
    def schedule(self, db_session):
        entry = LeaderSchedule(year=2025, primary_household_id='101', backup_household_id='102')
        db_session.add(entry)
        db_session.commit()
        return entry

    def test_primary_household_becomes_admin(self, db_session, make_user, schedule):
        user = make_user('a@example.com', household_id='101')

        assert sync_leader_role(db_session, user, now=self.NOW) is True
        assert user.role == 'admin'

    def test_backup_household_becomes_admin(self, db_session, make_user, schedule):
        user = make_user('b@example.com', role='editor', household_id='102')

        assert sync_leader_role(db_session, user, now=self.NOW) is True
        assert user.role == 'admin'

    def test_second_call_changes_nothing(self, db_session, make_user, schedule):
        user = make_user('a@example.com', household_id='101')

        sync_leader_role(db_session, user, now=self.NOW)
        assert sync_leader_role(db_session, user, now=self.NOW) is False
        assert user.role == 'admin'

    def test_other_household_unchanged(self, db_session, make_user, schedule):
        user = make_user('c@example.com', household_id='301')

        assert sync_leader_role(db_session, user, now=self.NOW) is False
        assert user.role == 'member'

    def test_user_without_household_unchanged(self, db_session, make_user, schedule):
        user = make_user('d@example.com')

        assert sync_leader_role(db_session, user, now=self.NOW) is False
        assert user.role == 'member'

    def test_uses_fiscal_year_not_calendar_year(self, db_session, make_user, schedule):
        """March 2026 still belongs to fiscal 2025; April 2026 does not"""
        user = make_user('a@example.com', household_id='101')

        assert sync_leader_role(db_session, user, now=datetime(2026, 4, 1)) is False
        assert sync_leader_role(db_session, user, now=datetime(2026, 3, 31)) is True

    def test_never_demotes(self, db_session, make_user):
        user = make_user('e@example.com', role='admin', household_id='101')

        assert sync_leader_role(db_session, user, now=self.NOW) is False
        assert user.role == 'admin'
