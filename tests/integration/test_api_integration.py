"""
Integration tests for API endpoints.

These tests use FastAPI TestClient against an in-memory SQLite database
to verify:
1. Endpoints return correct data
2. Role guards and the leader role synchronization
3. Error mapping (404 / 409 / 503)
"""
from datetime import datetime, timedelta

import pytest

from greenpia.database import DataStoreUnavailable, get_db
from greenpia.database.models import LeaderSchedule, ResidentEmail
from greenpia.rotation import fiscal_year


# =============================================================================
# ROOT ENDPOINT TESTS
# =============================================================================

class TestRootEndpoint:
    """Tests for API root endpoint."""

    def test_root_returns_api_info(self, client):
        """Root should return API name and version."""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()

        assert data["name"] == "Greenpia Portal API"
        assert data["status"] == "running"
        assert data["uptime_seconds"] >= 0


# =============================================================================
# AUTH TESTS
# =============================================================================

class TestAuth:
    """Login, session cookie and role guards."""

    def test_login_sets_cookie(self, client, make_user):
        make_user('resident@example.com')

        response = client.post('/api/auth/login', json={
            'email': 'Resident@Example.com', 'password': 'correct-horse-battery'
        })

        assert response.status_code == 200
        assert 'greenpia_session' in response.cookies
        assert response.json()['email'] == 'resident@example.com'

    def test_wrong_password(self, client, make_user):
        make_user('resident@example.com')

        response = client.post('/api/auth/login', json={'email': 'resident@example.com', 'password': 'nope'})

        assert response.status_code == 401

    def test_me_anonymous(self, client):
        response = client.get('/api/auth/me')

        assert response.status_code == 200
        assert response.json() is None

    def test_logout_clears_session(self, client, make_user, login):
        make_user('resident@example.com')
        login('resident@example.com')

        client.post('/api/auth/logout')

        assert client.get('/api/auth/me').json() is None

    def test_tampered_cookie_is_anonymous(self, client):
        client.cookies.set('greenpia_session', 'not-a-valid-token')

        assert client.get('/api/auth/me').json() is None

    def test_login_required(self, client):
        response = client.get('/api/households')

        assert response.status_code == 401
        assert response.json()['detail'] == 'Please login (10001)'

    def test_admin_required(self, client, make_user, login):
        make_user('resident@example.com')
        login('resident@example.com')

        response = client.post('/api/rotation/recalculate', json={'year': 2025})

        assert response.status_code == 403

    def test_leader_household_promoted_on_request(self, client, db_session, make_user, login):
        year = fiscal_year(datetime.now())
        db_session.add(LeaderSchedule(year=year, primary_household_id='201', backup_household_id='305'))
        db_session.commit()
        make_user('leader@example.com', household_id='201')

        assert login('leader@example.com')['role'] == 'member'
        assert client.get('/api/auth/me').json()['role'] == 'admin'

    def test_admin_creates_user(self, admin_client):
        payload = {'name': 'Tanaka', 'email': 'tanaka@example.com', 'password': 'long-enough', 'household_id': '101'}

        first = admin_client.post('/api/users', json=payload)
        second = admin_client.post('/api/users', json=payload)

        assert first.status_code == 201
        assert first.json()['role'] == 'member'
        assert second.status_code == 409


# =============================================================================
# ROTATION TESTS
# =============================================================================

class TestRotationEndpoints:
    """Tests for /api/rotation endpoints."""

    def test_calculate_without_logic_is_conflict(self, admin_client, make_household):
        make_household('101')

        response = admin_client.post('/api/rotation/calculate', json={'year': 2026})

        assert response.status_code == 409
        assert 'logic' in response.json()['detail']

    def test_calculate_next_year(self, admin_client, make_household, rotation_logic):
        make_household('101', move_in=datetime(2015, 4, 1), history=1)
        make_household('102', move_in=datetime(2017, 4, 1))

        response = admin_client.post('/api/rotation/calculate', json={'year': 2026})

        assert response.status_code == 200
        assert response.json() == {'success': True, 'primary': '101', 'backup': '102'}

    def test_calculate_with_everyone_exempted(self, admin_client, make_household, rotation_logic):
        make_household('101')
        request_id = admin_client.post('/api/exemptions', json={
            'household_id': '101', 'year': 2026, 'reason': '海外赴任'
        }).json()['id']
        admin_client.post(f'/api/exemptions/{request_id}/approve')

        response = admin_client.post('/api/rotation/calculate', json={'year': 2026})

        assert response.status_code == 409

    def test_recalculate_and_list(self, admin_client, make_household):
        make_household('101', move_in=datetime(2015, 4, 1), history=2)
        make_household('102', move_in=datetime(2016, 4, 1))
        make_household('103', move_in=datetime(2018, 4, 1))

        response = admin_client.post('/api/rotation/recalculate', json={'year': 2026})

        assert response.status_code == 200
        data = response.json()
        assert data['candidate_count'] == 2
        assert data['schedule']['primary_household_id'] == '102'
        assert data['schedule']['backup_household_id'] == '103'
        assert data['schedule']['status'] == 'draft'

        schedules = admin_client.get('/api/rotation/schedules', params={'from_year': 2026}).json()
        assert [(s['year'], s['primary_household_id']) for s in schedules] == [(2026, '102')]

    def test_recalculate_with_no_candidates(self, admin_client, make_household):
        make_household('101', history=1)

        response = admin_client.post('/api/rotation/recalculate', json={'year': 2026})

        assert response.status_code == 200
        assert response.json()['candidate_count'] == 0
        assert response.json()['schedule'] is None

    def test_year_out_of_range(self, admin_client):
        response = admin_client.post('/api/rotation/recalculate', json={'year': 1999})

        assert response.status_code == 422

    def test_reasons_view(self, admin_client, make_household):
        make_household('101', history=1)
        make_household('102', move_in=datetime.now() - timedelta(days=30))
        make_household('103', move_in=datetime(2012, 1, 1))

        response = admin_client.get('/api/rotation/2026/reasons')

        assert response.status_code == 200
        households = {h['household_id']: h for h in response.json()['households']}
        assert households['101']['reasons'] == ['B']
        assert households['102']['reasons'] == ['A']
        assert households['103']['is_candidate'] is True

    def test_confirm_schedule(self, admin_client, db_session):
        schedule = LeaderSchedule(year=2026, primary_household_id='101', backup_household_id='102')
        db_session.add(schedule)
        db_session.commit()

        url = f'/api/rotation/schedules/{schedule.id}/confirm'

        skipped = admin_client.post(url, json={'status': 'confirmed'})
        conditional = admin_client.post(url, json={'status': 'conditional'})
        confirmed = admin_client.post(url, json={'status': 'confirmed'})
        reverted = admin_client.post(url, json={'status': 'conditional'})

        assert skipped.status_code == 409
        assert conditional.json()['status'] == 'conditional'
        assert confirmed.status_code == 200
        assert confirmed.json()['status'] == 'confirmed'
        assert reverted.status_code == 409

    def test_confirm_unknown_schedule(self, admin_client):
        response = admin_client.post('/api/rotation/schedules/999/confirm', json={'status': 'confirmed'})

        assert response.status_code == 404

    def test_logic_versions(self, admin_client):
        assert admin_client.get('/api/rotation/logic').json() is None

        created = admin_client.post('/api/rotation/logic', json={
            'priority': ['move_in_date', 'household_id'],
            'exclude_conditions': ['C'],
            'reason': '初版',
        })

        assert created.status_code == 201
        assert created.json()['version'] == 1
        assert admin_client.get('/api/rotation/logic').json()['logic']['excludeConditions'] == ['C']

    def test_database_unavailable_maps_to_503(self, client):
        def unavailable():
            raise DataStoreUnavailable('connection refused')

        client.app.dependency_overrides[get_db] = unavailable

        response = client.get('/api/rotation/schedules')

        assert response.status_code == 503


# =============================================================================
# EXEMPTION TESTS
# =============================================================================

class TestExemptions:
    """Tests for /api/exemptions."""

    def test_member_files_for_own_household_only(self, client, make_user, login):
        make_user('resident@example.com', household_id='101')
        login('resident@example.com')

        own = client.post('/api/exemptions', json={'household_id': '101', 'year': 2026, 'reason': '介護'})
        other = client.post('/api/exemptions', json={'household_id': '102', 'year': 2026, 'reason': '介護'})

        assert own.status_code == 201
        assert own.json()['status'] == 'pending'
        assert other.status_code == 403

    def test_resubmission_gets_next_version(self, admin_client):
        payload = {'household_id': '101', 'year': 2026, 'reason': '療養'}

        admin_client.post('/api/exemptions', json=payload)
        second = admin_client.post('/api/exemptions', json=payload)

        assert second.json()['version'] == 2

    def test_approve_and_filter(self, admin_client):
        request_id = admin_client.post('/api/exemptions', json={
            'household_id': '101', 'year': 2026, 'reason': '療養'
        }).json()['id']

        approved = admin_client.post(f'/api/exemptions/{request_id}/approve').json()

        assert approved['status'] == 'approved'
        assert approved['approved_at'] is not None
        listed = admin_client.get('/api/exemptions', params={'year': 2026, 'status': 'approved'}).json()
        assert [r['id'] for r in listed] == [request_id]


# =============================================================================
# INQUIRY TESTS
# =============================================================================

class TestInquiries:
    """Tests for /api/inquiries."""

    @pytest.fixture
    def leader_with_email(self, db_session):
        db_session.add(LeaderSchedule(year=2026, primary_household_id='301', backup_household_id='302'))
        db_session.add(ResidentEmail(household_id='301', email='leader301@example.com'))
        db_session.commit()

    def test_create_notifies_leader(self, admin_client, notifier, leader_with_email):
        response = admin_client.post('/api/inquiries', json={
            'household_id': '101', 'year': 2026, 'title': '駐輪場', 'content': '自転車の放置について',
            'category': 'opinion',
        })

        assert response.status_code == 201
        assert response.json()['status'] == 'pending'
        title = notifier.notify.call_args.args[0]
        assert title == '問い合わせ: 101号室から（意見）'

    def test_create_without_leader_email_does_not_notify(self, admin_client, notifier):
        response = admin_client.post('/api/inquiries', json={
            'household_id': '101', 'year': 2026, 'title': '駐輪場', 'content': '放置自転車',
            'category': 'other',
        })

        assert response.status_code == 201
        notifier.notify.assert_not_called()

    def test_notification_failure_does_not_fail_request(self, admin_client, notifier, leader_with_email):
        notifier.notify.return_value = False

        response = admin_client.post('/api/inquiries', json={
            'household_id': '101', 'year': 2026, 'title': '騒音', 'content': '夜間の騒音',
            'category': 'other',
        })

        assert response.status_code == 201

    def test_reply_thread(self, admin_client):
        inquiry_id = admin_client.post('/api/inquiries', json={
            'household_id': '101', 'year': 2026, 'title': '清掃日', 'content': '次の清掃日は？',
            'category': 'participation',
        }).json()['id']

        assert [i['id'] for i in admin_client.get('/api/inquiries/pending').json()] == [inquiry_id]

        reply = admin_client.post(f'/api/inquiries/{inquiry_id}/replies', json={
            'replied_by_household_id': '301', 'reply_content': '来月第一日曜です',
        })
        assert reply.status_code == 201

        detail = admin_client.get(f'/api/inquiries/{inquiry_id}').json()
        assert detail['status'] == 'replied'
        assert [r['reply_content'] for r in detail['replies']] == ['来月第一日曜です']
        assert admin_client.get('/api/inquiries/pending').json() == []

    def test_unknown_inquiry(self, admin_client):
        assert admin_client.get('/api/inquiries/999').status_code == 404


# =============================================================================
# FORM TESTS
# =============================================================================

class TestForms:
    """Tests for /api/forms."""

    def test_build_answer_and_stats(self, admin_client, make_household, notifier):
        make_household('101')
        make_household('102')

        form = admin_client.post('/api/forms', json={
            'title': '清掃参加',
            'questions': [{'text': '参加しますか', 'type': 'single_choice', 'choices': ['はい', 'いいえ', ' ']}],
        }).json()
        question = form['questions'][0]
        assert [c['choice_text'] for c in question['choices']] == ['はい', 'いいえ']

        admin_client.patch(f"/api/forms/{form['id']}", json={'status': 'active'})
        assert [f['id'] for f in admin_client.get('/api/forms/active').json()] == [form['id']]

        submitted = admin_client.post(f"/api/forms/{form['id']}/responses", json={
            'household_id': '101',
            'answers': [{'question_id': question['id'], 'choice_id': question['choices'][0]['id']}],
        })
        assert submitted.status_code == 201
        notifier.notify.assert_called_once()

        stats = admin_client.get(f"/api/forms/{form['id']}/stats").json()
        assert stats['questions'][0]['choices'][0]['count'] == 1
        assert stats['unanswered_households'] == ['102']

    def test_unknown_form(self, client):
        assert client.get('/api/forms/999').status_code == 404

    def test_member_cannot_build_forms(self, client, make_user, login):
        make_user('resident@example.com')
        login('resident@example.com')

        response = client.post('/api/forms', json={'title': 'x', 'questions': []})

        assert response.status_code == 403


# =============================================================================
# ATTENDANCE TESTS
# =============================================================================

class TestAttendance:
    """Tests for /api/attendance."""

    def test_resubmission_replaces_answer(self, admin_client, make_household):
        make_household('101')
        make_household('102')
        event_id = admin_client.post('/api/attendance/events', json={
            'title': '河川清掃', 'year': 2026, 'scheduled_date': '2026-06-07T09:00:00',
        }).json()['id']

        admin_client.post(f'/api/attendance/events/{event_id}/responses', json={
            'household_id': '101', 'response': 'undecided'
        })
        admin_client.post(f'/api/attendance/events/{event_id}/responses', json={
            'household_id': '101', 'response': 'attend', 'respondent_name': '佐藤'
        })

        summary = admin_client.get(f'/api/attendance/events/{event_id}/summary').json()
        assert summary['counts'] == {'attend': 1, 'absent': 0, 'undecided': 0}
        assert summary['not_responded'] == ['102']

    def test_closed_event_rejects_answers(self, admin_client):
        event_id = admin_client.post('/api/attendance/events', json={
            'title': '河川清掃', 'year': 2026, 'scheduled_date': '2026-06-07T09:00:00',
        }).json()['id']
        admin_client.post(f'/api/attendance/events/{event_id}/close')

        response = admin_client.post(f'/api/attendance/events/{event_id}/responses', json={
            'household_id': '101', 'response': 'attend'
        })

        assert response.status_code == 409


# =============================================================================
# CONTENT & SEARCH TESTS
# =============================================================================

class TestContent:
    """Rules history, pending queue and search."""

    def test_rule_update_keeps_version(self, admin_client):
        rule_id = admin_client.post('/api/rules', json={
            'title': 'ゴミ出し', 'summary': '朝8時まで', 'details': '可燃ごみは月木',
        }).json()['id']

        admin_client.patch(f'/api/rules/{rule_id}', json={'summary': '朝8時30分まで', 'reason': '回収時間変更'})

        versions = admin_client.get(f'/api/rules/{rule_id}/versions').json()
        assert [(v['version'], v['summary'], v['reason']) for v in versions] == [(1, '朝8時まで', '回収時間変更')]
        assert admin_client.get(f'/api/rules/{rule_id}').json()['summary'] == '朝8時30分まで'

    def test_pending_queue_priority_order(self, admin_client):
        for title, priority in (('low', 'low'), ('high', 'high'), ('medium', 'medium')):
            admin_client.post('/api/pending-queue', json={
                'title': title, 'description': '-', 'to_whom': '管理会社', 'priority': priority
            })

        titles = [item['title'] for item in admin_client.get('/api/pending-queue').json()]

        assert titles == ['high', 'medium', 'low']

    def test_search(self, admin_client):
        admin_client.post('/api/faq', json={'question': '粗大ゴミの出し方は？', 'answer': '市に申し込みます'})
        admin_client.post('/api/inventory', json={'name': 'ゴミ袋', 'qty': 20, 'location': '倉庫'})
        admin_client.post('/api/templates', json={'title': '回覧', 'body': '清掃のお知らせ', 'category': 'notice'})

        results = admin_client.get('/api/search', params={'q': 'ゴミ'}).json()

        assert [hit['title'] for hit in results['faq']] == ['粗大ゴミの出し方は？']
        assert [hit['title'] for hit in results['inventory']] == ['ゴミ袋']
        assert results['templates'] == []


# =============================================================================
# INVENTORY & HANDOVER BAG TESTS
# =============================================================================

class TestInventory:
    """Equipment ledger CRUD."""

    def test_create_update_delete(self, admin_client):
        created = admin_client.post('/api/inventory', json={
            'name': 'テント', 'qty': 2, 'location': '集会所倉庫', 'tags': ['夏祭り'],
        })
        assert created.status_code == 201
        item_id = created.json()['id']

        updated = admin_client.patch(f'/api/inventory/{item_id}', json={'qty': 3, 'notes': '1張り補修済'})
        assert updated.status_code == 200
        assert updated.json()['qty'] == 3
        assert updated.json()['name'] == 'テント'
        assert updated.json()['tags'] == ['夏祭り']

        assert admin_client.delete(f'/api/inventory/{item_id}').json()['success'] is True
        assert admin_client.get('/api/inventory').json() == []

    def test_unknown_item(self, admin_client):
        assert admin_client.patch('/api/inventory/999', json={'qty': 1}).status_code == 404
        assert admin_client.delete('/api/inventory/999').status_code == 404

    def test_null_for_required_field_rejected(self, admin_client):
        item_id = admin_client.post('/api/inventory', json={'name': '脚立', 'location': '倉庫'}).json()['id']

        response = admin_client.patch(f'/api/inventory/{item_id}', json={'name': None})

        assert response.status_code == 422
        assert admin_client.get('/api/inventory').json()[0]['name'] == '脚立'

    def test_null_clears_optional_field(self, admin_client):
        item_id = admin_client.post('/api/inventory', json={
            'name': '脚立', 'location': '倉庫', 'condition': '良好',
        }).json()['id']

        response = admin_client.patch(f'/api/inventory/{item_id}', json={'condition': None})

        assert response.status_code == 200
        assert response.json()['condition'] is None

    def test_member_cannot_create(self, client, make_user, login):
        make_user('resident@example.com')
        login('resident@example.com')

        response = client.post('/api/inventory', json={'name': 'テント', 'location': '倉庫'})

        assert response.status_code == 403
        assert client.get('/api/inventory').status_code == 200


class TestHandoverBag:
    """Handover bag CRUD and the checked toggle."""

    def test_create_update_delete(self, admin_client):
        created = admin_client.post('/api/handover-bag', json={'name': '印鑑', 'location': '手提げ金庫'})
        assert created.status_code == 201
        assert created.json()['is_checked'] is False
        item_id = created.json()['id']

        updated = admin_client.patch(f'/api/handover-bag/{item_id}', json={'description': '組長印'})
        assert updated.json()['description'] == '組長印'
        assert updated.json()['location'] == '手提げ金庫'

        assert admin_client.delete(f'/api/handover-bag/{item_id}').status_code == 200
        assert admin_client.get('/api/handover-bag').json() == []

    def test_toggle_flips_checked(self, admin_client):
        item_id = admin_client.post('/api/handover-bag', json={'name': '通帳', 'location': '金庫'}).json()['id']

        first = admin_client.post(f'/api/handover-bag/{item_id}/toggle')
        second = admin_client.post(f'/api/handover-bag/{item_id}/toggle')

        assert first.json()['is_checked'] is True
        assert second.json()['is_checked'] is False

    def test_member_can_toggle_but_not_create(self, client, db_session, make_user, login):
        from greenpia.database.models import HandoverBagItem

        db_session.add(HandoverBagItem(name='鍵束', location='金庫'))
        db_session.commit()
        make_user('resident@example.com')
        login('resident@example.com')
        item_id = client.get('/api/handover-bag').json()[0]['id']

        assert client.post('/api/handover-bag', json={'name': '印鑑', 'location': '金庫'}).status_code == 403
        assert client.post(f'/api/handover-bag/{item_id}/toggle').json()['is_checked'] is True

    def test_unknown_item(self, admin_client):
        assert admin_client.post('/api/handover-bag/999/toggle').status_code == 404
        assert admin_client.patch('/api/handover-bag/999', json={'name': 'x'}).status_code == 404

    def test_null_for_required_field_rejected(self, admin_client):
        item_id = admin_client.post('/api/handover-bag', json={'name': '通帳', 'location': '金庫'}).json()['id']

        assert admin_client.patch(f'/api/handover-bag/{item_id}', json={'location': None}).status_code == 422
        assert admin_client.patch(f'/api/handover-bag/{item_id}', json={'is_checked': None}).status_code == 422


# =============================================================================
# VAULT & CHANGELOG TESTS
# =============================================================================

class TestVault:
    """Masked listing and audited reveal."""

    def test_reveal_is_audited(self, admin_client):
        entry = admin_client.post('/api/vault', json={
            'category': 'door', 'key': '集会所', 'masked_value': '****', 'actual_value': '4821',
        }).json()
        assert 'actual_value' not in entry

        revealed = admin_client.post(f"/api/vault/{entry['id']}/reveal").json()
        assert revealed['actual_value'] == '4821'

        actions = [log['action'] for log in admin_client.get('/api/audit-logs').json()]
        assert 'reveal' in actions

    def test_member_sees_masked_values_only(self, client, db_session, make_user, login):
        from greenpia.database.models import VaultEntry

        db_session.add(VaultEntry(category='door', key='倉庫', masked_value='**21', actual_value='4821'))
        db_session.commit()
        make_user('resident@example.com')
        login('resident@example.com')

        listed = client.get('/api/vault').json()

        assert listed[0]['masked_value'] == '**21'
        assert 'actual_value' not in listed[0]
        assert client.post(f"/api/vault/{listed[0]['id']}/reveal").status_code == 403


class TestChangelog:

    def test_writes_appear_in_feed(self, admin_client):
        admin_client.post('/api/households', json={'household_id': '401'})

        feed = admin_client.get('/api/changelog', params={'entity_type': 'households'}).json()

        assert feed[0]['summary'] == '住戸 401 を登録'
        assert feed[0]['author_role'] == 'admin'
