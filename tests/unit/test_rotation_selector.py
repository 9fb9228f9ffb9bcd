"""
Unit tests for the rotation selector (pure ranking and exclusion logic)
"""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from greenpia.rotation import InsufficientCandidates, RotationSelector
from greenpia.rotation.selector import (
    EXEMPTIONS_ONLY, STRICT, exclusion_reasons, months_before, rank_candidates, select_leaders
)


NOW = datetime(2023, 1, 15, 9, 0)


def household(household_id, move_in=None, history=0):
    return SimpleNamespace(
        household_id=household_id,
        move_in_date=move_in,
        leader_history_count=history,
    )


# =============================================================================
# MONTHS BEFORE
# =============================================================================

class TestMonthsBefore:
    """Tests for the grace-period boundary"""

    def test_same_day_previous_year(self):
        assert months_before(datetime(2023, 1, 15, 9, 0), 12) == datetime(2022, 1, 15, 9, 0)

    def test_crosses_year_boundary(self):
        assert months_before(datetime(2023, 2, 10), 3) == datetime(2022, 11, 10)

    def test_clamps_to_end_of_month(self):
        assert months_before(datetime(2024, 3, 31), 1) == datetime(2024, 2, 29)
        assert months_before(datetime(2023, 3, 31), 1) == datetime(2023, 2, 28)

    def test_leap_day_minus_twelve_months(self):
        assert months_before(datetime(2024, 2, 29), 12) == datetime(2023, 2, 28)


# =============================================================================
# EXCLUSION REASONS
# =============================================================================

class TestExclusionReasons:
    """Tests for codes A (recent move-in), B (past leader), C (exempted)"""

    def test_no_reasons_for_eligible_household(self):
        h = household('101', move_in=datetime(2015, 4, 1))
        assert exclusion_reasons(h, set(), NOW) == []

    def test_recent_move_in_is_code_a(self):
        h = household('101', move_in=datetime(2022, 10, 1))
        assert exclusion_reasons(h, set(), NOW) == ['A']

    def test_move_in_exactly_on_boundary_is_not_recent(self):
        h = household('101', move_in=datetime(2022, 1, 15, 9, 0))
        assert exclusion_reasons(h, set(), NOW) == []

    def test_missing_move_in_is_not_recent(self):
        assert exclusion_reasons(household('101'), set(), NOW) == []

    def test_past_leader_is_code_b(self):
        h = household('101', move_in=datetime(2010, 1, 1), history=1)
        assert exclusion_reasons(h, set(), NOW) == ['B']

    def test_exempted_is_code_c(self):
        h = household('101', move_in=datetime(2010, 1, 1))
        assert exclusion_reasons(h, {'101'}, NOW) == ['C']

    def test_recent_and_exempted_reports_a_then_c(self):
        """Codes come out in evaluation order A, B, C"""
        h = household('205', move_in=datetime(2022, 10, 15))
        assert exclusion_reasons(h, {'205'}, NOW) == ['A', 'C']

    def test_all_three_codes(self):
        h = household('301', move_in=datetime(2022, 12, 1), history=3)
        assert exclusion_reasons(h, {'301'}, NOW) == ['A', 'B', 'C']

    def test_timezone_aware_values_compare_with_naive(self):
        h = household('101', move_in=datetime(2022, 12, 1, tzinfo=timezone.utc))
        assert exclusion_reasons(h, set(), NOW) == ['A']

    def test_custom_grace_period(self):
        h = household('101', move_in=datetime(2022, 10, 1))
        assert exclusion_reasons(h, set(), NOW, grace_months=3) == []


# =============================================================================
# RANKING
# =============================================================================

class TestRankCandidates:
    """Tests for the candidate ordering"""

    def test_orders_by_move_in_date(self):
        ranked = rank_candidates([
            household('102', move_in=datetime(2020, 3, 15)),
            household('201', move_in=datetime(2016, 5, 1)),
            household('101', move_in=datetime(2018, 4, 1)),
        ])
        assert [h.household_id for h in ranked] == ['201', '101', '102']

    def test_missing_move_in_sorts_last(self):
        ranked = rank_candidates([
            household('101'),
            household('301', move_in=datetime(2021, 1, 1)),
        ])
        assert [h.household_id for h in ranked] == ['301', '101']

    def test_household_id_breaks_ties(self):
        same_day = datetime(2019, 7, 1)
        ranked = rank_candidates([
            household('201', move_in=same_day),
            household('102', move_in=same_day),
            household('101', move_in=same_day),
        ])
        assert [h.household_id for h in ranked] == ['101', '102', '201']

    def test_household_id_breaks_ties_without_dates(self):
        ranked = rank_candidates([household('201'), household('101'), household('102')])
        assert [h.household_id for h in ranked] == ['101', '102', '201']

    def test_previous_primary_goes_last(self):
        ranked = rank_candidates(
            [
                household('101', move_in=datetime(2010, 1, 1)),
                household('102', move_in=datetime(2015, 1, 1)),
                household('103'),
            ],
            previous_primary_id='101',
        )
        assert [h.household_id for h in ranked] == ['102', '103', '101']

    def test_ranking_is_deterministic(self):
        homes = [household(str(i), move_in=datetime(2015, 1, 1)) for i in (305, 101, 204)]
        assert [h.household_id for h in rank_candidates(homes)] == \
            [h.household_id for h in rank_candidates(list(reversed(homes)))]


# =============================================================================
# SELECTION
# =============================================================================

class TestSelectLeaders:
    """Tests for picking primary and backup"""

    def test_two_candidates(self):
        primary, backup = select_leaders([household('101'), household('102')], 2024)
        assert (primary, backup) == ('101', '102')

    def test_single_candidate_is_both(self):
        assert select_leaders([household('102')], 2024) == ('102', '102')

    def test_empty_list_raises(self):
        with pytest.raises(InsufficientCandidates) as exc_info:
            select_leaders([], 2024)

        assert exc_info.value.year == 2024
        assert exc_info.value.candidate_count == 0


# =============================================================================
# SELECTOR POLICIES
# =============================================================================

class TestRotationSelector:
    """Tests for the two exclusion policies"""

    @pytest.fixture
    def selector(self, config_dict):
        return RotationSelector(config_dict)

    @pytest.fixture
    def households(self):
        return [
            household('101', move_in=datetime(2018, 4, 1), history=2),
            household('102', move_in=datetime(2020, 3, 15)),
            household('103', move_in=datetime(2022, 6, 1)),
        ]

    def test_requires_rotation_config(self):
        with pytest.raises(KeyError):
            RotationSelector({})

    def test_strict_policy_example(self, selector, households):
        """101 has served (B), 103 moved in recently (A): only 102 remains"""
        ranked = selector.eligible(households, set(), NOW, policy=STRICT)

        assert [h.household_id for h in ranked] == ['102']
        assert select_leaders(ranked, 2023) == ('102', '102')

    def test_exemptions_only_policy_keeps_past_leaders_and_newcomers(self, selector, households):
        ranked = selector.eligible(households, {'102'}, NOW, policy=EXEMPTIONS_ONLY)

        assert [h.household_id for h in ranked] == ['101', '103']

    def test_exempted_household_is_never_eligible(self, selector, households):
        for policy in (STRICT, EXEMPTIONS_ONLY):
            ranked = selector.eligible(households, {'102'}, NOW, policy=policy)
            assert '102' not in [h.household_id for h in ranked]

    def test_assess_reports_every_household(self, selector, households):
        assessments = selector.assess(households, {'103'}, NOW)

        by_id = {a.household_id: a for a in assessments}
        assert by_id['101'].reasons == ['B']
        assert by_id['102'].reasons == []
        assert by_id['102'].is_candidate is True
        assert by_id['103'].reasons == ['A', 'C']
        assert by_id['103'].is_candidate is False

    def test_describe_lists_skipped_households(self, selector, households):
        assessments = selector.assess(households, {'103'}, NOW)

        assert selector.describe(assessments, '102') == (
            '101は直近組長 → 免除候補（B）、'
            '103は入居12ヶ月未満 → 免除候補（A）／免除申請承認済 → 免除（C） → 繰上げで102'
        )

    def test_describe_without_skips(self, selector):
        assessments = selector.assess([household('101'), household('102')], set(), NOW)

        assert selector.describe(assessments, '101') == '入居年月順で101'
