# tests/test_cognition.py
"""Cognition levels, information fuzz, health alerts and the staff week."""
import pytest

from shopsim.diagnostics import diagnose_health
from shopsim.engine import build_stats, compute_fixed_cost
from shopsim.fuzz import (
    INFO_FUZZ_CONFIG, apply_cognition_exp, apply_fuzz, fuzz_money, fuzz_percent, is_panel_unlocked, record_mistake,
)
from shopsim.models import Cognition, Staff
from shopsim.staffing import clamp, monthly_salary, quit_risk, salary_bounds, transfer_exp, weekly_staff_update


class TestCognition:
    def test_level_up_carries_the_remainder(self):
        cognition = apply_cognition_exp(Cognition(), 150)
        assert (cognition.level, cognition.exp, cognition.exp_to_next) == (1, 20, 260)
        assert cognition.total_exp == 150

    def test_several_levels_at_once(self):
        assert apply_cognition_exp(Cognition(), 130 + 260 + 10).level == 2

    def test_top_level_is_a_ceiling(self):
        cognition = apply_cognition_exp(Cognition(), 100000)
        assert cognition.level == 5
        assert cognition.exp_to_next is None
        assert apply_cognition_exp(cognition, 500).level == 5

    def test_each_mistake_teaches_once(self):
        cognition, gained = record_mistake(Cognition(), 'cash_flow_break')
        assert gained == 60
        cognition, gained = record_mistake(cognition, 'cash_flow_break')
        assert gained == 0
        assert cognition.mistake_history == ['cash_flow_break']

    def test_unknown_mistake_teaches_nothing(self):
        assert record_mistake(Cognition(), 'bad_luck') == (Cognition(), 0)


class TestFuzz:
    def test_every_figure_has_a_rule_per_level(self):
        assert all(len(levels) == 6 for levels in INFO_FUZZ_CONFIG.values())

    def test_hidden_figures(self):
        assert apply_fuzz(1234.0, 'net_profit', 0) is None
        assert fuzz_money(1234.0, 'daily_cash', 0) == 'unknown'

    def test_words_at_low_levels(self):
        assert apply_fuzz(50.0, 'exposure', 0) == 'some people know us'
        assert apply_fuzz(-50.0, 'exposure', 0) == 'not many know us'

    def test_ranges_then_exact(self):
        assert apply_fuzz(100.0, 'exposure', 2) == '80-120'
        assert apply_fuzz(100.0, 'exposure', 4) == '100'
        assert fuzz_money(-1000.0, 'net_profit', 3) == '-1,300--700'

    def test_percentages(self):
        assert fuzz_percent(0.5, 'fulfillment', 3) == '50%'
        assert fuzz_percent(0.5, 'fulfillment', 0) == 'we run out sometimes'

    def test_panels(self):
        assert is_panel_unlocked('staff', 0)
        assert not is_panel_unlocked('finance', 2)
        assert is_panel_unlocked('finance', 3)


class TestDiagnostics:
    def _stats(self, state, revenue=0.0, variable=0.0):
        return build_stats(revenue, variable, compute_fixed_cost(state))

    def test_setup_has_no_alerts(self, setup_state):
        assert diagnose_health(setup_state, self._stats(setup_state), None) == []

    def test_three_losing_weeks(self, opened_state):
        state = opened_state.model_copy(update={'profit_history': [-100.0, -200.0, -300.0], 'current_week': 3})
        alert = next(a for a in diagnose_health(state, self._stats(state), None) if a.id == 'chronic_loss')
        assert alert.severity == 'critical'
        # level 0 shows losses as words, never a number
        assert '600' not in alert.message

    def test_alert_figures_follow_cognition(self, opened_state):
        state = opened_state.model_copy(update={
            'profit_history': [-100.0, -200.0, -300.0],
            'cognition': opened_state.cognition.model_copy(update={'level': 4}),
        })
        alert = next(a for a in diagnose_health(state, self._stats(state), None) if a.id == 'chronic_loss')
        assert '(600)' in alert.message

    def test_cheap_menu_is_flagged(self, opened_state):
        state = opened_state.model_copy(update={'product_prices': {'milktea': 5.5, 'fruittea': 15.0}})
        ids = {a.id for a in diagnose_health(state, self._stats(state), None)}
        assert 'underpriced_milktea' in ids
        assert 'underpriced_fruittea' not in ids

    def test_wages_without_takings(self, opened_state):
        ids = {a.id for a in diagnose_health(opened_state, self._stats(opened_state), None)}
        assert 'staff_salary_exceeds_revenue' in ids
        assert 'low_exposure' in ids


def _staff(**changes):
    fields = dict(id='staff_1', name='Li Wei', type_id='fulltime', salary=4000.0, morale=70.0)
    fields.update(changes)
    return Staff(**fields)


class TestStaffing:
    def test_onboarding_ends_on_schedule(self):
        recruit = _staff(is_onboarding=True, onboarding_ends_week=3)
        assert weekly_staff_update(recruit, 2, 0.0) is recruit
        assert not weekly_staff_update(recruit, 3, 0.0).is_onboarding

    def test_long_hours_tire_people_out(self):
        rested = weekly_staff_update(_staff(work_days=5, work_hours=8), 1, 0.0)
        overworked = weekly_staff_update(_staff(work_days=7, work_hours=12), 1, 0.0)
        assert overworked.fatigue > rested.fatigue
        assert overworked.morale < rested.morale

    def test_everything_stays_in_bounds(self):
        member = _staff(morale=2.0, fatigue=99.0, work_days=7, work_hours=12)
        for week in range(1, 10):
            member = weekly_staff_update(member, week, -50000.0)
            assert 0.0 <= member.morale <= 100.0
            assert 0.0 <= member.fatigue <= 100.0
            assert 0.0 <= quit_risk(member) <= 1.0

    def test_salary_bounds_and_hourly_pay(self):
        lo, hi = salary_bounds('fulltime', 1.0)
        assert lo < monthly_salary('fulltime', 1.0) < hi
        assert monthly_salary('parttime', 1.0, days=5, hours=4) < monthly_salary('parttime', 1.0, days=6, hours=8)

    def test_task_exp_is_remembered(self):
        member = _staff(assigned_task='chef', task_exp=80.0)
        exp, memory = transfer_exp(member, 'waiter')
        assert memory['chef'] == 80.0
        back = member.model_copy(update={'assigned_task': 'waiter', 'task_exp': exp, 'task_exp_memory': memory})
        exp_back, _ = transfer_exp(back, 'chef')
        assert exp_back == 40.0

    @pytest.mark.parametrize("value, expected", [(-5, 0.0), (50, 50), (150, 100.0)])
    def test_clamp(self, value, expected):
        assert clamp(value) == expected
