# tests/test_engine.py
import pytest

from shopsim.actions import dispatch
from shopsim.engine import (
    check_terminal, compute_fixed_cost, create_initial_state, derive_rng, month_for_week, season_for_month,
    weekly_tick,
)
from shopsim.events import offer_event
from shopsim.event_catalog import EVENTS_BY_ID
from shopsim.models import GameSettings


def test_initial_state_uses_settings():
    settings = GameSettings(initial_cash=150000.0, total_weeks=26)
    state = create_initial_state(seed=3, settings=settings)
    assert state.cash == 150000.0
    assert state.total_weeks == 26
    assert state.game_phase == 'setup'
    assert state.seed == 3


def test_derive_rng_moves_the_step_on():
    state = create_initial_state(seed=5)
    rng_a, after = derive_rng(state)
    rng_b, _ = derive_rng(state)
    assert after.rng_step == state.rng_step + 1
    assert rng_a.randint(1000000) == rng_b.randint(1000000)


@pytest.mark.parametrize("start, week, month", [(4, 0, 4), (4, 3, 4), (4, 4, 5), (11, 8, 1), (12, 48, 12), (12, 52, 1)])
def test_month_for_week(start, week, month):
    assert month_for_week(start, week) == month


@pytest.mark.parametrize("month, season", [(3, 'spring'), (6, 'summer'), (11, 'autumn'), (12, 'winter'), (2, 'winter')])
def test_season_for_month(month, season):
    assert season_for_month(month) == season


def test_week_counter_moves_one_at_a_time(opened_state, rng):
    state = opened_state
    for expected in range(1, 9):
        if state.game_phase == 'ended':
            break
        state = dispatch(state, {'type': 'next_week'}, rng).state
        assert state.current_week == expected
        assert state.weekly_summary.week == expected


def test_streak_follows_weekly_profit(opened_state, rng):
    state = opened_state
    for _ in range(8):
        if state.game_phase == 'ended':
            break
        before = state.consecutive_profits
        state = weekly_tick(state, rng)
        profit = state.profit_history[-1]
        assert state.consecutive_profits == (before + 1 if profit > 0 else 0)


def test_ended_game_does_not_move(opened_state, rng):
    ended = opened_state.model_copy(update={'game_phase': 'ended', 'game_over_reason': 'time_limit'})
    assert weekly_tick(ended, rng) is ended

    result = dispatch(ended, {'type': 'next_week'}, rng)
    assert not result.changed
    assert result.state is ended

    restarted = dispatch(ended, {'type': 'restart'}, rng)
    assert restarted.changed
    assert restarted.state.game_phase == 'setup'
    assert restarted.state.seed == ended.seed


def test_setup_state_is_not_ticked(setup_state, rng):
    assert weekly_tick(setup_state, rng) is setup_state
    assert not dispatch(setup_state, {'type': 'next_week'}, rng).changed


def test_pending_event_is_never_replaced(opened_state, rng):
    state = offer_event(opened_state, EVENTS_BY_ID['food_poisoning'])
    for _ in range(10):
        if state.game_phase == 'ended':
            break
        state = weekly_tick(state, rng)
        assert state.pending_interactive_event.event_id == 'food_poisoning'


def test_log_history_is_tagged_by_week(opened_state, rng):
    state = weekly_tick(weekly_tick(opened_state, rng), rng)
    assert state.log_history
    assert all(line.startswith('[W1] ') or line.startswith('[W2] ') for line in state.log_history)
    assert any(line.startswith('FINANCE:') for line in state.weekly_summary.logs)


def test_tourist_rent_follows_the_season():
    base = create_initial_state().model_copy(update={
        'selected_location': 'tourist', 'store_area': 40,
    })
    summer = compute_fixed_cost(base.model_copy(update={'current_season': 'summer'}))
    winter = compute_fixed_cost(base.model_copy(update={'current_season': 'winter'}))
    spring = compute_fixed_cost(base.model_copy(update={'current_season': 'spring'}))
    assert winter.rent == pytest.approx(summer.rent * 0.75)
    assert spring.rent == pytest.approx(summer.rent * 0.85)
    assert summer.total == pytest.approx(summer.rent + summer.salary + summer.utilities + summer.marketing
                                         + summer.depreciation + summer.promotion)


class TestCheckTerminal:
    def _state(self, **changes):
        state = create_initial_state().model_copy(update={
            'game_phase': 'operating', 'total_investment': 100000.0, 'current_week': 10,
        })
        return state.model_copy(update=changes)

    def test_still_running(self):
        assert check_terminal(self._state(cash=5000.0)) is None

    def test_bankrupt_beats_time_limit(self):
        assert check_terminal(self._state(cash=-1.0, current_week=52)) == 'bankrupt'

    def test_negative_cash_with_a_streak_survives(self):
        assert check_terminal(self._state(cash=-1.0, consecutive_profits=2)) is None

    def test_win_needs_every_condition(self):
        winning = dict(consecutive_profits=6, cumulative_profit=100000.0, exposure=40.0, reputation=60.0)
        assert check_terminal(self._state(**winning)) == 'win'
        assert check_terminal(self._state(**{**winning, 'reputation': 50.0})) is None
        assert check_terminal(self._state(**{**winning, 'cumulative_profit': 99999.0})) is None
        assert check_terminal(self._state(**{**winning, 'consecutive_profits': 5})) is None

    def test_time_limit(self):
        assert check_terminal(self._state(current_week=52)) == 'time_limit'
