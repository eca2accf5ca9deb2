# tests/test_queries.py
"""Read-only projections, scenario files and the CLI driver."""
import json

import pytest
from colorama import Fore, Style

import main
from shopsim.actions import dispatch
from shopsim.engine import create_initial_state
from shopsim.models import PendingEvent
from shopsim.queries import (
    compute_can_open, compute_current_stats, compute_game_result, compute_setup_cost, get_available_actions,
)
from shopsim.scenarios import (
    SCENARIO_DEFINITIONS, RunRecorder, ShopEnv, create_observation, event_options, generate_scenarios,
    load_settings,
)

from conftest import SETUP_PLAN, apply_all


class TestQueries:
    def test_can_open_lists_what_is_missing(self, rng):
        ready, missing = compute_can_open(create_initial_state())
        assert not ready
        assert missing == ['brand', 'location', 'address', 'decoration', 'products', 'staff']

        state = apply_all(create_initial_state(), SETUP_PLAN[:6], rng)
        assert compute_can_open(state) == (False, ['staff'])

    def test_can_open_when_complete(self, setup_state, opened_state):
        assert compute_can_open(setup_state) == (True, [])
        assert not compute_can_open(opened_state)[0]

    def test_can_open_needs_cash_and_an_answer(self, setup_state):
        assert compute_can_open(setup_state.model_copy(update={'cash': -0.01})) == (False, ['cash'])
        waiting = setup_state.model_copy(update={
            'pending_interactive_event': PendingEvent(event_id='search_hijack', offered_week=0, description='x'),
        })
        assert compute_can_open(waiting) == (False, ['event response'])
        assert 'respond_to_event' in get_available_actions(waiting)

    def test_setup_cost(self, setup_state):
        monthly_rent = 80.0 * 15 * 0.9
        assert compute_setup_cost(setup_state) == pytest.approx(5000 + 18000 + 8000 + monthly_rent * 3)

    def test_current_stats_leave_the_state_alone(self, opened_state):
        before = opened_state.model_dump()
        stats = compute_current_stats(opened_state)
        assert opened_state.model_dump() == before
        assert stats.profit == pytest.approx(stats.revenue - stats.variable_cost - stats.fixed_cost)
        assert stats.fixed_cost == stats.fixed_cost_breakdown.total

    def test_game_result(self, opened_state):
        state = opened_state.model_copy(update={
            'game_phase': 'ended', 'game_over_reason': 'time_limit', 'current_week': 52,
            'cumulative_profit': opened_state.total_investment / 2,
        })
        result = compute_game_result(state)
        assert not result.is_win
        assert result.roi == pytest.approx(0.5)
        assert not result.meets_return
        assert result.weeks_played == 52

    def test_available_actions_follow_the_phase(self, setup_state, opened_state):
        assert 'open_store' in get_available_actions(setup_state)
        assert 'next_week' not in get_available_actions(setup_state)
        assert 'respond_to_event' not in get_available_actions(setup_state)
        assert 'respond_to_event' not in get_available_actions(opened_state)
        ended = opened_state.model_copy(update={'game_phase': 'ended'})
        assert get_available_actions(ended) == ['restart']


class TestScenarios:
    def test_files_round_trip(self, tmp_path):
        paths = generate_scenarios(str(tmp_path / 'scenarios'))
        assert len(paths) == len(SCENARIO_DEFINITIONS)
        with open(paths[1]) as f:
            assert json.load(f)['config_overrides'] == {'demand_multiplier': 0.75}

    def test_overrides_and_unknown_keys(self):
        settings = load_settings({'total_weeks': 26, 'win_streak': 4, 'weather': 'rainy'})
        assert settings.total_weeks == 26
        assert settings.win_streak == 4
        assert settings.initial_cash == 400000.0

    def test_env_applies_the_scenario(self, tmp_path):
        paths = generate_scenarios(str(tmp_path))
        env = ShopEnv(paths[3])
        assert env.seed == 303
        assert env.state.cash == 150000.0
        for action in SETUP_PLAN + [{'type': 'open_store', 'season': 'winter'}]:
            for answer in main.answer_event(env.observation()):
                assert env.step(answer).changed
            assert env.step(action).changed
        assert not env.done

    def test_observation_respects_cognition(self, opened_state):
        obs = create_observation(opened_state)
        assert obs['cash_display'] == 'unknown'
        assert obs['profit_display'] is None
        assert obs['inventory'] == {'milktea': 200, 'fruittea': 200}
        assert [s['id'] for s in obs['staff']] == ['staff_1', 'staff_2']

    def test_event_options(self):
        assert event_options('overslept') == ['__notification__']
        assert event_options('food_poisoning') == ['compensate', 'deny']
        assert event_options('nope') == []

    def test_recorder(self, opened_state, rng):
        recorder = RunRecorder('S-01')
        assert recorder.classify_strategy() == 'Unknown'
        recorder.record_action('fire_staff', False)
        state = dispatch(opened_state, {'type': 'next_week'}, rng).state
        recorder.record_week(state)
        report = recorder.generate_report(state)
        assert report['weeks'] == 1
        assert report['rejected_actions'] == 1
        assert report['strategy'] == 'Hands Off'


def test_cli_runs_a_short_scenario(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    main.generate_scenarios()
    outcome, report = main.run_simulation('S-06', agent_func=main.steady_agent)

    assert outcome.reason in ('win', 'bankrupt', 'time_limit')
    assert 1 <= outcome.weeks_played <= 26
    assert report['weeks'] == outcome.weeks_played


def test_baseline_cells_line_up():
    won = compute_game_result(create_initial_state().model_copy(update={
        'game_phase': 'ended', 'game_over_reason': 'win', 'cumulative_profit': 123456.0,
    }))
    lost = compute_game_result(create_initial_state().model_copy(update={
        'game_phase': 'ended', 'game_over_reason': 'bankrupt', 'cumulative_profit': -5.0,
    }))
    for outcome, color in ((won, Fore.GREEN), (lost, Fore.RED)):
        cell = main.result_cell(outcome)
        assert cell.startswith(color) and cell.endswith(Style.RESET_ALL)
        assert len(cell) - len(color) - len(Style.RESET_ALL) == 22
