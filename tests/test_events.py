# tests/test_events.py
import numpy as np
import pytest

from shopsim.errors import InvalidOption
from shopsim.event_catalog import EVENTS_BY_ID, INTERACTIVE_EVENTS
from shopsim.events import (
    NOTIFICATION_OPTION, apply_event_effects, expire_buffs, is_notification, offer_event,
    resolve_chain_events, resolve_delayed_effects, roll_interactive_event,
)
from shopsim.models import ActiveEventBuff, DelayedEffect, EventEffects, PendingChainEvent


def test_catalog_is_consistent():
    ids = [e.id for e in INTERACTIVE_EVENTS]
    assert len(ids) == len(set(ids)) == len(EVENTS_BY_ID)
    for event in INTERACTIVE_EVENTS:
        assert event.options or is_notification(event), event.id
        for option in event.options:
            chain = option.effects.chain_event
            if chain is not None:
                assert EVENTS_BY_ID[chain.event_id].chain_only


def test_offer_keeps_the_first_event(opened_state):
    state = offer_event(opened_state, EVENTS_BY_ID['food_poisoning'])
    assert offer_event(state, EVENTS_BY_ID['overslept']) is state
    assert state.interactive_event_history == opened_state.interactive_event_history + ['food_poisoning']
    assert state.pending_interactive_event.description


def test_roll_is_a_no_op_while_an_event_is_pending(opened_state):
    state = offer_event(opened_state, EVENTS_BY_ID['food_poisoning'])
    assert roll_interactive_event(state, np.random.RandomState(0)) is None


def test_chain_only_events_are_never_rolled(opened_state):
    state = opened_state.model_copy(update={'current_week': 10, 'cleanliness': 10.0})
    rng = np.random.RandomState(0)
    for _ in range(50):
        event = roll_interactive_event(state, rng)
        assert event is None or not event.chain_only


def test_first_event_is_guaranteed_from_week_five(opened_state):
    state = opened_state.model_copy(update={'current_week': 5, 'cleanliness': 10.0,
                                           'interactive_event_history': []})
    for seed in range(10):
        assert roll_interactive_event(state, np.random.RandomState(seed)) is not None


def test_blaming_the_cook_schedules_a_follow_up(opened_state, rng):
    state = opened_state.model_copy(update={'current_week': 4})
    state, response = apply_event_effects(state, 'kitchen_hygiene_scandal', 'blame_employee', rng)

    assert response
    assert all(s.assigned_task != 'chef' for s in state.staff)
    assert state.reputation == max(0.0, opened_state.reputation - 20)
    chain = state.pending_chain_events[0]
    assert (chain.event_id, chain.trigger_at_week) == ('food_poisoning', 7)


def test_unknown_event_or_option(opened_state, rng):
    with pytest.raises(InvalidOption):
        apply_event_effects(opened_state, 'alien_visit', 'hide', rng)
    with pytest.raises(InvalidOption):
        apply_event_effects(opened_state, 'food_poisoning', NOTIFICATION_OPTION, rng)


def test_promise_later_comes_due(opened_state, rng):
    state = opened_state.model_copy(update={'current_week': 4})
    state, _ = apply_event_effects(state, 'staff_raise_request', 'promise_later', rng)
    assert state.pending_delayed_effects[0].execute_at_week == 8

    before = [s.morale for s in state.staff]
    unchanged, logs = resolve_delayed_effects(state, 7, rng)
    assert unchanged is state and logs == []

    state, logs = resolve_delayed_effects(state, 8, rng)
    assert state.pending_delayed_effects == []
    assert logs == ['EVENT: The promised raise never came.']
    assert [s.morale for s in state.staff] == [max(0.0, m - 10) for m in before]


def test_delayed_effects_run_in_order(opened_state, rng):
    state = opened_state.model_copy(update={'pending_delayed_effects': [
        DelayedEffect(execute_at_week=2, effects=EventEffects(cash=-100.0), source_event_id='a'),
        DelayedEffect(execute_at_week=9, effects=EventEffects(cash=-100.0), source_event_id='b'),
    ]})
    state, logs = resolve_delayed_effects(state, 3, rng)
    assert state.cash == opened_state.cash - 100.0
    assert [d.source_event_id for d in state.pending_delayed_effects] == ['b']
    assert len(logs) == 1


def test_due_chain_event_is_offered(opened_state, rng):
    state = opened_state.model_copy(update={'pending_chain_events': [
        PendingChainEvent(event_id='food_poisoning', trigger_at_week=3, probability=1.0),
    ]})
    state, logs = resolve_chain_events(state, 3, rng)
    assert state.pending_interactive_event.event_id == 'food_poisoning'
    assert state.pending_chain_events == []
    assert logs


def test_chain_event_waits_behind_a_pending_one(opened_state, rng):
    state = offer_event(opened_state, EVENTS_BY_ID['overslept']).model_copy(update={'pending_chain_events': [
        PendingChainEvent(event_id='food_poisoning', trigger_at_week=3, probability=1.0),
    ]})
    state, _ = resolve_chain_events(state, 3, rng)
    assert state.pending_interactive_event.event_id == 'overslept'


def test_buffs_expire_after_their_last_week(opened_state):
    state = opened_state.model_copy(update={'active_event_buffs': [
        ActiveEventBuff(type='demand_boost', value=0.2, expires_week=4, source='x'),
        ActiveEventBuff(type='cost_multiplier', value=0.1, expires_week=6, source='y'),
    ]})
    assert expire_buffs(state, 4) is state
    assert [b.source for b in expire_buffs(state, 5).active_event_buffs] == ['y']


def test_event_buffs_count_from_the_response_week(opened_state, rng):
    state = opened_state.model_copy(update={'current_week': 5})
    state, _ = apply_event_effects(state, 'food_poisoning', 'deny', rng)
    buff = state.active_event_buffs[0]
    assert (buff.type, buff.value, buff.expires_week) == ('demand_boost', -0.2, 8)


def test_setup_events_wait_for_their_step(setup_state):
    rng = np.random.RandomState(0)
    fresh = setup_state.model_copy(update={'interactive_event_history': []})
    for _ in range(30):
        assert roll_interactive_event(fresh, rng) is None
        event = roll_interactive_event(fresh, rng, 'select_location')
        assert event is None or event.id == 'location_teacher_scam'
        assert roll_interactive_event(fresh, rng, 'select_brand') is None


def test_setup_events_stay_out_of_the_operating_roll(opened_state):
    state = opened_state.model_copy(update={'current_week': 10, 'cleanliness': 10.0})
    rng = np.random.RandomState(1)
    for _ in range(50):
        event = roll_interactive_event(state, rng)
        assert event is None or event.phase == 'operating'


def test_paying_the_location_expert_has_a_sequel(setup_state, rng):
    state, _ = apply_event_effects(setup_state, 'location_teacher_scam', 'pay_info_fee', rng)
    assert state.cash == setup_state.cash - 20000.0
    chain = state.pending_chain_events[-1]
    assert (chain.event_id, chain.trigger_at_week, chain.probability) == ('expert_vanished', 1, 0.8)
    assert is_notification(EVENTS_BY_ID['expert_vanished'])


def test_trusting_the_showroom_hurts_for_four_weeks(setup_state, rng):
    state, _ = apply_event_effects(setup_state, 'showroom_trap', 'trust_brand', rng)
    buff = state.active_event_buffs[-1]
    assert (buff.type, buff.value, buff.expires_week) == ('reputation_weekly', -1.0, 4)
    assert state.cash == setup_state.cash - 3000.0
