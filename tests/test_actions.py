# tests/test_actions.py
from typing import get_args

import numpy as np
import pytest

from shopsim.actions import Action, COUNTED_OPERATION_TYPES, HANDLERS, dispatch, parse_action
from shopsim.engine import create_initial_state
from shopsim.errors import InvalidAction, InvalidOption
from shopsim.models import PendingEvent
from shopsim.queries import compute_setup_cost

from conftest import SETUP_PLAN, apply_all


def with_level(state, level):
    return state.model_copy(update={'cognition': state.cognition.model_copy(update={'level': level})})


def with_pending(state, event_id):
    return state.model_copy(update={
        'pending_interactive_event': PendingEvent(event_id=event_id, offered_week=state.current_week,
                                                  description='test'),
    })


class TestParsing:
    def test_every_action_has_a_handler(self):
        union = get_args(Action)[0]
        tags = {record.model_fields['type'].default for record in get_args(union)}
        assert tags == set(HANDLERS)

    def test_dict_becomes_record(self):
        action = parse_action({'type': 'set_product_price', 'product_id': 'milktea', 'price': 14})
        assert action.type == 'set_product_price'
        assert action.price == 14.0
        assert parse_action(action) is action

    @pytest.mark.parametrize("raw", [
        {'type': 'sell_the_shop'},
        {'type': 'fire_staff'},
        {'type': 'next_week', 'force': True},
        {'type': 'staff_morale_action', 'action': 'party'},
        {'product_id': 'milktea'},
    ])
    def test_malformed_actions_raise(self, raw):
        with pytest.raises(InvalidAction):
            parse_action(raw)

    def test_non_dict_raises(self):
        with pytest.raises(InvalidAction):
            dispatch(create_initial_state(), 'next_week')


class TestSetup:
    def test_independent_brand(self, rng):
        state = dispatch(create_initial_state(), {'type': 'select_brand', 'brand_id': 'independent'}, rng).state
        assert 5 <= state.exposure <= 12
        assert state.reputation == 50.0
        assert state.cash == state.settings.initial_cash

    def test_franchise_brand_charges_the_fee(self, rng):
        state = dispatch(create_initial_state(), {'type': 'select_brand', 'brand_id': 'mixue'}, rng).state
        assert 35 <= state.exposure <= 55
        assert state.cash == state.settings.initial_cash - 150000.0
        assert state.total_investment == 150000.0

    def test_unknown_brand_is_rejected(self):
        assert not dispatch(create_initial_state(), {'type': 'select_brand', 'brand_id': 'nope'}).changed

    def test_address_builds_the_neighbourhood(self, rng):
        state = apply_all(create_initial_state(), SETUP_PLAN[:3], rng)
        assert set(state.consumer_rings) == {'ring0', 'ring1', 'ring2', 'ring3'}
        assert state.store_area == 15
        ring_ids = {sid for ring in state.consumer_rings.values() for sid in ring.nearby_shop_ids}
        assert ring_ids == {s.id for s in state.nearby_shops if not s.is_closing}

    def test_address_from_another_location_is_rejected(self, rng):
        state = apply_all(create_initial_state(), SETUP_PLAN[:2], rng)
        assert not dispatch(state, {'type': 'select_address', 'address_id': 'office_lobby'}, rng).changed

    def test_store_area_is_clamped(self, setup_state):
        assert dispatch(setup_state, {'type': 'set_store_area', 'area': 1000}).state.store_area == 300
        assert dispatch(setup_state, {'type': 'set_store_area', 'area': 3}).state.store_area == 15
        assert not dispatch(setup_state, {'type': 'set_store_area', 'area': 0}).changed

    def test_changing_decoration_refunds_the_old_one(self, setup_state):
        simple_cost = setup_state.decoration_cost_paid
        assert simple_cost == 500.0 * setup_state.store_area

        state = dispatch(setup_state, {'type': 'select_decoration', 'decoration_id': 'modern'}).state
        modern_cost = 1200.0 * setup_state.store_area
        assert state.cash == pytest.approx(setup_state.cash + simple_cost - modern_cost)
        assert state.total_investment == pytest.approx(setup_state.total_investment - simple_cost + modern_cost)

    def test_brand_limits_the_menu(self, setup_state, rng):
        state = dispatch(setup_state, {'type': 'select_brand', 'brand_id': 'mixue'}, rng).state
        assert state.selected_products == ['milktea', 'fruittea']
        assert not dispatch(state, {'type': 'toggle_product', 'product_id': 'burger'}).changed

    def test_cannot_open_without_staff(self, rng):
        state = apply_all(create_initial_state(), SETUP_PLAN[:6], rng)
        assert not dispatch(state, {'type': 'open_store'}, rng).changed

    def test_cannot_open_in_debt(self, setup_state, rng):
        broke = setup_state.model_copy(update={'cash': -1.0})
        result = dispatch(broke, {'type': 'open_store', 'season': 'spring'}, rng)
        assert not result.changed
        assert result.state is broke

    def test_open_store_stocks_and_charges(self, setup_state, rng):
        state = dispatch(setup_state, {'type': 'open_store', 'season': 'autumn'}, rng).state
        setup_cost = compute_setup_cost(setup_state)

        assert state.game_phase == 'operating'
        assert state.current_season == 'autumn'
        assert state.start_month == 10
        assert {pid: item.quantity for pid, item in state.inventory.items()} == {'milktea': 200, 'fruittea': 200}
        assert state.cash == pytest.approx(setup_state.cash - setup_cost - 200 * 5.0 - 200 * 6.0)
        assert state.total_investment == pytest.approx(setup_state.total_investment + setup_cost)
        assert not dispatch(state, {'type': 'open_store'}, rng).changed


class TestSetupEvents:
    def _drawn(self, state, action, seeds=range(40)):
        drawn = []
        for seed in seeds:
            pending = dispatch(state, action, np.random.RandomState(seed)).state.pending_interactive_event
            drawn.append(pending.event_id if pending else None)
        return drawn

    def test_location_can_draw_the_scam_call(self):
        state = dispatch(create_initial_state(), SETUP_PLAN[0], np.random.RandomState(0)).state
        drawn = self._drawn(state, SETUP_PLAN[1])
        assert 'location_teacher_scam' in drawn
        assert None in drawn
        assert set(drawn) <= {'location_teacher_scam', None}

    def test_independent_brand_draws_nothing(self):
        assert set(self._drawn(create_initial_state(), SETUP_PLAN[0])) == {None}

    def test_franchise_brand_can_draw_the_hotline(self):
        drawn = self._drawn(create_initial_state(), {'type': 'select_brand', 'brand_id': 'mixue'})
        assert 'search_hijack' in drawn
        assert 'showroom_trap' not in drawn

    def test_nothing_new_while_an_event_waits(self, setup_state):
        state = with_pending(setup_state, 'search_hijack')
        drawn = self._drawn(state, {'type': 'select_location', 'location_id': 'office'})
        assert set(drawn) == {'search_hijack'}

    def test_pending_event_blocks_opening_until_answered(self, setup_state, rng):
        state = with_pending(setup_state, 'location_teacher_scam')
        assert not dispatch(state, {'type': 'open_store', 'season': 'spring'}, rng).changed

        state = dispatch(state, {'type': 'respond_to_event', 'event_id': 'location_teacher_scam',
                                 'option_id': 'refuse_scam'}, rng).state
        assert state.pending_interactive_event is None
        assert state.cognition.total_exp == setup_state.cognition.total_exp + 20
        assert dispatch(state, {'type': 'open_store', 'season': 'spring'}, rng).changed


class TestStaff:
    def test_hiring_is_a_setup_action(self, opened_state):
        assert not dispatch(opened_state, {'type': 'add_staff', 'staff_type_id': 'fulltime'}).changed

    def test_recruits_start_onboarding(self, opened_state, rng):
        state = dispatch(opened_state, {'type': 'recruit_staff', 'channel_id': 'online_post',
                                        'staff_type_id': 'parttime', 'assigned_task': 'cleaner'}, rng).state
        recruit = state.staff[-1]
        assert recruit.id == 'staff_3'
        assert recruit.is_onboarding
        assert recruit.assigned_task == 'cleaner'
        assert state.cash == opened_state.cash - 200.0

    def test_fire_staff(self, opened_state):
        state = dispatch(opened_state, {'type': 'fire_staff', 'staff_id': 'staff_2'}).state
        assert [s.id for s in state.staff] == ['staff_1']
        assert state.staff[0].morale <= opened_state.staff[0].morale

    def test_task_must_fit_the_staff_type(self, opened_state):
        assert not dispatch(opened_state, {'type': 'assign_staff_task', 'staff_id': 'staff_2',
                                           'task': 'chef'}).changed
        state = dispatch(opened_state, {'type': 'assign_staff_task', 'staff_id': 'staff_1',
                                        'task': 'waiter'}).state
        assert state.get_staff('staff_1').assigned_task == 'waiter'
        assert state.get_staff('staff_1').is_transitioning

    def test_salary_needs_level_two(self, opened_state, rng):
        member = opened_state.get_staff('staff_1')
        action = {'type': 'set_staff_salary', 'staff_id': 'staff_1', 'salary': member.salary * 1.2}
        assert not dispatch(opened_state, action, rng).changed

        state = dispatch(with_level(opened_state, 2), action, rng).state
        raised = state.get_staff('staff_1')
        assert raised.salary > member.salary
        assert raised.salary_raise_boost > 0

    def test_hourly_staff_have_no_salary_to_set(self, opened_state):
        action = {'type': 'set_staff_salary', 'staff_id': 'staff_2', 'salary': 9000}
        assert not dispatch(with_level(opened_state, 2), action).changed

    def test_team_meal_cools_down(self, opened_state):
        state = with_level(opened_state, 1)
        first = dispatch(state, {'type': 'staff_morale_action', 'action': 'team_meal'})
        assert first.changed
        assert first.state.cash == state.cash - 400.0
        assert not dispatch(first.state, {'type': 'staff_morale_action', 'action': 'team_meal'}).changed

    def test_retaining_needs_someone_who_wants_to_leave(self, opened_state, rng):
        state = with_level(opened_state, 2)
        action = {'type': 'retain_staff', 'staff_id': 'staff_1', 'method': 'raise'}
        assert not dispatch(state, action, rng).changed

        member = state.get_staff('staff_1')
        leaving = state.model_copy(update={'staff': [
            s.model_copy(update={'wants_to_quit': True}) if s.id == 'staff_1' else s for s in state.staff
        ]})
        after = dispatch(leaving, action, rng).state
        assert after.get_staff('staff_1').salary == round(member.salary * 1.2)


class TestOperations:
    def test_last_product_stays_on_the_menu(self, opened_state):
        state = dispatch(opened_state, {'type': 'toggle_product', 'product_id': 'milktea'}).state
        assert 'milktea' not in state.inventory
        assert not dispatch(state, {'type': 'toggle_product', 'product_id': 'fruittea'}).changed

    def test_new_product_arrives_with_stock(self, opened_state):
        state = dispatch(opened_state, {'type': 'toggle_product', 'product_id': 'coffee'}).state
        assert state.inventory['coffee'].quantity == 75
        assert state.cash == pytest.approx(opened_state.cash - 75 * 7.0)

    def test_price_is_clamped(self, opened_state):
        state = dispatch(opened_state, {'type': 'set_product_price', 'product_id': 'milktea', 'price': 100}).state
        assert state.product_prices['milktea'] == 45.0
        assert not dispatch(opened_state, {'type': 'set_product_price', 'product_id': 'milktea',
                                           'price': 0}).changed
        assert not dispatch(opened_state, {'type': 'set_product_price', 'product_id': 'coffee',
                                           'price': 20}).changed

    def test_manual_stock_needs_level_one(self, opened_state):
        action = {'type': 'set_product_inventory', 'product_id': 'milktea', 'quantity': 300}
        assert not dispatch(opened_state, action).changed
        state = dispatch(with_level(opened_state, 1), action).state
        assert state.inventory['milktea'].quantity == 300
        assert state.cash == pytest.approx(opened_state.cash - 100 * 5.0)

    def test_marketing_start_and_stop(self, opened_state):
        state = dispatch(opened_state, {'type': 'start_marketing', 'activity_id': 'social_media'}).state
        assert [a.id for a in state.active_marketing_activities] == ['social_media']
        assert state.cash == opened_state.cash
        assert not dispatch(state, {'type': 'start_marketing', 'activity_id': 'social_media'}).changed

        stopped = dispatch(state, {'type': 'stop_marketing', 'activity_id': 'social_media'}).state
        assert stopped.active_marketing_activities == []
        assert not dispatch(stopped, {'type': 'stop_marketing', 'activity_id': 'social_media'}).changed

    def test_one_time_marketing_is_paid_up_front(self, opened_state):
        state = dispatch(opened_state, {'type': 'start_marketing', 'activity_id': 'local_ad'}).state
        assert state.cash == opened_state.cash - 6000.0
        assert state.last_activity_week['local_ad'] == 0

    def test_boss_action_toggles_back_to_supervising(self, opened_state):
        state = dispatch(opened_state, {'type': 'set_boss_action', 'action': 'count_traffic'}).state
        assert state.boss_action.current_action == 'count_traffic'
        state = dispatch(state, {'type': 'set_boss_action', 'action': 'count_traffic'}).state
        assert state.boss_action.current_action == 'supervise'
        assert not dispatch(opened_state, {'type': 'set_boss_action', 'action': 'industry_dinner'}).changed

    def test_supply_priority_must_change(self, opened_state):
        assert not dispatch(opened_state, {'type': 'set_supply_priority', 'priority': 'dine_in_first'}).changed
        state = dispatch(opened_state, {'type': 'set_supply_priority', 'priority': 'proportional'}).state
        assert state.supply_priority == 'proportional'

    def test_platform_settings_need_a_joined_platform(self, opened_state):
        action = {'type': 'set_discount_tier', 'platform_id': 'meituan', 'tier_id': 'none'}
        assert not dispatch(opened_state, action).changed

    def test_operations_are_counted(self, opened_state):
        state = opened_state.model_copy(update={'weeks_since_last_action': 3})
        state = dispatch(state, {'type': 'set_product_price', 'product_id': 'milktea', 'price': 13}).state
        assert state.weeks_since_last_action == 0
        assert state.cognition.weekly_operation_count == 1

        state = dispatch(state, {'type': 'toggle_product', 'product_id': 'coffee'}).state
        assert state.cognition.weekly_operation_count == 1
        assert 'toggle_product' not in COUNTED_OPERATION_TYPES


class TestEventsAndFlow:
    def test_responding_without_a_pending_event_is_refused(self, opened_state):
        result = dispatch(opened_state, {'type': 'respond_to_event', 'event_id': 'food_poisoning',
                                         'option_id': 'compensate'})
        assert not result.changed
        assert result.state is opened_state

    def test_responding_to_a_stale_event_is_refused(self, opened_state):
        state = with_pending(opened_state, 'overslept')
        result = dispatch(state, {'type': 'respond_to_event', 'event_id': 'food_poisoning',
                                  'option_id': 'compensate'})
        assert not result.changed
        assert result.state.pending_interactive_event.event_id == 'overslept'

    def test_unknown_option_raises(self, opened_state):
        state = with_pending(opened_state, 'food_poisoning')
        with pytest.raises(InvalidOption):
            dispatch(state, {'type': 'respond_to_event', 'event_id': 'food_poisoning', 'option_id': 'shrug'})

    def test_response_applies_and_clears(self, opened_state, rng):
        state = with_pending(opened_state, 'food_poisoning')
        result = dispatch(state, {'type': 'respond_to_event', 'event_id': 'food_poisoning',
                                  'option_id': 'compensate'}, rng)
        assert result.changed
        assert result.state.pending_interactive_event is None
        assert result.state.cash == state.cash - 8000.0
        assert result.state.last_event_response

    def test_notifications_are_acknowledged(self, opened_state, rng):
        state = with_pending(opened_state, 'overslept')
        with pytest.raises(InvalidOption):
            dispatch(state, {'type': 'respond_to_event', 'event_id': 'overslept', 'option_id': 'ignore'}, rng)
        result = dispatch(state, {'type': 'respond_to_event', 'event_id': 'overslept',
                                  'option_id': '__notification__'}, rng)
        assert result.state.pending_interactive_event is None

    def test_advisor_is_limited_per_week(self, opened_state):
        state = opened_state
        for _ in range(2):
            result = dispatch(state, {'type': 'consult_advisor'})
            assert result.changed
            state = result.state
        assert state.cash == opened_state.cash - 4000.0
        assert state.cognition.total_exp == opened_state.cognition.total_exp + 80
        assert not dispatch(state, {'type': 'consult_advisor'}).changed

    def test_clearing_needs_something_to_clear(self, opened_state, rng):
        assert not dispatch(opened_state, {'type': 'clear_weekly_summary'}).changed
        assert not dispatch(opened_state, {'type': 'clear_last_week_event'}).changed

        state = dispatch(opened_state, {'type': 'next_week'}, rng).state
        assert dispatch(state, {'type': 'clear_weekly_summary'}).state.weekly_summary is None

    def test_restart_keeps_seed_and_settings(self, opened_state):
        state = dispatch(opened_state, {'type': 'restart'}).state
        assert state == create_initial_state(opened_state.seed, opened_state.settings)

    def test_rejection_hands_back_the_same_object(self, opened_state):
        rng = np.random.RandomState(0)
        result = dispatch(opened_state, {'type': 'leave_platform', 'platform_id': 'meituan'}, rng)
        assert result.state is opened_state
        assert not result.changed
