# tests/test_market.py
"""Rings, nearby shops, supply/demand and the marketing helpers."""
import numpy as np
import pytest

from shopsim.engine import area_weekly_demand
from shopsim.marketing import (
    activity_decay, advance_activities, price_modifier, stop_penalty, weekly_marketing_cost,
)
from shopsim.mechanics import (
    allocate_supply, calculate_production_capacity, calculate_supply_demand, overlap_discount,
    weighted_competitors,
)
from shopsim.models import ActiveEventBuff, GameSettings, MarketingActivity
from shopsim.rings import (
    apply_seasonal_traffic_variation, assign_nearby_shops_to_consumer_rings, generate_consumer_rings,
)
from shopsim.shops import (
    check_shop_closing, generate_initial_shops, new_shop_probability, shop_rent_base, update_shop_prices,
    update_shop_profits,
)

from conftest import make_shop


class TestRings:
    def test_front_door_is_the_address_traffic(self):
        rings = generate_consumer_rings('school', 'school_gate', np.random.RandomState(1))
        assert rings['ring0'].base_traffic == round(2600 * 1.3) + round(500 * 1.3) + round(360 * 1.3) + round(120 * 1.3)
        assert rings['ring0'].base_conversion == 1.0
        assert rings['ring3'].base_conversion == 0.0

    def test_same_generator_same_rings(self):
        a = generate_consumer_rings('office', 'office_b1', np.random.RandomState(9))
        b = generate_consumer_rings('office', 'office_b1', np.random.RandomState(9))
        assert a == b

    def test_season_is_set_not_compounded(self):
        rings = generate_consumer_rings('school', 'school_gate', np.random.RandomState(1))
        once = apply_seasonal_traffic_variation(rings, 'summer')
        twice = apply_seasonal_traffic_variation(once, 'summer')
        assert once == twice

    def test_closing_shops_are_not_listed(self):
        rings = generate_consumer_rings('school', 'school_gate', np.random.RandomState(1))
        shops = [make_shop('a', ring='ring0'), make_shop('b', ring='ring1', is_closing=True),
                 make_shop('c', ring='ring3')]
        shops, rings = assign_nearby_shops_to_consumer_rings(shops, rings, np.random.RandomState(2))

        assert shops[2].ring in ('ring0', 'ring1', 'ring2')
        listed = [sid for ring in rings.values() for sid in ring.nearby_shop_ids]
        assert sorted(listed) == ['a', 'c']
        assert rings['ring0'].nearby_shop_ids[0] == 'a'


class TestShops:
    def test_initial_street_is_reproducible(self):
        rent = shop_rent_base('school', 'school_canteen')
        a = generate_initial_shops('school', 'school_canteen', rent, np.random.RandomState(4))
        b = generate_initial_shops('school', 'school_canteen', rent, np.random.RandomState(4))
        assert a == b
        assert a
        assert len({s.id for s in a}) == len(a)

    def test_rent_base(self):
        assert shop_rent_base('school', 'school_canteen') == pytest.approx(80.0 * 40 * 0.9)
        assert shop_rent_base(None, None) == 0.0

    def test_entry_slows_as_a_category_fills(self):
        assert new_shop_probability(0.08, 0) == pytest.approx(0.08)
        assert new_shop_probability(0.08, 3) == pytest.approx(0.04)

    def test_closing_shops_keep_their_prices(self):
        closing = make_shop('z', is_closing=True)
        open_shop = make_shop('y', price_volatility=0.2)
        updated = update_shop_prices([closing, open_shop], np.random.RandomState(3))
        assert updated[0] is closing
        assert all(p.price >= p.base_cost * 1.1 for p in updated[1].products)

    def test_losses_are_counted(self):
        shops = update_shop_profits([make_shop('a', monthly_rent=40000.0)], 0.0)
        assert shops[0].weekly_profit == pytest.approx(-10000.0)
        assert shops[0].loss_weeks == 1
        shops = update_shop_profits(shops, 100000.0)
        assert shops[0].loss_weeks == 0

    def test_new_shops_get_a_grace_period(self):
        settings = GameSettings()
        young = make_shop('young', opened_week=8, loss_weeks=9)
        shops, logs = check_shop_closing([young], 10, settings)
        assert not shops[0].is_closing
        assert logs == []

    def test_closing_threshold_follows_settings(self):
        settings = GameSettings(shop_closing_loss_weeks=6)
        shops, _ = check_shop_closing([make_shop('a', loss_weeks=5)], 20, settings)
        assert not shops[0].is_closing
        shops, _ = check_shop_closing([make_shop('a', loss_weeks=6)], 20, settings)
        assert shops[0].is_closing


class TestSupplyDemand:
    def test_is_pure(self, opened_state):
        assert calculate_supply_demand(opened_state) == calculate_supply_demand(opened_state)

    def test_nothing_is_negative(self, opened_state):
        for state in (opened_state,
                      opened_state.model_copy(update={'staff': []}),
                      opened_state.model_copy(update={'product_prices': {'milktea': 1.0, 'fruittea': 200.0}})):
            sd = calculate_supply_demand(state)
            for sale in sd.product_sales:
                assert sale.units_sold >= 0
                assert sale.revenue >= 0
                assert sale.units_sold <= min(sale.supply, sale.demand)
            assert 0.0 <= sd.fulfillment_rate <= 1.0

    def test_no_staff_no_output(self, opened_state):
        state = opened_state.model_copy(update={'staff': []})
        assert all(v == 0 for v in calculate_production_capacity(state, {}).values())
        assert calculate_supply_demand(state).total_sales == 0

    def test_supply_reduction_buff(self, opened_state):
        cut = opened_state.model_copy(update={'active_event_buffs': [
            ActiveEventBuff(type='supply_reduction', value=1.0, expires_week=5, source='test'),
        ]})
        assert calculate_supply_demand(cut).total_supply == 0

    def test_demand_multiplier_setting(self, opened_state):
        slump = opened_state.model_copy(update={'settings': GameSettings(demand_multiplier=0.0)})
        assert calculate_supply_demand(slump).total_demand == 0

    def test_closing_competitor_is_ignored(self, opened_state):
        state = opened_state.model_copy(update={'nearby_shops': [make_shop('gone', is_closing=True)]})
        assert weighted_competitors(state, 'ring0') == []

    def test_area_demand_skips_the_delivery_ring(self, opened_state):
        total = area_weekly_demand(opened_state)
        rings = {k: v for k, v in opened_state.consumer_rings.items() if k != 'ring3'}
        assert total == pytest.approx(area_weekly_demand(opened_state.model_copy(update={'consumer_rings': rings})))
        assert total > 0


@pytest.mark.parametrize("priority, expected", [
    ('dine_in_first', (80, 20)),
    ('delivery_first', (60, 40)),
    ('proportional', (67, 33)),
])
def test_allocate_supply(priority, expected):
    assert allocate_supply(100, 80, 40, priority) == expected


def test_allocate_supply_without_delivery():
    assert allocate_supply(50, 80, 0, 'delivery_first') == (50, 0)


def test_overlap_discount():
    assert [overlap_discount(n) for n in (1, 2, 3)] == [1.0, 0.7, 0.5]


class TestMarketing:
    def test_only_continuous_activities_bill_weekly(self):
        activities = [MarketingActivity(id='social_media', start_week=0),
                      MarketingActivity(id='local_ad', start_week=0)]
        assert weekly_marketing_cost(activities) == 2000.0

    def test_one_time_runs_retire(self):
        activities = [MarketingActivity(id='loyalty_day', start_week=0),
                      MarketingActivity(id='social_media', start_week=0)]
        assert [a.id for a in advance_activities(activities)] == ['social_media']

    def test_deepest_discount_wins(self):
        activities = [MarketingActivity(id='member_system', start_week=0),
                      MarketingActivity(id='flash_sale', start_week=0)]
        assert price_modifier(activities) == 0.5
        assert price_modifier([]) == 1.0

    def test_habits_fade_and_hurt_to_drop(self):
        assert activity_decay(4, 0.3) == 1.0
        assert activity_decay(100, 0.3) == 0.3
        assert stop_penalty(0.3, 40) == pytest.approx(0.3)
        assert stop_penalty(0.0, 40) == 0.0
