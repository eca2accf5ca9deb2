# tests/conftest.py
import numpy as np
import pytest

from shopsim.actions import dispatch
from shopsim.engine import create_initial_state
from shopsim.models import NearbyShop, NearbyShopProduct
from shopsim.scenarios import event_options

SETUP_PLAN = [
    {'type': 'select_brand', 'brand_id': 'independent'},
    {'type': 'select_location', 'location_id': 'school'},
    {'type': 'select_address', 'address_id': 'school_canteen'},
    {'type': 'select_decoration', 'decoration_id': 'simple'},
    {'type': 'toggle_product', 'product_id': 'milktea'},
    {'type': 'toggle_product', 'product_id': 'fruittea'},
    {'type': 'add_staff', 'staff_type_id': 'fulltime', 'assigned_task': 'chef'},
    {'type': 'add_staff', 'staff_type_id': 'parttime', 'assigned_task': 'waiter'},
]


def answer_pending(state, rng=None):
    """Takes the first option of the pending event, if any."""
    pending = state.pending_interactive_event
    if pending is None:
        return state
    option = event_options(pending.event_id)[0]
    return dispatch(state, {'type': 'respond_to_event', 'event_id': pending.event_id,
                            'option_id': option}, rng).state


def apply_all(state, actions, rng=None):
    """Applies `actions` in order. Setup events are answered as they come up."""
    for action in actions:
        result = dispatch(state, action, rng)
        assert result.changed, f"{action['type']} was refused"
        state = result.state
        if state.game_phase == 'setup':
            state = answer_pending(state, rng)
    return state


def make_shop(shop_id='shop_x', ring='ring0', category='drink', **overrides):
    fields = dict(
        id=shop_id,
        name=f"Test Shop {shop_id}",
        shop_category=category,
        brand_type='independent',
        brand_tier='standard',
        ring=ring,
        exposure=60.0,
        service_quality=0.8,
        decoration_level=2,
        has_delivery=True,
        products=[NearbyShopProduct(name='Tea', category=category, sub_type='cold_drink', price=12.0,
                                    base_cost=4.0, quality=60, appeal=70)],
        price_volatility=0.05,
        monthly_rent=6000.0,
    )
    fields.update(overrides)
    return NearbyShop(**fields)


@pytest.fixture
def rng():
    return np.random.RandomState(7)


@pytest.fixture
def setup_state(rng):
    return apply_all(create_initial_state(seed=7), SETUP_PLAN, rng)


@pytest.fixture
def opened_state(setup_state, rng):
    return apply_all(setup_state, [{'type': 'open_store', 'season': 'spring'}], rng)
