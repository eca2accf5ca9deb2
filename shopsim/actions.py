# shopsim/actions.py
"""
Every player input goes through dispatch(). Actions are pydantic records
tagged by `type`; a raw dict is validated against the union first.

A handler returns the new state, or None when the game rules refuse the
action. Refusals hand back the caller's own state object with changed=False.
Structural mistakes (unknown tag, bad payload, an option the pending event
does not have) raise instead.
"""
import math
import numpy as np
from typing import Annotated, Any, Callable, Dict, Literal, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .config import *
from .catalog import (
    BOSS_ACTIONS, BRANDS, DECORATIONS, DELIVERY_PLATFORMS, DELIVERY_PRICING, DISCOUNT_TIERS, LOCATIONS,
    PACKAGING_TIERS, PRODUCTS, PROMOTION_TIERS, SEASON_START_MONTH, brand_kind, get_address,
)
from .engine import (
    apply_season, create_initial_state, derive_rng, month_for_week, season_for_month, TickContext, weekly_tick,
)
from .errors import InvalidAction
from .events import apply_event_effects, offer_event, roll_interactive_event
from .fuzz import apply_cognition_exp
from .marketing import MARKETING_ACTIVITIES, exposure_floor, seed_growth, stop_penalty
from .mechanics import supply_cost_modifier
from .models import ActivePlatform, GameState, InventoryItem, MarketingActivity, Season
from .queries import compute_can_open, compute_setup_cost
from .rings import assign_nearby_shops_to_consumer_rings, generate_consumer_rings
from .shops import generate_initial_shops, shop_rent_base
from .staffing import (
    MORALE_ACTIONS, RECRUITMENT_CHANNELS, RETENTION, SALARY_CONFIG, STAFF_TYPES, TASKS, TRANSITION,
    WORK_DAYS_RANGE, WORK_HOURS_RANGE, clamp, fire_morale_penalty, make_staff, monthly_salary,
    salary_bounds, salary_change_morale, transfer_exp,
)


class ActionBase(BaseModel):
    model_config = ConfigDict(extra='forbid', frozen=True)


# --- Setup ---

class SelectBrand(ActionBase):
    type: Literal['select_brand'] = 'select_brand'
    brand_id: Optional[str]


class SelectLocation(ActionBase):
    type: Literal['select_location'] = 'select_location'
    location_id: Optional[str]


class SelectAddress(ActionBase):
    type: Literal['select_address'] = 'select_address'
    address_id: Optional[str]


class SetStoreArea(ActionBase):
    type: Literal['set_store_area'] = 'set_store_area'
    area: float


class SelectDecoration(ActionBase):
    type: Literal['select_decoration'] = 'select_decoration'
    decoration_id: Optional[str]


class ToggleProduct(ActionBase):
    type: Literal['toggle_product'] = 'toggle_product'
    product_id: str


class OpenStore(ActionBase):
    type: Literal['open_store'] = 'open_store'
    season: Optional[Season] = None


# --- Staff ---

class AddStaff(ActionBase):
    type: Literal['add_staff'] = 'add_staff'
    staff_type_id: str
    assigned_task: Optional[str] = None


class FireStaff(ActionBase):
    type: Literal['fire_staff'] = 'fire_staff'
    staff_id: str


class RecruitStaff(ActionBase):
    type: Literal['recruit_staff'] = 'recruit_staff'
    channel_id: str
    staff_type_id: str
    assigned_task: Optional[str] = None


class AssignStaffTask(ActionBase):
    type: Literal['assign_staff_task'] = 'assign_staff_task'
    staff_id: str
    task: str


class SetStaffWorkHours(ActionBase):
    type: Literal['set_staff_work_hours'] = 'set_staff_work_hours'
    staff_id: str
    days: int
    hours: int


class SetStaffSalary(ActionBase):
    type: Literal['set_staff_salary'] = 'set_staff_salary'
    staff_id: str
    salary: float


class StaffMoraleAction(ActionBase):
    type: Literal['staff_morale_action'] = 'staff_morale_action'
    action: Literal['bonus', 'team_meal', 'day_off']
    staff_id: Optional[str] = None
    bonus_amount: Optional[float] = None


class RetainStaff(ActionBase):
    type: Literal['retain_staff'] = 'retain_staff'
    staff_id: str
    method: Literal['raise', 'reduce_hours', 'bonus']


class SetStaffFocusProduct(ActionBase):
    type: Literal['set_staff_focus_product'] = 'set_staff_focus_product'
    staff_id: str
    product_id: Optional[str]


# --- Delivery ---

class JoinPlatform(ActionBase):
    type: Literal['join_platform'] = 'join_platform'
    platform_id: str


class LeavePlatform(ActionBase):
    type: Literal['leave_platform'] = 'leave_platform'
    platform_id: str


class TogglePromotion(ActionBase):
    type: Literal['toggle_promotion'] = 'toggle_promotion'
    platform_id: str
    tier_index: int


class SetDiscountTier(ActionBase):
    type: Literal['set_discount_tier'] = 'set_discount_tier'
    platform_id: str
    tier_id: str


class SetDeliveryPricing(ActionBase):
    type: Literal['set_delivery_pricing'] = 'set_delivery_pricing'
    platform_id: str
    pricing_id: str


class SetPackagingTier(ActionBase):
    type: Literal['set_packaging_tier'] = 'set_packaging_tier'
    platform_id: str
    tier_id: str


class SetSupplyPriority(ActionBase):
    type: Literal['set_supply_priority'] = 'set_supply_priority'
    priority: Literal['dine_in_first', 'delivery_first', 'proportional']


# --- Marketing, pricing, stock ---

class StartMarketing(ActionBase):
    type: Literal['start_marketing'] = 'start_marketing'
    activity_id: str


class StopMarketing(ActionBase):
    type: Literal['stop_marketing'] = 'stop_marketing'
    activity_id: str


class SetProductPrice(ActionBase):
    type: Literal['set_product_price'] = 'set_product_price'
    product_id: str
    price: float


class SetProductInventory(ActionBase):
    type: Literal['set_product_inventory'] = 'set_product_inventory'
    product_id: str
    quantity: int


class SetRestockStrategy(ActionBase):
    type: Literal['set_restock_strategy'] = 'set_restock_strategy'
    product_id: str
    strategy: Literal['manual', 'auto_conservative', 'auto_standard', 'auto_aggressive']


# --- Week flow ---

class SetBossAction(ActionBase):
    type: Literal['set_boss_action'] = 'set_boss_action'
    action: str
    role: Optional[str] = None
    shop_id: Optional[str] = None


class RespondToEvent(ActionBase):
    type: Literal['respond_to_event'] = 'respond_to_event'
    event_id: str
    option_id: str


class NextWeek(ActionBase):
    type: Literal['next_week'] = 'next_week'


class ConsultAdvisor(ActionBase):
    type: Literal['consult_advisor'] = 'consult_advisor'


class Restart(ActionBase):
    type: Literal['restart'] = 'restart'


class ClearWeeklySummary(ActionBase):
    type: Literal['clear_weekly_summary'] = 'clear_weekly_summary'


class ClearLastWeekEvent(ActionBase):
    type: Literal['clear_last_week_event'] = 'clear_last_week_event'


Action = Annotated[Union[
    SelectBrand, SelectLocation, SelectAddress, SetStoreArea, SelectDecoration, ToggleProduct, OpenStore,
    AddStaff, FireStaff, RecruitStaff, AssignStaffTask, SetStaffWorkHours, SetStaffSalary,
    StaffMoraleAction, RetainStaff, SetStaffFocusProduct,
    JoinPlatform, LeavePlatform, TogglePromotion, SetDiscountTier, SetDeliveryPricing, SetPackagingTier,
    SetSupplyPriority,
    StartMarketing, StopMarketing, SetProductPrice, SetProductInventory, SetRestockStrategy,
    SetBossAction, RespondToEvent, NextWeek, ConsultAdvisor, Restart, ClearWeeklySummary, ClearLastWeekEvent,
], Field(discriminator='type')]

ACTION_ADAPTER = TypeAdapter(Action)

# Successful actions of these kinds count as the owner being active this week
ACTIVE_OPERATION_TYPES = {
    'fire_staff', 'recruit_staff', 'join_platform', 'leave_platform', 'toggle_promotion',
    'set_discount_tier', 'set_delivery_pricing', 'set_packaging_tier', 'start_marketing', 'stop_marketing',
    'set_product_price', 'set_product_inventory', 'set_restock_strategy', 'assign_staff_task',
    'set_staff_work_hours', 'toggle_product', 'consult_advisor', 'set_staff_salary', 'staff_morale_action',
    'retain_staff', 'set_staff_focus_product', 'respond_to_event', 'set_boss_action', 'set_supply_priority',
}
# ...and these also feed the weekly operations exp
COUNTED_OPERATION_TYPES = ACTIVE_OPERATION_TYPES - {
    'toggle_product', 'consult_advisor', 'respond_to_event', 'set_supply_priority',
}


class DispatchResult(NamedTuple):
    state: GameState
    changed: bool


def parse_action(action: Union[BaseModel, Dict[str, Any]]) -> BaseModel:
    if isinstance(action, ActionBase):
        return action
    if not isinstance(action, dict):
        raise InvalidAction(f"expected an action record or dict, got {type(action).__name__}")
    try:
        return ACTION_ADAPTER.validate_python(action)
    except ValidationError as e:
        raise InvalidAction(f"malformed action {action.get('type')!r}: {e}") from e


def _random(state: GameState, rng: Optional[np.random.RandomState]):
    """The injected generator, or one derived from the state (which then moves on a step)."""
    if rng is not None:
        return rng, state
    return derive_rng(state)


def _wage_level(state: GameState) -> float:
    location = LOCATIONS.get(state.selected_location or '')
    return location['wage_level'] if location else 1.0


def _replace_staff(state: GameState, staff_id: str, **changes) -> GameState:
    return state.model_copy(update={
        'staff': [s.model_copy(update=changes) if s.id == staff_id else s for s in state.staff]
    })


def _replace_platform(state: GameState, platform_id: str, **changes) -> GameState:
    return state.model_copy(update={
        'active_platforms': [p.model_copy(update=changes) if p.platform_id == platform_id else p
                             for p in state.active_platforms]
    })


def _new_staff_id(state: GameState):
    seq = state.staff_seq + 1
    return f"staff_{seq}", seq


def _roll_setup_event(state: GameState, rng, setup_step: str) -> GameState:
    """Picking a brand or a location can draw one of the setup events."""
    if state.pending_interactive_event is not None:
        return state
    rng, state = _random(state, rng)
    event = roll_interactive_event(state, rng, setup_step)
    return offer_event(state, event) if event is not None else state


# --- Setup handlers ---

def handle_select_brand(state: GameState, action: SelectBrand, rng) -> Optional[GameState]:
    if state.game_phase != 'setup':
        return None
    base_cash = state.settings.initial_cash - state.decoration_cost_paid
    if action.brand_id is None:
        return state.model_copy(update={
            'selected_brand': None,
            'cash': base_cash,
            'total_investment': state.decoration_cost_paid,
            'reputation': 10.0,
            'exposure': 5.0,
            'growth': seed_growth(5.0, 10.0, 6.0, False),
        })
    brand = BRANDS.get(action.brand_id)
    if brand is None:
        return None

    rng, state = _random(state, rng)
    kind = brand_kind(action.brand_id)
    if brand['type'] == 'franchise':
        exposure = float(35 + rng.randint(0, 21))
    else:
        exposure = float(5 + rng.randint(0, 8))
    reputation = float(brand['initial_reputation'])
    launch = 18.0 if kind == 'quick_franchise' else (34.0 if kind == 'franchise' else 10.0)

    allowed = brand['categories']
    products = [p for p in state.selected_products if allowed is None or PRODUCTS[p]['category'] in allowed]
    state = state.model_copy(update={
        'selected_brand': action.brand_id,
        'cash': base_cash - brand['franchise_fee'],
        'total_investment': state.decoration_cost_paid + brand['franchise_fee'],
        'reputation': reputation,
        'exposure': exposure,
        'growth': seed_growth(exposure, reputation, launch, brand['type'] == 'franchise'),
        'selected_products': products,
    })
    return _roll_setup_event(state, rng, 'select_brand')


def handle_select_location(state: GameState, action: SelectLocation, rng) -> Optional[GameState]:
    if state.game_phase != 'setup':
        return None
    if action.location_id is not None and action.location_id not in LOCATIONS:
        return None
    state = state.model_copy(update={
        'selected_location': action.location_id,
        'selected_address': None,
        'nearby_shops': [],
        'consumer_rings': {},
    })
    if action.location_id is None:
        return state
    return _roll_setup_event(state, rng, 'select_location')


def handle_select_address(state: GameState, action: SelectAddress, rng) -> Optional[GameState]:
    if state.game_phase != 'setup':
        return None
    if action.address_id is None:
        return state.model_copy(update={'selected_address': None, 'nearby_shops': [], 'consumer_rings': {}})
    address = get_address(state.selected_location, action.address_id)
    if address is None:
        return None

    rng, state = _random(state, rng)
    location_id = state.selected_location
    shops = generate_initial_shops(location_id, action.address_id, shop_rent_base(location_id, action.address_id), rng)
    rings = generate_consumer_rings(location_id, action.address_id, rng)
    shops, rings = assign_nearby_shops_to_consumer_rings(shops, rings, rng)
    return state.model_copy(update={
        'selected_address': action.address_id,
        'store_area': address['area'],
        'nearby_shops': shops,
        'consumer_rings': rings,
    })


def handle_set_store_area(state: GameState, action: SetStoreArea, rng) -> Optional[GameState]:
    if state.game_phase != 'setup':
        return None
    if not math.isfinite(action.area) or action.area <= 0:
        return None
    area = int(max(MIN_STORE_AREA, min(MAX_STORE_AREA, round(action.area))))
    return state.model_copy(update={'store_area': area})


def handle_select_decoration(state: GameState, action: SelectDecoration, rng) -> Optional[GameState]:
    """Decoration is paid on selection. Choosing again refunds the previous choice first."""
    if state.game_phase != 'setup':
        return None
    refund = state.decoration_cost_paid
    if action.decoration_id is None:
        return state.model_copy(update={
            'selected_decoration': None,
            'decoration_cost_paid': 0.0,
            'cash': state.cash + refund,
            'total_investment': state.total_investment - refund,
        })
    decoration = DECORATIONS.get(action.decoration_id)
    if decoration is None:
        return None

    markup = 1.0
    if brand_kind(state.selected_brand) == 'quick_franchise':
        rng, state = _random(state, rng)
        markup = float(rng.uniform(*QUICK_FRANCHISE_DECORATION_MARKUP))
    cost = decoration['cost_per_sqm'] * state.store_area * markup
    return state.model_copy(update={
        'selected_decoration': action.decoration_id,
        'decoration_cost_paid': cost,
        'cash': state.cash + refund - cost,
        'total_investment': state.total_investment - refund + cost,
    })


def handle_toggle_product(state: GameState, action: ToggleProduct, rng) -> Optional[GameState]:
    """
    Adds or removes a product. Mid-game additions arrive with a first batch
    of stock paid from cash; removals drop the stock with the product.
    """
    product = PRODUCTS.get(action.product_id)
    if product is None:
        return None
    operating = state.game_phase == 'operating'
    pid = action.product_id

    if pid in state.selected_products:
        if operating and len(state.selected_products) <= 1:
            return None
        inventory = {k: v for k, v in state.inventory.items() if k != pid}
        return state.model_copy(update={
            'selected_products': [p for p in state.selected_products if p != pid],
            'inventory': inventory,
        })

    brand = BRANDS.get(state.selected_brand or '')
    if brand and brand['categories'] and product['category'] not in brand['categories']:
        return None
    if len(state.selected_products) >= MAX_PRODUCTS:
        return None

    update = {'selected_products': state.selected_products + [pid]}
    if operating:
        unit_cost = product['base_cost'] * supply_cost_modifier(state)
        cost = MID_GAME_PRODUCT_STOCK * unit_cost
        if state.cash < cost:
            return None
        update['cash'] = state.cash - cost
        update['inventory'] = {**state.inventory, pid: InventoryItem(
            product_id=pid, quantity=MID_GAME_PRODUCT_STOCK, unit_cost=unit_cost,
            storage_type=product['storage'], last_restock_quantity=MID_GAME_PRODUCT_STOCK,
        )}
    return state.model_copy(update=update)


def handle_open_store(state: GameState, action: OpenStore, rng) -> Optional[GameState]:
    can_open, _ = compute_can_open(state)
    if not can_open:
        return None

    if action.season is not None:
        start_month = SEASON_START_MONTH[action.season]
    else:
        rng, state = _random(state, rng)
        start_month = int(rng.randint(1, 13))

    stock_weeks = 4 if state.cognition.level < 1 else 1.5
    qty = int(math.ceil(INITIAL_STOCK_PER_PRODUCT * stock_weeks))
    supply_mod = supply_cost_modifier(state)
    inventory = {}
    stock_cost = 0.0
    for pid in state.selected_products:
        unit_cost = PRODUCTS[pid]['base_cost'] * supply_mod
        inventory[pid] = InventoryItem(product_id=pid, quantity=qty, unit_cost=unit_cost,
                                       storage_type=PRODUCTS[pid]['storage'], last_restock_quantity=qty)
        stock_cost += qty * unit_cost

    setup_cost = compute_setup_cost(state)
    opened = state.model_copy(update={
        'game_phase': 'operating',
        'start_month': start_month,
        'current_season': season_for_month(month_for_week(start_month, 0)),
        'inventory': inventory,
        'cash': state.cash - stock_cost - setup_cost,
        'total_investment': state.total_investment + setup_cost,
    })
    # Rings carry this season's traffic from the first week on
    return apply_season(opened, TickContext(0))


# --- Staff handlers ---

def handle_add_staff(state: GameState, action: AddStaff, rng) -> Optional[GameState]:
    if state.game_phase != 'setup' or state.selected_location is None:
        return None
    stype = STAFF_TYPES.get(action.staff_type_id)
    if stype is None or len(state.staff) >= MAX_STAFF:
        return None
    if action.assigned_task is not None and action.assigned_task not in stype['tasks']:
        return None

    rng, state = _random(state, rng)
    staff_id, seq = _new_staff_id(state)
    member = make_staff(action.staff_type_id, staff_id, state.current_week, _wage_level(state), rng)
    if action.assigned_task:
        member = member.model_copy(update={'assigned_task': action.assigned_task})
    return state.model_copy(update={'staff': state.staff + [member], 'staff_seq': seq})


def handle_fire_staff(state: GameState, action: FireStaff, rng) -> Optional[GameState]:
    fired = state.get_staff(action.staff_id)
    if fired is None:
        return None
    penalty = fire_morale_penalty(fired, state.current_week)
    remaining = [s.model_copy(update={'morale': clamp(s.morale + penalty)})
                 for s in state.staff if s.id != action.staff_id]
    return state.model_copy(update={'staff': remaining})


def handle_recruit_staff(state: GameState, action: RecruitStaff, rng) -> Optional[GameState]:
    channel = RECRUITMENT_CHANNELS.get(action.channel_id)
    stype = STAFF_TYPES.get(action.staff_type_id)
    if channel is None or stype is None or state.selected_location is None:
        return None
    if state.cash < channel['cost'] or len(state.staff) >= MAX_STAFF:
        return None
    if action.assigned_task is not None and action.assigned_task not in stype['tasks']:
        return None

    rng, state = _random(state, rng)
    staff_id, seq = _new_staff_id(state)
    member = make_staff(action.staff_type_id, staff_id, state.current_week, _wage_level(state), rng,
                        quality=channel['quality'], onboarding=True)
    if action.assigned_task:
        member = member.model_copy(update={'assigned_task': action.assigned_task})
    return state.model_copy(update={
        'staff': state.staff + [member],
        'staff_seq': seq,
        'cash': state.cash - channel['cost'],
    })


def handle_assign_staff_task(state: GameState, action: AssignStaffTask, rng) -> Optional[GameState]:
    member = state.get_staff(action.staff_id)
    if member is None or member.assigned_task == action.task:
        return None
    if action.task not in STAFF_TYPES[member.type_id]['tasks']:
        return None
    task_exp, memory = transfer_exp(member, action.task)
    operating = state.game_phase == 'operating'
    return _replace_staff(state, member.id,
                          assigned_task=action.task,
                          task_exp=task_exp,
                          task_exp_memory=memory,
                          is_transitioning=operating,
                          transition_ends_week=state.current_week + TRANSITION['weeks'])


def handle_set_staff_work_hours(state: GameState, action: SetStaffWorkHours, rng) -> Optional[GameState]:
    member = state.get_staff(action.staff_id)
    if member is None:
        return None
    days = int(max(WORK_DAYS_RANGE[0], min(WORK_DAYS_RANGE[1], action.days)))
    hours = int(max(WORK_HOURS_RANGE[0], min(WORK_HOURS_RANGE[1], action.hours)))
    salary = member.salary
    if STAFF_TYPES[member.type_id]['hourly_rate']:
        salary = monthly_salary(member.type_id, _wage_level(state), days, hours)
    return _replace_staff(state, member.id, work_days=days, work_hours=hours, salary=salary)


def handle_set_staff_salary(state: GameState, action: SetStaffSalary, rng) -> Optional[GameState]:
    """Salaried staff only. Raises lift morale for a few weeks; cuts may start a resignation."""
    if state.cognition.level < SALARY_CONFIG['min_level']:
        return None
    member = state.get_staff(action.staff_id)
    if member is None or STAFF_TYPES[member.type_id]['hourly_rate']:
        return None
    lo, hi = salary_bounds(member.type_id, _wage_level(state))
    salary = float(max(lo, min(hi, round(action.salary))))
    if salary == member.salary:
        return None

    change = salary_change_morale(member.salary, salary)
    changes = {'salary': salary, 'morale': clamp(member.morale + change)}
    if salary > member.salary:
        changes['salary_raise_boost'] = float(change)
    else:
        rng, state = _random(state, rng)
        if rng.random_sample() < SALARY_CONFIG['cut_quit_check_rate']:
            changes['wants_to_quit'] = True
    return _replace_staff(state, member.id, **changes)


def _cooling_down(state: GameState, key: str, cooldown: int) -> bool:
    last = state.morale_action_last_week.get(key)
    return last is not None and state.current_week - last < cooldown


def handle_staff_morale_action(state: GameState, action: StaffMoraleAction, rng) -> Optional[GameState]:
    config = MORALE_ACTIONS[action.action]
    if state.cognition.level < config['min_level']:
        return None

    week = state.current_week
    staff = state.staff
    cash = state.cash
    if action.action == 'team_meal':
        key = 'team_meal'
        cost = config['cost_per_person'] * len(staff)
        if not staff or _cooling_down(state, key, config['cooldown']) or cash < cost:
            return None
        cash -= cost
        staff = [s.model_copy(update={'morale': clamp(s.morale + config['morale']),
                                      'fatigue': clamp(s.fatigue + config['fatigue'])}) for s in staff]
    else:
        target = state.get_staff(action.staff_id or '')
        if target is None:
            return None
        key = f"{action.action}:{target.id}"
        if _cooling_down(state, key, config['cooldown']):
            return None
        if action.action == 'bonus':
            amounts = config['amounts']
            idx = amounts.index(action.bonus_amount) if action.bonus_amount in amounts else 0
            if cash < amounts[idx]:
                return None
            cash -= amounts[idx]
            boost = config['boosts'][idx]
            staff = [s.model_copy(update={'morale': clamp(s.morale + (boost if s.id == target.id
                                                                     else config['other_boost']))})
                     for s in staff]
        else:
            staff = [s.model_copy(update={'morale': clamp(s.morale + config['morale']),
                                          'fatigue': clamp(s.fatigue + config['fatigue'])})
                     if s.id == target.id else s for s in staff]

    return state.model_copy(update={
        'staff': staff,
        'cash': cash,
        'weeks_since_last_morale_action': 0,
        'morale_action_last_week': {**state.morale_action_last_week, key: week},
    })


def handle_retain_staff(state: GameState, action: RetainStaff, rng) -> Optional[GameState]:
    """
    Talks someone out of quitting. A failed attempt still costs what it
    costs: a failed raise keeps the raise, a failed bonus keeps the money spent.
    """
    config = RETENTION[action.method]
    if state.cognition.level < config['min_level']:
        return None
    member = state.get_staff(action.staff_id)
    if member is None or not member.wants_to_quit:
        return None
    bonus_cost = float(round(member.salary * RETENTION['bonus']['cost_ratio']))
    if action.method == 'bonus' and state.cash < bonus_cost:
        return None

    rng, state = _random(state, rng)
    success = rng.random_sample() < config['success']

    if action.method == 'raise':
        changes = {'salary': float(round(member.salary * (1 + config['salary_increase'])))}
        if success:
            changes.update(morale=clamp(member.morale + config['morale']), wants_to_quit=False)
        return _replace_staff(state, member.id, **changes)

    if action.method == 'reduce_hours':
        if not success:
            return state
        return _replace_staff(state, member.id, work_days=config['days'], work_hours=config['hours'],
                              fatigue=clamp(member.fatigue + config['fatigue']), wants_to_quit=False)

    state = state.model_copy(update={'cash': state.cash - bonus_cost})
    if not success:
        return state
    return _replace_staff(state, member.id, morale=clamp(member.morale + config['morale']), wants_to_quit=False)


def handle_set_staff_focus_product(state: GameState, action: SetStaffFocusProduct, rng) -> Optional[GameState]:
    member = state.get_staff(action.staff_id)
    if member is None or TASKS[member.assigned_task]['production'] <= 0:
        return None
    if action.product_id is None:
        return _replace_staff(state, member.id, focus_product_id=None)
    if action.product_id not in state.selected_products:
        return None
    if PRODUCTS[action.product_id]['category'] not in STAFF_TYPES[member.type_id]['categories']:
        return None
    return _replace_staff(state, member.id, focus_product_id=action.product_id)


# --- Delivery handlers ---

def handle_join_platform(state: GameState, action: JoinPlatform, rng) -> Optional[GameState]:
    platform = DELIVERY_PLATFORMS.get(action.platform_id)
    if platform is None or state.get_platform(action.platform_id) is not None:
        return None
    kind = 'independent' if brand_kind(state.selected_brand) == 'independent' else 'franchise'
    if state.cognition.level < platform['min_cognition'][kind]:
        return None
    return state.model_copy(update={
        'active_platforms': state.active_platforms + [ActivePlatform(platform_id=action.platform_id)]
    })


def _joined(state: GameState, platform_id: str) -> bool:
    return state.game_phase == 'operating' and state.get_platform(platform_id) is not None


def handle_leave_platform(state: GameState, action: LeavePlatform, rng) -> Optional[GameState]:
    if not _joined(state, action.platform_id):
        return None
    return state.model_copy(update={
        'active_platforms': [p for p in state.active_platforms if p.platform_id != action.platform_id]
    })


def handle_toggle_promotion(state: GameState, action: TogglePromotion, rng) -> Optional[GameState]:
    if not _joined(state, action.platform_id) or not 0 <= action.tier_index < len(PROMOTION_TIERS):
        return None
    return _replace_platform(state, action.platform_id, promotion_tier_index=action.tier_index)


def handle_set_discount_tier(state: GameState, action: SetDiscountTier, rng) -> Optional[GameState]:
    if not _joined(state, action.platform_id) or action.tier_id not in DISCOUNT_TIERS:
        return None
    return _replace_platform(state, action.platform_id, discount_tier_id=action.tier_id)


def handle_set_delivery_pricing(state: GameState, action: SetDeliveryPricing, rng) -> Optional[GameState]:
    if not _joined(state, action.platform_id) or action.pricing_id not in DELIVERY_PRICING:
        return None
    return _replace_platform(state, action.platform_id, pricing_id=action.pricing_id)


def handle_set_packaging_tier(state: GameState, action: SetPackagingTier, rng) -> Optional[GameState]:
    if not _joined(state, action.platform_id) or action.tier_id not in PACKAGING_TIERS:
        return None
    return _replace_platform(state, action.platform_id, packaging_tier_id=action.tier_id)


def handle_set_supply_priority(state: GameState, action: SetSupplyPriority, rng) -> Optional[GameState]:
    if state.game_phase != 'operating' or state.supply_priority == action.priority:
        return None
    return state.model_copy(update={'supply_priority': action.priority})


# --- Marketing, pricing, stock handlers ---

def handle_start_marketing(state: GameState, action: StartMarketing, rng) -> Optional[GameState]:
    """Continuous activities bill weekly; one-time ones are paid now and then cool down."""
    config = MARKETING_ACTIVITIES.get(action.activity_id)
    if config is None or any(a.id == action.activity_id for a in state.active_marketing_activities):
        return None
    one_time = config['type'] == 'one_time'
    if config.get('unique') and action.activity_id in state.used_one_time_activities:
        return None
    last = state.last_activity_week.get(action.activity_id)
    if one_time and config.get('cooldown') and last is not None \
            and state.current_week - last < config['cooldown']:
        return None
    if one_time and state.cash < config['base_cost']:
        return None

    update = {'active_marketing_activities': state.active_marketing_activities + [
        MarketingActivity(id=action.activity_id, start_week=state.current_week)
    ]}
    if one_time:
        update['cash'] = state.cash - config['base_cost']
        update['last_activity_week'] = {**state.last_activity_week, action.activity_id: state.current_week}
        if action.activity_id not in state.used_one_time_activities:
            update['used_one_time_activities'] = state.used_one_time_activities + [action.activity_id]
    return state.model_copy(update=update)


def handle_stop_marketing(state: GameState, action: StopMarketing, rng) -> Optional[GameState]:
    activity = next((a for a in state.active_marketing_activities if a.id == action.activity_id), None)
    if activity is None:
        return None
    penalty = stop_penalty(MARKETING_ACTIVITIES[activity.id]['dependency'], activity.active_weeks)
    return state.model_copy(update={
        'active_marketing_activities': [a for a in state.active_marketing_activities if a.id != activity.id],
        'exposure': max(float(exposure_floor(state)), state.exposure * (1 - penalty)),
    })


def handle_set_product_price(state: GameState, action: SetProductPrice, rng) -> Optional[GameState]:
    if state.game_phase != 'operating' or action.product_id not in state.selected_products:
        return None
    if not math.isfinite(action.price) or action.price <= 0:
        return None
    ceiling = PRODUCTS[action.product_id]['reference_price'] * 3
    price = max(1.0, min(ceiling, round(action.price, 2)))
    return state.model_copy(update={'product_prices': {**state.product_prices, action.product_id: price}})


def handle_set_product_inventory(state: GameState, action: SetProductInventory, rng) -> Optional[GameState]:
    """Sets stock on hand. Extra units are bought at today's supply price; surplus is written off."""
    if state.cognition.level < 1 or action.product_id not in state.selected_products:
        return None
    product = PRODUCTS[action.product_id]
    unit_cost = product['base_cost'] * supply_cost_modifier(state)
    existing = state.inventory.get(action.product_id)
    quantity = max(0, action.quantity)
    delta = quantity - (existing.quantity if existing else 0)
    cost = delta * unit_cost if delta > 0 else 0.0
    if cost > state.cash:
        return None

    if existing:
        item = existing.model_copy(update={'quantity': quantity})
    else:
        item = InventoryItem(product_id=action.product_id, quantity=quantity, unit_cost=unit_cost,
                             storage_type=product['storage'], last_restock_quantity=quantity)
    return state.model_copy(update={
        'cash': state.cash - cost,
        'inventory': {**state.inventory, action.product_id: item},
    })


def handle_set_restock_strategy(state: GameState, action: SetRestockStrategy, rng) -> Optional[GameState]:
    item = state.inventory.get(action.product_id)
    if state.cognition.level < 1 or item is None:
        return None
    return state.model_copy(update={
        'inventory': {**state.inventory, action.product_id: item.model_copy(
            update={'restock_strategy': action.strategy})}
    })


# --- Week flow handlers ---

def handle_set_boss_action(state: GameState, action: SetBossAction, rng) -> Optional[GameState]:
    """Picks the owner's week. Picking the current choice again returns to supervising."""
    if state.game_phase != 'operating':
        return None
    config = BOSS_ACTIONS.get(action.action)
    if config is None or state.cognition.level < config['min_level'] or state.cash < config['cost']:
        return None

    boss = state.boss_action
    if boss.current_action == action.action and action.action != 'work_in_store' and action.shop_id is None:
        return state.model_copy(update={'boss_action': boss.model_copy(update={
            'current_action': 'supervise', 'work_role': None, 'target_shop_id': None,
        })})

    role = None
    if action.action == 'work_in_store':
        role = action.role if action.role in config['roles'] else 'waiter'
    target = action.shop_id if action.action in ('investigate_nearby', 'count_traffic') else None
    return state.model_copy(update={'boss_action': boss.model_copy(update={
        'current_action': action.action, 'work_role': role, 'target_shop_id': target,
    })})


def handle_respond_to_event(state: GameState, action: RespondToEvent, rng) -> Optional[GameState]:
    pending = state.pending_interactive_event
    if pending is None or pending.event_id != action.event_id:
        return None
    rng, state = _random(state, rng)
    state, response = apply_event_effects(state, action.event_id, action.option_id, rng)
    return state.model_copy(update={'pending_interactive_event': None, 'last_event_response': response})


def handle_next_week(state: GameState, action: NextWeek, rng) -> Optional[GameState]:
    if state.game_phase != 'operating':
        return None
    return weekly_tick(state, rng)


def handle_consult_advisor(state: GameState, action: ConsultAdvisor, rng) -> Optional[GameState]:
    cognition = state.cognition
    if cognition.consults_this_week >= CONSULT_LIMIT_PER_WEEK or state.cash < CONSULT_COST:
        return None
    cognition = apply_cognition_exp(cognition, CONSULT_EXP)
    return state.model_copy(update={
        'cash': state.cash - CONSULT_COST,
        'cognition': cognition.model_copy(update={'consults_this_week': cognition.consults_this_week + 1}),
    })


def handle_restart(state: GameState, action: Restart, rng) -> Optional[GameState]:
    return create_initial_state(state.seed, state.settings)


def handle_clear_weekly_summary(state: GameState, action: ClearWeeklySummary, rng) -> Optional[GameState]:
    if state.weekly_summary is None:
        return None
    return state.model_copy(update={'weekly_summary': None})


def handle_clear_last_week_event(state: GameState, action: ClearLastWeekEvent, rng) -> Optional[GameState]:
    if state.last_week_event is None:
        return None
    return state.model_copy(update={'last_week_event': None})


HANDLERS: Dict[str, Callable] = {
    'select_brand': handle_select_brand,
    'select_location': handle_select_location,
    'select_address': handle_select_address,
    'set_store_area': handle_set_store_area,
    'select_decoration': handle_select_decoration,
    'toggle_product': handle_toggle_product,
    'open_store': handle_open_store,
    'add_staff': handle_add_staff,
    'fire_staff': handle_fire_staff,
    'recruit_staff': handle_recruit_staff,
    'assign_staff_task': handle_assign_staff_task,
    'set_staff_work_hours': handle_set_staff_work_hours,
    'set_staff_salary': handle_set_staff_salary,
    'staff_morale_action': handle_staff_morale_action,
    'retain_staff': handle_retain_staff,
    'set_staff_focus_product': handle_set_staff_focus_product,
    'join_platform': handle_join_platform,
    'leave_platform': handle_leave_platform,
    'toggle_promotion': handle_toggle_promotion,
    'set_discount_tier': handle_set_discount_tier,
    'set_delivery_pricing': handle_set_delivery_pricing,
    'set_packaging_tier': handle_set_packaging_tier,
    'set_supply_priority': handle_set_supply_priority,
    'start_marketing': handle_start_marketing,
    'stop_marketing': handle_stop_marketing,
    'set_product_price': handle_set_product_price,
    'set_product_inventory': handle_set_product_inventory,
    'set_restock_strategy': handle_set_restock_strategy,
    'set_boss_action': handle_set_boss_action,
    'respond_to_event': handle_respond_to_event,
    'next_week': handle_next_week,
    'consult_advisor': handle_consult_advisor,
    'restart': handle_restart,
    'clear_weekly_summary': handle_clear_weekly_summary,
    'clear_last_week_event': handle_clear_last_week_event,
}


def dispatch(state: GameState, action: Union[BaseModel, Dict[str, Any]],
             rng: Optional[np.random.RandomState] = None) -> DispatchResult:
    """
    The single entry point for changing a game. An ended game accepts
    nothing but `restart`.
    """
    action = parse_action(action)
    if state.game_phase == 'ended' and action.type != 'restart':
        return DispatchResult(state, False)

    new_state = HANDLERS[action.type](state, action, rng)
    if new_state is None:
        return DispatchResult(state, False)

    if action.type in ACTIVE_OPERATION_TYPES:
        update = {'weeks_since_last_action': 0}
        if action.type in COUNTED_OPERATION_TYPES and new_state.game_phase == 'operating':
            cognition = new_state.cognition
            update['cognition'] = cognition.model_copy(
                update={'weekly_operation_count': cognition.weekly_operation_count + 1})
        new_state = new_state.model_copy(update=update)
    return DispatchResult(new_state, True)
