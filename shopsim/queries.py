# shopsim/queries.py
"""
Read-only projections of a GameState for whatever draws the game. Nothing
in here returns a modified state.
"""
from typing import List, Tuple

from .config import *
from .catalog import LOCATIONS, get_address
from .engine import build_stats, compute_fixed_cost, compute_variable_cost
from .mechanics import calculate_supply_demand
from .models import CurrentStats, FixedCostBreakdown, GameResult, GameState, SupplyDemandResult

SETUP_ACTIONS = [
    'select_brand', 'select_location', 'select_address', 'set_store_area', 'select_decoration',
    'toggle_product', 'add_staff', 'recruit_staff', 'assign_staff_task', 'set_staff_work_hours',
    'set_staff_focus_product', 'join_platform', 'start_marketing', 'consult_advisor', 'open_store', 'restart',
]
OPERATING_ACTIONS = [
    'toggle_product', 'fire_staff', 'recruit_staff', 'assign_staff_task', 'set_staff_work_hours',
    'set_staff_salary', 'staff_morale_action', 'retain_staff', 'set_staff_focus_product',
    'join_platform', 'leave_platform', 'toggle_promotion', 'set_discount_tier', 'set_delivery_pricing',
    'set_packaging_tier', 'set_supply_priority', 'start_marketing', 'stop_marketing', 'set_product_price',
    'set_product_inventory', 'set_restock_strategy', 'set_boss_action', 'respond_to_event', 'next_week',
    'consult_advisor', 'clear_weekly_summary', 'clear_last_week_event', 'restart',
]


def compute_supply_demand_result(state: GameState) -> SupplyDemandResult:
    return calculate_supply_demand(state)


def compute_fixed_cost_breakdown(state: GameState) -> FixedCostBreakdown:
    return compute_fixed_cost(state)


def compute_current_stats(state: GameState) -> CurrentStats:
    """This week's projected books, before the tick rolls any dice."""
    sd = calculate_supply_demand(state)
    buff = 1 + sum(b.value for b in state.active_event_buffs if b.type == 'revenue_multiplier')
    revenue = sd.total_revenue * max(0.0, buff)
    return build_stats(revenue, compute_variable_cost(state, sd), compute_fixed_cost(state))


def compute_setup_cost(state: GameState) -> float:
    """License, equipment, first stock order, deposit and prepaid rent."""
    location = LOCATIONS.get(state.selected_location or '')
    address = get_address(state.selected_location, state.selected_address)
    monthly_rent = 0.0
    if location and address:
        monthly_rent = location['rent_per_sqm'] * state.store_area * address['rent_modifier']
    return (SETUP_LICENSE_FEE + SETUP_EQUIPMENT + SETUP_FIRST_INVENTORY
            + monthly_rent * (SETUP_DEPOSIT_MONTHS + SETUP_PREPAID_RENT_MONTHS))


def compute_can_open(state: GameState) -> Tuple[bool, List[str]]:
    """(ready, what is still missing)."""
    if state.game_phase != 'setup':
        return False, ['the store is already open']
    missing = []
    if state.selected_brand is None:
        missing.append('brand')
    if state.selected_location is None:
        missing.append('location')
    if state.selected_address is None:
        missing.append('address')
    if state.selected_decoration is None:
        missing.append('decoration')
    if not state.selected_products:
        missing.append('products')
    if not state.staff:
        missing.append('staff')
    if state.cash < 0:
        missing.append('cash')
    if state.pending_interactive_event is not None:
        missing.append('event response')
    return not missing, missing


def compute_game_result(state: GameState) -> GameResult:
    s = state.settings
    investment = state.total_investment
    return GameResult(
        is_win=state.game_over_reason == 'win',
        reason=state.game_over_reason,
        total_profit=state.cumulative_profit,
        total_investment=investment,
        roi=state.cumulative_profit / investment if investment > 0 else 0.0,
        weeks_played=state.current_week,
        cognition_level=state.cognition.level,
        meets_streak=state.consecutive_profits >= s.win_streak,
        meets_return=state.cumulative_profit >= investment,
        meets_brand=state.exposure >= s.win_exposure and state.reputation >= s.win_reputation,
    )


def get_available_actions(state: GameState) -> List[str]:
    """Action types worth offering in the current phase. Others are refused or ignored."""
    if state.game_phase == 'ended':
        return ['restart']
    pending = state.pending_interactive_event is not None
    if state.game_phase == 'setup':
        return SETUP_ACTIONS + ['respond_to_event'] if pending else list(SETUP_ACTIONS)
    actions = list(OPERATING_ACTIONS)
    if not pending:
        actions.remove('respond_to_event')
    return actions
