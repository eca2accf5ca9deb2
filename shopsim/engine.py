# shopsim/engine.py
"""
The weekly tick. Ten steps in a fixed order, each one a function that
takes the state the previous step produced:

 1. scheduled effects, chained events, buff expiry
 2. season and ring traffic
 3. nearby shops
 4. supply and demand
 5. staff, cleanliness, the owner's own week
 6. money and stock
 7. marketing, exposure and reputation
 8. cognition
 9. interactive event roll
10. win / lose
"""
import math
import numpy as np
from typing import Dict, List, Optional, Tuple

from .config import *
from .catalog import (
    BOSS_ACTIONS, BRANDS, CUSTOMER_TYPES, INVESTIGATION_ACCURACY, INVESTIGATION_DIMENSIONS, LOCATIONS,
    PASSIVE_EVENT_PROBABILITY, PASSIVE_EVENTS, PRODUCTS, PROMOTION_TIERS, PACKAGING_TIERS, RATING_GROWTH,
    RESTOCK_STRATEGIES, WASTE_RATES, brand_kind, get_address,
)
from .diagnostics import diagnose_health
from .events import expire_buffs, offer_event, resolve_chain_events, resolve_delayed_effects, roll_interactive_event
from .fuzz import PASSIVE_EXP, apply_cognition_exp, record_mistake
from .marketing import advance_activities, update_growth, weekly_marketing_cost
from .mechanics import calculate_supply_demand, platform_weight_score, supply_cost_modifier
from .models import (
    BossBuff, CurrentStats, FixedCostBreakdown, GameSettings, GameState, SupplyDemandResult, WeeklySummary,
)
from .rings import apply_seasonal_traffic_variation, assign_nearby_shops_to_consumer_rings
from .shops import (
    check_shop_closing, shop_rent_base, try_generate_new_shop, update_shop_prices, update_shop_profits,
)
from .staffing import quit_risk, weekly_staff_update

QUIT_PROBABILITY = 0.4
TOURIST_SEASON_RENT = {'summer': 1.0, 'winter': 0.75}
TOURIST_OFF_PEAK_RENT = 0.85


def create_initial_state(seed: int = DEFAULT_SEED, settings: Optional[GameSettings] = None) -> GameState:
    settings = settings or GameSettings()
    return GameState(
        seed=seed,
        settings=settings,
        cash=settings.initial_cash,
        total_weeks=settings.total_weeks,
    )


def derive_rng(state: GameState) -> Tuple[np.random.RandomState, GameState]:
    """A fresh generator for this step of the game, and the state advanced past it."""
    rng = np.random.RandomState([state.seed, state.rng_step])
    return rng, state.model_copy(update={'rng_step': state.rng_step + 1})


def month_for_week(start_month: int, week: int) -> int:
    return ((start_month - 1 + week // 4) % 12) + 1


def season_for_month(month: int) -> str:
    if 3 <= month <= 5:
        return 'spring'
    if 6 <= month <= 8:
        return 'summer'
    if 9 <= month <= 11:
        return 'autumn'
    return 'winter'


def compute_fixed_cost(state: GameState) -> FixedCostBreakdown:
    """Weekly overhead: a quarter of each monthly bill, plus platform promotion."""
    location = LOCATIONS.get(state.selected_location or '')
    address = get_address(state.selected_location, state.selected_address)
    monthly_rent = 0.0
    if location:
        monthly_rent = location['rent_per_sqm'] * state.store_area * (address['rent_modifier'] if address else 1.0)
        if state.selected_location == 'tourist':
            monthly_rent *= TOURIST_SEASON_RENT.get(state.current_season, TOURIST_OFF_PEAK_RENT)

    rent = monthly_rent / 4
    salary = sum(s.salary for s in state.staff) / 4
    utilities = monthly_rent * UTILITIES_RENT_RATIO / 4
    marketing = MONTHLY_MARKETING_COST / 4
    depreciation = EQUIPMENT_DEPRECIATION / 4
    promotion = sum(PROMOTION_TIERS[p.promotion_tier_index]['weekly_cost'] for p in state.active_platforms)
    return FixedCostBreakdown(
        rent=rent, salary=salary, utilities=utilities, marketing=marketing,
        depreciation=depreciation, promotion=promotion,
        total=rent + salary + utilities + marketing + depreciation + promotion,
    )


def compute_variable_cost(state: GameState, sd: SupplyDemandResult) -> float:
    """Ingredients, royalty, delivery fees, spoilage and running campaigns."""
    brand = BRANDS.get(state.selected_brand or '')
    royalty = brand['royalty_rate'] if brand else 0.0
    cost_buff = 1 + sum(b.value for b in state.active_event_buffs if b.type == 'cost_multiplier')
    supply_mod = supply_cost_modifier(state)

    ingredients = sum(s.units_sold * PRODUCTS[s.product_id]['base_cost'] for s in sd.product_sales)
    ingredients *= supply_mod * max(0.0, cost_buff) * state.settings.cost_multiplier
    return (ingredients
            + sd.total_revenue * royalty
            + sd.delivery_commission
            + sd.delivery_package_cost
            + sd.waste_cost
            + sd.holding_cost
            + weekly_marketing_cost(state.active_marketing_activities))


def build_stats(revenue: float, variable_cost: float, breakdown: FixedCostBreakdown) -> CurrentStats:
    profit = revenue - variable_cost - breakdown.total
    margin = (revenue - variable_cost) / revenue if revenue > 0 else 0.0
    return CurrentStats(
        revenue=revenue,
        variable_cost=variable_cost,
        fixed_cost=breakdown.total,
        fixed_cost_breakdown=breakdown,
        profit=profit,
        margin=margin,
        break_even_point=breakdown.total / margin if margin > 0 else None,
    )


def check_terminal(state: GameState) -> Optional[str]:
    """Bankrupt beats win beats time limit."""
    s = state.settings
    if state.cash < 0 and state.consecutive_profits == 0:
        return 'bankrupt'
    if (state.consecutive_profits >= s.win_streak
            and state.cumulative_profit >= state.total_investment
            and state.exposure >= s.win_exposure
            and state.reputation >= s.win_reputation):
        return 'win'
    if state.current_week >= state.total_weeks:
        return 'time_limit'
    return None


class TickContext:
    """What one week's steps hand to each other besides the state."""

    def __init__(self, week: int):
        self.week = week
        self.logs: List[str] = []
        self.sd: Optional[SupplyDemandResult] = None
        self.stats: Optional[CurrentStats] = None
        self.profit = 0.0
        self.revenue = 0.0
        self.variable_cost = 0.0
        self.fixed_cost = 0.0
        self.boss_cost = 0.0
        self.boss_exp = 0
        self.shop_events = 0
        self.quit_staff: List[str] = []
        self.passive_event: Optional[str] = None
        self.first_time_event = False
        self.event_reputation = 0.0


# --- 1. Scheduled effects ---

def resolve_scheduled(state: GameState, ctx: TickContext, rng: np.random.RandomState) -> GameState:
    state = expire_buffs(state, ctx.week)
    state, logs = resolve_delayed_effects(state, ctx.week, rng)
    ctx.logs.extend(logs)
    state, logs = resolve_chain_events(state, ctx.week, rng)
    ctx.logs.extend(logs)
    return state


# --- 2. Season ---

def apply_season(state: GameState, ctx: TickContext) -> GameState:
    season = season_for_month(month_for_week(state.start_month, ctx.week))
    if season != state.current_season:
        ctx.logs.append(f"MARKET: The season turned to {season}.")
    rings = apply_seasonal_traffic_variation(state.consumer_rings, season) if state.consumer_rings else {}
    return state.model_copy(update={'current_season': season, 'consumer_rings': rings})


# --- 3. Nearby shops ---

def area_weekly_demand(state: GameState) -> float:
    """Food purchases made on the walkable rings in a week, by everyone."""
    return sum(r.total_traffic * r.base_conversion * CONVERSION_RATE * 7
               for rid, r in state.consumer_rings.items() if rid != 'ring3')


def advance_shops(state: GameState, ctx: TickContext, rng: np.random.RandomState) -> GameState:
    rent_base = shop_rent_base(state.selected_location, state.selected_address)
    shops = update_shop_prices(state.nearby_shops, rng)
    newcomer = try_generate_new_shop(state.model_copy(update={'nearby_shops': shops}), ctx.week, rent_base, rng)
    if newcomer is not None:
        shops = shops + [newcomer]
        ctx.logs.append(f"SHOP: {newcomer.name} opened nearby.")
        ctx.shop_events += 1

    shops = update_shop_profits(shops, area_weekly_demand(state))
    shops, closing_logs = check_shop_closing(shops, ctx.week, state.settings)
    ctx.logs.extend(closing_logs)
    ctx.shop_events += len(closing_logs)

    rings = state.consumer_rings
    if rings:
        shops, rings = assign_nearby_shops_to_consumer_rings(shops, rings, rng)
    return state.model_copy(update={'nearby_shops': shops, 'consumer_rings': rings})


# --- 4. Supply and demand ---

def run_supply_demand(state: GameState, ctx: TickContext) -> GameState:
    ctx.sd = calculate_supply_demand(state)
    return state


# --- 5. Staff and the owner ---

def update_staff(state: GameState, ctx: TickContext, rng: np.random.RandomState) -> GameState:
    last_profit = state.profit_history[-1] if state.profit_history else 0.0
    kept = []
    for member in state.staff:
        member = weekly_staff_update(member, ctx.week, last_profit)
        if member.is_onboarding:
            kept.append(member)
            continue
        if member.wants_to_quit and rng.random_sample() < QUIT_PROBABILITY:
            ctx.quit_staff.append(member.id)
            ctx.logs.append(f"STAFF: {member.name} handed in their notice and left.")
            continue
        if not member.wants_to_quit and rng.random_sample() < quit_risk(member):
            member = member.model_copy(update={'wants_to_quit': True})
            ctx.logs.append(f"STAFF: {member.name} is talking about quitting.")
        kept.append(member)
    return state.model_copy(update={'staff': kept})


def update_cleanliness(state: GameState, ctx: TickContext) -> GameState:
    sd = ctx.sd
    sales = sd.total_sales if sd else 0
    busy = sales / sd.total_supply if sd and sd.total_supply > 0 else 0.0
    dirt = 2 + state.store_area / 50 + sales / 300

    cleaning = 0.0
    for s in state.staff:
        if s.is_onboarding:
            continue
        ratio = s.weekly_hours / STANDARD_WEEK_HOURS
        if s.assigned_task == 'cleaner':
            cleaning += 8 * s.efficiency * ratio
        elif s.assigned_task == 'waiter':
            cleaning += 2.5 * s.efficiency * ratio * (0.5 if busy > 0.7 else 1.0)
    boss = state.boss_action
    if boss.current_action == 'work_in_store' and boss.work_role == 'cleaner':
        cleaning += 8 * BOSS_ACTIONS['work_in_store']['efficiency']

    cleanliness = max(0.0, min(100.0, state.cleanliness - dirt + cleaning))
    return state.model_copy(update={'cleanliness': cleanliness})


def process_boss_action(state: GameState, ctx: TickContext, rng: np.random.RandomState) -> GameState:
    """The owner's own week. The choice lasts one week, then falls back to supervising."""
    boss = state.boss_action
    action = boss.current_action
    config = BOSS_ACTIONS.get(action, BOSS_ACTIONS['supervise'])
    ctx.boss_cost = config['cost']
    lo, hi = config['exp_range']
    ctx.boss_exp = int(rng.randint(lo, hi + 1))

    buffs = [b.model_copy(update={'remaining_weeks': b.remaining_weeks - 1})
             for b in boss.active_buffs if b.remaining_weeks > 1]
    revealed = dict(boss.revealed_shop_info)
    findings = list(boss.findings)
    streak = boss.consecutive_study_weeks + 1 if action == 'count_traffic' else 0
    staff = state.staff
    accuracy = INVESTIGATION_ACCURACY[min(state.cognition.level, len(INVESTIGATION_ACCURACY) - 1)]

    if action == 'investigate_nearby':
        open_shops = [s for s in state.nearby_shops if not s.is_closing]
        target = next((s for s in open_shops if s.id == boss.target_shop_id), None)
        if target is None:
            target = next((s for s in open_shops
                           if len(revealed.get(s.id, [])) < len(INVESTIGATION_DIMENSIONS)), None)
        if target is not None:
            known = list(revealed.get(target.id, []))
            hidden = [d for d in INVESTIGATION_DIMENSIONS if d not in known]
            count = 1 + int(rng.random_sample() < accuracy)
            known.extend(hidden[:count])
            revealed[target.id] = known
            ctx.logs.append(f"MARKET: You studied {target.name} ({', '.join(known)}).")
    elif action == 'count_traffic':
        front = state.consumer_rings.get('ring0')
        if front is not None:
            seen = int(round(front.total_traffic * rng.uniform(accuracy, 2 - accuracy)))
            findings.append(f"Week {ctx.week}: about {seen} people walked past the door each day.")
            findings = findings[-HISTORY_CAP:]
        if streak >= 2:
            ctx.boss_exp += PASSIVE_EXP['count_traffic_streak_bonus']
    elif action == 'industry_dinner':
        if rng.random_sample() < 0.5:
            buffs.append(BossBuff(type='supply_cost_reduction', value=0.05, remaining_weeks=4,
                                  source='industry_dinner'))
            ctx.logs.append('MARKET: A supplier at dinner offered you a better price for a month.')
    elif action == 'supervise':
        staff = [s.model_copy(update={'morale': min(100.0, s.morale + 3)}) for s in staff]

    new_boss = boss.model_copy(update={
        'current_action': 'supervise',
        'work_role': None,
        'target_shop_id': None,
        'consecutive_study_weeks': streak,
        'revealed_shop_info': revealed,
        'findings': findings,
        'active_buffs': buffs,
    })
    return state.model_copy(update={'boss_action': new_boss, 'staff': staff})


# --- 6. Money and stock ---

def roll_passive_event(state: GameState, ctx: TickContext, rng: np.random.RandomState) -> Tuple[float, float]:
    """Returns (revenue multiplier, extra cost) from this week's background event, if any."""
    if rng.random_sample() >= PASSIVE_EVENT_PROBABILITY:
        return 1.0, 0.0
    keys = sorted(PASSIVE_EVENTS)
    event_id = keys[rng.randint(len(keys))]
    event = PASSIVE_EVENTS[event_id]
    ctx.passive_event = event_id
    ctx.first_time_event = event_id not in state.encountered_event_types
    ctx.logs.append(f"EVENT: {event['name']}.")
    if event['type'] == 'revenue':
        return 1.0 + event['value'], 0.0
    if event['type'] == 'reputation':
        ctx.event_reputation += event['value']
        return 1.0, 0.0
    return 1.0, event['value']


def restock_inventory(state: GameState, ctx: TickContext, rng: np.random.RandomState) -> GameState:
    """Takes sales and spoilage off the shelves, then tops them up. Restocking is paid from cash."""
    sales = {s.product_id: s.units_sold for s in ctx.sd.product_sales} if ctx.sd else {}
    supply_mod = supply_cost_modifier(state)
    level = state.cognition.level
    inventory = {}
    spent = 0.0
    for pid, item in state.inventory.items():
        sold = sales.get(pid, 0)
        left = max(0, item.quantity - sold)
        waste = int(math.floor(left * WASTE_RATES[item.storage_type]))
        left -= waste

        strategy = 'auto_standard' if item.restock_strategy == 'manual' else item.restock_strategy
        target = int(math.ceil((sold if sold > 0 else 50) * RESTOCK_STRATEGIES[strategy]))
        if left < sold * 0.5:
            target *= 2
        order = max(0, target - left)
        if order > 0 and level <= 3:
            spread = 0.3 if level <= 1 else 0.1
            order = max(0, int(round(order * rng.uniform(1 - spread, 1 + spread))))
        unit_cost = PRODUCTS[pid]['base_cost'] * supply_mod
        spent += order * unit_cost
        inventory[pid] = item.model_copy(update={
            'quantity': left + order,
            'unit_cost': unit_cost,
            'restock_strategy': strategy,
            'last_week_sales': sold,
            'last_week_waste': waste,
            'last_restock_quantity': order,
        })
    if spent > 0:
        ctx.logs.append(f"FINANCE: Restocked ingredients for {spent:,.0f}.")
    return state.model_copy(update={'inventory': inventory, 'cash': state.cash - spent})


def update_platforms(state: GameState, ctx: TickContext) -> GameState:
    sd = ctx.sd
    platforms = state.active_platforms
    if not platforms:
        return state
    weights = {p.platform_id: max(1.0, p.platform_exposure) for p in platforms}
    total_weight = sum(weights.values())
    delivered = sd.delivery_sales if sd else 0
    wanted = sum(s.delivery_demand for s in sd.product_sales) if sd else 0
    upgraded = any(a.id == 'ingredient_upgrade' for a in state.active_marketing_activities)

    updated = []
    for p in platforms:
        share = weights[p.platform_id] / total_weight
        orders = int(round(delivered * share))
        missed = max(0, int(round(wanted * share)) - orders)
        growth = (orders * RATING_GROWTH['per_fulfilled_order']
                  + missed * RATING_GROWTH['per_unfulfilled_order']
                  + (RATING_GROWTH['ingredient_upgrade_bonus'] if upgraded else 0.0)
                  + PROMOTION_TIERS[p.promotion_tier_index]['rating_boost']
                  + PACKAGING_TIERS[p.packaging_tier_id]['rating_bonus']
                  - RATING_GROWTH['natural_decay'])
        growth = max(-0.5, min(RATING_GROWTH['max_weekly_growth'], growth))
        p = p.model_copy(update={
            'rating': max(0.0, min(5.0, p.rating + growth)),
            'active_weeks': p.active_weeks + 1,
            'recent_weekly_orders': (p.recent_weekly_orders + [orders])[-8:],
        })
        updated.append(p.model_copy(update={'platform_exposure': platform_weight_score(p)}))
    return state.model_copy(update={'active_platforms': updated})


def settle_finances(state: GameState, ctx: TickContext, rng: np.random.RandomState) -> GameState:
    sd = ctx.sd or SupplyDemandResult()

    # 1. Revenue
    revenue_mult, event_cost = roll_passive_event(state, ctx, rng)
    buff_mult = 1 + sum(b.value for b in state.active_event_buffs if b.type == 'revenue_multiplier')
    revenue = sd.total_revenue * max(0.0, buff_mult) * revenue_mult

    # 2. Costs
    variable = compute_variable_cost(state, sd) + event_cost
    breakdown = compute_fixed_cost(state)
    profit = revenue - variable - breakdown.total - ctx.boss_cost
    profit = round(profit, 2)

    ctx.revenue, ctx.variable_cost, ctx.fixed_cost, ctx.profit = revenue, variable, breakdown.total, profit
    ctx.stats = build_stats(revenue, variable, breakdown)
    ctx.logs.append(f"FINANCE: Revenue {revenue:,.0f}, costs {variable + breakdown.total + ctx.boss_cost:,.0f}, "
                    f"profit {profit:,.0f}.")

    # 3. Books
    encountered = state.encountered_event_types
    if ctx.passive_event and ctx.first_time_event:
        encountered = encountered + [ctx.passive_event]
    state = state.model_copy(update={
        'cash': state.cash + profit,
        'cumulative_profit': state.cumulative_profit + profit,
        'profit_history': state.profit_history + [profit],
        'revenue_history': (state.revenue_history + [revenue])[-HISTORY_CAP:],
        'consecutive_profits': state.consecutive_profits + 1 if profit > 0 else 0,
        'weekly_revenue': revenue,
        'weekly_variable_cost': variable,
        'encountered_event_types': encountered,
    })

    # 4. Stock and platforms
    state = restock_inventory(state, ctx, rng)
    return update_platforms(state, ctx)


# --- 7. Marketing ---

def update_marketing(state: GameState, ctx: TickContext) -> GameState:
    sd = ctx.sd
    rates = [s.fulfillment_rate for s in sd.product_sales] if sd else []
    fulfillment = sum(rates) / len(rates) if sd and sd.total_supply > 0 and rates else None
    growth, exposure, reputation = update_growth(state, ctx.week, fulfillment, sd.total_sales if sd else 0,
                                                 ctx.event_reputation)
    return state.model_copy(update={
        'growth': growth,
        'exposure': exposure,
        'reputation': reputation,
        'active_marketing_activities': advance_activities(state.active_marketing_activities),
        'last_week_fulfillment': sd.fulfillment_rate if sd else 1.0,
    })


# --- 8. Cognition ---

def detect_mistakes(state: GameState, ctx: TickContext) -> List[str]:
    mistakes = []
    if brand_kind(state.selected_brand) == 'quick_franchise' and ctx.week > QUICK_FRANCHISE_HONEYMOON_WEEKS:
        mistakes.append('quick_franchise')
    stock_value = sum(i.quantity * i.unit_cost for i in state.inventory.values())
    if ctx.revenue > 0 and stock_value > ctx.revenue * 2:
        mistakes.append('inventory_overstock')
    if state.cash < 0:
        mistakes.append('cash_flow_break')
    if ctx.quit_staff:
        mistakes.append('staff_turnover')
    breakdown = ctx.stats.fixed_cost_breakdown if ctx.stats else compute_fixed_cost(state)
    if breakdown.rent > 0 and breakdown.salary > breakdown.rent * 2:
        mistakes.append('over_staff')
    if len(state.selected_products) == 1 and ctx.week >= 3:
        mistakes.append('single_product')
    return mistakes


def award_cognition(state: GameState, ctx: TickContext) -> Tuple[GameState, int]:
    exp = PASSIVE_EXP['weekly_base']
    if ctx.profit > 0:
        exp += PASSIVE_EXP['profit_week']
        exp += min(int(ctx.profit // 1000) * PASSIVE_EXP['profit_per_thousand'], PASSIVE_EXP['profit_scale_max'])
        if state.consecutive_profits >= PASSIVE_EXP['streak_threshold']:
            exp += PASSIVE_EXP['streak_bonus']
    else:
        exp += PASSIVE_EXP['loss_week']
    if ctx.first_time_event:
        exp += PASSIVE_EXP['first_time_event']
    exp += min(state.cognition.weekly_operation_count * PASSIVE_EXP['per_operation'], PASSIVE_EXP['max_operations'])
    exp += ctx.shop_events * PASSIVE_EXP['shop_event']
    exp += ctx.boss_exp

    cognition = state.cognition
    for mistake in detect_mistakes(state, ctx):
        cognition, gained = record_mistake(cognition, mistake)
        if gained:
            exp += gained
            ctx.logs.append(f"CRITICAL: Lesson learned the hard way ({mistake.replace('_', ' ')}).")

    before = cognition.level
    cognition = apply_cognition_exp(cognition, exp)
    cognition = cognition.model_copy(update={'weekly_operation_count': 0, 'consults_this_week': 0})
    if cognition.level > before:
        ctx.logs.append(f"EVENT: Your understanding of the business grew to level {cognition.level}.")
    return state.model_copy(update={'cognition': cognition}), exp


# --- 9. Events ---

def roll_event(state: GameState, ctx: TickContext, rng: np.random.RandomState) -> GameState:
    if state.pending_interactive_event is not None:
        return state
    event = roll_interactive_event(state, rng)
    if event is None:
        return state
    ctx.logs.append(f"EVENT: {event.title}")
    return offer_event(state, event)


# --- The tick ---

def weekly_tick(state: GameState, rng: Optional[np.random.RandomState] = None) -> GameState:
    """
    Advances an operating game by one week. An ended game comes back as is.
    Without an injected rng the generator is derived from (seed, rng_step).
    """
    if state.game_phase != 'operating':
        return state
    if rng is None:
        rng, state = derive_rng(state)

    week = state.current_week + 1
    ctx = TickContext(week)
    state = state.model_copy(update={
        'current_week': week,
        'weeks_since_last_action': state.weeks_since_last_action + 1,
        'weeks_since_last_morale_action': state.weeks_since_last_morale_action + 1,
    })

    state = resolve_scheduled(state, ctx, rng)       # 1
    state = apply_season(state, ctx)                 # 2
    state = advance_shops(state, ctx, rng)           # 3
    state = run_supply_demand(state, ctx)            # 4
    state = update_staff(state, ctx, rng)            # 5
    state = update_cleanliness(state, ctx)
    state = process_boss_action(state, ctx, rng)
    state = settle_finances(state, ctx, rng)         # 6
    state = update_marketing(state, ctx)             # 7
    state, exp = award_cognition(state, ctx)         # 8
    state = roll_event(state, ctx, rng)              # 9

    reason = check_terminal(state)                   # 10
    if reason == 'bankrupt':
        ctx.logs.append('CRITICAL: The money ran out. The shop is bankrupt.')
    elif reason == 'win':
        ctx.logs.append('EVENT: The shop is a proven success.')
    elif reason == 'time_limit':
        ctx.logs.append('EVENT: The season of play is over.')

    stats = ctx.stats or build_stats(0.0, 0.0, compute_fixed_cost(state))
    alerts = diagnose_health(state, stats, ctx.sd)
    sd = ctx.sd or SupplyDemandResult()
    summary = WeeklySummary(
        week=week,
        revenue=ctx.revenue,
        variable_cost=ctx.variable_cost,
        fixed_cost=ctx.fixed_cost,
        profit=ctx.profit,
        cumulative_profit=state.cumulative_profit,
        cash=state.cash,
        total_demand=sd.total_demand,
        total_supply=sd.total_supply,
        fulfillment_rate=sd.fulfillment_rate,
        product_sales={s.product_id: s.units_sold for s in sd.product_sales},
        consecutive_profits=state.consecutive_profits,
        exp_gained=exp,
        quit_staff=ctx.quit_staff,
        health_alerts=alerts,
        passive_event=ctx.passive_event,
        logs=ctx.logs,
    )

    update = {
        'weekly_summary': summary,
        'last_week_event': ctx.passive_event,
        'log_history': (state.log_history + [f"[W{week}] {line}" for line in ctx.logs])[-LOG_HISTORY_CAP:],
    }
    if reason is not None:
        update['game_phase'] = 'ended'
        update['game_over_reason'] = reason
    return state.model_copy(update=update)
