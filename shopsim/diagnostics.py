# shopsim/diagnostics.py
"""
Weekly health check for the slow leaks a raw profit figure hides.

Every figure quoted in an alert goes through fuzz.apply_fuzz with the
owner's cognition level, so an alert never states a number more precisely
than the rest of the weekly summary does.
"""
from typing import List, Optional

from .config import *
from .catalog import DELIVERY_PLATFORMS, PRODUCTS, brand_kind
from .fuzz import apply_fuzz
from .models import CurrentStats, GameState, HealthAlert, SupplyDemandResult


def _quoted(value: float, info_type: str, level: int, fmt: str = '{:,.0f}', suffix: str = '') -> str:
    """' (about X)' when the figure is visible at this level, '' otherwise."""
    text = apply_fuzz(value, info_type, level, fmt)
    if text is None:
        return ''
    if text[0].isalpha():
        return f" ({text})"
    return f" ({text}{suffix})"


def diagnose_health(state: GameState, stats: CurrentStats,
                    sd_result: Optional[SupplyDemandResult]) -> List[HealthAlert]:
    if state.game_phase != 'operating':
        return []

    alerts: List[HealthAlert] = []
    level = state.cognition.level
    week = state.current_week

    def alert(id, severity, category, title, message, suggestion):
        alerts.append(HealthAlert(id=id, severity=severity, category=category, title=title,
                                  message=message, suggestion=suggestion))

    # --- Money ---
    if len(state.profit_history) >= 3 and all(p < 0 for p in state.profit_history[-3:]):
        lost = -sum(state.profit_history[-3:])
        alert('chronic_loss', 'critical', 'finance', 'Three losing weeks in a row',
              f"The shop has lost money three weeks running{_quoted(lost, 'losses', level)}.",
              'Work out whether the problem is too few customers, too thin a margin or too much overhead.')

    if 0 < stats.profit < stats.fixed_cost * 0.1:
        alert('slow_bleeding', 'warning', 'finance', 'Barely breaking even',
              f"Profit is a sliver of overhead{_quoted(stats.profit, 'net_profit', level)}. One bad week wipes it out.",
              'Look for a cost to cut or a price that can go up a little.')

    if stats.break_even_point and stats.revenue < stats.break_even_point * 0.5 and week > 3:
        alert('revenue_below_breakeven', 'critical', 'finance', 'Far below break-even',
              f"Revenue is under half of what the shop needs to cover its costs"
              f"{_quoted(stats.break_even_point, 'break_even_point', level)}.",
              'Break-even is fixed cost divided by margin. Either double revenue or cut fixed cost.')

    if state.total_investment > 0 and state.cumulative_profit < -state.total_investment * 0.5 \
            and week > 6 and week % 4 == 0:
        alert('sunk_cost_trap', 'critical', 'finance', 'Chasing sunk costs',
              f"More than half the investment is gone{_quoted(-state.cumulative_profit, 'losses', level)}.",
              'If there is no concrete path back to profit, stopping the losses beats hoping.')

    if brand_kind(state.selected_brand) == 'quick_franchise':
        cliff = QUICK_FRANCHISE_HONEYMOON_WEEKS
        if cliff - 1 <= week <= cliff:
            alert('honeymoon_cliff', 'warning', 'finance', 'The honeymoon is ending',
                  'Head office support ends soon. Supply prices jump and the padded reviews disappear.',
                  'Build a cash cushion now and recheck break-even at the real supply price.')

    # --- Market ---
    if state.exposure < 25 and not state.active_marketing_activities:
        alert('low_exposure', 'warning', 'marketing', 'Hardly anyone knows the shop',
              f"Exposure is low{_quoted(state.exposure, 'exposure', level)} and nothing is promoting it.",
              'Start a marketing activity or put someone on the marketer task.')

    if state.reputation < 40 and week > 4:
        alert('low_reputation', 'warning', 'marketing', 'Poor word of mouth',
              f"Customers are not impressed{_quoted(state.reputation, 'reputation', level)}.",
              'Check service staff, cleanliness and stockouts.')

    if sd_result and sd_result.total_demand > 0:
        fulfillment = min(1.0, sd_result.total_sales / sd_result.total_demand) if sd_result.total_supply > 0 else 0.0
        if fulfillment < 0.7:
            alert('supply_shortage', 'critical', 'supply', 'Customers leave empty-handed',
                  f"Demand is going unserved{_quoted(fulfillment * 100, 'fulfillment', level, '{:.0f}', '%')}.",
                  'Add kitchen staff or move restocking to a more aggressive strategy.')
        if (sd_result.total_supply > 0 and sd_result.total_demand < sd_result.total_supply * 0.3
                and fulfillment > 0.8 and sd_result.total_sales < 3000):
            alert('demand_collapse', 'warning', 'demand', 'An empty shop',
                  'The shop can make far more than anyone wants. Either the spot is wrong or nobody has heard of it.',
                  'Spend on exposure or join a delivery platform to reach more people.')

    for pid in state.selected_products:
        product = PRODUCTS[pid]
        price = state.price_of(pid)
        if price > product['reference_price'] * 1.3:
            alert(f"overpriced_{pid}", 'warning', 'pricing', f"{product['name']} is overpriced",
                  f"{product['name']} costs well above what customers expect to pay.",
                  'Bring the price back towards the going rate.')
        if price < product['base_cost'] * 1.3:
            alert(f"underpriced_{pid}", 'warning', 'pricing', f"{product['name']} barely covers its cost",
                  f"Each {product['name']} sold leaves almost nothing after ingredients.",
                  'Raise the price. Selling more at no margin only adds work.')

    if week > 6 and not state.active_platforms:
        kind = 'independent' if brand_kind(state.selected_brand) == 'independent' else 'franchise'
        if any(level >= p['min_cognition'][kind] for p in DELIVERY_PLATFORMS.values()):
            alert('no_delivery', 'info', 'delivery', 'No delivery yet',
                  'Only walk-in customers are being served. Delivery reaches people further away.',
                  'Try one delivery platform with a modest discount.')

    if state.active_platforms and week > 2 and all(p.discount_tier_id == 'none' for p in state.active_platforms):
        alert('delivery_no_discount', 'info', 'delivery', 'Delivery without discounts',
              'Listings without a discount sink to the bottom of the feed.',
              'A small discount tier usually pays for itself in orders.')

    # --- Operations ---
    if state.staff:
        salary = stats.fixed_cost_breakdown.salary
        if (salary > 0 if stats.revenue <= 0 else salary > stats.revenue * 0.6):
            alert('staff_salary_exceeds_revenue', 'critical', 'staff', 'Wages eat the takings',
                  f"The weekly wage bill{_quoted(salary, 'staff_cost', level)} is most of what comes in.",
                  'Cut hours, let someone go or grow revenue before hiring more.')

    if sd_result and stats.variable_cost > 0 and sd_result.waste_cost > stats.variable_cost * 0.2:
        alert('high_waste', 'warning', 'inventory', 'Food going in the bin',
              f"Too much stock spoils{_quoted(sd_result.waste_cost, 'waste_cost', level)}.",
              'Switch to a conservative restock strategy for the slow sellers.')

    if state.cleanliness < 40:
        alert('low_cleanliness', 'warning', 'operations', 'The shop is getting dirty',
              f"Customers notice the mess{_quoted(state.cleanliness, 'cleanliness', level)}.",
              'Put someone on the cleaner task.')

    if state.staff:
        avg_morale = sum(s.morale for s in state.staff) / len(state.staff)
        if avg_morale < 40 and state.weeks_since_last_morale_action >= 4:
            alert('low_morale_no_action', 'warning', 'staff', 'The team is fed up',
                  f"Morale has been low for weeks{_quoted(avg_morale, 'morale', level)} and nothing was done.",
                  'A bonus, a team meal or a day off would help.')

        active = [s for s in state.staff if not s.is_onboarding]
        if active and all(s.fatigue > 70 for s in active):
            alert('all_staff_exhausted', 'critical', 'staff', 'Everyone is exhausted',
                  'Every working employee is worn out. Mistakes and resignations follow.',
                  'Cut hours or give days off before someone quits.')

    return alerts
