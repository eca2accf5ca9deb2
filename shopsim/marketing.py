# shopsim/marketing.py
"""
Marketing activities and the growth system behind exposure and reputation.

Exposure is not a single number that campaigns push up. It is rebuilt every
week from an awareness stock (slow to build, slow to fade), a campaign pulse
(fast in, fast out) and spill-over from customers who come back.
"""
import math
from typing import Dict, List, Optional, Tuple

from .config import *
from .catalog import BRANDS, get_address, get_stockout_effect
from .models import GameState, GrowthSystem, MarketingActivity

MARKETING_ACTIVITIES = {
    'social_media': {'name': 'Social media posts', 'type': 'continuous', 'category': 'exposure',
                     'base_cost': 2000.0, 'exposure_boost': 15, 'reputation_boost': 0,
                     'price_modifier': 1.0, 'dependency': 0.3},
    'local_ad': {'name': 'Local advertising', 'type': 'one_time', 'category': 'exposure',
                 'base_cost': 6000.0, 'exposure_boost': 38, 'reputation_boost': 0,
                 'price_modifier': 1.0, 'dependency': 0.0, 'max_duration': 3, 'cooldown': 6},
    'grand_opening': {'name': 'Grand opening', 'type': 'one_time', 'category': 'exposure',
                      'base_cost': 12000.0, 'exposure_boost': 55, 'reputation_boost': 5,
                      'price_modifier': 0.7, 'dependency': 0.0, 'max_duration': 2, 'unique': True},
    'ingredient_upgrade': {'name': 'Ingredient upgrade', 'type': 'continuous', 'category': 'reputation',
                           'base_cost': 800.0, 'exposure_boost': 0, 'reputation_boost': 3,
                           'price_modifier': 1.0, 'dependency': 0.0},
    'service_training': {'name': 'Service training', 'type': 'one_time', 'category': 'reputation',
                         'base_cost': 1200.0, 'exposure_boost': 0, 'reputation_boost': 10,
                         'price_modifier': 1.0, 'dependency': 0.0, 'max_duration': 1, 'cooldown': 4},
    'loyalty_day': {'name': 'Loyalty day', 'type': 'one_time', 'category': 'reputation',
                    'base_cost': 600.0, 'exposure_boost': 0, 'reputation_boost': 8,
                    'price_modifier': 0.9, 'dependency': 0.0, 'max_duration': 1, 'cooldown': 3},
    'member_system': {'name': 'Membership card', 'type': 'continuous', 'category': 'both',
                      'base_cost': 500.0, 'exposure_boost': 4, 'reputation_boost': 3,
                      'price_modifier': 0.9, 'dependency': 0.15},
    'flash_sale': {'name': 'Flash sale', 'type': 'one_time', 'category': 'both',
                   'base_cost': 0.0, 'exposure_boost': 20, 'reputation_boost': -5,
                   'price_modifier': 0.5, 'dependency': 0.0, 'max_duration': 1, 'cooldown': 6},
}

REPUTATION_FLOOR = 10.0
MARKETER_EXPOSURE_RATE = 2.2


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def activity_decay(active_weeks: int, dependency: float) -> float:
    """Full effect for four weeks, then fades towards 30%."""
    if dependency == 0 or active_weeks <= 4:
        return 1.0
    return max(0.3, 1.0 - (active_weeks - 4) * dependency * 0.05)


def stop_penalty(dependency: float, active_weeks: int) -> float:
    """Share of exposure lost when a habit-forming activity is dropped (0-0.5)."""
    return min(0.5, dependency * min(active_weeks, 20) * 0.05)


def location_exposure_floor(traffic_modifier: float) -> int:
    return int(round(8 + (traffic_modifier - 0.5) * 20))


def exposure_floor(state: GameState) -> int:
    address = get_address(state.selected_location, state.selected_address)
    return location_exposure_floor(address['traffic_modifier'] if address else 1.0)


def awareness_factor(launch_progress: float) -> float:
    """Launch progress 0-100 mapped onto a 0.25-1.0 demand ramp."""
    return 0.25 + 0.75 / (1 + math.exp(-(launch_progress - 45) / 10))


def price_modifier(activities: List[MarketingActivity]) -> float:
    """Deepest discount among running activities, 1.0 when none."""
    mods = [MARKETING_ACTIVITIES[a.id]['price_modifier'] for a in activities
            if a.id in MARKETING_ACTIVITIES and MARKETING_ACTIVITIES[a.id]['price_modifier'] < 1]
    return min(mods) if mods else 1.0


def weekly_marketing_cost(activities: List[MarketingActivity]) -> float:
    """Continuous activities bill every week; one-time ones were paid up front."""
    return sum(MARKETING_ACTIVITIES[a.id]['base_cost'] for a in activities
               if MARKETING_ACTIVITIES.get(a.id, {}).get('type') == 'continuous')


def advance_activities(activities: List[MarketingActivity]) -> List[MarketingActivity]:
    """Ages every activity a week and retires finished one-time runs."""
    remaining = []
    for a in activities:
        a = a.model_copy(update={'active_weeks': a.active_weeks + 1})
        config = MARKETING_ACTIVITIES.get(a.id)
        if config and config['type'] == 'one_time' and a.active_weeks >= config.get('max_duration', 1):
            continue
        remaining.append(a)
    return remaining


def seed_growth(exposure: float, reputation: float, launch: float, franchise: bool) -> GrowthSystem:
    return GrowthSystem(
        launch_progress=launch,
        awareness_stock=max(4.0, exposure * 0.65),
        campaign_pulse=max(1.0, exposure * 0.35),
        trust_confidence=0.22 if franchise else 0.12,
        repeat_intent=clamp(reputation, 38, 75),
    )


def update_growth(state: GameState, week: int, fulfillment: Optional[float], total_sales: int,
                  event_reputation: float = 0.0) -> Tuple[GrowthSystem, float, float]:
    """
    One week of exposure and reputation drift. `fulfillment` is the average
    fulfilment across products, None when nothing could be supplied.
    Returns (growth, exposure, reputation).
    """
    floor = exposure_floor(state)
    g = state.growth
    stock, pulse, trust, repeat, launch = (g.awareness_stock, g.campaign_pulse, g.trust_confidence,
                                           g.repeat_intent, g.launch_progress)
    reputation = state.reputation
    inactive = state.weeks_since_last_action

    # 1. Natural fade
    stock = max(floor, stock - max(0.35, stock * 0.02))
    pulse *= 0.58
    reputation = max(REPUTATION_FLOOR, reputation - 0.35)

    # 2. Campaigns feed the pulse and trust
    pulse_gain = trust_gain = launch_gain = 0.0
    for activity in state.active_marketing_activities:
        config = MARKETING_ACTIVITIES.get(activity.id)
        if not config:
            continue
        decay = activity_decay(activity.active_weeks, config['dependency']) if config['type'] == 'continuous' else 1.0
        duration = config.get('max_duration', 1) if config['type'] == 'one_time' else 1
        exp_gain = config['exposure_boost'] * decay / duration
        rep_gain = config['reputation_boost'] * decay / duration
        pulse_gain += max(0.0, exp_gain) * (1.0 if config['category'] == 'exposure' else 0.75)
        stock += max(0.0, exp_gain) * (0.08 if config['category'] == 'both' else 0.04)
        trust_gain += rep_gain * 0.55
        launch_gain += max(0.0, exp_gain * 0.12 + rep_gain * 0.2)

    marketer = sum(s.efficiency * s.weekly_hours / STANDARD_WEEK_HOURS * MARKETER_EXPOSURE_RATE
                   for s in state.staff if not s.is_onboarding and s.assigned_task == 'marketer')
    pulse_gain += marketer
    stock += marketer * 0.12

    if inactive >= 3:
        penalty = min(3.0, (inactive - 2) * 0.6)
        pulse_gain -= penalty
        stock -= penalty * 0.4
        launch -= penalty * 0.8

    pulse = max(0.0, pulse + pulse_gain)
    stock = clamp(stock, floor, 95)
    launch = clamp(launch + launch_gain, 0, 100)
    reputation += trust_gain * (0.45 + trust * 0.55)

    brand = BRANDS.get(state.selected_brand or '')
    if brand and brand['is_quick_franchise'] and week <= QUICK_FRANCHISE_HONEYMOON_WEEKS:
        remaining = (QUICK_FRANCHISE_HONEYMOON_WEEKS - week + 1) / QUICK_FRANCHISE_HONEYMOON_WEEKS
        reputation += QUICK_FRANCHISE_FAKE_REPUTATION * 0.45 * remaining

    # 3. What actually happened at the counter
    has_supply = fulfillment is not None
    avg_fulfillment = fulfillment if has_supply else 0.0
    trust = clamp(trust + min(0.08, math.log1p(max(0, total_sales)) / 90) - (0.01 if inactive >= 4 else 0.0),
                  0.08, 1.0)

    delta = 0.0
    if has_supply:
        _, impact = get_stockout_effect(avg_fulfillment)
        delta += impact * (0.55 + trust * 0.45)
        if avg_fulfillment >= 0.97:
            delta += 0.75
        elif avg_fulfillment >= 0.9:
            delta += 0.35
        elif avg_fulfillment >= 0.8:
            delta += 0.1
        elif avg_fulfillment < 0.55:
            delta -= 1.8
        elif avg_fulfillment < 0.7:
            delta -= 0.9

    service = [s for s in state.staff
               if not s.is_onboarding and s.assigned_task in ('waiter', 'cleaner', 'manager')]
    if service:
        avg_svc = sum(s.service_quality for s in service) / len(service)
        if avg_svc >= 0.92:
            delta += 0.45
        elif avg_svc >= 0.85:
            delta += 0.2
        if avg_svc < 0.6:
            delta -= 0.9

    if state.cleanliness >= 80:
        delta += 0.35
    if state.cleanliness < 40:
        delta -= 0.8
    if state.cleanliness < 20:
        delta -= 1.8

    weighted = delta * (0.35 + trust * 0.65)
    if weighted > 0 and reputation > 80:
        weighted *= max(0.2, 1 - (reputation - 80) / 25)
    reputation += weighted
    if event_reputation:
        reputation += event_reputation * (0.6 + trust * 0.4)
    for buff in state.active_event_buffs:
        if buff.type == 'reputation_weekly':
            reputation += buff.value

    repeat += weighted * 1.2 + (avg_fulfillment - 0.85) * 12 + (state.cleanliness - 60) / 40 * 0.6
    if has_supply and avg_fulfillment < 0.7:
        repeat -= 1.2
    repeat = clamp(repeat, 20, 95)

    launch_delta = 0.0
    if state.active_marketing_activities:
        launch_delta += 1.2
    if state.active_platforms:
        launch_delta += 0.8
    if total_sales > 120:
        launch_delta += 1.2
    elif total_sales > 60:
        launch_delta += 0.6
    if has_supply and avg_fulfillment >= 0.92:
        launch_delta += 1.6
    if has_supply and avg_fulfillment < 0.7:
        launch_delta -= 1.8
    if weighted > 0.4:
        launch_delta += 0.6
    if inactive >= 3:
        launch_delta -= min(2.5, (inactive - 2) * 0.5)
    launch = clamp(launch + launch_delta, 0, 100)

    # 4. Good weeks settle into the stock, bad ones burn the pulse
    stock += max(0.0, (reputation - 50) / 50) * 0.9 + max(0.0, (repeat - 55) / 45) * 0.8
    if has_supply and avg_fulfillment < 0.75:
        stock -= 0.9
    stock = clamp(stock, floor, 95)

    if avg_fulfillment >= 0.95 and reputation >= 65:
        pulse += 0.8
    elif avg_fulfillment < 0.7:
        pulse -= 0.7
    pulse = clamp(pulse * 0.92, 0, 45)

    reputation = clamp(reputation, REPUTATION_FLOOR, 100)
    exposure = clamp(stock + pulse + max(0.0, (repeat - 50) * 0.12), floor, 100)
    for buff in state.active_event_buffs:
        if buff.type == 'exposure_weekly':
            exposure = clamp(exposure + buff.value, floor, 100)

    growth = GrowthSystem(launch_progress=launch, awareness_stock=stock, campaign_pulse=pulse,
                          trust_confidence=trust, repeat_intent=repeat)
    return growth, exposure, reputation
