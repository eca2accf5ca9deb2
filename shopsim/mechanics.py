# shopsim/mechanics.py
"""
The weekly demand and supply model.

Dine-in demand walks the walkable rings customer type by customer type and
asks how many people convert, and what share of them pick us over the shops
around us. Delivery demand does the same across every ring through the
platforms. Supply is whatever the staff can cook, capped by stock.
"""
import math
import zlib
from typing import Dict, List, Optional, Tuple

from .config import *
from .catalog import (
    BOSS_ACTIONS, BRANDS, CATEGORY_SUBSTITUTION, CUSTOMER_CATEGORY_AFFINITY, CUSTOMER_TYPES, DECORATIONS,
    DELIVERY_COMPETITION_BASE, DELIVERY_CONVERSION_RATE, DELIVERY_DISTANCE_DECAY, DELIVERY_PLATFORMS,
    DELIVERY_PRICING, DISCOUNT_TIERS, HOLDING_COST_RATES, LOCATION_CATEGORY_OCCASION, LOCATIONS,
    PACKAGING_TIERS, PRICE_ELASTICITY, PRICING_ELASTICITY, PRODUCTS, PROMOTION_TIERS, RESTOCK_STRATEGIES, RING_IDS,
    SEASON_MODIFIER, SEASON_SUBTYPE_BONUS, WASTE_RATES, get_address, get_stockout_effect,
)
from .models import ActivePlatform, ConsumerRing, GameState, NearbyShop, ProductSale, SupplyDemandResult
from .marketing import awareness_factor, price_modifier
from .staffing import SERVICE_TASKS, STAFF_TYPES, TASKS


# --- Shared coefficients ---

def get_exposure_coefficient(exposure: float) -> float:
    """Diminishing returns on exposure, 0.15 at zero, ~1.0 near 100."""
    return 0.15 + 0.85 * (1 - math.exp(-max(0.0, exposure) / 30))


def get_reputation_coefficient(reputation: float) -> float:
    return 0.35 + 0.85 * max(0.0, reputation) / 100


def get_shop_reputation(shop: NearbyShop) -> float:
    reputation = shop.service_quality * 60
    if shop.brand_type == 'chain':
        reputation += 25
    if shop.brand_tier == 'premium':
        reputation += 10
    elif shop.brand_tier == 'standard':
        reputation += 5
    return min(100.0, reputation)


def absolute_price_effect(price: float, reference_price: float) -> float:
    """Customers have a price in their head; far above it, demand collapses."""
    if reference_price <= 0 or price <= 0:
        return 1.0
    ratio = price / reference_price
    if ratio <= 0.8:
        return min(1.15, 1 + (0.8 - ratio) * 0.5)
    if ratio <= 1.25:
        return 1.0
    return max(0.05, (1.25 / ratio) ** 3)


def traffic_reach_multiplier(exposure: float, reputation: float) -> float:
    """How much further than the front door people will walk for us."""
    return (1
            + min(0.28, max(0.0, exposure - 10) / 90 * 0.28)
            + min(0.14, max(0.0, reputation - 30) / 70 * 0.14))


def attraction_score(state: GameState) -> float:
    decoration = DECORATIONS.get(state.selected_decoration or '')
    level = decoration['level'] if decoration else 0
    score = (level / 5 * 35
             + min(25.0, state.current_week * 0.8)
             + state.reputation / 100 * 20
             + state.exposure / 100 * 20)
    return min(100.0, score)


def ring_coverage(attraction: float) -> Dict[str, float]:
    def unit(x):
        return max(0.0, min(1.0, x))
    return {
        'ring0': 1.0,
        'ring1': unit((attraction - 15) / 50),
        'ring2': unit((attraction - 50) / 40),
        'ring3': 0.0,
    }


def menu_balance_factor(products: List[str], category: str) -> float:
    categories = [PRODUCTS[p]['category'] for p in products]
    if len(set(categories)) <= 1:
        return 0.92
    share = categories.count(category) / len(categories)
    if share > 0.7:
        return 0.95
    if 0.25 <= share <= 0.55:
        return 1.06
    return 1.0


def _product_appeal(product_id: str, ctype: str, state: GameState) -> float:
    product = PRODUCTS[product_id]
    appeal = product['appeal'][ctype]
    decoration = DECORATIONS.get(state.selected_decoration or '')
    if decoration:
        appeal += decoration['appeal_bonus'][ctype] + decoration['category_bonus'][product['category']]
    return appeal * SEASON_SUBTYPE_BONUS[state.current_season].get(product['sub_type'], 1.0)


def appeal_ratio(product_id: str, ctype: str, state: GameState) -> float:
    total = sum(_product_appeal(p, ctype, state) for p in state.selected_products)
    return _product_appeal(product_id, ctype, state) / total if total > 0 else 0.0


def average_appeal(product_id: str) -> float:
    return sum(PRODUCTS[product_id]['appeal'].values()) / len(CUSTOMER_TYPES)


def service_staff(state: GameState):
    return [s for s in state.staff if not s.is_onboarding and s.assigned_task in SERVICE_TASKS]


def average_service_quality(state: GameState, default: float = 0.5) -> float:
    staff = service_staff(state)
    if not staff:
        return default
    return sum(s.service_quality for s in staff) / len(staff)


def demand_modifiers(state: GameState) -> Dict[str, float]:
    """Additive modifiers applied as (1 + sum)."""
    service = 0.0
    if state.staff:
        staff = service_staff(state)
        service = -0.15 if not staff else (sum(s.service_quality for s in staff) / len(staff) - 0.8) * 0.5

    idle = max(0, state.weeks_since_last_action - 5)
    protection = min(0.1, max(0.0, state.reputation - 60) / 40 * 0.1)
    inactivity = -max(0.0, min(0.25, idle * 0.015) - protection)

    return {
        'season': SEASON_MODIFIER[state.current_season] - 1,
        'service': service,
        'cleanliness': (state.cleanliness - 50) / 50 * 0.08,
        'inactivity': inactivity,
    }


def demand_variance(product_id: str, week: int) -> float:
    """Deterministic +/-8% swing per (product, week)."""
    u = zlib.crc32(f"{product_id}:{week}".encode()) / 2 ** 32
    return 1 + (u - 0.5) * 2 * WEEKLY_DEMAND_VARIANCE


def operating_rings(state: GameState) -> Dict[str, ConsumerRing]:
    """The state's rings, or just the front door if they were never generated."""
    if state.consumer_rings:
        return state.consumer_rings
    location = LOCATIONS.get(state.selected_location or '')
    address = get_address(state.selected_location, state.selected_address)
    if not location:
        return {}
    mod = address['traffic_modifier'] if address else 1.0
    counts = {c: location['foot_traffic'][c] * mod for c in CUSTOMER_TYPES}
    total = sum(counts.values())
    return {'ring0': ConsumerRing(ring='ring0', base_traffic=int(round(total)),
                                  customer_type_weights={c: v / total for c, v in counts.items()},
                                  base_conversion=1.0)}


# --- Competition ---

def weighted_competitors(state: GameState, ring_id: str) -> List[Tuple[NearbyShop, float]]:
    """
    Open shops that compete for a ring's customers. Same ring counts fully;
    an inner neighbour reaches out at 0.6, an outer one reaches in at 0.4.
    """
    placed = {}
    for rid, ring in state.consumer_rings.items():
        for shop_id in ring.nearby_shop_ids:
            placed[shop_id] = rid
    target = RING_IDS.index(ring_id)

    result = []
    for shop in state.nearby_shops:
        if shop.is_closing:
            continue
        idx = RING_IDS.index(placed.get(shop.id, shop.ring))
        if idx == target:
            weight = 1.0
        elif abs(idx - target) == 1:
            weight = INNER_TO_OUTER_WEIGHT if idx < target else OUTER_TO_INNER_WEIGHT
        else:
            continue
        result.append((shop, weight))
    return result


def player_competitiveness(price: float, category_avg_price: float, exposure: float, reputation: float,
                           avg_appeal: float, service_quality: float, weeks_idle: int, ctype: str) -> float:
    price_score = (category_avg_price / price) ** PRICE_ELASTICITY[ctype] if category_avg_price > 0 else 1.0
    heat_penalty = min(0.5, max(0, weeks_idle - 2) * 0.035)
    protection = min(0.2, max(0.0, reputation - 60) / 40 * 0.2)
    heat = 1 - max(0.0, heat_penalty - protection)
    return (price_score
            * get_exposure_coefficient(exposure)
            * get_reputation_coefficient(reputation)
            * avg_appeal / 100
            * max(0.3, service_quality)
            * heat)


def shop_competitiveness(shop: NearbyShop, ctype: str, category_avg_price: float, category: str) -> float:
    if shop.is_closing:
        return 0.0
    relevant = [p for p in shop.products if p.category == category] or shop.products
    avg_price = sum(p.price for p in relevant) / len(relevant) if relevant else 10.0
    avg_appeal = sum(p.appeal for p in relevant) / len(relevant) if relevant else 50.0
    price_score = (category_avg_price / avg_price) ** PRICE_ELASTICITY[ctype] if category_avg_price > 0 else 1.0
    return (price_score
            * get_exposure_coefficient(shop.exposure)
            * get_reputation_coefficient(get_shop_reputation(shop))
            * avg_appeal / 100
            * max(0.3, shop.service_quality))


def substitution_pressure(competitors: List[Tuple[NearbyShop, float]], category: str) -> float:
    """Shops in neighbouring categories quietly take some of our customers."""
    rule = CATEGORY_SUBSTITUTION[category]
    score = 0.0
    for shop, weight in competitors:
        sub = rule.get(shop.shop_category, 0.0)
        if sub <= 0:
            continue
        score += shop.exposure / 100 * max(0.3, shop.service_quality) * weight * sub
    return min(0.28, score)


def category_average_price(price: float, direct: List[Tuple[NearbyShop, float]], category: str) -> float:
    """Market price for a category, the player counted at weight 1."""
    price_sum, weight_sum = price, 1.0
    for shop, weight in direct:
        same = [p for p in shop.products if p.category == category]
        if not same:
            continue
        price_sum += sum(p.price for p in same) / len(same) * weight
        weight_sum += weight
    return price_sum / weight_sum


def _event_buff_total(state: GameState, buff_type: str) -> float:
    return sum(b.value for b in state.active_event_buffs if b.type == buff_type)


# --- Dine-in ---

def calculate_dine_in_demand(state: GameState) -> Dict[str, int]:
    products = state.selected_products
    if not products or not state.selected_location:
        return {}

    rings = operating_rings(state)
    coverage = ring_coverage(attraction_score(state))
    reach = traffic_reach_multiplier(state.exposure, state.reputation)
    modifiers = sum(demand_modifiers(state).values())
    service = average_service_quality(state)
    brand = BRANDS.get(state.selected_brand or '')
    brand_traffic = brand['traffic_multiplier'] if brand else 1.0
    occasion_table = LOCATION_CATEGORY_OCCASION.get(state.selected_location, {})
    stockout_mod, _ = get_stockout_effect(state.last_week_fulfillment)
    awareness = awareness_factor(state.growth.launch_progress)

    demand = {}
    for pid in products:
        product = PRODUCTS[pid]
        category = product['category']
        price = state.price_of(pid)
        price_effect = absolute_price_effect(price, product['reference_price'])
        appeal = average_appeal(pid)
        balance = menu_balance_factor(products, category)

        daily = 0.0
        for ring_id, ring in rings.items():
            if ring_id == 'ring3' or coverage.get(ring_id, 0) <= 0:
                continue
            competitors = weighted_competitors(state, ring_id)
            direct = [(s, w) for s, w in competitors if s.shop_category == category]
            avg_price = category_average_price(price, direct, category)
            pressure = substitution_pressure(competitors, category)
            consumers = ring.consumers()

            for ctype in CUSTOMER_TYPES:
                people = consumers.get(ctype, 0) * (1.0 if ring_id == 'ring0' else reach)
                if people <= 0:
                    continue
                occasion = max(0.75, min(1.35, occasion_table.get(category, 1.0)
                                         * CUSTOMER_CATEGORY_AFFINITY[ctype][category]))
                area_demand = (people * coverage[ring_id] * ring.base_conversion * brand_traffic
                               * CONVERSION_RATE * occasion * balance)
                player = player_competitiveness(price, avg_price, state.exposure, state.reputation,
                                                appeal, service, state.weeks_since_last_action, ctype)
                rivals = sum(shop_competitiveness(s, ctype, avg_price, category) * w for s, w in direct)
                share = player / (player + rivals + BASE_MARKET_FRICTION)
                daily += (area_demand * appeal_ratio(pid, ctype, state) * share
                          * (1 + modifiers) * (1 - pressure) * price_effect)

        weekly = daily * 7 * demand_variance(pid, state.current_week) * awareness * stockout_mod
        demand[pid] = max(0, int(round(weekly)))
    return demand


# --- Delivery ---

def rating_coefficient(rating: float) -> float:
    if rating <= 0:
        return 0.2
    if rating <= 1:
        return 0.3
    if rating <= 2:
        return 0.4
    if rating <= 3:
        return 0.5
    if rating <= 3.5:
        return 0.5 + (rating - 3) / 0.5 * 0.15
    if rating <= 4:
        return 0.65 + (rating - 3.5) / 0.5 * 0.15
    if rating <= 4.5:
        return 0.8 + (rating - 4) / 0.5 * 0.13
    return 0.93 + (rating - 4.5) / 0.5 * 0.07


def platform_exposure_coefficient(total_exposure: float) -> float:
    return 0.03 + 0.95 * (1 - math.exp(-max(0.0, total_exposure) / 40))


def average_platform_rating(platforms: List[ActivePlatform]) -> float:
    return sum(p.rating for p in platforms) / len(platforms) if platforms else 0.0


def total_platform_exposure(platforms: List[ActivePlatform]) -> float:
    return sum(p.platform_exposure for p in platforms)


def overlap_discount(platform_count: int) -> float:
    """The same customers browse every app; later platforms add less."""
    if platform_count <= 1:
        return 1.0
    return 0.7 if platform_count == 2 else 0.5


def discount_pricing_multiplier(platforms: List[ActivePlatform]) -> float:
    """Conversion from the discount tier, damped by any delivery mark-up."""
    if not platforms:
        return 0.3
    total = sum(max(1.0, p.platform_exposure) for p in platforms)
    weighted = sum(DISCOUNT_TIERS[p.discount_tier_id]['conversion_multiplier']
                   * PRICING_ELASTICITY[p.pricing_id][p.discount_tier_id]
                   * max(1.0, p.platform_exposure) for p in platforms)
    return weighted / total if total > 0 else 0.3


def delivery_market_share(state: GameState, ring_id: str) -> float:
    platforms = state.active_platforms
    if not platforms:
        return 0.0
    products = state.selected_products
    avg_appeal = sum(average_appeal(p) for p in products) / len(products) if products else 50.0
    player = (total_platform_exposure(platforms)
              * rating_coefficient(average_platform_rating(platforms))
              * avg_appeal / 100)

    target = RING_IDS.index(ring_id)
    rivals = 0.0
    for shop in state.nearby_shops:
        if shop.is_closing or not shop.has_delivery:
            continue
        idx = RING_IDS.index(shop.ring)
        if abs(idx - target) > 1:
            continue
        rivals += shop.exposure * 0.5 * shop.service_quality * (1.0 if idx == target else 0.5)

    base = DELIVERY_COMPETITION_BASE.get(state.selected_location or '', 35)
    total = player + rivals + base
    return player / total if total > 0 else 0.0


def delivery_appeal_ratio(product_id: str, products: List[str], ctype: str) -> float:
    total = sum(PRODUCTS[p]['appeal'][ctype] for p in products)
    return PRODUCTS[product_id]['appeal'][ctype] / total if total > 0 else 0.0


def calculate_delivery_demand(state: GameState) -> Dict[str, int]:
    platforms = state.active_platforms
    products = state.selected_products
    rings = state.consumer_rings
    if not platforms or not products or not rings:
        return {pid: 0 for pid in products}

    exposure_coeff = platform_exposure_coefficient(total_platform_exposure(platforms))
    rating_coeff = rating_coefficient(average_platform_rating(platforms))
    season = SEASON_MODIFIER[state.current_season]
    reach = traffic_reach_multiplier(state.exposure, state.reputation)
    pricing_mult = discount_pricing_multiplier(platforms)
    overlap = overlap_discount(len(platforms))
    stockout_mod, _ = get_stockout_effect(state.last_week_fulfillment)
    awareness = awareness_factor(state.growth.launch_progress)
    discounted = sum(1 for p in platforms if p.discount_tier_id != 'none')
    shares = {rid: delivery_market_share(state, rid) for rid in rings}

    demand = {}
    for pid in products:
        product = PRODUCTS[pid]
        price_effect = absolute_price_effect(state.price_of(pid), product['reference_price'])
        total = 0.0
        for ring_id, ring in rings.items():
            ring_reach = 1.0 if ring_id == 'ring0' else reach
            decay = DELIVERY_DISTANCE_DECAY.get(ring_id, 0.12)
            consumers = ring.consumers()
            for ctype in CUSTOMER_TYPES:
                people = consumers.get(ctype, 0) * ring_reach
                if people <= 0:
                    continue
                audience = sum(DELIVERY_PLATFORMS[p.platform_id]['audience'][ctype] * (1.0 if i == 0 else overlap)
                               for i, p in enumerate(platforms))
                total += (people * audience * DELIVERY_CONVERSION_RATE * exposure_coeff * rating_coeff
                          * delivery_appeal_ratio(pid, products, ctype) * shares[ring_id] * decay
                          * season * price_effect * pricing_mult)
        weekly = total * 7 * awareness * stockout_mod
        demand[pid] = max(discounted * 2, int(round(weekly)))
    return demand


def platform_weight_score(platform: ActivePlatform) -> float:
    """Where the platform ranks us in its feed, 0-90."""
    boost_weeks = DELIVERY_PLATFORMS[platform.platform_id]['new_store_boost_weeks']
    if platform.active_weeks <= boost_weeks:
        base = 15.0
    elif platform.active_weeks <= boost_weeks + 2:
        base = 8.0
    else:
        base = 3.0

    recent = platform.recent_weekly_orders[-4:]
    daily = sum(recent) / len(recent) / 7 if recent else 0.0
    if daily <= 10:
        sales = daily * 0.5
    elif daily <= 30:
        sales = 5 + (daily - 10) * 0.5
    elif daily <= 60:
        sales = 15 + (daily - 30) * 0.333
    else:
        sales = min(30.0, 25 + (daily - 60) * 0.1)

    if platform.rating >= 4.5:
        rating = 15.0
    elif platform.rating >= 4.0:
        rating = 10.0
    elif platform.rating >= 3.5:
        rating = 5.0
    else:
        rating = 0.0

    promo = PROMOTION_TIERS[platform.promotion_tier_index]['weight_bonus']
    discount = DISCOUNT_TIERS[platform.discount_tier_id]['weight_bonus']
    return max(0.0, min(90.0, base + sales + rating + promo + discount))


# --- Supply ---

def calculate_production_capacity(state: GameState, demand_hint: Dict[str, int]) -> Dict[str, float]:
    """
    Units each product could be made this week, from the hours of everyone
    on a producing task. Only the kitchen stations fit in the room; extra
    bodies add less and less.
    """
    products = state.selected_products
    capacity = {pid: 0.0 for pid in products}
    boss = state.boss_action
    boss_works = boss.current_action == 'work_in_store' and boss.work_role in TASKS
    if not products or (not state.staff and not boss_works):
        return capacity

    active = [s for s in state.staff if not s.is_onboarding]
    boost = MANAGER_BOOST if any(s.assigned_task == 'manager' for s in active) else 1.0
    if boss.current_action == 'supervise':
        boost *= SUPERVISE_BOOST

    # (effective hours, categories, focus product, proficiency)
    workers = []
    for s in active:
        mult = TASKS[s.assigned_task]['production']
        if mult <= 0:
            continue
        workers.append((s.weekly_hours * s.efficiency * mult * boost,
                        STAFF_TYPES[s.type_id]['categories'], s.focus_product_id, s.product_proficiency))
    if boss_works:
        mult = TASKS[boss.work_role]['production']
        if mult > 0:
            hours = 60 * BOSS_ACTIONS['work_in_store']['efficiency'] * mult * boost
            workers.append((hours, ('drink', 'food', 'snack', 'meal'), None, {}))
    if not workers:
        return capacity

    stations = max(1, state.store_area // AREA_PER_KITCHEN_STATION)
    n = len(workers)
    crowding = stations * math.log(1 + n / stations) / math.log(2) / n if n > stations else 1.0

    for hours, categories, focus, proficiency in workers:
        hours *= crowding
        eligible = [p for p in products if PRODUCTS[p]['category'] in categories]
        if not eligible:
            continue
        weights = {p: max(0.01, demand_hint.get(p, 0) * PRODUCTS[p]['make_time'] / 3600) for p in eligible}

        allocation = {}
        if focus in eligible:
            others = [p for p in eligible if p != focus]
            allocation[focus] = hours * FOCUS_PRODUCT_SHARE
            rest = hours * (1 - FOCUS_PRODUCT_SHARE)
            if others:
                total_w = sum(weights[p] for p in others)
                for p in others:
                    allocation[p] = rest * weights[p] / total_w
            else:
                allocation[focus] += rest
        else:
            total_w = sum(weights.values())
            for p in eligible:
                allocation[p] = hours * weights[p] / total_w

        for p, h in allocation.items():
            bonus = 1 + min(100.0, proficiency.get(p, 0.0)) * 0.003
            capacity[p] += h * bonus / (PRODUCTS[p]['make_time'] / 3600)
    return capacity


def allocate_supply(supply: int, dine_demand: int, delivery_demand: int, priority: str) -> Tuple[int, int]:
    """Returns (dine-in sales, delivery sales)."""
    if delivery_demand <= 0:
        return min(supply, dine_demand), 0
    if priority == 'delivery_first':
        delivery = min(supply, delivery_demand)
        return min(supply - delivery, dine_demand), delivery
    if priority == 'proportional':
        total = dine_demand + delivery_demand
        if supply >= total:
            return dine_demand, delivery_demand
        dine = min(dine_demand, int(round(supply * dine_demand / total)))
        return dine, min(delivery_demand, supply - dine)
    dine = min(supply, dine_demand)
    return dine, min(supply - dine, delivery_demand)


def supply_cost_modifier(state: GameState, week: Optional[int] = None) -> float:
    """Brand supply price, free of the mark-up during a quick franchise's honeymoon."""
    brand = BRANDS.get(state.selected_brand or '')
    if not brand:
        return 1.0
    week = state.current_week if week is None else week
    if brand['is_quick_franchise'] and week <= QUICK_FRANCHISE_HONEYMOON_WEEKS:
        modifier = 1.0
    else:
        modifier = brand['supply_cost_modifier']
    reduction = sum(b.value for b in state.boss_action.active_buffs if b.type == 'supply_cost_reduction')
    return modifier * max(0.0, 1 - reduction)


def calculate_supply_demand(state: GameState) -> SupplyDemandResult:
    """Pure: the same state always produces the same result."""
    products = state.selected_products
    if not products:
        return SupplyDemandResult()

    boost = 1 + _event_buff_total(state, 'demand_boost')
    multiplier = state.settings.demand_multiplier * max(0.0, boost)
    dine_demand = {p: int(round(v * multiplier)) for p, v in calculate_dine_in_demand(state).items()}
    delivery_demand = {p: int(round(v * multiplier)) for p, v in calculate_delivery_demand(state).items()}
    hint = {p: dine_demand.get(p, 0) + delivery_demand.get(p, 0) for p in products}

    capacity = calculate_production_capacity(state, hint)
    supply_cut = max(0.0, 1 - _event_buff_total(state, 'supply_reduction'))
    market_price_mod = price_modifier(state.active_marketing_activities)
    platforms = state.active_platforms
    platform_weights = {p.platform_id: max(1.0, p.platform_exposure) for p in platforms}
    weight_total = sum(platform_weights.values())

    sales: List[ProductSale] = []
    totals = {'dine_rev': 0.0, 'del_rev': 0.0, 'commission': 0.0, 'package': 0.0, 'discount': 0.0,
              'waste': 0.0, 'holding': 0.0, 'del_sales': 0}

    for pid in products:
        product = PRODUCTS[pid]
        item = state.inventory.get(pid)
        stock = item.quantity if item else 0
        cap = int(round(capacity.get(pid, 0.0) * supply_cut))
        supply = max(0, min(stock, cap))
        d_dine, d_del = dine_demand.get(pid, 0), delivery_demand.get(pid, 0)
        demand = d_dine + d_del

        dine_sales, del_sales = allocate_supply(supply, d_dine, d_del, state.supply_priority)
        unit_price = state.price_of(pid)
        dine_rev = dine_sales * unit_price * market_price_mod

        del_rev = 0.0
        for ap in platforms:
            share = platform_weights[ap.platform_id] / weight_total
            platform_sales = del_sales * share
            menu_price = unit_price * DELIVERY_PRICING[ap.pricing_id]
            subsidy = DISCOUNT_TIERS[ap.discount_tier_id]['subsidy_rate']
            revenue = platform_sales * menu_price * (1 - subsidy)
            del_rev += revenue
            totals['commission'] += revenue * DELIVERY_PLATFORMS[ap.platform_id]['commission_rate']
            totals['discount'] += platform_sales * menu_price * subsidy
            totals['package'] += platform_sales * PACKAGING_TIERS[ap.packaging_tier_id]['cost_per_order']

        sold = dine_sales + del_sales
        leftover = max(0, stock - sold)
        storage = product['storage']
        waste_units = int(math.floor(leftover * WASTE_RATES[storage]))
        unit_cost = item.unit_cost if item else product['base_cost']
        totals['waste'] += waste_units * unit_cost
        totals['holding'] += (leftover - waste_units) * unit_cost * HOLDING_COST_RATES[storage]

        if demand < supply * 0.9:
            bottleneck = 'demand'
        elif supply < demand * 0.9:
            bottleneck = 'supply_inventory' if stock < cap * 0.9 else 'supply_capacity'
        else:
            bottleneck = 'balanced'

        strategy = item.restock_strategy if item else 'auto_standard'
        target_weeks = RESTOCK_STRATEGIES[strategy] or RESTOCK_STRATEGIES['auto_standard']
        recommended = max(0, int(math.ceil(max(demand, 1) * target_weeks)) - (leftover - waste_units))

        sales.append(ProductSale(
            product_id=pid,
            demand=demand,
            dine_in_demand=d_dine,
            delivery_demand=d_del,
            supply=supply,
            units_sold=sold,
            dine_in_sales=dine_sales,
            delivery_sales=del_sales,
            unit_price=unit_price,
            revenue=dine_rev + del_rev,
            dine_in_revenue=dine_rev,
            delivery_revenue=del_rev,
            fulfillment_rate=sold / demand if demand > 0 else 1.0,
            stockout=sold < demand,
            bottleneck=bottleneck,
            recommended_restock=recommended,
        ))
        totals['dine_rev'] += dine_rev
        totals['del_rev'] += del_rev
        totals['del_sales'] += del_sales

    total_demand = sum(s.demand for s in sales)
    total_supply = sum(s.supply for s in sales)
    total_sales = sum(s.units_sold for s in sales)
    fulfillment = total_sales / total_demand if total_demand > 0 else 1.0
    _, rep_impact = get_stockout_effect(fulfillment)

    if total_demand < total_supply * 0.8:
        overall = 'demand'
    elif total_supply < total_demand * 0.8:
        overall = 'supply'
    else:
        overall = 'balanced'

    return SupplyDemandResult(
        product_sales=sales,
        total_demand=total_demand,
        total_supply=total_supply,
        total_sales=total_sales,
        dine_in_revenue=totals['dine_rev'],
        delivery_revenue=totals['del_rev'],
        total_revenue=totals['dine_rev'] + totals['del_rev'],
        delivery_sales=totals['del_sales'],
        delivery_commission=totals['commission'],
        delivery_package_cost=totals['package'],
        delivery_discount_cost=totals['discount'],
        waste_cost=totals['waste'],
        holding_cost=totals['holding'],
        fulfillment_rate=fulfillment,
        stockout_reputation_penalty=rep_impact if total_demand > total_sales else 0.0,
        awareness_factor=awareness_factor(state.growth.launch_progress),
        bottleneck=overall,
    )
