# shopsim/shops.py
"""
Nearby-shop ecosystem: who else is selling food around the store.
"""
import numpy as np
from typing import List, Optional, Tuple

from .config import *
from .catalog import LOCATIONS, get_address
from .models import NearbyShop, NearbyShopProduct, GameSettings, GameState
from .rings import draw_shop_ring
from .mechanics import get_exposure_coefficient, get_reputation_coefficient, get_shop_reputation

SURNAMES = ['Wang', 'Li', 'Zhang', 'Liu', 'Chen', 'Yang', 'Zhao', 'Huang', 'Zhou', 'Wu', 'Sun', 'Ma']
SHOP_PREFIXES = ['Old', 'Little', 'Big', 'New', 'Golden', 'Lucky', 'Happy', 'Good']
CATEGORY_WORDS = {
    'drink': ['Tea House', 'Milk Tea', 'Juice Bar', 'Drinks'],
    'food': ['Skewers', 'BBQ', 'Fried Chicken', 'Braised Snacks'],
    'snack': ['Desserts', 'Bakery', 'Cakes', 'Pastries'],
    'meal': ['Noodle House', 'Fast Food', 'Canteen', 'Diner'],
    'grocery': ['Mart', 'Convenience Store', 'Grocer'],
    'service': ['Nail Salon', 'Barber', 'Laundry', 'Print Shop'],
}

# (name, category, sub_type, (price min, max), cost rate, quality, appeal)
CHAIN_BRANDS = {
    'mixue_nearby': {'name': 'Mixue', 'shop_category': 'drink', 'tier': 'budget', 'exposure': 95,
                     'service_quality': 0.75, 'decoration_level': 2, 'volatility': 0.02, 'delivery': 0.95,
                     'products': [('Lemonade', 'drink', 'cold_drink', (4, 4), 0.3, 60, 85),
                                  ('Soft Serve', 'snack', 'dessert', (3, 4), 0.35, 55, 80),
                                  ('Milk Tea', 'drink', 'cold_drink', (6, 8), 0.35, 55, 80)]},
    'luckin_nearby': {'name': 'Luckin', 'shop_category': 'drink', 'tier': 'standard', 'exposure': 90,
                      'service_quality': 0.85, 'decoration_level': 3, 'volatility': 0.05, 'delivery': 0.95,
                      'products': [('Coconut Latte', 'drink', 'hot_drink', (9, 13), 0.35, 75, 85),
                                   ('Americano', 'drink', 'hot_drink', (9, 12), 0.25, 70, 70)]},
    'shaxian_nearby': {'name': 'Shaxian Snacks', 'shop_category': 'meal', 'tier': 'budget', 'exposure': 80,
                       'service_quality': 0.65, 'decoration_level': 1, 'volatility': 0.03, 'delivery': 0.95,
                       'products': [('Peanut Noodles', 'meal', 'main_food', (8, 12), 0.4, 60, 70),
                                    ('Steamed Dumplings', 'meal', 'main_food', (6, 10), 0.4, 60, 65),
                                    ('Stewed Soup', 'meal', 'main_food', (10, 15), 0.45, 65, 60)]},
    'lanzhou_nearby': {'name': 'Lanzhou Noodles', 'shop_category': 'meal', 'tier': 'budget', 'exposure': 75,
                       'service_quality': 0.65, 'decoration_level': 1, 'volatility': 0.03, 'delivery': 0.80,
                       'products': [('Beef Noodles', 'meal', 'main_food', (12, 18), 0.45, 65, 75),
                                    ('Mixed Noodles', 'meal', 'main_food', (10, 14), 0.4, 60, 65)]},
    'zhengxin_nearby': {'name': 'Zhengxin Chicken', 'shop_category': 'food', 'tier': 'budget', 'exposure': 80,
                        'service_quality': 0.70, 'decoration_level': 2, 'volatility': 0.03, 'delivery': 0.60,
                        'products': [('Chicken Cutlet', 'food', 'snack', (12, 15), 0.4, 60, 80),
                                     ('Grilled Sausage', 'food', 'snack', (5, 8), 0.35, 55, 70)]},
    'juewei_nearby': {'name': 'Juewei Duck', 'shop_category': 'food', 'tier': 'standard', 'exposure': 85,
                      'service_quality': 0.80, 'decoration_level': 3, 'volatility': 0.04, 'delivery': 0.70,
                      'products': [('Duck Neck', 'food', 'snack', (15, 25), 0.45, 70, 75),
                                   ('Duck Wings', 'food', 'snack', (18, 28), 0.45, 70, 70)]},
    'starbucks_nearby': {'name': 'Starbucks', 'shop_category': 'drink', 'tier': 'premium', 'exposure': 95,
                         'service_quality': 0.85, 'decoration_level': 4, 'volatility': 0.01, 'delivery': 0.70,
                         'products': [('Latte', 'drink', 'hot_drink', (30, 38), 0.25, 85, 80),
                                      ('Frappuccino', 'drink', 'cold_drink', (35, 42), 0.2, 80, 75)]},
    'mcdonald_nearby': {'name': "McDonald's", 'shop_category': 'meal', 'tier': 'standard', 'exposure': 95,
                        'service_quality': 0.85, 'decoration_level': 3, 'volatility': 0.02, 'delivery': 0.90,
                        'products': [('Big Mac', 'meal', 'main_food', (22, 28), 0.4, 75, 80),
                                     ('Fries', 'snack', 'snack', (10, 15), 0.3, 70, 85)]},
    'heytea_nearby': {'name': 'Heytea', 'shop_category': 'drink', 'tier': 'premium', 'exposure': 85,
                      'service_quality': 0.85, 'decoration_level': 4, 'volatility': 0.03, 'delivery': 0.90,
                      'products': [('Grape Cheese Tea', 'drink', 'cold_drink', (15, 22), 0.35, 85, 85),
                                   ('Berry Cheese Tea', 'drink', 'cold_drink', (18, 25), 0.3, 85, 80)]},
    'wallace_nearby': {'name': 'Wallace', 'shop_category': 'meal', 'tier': 'budget', 'exposure': 75,
                       'service_quality': 0.65, 'decoration_level': 2, 'volatility': 0.04, 'delivery': 0.95,
                       'products': [('Spicy Chicken Burger', 'meal', 'main_food', (8, 12), 0.45, 50, 70),
                                    ('Fried Chicken', 'food', 'snack', (10, 15), 0.4, 50, 75)]},
}

INDEPENDENT_TEMPLATES = [
    {'shop_category': 'drink', 'exposure': (25, 55), 'service_quality': (0.45, 0.85), 'decoration': (1, 3),
     'volatility': 0.08, 'products': [('Milk Tea', 'cold_drink', (8, 16), 0.35, 55, 70),
                                      ('Fruit Tea', 'cold_drink', (10, 18), 0.35, 55, 65)]},
    {'shop_category': 'drink', 'exposure': (20, 50), 'service_quality': (0.55, 0.9), 'decoration': (2, 4),
     'volatility': 0.06, 'products': [('Pour Over', 'hot_drink', (15, 30), 0.3, 70, 60),
                                      ('Latte', 'hot_drink', (18, 28), 0.3, 65, 65)]},
    {'shop_category': 'food', 'exposure': (20, 45), 'service_quality': (0.35, 0.75), 'decoration': (1, 2),
     'volatility': 0.1, 'products': [('Grilled Skewers', 'snack', (2, 5), 0.4, 55, 75),
                                     ('Fried Skewers', 'snack', (2, 4), 0.35, 50, 70)]},
    {'shop_category': 'snack', 'exposure': (25, 55), 'service_quality': (0.55, 0.85), 'decoration': (2, 4),
     'volatility': 0.06, 'products': [('Cake', 'dessert', (15, 35), 0.4, 60, 65),
                                      ('Bread', 'snack', (8, 18), 0.4, 55, 60)]},
    {'shop_category': 'meal', 'exposure': (20, 45), 'service_quality': (0.45, 0.75), 'decoration': (1, 3),
     'volatility': 0.07, 'products': [('Rice Plate', 'main_food', (12, 22), 0.45, 50, 65),
                                      ('Stir Fry', 'main_food', (15, 28), 0.45, 55, 60)]},
    {'shop_category': 'meal', 'exposure': (25, 55), 'service_quality': (0.45, 0.75), 'decoration': (1, 3),
     'volatility': 0.08, 'products': [('Malatang', 'main_food', (15, 30), 0.4, 55, 75)]},
    {'shop_category': 'grocery', 'exposure': (30, 60), 'service_quality': (0.5, 0.7), 'decoration': (1, 2),
     'volatility': 0.03, 'products': [('Drinks & Snacks', 'snack', (3, 10), 0.7, 60, 50)]},
    {'shop_category': 'service', 'exposure': (20, 40), 'service_quality': (0.5, 0.8), 'decoration': (1, 3),
     'volatility': 0.02, 'products': [('Haircut', 'snack', (20, 40), 0.3, 60, 40)]},
]

INDEPENDENT_DELIVERY_PROBABILITY = {
    'meal': 0.70, 'drink': 0.60, 'food': 0.50, 'snack': 0.40, 'grocery': 0.20, 'service': 0.05,
}

LOCATION_SHOP_DISTRIBUTIONS = {
    'school': {'count': (9, 15), 'chain_probability': 0.65,
               'category_weights': {'drink': 0.35, 'food': 0.2, 'snack': 0.15, 'meal': 0.2, 'grocery': 0.08, 'service': 0.02},
               'tiers': {'budget': 0.5, 'standard': 0.35, 'premium': 0.15},
               'preferred_chains': ['mixue_nearby', 'zhengxin_nearby', 'wallace_nearby', 'shaxian_nearby', 'luckin_nearby']},
    'office': {'count': (8, 14), 'chain_probability': 0.75,
               'category_weights': {'drink': 0.3, 'food': 0.1, 'snack': 0.1, 'meal': 0.35, 'grocery': 0.1, 'service': 0.05},
               'tiers': {'budget': 0.15, 'standard': 0.5, 'premium': 0.35},
               'preferred_chains': ['luckin_nearby', 'starbucks_nearby', 'mcdonald_nearby', 'lanzhou_nearby', 'heytea_nearby']},
    'community': {'count': (8, 13), 'chain_probability': 0.50,
                  'category_weights': {'drink': 0.15, 'food': 0.15, 'snack': 0.15, 'meal': 0.25, 'grocery': 0.2, 'service': 0.1},
                  'tiers': {'budget': 0.45, 'standard': 0.4, 'premium': 0.15},
                  'preferred_chains': ['mixue_nearby', 'shaxian_nearby', 'juewei_nearby', 'wallace_nearby']},
    'business': {'count': (10, 16), 'chain_probability': 0.80,
                 'category_weights': {'drink': 0.3, 'food': 0.15, 'snack': 0.15, 'meal': 0.25, 'grocery': 0.05, 'service': 0.1},
                 'tiers': {'budget': 0.1, 'standard': 0.45, 'premium': 0.45},
                 'preferred_chains': ['starbucks_nearby', 'heytea_nearby', 'luckin_nearby', 'mcdonald_nearby', 'juewei_nearby']},
    'tourist': {'count': (9, 14), 'chain_probability': 0.60,
                'category_weights': {'drink': 0.25, 'food': 0.25, 'snack': 0.2, 'meal': 0.2, 'grocery': 0.05, 'service': 0.05},
                'tiers': {'budget': 0.25, 'standard': 0.4, 'premium': 0.35},
                'preferred_chains': ['starbucks_nearby', 'heytea_nearby', 'mcdonald_nearby', 'juewei_nearby', 'mixue_nearby']},
}

TIER_MULTIPLIER = {'budget': 0.8, 'standard': 1.0, 'premium': 1.3}


def shop_rent_base(location_id: Optional[str], address_id: Optional[str]) -> float:
    """Monthly rent of a typical 40 sqm unit on the same street."""
    location = LOCATIONS.get(location_id or '')
    address = get_address(location_id, address_id)
    if not location:
        return 0.0
    return location['rent_per_sqm'] * 40 * (address['rent_modifier'] if address else 1.0)


def _weighted_pick(weights: dict, rng: np.random.RandomState) -> str:
    keys = list(weights.keys())
    probs = np.array([weights[k] for k in keys], dtype=float)
    return keys[int(rng.choice(len(keys), p=probs / probs.sum()))]


def generate_shop_name(category: str, rng: np.random.RandomState) -> str:
    word = rng.choice(CATEGORY_WORDS[category])
    roll = rng.random_sample()
    if roll < 0.6:
        return f"{rng.choice(SURNAMES)}'s {word}"
    if roll < 0.85:
        return f"{rng.choice(SHOP_PREFIXES)} {word}"
    return f"{word} Corner"


def create_chain_shop(shop_id: str, chain_id: str, week: int, rent_base: float,
                      rng: np.random.RandomState) -> NearbyShop:
    template = CHAIN_BRANDS[chain_id]
    products = []
    for name, category, sub_type, (lo, hi), cost_rate, quality, appeal in template['products']:
        price = rng.uniform(lo, hi) if hi > lo else float(lo)
        products.append(NearbyShopProduct(
            name=name, category=category, sub_type=sub_type,
            price=round(price, 1),
            base_cost=round(price * cost_rate, 1),
            quality=int(quality + rng.randint(-5, 6)),
            appeal=int(appeal + rng.randint(-5, 6)),
        ))
    return NearbyShop(
        id=shop_id,
        name=template['name'],
        shop_category=template['shop_category'],
        brand_type='chain',
        brand_tier=template['tier'],
        ring=draw_shop_ring(template['shop_category'], rng),
        exposure=float(template['exposure'] + rng.randint(-5, 6)),
        service_quality=template['service_quality'],
        decoration_level=template['decoration_level'],
        has_delivery=bool(rng.random_sample() < template['delivery']),
        products=products,
        price_volatility=template['volatility'],
        monthly_rent=rent_base * (template['decoration_level'] * 0.3 + 0.7),
        opened_week=week,
    )


def create_independent_shop(shop_id: str, category: str, tier: str, week: int, rent_base: float,
                            rng: np.random.RandomState) -> NearbyShop:
    templates = [t for t in INDEPENDENT_TEMPLATES if t['shop_category'] == category] or INDEPENDENT_TEMPLATES[:1]
    template = templates[rng.randint(len(templates))]
    tier_mult = TIER_MULTIPLIER[tier]

    products = []
    for name, sub_type, (lo, hi), cost_rate, quality, appeal in template['products']:
        price = rng.uniform(lo, hi) * tier_mult
        products.append(NearbyShopProduct(
            name=name, category=template['shop_category'], sub_type=sub_type,
            price=round(price, 1),
            base_cost=round(price * cost_rate, 1),
            quality=int(round(quality * tier_mult + rng.randint(-10, 11))),
            appeal=int(round(appeal * tier_mult + rng.randint(-10, 11))),
        ))

    lo_dec, hi_dec = template['decoration']
    return NearbyShop(
        id=shop_id,
        name=generate_shop_name(template['shop_category'], rng),
        shop_category=template['shop_category'],
        brand_type='independent',
        brand_tier=tier,
        ring=draw_shop_ring(template['shop_category'], rng),
        exposure=float(rng.uniform(*template['exposure'])),
        service_quality=float(rng.uniform(*template['service_quality'])),
        decoration_level=int(rng.randint(lo_dec, hi_dec + 1)),
        has_delivery=bool(rng.random_sample() < INDEPENDENT_DELIVERY_PROBABILITY[template['shop_category']]),
        products=products,
        price_volatility=template['volatility'],
        monthly_rent=rent_base * 0.6,
        opened_week=week,
    )


def generate_initial_shops(location_id: str, address_id: str, rent_base: float,
                           rng: np.random.RandomState) -> List[NearbyShop]:
    """Populates the street at address selection time."""
    dist = LOCATION_SHOP_DISTRIBUTIONS.get(location_id)
    if not dist:
        return []

    count = rng.randint(dist['count'][0], dist['count'][1] + 1)
    shops: List[NearbyShop] = []
    for i in range(count):
        shop_id = f"shop_00_{i:02d}"
        is_chain = rng.random_sample() < dist['chain_probability']
        category = _weighted_pick(dist['category_weights'], rng)
        tier = _weighted_pick(dist['tiers'], rng)

        if is_chain:
            preferred = dist['preferred_chains']
            matching = [c for c in preferred if CHAIN_BRANDS[c]['shop_category'] == category]
            candidates = matching or preferred
            chain_id = candidates[rng.randint(len(candidates))]
            if not any(s.name == CHAIN_BRANDS[chain_id]['name'] for s in shops):
                shops.append(create_chain_shop(shop_id, chain_id, 0, rent_base, rng))
                continue

        shops.append(create_independent_shop(shop_id, category, tier, 0, rent_base, rng))
    return shops


def new_shop_probability(base: float, active_in_category: int) -> float:
    """Entry gets less likely as a category fills up."""
    return base / (1.0 + active_in_category / NEW_SHOP_SATURATION_SCALE)


def try_generate_new_shop(state: GameState, week: int, rent_base: float,
                          rng: np.random.RandomState) -> Optional[NearbyShop]:
    dist = LOCATION_SHOP_DISTRIBUTIONS.get(state.selected_location or '')
    if not dist:
        return None

    active = [s for s in state.nearby_shops if not s.is_closing]
    category = _weighted_pick(dist['category_weights'], rng)
    in_category = sum(1 for s in active if s.shop_category == category)
    if rng.random_sample() >= new_shop_probability(state.settings.new_shop_probability, in_category):
        return None

    shop_id = f"shop_{week:02d}_{len(state.nearby_shops):02d}"
    if rng.random_sample() < dist['chain_probability'] * 0.8:
        candidates = [c for c, t in CHAIN_BRANDS.items()
                      if t['shop_category'] == category and not any(s.name == t['name'] for s in active)]
        if candidates:
            chain_id = candidates[rng.randint(len(candidates))]
            return create_chain_shop(shop_id, chain_id, week, rent_base, rng)

    tier = _weighted_pick(dist['tiers'], rng)
    return create_independent_shop(shop_id, category, tier, week, rent_base, rng)


def update_shop_prices(shops: List[NearbyShop], rng: np.random.RandomState) -> List[NearbyShop]:
    updated = []
    for shop in shops:
        if shop.is_closing:
            updated.append(shop)
            continue
        products = []
        for p in shop.products:
            change = 1 + rng.uniform(-shop.price_volatility, shop.price_volatility)
            new_price = max(p.base_cost * 1.1, p.price * change)
            products.append(p.model_copy(update={'price': round(new_price, 1)}))
        updated.append(shop.model_copy(update={'products': products}))
    return updated


def _shop_score(shop: NearbyShop) -> Tuple[float, float, float]:
    if shop.products:
        avg_price = sum(p.price for p in shop.products) / len(shop.products)
        avg_appeal = sum(p.appeal for p in shop.products) / len(shop.products)
        avg_cost = sum(p.base_cost for p in shop.products) / len(shop.products)
    else:
        avg_price, avg_appeal, avg_cost = 10.0, 50.0, 5.0
    score = (get_exposure_coefficient(shop.exposure)
             * get_reputation_coefficient(get_shop_reputation(shop))
             * (avg_appeal / 100)
             * max(0.3, shop.service_quality))
    return score, avg_price, avg_cost


def update_shop_profits(shops: List[NearbyShop], area_total_demand: float) -> List[NearbyShop]:
    """
    Splits the area's daily demand across open shops by competitiveness and
    books a weekly profit. Tracks consecutive loss weeks for closing checks.
    """
    scores = {s.id: _shop_score(s) for s in shops if not s.is_closing}
    total_score = sum(v[0] for v in scores.values())

    updated = []
    for shop in shops:
        if shop.is_closing:
            updated.append(shop)
            continue
        score, avg_price, avg_cost = scores[shop.id]
        share = score / total_score if total_score > 0 else 0.0
        units = area_total_demand * share
        profit = units * avg_price - units * avg_cost - shop.monthly_rent / 4
        loss_weeks = shop.loss_weeks + 1 if profit < 0 else 0
        updated.append(shop.model_copy(update={'weekly_profit': profit, 'loss_weeks': loss_weeks}))
    return updated


def check_shop_closing(shops: List[NearbyShop], week: int, settings: GameSettings):
    """
    Returns (shops, events). A shop losing money for
    `shop_closing_loss_weeks` straight weeks starts closing. Each later
    check ages the closing counter; the shop is removed once the counter
    reaches `shop_closing_grace_weeks`.
    """
    events = []
    remaining = []
    for shop in shops:
        if shop.is_closing:
            closing_weeks = shop.closing_weeks + 1
            if closing_weeks >= settings.shop_closing_grace_weeks:
                events.append(f"SHOP: {shop.name} has closed for good.")
                continue
            remaining.append(shop.model_copy(update={'closing_weeks': closing_weeks}))
            continue

        if week - shop.opened_week >= SHOP_GRACE_NEW_WEEKS and shop.loss_weeks >= settings.shop_closing_loss_weeks:
            events.append(f"SHOP: {shop.name} put up a closing-down sign.")
            remaining.append(shop.model_copy(update={'is_closing': True, 'closing_weeks': 0}))
            continue
        remaining.append(shop)
    return remaining, events


