# shopsim/catalog.py
"""
Static game tables. Treated as read-only process-wide configuration:
nothing in the simulation writes to these dicts.
"""
from typing import Dict, Any, Optional

CUSTOMER_TYPES = ('students', 'office', 'family', 'tourist')
PRODUCT_CATEGORIES = ('drink', 'food', 'snack', 'meal')
SHOP_CATEGORIES = ('drink', 'food', 'snack', 'meal', 'grocery', 'service')
RING_IDS = ('ring0', 'ring1', 'ring2', 'ring3')
SEASONS = ('spring', 'summer', 'autumn', 'winter')

SEASON_START_MONTH = {'spring': 4, 'summer': 7, 'autumn': 10, 'winter': 1}
SEASON_MODIFIER = {'spring': 0.90, 'summer': 1.25, 'autumn': 1.05, 'winter': 0.85}

# --- Products ---
# make_time is seconds per unit
PRODUCTS: Dict[str, Dict[str, Any]] = {
    'milktea': {'name': 'Milk Tea', 'category': 'drink', 'sub_type': 'cold_drink',
                'base_cost': 5.0, 'base_price': 12.0, 'reference_price': 15.0, 'make_time': 75,
                'storage': 'refrigerated',
                'appeal': {'students': 90, 'office': 70, 'family': 50, 'tourist': 60}},
    'coffee': {'name': 'Coffee', 'category': 'drink', 'sub_type': 'hot_drink',
               'base_cost': 7.0, 'base_price': 18.0, 'reference_price': 22.0, 'make_time': 110,
               'storage': 'normal',
               'appeal': {'students': 50, 'office': 95, 'family': 40, 'tourist': 70}},
    'fruittea': {'name': 'Fruit Tea', 'category': 'drink', 'sub_type': 'cold_drink',
                 'base_cost': 6.0, 'base_price': 15.0, 'reference_price': 18.0, 'make_time': 90,
                 'storage': 'refrigerated',
                 'appeal': {'students': 80, 'office': 60, 'family': 70, 'tourist': 75}},
    'burger': {'name': 'Burger', 'category': 'meal', 'sub_type': 'main_food',
               'base_cost': 12.0, 'base_price': 25.0, 'reference_price': 30.0, 'make_time': 110,
               'storage': 'refrigerated',
               'appeal': {'students': 85, 'office': 75, 'family': 60, 'tourist': 70}},
    'ricebox': {'name': 'Rice Box', 'category': 'meal', 'sub_type': 'main_food',
                'base_cost': 14.0, 'base_price': 28.0, 'reference_price': 32.0, 'make_time': 180,
                'storage': 'refrigerated',
                'appeal': {'students': 70, 'office': 85, 'family': 50, 'tourist': 40}},
    'noodles': {'name': 'Noodles', 'category': 'meal', 'sub_type': 'main_food',
                'base_cost': 8.0, 'base_price': 18.0, 'reference_price': 22.0, 'make_time': 150,
                'storage': 'normal',
                'appeal': {'students': 75, 'office': 70, 'family': 65, 'tourist': 55}},
    'bbq': {'name': 'BBQ Skewers', 'category': 'food', 'sub_type': 'snack',
            'base_cost': 7.0, 'base_price': 15.0, 'reference_price': 18.0, 'make_time': 180,
            'storage': 'frozen',
            'appeal': {'students': 80, 'office': 65, 'family': 40, 'tourist': 60}},
    'fries': {'name': 'Fries', 'category': 'snack', 'sub_type': 'snack',
              'base_cost': 4.0, 'base_price': 10.0, 'reference_price': 12.0, 'make_time': 110,
              'storage': 'frozen',
              'appeal': {'students': 90, 'office': 50, 'family': 75, 'tourist': 65}},
    'dessert': {'name': 'Dessert Cup', 'category': 'snack', 'sub_type': 'dessert',
                'base_cost': 9.0, 'base_price': 22.0, 'reference_price': 26.0, 'make_time': 40,
                'storage': 'refrigerated',
                'appeal': {'students': 85, 'office': 70, 'family': 80, 'tourist': 75}},
    'bread': {'name': 'Bread', 'category': 'snack', 'sub_type': 'snack',
              'base_cost': 7.0, 'base_price': 15.0, 'reference_price': 18.0, 'make_time': 75,
              'storage': 'normal',
              'appeal': {'students': 70, 'office': 80, 'family': 75, 'tourist': 60}},
}

# --- Locations & Addresses ---
LOCATIONS: Dict[str, Dict[str, Any]] = {
    'school': {
        'name': 'University District', 'rent_per_sqm': 80.0, 'wage_level': 0.8,
        'foot_traffic': {'students': 2600, 'office': 500, 'family': 360, 'tourist': 120},
        'addresses': {
            'school_gate': {'name': 'Main Gate', 'area': 25, 'traffic_modifier': 1.3, 'rent_modifier': 1.4},
            'school_canteen': {'name': 'Canteen Row', 'area': 15, 'traffic_modifier': 1.1, 'rent_modifier': 0.9},
            'school_back': {'name': 'Back Street', 'area': 60, 'traffic_modifier': 0.7, 'rent_modifier': 0.6},
        },
    },
    'office': {
        'name': 'Office Park', 'rent_per_sqm': 150.0, 'wage_level': 1.2,
        'foot_traffic': {'students': 310, 'office': 3500, 'family': 250, 'tourist': 250},
        'addresses': {
            'office_lobby': {'name': 'Tower Lobby', 'area': 45, 'traffic_modifier': 1.2, 'rent_modifier': 1.3},
            'office_b1': {'name': 'Basement Food Court', 'area': 30, 'traffic_modifier': 1.0, 'rent_modifier': 0.85},
            'office_street': {'name': 'Side Street', 'area': 80, 'traffic_modifier': 0.8, 'rent_modifier': 0.7},
        },
    },
    'community': {
        'name': 'Residential Community', 'rent_per_sqm': 60.0, 'wage_level': 0.9,
        'foot_traffic': {'students': 800, 'office': 680, 'family': 2700, 'tourist': 120},
        'addresses': {
            'community_entrance': {'name': 'Estate Entrance', 'area': 35, 'traffic_modifier': 1.2, 'rent_modifier': 1.1},
            'community_market': {'name': 'Wet Market', 'area': 20, 'traffic_modifier': 1.0, 'rent_modifier': 0.8},
            'community_park': {'name': 'Park Corner', 'area': 50, 'traffic_modifier': 0.9, 'rent_modifier': 0.75},
        },
    },
    'business': {
        'name': 'Shopping District', 'rent_per_sqm': 200.0, 'wage_level': 1.0,
        'foot_traffic': {'students': 1430, 'office': 1750, 'family': 1430, 'tourist': 1170},
        'addresses': {
            'business_mall': {'name': 'Mall Atrium', 'area': 55, 'traffic_modifier': 1.3, 'rent_modifier': 1.5},
            'business_street': {'name': 'Pedestrian Street', 'area': 40, 'traffic_modifier': 1.1, 'rent_modifier': 1.2},
            'business_corner': {'name': 'Quiet Corner', 'area': 70, 'traffic_modifier': 0.85, 'rent_modifier': 0.9},
        },
    },
    'tourist': {
        'name': 'Scenic Area', 'rent_per_sqm': 180.0, 'wage_level': 1.1,
        'foot_traffic': {'students': 420, 'office': 220, 'family': 910, 'tourist': 3640},
        'addresses': {
            'tourist_gate': {'name': 'Park Gate', 'area': 30, 'traffic_modifier': 1.4, 'rent_modifier': 1.6},
            'tourist_inside': {'name': 'Inside the Park', 'area': 25, 'traffic_modifier': 1.2, 'rent_modifier': 1.3},
            'tourist_parking': {'name': 'Coach Parking', 'area': 65, 'traffic_modifier': 0.75, 'rent_modifier': 0.7},
        },
    },
}

# --- Brands ---
BRANDS: Dict[str, Dict[str, Any]] = {
    'independent': {'name': 'Independent', 'type': 'independent', 'franchise_fee': 0.0,
                    'royalty_rate': 0.0, 'initial_reputation': 50, 'supply_cost_modifier': 1.0,
                    'traffic_multiplier': 1.0, 'categories': None, 'area_range': (15, 200),
                    'is_quick_franchise': False},
    'mixue': {'name': 'Mixue', 'type': 'franchise', 'franchise_fee': 150000.0,
              'royalty_rate': 0.05, 'initial_reputation': 90, 'supply_cost_modifier': 0.88,
              'traffic_multiplier': 1.40, 'categories': ('drink',), 'area_range': (30, 80),
              'is_quick_franchise': False},
    'luckin': {'name': 'Luckin', 'type': 'franchise', 'franchise_fee': 150000.0,
               'royalty_rate': 0.05, 'initial_reputation': 85, 'supply_cost_modifier': 0.85,
               'traffic_multiplier': 1.45, 'categories': ('drink',), 'area_range': (40, 120),
               'is_quick_franchise': False},
    'chabaidao': {'name': 'ChaBaiDao', 'type': 'franchise', 'franchise_fee': 160000.0,
                  'royalty_rate': 0.05, 'initial_reputation': 78, 'supply_cost_modifier': 0.9,
                  'traffic_multiplier': 1.30, 'categories': ('drink',), 'area_range': (25, 60),
                  'is_quick_franchise': False},
    'tastien': {'name': 'Tastien', 'type': 'franchise', 'franchise_fee': 130000.0,
                'royalty_rate': 0.05, 'initial_reputation': 73, 'supply_cost_modifier': 0.87,
                'traffic_multiplier': 1.35, 'categories': ('meal', 'snack'), 'area_range': (50, 150),
                'is_quick_franchise': False},
    'yogurt': {'name': 'Yogurt Bar', 'type': 'franchise', 'franchise_fee': 120000.0,
               'royalty_rate': 0.06, 'initial_reputation': 58, 'supply_cost_modifier': 1.15,
               'traffic_multiplier': 1.50, 'categories': ('drink', 'snack'), 'area_range': (20, 80),
               'is_quick_franchise': False},
    'nezha': {'name': 'Nezha Tea', 'type': 'franchise', 'franchise_fee': 158000.0,
              'royalty_rate': 0.10, 'initial_reputation': 30, 'supply_cost_modifier': 1.8,
              'traffic_multiplier': 0.8, 'categories': ('drink',), 'area_range': (20, 80),
              'is_quick_franchise': True},
    'hamburg4': {'name': 'Burger Four', 'type': 'franchise', 'franchise_fee': 168000.0,
                 'royalty_rate': 0.09, 'initial_reputation': 28, 'supply_cost_modifier': 1.7,
                 'traffic_multiplier': 0.8, 'categories': ('meal', 'snack'), 'area_range': (30, 120),
                 'is_quick_franchise': True},
    'koreacoffee': {'name': 'Seoul Coffee', 'type': 'franchise', 'franchise_fee': 450000.0,
                    'royalty_rate': 0.10, 'initial_reputation': 40, 'supply_cost_modifier': 1.8,
                    'traffic_multiplier': 0.8, 'categories': ('drink', 'snack'), 'area_range': (40, 150),
                    'is_quick_franchise': True},
}

# --- Decorations ---
DECORATIONS: Dict[str, Dict[str, Any]] = {
    'simple': {'name': 'Simple', 'level': 1, 'cost_per_sqm': 500.0,
               'appeal_bonus': {'students': 5, 'office': 5, 'family': 5, 'tourist': 5},
               'category_bonus': {'drink': 0, 'food': 0, 'snack': 0, 'meal': 0}},
    'modern': {'name': 'Modern', 'level': 2, 'cost_per_sqm': 1200.0,
               'appeal_bonus': {'students': 15, 'office': 20, 'family': 10, 'tourist': 15},
               'category_bonus': {'drink': 10, 'food': 5, 'snack': 10, 'meal': 5}},
    'cozy': {'name': 'Cozy', 'level': 3, 'cost_per_sqm': 1800.0,
             'appeal_bonus': {'students': 10, 'office': 15, 'family': 25, 'tourist': 20},
             'category_bonus': {'drink': 15, 'food': 10, 'snack': 15, 'meal': 10}},
    'industrial': {'name': 'Industrial', 'level': 3, 'cost_per_sqm': 1500.0,
                   'appeal_bonus': {'students': 25, 'office': 20, 'family': 5, 'tourist': 25},
                   'category_bonus': {'drink': 15, 'food': 5, 'snack': 10, 'meal': 10}},
    'premium': {'name': 'Premium', 'level': 4, 'cost_per_sqm': 3000.0,
                'appeal_bonus': {'students': 15, 'office': 30, 'family': 25, 'tourist': 30},
                'category_bonus': {'drink': 20, 'food': 20, 'snack': 20, 'meal': 20}},
    'luxury': {'name': 'Luxury', 'level': 5, 'cost_per_sqm': 5000.0,
               'appeal_bonus': {'students': 20, 'office': 35, 'family': 30, 'tourist': 40},
               'category_bonus': {'drink': 25, 'food': 25, 'snack': 25, 'meal': 25}},
}

# --- Demand Shaping ---
PRICE_ELASTICITY = {'students': 1.3, 'office': 0.8, 'family': 1.0, 'tourist': 0.5}

SEASON_SUBTYPE_BONUS = {
    'spring': {'cold_drink': 1.05, 'hot_drink': 1.0, 'main_food': 1.0, 'snack': 1.1, 'dessert': 1.1},
    'summer': {'cold_drink': 1.5, 'hot_drink': 0.55, 'main_food': 0.9, 'snack': 1.2, 'dessert': 1.15},
    'autumn': {'cold_drink': 0.85, 'hot_drink': 1.15, 'main_food': 1.1, 'snack': 1.0, 'dessert': 1.0},
    'winter': {'cold_drink': 0.55, 'hot_drink': 1.5, 'main_food': 1.15, 'snack': 0.85, 'dessert': 0.9},
}

LOCATION_CATEGORY_OCCASION = {
    'school': {'drink': 1.2, 'food': 1.1, 'snack': 1.15, 'meal': 0.95},
    'office': {'drink': 1.05, 'food': 0.9, 'snack': 0.9, 'meal': 1.2},
    'community': {'drink': 0.95, 'food': 1.0, 'snack': 1.05, 'meal': 1.12},
    'business': {'drink': 1.1, 'food': 1.0, 'snack': 1.08, 'meal': 1.0},
    'tourist': {'drink': 1.08, 'food': 1.12, 'snack': 1.12, 'meal': 0.92},
}

CUSTOMER_CATEGORY_AFFINITY = {
    'students': {'drink': 1.15, 'food': 1.08, 'snack': 1.12, 'meal': 0.92},
    'office': {'drink': 1.0, 'food': 0.92, 'snack': 0.88, 'meal': 1.2},
    'family': {'drink': 0.9, 'food': 1.0, 'snack': 1.08, 'meal': 1.12},
    'tourist': {'drink': 1.05, 'food': 1.12, 'snack': 1.05, 'meal': 0.9},
}

# target category -> competitor category -> share diverted
CATEGORY_SUBSTITUTION = {
    'drink': {'snack': 0.12, 'food': 0.06, 'meal': 0.04, 'grocery': 0.05},
    'food': {'snack': 0.1, 'meal': 0.08, 'drink': 0.04, 'grocery': 0.03},
    'snack': {'drink': 0.1, 'food': 0.09, 'meal': 0.06, 'grocery': 0.04},
    'meal': {'food': 0.12, 'snack': 0.07, 'drink': 0.03, 'grocery': 0.02},
}

# --- Delivery ---
DELIVERY_PLATFORMS: Dict[str, Dict[str, Any]] = {
    'meituan': {'name': 'Meituan', 'commission_rate': 0.16,
                'audience': {'students': 1.0, 'office': 1.2, 'family': 1.3, 'tourist': 0.3},
                'min_cognition': {'franchise': 0, 'independent': 2}, 'new_store_boost_weeks': 2},
    'eleme': {'name': 'Ele.me', 'commission_rate': 0.14,
              'audience': {'students': 1.1, 'office': 1.0, 'family': 1.2, 'tourist': 0.2},
              'min_cognition': {'franchise': 0, 'independent': 2}, 'new_store_boost_weeks': 2},
    'douyin': {'name': 'Douyin', 'commission_rate': 0.10,
               'audience': {'students': 1.5, 'office': 0.8, 'family': 0.7, 'tourist': 0.5},
               'min_cognition': {'franchise': 1, 'independent': 3}, 'new_store_boost_weeks': 3},
}

# index order matters: promotion_tier_index points into this tuple
PROMOTION_TIERS = (
    {'id': 'none', 'weekly_cost': 0.0, 'weight_bonus': 0, 'rating_boost': 0.0},
    {'id': 'basic', 'weekly_cost': 500.0, 'weight_bonus': 8, 'rating_boost': 0.02},
    {'id': 'advanced', 'weekly_cost': 1200.0, 'weight_bonus': 15, 'rating_boost': 0.04},
    {'id': 'premium', 'weekly_cost': 2500.0, 'weight_bonus': 22, 'rating_boost': 0.08},
)

DISCOUNT_TIERS = {
    'none': {'subsidy_rate': 0.0, 'conversion_multiplier': 0.3, 'weight_bonus': -5},
    'small': {'subsidy_rate': 0.15, 'conversion_multiplier': 0.7, 'weight_bonus': 0},
    'standard': {'subsidy_rate': 0.25, 'conversion_multiplier': 1.0, 'weight_bonus': 5},
    'large': {'subsidy_rate': 0.35, 'conversion_multiplier': 1.3, 'weight_bonus': 10},
    'loss_leader': {'subsidy_rate': 0.5, 'conversion_multiplier': 1.6, 'weight_bonus': 15},
}

DELIVERY_PRICING = {'same': 1.0, 'slight': 1.15, 'medium': 1.25, 'high': 1.35}

PRICING_ELASTICITY = {
    'same': {'none': 1.0, 'small': 1.0, 'standard': 1.0, 'large': 1.0, 'loss_leader': 1.0},
    'slight': {'none': 0.85, 'small': 0.95, 'standard': 1.0, 'large': 1.0, 'loss_leader': 1.0},
    'medium': {'none': 0.65, 'small': 0.80, 'standard': 0.95, 'large': 1.0, 'loss_leader': 1.0},
    'high': {'none': 0.45, 'small': 0.60, 'standard': 0.80, 'large': 0.95, 'loss_leader': 1.0},
}

PACKAGING_TIERS = {
    'basic': {'cost_per_order': 2.0, 'rating_bonus': 0.0},
    'premium': {'cost_per_order': 3.5, 'rating_bonus': 0.03},
}

DELIVERY_CONVERSION_RATE = 0.010
INITIAL_PLATFORM_RATING = 0.0
INITIAL_PLATFORM_EXPOSURE = 15.0
DELIVERY_DISTANCE_DECAY = {'ring0': 1.0, 'ring1': 0.45, 'ring2': 0.18, 'ring3': 0.06}
DELIVERY_COMPETITION_BASE = {'school': 80, 'office': 100, 'community': 95, 'business': 110, 'tourist': 45}

RATING_GROWTH = {
    'per_fulfilled_order': 0.012,
    'per_unfulfilled_order': -0.025,
    'max_weekly_growth': 0.25,
    'ingredient_upgrade_bonus': 0.08,
    'natural_decay': 0.02,
}

# --- Inventory ---
WASTE_RATES = {'normal': 0.05, 'refrigerated': 0.08, 'frozen': 0.03}
HOLDING_COST_RATES = {'normal': 0.02, 'refrigerated': 0.05, 'frozen': 0.07}

# (min fulfilment, sales modifier, reputation impact), highest first
STOCKOUT_EFFECTS = (
    (0.9, 1.0, 0.0),
    (0.8, 0.97, -0.3),
    (0.7, 0.93, -0.8),
    (0.6, 0.87, -1.5),
    (0.5, 0.82, -3.0),
    (0.2, 0.70, -6.0),
    (0.0, 0.5, -10.0),
)

RESTOCK_STRATEGIES = {'manual': 0.0, 'auto_conservative': 1.0, 'auto_standard': 1.5, 'auto_aggressive': 2.5}

# --- Boss Actions ---
BOSS_ACTIONS: Dict[str, Dict[str, Any]] = {
    'work_in_store': {'cost': 0.0, 'exp_range': (5, 5), 'min_level': 0, 'efficiency': 0.70,
                      'roles': ('chef', 'waiter', 'cleaner')},
    'supervise': {'cost': 0.0, 'exp_range': (8, 8), 'min_level': 0},
    'investigate_nearby': {'cost': 200.0, 'exp_range': (25, 35), 'min_level': 0},
    'count_traffic': {'cost': 0.0, 'exp_range': (15, 20), 'min_level': 0},
    'industry_dinner': {'cost': 500.0, 'exp_range': (30, 40), 'min_level': 1},
}
INVESTIGATION_ACCURACY = (0.45, 0.55, 0.65, 0.78, 0.88, 0.95)
INVESTIGATION_DIMENSIONS = ('traffic', 'price', 'category', 'decoration', 'staff_count')

# --- Passive Weekly Events ---
PASSIVE_EVENTS: Dict[str, Dict[str, Any]] = {
    'weather_good': {'name': 'Sunny week', 'type': 'revenue', 'value': 0.2},
    'weather_bad': {'name': 'Storm week', 'type': 'revenue', 'value': -0.3},
    'viral_video': {'name': 'A customer video went viral', 'type': 'reputation', 'value': 20},
    'food_safety': {'name': 'Food safety inspection fine', 'type': 'cost', 'value': 5000.0},
    'equipment_break': {'name': 'Equipment breakdown', 'type': 'cost', 'value': 3000.0},
}
PASSIVE_EVENT_PROBABILITY = 0.12


def get_product(product_id: str) -> Optional[Dict[str, Any]]:
    return PRODUCTS.get(product_id)


def get_address(location_id: Optional[str], address_id: Optional[str]) -> Optional[Dict[str, Any]]:
    location = LOCATIONS.get(location_id or '')
    if not location:
        return None
    return location['addresses'].get(address_id or '')


def brand_kind(brand_id: Optional[str]) -> str:
    """'quick_franchise', 'franchise' or 'independent'."""
    brand = BRANDS.get(brand_id or '')
    if not brand:
        return 'independent'
    if brand['is_quick_franchise']:
        return 'quick_franchise'
    return brand['type']


def get_stockout_effect(fulfillment: float):
    """Returns (sales_modifier, reputation_impact) for a fulfilment rate."""
    for threshold, sales_mod, rep_impact in STOCKOUT_EFFECTS:
        if fulfillment >= threshold:
            return sales_mod, rep_impact
    return STOCKOUT_EFFECTS[-1][1], STOCKOUT_EFFECTS[-1][2]
