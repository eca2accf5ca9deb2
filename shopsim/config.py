# shopsim/config.py

# Base Economic Constants
INITIAL_CASH = 400000.0
TOTAL_WEEKS = 52
DEFAULT_SEED = 42

# Win / Loss
WIN_STREAK = 6
WIN_EXPOSURE = 35
WIN_REPUTATION = 55

# Setup Costs
SETUP_LICENSE_FEE = 5000.0
SETUP_EQUIPMENT = 18000.0
SETUP_FIRST_INVENTORY = 8000.0
SETUP_DEPOSIT_MONTHS = 2
SETUP_PREPAID_RENT_MONTHS = 1

# Operational Costs (monthly)
MONTHLY_MARKETING_COST = 800.0
EQUIPMENT_DEPRECIATION = 400.0
UTILITIES_RENT_RATIO = 0.2

# Demand
CONVERSION_RATE = 0.065
WEEKLY_DEMAND_VARIANCE = 0.08
BASE_MARKET_FRICTION = 0.38
INNER_TO_OUTER_WEIGHT = 0.60
OUTER_TO_INNER_WEIGHT = 0.40

# Production
AREA_PER_KITCHEN_STATION = 10
STANDARD_WEEK_HOURS = 48
FOCUS_PRODUCT_SHARE = 0.8
MANAGER_BOOST = 1.1
SUPERVISE_BOOST = 1.08

# Store Limits
MIN_STORE_AREA = 15
MAX_STORE_AREA = 300
DEFAULT_STORE_AREA = 30
MAX_PRODUCTS = 6
MAX_STAFF = 8
INITIAL_STOCK_PER_PRODUCT = 50
MID_GAME_PRODUCT_STOCK = 75

# Nearby Shops
NEW_SHOP_BASE_PROBABILITY = 0.08
NEW_SHOP_SATURATION_SCALE = 3.0
SHOP_CLOSING_LOSS_WEEKS = 4
SHOP_CLOSING_GRACE_WEEKS = 4
SHOP_GRACE_NEW_WEEKS = 4

# Quick Franchise
QUICK_FRANCHISE_HONEYMOON_WEEKS = 8
QUICK_FRANCHISE_FAKE_REPUTATION = 3.0
QUICK_FRANCHISE_DECORATION_MARKUP = (1.3, 1.5)

# Advisor
CONSULT_COST = 2000.0
CONSULT_EXP = 40
CONSULT_LIMIT_PER_WEEK = 2

# Cognition
MAX_COGNITION_LEVEL = 5

# Logging
LOG_HISTORY_CAP = 200
HISTORY_CAP = 30
