# shopsim/models.py
from typing import Literal, Dict, List, Optional, Callable, Union, Any
from pydantic import BaseModel, ConfigDict, Field

from .config import *
from .catalog import PRODUCTS

Phase = Literal['setup', 'operating', 'ended']
GameOverReason = Literal['win', 'bankrupt', 'time_limit']
RingId = Literal['ring0', 'ring1', 'ring2', 'ring3']
Season = Literal['spring', 'summer', 'autumn', 'winter']
ShopCategory = Literal['drink', 'food', 'snack', 'meal', 'grocery', 'service']
TaskId = Literal['chef', 'waiter', 'marketer', 'cleaner', 'manager']
SupplyPriority = Literal['dine_in_first', 'delivery_first', 'proportional']
RestockStrategy = Literal['manual', 'auto_conservative', 'auto_standard', 'auto_aggressive']
Severity = Literal['critical', 'warning', 'info']


class Record(BaseModel):
    """Immutable value. Change it with model_copy(update=...)."""
    model_config = ConfigDict(frozen=True)


class GameSettings(Record):
    initial_cash: float = INITIAL_CASH
    total_weeks: int = TOTAL_WEEKS
    win_streak: int = WIN_STREAK
    win_exposure: float = WIN_EXPOSURE
    win_reputation: float = WIN_REPUTATION
    shop_closing_loss_weeks: int = SHOP_CLOSING_LOSS_WEEKS
    shop_closing_grace_weeks: int = SHOP_CLOSING_GRACE_WEEKS
    new_shop_probability: float = NEW_SHOP_BASE_PROBABILITY
    demand_multiplier: float = 1.0
    cost_multiplier: float = 1.0


# --- Market ---

class ConsumerRing(Record):
    ring: RingId
    base_traffic: int
    customer_type_weights: Dict[str, float]
    seasonal_multiplier: Dict[str, float] = {}
    base_conversion: float
    nearby_shop_ids: List[str] = []

    def consumers(self) -> Dict[str, int]:
        """Current head count per customer type, season applied."""
        return {
            ctype: int(round(self.base_traffic * w * self.seasonal_multiplier.get(ctype, 1.0)))
            for ctype, w in self.customer_type_weights.items()
        }

    @property
    def total_traffic(self) -> int:
        return sum(self.consumers().values())


class NearbyShopProduct(Record):
    name: str
    category: ShopCategory
    sub_type: str
    price: float
    base_cost: float
    quality: int
    appeal: int


class NearbyShop(Record):
    id: str
    name: str
    shop_category: ShopCategory
    brand_type: Literal['chain', 'independent']
    brand_tier: Literal['budget', 'standard', 'premium']
    ring: RingId
    exposure: float
    service_quality: float
    decoration_level: int
    has_delivery: bool
    products: List[NearbyShopProduct]
    price_volatility: float
    monthly_rent: float
    opened_week: int = 0
    weekly_profit: float = 0.0
    loss_weeks: int = 0
    is_closing: bool = False
    closing_weeks: int = 0


# --- Staff ---

class Staff(Record):
    id: str
    name: str
    type_id: str
    salary: float
    morale: float
    fatigue: float = 0.0
    skill_level: int = 1
    task_exp: float = 0.0
    assigned_task: TaskId = 'waiter'
    focus_product_id: Optional[str] = None
    work_days: int = 6
    work_hours: int = 8
    base_efficiency: float = 1.0
    efficiency: float = 1.0
    base_service_quality: float = 0.8
    service_quality: float = 0.8
    hired_week: int = 0
    is_onboarding: bool = False
    onboarding_ends_week: int = 0
    is_transitioning: bool = False
    transition_ends_week: int = 0
    wants_to_quit: bool = False
    salary_raise_boost: float = 0.0
    product_proficiency: Dict[str, float] = {}
    task_exp_memory: Dict[str, float] = {}

    @property
    def weekly_hours(self) -> int:
        return self.work_days * self.work_hours


# --- Operations ---

class ActivePlatform(Record):
    platform_id: str
    discount_tier_id: str = 'none'
    pricing_id: str = 'same'
    packaging_tier_id: str = 'basic'
    promotion_tier_index: int = 0
    rating: float = 0.0
    platform_exposure: float = 15.0
    active_weeks: int = 0
    recent_weekly_orders: List[int] = []


class MarketingActivity(Record):
    id: str
    start_week: int
    active_weeks: int = 0


class InventoryItem(Record):
    product_id: str
    quantity: int
    unit_cost: float
    storage_type: str
    restock_strategy: RestockStrategy = 'auto_standard'
    last_week_sales: int = 0
    last_week_waste: int = 0
    last_restock_quantity: int = 0


class GrowthSystem(Record):
    launch_progress: float = 8.0
    awareness_stock: float = 12.0
    campaign_pulse: float = 8.0
    trust_confidence: float = 0.12
    repeat_intent: float = 45.0


class Cognition(Record):
    level: int = 0
    exp: int = 0
    exp_to_next: Optional[int] = 130
    total_exp: int = 0
    mistake_history: List[str] = []
    weekly_operation_count: int = 0
    consults_this_week: int = 0


class BossBuff(Record):
    type: str
    value: float
    remaining_weeks: int
    source: str


class BossActionState(Record):
    current_action: str = 'supervise'
    work_role: Optional[str] = None
    target_shop_id: Optional[str] = None
    consecutive_study_weeks: int = 0
    revealed_shop_info: Dict[str, List[str]] = {}
    findings: List[str] = []
    active_buffs: List[BossBuff] = []


# --- Events ---

class StaffEffect(Record):
    selector: Literal['highest_skill', 'lowest_morale', 'highest_fatigue', 'random', 'by_task'] = 'random'
    task_filter: Optional[TaskId] = None
    remove: bool = False
    morale: float = 0.0
    fatigue: float = 0.0
    salary_multiplier: float = 1.0
    wants_to_quit: Optional[bool] = None


class BuffSpec(Record):
    type: Literal['revenue_multiplier', 'cost_multiplier', 'exposure_weekly',
                  'reputation_weekly', 'supply_reduction', 'demand_boost']
    value: float
    weeks: int


class ChainSpec(Record):
    event_id: str
    delay_weeks: int
    probability: float


class EventEffects(Record):
    cash: float = 0.0
    reputation: float = 0.0
    exposure: float = 0.0
    cleanliness: float = 0.0
    morale: float = 0.0
    cognition_exp: int = 0
    target_staff: Optional[StaffEffect] = None
    buffs: List[BuffSpec] = []
    delayed: Optional['DelayedSpec'] = None
    chain_event: Optional[ChainSpec] = None


class DelayedSpec(Record):
    delay_weeks: int
    effects: EventEffects
    description: str = ''


EventEffects.model_rebuild()


class EventOption(Record):
    id: str
    text: str
    effects: EventEffects = EventEffects()
    response: str = ''


class InteractiveGameEvent(Record):
    id: str
    title: str
    description: Union[str, Callable[[Any], str]]
    phase: Phase = 'operating'
    setup_step: Optional[str] = None
    min_week: int = 1
    max_week: Optional[int] = None
    probability: float = 0.3
    context_check: Optional[str] = None
    chain_only: bool = False
    options: List[EventOption] = []
    notification_effects: Optional[EventEffects] = None


class PendingEvent(Record):
    event_id: str
    offered_week: int
    description: str


class ActiveEventBuff(Record):
    type: str
    value: float
    expires_week: int
    source: str


class DelayedEffect(Record):
    execute_at_week: int
    effects: EventEffects
    source_event_id: str
    description: str = ''


class PendingChainEvent(Record):
    event_id: str
    trigger_at_week: int
    probability: float


# --- Results ---

class HealthAlert(Record):
    id: str
    severity: Severity
    category: str
    title: str
    message: str
    suggestion: str


class ProductSale(Record):
    product_id: str
    demand: int
    dine_in_demand: int
    delivery_demand: int
    supply: int
    units_sold: int
    dine_in_sales: int
    delivery_sales: int
    unit_price: float
    revenue: float
    dine_in_revenue: float
    delivery_revenue: float
    fulfillment_rate: float
    stockout: bool
    bottleneck: Literal['demand', 'supply_inventory', 'supply_capacity', 'balanced']
    recommended_restock: int


class SupplyDemandResult(Record):
    product_sales: List[ProductSale] = []
    total_demand: int = 0
    total_supply: int = 0
    total_sales: int = 0
    dine_in_revenue: float = 0.0
    delivery_revenue: float = 0.0
    total_revenue: float = 0.0
    delivery_sales: int = 0
    delivery_commission: float = 0.0
    delivery_package_cost: float = 0.0
    delivery_discount_cost: float = 0.0
    waste_cost: float = 0.0
    holding_cost: float = 0.0
    fulfillment_rate: float = 1.0
    stockout_reputation_penalty: float = 0.0
    awareness_factor: float = 1.0
    bottleneck: Literal['demand', 'supply', 'balanced'] = 'balanced'


class FixedCostBreakdown(Record):
    rent: float = 0.0
    salary: float = 0.0
    utilities: float = 0.0
    marketing: float = 0.0
    depreciation: float = 0.0
    promotion: float = 0.0
    total: float = 0.0


class CurrentStats(Record):
    revenue: float
    variable_cost: float
    fixed_cost: float
    fixed_cost_breakdown: FixedCostBreakdown
    profit: float
    margin: float
    break_even_point: Optional[float]


class WeeklySummary(Record):
    week: int
    revenue: float
    variable_cost: float
    fixed_cost: float
    profit: float
    cumulative_profit: float
    cash: float
    total_demand: int
    total_supply: int
    fulfillment_rate: float
    product_sales: Dict[str, int]
    consecutive_profits: int
    exp_gained: int
    quit_staff: List[str] = []
    health_alerts: List[HealthAlert] = []
    passive_event: Optional[str] = None
    logs: List[str] = []


class GameResult(Record):
    is_win: bool
    reason: Optional[GameOverReason]
    total_profit: float
    total_investment: float
    roi: float
    weeks_played: int
    cognition_level: int
    meets_streak: bool
    meets_return: bool
    meets_brand: bool


# --- Root Aggregate ---

class GameState(Record):
    seed: int = DEFAULT_SEED
    rng_step: int = 0
    settings: GameSettings = GameSettings()

    game_phase: Phase = 'setup'
    current_week: int = 0
    total_weeks: int = TOTAL_WEEKS
    game_over_reason: Optional[GameOverReason] = None
    start_month: int = 4
    current_season: Season = 'spring'

    selected_brand: Optional[str] = None
    selected_location: Optional[str] = None
    selected_address: Optional[str] = None
    store_area: int = DEFAULT_STORE_AREA
    selected_decoration: Optional[str] = None
    decoration_cost_paid: float = 0.0
    selected_products: List[str] = []
    product_prices: Dict[str, float] = {}

    cash: float = INITIAL_CASH
    total_investment: float = 0.0
    cumulative_profit: float = 0.0
    profit_history: List[float] = []
    revenue_history: List[float] = []
    consecutive_profits: int = 0
    weekly_revenue: float = 0.0
    weekly_variable_cost: float = 0.0

    reputation: float = 20.0
    exposure: float = 20.0
    cleanliness: float = 60.0
    growth: GrowthSystem = GrowthSystem()
    cognition: Cognition = Cognition()

    staff: List[Staff] = []
    staff_seq: int = 0
    weeks_since_last_action: int = 0
    weeks_since_last_morale_action: int = 0
    morale_action_last_week: Dict[str, int] = {}

    nearby_shops: List[NearbyShop] = []
    consumer_rings: Dict[str, ConsumerRing] = {}

    active_marketing_activities: List[MarketingActivity] = []
    used_one_time_activities: List[str] = []
    last_activity_week: Dict[str, int] = {}

    active_platforms: List[ActivePlatform] = []
    supply_priority: SupplyPriority = 'dine_in_first'

    inventory: Dict[str, InventoryItem] = {}
    last_week_fulfillment: float = 1.0

    boss_action: BossActionState = BossActionState()

    pending_interactive_event: Optional[PendingEvent] = None
    interactive_event_history: List[str] = []
    last_event_response: Optional[str] = None
    active_event_buffs: List[ActiveEventBuff] = []
    pending_delayed_effects: List[DelayedEffect] = []
    pending_chain_events: List[PendingChainEvent] = []
    last_week_event: Optional[str] = None
    encountered_event_types: List[str] = []

    weekly_summary: Optional[WeeklySummary] = None
    log_history: List[str] = Field(default_factory=list)

    def get_staff(self, staff_id: str) -> Optional[Staff]:
        return next((s for s in self.staff if s.id == staff_id), None)

    def get_platform(self, platform_id: str) -> Optional[ActivePlatform]:
        return next((p for p in self.active_platforms if p.platform_id == platform_id), None)

    def price_of(self, product_id: str) -> float:
        return self.product_prices.get(product_id, PRODUCTS[product_id]['base_price'])
