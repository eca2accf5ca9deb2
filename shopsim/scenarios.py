# shopsim/scenarios.py
"""
Named starting conditions, the small environment wrapper the CLI drives,
and a recorder that sums up how a run went.
"""
import json
import os
import numpy as np
from typing import Any, Dict, List, Optional

from .config import *
from .actions import DispatchResult, dispatch, parse_action
from .engine import create_initial_state
from .event_catalog import EVENTS_BY_ID
from .events import NOTIFICATION_OPTION, is_notification
from .fuzz import apply_fuzz, fuzz_money
from .models import GameSettings, GameState

SCENARIO_DIR = "data/scenarios"

SCENARIO_DEFINITIONS = [
    {
        "id": "S-01",
        "name": "The Control",
        "seed": 42,
        "description": "Standard year, no tricks",
        "config_overrides": {},
    },
    {
        "id": "S-02",
        "name": "The Slump",
        "seed": 101,
        "description": "Customers are spending less all year",
        "config_overrides": {"demand_multiplier": 0.75},
    },
    {
        "id": "S-03",
        "name": "Inflation",
        "seed": 202,
        "description": "Ingredients cost a third more than the price lists say",
        "config_overrides": {"cost_multiplier": 1.3},
    },
    {
        "id": "S-04",
        "name": "Shoestring",
        "seed": 303,
        "description": "Open with a fraction of the usual savings",
        "config_overrides": {"initial_cash": 150000.0},
    },
    {
        "id": "S-05",
        "name": "Crowded Street",
        "seed": 404,
        "description": "New shops open often and hang on longer",
        "config_overrides": {"new_shop_probability": 0.2, "shop_closing_loss_weeks": 6},
    },
    {
        "id": "S-06",
        "name": "Half Year",
        "seed": 505,
        "description": "Six months to prove the shop works",
        "config_overrides": {"total_weeks": 26, "win_streak": 4},
    },
]


def ensure_dir(directory: str = SCENARIO_DIR):
    if not os.path.exists(directory):
        os.makedirs(directory)


def generate_scenarios(directory: str = SCENARIO_DIR) -> List[str]:
    """Writes one JSON file per scenario and returns their paths."""
    ensure_dir(directory)
    paths = []
    for s_def in SCENARIO_DEFINITIONS:
        fname = os.path.join(directory, f"{s_def['id']}.json")
        with open(fname, 'w') as f:
            json.dump(s_def, f, indent=2)
        paths.append(fname)
    return paths


def load_settings(overrides: Dict[str, Any]) -> GameSettings:
    """Overrides the scenario names; defaults for the rest. Unknown keys are ignored."""
    return GameSettings(**{
        name: overrides.get(name, field.default) for name, field in GameSettings.model_fields.items()
    })


class ShopEnv:
    """One game loaded from a scenario file. Every change goes through dispatch()."""

    def __init__(self, scenario_file: str):
        with open(scenario_file, 'r') as f:
            self.scenario = json.load(f)

        self.seed = self.scenario['seed']
        self.config = self.scenario.get('config_overrides', {})
        self.settings = load_settings(self.config)
        self.rng = np.random.RandomState(self.seed)
        self.state = create_initial_state(self.seed, self.settings)

    @property
    def done(self) -> bool:
        return self.state.game_phase == 'ended'

    def step(self, action) -> DispatchResult:
        result = dispatch(self.state, parse_action(action), self.rng)
        self.state = result.state
        return result

    def observation(self) -> Dict[str, Any]:
        """What the owner can see: figures at the precision their cognition allows."""
        return create_observation(self.state)


def event_options(event_id: str) -> List[str]:
    event = EVENTS_BY_ID.get(event_id)
    if event is None:
        return []
    if is_notification(event):
        return [NOTIFICATION_OPTION]
    return [o.id for o in event.options]


def create_observation(state: GameState) -> Dict[str, Any]:
    level = state.cognition.level
    summary = state.weekly_summary
    pending = state.pending_interactive_event
    return {
        'week': state.current_week,
        'phase': state.game_phase,
        'cash': state.cash,
        'cash_display': fuzz_money(state.cash, 'daily_cash', level),
        'cognition_level': level,
        'exposure': apply_fuzz(state.exposure, 'exposure', level),
        'reputation': apply_fuzz(state.reputation, 'reputation', level),
        'cleanliness': apply_fuzz(state.cleanliness, 'cleanliness', level),
        'products': list(state.selected_products),
        'prices': {pid: state.price_of(pid) for pid in state.selected_products},
        'inventory': {pid: item.quantity for pid, item in state.inventory.items()},
        'staff': [
            {'id': s.id, 'name': s.name, 'task': s.assigned_task, 'wants_to_quit': s.wants_to_quit,
             'morale': apply_fuzz(s.morale, 'morale', level)}
            for s in state.staff
        ],
        'platforms': [p.platform_id for p in state.active_platforms],
        'marketing': [a.id for a in state.active_marketing_activities],
        'pending_event': pending.model_dump() if pending else None,
        'pending_options': event_options(pending.event_id) if pending else [],
        'profit_display': fuzz_money(summary.profit, 'net_profit', level) if summary else None,
        'alerts': [a.id for a in summary.health_alerts] if summary else [],
        'weekly_logs': list(summary.logs) if summary else [],
        'game_over_reason': state.game_over_reason,
    }


class RunRecorder:
    """Collects a week-by-week trace of one run and sums it up at the end."""

    def __init__(self, scenario_id: str):
        self.scenario_id = scenario_id
        self.history: List[Dict[str, Any]] = []
        self.action_counts: Dict[str, int] = {}
        self.rejected = 0

    def record_action(self, action_type: str, changed: bool):
        if not changed:
            self.rejected += 1
            return
        self.action_counts[action_type] = self.action_counts.get(action_type, 0) + 1

    def record_week(self, state: GameState):
        summary = state.weekly_summary
        self.history.append({
            'week': state.current_week,
            'cash': state.cash,
            'profit': summary.profit if summary else 0.0,
            'exposure': state.exposure,
            'reputation': state.reputation,
            'staff': len(state.staff),
            'alerts': len(summary.health_alerts) if summary else 0,
        })

    def classify_strategy(self) -> str:
        if not self.history:
            return "Unknown"
        marketing = self.action_counts.get('start_marketing', 0)
        pricing = self.action_counts.get('set_product_price', 0)
        staffing = sum(self.action_counts.get(k, 0) for k in
                       ('recruit_staff', 'fire_staff', 'staff_morale_action', 'retain_staff'))
        avg_exposure = np.mean([h['exposure'] for h in self.history])

        if sum(self.action_counts.values()) <= 2:
            return "Hands Off"
        if marketing >= 3 or avg_exposure > 60:
            return "Marketing Led"
        if pricing > len(self.history) * 0.3:
            return "Price Tinkerer"
        if staffing >= 4:
            return "People Manager"
        return "Steady Operator"

    def generate_report(self, state: GameState) -> Dict[str, Any]:
        profits = [h['profit'] for h in self.history]
        return {
            'scenario_id': self.scenario_id,
            'strategy': self.classify_strategy(),
            'outcome': state.game_over_reason,
            'weeks': len(self.history),
            'final_cash': state.cash,
            'cumulative_profit': state.cumulative_profit,
            'best_week': max(profits) if profits else 0.0,
            'worst_week': min(profits) if profits else 0.0,
            'cognition_level': state.cognition.level,
            'rejected_actions': self.rejected,
        }
