# shopsim/events.py
"""
Interactive events: rolling one, describing it and applying the option the
owner picks. A state holds at most one pending event; nothing here rolls a
new one while it is set.
"""
import numpy as np
from typing import Callable, Dict, List, Optional, Tuple

from .config import *
from .catalog import BRANDS, brand_kind
from .errors import InvalidOption
from .event_catalog import EVENTS_BY_ID, INTERACTIVE_EVENTS
from .fuzz import apply_cognition_exp
from .models import (
    ActiveEventBuff, DelayedEffect, EventEffects, GameState, InteractiveGameEvent, PendingChainEvent,
    PendingEvent, Staff, StaffEffect,
)

NOTIFICATION_OPTION = '__notification__'
GUARANTEE_WEEK = 5


def _avg(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


CONTEXT_CHECKS: Dict[str, Callable[[GameState], bool]] = {
    'cleanliness_low': lambda s: s.cleanliness < 50,
    'low_margin': lambda s: s.weekly_revenue > 0
    and (s.weekly_revenue - s.weekly_variable_cost) / s.weekly_revenue < 0.2,
    'deep_loss': lambda s: s.total_investment > 0 and s.cumulative_profit < -s.total_investment * 0.4,
    'has_social_media_marketing': lambda s: any(a.id == 'social_media' for a in s.active_marketing_activities),
    'high_fatigue': lambda s: bool(s.staff) and (_avg([st.fatigue for st in s.staff]) > 60 or len(s.staff) < 3),
    'is_quick_franchise': lambda s: brand_kind(s.selected_brand) == 'quick_franchise',
    'supply_shortage': lambda s: s.last_week_fulfillment < 0.7,
    'high_skill_staff': lambda s: any(st.skill_level >= 3 for st in s.staff),
    'staff_morale_gap': lambda s: len(s.staff) >= 2
    and max(st.morale for st in s.staff) - min(st.morale for st in s.staff) > 30,
    'high_reputation': lambda s: s.reputation >= 70,
    'operating_6_weeks': lambda s: s.current_week >= 6,
    'browsing_franchise': lambda s: s.selected_brand is None
    or BRANDS.get(s.selected_brand, {}).get('type') == 'franchise',
}


def is_notification(event: InteractiveGameEvent) -> bool:
    return not event.options and event.notification_effects is not None


def _eligible(event: InteractiveGameEvent, state: GameState, setup_step: Optional[str]) -> bool:
    week = state.current_week
    if event.chain_only or event.id in state.interactive_event_history:
        return False
    if event.phase != state.game_phase or week < event.min_week:
        return False
    # setup events only roll on the step they belong to
    if event.phase == 'setup' and (setup_step is None or event.setup_step not in (None, setup_step)):
        return False
    if event.max_week is not None and week > event.max_week:
        return False
    check = CONTEXT_CHECKS.get(event.context_check or '')
    return check(state) if check else True


def roll_interactive_event(state: GameState, rng: np.random.RandomState,
                           setup_step: Optional[str] = None) -> Optional[InteractiveGameEvent]:
    """
    Shuffles the eligible events and gives each its own probability roll;
    the first hit wins. From GUARANTEE_WEEK on, an owner who has never seen
    an event gets the first candidate anyway.

    During setup only events tagged with `setup_step` (select_brand or
    select_location) are candidates, and there is no guarantee.
    """
    if state.pending_interactive_event is not None:
        return None

    candidates = [e for e in INTERACTIVE_EVENTS if _eligible(e, state, setup_step)]
    if not candidates:
        return None

    order = rng.permutation(len(candidates))
    shuffled = [candidates[i] for i in order]
    for event in shuffled:
        if rng.random_sample() < event.probability:
            return event

    if not state.interactive_event_history and state.current_week >= GUARANTEE_WEEK \
            and state.game_phase == 'operating':
        return shuffled[0]
    return None


def resolve_description(event: InteractiveGameEvent, state: GameState) -> str:
    if callable(event.description):
        return event.description(state)
    return event.description


def offer_event(state: GameState, event: InteractiveGameEvent) -> GameState:
    """Makes `event` the pending one. Does nothing if one is already pending."""
    if state.pending_interactive_event is not None:
        return state
    pending = PendingEvent(event_id=event.id, offered_week=state.current_week,
                           description=resolve_description(event, state))
    history = state.interactive_event_history
    if event.id not in history:
        history = history + [event.id]
    return state.model_copy(update={'pending_interactive_event': pending, 'interactive_event_history': history})


def select_target_staff(staff: List[Staff], effect: StaffEffect,
                        rng: np.random.RandomState) -> Optional[Staff]:
    candidates = [s for s in staff if not s.is_onboarding]
    if effect.task_filter:
        candidates = [s for s in candidates if s.assigned_task == effect.task_filter]
    if not candidates:
        return None

    if effect.selector == 'highest_skill':
        return max(candidates, key=lambda s: s.skill_level)
    if effect.selector == 'lowest_morale':
        return min(candidates, key=lambda s: s.morale)
    if effect.selector == 'highest_fatigue':
        return max(candidates, key=lambda s: s.fatigue)
    if effect.selector == 'random':
        return candidates[rng.randint(len(candidates))]
    return candidates[0]


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def apply_effects(state: GameState, effects: EventEffects, source_id: str,
                  rng: np.random.RandomState) -> GameState:
    """Applies one bundle of effects. Shared by event options and delayed effects."""
    update = {}
    if effects.cash:
        update['cash'] = state.cash + effects.cash
    if effects.reputation:
        update['reputation'] = _clamp(state.reputation + effects.reputation)
    if effects.exposure:
        update['exposure'] = _clamp(state.exposure + effects.exposure)
    if effects.cleanliness:
        update['cleanliness'] = _clamp(state.cleanliness + effects.cleanliness)
    if effects.cognition_exp:
        update['cognition'] = apply_cognition_exp(state.cognition, effects.cognition_exp)

    staff = list(state.staff)
    if effects.morale:
        staff = [s.model_copy(update={'morale': _clamp(s.morale + effects.morale)}) for s in staff]

    target_effect = effects.target_staff
    if target_effect and staff:
        target = select_target_staff(staff, target_effect, rng)
        if target is not None:
            if target_effect.remove:
                staff = [s for s in staff if s.id != target.id]
            else:
                changes = {
                    'morale': _clamp(target.morale + target_effect.morale),
                    'fatigue': _clamp(target.fatigue + target_effect.fatigue),
                    'salary': float(round(target.salary * target_effect.salary_multiplier)),
                }
                if target_effect.wants_to_quit is not None:
                    changes['wants_to_quit'] = target_effect.wants_to_quit
                staff = [s.model_copy(update=changes) if s.id == target.id else s for s in staff]
    if effects.morale or target_effect:
        update['staff'] = staff

    week = state.current_week
    if effects.buffs:
        update['active_event_buffs'] = state.active_event_buffs + [
            ActiveEventBuff(type=b.type, value=b.value, expires_week=week + b.weeks, source=source_id)
            for b in effects.buffs
        ]
    if effects.delayed:
        update['pending_delayed_effects'] = state.pending_delayed_effects + [
            DelayedEffect(execute_at_week=week + effects.delayed.delay_weeks, effects=effects.delayed.effects,
                          source_event_id=source_id, description=effects.delayed.description)
        ]
    if effects.chain_event:
        chain = effects.chain_event
        update['pending_chain_events'] = state.pending_chain_events + [
            PendingChainEvent(event_id=chain.event_id, trigger_at_week=week + chain.delay_weeks,
                              probability=chain.probability)
        ]
    return state.model_copy(update=update)


def apply_event_effects(state: GameState, event_id: str, option_id: str,
                        rng: np.random.RandomState) -> Tuple[GameState, str]:
    """
    Applies the chosen option of `event_id` and returns (state, response
    text). Raises InvalidOption for an unknown event or option.
    """
    event = EVENTS_BY_ID.get(event_id)
    if event is None:
        raise InvalidOption(f"unknown event {event_id!r}")

    if option_id == NOTIFICATION_OPTION:
        if event.notification_effects is None:
            raise InvalidOption(f"event {event_id!r} expects an option, not a notification acknowledgement")
        return apply_effects(state, event.notification_effects, event_id, rng), event.title

    option = next((o for o in event.options if o.id == option_id), None)
    if option is None:
        raise InvalidOption(f"event {event_id!r} has no option {option_id!r}")
    return apply_effects(state, option.effects, event_id, rng), option.response or option.text


# --- Weekly bookkeeping (tick step 1) ---

def resolve_delayed_effects(state: GameState, week: int,
                            rng: np.random.RandomState) -> Tuple[GameState, List[str]]:
    due = [d for d in state.pending_delayed_effects if d.execute_at_week <= week]
    if not due:
        return state, []
    logs = []
    state = state.model_copy(update={
        'pending_delayed_effects': [d for d in state.pending_delayed_effects if d.execute_at_week > week]
    })
    for delayed in due:
        state = apply_effects(state, delayed.effects, delayed.source_event_id, rng)
        logs.append(f"EVENT: {delayed.description or 'An earlier decision came back around.'}")
    return state, logs


def resolve_chain_events(state: GameState, week: int,
                         rng: np.random.RandomState) -> Tuple[GameState, List[str]]:
    """Due follow-ups roll their probability. A hit is offered if nothing else is pending."""
    due = [c for c in state.pending_chain_events if c.trigger_at_week <= week]
    if not due:
        return state, []
    logs = []
    state = state.model_copy(update={
        'pending_chain_events': [c for c in state.pending_chain_events if c.trigger_at_week > week]
    })
    for chain in due:
        event = EVENTS_BY_ID.get(chain.event_id)
        if event is None or chain.event_id in state.interactive_event_history:
            continue
        if rng.random_sample() < chain.probability and state.pending_interactive_event is None:
            state = offer_event(state, event)
            logs.append(f"EVENT: {event.title}")
    return state, logs


def expire_buffs(state: GameState, week: int) -> GameState:
    kept = [b for b in state.active_event_buffs if b.expires_week >= week]
    if len(kept) == len(state.active_event_buffs):
        return state
    return state.model_copy(update={'active_event_buffs': kept})
