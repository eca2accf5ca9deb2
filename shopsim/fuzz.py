# shopsim/fuzz.py
"""
Cognition: how much the owner actually understands about their own shop.

A low-cognition owner does not see exact numbers. INFO_FUZZ_CONFIG is the
one place that decides, per kind of figure and per level, whether a number
is hidden, shown as a vague word, shown as a range or shown exactly. Every
caller that puts a number in front of the player goes through apply_fuzz.
"""
from typing import Dict, Optional, Tuple, Union

from .config import *
from .models import Cognition

# level -> exp needed to reach it from the level below
COGNITION_LEVEL_EXP = {1: 130, 2: 260, 3: 420, 4: 680, 5: 900}

MISTAKE_EXP = {
    'quick_franchise': 80,
    'inventory_overstock': 25,
    'staff_turnover': 30,
    'cash_flow_break': 60,
    'over_staff': 20,
    'single_product': 15,
}

PASSIVE_EXP = {
    'weekly_base': 10,
    'profit_week': 18,
    'profit_per_thousand': 3,
    'profit_scale_max': 30,
    'streak_threshold': 3,
    'streak_bonus': 8,
    'loss_week': 10,
    'first_time_event': 18,
    'per_operation': 2,
    'max_operations': 40,
    'shop_event': 5,
    'count_traffic_streak_bonus': 20,
}

PANEL_UNLOCKS = {'operating': 0, 'staff': 0, 'inventory': 1, 'marketing': 2, 'finance': 3, 'supplydemand': 4}

# Rules: ('hidden',) ('fuzzy', words) ('range', lo_ratio, hi_ratio) ('exact',)
HIDDEN = ('hidden',)
EXACT = ('exact',)


def _fuzzy(*words):
    return ('fuzzy', words)


def _range(lo, hi):
    return ('range', lo, hi)


INFO_FUZZ_CONFIG = {
    'daily_cash': [HIDDEN, EXACT, EXACT, EXACT, EXACT, EXACT],
    'weekly_revenue': [_fuzzy('a few thousand', 'decent money'), _fuzzy('a few thousand', 'decent money'),
                       _fuzzy('a few thousand', 'decent money'), _range(0.7, 1.3), _range(0.9, 1.1), EXACT],
    'net_profit': [HIDDEN, HIDDEN, HIDDEN, _range(0.7, 1.3), _range(0.9, 1.1), EXACT],
    'gross_margin': [HIDDEN, HIDDEN, HIDDEN, _range(0.7, 1.3), _range(0.9, 1.1), EXACT],
    'variable_cost': [HIDDEN, _fuzzy('pretty high', 'quite a lot'), _range(0.7, 1.3), EXACT, EXACT, EXACT],
    'fixed_cost': [HIDDEN, HIDDEN, _fuzzy('a big chunk', 'quite a lot'), _range(0.8, 1.2), EXACT, EXACT],
    'competitor_count': [HIDDEN, _fuzzy('a few', 'quite a few'), _range(0.5, 1.5), EXACT, EXACT, EXACT],
    'break_even_point': [HIDDEN, HIDDEN, _fuzzy('a fair number of orders', 'a lot of orders'),
                         _range(0.8, 1.2), _range(0.95, 1.05), EXACT],
    'exposure': [_fuzzy('some people know us', 'not many know us'), _fuzzy('some people know us'),
                 _range(0.8, 1.2), _range(0.9, 1.1), EXACT, EXACT],
    'reputation': [_fuzzy('people seem okay with us'), _fuzzy('people seem okay with us'),
                   _range(0.8, 1.2), _range(0.9, 1.1), EXACT, EXACT],
    'fulfillment': [_fuzzy('we run out sometimes'), _range(0.8, 1.2), _range(0.9, 1.1), EXACT, EXACT, EXACT],
    'cleanliness': [_fuzzy('looks tidy enough', 'a bit messy'), _range(0.8, 1.2), EXACT, EXACT, EXACT, EXACT],
    'staff_cost': [_fuzzy('wages are a big bill'), _range(0.8, 1.2), EXACT, EXACT, EXACT, EXACT],
    'waste_cost': [HIDDEN, _fuzzy('some food gets thrown out'), _range(0.7, 1.3), EXACT, EXACT, EXACT],
    'morale': [_fuzzy('the team seems low'), _range(0.8, 1.2), EXACT, EXACT, EXACT, EXACT],
    'losses': [_fuzzy('a lot of money'), _fuzzy('a lot of money'), _range(0.8, 1.2), _range(0.9, 1.1), EXACT, EXACT],
}


def fuzz_rule(info_type: str, level: int) -> Tuple:
    levels = INFO_FUZZ_CONFIG.get(info_type)
    if not levels:
        return EXACT
    return levels[max(0, min(MAX_COGNITION_LEVEL, level))]


def is_visible(info_type: str, level: int) -> bool:
    return fuzz_rule(info_type, level)[0] != 'hidden'


def apply_fuzz(value: float, info_type: str, level: int, fmt: str = '{:,.0f}') -> Optional[str]:
    """
    Renders a number the way an owner at `level` would see it. Returns
    None when the figure is hidden at that level.
    """
    rule = fuzz_rule(info_type, level)
    kind = rule[0]
    if kind == 'hidden':
        return None
    if kind == 'fuzzy':
        words = rule[1]
        # negative figures get the last (gloomier) word when there is one
        return words[-1] if value < 0 and len(words) > 1 else words[0]
    if kind == 'range':
        lo, hi = sorted((value * rule[1], value * rule[2]))
        return f"{fmt.format(lo)}-{fmt.format(hi)}"
    return fmt.format(value)


def fuzz_money(value: float, info_type: str, level: int) -> str:
    text = apply_fuzz(value, info_type, level, fmt='{:,.0f}')
    return text if text is not None else 'unknown'


def fuzz_percent(fraction: float, info_type: str, level: int) -> str:
    text = apply_fuzz(fraction * 100, info_type, level, fmt='{:.0f}')
    if text is None:
        return 'unknown'
    return text if rule_is_word(info_type, level) else f"{text}%"


def rule_is_word(info_type: str, level: int) -> bool:
    return fuzz_rule(info_type, level)[0] == 'fuzzy'


def is_panel_unlocked(panel: str, level: int) -> bool:
    return level >= PANEL_UNLOCKS.get(panel, 0)


def exp_to_next(level: int) -> Optional[int]:
    return COGNITION_LEVEL_EXP.get(level + 1)


def apply_cognition_exp(cognition: Cognition, gain: int) -> Cognition:
    """The only way cognition exp is added. Levels never go down."""
    level = cognition.level
    exp = cognition.exp + gain
    to_next = cognition.exp_to_next
    while level < MAX_COGNITION_LEVEL and to_next is not None and exp >= to_next:
        exp -= to_next
        level += 1
        to_next = exp_to_next(level)
    return cognition.model_copy(update={
        'level': level,
        'exp': exp,
        'exp_to_next': to_next,
        'total_exp': cognition.total_exp + gain,
    })


def record_mistake(cognition: Cognition, mistake: str) -> Tuple[Cognition, int]:
    """Each kind of mistake teaches once. Returns (cognition, exp awarded)."""
    if mistake in cognition.mistake_history or mistake not in MISTAKE_EXP:
        return cognition, 0
    updated = cognition.model_copy(update={'mistake_history': cognition.mistake_history + [mistake]})
    return updated, MISTAKE_EXP[mistake]
