# shopsim/staffing.py
"""
Staff roster rules: who can be hired, what each task does, and how people
tire, sulk, learn and quit.
"""
import math
import numpy as np
from typing import Dict, Optional, Tuple

from .config import *
from .models import Staff

STAFF_TYPES = {
    'parttime': {'name': 'Part-timer', 'base_salary': 3000.0, 'hourly_rate': 18.0,
                 'efficiency': 0.7, 'service_quality': 0.6, 'categories': ('drink', 'snack'),
                 'max_skill': 2, 'tasks': ('waiter', 'cleaner', 'marketer')},
    'fulltime': {'name': 'Full-timer', 'base_salary': 5000.0, 'hourly_rate': None,
                 'efficiency': 1.0, 'service_quality': 0.8, 'categories': ('drink', 'food', 'snack', 'meal'),
                 'max_skill': 3, 'tasks': ('waiter', 'chef', 'marketer', 'cleaner')},
    'senior': {'name': 'Senior', 'base_salary': 7000.0, 'hourly_rate': None,
               'efficiency': 1.3, 'service_quality': 1.0, 'categories': ('drink', 'food', 'snack', 'meal'),
               'max_skill': 4, 'tasks': ('waiter', 'chef', 'marketer', 'cleaner', 'manager')},
    'chef': {'name': 'Chef', 'base_salary': 8000.0, 'hourly_rate': None,
             'efficiency': 1.2, 'service_quality': 1.1, 'categories': ('food', 'meal'),
             'max_skill': 5, 'tasks': ('chef', 'manager')},
}

TASKS = {
    'chef': {'production': 1.3, 'service': 0.0, 'fatigue': 10, 'exp_coeff': 1.0},
    'waiter': {'production': 0.3, 'service': 1.0, 'fatigue': 8, 'exp_coeff': 1.0},
    'marketer': {'production': 0.0, 'service': 0.0, 'fatigue': 7, 'exp_coeff': 0.9, 'exposure_rate': 2.5},
    'cleaner': {'production': 0.0, 'service': 0.4, 'fatigue': 8, 'exp_coeff': 0.7, 'cleanliness_rate': 8.0},
    'manager': {'production': 0.3, 'service': 0.5, 'fatigue': 5, 'exp_coeff': 1.2},
}
SERVICE_TASKS = ('waiter', 'cleaner', 'manager')

RECRUITMENT_CHANNELS = {
    'walk_in': {'cost': 0.0, 'quality': 'normal'},
    'online_post': {'cost': 200.0, 'quality': 'normal'},
    'referral': {'cost': 500.0, 'quality': 'high'},
    'agency': {'cost': 1000.0, 'quality': 'excellent'},
}
CHANNEL_SKILL_RANGE = {'normal': (1, 2), 'high': (2, 3), 'excellent': (3, 4)}

# exp needed to leave each level
SKILL_UPGRADE_EXP = {1: 80, 2: 160, 3: 320, 4: 640}

WORK_DAYS_RANGE = (5, 7)
WORK_HOURS_RANGE = (4, 12)
FATIGUE_EXPONENT = 1.5

# (min morale, efficiency mod, service mod), highest first
MORALE_EFFECTS = ((80, 1.2, 1.15), (60, 1.0, 1.0), (40, 0.9, 0.9), (20, 0.75, 0.8), (0, 0.6, 0.65))
# (max fatigue, efficiency mod, service mod, quit risk), lowest first
FATIGUE_EFFECTS = ((30, 1.0, 1.0, 0.0), (50, 0.95, 0.95, 0.0), (70, 0.85, 0.85, 0.05),
                   (90, 0.7, 0.7, 0.15), (100, 0.5, 0.5, 0.3))

FIRE_MORALE = {'base': -8, 'tenure_weeks': 8, 'tenure_extra': -4, 'skill_threshold': 3, 'skill_extra': -3}

SALARY_CONFIG = {'min_ratio': 0.8, 'max_ratio': 2.0, 'raise_coeff': 15, 'raise_max_boost': 20,
                 'raise_boost_decay': 4, 'cut_coeff': 25, 'cut_quit_check_rate': 0.3, 'min_level': 2}

MORALE_ACTIONS = {
    'bonus': {'amounts': (500, 1000, 2000), 'boosts': (15, 22, 30), 'other_boost': 3,
              'cooldown': 4, 'min_level': 1},
    'team_meal': {'cost_per_person': 200.0, 'morale': 8, 'fatigue': -5, 'cooldown': 4, 'min_level': 1},
    'day_off': {'morale': 5, 'fatigue': -15, 'cooldown': 2, 'min_level': 1},
}

RETENTION = {
    'raise': {'salary_increase': 0.2, 'morale': 15, 'success': 0.8, 'min_level': 2},
    'reduce_hours': {'days': 5, 'hours': 8, 'fatigue': -20, 'success': 0.6, 'min_level': 2},
    'bonus': {'cost_ratio': 0.5, 'morale': 20, 'success': 0.7, 'min_level': 2},
}

TRANSITION = {'weeks': 1, 'efficiency_penalty': 0.5, 'exp_retain': 0.3, 'same_task_retain': 0.5}

GIVEN_NAMES = ['Wei', 'Fang', 'Lei', 'Min', 'Jing', 'Hao', 'Yan', 'Tao', 'Xin', 'Bo', 'Ling', 'Qiang']
FAMILY_NAMES = ['Wang', 'Li', 'Zhang', 'Liu', 'Chen', 'Yang', 'Zhao', 'Huang', 'Zhou', 'Wu']


def clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, value))


def monthly_salary(type_id: str, wage_level: float, days: int = 6, hours: int = 8) -> float:
    """Hourly staff are paid for the hours on their schedule."""
    stype = STAFF_TYPES[type_id]
    if stype['hourly_rate']:
        return float(round(stype['hourly_rate'] * days * hours * 4 * wage_level))
    return float(round(stype['base_salary'] * wage_level))


def default_task(type_id: str) -> str:
    tasks = STAFF_TYPES[type_id]['tasks']
    return 'chef' if 'chef' in tasks and 'waiter' not in tasks else 'waiter'


def make_staff(type_id: str, staff_id: str, week: int, wage_level: float,
               rng: np.random.RandomState, quality: Optional[str] = None,
               onboarding: bool = False) -> Staff:
    """
    New hire. Setup hires get a random skill 1-3; recruits get the range of
    the channel they came through and sit one week in onboarding.
    """
    stype = STAFF_TYPES[type_id]
    if quality:
        lo, hi = CHANNEL_SKILL_RANGE[quality]
        skill = int(rng.randint(lo, hi + 1))
    else:
        skill = int(rng.randint(1, 4))
    skill = min(skill, stype['max_skill'])

    name = f"{FAMILY_NAMES[rng.randint(len(FAMILY_NAMES))]} {GIVEN_NAMES[rng.randint(len(GIVEN_NAMES))]}"
    base_eff = stype['efficiency'] * (0.8 + skill * 0.1)
    base_svc = stype['service_quality'] * (0.8 + skill * 0.1)
    return Staff(
        id=staff_id,
        name=name,
        type_id=type_id,
        salary=monthly_salary(type_id, wage_level),
        morale=float(70 + rng.randint(0, 20)),
        skill_level=skill,
        assigned_task=default_task(type_id),
        base_efficiency=base_eff,
        efficiency=base_eff,
        base_service_quality=base_svc,
        service_quality=base_svc,
        hired_week=week,
        is_onboarding=onboarding,
        onboarding_ends_week=week + 1 if onboarding else 0,
    )


def morale_effect(morale: float) -> Tuple[float, float]:
    for threshold, eff, svc in MORALE_EFFECTS:
        if morale >= threshold:
            return eff, svc
    return MORALE_EFFECTS[-1][1], MORALE_EFFECTS[-1][2]


def fatigue_effect(fatigue: float) -> Tuple[float, float, float]:
    for ceiling, eff, svc, quit_risk in FATIGUE_EFFECTS:
        if fatigue <= ceiling:
            return eff, svc, quit_risk
    return FATIGUE_EFFECTS[-1][1:]


def weekly_exp(staff: Staff) -> int:
    coeff = TASKS[staff.assigned_task]['exp_coeff']
    if staff.morale >= 80:
        morale_coeff = 1.2
    elif staff.morale >= 60:
        morale_coeff = 1.0
    elif staff.morale >= 40:
        morale_coeff = 0.8
    else:
        morale_coeff = 0.6
    return int(round(10 * coeff * staff.weekly_hours / STANDARD_WEEK_HOURS * morale_coeff))


def fatigue_gain(staff: Staff) -> int:
    base = TASKS[staff.assigned_task]['fatigue']
    return int(round(base * (staff.weekly_hours / STANDARD_WEEK_HOURS) ** FATIGUE_EXPONENT))


def hours_morale_effect(staff: Staff) -> int:
    hours = staff.weekly_hours
    if hours <= 35:
        return 2
    if hours <= 48:
        return 0
    if hours <= 60:
        return -2
    return -5


def profit_morale_effect(profit: float) -> float:
    if profit > 0:
        return min(4, math.ceil(profit / 2000))
    if profit < -5000:
        return -2
    return -1


def fire_morale_penalty(fired: Staff, week: int) -> int:
    penalty = FIRE_MORALE['base']
    if week - fired.hired_week >= FIRE_MORALE['tenure_weeks']:
        penalty += FIRE_MORALE['tenure_extra']
    if fired.skill_level >= FIRE_MORALE['skill_threshold']:
        penalty += FIRE_MORALE['skill_extra']
    return penalty


def salary_bounds(type_id: str, wage_level: float) -> Tuple[float, float]:
    base = round(STAFF_TYPES[type_id]['base_salary'] * wage_level)
    return float(round(base * SALARY_CONFIG['min_ratio'])), float(round(base * SALARY_CONFIG['max_ratio']))


def salary_change_morale(old: float, new: float) -> int:
    """Raises give a capped boost; cuts hurt proportionally harder."""
    ratio = abs(new - old) / old if old > 0 else 0.0
    if new > old:
        return min(SALARY_CONFIG['raise_max_boost'], int(round(ratio * SALARY_CONFIG['raise_coeff'])))
    return -int(round(ratio * SALARY_CONFIG['cut_coeff']))


def transfer_exp(staff: Staff, new_task: str) -> Tuple[float, Dict[str, float]]:
    """Returns (starting exp on the new task, updated per-task exp memory)."""
    memory = dict(staff.task_exp_memory)
    memory[staff.assigned_task] = staff.task_exp
    if new_task in memory:
        return float(math.floor(memory[new_task] * TRANSITION['same_task_retain'])), memory
    return float(math.floor(staff.task_exp * TRANSITION['exp_retain'])), memory


def weekly_staff_update(staff: Staff, week: int, last_profit: float) -> Staff:
    """
    One week of wear on a single employee: fatigue, morale, the derived
    efficiency and service quality, task exp and skill level, product
    proficiency. Quit risk is rolled by the caller.
    """
    if staff.is_onboarding and week >= staff.onboarding_ends_week:
        staff = staff.model_copy(update={'is_onboarding': False})
    if staff.is_onboarding:
        return staff

    transitioning = staff.is_transitioning and week < staff.transition_ends_week
    raise_boost = max(0.0, staff.salary_raise_boost - SALARY_CONFIG['raise_boost_decay'])
    hours = staff.weekly_hours
    rest_days = 7 - staff.work_days
    is_manager = staff.assigned_task == 'manager'

    # 1. Fatigue
    gain = fatigue_gain(staff) + (3 if staff.morale < 40 else 0)
    recovery = (staff.fatigue * 0.15 + rest_days * 3) * (1.05 if is_manager else 1.0)
    fatigue = clamp(staff.fatigue + gain - recovery)

    # 2. Morale
    delta = -0.5
    if fatigue > 70:
        delta -= 3
    delta += profit_morale_effect(last_profit)
    delta += hours_morale_effect(staff)
    if hours > 60:
        delta -= 5
    if is_manager:
        delta += 2
    delta += raise_boost
    morale = clamp(staff.morale + delta)

    # 3. Derived performance
    f_eff, f_svc, _ = fatigue_effect(fatigue)
    m_eff, m_svc = morale_effect(morale)
    overtime = 0.9 if hours > 60 else 1.0
    transition = TRANSITION['efficiency_penalty'] if transitioning else 1.0
    efficiency = staff.base_efficiency * f_eff * m_eff * overtime * transition
    service = staff.base_service_quality * f_svc * m_svc * overtime * transition

    # 4. Skill growth
    task_exp = staff.task_exp + weekly_exp(staff.model_copy(update={'morale': morale}))
    skill = staff.skill_level
    base_eff, base_svc = staff.base_efficiency, staff.base_service_quality
    needed = SKILL_UPGRADE_EXP.get(skill)
    if needed is not None and task_exp >= needed and skill < STAFF_TYPES[staff.type_id]['max_skill']:
        skill += 1
        task_exp -= needed
        base_eff *= 1.03
        base_svc *= 1.02

    # 5. Product proficiency
    proficiency = {pid: max(0.0, v - 1) for pid, v in staff.product_proficiency.items()}
    if staff.focus_product_id:
        gained = round(3 * hours / STANDARD_WEEK_HOURS * efficiency)
        current = staff.product_proficiency.get(staff.focus_product_id, 0.0)
        proficiency[staff.focus_product_id] = min(100.0, current + gained)

    return staff.model_copy(update={
        'fatigue': fatigue,
        'morale': morale,
        'efficiency': efficiency,
        'service_quality': service,
        'task_exp': task_exp,
        'skill_level': skill,
        'base_efficiency': base_eff,
        'base_service_quality': base_svc,
        'is_transitioning': transitioning,
        'salary_raise_boost': raise_boost,
        'product_proficiency': proficiency,
    })


def quit_risk(staff: Staff) -> float:
    _, _, risk = fatigue_effect(staff.fatigue)
    return risk * 2 if staff.weekly_hours > 60 else risk
