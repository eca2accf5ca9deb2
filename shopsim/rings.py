# shopsim/rings.py
"""
Consumer rings: four distance bands around the store.

ring0 is the street in front of the door, ring1 walking distance, ring2 a
bike ride, ring3 reachable only by delivery.
"""
import numpy as np
from typing import Dict, List

from .catalog import CUSTOMER_TYPES, LOCATIONS, RING_IDS
from .models import ConsumerRing, NearbyShop

RING_BASE_CONVERSION = {'ring0': 1.0, 'ring1': 0.5, 'ring2': 0.2, 'ring3': 0.0}

# Ring size relative to ring0, drawn uniformly from (min, max)
LOCATION_RING_MULTIPLIERS = {
    'school': {'ring1': (2.3, 3.0), 'ring2': (3.1, 4.6), 'ring3': (2.0, 3.4)},
    'office': {'ring1': (1.9, 2.9), 'ring2': (3.8, 6.2), 'ring3': (4.0, 6.5)},
    'community': {'ring1': (2.5, 3.8), 'ring2': (2.0, 3.2), 'ring3': (3.5, 5.0)},
    'business': {'ring1': (1.6, 2.4), 'ring2': (2.4, 4.0), 'ring3': (2.6, 4.0)},
    'tourist': {'ring1': (1.3, 1.8), 'ring2': (1.6, 2.5), 'ring3': (1.3, 2.6)},
}

# Share of each customer type that survives out to a ring
CUSTOMER_RING_DECAY = {
    'students': {'ring0': 1.0, 'ring1': 1.0, 'ring2': 0.6, 'ring3': 0.4},
    'office': {'ring0': 1.0, 'ring1': 1.0, 'ring2': 0.7, 'ring3': 0.9},
    'family': {'ring0': 1.0, 'ring1': 1.0, 'ring2': 0.9, 'ring3': 0.8},
    'tourist': {'ring0': 1.0, 'ring1': 0.65, 'ring2': 0.4, 'ring3': 0.05},
}

SEASON_TRAFFIC_MOD = {
    'spring': {'students': 1.0, 'office': 1.0, 'family': 1.05, 'tourist': 1.1},
    'summer': {'students': 0.7, 'office': 0.95, 'family': 1.1, 'tourist': 1.3},
    'autumn': {'students': 1.05, 'office': 1.0, 'family': 1.0, 'tourist': 0.9},
    'winter': {'students': 0.95, 'office': 1.0, 'family': 0.9, 'tourist': 0.6},
}

# Where shops of each category tend to sit. Nothing physical sits in ring3.
SHOP_RING_WEIGHTS = {
    'drink': {'ring0': 0.45, 'ring1': 0.4, 'ring2': 0.15},
    'food': {'ring0': 0.4, 'ring1': 0.4, 'ring2': 0.2},
    'snack': {'ring0': 0.4, 'ring1': 0.4, 'ring2': 0.2},
    'meal': {'ring0': 0.35, 'ring1': 0.4, 'ring2': 0.25},
    'grocery': {'ring0': 0.5, 'ring1': 0.35, 'ring2': 0.15},
    'service': {'ring0': 0.3, 'ring1': 0.4, 'ring2': 0.3},
}


def draw_shop_ring(category: str, rng: np.random.RandomState) -> str:
    weights = SHOP_RING_WEIGHTS.get(category, SHOP_RING_WEIGHTS['food'])
    rings = list(weights.keys())
    probs = np.array([weights[r] for r in rings], dtype=float)
    return rings[int(rng.choice(len(rings), p=probs / probs.sum()))]


def _make_ring(ring_id: str, counts: Dict[str, float]) -> ConsumerRing:
    counts = {ctype: max(0.0, float(counts.get(ctype, 0.0))) for ctype in CUSTOMER_TYPES}
    total = sum(counts.values())
    if total > 0:
        weights = {ctype: counts[ctype] / total for ctype in CUSTOMER_TYPES}
    else:
        weights = {ctype: 0.0 for ctype in CUSTOMER_TYPES}
    return ConsumerRing(
        ring=ring_id,
        base_traffic=int(round(total)),
        customer_type_weights=weights,
        seasonal_multiplier={ctype: 1.0 for ctype in CUSTOMER_TYPES},
        base_conversion=RING_BASE_CONVERSION[ring_id],
    )


def generate_consumer_rings(location_id: str, address_id: str,
                            rng: np.random.RandomState) -> Dict[str, ConsumerRing]:
    """
    ring0 = foot traffic x address modifier.
    Outer rings = ring0 x location multiplier x jitter(0.8-1.2) x type decay.
    """
    location = LOCATIONS[location_id]
    traffic_mod = location['addresses'][address_id]['traffic_modifier']
    base = {ctype: location['foot_traffic'][ctype] * traffic_mod for ctype in CUSTOMER_TYPES}

    rings = {'ring0': _make_ring('ring0', {c: round(v) for c, v in base.items()})}
    multipliers = LOCATION_RING_MULTIPLIERS.get(location_id)
    if not multipliers:
        return rings

    for ring_id in RING_IDS[1:]:
        lo, hi = multipliers[ring_id]
        counts = {}
        for ctype in CUSTOMER_TYPES:
            multiplier = rng.uniform(lo, hi)
            jitter = rng.uniform(0.8, 1.2)
            counts[ctype] = round(base[ctype] * multiplier * jitter * CUSTOMER_RING_DECAY[ctype][ring_id])
        rings[ring_id] = _make_ring(ring_id, counts)
    return rings


def apply_seasonal_traffic_variation(rings: Dict[str, ConsumerRing], season: str) -> Dict[str, ConsumerRing]:
    """Sets (never compounds) the seasonal multiplier on every ring."""
    mods = SEASON_TRAFFIC_MOD[season]
    return {
        ring_id: ring.model_copy(update={'seasonal_multiplier': dict(mods)})
        for ring_id, ring in rings.items()
    }


def assign_nearby_shops_to_consumer_rings(shops: List[NearbyShop],
                                          rings: Dict[str, ConsumerRing],
                                          rng: np.random.RandomState):
    """
    Returns (shops, rings). Shops sitting in an unknown ring are redrawn from
    the category weights; each ring then lists its non-closing shops.
    """
    placed = []
    for shop in shops:
        if shop.ring not in rings or shop.ring == 'ring3':
            shop = shop.model_copy(update={'ring': draw_shop_ring(shop.shop_category, rng)})
        placed.append(shop)

    ids_by_ring = {ring_id: [] for ring_id in rings}
    for shop in placed:
        if not shop.is_closing and shop.ring in ids_by_ring:
            ids_by_ring[shop.ring].append(shop.id)

    new_rings = {
        ring_id: ring.model_copy(update={'nearby_shop_ids': ids_by_ring[ring_id]})
        for ring_id, ring in rings.items()
    }
    return placed, new_rings
