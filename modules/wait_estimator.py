"""Wait-time estimation for cafeteria corners.

Linear queueing model: a corner serves ``service_rate`` people per minute
and some corners add a fixed cooking overhead. ``estimate`` is the bare
model; ``compute_wait_minutes`` applies the per-corner tables and the
display caps used on the forecast screens.
"""

from __future__ import annotations

import math
from typing import Dict

# People served per minute, by corner id
SERVICE_RATE_PEOPLE_PER_MIN: Dict[str, float] = {
    "western": 4.2,
    "korean": 3.6,
    "ramen": 1.6,
    "instant": 2.35,
    "cupbap": 3.0,
    "breakfast_1000": 3.5,
    "set_meal": 3.2,
    "single_dish": 2.8,
    "rice_bowl": 2.5,
    "dinner": 2.8,
    "dam_a": 2.9,
    "dam_a_lunch": 2.9,
    "dam_a_dinner": 2.9,
    "pangeos": 2.35,
    "pangeos_lunch": 2.35,
}

# Fixed preparation time in minutes, by corner id
OVERHEAD_MIN: Dict[str, float] = {
    "ramen": 1,
    "instant": 1,
    "pangeos": 1,
    "pangeos_lunch": 1,
}

DEFAULT_SERVICE_RATE = 2.5
DEFAULT_OVERHEAD = 0.0

DEFAULT_CAP_MIN = 12
# (restaurant_id, corner_id) -> cap in minutes
WAIT_CAP_MIN: Dict[tuple, int] = {
    ("hanyang_plaza", "instant"): 18,
    ("life_science", "pangeos"): 16,
    ("life_science", "pangeos_lunch"): 16,
}


def get_service_rate(corner_id: str) -> float:
    return SERVICE_RATE_PEOPLE_PER_MIN.get(corner_id, DEFAULT_SERVICE_RATE)


def get_overhead(corner_id: str) -> float:
    return OVERHEAD_MIN.get(corner_id, DEFAULT_OVERHEAD)


def get_wait_cap(restaurant_id: str, corner_id: str) -> int:
    return WAIT_CAP_MIN.get((restaurant_id, corner_id), DEFAULT_CAP_MIN)


def estimate(queue_len: float, service_rate_per_minute: float, overhead_minutes: float) -> float:
    """
    Projected wait in minutes: queue_len / service_rate + overhead, never negative.

    Raises:
        ValueError: if service_rate_per_minute is not positive
    """
    if service_rate_per_minute <= 0:
        raise ValueError("service_rate_per_minute must be positive")
    wait = max(queue_len, 0) / service_rate_per_minute + overhead_minutes
    return max(wait, 0.0)


def display_minutes(minutes: float) -> int:
    """Round to the nearest whole minute (halves round up) for display."""
    return int(math.floor(max(minutes, 0.0) + 0.5))


def compute_wait_minutes(queue_len: float, restaurant_id: str, corner_id: str) -> int:
    """
    Whole-minute wait for a corner: ceil of the model, capped per corner.

    Example:
        compute_wait_minutes(10, "hanyang_plaza", "ramen") -> 8
    """
    raw = estimate(queue_len, get_service_rate(corner_id), get_overhead(corner_id))
    return min(math.ceil(raw), get_wait_cap(restaurant_id, corner_id))
