import math
from typing import Iterable, Optional

ENGINE_CAPACITY_THRESHOLD_CC = 125


def calculate_price(
    base_price: float,
    price_per_year: float,
    years: int,
    engine_capacity: Optional[float],
    engine_capacity_multiplier: float,
) -> int:
    """(base + perYear * years), scaled by the multiplier above 125cc, rounded."""
    return price_breakdown(
        base_price, price_per_year, years, engine_capacity, engine_capacity_multiplier
    )["totalPrice"]


def price_breakdown(
    base_price: float,
    price_per_year: float,
    years: int,
    engine_capacity: Optional[float],
    engine_capacity_multiplier: float,
) -> dict:
    yearly_component = price_per_year * years
    subtotal = base_price + yearly_component
    multiplier_applied = bool(engine_capacity and engine_capacity > ENGINE_CAPACITY_THRESHOLD_CC)
    multiplier = engine_capacity_multiplier if multiplier_applied else 1
    return {
        "basePrice": base_price,
        "yearlyPrice": yearly_component,
        "subtotal": subtotal,
        "engineCapacityMultiplier": multiplier,
        "multiplierApplied": multiplier_applied,
        # ties round up
        "totalPrice": int(math.floor(subtotal * multiplier + 0.5)),
    }


def is_eligible(
    engine_capacity: Optional[float],
    category: Optional[str],
    max_engine_capacity: float,
    categories: Iterable[str],
) -> bool:
    if engine_capacity is None or engine_capacity > max_engine_capacity:
        return False
    allowed = {c.lower() for c in categories}
    return bool(category) and category.lower() in allowed
