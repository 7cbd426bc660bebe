"""Daily emissions score from raw lifestyle inputs.

Pure module: no DB, no HTTP. Values are kg CO2e per day.

Inputs (all optional):
- vehicle_type       key into VEHICLE_FACTORS (kg per km)
- distance_daily     km travelled per day
- diet_type          key into DIET_FACTORS (kg per day)
- electricity_usage  kWh per month
- gas_usage          kWh per month

Monthly usage is normalized to a daily rate by dividing by 30.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping


VEHICLE_FACTORS: Mapping[str, float] = MappingProxyType({
    "car-petrol": 0.171,
    "car-diesel": 0.168,
    "car-hybrid": 0.120,
    "car-electric": 0.047,
    "motorbike": 0.114,
    "bus": 0.105,
    "train": 0.041,
    "bicycle": 0.0,
    "walk": 0.0,
})

DIET_FACTORS: Mapping[str, float] = MappingProxyType({
    "vegan": 2.89,
    "vegetarian": 3.81,
    "pescatarian": 3.91,
    "low-meat": 4.67,
    "medium-meat": 5.63,
    "omnivore": 5.63,
    "high-meat": 7.19,
})

ELECTRICITY_FACTOR = 0.233  # kg per kWh
GAS_FACTOR = 0.184  # kg per kWh
DAYS_PER_MONTH = 30

# Default-substitution table: value used when a field is absent,
# non-numeric, non-finite or negative.
INPUT_DEFAULTS: Mapping[str, Any] = MappingProxyType({
    "vehicle_type": "",
    "distance_daily": 0.0,
    "diet_type": "",
    "electricity_usage": 0.0,
    "gas_usage": 0.0,
})

NUMERIC_INPUTS = ("distance_daily", "electricity_usage", "gas_usage")
CATEGORY_INPUTS = ("vehicle_type", "diet_type")


@dataclass(frozen=True)
class EmissionFactors:
    vehicles: Mapping[str, float] = field(default_factory=lambda: VEHICLE_FACTORS)
    diets: Mapping[str, float] = field(default_factory=lambda: DIET_FACTORS)
    electricity: float = ELECTRICITY_FACTOR
    gas: float = GAS_FACTOR


DEFAULT_FACTORS = EmissionFactors()


def to_number(value: Any, default: float = 0.0) -> float:
    """Coerce a JSON-ish value to a finite, non-negative float."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    if not math.isfinite(number) or number < 0:
        return default
    return number


def _category(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def normalize_inputs(raw: Mapping[str, Any] | None) -> dict:
    """Apply INPUT_DEFAULTS to the raw input fields."""
    raw = raw or {}
    out = {}
    for key in CATEGORY_INPUTS:
        out[key] = _category(raw.get(key)) or INPUT_DEFAULTS[key]
    for key in NUMERIC_INPUTS:
        out[key] = to_number(raw.get(key), INPUT_DEFAULTS[key])
    return out


def derive_emissions(raw: Mapping[str, Any] | None, factors: EmissionFactors = DEFAULT_FACTORS) -> dict:
    """Return {"travel", "food", "energy", "total"}. Never raises."""
    inputs = normalize_inputs(raw)

    travel = factors.vehicles.get(inputs["vehicle_type"], 0.0) * inputs["distance_daily"]
    food = factors.diets.get(inputs["diet_type"], 0.0)
    energy = (
        (inputs["electricity_usage"] / DAYS_PER_MONTH) * factors.electricity
        + (inputs["gas_usage"] / DAYS_PER_MONTH) * factors.gas
    )

    travel = round(travel, 2)
    food = round(food, 2)
    energy = round(energy, 2)
    return {
        "travel": travel,
        "food": food,
        "energy": energy,
        "total": round(travel + food + energy, 2),
    }
