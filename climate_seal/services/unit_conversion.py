"""
Unit conversion between activity units and emission-factor units.

Each category maps unit aliases onto a rate relative to the category's base
unit, so ``factor(a -> b) = rate[a] / rate[b]``.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)

CONVERSION_BASE: Dict[str, Dict[str, float]] = {
    # base: g
    "mass": {
        "g": 1, "gram": 1, "gr": 1,
        "mg": 0.001, "milligram": 0.001,
        "kg": 1000, "kilogram": 1000,
        "t": 1_000_000, "ton": 1_000_000, "tonne": 1_000_000, "metric-ton": 1_000_000,
        "kt": 1_000_000_000,
        "lb": 453.59237, "pound": 453.59237,
        "oz": 28.349523125, "ounce": 28.349523125,
        "short-ton": 907185,
        "long-ton": 1016047,
    },
    # base: m
    "distance": {
        "m": 1, "meter": 1,
        "km": 1000, "kilometer": 1000,
        "cm": 0.01, "centimeter": 0.01,
        "mm": 0.001, "millimeter": 0.001,
        "mi": 1609.344, "mile": 1609.344,
        "nmi": 1852,
        "ft": 0.3048, "foot": 0.3048,
        "in": 0.0254, "inch": 0.0254,
        "yd": 0.9144, "yard": 0.9144,
    },
    # base: m2
    "area": {
        "m2": 1, "sq-m": 1,
        "km2": 1_000_000, "sq-km": 1_000_000,
        "ha": 10_000, "hectare": 10_000,
        "cm2": 0.0001, "sq-cm": 0.0001,
        "ft2": 0.092903, "sq-ft": 0.092903,
        "in2": 0.00064516, "sq-in": 0.00064516,
        "acre": 4046.86,
    },
    # base: L
    "volume": {
        "l": 1, "liter": 1,
        "ml": 0.001, "milliliter": 0.001,
        "m3": 1000, "cubic-meter": 1000,
        "cm3": 0.001, "cubic-centimeter": 0.001,
        "gal": 3.78541,
        "uk-gal": 4.54609,
        "qt": 0.946353,
        "pt": 0.473176,
        "cup": 0.24,
        "ft3": 28.3168, "cubic-foot": 28.3168,
        "in3": 0.0163871, "cubic-inch": 0.0163871,
    },
    # base: kWh
    "energy": {
        "kwh": 1, "kw-h": 1,
        "mwh": 1000, "mw-h": 1000,
        "gwh": 1_000_000, "gw-h": 1_000_000,
        "j": 1 / 3_600_000, "joule": 1 / 3_600_000,
        "kj": 1 / 3600, "kilojoule": 1 / 3600,
        "mj": 1 / 3.6, "megajoule": 1 / 3.6,
        "gj": 1000 / 3.6, "gigajoule": 1000 / 3.6,
        "btu": 0.000293071,
        "cal": 4.184 / 3_600_000,
        "kcal": 4184 / 3_600_000,
    },
    # base: h
    "time": {
        "s": 1 / 3600, "sec": 1 / 3600, "second": 1 / 3600,
        "min": 1 / 60, "minute": 1 / 60,
        "h": 1, "hr": 1, "hour": 1,
        "day": 24,
        "week": 168,
        "month": 730.001,
        "year": 8766,
    },
    # base: t-km
    "transport": {
        "t-km": 1, "tkm": 1, "tonne-km": 1,
        "kg-km": 0.001, "kgkm": 0.001,
        "g-km": 0.000001, "gkm": 0.000001,
        "ton-mi": 1.45997,
        "t-mi": 1.60934,
        "lb-km": 0.000453592,
        "lb-mi": 0.00073003,
        "pkm": 1, "passenger-km": 1, "person-km": 1,
        "p-mi": 1.60934, "passenger-mile": 1.60934,
        "vkm": 1, "vehicle-km": 1,
        "v-mi": 1.60934, "vehicle-mile": 1.60934,
    },
    "items": {
        "item": 1, "unit": 1, "piece": 1,
        "dozen": 12,
        "pair": 2,
        "set": 1,
    },
}


def normalize_unit(unit: str) -> str:
    """Lowercase, trim, and turn spaces and ``*`` into ``-`` (``"t * km"`` -> ``"t---km"``)."""
    return unit.lower().strip().replace(" ", "-").replace("*", "-")


def get_conversion_factor(from_unit: Optional[str], to_unit: Optional[str]) -> float:
    """
    Factor that converts a quantity in ``from_unit`` into ``to_unit``.

    Missing, identical or incompatible units give 1.
    """
    if not from_unit or not to_unit or from_unit.lower() == to_unit.lower():
        return 1.0

    normalized_from = normalize_unit(from_unit)
    normalized_to = normalize_unit(to_unit)
    if normalized_from == normalized_to:
        return 1.0

    for rates in CONVERSION_BASE.values():
        if normalized_from in rates and normalized_to in rates:
            return rates[normalized_from] / rates[normalized_to]

    logger.warning(f"No conversion between units '{from_unit}' and '{to_unit}', using 1")
    return 1.0
