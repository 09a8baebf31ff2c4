"""Loose number coercion for node fields.

Node data arrives from spreadsheets, LLM output and the editor, so numeric
fields may be numbers, numeric strings, blanks or junk. These helpers follow
the browser's ``Number()``, ``parseFloat()`` and ``String(number)`` rules so
footprints stored on nodes render identically on both sides.
"""
from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any

_NUMBER_LITERAL = re.compile(
    r"^[+-]?(?:Infinity|\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)$"
)
_NUMBER_PREFIX = re.compile(
    r"^[+-]?(?:Infinity|\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)"
)


def _literal_to_float(literal: str) -> float:
    if literal.lstrip("+-") == "Infinity":
        return -math.inf if literal.startswith("-") else math.inf
    return float(literal)


def to_number(value: Any) -> float:
    """Coerce like ``Number(value)``: blanks and None are 0, junk is NaN."""
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if _NUMBER_LITERAL.match(text):
            return _literal_to_float(text)
    return math.nan


def parse_float(value: Any) -> float:
    """Coerce like ``parseFloat(value)``: reads the leading numeric prefix or gives NaN."""
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    if value is None:
        return math.nan
    match = _NUMBER_PREFIX.match(str(value).lstrip())
    if not match:
        return math.nan
    return _literal_to_float(match.group(0))


def number_or(value: Any, default: float) -> float:
    """``Number(value) || default``: NaN and zero both fall back."""
    number = to_number(value)
    if math.isnan(number) or number == 0:
        return default
    return number


def number_to_str(value: float) -> str:
    """Render a float the way ``String(number)`` does (``3``, ``0.1``, ``1e-7``, ``1e+21``)."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    sign = "-" if value < 0 else ""
    normalized = Decimal(repr(abs(value))).normalize()
    _, digit_tuple, exponent = normalized.as_tuple()
    digits = "".join(str(d) for d in digit_tuple)
    k = len(digits)
    n = exponent + k

    if k <= n <= 21:
        body = digits + "0" * (n - k)
    elif 0 < n <= 21:
        body = f"{digits[:n]}.{digits[n:]}"
    elif -6 < n <= 0:
        body = "0." + "0" * (-n) + digits
    else:
        e = n - 1
        e_str = f"e+{e}" if e >= 0 else f"e-{-e}"
        body = digits + e_str if k == 1 else f"{digits[0]}.{digits[1:]}{e_str}"
    return sign + body
