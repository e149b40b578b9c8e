"""Numeric helpers shared by the evaluator, enricher and leaderboard fold."""

import math
from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction
from typing import Any


def round_half_up(value: float | Fraction | None, digits: int) -> float | None:
    """Round half away from zero, matching SQL ``ROUND`` on numerics.

    Floats are rounded from their shortest decimal repr so ``2.675`` rounds to
    ``2.68`` the way a database numeric would, not to ``2.67``.
    """
    if value is None:
        return None
    if isinstance(value, Fraction):
        exact = Decimal(value.numerator) / Decimal(value.denominator)
    else:
        if not math.isfinite(value):
            return None
        exact = Decimal(repr(float(value)))
    quantum = Decimal(1).scaleb(-digits)
    return float(exact.quantize(quantum, rounding=ROUND_HALF_UP))


def parse_finite(value: Any) -> float | None:
    """Parse a numeric literal, returning ``None`` for anything that is not a finite number."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None
