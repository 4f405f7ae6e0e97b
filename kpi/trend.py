"""
kpi/trend.py

Period-over-period percentage change.

Formula::

    trend = (current - previous) / previous * 100     rounded to 2 places

Zero baseline: ``previous == 0`` yields ``100.0`` when ``current > 0`` and
``0.0`` otherwise.  Rounding is half away from zero on the decimal
representation; ratios that overflow a float are returned unrounded.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, localcontext

_TWO_PLACES = Decimal("0.01")


def calculate_trend(current: float, previous: float) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0

    change = (current - previous) / previous * 100
    if not math.isfinite(change):
        return change

    exact = Decimal(repr(change))
    with localcontext() as ctx:
        # quantize needs every integer digit plus the two decimals
        ctx.prec = max(ctx.prec, exact.adjusted() + 3)
        return float(exact.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))
