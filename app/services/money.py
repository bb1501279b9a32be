"""Money / rounding helpers.

Centralized so every conversion figure leaving the gateway uses identical
rounding semantics: always up to the next cent, never to nearest.
"""

from __future__ import annotations
import math


def ceil2(value: float) -> float:
    return math.ceil(value * 100) / 100
