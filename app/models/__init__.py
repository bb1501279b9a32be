"""Pydantic domain models for the FX gateway."""

from .constants import (
    BASE_CURRENCY,
    DEFAULT_FROM_CURRENCY,
    OUTDATED_MARKER,
    SUPPORTED_CURRENCIES,
)  # re-export
from .rates import RateTable

__all__ = [
    "BASE_CURRENCY",
    "DEFAULT_FROM_CURRENCY",
    "OUTDATED_MARKER",
    "SUPPORTED_CURRENCIES",
    "RateTable",
]
