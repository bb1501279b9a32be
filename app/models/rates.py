from __future__ import annotations

import math
from datetime import date
from typing import Dict

from pydantic import BaseModel, ConfigDict, field_validator

from .constants import BASE_CURRENCY


class RateTable(BaseModel):
    """Immutable snapshot of one daily reference feed.

    ``rates`` maps a currency code to the number of units of that currency per
    1 EUR. EUR itself is always present at 1.0.
    """

    model_config = ConfigDict(frozen=True)

    rates: Dict[str, float]
    as_of: date

    @property
    def base_currency(self) -> str:
        return BASE_CURRENCY

    @field_validator("rates")
    @classmethod
    def valid_rates(cls, v: Dict[str, float]) -> Dict[str, float]:
        for code, rate in v.items():
            if not code:
                raise ValueError("currency code must not be empty")
            if not math.isfinite(rate) or rate <= 0:
                raise ValueError(f"rate for {code} must be a positive number")
        if v.get(BASE_CURRENCY, 1.0) != 1.0:
            raise ValueError(f"{BASE_CURRENCY} rate must be 1.0")
        return {BASE_CURRENCY: 1.0, **v}

    def has(self, currency: str) -> bool:
        return currency in self.rates

    @property
    def currencies(self) -> list[str]:
        return sorted(self.rates)
