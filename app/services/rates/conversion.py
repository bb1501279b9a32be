from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List

from app.models.constants import OUTDATED_MARKER
from app.models.rates import RateTable
from app.services.money import ceil2
from .base import AmountOutOfRange, UnknownCurrency

"""Cross-rate conversion over a RateTable.

All table rates are quoted per 1 EUR, so rates[to] / rates[from] is the direct
from->to rate. Both the rate and the converted amount are rounded UP to the
cent (ceil2); that policy is observable by clients and must not change.
"""


@dataclass(frozen=True)
class ConversionResult:
    to_currency: str
    exchange_rate: float
    converted_amount: float


def _missing(table: RateTable, codes: Iterable[str]) -> List[str]:
    missing: List[str] = []
    for code in codes:
        if not table.has(code) and code not in missing:
            missing.append(code)
    return missing


def convert(
    table: RateTable, from_currency: str, to_currency: str, amount: float
) -> ConversionResult:
    missing = _missing(table, (from_currency, to_currency))
    if missing:
        raise UnknownCurrency(missing)
    rate = table.rates[to_currency] / table.rates[from_currency]
    converted = amount * rate
    # ceil2 scales by 100 before rounding; that product must stay finite
    if not math.isfinite(converted * 100):
        raise AmountOutOfRange(amount, to_currency)
    return ConversionResult(
        to_currency=to_currency,
        exchange_rate=ceil2(rate),
        converted_amount=ceil2(converted),
    )


def convert_many(
    table: RateTable, from_currency: str, to_currencies: Iterable[str], amount: float
) -> List[ConversionResult]:
    """Convert into every target, failing up front if any code is unknown."""
    targets = list(to_currencies)
    missing = _missing(table, [from_currency, *targets])
    if missing:
        raise UnknownCurrency(missing)
    return [convert(table, from_currency, code, amount) for code in targets]


def format_display_date(as_of: date, stale: bool = False) -> str:
    formatted = as_of.strftime("%d/%m/%Y")
    if stale:
        formatted += OUTDATED_MARKER
    return formatted
