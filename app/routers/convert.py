from __future__ import annotations

import math
import re
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, field_serializer

from app.models.constants import DEFAULT_FROM_CURRENCY, SUPPORTED_CURRENCIES
from app.services.rates.cache_service import RateCacheController
from app.services.rates.conversion import convert_many, format_display_date

"""Conversion router.

GET /convert?from_currency=USD&to_currency=JPY,GBP&amount=100

Every failure (upstream down, malformed feed, unknown currency) surfaces as a
RateGatewayError and is rendered by the app level handler as
500 {"error": "..."}.
"""

router = APIRouter(tags=["convert"])

_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def get_rate_cache(request: Request) -> RateCacheController:
    return request.app.state.rate_cache


def parse_amount(raw: Optional[str]) -> float:
    """Leading numeric prefix of ``raw``; 1 when absent, non-numeric, zero or non-finite."""
    if raw is None:
        return 1.0
    m = _LEADING_NUMBER.match(raw)
    if not m:
        return 1.0
    value = float(m.group(1))
    if not math.isfinite(value) or value == 0:
        return 1.0
    return value


def parse_currency_list(raw: Optional[str]) -> List[str]:
    if raw is None:
        return list(SUPPORTED_CURRENCIES)
    codes = [c.strip().upper() for c in raw.split(",")]
    codes = [c for c in codes if c]
    return codes or list(SUPPORTED_CURRENCIES)


def _json_number(value: float) -> Union[int, float]:
    """Whole numbers render as JSON integers (``1`` rather than ``1.0``)."""
    return int(value) if value.is_integer() else value


class ConversionOut(BaseModel):
    to_currency: str
    exchange_rate: float
    converted_amount: float

    @field_serializer("exchange_rate", "converted_amount")
    def whole_numbers_as_int(self, v: float) -> Union[int, float]:
        return _json_number(v)


class ConvertResponse(BaseModel):
    from_currency: str
    amount: float
    date: str
    conversions: List[ConversionOut]

    @field_serializer("amount")
    def whole_numbers_as_int(self, v: float) -> Union[int, float]:
        return _json_number(v)


@router.get(
    "/convert",
    response_model=ConvertResponse,
    summary="Convert an amount into one or more currencies at ECB reference rates",
)
async def convert_endpoint(
    from_currency: Optional[str] = Query(
        None, description=f"Source currency (default {DEFAULT_FROM_CURRENCY})"
    ),
    to_currency: Optional[str] = Query(
        None, description="Comma-separated target currencies (default: all supported)"
    ),
    amount: Optional[str] = Query(None, description="Amount to convert (default 1)"),
    cache: RateCacheController = Depends(get_rate_cache),
):
    source = (from_currency or "").strip().upper() or DEFAULT_FROM_CURRENCY
    targets = parse_currency_list(to_currency)
    value = parse_amount(amount)

    lookup = await cache.get_rates()
    results = convert_many(lookup.table, source, targets, value)
    return ConvertResponse(
        from_currency=source,
        amount=value,
        date=format_display_date(lookup.table.as_of, stale=lookup.stale),
        conversions=[
            ConversionOut(
                to_currency=r.to_currency,
                exchange_rate=r.exchange_rate,
                converted_amount=r.converted_amount,
            )
            for r in results
        ],
    )
