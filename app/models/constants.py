"""Domain constants for the conversion gateway.

The ECB publishes every rate against EUR; the supported list mirrors the
currencies present in the daily reference feed and is only used as the
default target list of a conversion request.
"""

from typing import Tuple

BASE_CURRENCY: str = "EUR"

SUPPORTED_CURRENCIES: Tuple[str, ...] = (
    "USD",
    "JPY",
    "BGN",
    "CZK",
    "DKK",
    "GBP",
    "HUF",
    "PLN",
    "RON",
    "SEK",
    "CHF",
    "ISK",
    "NOK",
    "TRY",
    "AUD",
    "BRL",
    "CAD",
    "CNY",
    "HKD",
    "IDR",
    "ILS",
    "INR",
    "KRW",
    "MXN",
    "MYR",
    "NZD",
    "PHP",
    "SGD",
    "THB",
    "ZAR",
    "EUR",
)

DEFAULT_FROM_CURRENCY: str = "USD"

# Appended to the display date when rates are served past the fresh window
OUTDATED_MARKER: str = " (Outdated data)"
