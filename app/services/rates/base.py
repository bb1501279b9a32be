from __future__ import annotations

"""Rate source abstraction and the gateway's error taxonomy.

A RateSource performs one upstream fetch and returns the raw feed payload.
Parsing, caching and retrying are layered on top by the cache controller.
"""
from abc import ABC, abstractmethod
from typing import Iterable, Tuple


class RateSource(ABC):
    name: str = "abstract"

    @abstractmethod
    async def fetch(self) -> bytes:
        """Return the raw daily feed payload. Raise on any transport/status failure."""
        raise NotImplementedError


class RateGatewayError(Exception):
    """Base for errors rendered to clients as a JSON error envelope."""


class UpstreamUnavailable(RateGatewayError):
    def __init__(self, reason: str | None = None):
        super().__init__(
            "Could not obtain the XML from the ECB and no cached data is available."
        )
        self.reason = reason


class MalformedFeed(RateGatewayError):
    pass


class UnknownCurrency(RateGatewayError):
    def __init__(self, codes: Iterable[str]):
        self.codes: Tuple[str, ...] = tuple(codes)
        super().__init__(
            f"Currency not available in the ECB data: {', '.join(self.codes)}"
        )


class AmountOutOfRange(RateGatewayError):
    def __init__(self, amount: float, to_currency: str):
        self.amount = amount
        self.to_currency = to_currency
        super().__init__(
            f"Amount {amount!r} is too large to convert into {to_currency}"
        )
