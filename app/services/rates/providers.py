from __future__ import annotations

"""Concrete rate sources and factory.

'ecb' fetches the live daily reference feed. 'static' returns a bundled sample
feed so the gateway can be run offline; it exercises the same parse/cache path.
"""
from typing import Callable, Dict, Optional

import httpx

from app.core.config import Settings
from app.services.http_client import get_bytes
from .base import RateSource

STATIC_FEED = b"""<?xml version="1.0" encoding="UTF-8"?>
<gesmes:Envelope xmlns:gesmes="http://www.gesmes.org/xml/2002-08-01" xmlns="http://www.ecb.int/vocabulary/2002-08-01/eurofxref">
  <gesmes:subject>Reference rates</gesmes:subject>
  <gesmes:Sender><gesmes:name>European Central Bank</gesmes:name></gesmes:Sender>
  <Cube>
    <Cube time="2024-01-15">
      <Cube currency="USD" rate="1.0950"/>
      <Cube currency="JPY" rate="160.77"/>
      <Cube currency="BGN" rate="1.9558"/>
      <Cube currency="CZK" rate="24.688"/>
      <Cube currency="DKK" rate="7.4573"/>
      <Cube currency="GBP" rate="0.86020"/>
      <Cube currency="HUF" rate="379.53"/>
      <Cube currency="PLN" rate="4.3685"/>
      <Cube currency="RON" rate="4.9733"/>
      <Cube currency="SEK" rate="11.2980"/>
      <Cube currency="CHF" rate="0.9359"/>
      <Cube currency="ISK" rate="150.10"/>
      <Cube currency="NOK" rate="11.3675"/>
      <Cube currency="TRY" rate="32.9367"/>
      <Cube currency="AUD" rate="1.6423"/>
      <Cube currency="BRL" rate="5.3596"/>
      <Cube currency="CAD" rate="1.4710"/>
      <Cube currency="CNY" rate="7.8778"/>
      <Cube currency="HKD" rate="8.5635"/>
      <Cube currency="IDR" rate="17056.59"/>
      <Cube currency="ILS" rate="4.1095"/>
      <Cube currency="INR" rate="90.8935"/>
      <Cube currency="KRW" rate="1463.28"/>
      <Cube currency="MXN" rate="18.7045"/>
      <Cube currency="MYR" rate="5.1306"/>
      <Cube currency="NZD" rate="1.7651"/>
      <Cube currency="PHP" rate="61.417"/>
      <Cube currency="SGD" rate="1.4663"/>
      <Cube currency="THB" rate="38.494"/>
      <Cube currency="ZAR" rate="20.5873"/>
    </Cube>
  </Cube>
</gesmes:Envelope>
"""


class StaticFeedSource(RateSource):
    name = "static"

    def __init__(self, payload: bytes = STATIC_FEED):
        self._payload = payload

    async def fetch(self) -> bytes:  # type: ignore[override]
        return self._payload


class ECBFeedSource(RateSource):
    name = "ecb"

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self._timeout = timeout
        self._transport = transport

    async def fetch(self) -> bytes:  # type: ignore[override]
        return await get_bytes(self.url, timeout=self._timeout, transport=self._transport)


_SOURCE_REGISTRY: Dict[str, Callable[[Settings], RateSource]] = {
    "ecb": lambda s: ECBFeedSource(
        str(s.ecb_feed_url), timeout=s.http_timeout_seconds
    ),
    "static": lambda s: StaticFeedSource(),
}


def make_rate_source(kind: str, settings: Settings) -> RateSource:
    factory = _SOURCE_REGISTRY.get(kind)
    if not factory:
        raise ValueError(f"Unknown rate provider kind '{kind}'")
    return factory(settings)
