from __future__ import annotations

"""ECB daily reference feed parser.

Expected layout (namespaces omitted)::

    <Envelope>
      <Cube>
        <Cube time="2024-01-15">
          <Cube currency="USD" rate="1.0850"/>
          ...

Elements are matched by local name, so the namespaced ECB document and plain
test fixtures parse the same way. Any deviation raises MalformedFeed; retrying
is the cache controller's business.
"""
import math
import xml.etree.ElementTree as ET
from datetime import date
from typing import Dict, Iterator, Optional

from pydantic import ValidationError

from app.models.rates import RateTable
from .base import MalformedFeed


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _cubes(parent: ET.Element) -> Iterator[ET.Element]:
    return (child for child in parent if _local(child.tag) == "Cube")


def _first_cube(parent: ET.Element) -> Optional[ET.Element]:
    return next(_cubes(parent), None)


def _parse_rate(currency: str, raw: str) -> float:
    try:
        rate = float(raw)
    except ValueError as e:
        raise MalformedFeed(f"rate for {currency} is not numeric: {raw!r}") from e
    if not math.isfinite(rate) or rate <= 0:
        raise MalformedFeed(f"rate for {currency} must be positive, got {raw!r}")
    return rate


def parse_feed(payload: bytes | str) -> RateTable:
    try:
        root = ET.fromstring(payload)
    except ET.ParseError as e:
        raise MalformedFeed(f"feed is not well-formed XML: {e}") from e

    if _local(root.tag) != "Envelope":
        raise MalformedFeed(f"unexpected root element <{_local(root.tag)}>")
    outer = _first_cube(root)
    daily = _first_cube(outer) if outer is not None else None
    if daily is None:
        raise MalformedFeed("feed is missing the Envelope/Cube/Cube path")

    raw_time = daily.get("time")
    if not raw_time:
        raise MalformedFeed("feed is missing the time attribute")
    try:
        as_of = date.fromisoformat(raw_time.strip())
    except ValueError as e:
        raise MalformedFeed(f"time attribute is not an ISO date: {raw_time!r}") from e

    rates: Dict[str, float] = {}
    for entry in _cubes(daily):
        currency = (entry.get("currency") or "").strip()
        raw_rate = entry.get("rate")
        if not currency or raw_rate is None:
            raise MalformedFeed("currency entry without currency/rate attributes")
        rates[currency] = _parse_rate(currency, raw_rate.strip())
    if not rates:
        raise MalformedFeed("feed contains no currency entries")

    try:
        return RateTable(rates=rates, as_of=as_of)
    except ValidationError as e:
        raise MalformedFeed(f"feed rates rejected: {e}") from e
