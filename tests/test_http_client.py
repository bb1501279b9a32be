import asyncio

import httpx
import pytest

from app.services.http_client import HttpError, get_bytes
from app.services.rates.cache_service import RateCacheController
from app.services.rates.providers import ECBFeedSource

from conftest import SAMPLE_FEED, FakeClock, SleepRecorder

URL = "https://feeds.example.test/eurofxref-daily.xml"


def _transport(*responses):
    """MockTransport answering with the given statuses/exceptions in order."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        item = responses[min(len(seen), len(responses)) - 1]
        if isinstance(item, Exception):
            raise item
        return httpx.Response(item, content=SAMPLE_FEED if item == 200 else b"down")

    return httpx.MockTransport(handler), seen


def test_get_bytes_returns_body():
    transport, seen = _transport(200)
    body = asyncio.run(get_bytes(URL, transport=transport))
    assert body == SAMPLE_FEED
    assert seen[0].method == "GET"
    assert str(seen[0].url) == URL


def test_non_success_status_raises():
    transport, _ = _transport(503)
    with pytest.raises(HttpError) as exc:
        asyncio.run(get_bytes(URL, transport=transport))
    assert "503" in str(exc.value)


def test_transport_failure_raises():
    transport, _ = _transport(httpx.ConnectError("connection refused"))
    with pytest.raises(HttpError) as exc:
        asyncio.run(get_bytes(URL, transport=transport))
    assert "connection refused" in str(exc.value)


def test_ecb_source_recovers_within_attempt_budget():
    transport, seen = _transport(500, httpx.ReadTimeout("timed out"), 200)
    clock = FakeClock()
    ctl = RateCacheController(
        ECBFeedSource(URL, timeout=5.0, transport=transport),
        clock=clock,
        sleep=SleepRecorder(clock),
    )
    lookup = asyncio.run(ctl.get_rates())
    assert len(seen) == 3
    assert lookup.refreshed
    assert lookup.table.rates["JPY"] == pytest.approx(160.77)
