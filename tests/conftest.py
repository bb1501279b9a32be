from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Sequence, Union

import pytest

from app.services.http_client import HttpError
from app.services.rates.base import RateSource
from app.services.rates.cache_service import RateCacheController

T0 = datetime(2024, 1, 15, 16, 0, tzinfo=timezone.utc)


def make_feed(rates: Dict[str, str], time: str = "2024-01-15") -> bytes:
    entries = "\n".join(
        f'      <Cube currency="{code}" rate="{rate}"/>' for code, rate in rates.items()
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<gesmes:Envelope xmlns:gesmes="http://www.gesmes.org/xml/2002-08-01" xmlns="http://www.ecb.int/vocabulary/2002-08-01/eurofxref">
  <gesmes:subject>Reference rates</gesmes:subject>
  <Cube>
    <Cube time="{time}">
{entries}
    </Cube>
  </Cube>
</gesmes:Envelope>
""".encode()


SAMPLE_FEED = make_feed({"USD": "1.0850", "JPY": "160.77", "GBP": "0.86020", "CHF": "0.9359"})

Step = Union[bytes, Exception]


class FakeSource(RateSource):
    """Replays scripted fetch results; the last step repeats once exhausted."""

    name = "fake"

    def __init__(self, steps: Sequence[Step] = (SAMPLE_FEED,), yields: int = 0):
        self.steps: List[Step] = list(steps)
        self.calls = 0
        self._offset = 0
        self._yields = yields

    def script(self, *steps: Step) -> None:
        self.steps = list(steps)
        self._offset = self.calls

    async def fetch(self) -> bytes:  # type: ignore[override]
        idx = min(self.calls - self._offset, len(self.steps) - 1)
        self.calls += 1
        for _ in range(self._yields):
            await asyncio.sleep(0)
        step = self.steps[idx]
        if isinstance(step, Exception):
            raise step
        return step


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class SleepRecorder:
    """Instant sleep that records delays and moves the fake clock forward."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        self.clock.advance(seconds=seconds)


def upstream_down(n: int = 1) -> List[Exception]:
    return [HttpError("HTTP 503 Service Unavailable for test") for _ in range(n)]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper(clock: FakeClock) -> SleepRecorder:
    return SleepRecorder(clock)


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def controller(source: FakeSource, clock: FakeClock, sleeper: SleepRecorder) -> RateCacheController:
    return RateCacheController(source, clock=clock, sleep=sleeper)
