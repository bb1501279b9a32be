from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from app.core.config import Settings
from app.models.rates import RateTable
from app.services.http_client import HttpError
from .base import MalformedFeed, RateSource, UpstreamUnavailable
from .feed_parser import parse_feed
from .providers import make_rate_source

"""Central rate cache controller.

Purpose:
    Supply the current RateTable for a request, trading freshness against
    upstream availability. The ECB publishes once per working day, so:

    - cached table younger than the fresh window (8h) -> served as is
    - otherwise up to max_attempts fetches, fixed backoff between failures
    - all attempts failed, cache younger than the stale window (48h)
      -> cached table served with stale=True
    - otherwise UpstreamUnavailable

Design:
    - The cache entry is a frozen object replaced by a single assignment, so
      concurrent readers see either the old or the new table, never a mix.
    - The attempt loop returns a RefreshOutcome instead of raising; only
      get_rates() turns a failed outcome into UpstreamUnavailable.
    - With coalescing on, concurrent expired requests await one shared
      refresh task instead of each hitting the upstream.
    - Stale age is always measured from the last successful fetch, using the
      clock read after the retries finished.
"""

logger = logging.getLogger("app.rates.cache")

Clock = Callable[[], datetime]
Sleep = Callable[[float], Awaitable[Any]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheState(str, Enum):
    EMPTY = "empty"
    FRESH = "fresh"
    REFRESHING = "refreshing"
    STALE_FALLBACK = "stale_fallback"
    FAILED = "failed"


@dataclass(frozen=True)
class _CacheEntry:
    table: RateTable
    fetched_at: datetime


@dataclass(frozen=True)
class RefreshOutcome:
    entry: Optional[_CacheEntry]
    attempts: int
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.entry is not None


@dataclass(frozen=True)
class RatesLookup:
    table: RateTable
    fetched_at: datetime
    state: CacheState
    refreshed: bool = False

    @property
    def stale(self) -> bool:
        return self.state is CacheState.STALE_FALLBACK


class RateCacheController:
    """Owns the process-wide rate snapshot; one instance per application."""

    def __init__(
        self,
        source: RateSource,
        *,
        fresh_window: timedelta = timedelta(hours=8),
        stale_window: timedelta = timedelta(hours=48),
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        coalesce: bool = True,
        clock: Clock = _utcnow,
        sleep: Sleep = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._source = source
        self._fresh_window = fresh_window
        self._stale_window = stale_window
        self._max_attempts = max_attempts
        self._backoff = backoff_seconds
        self._coalesce = coalesce
        self._clock = clock
        self._sleep = sleep
        self._entry: Optional[_CacheEntry] = None
        self._lock = asyncio.Lock()
        self._inflight: Optional[asyncio.Future[RefreshOutcome]] = None
        self._state = CacheState.EMPTY
        self._attempt = 0
        self._last_error: Optional[str] = None

    # Internal --------------------------------------------------
    def _age(self, entry: _CacheEntry, now: datetime) -> timedelta:
        return now - entry.fetched_at

    def _is_fresh(self, entry: _CacheEntry, now: datetime) -> bool:
        return self._age(entry, now) < self._fresh_window

    async def _swap(self, entry: _CacheEntry) -> None:
        async with self._lock:
            self._entry = entry

    async def _refresh(self) -> RefreshOutcome:
        reason: Optional[str] = None
        for attempt in range(1, self._max_attempts + 1):
            self._state = CacheState.REFRESHING
            self._attempt = attempt
            try:
                payload = await self._source.fetch()
                table = parse_feed(payload)
            except Exception as e:
                # CancelledError is a BaseException and still propagates
                reason = str(e) or type(e).__name__
                logger.warning(
                    "rate fetch attempt %d/%d from %s failed: %s",
                    attempt,
                    self._max_attempts,
                    self._source.name,
                    reason,
                    exc_info=not isinstance(e, (HttpError, MalformedFeed)),
                    extra={"attempt": attempt, "source": self._source.name},
                )
                if attempt < self._max_attempts:
                    await self._sleep(self._backoff)
                continue
            entry = _CacheEntry(table=table, fetched_at=self._clock())
            await self._swap(entry)
            self._state = CacheState.FRESH
            self._last_error = None
            logger.info(
                "rates refreshed from %s (as of %s, %d currencies, attempt %d)",
                self._source.name,
                table.as_of.isoformat(),
                len(table.rates),
                attempt,
            )
            return RefreshOutcome(entry=entry, attempts=attempt)
        self._last_error = reason
        return RefreshOutcome(entry=None, attempts=self._max_attempts, reason=reason)

    def _clear_inflight(self, task: "asyncio.Future[RefreshOutcome]") -> None:
        if self._inflight is task:
            self._inflight = None

    async def _refresh_coalesced(self) -> Tuple[RefreshOutcome, bool]:
        """Run or join the shared refresh; the flag is True only for the caller that started it."""
        async with self._lock:
            entry = self._entry
            # a refresh that finished while we waited for the lock already did the work
            if entry is not None and self._is_fresh(entry, self._clock()):
                return RefreshOutcome(entry=entry, attempts=0), False
            task = self._inflight
            owner = task is None
            if task is None:
                task = asyncio.ensure_future(self._refresh())
                task.add_done_callback(self._clear_inflight)
                self._inflight = task
            else:
                logger.debug("joining in-flight rate refresh")
        return await asyncio.shield(task), owner

    # Public API -----------------------------------------------
    async def get_rates(self) -> RatesLookup:
        entry = self._entry
        if entry is not None and self._is_fresh(entry, self._clock()):
            logger.debug("serving cached rates fetched at %s", entry.fetched_at.isoformat())
            return RatesLookup(entry.table, entry.fetched_at, CacheState.FRESH)

        if self._coalesce:
            outcome, owner = await self._refresh_coalesced()
        else:
            outcome, owner = await self._refresh(), True
        if outcome.entry is not None:
            return RatesLookup(
                outcome.entry.table,
                outcome.entry.fetched_at,
                CacheState.FRESH,
                refreshed=owner and outcome.attempts > 0,
            )

        entry = self._entry
        now = self._clock()
        if entry is not None and self._is_fresh(entry, now):
            # another request refreshed while this one was retrying
            return RatesLookup(entry.table, entry.fetched_at, CacheState.FRESH)
        if entry is not None and self._age(entry, now) < self._stale_window:
            self._state = CacheState.STALE_FALLBACK
            logger.warning(
                "upstream unavailable after %d attempts, serving stale rates fetched at %s",
                outcome.attempts,
                entry.fetched_at.isoformat(),
            )
            return RatesLookup(entry.table, entry.fetched_at, CacheState.STALE_FALLBACK)

        self._state = CacheState.FAILED
        logger.error(
            "upstream unavailable after %d attempts and no usable cache: %s",
            outcome.attempts,
            outcome.reason,
        )
        raise UpstreamUnavailable(outcome.reason)

    def snapshot(self) -> Dict[str, Any]:
        """Read-only view of the cache; never touches the network."""
        entry = self._entry
        now = self._clock()
        out: Dict[str, Any] = {
            "state": self._state.value,
            "provider": self._source.name,
            "as_of": None,
            "fetched_at": None,
            "age_seconds": None,
            "fresh": False,
            "currencies": [],
            "last_error": self._last_error,
        }
        if self._state is CacheState.REFRESHING:
            out["attempt"] = self._attempt
        if entry is not None:
            out.update(
                {
                    "as_of": entry.table.as_of.isoformat(),
                    "fetched_at": entry.fetched_at.isoformat(),
                    "age_seconds": round(self._age(entry, now).total_seconds(), 3),
                    "fresh": self._is_fresh(entry, now),
                    "currencies": entry.table.currencies,
                }
            )
        return out

    def clear(self) -> None:
        self._entry = None
        self._state = CacheState.EMPTY
        self._last_error = None


def build_rate_cache_controller(
    settings: Settings, source: RateSource | None = None, **overrides: Any
) -> RateCacheController:
    """Factory wiring settings into a controller.

    ``source`` and keyword overrides (clock, sleep, ...) exist for tests and
    alternative deployments; by default the provider named in settings is used.
    """
    source = source or make_rate_source(settings.exchange_rate_provider, settings)
    kwargs: Dict[str, Any] = dict(
        fresh_window=timedelta(seconds=settings.rates_fresh_window_seconds),
        stale_window=timedelta(seconds=settings.rates_stale_window_seconds),
        max_attempts=settings.rates_max_attempts,
        backoff_seconds=settings.rates_retry_backoff_seconds,
        coalesce=settings.coalesce_refreshes,
    )
    kwargs.update(overrides)
    return RateCacheController(source, **kwargs)
