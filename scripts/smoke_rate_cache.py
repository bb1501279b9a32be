"""Smoke script for the rate cache controller.

Demonstrates:
 1. First access triggers an upstream fetch.
 2. Subsequent access within the fresh window reuses the cached snapshot.
 3. Backdating the snapshot past the fresh window with a failing upstream
    serves stale data flagged as outdated.

NOTE: This is a lightweight diagnostic and not a formal test. Uses the bundled
static feed, so it runs offline.
"""

import asyncio
import sys
from dataclasses import replace
from datetime import timedelta
from pprint import pprint

from app.services.http_client import HttpError
from app.services.rates.cache_service import RateCacheController
from app.services.rates.conversion import format_display_date
from app.services.rates.providers import StaticFeedSource


class _FlakySource(StaticFeedSource):
    name = "flaky-static"
    failing = False

    async def fetch(self) -> bytes:  # type: ignore[override]
        if self.failing:
            raise HttpError("simulated outage")
        return await super().fetch()


async def run():
    source = _FlakySource()
    ctl = RateCacheController(source, backoff_seconds=0.05)
    out = {}

    first = await ctl.get_rates()
    out["initial"] = {"refreshed": first.refreshed, "fetched_at": first.fetched_at.isoformat()}

    second = await ctl.get_rates()
    out["second"] = {"refreshed": second.refreshed, "fetched_at": second.fetched_at.isoformat()}

    # Backdate beyond the fresh window and take the upstream down
    ctl._entry = replace(ctl._entry, fetched_at=ctl._entry.fetched_at - timedelta(hours=9))  # type: ignore[arg-type, union-attr]
    source.failing = True
    third = await ctl.get_rates()
    out["outage"] = {
        "stale": third.stale,
        "date": format_display_date(third.table.as_of, third.stale),
    }

    pprint(out)
    pprint(ctl.snapshot())


if __name__ == "__main__":
    sys.exit(asyncio.run(run()))
