# collectors/ingestion_service.py

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from collectors.release_scheduler import ReleaseScheduler, now_utc
from sources.open311.normalizer import normalize_requests

FetchUpdates = Callable[[datetime, bool], Awaitable[list]]


@dataclass
class IngestionService:
    """
    Periodically fetches updated service requests and hands them to the
    release scheduler.

    Owns the watermark ("fetched everything updated up to here"). The watermark
    moves to wall-clock now as soon as the fetch is issued, not when it
    completes and not to the newest record's timestamp. Some overlap between
    cycles is accepted; the recency cache dedups it at release time.
    """
    fetch_updates: FetchUpdates
    scheduler: ReleaseScheduler
    refresh_interval: timedelta
    initial_lookback: timedelta = timedelta(minutes=60)
    include_extensions: bool = True
    clock: Callable[[], datetime] = now_utc
    watermark: Optional[datetime] = field(default=None)

    def __post_init__(self) -> None:
        if self.watermark is None:
            self.watermark = self.clock() - self.initial_lookback

    async def ingest(self, since: Optional[datetime] = None) -> int:
        """
        Run one ingestion cycle.

        Returns the number of requests handed to the scheduler (0 on fetch
        failure or an empty batch). Fetch errors are logged, never raised.
        """
        since = self.watermark if since is None else since

        fetch = asyncio.ensure_future(self.fetch_updates(since, self.include_extensions))

        # Update when we last updated
        self.watermark = self.clock()

        try:
            data = await fetch
        except Exception as exc:
            print(f"[INGEST][WARN] fetch failed since={since.isoformat()}: {type(exc).__name__}: {exc}")
            return 0

        print(f"[INGEST] retrieved={len(data)} since={since.isoformat()} watermark={self.watermark.isoformat()}")

        if not data:
            return 0

        requests, dropped = normalize_requests(data)
        if dropped:
            print(f"[INGEST] dropped={dropped} malformed requests")

        if not requests:
            return 0

        self.scheduler.schedule(requests)
        return len(requests)

    async def run_forever(self) -> None:
        """
        Ingest once immediately, then once every refresh_interval.

        A failing cycle never kills the loop; the next tick is the retry.
        """
        interval = self.refresh_interval.total_seconds()

        while True:
            start = time.monotonic()
            try:
                await self.ingest()
            except Exception as exc:
                # ingestion should never kill the process because one cycle hiccuped
                print(f"[INGEST][WARN] cycle failed: {type(exc).__name__}: {exc}")

            elapsed = time.monotonic() - start
            sleep_for = max(1.0, interval - elapsed)
            await asyncio.sleep(sleep_for)
