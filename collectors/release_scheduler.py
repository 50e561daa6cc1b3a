"""
Paced release of updated service requests.

Takes bursts of updated requests (already sorted by updated_at), spreads them
out so no two releases are closer than `min_delay`, and never releases a
request before `updated_at + refresh_interval` (the moment the next poll would
have found it anyway). Each release refreshes the recency cache and is handed
to the broadcast sink.

Concurrency model:
- Everything runs on one asyncio event loop.
- Timers are plain loop.call_later handles; their callbacks are synchronous,
  so a release can never interleave with a scheduling pass or with another
  release. No locks are needed for previous_release or the cache.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional

from broadcast.sink import BroadcastSink
from collectors.recent_requests import RecentRequests
from collectors.service_request import ServiceRequest

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


class ReleaseScheduler:
    """
    Owns the release clock and the recency cache.

    Responsibilities:
    - Compute a monotonically increasing release instant per request
    - Arm one independent timer per request, eagerly and in order
    - On fire: dedup into the cache, evict the tail, broadcast

    Non-responsibilities:
    - Fetching, filtering or sorting (see IngestionService)
    - Subscriber bookkeeping (see SocketHub)
    """

    def __init__(
        self,
        sink: BroadcastSink,
        *,
        refresh_interval: timedelta,
        min_delay: timedelta,
        cache_capacity: int,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.sink = sink
        self.refresh_interval = refresh_interval
        self.min_delay = min_delay
        self.clock = clock

        # Instant most recently *scheduled*, across all batches
        self.previous_release: datetime = EPOCH

        self._cache = RecentRequests(cache_capacity)

        # Armed-but-not-fired timers, keyed by arm sequence
        self._pending: dict[int, asyncio.TimerHandle] = {}
        self._seq = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._closed = False

    # -------------------------
    # Read side
    # -------------------------
    def snapshot(self) -> list[ServiceRequest]:
        """Recently released requests, newest first (for new subscribers)."""
        return self._cache.snapshot()

    @property
    def pending(self) -> int:
        """Number of armed timers that have not fired yet."""
        return len(self._pending)

    # -------------------------
    # Scheduling
    # -------------------------
    def plan(self, requests: Iterable[ServiceRequest]) -> list[datetime]:
        """
        Assign release instants and advance previous_release.

        For each request, in order:
            natural     = updated_at + refresh_interval
            min_allowed = previous_release + min_delay
            release_at  = max(natural, min_allowed)

        Spacing is global: the next request (in this batch or a later one) is
        paced relative to the last instant assigned here.
        """
        instants: list[datetime] = []

        for req in requests:
            natural = req.updated_at + self.refresh_interval
            min_allowed = self.previous_release + self.min_delay
            release_at = max(natural, min_allowed)

            # save the release time for the next request
            self.previous_release = release_at
            instants.append(release_at)

        return instants

    def schedule(self, requests: Iterable[ServiceRequest]) -> list[datetime]:
        """
        Plan the batch, then arm one timer per request without waiting on any.

        Must be called from inside the running event loop. An empty batch arms
        nothing and leaves previous_release untouched.
        """
        if self._closed:
            raise RuntimeError("scheduler is closed")

        requests = list(requests)
        instants = self.plan(requests)
        if not requests:
            return instants

        loop = asyncio.get_running_loop()
        now = self.clock()

        for req, release_at in zip(requests, instants):
            # past-due releases collapse to "now"
            delay = max(0.0, (release_at - now).total_seconds())

            self._seq += 1
            key = self._seq
            self._pending[key] = loop.call_later(delay, self._fire, key, req)

            print(
                f"[SCHEDULER] planned request={req.request_id} "
                f"updated_at={req.updated_at.isoformat()} release_at={release_at.isoformat()} "
                f"in={delay:.1f}s"
            )

        self._idle.clear()
        return instants

    # -------------------------
    # Release
    # -------------------------
    def _fire(self, key: int, req: ServiceRequest) -> None:
        self._pending.pop(key, None)
        try:
            self._release(req)
        finally:
            if not self._pending:
                self._idle.set()

    def _release(self, req: ServiceRequest) -> None:
        """
        Release one request: refresh it at the front of the cache, trim the
        cache to capacity, then hand it to the sink.
        """
        evicted = self._cache.admit(req)

        print(
            f"[SCHEDULER] released request={req.request_id} at={self.clock().isoformat()} "
            f"cached={len(self._cache)}"
            + (f" evicted={evicted.request_id}" if evicted is not None else "")
        )

        self.sink.broadcast_new(req)

    # -------------------------
    # Lifecycle
    # -------------------------
    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait until every armed timer has fired."""
        await asyncio.wait_for(self._idle.wait(), timeout)

    def close(self) -> int:
        """
        Cancel timers that have not fired yet and refuse further scheduling.

        Returns the number of cancelled timers.
        """
        self._closed = True
        cancelled = len(self._pending)
        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()
        self._idle.set()

        if cancelled:
            print(f"[SCHEDULER] shutdown cancelled={cancelled} pending releases")
        return cancelled
