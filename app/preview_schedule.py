"""
Release-plan diagnostic harness.

Fetches the last N minutes of updates once and prints when each request would
be released. Nothing is broadcast and no timers are armed.
"""

import argparse
import asyncio
from datetime import timedelta

from collectors.release_scheduler import ReleaseScheduler, now_utc
from config.open311_cities import resolve_endpoint
from config.settings import settings
from sources.open311.client import Open311Client
from sources.open311.normalizer import normalize_requests


class _NoSink:
    def broadcast_new(self, request):
        pass

    async def send_snapshot(self, subscriber, requests):
        pass


async def preview(lookback_minutes: float) -> None:
    endpoint, jurisdiction = resolve_endpoint(
        settings.OPEN311_CITY, settings.OPEN311_ENDPOINT, settings.OPEN311_JURISDICTION
    )
    client = Open311Client(
        endpoint,
        jurisdiction=jurisdiction,
        api_key=settings.OPEN311_API_KEY,
        timeout=settings.HTTP_TIMEOUT,
    )

    try:
        since = now_utc() - timedelta(minutes=lookback_minutes)
        data = await client.fetch_updates(since, settings.INCLUDE_EXTENSIONS)
    finally:
        await client.aclose()

    requests, dropped = normalize_requests(data)
    print(f"[*] fetched={len(data)} usable={len(requests)} dropped={dropped} since={since.isoformat()}")

    scheduler = ReleaseScheduler(
        _NoSink(),
        refresh_interval=timedelta(minutes=settings.REFRESH_MINUTES),
        min_delay=timedelta(milliseconds=settings.MIN_DELAY_MS),
        cache_capacity=settings.CACHE_CAPACITY,
    )
    now = now_utc()

    for req, release_at in zip(requests, scheduler.plan(requests)):
        wait = max(0.0, (release_at - now).total_seconds())
        print(f"{req.request_id:<14} updated={req.updated_at:%H:%M:%S}  release={release_at:%H:%M:%S.%f}  in={wait:>7.1f}s")

    print('\n---------\n')
    if requests:
        print(f"last release at {scheduler.previous_release.isoformat()}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Preview the release plan for recent Open311 updates")
    parser.add_argument("--lookback", type=float, default=settings.INITIAL_LOOKBACK_MINUTES,
                        help="Minutes of history to fetch (default: initial lookback).")
    args = parser.parse_args()

    asyncio.run(preview(args.lookback))
