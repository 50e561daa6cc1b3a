"""Shared fixtures for the civic-pulse test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from collectors.release_scheduler import ReleaseScheduler
from collectors.service_request import ServiceRequest

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
REFRESH = timedelta(minutes=2)
MIN_DELAY = timedelta(milliseconds=1300)


def make_raw(request_id, updated_at: datetime, **extra) -> dict:
    raw = {
        "service_request_id": request_id,
        "updated_datetime": updated_at.isoformat(),
        "service_name": "Pothole in Street",
        "status": "open",
    }
    raw.update(extra)
    return raw


def make_request(request_id, updated_at: datetime = T0, **extra) -> ServiceRequest:
    req = ServiceRequest.from_api(make_raw(request_id, updated_at, **extra))
    assert req is not None
    return req


class RecordingSink:
    """BroadcastSink that remembers what it was given."""

    def __init__(self) -> None:
        self.released: list[ServiceRequest] = []
        self.snapshots: list[tuple[object, list[ServiceRequest]]] = []

    def broadcast_new(self, request: ServiceRequest) -> None:
        self.released.append(request)

    async def send_snapshot(self, subscriber, requests) -> None:
        self.snapshots.append((subscriber, list(requests)))

    @property
    def released_ids(self) -> list[str]:
        return [r.request_id for r in self.released]


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_scheduler(sink):
    """
    Build a scheduler whose clock sits far after T0, so every planned release
    is already due and fires on the next loop iteration in arm order.
    """

    def _build(*, capacity: int = 100, clock=None, min_delay: timedelta = MIN_DELAY) -> ReleaseScheduler:
        return ReleaseScheduler(
            sink,
            refresh_interval=REFRESH,
            min_delay=min_delay,
            cache_capacity=capacity,
            clock=clock or (lambda: T0 + timedelta(days=1)),
        )

    return _build
