"""
Websocket fan-out for released service requests.

Message envelopes (one JSON object per websocket frame):
- {"event": "existing-requests", "data": [<request>, ...]}  once, on connect
- {"event": "new-request", "data": <request>}               on every release
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Sequence

from collectors.service_request import ServiceRequest

EXISTING_REQUESTS = "existing-requests"
NEW_REQUEST = "new-request"


@dataclass
class _Subscriber:
    ws: Any
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class SocketHub:
    """
    BroadcastSink over FastAPI websockets.

    Keeps only the transport handle (plus a send lock) per subscriber. Sends
    are fire-and-forget: a subscriber whose send fails is dropped, and the
    failure never reaches the scheduler.

    Ordering: call connect() and then send_snapshot() with no await in
    between. The snapshot send takes the subscriber's lock first, so every
    new-request frame lands after the existing-requests frame.
    """

    def __init__(self) -> None:
        # keyed by id(ws); websocket objects are not reliably hashable
        self._subscribers: dict[int, _Subscriber] = {}
        # keep strong refs so in-flight broadcasts are not garbage collected
        self._tasks: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._subscribers)

    def connect(self, ws: Any) -> None:
        self._subscribers[id(ws)] = _Subscriber(ws)
        print(f"[HUB] subscriber connected total={len(self._subscribers)}")

    def disconnect(self, ws: Any) -> None:
        if self._subscribers.pop(id(ws), None) is not None:
            print(f"[HUB] subscriber disconnected total={len(self._subscribers)}")

    async def send_snapshot(self, subscriber: Any, requests: Sequence[ServiceRequest]) -> None:
        message = {"event": EXISTING_REQUESTS, "data": [r.to_message() for r in requests]}
        sub = self._subscribers.get(id(subscriber))
        if sub is None:
            await subscriber.send_json(message)
            return
        async with sub.lock:
            await subscriber.send_json(message)

    def broadcast_new(self, request: ServiceRequest) -> None:
        if not self._subscribers:
            return

        message = {"event": NEW_REQUEST, "data": request.to_message()}
        # recipients are fixed now; later subscribers already see this in their snapshot
        recipients = list(self._subscribers.values())
        task = asyncio.get_running_loop().create_task(self._send_all(message, recipients))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _send_all(self, message: dict, recipients: list[_Subscriber]) -> None:
        for sub in recipients:
            if self._subscribers.get(id(sub.ws)) is not sub:
                continue  # disconnected meanwhile
            try:
                async with sub.lock:
                    await sub.ws.send_json(message)
            except Exception as exc:
                print(f"[HUB][WARN] dropping subscriber after failed send: {type(exc).__name__}: {exc}")
                self.disconnect(sub.ws)

    async def flush(self) -> None:
        """Wait for in-flight broadcasts to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
