from typing import Any, Protocol, Sequence

from collectors.service_request import ServiceRequest


class BroadcastSink(Protocol):
    """
    Outbound port for released requests.

    Both calls are best-effort: no acknowledgment, no backpressure, and a
    delivery failure never propagates back to the caller.
    """

    def broadcast_new(self, request: ServiceRequest) -> None:
        ...

    async def send_snapshot(self, subscriber: Any, requests: Sequence[ServiceRequest]) -> None:
        ...
