from collections import OrderedDict

from collectors.service_request import ServiceRequest


class RecentRequests:
    """
    Bounded recency cache of released service requests.

    Keyed by request_id, ordered newest-released-first.

    Invariants:
    - len(self) <= capacity
    - at most one entry per request_id
    - re-admitting a known id moves it to the front with the new payload
      (refresh, not append)

    Only ReleaseScheduler holds a mutable reference; everyone else reads
    through snapshot().
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        # front of the OrderedDict == newest
        self._entries: "OrderedDict[str, ServiceRequest]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, request_id: str) -> bool:
        return request_id in self._entries

    def admit(self, request: ServiceRequest) -> ServiceRequest | None:
        """
        Put a just-released request at the front.

        Returns the entry evicted from the tail to stay within capacity, if any.
        """
        # If it already exists, remove it
        self._entries.pop(request.request_id, None)

        self._entries[request.request_id] = request
        self._entries.move_to_end(request.request_id, last=False)

        if len(self._entries) > self.capacity:
            _, evicted = self._entries.popitem(last=True)
            return evicted
        return None

    def snapshot(self) -> list[ServiceRequest]:
        """Current contents, newest first."""
        return list(self._entries.values())
