from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an Open311 timestamp into an aware UTC datetime.

    Accepts ISO-8601 strings (with "Z" or an explicit offset) and datetimes.
    Naive values are assumed to be UTC. Returns None when the value cannot be
    interpreted.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class ServiceRequest:
    """
    One updated civic service request as released to subscribers.

    Only the two fields the pacing pipeline needs are typed:
    - request_id  -> stable identifier (dedup key for the recency cache)
    - updated_at  -> source-side update time (ordering + natural release time)

    Everything else lives untouched in `raw`, which is what gets broadcast.
    """

    request_id: str
    updated_at: datetime
    raw: Dict[str, Any] = field(compare=False, repr=False)

    @classmethod
    def from_api(cls, d: Dict[str, Any]) -> Optional[ServiceRequest]:
        """
        Construct a ServiceRequest from one element of an Open311
        /requests.json response.

        Expected fields:
        - d["service_request_id"] -> identifier (string or integer)
        - d["updated_datetime"]   -> ISO-8601 update timestamp

        The identifier is normalized with str(), so an integer 1 and a string
        "1" name the same request. A single endpoint always uses one type.

        Returns None for records missing either; callers drop those.
        """
        if not isinstance(d, dict):
            return None

        rid = d.get("service_request_id")
        if rid is None or rid == "":
            return None

        updated_at = parse_timestamp(d.get("updated_datetime"))
        if updated_at is None:
            return None

        return cls(request_id=str(rid), updated_at=updated_at, raw=d)

    def to_message(self) -> Dict[str, Any]:
        """Payload sent to subscribers: the upstream record, verbatim."""
        return self.raw
