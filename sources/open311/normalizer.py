from collectors.service_request import ServiceRequest


def normalize_requests(raw_requests: list) -> tuple[list[ServiceRequest], int]:
    """
    Turn a raw /requests.json batch into an ordered list of ServiceRequests.

    Responsibilities:
    - Drop records without a service_request_id (or a usable updated_datetime)
    - Sort the survivors ascending by updated_at (stable for equal timestamps)

    Non-responsibilities:
    - Deduplication across batches (the recency cache does that at release)
    - Interpreting any other field; the payload is passed through verbatim

    Returns (requests, dropped_count).
    """
    requests: list[ServiceRequest] = []
    dropped = 0

    for d in raw_requests:
        req = ServiceRequest.from_api(d)
        if req is None:
            dropped += 1
            continue
        requests.append(req)

    requests.sort(key=lambda r: r.updated_at)
    return requests, dropped
