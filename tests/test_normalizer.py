from datetime import datetime, timedelta, timezone

from collectors.service_request import ServiceRequest, parse_timestamp
from conftest import T0, make_raw
from sources.open311.normalizer import normalize_requests


def test_from_api_keeps_raw_payload_verbatim():
    raw = make_raw(12345, T0, extended_attributes={"ward": 7})
    req = ServiceRequest.from_api(raw)

    assert req.request_id == "12345"
    assert req.updated_at == T0
    assert req.raw is raw
    assert req.to_message()["extended_attributes"] == {"ward": 7}


def test_from_api_rejects_missing_identifier():
    assert ServiceRequest.from_api({"updated_datetime": T0.isoformat()}) is None
    assert ServiceRequest.from_api({"service_request_id": None, "updated_datetime": T0.isoformat()}) is None


def test_parse_timestamp_normalizes_offsets_to_utc():
    assert parse_timestamp("2024-05-01T07:00:00-05:00") == T0
    assert parse_timestamp("2024-05-01T12:00:00Z") == T0
    assert parse_timestamp("2024-05-01T12:00:00") == T0
    assert parse_timestamp(datetime(2024, 5, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))) == T0
    assert parse_timestamp("not a date") is None
    assert parse_timestamp(None) is None


def test_normalize_sorts_by_updated_at_and_counts_drops():
    raw = [
        make_raw("c", T0 + timedelta(minutes=2)),
        {"service_request_id": "x"},
        make_raw("a", T0),
        "garbage",
        make_raw("b", T0 + timedelta(minutes=1)),
    ]

    requests, dropped = normalize_requests(raw)

    assert [r.request_id for r in requests] == ["a", "b", "c"]
    assert dropped == 2


def test_normalize_is_stable_for_equal_timestamps():
    raw = [make_raw(i, T0) for i in ("z", "y", "x")]

    requests, _ = normalize_requests(raw)

    assert [r.request_id for r in requests] == ["z", "y", "x"]


def test_integer_and_string_ids_share_one_cache_key():
    as_int = ServiceRequest.from_api(make_raw(17, T0))
    as_str = ServiceRequest.from_api(make_raw("17", T0))

    assert as_int.request_id == as_str.request_id == "17"
    assert as_int == as_str
    # payload keeps the upstream type
    assert as_int.raw["service_request_id"] == 17
