# -------------------------
# Known Open311 GeoReport v2 endpoints
# -------------------------
# Keyed by the short city name used in PULSE_OPEN311_CITY. An explicit
# PULSE_OPEN311_ENDPOINT always wins over this table.

OPEN311_CITIES = {
    "chicago": {
        "endpoint": "http://311api.cityofchicago.org/open311/v2/",
        "jurisdiction": "cityofchicago.org",
        "format": "json",
    },
}


def resolve_endpoint(city: str, endpoint: str = "", jurisdiction: str = "") -> tuple[str, str]:
    """
    Return (endpoint, jurisdiction) for a configured city.

    An explicit endpoint overrides the table; in that case the jurisdiction is
    whatever was passed in (possibly empty).
    """
    if endpoint:
        return endpoint, jurisdiction

    entry = OPEN311_CITIES.get(city.lower())
    if entry is None:
        known = ", ".join(sorted(OPEN311_CITIES))
        raise ValueError(f"unknown Open311 city {city!r} (known: {known}); set PULSE_OPEN311_ENDPOINT")

    return entry["endpoint"], jurisdiction or entry["jurisdiction"]
