"""
Open311 GeoReport v2 client.
Provides the "fetch updates since T" port used by ingestion.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import httpx


TIMEOUT = 10.0


class Open311Error(RuntimeError):
    """Raised when the upstream request fails or returns an unusable body."""

    def __init__(self, message: str, *, url: str, status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status


class Open311Client:
    """
    Thin async wrapper around one Open311 endpoint.

    Focused on a single call:
    - GET {endpoint}/requests.json filtered by updated_after
    """

    def __init__(
        self,
        endpoint: str,
        *,
        jurisdiction: str = "",
        api_key: str = "",
        timeout: float = TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = endpoint.rstrip("/")
        self.jurisdiction = jurisdiction
        self.api_key = api_key
        self.http = httpx.AsyncClient(
            timeout=timeout,
            headers={"accept": "application/json"},
            transport=transport,
        )

    # -------------------------
    # Low-level request helper
    # -------------------------
    async def _get(self, path: str, params: dict | None = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        params = dict(params or {})
        if self.jurisdiction:
            params["jurisdiction_id"] = self.jurisdiction
        if self.api_key:
            params["api_key"] = self.api_key

        try:
            resp = await self.http.get(url, params=params)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise Open311Error(
                f"Open311 request failed [{status}] for URL: {url}", url=url, status=status
            ) from exc
        except httpx.HTTPError as exc:
            raise Open311Error(
                f"Open311 request failed [{type(exc).__name__}] for URL: {url}", url=url
            ) from exc

        try:
            return resp.json()
        except ValueError as exc:
            raise Open311Error(
                f"Open311 returned invalid JSON for URL: {url}", url=url, status=resp.status_code
            ) from exc

    # -------------------------
    # Service requests
    # -------------------------
    async def service_requests(self, params: dict) -> list[dict]:
        """Return raw service request dicts for arbitrary GeoReport filters."""
        url = f"{self.base_url}/requests.json"
        payload = await self._get("requests.json", params=params)
        if not isinstance(payload, list):
            raise Open311Error(
                f"Open311 returned {type(payload).__name__}, expected a list, for URL: {url}", url=url
            )
        return payload

    async def fetch_updates(self, since: datetime, include_extensions: bool = True) -> list[dict]:
        """
        Fetch every request updated after `since`.

        Raises Open311Error on transport, status, or decode failures.
        """
        if since.tzinfo is None:
            since = since.replace(tzinfo=timezone.utc)

        params = {"updated_after": since.isoformat()}
        if include_extensions:
            params["extensions"] = "true"

        return await self.service_requests(params)

    async def aclose(self) -> None:
        await self.http.aclose()
