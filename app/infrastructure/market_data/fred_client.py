"""
FRED Client
Thin async wrapper over the St. Louis Fed series/observations API.
"""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from app.domain.errors import UpstreamFetchError

logger = logging.getLogger(__name__)

MISSING_VALUE = "."


class FredClient:
    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = (api_key or "").strip() or None
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return self.api_key is not None

    async def get_observations(self, series_id: str, limit: int = 1) -> List[float]:
        """
        Latest observations for a series, newest first.

        Missing values (".") are skipped, so the list may be shorter than limit.
        """
        if not self.enabled:
            raise UpstreamFetchError("FRED_API_KEY not set", source="fred")

        params = {
            "series_id": series_id,
            "api_key": self.api_key,
            "file_type": "json",
            "sort_order": "desc",
            "limit": limit,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.get(f"{self.base_url}/series/observations", params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(f"FRED {series_id} request failed: {exc}", source="fred") from exc
        except ValueError as exc:
            raise UpstreamFetchError(f"FRED {series_id} returned invalid JSON", source="fred") from exc

        values: List[float] = []
        for obs in payload.get("observations", []):
            raw = obs.get("value")
            if raw in (None, MISSING_VALUE):
                continue
            try:
                values.append(float(raw))
            except (TypeError, ValueError):
                logger.debug(f"FRED {series_id}: skipping unparsable value {raw!r}")
        return values
