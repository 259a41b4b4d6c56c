"""
CoinGecko Client
Spot price and daily price history for a coin.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from app.domain.errors import UpstreamFetchError

logger = logging.getLogger(__name__)


class CoinGeckoClient:
    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def _get_json(self, path: str, params: Dict[str, Any]) -> Any:
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.get(
                    f"{self.base_url}{path}",
                    params=params,
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as exc:
            raise UpstreamFetchError(f"CoinGecko {path} request failed: {exc}", source="coingecko") from exc
        except ValueError as exc:
            raise UpstreamFetchError(f"CoinGecko {path} returned invalid JSON", source="coingecko") from exc

    async def get_price(self, coin_id: str, vs_currency: str) -> float:
        data = await self._get_json(
            "/simple/price",
            {"ids": coin_id, "vs_currencies": vs_currency},
        )
        price = (data or {}).get(coin_id, {}).get(vs_currency)
        if not price:
            raise UpstreamFetchError(f"CoinGecko returned no {coin_id} price", source="coingecko")
        return float(price)

    async def get_price_history(self, coin_id: str, vs_currency: str, days: int) -> List[float]:
        """Daily closes, oldest first"""
        data = await self._get_json(
            f"/coins/{coin_id}/market_chart",
            {"vs_currency": vs_currency, "days": days, "interval": "daily"},
        )
        prices = (data or {}).get("prices") or []
        return [float(point[1]) for point in prices if len(point) >= 2]
