"""
Macro Input Provider
Fan out FRED + CoinGecko requests and assemble a complete MacroInputs snapshot.

Every field of the snapshot is either live, derived from live series, or a
documented fallback constant from app.yml; `sources` says which.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Dict, List, Mapping, Optional, Tuple

from app.domain.errors import UpstreamFetchError
from app.domain.indicators import statistics, trend
from app.domain.models import MacroInputs
from app.infrastructure.market_data.coingecko_client import CoinGeckoClient
from app.infrastructure.market_data.fred_client import FredClient
from app.utils.time import utc_now

logger = logging.getLogger(__name__)

SOURCE_MOCK = "mock"
SOURCE_FALLBACK = "fallback"
SOURCE_DERIVED = "derived"


@dataclass(frozen=True)
class MacroInputsSnapshot:
    """MacroInputs plus provenance"""
    inputs: MacroInputs
    used_mock_data: bool
    sources: Dict[str, str]
    fetched_at: datetime

    @property
    def fallback_fields(self) -> List[str]:
        return sorted(k for k, v in self.sources.items() if v == SOURCE_FALLBACK)


class MacroInputProvider:
    """
    Live macro data with per-field fallbacks and a last-known-good snapshot.
    Constructed once at startup and stored on app.state.
    """

    def __init__(
        self,
        fred: FredClient,
        coingecko: CoinGeckoClient,
        macro_config: Mapping[str, Any],
        use_mock: bool = False,
    ):
        self.fred = fred
        self.coingecko = coingecko
        self._fred_cfg = macro_config["fred"]
        self._btc_cfg = macro_config["coingecko"]
        self._derive = macro_config["derivations"]
        self._fallbacks = macro_config["fallbacks"]
        self._mock = macro_config["mock_inputs"]
        self.use_mock = use_mock
        self._last_good: Optional[MacroInputsSnapshot] = None

    @property
    def last_known_good(self) -> Optional[MacroInputsSnapshot]:
        return self._last_good

    def get_mock_macro_inputs(self) -> MacroInputs:
        """Deterministic Risk-Off fixture"""
        return MacroInputs.from_mapping(self._mock)

    def mock_snapshot(self) -> MacroInputsSnapshot:
        inputs = self.get_mock_macro_inputs()
        return MacroInputsSnapshot(
            inputs=inputs,
            used_mock_data=True,
            sources={name: SOURCE_MOCK for name in self._mock},
            fetched_at=utc_now(),
        )

    async def fetch_macro_inputs(self) -> MacroInputsSnapshot:
        """
        Fetch all sources in parallel

        Raises:
            UpstreamFetchError: when no live source returned anything usable
        """
        if self.use_mock:
            return self.mock_snapshot()

        series = dict(self._fred_cfg["series"])
        derived = self._fred_cfg["derived"]
        cpi_limit = 16
        hy_limit = int(self._derive["credit_trend_lookback_obs"]) + 1
        eq_limit = int(self._derive["equity_momentum_lookback_obs"]) + 1

        jobs: Dict[str, Awaitable[Any]] = {"btc": self._fetch_bitcoin()}
        for field, series_id in series.items():
            limit = hy_limit if field == "hy_oas" else 5
            jobs[field] = self.fred.get_observations(series_id, limit=limit)
        jobs["cpi"] = self.fred.get_observations(derived["cpi"], limit=cpi_limit)
        jobs["m2"] = self.fred.get_observations(derived["m2"], limit=13)
        jobs["real_gdp"] = self.fred.get_observations(derived["real_gdp"], limit=5)
        jobs["equity_index"] = self.fred.get_observations(derived["equity_index"], limit=eq_limit)

        logger.info(f"📡 Fetching macro data ({len(jobs)} requests)")
        results = await asyncio.gather(*jobs.values(), return_exceptions=True)
        raw: Dict[str, Any] = {}
        for key, result in zip(jobs.keys(), results):
            if isinstance(result, Exception):
                logger.warning(f"⚠️ Macro source {key} unavailable: {result}")
                continue
            if result:
                raw[key] = result

        if not raw:
            raise UpstreamFetchError("All macro data sources failed")

        values, sources = self._assemble(raw, series)
        inputs = MacroInputs.from_mapping(values)
        snapshot = MacroInputsSnapshot(
            inputs=inputs,
            used_mock_data=False,
            sources=sources,
            fetched_at=utc_now(),
        )
        self._last_good = snapshot

        if snapshot.fallback_fields:
            logger.info(f"ℹ️ Macro fallbacks used for: {', '.join(snapshot.fallback_fields)}")
        logger.info(
            f"✅ Macro inputs fetched: btc={inputs.btc_price:.0f} "
            f"200dma={inputs.btc_200dma:.0f} hyOAS={inputs.hy_oas:.0f}bp "
            f"10y={inputs.nominal_rate_10y:.2f}"
        )
        return snapshot

    async def refresh(self) -> Optional[MacroInputsSnapshot]:
        """Scheduled refresh; keeps the previous snapshot when every source fails"""
        try:
            return await self.fetch_macro_inputs()
        except UpstreamFetchError as exc:
            logger.warning(f"⚠️ Macro refresh failed, keeping last known good: {exc}")
            return self._last_good

    # ------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------

    def _assemble(
        self,
        raw: Mapping[str, Any],
        series: Mapping[str, str],
    ) -> Tuple[Dict[str, Any], Dict[str, str]]:
        values: Dict[str, Any] = {}
        sources: Dict[str, str] = {}
        to_bp = set(self._fred_cfg.get("percent_to_bp", []))

        def put(field: str, value: Any, source: str) -> None:
            values[field] = value
            sources[field] = source

        for field, series_id in series.items():
            if field in raw:
                latest = raw[field][0]
                put(field, latest * 100 if field in to_bp else latest, f"fred:{series_id}")

        btc = raw.get("btc")
        if btc is not None:
            price, ma_200 = btc
            put("btc_price", price, "coingecko")
            put("btc_200dma", ma_200, "coingecko")
            put("btc_trend", "bullish" if price > ma_200 else "bearish", SOURCE_DERIVED)

        cpi = raw.get("cpi")
        if cpi is not None:
            inflation, inflation_trend = self._inflation(cpi)
            if inflation is not None:
                put("inflation", round(inflation, 2), SOURCE_DERIVED)
            if inflation_trend is not None:
                put("inflation_trend", inflation_trend, SOURCE_DERIVED)

        if "hy_oas" in raw:
            credit_trend = self._credit_trend(raw["hy_oas"], "hy_oas" in to_bp)
            if credit_trend is not None:
                put("credit_trend", credit_trend, SOURCE_DERIVED)

        gdp = raw.get("real_gdp")
        if gdp is not None:
            growth = statistics.pct_change(list(reversed(gdp)), 4)
            if growth is not None:
                put("gdp_growth", round(growth, 2), SOURCE_DERIVED)

        equity = raw.get("equity_index")
        if equity is not None:
            lookback = int(self._derive["equity_momentum_lookback_obs"])
            mom = statistics.pct_change(list(reversed(equity)), lookback)
            if mom is not None:
                put("equity_momentum", round(mom, 2), SOURCE_DERIVED)

        m2 = raw.get("m2")
        if m2 is not None:
            m2_growth = statistics.pct_change(list(reversed(m2)), 12)
            if m2_growth is not None:
                spread = values.get("hy_oas", self._fallbacks["hy_oas"])
                put("liquidity_score", round(self.liquidity_score(m2_growth, spread), 1), SOURCE_DERIVED)

        for field, fallback in self._fallbacks.items():
            if field not in values:
                put(field, fallback, SOURCE_FALLBACK)

        return values, sources

    async def _fetch_bitcoin(self) -> Tuple[float, float]:
        cfg = self._btc_cfg
        price = await self.coingecko.get_price(cfg["coin_id"], cfg["vs_currency"])
        try:
            history = await self.coingecko.get_price_history(
                cfg["coin_id"], cfg["vs_currency"], int(cfg["history_days"]),
            )
        except UpstreamFetchError as exc:
            logger.warning(f"⚠️ BTC history unavailable, estimating 200D MA: {exc}")
            history = []

        window = int(cfg["history_days"])
        if len(history) < int(cfg["min_history_points"]):
            return price, price * float(cfg["fallback_ma_ratio"])
        ma_200 = trend.moving_average(history, min(window, len(history)))
        return price, ma_200

    def _inflation(self, cpi_newest_first: List[float]) -> Tuple[Optional[float], Optional[str]]:
        cpi = list(reversed(cpi_newest_first))
        current = statistics.pct_change(cpi, 12)
        earlier = statistics.pct_change(cpi[:-3], 12) if len(cpi) > 3 else None
        if current is None:
            return None, None
        if earlier is None:
            return current, None
        delta = current - earlier
        threshold = float(self._derive["inflation_trend_delta"])
        if delta > threshold:
            return current, "rising"
        if delta < -threshold:
            return current, "falling"
        return current, "stable"

    def _credit_trend(self, hy_newest_first: List[float], in_percent: bool) -> Optional[str]:
        lookback = int(self._derive["credit_trend_lookback_obs"])
        moved = statistics.change(list(reversed(hy_newest_first)), lookback)
        if moved is None:
            return None
        moved_bp = moved * 100 if in_percent else moved
        threshold = float(self._derive["credit_trend_delta_bp"])
        if moved_bp > threshold:
            return "widening"
        if moved_bp < -threshold:
            return "tightening"
        return "stable"

    def liquidity_score(self, m2_growth_yoy: float, hy_oas_bp: float) -> float:
        """
        0-100 liquidity heuristic: base plus scaled M2 growth,
        plus or minus a fixed amount for tight or wide credit spreads
        """
        cfg = self._derive["liquidity"]
        score = float(cfg["base"]) + m2_growth_yoy / float(cfg["m2_growth_scale"]) * float(cfg["m2_points"])
        if hy_oas_bp < float(cfg["tight_spread_bp"]):
            score += float(cfg["spread_points"])
        elif hy_oas_bp > float(cfg["wide_spread_bp"]):
            score -= float(cfg["spread_points"])
        return max(0.0, min(100.0, score))
