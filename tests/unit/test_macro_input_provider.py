"""
Unit Tests for MacroInputProvider
FRED and CoinGecko are served from an httpx.MockTransport
"""

import httpx
import pytest

from app.domain.errors import UpstreamFetchError
from app.domain.models import BtcTrend, CreditTrend, InflationTrend
from app.infrastructure.market_data.coingecko_client import CoinGeckoClient
from app.infrastructure.market_data.fred_client import FredClient
from app.services.macro_input_provider import MacroInputProvider

# oldest -> newest; the fake API serves them newest first like FRED does
CPI = [100, 100, 100, 100, 101, 101, 101, 101, 102, 102, 102, 102, 103, 103, 103, 103]
FRED_SERIES = {
    "DGS10": [4.3, 4.2],
    "DFII10": [1.9],
    "BAMLH0A0HYM2": [3.5] + [3.5] * 39 + [3.0],
    "BAMLC0A0CM": [1.1],
    "UNRATE": [4.0],
    "DCOILWTICO": [".", 80.5],
    "VIXCLS": [18.0],
    "CPIAUCSL": list(reversed(CPI)),
    "M2SL": [21000] + [20500] * 11 + [20000],
    "GDPC1": [20500, 20400, 20300, 20100, 20000],
    "SP500": [4400] + [4200] * 125 + [4000],
}


class FakeUpstreams:
    def __init__(self, btc_history_points: int = 200):
        self.online = True
        self.btc_online = True
        self.btc_history_points = btc_history_points
        self.requests = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests += 1
        if not self.online:
            return httpx.Response(503)
        if request.url.host == "fred.test":
            values = FRED_SERIES.get(request.url.params["series_id"])
            if values is None:
                return httpx.Response(500)
            limit = int(request.url.params["limit"])
            observations = [{"date": "2026-10-01", "value": str(v)} for v in values[:limit]]
            return httpx.Response(200, json={"observations": observations})
        if not self.btc_online:
            return httpx.Response(503)
        if request.url.path.endswith("/simple/price"):
            return httpx.Response(200, json={"bitcoin": {"usd": 60000}})
        if request.url.path.endswith("/market_chart"):
            prices = [[i * 86400000, 50000.0] for i in range(self.btc_history_points)]
            return httpx.Response(200, json={"prices": prices})
        return httpx.Response(404)


def build_provider(config_engine, upstreams: FakeUpstreams, use_mock: bool = False) -> MacroInputProvider:
    transport = httpx.MockTransport(upstreams)
    return MacroInputProvider(
        fred=FredClient(base_url="https://fred.test", api_key="test-key", transport=transport),
        coingecko=CoinGeckoClient(base_url="https://coingecko.test/api/v3", transport=transport),
        macro_config=config_engine.get_app_setting("macro_data"),
        use_mock=use_mock,
    )


async def test_fetch_assembles_live_derived_and_fallback_fields(config_engine):
    provider = build_provider(config_engine, FakeUpstreams())
    snapshot = await provider.fetch_macro_inputs()
    inputs = snapshot.inputs

    assert snapshot.used_mock_data is False
    assert inputs.nominal_rate_10y == pytest.approx(4.3)
    assert inputs.hy_oas == pytest.approx(350)
    assert inputs.ig_oas == pytest.approx(110)
    assert inputs.oil_price == pytest.approx(80.5)
    assert inputs.btc_price == pytest.approx(60000)
    assert inputs.btc_200dma == pytest.approx(50000)
    assert inputs.btc_trend is BtcTrend.BULLISH
    assert inputs.inflation == pytest.approx(3.0)
    assert inputs.inflation_trend is InflationTrend.STABLE
    assert inputs.credit_trend is CreditTrend.WIDENING
    assert inputs.gdp_growth == pytest.approx(2.5)
    assert inputs.equity_momentum == pytest.approx(10.0)
    assert inputs.liquidity_score == pytest.approx(57.5)

    assert snapshot.sources["nominal_rate_10y"] == "fred:DGS10"
    assert snapshot.sources["btc_price"] == "coingecko"
    assert snapshot.sources["btc_trend"] == "derived"
    assert set(snapshot.fallback_fields) == {"gold_price", "pmi", "usd_strength"}
    assert inputs.gold_price == pytest.approx(2050)
    assert provider.last_known_good is snapshot


async def test_short_btc_history_estimates_the_average(config_engine):
    provider = build_provider(config_engine, FakeUpstreams(btc_history_points=10))
    snapshot = await provider.fetch_macro_inputs()
    assert snapshot.inputs.btc_200dma == pytest.approx(60000 * 0.85)


async def test_bitcoin_fallbacks_agree_with_trend(config_engine):
    upstreams = FakeUpstreams()
    upstreams.btc_online = False
    snapshot = await build_provider(config_engine, upstreams).fetch_macro_inputs()
    inputs = snapshot.inputs

    assert {"btc_price", "btc_200dma", "btc_trend"} <= set(snapshot.fallback_fields)
    assert inputs.btc_trend is BtcTrend.BEARISH
    assert inputs.btc_price < inputs.btc_200dma


async def test_all_sources_down_raises(config_engine):
    upstreams = FakeUpstreams()
    upstreams.online = False
    provider = build_provider(config_engine, upstreams)

    with pytest.raises(UpstreamFetchError):
        await provider.fetch_macro_inputs()
    assert await provider.refresh() is None


async def test_refresh_keeps_last_known_good(config_engine):
    upstreams = FakeUpstreams()
    provider = build_provider(config_engine, upstreams)
    first = await provider.refresh()
    assert first is not None

    upstreams.online = False
    assert await provider.refresh() is first
    assert provider.last_known_good is first


async def test_mock_mode_skips_network(config_engine):
    upstreams = FakeUpstreams()
    provider = build_provider(config_engine, upstreams, use_mock=True)
    snapshot = await provider.fetch_macro_inputs()

    assert snapshot.used_mock_data is True
    assert snapshot.inputs.btc_distance_pct == pytest.approx(-12.5)
    assert upstreams.requests == 0


async def test_fred_disabled_without_key():
    client = FredClient(base_url="https://fred.test", api_key="  ")
    assert client.enabled is False
    with pytest.raises(UpstreamFetchError) as exc:
        await client.get_observations("DGS10")
    assert exc.value.source == "fred"


def test_liquidity_score_is_clamped(config_engine):
    provider = build_provider(config_engine, FakeUpstreams())
    assert provider.liquidity_score(5.0, 400) == pytest.approx(57.5)
    assert provider.liquidity_score(5.0, 250) == pytest.approx(77.5)
    assert provider.liquidity_score(200.0, 250) == 100.0
    assert provider.liquidity_score(-100.0, 800) == 0.0
