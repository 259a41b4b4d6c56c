from pathlib import Path
from typing import Any, AsyncGenerator, Callable, Dict

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.api.routes import engines, health, macro, policy, portfolio, stats
from app.config import settings
from app.core.container import configure_app_state
from app.domain.models import MacroInputs
from app.domain.services.config_engine import ConfigEngine
from app.domain.services.engine_catalog import EngineCatalog
from app.infrastructure.db.database import Base, get_db
from app.infrastructure.market_data.coingecko_client import CoinGeckoClient
from app.infrastructure.market_data.fred_client import FredClient
from app.services.macro_input_provider import MacroInputProvider

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"

# Risk-On / GREEN snapshot: BTC 20% above its 200D MA, tight credit, ample liquidity
GOLDILOCKS_INPUTS: Dict[str, Any] = {
    "btc_price": 60000,
    "btc_200dma": 50000,
    "btc_trend": "bullish",
    "nominal_rate_10y": 4.0,
    "real_rate_10y": 1.2,
    "inflation": 2.6,
    "inflation_trend": "falling",
    "hy_oas": 320,
    "ig_oas": 100,
    "credit_trend": "tightening",
    "gdp_growth": 2.8,
    "pmi": 54,
    "unemployment_rate": 3.8,
    "liquidity_score": 70,
    "oil_price": 72,
    "gold_price": 2000,
    "usd_strength": 100,
    "vix": 14,
    "equity_momentum": 12,
}


@pytest.fixture(scope="session")
def config_engine() -> ConfigEngine:
    engine = ConfigEngine(CONFIG_DIR)
    engine.load_all()
    return engine


@pytest.fixture(scope="session")
def catalog(config_engine) -> EngineCatalog:
    return EngineCatalog(config_engine.engines)


@pytest.fixture(scope="session")
def mock_rows(config_engine) -> Dict[str, Any]:
    return dict(config_engine.get_app_setting("macro_data", "mock_inputs"))


@pytest.fixture
def mock_inputs(mock_rows) -> MacroInputs:
    """The Risk-Off fixture served when live data is unavailable"""
    return MacroInputs.from_mapping(mock_rows)


@pytest.fixture
def goldilocks_inputs() -> MacroInputs:
    return MacroInputs.from_mapping(GOLDILOCKS_INPUTS)


@pytest.fixture
def make_inputs(mock_rows) -> Callable[..., MacroInputs]:
    """Mock fixture with snake_case overrides"""
    def _make(**overrides) -> MacroInputs:
        return MacroInputs.from_mapping({**mock_rows, **overrides})
    return _make


def offline_provider(config_engine: ConfigEngine) -> MacroInputProvider:
    """Provider whose upstreams all fail: no FRED key, CoinGecko answers 503"""
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    return MacroInputProvider(
        fred=FredClient(base_url="https://fred.test", api_key=None, transport=transport),
        coingecko=CoinGeckoClient(base_url="https://coingecko.test", transport=transport),
        macro_config=config_engine.get_app_setting("macro_data"),
    )


@pytest.fixture
def offline_macro_provider(config_engine) -> MacroInputProvider:
    return offline_provider(config_engine)


@pytest.fixture()
async def db_engine(tmp_path):
    db_path = tmp_path / "test.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session


@pytest.fixture()
async def app(db_session, config_engine) -> FastAPI:
    app = FastAPI()
    app.include_router(health.router, tags=["Health"])
    app.include_router(engines.router, prefix="/api/v1", tags=["Engines"])
    app.include_router(macro.router, prefix="/api/v1", tags=["Macro"])
    app.include_router(policy.router, prefix="/api/v1", tags=["Policy"])
    app.include_router(portfolio.router, prefix="/api/v1", tags=["Portfolio"])
    app.include_router(stats.router, prefix="/api/v1", tags=["Stats"])

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    configure_app_state(app, config_engine, settings, provider=offline_provider(config_engine))
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
