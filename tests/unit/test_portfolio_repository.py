import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.domain.errors import PortfolioStoreError
from app.domain.models import AccountType, AssetType, EngineId, Holding, Portfolio, TargetBand
from app.infrastructure.repositories.portfolio_repository import PortfolioRepository
from app.infrastructure.store.memory_store import InMemoryKeyValueStore

KEY = "portfolio_test"


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def repository(store):
    return PortfolioRepository(store, KEY)


def sample_portfolio() -> Portfolio:
    return Portfolio(
        holdings=(
            Holding(
                id="h1",
                ticker="aapl",
                account=AccountType.K401,
                weight_pct=Decimal("60.125"),
                asset_type=AssetType.EQUITY,
                sector="Technology",
            ),
            Holding(
                id="h2",
                ticker="SGOV",
                account=AccountType.TAXABLE,
                weight_pct=Decimal("39.875"),
                engine_override=EngineId.CREDIT_CARRY,
                notes="T-bill ladder",
            ),
        ),
        updated_at=datetime(2026, 10, 19, 12, 30, tzinfo=timezone.utc),
        use_demo_holdings=True,
        custom_targets={
            EngineId.GROWTH_DURATION: TargetBand(Decimal("10"), Decimal("20.5"), Decimal("30")),
        },
    )


async def test_load_missing_returns_none(repository):
    assert await repository.load() is None


async def test_save_then_load_is_lossless(repository):
    portfolio = sample_portfolio()
    await repository.save(portfolio)
    loaded = await repository.load()

    assert loaded == portfolio
    assert loaded.holdings[0].ticker == "AAPL"
    assert loaded.holdings[0].weight_pct == Decimal("60.125")
    assert loaded.custom_targets[EngineId.GROWTH_DURATION].target_pct == Decimal("20.5")


async def test_record_uses_camel_case_and_decimal_strings(repository, store):
    await repository.save(sample_portfolio())
    record = json.loads(await store.get(KEY))

    assert record["useDemoHoldings"] is True
    assert record["updatedAt"] == "2026-10-19T12:30:00Z"
    assert record["holdings"][0]["weightPct"] == "60.125"
    assert record["holdings"][0]["account"] == "401K"
    assert record["holdings"][1]["engineOverride"] == "CREDIT_CARRY"
    assert record["customTargets"]["GROWTH_DURATION"] == {"min": "10", "target": "20.5", "max": "30"}


async def test_clear_removes_record(repository):
    await repository.save(sample_portfolio())
    await repository.clear()
    assert await repository.load() is None


@pytest.mark.parametrize("raw", [
    "not json",
    json.dumps({"holdings": [{"id": "x"}], "updatedAt": "2026-10-19T00:00:00Z"}),
    json.dumps({"holdings": [], "updatedAt": "2026-10-19T00:00:00Z", "customTargets": {"NOPE": {}}}),
])
async def test_malformed_record_raises_store_error(raw):
    store = InMemoryKeyValueStore({KEY: raw})
    with pytest.raises(PortfolioStoreError):
        await PortfolioRepository(store, KEY).load()
