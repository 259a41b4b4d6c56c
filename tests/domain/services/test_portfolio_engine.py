"""
Unit Tests for the Portfolio Engine
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.domain.models import (
    AccountType,
    AssetType,
    ClassificationConfidence,
    DeltaStatus,
    EngineId,
    Holding,
    Portfolio,
    PortfolioLayer,
    TargetBand,
)
from app.domain.services.portfolio_engine import PortfolioEngine

NOW = datetime(2026, 10, 19, tzinfo=timezone.utc)


def holding(ticker, weight, account=AccountType.TAXABLE, hid=None, **kwargs) -> Holding:
    return Holding(
        id=hid or ticker.lower(),
        ticker=ticker,
        account=account,
        weight_pct=Decimal(str(weight)),
        **kwargs,
    )


def book(*holdings, **kwargs) -> Portfolio:
    return Portfolio(holdings=tuple(holdings), updated_at=NOW, **kwargs)


@pytest.fixture
def engine(config_engine, catalog):
    return PortfolioEngine(config_engine.portfolio, catalog)


class TestClassification:

    def test_ticker_table_is_confident(self, engine):
        c = engine.classify_holding(holding("AAPL", 10))
        assert c.classified is True
        assert c.engine == EngineId.CASHFLOW_COMPOUNDERS
        assert c.confidence == ClassificationConfidence.HIGH

    def test_override_wins(self, engine):
        c = engine.classify_holding(holding("AAPL", 10, engine_override=EngineId.GROWTH_DURATION))
        assert c.classified is True
        assert c.engine == EngineId.GROWTH_DURATION

    def test_asset_type_fallback(self, engine):
        c = engine.classify_holding(holding("SOL", 5, asset_type=AssetType.CRYPTO))
        assert c.classified is False
        assert c.suggested_engine == EngineId.VOLATILITY_OPTIONALITY
        assert c.confidence == ClassificationConfidence.MEDIUM

    def test_sector_keyword_fallback(self, engine):
        c = engine.classify_holding(holding("PLTR", 5, sector="Enterprise Software"))
        assert c.suggested_engine == EngineId.GROWTH_DURATION
        assert c.confidence == ClassificationConfidence.MEDIUM

    def test_unknown_ticker_gets_default(self, engine):
        c = engine.classify_holding(holding("ZZZZ", 5))
        assert c.classified is False
        assert c.suggested_engine == EngineId.SPECIAL_SITUATIONS
        assert c.confidence == ClassificationConfidence.LOW


class TestSummary:

    def test_two_holding_book(self, engine):
        summary = engine.compute_summary(book(holding("AAPL", 60), holding("SGOV", 40)))

        assert summary.is_valid is True
        assert summary.total_weight == Decimal("100.00")
        assert [a.engine for a in summary.total_by_engine] == [
            EngineId.CASHFLOW_COMPOUNDERS, EngineId.CREDIT_CARRY,
        ]
        assert len(summary.engine_deltas) == 12
        assert [d.engine for d in summary.top_overweights] == [
            EngineId.CASHFLOW_COMPOUNDERS, EngineId.CREDIT_CARRY,
        ]
        assert summary.top_overweights[0].delta_pct == Decimal("40.00")
        assert [d.engine for d in summary.top_underweights] == [EngineId.GROWTH_DURATION]
        assert summary.risk_summary.defensive_pct == Decimal("100.00")
        assert summary.risk_summary.high_beta_pct == Decimal("0.00")
        assert summary.warnings == ()

    def test_by_account_and_tickers(self, engine):
        summary = engine.compute_summary(book(
            holding("QQQ", 30, AccountType.ROTH, hid="a"),
            holding("QQQ", 20, AccountType.K401, hid="b"),
            holding("MSFT", 50, AccountType.ROTH),
        ))
        growth = summary.total_by_engine[0]
        assert growth.engine == EngineId.GROWTH_DURATION
        assert growth.total_pct == Decimal("100.00")
        assert growth.tickers == ("QQQ", "MSFT")
        assert growth.by_account == {AccountType.ROTH: Decimal("80.00"), AccountType.K401: Decimal("20.00")}
        assert summary.total_by_account[AccountType.ROTH] == Decimal("80.00")

    def test_heuristic_holdings_are_flagged(self, engine):
        summary = engine.compute_summary(book(holding("AAPL", 90), holding("ZZZZ", 10)))
        assert len(summary.warnings) == 1
        assert summary.warnings[0].startswith("ZZZZ:")
        assert "LOW confidence" in summary.warnings[0]

    def test_custom_targets_override_defaults(self, engine):
        custom = {EngineId.CASHFLOW_COMPOUNDERS: TargetBand(Decimal("50"), Decimal("60"), Decimal("70"))}
        summary = engine.compute_summary(book(holding("AAPL", 60), holding("SGOV", 40), custom_targets=custom))
        delta = next(d for d in summary.engine_deltas if d.engine == EngineId.CASHFLOW_COMPOUNDERS)
        assert delta.status == DeltaStatus.IN_RANGE
        assert delta.delta_pct == Decimal("0.00")

    def test_risk_summary_weights(self, engine):
        summary = engine.compute_summary(book(holding("MSTR", 20), holding("QQQ", 40), holding("XOM", 40)))
        assert summary.risk_summary.high_beta_pct == Decimal("40.00")
        assert summary.risk_summary.cyclical_pct == Decimal("40.00")


class TestLayers:

    def test_layer_table_takes_precedence(self, engine):
        weights = engine.compute_layer_weights([holding("AAPL", 60), holding("SGOV", 40)])
        assert weights[PortfolioLayer.GROWTH_EQUITY] == Decimal("60.00")
        assert weights[PortfolioLayer.STABILITY_DRY_POWDER] == Decimal("40.00")
        assert list(weights) == list(PortfolioLayer)

    def test_unlisted_ticker_uses_engine_layer(self, engine):
        weights = engine.compute_layer_weights([holding("XLU", 10, sector="Utilities")])
        assert weights[PortfolioLayer.HARD_ASSET_HEDGE] == Decimal("10.00")

    def test_empty_book_has_every_layer(self, engine):
        weights = engine.compute_layer_weights([])
        assert set(weights) == set(PortfolioLayer)
        assert all(w == Decimal("0") for w in weights.values())

    def test_layer_deltas(self, engine, config_engine):
        weights = engine.compute_layer_weights([holding("QQQ", 45), holding("SGOV", 55)])
        deltas = {d.layer: d for d in engine.compute_layer_deltas(weights, config_engine.portfolio.layer_targets())}
        assert deltas[PortfolioLayer.GROWTH_EQUITY].status == DeltaStatus.OVER
        assert deltas[PortfolioLayer.GROWTH_EQUITY].delta_pct == Decimal("22.50")
        assert deltas[PortfolioLayer.VOLATILITY_ASYMMETRY].status == DeltaStatus.UNDER
        assert deltas[PortfolioLayer.VOLATILITY_ASYMMETRY].delta_pct == Decimal("-30.00")


class TestValidation:

    def test_valid_book(self, engine):
        report = engine.validate_holdings([
            holding("AAPL", 60, asset_type=AssetType.EQUITY),
            holding("SGOV", 40, asset_type=AssetType.ETF),
        ])
        assert report.is_valid is True
        assert report.errors == ()
        assert report.warnings == ()

    def test_weight_sum_error(self, engine):
        report = engine.validate_holdings([holding("AAPL", 50, asset_type=AssetType.EQUITY)])
        assert report.is_valid is False
        assert report.errors == ("Weights sum to 50.00%, expected 100%",)

    def test_within_tolerance(self, engine):
        report = engine.validate_holdings([holding("AAPL", "99.8", asset_type=AssetType.EQUITY)])
        assert report.is_valid is True

    def test_empty_book(self, engine):
        report = engine.validate_holdings([])
        assert report.is_valid is False
        assert report.warnings == ("Portfolio has no holdings",)

    def test_duplicates_only_within_one_account(self, engine):
        report = engine.validate_holdings([
            holding("QQQ", 30, AccountType.ROTH, hid="a", asset_type=AssetType.ETF),
            holding("QQQ", 30, AccountType.ROTH, hid="b", asset_type=AssetType.ETF),
            holding("QQQ", 40, AccountType.K401, hid="c", asset_type=AssetType.ETF),
        ])
        assert report.is_valid is True
        assert report.warnings == ("QQQ: duplicate holding in ROTH account",)

    def test_missing_asset_type_warns(self, engine):
        report = engine.validate_holdings([holding("AAPL", 100)])
        assert report.warnings == ("AAPL: missing asset type",)

    def test_negative_weight_rejected_by_model(self):
        with pytest.raises(ValueError):
            holding("AAPL", -1)


class TestNormalize:

    def test_sums_to_exactly_100(self):
        normalized = PortfolioEngine.normalize_weights([
            holding("A", 30, hid="1"), holding("B", 30, hid="2"), holding("C", 30, hid="3"),
        ])
        assert [h.weight_pct for h in normalized] == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]
        assert sum(h.weight_pct for h in normalized) == Decimal("100")

    def test_zero_total_unchanged(self):
        holdings = [holding("A", 0)]
        assert PortfolioEngine.normalize_weights(holdings) == tuple(holdings)

    def test_keeps_ids(self):
        normalized = PortfolioEngine.normalize_weights([holding("A", 20, hid="x"), holding("B", 30, hid="y")])
        assert [h.id for h in normalized] == ["x", "y"]
        assert [h.weight_pct for h in normalized] == [Decimal("40.00"), Decimal("60.00")]
