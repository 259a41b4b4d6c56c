"""
Unit Tests for the Suggested Moves Engine
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from app.domain.models import (
    AccountType,
    AlertLevel,
    BitcoinConfirmation,
    BreadthConfirmation,
    BreadthSignal,
    Confirmations,
    Direction,
    Holding,
    MacroComposites,
    MacroState,
    MicrostressConfirmation,
    MicrostressMetrics,
    PortfolioLayer,
    Regime,
)
from app.domain.services.action_policy_engine import ActionPolicyEngine
from app.domain.services.confirmation_engine import ConfirmationEngine
from app.domain.services.macro_state_engine import MacroStateEngine
from app.domain.services.portfolio_engine import PortfolioEngine
from app.domain.services.scoring_engine import ScoringEngine
from app.domain.services.suggested_moves_engine import SuggestedMovesEngine

DEMO_BOOK = [
    ("QQQM", AccountType.K401, "35"),
    ("SGOV", AccountType.K401, "30"),
    ("MSTR", AccountType.TAXABLE, "15"),
    ("MSFT", AccountType.ROTH, "10"),
    ("GLD", AccountType.TAXABLE, "5"),
    ("VNQ", AccountType.ROTH, "5"),
]


def holdings(rows):
    return [
        Holding(id=f"h-{i}", ticker=ticker, account=account, weight_pct=Decimal(weight))
        for i, (ticker, account, weight) in enumerate(rows)
    ]


@pytest.fixture
def portfolio_engine(config_engine, catalog):
    return PortfolioEngine(config_engine.portfolio, catalog)


@pytest.fixture
def policy_engine(config_engine, catalog):
    return ActionPolicyEngine(
        settings=config_engine.get_policy_setting("action_policy"),
        portfolio_config=config_engine.portfolio,
        catalog=catalog,
    )


@pytest.fixture
def engine(config_engine, policy_engine):
    return SuggestedMovesEngine(config_engine.get_policy_setting("suggested_moves"), policy_engine)


@pytest.fixture
def layer_view(portfolio_engine, config_engine):
    def _view(rows):
        weights = portfolio_engine.compute_layer_weights(holdings(rows))
        deltas = portfolio_engine.compute_layer_deltas(weights, config_engine.portfolio.layer_targets())
        return weights, deltas
    return _view


def test_demo_book_under_risk_off_fixture(engine, layer_view, config_engine, catalog, mock_inputs):
    scoring = ScoringEngine(config_engine.scoring_rules, catalog)
    macro_state = MacroStateEngine(config_engine.get_policy_setting("macro_state")).build_state(
        mock_inputs, scoring.classify_regime(mock_inputs),
    )
    bitcoin = ConfirmationEngine(config_engine.get_policy_setting("confirmations")).bitcoin_from_inputs(mock_inputs)
    weights, deltas = layer_view(DEMO_BOOK)

    moves = engine.compute_suggested_moves(
        weights, deltas, macro_state,
        confirmations=Confirmations(bitcoin=bitcoin),
        engine_scores=scoring.score_all_engines(mock_inputs).engine_scores,
    )

    adjustments = {a.layer: a for a in moves.recommended_bias_adjustments}
    assert list(adjustments) == [
        PortfolioLayer.VOLATILITY_ASYMMETRY,
        PortfolioLayer.GROWTH_EQUITY,
        PortfolioLayer.CASHFLOW_EQUITY,
        PortfolioLayer.STABILITY_DRY_POWDER,
    ]

    vol = adjustments[PortfolioLayer.VOLATILITY_ASYMMETRY]
    assert vol.direction == Direction.MAINTAIN
    assert vol.magnitude_pct == Decimal("0")
    assert vol.rationale == "15.0% below target, but adds are gated this week"

    growth = adjustments[PortfolioLayer.GROWTH_EQUITY]
    assert growth.direction == Direction.DECREASE
    assert growth.magnitude_pct == Decimal("5")
    assert growth.rationale == "22.5% above target (45.0% vs 22.5%)"

    cashflow = adjustments[PortfolioLayer.CASHFLOW_EQUITY]
    assert cashflow.direction == Direction.INCREASE
    assert cashflow.rationale == "22.5% below target (0.0% vs 22.5%)"

    assert adjustments[PortfolioLayer.STABILITY_DRY_POWDER].direction == Direction.DECREASE
    assert moves.allowed_adds == (PortfolioLayer.CASHFLOW_EQUITY, PortfolioLayer.STABILITY_DRY_POWDER)
    assert moves.avoid_adds == (PortfolioLayer.VOLATILITY_ASYMMETRY, PortfolioLayer.GROWTH_EQUITY)


def test_small_gap_is_not_rounded_up(engine, layer_view):
    risk_on = MacroState(
        regime=Regime.RISK_ON,
        alert_level=AlertLevel.GREEN,
        composites=MacroComposites(growth=0.5, inflation=0.0, credit_stress=-0.5, liquidity_impulse=0.5),
    )
    weights, deltas = layer_view([
        ("MSTR", AccountType.TAXABLE, "30"),
        ("QQQ", AccountType.ROTH, "18"),
        ("KO", AccountType.ROTH, "27"),
        ("GLD", AccountType.TAXABLE, "12.5"),
        ("SGOV", AccountType.K401, "12.5"),
    ])

    moves = engine.compute_suggested_moves(
        weights, deltas, risk_on,
        confirmations=Confirmations(bitcoin=BitcoinConfirmation(trend_level=AlertLevel.GREEN, reasons=())),
    )

    assert len(moves.recommended_bias_adjustments) == 2
    growth, cashflow = moves.recommended_bias_adjustments
    assert growth.layer == PortfolioLayer.GROWTH_EQUITY
    assert growth.direction == Direction.INCREASE
    assert growth.magnitude_pct == Decimal("4.50")
    assert cashflow.direction == Direction.DECREASE
    assert cashflow.magnitude_pct == Decimal("4.50")


def test_on_target_book_has_no_moves(engine, layer_view):
    calm = MacroState(
        regime=Regime.MIXED,
        alert_level=AlertLevel.GREEN,
        composites=MacroComposites(growth=0.0, inflation=0.0, credit_stress=0.0, liquidity_impulse=0.0),
    )
    weights, deltas = layer_view([
        ("MSTR", AccountType.TAXABLE, "30"),
        ("QQQ", AccountType.ROTH, "22.5"),
        ("KO", AccountType.ROTH, "22.5"),
        ("GLD", AccountType.TAXABLE, "12.5"),
        ("SGOV", AccountType.K401, "12.5"),
    ])

    moves = engine.compute_suggested_moves(weights, deltas, calm)
    assert moves.recommended_bias_adjustments == ()
    assert moves.allowed_adds == (PortfolioLayer.CASHFLOW_EQUITY, PortfolioLayer.STABILITY_DRY_POWDER)


ALL_CASH_BOOK = [("SGOV", AccountType.K401, "100")]

CONFIRMATION_VARIANTS = {
    "bitcoin-only": {},
    "breadth-diverges": {
        "breadth": BreadthConfirmation(
            signal=BreadthSignal.DIVERGES, level=AlertLevel.RED, score=-2.0, reasons=(),
        ),
    },
    "microstress-red": {
        "microstress": MicrostressConfirmation(
            level=AlertLevel.RED, reasons=(), metrics=MicrostressMetrics(),
        ),
    },
}


@pytest.mark.parametrize("book", [DEMO_BOOK, ALL_CASH_BOOK], ids=["demo", "all-cash"])
@pytest.mark.parametrize("variant", list(CONFIRMATION_VARIANTS))
@pytest.mark.parametrize("btc_price", [30000, 47000, 60000])
@pytest.mark.parametrize("vix", [14, 36, 45])
def test_increase_never_targets_an_avoided_layer(
    engine, policy_engine, layer_view, config_engine, catalog, goldilocks_inputs, book, variant, btc_price, vix,
):
    scoring = ScoringEngine(config_engine.scoring_rules, catalog)
    inputs = replace(goldilocks_inputs, btc_price=btc_price, btc_200dma=48000, vix=vix)
    extra = CONFIRMATION_VARIANTS[variant]
    macro_state = MacroStateEngine(config_engine.get_policy_setting("macro_state")).build_state(
        inputs, scoring.classify_regime(inputs), extra.get("microstress"),
    )
    confirmations = Confirmations(
        bitcoin=ConfirmationEngine(config_engine.get_policy_setting("confirmations")).bitcoin_from_inputs(inputs),
        **extra,
    )
    scores = scoring.score_all_engines(inputs).engine_scores
    weights, deltas = layer_view(book)

    policy = policy_engine.build_action_policy(macro_state, scores, confirmations)
    moves = engine.compute_suggested_moves(weights, deltas, macro_state, confirmations, scores)

    increases = {a.layer for a in moves.recommended_bias_adjustments if a.direction == Direction.INCREASE}
    assert not increases & set(policy.avoid_layers)
    assert increases <= set(policy.deploy_layers)
    assert set(moves.allowed_adds) == set(policy.deploy_layers)
