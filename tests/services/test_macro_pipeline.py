"""
Tests for the macro pipeline: fallback chain and end-to-end policy assembly
"""

from decimal import Decimal

import pytest
from fastapi import FastAPI

from app.config import settings
from app.core.container import configure_app_state
from app.domain.models import AlertLevel, BreadthSignal, PortfolioLayer, Regime
from app.domain.schemas.policy import BreadthInput, MicrostressInput
from app.services.macro_input_provider import MacroInputsSnapshot
from app.services.portfolio_service import holding_from_row
from app.utils.time import utc_now


@pytest.fixture
def pipeline(config_engine, offline_macro_provider):
    return configure_app_state(FastAPI(), config_engine, settings, provider=offline_macro_provider)


async def test_offline_falls_back_to_mock(pipeline):
    snapshot, error = await pipeline.load_snapshot()
    assert snapshot.used_mock_data is True
    assert error == "All macro data sources failed"


async def test_mock_requested_has_no_error(pipeline):
    snapshot, error = await pipeline.load_snapshot(use_mock=True)
    assert snapshot.used_mock_data is True
    assert error is None


async def test_last_known_good_preferred_over_mock(pipeline, goldilocks_inputs):
    good = MacroInputsSnapshot(inputs=goldilocks_inputs, used_mock_data=False, sources={}, fetched_at=utc_now())
    pipeline.provider._last_good = good

    snapshot, error = await pipeline.load_snapshot()
    assert snapshot is good
    assert error is not None


def test_client_inputs_are_tagged(pipeline, goldilocks_inputs):
    snapshot = pipeline.snapshot_from_inputs(goldilocks_inputs)
    assert snapshot.used_mock_data is False
    assert set(snapshot.sources.values()) == {"client"}


def test_confirmations_only_when_supplied(pipeline, mock_inputs):
    bare = pipeline.build_confirmations(mock_inputs)
    assert bare.bitcoin.trend_level == AlertLevel.RED
    assert bare.breadth is None
    assert bare.microstress is None

    full = pipeline.build_confirmations(
        mock_inputs,
        breadth=BreadthInput(pct_above_200d=[20.0], ad_line=[100.0] * 20 + [80.0] * 41),
        microstress=MicrostressInput(sofr_effr_spread=0.25),
    )
    assert full.breadth.signal == BreadthSignal.DIVERGES
    # the snapshot VIX (22) is used when the breadth input carries none
    assert full.breadth.score == -2.0
    assert full.microstress.level == AlertLevel.RED


def test_microstress_escalates_green_alert(pipeline, goldilocks_inputs):
    snapshot = pipeline.snapshot_from_inputs(goldilocks_inputs)
    confirmations = pipeline.build_confirmations(
        goldilocks_inputs, microstress=MicrostressInput(ted_spread=0.45),
    )
    assessment = pipeline.assess(snapshot, confirmations)
    assert assessment.macro_state.regime == Regime.RISK_ON
    assert assessment.macro_state.alert_level == AlertLevel.YELLOW


def test_policy_for_demo_book(pipeline, config_engine):
    holdings = [holding_from_row(row) for row in config_engine.demo_holding_rows()]
    assessment = pipeline.score_mock("offline")
    outcome = pipeline.policy_for(assessment, holdings)

    assert assessment.fallback_error == "offline"
    assert outcome.layer_weights[PortfolioLayer.GROWTH_EQUITY] == Decimal("45.00")
    assert outcome.policy.deploy_layers == (PortfolioLayer.CASHFLOW_EQUITY, PortfolioLayer.STABILITY_DRY_POWDER)
    assert outcome.suggested_moves.allowed_adds == outcome.policy.deploy_layers
    assert len(outcome.layer_deltas) == 5
