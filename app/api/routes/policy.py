"""
Action Policy API Routes
Weekly policy plus suggested moves for the stored portfolio
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_macro_pipeline, get_portfolio_service
from app.domain.errors import MacroInputsValidationError, PortfolioStoreError
from app.domain.models import MacroInputs
from app.domain.schemas.policy import (
    ActionPolicySchema,
    ConfirmationsSchema,
    LayerDeltaSchema,
    MacroStateSchema,
    PolicyRequest,
    PolicyResponse,
    SuggestedMovesSchema,
    layer_weights_to_wire,
)
from app.services.macro_pipeline import MacroAssessment, MacroPipeline
from app.services.portfolio_service import PortfolioService

logger = logging.getLogger(__name__)
router = APIRouter()


async def _policy_response(
    assessment: MacroAssessment,
    pipeline: MacroPipeline,
    portfolio_service: PortfolioService,
) -> PolicyResponse:
    try:
        portfolio = await portfolio_service.get_portfolio()
    except PortfolioStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    holdings = portfolio_service.active_holdings(portfolio)

    outcome = pipeline.policy_for(assessment, holdings)
    return PolicyResponse(
        policy=ActionPolicySchema.from_domain(outcome.policy),
        suggested_moves=SuggestedMovesSchema.from_domain(outcome.suggested_moves),
        layer_weights=layer_weights_to_wire(outcome.layer_weights),
        layer_deltas=[LayerDeltaSchema.from_domain(d) for d in outcome.layer_deltas],
        macro_state=MacroStateSchema.from_domain(assessment.macro_state),
        confirmations=ConfirmationsSchema.from_domain(assessment.confirmations),
        used_mock_data=assessment.snapshot.used_mock_data,
        fallback=True if assessment.fallback_error else None,
        error=assessment.fallback_error,
    )


@router.get("/policy", response_model=PolicyResponse, response_model_exclude_none=True)
async def get_policy(
    mock: bool = False,
    pipeline: MacroPipeline = Depends(get_macro_pipeline),
    portfolio_service: PortfolioService = Depends(get_portfolio_service),
):
    """Policy from current macro data and the bitcoin snapshot confirmation"""
    snapshot, error = await pipeline.load_snapshot(use_mock=mock)
    assessment = pipeline.assess(snapshot, fallback_error=error)
    return await _policy_response(assessment, pipeline, portfolio_service)


@router.post("/policy", response_model=PolicyResponse, response_model_exclude_none=True)
async def evaluate_policy(
    payload: Optional[PolicyRequest] = None,
    pipeline: MacroPipeline = Depends(get_macro_pipeline),
    portfolio_service: PortfolioService = Depends(get_portfolio_service),
):
    """
    Policy with caller-supplied macro inputs and/or confirmation data.
    Confirmations left out are skipped and reported as missing.
    """
    payload = payload or PolicyRequest()
    error = None
    if payload.macro_inputs is not None:
        try:
            inputs = MacroInputs.from_mapping(payload.macro_inputs)
        except MacroInputsValidationError as e:
            raise HTTPException(
                status_code=422,
                detail={"message": "Invalid macro inputs", "problems": e.problems},
            )
        snapshot = pipeline.snapshot_from_inputs(inputs)
    else:
        snapshot, error = await pipeline.load_snapshot(use_mock=payload.use_mock)

    confirmations = pipeline.build_confirmations(
        snapshot.inputs,
        bitcoin_prices=payload.bitcoin_prices,
        breadth=payload.breadth,
        microstress=payload.microstress,
    )
    assessment = pipeline.assess(snapshot, confirmations=confirmations, fallback_error=error)
    return await _policy_response(assessment, pipeline, portfolio_service)
