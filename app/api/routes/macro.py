"""
Macro State API Routes
"""

from fastapi import APIRouter, Depends

from app.api.dependencies import get_macro_pipeline
from app.domain.schemas.engines import MacroCaseSchema
from app.domain.schemas.policy import ConfirmationsSchema, MacroStateResponse, MacroStateSchema
from app.services.macro_pipeline import MacroPipeline

router = APIRouter()


@router.get("/macro/state", response_model=MacroStateResponse, response_model_exclude_none=True)
async def get_macro_state(
    mock: bool = False,
    pipeline: MacroPipeline = Depends(get_macro_pipeline),
):
    """Regime, alert level, composites and the bitcoin confirmation"""
    snapshot, error = await pipeline.load_snapshot(use_mock=mock)
    assessment = pipeline.assess(snapshot, fallback_error=error)
    return MacroStateResponse(
        macro_state=MacroStateSchema.from_domain(assessment.macro_state),
        macro_case=MacroCaseSchema.from_domain(assessment.scoring.macro_case),
        confirmations=ConfirmationsSchema.from_domain(assessment.confirmations),
        macro_inputs=snapshot.inputs.to_wire(),
        used_mock_data=snapshot.used_mock_data,
        fallback=True if error else None,
        error=error,
    )
