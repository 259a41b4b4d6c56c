"""
Engine API Routes
Catalog lookup and macro scoring
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, HTTPException

from app.api.dependencies import get_engine_catalog, get_macro_pipeline
from app.domain.errors import MacroInputsValidationError
from app.domain.models import MacroInputs
from app.domain.schemas.engines import EngineSchema, ScoreResponse, ScoringDataSchema
from app.domain.services.engine_catalog import EngineCatalog
from app.services.macro_pipeline import MacroAssessment, MacroPipeline

logger = logging.getLogger(__name__)
router = APIRouter()


def _score_response(assessment: MacroAssessment) -> ScoreResponse:
    snapshot = assessment.snapshot
    return ScoreResponse(
        success=True,
        data=ScoringDataSchema.from_domain(assessment.scoring),
        macro_inputs=snapshot.inputs.to_wire(),
        used_mock_data=snapshot.used_mock_data,
        sources=snapshot.sources,
        fallback=True if assessment.fallback_error else None,
        error=assessment.fallback_error,
    )


@router.get("/engines", response_model=List[EngineSchema])
async def list_engines(catalog: EngineCatalog = Depends(get_engine_catalog)):
    """All 12 engines in display order"""
    return [EngineSchema.from_domain(engine) for engine in catalog.list_engines()]


# Declared before /engines/{engine_id} so "score" is not read as an id
@router.get("/engines/score", response_model=ScoreResponse, response_model_exclude_none=True)
async def score_engines(
    mock: bool = False,
    pipeline: MacroPipeline = Depends(get_macro_pipeline),
):
    """
    Score all engines against live (or mock) macro data

    Never fails without a body: any error rescores with the mock fixture
    and flags the response with fallback=true.
    """
    try:
        snapshot, error = await pipeline.load_snapshot(use_mock=mock)
        assessment = pipeline.assess(snapshot, fallback_error=error)
    except Exception as e:
        logger.error(f"❌ Scoring failed, using mock data: {e}", exc_info=True)
        assessment = pipeline.score_mock(str(e))
    return _score_response(assessment)


@router.post("/engines/score", response_model=ScoreResponse, response_model_exclude_none=True)
async def score_supplied_inputs(
    payload: Dict[str, Any] = Body(...),
    pipeline: MacroPipeline = Depends(get_macro_pipeline),
):
    """Score a client-supplied MacroInputs record (camelCase or snake_case keys)"""
    try:
        inputs = MacroInputs.from_mapping(payload)
    except MacroInputsValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={"message": "Invalid macro inputs", "problems": e.problems},
        )
    assessment = pipeline.assess(pipeline.snapshot_from_inputs(inputs))
    return _score_response(assessment)


@router.get("/engines/{engine_id}", response_model=EngineSchema)
async def get_engine(engine_id: str, catalog: EngineCatalog = Depends(get_engine_catalog)):
    engine = catalog.get_engine(engine_id.upper())
    if engine is None:
        raise HTTPException(status_code=404, detail=f"Unknown engine: {engine_id}")
    return EngineSchema.from_domain(engine)
