"""
Portfolio API Routes
Stored holdings, custom targets, demo mode and the engine-level summary
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_portfolio_engine, get_portfolio_service
from app.domain.errors import HoldingNotFoundError, PortfolioStoreError
from app.domain.models import Holding, Portfolio
from app.domain.schemas.portfolio import (
    DemoModeRequest,
    HoldingInput,
    HoldingSchema,
    HoldingsReplaceRequest,
    HoldingUpdate,
    PortfolioResponse,
    PortfolioSchema,
    PortfolioSummarySchema,
    TargetsRequest,
    ValidationReportSchema,
)
from app.domain.services.portfolio_engine import PortfolioEngine
from app.services.portfolio_service import PortfolioService, holding_from_row

logger = logging.getLogger(__name__)
router = APIRouter()


def _to_holding(payload: HoldingInput) -> Holding:
    try:
        return holding_from_row(payload.model_dump(mode="json"))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _response(
    portfolio: Portfolio,
    service: PortfolioService,
    engine: PortfolioEngine,
) -> PortfolioResponse:
    active = service.active_holdings(portfolio)
    analyzed = Portfolio(
        holdings=active,
        updated_at=portfolio.updated_at,
        use_demo_holdings=portfolio.use_demo_holdings,
        custom_targets=portfolio.custom_targets,
    )
    return PortfolioResponse(
        portfolio=PortfolioSchema.from_domain(portfolio),
        active_holdings=[HoldingSchema.from_domain(h) for h in active],
        summary=PortfolioSummarySchema.from_domain(engine.compute_summary(analyzed)),
        validation=ValidationReportSchema.from_domain(engine.validate_holdings(active)),
    )


async def _load(service: PortfolioService) -> Portfolio:
    try:
        return await service.get_portfolio()
    except PortfolioStoreError as e:
        logger.error(f"❌ Stored portfolio unreadable: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/portfolio", response_model=PortfolioResponse)
async def get_portfolio(
    service: PortfolioService = Depends(get_portfolio_service),
    engine: PortfolioEngine = Depends(get_portfolio_engine),
):
    return _response(await _load(service), service, engine)


@router.put("/portfolio/holdings", response_model=PortfolioResponse)
async def replace_holdings(
    payload: HoldingsReplaceRequest,
    service: PortfolioService = Depends(get_portfolio_service),
    engine: PortfolioEngine = Depends(get_portfolio_engine),
):
    holdings = [_to_holding(h) for h in payload.holdings]
    portfolio = await service.update_holdings(holdings)
    return _response(portfolio, service, engine)


@router.post("/portfolio/holdings", response_model=PortfolioResponse, status_code=201)
async def add_holding(
    payload: HoldingInput,
    service: PortfolioService = Depends(get_portfolio_service),
    engine: PortfolioEngine = Depends(get_portfolio_engine),
):
    portfolio = await service.add_holding(_to_holding(payload))
    return _response(portfolio, service, engine)


@router.patch("/portfolio/holdings/{holding_id}", response_model=PortfolioResponse)
async def update_holding(
    holding_id: str,
    payload: HoldingUpdate,
    service: PortfolioService = Depends(get_portfolio_service),
    engine: PortfolioEngine = Depends(get_portfolio_engine),
):
    changes: Dict[str, Any] = payload.model_dump(exclude_unset=True)
    try:
        portfolio = await service.update_holding(holding_id, changes)
    except HoldingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _response(portfolio, service, engine)


@router.delete("/portfolio/holdings/{holding_id}", response_model=PortfolioResponse)
async def remove_holding(
    holding_id: str,
    service: PortfolioService = Depends(get_portfolio_service),
    engine: PortfolioEngine = Depends(get_portfolio_engine),
):
    try:
        portfolio = await service.remove_holding(holding_id)
    except HoldingNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _response(portfolio, service, engine)


@router.put("/portfolio/targets", response_model=PortfolioResponse)
async def update_targets(
    payload: TargetsRequest,
    service: PortfolioService = Depends(get_portfolio_service),
    engine: PortfolioEngine = Depends(get_portfolio_engine),
):
    try:
        targets = (
            {engine_id: band.to_domain() for engine_id, band in payload.custom_targets.items()}
            if payload.custom_targets else None
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    portfolio = await service.update_targets(targets)
    return _response(portfolio, service, engine)


@router.put("/portfolio/demo", response_model=PortfolioResponse)
async def set_demo_mode(
    payload: DemoModeRequest,
    service: PortfolioService = Depends(get_portfolio_service),
    engine: PortfolioEngine = Depends(get_portfolio_engine),
):
    portfolio = await service.toggle_demo_mode(payload.enabled)
    return _response(portfolio, service, engine)


@router.post("/portfolio/normalize", response_model=PortfolioResponse)
async def normalize_holdings(
    service: PortfolioService = Depends(get_portfolio_service),
    engine: PortfolioEngine = Depends(get_portfolio_engine),
):
    """Scale stored weights so they sum to 100"""
    portfolio = await _load(service)
    portfolio = await service.update_holdings(engine.normalize_weights(portfolio.holdings))
    return _response(portfolio, service, engine)


@router.post("/portfolio/reset", response_model=PortfolioResponse)
async def reset_portfolio(
    service: PortfolioService = Depends(get_portfolio_service),
    engine: PortfolioEngine = Depends(get_portfolio_engine),
):
    portfolio = await service.reset_to_defaults()
    return _response(portfolio, service, engine)


@router.delete("/portfolio", status_code=204)
async def clear_portfolio(service: PortfolioService = Depends(get_portfolio_service)):
    await service.clear()
