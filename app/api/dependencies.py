"""
FastAPI dependencies
Everything is read from app.state (wired once in the lifespan); no module globals.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.services.config_engine import ConfigEngine
from app.domain.services.engine_catalog import EngineCatalog
from app.domain.services.portfolio_engine import PortfolioEngine
from app.infrastructure.db.database import get_db
from app.infrastructure.db.repositories.key_value_repository import SqlKeyValueStore
from app.infrastructure.repositories.portfolio_repository import PortfolioRepository
from app.infrastructure.store.types import KeyValueStore
from app.services.macro_pipeline import MacroPipeline
from app.services.portfolio_service import PortfolioService


def get_engine_catalog(request: Request) -> EngineCatalog:
    return request.app.state.engine_catalog


def get_portfolio_engine(request: Request) -> PortfolioEngine:
    return request.app.state.portfolio_engine


def get_macro_pipeline(request: Request) -> MacroPipeline:
    return request.app.state.macro_pipeline


async def get_key_value_store(db: AsyncSession = Depends(get_db)) -> KeyValueStore:
    return SqlKeyValueStore(db)


def get_portfolio_service(
    request: Request,
    store: KeyValueStore = Depends(get_key_value_store),
) -> PortfolioService:
    settings = request.app.state.settings
    config_engine: ConfigEngine = request.app.state.config_engine
    return PortfolioService(
        repository=PortfolioRepository(store, settings.PORTFOLIO_STORE_KEY),
        demo_rows=config_engine.demo_holding_rows(),
    )
