"""
FastAPI Main Application
Engine scoring, macro state, action policy and portfolio in one service
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import engines, health, macro, policy, portfolio, stats
from app.config import settings
from app.core.container import configure_app_state
from app.core.logging import setup_logging
from app.domain.services.config_engine import ConfigEngine
from app.infrastructure.db.database import close_db, init_db
from app.scheduler.scheduler import MacroRefreshScheduler

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def resolve_config_dir() -> Path:
    if settings.CONFIG_DIR:
        return Path(settings.CONFIG_DIR)
    return Path(__file__).parent.parent / "config"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    Handles startup and shutdown of all services
    """
    scheduler: Optional[MacroRefreshScheduler] = None

    logger.info("=" * 60)
    logger.info("🚀 Starting Macro Allocation Assistant")
    logger.info("=" * 60)

    logger.info("📊 Step 1/4: Initializing database...")
    await init_db()
    logger.info("✅ Database initialized")

    logger.info("⚙️  Step 2/4: Loading configuration...")
    config_engine = ConfigEngine(resolve_config_dir())
    config_engine.load_all()
    logger.info(f"   🧩 Engines: {len(config_engine.engines)}")
    logger.info(f"   📐 Layers: {len(config_engine.portfolio.layers)}")

    logger.info("🔧 Step 3/4: Wiring engines...")
    pipeline = configure_app_state(app, config_engine, settings)
    logger.info("✅ Engines ready")

    logger.info("📅 Step 4/4: Background services...")
    if settings.SCHEDULER_ENABLED:
        try:
            scheduler = MacroRefreshScheduler(
                provider=pipeline.provider,
                interval_minutes=settings.MACRO_REFRESH_MINUTES,
                timezone=settings.TIMEZONE,
                job_id=config_engine.get_app_setting("scheduler").get("refresh_job_id"),
            )
            scheduler.start()
            await scheduler.run_refresh()
        except Exception as e:
            logger.error(f"❌ Failed to start scheduler: {e}")
    else:
        logger.info("⏰ Scheduler disabled")
    app.state.scheduler = scheduler

    logger.info(f"🎯 API: http://{settings.API_HOST}:{settings.API_PORT}{API_PREFIX}")
    logger.info(f"   Mock macro data: {'on' if settings.MOCK_MACRO_DATA else 'off'}")

    yield

    logger.info("🛑 Shutting down...")
    if scheduler:
        scheduler.stop()
        logger.info("✅ Scheduler stopped")
    await close_db()
    logger.info("👋 Shutdown complete")


def create_app() -> FastAPI:
    application = FastAPI(
        title="Macro Allocation Assistant",
        description="Engine scoring, macro regime and weekly portfolio action policy",
        version="1.0.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(health.router, tags=["Health"])
    application.include_router(engines.router, prefix=API_PREFIX, tags=["Engines"])
    application.include_router(macro.router, prefix=API_PREFIX, tags=["Macro"])
    application.include_router(policy.router, prefix=API_PREFIX, tags=["Policy"])
    application.include_router(portfolio.router, prefix=API_PREFIX, tags=["Portfolio"])
    application.include_router(stats.router, prefix=API_PREFIX, tags=["Stats"])
    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
    )
