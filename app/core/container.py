"""
Service wiring
Builds every engine once from a loaded ConfigEngine and stores it on app.state.
"""

from typing import Optional

from fastapi import FastAPI

from app.config import Settings
from app.domain.services.action_policy_engine import ActionPolicyEngine
from app.domain.services.config_engine import ConfigEngine
from app.domain.services.confirmation_engine import ConfirmationEngine
from app.domain.services.engine_catalog import EngineCatalog
from app.domain.services.macro_state_engine import MacroStateEngine
from app.domain.services.portfolio_engine import PortfolioEngine
from app.domain.services.scoring_engine import ScoringEngine
from app.domain.services.suggested_moves_engine import SuggestedMovesEngine
from app.infrastructure.market_data.coingecko_client import CoinGeckoClient
from app.infrastructure.market_data.fred_client import FredClient
from app.services.macro_input_provider import MacroInputProvider
from app.services.macro_pipeline import MacroPipeline


def build_provider(config_engine: ConfigEngine, settings: Settings) -> MacroInputProvider:
    return MacroInputProvider(
        fred=FredClient(
            base_url=settings.FRED_BASE_URL,
            api_key=settings.FRED_API_KEY,
            timeout_seconds=settings.HTTP_TIMEOUT_SECONDS,
        ),
        coingecko=CoinGeckoClient(
            base_url=settings.COINGECKO_BASE_URL,
            timeout_seconds=settings.HTTP_TIMEOUT_SECONDS,
        ),
        macro_config=config_engine.get_app_setting("macro_data"),
        use_mock=settings.MOCK_MACRO_DATA,
    )


def configure_app_state(
    app: FastAPI,
    config_engine: ConfigEngine,
    settings: Settings,
    provider: Optional[MacroInputProvider] = None,
) -> MacroPipeline:
    """Attach config, catalog, engines and pipeline to app.state"""
    catalog = EngineCatalog(config_engine.engines)
    portfolio_engine = PortfolioEngine(config_engine.portfolio, catalog)
    policy_engine = ActionPolicyEngine(
        settings=config_engine.get_policy_setting("action_policy"),
        portfolio_config=config_engine.portfolio,
        catalog=catalog,
    )
    pipeline = MacroPipeline(
        provider=provider or build_provider(config_engine, settings),
        scoring_engine=ScoringEngine(config_engine.scoring_rules, catalog),
        macro_state_engine=MacroStateEngine(config_engine.get_policy_setting("macro_state")),
        confirmation_engine=ConfirmationEngine(config_engine.get_policy_setting("confirmations")),
        policy_engine=policy_engine,
        moves_engine=SuggestedMovesEngine(
            config_engine.get_policy_setting("suggested_moves"), policy_engine,
        ),
        portfolio_engine=portfolio_engine,
        layer_targets=config_engine.portfolio.layer_targets(),
    )

    app.state.settings = settings
    app.state.config_engine = config_engine
    app.state.engine_catalog = catalog
    app.state.portfolio_engine = portfolio_engine
    app.state.macro_pipeline = pipeline
    return pipeline
