# app/services/portfolio_service.py

import logging
import uuid
from dataclasses import replace
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from app.domain.errors import HoldingNotFoundError
from app.domain.models import (
    AccountType,
    AssetType,
    EngineId,
    Holding,
    Portfolio,
    TargetBand,
)
from app.infrastructure.repositories.portfolio_repository import PortfolioRepository
from app.utils.time import utc_now

logger = logging.getLogger(__name__)

REQUIRED_HOLDING_FIELDS = ("ticker", "account", "weight_pct")


def new_holding_id() -> str:
    return uuid.uuid4().hex[:12]


def holding_from_row(row: Mapping[str, Any], holding_id: Optional[str] = None) -> Holding:
    """Build a Holding from a YAML / request row (snake_case keys)"""
    return Holding(
        id=holding_id or row.get("id") or new_holding_id(),
        ticker=str(row["ticker"]),
        account=AccountType(str(row["account"])),
        weight_pct=Decimal(str(row["weight_pct"])),
        notes=row.get("notes"),
        name=row.get("name"),
        asset_type=AssetType(row["asset_type"]) if row.get("asset_type") else None,
        sector=row.get("sector"),
        engine_override=EngineId(row["engine_override"]) if row.get("engine_override") else None,
    )


class PortfolioService:
    """Read-modify-write operations on the stored portfolio"""

    def __init__(self, repository: PortfolioRepository, demo_rows: Sequence[Mapping[str, Any]]):
        self.repository = repository
        self._demo = tuple(
            holding_from_row(row, holding_id=f"demo-{i}")
            for i, row in enumerate(demo_rows, start=1)
        )

    @property
    def demo_holdings(self) -> Tuple[Holding, ...]:
        return self._demo

    async def get_portfolio(self) -> Portfolio:
        portfolio = await self.repository.load()
        if portfolio is None:
            return Portfolio(holdings=(), updated_at=utc_now())
        return portfolio

    def active_holdings(self, portfolio: Portfolio) -> Tuple[Holding, ...]:
        """Holdings to analyze: the demo book while demo mode is on"""
        return self._demo if portfolio.use_demo_holdings else portfolio.holdings

    async def save_portfolio(self, portfolio: Portfolio) -> Portfolio:
        portfolio = replace(portfolio, updated_at=utc_now())
        await self.repository.save(portfolio)
        return portfolio

    async def update_holdings(self, holdings: Sequence[Holding]) -> Portfolio:
        portfolio = await self.get_portfolio()
        logger.info(f"💼 Replacing holdings ({len(holdings)} positions)")
        return await self.save_portfolio(replace(portfolio, holdings=tuple(holdings)))

    async def update_targets(self, custom_targets: Optional[Dict[EngineId, TargetBand]]) -> Portfolio:
        portfolio = await self.get_portfolio()
        return await self.save_portfolio(replace(portfolio, custom_targets=custom_targets or None))

    async def add_holding(self, holding: Holding) -> Portfolio:
        portfolio = await self.get_portfolio()
        logger.info(f"➕ Adding holding {holding.ticker} ({holding.weight_pct}%)")
        return await self.save_portfolio(replace(portfolio, holdings=portfolio.holdings + (holding,)))

    async def update_holding(self, holding_id: str, changes: Mapping[str, Any]) -> Portfolio:
        """Apply field changes to one holding; unknown fields raise ValueError"""
        portfolio = await self.get_portfolio()
        updated: List[Holding] = []
        found = False
        for h in portfolio.holdings:
            if h.id == holding_id:
                unknown = set(changes) - set(Holding.__dataclass_fields__) - {"id"}
                if unknown:
                    raise ValueError(f"Unknown holding fields: {sorted(unknown)}")
                nulled = sorted(f for f in REQUIRED_HOLDING_FIELDS if f in changes and changes[f] is None)
                if nulled:
                    raise ValueError(f"Required holding fields cannot be null: {nulled}")
                h = replace(h, **{k: v for k, v in changes.items() if k != "id"})
                found = True
            updated.append(h)
        if not found:
            raise HoldingNotFoundError(holding_id)
        return await self.save_portfolio(replace(portfolio, holdings=tuple(updated)))

    async def remove_holding(self, holding_id: str) -> Portfolio:
        portfolio = await self.get_portfolio()
        remaining = tuple(h for h in portfolio.holdings if h.id != holding_id)
        if len(remaining) == len(portfolio.holdings):
            raise HoldingNotFoundError(holding_id)
        logger.info(f"➖ Removed holding {holding_id}")
        return await self.save_portfolio(replace(portfolio, holdings=remaining))

    async def reset_to_defaults(self) -> Portfolio:
        """Replace holdings with a fresh copy of the demo book and drop custom targets"""
        holdings = tuple(replace(h, id=new_holding_id()) for h in self._demo)
        logger.info("🔄 Portfolio reset to demo holdings")
        return await self.save_portfolio(
            Portfolio(holdings=holdings, updated_at=utc_now(), use_demo_holdings=False, custom_targets=None)
        )

    async def toggle_demo_mode(self, enabled: bool) -> Portfolio:
        portfolio = await self.get_portfolio()
        return await self.save_portfolio(replace(portfolio, use_demo_holdings=enabled))

    async def clear(self) -> None:
        await self.repository.clear()
        logger.info("🗑️ Stored portfolio cleared")
