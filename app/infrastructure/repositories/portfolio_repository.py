"""
Portfolio Repository
Portfolio <-> JSON document under one namespaced key of a KeyValueStore.
Decimals are written as strings so a save/load round-trip is lossless.
"""

import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from app.domain.errors import PortfolioStoreError
from app.domain.models import (
    AccountType,
    AssetType,
    EngineId,
    Holding,
    Portfolio,
    TargetBand,
)
from app.infrastructure.store.types import KeyValueStore
from app.utils.time import parse_iso, to_iso

logger = logging.getLogger(__name__)


class PortfolioRepository:
    """Repository for the single stored portfolio"""

    def __init__(self, store: KeyValueStore, key: str):
        self.store = store
        self.key = key

    async def load(self) -> Optional[Portfolio]:
        raw = await self.store.get(self.key)
        if raw is None:
            return None
        try:
            record = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise PortfolioStoreError(f"Stored portfolio under '{self.key}' is not valid JSON") from exc
        return self._to_domain(record)

    async def save(self, portfolio: Portfolio) -> None:
        await self.store.set(self.key, json.dumps(self._to_record(portfolio)))
        logger.debug(f"Portfolio saved under '{self.key}' ({len(portfolio.holdings)} holdings)")

    async def clear(self) -> None:
        await self.store.delete(self.key)

    @staticmethod
    def _to_record(portfolio: Portfolio) -> Dict[str, Any]:
        custom = None
        if portfolio.custom_targets is not None:
            custom = {
                engine.value: {
                    "min": str(band.min_pct),
                    "target": str(band.target_pct),
                    "max": str(band.max_pct),
                }
                for engine, band in portfolio.custom_targets.items()
            }
        return {
            "holdings": [
                {
                    "id": h.id,
                    "ticker": h.ticker,
                    "account": h.account.value,
                    "weightPct": str(h.weight_pct),
                    "notes": h.notes,
                    "name": h.name,
                    "assetType": h.asset_type.value if h.asset_type else None,
                    "sector": h.sector,
                    "engineOverride": h.engine_override.value if h.engine_override else None,
                }
                for h in portfolio.holdings
            ],
            "customTargets": custom,
            "useDemoHoldings": portfolio.use_demo_holdings,
            "updatedAt": to_iso(portfolio.updated_at),
        }

    @staticmethod
    def _to_domain(record: Dict[str, Any]) -> Portfolio:
        """Convert stored record to domain model"""
        try:
            holdings = tuple(
                Holding(
                    id=row["id"],
                    ticker=row["ticker"],
                    account=AccountType(row["account"]),
                    weight_pct=Decimal(row["weightPct"]),
                    notes=row.get("notes"),
                    name=row.get("name"),
                    asset_type=AssetType(row["assetType"]) if row.get("assetType") else None,
                    sector=row.get("sector"),
                    engine_override=EngineId(row["engineOverride"]) if row.get("engineOverride") else None,
                )
                for row in record.get("holdings", [])
            )
            custom = record.get("customTargets")
            custom_targets = None
            if custom is not None:
                custom_targets = {
                    EngineId(engine): TargetBand(
                        min_pct=Decimal(band["min"]),
                        target_pct=Decimal(band["target"]),
                        max_pct=Decimal(band["max"]),
                    )
                    for engine, band in custom.items()
                }
            return Portfolio(
                holdings=holdings,
                updated_at=parse_iso(record["updatedAt"]),
                use_demo_holdings=bool(record.get("useDemoHoldings", False)),
                custom_targets=custom_targets,
            )
        except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
            raise PortfolioStoreError(f"Stored portfolio record is malformed: {exc}") from exc
