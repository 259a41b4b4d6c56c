"""
CONFIG ENGINE (ENGINE-0)
Load, validate, and expose system configuration

RESPONSIBILITIES:
- Load YAML configuration files (engines, scoring, portfolio, policy, app)
- Validate configuration integrity
- Expose read-only typed objects

RULES:
❌ No defaults if config missing
❌ No hardcoded thresholds in engines
✅ Fail fast on invalid config
✅ Deterministic output
"""

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from app.domain.models import (
    AssetType,
    Engine,
    EngineDrivers,
    EngineId,
    PortfolioLayer,
    Regime,
    TargetBand,
)
from app.domain.strategy.rule_interpreter import validate_condition


def _band(data: Dict[str, Any]) -> TargetBand:
    return TargetBand(
        min_pct=Decimal(str(data["min"])),
        target_pct=Decimal(str(data["target"])),
        max_pct=Decimal(str(data["max"])),
    )


@dataclass(frozen=True)
class LayerConfig:
    """One of the five portfolio layers"""
    layer: PortfolioLayer
    short_name: str
    description: str
    target: TargetBand
    example_tickers: Tuple[str, ...]
    tickers: Tuple[str, ...]


@dataclass(frozen=True)
class PortfolioConfig:
    """Classification tables, layer model and demo book"""
    weight_tolerance_pct: Decimal
    ticker_engines: Dict[str, EngineId]
    asset_type_engines: Dict[AssetType, EngineId]
    sector_engines: Tuple[Tuple[Tuple[str, ...], EngineId], ...]
    default_engine: EngineId
    risk_weights: Dict[str, Dict[EngineId, Decimal]]
    top_movers: int
    layers: Tuple[LayerConfig, ...]
    demo_holdings: Tuple[Dict[str, Any], ...]

    def layer_targets(self) -> Dict[PortfolioLayer, TargetBand]:
        return {cfg.layer: cfg.target for cfg in self.layers}

    def ticker_layers(self) -> Dict[str, PortfolioLayer]:
        return {ticker: cfg.layer for cfg in self.layers for ticker in cfg.tickers}

    def get_layer(self, layer: PortfolioLayer) -> LayerConfig:
        for cfg in self.layers:
            if cfg.layer == layer:
                return cfg
        raise ValueError(f"Layer not configured: {layer}")


class ConfigEngine:
    """
    Configuration Engine
    Single source of truth for all system configuration
    """

    def __init__(self, config_dir: Path):
        """Initialize with config directory"""
        self.config_dir = Path(config_dir)
        self._engines: Optional[Tuple[Engine, ...]] = None
        self._scoring: Optional[Dict[str, Any]] = None
        self._portfolio: Optional[PortfolioConfig] = None
        self._policy: Optional[Dict[str, Any]] = None
        self._app_config: Optional[Dict[str, Any]] = None

    def load_all(self) -> None:
        """Load all configuration files"""
        self._load_engines()
        self._load_scoring()
        self._load_portfolio()
        self._load_policy()
        self._load_app_config()
        self._validate_all()

    def _read_yaml(self, filename: str) -> Dict[str, Any]:
        path = self.config_dir / filename
        if not path.exists():
            raise FileNotFoundError(f"Config not found: {path}")
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Config file is empty or not a mapping: {path}")
        return data

    def _load_engines(self) -> None:
        """Load engine catalog from engines.yml"""
        data = self._read_yaml("engines.yml")

        engines = []
        for entry in data.get("engines", []):
            drivers = entry.get("macro_drivers", {})
            engines.append(Engine(
                id=EngineId(entry["id"]),
                label=entry["label"],
                short_definition=entry["short_definition"],
                description=entry["description"],
                layer=PortfolioLayer(entry["layer"]),
                examples=tuple(str(x) for x in entry.get("examples", [])),
                what_wins=tuple(entry.get("what_wins", [])),
                macro_drivers=EngineDrivers(
                    helps=tuple(drivers.get("helps", [])),
                    hurts=tuple(drivers.get("hurts", [])),
                ),
                default_target=_band(entry["default_target"]),
            ))

        ids = [engine.id for engine in engines]
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate engine ids found in configuration")
        missing = set(EngineId) - set(ids)
        if missing:
            raise ValueError(f"Engines missing from catalog: {sorted(m.value for m in missing)}")

        self._engines = tuple(engines)

    def _load_scoring(self) -> None:
        """Load scoring rules and regime table from scoring.yml"""
        self._scoring = self._read_yaml("scoring.yml")

    def _load_portfolio(self) -> None:
        """Load classification tables and layers from portfolio.yml"""
        data = self._read_yaml("portfolio.yml")
        section = data["portfolio"]

        ticker_engines: Dict[str, EngineId] = {}
        for engine_id, tickers in section["ticker_engines"].items():
            for ticker in tickers:
                ticker = str(ticker).upper()
                if ticker in ticker_engines:
                    raise ValueError(f"Ticker mapped to two engines: {ticker}")
                ticker_engines[ticker] = EngineId(engine_id)

        layers = tuple(
            LayerConfig(
                layer=PortfolioLayer(entry["layer"]),
                short_name=entry["short_name"],
                description=entry["description"],
                target=_band(entry["target"]),
                example_tickers=tuple(str(t) for t in entry["example_tickers"]),
                tickers=tuple(str(t).upper() for t in entry.get("tickers", [])),
            )
            for entry in data["layers"]
        )

        self._portfolio = PortfolioConfig(
            weight_tolerance_pct=Decimal(str(section["weight_tolerance_pct"])),
            ticker_engines=ticker_engines,
            asset_type_engines={
                AssetType(k): EngineId(v) for k, v in section["asset_type_engines"].items()
            },
            sector_engines=tuple(
                (tuple(k.lower() for k in row["keywords"]), EngineId(row["engine"]))
                for row in section["sector_engines"]
            ),
            default_engine=EngineId(section["default_engine"]),
            risk_weights={
                bucket: {EngineId(k): Decimal(str(v)) for k, v in weights.items()}
                for bucket, weights in section["risk_weights"].items()
            },
            top_movers=int(section["top_movers"]),
            layers=layers,
            demo_holdings=tuple(data.get("demo_holdings", [])),
        )

    def _load_policy(self) -> None:
        """Load macro state, policy and confirmation thresholds from policy.yml"""
        self._policy = self._read_yaml("policy.yml")

    def _load_app_config(self) -> None:
        """Load macro data acquisition settings from app.yml"""
        self._app_config = self._read_yaml("app.yml")

    def _validate_all(self) -> None:
        """Validate cross-file integrity"""
        engine_rules = self._scoring.get("engines", {})
        for engine_id in EngineId:
            if engine_id.value not in engine_rules:
                raise ValueError(f"No scoring rules for engine: {engine_id.value}")
        for engine_key, spec in engine_rules.items():
            EngineId(engine_key)
            for section in ("rules", "gates", "cautions", "confidence_boosts"):
                for i, entry in enumerate(spec.get(section, [])):
                    validate_condition(entry.get("when"), f"scoring.{engine_key}.{section}[{i}]")
                    if section != "confidence_boosts" and "reason" not in entry:
                        raise ValueError(f"scoring.{engine_key}.{section}[{i}]: missing reason")

        regimes = self._scoring.get("regimes", [])
        if not regimes or regimes[-1].get("when"):
            raise ValueError("Regime table must end with an unconditional default row")
        for i, row in enumerate(regimes):
            Regime(row["regime"])
            validate_condition(row.get("when"), f"scoring.regimes[{i}]")

        configured_layers = {cfg.layer for cfg in self._portfolio.layers}
        if configured_layers != set(PortfolioLayer):
            raise ValueError("portfolio.yml must configure every portfolio layer exactly once")

        targets = sum((cfg.target.target_pct for cfg in self._portfolio.layers), Decimal("0"))
        if targets != Decimal("100"):
            raise ValueError(f"Layer targets must sum to 100, got {targets}")

        fallbacks = self.get_app_setting("macro_data", "fallbacks")
        mock = self.get_app_setting("macro_data", "mock_inputs")
        for name in ("btc_price", "hy_oas", "vix"):
            if name not in fallbacks or name not in mock:
                raise ValueError(f"app.yml macro_data is missing '{name}'")

    # Public getters

    @property
    def engines(self) -> Tuple[Engine, ...]:
        """Engine catalog in display order"""
        if self._engines is None:
            raise RuntimeError("Config not loaded. Call load_all() first")
        return self._engines

    @property
    def portfolio(self) -> PortfolioConfig:
        if self._portfolio is None:
            raise RuntimeError("Config not loaded. Call load_all() first")
        return self._portfolio

    @property
    def scoring_rules(self) -> Dict[str, Any]:
        if self._scoring is None:
            raise RuntimeError("Config not loaded. Call load_all() first")
        return self._scoring

    def get_policy_setting(self, *keys) -> Any:
        """Get policy setting by nested keys"""
        if self._policy is None:
            raise RuntimeError("Config not loaded. Call load_all() first")

        value = self._policy
        for key in keys:
            value = value[key]
        return value

    def get_app_setting(self, *keys) -> Any:
        """Get app setting by nested keys"""
        if self._app_config is None:
            raise RuntimeError("Config not loaded. Call load_all() first")

        value = self._app_config
        for key in keys:
            value = value[key]
        return value

    def demo_holding_rows(self) -> List[Dict[str, Any]]:
        return [dict(row) for row in self.portfolio.demo_holdings]
