"""
ENGINE CATALOG
Static registry of the 12 economic engines
"""

from typing import Dict, List, Optional, Union

from app.domain.models import Engine, EngineId, PortfolioLayer, TargetBand


class EngineCatalog:
    """Read-only lookup over the configured engines"""

    def __init__(self, engines: tuple[Engine, ...]):
        self._engines = tuple(engines)
        self._by_id: Dict[EngineId, Engine] = {engine.id: engine for engine in self._engines}

    def list_engines(self) -> List[Engine]:
        """All engines in configuration order"""
        return list(self._engines)

    def get_engine(self, engine_id: Union[EngineId, str]) -> Optional[Engine]:
        """Engine for the id, or None when the id is not in the catalog"""
        try:
            key = EngineId(engine_id)
        except ValueError:
            return None
        return self._by_id.get(key)

    def layer_for(self, engine_id: EngineId) -> PortfolioLayer:
        return self._by_id[engine_id].layer

    def default_targets(self) -> Dict[EngineId, TargetBand]:
        return {engine.id: engine.default_target for engine in self._engines}
