"""
MACRO STATE ENGINE (ENGINE-3)
Turn a macro snapshot into composites and a traffic-light alert

RESPONSIBILITIES:
- Normalize inputs into growth / inflation / credit stress / liquidity composites
- Evaluate RED and YELLOW alert conditions
- Apply funding-market (microstress) gating to the alert

RULES:
❌ No portfolio decisions
✅ Thresholds from policy.yml only
✅ More stress never lowers the alert level
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from app.domain.models import (
    AlertLevel,
    MacroCase,
    MacroComposites,
    MacroInputs,
    MacroState,
    MicrostressConfirmation,
)

logger = logging.getLogger(__name__)


class MacroStateEngine:
    """
    Macro State Engine
    Computes alert context; the regime itself comes from the scoring engine
    """

    def __init__(self, settings: Mapping[str, Any]):
        self._composites = settings["composites"]
        self._trend_bias = settings["inflation_trend_bias"]
        self._red = settings["alerts"]["red"]
        self._yellow = settings["alerts"]["yellow"]

    def build_state(
        self,
        inputs: MacroInputs,
        macro_case: MacroCase,
        microstress: Optional[MicrostressConfirmation] = None,
    ) -> MacroState:
        """
        Build the macro state consumed by the action policy

        Args:
            inputs: Macro snapshot
            macro_case: Regime classification for the same snapshot
            microstress: Optional funding-market confirmation used for gating
        """
        composites = self.compute_composites(inputs)
        level, reasons = self.evaluate_alert(inputs, composites)

        if microstress is not None:
            level, gating_reason = self.apply_microstress_gating(level, microstress.level)
            if gating_reason:
                reasons.append(gating_reason)

        return MacroState(
            regime=macro_case.regime,
            alert_level=level,
            composites=composites,
            alert_reasons=tuple(reasons),
            hy_oas=inputs.hy_oas,
        )

    def compute_composites(self, inputs: MacroInputs) -> MacroComposites:
        inflation = self._composite("inflation", inputs)
        inflation += float(self._trend_bias[inputs.inflation_trend.value])
        return MacroComposites(
            growth=round(self._composite("growth", inputs), 4),
            inflation=round(inflation, 4),
            credit_stress=round(self._composite("credit_stress", inputs), 4),
            liquidity_impulse=round(self._composite("liquidity_impulse", inputs), 4),
        )

    def _composite(self, name: str, inputs: MacroInputs) -> float:
        anchors: Dict[str, Dict[str, float]] = self._composites[name]
        scores = [
            (getattr(inputs, field) - float(a["center"])) / float(a["scale"])
            for field, a in anchors.items()
        ]
        return sum(scores) / len(scores)

    def evaluate_alert(
        self,
        inputs: MacroInputs,
        composites: MacroComposites,
    ) -> Tuple[AlertLevel, List[str]]:
        """RED if any red condition holds, else YELLOW if any yellow one does"""
        red: List[str] = []
        if inputs.hy_oas >= self._red["hy_oas"]:
            red.append(f"Credit stress: HY OAS at {inputs.hy_oas:g}bp (threshold: {self._red['hy_oas']}bp)")
        if composites.liquidity_impulse <= self._red["liquidity_impulse"]:
            red.append(
                f"Severe liquidity drain: z={composites.liquidity_impulse:.2f} "
                f"(threshold: {self._red['liquidity_impulse']})"
            )
        if inputs.vix >= self._red["vix"]:
            red.append(f"Volatility shock: VIX at {inputs.vix:g}")
        if red:
            return AlertLevel.RED, red

        yellow: List[str] = []
        if inputs.hy_oas >= self._yellow["hy_oas"]:
            yellow.append(f"Credit spreads widening: HY OAS at {inputs.hy_oas:g}bp")
        if composites.inflation >= self._yellow["inflation_composite"]:
            yellow.append(f"Elevated inflation pressure: z={composites.inflation:.2f}")
        if composites.liquidity_impulse <= self._yellow["liquidity_impulse"]:
            yellow.append(f"Liquidity tightening: z={composites.liquidity_impulse:.2f}")
        if inputs.vix >= self._yellow["vix"]:
            yellow.append(f"Elevated volatility: VIX at {inputs.vix:g}")
        if inputs.nominal_rate_10y >= self._yellow["nominal_rate_10y"]:
            yellow.append(f"High rate regime: 10Y at {inputs.nominal_rate_10y:.2f}%")
        if yellow:
            return AlertLevel.YELLOW, yellow

        return AlertLevel.GREEN, ["No major macro warnings detected"]

    @staticmethod
    def apply_microstress_gating(
        level: AlertLevel,
        microstress_level: AlertLevel,
    ) -> Tuple[AlertLevel, Optional[str]]:
        """
        Funding stress can only raise the alert:
        RED microstress blocks a GREEN alert, YELLOW microstress bumps GREEN to YELLOW.
        """
        if level != AlertLevel.GREEN or microstress_level == AlertLevel.GREEN:
            return level, None
        if microstress_level == AlertLevel.RED:
            logger.info("Microstress RED gated a GREEN alert to YELLOW")
            return AlertLevel.YELLOW, "Funding market stress prevents GREEN alert (gated to YELLOW)"
        return AlertLevel.YELLOW, "Funding market caution signals bump alert to YELLOW"
