"""
CONFIRMATION ENGINE (ENGINE-4)
Secondary signals that confirm or veto the macro read

RESPONSIBILITIES:
- Bitcoin trend level from a price history (or from the snapshot alone)
- Equity breadth signal (confirms / neutral / diverges)
- Funding-market microstress level

RULES:
❌ No regime classification
❌ No portfolio decisions
✅ Missing data degrades to fewer reasons, never to an exception
"""

from typing import Any, List, Mapping, Optional, Sequence

from app.domain.indicators import statistics, trend
from app.domain.models import (
    AlertLevel,
    BitcoinConfirmation,
    BreadthConfirmation,
    BreadthSignal,
    MacroInputs,
    MicrostressConfirmation,
    MicrostressMetrics,
)

_DOWNGRADE = {
    AlertLevel.GREEN: AlertLevel.YELLOW,
    AlertLevel.YELLOW: AlertLevel.RED,
    AlertLevel.RED: AlertLevel.RED,
}


class ConfirmationEngine:
    """
    Confirmation Engine
    Pure analyzers; thresholds come from policy.yml `confirmations`
    """

    def __init__(self, settings: Mapping[str, Any]):
        self._btc = settings["bitcoin"]
        self._breadth = settings["breadth"]
        self._micro = settings["microstress"]

    # ------------------------------------------------------------
    # Bitcoin
    # ------------------------------------------------------------

    def analyze_bitcoin_trend(self, prices: Sequence[float]) -> BitcoinConfirmation:
        """
        Trend level from daily closes (oldest first)

        GREEN: above the 200D average with a golden cross or a strong lead
        YELLOW: near the average, or above it without confirmation
        RED: well below the average
        High volatility and weak momentum each downgrade one level.
        """
        cfg = self._btc
        periods = cfg["ma_periods"]
        reasons: List[str] = []

        current = float(prices[-1]) if prices else None
        ma_20 = trend.moving_average(prices, periods["short"])
        ma_50 = trend.moving_average(prices, periods["medium"])
        ma_200 = trend.moving_average(prices, periods["long"])
        distance = trend.distance_from_ma(current, ma_200) if current is not None else None
        vol = trend.realized_vol(prices, cfg["vol_window"])
        momentum = trend.momentum(prices, cfg["momentum_window"])
        drawdown = trend.drawdown_from_high(prices, cfg["drawdown_window"])

        golden = ma_50 is not None and ma_200 is not None and ma_50 > ma_200
        death = ma_50 is not None and ma_200 is not None and ma_50 < ma_200

        level = self._distance_level(distance, golden, death, reasons)

        if vol is not None:
            if vol > cfg["high_vol_pct"]:
                if level == AlertLevel.GREEN:
                    level = AlertLevel.YELLOW
                reasons.append(f"High volatility ({vol:.0f}% annualized)")
            elif vol < cfg["low_vol_pct"]:
                reasons.append(f"Low volatility ({vol:.0f}% annualized)")

        if momentum is not None:
            if momentum > cfg["strong_momentum_pct"]:
                reasons.append(f"Strong momentum (+{momentum:.1f}% over {cfg['momentum_window']}d)")
            elif momentum < cfg["weak_momentum_pct"]:
                level = _DOWNGRADE[level]
                reasons.append(f"Weak momentum ({momentum:.1f}% over {cfg['momentum_window']}d)")

        if drawdown is not None and drawdown < cfg["notable_drawdown_pct"]:
            reasons.append(f"{abs(drawdown):.1f}% drawdown from {cfg['drawdown_window']}D high")

        return BitcoinConfirmation(
            trend_level=level,
            reasons=tuple(reasons),
            distance_from_200d_pct=distance,
            ma_20=ma_20,
            ma_50=ma_50,
            ma_200=ma_200,
            realized_vol_30d=vol,
            momentum_90d=momentum,
            drawdown_365d=drawdown,
        )

    def bitcoin_from_inputs(self, inputs: MacroInputs) -> BitcoinConfirmation:
        """Trend level from the snapshot's price and 200D average only"""
        reasons: List[str] = []
        distance = inputs.btc_distance_pct
        level = self._distance_level(distance, golden=False, death=False, reasons=reasons)
        return BitcoinConfirmation(
            trend_level=level,
            reasons=tuple(reasons),
            distance_from_200d_pct=distance,
            ma_200=inputs.btc_200dma,
        )

    def _distance_level(
        self,
        distance: Optional[float],
        golden: bool,
        death: bool,
        reasons: List[str],
    ) -> AlertLevel:
        cfg = self._btc
        if distance is None:
            reasons.append("Not enough history for a 200D average")
            return AlertLevel.YELLOW

        if distance > cfg["bullish_distance_pct"]:
            if golden or distance > cfg["strong_distance_pct"]:
                reasons.append(f"Price {distance:.1f}% above 200D MA (bullish)")
                if golden:
                    reasons.append("50D MA > 200D MA (golden cross)")
                return AlertLevel.GREEN
            reasons.append("Price above 200D MA without a golden cross")
            return AlertLevel.YELLOW

        if abs(distance) <= cfg["near_ma_pct"]:
            reasons.append(f"Price near 200D MA ({distance:+.1f}%)")
            return AlertLevel.YELLOW

        if distance < cfg["bearish_distance_pct"]:
            reasons.append(f"Price {abs(distance):.1f}% below 200D MA (bearish)")
            if death:
                reasons.append("50D MA < 200D MA (death cross)")
            return AlertLevel.RED

        reasons.append(f"Price {abs(distance):.1f}% below 200D MA (weakening)")
        return AlertLevel.YELLOW

    # ------------------------------------------------------------
    # Breadth
    # ------------------------------------------------------------

    def analyze_breadth(
        self,
        ad_line: Sequence[float] = (),
        pct_above_200d: Sequence[float] = (),
        new_highs_lows: Sequence[float] = (),
        vix: Optional[float] = None,
    ) -> BreadthConfirmation:
        """Score breadth evidence; +/-1.5 separates CONFIRMS / DIVERGES from NEUTRAL"""
        cfg = self._breadth
        reasons: List[str] = []
        level = AlertLevel.GREEN
        score = 0.0

        ad_momentum = statistics.pct_change(ad_line, cfg["momentum_lookback"])
        if ad_momentum is not None:
            if ad_momentum > cfg["ad_momentum_green"]:
                reasons.append(f"AD line rising ({ad_momentum:+.1f}% over {cfg['momentum_lookback']}d)")
                score += 1
            elif ad_momentum < cfg["ad_momentum_red"]:
                reasons.append(f"AD line declining ({ad_momentum:.1f}% over {cfg['momentum_lookback']}d)")
                score -= 1
                level = AlertLevel.RED
            else:
                reasons.append(f"AD line flat ({ad_momentum:+.1f}% over {cfg['momentum_lookback']}d)")

        if vix is not None:
            if vix < cfg["vix_low"]:
                reasons.append(f"Low volatility (VIX={vix:.1f}) supports breadth")
                score += 0.5
            elif vix > cfg["vix_high"]:
                reasons.append(f"Elevated volatility (VIX={vix:.1f}) hurts breadth")
                score -= 0.5
                level = max_level(level, AlertLevel.YELLOW)

        pct_above = float(pct_above_200d[-1]) if pct_above_200d else None
        if pct_above is not None:
            if pct_above >= cfg["pct_above_200_green"]:
                reasons.append(f"Healthy breadth: {pct_above:.0f}% above 200D MA")
                score += 1
            elif pct_above < cfg["pct_above_200_red"]:
                reasons.append(f"Weak breadth: only {pct_above:.0f}% above 200D MA")
                score -= 1
                level = AlertLevel.RED
            else:
                level = max_level(level, AlertLevel.YELLOW)

        net_highs = float(new_highs_lows[-1]) if new_highs_lows else None
        if net_highs is not None:
            if net_highs >= cfg["new_highs_lows_green"]:
                reasons.append(f"Positive new highs-lows: {net_highs:.0f}")
                score += 0.5
            elif net_highs < cfg["new_highs_lows_red"]:
                reasons.append(f"Negative new highs-lows: {net_highs:.0f}")
                score -= 0.5
                level = max_level(level, AlertLevel.YELLOW)

        if score >= cfg["confirms_at"]:
            signal = BreadthSignal.CONFIRMS
        elif score <= cfg["diverges_at"]:
            signal = BreadthSignal.DIVERGES
        else:
            signal = BreadthSignal.NEUTRAL

        return BreadthConfirmation(
            signal=signal,
            level=level,
            score=score,
            reasons=tuple([f"Breadth {signal.value}"] + reasons),
            ad_line_momentum=ad_momentum,
            pct_above_200d=pct_above,
            new_highs_minus_lows=net_highs,
        )

    # ------------------------------------------------------------
    # Microstress
    # ------------------------------------------------------------

    def analyze_microstress(self, metrics: MicrostressMetrics) -> MicrostressConfirmation:
        """Worst level across funding metrics; NFCI alone escalates no further than YELLOW"""
        labels = {
            "sofr_effr_spread": "SOFR-EFFR spread",
            "sofr_8w_change": "SOFR 8-week jump",
            "cp_8w_change": "Commercial paper 8-week jump",
            "ted_spread": "TED spread",
            "nfci": "Chicago Fed NFCI",
        }
        level = AlertLevel.GREEN
        reasons: List[str] = []

        for name, label in labels.items():
            value = getattr(metrics, name)
            if value is None:
                continue
            yellow, red = self._micro[name]
            if value >= red:
                hit = AlertLevel.YELLOW if name == "nfci" else AlertLevel.RED
                reasons.append(f"{label} at {value:.2f} (RED threshold {red})")
            elif value >= yellow:
                hit = AlertLevel.YELLOW
                reasons.append(f"{label} at {value:.2f} (YELLOW threshold {yellow})")
            else:
                continue
            level = max_level(level, hit)

        if level == AlertLevel.GREEN:
            reasons.append("Funding markets calm")
        return MicrostressConfirmation(level=level, reasons=tuple(reasons), metrics=metrics)


_SEVERITY = {AlertLevel.GREEN: 0, AlertLevel.YELLOW: 1, AlertLevel.RED: 2}


def max_level(a: AlertLevel, b: AlertLevel) -> AlertLevel:
    """The more severe of two levels"""
    return a if _SEVERITY[a] >= _SEVERITY[b] else b
