"""
Portfolio Analytics Engine

Scores a set of holdings:
- asset allocation (percent of current value per investment type)
- risk score in [1, 10] from a per-type risk coefficient table
- expected annual return from a per-type return table
- Sharpe ratio against a fixed risk-free rate
- diversification score from the Herfindahl-Hirschman index
- whether the portfolio needs rebalancing

Both coefficient tables are keyed by InvestmentType and are exhaustive;
a missing entry fails at import time rather than defaulting silently.

An empty or zero-value portfolio is not an error. analyze() returns the
zero result for it.
"""

from decimal import Decimal
from typing import Iterable, Optional

from finplan.config import PlanningSettings, get_settings
from finplan.models.analysis import PortfolioAnalysis, RiskLevel
from finplan.models.records import Investment, InvestmentType


# Risk on a 1-10 scale
RISK_COEFFICIENTS: dict[InvestmentType, float] = {
    InvestmentType.EQUITY: 8.0,
    InvestmentType.STOCKS: 8.0,
    InvestmentType.MF_GROWTH: 7.0,
    InvestmentType.MF_DIVIDEND: 6.0,
    InvestmentType.SIP: 7.0,
    InvestmentType.PPF: 1.0,
    InvestmentType.EPF: 1.0,
    InvestmentType.NPS_T1: 5.0,
    InvestmentType.NPS_T2: 5.0,
    InvestmentType.FD: 1.0,
    InvestmentType.RD: 1.0,
    InvestmentType.BONDS: 3.0,
    InvestmentType.GOLD: 5.0,
    InvestmentType.GOLD_COIN: 5.0,
    InvestmentType.GOLD_ETF: 5.0,
    InvestmentType.SGB: 4.0,
    InvestmentType.OTHERS: 5.0,
}

# Expected annual return in percent
EXPECTED_RETURNS: dict[InvestmentType, float] = {
    InvestmentType.EQUITY: 12.0,
    InvestmentType.STOCKS: 12.0,
    InvestmentType.MF_GROWTH: 11.0,
    InvestmentType.MF_DIVIDEND: 10.0,
    InvestmentType.SIP: 11.0,
    InvestmentType.PPF: 7.1,
    InvestmentType.EPF: 8.25,
    InvestmentType.NPS_T1: 10.0,
    InvestmentType.NPS_T2: 9.0,
    InvestmentType.FD: 6.5,
    InvestmentType.RD: 6.5,
    InvestmentType.BONDS: 7.0,
    InvestmentType.GOLD: 8.0,
    InvestmentType.GOLD_COIN: 8.0,
    InvestmentType.GOLD_ETF: 8.0,
    InvestmentType.SGB: 8.5,
    InvestmentType.OTHERS: 6.0,
}

# Broad asset classes for the age-based glide path
EQUITY_TYPES = frozenset({
    InvestmentType.EQUITY,
    InvestmentType.STOCKS,
    InvestmentType.MF_GROWTH,
    InvestmentType.MF_DIVIDEND,
    InvestmentType.SIP,
    InvestmentType.NPS_T1,
    InvestmentType.NPS_T2,
})
DEBT_TYPES = frozenset({
    InvestmentType.PPF,
    InvestmentType.EPF,
    InvestmentType.FD,
    InvestmentType.RD,
    InvestmentType.BONDS,
})
GOLD_TYPES = frozenset({
    InvestmentType.GOLD,
    InvestmentType.GOLD_COIN,
    InvestmentType.GOLD_ETF,
    InvestmentType.SGB,
})

for _table in (RISK_COEFFICIENTS, EXPECTED_RETURNS):
    _missing = set(InvestmentType) - set(_table)
    if _missing:
        raise RuntimeError(f"Coefficient table missing investment types: {sorted(_missing)}")


class InsufficientDataError(Exception):
    """The portfolio has no holdings or no current value to weight by."""
    pass


def glide_path_target(age: int) -> dict[str, float]:
    """Target equity/debt/gold split (percent) for the given age."""
    if age <= 35:
        return {"equity": 70.0, "debt": 20.0, "gold": 10.0}
    if age <= 50:
        return {"equity": 60.0, "debt": 30.0, "gold": 10.0}
    return {"equity": 40.0, "debt": 50.0, "gold": 10.0}


def asset_class_split(investments: Iterable[Investment]) -> dict[str, float]:
    """
    Current equity/debt/gold/other split in percent of current value.

    Returns all zeros for an empty or zero-value portfolio.
    """
    totals = {"equity": Decimal("0"), "debt": Decimal("0"), "gold": Decimal("0"), "other": Decimal("0")}
    for inv in investments:
        if inv.type in EQUITY_TYPES:
            totals["equity"] += inv.current_value
        elif inv.type in DEBT_TYPES:
            totals["debt"] += inv.current_value
        elif inv.type in GOLD_TYPES:
            totals["gold"] += inv.current_value
        else:
            totals["other"] += inv.current_value

    grand_total = sum(totals.values(), Decimal("0"))
    if grand_total <= 0:
        return {name: 0.0 for name in totals}
    return {name: float(value / grand_total * 100) for name, value in totals.items()}


class PortfolioAnalyzer:
    """Stateless portfolio scorer."""

    def __init__(self, settings: Optional[PlanningSettings] = None):
        self._settings = settings or get_settings().planning

    def analyze(self, investments: Iterable[Investment]) -> PortfolioAnalysis:
        """Score the holdings. Never raises on empty input."""
        holdings = list(investments)
        try:
            weights = self.weights(holdings)
        except InsufficientDataError:
            return PortfolioAnalysis()

        risk_score = self._clamp(
            sum(RISK_COEFFICIENTS[t] * w / 100 for t, w in weights.items()),
            1.0,
            10.0,
        )
        expected_return = sum(EXPECTED_RETURNS[t] * w / 100 for t, w in weights.items())

        return PortfolioAnalysis(
            total_value=sum((inv.current_value for inv in holdings), Decimal("0")),
            total_invested=sum((inv.invested_value for inv in holdings), Decimal("0")),
            asset_allocation={t.value: w for t, w in weights.items()},
            risk_score=risk_score,
            risk_level=self.risk_level(risk_score),
            expected_return=expected_return,
            sharpe_ratio=self.sharpe_ratio(expected_return, risk_score),
            diversification_score=self.diversification_score(weights.values()),
            rebalance_needed=self.needs_rebalance(weights.values()),
        )

    def weights(self, investments: list[Investment]) -> dict[InvestmentType, float]:
        """
        Percent of total current value held in each investment type.

        Raises:
            InsufficientDataError: If there are no holdings or the total is not positive
        """
        if not investments:
            raise InsufficientDataError("No investments to analyze")

        by_type: dict[InvestmentType, Decimal] = {}
        for inv in investments:
            by_type[inv.type] = by_type.get(inv.type, Decimal("0")) + inv.current_value

        total = sum(by_type.values(), Decimal("0"))
        if total <= 0:
            raise InsufficientDataError("Portfolio has no current value")

        return {t: float(value / total * 100) for t, value in by_type.items()}

    def sharpe_ratio(self, expected_return: float, risk_score: float) -> float:
        denominator = risk_score * 2
        if denominator == 0:
            return 0.0
        return (expected_return - self._settings.risk_free_rate) / denominator

    @staticmethod
    def diversification_score(weights: Iterable[float]) -> float:
        """
        100 * (1 - HHI / 10000), weights in percent.

        A single holding (HHI = 10000) scores 0.
        """
        hhi = sum(w * w for w in weights)
        if hhi == 0:
            return 0.0
        return PortfolioAnalyzer._clamp(100 * (1 - hhi / 10000), 0.0, 100.0)

    def needs_rebalance(self, weights: Iterable[float]) -> bool:
        """Any position too concentrated, or too thin to be deliberate."""
        return any(
            w > self._settings.concentration_threshold
            or 0 < w < self._settings.thin_position_threshold
            for w in weights
        )

    @staticmethod
    def risk_level(risk_score: float) -> RiskLevel:
        if risk_score < 4:
            return RiskLevel.LOW
        if risk_score < 7:
            return RiskLevel.MEDIUM
        return RiskLevel.HIGH

    @staticmethod
    def _clamp(value: float, low: float, high: float) -> float:
        return max(low, min(high, value))
