"""
Analysis and Output Models

These models carry the engine's computed results back to the caller:
- PortfolioAnalysis from the portfolio analytics engine
- Recommendation from the recommendation generator
- AllocationResult from the funding allocator

They are plain data with no embedded formatting. Currency and date
presentation is the caller's job.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class RecommendationType(str, Enum):
    """What area of the household's finances a recommendation is about."""
    PORTFOLIO = "portfolio"
    TAX = "tax"
    RISK = "risk"
    GOAL = "goal"
    CASH_FLOW = "cash_flow"


class Priority(str, Enum):
    """Recommendation priority. Sort order is high > medium > low."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}


class FundingPriority(str, Enum):
    """Urgency bucket the allocator assigns to an open goal."""
    HIGH = "High"
    MEDIUM = "Medium"


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


# =============================================================================
# PORTFOLIO
# =============================================================================

class PortfolioAnalysis(BaseModel):
    """
    Aggregate portfolio metrics.

    The zero result (empty or zero-value portfolio) has every score at 0
    and rebalance_needed False.
    """

    total_value: Decimal = Field(default=Decimal("0"))
    total_invested: Decimal = Field(default=Decimal("0"))
    asset_allocation: dict[str, float] = Field(
        default_factory=dict,
        description="Percentage of total current value per investment type"
    )
    risk_score: float = Field(default=0.0, ge=0.0, le=10.0)
    risk_level: RiskLevel = RiskLevel.LOW
    expected_return: float = Field(
        default=0.0,
        description="Expected annual return in percent"
    )
    sharpe_ratio: float = 0.0
    diversification_score: float = Field(default=0.0, ge=0.0, le=100.0)
    rebalance_needed: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.asset_allocation

    @property
    def max_weight(self) -> float:
        return max(self.asset_allocation.values(), default=0.0)


# =============================================================================
# RECOMMENDATIONS
# =============================================================================

class Recommendation(BaseModel):
    """
    A single actionable, explainable recommendation.

    Recommendations are computed on demand and never persisted.
    """

    id: str = Field(..., description="Stable identifier for the recommendation")
    type: RecommendationType
    priority: Priority
    title: str = Field(..., max_length=200)
    description: str
    impact: str = Field(default="", description="Why acting on this matters")
    action_items: list[str] = Field(default_factory=list)
    confidence_score: float = Field(..., ge=0.0, le=100.0)
    category: str = Field(..., description="Finer grouping, e.g. 'insurance'")

    expected_return: Optional[float] = None
    risk_level: Optional[RiskLevel] = None

    # Numeric payloads used by specific generators
    gap_amount: Optional[Decimal] = None
    amount: Optional[Decimal] = None
    due_date: Optional[date] = None


# =============================================================================
# FUNDING ALLOCATION
# =============================================================================

class FundingAllocation(BaseModel):
    """One tranche of surplus directed at one goal."""

    goal_id: UUID
    goal_name: str
    amount: Decimal = Field(..., gt=0)
    priority: FundingPriority


class AllocationResult(BaseModel):
    """
    Result of distributing a surplus across open goals.

    Invariant: allocated_total + remaining_surplus == surplus_amount.
    """

    surplus_amount: Decimal
    allocations: list[FundingAllocation] = Field(default_factory=list)
    remaining_surplus: Decimal

    @property
    def allocated_total(self) -> Decimal:
        return sum((a.amount for a in self.allocations), Decimal("0"))


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(..., description="Field with the issue")
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'non_positive', 'past_date')"
    )
    message: str = Field(..., description="Human-readable description of the issue")
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Outcome of checking engine inputs.

    Warnings describe suspect values that are accepted anyway.
    """

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "warning"]
