"""
Data Models Package

This package contains all Pydantic models used by the planning engine.
All data flowing into and out of the engine must conform to these schemas.
"""

from finplan.models.records import (
    Dependent,
    Goal,
    GoalType,
    HouseholdProfile,
    InsurancePolicy,
    InsuranceType,
    Investment,
    InvestmentType,
    Loan,
    Relation,
    Transaction,
)
from finplan.models.analysis import (
    AllocationResult,
    FundingAllocation,
    FundingPriority,
    PortfolioAnalysis,
    Priority,
    Recommendation,
    RecommendationType,
    RiskLevel,
    ValidationIssue,
    ValidationResult,
)
from finplan.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "Dependent",
    "Goal",
    "GoalType",
    "HouseholdProfile",
    "InsurancePolicy",
    "InsuranceType",
    "Investment",
    "InvestmentType",
    "Loan",
    "Relation",
    "Transaction",
    # Analysis models
    "AllocationResult",
    "FundingAllocation",
    "FundingPriority",
    "PortfolioAnalysis",
    "Priority",
    "Recommendation",
    "RecommendationType",
    "RiskLevel",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
