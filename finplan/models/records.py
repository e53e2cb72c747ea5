"""
Core Record Models for the Planning Engine

These models define the schemas for every record the engine reads from
or writes to the record store:
1. Goals (the only records the engine mutates)
2. Dependents and the household profile
3. Investments, insurance policies, loans and transactions (read-only)

DESIGN DECISION: Free-form "type" tags from the source data are replaced
by closed enums. Coefficient tables keyed by these enums are exhaustive,
and an unknown tag fails at model construction instead of silently
falling back to a default.

DESIGN DECISION: Goal amounts are deliberately NOT range-constrained.
Negative targets and past dates are representable; the validation hook
decides whether to flag or reject them.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class GoalType(str, Enum):
    """Goal horizon buckets."""
    MICRO = "Micro"
    SMALL = "Small"
    SHORT = "Short"
    MEDIUM = "Medium"
    LONG = "Long"


class Relation(str, Enum):
    """Relation of a dependent to the household."""
    CHILD = "Child"
    SPOUSE = "Spouse"
    MOTHER = "Mother"
    FATHER = "Father"
    GRANDMOTHER = "Grandmother"
    GRANDFATHER = "Grandfather"
    SIBLING = "Sibling"
    OTHER = "Other"

    @property
    def is_elder(self) -> bool:
        return self in ELDER_RELATIONS


ELDER_RELATIONS = frozenset({
    Relation.MOTHER,
    Relation.FATHER,
    Relation.GRANDMOTHER,
    Relation.GRANDFATHER,
})


class InvestmentType(str, Enum):
    """
    Investment instruments the engine knows how to score.

    Values match the tags used in imported records (e.g. "NPS-T1").
    """
    EQUITY = "Equity"
    STOCKS = "Stocks"
    MF_GROWTH = "MF-Growth"
    MF_DIVIDEND = "MF-Dividend"
    SIP = "SIP"
    PPF = "PPF"
    EPF = "EPF"
    NPS_T1 = "NPS-T1"
    NPS_T2 = "NPS-T2"
    FD = "FD"
    RD = "RD"
    BONDS = "Bonds"
    GOLD = "Gold"
    GOLD_COIN = "Gold-Coin"
    GOLD_ETF = "Gold-ETF"
    SGB = "SGB"
    OTHERS = "Others"


class InsuranceType(str, Enum):
    """Insurance policy classes."""
    TERM = "Term"
    LIFE = "Life"
    HEALTH = "Health"
    MOTOR = "Motor"
    HOME = "Home"
    TRAVEL = "Travel"
    PERSONAL_ACCIDENT = "Personal-Accident"


# =============================================================================
# GOAL MODEL
# =============================================================================

class Goal(BaseModel):
    """
    A named savings target with an amount, deadline and progress.

    The slug is derived from (name, type) by the goal manager and is the
    key the auto-goal engine uses for its idempotence check.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Opaque goal identifier"
    )
    slug: str = Field(
        ...,
        min_length=1,
        description="Deterministic key derived from name and type"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Goal name"
    )
    type: GoalType
    target_amount: Decimal = Field(
        ...,
        description="Target amount in INR (not range-checked here)"
    )
    current_amount: Decimal = Field(
        default=Decimal("0"),
        description="Amount saved so far; may exceed the target"
    )
    target_date: date
    notes: str = Field(default="", max_length=1000)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def remaining_amount(self) -> Decimal:
        """Outstanding gap; zero once the goal is fully funded."""
        return max(self.target_amount - self.current_amount, Decimal("0"))

    @property
    def is_funded(self) -> bool:
        return self.current_amount >= self.target_amount

    @property
    def progress_percent(self) -> float:
        if self.target_amount <= 0:
            return 0.0
        return float(self.current_amount / self.target_amount * 100)


# =============================================================================
# HOUSEHOLD MODELS
# =============================================================================

class Dependent(BaseModel):
    """A family member the household supports. Age is always derived."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    relation: Relation
    name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date

    def age_on(self, day: date) -> int:
        """Completed years of age on the given day."""
        age = day.year - self.date_of_birth.year
        if (day.month, day.day) < (self.date_of_birth.month, self.date_of_birth.day):
            age -= 1
        return age


class HouseholdProfile(BaseModel):
    """
    Household-level configuration passed explicitly into the engine.

    Replaces the single global settings row the dependents used to live in.
    """

    dependents: list[Dependent] = Field(default_factory=list)
    annual_income: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Declared annual income; derived from transactions if absent"
    )
    age: Optional[int] = Field(
        default=None,
        ge=0,
        le=120,
        description="Age of the primary earner, used for the glide path"
    )


# =============================================================================
# READ-ONLY FINANCIAL RECORDS
# =============================================================================

class Investment(BaseModel):
    """A single holding."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    type: InvestmentType
    name: str = Field(default="", max_length=200)
    invested_value: Decimal = Field(default=Decimal("0"))
    current_value: Decimal = Field(default=Decimal("0"))


class InsurancePolicy(BaseModel):
    """An insurance policy."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    type: InsuranceType
    sum_insured: Decimal = Field(..., ge=0)
    premium: Decimal = Field(default=Decimal("0"), ge=0)
    provider: str = Field(default="", max_length=200)
    start_date: date
    end_date: date


class Loan(BaseModel):
    """A loan; only active loans count towards debt stress."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    type: str = Field(..., min_length=1, max_length=100)
    principal: Decimal = Field(..., ge=0)
    roi: Decimal = Field(..., ge=0, description="Annual interest rate in percent")
    tenure_months: int = Field(..., ge=0)
    emi: Decimal = Field(..., ge=0)
    outstanding: Decimal = Field(..., ge=0)
    is_active: bool = True


class Transaction(BaseModel):
    """
    A bank/card transaction.

    Amount is signed: positive is income, negative is expense.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    date: date
    amount: Decimal
    category: str = Field(default="", max_length=100)
    note: str = Field(default="", max_length=500)

    @property
    def is_income(self) -> bool:
        return self.amount > 0

    @property
    def is_expense(self) -> bool:
        return self.amount < 0
