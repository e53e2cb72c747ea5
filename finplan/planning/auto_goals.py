"""
Auto-Goal Rule Engine

Inspects transactions, investments and the household profile and creates
savings goals when it recognises a pattern, without operator input.

Rules (each independent):
1. Insurance premiums    - health (3-year buffer) and vehicle (renewal)
2. Child education       - one goal per child under 18
3. Tax-saving instrument - NPS Tier-1 and PPF annual contributions
4. Senior medical corpus - any elder dependent over 60
5. Festival corpus       - festival/gift spending found in transactions

IDEMPOTENCE: Every proposed goal has a deterministic name, so its slug is
known before it is created. A rule never creates a goal whose slug already
exists. Running execute_all twice against unchanged data creates nothing
the second time.

The slug check is read-then-create and not atomic. The record store's
unique slug index is what makes concurrent runs safe; a DuplicateError
from the store is treated as "already exists".

FAILURE ISOLATION: A rule that raises is logged and skipped. The other
rules still run.
"""

import hashlib
import re
from calendar import isleap
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Awaitable, Callable, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from finplan.audit import AuditLogger, create_correlation_id
from finplan.config import PlanningSettings, get_settings
from finplan.models.records import (
    Dependent,
    Goal,
    GoalType,
    HouseholdProfile,
    InvestmentType,
    Relation,
    Transaction,
)
from finplan.planning.goals import SLUG_MAX_LENGTH, GoalManager, make_slug, slug_base
from finplan.services.storage import DuplicateError, RecordStoreInterface


HEALTH_KEYWORDS = ("health", "healthcare", "mediclaim")
VEHICLE_KEYWORDS = ("vehicle", "car", "motor", "bike")
FESTIVAL_KEYWORDS = ("gift", "celebration", "festival", "religious")

# Statutory deadlines as (month, day)
NPS_DEADLINE = (3, 31)
PPF_DEADLINE = (4, 5)
FESTIVAL_DEADLINE = (9, 30)


class GoalProposal(BaseModel):
    """A goal a rule wants to exist."""

    name: str
    type: GoalType
    target_amount: Decimal
    target_date: date
    notes: str = ""

    @property
    def slug(self) -> str:
        return make_slug(self.name, self.type)


# =============================================================================
# DATE AND MONEY HELPERS
# =============================================================================

def add_years(day: date, years: int) -> date:
    """Same calendar day `years` later; 29 Feb falls back to 28 Feb."""
    target_year = day.year + years
    if day.month == 2 and day.day == 29 and not isleap(target_year):
        return date(target_year, 2, 28)
    return day.replace(year=target_year)


def next_occurrence(today: date, month: int, day: int) -> date:
    """The next month/day on or after today."""
    candidate = date(today.year, month, day)
    if candidate < today:
        candidate = date(today.year + 1, month, day)
    return candidate


def round_rupees(amount: Decimal) -> Decimal:
    return amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def education_present_value(
    future_value: Decimal,
    inflation_rate: Decimal,
    years: int,
) -> Decimal:
    """PV = FV / (1 + rate)^years, rounded to whole rupees."""
    return round_rupees(future_value / (1 + inflation_rate) ** years)


def _mentions(txn: Transaction, keywords: tuple[str, ...]) -> bool:
    """Whole-word match, with an optional plural "s"."""
    text = f"{txn.category} {txn.note}".lower()
    return any(
        re.search(rf"\b{re.escape(keyword)}s?\b", text) for keyword in keywords
    )


def education_goal_name(dependent: Dependent, education_age: int) -> str:
    """
    Goal name for one child's education.

    The graduation year keeps siblings apart. When the child's name has no
    [a-z0-9] characters, or the slug would be truncated, a short hash of
    name and birth date leads the name so the slug stays per-child.
    """
    grad_year = add_years(dependent.date_of_birth, education_age).year
    name = f"{dependent.name} Education (UG@{education_age}, {grad_year})"
    if not slug_base(dependent.name) or len(slug_base(name)) > SLUG_MAX_LENGTH:
        key = f"{dependent.name}|{dependent.date_of_birth.isoformat()}"
        name = f"{hashlib.md5(key.encode()).hexdigest()[:6]} {name}"
    return name


# =============================================================================
# ENGINE
# =============================================================================

class AutoGoalEngine:
    """
    Runs the auto-goal rules and persists new goals through GoalManager.
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        goal_manager: GoalManager,
        profile: Optional[HouseholdProfile] = None,
        settings: Optional[PlanningSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._goals = goal_manager
        self._profile = profile or HouseholdProfile()
        self._settings = settings or get_settings().planning
        self._audit_logger = audit_logger

    @property
    def rules(self) -> list[tuple[str, Callable[[date], Awaitable[list[GoalProposal]]]]]:
        return [
            ("insurance_premium", self._insurance_premium_rule),
            ("child_education", self._child_education_rule),
            ("tax_instrument", self._tax_instrument_rule),
            ("senior_medical", self._senior_medical_rule),
            ("festival_corpus", self._festival_corpus_rule),
        ]

    async def execute_all(
        self,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Goal]:
        """
        Run every rule and return the goals created by this call.

        Returns an empty list when every detected subject already has a goal.
        """
        today = today or date.today()
        correlation_id = correlation_id or create_correlation_id()
        created: list[Goal] = []

        for rule_name, rule in self.rules:
            try:
                proposals = await rule(today)
                for proposal in proposals:
                    goal = await self._create_if_absent(rule_name, proposal, correlation_id)
                    if goal is not None:
                        created.append(goal)
            except Exception as e:
                if self._audit_logger:
                    await self._audit_logger.log_rule_failed(
                        rule=rule_name,
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )

        return created

    async def _create_if_absent(
        self,
        rule_name: str,
        proposal: GoalProposal,
        correlation_id: UUID,
    ) -> Optional[Goal]:
        slug = proposal.slug

        if await self._store.get_goal_by_slug(slug) is not None:
            await self._log_skipped(rule_name, slug, correlation_id)
            return None

        try:
            goal = await self._goals.create(
                name=proposal.name,
                goal_type=proposal.type,
                target_amount=proposal.target_amount,
                target_date=proposal.target_date,
                notes=proposal.notes,
                correlation_id=correlation_id,
            )
        except DuplicateError:
            # Another caller created it between our check and our insert
            await self._log_skipped(rule_name, slug, correlation_id)
            return None

        if self._audit_logger:
            await self._audit_logger.log_auto_goal_created(
                goal_id=goal.id,
                rule=rule_name,
                slug=goal.slug,
                correlation_id=correlation_id,
            )
        return goal

    async def _log_skipped(self, rule_name: str, slug: str, correlation_id: UUID) -> None:
        if self._audit_logger:
            await self._audit_logger.log_auto_goal_skipped(
                rule=rule_name,
                slug=slug,
                correlation_id=correlation_id,
            )

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    async def _insurance_premium_rule(self, today: date) -> list[GoalProposal]:
        """Premiums paid for health or vehicle cover become buffer goals."""
        transactions = await self._store.list_transactions()
        insurance_txns = [
            t for t in transactions if "insurance" in t.category.lower()
        ]
        proposals = []

        health = [t for t in insurance_txns if _mentions(t, HEALTH_KEYWORDS)]
        if health:
            latest = max(health, key=lambda t: t.date)
            years = self._settings.health_premium_horizon_years
            target = abs(latest.amount) * (1 + self._settings.health_premium_inflation) ** years
            proposals.append(GoalProposal(
                name="Health Insurance 3-Year Buffer",
                type=GoalType.MEDIUM,
                target_amount=round_rupees(target),
                target_date=add_years(today, years),
                notes=(
                    f"Auto-created from health insurance premium of {abs(latest.amount)} "
                    f"paid on {latest.date}, inflated "
                    f"{self._settings.health_premium_inflation:.0%} a year."
                ),
            ))

        vehicle = [t for t in insurance_txns if _mentions(t, VEHICLE_KEYWORDS)]
        if vehicle:
            latest = max(vehicle, key=lambda t: t.date)
            years = self._settings.vehicle_premium_horizon_years
            target = abs(latest.amount) * (1 + self._settings.vehicle_premium_inflation) ** years
            proposals.append(GoalProposal(
                name="Vehicle Insurance Renewal",
                type=GoalType.SHORT,
                target_amount=round_rupees(target),
                target_date=add_years(today, years),
                notes=(
                    f"Auto-created from vehicle insurance premium of {abs(latest.amount)} "
                    f"paid on {latest.date}."
                ),
            ))

        return proposals

    async def _child_education_rule(self, today: date) -> list[GoalProposal]:
        """One undergraduate education goal per child not yet 18."""
        proposals = []
        education_age = self._settings.education_age

        for dependent in self._profile.dependents:
            if dependent.relation != Relation.CHILD:
                continue

            years_to_education = max(0, education_age - dependent.age_on(today))
            if years_to_education == 0:
                continue

            target = education_present_value(
                self._settings.education_corpus_future_value,
                self._settings.education_inflation_rate,
                years_to_education,
            )
            proposals.append(GoalProposal(
                name=education_goal_name(dependent, education_age),
                type=GoalType.LONG,
                target_amount=target,
                target_date=add_years(dependent.date_of_birth, education_age),
                notes=(
                    f"Auto-created education goal for {dependent.name}. Present value of "
                    f"{self._settings.education_corpus_future_value} at "
                    f"{self._settings.education_inflation_rate:.0%} education inflation "
                    f"over {years_to_education} years."
                ),
            ))

        return proposals

    async def _tax_instrument_rule(self, today: date) -> list[GoalProposal]:
        """Holding a tax-saving instrument implies an annual contribution goal."""
        investments = await self._store.list_investments()
        held = {inv.type for inv in investments}
        proposals = []

        if InvestmentType.NPS_T1 in held:
            proposals.append(GoalProposal(
                name="NPS-T1 80CCD(1B)",
                type=GoalType.SHORT,
                target_amount=self._settings.nps_annual_cap,
                target_date=next_occurrence(today, *NPS_DEADLINE),
                notes=(
                    "Auto-created NPS Tier-1 annual goal for the additional "
                    "deduction under Section 80CCD(1B)."
                ),
            ))

        if InvestmentType.PPF in held:
            proposals.append(GoalProposal(
                name="PPF Annual Deposit",
                type=GoalType.SHORT,
                target_amount=self._settings.ppf_annual_cap,
                target_date=next_occurrence(today, *PPF_DEADLINE),
                notes="Auto-created PPF annual deposit goal to use the full yearly limit.",
            ))

        return proposals

    async def _senior_medical_rule(self, today: date) -> list[GoalProposal]:
        """Elder dependents over the senior age share one medical corpus."""
        seniors = [
            d for d in self._profile.dependents
            if d.relation.is_elder and d.age_on(today) > self._settings.senior_age_threshold
        ]
        if not seniors:
            return []

        years = self._settings.senior_medical_horizon_years
        return [GoalProposal(
            name="Senior Citizen Medical Corpus",
            type=GoalType.MEDIUM,
            target_amount=self._settings.senior_medical_corpus,
            target_date=add_years(today, years),
            notes=(
                f"Auto-created medical corpus for {len(seniors)} senior family member(s). "
                f"Base amount already reflects 10% medical inflation over {years} years."
            ),
        )]

    async def _festival_corpus_rule(self, today: date) -> list[GoalProposal]:
        """
        Festival and gift spending becomes an annual corpus goal.

        Spending is averaged over three years with a floor, plus a buffer.
        """
        transactions = await self._store.list_transactions()
        festival = [
            t for t in transactions
            if t.is_expense and _mentions(t, FESTIVAL_KEYWORDS)
        ]
        if not festival:
            return []

        total_spend = sum((abs(t.amount) for t in festival), Decimal("0"))
        annual = max(total_spend / 3, self._settings.festival_corpus_floor)
        target = round_rupees(annual * (1 + self._settings.festival_corpus_buffer))

        return [GoalProposal(
            name="Festival Corpus",
            type=GoalType.SHORT,
            target_amount=target,
            target_date=next_occurrence(today, *FESTIVAL_DEADLINE),
            notes=(
                f"Auto-created from {len(festival)} festival/gift transaction(s). "
                f"Estimated annual need: {round_rupees(annual)}."
            ),
        )]
