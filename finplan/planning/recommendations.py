"""
Recommendation Generator

Combines portfolio analytics with goal, insurance, loan and transaction
data into a ranked list of actionable recommendations.

DESIGN DECISION: Each recommendation comes from an independent
sub-generator. A generator that raises is logged and skipped; the others
still contribute. Generators read from one snapshot of the record store
taken at the start of generate(), and never write.

Ordering is a stable sort on priority (high > medium > low). Ties keep
the order the generators ran in.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from finplan.audit import AuditLogger, create_correlation_id
from finplan.config import PlanningSettings, get_settings
from finplan.models.analysis import (
    Priority,
    Recommendation,
    RecommendationType,
)
from finplan.models.records import (
    Goal,
    GoalType,
    HouseholdProfile,
    InsurancePolicy,
    InsuranceType,
    Investment,
    InvestmentType,
    Loan,
    Transaction,
)
from finplan.planning.portfolio import (
    PortfolioAnalyzer,
    asset_class_split,
    glide_path_target,
)
from finplan.services.storage import RecordStoreInterface


TERM_COVER_TYPES = frozenset({InsuranceType.TERM, InsuranceType.LIFE})
HEALTH_COVER_TYPES = frozenset({InsuranceType.HEALTH})

# Expense categories that are commitments rather than discretionary spend
FIXED_EXPENSE_CATEGORIES = frozenset({"emi", "rent"})

MAX_PREPAYMENT = Decimal("200000")
PREPAYMENT_SHARE = Decimal("0.2")


class RecommendationContext(BaseModel):
    """
    Caller-supplied inputs for one generate() call.

    Anything left as None is taken from the household profile or
    derived from transactions.
    """

    annual_income: Optional[Decimal] = Field(default=None, ge=0)
    monthly_income: Optional[Decimal] = Field(default=None, ge=0)
    age: Optional[int] = Field(default=None, ge=0, le=120)
    today: Optional[date] = None


class _Snapshot(BaseModel):
    """Record store contents read once per generate() call."""

    investments: list[Investment]
    goals: list[Goal]
    insurance: list[InsurancePolicy]
    loans: list[Loan]
    transactions: list[Transaction]
    annual_income: Decimal
    monthly_income: Decimal
    age: Optional[int]
    today: date


class RecommendationGenerator:
    """
    Produces prioritized recommendations. Read-only.
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        profile: Optional[HouseholdProfile] = None,
        analyzer: Optional[PortfolioAnalyzer] = None,
        settings: Optional[PlanningSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._profile = profile or HouseholdProfile()
        self._settings = settings or get_settings().planning
        self._analyzer = analyzer or PortfolioAnalyzer(self._settings)
        self._audit_logger = audit_logger

    @property
    def generators(self) -> list[tuple[str, Callable[[_Snapshot], list[Recommendation]]]]:
        return [
            ("portfolio_concentration", self._portfolio_concentration),
            ("tax_optimization", self._tax_optimization),
            ("risk_management", self._risk_management),
            ("investment_start", self._investment_start),
            ("goal_alignment", self._goal_alignment),
            ("insurance_gap", self._insurance_gaps),
            ("debt_stress", self._debt_stress),
            ("loan_prepayment", self._loan_prepayment),
            ("nps_headroom", self._nps_headroom),
            ("glide_path", self._glide_path),
            ("policy_renewal", self._policy_renewal),
            ("high_spending", self._high_spending),
        ]

    async def generate(
        self,
        context: Optional[RecommendationContext] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Recommendation]:
        """
        Build the ranked recommendation list.

        Raises:
            StorageError: If the snapshot can't be read
        """
        context = context or RecommendationContext()
        correlation_id = correlation_id or create_correlation_id()
        snapshot = await self._take_snapshot(context)

        recommendations: list[Recommendation] = []
        for name, generator in self.generators:
            try:
                recommendations.extend(generator(snapshot))
            except Exception as e:
                if self._audit_logger:
                    await self._audit_logger.log_recommendation_failed(
                        generator=name,
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )

        # sorted() is stable, so ties keep generation order
        ranked = sorted(recommendations, key=lambda r: -r.priority.rank)

        if self._audit_logger:
            await self._audit_logger.log_recommendations_generated(
                count=len(ranked),
                high_priority=sum(1 for r in ranked if r.priority == Priority.HIGH),
                correlation_id=correlation_id,
            )

        return ranked

    async def _take_snapshot(self, context: RecommendationContext) -> _Snapshot:
        investments = await self._store.list_investments()
        goals = await self._store.list_goals()
        insurance = await self._store.list_insurance()
        loans = await self._store.list_loans(active_only=True)
        transactions = await self._store.list_transactions()

        annual_income = context.annual_income
        if annual_income is None:
            annual_income = self._profile.annual_income
        if annual_income is None:
            # Transactions are treated as one year of history
            annual_income = sum(
                (t.amount for t in transactions if t.is_income),
                Decimal("0"),
            )

        monthly_income = context.monthly_income
        if monthly_income is None:
            monthly_income = annual_income / 12

        return _Snapshot(
            investments=investments,
            goals=goals,
            insurance=insurance,
            loans=loans,
            transactions=transactions,
            annual_income=annual_income,
            monthly_income=monthly_income,
            age=context.age if context.age is not None else self._profile.age,
            today=context.today or date.today(),
        )

    # -------------------------------------------------------------------------
    # Core generators
    # -------------------------------------------------------------------------

    def _portfolio_concentration(self, snap: _Snapshot) -> list[Recommendation]:
        analysis = self._analyzer.analyze(snap.investments)
        threshold = self._settings.concentration_threshold
        concentrated = {
            asset: weight
            for asset, weight in analysis.asset_allocation.items()
            if weight > threshold
        }
        if not concentrated:
            return []

        asset, weight = max(concentrated.items(), key=lambda item: item[1])
        return [Recommendation(
            id="portfolio-concentration",
            type=RecommendationType.PORTFOLIO,
            priority=Priority.HIGH,
            title="Reduce Portfolio Concentration",
            description=(
                f"{asset} makes up {weight:.1f}% of your portfolio, above the "
                f"{threshold:.0f}% concentration limit."
            ),
            impact="A single asset type dominating the portfolio magnifies its losses.",
            action_items=[
                f"Redirect new investments away from {asset}",
                "Rebalance gradually into under-weight asset classes",
                "Review the allocation again after rebalancing",
            ],
            confidence_score=85.0,
            category="diversification",
            expected_return=analysis.expected_return,
            risk_level=analysis.risk_level,
        )]

    def _tax_optimization(self, snap: _Snapshot) -> list[Recommendation]:
        return [Recommendation(
            id="tax-optimization",
            type=RecommendationType.TAX,
            priority=Priority.MEDIUM,
            title="Optimize Taxes on Your Investments",
            description=(
                "Book capital losses to offset gains before the financial year ends, "
                "and use tax-advantaged accounts before taxable ones."
            ),
            impact="Lower tax outgo raises your effective post-tax return.",
            action_items=[
                "Harvest losses on under-performing holdings before 31 March",
                "Use the full NPS Tier-1 80CCD(1B) and PPF limits",
                "Prefer growth options over dividend options for long-term holdings",
            ],
            confidence_score=75.0,
            category="tax_planning",
        )]

    def _risk_management(self, snap: _Snapshot) -> list[Recommendation]:
        if not snap.investments:
            return []
        return [Recommendation(
            id="risk-management",
            type=RecommendationType.RISK,
            priority=Priority.HIGH,
            title="Review Insurance and Emergency Fund",
            description=(
                "Make sure adequate term and health cover and an emergency fund are in "
                "place so investments never have to be sold in a crisis."
            ),
            impact="Protection keeps a medical or income shock from derailing your goals.",
            action_items=[
                "Confirm term cover of at least 10x annual income",
                "Confirm family health cover including senior members",
                "Keep 6-12 months of expenses in liquid instruments",
            ],
            confidence_score=80.0,
            category="protection",
        )]

    def _investment_start(self, snap: _Snapshot) -> list[Recommendation]:
        corpus = sum(
            (inv.invested_value if inv.invested_value > 0 else inv.current_value
             for inv in snap.investments),
            Decimal("0"),
        )
        starter = self._settings.sip_starter_amount

        if corpus <= 0:
            return [Recommendation(
                id="start-investing",
                type=RecommendationType.PORTFOLIO,
                priority=Priority.HIGH,
                title="Start Your Investment Journey",
                description="You haven't started investing yet. Begin with a diversified portfolio.",
                impact="Starting early gives compounding the most time to work.",
                action_items=[f"Start a diversified equity SIP of {starter} a month"],
                confidence_score=85.0,
                category="investing",
                amount=starter,
            )]

        months = self._settings.investment_corpus_months
        if snap.monthly_income <= 0 or corpus >= snap.monthly_income * months:
            return []

        return [Recommendation(
            id="sip-increase",
            type=RecommendationType.PORTFOLIO,
            priority=Priority.HIGH,
            title="Increase SIP Investment",
            description=(
                f"Your investments of {corpus} are below {months} months of income "
                f"({snap.monthly_income * months})."
            ),
            impact="A larger monthly SIP builds the corpus your goals depend on.",
            action_items=[f"Increase your monthly SIP by {starter}"],
            confidence_score=80.0,
            category="investing",
            amount=starter,
        )]

    def _goal_alignment(self, snap: _Snapshot) -> list[Recommendation]:
        if not snap.goals:
            return []

        total_target = sum((g.target_amount for g in snap.goals), Decimal("0"))
        total_saved = sum((g.current_amount for g in snap.goals), Decimal("0"))
        by_type: dict[GoalType, int] = defaultdict(int)
        for goal in snap.goals:
            by_type[goal.type] += 1

        actions = []
        if by_type[GoalType.LONG]:
            actions.append(f"Fund {by_type[GoalType.LONG]} long-term goal(s) mainly through equity")
        if by_type[GoalType.MEDIUM]:
            actions.append(f"Use hybrid or balanced funds for {by_type[GoalType.MEDIUM]} medium-term goal(s)")
        short_count = by_type[GoalType.SHORT] + by_type[GoalType.SMALL] + by_type[GoalType.MICRO]
        if short_count:
            actions.append(f"Keep {short_count} short-term goal(s) in debt or liquid funds")

        return [Recommendation(
            id="goal-alignment",
            type=RecommendationType.GOAL,
            priority=Priority.MEDIUM,
            title="Match Investments to Goal Horizons",
            description=(
                f"You have {len(snap.goals)} goal(s) worth {total_target} in total, "
                f"with {total_saved} saved so far."
            ),
            impact="Horizon-matched investing avoids selling risky assets right before a deadline.",
            action_items=actions,
            confidence_score=70.0,
            category="goal_planning",
            amount=total_target,
        )]

    def _insurance_gaps(self, snap: _Snapshot) -> list[Recommendation]:
        if snap.annual_income <= 0:
            return []

        gaps = []
        checks = [
            ("term", "Term", TERM_COVER_TYPES, self._settings.term_cover_multiple),
            ("health", "Health", HEALTH_COVER_TYPES, self._settings.health_cover_multiple),
        ]
        for key, label, types, multiple in checks:
            current = sum(
                (p.sum_insured for p in snap.insurance if p.type in types),
                Decimal("0"),
            )
            target = snap.annual_income * multiple
            gap = target - current
            if gap <= 0:
                continue
            gaps.append(Recommendation(
                id=f"{key}-insurance-gap",
                type=RecommendationType.RISK,
                priority=Priority.HIGH,
                title=f"{label} Insurance Gap",
                description=(
                    f"Current {key} cover is {current}; recommended cover is "
                    f"{target} ({multiple}x annual income)."
                ),
                impact=f"Uncovered {key} risk falls directly on household savings.",
                action_items=[f"Increase {key} cover by {gap}"],
                confidence_score=90.0,
                category="insurance",
                gap_amount=gap,
            ))
        return gaps

    def _debt_stress(self, snap: _Snapshot) -> list[Recommendation]:
        total_emi = sum(
            (loan.emi for loan in snap.loans),
            Decimal("0"),
        )
        if total_emi <= 0:
            return []

        limit = self._settings.emi_stress_ratio
        if snap.monthly_income > 0:
            ratio = float(total_emi / snap.monthly_income)
            if ratio <= limit:
                return []
            description = (
                f"Your EMI-to-income ratio is {ratio:.1%}; the recommended "
                f"maximum is {limit:.0%}."
            )
        else:
            description = f"EMIs of {total_emi} a month are due with no recorded income."

        return [Recommendation(
            id="debt-stress",
            type=RecommendationType.CASH_FLOW,
            priority=Priority.HIGH,
            title="Debt Stress Alert",
            description=description,
            impact="High EMIs leave little room for savings or emergencies.",
            action_items=[
                "Avoid taking on new loans",
                "Consider restructuring or consolidating high-interest loans",
                "Direct surplus towards prepaying the costliest loan",
            ],
            confidence_score=90.0,
            category="debt",
            amount=total_emi,
        )]

    def _loan_prepayment(self, snap: _Snapshot) -> list[Recommendation]:
        advice = []
        for loan in snap.loans:
            if loan.roi <= self._settings.prepayment_roi_threshold:
                continue
            savings = loan.outstanding * (loan.roi / 100) * (Decimal(loan.tenure_months) / 12)
            if savings <= self._settings.prepayment_savings_threshold:
                continue
            suggested = min(loan.outstanding * PREPAYMENT_SHARE, MAX_PREPAYMENT)
            advice.append(Recommendation(
                id=f"prepay-{loan.id}",
                type=RecommendationType.CASH_FLOW,
                priority=Priority.MEDIUM,
                title="Loan Prepayment Opportunity",
                description=(
                    f"Prepaying your {loan.type} loan at {loan.roi}% could save about "
                    f"{savings.quantize(Decimal('1'))} in interest."
                ),
                impact="Prepaying high-interest debt is a guaranteed, tax-free return.",
                action_items=[f"Consider a partial prepayment of {suggested.quantize(Decimal('1'))}"],
                confidence_score=80.0,
                category="debt",
                amount=savings,
            ))
        return advice

    # -------------------------------------------------------------------------
    # Planning-rule generators
    # -------------------------------------------------------------------------

    def _nps_headroom(self, snap: _Snapshot) -> list[Recommendation]:
        invested = sum(
            (inv.invested_value for inv in snap.investments if inv.type == InvestmentType.NPS_T1),
            Decimal("0"),
        )
        cap = self._settings.nps_annual_cap
        if invested >= cap:
            return []

        headroom = cap - invested
        saving = headroom * self._settings.assumed_tax_bracket
        return [Recommendation(
            id="nps-tax-benefit",
            type=RecommendationType.TAX,
            priority=Priority.MEDIUM,
            title="NPS Tax Benefit Available",
            description=(
                f"Investing {headroom} more in NPS Tier-1 could save about {saving} in tax "
                f"under Section 80CCD(1B)."
            ),
            impact="An additional deduction over and above Section 80C.",
            action_items=[f"Invest {headroom} in NPS Tier-1 before 31 March"],
            confidence_score=75.0,
            category="tax_planning",
            amount=headroom,
        )]

    def _glide_path(self, snap: _Snapshot) -> list[Recommendation]:
        if snap.age is None or not snap.investments:
            return []

        current = asset_class_split(snap.investments)
        if not any(current.values()):
            return []
        target = glide_path_target(snap.age)
        drift = max(abs(current[k] - target[k]) for k in target)
        if drift <= 5:
            return []

        return [Recommendation(
            id="glide-path-rebalance",
            type=RecommendationType.PORTFOLIO,
            priority=Priority.HIGH if drift > 10 else Priority.MEDIUM,
            title="Portfolio Rebalancing Required",
            description=(
                f"Your allocation has drifted {drift:.1f} points from the age-{snap.age} "
                f"target of {target['equity']:.0f}/{target['debt']:.0f}/{target['gold']:.0f} "
                f"equity/debt/gold."
            ),
            impact="Staying near the target mix keeps risk appropriate for your age.",
            action_items=[
                f"Move equity from {current['equity']:.0f}% towards {target['equity']:.0f}%",
                f"Move debt from {current['debt']:.0f}% towards {target['debt']:.0f}%",
                f"Move gold from {current['gold']:.0f}% towards {target['gold']:.0f}%",
            ],
            confidence_score=70.0,
            category="rebalancing",
        )]

    def _policy_renewal(self, snap: _Snapshot) -> list[Recommendation]:
        window = self._settings.renewal_window_days
        expiring = sorted(
            (p for p in snap.insurance if 0 < (p.end_date - snap.today).days <= window),
            key=lambda p: p.end_date,
        )
        return [
            Recommendation(
                id=f"policy-renewal-{policy.id}",
                type=RecommendationType.RISK,
                priority=Priority.MEDIUM,
                title="Insurance Renewal Due",
                description=(
                    f"Your {policy.type.value} policy with {policy.provider or 'your insurer'} "
                    f"expires in {(policy.end_date - snap.today).days} days."
                ),
                impact="A lapsed policy can mean fresh waiting periods and lost cover.",
                action_items=[f"Renew before {policy.end_date}"],
                confidence_score=95.0,
                category="insurance",
                amount=policy.premium,
                due_date=policy.end_date,
            )
            for policy in expiring
        ]

    def _high_spending(self, snap: _Snapshot) -> list[Recommendation]:
        spend: dict[str, Decimal] = defaultdict(Decimal)
        for txn in snap.transactions:
            if txn.is_expense:
                spend[txn.category or "Uncategorized"] += abs(txn.amount)

        total = sum(spend.values(), Decimal("0"))
        if total <= 0:
            return []

        share_limit = self._settings.high_spending_share
        alerts = []
        for category, amount in sorted(spend.items(), key=lambda item: item[1], reverse=True):
            if category.lower() in FIXED_EXPENSE_CATEGORIES:
                continue
            share = float(amount / total * 100)
            if share <= share_limit:
                continue
            alerts.append(Recommendation(
                id=f"high-spending-{category.lower().replace(' ', '-')}",
                type=RecommendationType.CASH_FLOW,
                priority=Priority.LOW,
                title="High Spending Alert",
                description=f"{category} is {share:.1f}% of your total spending.",
                impact="Trimming the largest discretionary category frees surplus for goals.",
                action_items=[f"Review and optimize {category} expenses"],
                confidence_score=60.0,
                category="spending",
                amount=amount,
            ))
        return alerts
