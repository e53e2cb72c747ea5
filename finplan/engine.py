"""
Planning Engine

This module ties together all the planning components and exposes the
operations a host application calls:
1. Goal lifecycle (create, update progress, list)
2. Auto-goal rules (detect patterns, create missing goals)
3. Surplus allocation (compute, optionally apply)
4. Portfolio analysis and recommendations (read-only)

DESIGN DECISION: The engine owns no state of its own. Everything lives in
the record store it was given, and every public operation gets its own
correlation ID so its audit events can be traced together.

Errors from goal creation, progress updates and allocation propagate to
the caller. Rule and generator failures are contained inside their
components.
"""

from datetime import date
from typing import Iterable, Optional
from uuid import UUID

from finplan.audit import AuditLogger, configure_logging, create_correlation_id
from finplan.config import PlanningSettings, get_settings
from finplan.models.analysis import AllocationResult, PortfolioAnalysis, Recommendation
from finplan.models.records import Goal, GoalType, HouseholdProfile, Investment
from finplan.planning import (
    AutoGoalEngine,
    FundingAllocator,
    GoalManager,
    PortfolioAnalyzer,
    RecommendationContext,
    RecommendationGenerator,
)
from finplan.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryRecordStore,
    RecordStoreInterface,
)
from finplan.validation import GoalInputValidator
from finplan.validation.validator import Amount


class PlanningEngine:
    """
    Facade over the five planning components.

    Components can be injected for testing; anything not supplied is built
    over the given store with the given settings.
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        profile: Optional[HouseholdProfile] = None,
        settings: Optional[PlanningSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[GoalInputValidator] = None,
    ):
        self._store = store
        self._profile = profile or HouseholdProfile()
        self._settings = settings or get_settings().planning
        self._audit_logger = audit_logger
        validator = validator or GoalInputValidator(
            strict=self._settings.strict_goal_validation
        )

        self.goals = GoalManager(store, validator=validator, audit_logger=audit_logger)
        self.auto_goals = AutoGoalEngine(
            store,
            self.goals,
            profile=self._profile,
            settings=self._settings,
            audit_logger=audit_logger,
        )
        self.allocator = FundingAllocator(
            self.goals,
            validator=validator,
            settings=self._settings,
            audit_logger=audit_logger,
        )
        self.analyzer = PortfolioAnalyzer(self._settings)
        self.recommender = RecommendationGenerator(
            store,
            profile=self._profile,
            analyzer=self.analyzer,
            settings=self._settings,
            audit_logger=audit_logger,
        )

    @property
    def profile(self) -> HouseholdProfile:
        return self._profile

    # -------------------------------------------------------------------------
    # Goals
    # -------------------------------------------------------------------------

    async def create_goal(
        self,
        name: str,
        goal_type: GoalType,
        target_amount: Amount,
        target_date: date,
        notes: str = "",
    ) -> Goal:
        return await self.goals.create(
            name=name,
            goal_type=goal_type,
            target_amount=target_amount,
            target_date=target_date,
            notes=notes,
            correlation_id=create_correlation_id(),
        )

    async def update_goal_progress(self, goal_id: UUID, delta: Amount) -> Goal:
        return await self.goals.update_progress(
            goal_id,
            delta,
            correlation_id=create_correlation_id(),
        )

    async def list_goals(self, goal_type: Optional[GoalType] = None) -> list[Goal]:
        if goal_type is not None:
            return await self.goals.list_by_type(goal_type)
        return await self.goals.list_all()

    # -------------------------------------------------------------------------
    # Auto-goals and allocation
    # -------------------------------------------------------------------------

    async def run_auto_goal_rules(self, today: Optional[date] = None) -> list[Goal]:
        """Run every auto-goal rule; returns only the goals created now."""
        return await self.auto_goals.execute_all(
            today=today,
            correlation_id=create_correlation_id(),
        )

    async def allocate_surplus(
        self,
        amount: Amount,
        apply: bool = False,
        today: Optional[date] = None,
    ) -> AllocationResult:
        """
        Split a surplus across open goals.

        With apply=False the result is only a proposal. With apply=True
        each allocation is credited to its goal before returning; a failed
        write is audited as a system error and re-raised.
        """
        correlation_id = create_correlation_id()
        result = await self.allocator.allocate(
            amount,
            today=today,
            correlation_id=correlation_id,
        )
        if apply:
            try:
                await self.allocator.apply(result, correlation_id=correlation_id)
            except Exception as e:
                if self._audit_logger:
                    await self._audit_logger.log_error(
                        error_type=type(e).__name__,
                        error_message=str(e),
                        details={"stage": "allocation_apply"},
                        correlation_id=correlation_id,
                    )
                raise
        return result

    # -------------------------------------------------------------------------
    # Analytics
    # -------------------------------------------------------------------------

    async def analyze_portfolio(
        self,
        investments: Optional[Iterable[Investment]] = None,
    ) -> PortfolioAnalysis:
        """Score the given holdings, or everything in the store."""
        holdings = list(investments) if investments is not None else await self._store.list_investments()
        analysis = self.analyzer.analyze(holdings)

        if self._audit_logger:
            await self._audit_logger.log_portfolio_analyzed(
                holdings=len(holdings),
                risk_score=analysis.risk_score,
                rebalance_needed=analysis.rebalance_needed,
                correlation_id=create_correlation_id(),
            )

        return analysis

    async def generate_recommendations(
        self,
        context: Optional[RecommendationContext] = None,
    ) -> list[Recommendation]:
        return await self.recommender.generate(
            context,
            correlation_id=create_correlation_id(),
        )


def create_engine_components(
    store: Optional[RecordStoreInterface] = None,
    profile: Optional[HouseholdProfile] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
    settings: Optional[PlanningSettings] = None,
) -> tuple[PlanningEngine, RecordStoreInterface, AuditLogger]:
    """
    Factory function to create a fully wired engine.

    Args:
        store: Record store to plan over. Defaults to an empty in-memory store.
        profile: Household profile (dependents, income, age).
        audit_storage: Where audit events are persisted. Defaults to an
                       in-memory audit log.
        settings: Planning constants. Defaults to the cached settings.

    Returns:
        (engine, store, audit_logger)
    """
    configure_logging(get_settings().app.log_level)
    store = store or InMemoryRecordStore()
    audit_logger = AuditLogger(audit_storage or InMemoryAuditStorage())

    engine = PlanningEngine(
        store,
        profile=profile,
        settings=settings,
        audit_logger=audit_logger,
    )
    return engine, store, audit_logger
