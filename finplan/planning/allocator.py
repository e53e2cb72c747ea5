"""
Priority Funding Allocator

Splits a surplus cash amount across open goals.

Policy:
1. Only goals with current_amount < target_amount are eligible
2. Goals due within the high-priority window (365 days) are High,
   everything else Medium
3. High before Medium; within a bucket, the sooner deadline first
4. Each goal receives at most one tranche per pass:
       min(remaining surplus, tranche cap, goal's outstanding gap)
5. Only the first N goals in that order are funded per call

The tranche cap keeps one urgent goal from absorbing the whole surplus,
so later goals still receive something in the same pass.

GUARANTEES (Decimal arithmetic, so these hold exactly):
- sum(allocations) + remaining_surplus == surplus_amount
- remaining_surplus >= 0 for any positive surplus
- no allocation exceeds the goal's outstanding gap
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from finplan.audit import AuditLogger, create_correlation_id
from finplan.config import PlanningSettings, get_settings
from finplan.models.analysis import AllocationResult, FundingAllocation, FundingPriority
from finplan.models.records import Goal
from finplan.planning.goals import GoalManager
from finplan.validation import GoalInputValidator, to_amount
from finplan.validation.validator import Amount


_FUNDING_RANK = {
    FundingPriority.HIGH: 0,
    FundingPriority.MEDIUM: 1,
}


class FundingAllocator:
    """
    Computes (and optionally applies) surplus allocations.

    allocate() is read-only. apply() writes the result through the goal
    manager, one progress update per allocation.
    """

    def __init__(
        self,
        goal_manager: GoalManager,
        validator: Optional[GoalInputValidator] = None,
        settings: Optional[PlanningSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._goals = goal_manager
        self._validator = validator or GoalInputValidator()
        self._settings = settings or get_settings().planning
        self._audit_logger = audit_logger

    def priority_for(self, goal: Goal, today: date) -> FundingPriority:
        days_left = (goal.target_date - today).days
        if days_left <= self._settings.high_priority_window_days:
            return FundingPriority.HIGH
        return FundingPriority.MEDIUM

    def rank_goals(
        self,
        goals: list[Goal],
        today: date,
    ) -> list[tuple[Goal, FundingPriority]]:
        """Eligible goals in funding order, each with its priority."""
        eligible = [g for g in goals if g.current_amount < g.target_amount]
        ranked = [(g, self.priority_for(g, today)) for g in eligible]
        ranked.sort(key=lambda pair: (
            _FUNDING_RANK[pair[1]],
            pair[0].target_date,
            pair[0].name,
        ))
        return ranked

    async def allocate(
        self,
        surplus_amount: Amount,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AllocationResult:
        """
        Compute how a surplus should be split across open goals.

        A non-positive surplus allocates nothing and is audited as suspect.

        Raises:
            ValidationError: If the surplus is not a finite number, or is
                             non-positive under strict validation
        """
        today = today or date.today()
        correlation_id = correlation_id or create_correlation_id()

        surplus = to_amount(surplus_amount, "surplus_amount")
        check = self._validator.validate_surplus(surplus)
        if check.warnings:
            if self._audit_logger:
                for issue in check.warnings:
                    await self._audit_logger.log_suspect_input(
                        field=issue.field,
                        value=str(surplus),
                        message=issue.message,
                        correlation_id=correlation_id,
                    )
            return AllocationResult(surplus_amount=surplus, remaining_surplus=surplus)

        goals = await self._goals.list_all()
        ranked = self.rank_goals(goals, today)[: self._settings.max_goals_per_allocation]

        remaining = surplus
        allocations = []
        for goal, priority in ranked:
            if remaining <= 0:
                break
            gap = goal.target_amount - goal.current_amount
            amount = min(remaining, self._settings.funding_tranche_cap, gap)
            if amount <= 0:
                continue
            allocations.append(FundingAllocation(
                goal_id=goal.id,
                goal_name=goal.name,
                amount=amount,
                priority=priority,
            ))
            remaining -= amount

        result = AllocationResult(
            surplus_amount=surplus,
            allocations=allocations,
            remaining_surplus=remaining,
        )

        if self._audit_logger:
            await self._audit_logger.log_allocation_computed(
                surplus=str(surplus),
                allocated=str(result.allocated_total),
                remaining=str(remaining),
                goal_count=len(allocations),
                correlation_id=correlation_id,
            )

        return result

    async def apply(
        self,
        result: AllocationResult,
        correlation_id: Optional[UUID] = None,
    ) -> list[Goal]:
        """
        Credit each allocation to its goal.

        Each goal is re-read right before its write. Errors propagate; goals
        credited before a failure stay credited.
        """
        correlation_id = correlation_id or create_correlation_id()
        updated = []

        for allocation in result.allocations:
            goal = await self._goals.update_progress(
                allocation.goal_id,
                allocation.amount,
                correlation_id=correlation_id,
            )
            if self._audit_logger:
                await self._audit_logger.log_allocation_applied(
                    goal_id=allocation.goal_id,
                    amount=str(allocation.amount),
                    correlation_id=correlation_id,
                )
            updated.append(goal)

        return updated
