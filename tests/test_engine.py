"""
Integration tests for the PlanningEngine facade.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from conftest import TODAY
from finplan.engine import PlanningEngine, create_engine_components
from finplan.models import (
    AuditEventType,
    Dependent,
    GoalType,
    HouseholdProfile,
    Investment,
    InvestmentType,
    Relation,
)
from finplan.planning import RecommendationContext
from finplan.services.storage import InMemoryAuditStorage, InMemoryRecordStore, NotFoundError


FUTURE = date.today() + timedelta(days=60)


@pytest.fixture
def household():
    return HouseholdProfile(
        dependents=[
            Dependent(relation=Relation.CHILD, name="Asha", date_of_birth=date(2015, 1, 15)),
        ],
        annual_income=Decimal("1200000"),
        age=34,
    )


class TestCreateEngineComponents:
    """Tests for the factory function."""

    def test_defaults(self):
        engine, store, audit_logger = create_engine_components()
        assert isinstance(engine, PlanningEngine)
        assert isinstance(store, InMemoryRecordStore)
        assert audit_logger is not None

    @pytest.mark.asyncio
    async def test_given_store_is_used(self):
        store = InMemoryRecordStore(investments=[
            Investment(type=InvestmentType.EQUITY, current_value=Decimal("1000")),
        ])
        engine, returned, _ = create_engine_components(store=store)

        assert returned is store
        analysis = await engine.analyze_portfolio()
        assert analysis.asset_allocation == {"Equity": 100.0}


class TestEngineFlows:
    """End-to-end flows through the engine."""

    @pytest.mark.asyncio
    async def test_goal_lifecycle(self):
        engine, _, _ = create_engine_components()

        goal = await engine.create_goal("Emergency Fund", GoalType.MEDIUM, 300000, FUTURE)
        updated = await engine.update_goal_progress(goal.id, 50000)

        assert updated.current_amount == Decimal("50000")
        assert [g.id for g in await engine.list_goals()] == [goal.id]
        assert await engine.list_goals(GoalType.LONG) == []

    @pytest.mark.asyncio
    async def test_update_missing_goal(self):
        engine, _, _ = create_engine_components()
        with pytest.raises(NotFoundError):
            await engine.update_goal_progress(uuid4(), 10)

    @pytest.mark.asyncio
    async def test_auto_goals_then_allocate_and_apply(self, household):
        store = InMemoryRecordStore(investments=[
            Investment(type=InvestmentType.PPF, invested_value=Decimal("10000"),
                       current_value=Decimal("10000")),
        ])
        engine, _, _ = create_engine_components(store=store, profile=household)

        created = await engine.run_auto_goal_rules(today=TODAY)
        assert sorted(g.name for g in created) == ["Asha Education (UG@18, 2033)", "PPF Annual Deposit"]
        assert await engine.run_auto_goal_rules(today=TODAY) == []

        result = await engine.allocate_surplus(80000, apply=True, today=TODAY)

        # PPF deadline is within a year, so it is funded first
        assert [a.goal_name for a in result.allocations] == [
            "PPF Annual Deposit",
            "Asha Education (UG@18, 2033)",
        ]
        assert result.allocated_total + result.remaining_surplus == Decimal("80000")
        goals = {g.name: g.current_amount for g in await engine.list_goals()}
        assert goals["PPF Annual Deposit"] == Decimal("50000")
        assert goals["Asha Education (UG@18, 2033)"] == Decimal("30000")

    @pytest.mark.asyncio
    async def test_allocate_without_apply_is_a_proposal(self):
        engine, _, _ = create_engine_components()
        goal = await engine.create_goal("Car", GoalType.SHORT, 100000, FUTURE)

        result = await engine.allocate_surplus(10000)

        assert result.allocations[0].goal_id == goal.id
        goals = await engine.list_goals()
        assert goals[0].current_amount == Decimal("0")

    @pytest.mark.asyncio
    async def test_failed_apply_is_audited(self):
        class FailingUpdates(InMemoryRecordStore):
            async def update_goal(self, goal):
                raise NotFoundError("gone")

        audit_storage = InMemoryAuditStorage()
        engine, _, _ = create_engine_components(
            store=FailingUpdates(),
            audit_storage=audit_storage,
        )
        await engine.create_goal("Car", GoalType.SHORT, 100000, FUTURE)

        with pytest.raises(NotFoundError):
            await engine.allocate_surplus(10000, apply=True)

        events = await audit_storage.get_recent_events()
        assert events[0].event_type == AuditEventType.SYSTEM_ERROR
        assert events[0].details["stage"] == "allocation_apply"

    @pytest.mark.asyncio
    async def test_analyze_given_investments(self):
        audit_storage = InMemoryAuditStorage()
        engine, _, _ = create_engine_components(audit_storage=audit_storage)

        analysis = await engine.analyze_portfolio([
            Investment(type=InvestmentType.FD, current_value=Decimal("50000")),
            Investment(type=InvestmentType.SIP, current_value=Decimal("50000")),
        ])

        assert analysis.diversification_score == pytest.approx(50.0)
        events = await audit_storage.get_recent_events()
        assert events[0].event_type == AuditEventType.PORTFOLIO_ANALYZED
        assert events[0].details["holdings"] == 2

    @pytest.mark.asyncio
    async def test_recommendations_use_profile(self, household):
        engine, _, _ = create_engine_components(profile=household)

        recs = await engine.generate_recommendations(RecommendationContext(today=TODAY))

        gaps = {r.id: r.gap_amount for r in recs if r.category == "insurance"}
        assert gaps["term-insurance-gap"] == Decimal("12000000")
        assert gaps["health-insurance-gap"] == Decimal("6000000")

    @pytest.mark.asyncio
    async def test_events_share_correlation_id(self):
        audit_storage = InMemoryAuditStorage()
        engine, _, _ = create_engine_components(audit_storage=audit_storage)
        await engine.create_goal("Car", GoalType.SHORT, 100000, FUTURE)
        await engine.create_goal("Bike", GoalType.SHORT, 50000, FUTURE)

        await engine.allocate_surplus(120000, apply=True)

        latest = (await audit_storage.get_recent_events())[0]
        related = await audit_storage.get_events_by_correlation_id(latest.correlation_id)
        kinds = [e.event_type for e in related]
        assert kinds.count(AuditEventType.ALLOCATION_COMPUTED) == 1
        assert kinds.count(AuditEventType.ALLOCATION_APPLIED) == 2
        assert kinds.count(AuditEventType.GOAL_PROGRESS_UPDATED) == 2
