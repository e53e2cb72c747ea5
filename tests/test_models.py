"""
Tests for finplan models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Component tests against the in-memory record store
3. No external services in tests
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from finplan.models import (
    AllocationResult,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Dependent,
    FundingAllocation,
    FundingPriority,
    Goal,
    GoalType,
    HouseholdProfile,
    Investment,
    InvestmentType,
    PortfolioAnalysis,
    Priority,
    Relation,
    Transaction,
    ValidationIssue,
    ValidationResult,
)


class TestGoalModel:
    """Tests for the Goal model."""

    def test_goal_defaults(self):
        """New goals start unfunded with generated ids."""
        goal = Goal(
            slug="car-short",
            name="Car",
            type=GoalType.SHORT,
            target_amount=Decimal("500000"),
            target_date=date(2026, 1, 1),
        )
        assert goal.current_amount == Decimal("0")
        assert goal.id is not None
        assert goal.notes == ""

    def test_goal_strips_whitespace(self):
        """Whitespace is stripped from the goal name."""
        goal = Goal(
            slug="car-short",
            name="  Car  ",
            type=GoalType.SHORT,
            target_amount=Decimal("1"),
            target_date=date(2026, 1, 1),
        )
        assert goal.name == "Car"

    def test_goal_accepts_negative_target(self):
        """Target amounts are deliberately not range-checked."""
        goal = Goal(
            slug="odd-short",
            name="Odd",
            type=GoalType.SHORT,
            target_amount=Decimal("-100"),
            target_date=date(2020, 1, 1),
        )
        assert goal.target_amount == Decimal("-100")

    def test_remaining_and_progress(self):
        """Remaining amount and progress are derived from the two amounts."""
        goal = Goal(
            slug="trip-small",
            name="Trip",
            type=GoalType.SMALL,
            target_amount=Decimal("1000"),
            current_amount=Decimal("250"),
            target_date=date(2026, 1, 1),
        )
        assert goal.remaining_amount == Decimal("750")
        assert goal.progress_percent == 25.0
        assert not goal.is_funded

    def test_overfunded_goal(self):
        """Over-funding is representable; remaining amount never goes negative."""
        goal = Goal(
            slug="trip-small",
            name="Trip",
            type=GoalType.SMALL,
            target_amount=Decimal("1000"),
            current_amount=Decimal("1200"),
            target_date=date(2026, 1, 1),
        )
        assert goal.is_funded
        assert goal.remaining_amount == Decimal("0")

    def test_progress_for_non_positive_target(self):
        goal = Goal(
            slug="x-micro",
            name="X",
            type=GoalType.MICRO,
            target_amount=Decimal("0"),
            target_date=date(2026, 1, 1),
        )
        assert goal.progress_percent == 0.0

    def test_invalid_goal_type_rejected(self):
        with pytest.raises(PydanticValidationError):
            Goal(
                slug="x",
                name="X",
                type="Forever",
                target_amount=Decimal("1"),
                target_date=date(2026, 1, 1),
            )


class TestHouseholdModels:
    """Tests for dependents and the household profile."""

    def test_age_before_birthday(self):
        child = Dependent(relation=Relation.CHILD, name="Asha", date_of_birth=date(2015, 6, 2))
        assert child.age_on(date(2025, 6, 1)) == 9

    def test_age_on_birthday(self):
        child = Dependent(relation=Relation.CHILD, name="Asha", date_of_birth=date(2015, 6, 1))
        assert child.age_on(date(2025, 6, 1)) == 10

    def test_elder_relations(self):
        assert Relation.MOTHER.is_elder
        assert Relation.GRANDFATHER.is_elder
        assert not Relation.CHILD.is_elder
        assert not Relation.SPOUSE.is_elder

    def test_profile_defaults(self):
        profile = HouseholdProfile()
        assert profile.dependents == []
        assert profile.annual_income is None
        assert profile.age is None

    def test_profile_rejects_negative_income(self):
        with pytest.raises(PydanticValidationError):
            HouseholdProfile(annual_income=Decimal("-1"))


class TestRecordModels:
    """Tests for the read-only financial records."""

    def test_investment_type_from_tag(self):
        """Imported tags map onto the closed enum."""
        inv = Investment(type="NPS-T1", current_value=Decimal("1000"))
        assert inv.type == InvestmentType.NPS_T1

    def test_unknown_investment_type_rejected(self):
        with pytest.raises(PydanticValidationError):
            Investment(type="Crypto", current_value=Decimal("1000"))

    def test_transaction_sign(self):
        income = Transaction(date=date(2025, 1, 1), amount=Decimal("5000"))
        expense = Transaction(date=date(2025, 1, 1), amount=Decimal("-200"))
        assert income.is_income and not income.is_expense
        assert expense.is_expense and not expense.is_income


class TestAnalysisModels:
    """Tests for output models."""

    def test_priority_rank_order(self):
        assert Priority.HIGH.rank > Priority.MEDIUM.rank > Priority.LOW.rank

    def test_empty_portfolio_analysis(self):
        analysis = PortfolioAnalysis()
        assert analysis.is_empty
        assert analysis.max_weight == 0.0
        assert analysis.rebalance_needed is False

    def test_allocated_total(self):
        result = AllocationResult(
            surplus_amount=Decimal("100"),
            allocations=[
                FundingAllocation(
                    goal_id=uuid4(),
                    goal_name="A",
                    amount=Decimal("60"),
                    priority=FundingPriority.HIGH,
                ),
                FundingAllocation(
                    goal_id=uuid4(),
                    goal_name="B",
                    amount=Decimal("30"),
                    priority=FundingPriority.MEDIUM,
                ),
            ],
            remaining_surplus=Decimal("10"),
        )
        assert result.allocated_total == Decimal("90")

    def test_allocation_amount_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            FundingAllocation(
                goal_id=uuid4(),
                goal_name="A",
                amount=Decimal("0"),
                priority=FundingPriority.HIGH,
            )

    def test_validation_result_warnings(self):
        result = ValidationResult(issues=[
            ValidationIssue(
                field="target_amount",
                issue_type="non_positive",
                message="Target amount -1 is not positive",
                severity="warning",
            ),
        ])
        assert not result.has_errors
        assert len(result.warnings) == 1

    def test_validation_issue_severity_pattern(self):
        with pytest.raises(PydanticValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.GOAL_CREATED,
            description="Goal created",
        )
        assert event.event_id is not None
        assert event.timestamp is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test AuditEvent conversion to log dict."""
        goal_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.ALLOCATION_APPLIED,
            entity_type="goal",
            entity_id=goal_id,
            description="Allocated 100 to goal",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "allocation_applied"
        assert log_dict["entity_id"] == str(goal_id)
        assert log_dict["correlation_id"] is None

    def test_rule_failed_builder(self):
        event = AuditEventBuilder.rule_failed("child_education", "boom")
        assert event.event_type == AuditEventType.AUTO_GOAL_RULE_FAILED
        assert event.severity == AuditSeverity.ERROR
        assert event.details["rule"] == "child_education"
        assert event.error_message == "boom"

    def test_suspect_input_is_warning(self):
        event = AuditEventBuilder.suspect_input("target_amount", "-5", "not positive")
        assert event.severity == AuditSeverity.WARNING
