"""
Tests for the goal lifecycle manager and the input validation hook.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from finplan.models import AuditEventType, GoalType
from finplan.planning import GoalManager, make_slug
from finplan.services.storage import DuplicateError, NotFoundError
from finplan.validation import GoalInputValidator, ValidationError, to_amount


FUTURE = date.today() + timedelta(days=400)


class TestMakeSlug:
    """Tests for slug derivation."""

    def test_basic_slug(self):
        assert make_slug("PPF Annual Deposit", GoalType.SHORT) == "ppf-annual-deposit-short"

    def test_punctuation_dropped(self):
        assert make_slug("NPS-T1 80CCD(1B)", GoalType.SHORT) == "npst1-80ccd1b-short"

    def test_whitespace_runs_collapse(self):
        assert make_slug("Emergency   Fund", GoalType.MEDIUM) == "emergency-fund-medium"

    def test_truncated_before_type_suffix(self):
        slug = make_slug("A Very Long Goal Name That Keeps Going", GoalType.LONG)
        assert slug == "a-very-long-goal-name-that-kee-long"

    def test_no_hyphen_left_at_truncation_point(self):
        slug = make_slug("A Very Long Goal Name That Ke x", GoalType.SHORT)
        assert slug == "a-very-long-goal-name-that-ke-short"

    def test_name_without_latin_characters(self):
        assert make_slug("आरव", GoalType.LONG) == "-long"
        assert make_slug("आरव Education", GoalType.LONG) == "education-long"

    def test_deterministic(self):
        assert make_slug("Car", GoalType.SHORT) == make_slug("Car", GoalType.SHORT)

    def test_type_distinguishes(self):
        assert make_slug("Car", GoalType.SHORT) != make_slug("Car", GoalType.LONG)


class TestToAmount:
    """Tests for amount coercion."""

    def test_float_goes_through_str(self):
        assert to_amount(0.1, "x") == Decimal("0.1")

    def test_string_amount(self):
        assert to_amount("2500.50", "x") == Decimal("2500.50")

    @pytest.mark.parametrize("value", ["abc", None, True, float("nan"), float("inf"), "Infinity"])
    def test_malformed_rejected(self, value):
        with pytest.raises(ValidationError):
            to_amount(value, "x")


class TestGoalInputValidator:
    """Tests for the permissive and strict validation modes."""

    def test_blank_name_always_rejected(self):
        with pytest.raises(ValidationError):
            GoalInputValidator(strict=False).validate_goal("   ", Decimal("1"), FUTURE)

    def test_permissive_flags_suspect_values(self):
        result = GoalInputValidator(strict=False).validate_goal(
            "Odd", Decimal("-5"), date(2000, 1, 1)
        )
        assert {issue.issue_type for issue in result.warnings} == {"non_positive", "past_date"}

    def test_strict_rejects_suspect_values(self):
        with pytest.raises(ValidationError) as exc_info:
            GoalInputValidator(strict=True).validate_goal("Odd", Decimal("0"), FUTURE)
        assert exc_info.value.issues[0].severity == "error"

    def test_over_long_name_rejected(self):
        with pytest.raises(ValidationError):
            GoalInputValidator(strict=False).validate_goal("x" * 201, Decimal("1"), FUTURE)

    def test_over_long_notes_rejected(self):
        with pytest.raises(ValidationError):
            GoalInputValidator(strict=False).validate_goal(
                "Car", Decimal("1"), FUTURE, notes="n" * 1001
            )

    def test_clean_goal_has_no_issues(self):
        result = GoalInputValidator(strict=False).validate_goal("Car", Decimal("10"), FUTURE)
        assert result.issues == []

    def test_surplus_check(self):
        assert GoalInputValidator(strict=False).validate_surplus(Decimal("0")).warnings
        assert not GoalInputValidator(strict=False).validate_surplus(Decimal("1")).issues


class TestGoalManagerCreate:
    """Tests for GoalManager.create."""

    @pytest.mark.asyncio
    async def test_create_persists_goal(self, goal_manager, store):
        goal = await goal_manager.create("Car", GoalType.SHORT, "500000", FUTURE)

        assert goal.slug == "car-short"
        assert goal.current_amount == Decimal("0")
        assert goal.target_amount == Decimal("500000")
        assert await store.get_goal(goal.id) == goal

    @pytest.mark.asyncio
    async def test_create_strips_name_before_slug(self, goal_manager):
        goal = await goal_manager.create("  Car  ", GoalType.SHORT, 1000, FUTURE)
        assert goal.name == "Car"
        assert goal.slug == "car-short"

    @pytest.mark.asyncio
    async def test_duplicate_slug_rejected(self, goal_manager):
        await goal_manager.create("Car", GoalType.SHORT, 1000, FUTURE)
        with pytest.raises(DuplicateError):
            await goal_manager.create("car!", GoalType.SHORT, 2000, FUTURE)

    @pytest.mark.asyncio
    async def test_negative_target_accepted_and_audited(self, goal_manager, audit_storage):
        """Suspect values are accepted by default, with a warning event."""
        goal = await goal_manager.create("Refund", GoalType.MICRO, -100, date(2020, 1, 1))

        assert goal.target_amount == Decimal("-100")
        events = await audit_storage.get_recent_events()
        suspect = [e for e in events if e.event_type == AuditEventType.SUSPECT_INPUT]
        assert {e.details["field"] for e in suspect} == {"target_amount", "target_date"}

    @pytest.mark.asyncio
    async def test_strict_mode_rejects(self, store):
        manager = GoalManager(store, validator=GoalInputValidator(strict=True))
        with pytest.raises(ValidationError):
            await manager.create("Refund", GoalType.MICRO, -100, FUTURE)
        assert await store.list_goals() == []

    @pytest.mark.asyncio
    async def test_malformed_amount_rejected(self, goal_manager, store):
        with pytest.raises(ValidationError):
            await goal_manager.create("Car", GoalType.SHORT, "lots", FUTURE)
        assert await store.list_goals() == []

    @pytest.mark.asyncio
    async def test_over_long_name_is_a_validation_error(self, goal_manager, store):
        with pytest.raises(ValidationError):
            await goal_manager.create("Goal " * 50, GoalType.SHORT, 1000, FUTURE)
        assert await store.list_goals() == []

    @pytest.mark.asyncio
    async def test_create_is_audited(self, goal_manager, audit_storage):
        await goal_manager.create("Car", GoalType.SHORT, 1000, FUTURE)
        events = await audit_storage.get_recent_events()
        assert events[0].event_type == AuditEventType.GOAL_CREATED
        assert events[0].details["slug"] == "car-short"


class TestGoalManagerProgress:
    """Tests for GoalManager.update_progress."""

    @pytest.mark.asyncio
    async def test_add_progress(self, goal_manager):
        goal = await goal_manager.create("Car", GoalType.SHORT, 1000, FUTURE)
        updated = await goal_manager.update_progress(goal.id, "250.50")
        assert updated.current_amount == Decimal("250.50")

    @pytest.mark.asyncio
    async def test_progress_not_clamped(self, goal_manager):
        goal = await goal_manager.create("Car", GoalType.SHORT, 1000, FUTURE)
        over = await goal_manager.update_progress(goal.id, 1500)
        assert over.current_amount == Decimal("1500")
        under = await goal_manager.update_progress(goal.id, -2000)
        assert under.current_amount == Decimal("-500")

    @pytest.mark.asyncio
    async def test_missing_goal_raises(self, goal_manager):
        with pytest.raises(NotFoundError):
            await goal_manager.update_progress(uuid4(), 10)

    @pytest.mark.asyncio
    async def test_progress_reads_latest_value(self, goal_manager, store):
        """Updates apply on top of whatever the store currently holds."""
        goal = await goal_manager.create("Car", GoalType.SHORT, 1000, FUTURE)
        await store.update_goal(goal.model_copy(update={"current_amount": Decimal("400")}))

        updated = await goal_manager.update_progress(goal.id, 100)
        assert updated.current_amount == Decimal("500")


class TestGoalManagerQueries:
    """Tests for reading goals back."""

    @pytest.mark.asyncio
    async def test_list_all_sorted_by_date(self, goal_manager):
        later = await goal_manager.create("Later", GoalType.LONG, 10, FUTURE + timedelta(days=100))
        sooner = await goal_manager.create("Sooner", GoalType.SHORT, 10, FUTURE)

        goals = await goal_manager.list_all()
        assert [g.id for g in goals] == [sooner.id, later.id]

    @pytest.mark.asyncio
    async def test_list_by_type(self, goal_manager):
        await goal_manager.create("Later", GoalType.LONG, 10, FUTURE)
        await goal_manager.create("Sooner", GoalType.SHORT, 10, FUTURE)

        longs = await goal_manager.list_by_type(GoalType.LONG)
        assert [g.name for g in longs] == ["Later"]

    @pytest.mark.asyncio
    async def test_get_by_slug(self, goal_manager):
        goal = await goal_manager.create("Car", GoalType.SHORT, 10, FUTURE)
        assert (await goal_manager.get_by_slug("car-short")).id == goal.id
        assert await goal_manager.get_by_slug("boat-short") is None
