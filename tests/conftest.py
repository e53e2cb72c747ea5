"""
Pytest configuration and shared fixtures for finplan tests.

Every fixture builds on the in-memory record store, so no test touches
a real database. Dates are pinned to TODAY so deadline arithmetic is
deterministic.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from finplan.audit import AuditLogger
from finplan.config import PlanningSettings
from finplan.models import Goal, GoalType
from finplan.planning import GoalManager, make_slug
from finplan.services.storage import InMemoryAuditStorage, InMemoryRecordStore
from finplan.validation import GoalInputValidator


TODAY = date(2025, 6, 1)


def make_goal(
    name: str,
    target: str,
    days_out: int,
    current: str = "0",
    goal_type: GoalType = GoalType.SHORT,
) -> Goal:
    """Build a goal due `days_out` days after TODAY."""
    return Goal(
        slug=make_slug(name, goal_type),
        name=name,
        type=goal_type,
        target_amount=Decimal(target),
        current_amount=Decimal(current),
        target_date=TODAY + timedelta(days=days_out),
    )


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def settings():
    return PlanningSettings()


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def validator():
    return GoalInputValidator(strict=False)


@pytest.fixture
def goal_manager(store, validator, audit_logger):
    return GoalManager(store, validator=validator, audit_logger=audit_logger)
