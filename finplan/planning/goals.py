"""
Goal Lifecycle Manager

Creates goals, derives their slugs, and applies progress changes.
This is the only component that writes goals to the record store; the
auto-goal engine and the funding allocator both go through it.

GUARANTEES:
- A slug is a pure function of (name, type)
- New goals always start with current_amount = 0
- Progress updates re-read the goal immediately before writing
- Amounts are never clamped (over-funding and withdrawals below zero
  are representable; callers own those decisions)
"""

import re
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from finplan.audit import AuditLogger
from finplan.models.records import Goal, GoalType
from finplan.services.storage import NotFoundError, RecordStoreInterface
from finplan.validation import GoalInputValidator, to_amount
from finplan.validation.validator import Amount


SLUG_MAX_LENGTH = 30

_DISALLOWED_SLUG_CHARS = re.compile(r"[^a-z0-9\s]")
_WHITESPACE_RUN = re.compile(r"\s+")


def slug_base(name: str) -> str:
    """The hyphenated [a-z0-9] part of a slug, before truncation."""
    base = _DISALLOWED_SLUG_CHARS.sub("", name.lower()).strip()
    return _WHITESPACE_RUN.sub("-", base)


def make_slug(name: str, goal_type: GoalType) -> str:
    """
    Derive the deterministic slug for a goal.

    Lowercases the name, drops everything outside [a-z0-9] and whitespace,
    turns whitespace runs into hyphens, truncates to 30 characters without
    a trailing hyphen, and appends the lowercased goal type.

        >>> make_slug("PPF Annual Deposit", GoalType.SHORT)
        'ppf-annual-deposit-short'
    """
    base = slug_base(name)[:SLUG_MAX_LENGTH].rstrip("-")
    return f"{base}-{GoalType(goal_type).value.lower()}"


class GoalManager:
    """
    Goal create/read/update operations over a record store.

    Errors from the store (NotFoundError, DuplicateError, StorageError)
    propagate to the caller unchanged.
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        validator: Optional[GoalInputValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._validator = validator or GoalInputValidator()
        self._audit_logger = audit_logger

    async def create(
        self,
        name: str,
        goal_type: GoalType,
        target_amount: Amount,
        target_date: date,
        notes: str = "",
        correlation_id: Optional[UUID] = None,
    ) -> Goal:
        """
        Create and persist a new goal.

        Non-positive amounts and past dates are accepted and audited as
        suspect unless strict validation is on.

        Raises:
            ValidationError: Malformed amount, blank or over-long name
            DuplicateError: A goal with the same slug already exists
        """
        amount = to_amount(target_amount, "target_amount")
        result = self._validator.validate_goal(name, amount, target_date, notes=notes)
        name = name.strip()

        if self._audit_logger:
            for issue in result.warnings:
                await self._audit_logger.log_suspect_input(
                    field=issue.field,
                    value=str(amount) if issue.field == "target_amount" else str(target_date),
                    message=issue.message,
                    correlation_id=correlation_id,
                )

        goal = Goal(
            slug=make_slug(name, goal_type),
            name=name,
            type=goal_type,
            target_amount=amount,
            current_amount=Decimal("0"),
            target_date=target_date,
            notes=notes,
        )
        saved = await self._store.add_goal(goal)

        if self._audit_logger:
            await self._audit_logger.log_goal_created(
                goal_id=saved.id,
                name=saved.name,
                slug=saved.slug,
                target_amount=str(saved.target_amount),
                correlation_id=correlation_id,
            )

        return saved

    async def update_progress(
        self,
        goal_id: UUID,
        delta: Amount,
        correlation_id: Optional[UUID] = None,
    ) -> Goal:
        """
        Add delta (possibly negative) to a goal's current amount.

        Raises:
            NotFoundError: If the goal doesn't exist
            ValidationError: If delta is not a finite number
        """
        delta_amount = to_amount(delta, "delta")

        goal = await self._store.get_goal(goal_id)
        if goal is None:
            raise NotFoundError(f"Goal {goal_id} not found")

        updated = goal.model_copy(
            update={"current_amount": goal.current_amount + delta_amount}
        )
        saved = await self._store.update_goal(updated)

        if self._audit_logger:
            await self._audit_logger.log_goal_progress_updated(
                goal_id=saved.id,
                delta=str(delta_amount),
                new_amount=str(saved.current_amount),
                correlation_id=correlation_id,
            )

        return saved

    async def get(self, goal_id: UUID) -> Optional[Goal]:
        return await self._store.get_goal(goal_id)

    async def get_by_slug(self, slug: str) -> Optional[Goal]:
        return await self._store.get_goal_by_slug(slug)

    async def list_all(self) -> list[Goal]:
        """All goals, soonest target date first."""
        goals = await self._store.list_goals()
        return sorted(goals, key=lambda g: g.target_date)

    async def list_by_type(self, goal_type: GoalType) -> list[Goal]:
        return await self._store.list_goals(goal_type=goal_type)
