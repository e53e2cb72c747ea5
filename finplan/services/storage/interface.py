"""
Abstract Record Store Interface

DESIGN DECISION: The engine only ever talks to storage through this
interface. This allows us to:
1. Plug the engine into whatever database the host application uses
2. Use in-memory storage for testing
3. Keep planning logic decoupled from persistence

The interface is intentionally small. Goals are the only collection the
engine writes; everything else is read-only input.

CONCURRENCY NOTE: The auto-goal engine's "does this slug exist?" check is
read-then-create and is not atomic. Implementations MUST enforce slug
uniqueness themselves and raise DuplicateError on a conflicting insert.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from finplan.models.audit import AuditEvent
from finplan.models.records import (
    Goal,
    GoalType,
    InsurancePolicy,
    Investment,
    Loan,
    Transaction,
)


class RecordStoreInterface(ABC):
    """
    Abstract interface for the household record store.

    Any storage implementation (SQL, document store, etc.)
    must implement these methods.
    """

    # -------------------------------------------------------------------------
    # Goals (read/write)
    # -------------------------------------------------------------------------

    @abstractmethod
    async def add_goal(self, goal: Goal) -> Goal:
        """
        Persist a new goal.

        Raises:
            DuplicateError: If a goal with the same slug already exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_goal(self, goal_id: UUID) -> Optional[Goal]:
        """Retrieve a goal by id, or None."""
        pass

    @abstractmethod
    async def get_goal_by_slug(self, slug: str) -> Optional[Goal]:
        """Retrieve a goal by its slug, or None."""
        pass

    @abstractmethod
    async def update_goal(self, goal: Goal) -> Goal:
        """
        Replace an existing goal.

        Raises:
            NotFoundError: If the goal doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def list_goals(
        self,
        goal_type: Optional[GoalType] = None,
    ) -> list[Goal]:
        """List goals, optionally filtered by type. Order is unspecified."""
        pass

    # -------------------------------------------------------------------------
    # Read-only collections
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_investments(self) -> list[Investment]:
        pass

    @abstractmethod
    async def list_insurance(self) -> list[InsurancePolicy]:
        pass

    @abstractmethod
    async def list_loans(self, active_only: bool = False) -> list[Loan]:
        pass

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events of one engine operation, oldest first."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
