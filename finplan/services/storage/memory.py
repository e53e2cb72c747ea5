"""
In-Memory Storage Implementation

Keeps every collection in process memory. Used by the test suite and by
callers that load their records from elsewhere and only need the engine.

Goals are kept in an arena keyed by id plus a unique index on slug, so a
second insert with the same slug fails with DuplicateError. That index is
the storage-layer half of the auto-goal idempotence guarantee.

Records are copied on the way in and on the way out. Callers never hold a
reference to the stored object, which mirrors the snapshot semantics of a
real database.
"""

from collections import deque
from datetime import datetime
from typing import Iterable, Optional
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
from finplan.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    RecordStoreInterface,
)


class InMemoryRecordStore(RecordStoreInterface):
    """
    Record store backed by dicts and lists.

    The read-only collections are seeded through the constructor or the
    load_* helpers; the engine itself never writes them.
    """

    def __init__(
        self,
        investments: Optional[Iterable[Investment]] = None,
        insurance: Optional[Iterable[InsurancePolicy]] = None,
        loans: Optional[Iterable[Loan]] = None,
        transactions: Optional[Iterable[Transaction]] = None,
        goals: Optional[Iterable[Goal]] = None,
    ):
        self._goals: dict[UUID, Goal] = {}
        self._slug_index: dict[str, UUID] = {}
        self._investments: list[Investment] = []
        self._insurance: list[InsurancePolicy] = []
        self._loans: list[Loan] = []
        self._transactions: list[Transaction] = []

        self.load_investments(investments or [])
        self.load_insurance(insurance or [])
        self.load_loans(loans or [])
        self.load_transactions(transactions or [])
        for goal in goals or []:
            self._insert_goal(goal)

    # -------------------------------------------------------------------------
    # Seeding helpers
    # -------------------------------------------------------------------------

    def load_investments(self, investments: Iterable[Investment]) -> None:
        self._investments.extend(inv.model_copy() for inv in investments)

    def load_insurance(self, policies: Iterable[InsurancePolicy]) -> None:
        self._insurance.extend(p.model_copy() for p in policies)

    def load_loans(self, loans: Iterable[Loan]) -> None:
        self._loans.extend(loan.model_copy() for loan in loans)

    def load_transactions(self, transactions: Iterable[Transaction]) -> None:
        self._transactions.extend(t.model_copy() for t in transactions)

    # -------------------------------------------------------------------------
    # Goals
    # -------------------------------------------------------------------------

    def _insert_goal(self, goal: Goal) -> Goal:
        if goal.slug in self._slug_index:
            raise DuplicateError(f"Goal with slug '{goal.slug}' already exists")
        if goal.id in self._goals:
            raise DuplicateError(f"Goal with id {goal.id} already exists")

        stored = goal.model_copy()
        self._goals[stored.id] = stored
        self._slug_index[stored.slug] = stored.id
        return stored.model_copy()

    async def add_goal(self, goal: Goal) -> Goal:
        return self._insert_goal(goal)

    async def get_goal(self, goal_id: UUID) -> Optional[Goal]:
        goal = self._goals.get(goal_id)
        return goal.model_copy() if goal else None

    async def get_goal_by_slug(self, slug: str) -> Optional[Goal]:
        goal_id = self._slug_index.get(slug)
        if goal_id is None:
            return None
        return self._goals[goal_id].model_copy()

    async def update_goal(self, goal: Goal) -> Goal:
        existing = self._goals.get(goal.id)
        if existing is None:
            raise NotFoundError(f"Goal {goal.id} not found")

        if goal.slug != existing.slug:
            owner = self._slug_index.get(goal.slug)
            if owner is not None and owner != goal.id:
                raise DuplicateError(f"Goal with slug '{goal.slug}' already exists")
            del self._slug_index[existing.slug]
            self._slug_index[goal.slug] = goal.id

        stored = goal.model_copy(update={"updated_at": datetime.utcnow()})
        self._goals[goal.id] = stored
        return stored.model_copy()

    async def list_goals(
        self,
        goal_type: Optional[GoalType] = None,
    ) -> list[Goal]:
        return [
            goal.model_copy()
            for goal in self._goals.values()
            if goal_type is None or goal.type == goal_type
        ]

    # -------------------------------------------------------------------------
    # Read-only collections
    # -------------------------------------------------------------------------

    async def list_investments(self) -> list[Investment]:
        return [inv.model_copy() for inv in self._investments]

    async def list_insurance(self) -> list[InsurancePolicy]:
        return [p.model_copy() for p in self._insurance]

    async def list_loans(self, active_only: bool = False) -> list[Loan]:
        return [
            loan.model_copy()
            for loan in self._loans
            if loan.is_active or not active_only
        ]

    async def list_transactions(self) -> list[Transaction]:
        return [t.model_copy() for t in self._transactions]


class InMemoryAuditStorage(AuditStorageInterface):
    """Bounded, append-only audit log kept in memory."""

    def __init__(self, max_events: int = 10000):
        self._events: deque[AuditEvent] = deque(maxlen=max_events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
