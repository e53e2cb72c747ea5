"""
Audit Logger

DESIGN DECISION: Every goal mutation and every engine run is logged.
This provides:
1. Traceability of auto-created goals back to the rule that made them
2. A visible trail for suspect inputs that were accepted
3. Debugging capability when a rule or generator fails

The audit logger:
- Is async so it fits the engine's request/response flow
- Gracefully handles failures (doesn't crash the engine if logging fails)
- Supports correlation IDs to trace the events of one operation
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finplan.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from finplan.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route the structured log to stderr at the given level."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finplan.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_goal_created(
        self,
        goal_id: UUID,
        name: str,
        slug: str,
        target_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.goal_created(
            goal_id=goal_id,
            name=name,
            slug=slug,
            target_amount=target_amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_goal_progress_updated(
        self,
        goal_id: UUID,
        delta: str,
        new_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.goal_progress_updated(
            goal_id=goal_id,
            delta=delta,
            new_amount=new_amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_suspect_input(
        self,
        field: str,
        value: str,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a value that was accepted despite looking wrong."""
        event = AuditEventBuilder.suspect_input(
            field=field,
            value=value,
            message=message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_auto_goal_created(
        self,
        goal_id: UUID,
        rule: str,
        slug: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.auto_goal_created(
            goal_id=goal_id,
            rule=rule,
            slug=slug,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_auto_goal_skipped(
        self,
        rule: str,
        slug: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.auto_goal_skipped(
            rule=rule,
            slug=slug,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_rule_failed(
        self,
        rule: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.rule_failed(
            rule=rule,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_allocation_computed(
        self,
        surplus: str,
        allocated: str,
        remaining: str,
        goal_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.allocation_computed(
            surplus=surplus,
            allocated=allocated,
            remaining=remaining,
            goal_count=goal_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_allocation_applied(
        self,
        goal_id: UUID,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.allocation_applied(
            goal_id=goal_id,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_portfolio_analyzed(
        self,
        holdings: int,
        risk_score: float,
        rebalance_needed: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.portfolio_analyzed(
            holdings=holdings,
            risk_score=risk_score,
            rebalance_needed=rebalance_needed,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_recommendations_generated(
        self,
        count: int,
        high_priority: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.recommendations_generated(
            count=count,
            high_priority=high_priority,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_recommendation_failed(
        self,
        generator: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.recommendation_failed(
            generator=generator,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a public engine operation.
    Pass it through all subsequent calls.
    """
    return uuid4()
