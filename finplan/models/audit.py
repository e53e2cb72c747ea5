"""
Audit Models for the Planning Engine

Every goal mutation and every engine run is logged for audit purposes.
This provides:
1. Traceability of which rule created which goal
2. A record of suspect inputs that were accepted rather than rejected
3. Debugging information when a rule or generator fails

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Goal lifecycle
    GOAL_CREATED = "goal_created"
    GOAL_PROGRESS_UPDATED = "goal_progress_updated"
    SUSPECT_INPUT = "suspect_input"

    # Auto-goal rules
    AUTO_GOAL_CREATED = "auto_goal_created"
    AUTO_GOAL_SKIPPED = "auto_goal_skipped"
    AUTO_GOAL_RULE_FAILED = "auto_goal_rule_failed"

    # Funding
    ALLOCATION_COMPUTED = "allocation_computed"
    ALLOCATION_APPLIED = "allocation_applied"

    # Analytics and advice
    PORTFOLIO_ANALYZED = "portfolio_analyzed"
    RECOMMENDATIONS_GENERATED = "recommendations_generated"
    RECOMMENDATION_FAILED = "recommendation_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = Field(default=AuditSeverity.INFO)

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'goal', 'portfolio')"
    )
    entity_id: Optional[UUID] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one engine operation"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.goal_created(goal_id, name, slug, amount)
        event = AuditEventBuilder.rule_failed("child_education", str(exc))
    """

    @staticmethod
    def goal_created(
        goal_id: UUID,
        name: str,
        slug: str,
        target_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_CREATED,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Goal created: {name}",
            details={
                "slug": slug,
                "target_amount": target_amount,
            },
        )

    @staticmethod
    def goal_progress_updated(
        goal_id: UUID,
        delta: str,
        new_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_PROGRESS_UPDATED,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Goal progress changed by {delta}",
            details={
                "delta": delta,
                "current_amount": new_amount,
            },
        )

    @staticmethod
    def suspect_input(
        field: str,
        value: str,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUSPECT_INPUT,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Suspect value accepted for {field}: {message}",
            details={
                "field": field,
                "value": value,
            },
        )

    @staticmethod
    def auto_goal_created(
        goal_id: UUID,
        rule: str,
        slug: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTO_GOAL_CREATED,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Auto-goal created by rule '{rule}'",
            details={
                "rule": rule,
                "slug": slug,
            },
        )

    @staticmethod
    def auto_goal_skipped(
        rule: str,
        slug: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTO_GOAL_SKIPPED,
            severity=AuditSeverity.DEBUG,
            correlation_id=correlation_id,
            description=f"Goal '{slug}' already exists",
            details={
                "rule": rule,
                "slug": slug,
            },
        )

    @staticmethod
    def rule_failed(
        rule: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTO_GOAL_RULE_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Auto-goal rule '{rule}' failed",
            details={"rule": rule},
            error_message=error_message,
        )

    @staticmethod
    def allocation_computed(
        surplus: str,
        allocated: str,
        remaining: str,
        goal_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALLOCATION_COMPUTED,
            entity_type="allocation",
            correlation_id=correlation_id,
            description=f"Surplus of {surplus} split across {goal_count} goal(s)",
            details={
                "surplus": surplus,
                "allocated": allocated,
                "remaining": remaining,
                "goal_count": goal_count,
            },
        )

    @staticmethod
    def allocation_applied(
        goal_id: UUID,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALLOCATION_APPLIED,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Allocated {amount} to goal",
            details={"amount": amount},
        )

    @staticmethod
    def portfolio_analyzed(
        holdings: int,
        risk_score: float,
        rebalance_needed: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PORTFOLIO_ANALYZED,
            entity_type="portfolio",
            correlation_id=correlation_id,
            description=f"Portfolio of {holdings} holding(s) analyzed",
            details={
                "holdings": holdings,
                "risk_score": risk_score,
                "rebalance_needed": rebalance_needed,
            },
        )

    @staticmethod
    def recommendations_generated(
        count: int,
        high_priority: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECOMMENDATIONS_GENERATED,
            correlation_id=correlation_id,
            description=f"{count} recommendation(s) generated",
            details={
                "count": count,
                "high_priority": high_priority,
            },
        )

    @staticmethod
    def recommendation_failed(
        generator: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECOMMENDATION_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Recommendation generator '{generator}' failed",
            details={"generator": generator},
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_message=error_message,
        )
