"""
Tests for configuration loading and the audit logger.
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from finplan.audit import AuditLogger, create_correlation_id
from finplan.config import AppSettings, PlanningSettings, get_settings, validate_all_settings
from finplan.models import AuditEventBuilder, AuditEventType
from finplan.services.storage import AuditStorageInterface, InMemoryAuditStorage, StorageError


class TestPlanningSettings:
    """Tests for planning constants."""

    def test_defaults(self):
        settings = PlanningSettings()
        assert settings.funding_tranche_cap == Decimal("50000")
        assert settings.max_goals_per_allocation == 5
        assert settings.high_priority_window_days == 365
        assert settings.education_inflation_rate == Decimal("0.07")
        assert settings.nps_annual_cap == Decimal("50000")
        assert settings.risk_free_rate == 6.0
        assert settings.strict_goal_validation is False
        assert settings.sip_starter_amount == Decimal("5000")
        assert settings.investment_corpus_months == 6

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("FINPLAN_FUNDING_TRANCHE_CAP", "25000")
        monkeypatch.setenv("FINPLAN_STRICT_GOAL_VALIDATION", "true")

        settings = PlanningSettings()

        assert settings.funding_tranche_cap == Decimal("25000")
        assert settings.strict_goal_validation is True

    def test_thresholds_must_be_ordered(self):
        with pytest.raises(PydanticValidationError):
            PlanningSettings(thin_position_threshold=70.0, concentration_threshold=60.0)

    def test_tranche_cap_positive(self):
        with pytest.raises(PydanticValidationError):
            PlanningSettings(funding_tranche_cap=Decimal("0"))


class TestAppSettings:

    def test_log_level_pattern(self):
        with pytest.raises(PydanticValidationError):
            AppSettings(log_level="LOUD")

    def test_get_settings_cached(self):
        assert get_settings() is get_settings()

    def test_validate_all_settings(self):
        results = validate_all_settings()
        assert results["planning"] is True
        assert results["app"] is True


class TestAuditLogger:
    """Tests for the audit logger."""

    @pytest.mark.asyncio
    async def test_persists_to_storage(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()

        await logger.log_rule_failed("festival_corpus", "boom", correlation_id=correlation_id)

        events = await storage.get_events_by_correlation_id(correlation_id)
        assert len(events) == 1
        assert events[0].event_type == AuditEventType.AUTO_GOAL_RULE_FAILED

    @pytest.mark.asyncio
    async def test_local_only(self):
        logger = AuditLogger()
        event = AuditEventBuilder.recommendations_generated(count=3, high_priority=1)
        assert await logger.log(event) is True

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_raise(self):
        class FailingStorage(AuditStorageInterface):
            async def append_event(self, event):
                raise StorageError("disk full")

            async def get_events_by_correlation_id(self, correlation_id):
                return []

            async def get_recent_events(self, limit=100):
                return []

        logger = AuditLogger(FailingStorage())
        event = AuditEventBuilder.allocation_applied(goal_id=uuid4(), amount="100")

        assert await logger.log(event) is False

    @pytest.mark.asyncio
    async def test_bounded_storage(self):
        storage = InMemoryAuditStorage(max_events=2)
        logger = AuditLogger(storage)

        for i in range(3):
            await logger.log_error("TestError", f"error {i}")

        events = await storage.get_recent_events()
        assert [e.error_message for e in events] == ["error 2", "error 1"]

    def test_correlation_ids_unique(self):
        assert create_correlation_id() != create_correlation_id()
