"""Input validation package."""

from finplan.validation.validator import (
    GoalInputValidator,
    ValidationError,
    to_amount,
)

__all__ = ["GoalInputValidator", "ValidationError", "to_amount"]
