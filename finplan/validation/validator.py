"""
Input Validation Hook

DESIGN DECISION: Validation of engine inputs happens in two tiers:

TIER 1 - MALFORMED INPUT (always rejected):
- Non-numeric amounts
- NaN / infinite amounts
- Blank goal names, and names or notes over the stored length limit

TIER 2 - SUSPECT INPUT (flagged, accepted by default):
- Zero or negative target amounts
- Target dates in the past
- Zero or negative surplus

Tier 2 is permissive on purpose: historical records contain such values
and the engine has always accepted them. Suspect values are reported as
warnings so the caller can surface and audit them. Setting
FINPLAN_STRICT_GOAL_VALIDATION=true turns tier 2 into hard errors.

IMPORTANT: Validation NEVER silently fixes values.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from finplan.config import get_settings
from finplan.models.analysis import ValidationIssue, ValidationResult


Amount = Union[Decimal, int, float, str]

MAX_GOAL_NAME_LENGTH = 200
MAX_GOAL_NOTES_LENGTH = 1000


class ValidationError(Exception):
    """Malformed input (or suspect input under strict validation)."""

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        super().__init__(message)
        self.issues = issues or []


def to_amount(value: Amount, field: str) -> Decimal:
    """
    Convert a caller-supplied amount to a finite Decimal.

    Floats go through str() so 0.1 stays 0.1 rather than its binary
    expansion.

    Raises:
        ValidationError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number, got a boolean")

    try:
        if isinstance(value, float):
            amount = Decimal(str(value))
        else:
            amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number, got {value!r}")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be finite, got {value!r}")

    return amount


class GoalInputValidator:
    """
    Checks inputs to goal creation and surplus allocation.

    Malformed input raises ValidationError. Suspect input is returned as
    warnings, or raised when strict validation is enabled.
    """

    def __init__(self, strict: Optional[bool] = None):
        """
        Initialize validator.

        Args:
            strict: Override the configured strictness. None uses
                    PlanningSettings.strict_goal_validation.
        """
        if strict is None:
            strict = get_settings().planning.strict_goal_validation
        self._strict = strict

    @property
    def strict(self) -> bool:
        return self._strict

    def validate_goal(
        self,
        name: str,
        target_amount: Decimal,
        target_date: date,
        today: Optional[date] = None,
        notes: str = "",
    ) -> ValidationResult:
        """
        Check the inputs of a new goal.

        Returns:
            ValidationResult listing any suspect values

        Raises:
            ValidationError: On a blank or over-long name, over-long notes,
                             or on suspect values when strict
        """
        today = today or date.today()
        issues = []

        if not name or not name.strip():
            raise ValidationError("Goal name must not be blank")
        if len(name.strip()) > MAX_GOAL_NAME_LENGTH:
            raise ValidationError(
                f"Goal name must be at most {MAX_GOAL_NAME_LENGTH} characters"
            )
        if len(notes.strip()) > MAX_GOAL_NOTES_LENGTH:
            raise ValidationError(
                f"Goal notes must be at most {MAX_GOAL_NOTES_LENGTH} characters"
            )

        if target_amount <= 0:
            issues.append(ValidationIssue(
                field="target_amount",
                issue_type="non_positive",
                message=f"Target amount {target_amount} is not positive",
                severity="warning",
            ))

        if target_date < today:
            issues.append(ValidationIssue(
                field="target_date",
                issue_type="past_date",
                message=f"Target date {target_date} is in the past",
                severity="warning",
            ))

        return self._finish(issues)

    def validate_surplus(self, surplus_amount: Decimal) -> ValidationResult:
        """Check a surplus handed to the allocator."""
        issues = []

        if surplus_amount <= 0:
            issues.append(ValidationIssue(
                field="surplus_amount",
                issue_type="non_positive",
                message=f"Surplus {surplus_amount} is not positive; nothing to allocate",
                severity="warning",
            ))

        return self._finish(issues)

    def _finish(self, issues: list[ValidationIssue]) -> ValidationResult:
        if self._strict and issues:
            for issue in issues:
                issue.severity = "error"
            raise ValidationError(
                "; ".join(issue.message for issue in issues),
                issues=issues,
            )
        return ValidationResult(issues=issues)
