"""
Configuration Management for the Planning Engine

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Every planning constant (inflation rates, statutory caps,
thresholds) lives here rather than inline in the rules. The defaults are
the values the engine has always used; an environment override changes
them without touching the algorithms.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PlanningSettings(BaseSettings):
    """Constants used by the planning algorithms."""

    model_config = SettingsConfigDict(
        env_prefix="FINPLAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Validation hook
    strict_goal_validation: bool = Field(
        default=False,
        description="Reject (instead of flag) non-positive amounts and past dates"
    )

    # Funding allocator
    funding_tranche_cap: Decimal = Field(
        default=Decimal("50000"),
        gt=0,
        description="Maximum amount any one goal receives per allocation pass"
    )
    max_goals_per_allocation: int = Field(
        default=5,
        ge=1,
        le=100,
        description="How many goals one allocation may fund"
    )
    high_priority_window_days: int = Field(
        default=365,
        ge=0,
        description="Goals due within this many days are High priority"
    )

    # Auto-goal rules
    education_corpus_future_value: Decimal = Field(
        default=Decimal("2500000"),
        gt=0,
        description="Future cost of undergraduate education (INR)"
    )
    education_inflation_rate: Decimal = Field(
        default=Decimal("0.07"),
        ge=0,
        description="Annual education inflation used to discount the corpus"
    )
    education_age: int = Field(default=18, ge=1)
    health_premium_inflation: Decimal = Field(default=Decimal("0.05"), ge=0)
    health_premium_horizon_years: int = Field(default=3, ge=1)
    vehicle_premium_inflation: Decimal = Field(default=Decimal("0.03"), ge=0)
    vehicle_premium_horizon_years: int = Field(default=1, ge=1)
    senior_age_threshold: int = Field(default=60, ge=0)
    senior_medical_corpus: Decimal = Field(
        default=Decimal("500000"),
        gt=0,
        description="Base senior medical corpus, already inflation-adjusted"
    )
    senior_medical_horizon_years: int = Field(default=2, ge=1)
    nps_annual_cap: Decimal = Field(
        default=Decimal("50000"),
        description="Section 80CCD(1B) additional deduction limit"
    )
    ppf_annual_cap: Decimal = Field(
        default=Decimal("150000"),
        description="PPF annual deposit limit"
    )
    festival_corpus_floor: Decimal = Field(default=Decimal("50000"), ge=0)
    festival_corpus_buffer: Decimal = Field(default=Decimal("0.10"), ge=0)

    # Portfolio analytics
    risk_free_rate: float = Field(
        default=6.0,
        description="Risk-free rate in percent for the Sharpe ratio"
    )
    concentration_threshold: float = Field(
        default=60.0,
        gt=0,
        le=100,
        description="Weight (percent) above which a position is too concentrated"
    )
    thin_position_threshold: float = Field(
        default=5.0,
        ge=0,
        le=100,
        description="Weight (percent) below which a position is likely stale"
    )

    # Recommendations
    term_cover_multiple: int = Field(default=10, ge=0)
    health_cover_multiple: int = Field(default=5, ge=0)
    emi_stress_ratio: float = Field(
        default=0.40,
        gt=0,
        description="EMI-to-monthly-income ratio above which debt is stressful"
    )
    prepayment_roi_threshold: Decimal = Field(default=Decimal("8"))
    prepayment_savings_threshold: Decimal = Field(default=Decimal("10000"))
    assumed_tax_bracket: Decimal = Field(default=Decimal("0.30"), ge=0, le=1)
    renewal_window_days: int = Field(default=30, ge=0)
    high_spending_share: float = Field(default=25.0, gt=0, le=100)
    sip_starter_amount: Decimal = Field(
        default=Decimal("5000"),
        gt=0,
        description="Monthly SIP suggested to start or step up investing"
    )
    investment_corpus_months: int = Field(
        default=6,
        ge=0,
        description="Months of income the invested corpus should at least match"
    )

    @model_validator(mode="after")
    def validate_thresholds(self) -> "PlanningSettings":
        """A thin position must be smaller than a concentrated one."""
        if self.thin_position_threshold >= self.concentration_threshold:
            raise ValueError(
                "thin_position_threshold must be below concentration_threshold"
            )
        return self


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for the structured log"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def planning(self) -> PlanningSettings:
        return PlanningSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.planning
        results["planning"] = True
    except Exception as e:
        results["planning"] = False
        results["planning_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
