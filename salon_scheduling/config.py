"""
Salon Scheduling Settings

Environment-driven configuration (prefix SALON_SCHEDULING_). The engine never
reads these values itself; callers build the settings and pass the derived
policy and parameters explicitly.
"""

from typing import Dict

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from salon_scheduling.salon_scheduling.models import ReschedulePolicy


class SchedulingSettings(BaseSettings):
    # Calendar
    default_timezone: str = "UTC"
    slot_granularity_minutes: int = 30
    buffer_minutes: int = 0
    max_suggestions: int = 5
    max_days_to_check: int = 14

    # Reschedule policy
    risk_weight_per_hour_shift: float = 2.0
    risk_acceptance_ceiling: float = 50.0
    max_reschedules_per_appointment: int = 3
    cancellation_hours: float = 24
    reschedule_deadline_hours: float = 2
    min_hours_before_reschedule: float = 4
    allow_same_day_reschedule: bool = False
    max_days_ahead: int = 180
    auto_approve_notice_hours_by_tier: Dict[str, float] = Field(
        default_factory=lambda: dict(ReschedulePolicy().auto_approve_notice_hours_by_tier)
    )

    # Delivery and logging
    notifier_provider: str = "log"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="SALON_SCHEDULING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("slot_granularity_minutes", "max_suggestions", "max_days_to_check")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator("buffer_minutes")
    @classmethod
    def validate_buffer(cls, v: int) -> int:
        if v < 0:
            raise ValueError("buffer_minutes cannot be negative")
        return v

    def reschedule_policy(self) -> ReschedulePolicy:
        """Build the ReschedulePolicy passed to the reschedule engine."""
        return ReschedulePolicy(
            max_reschedules_per_appointment=self.max_reschedules_per_appointment,
            cancellation_hours=self.cancellation_hours,
            auto_approve_notice_hours_by_tier=dict(self.auto_approve_notice_hours_by_tier),
            risk_weight_per_hour_shift=self.risk_weight_per_hour_shift,
            risk_acceptance_ceiling=self.risk_acceptance_ceiling,
            reschedule_deadline_hours=self.reschedule_deadline_hours,
            min_hours_before_reschedule=self.min_hours_before_reschedule,
            allow_same_day_reschedule=self.allow_same_day_reschedule,
            max_days_ahead=self.max_days_ahead,
        )


def get_settings() -> SchedulingSettings:
    """Fresh settings on every call; nothing is cached."""
    return SchedulingSettings()
