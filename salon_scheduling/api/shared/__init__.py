"""
Shared utilities for Salon Scheduling API.

This module provides input validators and the payload schemas used to
turn JSON-like snapshots into engine value objects.
"""

from .schemas import (
    AppointmentPayload,
    BlockedIntervalPayload,
    RescheduleRequestPayload,
    ServicePayload,
    SnapshotPayload,
    WorkingHoursPayload,
    parse_payload,
)
from .validators import (
    parse_local_datetime,
    validate_booking_date,
    validate_duration_minutes,
    validate_record_id,
    validate_time_range,
    validate_timezone_name,
)

__all__ = [
    # Schemas
    "AppointmentPayload",
    "BlockedIntervalPayload",
    "RescheduleRequestPayload",
    "ServicePayload",
    "SnapshotPayload",
    "WorkingHoursPayload",
    "parse_payload",
    # Validators
    "parse_local_datetime",
    "validate_booking_date",
    "validate_duration_minutes",
    "validate_record_id",
    "validate_time_range",
    "validate_timezone_name",
]
