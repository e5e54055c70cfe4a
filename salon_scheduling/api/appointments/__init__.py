"""
Appointments API Domain

Handles slot lookup, appointment validation, duration calculation and
rescheduling.
"""

# Re-export endpoints from scheduling_api for domain-style imports
from salon_scheduling.api.scheduling_api import (
    # Availability
    get_available_slots,
    get_next_available_slots,
    # Validation
    validate_appointment,
    calculate_services_duration,
    # Rescheduling
    reschedule,
    get_reschedule_options,
    batch_reschedule_appointments,
)

__all__ = [
    # Availability
    "get_available_slots",
    "get_next_available_slots",
    # Validation
    "validate_appointment",
    "calculate_services_duration",
    # Rescheduling
    "reschedule",
    "get_reschedule_options",
    "batch_reschedule_appointments",
]
