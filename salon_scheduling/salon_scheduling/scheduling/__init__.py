"""
Scheduling Services Module

This module provides core business logic for salon appointment scheduling:
- Calendar rules and interval helpers (calendar_rules.py)
- Duration composition for multi-service bookings (duration.py)
- Conflict validation (overlap.py)
- Slot generation (slots.py)
- Rescheduling and suggestions (reschedule.py)
"""

from .calendar_rules import get_open_intervals, get_working_hours_for_day, is_open_at
from .duration import compose_duration
from .overlap import get_overlapping_appointments, validate_conflicts
from .reschedule import (
	batch_reschedule,
	calculate_reschedule_impact,
	check_reschedule_policy,
	reschedule_appointment,
	should_auto_approve_reschedule,
	suggest_reschedule_options,
)
from .slots import (
	find_available_slots,
	find_next_available_slots,
	get_free_intervals,
	iter_available_slots,
)

__all__ = [
	"batch_reschedule",
	"calculate_reschedule_impact",
	"check_reschedule_policy",
	"compose_duration",
	"find_available_slots",
	"find_next_available_slots",
	"get_free_intervals",
	"get_open_intervals",
	"get_overlapping_appointments",
	"get_working_hours_for_day",
	"is_open_at",
	"iter_available_slots",
	"reschedule_appointment",
	"should_auto_approve_reschedule",
	"suggest_reschedule_options",
	"validate_conflicts",
]
