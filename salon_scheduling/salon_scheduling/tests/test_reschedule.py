"""
Tests for scheduling/reschedule.py

Tests impact scoring, auto-approval, policy checks, rescheduling and
alternative suggestions.
"""

import unittest
from datetime import date, datetime, timedelta

from salon_scheduling.salon_scheduling.exceptions import InvalidInputError, NotFoundError
from salon_scheduling.salon_scheduling.models import (
	Appointment,
	AppointmentCandidate,
	ConflictType,
	NotificationSettings,
	RescheduleImpact,
	ReschedulePolicy,
	RescheduleOptions,
	RescheduleRequest,
	RescheduleStatus,
	RescheduleSuggestions,
	WorkingHours,
)
from salon_scheduling.salon_scheduling.scheduling.overlap import validate_conflicts
from salon_scheduling.salon_scheduling.scheduling.reschedule import (
	batch_reschedule,
	calculate_reschedule_impact,
	check_reschedule_policy,
	reschedule_appointment,
	should_auto_approve_reschedule,
	suggest_reschedule_options,
)


def _week():
	"""Lunes a sábado 09:00-18:00; domingo cerrado."""
	rules = [WorkingHours(day_of_week=day, open_time="09:00", close_time="18:00") for day in range(1, 7)]
	rules.append(WorkingHours(day_of_week=0, is_open=False))
	return rules


def _appointment(appointment_id, start, duration=60, **kwargs):
	return Appointment(
		id=appointment_id,
		professional_id="pro-1",
		client_id="client-1",
		scheduled_for=start,
		total_duration=duration,
		**kwargs
	)


def _impact(risk_score):
	return RescheduleImpact(hours_shifted=1, days_shifted=0, crosses_day_boundary=False, risk_score=risk_score)


MONDAY_10 = datetime(2024, 12, 23, 10, 0)
MONDAY_14 = datetime(2024, 12, 23, 14, 0)
FRIDAY_BEFORE = datetime(2024, 12, 20, 10, 0)


class TestRescheduleImpact(unittest.TestCase):
	"""Tests for calculate_reschedule_impact."""

	def test_same_day_shift(self):
		"""Test a four hour move on the same day."""
		impact = calculate_reschedule_impact(MONDAY_10, MONDAY_14, 60)

		self.assertEqual(impact.hours_shifted, 4.0)
		self.assertEqual(impact.days_shifted, 0)
		self.assertFalse(impact.crosses_day_boundary)
		self.assertEqual(impact.risk_score, 8.0)

	def test_next_day_shift(self):
		"""Test a move to the next day."""
		impact = calculate_reschedule_impact(MONDAY_10, MONDAY_10 + timedelta(days=1), 60)

		self.assertEqual(impact.hours_shifted, 24.0)
		self.assertTrue(impact.crosses_day_boundary)
		self.assertEqual(impact.risk_score, 48.0)

	def test_backward_shift_is_signed(self):
		"""Test that moving earlier gives negative hours and positive risk."""
		impact = calculate_reschedule_impact(MONDAY_10, datetime(2024, 12, 23, 8, 0), 60)

		self.assertEqual(impact.hours_shifted, -2.0)
		self.assertEqual(impact.risk_score, 4.0)

	def test_risk_score_is_capped(self):
		"""Test that the risk score never exceeds 100."""
		impact = calculate_reschedule_impact(MONDAY_10, MONDAY_10 + timedelta(days=8), 60)

		self.assertEqual(impact.risk_score, 100.0)
		self.assertIn("Reagendamiento para más de una semana", impact.warnings)

	def test_custom_weight(self):
		"""Test the policy weight per hour shifted."""
		policy = ReschedulePolicy(risk_weight_per_hour_shift=0.5)

		self.assertEqual(calculate_reschedule_impact(MONDAY_10, MONDAY_14, 60, policy).risk_score, 2.0)

	def test_warnings(self):
		"""Test large same-day and weekend move warnings."""
		large = calculate_reschedule_impact(datetime(2024, 12, 23, 9, 0), datetime(2024, 12, 23, 15, 0), 60)
		weekend = calculate_reschedule_impact(MONDAY_10, datetime(2024, 12, 28, 10, 0), 60)

		self.assertIn("Gran cambio de horario en el mismo día", large.warnings)
		self.assertIn("Cambio de día hábil a fin de semana", weekend.warnings)

	def test_invalid_duration(self):
		"""Test that duration <= 0 is rejected."""
		with self.assertRaises(InvalidInputError):
			calculate_reschedule_impact(MONDAY_10, MONDAY_14, 0)

	def test_boolean_duration(self):
		"""Test that True is not accepted as a duration."""
		with self.assertRaises(InvalidInputError):
			calculate_reschedule_impact(MONDAY_10, MONDAY_14, True)


class TestAutoApproval(unittest.TestCase):
	"""Tests for should_auto_approve_reschedule."""

	def test_tier_threshold(self):
		"""Test the Ouro tier notice threshold (12 hours)."""
		self.assertTrue(should_auto_approve_reschedule(_impact(8), "Ouro", 12))
		self.assertFalse(should_auto_approve_reschedule(_impact(8), "Ouro", 11.9))

	def test_unknown_tier_requires_review(self):
		"""Test that unknown or missing tiers are never auto-approved."""
		self.assertFalse(should_auto_approve_reschedule(_impact(0), "Platinum", 1000))
		self.assertFalse(should_auto_approve_reschedule(_impact(0), None, 1000))

	def test_risk_ceiling_is_strict(self):
		"""Test that a risk score at the ceiling is not accepted."""
		self.assertFalse(should_auto_approve_reschedule(_impact(50), "Diamante", 100))
		self.assertTrue(should_auto_approve_reschedule(_impact(49.99), "Diamante", 100))

	def test_custom_tier_mapping(self):
		"""Test an injected tier mapping."""
		policy = ReschedulePolicy(auto_approve_notice_hours_by_tier={"VIP": 0})

		self.assertTrue(should_auto_approve_reschedule(_impact(10), "VIP", 0, policy))
		self.assertFalse(should_auto_approve_reschedule(_impact(10), "Ouro", 100, policy))

	def test_monotonic_in_notice(self):
		"""Test that more notice never turns an approval into a rejection."""
		for tier in ("Bronze", "Prata", "Ouro", "Diamante", "Unknown"):
			for risk in (0, 25, 60):
				decisions = [
					should_auto_approve_reschedule(_impact(risk), tier, hours)
					for hours in (0, 1, 2, 6, 12, 24, 47, 48, 72, 200)
				]
				first_true = decisions.index(True) if True in decisions else len(decisions)
				self.assertTrue(all(decisions[first_true:]), (tier, risk, decisions))


class TestReschedulePolicy(unittest.TestCase):
	"""Tests for check_reschedule_policy."""

	def test_max_reschedules(self):
		"""Test that the reschedule limit is always checked."""
		appointment = _appointment("A", MONDAY_10, reschedule_count=3)

		conflicts, warnings = check_reschedule_policy(appointment, MONDAY_14)

		self.assertEqual([c.type for c in conflicts], [ConflictType.POLICY_VIOLATION])

	def test_without_now_only_limit_is_checked(self):
		"""Test that time windows need an explicit now."""
		conflicts, warnings = check_reschedule_policy(_appointment("A", MONDAY_10), datetime(2020, 1, 1, 10, 0))

		self.assertEqual(conflicts, [])

	def test_past_appointment(self):
		"""Test that an appointment already started cannot move."""
		conflicts, _ = check_reschedule_policy(
			_appointment("A", MONDAY_10), MONDAY_14 + timedelta(days=1), now=datetime(2024, 12, 23, 11, 0)
		)

		self.assertTrue(any("ya pasó" in c.detail for c in conflicts))

	def test_deadline_window(self):
		"""Test the minimum notice before the original time."""
		conflicts, _ = check_reschedule_policy(
			_appointment("A", MONDAY_10), MONDAY_10 + timedelta(days=1), now=datetime(2024, 12, 23, 9, 0)
		)

		self.assertEqual(len(conflicts), 1)
		self.assertIn("2 horas", conflicts[0].detail)

	def test_same_day_not_allowed(self):
		"""Test that moving to today is rejected unless the policy allows it."""
		appointment = _appointment("A", MONDAY_10 + timedelta(days=1))
		now = datetime(2024, 12, 23, 8, 0)

		conflicts, warnings = check_reschedule_policy(appointment, MONDAY_14, now=now)
		self.assertTrue(any("mismo día" in c.detail for c in conflicts))

		policy = ReschedulePolicy(allow_same_day_reschedule=True)
		conflicts, warnings = check_reschedule_policy(appointment, datetime(2024, 12, 23, 10, 0), policy, now)
		self.assertEqual(conflicts, [])
		self.assertTrue(any("4 horas" in warning for warning in warnings))

	def test_new_time_in_past(self):
		"""Test that the new time must be in the future."""
		conflicts, _ = check_reschedule_policy(
			_appointment("A", MONDAY_10), datetime(2024, 12, 19, 10, 0), now=FRIDAY_BEFORE
		)

		self.assertTrue(any("futuro" in c.detail for c in conflicts))

	def test_far_future_warning(self):
		"""Test the warning for moves far into the future."""
		conflicts, warnings = check_reschedule_policy(
			_appointment("A", MONDAY_10), datetime(2025, 12, 23, 10, 0), now=FRIDAY_BEFORE
		)

		self.assertEqual(conflicts, [])
		self.assertIn("Agendamiento muy lejano en el futuro", warnings)


class TestRescheduleAppointment(unittest.TestCase):
	"""Tests for reschedule_appointment."""

	def setUp(self):
		"""Set up test data before each test."""
		self.working_hours = _week()
		self.existing = [_appointment("A", MONDAY_10, notes="Cliente nueva")]

	def test_auto_approved(self):
		"""Test a low risk move with enough notice for the tier."""
		result = reschedule_appointment(
			RescheduleRequest(appointment_id="A", new_instant=MONDAY_14, reason="Pedido de la cliente", loyalty_tier="Ouro"),
			self.existing,
			self.working_hours,
			now=FRIDAY_BEFORE
		)

		self.assertTrue(result.success)
		self.assertEqual(result.status, RescheduleStatus.AUTO_APPROVED)
		self.assertEqual(result.transitions, (
			RescheduleStatus.REQUESTED, RescheduleStatus.VALIDATED, RescheduleStatus.AUTO_APPROVED
		))
		self.assertEqual(result.appointment.scheduled_for, MONDAY_14)
		self.assertEqual(result.appointment.reschedule_count, 1)
		self.assertIn("Reagendado: Pedido de la cliente", result.appointment.notes)
		self.assertTrue(result.appointment.notes.startswith("Cliente nueva"))
		self.assertEqual(result.original, self.existing[0])
		self.assertEqual(result.impact.risk_score, 8.0)
		self.assertFalse(result.penalty_applies)
		self.assertTrue(result.notifications.send_confirmation)
		self.assertTrue(result.notifications.send_cancellation)

	def test_pending_review_without_tier(self):
		"""Test that moves without a loyalty tier go to review."""
		result = reschedule_appointment(
			RescheduleRequest(appointment_id="A", new_instant=MONDAY_14),
			self.existing,
			self.working_hours,
			now=FRIDAY_BEFORE
		)

		self.assertTrue(result.success)
		self.assertEqual(result.status, RescheduleStatus.PENDING_REVIEW)

	def test_pending_review_without_now(self):
		"""Test that auto-approval needs the current instant."""
		result = reschedule_appointment(
			RescheduleRequest(appointment_id="A", new_instant=MONDAY_14, loyalty_tier="Diamante"),
			self.existing,
			self.working_hours
		)

		self.assertEqual(result.status, RescheduleStatus.PENDING_REVIEW)
		self.assertFalse(result.penalty_applies)

	def test_penalty_inside_cancellation_window(self):
		"""Test the late-change penalty flag."""
		result = reschedule_appointment(
			RescheduleRequest(appointment_id="A", new_instant=MONDAY_14),
			self.existing,
			self.working_hours,
			now=datetime(2024, 12, 22, 20, 0)
		)

		self.assertTrue(result.success)
		self.assertTrue(result.penalty_applies)

	def test_notification_flags(self):
		"""Test that notify_client and settings both gate notifications."""
		silent = reschedule_appointment(
			RescheduleRequest(appointment_id="A", new_instant=MONDAY_14, notify_client=False),
			self.existing,
			self.working_hours
		)
		confirmation_only = reschedule_appointment(
			RescheduleRequest(appointment_id="A", new_instant=MONDAY_14),
			self.existing,
			self.working_hours,
			options=RescheduleOptions(notification_settings=NotificationSettings(send_cancellation=False))
		)

		self.assertFalse(silent.notifications.has_messages)
		self.assertTrue(confirmation_only.notifications.send_confirmation)
		self.assertFalse(confirmation_only.notifications.send_cancellation)

	def test_own_slot_is_excluded(self):
		"""Test that a move overlapping the old time is not a conflict."""
		result = reschedule_appointment(
			RescheduleRequest(appointment_id="A", new_instant=datetime(2024, 12, 23, 10, 30)),
			self.existing,
			self.working_hours
		)

		self.assertTrue(result.success)
		self.assertEqual(result.conflicts, ())

	def test_conflict_rejected_with_suggestions(self):
		"""Test rejection and alternative times when the new time is taken."""
		existing = self.existing + [_appointment("B", MONDAY_14)]

		result = reschedule_appointment(
			RescheduleRequest(appointment_id="A", new_instant=MONDAY_14),
			existing,
			self.working_hours
		)

		self.assertFalse(result.success)
		self.assertEqual(result.status, RescheduleStatus.REJECTED)
		self.assertEqual(result.transitions, (RescheduleStatus.REQUESTED, RescheduleStatus.REJECTED))
		self.assertIsNone(result.appointment)
		self.assertEqual(result.conflicts[0].type, ConflictType.TIME_OVERLAP)
		self.assertEqual(result.conflicts[0].appointment_id, "B")
		self.assertTrue(0 < len(result.suggested_times) <= 5)
		self.assertIsNotNone(result.error)

		for suggestion in result.suggested_times:
			validation = validate_conflicts(
				AppointmentCandidate(professional_id="pro-1", scheduled_for=suggestion, duration=60, exclude_id="A"),
				existing,
				self.working_hours
			)
			self.assertTrue(validation.is_valid, suggestion)

	def test_conflict_allowed_by_override(self):
		"""Test that allow_conflicts proceeds and logs the conflicts."""
		existing = self.existing + [_appointment("B", MONDAY_14)]

		with self.assertLogs("salon_scheduling.reschedule", level="WARNING"):
			result = reschedule_appointment(
				RescheduleRequest(appointment_id="A", new_instant=MONDAY_14),
				existing,
				self.working_hours,
				options=RescheduleOptions(allow_conflicts=True)
			)

		self.assertTrue(result.success)
		self.assertEqual([c.type for c in result.conflicts], [ConflictType.TIME_OVERLAP])

	def test_policy_violation_is_data(self):
		"""Test that exceeding the reschedule limit returns a rejected result."""
		existing = [_appointment("A", MONDAY_10, reschedule_count=3)]

		result = reschedule_appointment(
			RescheduleRequest(appointment_id="A", new_instant=MONDAY_14),
			existing,
			self.working_hours
		)

		self.assertFalse(result.success)
		self.assertEqual(result.status, RescheduleStatus.REJECTED)
		self.assertEqual([c.type for c in result.conflicts], [ConflictType.POLICY_VIOLATION])

	def test_unknown_appointment(self):
		"""Test that an unknown id raises NotFoundError."""
		with self.assertRaises(NotFoundError):
			reschedule_appointment(
				RescheduleRequest(appointment_id="Z", new_instant=MONDAY_14),
				self.existing,
				self.working_hours
			)

	def test_new_duration(self):
		"""Test that a new duration replaces the old one."""
		result = reschedule_appointment(
			RescheduleRequest(appointment_id="A", new_instant=MONDAY_14, new_duration=90),
			self.existing,
			self.working_hours
		)

		self.assertEqual(result.appointment.total_duration, 90)

	def test_invalid_new_duration_rejected_before_policy(self):
		"""Test that a bad new duration raises even when the policy would reject the move."""
		existing = [_appointment("A", MONDAY_10, reschedule_count=3)]

		for new_duration in (-30, 0, True):
			with self.assertRaises(InvalidInputError):
				reschedule_appointment(
					RescheduleRequest(appointment_id="A", new_instant=MONDAY_14, new_duration=new_duration),
					existing,
					self.working_hours
				)


class TestSuggestions(unittest.TestCase):
	"""Tests for suggest_reschedule_options."""

	def setUp(self):
		"""Set up test data before each test."""
		self.working_hours = _week()

	def test_buckets(self):
		"""Test same day, next days and next week buckets on an empty calendar."""
		result = suggest_reschedule_options(
			MONDAY_10, 60, "pro-1", [], self.working_hours, same_day_preferred=True
		)

		self.assertEqual(result.same_day, (
			datetime(2024, 12, 23, 9, 0), datetime(2024, 12, 23, 9, 30), datetime(2024, 12, 23, 10, 0)
		))
		self.assertEqual(len(result.next_days), 6)
		self.assertEqual(result.next_days[0], datetime(2024, 12, 24, 9, 0))
		self.assertEqual(len(result.next_week), 5)
		self.assertEqual(result.next_week[0].date(), date(2024, 12, 30))

	def test_invalid_duration(self):
		"""Test that zero and boolean durations are rejected."""
		for duration in (0, True):
			with self.assertRaises(InvalidInputError):
				suggest_reschedule_options(MONDAY_10, duration, "pro-1", [], self.working_hours)

	def test_same_day_only_when_preferred(self):
		"""Test that the same day bucket is empty by default."""
		result = suggest_reschedule_options(MONDAY_10, 60, "pro-1", [], self.working_hours)

		self.assertEqual(result.same_day, ())

	def test_time_range(self):
		"""Test that suggestions fit inside the requested local range."""
		result = suggest_reschedule_options(
			MONDAY_10, 60, "pro-1", [], self.working_hours, same_day_preferred=True, time_range=("14:00", "16:00")
		)

		self.assertEqual([slot.strftime("%H:%M") for slot in result.same_day], ["14:00", "14:30", "15:00"])

	def test_avoid_weekends(self):
		"""Test that Saturdays are skipped when requested."""
		result = suggest_reschedule_options(
			date(2024, 12, 26), 60, "pro-1", [], self.working_hours, avoid_weekends=True
		)

		self.assertEqual({slot.date() for slot in result.next_days}, {date(2024, 12, 27)})

	def test_flatten_removes_duplicates(self):
		"""Test that flatten keeps order and drops repeated instants."""
		suggestions = RescheduleSuggestions(
			same_day=(MONDAY_10,),
			next_days=(MONDAY_10, MONDAY_14),
			next_week=(MONDAY_14 + timedelta(days=7),)
		)

		self.assertEqual(suggestions.flatten(), (MONDAY_10, MONDAY_14, MONDAY_14 + timedelta(days=7)))
		self.assertEqual(suggestions.flatten(1), (MONDAY_10,))


class TestBatchReschedule(unittest.TestCase):
	"""Tests for batch_reschedule."""

	def test_moves_see_earlier_moves(self):
		"""Test that later requests are validated against earlier successful moves."""
		existing = [
			_appointment("A", MONDAY_10),
			_appointment("B", datetime(2024, 12, 23, 11, 0)),
		]
		requests = [
			RescheduleRequest(appointment_id="A", new_instant=datetime(2024, 12, 23, 15, 0)),
			RescheduleRequest(appointment_id="B", new_instant=datetime(2024, 12, 23, 15, 0)),
			RescheduleRequest(appointment_id="missing", new_instant=datetime(2024, 12, 23, 16, 0)),
		]

		result = batch_reschedule(requests, existing, _week())

		self.assertEqual(result.summary, {"total": 3, "successful": 1, "failed": 2})
		self.assertEqual(result.successful[0].appointment.id, "A")
		self.assertEqual(result.failed[0].original.id, "B")
		self.assertEqual(result.failed[0].conflicts[0].appointment_id, "A")
		self.assertIn("missing", result.failed[1].error)
