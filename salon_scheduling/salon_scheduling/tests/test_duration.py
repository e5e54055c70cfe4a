"""
Tests for scheduling/duration.py

Tests total duration of multi-service bookings.
"""

import unittest

from salon_scheduling.salon_scheduling.exceptions import InvalidInputError
from salon_scheduling.salon_scheduling.models import Service
from salon_scheduling.salon_scheduling.scheduling.duration import compose_duration


class TestComposeDuration(unittest.TestCase):
	"""Tests for compose_duration."""

	def test_sum_without_buffer(self):
		"""Test 30 + 45 without buffer."""
		services = [Service("s1", "Corte", 30), Service("s2", "Barba", 45)]
		self.assertEqual(compose_duration(services), 75)

	def test_buffer_between_services(self):
		"""Test 30 + 120 with a 15 minute buffer."""
		services = [Service("s1", "Corte", 30), Service("s2", "Coloración", 120)]
		self.assertEqual(compose_duration(services, buffer_minutes=15), 165)

	def test_single_service_has_no_buffer(self):
		"""Test that a single service ignores the buffer."""
		self.assertEqual(compose_duration([Service("s1", "Manicure", 45)], buffer_minutes=15), 45)

	def test_buffer_scales_with_gaps(self):
		"""Test that the buffer is added once per gap."""
		services = [{"duration": 30}, {"duration": 30}, {"duration": 30}]
		self.assertEqual(compose_duration(services, buffer_minutes=10), 110)

	def test_accepts_mappings(self):
		"""Test that dicts with a duration key are accepted."""
		self.assertEqual(compose_duration([{"id": "s1", "duration": 60}]), 60)

	def test_empty_list_raises(self):
		"""Test that at least one service is required."""
		with self.assertRaises(InvalidInputError):
			compose_duration([])

	def test_non_positive_duration_raises(self):
		"""Test that zero or negative durations are rejected."""
		with self.assertRaises(InvalidInputError):
			compose_duration([Service("s1", "Corte", 0)])

		with self.assertRaises(InvalidInputError):
			compose_duration([{"duration": True}])

	def test_negative_buffer_raises(self):
		"""Test that a negative buffer is rejected."""
		with self.assertRaises(InvalidInputError):
			compose_duration([Service("s1", "Corte", 30)], buffer_minutes=-5)

	def test_invalid_input_is_value_error(self):
		"""Test that InvalidInputError can be caught as ValueError."""
		with self.assertRaises(ValueError):
			compose_duration([])
