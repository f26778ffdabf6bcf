from django.test import SimpleTestCase

from common.utils import calculate_distance_km


class DistanceTests(SimpleTestCase):
	def test_rome_to_milan(self):
		distance = calculate_distance_km(41.9028, 12.4964, 45.4642, 9.1900)

		self.assertAlmostEqual(distance, 477, delta=5)

	def test_identical_points_are_zero(self):
		self.assertEqual(calculate_distance_km(45.0, 9.0, 45.0, 9.0), 0.0)

	def test_is_symmetric(self):
		there = calculate_distance_km(41.9028, 12.4964, 45.4642, 9.1900)
		back = calculate_distance_km(45.4642, 9.1900, 41.9028, 12.4964)

		self.assertAlmostEqual(there, back, places=9)

	def test_accepts_decimal_strings(self):
		# Model coordinates come back as Decimal
		from decimal import Decimal

		distance = calculate_distance_km(Decimal('45.000000'), Decimal('9.000000'), 45.0, 9.0)
		self.assertEqual(distance, 0.0)
