"""
Unit Tests for SGP4 Propagation

Checks the propagator against the sgp4 reference library output and the
Vallado et al. (2006) verification data, plus its failure behavior.

Run with:
    python -m pytest tests/test_propagator.py -v
"""

import math
import unittest
from datetime import datetime, timedelta, timezone

import numpy as np
from sgp4.api import Satrec

from orbit_tracker.errors import PropagationError
from orbit_tracker.frames import to_geodetic
from orbit_tracker.propagator import SGP4_ERROR_CODES, SGP4Propagator, error_diagnostics, propagate
from orbit_tracker.tle_parser import TLEParser


ISS_LINE1 = "1 25544U 98067A   24001.50000000  .00016717  00000-0  10270-3 0  9005"
ISS_LINE2 = "2 25544  51.6416 247.4627 0006703 130.5360 325.0288 15.72125391428615"

# High-drag satellite TLE for testing error conditions
DECAY_LINE1 = "1 44444U 19999A   23259.50000000  .10000000  00000-0  50000-2 0  9999"
DECAY_LINE2 = "2 44444  51.6400 100.0000 0005000  90.0000 270.0000 16.50000000 99999"

# Vanguard 1 from the Vallado verification set
VANGUARD_LINE1 = "1 00005U 58002B   00179.78495062  .00000023  00000-0  28098-4 0  4753"
VANGUARD_LINE2 = "2 00005  34.2682 348.7242 1859667 331.7664  19.3264 10.82419157413667"


class TestSGP4Propagator(unittest.TestCase):
    """Test suite for the SGP4 propagator."""

    def setUp(self):
        self.parser = TLEParser()
        self.propagator = SGP4Propagator()
        self.iss = self.parser.parse_lines(ISS_LINE1, ISS_LINE2, "ISS (ZARYA)")

    def test_matches_reference_library_at_epoch(self):
        """Propagating to the exact epoch reproduces the sgp4 library output."""
        reference = Satrec.twoline2rv(ISS_LINE1, ISS_LINE2)
        error, r_ref, v_ref = reference.sgp4(reference.jdsatepoch, reference.jdsatepochF)
        self.assertEqual(error, 0)

        state = self.propagator.propagate(self.iss, self.iss.epoch)

        self.assertLess(np.linalg.norm(np.array(state.position_km) - r_ref), 1e-3)
        self.assertLess(np.linalg.norm(np.array(state.velocity_kms) - v_ref), 1e-6)
        self.assertAlmostEqual(
            self.propagator.minutes_since_epoch(self.iss, self.iss.epoch), 0.0, places=4
        )

    def test_matches_reference_library_off_epoch(self):
        """Arbitrary instants before and after the epoch agree with the library."""
        reference = Satrec.twoline2rv(ISS_LINE1, ISS_LINE2)
        for minutes in (-180.0, -1.0, 37.5, 1440.0):
            with self.subTest(minutes=minutes):
                at_time = self.iss.epoch + timedelta(minutes=minutes)
                error, r_ref, _ = reference.sgp4(
                    reference.jdsatepoch, reference.jdsatepochF + minutes / 1440.0
                )
                self.assertEqual(error, 0)

                state = self.propagator.propagate(self.iss, at_time)
                self.assertLess(np.linalg.norm(np.array(state.position_km) - r_ref), 1e-2)

    def test_vallado_vanguard_epoch_state(self):
        """Vanguard 1 at tsince=0 matches the published verification vector."""
        elements = self.parser.parse_lines(VANGUARD_LINE1, VANGUARD_LINE2)
        state = propagate(elements, elements.epoch)

        expected_pos = np.array([7022.46529266, -1400.08296755, 0.03995155])
        expected_vel = np.array([1.893841015, 6.405893759, 4.534807250])

        self.assertLess(np.linalg.norm(np.array(state.position_km) - expected_pos), 1e-2)
        self.assertLess(np.linalg.norm(np.array(state.velocity_kms) - expected_vel), 1e-5)

    def test_deterministic(self):
        """Identical inputs yield identical vectors."""
        at_time = datetime(2024, 1, 1, 15, 30, 12, 250000, tzinfo=timezone.utc)
        first = self.propagator.propagate(self.iss, at_time)
        second = SGP4Propagator().propagate(self.iss, at_time)

        self.assertEqual(first.position_km, second.position_km)
        self.assertEqual(first.velocity_kms, second.velocity_kms)
        self.assertEqual(first, second)

    def test_naive_datetime_is_utc(self):
        aware = datetime(2024, 1, 1, 13, 0, tzinfo=timezone.utc)
        naive = datetime(2024, 1, 1, 13, 0)
        self.assertEqual(
            self.propagator.propagate(self.iss, aware).position_km,
            self.propagator.propagate(self.iss, naive).position_km,
        )

    def test_physical_sanity(self):
        """ISS radius and speed are in the expected LEO range."""
        state = self.propagator.propagate(self.iss, self.iss.epoch + timedelta(hours=3))

        self.assertGreater(state.radius_km, 6378.0 + 300.0)
        self.assertLess(state.radius_km, 6378.0 + 500.0)
        self.assertGreater(state.speed_kms, 7.3)
        self.assertLess(state.speed_kms, 7.9)
        self.assertAlmostEqual(state.speed_kms, math.sqrt(sum(v * v for v in state.velocity_kms)))

    def test_far_from_epoch_never_leaks_nan(self):
        """Years away from epoch: either a finite point or a PropagationError."""
        decay = self.parser.parse_lines(DECAY_LINE1, DECAY_LINE2)
        cases = [
            (self.iss, self.iss.epoch + timedelta(days=5 * 365)),
            (self.iss, self.iss.epoch - timedelta(days=5 * 365)),
            (decay, decay.epoch + timedelta(days=365)),
            (decay, decay.epoch + timedelta(days=3 * 365)),
        ]
        for elements, at_time in cases:
            with self.subTest(catalog_id=elements.catalog_id, at_time=at_time):
                try:
                    state = self.propagator.propagate(elements, at_time)
                except PropagationError as e:
                    self.assertIn(e.code, SGP4_ERROR_CODES)
                    self.assertEqual(e.catalog_id, elements.catalog_id)
                    continue
                point = to_geodetic(state.position_km, at_time)
                for value in (point.latitude_deg, point.longitude_deg, point.altitude_km):
                    self.assertTrue(math.isfinite(value))

    def test_decay_is_reported(self):
        """A very high drag orbit fails within a day of epoch, with diagnostics attached."""
        decay = self.parser.parse_lines(DECAY_LINE1, DECAY_LINE2)
        with self.assertRaises(PropagationError) as ctx:
            self.propagator.propagate(decay, decay.epoch + timedelta(days=1))

        error = ctx.exception
        self.assertNotEqual(error.code, 0)
        self.assertIn("SGP4 error", str(error))
        self.assertIn("error_description", error.diagnostics)
        self.assertIn("orbital_parameters", error.diagnostics)


class TestErrorDiagnostics(unittest.TestCase):

    def setUp(self):
        self.elements = TLEParser().parse_lines(ISS_LINE1, ISS_LINE2)

    def test_decay_codes_explained(self):
        for code in (5, 6):
            with self.subTest(code=code):
                diag = error_diagnostics(self.elements, code, self.elements.epoch)
                self.assertEqual(diag["error_code"], code)
                self.assertIn("re-entered", diag["physical_meaning"])
                self.assertIn("recommended_action", diag)

    def test_epoch_age(self):
        later = self.elements.epoch + timedelta(days=2)
        diag = error_diagnostics(self.elements, 1, later)
        self.assertAlmostEqual(diag["orbital_parameters"]["epoch_age_days"], 2.0, places=6)

    def test_unknown_code(self):
        diag = error_diagnostics(self.elements, 42, self.elements.epoch)
        self.assertIn("Unknown error 42", diag["error_description"])
        self.assertNotIn("physical_meaning", diag)


if __name__ == "__main__":
    unittest.main()
