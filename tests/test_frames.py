"""
Unit Tests for Frame Conversion

Run with:
    python -m pytest tests/test_frames.py -v
"""

import math
import unittest
from datetime import datetime, timedelta, timezone

import numpy as np

from config import WGS84_A_KM, WGS84_F
from orbit_tracker.frames import (
    ecef_to_geodetic,
    greenwich_sidereal_time,
    normalize_longitude,
    teme_to_ecef,
    to_geodetic,
)
from orbit_tracker.propagator import propagate
from orbit_tracker.tle_parser import TLEParser


J2000 = datetime(2000, 1, 1, 12, 0, tzinfo=timezone.utc)
WGS84_B_KM = WGS84_A_KM * (1.0 - WGS84_F)

ISS_LINE1 = "1 25544U 98067A   24001.50000000  .00016717  00000-0  10270-3 0  9005"
ISS_LINE2 = "2 25544  51.6416 247.4627 0006703 130.5360 325.0288 15.72125391428615"


class TestSiderealTime(unittest.TestCase):

    def test_gmst_at_j2000(self):
        """GMST at 2000-01-01 12:00 UT1 is 280.46061837 degrees."""
        self.assertAlmostEqual(math.degrees(greenwich_sidereal_time(J2000)), 280.46061837, places=6)

    def test_gmst_range(self):
        for hours in range(0, 48, 5):
            with self.subTest(hours=hours):
                gmst = greenwich_sidereal_time(J2000 + timedelta(hours=hours))
                self.assertGreaterEqual(gmst, 0.0)
                self.assertLess(gmst, 2.0 * math.pi)

    def test_sidereal_day(self):
        """One sidereal day later GMST is back where it started."""
        later = J2000 + timedelta(seconds=86164.0905)
        self.assertAlmostEqual(
            greenwich_sidereal_time(later), greenwich_sidereal_time(J2000), places=5
        )


class TestTemeToEcef(unittest.TestCase):

    def test_rotation_preserves_norm_and_z(self):
        r_teme = [4000.0, -3000.0, 4500.0]
        r_ecef, v_ecef = teme_to_ecef(r_teme, J2000 + timedelta(hours=7))

        self.assertIsNone(v_ecef)
        self.assertAlmostEqual(np.linalg.norm(r_ecef), np.linalg.norm(r_teme), places=9)
        self.assertEqual(r_ecef[2], r_teme[2])

    def test_rotation_angle(self):
        """The TEME x-axis sits at longitude -GMST."""
        point = to_geodetic([7000.0, 0.0, 0.0], J2000)
        self.assertAlmostEqual(point.longitude_deg, normalize_longitude(-280.46061837), places=5)
        self.assertAlmostEqual(point.latitude_deg, 0.0, places=9)

    def test_velocity_includes_earth_rotation(self):
        """An inertially fixed point moves westward in the Earth-fixed frame."""
        r_ecef, v_ecef = teme_to_ecef([7000.0, 0.0, 0.0], J2000, [0.0, 0.0, 0.0])

        self.assertEqual(v_ecef.shape, (3,))
        self.assertAlmostEqual(np.linalg.norm(v_ecef), 7.2921159e-5 * 7000.0, places=9)
        self.assertAlmostEqual(float(np.dot(v_ecef, r_ecef)), 0.0, places=9)


class TestGeodetic(unittest.TestCase):

    def test_equator_prime_meridian(self):
        lat, lon, alt = ecef_to_geodetic([WGS84_A_KM + 400.0, 0.0, 0.0])

        self.assertAlmostEqual(lat, 0.0, places=9)
        self.assertAlmostEqual(lon, 0.0, places=9)
        self.assertAlmostEqual(alt, 400.0, places=6)

    def test_north_pole(self):
        lat, lon, alt = ecef_to_geodetic([0.0, 0.0, 7000.0])

        self.assertEqual(lat, 90.0)
        self.assertAlmostEqual(alt, 7000.0 - WGS84_B_KM, places=6)
        self.assertTrue(-180.0 < lon <= 180.0)

    def test_south_pole(self):
        lat, _, alt = ecef_to_geodetic([0.0, 0.0, -6800.0])

        self.assertEqual(lat, -90.0)
        self.assertAlmostEqual(alt, 6800.0 - WGS84_B_KM, places=6)

    def test_near_pole_is_finite(self):
        """Positions a hair off the polar axis give finite, clamped results."""
        for offset in (1e-8, 1e-6, 1e-3):
            with self.subTest(offset=offset):
                lat, lon, alt = ecef_to_geodetic([offset, offset, 6900.0])
                for value in (lat, lon, alt):
                    self.assertTrue(math.isfinite(value))
                self.assertLessEqual(lat, 90.0)
                self.assertGreater(lat, 89.99)
                self.assertAlmostEqual(alt, 6900.0 - WGS84_B_KM, delta=0.05)

    def test_antimeridian_reports_positive_180(self):
        _, lon, _ = ecef_to_geodetic([-7000.0, -0.0, 0.0])
        self.assertEqual(lon, 180.0)

    def test_mid_latitude_round_trip(self):
        """Geodetic to ECEF and back recovers latitude and altitude."""
        lat_rad = math.radians(45.0)
        h = 420.0
        e2 = 2.0 * WGS84_F - WGS84_F ** 2
        n = WGS84_A_KM / math.sqrt(1.0 - e2 * math.sin(lat_rad) ** 2)
        x = (n + h) * math.cos(lat_rad)
        z = (n * (1.0 - e2) + h) * math.sin(lat_rad)

        lat, lon, alt = ecef_to_geodetic([x * math.cos(math.radians(-120.0)),
                                          x * math.sin(math.radians(-120.0)), z])

        self.assertAlmostEqual(lat, 45.0, places=8)
        self.assertAlmostEqual(lon, -120.0, places=8)
        self.assertAlmostEqual(alt, h, places=5)


class TestNormalizeLongitude(unittest.TestCase):

    def test_wrapping(self):
        cases = {
            0.0: 0.0,
            180.0: 180.0,
            -180.0: 180.0,
            540.0: 180.0,
            -540.0: 180.0,
            190.0: -170.0,
            -190.0: 170.0,
            359.5: -0.5,
            -179.5: -179.5,
        }
        for value, expected in cases.items():
            with self.subTest(value=value):
                self.assertAlmostEqual(normalize_longitude(value), expected, places=9)


class TestToGeodetic(unittest.TestCase):

    def test_rejects_non_finite(self):
        for position in ([float("nan"), 0.0, 7000.0], [7000.0, float("inf"), 0.0]):
            with self.subTest(position=position):
                with self.assertRaises(ValueError):
                    to_geodetic(position, J2000)

    def test_rejects_wrong_shape(self):
        with self.assertRaises(ValueError):
            to_geodetic([7000.0, 0.0], J2000)

    def test_naive_time_is_utc(self):
        point = to_geodetic([7000.0, 0.0, 0.0], datetime(2000, 1, 1, 12, 0))
        self.assertEqual(point.timestamp, J2000)

    def test_iss_ground_track_ranges(self):
        """Over one orbit the ISS stays within its inclination band and valid longitudes."""
        iss = TLEParser().parse_lines(ISS_LINE1, ISS_LINE2)
        latitudes = []
        for minute in range(0, 95):
            at_time = iss.epoch + timedelta(minutes=minute)
            point = to_geodetic(propagate(iss, at_time).position_km, at_time)

            self.assertTrue(-180.0 < point.longitude_deg <= 180.0)
            self.assertTrue(-90.0 <= point.latitude_deg <= 90.0)
            self.assertGreater(point.altitude_km, 300.0)
            self.assertLess(point.altitude_km, 500.0)
            latitudes.append(point.latitude_deg)

        self.assertLess(max(abs(lat) for lat in latitudes), 52.5)
        self.assertGreater(max(abs(lat) for lat in latitudes), 45.0)


if __name__ == "__main__":
    unittest.main()
