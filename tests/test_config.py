"""
Unit Tests for Configuration and Bundled Data

Run with:
    python -m pytest tests/test_config.py -v
"""

import unittest

from config import FALLBACK_TLES, POPULAR_SATELLITES, TRACK_COLORS, TrackerConfig
from orbit_tracker.propagator import propagate
from orbit_tracker.tle_parser import TLEParser


class TestTrackerConfig(unittest.TestCase):

    def test_defaults(self):
        config = TrackerConfig.from_env({})

        self.assertFalse(config.has_api_key)
        self.assertEqual(config.position_interval, 1.0)
        self.assertEqual(config.trajectory_interval, 30.0)
        self.assertEqual(config.tle_refresh_interval, 3600.0)
        self.assertEqual(config.past_minutes, 45.0)
        self.assertEqual(config.future_minutes, 90.0)
        self.assertEqual(config.step_seconds, 60.0)
        self.assertEqual(config.request_delay, 0.1)
        self.assertEqual(config.log_level, "INFO")

    def test_from_env(self):
        config = TrackerConfig.from_env({
            "N2YO_API_KEY": "abc123",
            "N2YO_API_BASE": "http://localhost:8080/rest/",
            "POSITION_INTERVAL_S": "0.5",
            "TRAJECTORY_STEP_S": "30",
            "TRAJECTORY_FUTURE_MINUTES": "",
            "LOG_LEVEL": "debug",
        })

        self.assertTrue(config.has_api_key)
        self.assertEqual(config.api_base, "http://localhost:8080/rest")
        self.assertEqual(config.position_interval, 0.5)
        self.assertEqual(config.step_seconds, 30.0)
        self.assertEqual(config.future_minutes, 90.0)
        self.assertEqual(config.log_level, "DEBUG")

    def test_key_not_in_repr(self):
        config = TrackerConfig(api_key="secret-key")
        self.assertNotIn("secret-key", repr(config))

    def test_invalid_number(self):
        with self.assertRaises(ValueError) as ctx:
            TrackerConfig.from_env({"TRAJECTORY_INTERVAL_S": "often"})
        self.assertIn("TRAJECTORY_INTERVAL_S", str(ctx.exception))

    def test_non_positive_interval(self):
        for name in ("position_interval", "trajectory_interval", "tle_refresh_interval", "step_seconds"):
            with self.subTest(name=name):
                with self.assertRaises(ValueError):
                    TrackerConfig(**{name: 0})

    def test_negative_span(self):
        with self.assertRaises(ValueError):
            TrackerConfig(past_minutes=-1)


class TestBundledData(unittest.TestCase):

    def test_every_catalog_satellite_has_fallback(self):
        self.assertEqual(set(POPULAR_SATELLITES), set(FALLBACK_TLES))
        self.assertGreaterEqual(len(TRACK_COLORS), len(POPULAR_SATELLITES))

    def test_fallback_sets_parse_and_propagate(self):
        parser = TLEParser()
        for catalog_id, entry in FALLBACK_TLES.items():
            with self.subTest(catalog_id=catalog_id):
                elements = parser.parse_lines(entry["line1"], entry["line2"], entry["name"])
                self.assertEqual(elements.catalog_id, catalog_id)

                state = propagate(elements, elements.epoch)
                self.assertGreater(state.radius_km, 6378.0)


if __name__ == "__main__":
    unittest.main()
