"""
Frame Conversion

TEME (the inertial frame SGP4 works in) to Earth-fixed and geodetic
coordinates.

The rotation uses Greenwich Mean Sidereal Time (IAU-82), which is the angle
between the TEME x-axis and the Greenwich meridian. The geodetic solution is
Bowring's iteration on the WGS-84 ellipsoid with an explicit branch for
positions on the polar axis, so no input near the poles yields NaN.
"""

import math
from datetime import datetime
from typing import Optional, Sequence, Tuple

import numpy as np

from config import EARTH_ROTATION_RATE, WGS84_A_KM, WGS84_F
from orbit_tracker.models import GeodeticPoint
from orbit_tracker.timescale import as_utc, datetime_to_jd_fr

_TWO_PI = 2.0 * math.pi


def greenwich_sidereal_time(at_time: datetime) -> float:
    """
    Greenwich Mean Sidereal Time in radians, normalized to [0, 2*pi).

    Args:
        at_time: UTC time (UT1 - UTC is neglected)
    """
    # Julian centuries from J2000
    jd, fr = datetime_to_jd_fr(at_time)
    T = (jd - 2451545.0 + fr) / 36525.0

    gmst_sec = (
        67310.54841 +
        (876600.0 * 3600.0 + 8640184.812866) * T +
        0.093104 * T * T -
        6.2e-6 * T * T * T
    )

    return (gmst_sec % 86400.0) * (_TWO_PI / 86400.0)


def teme_to_ecef(
    r_teme: Sequence[float],
    at_time: datetime,
    v_teme: Optional[Sequence[float]] = None,
) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    """
    Rotate a TEME state into the Earth-fixed frame.

    Args:
        r_teme: Position vector in TEME coordinates [x, y, z] (km)
        at_time: Time of the state
        v_teme: Optional velocity vector in TEME coordinates (km/s)

    Returns:
        Tuple of (r_ecef, v_ecef); v_ecef is None when no velocity was given
    """
    gmst = greenwich_sidereal_time(at_time)
    cos_g = math.cos(gmst)
    sin_g = math.sin(gmst)

    r_ecef = np.array([
        cos_g * r_teme[0] + sin_g * r_teme[1],
        -sin_g * r_teme[0] + cos_g * r_teme[1],
        r_teme[2],
    ])

    if v_teme is None:
        return r_ecef, None

    # Velocity also picks up the Earth's rotation
    v_ecef = np.array([
        cos_g * v_teme[0] + sin_g * v_teme[1] + EARTH_ROTATION_RATE * r_ecef[1],
        -sin_g * v_teme[0] + cos_g * v_teme[1] - EARTH_ROTATION_RATE * r_ecef[0],
        v_teme[2],
    ])

    return r_ecef, v_ecef


def normalize_longitude(lon_deg: float) -> float:
    """Wrap a longitude into (-180, 180]."""
    lon = math.fmod(lon_deg, 360.0)
    if lon <= -180.0:
        lon += 360.0
    elif lon > 180.0:
        lon -= 360.0
    return lon


def ecef_to_geodetic(r_ecef: Sequence[float]) -> Tuple[float, float, float]:
    """
    Accurate ECEF to geodetic conversion using Bowring's method.

    Args:
        r_ecef: Position vector in ECEF coordinates [x, y, z] (km)

    Returns:
        Tuple of (latitude_deg, longitude_deg, altitude_km); longitude in
        (-180, 180], latitude in [-90, 90]
    """
    a = WGS84_A_KM
    f = WGS84_F
    b = a * (1.0 - f)
    e2 = 2.0 * f - f * f
    ep2 = e2 / (1.0 - e2)

    x, y, z = (float(c) for c in r_ecef)

    lon = normalize_longitude(math.degrees(math.atan2(y, x)))

    # Distance from z-axis
    p = math.hypot(x, y)

    # On the polar axis latitude is exactly +-90 and Bowring's form divides by zero
    if p < 1e-9:
        lat = 90.0 if z >= 0 else -90.0
        return lat, lon, abs(z) - b

    # Initial estimate using Bowring's formula
    theta = math.atan2(z * a, p * b)
    lat_rad = theta

    for _ in range(5):
        sin_theta = math.sin(theta)
        cos_theta = math.cos(theta)

        lat_rad = math.atan2(
            z + ep2 * b * sin_theta ** 3,
            p - e2 * a * cos_theta ** 3,
        )

        # Parametric latitude of the new estimate
        new_theta = math.atan2(b * math.sin(lat_rad), a * math.cos(lat_rad))
        if abs(new_theta - theta) < 1e-12:
            break
        theta = new_theta

    cos_lat = math.cos(lat_rad)
    sin_lat = math.sin(lat_rad)
    N = a / math.sqrt(1.0 - e2 * sin_lat * sin_lat)

    if abs(cos_lat) > 1e-10:
        alt = p / cos_lat - N
    else:
        alt = z / sin_lat - N * (1.0 - e2)

    lat = max(-90.0, min(90.0, math.degrees(lat_rad)))
    return lat, lon, alt


def to_geodetic(position_km: Sequence[float], at_time: datetime) -> GeodeticPoint:
    """
    Sub-satellite point for a TEME position.

    Raises:
        ValueError: position is not three finite components
    """
    if len(position_km) != 3 or not all(math.isfinite(c) for c in position_km):
        raise ValueError(f"Position must be three finite components, got {position_km!r}")

    at_time = as_utc(at_time)
    r_ecef, _ = teme_to_ecef(position_km, at_time)
    lat, lon, alt = ecef_to_geodetic(r_ecef)

    return GeodeticPoint(
        timestamp=at_time,
        latitude_deg=lat,
        longitude_deg=lon,
        altitude_km=alt,
    )
