"""
SGP4 Propagation

Propagates an OrbitalElementSet to an absolute time with the sgp4 library.
The library chooses between the near-Earth (SGP4) and deep-space (SDP4)
branches from the mean motion; callers never see that choice.

Any non-zero SGP4 error code is reported as a PropagationError. Callers must
treat it as terminal for that element set: retrying with the same elements
and time gives the same result.

Note: For real-time tracking, ensure TLE data is kept current (updated at least
weekly for LEO satellites, less frequently for higher orbits).
"""

import logging
from datetime import datetime
from functools import lru_cache
from typing import Any, Dict

import numpy as np
from sgp4.api import Satrec

from orbit_tracker.errors import PropagationError
from orbit_tracker.models import OrbitalElementSet, PropagatedState
from orbit_tracker.timescale import as_utc, datetime_to_jd_fr

logger = logging.getLogger(__name__)


# SGP4 error code meanings
SGP4_ERROR_CODES = {
    0: "No error",
    1: "Mean eccentricity < 0.0 or > 1.0",
    2: "Mean motion < 0.0",
    3: "Perturbed eccentricity < 0.0 or > 1.0",
    4: "Semi-latus rectum < 0.0",
    5: "Satellite has decayed",
    6: "Satellite has decayed (low altitude)",
}


@lru_cache(maxsize=256)
def _satrec(line1: str, line2: str) -> Satrec:
    return Satrec.twoline2rv(line1, line2)


def satrec_for(elements: OrbitalElementSet) -> Satrec:
    """Return the (cached) sgp4 Satrec for an element set."""
    return _satrec(elements.line1, elements.line2)


def error_diagnostics(
    elements: OrbitalElementSet, error_code: int, timestamp: datetime
) -> Dict[str, Any]:
    """
    Get detailed physical diagnostics for SGP4 error.

    Args:
        elements: Element set that failed to propagate
        error_code: SGP4 error code
        timestamp: Propagation timestamp

    Returns:
        Dictionary with diagnostic information
    """
    diagnostics = {
        "error_code": error_code,
        "error_description": SGP4_ERROR_CODES.get(error_code, f"Unknown error {error_code}"),
        "orbital_parameters": {
            "eccentricity": elements.eccentricity,
            "inclination_deg": elements.inclination_deg,
            "mean_motion_rev_day": elements.mean_motion_rev_per_day,
            "bstar_drag": elements.bstar,
            "perigee_altitude_km": elements.perigee_altitude_km,
            "epoch_age_days": elements.age_days(timestamp),
        },
    }

    # Physical interpretation based on error code
    if error_code == 1:
        diagnostics["physical_meaning"] = (
            "The satellite's orbital eccentricity is outside valid range [0, 1). "
            "This indicates the TLE data may be corrupted or the orbit is no longer bound."
        )
        diagnostics["recommended_action"] = "Obtain fresh TLE data for this satellite."

    elif error_code == 2:
        diagnostics["physical_meaning"] = (
            "The mean motion is negative, which is physically impossible. "
            "This indicates corrupted TLE data or an invalid orbital state."
        )
        diagnostics["recommended_action"] = "Verify TLE data integrity and obtain updated elements."

    elif error_code in (3, 4):
        diagnostics["physical_meaning"] = (
            "SGP4 computed perturbed orbital elements that are unphysical. "
            "This typically occurs when propagating far from the TLE epoch or "
            "for satellites with very high drag in decaying orbits."
        )
        diagnostics["recommended_action"] = (
            "Use more recent TLE data or limit propagation to shorter time periods."
        )

    elif error_code in (5, 6):
        diagnostics["physical_meaning"] = (
            "The satellite has decayed and re-entered the atmosphere. "
            "The computed orbit radius is below the Earth's surface."
        )
        diagnostics["recommended_action"] = (
            "This satellite has re-entered. Historical propagation only. "
            "No future propagation is possible."
        )

    return diagnostics


class SGP4Propagator:
    """
    Stateless SGP4 propagator.

    propagate() is a pure function of (elements, time): Satrec objects are
    cached per TLE line pair and sgp4 itself is deterministic.
    """

    def propagate(self, elements: OrbitalElementSet, at_time: datetime) -> PropagatedState:
        """
        Propagate an element set to an absolute time.

        Args:
            elements: Parsed element set
            at_time: Target time (naive values are UTC); may precede the epoch

        Returns:
            PropagatedState with TEME position (km) and velocity (km/s)

        Raises:
            PropagationError: SGP4 reported an error or produced non-finite output
        """
        at_time = as_utc(at_time)
        satellite = satrec_for(elements)

        # Convert to Julian date
        jd, fr = datetime_to_jd_fr(at_time)

        error, position, velocity = satellite.sgp4(jd, fr)

        if error != 0:
            message = SGP4_ERROR_CODES.get(error, f"Unknown error code {error}")
            logger.warning(
                f"SGP4 error {error} for satellite {elements.catalog_id} "
                f"at {at_time.isoformat()}: {message}"
            )
            raise PropagationError(
                f"SGP4 error {error}: {message}",
                code=error,
                catalog_id=elements.catalog_id,
                timestamp=at_time,
                diagnostics=error_diagnostics(elements, error, at_time),
            )

        if not (np.all(np.isfinite(position)) and np.all(np.isfinite(velocity))):
            raise PropagationError(
                "SGP4 produced a non-finite state vector",
                catalog_id=elements.catalog_id,
                timestamp=at_time,
            )

        return PropagatedState(
            timestamp=at_time,
            position_km=tuple(float(p) for p in position),
            velocity_kms=tuple(float(v) for v in velocity),
        )

    def minutes_since_epoch(self, elements: OrbitalElementSet, at_time: datetime) -> float:
        """The tsince value SGP4 uses internally for at_time."""
        satellite = satrec_for(elements)
        jd, fr = datetime_to_jd_fr(at_time)
        return (jd - satellite.jdsatepoch) * 1440.0 + (fr - satellite.jdsatepochF) * 1440.0


_default_propagator = SGP4Propagator()


def propagate(elements: OrbitalElementSet, at_time: datetime) -> PropagatedState:
    """Propagate with the shared default propagator."""
    return _default_propagator.propagate(elements, at_time)
