"""
Live Satellite Ground-Track Engine

This package turns two-line element sets into near-real-time satellite
positions and past/future ground tracks for display on a map.

Modules:
    tle_parser: TLE text splitting and decoding into OrbitalElementSet
    propagator: SGP4/SDP4 propagation using the sgp4 library
    frames: TEME to Earth-fixed and geodetic conversion
    trajectory: Past/future ground-track sampling
    tracking: Live tracking session (positions, trajectories, element refresh)
    n2yo_client: N2YO REST client for element sets and visual passes

References:
    Vallado, D. A., Crawford, P., Hujsak, R., & Kelso, T. S. (2006).
    Revisiting Spacetrack Report #3. AIAA 2006-6753.
"""

from orbit_tracker.errors import FormatError, PropagationError, RetrievalError
from orbit_tracker.models import GeodeticPoint, OrbitalElementSet, PropagatedState, TrajectorySegment

__version__ = "1.0.0"

__all__ = [
    "FormatError",
    "PropagationError",
    "RetrievalError",
    "GeodeticPoint",
    "OrbitalElementSet",
    "PropagatedState",
    "TrajectorySegment",
]
