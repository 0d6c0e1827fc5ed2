"""
Trajectory Sampling

Builds ground-track polylines by propagating an element set across a time
window at a fixed step and converting each state to a geodetic point.

A window of duration D sampled every S seconds yields floor(D / S) + 1 points,
both endpoints included. When SGP4 reports decay partway through, the track
ends at the last valid point; only a failure on the very first sample is an
error.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Iterator, Optional

from orbit_tracker.errors import PropagationError
from orbit_tracker.frames import to_geodetic
from orbit_tracker.models import (
    GeodeticPoint,
    OrbitalElementSet,
    SegmentKind,
    TrajectorySegment,
)
from orbit_tracker.propagator import SGP4Propagator
from orbit_tracker.timescale import as_utc

logger = logging.getLogger(__name__)


class TrajectorySample:
    """
    Finite, restartable lazy sequence of ground-track points.

    Each iteration propagates from scratch, so iterating twice gives the same
    points. Nothing is computed until the sample is iterated.
    """

    def __init__(
        self,
        elements: OrbitalElementSet,
        start_time: datetime,
        duration_seconds: float,
        step_seconds: float,
        propagator: Optional[SGP4Propagator] = None,
    ):
        if step_seconds <= 0:
            raise ValueError(f"Step must be positive, got {step_seconds}")
        if duration_seconds < 0:
            raise ValueError(f"Duration must not be negative, got {duration_seconds}")

        self.elements = elements
        self.start_time = as_utc(start_time)
        self.duration_seconds = duration_seconds
        self.step_seconds = step_seconds
        self.propagator = propagator or SGP4Propagator()

    @property
    def expected_points(self) -> int:
        """Number of points produced when no decay occurs in the window."""
        return int(math.floor(self.duration_seconds / self.step_seconds)) + 1

    def times(self) -> Iterator[datetime]:
        for i in range(self.expected_points):
            yield self.start_time + timedelta(seconds=i * self.step_seconds)

    def __iter__(self) -> Iterator[GeodeticPoint]:
        for index, at_time in enumerate(self.times()):
            try:
                state = self.propagator.propagate(self.elements, at_time)
            except PropagationError as e:
                if index == 0:
                    raise
                logger.info(
                    f"Trajectory for satellite {self.elements.catalog_id} truncated "
                    f"at sample {index}/{self.expected_points}: {e}"
                )
                return
            yield to_geodetic(state.position_km, at_time)


def sample(
    elements: OrbitalElementSet,
    start_time: datetime,
    duration_seconds: float,
    step_seconds: float,
    propagator: Optional[SGP4Propagator] = None,
) -> TrajectorySample:
    """
    Sample the ground track of an element set.

    Args:
        elements: Element set to propagate
        start_time: Time of the first point
        duration_seconds: Length of the window
        step_seconds: Spacing between points
        propagator: Alternative propagator (defaults to SGP4Propagator)

    Returns:
        Lazy, restartable sequence of GeodeticPoint
    """
    return TrajectorySample(elements, start_time, duration_seconds, step_seconds, propagator)


def past_segment(
    elements: OrbitalElementSet,
    reference_time: datetime,
    span_seconds: float,
    step_seconds: float,
    propagator: Optional[SGP4Propagator] = None,
) -> TrajectorySegment:
    """Ground track over [reference_time - span, reference_time]."""
    reference_time = as_utc(reference_time)
    start = reference_time - timedelta(seconds=span_seconds)
    points = tuple(sample(elements, start, span_seconds, step_seconds, propagator))
    return TrajectorySegment(
        kind=SegmentKind.PAST,
        reference_time=reference_time,
        step_seconds=step_seconds,
        points=points,
    )


def future_segment(
    elements: OrbitalElementSet,
    reference_time: datetime,
    span_seconds: float,
    step_seconds: float,
    propagator: Optional[SGP4Propagator] = None,
) -> TrajectorySegment:
    """Ground track over [reference_time, reference_time + span]."""
    reference_time = as_utc(reference_time)
    points = tuple(sample(elements, reference_time, span_seconds, step_seconds, propagator))
    return TrajectorySegment(
        kind=SegmentKind.FUTURE,
        reference_time=reference_time,
        step_seconds=step_seconds,
        points=points,
    )
