"""
Data Models

Immutable value types passed between the parser, propagator, frame
converter, trajectory sampler and the rendering side. Only plain coordinate
data crosses these boundaries; no rendering-library handles.
"""

import math
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from config import EARTH_RADIUS_KM, GRAVITATIONAL_PARAMETER
from orbit_tracker.timescale import as_utc


def compute_checksum(line: str) -> int:
    """Calculate TLE checksum (digits plus one per minus sign, modulo 10)."""
    checksum = 0
    for char in line[:68]:
        if char.isdigit():
            checksum += int(char)
        elif char == "-":
            checksum += 1
    return checksum % 10


class OrbitalElementSet(BaseModel):
    """Orbital elements decoded from one two-line element set."""

    model_config = ConfigDict(frozen=True)

    catalog_id: int = Field(ge=0)
    name: str = ""
    line1: str
    line2: str
    epoch: datetime
    classification: str = "U"
    inclination_deg: float = Field(ge=0.0, le=180.0)
    raan_deg: float
    eccentricity: float = Field(ge=0.0, lt=1.0)
    arg_perigee_deg: float
    mean_anomaly_deg: float
    mean_motion_rev_per_day: float = Field(gt=0.0)
    bstar: float = 0.0
    ndot: float = 0.0
    nddot: float = 0.0
    element_number: int = 0
    revolution_number: int = 0

    @field_validator("epoch")
    @classmethod
    def _epoch_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def _lines_agree(self) -> "OrbitalElementSet":
        if not self.line1.startswith("1 ") or not self.line2.startswith("2 "):
            raise ValueError("TLE lines must start with '1 ' and '2 '")
        if self.line1[2:7] != self.line2[2:7]:
            raise ValueError(
                f"Catalog number mismatch between lines: "
                f"{self.line1[2:7]!r} != {self.line2[2:7]!r}"
            )
        return self

    @property
    def orbital_period_minutes(self) -> float:
        return 1440.0 / self.mean_motion_rev_per_day

    @property
    def semi_major_axis_km(self) -> float:
        n = self.mean_motion_rev_per_day * 2.0 * math.pi / 86400.0
        return (GRAVITATIONAL_PARAMETER / (n * n)) ** (1.0 / 3.0)

    @property
    def perigee_altitude_km(self) -> float:
        """Perigee height above the WGS-72 equatorial radius."""
        return self.semi_major_axis_km * (1.0 - self.eccentricity) - EARTH_RADIUS_KM

    @property
    def is_deep_space(self) -> bool:
        """True when SGP4 selects the SDP4 branch (period of 225 minutes or more)."""
        return self.orbital_period_minutes >= 225.0

    @property
    def has_valid_checksums(self) -> bool:
        for line in (self.line1, self.line2):
            if len(line) < 69 or not line[68].isdigit():
                return False
            if int(line[68]) != compute_checksum(line):
                return False
        return True

    def age_days(self, at_time: datetime) -> float:
        """Days between the element-set epoch and at_time (negative before epoch)."""
        return (as_utc(at_time) - self.epoch).total_seconds() / 86400.0

    def lines(self) -> Tuple[str, str]:
        return self.line1, self.line2


class PropagatedState(BaseModel):
    """TEME position/velocity produced by SGP4 for one instant."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    position_km: Tuple[float, float, float]
    velocity_kms: Tuple[float, float, float]

    @property
    def speed_kms(self) -> float:
        return float(np.linalg.norm(self.velocity_kms))

    @property
    def radius_km(self) -> float:
        return float(np.linalg.norm(self.position_km))


class GeodeticPoint(BaseModel):
    """Sub-satellite point on the WGS-84 ellipsoid."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    latitude_deg: float = Field(ge=-90.0, le=90.0)
    longitude_deg: float = Field(gt=-180.0, le=180.0)
    altitude_km: float

    @field_validator("latitude_deg", "longitude_deg", "altitude_km")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("Geodetic coordinates must be finite")
        return value

    def as_lat_lon(self) -> Tuple[float, float]:
        return self.latitude_deg, self.longitude_deg


class PositionFix(BaseModel):
    """What a marker needs on every tick: where the satellite is and how fast it moves."""

    model_config = ConfigDict(frozen=True)

    catalog_id: int
    point: GeodeticPoint
    speed_kms: float


class SegmentKind(str, Enum):
    PAST = "past"
    FUTURE = "future"


class TrajectorySegment(BaseModel):
    """Ordered ground-track points on one side of a reference time."""

    model_config = ConfigDict(frozen=True)

    kind: SegmentKind
    reference_time: datetime
    step_seconds: float
    points: Tuple[GeodeticPoint, ...] = ()

    def __len__(self) -> int:
        return len(self.points)

    def polylines(self) -> List[List[Tuple[float, float]]]:
        """
        Split the segment into drawable (lat, lon) runs.

        A new run starts wherever two consecutive longitudes differ by more
        than 180 degrees, i.e. where the track crosses the antimeridian.
        """
        runs: List[List[Tuple[float, float]]] = []
        previous_lon = None
        for point in self.points:
            if previous_lon is None or abs(point.longitude_deg - previous_lon) > 180.0:
                runs.append([])
            runs[-1].append(point.as_lat_lon())
            previous_lon = point.longitude_deg
        return runs


class PassWindow(BaseModel):
    """One visual pass reported by the pass-prediction service."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    start_utc: int = Field(alias="startUTC")
    start_azimuth: float = Field(alias="startAz")
    start_compass: str = Field("", alias="startAzCompass")
    start_elevation: float = Field(0.0, alias="startEl")
    max_utc: int = Field(alias="maxUTC")
    max_azimuth: float = Field(alias="maxAz")
    max_compass: str = Field("", alias="maxAzCompass")
    max_elevation: float = Field(alias="maxEl")
    end_utc: int = Field(alias="endUTC")
    end_azimuth: float = Field(alias="endAz")
    end_compass: str = Field("", alias="endAzCompass")
    end_elevation: float = Field(0.0, alias="endEl")
    duration_seconds: int = Field(0, alias="duration")
    magnitude: Optional[float] = Field(None, alias="mag")
