"""
TLE Parser Module

Provides utilities for splitting raw Two-Line Element (TLE) text into its two
element lines and decoding them into an OrbitalElementSet.

Splitting is whitespace-only: checksums and field contents are not checked
here. Decoding goes through the sgp4 library, which also validates the
numeric fields that SGP4 needs.
"""

import logging
import math
from typing import List, Optional, Tuple

from pydantic import ValidationError
from sgp4.api import Satrec

from orbit_tracker.errors import FormatError
from orbit_tracker.models import OrbitalElementSet
from orbit_tracker.timescale import jd_to_datetime

logger = logging.getLogger(__name__)


def parse_tle_text(text: str) -> Tuple[str, str]:
    """
    Split raw element-set text into (line1, line2).

    Empty lines are dropped and the remaining lines trimmed. When a name line
    precedes the elements (three-line format) the first "1 "/"2 " pair is
    returned; otherwise the first two non-empty lines are used as-is.

    Raises:
        FormatError: fewer than two non-empty lines.
    """
    if text is None:
        raise FormatError("No element-set text supplied")

    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        raise FormatError(
            f"Expected at least two non-empty TLE lines, found {len(lines)}"
        )

    for i in range(len(lines) - 1):
        if lines[i].startswith("1 ") and lines[i + 1].startswith("2 "):
            return lines[i], lines[i + 1]

    return lines[0], lines[1]


def extract_name(text: str) -> Optional[str]:
    """Return the name line of three-line TLE text, if there is one."""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if len(lines) >= 3 and not lines[0].startswith(("1 ", "2 ")):
        name = lines[0]
        # CelesTrak "0 NAME" convention
        return name[2:].strip() if name.startswith("0 ") else name
    return None


class TLEParser:
    """
    Decoder from TLE text to OrbitalElementSet.

    Provides methods for:
    - Parsing raw text (two- or three-line format)
    - Parsing an explicit pair of lines
    - Building the sgp4 Satrec behind an element set
    """

    def parse(self, text: str, name: str = "") -> OrbitalElementSet:
        """
        Parse raw text into an element set.

        Args:
            text: Raw TLE text (blank lines and a leading name line allowed)
            name: Satellite name; a name line in the text is used when empty

        Returns:
            OrbitalElementSet
        """
        line1, line2 = parse_tle_text(text)
        return self.parse_lines(line1, line2, name or extract_name(text) or "")

    def parse_lines(self, line1: str, line2: str, name: str = "") -> OrbitalElementSet:
        """
        Parse TLE lines into structured data.

        Args:
            line1: First line of TLE
            line2: Second line of TLE
            name: Optional satellite name

        Returns:
            OrbitalElementSet

        Raises:
            FormatError: when the lines are malformed or violate element invariants
        """
        line1 = line1.strip()
        line2 = line2.strip()

        if not line1.startswith("1 ") or not line2.startswith("2 "):
            raise FormatError("TLE lines must start with '1 ' and '2 '")
        if line1[2:7] != line2[2:7]:
            raise FormatError(
                f"Catalog number mismatch: line 1 has {line1[2:7]!r}, "
                f"line 2 has {line2[2:7]!r}"
            )

        try:
            satellite = Satrec.twoline2rv(line1, line2)
        except (ValueError, IndexError) as e:
            raise FormatError(f"Failed to decode TLE: {e}") from e

        # Convert mean motion from rad/min to rev/day
        mean_motion_rev_day = satellite.no_kozai * 1440.0 / (2.0 * math.pi)

        try:
            elements = OrbitalElementSet(
                catalog_id=satellite.satnum,
                name=name or f"SAT_{satellite.satnum}",
                line1=line1,
                line2=line2,
                epoch=jd_to_datetime(satellite.jdsatepoch, satellite.jdsatepochF),
                classification=getattr(satellite, "classification", "U") or "U",
                inclination_deg=math.degrees(satellite.inclo),
                raan_deg=math.degrees(satellite.nodeo),
                eccentricity=satellite.ecco,
                arg_perigee_deg=math.degrees(satellite.argpo),
                mean_anomaly_deg=math.degrees(satellite.mo),
                mean_motion_rev_per_day=mean_motion_rev_day,
                bstar=satellite.bstar,
                ndot=satellite.ndot,
                nddot=satellite.nddot,
                element_number=getattr(satellite, "elnum", 0),
                revolution_number=getattr(satellite, "revnum", 0),
            )
        except ValidationError as e:
            raise FormatError(f"Invalid orbital elements for {line1[2:7]}: {e}") from e

        if not elements.has_valid_checksums:
            logger.debug(f"TLE checksum mismatch for satellite {elements.catalog_id}")

        return elements

    def parse_many(self, text: str) -> List[OrbitalElementSet]:
        """
        Parse a multi-satellite TLE listing (two- or three-line format).

        Malformed entries are skipped with a warning.
        """
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        results = []
        name = ""
        i = 0
        while i < len(lines):
            line = lines[i]
            if line.startswith("1 ") and i + 1 < len(lines) and lines[i + 1].startswith("2 "):
                try:
                    results.append(self.parse_lines(line, lines[i + 1], name))
                except FormatError as e:
                    logger.warning(f"Skipping malformed TLE entry: {e}")
                name = ""
                i += 2
                continue
            name = line[2:].strip() if line.startswith("0 ") else line
            i += 1
        return results
