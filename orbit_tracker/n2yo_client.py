"""
N2YO REST Client

Thin wrapper over the N2YO.com REST API v1 used for element-set retrieval and
visual-pass prediction. Register at https://www.n2yo.com/login/ and set
N2YO_API_KEY to enable it.

Every failure (missing key, transport error, HTTP error status, malformed
payload) is raised as RetrievalError so callers can fall back to bundled
element sets.
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel, ValidationError

from config import TrackerConfig
from orbit_tracker.errors import RetrievalError
from orbit_tracker.models import PassWindow

logger = logging.getLogger(__name__)

MAX_POSITION_SECONDS = 300
MAX_PASS_DAYS = 10


class TLERecord(BaseModel):
    """Element-set payload returned by the /tle endpoint."""

    catalog_id: int
    name: str
    tle: str


class N2YOClient:
    """
    Client for the N2YO satellite endpoints.

    Args:
        config: Tracker configuration (API key, base URL, timeout)
        session: Optional requests session to reuse connections
    """

    def __init__(self, config: Optional[TrackerConfig] = None,
                 session: Optional[requests.Session] = None):
        self.config = config or TrackerConfig.from_env()
        self.session = session or requests.Session()

    def is_configured(self) -> bool:
        """True when an API key is available."""
        return self.config.has_api_key

    def _get(self, path: str, catalog_id: Optional[int] = None) -> Dict[str, Any]:
        if not self.is_configured():
            raise RetrievalError(
                "N2YO API key not configured. Set N2YO_API_KEY in the environment.",
                catalog_id=catalog_id,
            )

        url = f"{self.config.api_base}/{path}"
        try:
            response = self.session.get(
                url,
                params={"apiKey": self.config.api_key},
                timeout=self.config.request_timeout,
            )
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise RetrievalError(
                f"N2YO API error {status} for {path}", catalog_id=catalog_id, status_code=status
            ) from e
        except requests.RequestException as e:
            raise RetrievalError(
                f"N2YO request failed for {path}: {e}", catalog_id=catalog_id
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise RetrievalError(
                f"N2YO returned malformed JSON for {path}", catalog_id=catalog_id
            ) from e

        if not isinstance(data, dict):
            raise RetrievalError(f"Unexpected N2YO payload for {path}", catalog_id=catalog_id)
        if "error" in data:
            raise RetrievalError(f"N2YO rejected request: {data['error']}", catalog_id=catalog_id)

        return data

    def fetch_tle(self, catalog_id: int) -> TLERecord:
        """
        Fetch TLE (Two-Line Element) data for a satellite.

        Args:
            catalog_id: NORAD catalog number (e.g., 25544 for ISS)

        Returns:
            TLERecord with the satellite name and raw TLE text
        """
        data = self._get(f"tle/{catalog_id}", catalog_id)
        info = data.get("info")
        if not isinstance(info, dict):
            info = {}
        tle = data.get("tle")
        if not isinstance(tle, str) or not tle.strip():
            raise RetrievalError(f"No TLE available for satellite {catalog_id}", catalog_id=catalog_id)

        logger.debug(f"Fetched TLE for {catalog_id} ({info.get('transactionscount')} transactions)")
        try:
            return TLERecord(
                catalog_id=info.get("satid", catalog_id),
                name=info.get("satname") or f"SAT_{catalog_id}",
                tle=tle.replace("\r\n", "\n"),
            )
        except ValidationError as e:
            raise RetrievalError(
                f"Malformed TLE payload for satellite {catalog_id}: {e}", catalog_id=catalog_id
            ) from e

    def fetch_element_set(self, catalog_id: int) -> str:
        """Raw two-line text for a satellite."""
        return self.fetch_tle(catalog_id).tle

    def fetch_positions(
        self,
        catalog_id: int,
        observer_lat: float = 0.0,
        observer_lng: float = 0.0,
        observer_alt: float = 0.0,
        seconds: int = 1,
    ) -> List[Dict[str, Any]]:
        """
        Fetch server-side predicted positions (one per second).

        Args:
            seconds: Number of seconds to predict (1..300)
        """
        if not 1 <= seconds <= MAX_POSITION_SECONDS:
            raise ValueError(f"seconds must be between 1 and {MAX_POSITION_SECONDS}")

        data = self._get(
            f"positions/{catalog_id}/{observer_lat}/{observer_lng}/{observer_alt}/{seconds}",
            catalog_id,
        )
        return list(data.get("positions") or [])

    def fetch_passes(
        self,
        catalog_id: int,
        observer_lat: float,
        observer_lng: float,
        observer_alt: float = 0.0,
        days: int = 10,
        min_visibility: int = 1,
    ) -> List[PassWindow]:
        """
        Get visual passes (when satellite will be visible).

        Args:
            catalog_id: NORAD catalog number
            observer_lat: Observer latitude (-90..90)
            observer_lng: Observer longitude (-180..180)
            observer_alt: Observer altitude in meters
            days: Number of days to predict (max 10)
            min_visibility: Minimum seconds the pass must be visible

        Returns:
            List of PassWindow, in the order returned by the service
        """
        if not -90.0 <= observer_lat <= 90.0:
            raise ValueError("Observer latitude must be within [-90, 90]")
        if not -180.0 <= observer_lng <= 180.0:
            raise ValueError("Observer longitude must be within [-180, 180]")
        if not 1 <= days <= MAX_PASS_DAYS:
            raise ValueError(f"days must be between 1 and {MAX_PASS_DAYS}")
        if min_visibility < 1:
            raise ValueError("min_visibility must be at least 1 second")

        data = self._get(
            f"visualpasses/{catalog_id}/{observer_lat}/{observer_lng}/"
            f"{observer_alt}/{days}/{min_visibility}",
            catalog_id,
        )

        try:
            return [PassWindow.model_validate(p) for p in data.get("passes") or []]
        except ValidationError as e:
            raise RetrievalError(
                f"Malformed pass data for satellite {catalog_id}: {e}", catalog_id=catalog_id
            ) from e
