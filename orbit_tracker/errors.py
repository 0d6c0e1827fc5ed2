"""
Error Types

Every failure the tracking engine can report derives from OrbitTrackerError:

- FormatError: malformed element-set text. Recoverable by falling back to
  another element set.
- PropagationError: SGP4 reported decay or numerical breakdown. Terminal for
  the element set until it is replaced.
- RetrievalError: the remote element-set/pass service is unavailable or
  rejected the request. Recoverable via bundled fallback data.
"""

from datetime import datetime
from typing import Any, Dict, Optional


class OrbitTrackerError(Exception):
    """Base class for all orbit_tracker errors."""


class FormatError(OrbitTrackerError, ValueError):
    """Element-set text could not be decomposed into two valid TLE lines."""


class PropagationError(OrbitTrackerError, RuntimeError):
    """SGP4 could not produce a valid state for the requested time."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        catalog_id: Optional[int] = None,
        timestamp: Optional[datetime] = None,
        diagnostics: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.catalog_id = catalog_id
        self.timestamp = timestamp
        self.diagnostics = diagnostics or {}


class RetrievalError(OrbitTrackerError, RuntimeError):
    """The external element-set or pass-prediction service failed."""

    def __init__(
        self,
        message: str,
        catalog_id: Optional[int] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.catalog_id = catalog_id
        self.status_code = status_code
