"""
Live Satellite Tracking

Maintains the set of satellites under live observation and decides when each
one needs a new position, new trajectory segments or a new element set.

Per satellite:
- UNRESOLVED until an element set is retrieved (or a bundled fallback set is
  substituted after a retrieval failure), then RESOLVED.
- RESOLVED satellites get a new position on every tick (1 s by default).
- Past/future trajectory segments are rebuilt only when the last rebuild is
  older than the trajectory interval (30 s by default) or the element set was
  replaced since.
- Element sets are re-fetched on their own schedule (hourly by default) and
  replace the previous set outright.
- A PropagationError marks the satellite FAILED: its marker stops moving
  until a new element set arrives. Other satellites are unaffected.

The session only emits plain data (PositionFix, TrajectorySegment) to a
TrackingObserver; binding that data to a map is the observer's business.
"""

import asyncio
import itertools
import time
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from config import FALLBACK_TLES, POPULAR_SATELLITES, TRACK_COLORS, TrackerConfig
from logging_config import get_struct_logger
from orbit_tracker.errors import FormatError, PropagationError, RetrievalError
from orbit_tracker.frames import to_geodetic
from orbit_tracker.models import OrbitalElementSet, PositionFix, SegmentKind, TrajectorySegment
from orbit_tracker.propagator import SGP4Propagator
from orbit_tracker.timescale import as_utc, utcnow
from orbit_tracker.tle_parser import TLEParser
from orbit_tracker.trajectory import future_segment, past_segment

logger = get_struct_logger(__name__)


class TrackingStatus(str, Enum):
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    FAILED = "failed"


class TrackingObserver:
    """
    Receiver for everything the session produces.

    Subclass and override what you need; every hook does nothing by default.
    """

    def on_position(self, fix: PositionFix) -> None:
        pass

    def on_trajectory(self, catalog_id: int, past: TrajectorySegment,
                      future: TrajectorySegment) -> None:
        pass

    def on_failure(self, catalog_id: int, error: PropagationError) -> None:
        pass

    def on_release(self, catalog_id: int) -> None:
        pass

    def on_advisory(self, message: str) -> None:
        pass


class TrackedSatellite:
    """All state the session keeps for one satellite."""

    def __init__(self, catalog_id: int, name: str, color: str):
        self.catalog_id = catalog_id
        self.name = name
        self.color = color
        self.status = TrackingStatus.UNRESOLVED
        self.elements: Optional[OrbitalElementSet] = None
        self.elements_source: Optional[str] = None
        self.elements_updated_at: Optional[datetime] = None
        self.last_fix: Optional[PositionFix] = None
        self.past_segment: Optional[TrajectorySegment] = None
        self.future_segment: Optional[TrajectorySegment] = None
        self.last_trajectory_refresh: Optional[datetime] = None
        self.last_error: Optional[Exception] = None
        self._trajectory_stale = True
        self.log = logger.bind(catalog_id=catalog_id)

    def replace_elements(self, elements: OrbitalElementSet, source: str,
                         at_time: Optional[datetime] = None) -> None:
        """Swap in a new element set; takes effect on the next tick."""
        self.elements = elements
        self.elements_source = source
        self.elements_updated_at = at_time or utcnow()
        self.status = TrackingStatus.RESOLVED
        self.last_error = None
        self._trajectory_stale = True

    def trajectory_due(self, now: datetime, interval_seconds: float) -> bool:
        if self._trajectory_stale or self.last_trajectory_refresh is None:
            return True
        return (now - self.last_trajectory_refresh).total_seconds() >= interval_seconds

    def set_trajectory(self, past: TrajectorySegment, future: TrajectorySegment,
                       at_time: datetime) -> None:
        self.past_segment, self.future_segment = past, future
        self.last_trajectory_refresh = at_time
        self._trajectory_stale = False

    def mark_failed(self, error: PropagationError) -> None:
        self.status = TrackingStatus.FAILED
        self.last_error = error

    def release(self) -> None:
        """Drop every derived artifact."""
        self.last_fix = None
        self.past_segment = None
        self.future_segment = None
        self.last_trajectory_refresh = None
        self._trajectory_stale = True

    def snapshot(self) -> Dict:
        point = self.last_fix.point if self.last_fix else None
        return {
            "catalog_id": self.catalog_id,
            "name": self.name,
            "color": self.color,
            "status": self.status.value,
            "elements_source": self.elements_source,
            "epoch": self.elements.epoch.isoformat() if self.elements else None,
            "latitude": point.latitude_deg if point else None,
            "longitude": point.longitude_deg if point else None,
            "altitude_km": point.altitude_km if point else None,
            "speed_kms": self.last_fix.speed_kms if self.last_fix else None,
            "error": str(self.last_error) if self.last_error else None,
        }

    def __repr__(self) -> str:
        return f"TrackedSatellite({self.catalog_id}, {self.name!r}, {self.status.value})"


class LiveTrackingSession:
    """
    Owns every TrackedSatellite and the two periodic triggers driving them.

    Args:
        client: Element-set source with fetch_element_set(catalog_id) -> str
            (e.g. N2YOClient); None means always use fallback data
        observer: Receiver for positions, trajectories and advisories
        config: Intervals and trajectory spans
        fallback_tles: Bundled element sets keyed by catalog id
        propagator: SGP4 propagator used for positions and trajectories
        clock: Returns the current UTC time
        sleep: Blocking sleep used between sequential synchronous retrievals
    """

    def __init__(
        self,
        client=None,
        observer: Optional[TrackingObserver] = None,
        config: Optional[TrackerConfig] = None,
        fallback_tles: Optional[Dict[int, Dict]] = None,
        propagator: Optional[SGP4Propagator] = None,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or TrackerConfig.from_env()
        self.client = client
        self.observer = observer or TrackingObserver()
        self.fallback_tles = FALLBACK_TLES if fallback_tles is None else fallback_tles
        self.parser = TLEParser()
        self.propagator = propagator or SGP4Propagator()
        self._clock = clock
        self._sleep = sleep
        self._satellites: Dict[int, TrackedSatellite] = {}
        self._colors = itertools.cycle(TRACK_COLORS)
        self._tasks: List[asyncio.Task] = []
        self._pending: Dict[int, asyncio.Task] = {}

    # -- selection -----------------------------------------------------

    @property
    def catalog_ids(self) -> List[int]:
        return list(self._satellites)

    def __contains__(self, catalog_id: int) -> bool:
        return catalog_id in self._satellites

    def __len__(self) -> int:
        return len(self._satellites)

    def get(self, catalog_id: int) -> Optional[TrackedSatellite]:
        return self._satellites.get(catalog_id)

    def select(self, catalog_id: int, name: Optional[str] = None) -> TrackedSatellite:
        """
        Start tracking a satellite. Selecting a tracked satellite again is a no-op.

        When the session is running the element set is fetched right away;
        otherwise it is resolved by the next refresh_element_sets().
        """
        entry = self._satellites.get(catalog_id)
        if entry is not None:
            return entry

        fallback = self.fallback_tles.get(catalog_id, {})
        name = name or POPULAR_SATELLITES.get(catalog_id) or fallback.get("name") or f"SAT_{catalog_id}"
        entry = TrackedSatellite(catalog_id, name, next(self._colors))
        self._satellites[catalog_id] = entry
        entry.log.info("satellite_selected", name=name, color=entry.color)

        if self.running:
            self._pending[catalog_id] = asyncio.get_running_loop().create_task(
                self._resolve_async(entry)
            )
        return entry

    def deselect(self, catalog_id: int) -> bool:
        """
        Stop tracking a satellite and release its marker and trajectories.

        Returns:
            False if the satellite was not tracked
        """
        entry = self._satellites.pop(catalog_id, None)
        if entry is None:
            return False

        task = self._pending.pop(catalog_id, None)
        if task is not None:
            task.cancel()

        entry.release()
        self.observer.on_release(catalog_id)
        entry.log.info("satellite_deselected")
        return True

    def _is_current(self, entry: TrackedSatellite) -> bool:
        return self._satellites.get(entry.catalog_id) is entry

    # -- element sets --------------------------------------------------

    def load_elements(self, catalog_id: int, text: str, source: str = "manual") -> OrbitalElementSet:
        """
        Parse text and install it as the element set of a tracked satellite.

        Raises:
            KeyError: satellite is not tracked
            FormatError: text is not a usable element set, or describes another satellite
        """
        entry = self._satellites[catalog_id]
        elements = self.parser.parse(text, entry.name)
        if elements.catalog_id != catalog_id:
            raise FormatError(f"Element set is for {elements.catalog_id}, expected {catalog_id}")
        entry.replace_elements(elements, source, self._clock())
        return elements

    def _fetch(self, catalog_id: int) -> Tuple[Optional[str], Optional[Exception]]:
        if self.client is None:
            return None, RetrievalError("No element-set source configured", catalog_id=catalog_id)
        try:
            return self.client.fetch_element_set(catalog_id), None
        except RetrievalError as e:
            return None, e

    def _apply_retrieval(self, entry: TrackedSatellite, text: Optional[str],
                         error: Optional[Exception]) -> bool:
        """
        Install a retrieved element set, or fall back to bundled data.

        Returns:
            True if live data was installed
        """
        if text is not None:
            try:
                elements = self.parser.parse(text, entry.name)
            except FormatError as e:
                error = e
            else:
                if elements.catalog_id != entry.catalog_id:
                    error = FormatError(
                        f"Received elements for {elements.catalog_id}, expected {entry.catalog_id}"
                    )
                else:
                    entry.replace_elements(elements, "live", self._clock())
                    entry.log.info("elements_updated", epoch=elements.epoch.isoformat())
                    return True

        entry.log.warning("element_retrieval_failed", error=str(error))

        # Only fall back when there is nothing better; a live set stays until replaced
        if entry.elements is None:
            fallback = self.fallback_tles.get(entry.catalog_id)
            if fallback is None:
                entry.log.error("no_fallback_elements")
                return False
            try:
                elements = self.parser.parse_lines(
                    fallback["line1"], fallback["line2"], fallback.get("name", entry.name)
                )
            except FormatError as e:
                entry.log.error("fallback_elements_invalid", error=str(e))
                return False
            entry.replace_elements(elements, "fallback", self._clock())
            entry.log.info("fallback_elements_used", epoch=elements.epoch.isoformat())
        return False

    def _advise(self, failed: List[int]) -> None:
        unresolved = [cid for cid in failed
                      if cid in self._satellites and self._satellites[cid].elements is None]
        message = (
            "Live orbital data is unavailable for "
            + ", ".join(str(cid) for cid in failed)
            + "; showing bundled or previously retrieved element sets"
        )
        if unresolved:
            message += ". No data at all for " + ", ".join(str(cid) for cid in unresolved)
        self.observer.on_advisory(message)

    def _refresh_targets(self, catalog_ids: Optional[Iterable[int]]) -> List[int]:
        if catalog_ids is None:
            return list(self._satellites)
        return [cid for cid in catalog_ids if cid in self._satellites]

    def refresh_element_sets(self, catalog_ids: Optional[Iterable[int]] = None) -> List[int]:
        """
        Fetch fresh element sets one satellite at a time.

        Args:
            catalog_ids: Satellites to refresh (default: all tracked)

        Returns:
            Catalog ids whose retrieval failed
        """
        targets = self._refresh_targets(catalog_ids)
        failed = []
        for i, catalog_id in enumerate(targets):
            entry = self._satellites.get(catalog_id)
            if entry is None:
                continue
            text, error = self._fetch(catalog_id)
            if not self._apply_retrieval(entry, text, error):
                failed.append(catalog_id)
            # Small delay between requests to respect rate limits
            if i < len(targets) - 1:
                self._sleep(self.config.request_delay)

        if failed:
            self._advise(failed)
        return failed

    async def refresh_element_sets_async(self, catalog_ids: Optional[Iterable[int]] = None) -> List[int]:
        """Same as refresh_element_sets, with retrieval off the event loop."""
        loop = asyncio.get_running_loop()
        targets = self._refresh_targets(catalog_ids)
        failed = []
        for i, catalog_id in enumerate(targets):
            entry = self._satellites.get(catalog_id)
            if entry is None:
                continue
            text, error = await loop.run_in_executor(None, self._fetch, catalog_id)
            if self._is_current(entry) and not self._apply_retrieval(entry, text, error):
                failed.append(catalog_id)
            if i < len(targets) - 1:
                await asyncio.sleep(self.config.request_delay)

        if failed:
            self._advise(failed)
        return failed

    async def _resolve_async(self, entry: TrackedSatellite) -> None:
        try:
            loop = asyncio.get_running_loop()
            text, error = await loop.run_in_executor(None, self._fetch, entry.catalog_id)
            if self._is_current(entry) and not self._apply_retrieval(entry, text, error):
                self._advise([entry.catalog_id])
        finally:
            if self._pending.get(entry.catalog_id) is asyncio.current_task():
                del self._pending[entry.catalog_id]

    # -- per-tick recomputation ----------------------------------------

    def update(self, now: Optional[datetime] = None) -> List[PositionFix]:
        """
        Recompute positions (and trajectories when due) for all resolved satellites.

        Returns:
            PositionFix for every satellite updated on this tick
        """
        now = as_utc(now or self._clock())
        fixes = []
        for entry in list(self._satellites.values()):
            if not self._is_current(entry) or entry.status is not TrackingStatus.RESOLVED:
                continue
            try:
                fix = self._update_position(entry, now)
                if entry.trajectory_due(now, self.config.trajectory_interval):
                    self._update_trajectory(entry, now)
            except PropagationError as e:
                entry.mark_failed(e)
                entry.log.error("propagation_failed", code=e.code, error=str(e))
                self.observer.on_failure(entry.catalog_id, e)
                continue
            fixes.append(fix)
        return fixes

    def _update_position(self, entry: TrackedSatellite, now: datetime) -> PositionFix:
        state = self.propagator.propagate(entry.elements, now)
        fix = PositionFix(
            catalog_id=entry.catalog_id,
            point=to_geodetic(state.position_km, now),
            speed_kms=state.speed_kms,
        )
        entry.last_fix = fix
        self.observer.on_position(fix)
        return fix

    def _update_trajectory(self, entry: TrackedSatellite, now: datetime) -> None:
        step = self.config.step_seconds
        try:
            past = past_segment(entry.elements, now, self.config.past_minutes * 60.0,
                                step, self.propagator)
        except PropagationError as e:
            # Element set may not reach back that far; the future track is still valid
            entry.log.info("past_track_unavailable", error=str(e))
            past = TrajectorySegment(kind=SegmentKind.PAST, reference_time=now, step_seconds=step)
        future = future_segment(entry.elements, now, self.config.future_minutes * 60.0,
                                step, self.propagator)

        entry.set_trajectory(past, future, now)
        self.observer.on_trajectory(entry.catalog_id, past, future)
        entry.log.debug("trajectory_updated", past_points=len(past), future_points=len(future))

    def snapshot(self) -> List[Dict]:
        return [entry.snapshot() for entry in self._satellites.values()]

    # -- scheduling ----------------------------------------------------

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def start(self) -> None:
        """Start the position tick and element refresh tasks on the running loop."""
        if self._tasks:
            return
        loop = asyncio.get_running_loop()
        self._tasks = [
            loop.create_task(self._position_loop()),
            loop.create_task(self._refresh_loop()),
        ]
        logger.info(
            "session_started",
            position_interval=self.config.position_interval,
            trajectory_interval=self.config.trajectory_interval,
            tle_refresh_interval=self.config.tle_refresh_interval,
        )

    async def stop(self) -> None:
        """Cancel both timers and any in-flight resolution; wait until they are gone."""
        tasks = self._tasks + list(self._pending.values())
        self._tasks = []
        self._pending.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if tasks:
            logger.info("session_stopped")

    async def run(self, duration: Optional[float] = None) -> None:
        """Run until cancelled, or for duration seconds."""
        self.start()
        try:
            if duration is None:
                await asyncio.gather(*self._tasks)
            else:
                await asyncio.sleep(duration)
        finally:
            await self.stop()

    async def _position_loop(self) -> None:
        while True:
            try:
                self.update()
            except Exception:
                logger.exception("position_tick_failed")
            await asyncio.sleep(self.config.position_interval)

    async def _refresh_loop(self) -> None:
        while True:
            try:
                await self.refresh_element_sets_async()
            except Exception:
                logger.exception("element_refresh_failed")
            await asyncio.sleep(self.config.tle_refresh_interval)
