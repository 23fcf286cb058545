"""
Best-effort location acquisition for clock-in/out.

Clocking in is an interactive action, so the service favours speed over
precision: a fresh cached fix is returned without touching the sensor, the
first sensor request is short and low-accuracy, and only on failure does a
second, slower request accept an older fix. Geofence radii are measured in
hundreds of meters to kilometers, so sub-meter accuracy buys nothing.

The sensor is whatever can produce a position: on the server it is the
position the device reported with the request (``ReportedPositionSensor``).
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional, Protocol

from core import config
from core.errors import LocationUnavailable, PermissionDenied
from utils.datetime_helpers import ensure_utc, utc_now
from utils.geofence import Coordinate

logger = logging.getLogger(__name__)


class LocationErrorCode(str, Enum):
    PERMISSION_DENIED = "PERMISSION_DENIED"
    POSITION_UNAVAILABLE = "POSITION_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"


class SensorError(Exception):
    def __init__(self, code: LocationErrorCode, message: str = ""):
        self.code = code
        super().__init__(message or code.value)


@dataclass(frozen=True)
class PositionRequest:
    timeout_seconds: float
    maximum_age_seconds: float
    high_accuracy: bool = False


@dataclass(frozen=True)
class LocationFix:
    coordinate: Coordinate
    captured_at: datetime
    accuracy_meters: Optional[float] = None


class LocationSensor(Protocol):
    async def current_position(self, request: PositionRequest) -> LocationFix: ...


FAST_REQUEST = PositionRequest(
    timeout_seconds=config.LOCATION_FAST_TIMEOUT_SECONDS,
    maximum_age_seconds=config.LOCATION_FAST_MAX_AGE_SECONDS,
    high_accuracy=False,
)
FALLBACK_REQUEST = PositionRequest(
    timeout_seconds=config.LOCATION_FALLBACK_TIMEOUT_SECONDS,
    maximum_age_seconds=config.LOCATION_FALLBACK_MAX_AGE_SECONDS,
    high_accuracy=False,
)


class LocationCache:
    """Last acquired fix; share one instance between services for the same device."""

    def __init__(self):
        self._fix: Optional[LocationFix] = None

    def get(self) -> Optional[LocationFix]:
        return self._fix

    def put(self, fix: LocationFix) -> None:
        self._fix = fix

    def clear(self) -> None:
        self._fix = None


class LocationAcquisitionService:
    def __init__(
        self,
        sensor: LocationSensor,
        *,
        cache: Optional[LocationCache] = None,
        freshness_seconds: float = config.LOCATION_CACHE_FRESHNESS_SECONDS,
        fast_request: PositionRequest = FAST_REQUEST,
        fallback_request: PositionRequest = FALLBACK_REQUEST,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.sensor = sensor
        self.cache = cache if cache is not None else LocationCache()
        self.freshness = timedelta(seconds=freshness_seconds)
        self.attempts = (fast_request, fallback_request)
        self.clock = clock

    def _fresh_cached(self) -> Optional[LocationFix]:
        fix = self.cache.get()
        if fix is None:
            return None
        if self.clock() - ensure_utc(fix.captured_at) < self.freshness:
            return fix
        return None

    async def acquire(self) -> Coordinate:
        """
        Return the caller's current coordinate.

        Raises PermissionDenied as soon as the sensor refuses access, and
        LocationUnavailable once both attempts have failed.
        """
        cached = self._fresh_cached()
        if cached is not None:
            logger.debug("[LOCATION] Using cached fix from %s", cached.captured_at)
            return cached.coordinate

        last_error: Optional[str] = None
        for attempt, request in enumerate(self.attempts, start=1):
            try:
                fix = await asyncio.wait_for(
                    self.sensor.current_position(request),
                    timeout=request.timeout_seconds,
                )
            except asyncio.TimeoutError:
                last_error = f"timed out after {request.timeout_seconds:g}s"
            except SensorError as e:
                if e.code == LocationErrorCode.PERMISSION_DENIED:
                    logger.info("[LOCATION] Sensor access denied")
                    raise PermissionDenied() from e
                last_error = str(e)
            else:
                self.cache.put(fix)
                if attempt > 1:
                    logger.info("[LOCATION] Fix obtained on fallback attempt")
                return fix.coordinate

            logger.info("[LOCATION] Attempt %d failed: %s", attempt, last_error)

        raise LocationUnavailable(
            f"Your location could not be determined ({last_error}). Please try again."
        )


class ReportedPositionSensor:
    """
    Sensor over a position the device reported with the request.

    A report older than the request's maximum age is refused as a timeout so
    that only the looser fallback attempt accepts a stale device fix.
    """

    def __init__(
        self,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        *,
        accuracy_meters: Optional[float] = None,
        captured_at: Optional[datetime] = None,
        error: Optional[LocationErrorCode] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.latitude = latitude
        self.longitude = longitude
        self.accuracy_meters = accuracy_meters
        self.captured_at = ensure_utc(captured_at) if captured_at else None
        self.error = error
        self.clock = clock

    async def current_position(self, request: PositionRequest) -> LocationFix:
        if self.error is not None:
            raise SensorError(self.error, f"device reported {self.error.value}")
        if self.latitude is None or self.longitude is None:
            raise SensorError(LocationErrorCode.POSITION_UNAVAILABLE, "no position reported")

        now = self.clock()
        captured_at = self.captured_at or now
        age = (now - captured_at).total_seconds()
        if age > request.maximum_age_seconds:
            raise SensorError(
                LocationErrorCode.TIMEOUT,
                f"reported fix is {age:.0f}s old (max {request.maximum_age_seconds:g}s)",
            )

        return LocationFix(
            coordinate=Coordinate(self.latitude, self.longitude),
            captured_at=captured_at,
            accuracy_meters=self.accuracy_meters,
        )
