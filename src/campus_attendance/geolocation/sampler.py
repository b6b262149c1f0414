from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from ..core.constants import (
    REFINE_ACCURACY_THRESHOLD_M,
    REFINE_TIMEOUT_MS,
    SINGLE_SHOT_TIMEOUT_MS,
    WATCH_TARGET_ACCURACY_M,
    WATCH_TIMEOUT_MS,
)
from ..core.exceptions import GeolocationError, LocationTimeout, LocationUnavailable, PermissionDenied

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PositionOptions:
    high_accuracy: bool = True
    timeout_ms: int = SINGLE_SHOT_TIMEOUT_MS
    max_cache_age_ms: int = 0


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float
    accuracy_meters: float
    captured_at_epoch_ms: int


FIRST_FIX = PositionOptions(high_accuracy=True, timeout_ms=SINGLE_SHOT_TIMEOUT_MS, max_cache_age_ms=0)
REFINED_FIX = PositionOptions(high_accuracy=True, timeout_ms=REFINE_TIMEOUT_MS, max_cache_age_ms=0)
WATCH_UPDATES = PositionOptions(high_accuracy=True, timeout_ms=WATCH_TIMEOUT_MS, max_cache_age_ms=0)

# W3C GeolocationPositionError codes.
PERMISSION_DENIED_CODE = 1
POSITION_UNAVAILABLE_CODE = 2
TIMEOUT_CODE = 3


def error_for_code(code: int) -> GeolocationError:
    """Map a browser-style error code to the matching exception."""
    if code == PERMISSION_DENIED_CODE:
        return PermissionDenied("位置存取被拒絕，請允許位置權限並重試")
    if code == TIMEOUT_CODE:
        return LocationTimeout("定位超時，請移動到空曠地區後重試")
    if code == POSITION_UNAVAILABLE_CODE:
        return LocationUnavailable("位置資訊不可用，請確認GPS已開啟")
    return LocationUnavailable("無法獲取位置資訊")


class PositionProvider(Protocol):
    """Device location sensor.

    ``get_current_position`` blocks until a fix arrives or raises a
    GeolocationError subclass. Watch callbacks may run on any thread.
    """

    def get_current_position(self, options: PositionOptions) -> Position:
        raise NotImplementedError

    def watch_position(
        self,
        options: PositionOptions,
        on_position: Callable[[Position], None],
        on_error: Callable[[GeolocationError], None],
    ) -> int:
        raise NotImplementedError

    def clear_watch(self, watch_id: int) -> None:
        raise NotImplementedError


class PositionWatch:
    """Continuous sampling that keeps only the most accurate fix.

    Stops on its own once a fix reaches the target accuracy; use as a context
    manager so the provider subscription is always released.
    """

    def __init__(
        self,
        provider: PositionProvider,
        options: PositionOptions = WATCH_UPDATES,
        *,
        target_accuracy_m: float = WATCH_TARGET_ACCURACY_M,
    ):
        self._provider = provider
        self._options = options
        self._target = float(target_accuracy_m)
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._wake = threading.Event()
        self._watch_id: Optional[int] = None
        self._started = False
        self._released = False
        self._best: Optional[Position] = None
        self._last_error: Optional[GeolocationError] = None

    @property
    def best(self) -> Optional[Position]:
        with self._lock:
            return self._best

    @property
    def last_error(self) -> Optional[GeolocationError]:
        with self._lock:
            return self._last_error

    @property
    def active(self) -> bool:
        with self._lock:
            return self._started and not self._released

    @property
    def reached_target(self) -> bool:
        best = self.best
        return best is not None and best.accuracy_meters <= self._target

    def start(self) -> "PositionWatch":
        with self._lock:
            if self._started:
                raise RuntimeError("watch already started")
            self._started = True

        watch_id = self._provider.watch_position(self._options, self._on_position, self._on_error)
        with self._lock:
            self._watch_id = watch_id
        # Target reached (or cancel requested) while subscribing.
        if self._done.is_set():
            self._release()
        return self

    def wait(self, timeout_s: Optional[float] = None) -> Optional[Position]:
        """Block until the target accuracy is reached, the watch is cancelled, or timeout.

        An error reported before any fix arrived wakes the waiter and is raised.
        Errors after the first fix are kept in ``last_error`` and the best fix is
        returned.
        """
        self._wake.wait(timeout_s)
        with self._lock:
            best, error = self._best, self._last_error
        if best is None and error is not None:
            raise error
        return best

    def cancel(self) -> None:
        self._done.set()
        self._wake.set()
        self._release()

    def _on_position(self, position: Position) -> None:
        with self._lock:
            if self._released:
                return
            if self._best is None or position.accuracy_meters < self._best.accuracy_meters:
                self._best = position
                logger.debug("Watch accuracy improved to %.1f m", position.accuracy_meters)
            reached = self._best.accuracy_meters <= self._target

        if reached:
            self._done.set()
            self._wake.set()
            self._release()

    def _on_error(self, error: GeolocationError) -> None:
        with self._lock:
            self._last_error = error
            no_fix = self._best is None
        if no_fix:
            self._wake.set()
        logger.warning("Position watch error: %s", error)

    def _release(self) -> None:
        with self._lock:
            if self._released or self._watch_id is None:
                return
            self._released = True
            watch_id = self._watch_id
        self._provider.clear_watch(watch_id)

    def __enter__(self) -> "PositionWatch":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()


class GeolocationSampler:
    def __init__(self, provider: PositionProvider, *, refine_threshold_m: float = REFINE_ACCURACY_THRESHOLD_M):
        self._provider = provider
        self._refine_threshold = float(refine_threshold_m)

    def acquire(self, options: PositionOptions = FIRST_FIX) -> Position:
        return self._provider.get_current_position(options)

    def acquire_refined(self) -> Position:
        """One fix, plus a second attempt when the first is coarser than the threshold.

        The smaller accuracy radius wins; a failed second attempt falls back to
        the first fix.
        """
        first = self.acquire(FIRST_FIX)
        if first.accuracy_meters <= self._refine_threshold:
            return first

        logger.info("First fix accuracy %.1f m, retrying for a better fix", first.accuracy_meters)
        try:
            second = self.acquire(REFINED_FIX)
        except GeolocationError as e:
            logger.info("Second fix failed (%s), keeping first fix", e)
            return first

        return second if second.accuracy_meters < first.accuracy_meters else first

    def watch(self, options: PositionOptions = WATCH_UPDATES) -> PositionWatch:
        """Continuous watch; start it with ``with sampler.watch() as w:``."""
        return PositionWatch(self._provider, options)
