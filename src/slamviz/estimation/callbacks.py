"""Registration points through which the SLAM pipeline notifies observers.

The front-end and back-end call the slots on their own threads; observers
must return quickly.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from typing import Generic, TypeVar

from .types import EstimationFrame, SubMap

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CallbackSlot(Generic[T]):
    """Thread-safe list of callbacks invoked with a single argument."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._callbacks: list[Callable[[T], None]] = []
        self._lock = threading.Lock()

    def add(self, callback: Callable[[T], None]) -> None:
        with self._lock:
            self._callbacks.append(callback)
        logger.debug("Registered callback on %s", self._name)

    def remove(self, callback: Callable[[T], None]) -> bool:
        """Remove a previously added callback.

        Returns:
            True if the callback was registered
        """
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                return False
        logger.debug("Removed callback from %s", self._name)
        return True

    def clear(self) -> None:
        with self._lock:
            self._callbacks.clear()

    def __call__(self, value: T) -> None:
        # Snapshot so callbacks may add/remove themselves while being called
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback(value)

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)

    def __repr__(self) -> str:
        return f"CallbackSlot({self._name!r}, callbacks={len(self)})"


class OdometryEstimationCallbacks:
    """Front-end notifications."""

    on_new_frame: CallbackSlot[EstimationFrame] = CallbackSlot(
        "OdometryEstimationCallbacks.on_new_frame"
    )


class GlobalMappingCallbacks:
    """Back-end notifications.

    ``on_update_submaps`` receives the full ordered submap list; only the last
    element is new.
    """

    on_update_submaps: CallbackSlot[Sequence[SubMap]] = CallbackSlot(
        "GlobalMappingCallbacks.on_update_submaps"
    )
