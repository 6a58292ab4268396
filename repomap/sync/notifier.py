"""ChangeNotifier — asynchronous fan-out of mapping change events."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Callable

from repomap.sync.jobs import JobQueue

if TYPE_CHECKING:
    from repomap.project.mapping import Mapping

logger = logging.getLogger(__name__)

MappingChangeListener = Callable[["Mapping"], None]


class ChangeNotifier:
    """Dispatch "mapping changed" events to registered listeners.

    Each event becomes one background job that walks a snapshot of the
    listener set, so listeners may register or unregister while a
    notification is running and a slow listener never blocks the caller.

    Parameters
    ----------
    jobs:
        Queue the notification jobs run on.
    """

    def __init__(self, jobs: JobQueue | None = None) -> None:
        self._jobs = jobs if jobs is not None else JobQueue("repomap-notify")
        self._lock = threading.Lock()
        self._listeners: dict[MappingChangeListener, None] = {}

    @property
    def jobs(self) -> JobQueue:
        return self._jobs

    def add_listener(self, listener: MappingChangeListener) -> None:
        """Register *listener*; a no-op if it is already registered."""
        if listener is None:
            raise TypeError("listener must not be None")
        if not callable(listener):
            raise TypeError("listener must be callable")
        with self._lock:
            self._listeners[listener] = None

    def remove_listener(self, listener: MappingChangeListener) -> None:
        with self._lock:
            self._listeners.pop(listener, None)

    def listeners(self) -> list[MappingChangeListener]:
        """Return a copy of the registered listeners, safe to iterate."""
        with self._lock:
            return list(self._listeners)

    def fire_changed(self, mapping: Mapping) -> None:
        """Schedule notification of every listener about *mapping*."""

        def notify() -> None:
            for listener in self.listeners():
                try:
                    listener(mapping)
                except Exception:
                    logger.error(
                        "Mapping change listener %r failed for %r",
                        listener, mapping, exc_info=True,
                    )

        self._jobs.schedule(notify, f"mapping changed: {mapping!r}")
