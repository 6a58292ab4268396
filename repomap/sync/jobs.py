"""JobQueue — fire-and-forget background jobs run in submission order."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Callable

logger = logging.getLogger(__name__)

_STOP = object()


class JobQueue:
    """Run jobs on a single daemon worker thread, one at a time.

    The worker is started on the first :meth:`schedule`. A job that raises
    is logged and the worker moves on to the next one.

    Parameters
    ----------
    name:
        Name of the worker thread.
    """

    def __init__(self, name: str = "repomap-jobs") -> None:
        self._name = name
        self._queue: queue.Queue[Any] = queue.Queue()
        self._lock = threading.Lock()
        self._worker: threading.Thread | None = None
        self._closed = False

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._worker is not None and self._worker.is_alive()

    def schedule(self, job: Callable[[], Any], name: str = "") -> bool:
        """Queue *job* to run in the background.

        Returns *False* if the queue has been shut down; the job is dropped.
        """
        if not callable(job):
            raise TypeError("job must be callable")
        name = name or getattr(job, "__name__", "job")
        with self._lock:
            if self._closed:
                logger.warning("Dropping job %s: queue %s is shut down", name, self._name)
                return False
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(
                    target=self._run, name=self._name, daemon=True,
                )
                self._worker.start()
            self._queue.put((job, name))
        return True

    def join(self, timeout: float | None = None) -> bool:
        """Wait until every queued job has run.

        Returns *False* if *timeout* expired first.
        """
        done = threading.Event()
        with self._lock:
            worker = self._worker
            if worker is None:
                return True
            closed = self._closed
            if not closed:
                self._queue.put((done.set, "join"))
        if closed:
            worker.join(timeout)
            return not worker.is_alive()
        return done.wait(timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs; optionally wait for queued ones to finish."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            worker = self._worker
            if worker is not None:
                self._queue.put(_STOP)
        if wait and worker is not None and worker is not threading.current_thread():
            worker.join()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                job, name = item
                logger.debug("Running job %s", name)
                try:
                    job()
                except Exception:
                    logger.error("Background job %s failed", name, exc_info=True)
            finally:
                self._queue.task_done()
