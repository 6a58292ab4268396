"""Tests for the background job queue and the mapping change notifier."""

from __future__ import annotations

import threading

import pytest

from repomap.project.mapping import Mapping
from repomap.sync.jobs import JobQueue
from repomap.sync.notifier import ChangeNotifier


@pytest.fixture
def jobs():
    queue = JobQueue("test-jobs")
    yield queue
    queue.shutdown()


# ---------------------------------------------------------------------------
# JobQueue
# ---------------------------------------------------------------------------


class TestJobQueue:
    def test_runs_in_order(self, jobs: JobQueue):
        order: list[int] = []
        for i in range(5):
            jobs.schedule(lambda i=i: order.append(i))
        assert jobs.join(timeout=5)
        assert order == [0, 1, 2, 3, 4]

    def test_runs_off_caller_thread(self, jobs: JobQueue):
        threads: list[threading.Thread] = []
        jobs.schedule(lambda: threads.append(threading.current_thread()))
        assert jobs.join(timeout=5)
        assert threads[0] is not threading.current_thread()
        assert threads[0].name == "test-jobs"

    def test_failing_job_does_not_stop_worker(self, jobs: JobQueue):
        ran: list[str] = []

        def broken() -> None:
            raise RuntimeError("boom")

        jobs.schedule(broken, "broken")
        jobs.schedule(lambda: ran.append("after"))
        assert jobs.join(timeout=5)
        assert ran == ["after"]
        assert jobs.is_running

    def test_join_without_worker(self):
        assert JobQueue().join(timeout=0.1)

    def test_worker_started_lazily(self, jobs: JobQueue):
        assert not jobs.is_running
        jobs.schedule(lambda: None)
        assert jobs.is_running

    def test_rejects_non_callable(self, jobs: JobQueue):
        with pytest.raises(TypeError):
            jobs.schedule("not a job")  # type: ignore[arg-type]

    def test_shutdown_finishes_queued_jobs(self):
        queue = JobQueue()
        ran: list[int] = []
        queue.schedule(lambda: ran.append(1))
        queue.schedule(lambda: ran.append(2))
        queue.shutdown(wait=True)
        assert ran == [1, 2]
        assert not queue.is_running

    def test_jobs_dropped_after_shutdown(self):
        queue = JobQueue()
        ran: list[int] = []
        queue.schedule(lambda: ran.append(1))
        queue.shutdown()
        assert queue.schedule(lambda: ran.append(2)) is False
        assert queue.join(timeout=5)
        assert ran == [1]

    def test_join_after_shutdown_without_wait(self):
        queue = JobQueue()
        queue.schedule(lambda: None)
        queue.shutdown(wait=False)
        assert queue.join(timeout=5)
        assert not queue.is_running

    def test_shutdown_twice(self):
        queue = JobQueue()
        queue.shutdown()
        queue.shutdown()


# ---------------------------------------------------------------------------
# ChangeNotifier
# ---------------------------------------------------------------------------


class TestChangeNotifier:
    def test_listeners_notified(self, jobs: JobQueue):
        notifier = ChangeNotifier(jobs)
        seen: list[Mapping] = []
        notifier.add_listener(seen.append)
        mapping = Mapping("", ".git")
        notifier.fire_changed(mapping)
        assert jobs.join(timeout=5)
        assert seen == [mapping]

    def test_duplicate_registration(self, jobs: JobQueue):
        notifier = ChangeNotifier(jobs)
        seen: list[Mapping] = []
        notifier.add_listener(seen.append)
        notifier.add_listener(seen.append)
        assert len(notifier.listeners()) == 1
        notifier.fire_changed(Mapping("", ".git"))
        assert jobs.join(timeout=5)
        assert len(seen) == 1

    def test_none_rejected(self, jobs: JobQueue):
        with pytest.raises(TypeError):
            ChangeNotifier(jobs).add_listener(None)  # type: ignore[arg-type]

    def test_remove_unknown_listener(self, jobs: JobQueue):
        ChangeNotifier(jobs).remove_listener(lambda m: None)

    def test_failing_listener_isolated(self, jobs: JobQueue):
        notifier = ChangeNotifier(jobs)
        seen: list[Mapping] = []

        def broken(mapping: Mapping) -> None:
            raise RuntimeError("boom")

        notifier.add_listener(broken)
        notifier.add_listener(seen.append)
        notifier.fire_changed(Mapping("", ".git"))
        assert jobs.join(timeout=5)
        assert len(seen) == 1

    def test_listener_may_unregister_during_notification(self, jobs: JobQueue):
        notifier = ChangeNotifier(jobs)
        seen: list[str] = []

        def once(mapping: Mapping) -> None:
            seen.append("once")
            notifier.remove_listener(once)

        notifier.add_listener(once)
        notifier.add_listener(lambda m: seen.append("other"))
        notifier.fire_changed(Mapping("", ".git"))
        notifier.fire_changed(Mapping("", ".git"))
        assert jobs.join(timeout=5)
        assert seen == ["once", "other", "other"]

    def test_caller_not_blocked(self, jobs: JobQueue):
        notifier = ChangeNotifier(jobs)
        release = threading.Event()
        notifier.add_listener(lambda m: release.wait(5))
        notifier.fire_changed(Mapping("", ".git"))
        assert not release.is_set()
        release.set()
        assert jobs.join(timeout=5)

    def test_fire_after_shutdown_is_dropped(self):
        queue = JobQueue()
        notifier = ChangeNotifier(queue)
        seen: list[Mapping] = []
        notifier.add_listener(seen.append)
        queue.shutdown()
        notifier.fire_changed(Mapping("", ".git"))
        assert seen == []
