"""
Unit tests for the worker thread pool.
"""

import threading

import pytest

from rawhttp.core.thread_pool import ThreadPool


@pytest.fixture
def pool():
    pool = ThreadPool(min_workers=1, max_workers=2, queue_size=1, idle_timeout=0.1)
    pool.start()
    yield pool
    pool.shutdown(wait=False)


class TestThreadPool:
    """Tests for ThreadPool class."""

    def test_start_is_idempotent(self, pool: ThreadPool):
        """Test that start() twice does not add workers."""
        pool.start()

        assert pool.worker_count == 1

    def test_submit_runs_task(self, pool: ThreadPool):
        """Test that a submitted task executes with its arguments."""
        done = threading.Event()
        results = []

        def task(a, b=0):
            results.append(a + b)
            done.set()

        assert pool.submit(task, args=(1,), kwargs={"b": 2})
        assert done.wait(2.0)
        assert results == [3]

    def test_submit_before_start(self):
        """Test that an unstarted pool refuses work."""
        with pytest.raises(RuntimeError):
            ThreadPool().submit(print)

    def test_submit_after_shutdown(self, pool: ThreadPool):
        """Test that a stopped pool refuses work."""
        pool.shutdown()

        with pytest.raises(RuntimeError):
            pool.submit(print)

    def test_failing_task_does_not_kill_worker(self, pool: ThreadPool):
        """Test that a worker survives a task exception."""
        done = threading.Event()

        def boom():
            raise ValueError("boom")

        pool.submit(boom)
        pool.submit(done.set)

        assert done.wait(2.0)
        assert pool.worker_count >= 1

    def test_scales_up_to_max(self):
        """Test that a busy pool grows one worker at a time and stops at max."""
        pool = ThreadPool(min_workers=1, max_workers=2, queue_size=10, idle_timeout=0.1)
        pool.start()
        release = threading.Event()
        started = threading.Semaphore(0)

        def hold():
            started.release()
            release.wait(5.0)

        try:
            pool.submit(hold)
            assert started.acquire(timeout=2.0)
            pool.submit(hold)
            assert started.acquire(timeout=2.0)
            pool.submit(hold)

            assert pool.worker_count == 2
        finally:
            release.set()
            pool.shutdown(wait=False)

    def test_full_queue_rejects(self):
        """Test non-blocking submit when worker and queue are both taken."""
        pool = ThreadPool(min_workers=1, max_workers=1, queue_size=1, idle_timeout=0.1)
        pool.start()
        release = threading.Event()
        running = threading.Event()

        def hold():
            running.set()
            release.wait(5.0)

        try:
            assert pool.submit(hold)
            assert running.wait(2.0)
            assert pool.submit(hold, block=False)
            assert pool.submit(hold, block=False) is False
        finally:
            release.set()
            pool.shutdown(wait=False)

    def test_stats(self, pool: ThreadPool):
        """Test the monitoring snapshot."""
        stats = pool.stats

        assert stats["workers"]["total"] == 1
        assert stats["tasks"]["queued"] == 0

    def test_shutdown_stops_workers(self, pool: ThreadPool):
        """Test that shutdown joins every worker."""
        workers = list(pool._workers)
        pool.shutdown()

        assert pool.worker_count == 0
        assert all(not w.is_alive() for w in workers)
