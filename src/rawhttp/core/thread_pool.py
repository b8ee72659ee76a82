"""
=============================================================================
THREAD POOL IMPLEMENTATION
=============================================================================

A fixed-ceiling group of worker threads pulling connection tasks off a
bounded queue.

=============================================================================
WHY A BOUNDED POOL?
=============================================================================

Spawning a thread per accepted connection puts no ceiling on anything:

    for conn in accept_connections():
        Thread(target=handle, args=(conn,)).start()

    10,000 slow clients = 10,000 threads, each with its own stack.

The pool caps both sides:

    pool = ThreadPool(min_workers=4, max_workers=16, queue_size=100)

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Thread Pool                                   │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   accept loop ──submit()──►  TASK QUEUE (max queue_size)            │
    │                              [conn 1] [conn 2] [conn 3] ...          │
    │                                   │                                  │
    │        queue full? submit() returns False → server answers 503      │
    │                                   │                                  │
    │                                   ▼ get()                            │
    │   ┌──────────┐ ┌──────────┐ ┌──────────┐ ┌──────────┐              │
    │   │ Worker 0 │ │ Worker 1 │ │ Worker 2 │ │ Worker 3 │  ... ≤ max    │
    │   │ (idle)   │ │ (busy)   │ │ (busy)   │ │ (idle)   │              │
    │   └──────────┘ └──────────┘ └──────────┘ └──────────┘              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WORKER LIFECYCLE
=============================================================================

    def run(self):
        while not shutdown:
            task = queue.get()      ← BLOCKS until task available
            if task is None:        ← "Poison pill" signals shutdown
                break
            execute(task)           ← exceptions are logged, never fatal
            queue.task_done()

=============================================================================
SCALING UP
=============================================================================

    min_workers are started up front. When every worker is busy and tasks
    are waiting, submit() adds one more worker, up to max_workers.
    Workers are never retired while the pool is running.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Worker thread states, for monitoring."""
    IDLE = "idle"        # Waiting for task
    BUSY = "busy"        # Executing task
    STOPPED = "stopped"  # Thread exited


@dataclass
class Task:
    """
    A deferred function call: "call func(*args, **kwargs) later".

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        kwargs: Keyword arguments for the function.
        submitted_at: Time the task was queued.
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Worker thread that processes tasks from the shared queue.

    A task that raises is logged with its traceback and counted; the
    worker itself keeps going.
    """

    def __init__(
        self,
        task_queue: queue.Queue,
        worker_id: int,
        idle_timeout: float = 60.0
    ):
        """
        Args:
            task_queue: Queue to pull tasks from.
            worker_id: Identifier for this worker (for logging).
            idle_timeout: Seconds to wait for a task before re-checking
                          the shutdown flag.
        """
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout
        self.state = WorkerState.IDLE

        self._shutdown = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            if task is None:
                self.task_queue.task_done()
                break

            try:
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()
        waited = start_time - task.submitted_at

        try:
            task.func(*task.args, **task.kwargs)
            elapsed = time.time() - start_time
            logger.debug(
                f"Worker {self.worker_id} completed task in {elapsed:.3f}s "
                f"(queued {waited:.3f}s)"
            )
            self.tasks_completed += 1
        except Exception as e:
            elapsed = time.time() - start_time
            logger.exception(
                f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}"
            )
            self.tasks_failed += 1
        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        """Signal the worker to stop."""
        self._shutdown.set()


class ThreadPool:
    """
    Thread pool for concurrent connection handling.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      ThreadPool Usage                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   pool = ThreadPool(min_workers=4, max_workers=16, queue_size=100)  │
    │   pool.start()                                                       │
    │                                                                      │
    │   if not pool.submit(handle, args=(conn,), block=False):            │
    │       reject(conn)             # queue full                          │
    │                                                                      │
    │   pool.shutdown(wait=True, timeout=5.0)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 1.0
    ):
        """
        Args:
            min_workers: Workers started up front and kept running.
            max_workers: Hard ceiling on worker threads.
            queue_size: Maximum number of tasks waiting for a worker.
            idle_timeout: Seconds an idle worker waits on the queue before
                          re-checking for shutdown.
        """
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: queue.Queue[Optional[Task]] = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()  # Protects _workers

        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self):
        """Start the minimum number of workers. Idempotent."""
        if self._started:
            return

        logger.info(
            f"Starting thread pool with {self.min_workers} workers "
            f"(max {self.max_workers}, queue {self.max_queue_size})"
        )

        self._shutdown = False
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()

        self._started = True

    def _add_worker(self) -> Worker:
        """Start one more worker. Caller must hold ``_lock``."""
        worker = Worker(
            task_queue=self._task_queue,
            worker_id=self._next_worker_id,
            idle_timeout=self.idle_timeout
        )
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None
    ) -> bool:
        """
        Queue a task for execution.

        Args:
            func: The function to execute.
            args: Positional arguments for the function.
            kwargs: Keyword arguments for the function.
            block: Whether to wait for queue space when it is full.
            queue_timeout: How long to wait for space when blocking.

        Returns:
            True if the task was queued, False if the queue was full.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})

        try:
            self._task_queue.put(task, block=block, timeout=queue_timeout)
        except queue.Full:
            logger.warning(f"Task queue full ({self.max_queue_size}), rejecting task")
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        """Add a worker if every worker is busy and tasks are waiting."""
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return
            all_busy = all(w.state == WorkerState.BUSY for w in self._workers)
            if all_busy and self._task_queue.qsize() > 0:
                logger.debug(
                    f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
                )
                self._add_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        ┌─────────────────────────────────────────────────────────────────┐
        │   1. Reject new tasks                                           │
        │   2. wait=True: let queued tasks drain (up to ``timeout``)      │
        │   3. One poison pill per worker                                 │
        │   4. Join workers (2s each)                                     │
        └─────────────────────────────────────────────────────────────────┘

        Args:
            wait: Whether to let pending tasks complete first.
            timeout: Maximum time to wait for the queue to drain.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            deadline = time.time() + timeout if timeout else None
            while not self._task_queue.empty():
                if deadline is not None and time.time() > deadline:
                    logger.warning("Shutdown timeout, abandoning queued tasks")
                    break
                time.sleep(0.05)

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()

        for worker in workers:
            worker.shutdown()
            try:
                self._task_queue.put_nowait(None)
            except queue.Full:
                pass  # Worker still exits on its shutdown flag

        for worker in workers:
            worker.join(timeout=2.0)

        self._started = False
        logger.info("Thread pool shutdown complete")

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.IDLE)

    @property
    def queued(self) -> int:
        """Tasks currently waiting for a worker."""
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and task counts, for logging and tests."""
        return {
            "workers": {
                "total": self.worker_count,
                "busy": self.busy_workers,
                "idle": self.idle_workers,
            },
            "tasks": {
                "queued": self.queued,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }
