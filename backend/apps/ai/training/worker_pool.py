"""
Parallel match execution.

The pool splits a batch of independent match jobs into contiguous,
roughly equal slices, one per worker, ships them by value and collects
the results keyed by job id. Workers are separate processes (spawn
context, one torch thread each) or threads in the current process.

The pool is the single owner of its bookkeeping; ``run_matches`` is
meant to be called from one orchestrating thread at a time, and a
second concurrent call fails fast with ``PoolBusyError``.
"""
import logging
import math
import multiprocessing
import os
import queue
import threading
from typing import Any, Dict, List, Optional, Set

from apps.arena.combat import CombatConfig, FitnessConfig

from ..exceptions import ConfigurationError, PoolBusyError, PoolClosedError
from ..matches.runner import MatchJob, MatchResult
from .worker import MATCH_RESULTS, READY, RUN_MATCHES, worker_main

logger = logging.getLogger(__name__)

BACKENDS = ('process', 'thread')


def default_worker_count() -> int:
    """One worker per core, leaving one core free, capped at 8."""
    return max(1, min(8, (os.cpu_count() or 2) - 1))


class WorkerPool:
    """
    A fixed set of match workers.

    Attributes:
        worker_count: Number of workers.
        backend: 'process' or 'thread'.

    Example:
        with WorkerPool(worker_count=4) as pool:
            results = pool.run_matches(jobs)
            population.apply_results(results)
    """

    def __init__(
        self,
        worker_count: Optional[int] = None,
        backend: str = 'process',
        combat: Optional[CombatConfig] = None,
        fitness: Optional[FitnessConfig] = None,
        ready_timeout: float = 120.0,
        poll_interval: float = 0.5,
    ):
        """
        Start the workers.

        Args:
            worker_count: Number of workers; defaults to ``default_worker_count()``.
            backend: 'process' for spawned processes, 'thread' for threads.
            combat: Combat rules shipped to every worker.
            fitness: Fitness constants shipped to every worker.
            ready_timeout: Seconds to wait for all workers to report ready.
            poll_interval: Seconds between liveness checks while collecting.

        Raises:
            ConfigurationError: On an unknown backend or a worker count below 1.
        """
        if backend not in BACKENDS:
            raise ConfigurationError(f"Unknown worker backend {backend!r}; use one of {BACKENDS}")
        worker_count = default_worker_count() if worker_count is None else worker_count
        if worker_count < 1:
            raise ConfigurationError(f"worker_count must be at least 1, got {worker_count}")

        self.worker_count = worker_count
        self.backend = backend
        self.ready_timeout = ready_timeout
        self.poll_interval = poll_interval

        self._lock = threading.Lock()
        self._busy = False
        self._closed = False
        self._batch_id = 0
        self._ready: Set[int] = set()

        if backend == 'process':
            ctx = multiprocessing.get_context('spawn')
            make_queue, make_worker = ctx.Queue, ctx.Process
        else:
            make_queue, make_worker = queue.Queue, threading.Thread

        self._outbox = make_queue()
        self._inboxes = [make_queue() for _ in range(worker_count)]
        self._workers = []
        for worker_id, inbox in enumerate(self._inboxes):
            worker = make_worker(
                target=worker_main,
                args=(worker_id, inbox, self._outbox, combat, fitness, backend == 'process'),
                name=f'match-worker-{worker_id}',
                daemon=True,
            )
            worker.start()
            self._workers.append(worker)

        logger.info(f"Started {worker_count} {backend} match workers")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        """True once every worker has reported ready, is still alive and the pool is open."""
        if self._closed or self._dead_workers():
            return False
        if not self._busy:
            self._drain_ready()
        return len(self._ready) == self.worker_count

    def _dead_workers(self) -> List[int]:
        return [i for i, w in enumerate(self._workers) if not w.is_alive()]

    @property
    def is_busy(self) -> bool:
        return self._busy

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _drain_ready(self) -> None:
        while True:
            try:
                message = self._outbox.get_nowait()
            except queue.Empty:
                return
            self._handle_stray(message)

    def _handle_stray(self, message: Dict[str, Any]) -> None:
        if message.get('type') == READY:
            self._ready.add(message['workerId'])
        else:
            logger.debug(f"Discarding stale message for batch {message.get('batchId')}")

    def wait_until_ready(self, timeout: Optional[float] = None) -> None:
        """
        Block until every worker has reported ready.

        Raises:
            PoolClosedError: If the pool was terminated.
            RuntimeError: If a worker died or the timeout expired first.
        """
        if self._closed:
            raise PoolClosedError("Worker pool has been terminated")
        timeout = self.ready_timeout if timeout is None else timeout
        waited = 0.0
        while len(self._ready) < self.worker_count:
            try:
                message = self._outbox.get(timeout=self.poll_interval)
            except queue.Empty:
                waited += self.poll_interval
                dead = self._dead_workers()
                if dead:
                    raise RuntimeError(f"Workers {dead} exited before reporting ready")
                if waited >= timeout:
                    raise RuntimeError(
                        f"Only {len(self._ready)} of {self.worker_count} workers "
                        f"ready after {timeout}s"
                    )
                continue
            self._handle_stray(message)

        dead = self._dead_workers()
        if dead:
            raise RuntimeError(f"Workers {dead} have exited")

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def split(self, jobs: List[MatchJob]) -> List[List[MatchJob]]:
        """Contiguous slices of ``ceil(len(jobs) / worker_count)`` jobs."""
        if not jobs:
            return []
        size = math.ceil(len(jobs) / self.worker_count)
        return [jobs[i:i + size] for i in range(0, len(jobs), size)]

    def run_matches(self, jobs: List[MatchJob]) -> List[MatchResult]:
        """
        Run a batch of jobs across the workers.

        Returns once every slice has reported (or its worker has died).
        Results come back in job order; a job whose match failed has no
        result, which the caller detects by comparing counts or ids.

        Raises:
            PoolClosedError: If the pool was terminated.
            PoolBusyError: If another batch is in flight.
        """
        with self._lock:
            if self._closed:
                raise PoolClosedError("Worker pool has been terminated")
            if self._busy:
                raise PoolBusyError("A batch is already running on this pool")
            self._busy = True

        try:
            if not jobs:
                return []
            self.wait_until_ready()
            self._batch_id += 1
            batch_id = self._batch_id

            slices = self.split(jobs)
            for worker_id, chunk in enumerate(slices):
                self._inboxes[worker_id].put({
                    'type': RUN_MATCHES,
                    'batchId': batch_id,
                    'jobs': [job.to_message() for job in chunk],
                })

            collected = self._collect(batch_id, len(slices))
            results = [collected[job.job_id] for job in jobs if job.job_id in collected]
            if len(results) != len(jobs):
                logger.warning(
                    f"Batch {batch_id}: {len(results)} of {len(jobs)} results received"
                )
            return results
        finally:
            self._busy = False

    def _collect(self, batch_id: int, slice_count: int) -> Dict[int, MatchResult]:
        outstanding = set(range(slice_count))
        collected: Dict[int, MatchResult] = {}
        while outstanding:
            try:
                message = self._outbox.get(timeout=self.poll_interval)
            except queue.Empty:
                dead = {i for i in outstanding if not self._workers[i].is_alive()}
                if dead:
                    logger.error(f"Batch {batch_id}: workers {sorted(dead)} died mid-batch")
                    outstanding -= dead
                continue

            if message.get('type') != MATCH_RESULTS or message.get('batchId') != batch_id:
                self._handle_stray(message)
                continue

            for record in message['results']:
                result = MatchResult.from_message(record)
                collected.setdefault(result.job_id, result)
            outstanding.discard(message['workerId'])
        return collected

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def terminate(self, timeout: float = 5.0) -> None:
        """Stop every worker. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        for inbox in self._inboxes:
            inbox.put(None)
        for worker in self._workers:
            worker.join(timeout)
            if worker.is_alive() and self.backend == 'process':
                logger.warning(f"{worker.name} did not stop in time; killing it")
                worker.terminate()
                worker.join(timeout)

        if self.backend == 'process':
            for q in [self._outbox, *self._inboxes]:
                q.close()
        self._ready.clear()
        logger.info(f"Terminated {self.worker_count} match workers")

    def __enter__(self) -> 'WorkerPool':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.terminate()
