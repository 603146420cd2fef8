"""
Match worker loop.

A worker owns a private ``MatchRunner`` and talks to the pool through
two queues, using plain dict messages:

- worker → pool ``{'type': 'ready', 'workerId'}`` once at startup
- pool → worker ``{'type': 'runMatches', 'batchId', 'jobs': [...]}``
- worker → pool ``{'type': 'matchResults', 'workerId', 'batchId', 'results': [...]}``
- pool → worker ``None`` to stop

Every ``runMatches`` request is answered with exactly one
``matchResults`` message. A job that raises is logged and left out of
the results, so the pool sees it as missing instead of waiting forever.
"""
import logging
from typing import Any, Dict, Optional

from apps.arena.combat import CombatConfig, FitnessConfig

from ..matches.runner import MatchJob, MatchRunner

logger = logging.getLogger(__name__)

READY = 'ready'
RUN_MATCHES = 'runMatches'
MATCH_RESULTS = 'matchResults'


def handle_request(
    runner: MatchRunner,
    worker_id: int,
    message: Dict[str, Any],
) -> Dict[str, Any]:
    """Run every job in a ``runMatches`` request, in order."""
    results = []
    for job_message in message.get('jobs', []):
        try:
            job = MatchJob.from_message(job_message)
            results.append(runner.run_job(job).to_message())
        except Exception:
            logger.exception(
                f"Worker {worker_id}: job {job_message.get('jobId')} failed"
            )
    return {
        'type': MATCH_RESULTS,
        'workerId': worker_id,
        'batchId': message.get('batchId'),
        'results': results,
    }


def worker_main(
    worker_id: int,
    inbox: Any,
    outbox: Any,
    combat: Optional[CombatConfig] = None,
    fitness: Optional[FitnessConfig] = None,
    single_thread_torch: bool = False,
) -> None:
    """
    Entry point of a pool worker (process or thread).

    Args:
        worker_id: Index of this worker in the pool.
        inbox: Queue of requests for this worker only.
        outbox: Queue shared by all workers for replies.
        combat: Combat rules for every match.
        fitness: Fitness constants for every match.
        single_thread_torch: Limit torch to one intra-op thread; set for
            worker processes so N workers do not oversubscribe the CPU.
    """
    if single_thread_torch:
        import torch
        torch.set_num_threads(1)

    runner = MatchRunner(combat, fitness)
    outbox.put({'type': READY, 'workerId': worker_id})

    while True:
        message = inbox.get()
        if message is None:
            break
        if message.get('type') != RUN_MATCHES:
            logger.warning(f"Worker {worker_id}: ignoring message {message.get('type')!r}")
            continue
        outbox.put(handle_request(runner, worker_id, message))

    logger.debug(f"Worker {worker_id} stopped")
