"""
Generation loop for neuroevolution.

Ties the population, the worker pool and checkpointing together:

    pair → run batch on the pool → apply results → evolve → checkpoint

A batch that comes back incomplete is never applied. The trainer
abandons it and re-pairs the generation, up to ``max_batch_retries``
times, then gives up with the ``JobResultMismatchError``.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from ..exceptions import JobResultMismatchError

if TYPE_CHECKING:
    from ..evolution.population import GenerationStats, Population
    from .checkpoints import CheckpointManager
    from .worker_pool import WorkerPool

logger = logging.getLogger(__name__)


@dataclass
class TrainingResult:
    """Results from a training run."""
    generations: int = 0
    final_generation: int = 0
    best_fitness: float = 0.0
    best_generation: int = 0
    total_matches: int = 0
    retried_batches: int = 0
    training_time_seconds: float = 0.0
    checkpoint_path: Optional[str] = None
    history: List[Dict[str, Any]] = field(default_factory=list)


class EvolutionTrainer:
    """
    Runs generations of a population on a worker pool.

    The trainer, and whichever thread calls it, is the only writer of
    the population while it runs.

    Example:
        population = Population(EvolutionConfig(seed=3)).initialize()
        with WorkerPool(worker_count=4) as pool:
            trainer = EvolutionTrainer(population, pool)
            result = trainer.train(generations=100)
    """

    def __init__(
        self,
        population: 'Population',
        pool: 'WorkerPool',
        checkpoint_manager: Optional['CheckpointManager'] = None,
        checkpoint_interval: int = 10,
        max_batch_retries: int = 2,
    ):
        """
        Args:
            population: Initialized population to evolve.
            pool: Pool that runs each generation's batch.
            checkpoint_manager: Where to write population checkpoints, if anywhere.
            checkpoint_interval: Checkpoint every N generations.
            max_batch_retries: Re-pairings allowed for an incomplete batch.
        """
        self.population = population
        self.pool = pool
        self.checkpoint_manager = checkpoint_manager
        self.checkpoint_interval = checkpoint_interval
        self.max_batch_retries = max_batch_retries
        self.retried_batches = 0
        self.last_checkpoint: Optional[str] = None

    def run_generation(self) -> 'GenerationStats':
        """
        Score the current generation and breed the next one.

        Raises:
            JobResultMismatchError: If the batch is still incomplete after
                every retry. The population is left ready to pair again.
        """
        population = self.population
        attempt = 0
        while True:
            jobs = population.create_jobs()
            results = self.pool.run_matches(jobs)
            try:
                population.apply_results(results)
                break
            except JobResultMismatchError as e:
                population.abandon_batch()
                if attempt >= self.max_batch_retries:
                    logger.error(
                        f"Generation {population.generation}: giving up after "
                        f"{attempt + 1} incomplete batches"
                    )
                    raise
                attempt += 1
                self.retried_batches += 1
                logger.warning(
                    f"Generation {population.generation}: {e}; retrying "
                    f"({attempt}/{self.max_batch_retries})"
                )

        stats = population.evolve()
        self._maybe_checkpoint()
        return stats

    def _maybe_checkpoint(self) -> None:
        if self.checkpoint_manager is None or self.checkpoint_interval <= 0:
            return
        if self.population.generation % self.checkpoint_interval == 0:
            path = self.checkpoint_manager.save(
                self.population,
                metadata={'retried_batches': self.retried_batches},
            )
            self.last_checkpoint = str(path)

    def train(
        self,
        generations: int,
        progress_callback: Optional[Callable[['GenerationStats'], None]] = None,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> TrainingResult:
        """
        Run up to ``generations`` generations.

        Args:
            generations: Number of generations to run.
            progress_callback: Called with each generation's stats.
            should_stop: Polled after every generation; True ends the run early.

        Returns:
            Training results.
        """
        start_time = time.time()
        result = TrainingResult()

        for _ in range(generations):
            stats = self.run_generation()
            result.generations += 1
            result.history.append(stats.to_dict())
            if result.generations == 1 or stats.best_fitness > result.best_fitness:
                result.best_fitness = stats.best_fitness
                result.best_generation = stats.generation

            if progress_callback:
                progress_callback(stats)
            if should_stop and should_stop():
                logger.info(f"Training stopped at generation {self.population.generation}")
                break

        result.final_generation = self.population.generation
        result.total_matches = self.population.total_matches
        result.retried_batches = self.retried_batches
        result.training_time_seconds = time.time() - start_time
        result.checkpoint_path = self.last_checkpoint
        return result
