"""
Background training.

Runs the generation loop on its own thread while the interactive side
keeps rendering. The training thread owns the population while it runs;
other threads only read the published ``TrainingSnapshot`` and the
best-genome copy, both replaced atomically after each generation.

Stopping is cooperative: ``stop()`` sets a flag that the loop checks
once per completed batch, so an in-flight batch always finishes.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING

from .trainer import EvolutionTrainer

if TYPE_CHECKING:
    from ..evolution.genome import Genome
    from ..evolution.population import GenerationStats, Population
    from .checkpoints import CheckpointManager
    from .worker_pool import WorkerPool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainingSnapshot:
    """Published state of a background run."""
    generation: int = 0
    best_fitness: float = 0.0
    avg_fitness: float = 0.0
    mutation_rate: float = 0.0
    total_matches: int = 0
    running: bool = False
    best_genome_id: Optional[str] = None
    history: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'generation': self.generation,
            'bestFitness': self.best_fitness,
            'avgFitness': self.avg_fitness,
            'mutationRate': self.mutation_rate,
            'totalMatches': self.total_matches,
            'running': self.running,
            'bestGenomeId': self.best_genome_id,
            'history': list(self.history),
        }


class BackgroundTrainer:
    """
    Evolve a population on a background thread.

    Attributes:
        population: Population being evolved; do not touch it from other
            threads while ``is_running``.
        auto_stop_generation: Stop once this generation is reached.
        error: Exception that ended the last run, if any.

    Example:
        with WorkerPool(worker_count=4) as pool:
            trainer = BackgroundTrainer(population, pool, auto_stop_generation=200)
            trainer.start()
            ...
            champion = trainer.best_genome()
            trainer.stop()
    """

    def __init__(
        self,
        population: 'Population',
        pool: 'WorkerPool',
        auto_stop_generation: Optional[int] = None,
        on_generation: Optional[Callable[[TrainingSnapshot], None]] = None,
        on_auto_stop: Optional[Callable[[], None]] = None,
        checkpoint_manager: Optional['CheckpointManager'] = None,
        checkpoint_interval: int = 10,
        max_batch_retries: int = 2,
        history_window: int = 50,
    ):
        self.population = population
        self.auto_stop_generation = auto_stop_generation
        self.on_generation = on_generation
        self.on_auto_stop = on_auto_stop
        self.history_window = history_window
        self.trainer = EvolutionTrainer(
            population,
            pool,
            checkpoint_manager=checkpoint_manager,
            checkpoint_interval=checkpoint_interval,
            max_batch_retries=max_batch_retries,
        )
        self.error: Optional[BaseException] = None

        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._best: Optional['Genome'] = population.get_best()
        self._snapshot = self._build_snapshot(running=False)

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """
        Start the training thread.

        Raises:
            RuntimeError: If a run is already in progress.
        """
        if self.is_running:
            raise RuntimeError("Background training is already running")
        self._stop.clear()
        self.error = None
        self._thread = threading.Thread(
            target=self._run,
            name='background-training',
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Background training started at generation {self.population.generation}")

    def stop(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """Ask the loop to stop after the batch in flight; optionally wait for it."""
        self._stop.set()
        if wait and self._thread is not None:
            self._thread.join(timeout)

    def _reached_auto_stop(self) -> bool:
        return (
            self.auto_stop_generation is not None
            and self.population.generation >= self.auto_stop_generation
        )

    def _run(self) -> None:
        try:
            while not self._stop.is_set():
                if self._reached_auto_stop():
                    logger.info(f"Auto-stop at generation {self.population.generation}")
                    if self.on_auto_stop:
                        self.on_auto_stop()
                    break
                stats = self.trainer.run_generation()
                self._publish(stats)
        except Exception as e:
            self.error = e
            logger.exception("Background training stopped on error")
        finally:
            with self._lock:
                self._snapshot = self._build_snapshot(running=False)
            logger.info(f"Background training stopped at generation {self.population.generation}")

    # ------------------------------------------------------------------
    # Published state
    # ------------------------------------------------------------------

    def _publish(self, stats: 'GenerationStats') -> None:
        best = self.population.get_best()
        with self._lock:
            self._best = best
            self._snapshot = self._build_snapshot(running=True)
        if self.on_generation:
            self.on_generation(self._snapshot)

    def _build_snapshot(self, running: bool) -> TrainingSnapshot:
        population = self.population
        history = [s.to_dict() for s in population.history[-self.history_window:]]
        last = population.history[-1] if population.history else None
        return TrainingSnapshot(
            generation=population.generation,
            best_fitness=self._best.fitness if self._best else 0.0,
            avg_fitness=last.avg_fitness if last else 0.0,
            mutation_rate=last.mutation_rate if last else population.current_mutation_rate(),
            total_matches=population.total_matches,
            running=running,
            best_genome_id=self._best.id if self._best else None,
            history=history,
        )

    def snapshot(self) -> TrainingSnapshot:
        with self._lock:
            return self._snapshot

    def best_genome(self) -> Optional['Genome']:
        """A private copy of the best genome published so far."""
        with self._lock:
            return self._best.clone() if self._best else None
