"""
Population management for fighter neuroevolution.

Handles the lifecycle of a population of genomes across generations:
- Initialization (random networks, or clones of a seed genome)
- Pairing: building one batch of self-play match jobs
- Applying match results exactly once per job
- Selection (elitism + truncation), crossover and adaptive mutation
- Generation advancement, best-genome tracking and fitness history

Each generation moves through
``INITIALIZED → PAIRING → AWAITING_RESULTS → SELECTING → REPRODUCING``
and back to ``INITIALIZED`` for the next generation. The population is
only ever mutated by the thread that owns this object; match workers
receive copies of the genomes inside their jobs.
"""
import logging
import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

import torch

from ..exceptions import ConfigurationError, JobResultMismatchError
from ..networks.architectures import Architecture, default_architecture
from ..networks.feedforward import FeedForwardNetwork
from .crossover import UniformCrossover
from .genome import Genome
from .mutations import MutationSchedule, WeightMutator
from .selection import EliteSelection, TruncationSelection, rank

if TYPE_CHECKING:
    from ..matches.runner import MatchJob, MatchResult

logger = logging.getLogger(__name__)


@dataclass
class EvolutionConfig:
    """Configuration for an evolution run."""

    # Population
    population_size: int = 48
    elite_count: int = 2
    architecture: Architecture = field(default_factory=default_architecture)

    # Selection
    selection_pool_fraction: float = 0.25
    min_selection_pool: int = 2

    # Mutation
    mutation_rate_base: float = 0.30
    mutation_decay_step: float = 0.008
    mutation_floor: float = 0.05
    intelligent_mutation: bool = False

    # Pairing
    spawn_center_a: float = 280.0
    spawn_center_b: float = 470.0
    spawn_jitter: float = 50.0

    # Reproducibility and bookkeeping
    seed: Optional[int] = None
    history_limit: int = 500

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: On degenerate values.
        """
        if self.population_size < 2:
            raise ConfigurationError(
                f"Population size must be at least 2, got {self.population_size}"
            )
        if self.elite_count < 0:
            raise ConfigurationError("elite_count cannot be negative")
        for name in ('mutation_rate_base', 'mutation_floor', 'selection_pool_fraction'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be in [0, 1], got {value}")
        if self.mutation_decay_step < 0:
            raise ConfigurationError("mutation_decay_step cannot be negative")
        if self.spawn_jitter < 0:
            raise ConfigurationError("spawn_jitter cannot be negative")
        self.architecture.validate()

    def schedule(self) -> MutationSchedule:
        return MutationSchedule(
            base_rate=self.mutation_rate_base,
            decay_step=self.mutation_decay_step,
            floor=self.mutation_floor,
            intelligent=self.intelligent_mutation,
        )


@dataclass
class GenerationStats:
    """Statistics for one completed generation."""
    generation: int = 0
    best_fitness: float = 0.0
    avg_fitness: float = 0.0
    min_fitness: float = 0.0
    mutation_rate: float = 0.0
    best_genome_id: str = ''
    matches: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'generation': self.generation,
            'best_fitness': self.best_fitness,
            'avg_fitness': self.avg_fitness,
            'min_fitness': self.min_fitness,
            'mutation_rate': self.mutation_rate,
            'best_genome_id': self.best_genome_id,
            'matches': self.matches,
        }


class Phase(str, Enum):
    INITIALIZED = 'initialized'
    PAIRING = 'pairing'
    AWAITING_RESULTS = 'awaiting_results'
    SELECTING = 'selecting'
    REPRODUCING = 'reproducing'


class Population:
    """
    Manages a population of evolving fighter genomes.

    Attributes:
        config: Evolution configuration.
        genomes: Current generation, in creation order.
        generation: Index of the current generation (0-based).
        phase: Where the current generation is in its lifecycle.
        best_genome: Owned copy of the best genome seen so far.
        history: Stats of completed generations, oldest first.

    Example:
        population = Population(EvolutionConfig(population_size=16, seed=1))
        population.initialize()

        jobs = population.create_jobs()
        results = pool.run_matches(jobs)
        population.apply_results(results)
        stats = population.evolve()
    """

    def __init__(self, config: Optional[EvolutionConfig] = None):
        self.config = config or EvolutionConfig()
        self.rng = random.Random(self.config.seed)
        self.generator = torch.Generator()
        if self.config.seed is not None:
            self.generator.manual_seed(self.config.seed)
        else:
            self.generator.seed()

        self.mutator = WeightMutator(generator=self.generator)
        self.crossover = UniformCrossover(generator=self.generator)
        self.elite_selection = EliteSelection(self.config.elite_count)
        self.parent_selection = TruncationSelection(
            pool_fraction=self.config.selection_pool_fraction,
            min_pool=self.config.min_selection_pool,
        )
        self.schedule = self.config.schedule()

        self.genomes: List[Genome] = []
        self.generation = 0
        self.phase = Phase.INITIALIZED
        self.best_genome: Optional[Genome] = None
        self.history: List[GenerationStats] = []
        self.total_matches = 0

        self._pending: Dict[int, Tuple[int, int]] = {}
        self._next_job_id = 0

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(self) -> 'Population':
        """
        Create ``population_size`` random genomes (weights uniform in [-1, 1]).

        Raises:
            ConfigurationError: If the population size is below 2.
        """
        self.config.validate()
        arch = self.config.architecture
        self.genomes = [
            Genome(
                id=self._genome_id(i),
                network=FeedForwardNetwork.random(arch, generator=self.generator),
            )
            for i in range(self.config.population_size)
        ]
        self._reset_generation_state()
        logger.info(
            f"Initialized population of {len(self.genomes)} "
            f"({arch.describe()}, {arch.parameter_count} parameters)"
        )
        return self

    def initialize_from_genome(
        self,
        seed_genome: Genome,
        mutation_rate: Optional[float] = None,
    ) -> 'Population':
        """
        Fill the population with a seed genome and mutated copies of it.

        Slot 0 holds an exact copy; every other slot is mutated at
        ``mutation_rate`` (default: the current scheduled rate).

        Raises:
            ConfigurationError: If the population size is below 2.
            ValueError: If the seed's architecture differs from the configured one.
        """
        self.config.validate()
        if seed_genome.network.architecture != self.config.architecture:
            raise ValueError(
                f"Seed genome is {seed_genome.network.architecture.tag}, "
                f"population is {self.config.architecture.tag}"
            )
        rate = self.current_mutation_rate() if mutation_rate is None else mutation_rate
        self.genomes = []
        for i in range(self.config.population_size):
            network = seed_genome.network.clone()
            if i > 0:
                self.mutator.mutate(network, rate, in_place=True)
            self.genomes.append(Genome(id=self._genome_id(i), network=network))
        self._reset_generation_state()
        logger.info(f"Seeded population of {len(self.genomes)} from {seed_genome.id}")
        return self

    def _genome_id(self, index: int) -> str:
        return f'gen{self.generation}-{index}'

    def _reset_generation_state(self) -> None:
        for genome in self.genomes:
            genome.reset_fitness()
        self._pending = {}
        self.phase = Phase.INITIALIZED

    # ------------------------------------------------------------------
    # Pairing and results
    # ------------------------------------------------------------------

    def create_jobs(self) -> List['MatchJob']:
        """
        Pair the population for one batch of matches.

        Genomes ``2k`` and ``2k+1`` fight each other. With an odd
        population the last genome fights a uniformly random genome
        from the already-paired ones. Every job gets independent spawn
        jitter and a coin flip that swaps sides. Jobs carry copies of
        the genomes.

        Returns:
            ``ceil(n / 2)`` jobs.

        Raises:
            RuntimeError: If a batch is already awaiting results.
        """
        from ..matches.runner import MatchJob

        if self.phase != Phase.INITIALIZED:
            raise RuntimeError(
                f"Cannot pair generation {self.generation} in phase {self.phase.value}"
            )
        if len(self.genomes) < 2:
            raise ConfigurationError("Population must be initialized with at least 2 genomes")

        self.phase = Phase.PAIRING
        cfg = self.config
        jobs = []
        n = len(self.genomes)
        for p1_idx in range(0, n, 2):
            p2_idx = p1_idx + 1
            if p2_idx >= n:
                p2_idx = self.rng.randrange(p1_idx)

            job_id = self._next_job_id
            self._next_job_id += 1
            jobs.append(MatchJob(
                job_id=job_id,
                genome_a=self.genomes[p1_idx].clone(),
                genome_b=self.genomes[p2_idx].clone(),
                spawn_x_a=cfg.spawn_center_a + self.rng.uniform(-cfg.spawn_jitter, cfg.spawn_jitter),
                spawn_x_b=cfg.spawn_center_b + self.rng.uniform(-cfg.spawn_jitter, cfg.spawn_jitter),
                swap_sides=self.rng.random() < 0.5,
            ))
            self._pending[job_id] = (p1_idx, p2_idx)

        self.phase = Phase.AWAITING_RESULTS
        logger.debug(f"Generation {self.generation}: {len(jobs)} jobs created")
        return jobs

    @property
    def pending_job_ids(self) -> List[int]:
        return sorted(self._pending)

    def apply_results(self, results: Sequence['MatchResult']) -> None:
        """
        Add a batch's fitness deltas to the population, exactly once per job.

        Results are matched to jobs by job id; duplicates for the same
        job id are ignored and ids from other batches are rejected.
        Nothing is applied unless every pending job has a result.

        Raises:
            RuntimeError: If no batch is awaiting results.
            JobResultMismatchError: If results are missing or foreign.
                The population is left untouched and still awaiting the
                batch; call ``abandon_batch`` to retry it.
        """
        if self.phase != Phase.AWAITING_RESULTS:
            raise RuntimeError(f"No batch awaiting results (phase {self.phase.value})")

        by_job: Dict[int, 'MatchResult'] = {}
        for result in results:
            by_job.setdefault(result.job_id, result)

        if set(by_job) != set(self._pending):
            raise JobResultMismatchError(self._pending.keys(), by_job.keys())

        for job_id, (idx_a, idx_b) in self._pending.items():
            result = by_job[job_id]
            genome_a = self.genomes[idx_a]
            genome_b = self.genomes[idx_b]
            genome_a.fitness += _finite(result.fitness_delta_a)
            genome_b.fitness += _finite(result.fitness_delta_b)
            if result.won_a:
                genome_a.matches_won += 1
            if result.won_b:
                genome_b.matches_won += 1

        self.total_matches += len(self._pending)
        self._pending = {}
        self.phase = Phase.SELECTING

    def abandon_batch(self) -> None:
        """
        Drop an in-flight batch so the generation can be paired again.

        Fitness gathered by this generation is reset.
        """
        if self._pending:
            logger.warning(
                f"Generation {self.generation}: abandoning batch of "
                f"{len(self._pending)} jobs"
            )
        self._reset_generation_state()

    # ------------------------------------------------------------------
    # Selection and reproduction
    # ------------------------------------------------------------------

    def current_mutation_rate(self) -> float:
        return self.schedule.rate(self.generation, self.best_fitness_history())

    def best_fitness_history(self) -> List[float]:
        return [stats.best_fitness for stats in self.history]

    def evolve(self) -> GenerationStats:
        """
        Replace the scored generation with the next one.

        The ranked top genomes survive verbatim as elites (fitness reset,
        ids re-tagged with the new generation); every other slot is
        ``mutate(crossover(parent_a, parent_b), rate)`` with parents
        drawn from the top of the ranking.

        Returns:
            Stats of the generation that was just scored.

        Raises:
            RuntimeError: If results for the generation have not been applied.
        """
        if self.phase != Phase.SELECTING:
            raise RuntimeError(
                f"Cannot evolve generation {self.generation} in phase {self.phase.value}"
            )

        ranked = rank(self.genomes)
        best = ranked[0]
        self._update_best(best)

        fitnesses = [g.fitness for g in self.genomes]
        rate = self.current_mutation_rate()
        stats = GenerationStats(
            generation=self.generation,
            best_fitness=best.fitness,
            avg_fitness=sum(fitnesses) / len(fitnesses),
            min_fitness=min(fitnesses),
            mutation_rate=rate,
            best_genome_id=best.id,
            matches=math.ceil(len(self.genomes) / 2),
        )
        self.history.append(stats)
        if len(self.history) > self.config.history_limit:
            self.history = self.history[-self.config.history_limit:]

        self.phase = Phase.REPRODUCING
        self.generation += 1
        size = len(self.genomes)

        next_generation: List[Genome] = []
        for elite in self.elite_selection.get_elite(ranked)[:size]:
            next_generation.append(Genome(
                id=self._genome_id(len(next_generation)),
                network=elite.network.clone(),
            ))

        while len(next_generation) < size:
            parent_a, parent_b = self.parent_selection.select_pair(ranked, self.rng)
            child = self.crossover.crossover(parent_a.network, parent_b.network)
            self.mutator.mutate(child, rate, in_place=True)
            next_generation.append(Genome(
                id=self._genome_id(len(next_generation)),
                network=child,
            ))

        self.genomes = next_generation
        self._reset_generation_state()

        logger.info(
            f"Generation {stats.generation}: best={stats.best_fitness:.1f} "
            f"avg={stats.avg_fitness:.1f} rate={rate:.3f}"
        )
        return stats

    def _update_best(self, candidate: Genome) -> None:
        if self.best_genome is None or candidate.fitness > self.best_genome.fitness:
            self.best_genome = candidate.clone()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_best(self) -> Optional[Genome]:
        """A fresh copy of the best genome seen so far, safe to hand to another thread."""
        return self.best_genome.clone() if self.best_genome else None

    def get_top_n(self, n: int) -> List[Genome]:
        return rank(self.genomes)[:n]

    @property
    def best_fitness(self) -> float:
        return max((g.fitness for g in self.genomes), default=0.0)

    @property
    def avg_fitness(self) -> float:
        if not self.genomes:
            return 0.0
        return sum(g.fitness for g in self.genomes) / len(self.genomes)

    def __len__(self) -> int:
        return len(self.genomes)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def state_dict(self) -> Dict[str, Any]:
        """Everything needed to resume at the start of the current generation."""
        return {
            'generation': self.generation,
            'architecture': self.config.architecture.tag,
            'genomes': [g.to_dict() for g in self.genomes],
            'best_genome': self.best_genome.to_dict() if self.best_genome else None,
            'history': [s.to_dict() for s in self.history],
            'total_matches': self.total_matches,
        }

    def load_state_dict(self, state: Dict[str, Any]) -> None:
        """
        Restore a ``state_dict``; any in-flight batch is discarded.

        Raises:
            ValueError: If the genomes do not match the configured architecture.
        """
        genomes = [Genome.from_dict(record) for record in state['genomes']]
        for genome in genomes:
            if genome.network.architecture != self.config.architecture:
                raise ValueError(
                    f"Checkpoint genome {genome.id} is "
                    f"{genome.network.architecture.tag}, population is "
                    f"{self.config.architecture.tag}"
                )
        if len(genomes) < 2:
            raise ConfigurationError("Checkpoint holds fewer than 2 genomes")

        self.generation = int(state['generation'])
        self.genomes = genomes
        best = state.get('best_genome')
        self.best_genome = Genome.from_dict(best) if best else None
        self.history = [GenerationStats(**record) for record in state.get('history', [])]
        self.total_matches = int(state.get('total_matches', 0))
        self._reset_generation_state()


def _finite(value: float) -> float:
    if math.isfinite(value):
        return value
    logger.warning(f"Ignoring non-finite fitness delta {value!r}")
    return 0.0
