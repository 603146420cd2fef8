"""
Match runner for training and benchmark matches.

Drives one combat simulation to completion and turns the terminal state
into fitness awards.

Features:
- MatchJob / MatchResult value types, convertible to the plain dict
  messages exchanged with pool workers
- Side swapping so genomes learn to fight from both sides of the arena
- Benchmarking a genome against a scripted or random opponent
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from apps.arena.combat import (
    CombatConfig,
    CombatSimulator,
    FitnessConfig,
    MatchOutcome,
    MatchStatus,
    score_outcome,
)

from ..evolution.genome import Genome
from ..players.neural import NeuralPlayer

if TYPE_CHECKING:
    from ..players.base import BasePlayer

logger = logging.getLogger(__name__)


@dataclass
class MatchJob:
    """
    One training match between two genomes.

    Genomes travel by value: a job built for a worker holds its own
    copies (see ``to_message``/``from_message``).
    """
    job_id: int
    genome_a: Genome
    genome_b: Genome
    spawn_x_a: float
    spawn_x_b: float
    swap_sides: bool = False

    def to_message(self) -> Dict[str, Any]:
        return {
            'jobId': self.job_id,
            'genomeA': self.genome_a.to_dict(),
            'genomeB': self.genome_b.to_dict(),
            'spawnXA': self.spawn_x_a,
            'spawnXB': self.spawn_x_b,
            'swapSides': self.swap_sides,
        }

    @classmethod
    def from_message(cls, message: Dict[str, Any]) -> 'MatchJob':
        return cls(
            job_id=int(message['jobId']),
            genome_a=Genome.from_dict(message['genomeA']),
            genome_b=Genome.from_dict(message['genomeB']),
            spawn_x_a=float(message['spawnXA']),
            spawn_x_b=float(message['spawnXB']),
            swap_sides=bool(message.get('swapSides', False)),
        )


@dataclass
class MatchResult:
    """Fitness awards for both genomes of a job, in job order (A, B)."""
    job_id: int
    fitness_delta_a: float
    fitness_delta_b: float
    won_a: bool
    won_b: bool
    final_health_a: float
    final_health_b: float
    ticks: int = 0
    ko: bool = False

    def to_message(self) -> Dict[str, Any]:
        return {
            'jobId': self.job_id,
            'fitnessDeltaA': self.fitness_delta_a,
            'fitnessDeltaB': self.fitness_delta_b,
            'wonA': self.won_a,
            'wonB': self.won_b,
            'finalHealthA': self.final_health_a,
            'finalHealthB': self.final_health_b,
            'ticks': self.ticks,
            'ko': self.ko,
        }

    @classmethod
    def from_message(cls, message: Dict[str, Any]) -> 'MatchResult':
        return cls(
            job_id=int(message['jobId']),
            fitness_delta_a=float(message['fitnessDeltaA']),
            fitness_delta_b=float(message['fitnessDeltaB']),
            won_a=bool(message['wonA']),
            won_b=bool(message['wonB']),
            final_health_a=float(message['finalHealthA']),
            final_health_b=float(message['finalHealthB']),
            ticks=int(message.get('ticks', 0)),
            ko=bool(message.get('ko', False)),
        )


@dataclass
class BenchmarkResult:
    """Record of a genome against a fixed opponent."""
    matches: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0
    knockouts: int = 0
    outcomes: List[MatchOutcome] = field(default_factory=list)

    @property
    def win_rate(self) -> float:
        return self.wins / self.matches if self.matches else 0.0


def _finite(value: float, job_id: int) -> float:
    if math.isfinite(value):
        return value
    logger.warning(f"Job {job_id}: non-finite fitness {value!r} replaced by 0")
    return 0.0


class MatchRunner:
    """
    Run matches between genomes or arbitrary players.

    Example:
        runner = MatchRunner()
        result = runner.run_job(job)      # training match, shaping on
        record = runner.benchmark(genome, HeuristicPlayer('bot', seed=1), matches=10)
    """

    def __init__(
        self,
        combat: Optional[CombatConfig] = None,
        fitness: Optional[FitnessConfig] = None,
    ):
        self.combat = combat or CombatConfig()
        self.fitness = fitness or FitnessConfig()

    def simulator(
        self,
        player_a: 'BasePlayer',
        player_b: 'BasePlayer',
        spawn_x_a: float = 280.0,
        spawn_x_b: float = 470.0,
        shaping: bool = False,
    ) -> CombatSimulator:
        """A fresh simulator for two players, A on the left."""
        player_a.on_match_start()
        player_b.on_match_start()
        return CombatSimulator.create(
            spawn_x_a,
            spawn_x_b,
            controller_a=player_a,
            controller_b=player_b,
            config=self.combat,
            fitness=self.fitness,
            shaping=shaping,
        )

    def run_job(self, job: MatchJob) -> MatchResult:
        """
        Run one training match to KO or timeout.

        The job's genomes are only read; awards come back as deltas.
        """
        return self.job_result(job, self.job_simulator(job).run())

    def job_simulator(self, job: MatchJob) -> CombatSimulator:
        """A shaped simulator for a job, with sides swapped if the job says so."""
        if job.swap_sides:
            left, right = job.genome_b, job.genome_a
            left_spawn, right_spawn = job.spawn_x_b, job.spawn_x_a
        else:
            left, right = job.genome_a, job.genome_b
            left_spawn, right_spawn = job.spawn_x_a, job.spawn_x_b

        # Private players: a genome paired with itself must not share scratch buffers.
        return self.simulator(
            NeuralPlayer.from_genome(left, copy=True),
            NeuralPlayer.from_genome(right, copy=True),
            left_spawn,
            right_spawn,
            shaping=True,
        )

    def job_result(self, job: MatchJob, outcome: MatchOutcome) -> MatchResult:
        """Score a finished job simulation from the job's A/B point of view."""
        awards = score_outcome(outcome, self.fitness)

        if job.swap_sides:
            delta_a, delta_b = awards.fitness_b, awards.fitness_a
            won_a, won_b = awards.won_b, awards.won_a
            health_a, health_b = outcome.health_b, outcome.health_a
        else:
            delta_a, delta_b = awards.fitness_a, awards.fitness_b
            won_a, won_b = awards.won_a, awards.won_b
            health_a, health_b = outcome.health_a, outcome.health_b

        return MatchResult(
            job_id=job.job_id,
            fitness_delta_a=_finite(delta_a, job.job_id),
            fitness_delta_b=_finite(delta_b, job.job_id),
            won_a=won_a,
            won_b=won_b,
            final_health_a=health_a,
            final_health_b=health_b,
            ticks=outcome.ticks,
            ko=outcome.status == MatchStatus.KO,
        )

    def run_jobs(self, jobs: List[MatchJob]) -> List[MatchResult]:
        return [self.run_job(job) for job in jobs]

    def benchmark(
        self,
        genome: Genome,
        opponent: 'BasePlayer',
        matches: int = 10,
    ) -> BenchmarkResult:
        """
        Play a genome against a fixed opponent, alternating sides.

        Args:
            genome: Genome under test (its network is cloned).
            opponent: Opponent control source.
            matches: Number of matches.

        Returns:
            Win/loss record from the genome's point of view.
        """
        record = BenchmarkResult()
        for index in range(matches):
            player = NeuralPlayer.from_genome(genome, copy=True)
            genome_left = index % 2 == 0
            if genome_left:
                sim = self.simulator(player, opponent)
            else:
                sim = self.simulator(opponent, player)
            outcome = sim.run()
            opponent.on_match_end(outcome)

            own_side = 'a' if genome_left else 'b'
            winner = outcome.winner
            record.matches += 1
            record.outcomes.append(outcome)
            if winner is None:
                record.draws += 1
            elif winner == own_side:
                record.wins += 1
                if outcome.status == MatchStatus.KO:
                    record.knockouts += 1
            else:
                record.losses += 1

        logger.info(
            f"Benchmark {genome.id} vs {opponent}: "
            f"{record.wins}W {record.losses}L {record.draws}D"
        )
        return record
