"""
Frame-driven interactive play.

An ``InteractiveSession`` is stepped once per rendered frame by a single
owner (a websocket consumer, a test) and publishes a ``FrameSnapshot``
after every frame.

Modes:
- ARCADE: two arbitrary control sources, one tick per frame. A finished
  match is shown for ``restart_delay_frames`` frames and then restarts.
- TRAINING: foreground neuroevolution. The session plays the
  population's pairings one match at a time, ``simulation_speed`` ticks
  per frame, and breeds the next generation once every pairing has
  been played. Fitness reaches the genomes through the same
  job/result path the worker pool uses.
"""
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from apps.arena.combat import (
    CombatConfig,
    CombatSimulator,
    FitnessConfig,
    InputState,
    NEUTRAL_INPUT,
)

from ..exceptions import ConfigurationError
from ..matches.runner import MatchJob, MatchResult, MatchRunner

if TYPE_CHECKING:
    from ..evolution.population import GenerationStats, Population
    from ..players.base import BasePlayer

logger = logging.getLogger(__name__)

ARCADE_SPAWN_JITTER = 30.0


class SessionMode(str, Enum):
    ARCADE = 'arcade'
    TRAINING = 'training'


class RoundStatus(str, Enum):
    FIGHTING = 'fighting'
    ROUND_END = 'round_end'


@dataclass
class SessionStats:
    matches_played: int = 0
    wins_a: int = 0
    wins_b: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'matchesPlayed': self.matches_played,
            'winsA': self.wins_a,
            'winsB': self.wins_b,
        }


@dataclass(frozen=True)
class FrameSnapshot:
    """Everything a renderer needs after one frame."""
    frame: int
    mode: SessionMode
    round_status: RoundStatus
    match: Dict[str, Any]
    stats: Dict[str, int]
    generation: int = 0
    matches_until_evolution: int = 0
    last_generation: Optional[Dict[str, Any]] = None
    events: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'frame': self.frame,
            'mode': self.mode.value,
            'roundStatus': self.round_status.value,
            'match': self.match,
            'stats': self.stats,
            'generation': self.generation,
            'matchesUntilEvolution': self.matches_until_evolution,
            'lastGeneration': self.last_generation,
            'events': self.events,
        }


class InteractiveSession:
    """
    Single-threaded, frame-driven match loop.

    Example:
        session = InteractiveSession(
            SessionMode.ARCADE,
            player_a=HumanPlayer('you'),
            player_b=NeuralPlayer.from_genome(champion),
        )
        while True:
            snapshot = session.frame()
            render(snapshot.to_dict())
    """

    def __init__(
        self,
        mode: SessionMode = SessionMode.ARCADE,
        player_a: Optional['BasePlayer'] = None,
        player_b: Optional['BasePlayer'] = None,
        population: Optional['Population'] = None,
        simulation_speed: int = 1,
        combat: Optional[CombatConfig] = None,
        fitness: Optional[FitnessConfig] = None,
        restart_delay_frames: int = 60,
        seed: Optional[int] = None,
    ):
        """
        Args:
            mode: ARCADE or TRAINING.
            player_a: Left control source (ARCADE).
            player_b: Right control source (ARCADE).
            population: Initialized population to evolve (TRAINING).
            simulation_speed: Ticks per frame in TRAINING mode.
            combat: Combat rules.
            fitness: Fitness constants.
            restart_delay_frames: Frames a finished ARCADE match stays on screen.
            seed: Seed for ARCADE spawn jitter.

        Raises:
            ConfigurationError: If the mode's participants are missing or
                the simulation speed is not positive.
        """
        mode = SessionMode(mode)
        if mode == SessionMode.TRAINING and population is None:
            raise ConfigurationError("TRAINING mode needs a population")
        if mode == SessionMode.ARCADE and (player_a is None or player_b is None):
            raise ConfigurationError("ARCADE mode needs two players")

        self.mode = mode
        self.player_a = player_a
        self.player_b = player_b
        self.population = population
        self.runner = MatchRunner(combat, fitness)
        self.restart_delay_frames = restart_delay_frames
        self.rng = random.Random(seed)
        self.simulation_speed = 1
        self.set_simulation_speed(simulation_speed)

        self.simulator: Optional[CombatSimulator] = None
        self.round_status = RoundStatus.FIGHTING
        self.stats = SessionStats()
        self.frame_count = 0
        self.last_generation: Optional['GenerationStats'] = None

        self._restart_in = 0
        self._jobs: List[MatchJob] = []
        self._results: List[MatchResult] = []
        self._job_index = 0
        self._events: List[Dict[str, Any]] = []

        self.start_match()

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def set_simulation_speed(self, speed: int) -> None:
        if int(speed) < 1:
            raise ConfigurationError(f"simulation_speed must be at least 1, got {speed}")
        self.simulation_speed = int(speed)

    @property
    def ticks_per_frame(self) -> int:
        return 1 if self.mode == SessionMode.ARCADE else self.simulation_speed

    @property
    def matches_until_evolution(self) -> int:
        if self.mode != SessionMode.TRAINING:
            return 0
        return len(self._jobs) - self._job_index

    # ------------------------------------------------------------------
    # Match lifecycle
    # ------------------------------------------------------------------

    def start_match(self) -> None:
        """Spawn a fresh match for the current mode."""
        if self.mode == SessionMode.ARCADE:
            offset = self.rng.uniform(-ARCADE_SPAWN_JITTER, ARCADE_SPAWN_JITTER)
            self.simulator = self.runner.simulator(
                self.player_a,
                self.player_b,
                280.0 + offset,
                470.0 - offset,
            )
        else:
            if not self._jobs:
                self._jobs = self.population.create_jobs()
                self._results = []
                self._job_index = 0
            self.simulator = self.runner.job_simulator(self._jobs[self._job_index])
        self.round_status = RoundStatus.FIGHTING

    def frame(
        self,
        input_a: InputState = NEUTRAL_INPUT,
        input_b: InputState = NEUTRAL_INPUT,
    ) -> FrameSnapshot:
        """
        Advance one rendered frame and publish its snapshot.

        Args:
            input_a: Controls for fighter A when it has no controller.
            input_b: Controls for fighter B when it has no controller.
        """
        self.frame_count += 1
        self._events = []

        if self.round_status == RoundStatus.ROUND_END:
            self._restart_in -= 1
            if self._restart_in <= 0:
                self.start_match()
            return self.snapshot()

        for _ in range(self.ticks_per_frame):
            for hit in self.simulator.step(input_a, input_b):
                self._events.append({
                    'attacker': hit.attacker,
                    'attack': hit.attack.name.lower(),
                    'damage': hit.damage,
                    'blocked': hit.blocked,
                    'backstab': hit.backstab,
                })
            if self.simulator.finished:
                self._finish_match()
                break
        return self.snapshot()

    def _finish_match(self) -> None:
        outcome = self.simulator.outcome()
        self.stats.matches_played += 1
        if outcome.winner == 'a':
            self.stats.wins_a += 1
        elif outcome.winner == 'b':
            self.stats.wins_b += 1
        logger.debug(
            f"{self.mode.value} match {self.stats.matches_played} ended by "
            f"{outcome.status.value} after {outcome.ticks} ticks"
        )

        if self.mode == SessionMode.ARCADE:
            self.player_a.on_match_end(outcome)
            self.player_b.on_match_end(outcome)
            self.round_status = RoundStatus.ROUND_END
            self._restart_in = self.restart_delay_frames
            return

        job = self._jobs[self._job_index]
        self._results.append(self.runner.job_result(job, outcome))
        self._job_index += 1
        if self._job_index >= len(self._jobs):
            self.population.apply_results(self._results)
            self.last_generation = self.population.evolve()
            self._jobs = []
        self.start_match()

    def close(self) -> None:
        """Drop an unfinished TRAINING batch so the population can be paired elsewhere."""
        if self.mode == SessionMode.TRAINING and self._jobs:
            self.population.abandon_batch()
            self._jobs = []
            self._results = []

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot(self) -> FrameSnapshot:
        return FrameSnapshot(
            frame=self.frame_count,
            mode=self.mode,
            round_status=self.round_status,
            match=self.simulator.snapshot(),
            stats=self.stats.to_dict(),
            generation=self.population.generation if self.population else 0,
            matches_until_evolution=self.matches_until_evolution,
            last_generation=self.last_generation.to_dict() if self.last_generation else None,
            events=list(self._events),
        )
