"""
Deterministic two-fighter combat simulation.

Each ``step`` advances one fixed 1/60 s tick:

1. fighter A updates (decision, shaping, energy, actions, physics)
2. fighter B updates, seeing A's new state
3. body overlap is resolved symmetrically along X
4. A's hitbox is checked against B, then B's against A
5. the match ends on a knockout or when the tick budget runs out

Given identical configuration, spawns and control decisions the
simulation produces identical results; it holds no randomness of its
own.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from .config import CombatConfig, FitnessConfig
from .fighter import Fighter, HitEvent, InputState, NEUTRAL_INPUT


class MatchStatus(str, Enum):
    RUNNING = 'running'
    KO = 'ko'
    TIMEOUT = 'timeout'


@dataclass
class MatchOutcome:
    """Terminal (or current) state of a match."""
    status: MatchStatus
    ticks: int
    health_a: float
    health_b: float
    shaped_fitness_a: float
    shaped_fitness_b: float
    hits: List[HitEvent] = field(default_factory=list)
    max_health: float = 100.0

    @property
    def finished(self) -> bool:
        return self.status != MatchStatus.RUNNING

    @property
    def damage_by_a(self) -> float:
        return self.max_health - self.health_b

    @property
    def damage_by_b(self) -> float:
        return self.max_health - self.health_a

    @property
    def total_damage(self) -> float:
        return self.damage_by_a + self.damage_by_b

    @property
    def winner(self) -> Optional[str]:
        """'a', 'b' or None for a draw / running match."""
        if self.status == MatchStatus.KO:
            if self.health_a > 0 >= self.health_b:
                return 'a'
            if self.health_b > 0 >= self.health_a:
                return 'b'
            return None
        if self.status == MatchStatus.TIMEOUT:
            if self.health_a > self.health_b:
                return 'a'
            if self.health_b > self.health_a:
                return 'b'
        return None


class CombatSimulator:
    """
    Drives two fighters tick by tick.

    Attributes:
        fighter_a: Left-spawned fighter, facing right.
        fighter_b: Right-spawned fighter, facing left.
        tick: Ticks simulated so far.
        shaping: Whether per-tick fitness shaping is applied.

    Example:
        sim = CombatSimulator.create(280, 470, controller_a=bot, controller_b=net)
        while not sim.finished:
            sim.step()
        outcome = sim.outcome()
    """

    def __init__(
        self,
        fighter_a: Fighter,
        fighter_b: Fighter,
        config: Optional[CombatConfig] = None,
        fitness: Optional[FitnessConfig] = None,
        shaping: bool = False,
    ):
        self.config = config or fighter_a.config
        self.fitness = fitness or FitnessConfig()
        self.shaping = shaping
        self.fighter_a = fighter_a
        self.fighter_b = fighter_b
        self.tick = 0
        self.status = MatchStatus.RUNNING
        self.hits: List[HitEvent] = []

    @classmethod
    def create(
        cls,
        spawn_x_a: float,
        spawn_x_b: float,
        controller_a: Any = None,
        controller_b: Any = None,
        config: Optional[CombatConfig] = None,
        fitness: Optional[FitnessConfig] = None,
        shaping: bool = False,
    ) -> 'CombatSimulator':
        """
        Build a match with spawns clamped to their lanes.

        Fighters whose controller carries ``tracks_fitness = True``
        receive per-tick shaping when ``shaping`` is on.
        """
        config = config or CombatConfig()
        left = min(max(spawn_x_a, config.left_spawn_min), config.left_spawn_max)
        right = min(max(spawn_x_b, config.right_spawn_min), config.right_spawn_max)
        fighter_a = Fighter(
            left, 1, config, controller_a,
            tracks_fitness=getattr(controller_a, 'tracks_fitness', False),
            label='a',
        )
        fighter_b = Fighter(
            right, -1, config, controller_b,
            tracks_fitness=getattr(controller_b, 'tracks_fitness', False),
            label='b',
        )
        return cls(fighter_a, fighter_b, config, fitness, shaping)

    @property
    def finished(self) -> bool:
        return self.status != MatchStatus.RUNNING

    def step(
        self,
        input_a: InputState = NEUTRAL_INPUT,
        input_b: InputState = NEUTRAL_INPUT,
    ) -> List[HitEvent]:
        """
        Advance one tick. A finished match is left untouched.

        Args:
            input_a: Control for fighter A when it has no controller.
            input_b: Control for fighter B when it has no controller.

        Returns:
            Hits landed during this tick.
        """
        if self.finished:
            return []

        a, b = self.fighter_a, self.fighter_b
        shaping = self.fitness if self.shaping else None
        a.update(input_a, b, shaping)
        b.update(input_b, a, shaping)
        self._separate()

        events = []
        for attacker, defender in ((a, b), (b, a)):
            event = attacker.check_hit(defender, self.fitness)
            if event is not None:
                events.append(event)
        self.hits.extend(events)

        self.tick += 1
        if not a.alive or not b.alive:
            self.status = MatchStatus.KO
        elif self.tick >= self.config.max_ticks:
            self.status = MatchStatus.TIMEOUT
        return events

    def run(self) -> MatchOutcome:
        """Simulate to the end using attached controllers."""
        while not self.finished:
            self.step()
        return self.outcome()

    def _separate(self) -> None:
        a, b = self.fighter_a, self.fighter_b
        vertical_overlap = a.y + a.height > b.y and b.y + b.height > a.y
        if not vertical_overlap:
            return
        left, right = (a, b) if a.x < b.x else (b, a)
        overlap = left.x + left.width - right.x
        if overlap > 0:
            left.x -= overlap / 2
            right.x += overlap / 2

    def outcome(self) -> MatchOutcome:
        return MatchOutcome(
            status=self.status,
            ticks=self.tick,
            health_a=self.fighter_a.health,
            health_b=self.fighter_b.health,
            shaped_fitness_a=self.fighter_a.match_fitness,
            shaped_fitness_b=self.fighter_b.match_fitness,
            hits=list(self.hits),
            max_health=self.config.max_health,
        )

    @property
    def seconds_left(self) -> float:
        return max(0, self.config.max_ticks - self.tick) / self.config.ticks_per_second

    def snapshot(self) -> dict:
        return {
            'tick': self.tick,
            'status': self.status.value,
            'secondsLeft': round(self.seconds_left, 2),
            'fighterA': self.fighter_a.snapshot(),
            'fighterB': self.fighter_b.snapshot(),
        }
