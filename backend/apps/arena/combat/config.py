"""
Combat and fitness constants.

Both dataclasses are plain values: the simulator never reads global
state, so a match is fully determined by its configuration, its spawn
positions and the decisions of its two control sources.
"""
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict

from apps.ai.exceptions import ConfigurationError


@dataclass(frozen=True)
class CombatConfig:
    """Arena geometry, physics and combat rules."""

    # Arena
    arena_width: float = 800.0
    arena_height: float = 450.0
    ground_y: float = 380.0
    gravity: float = 0.8
    friction: float = 0.85

    # Fighters
    fighter_width: float = 50.0
    fighter_height: float = 100.0
    lying_height: float = 40.0
    max_health: float = 100.0
    max_energy: float = 100.0

    # Match length (90 seconds at 60 ticks per second)
    ticks_per_second: int = 60
    match_seconds: int = 90

    # Spawn lanes
    left_spawn_min: float = 50.0
    left_spawn_max: float = 350.0
    right_spawn_min: float = 400.0
    right_spawn_max: float = 700.0

    # Movement
    move_speed: float = 1.5
    jump_velocity: float = -18.0
    crouch_slowdown: float = 0.5
    block_slowdown: float = 0.3
    attack_slowdown: float = 0.2

    # Energy
    move_cost: float = 0.5
    jump_cost: float = 12.0
    crouch_cost: float = 0.2
    block_cost: float = 0.5
    punch_cost: float = 10.0
    kick_cost: float = 15.0
    regen_idle: float = 0.5
    regen_active: float = 0.2

    # Attacks
    punch_cooldown: int = 30
    kick_cooldown: int = 40
    # Blocking holds BLOCK while cooldown > animation_lock
    block_cooldown: int = 20
    animation_lock: int = 15
    punch_active_until: int = 25
    kick_active_until: int = 30
    punch_reach: float = 46.0
    kick_reach: float = 66.0
    punch_damage: float = 5.0
    kick_damage: float = 10.0
    block_multiplier: float = 0.5
    block_energy_drain: float = 5.0
    punch_knockback: float = 8.0
    kick_knockback: float = 15.0
    knockback_lift: float = -5.0

    def __post_init__(self):
        if self.arena_width <= self.fighter_width or self.ground_y <= self.fighter_height:
            raise ConfigurationError("Arena is smaller than a fighter")
        if self.ticks_per_second <= 0 or self.match_seconds <= 0:
            raise ConfigurationError("Match length must be positive")
        if not 0.0 <= self.block_multiplier <= 1.0:
            raise ConfigurationError(
                f"block_multiplier must be in [0, 1], got {self.block_multiplier}"
            )
        if not 0.0 < self.friction <= 1.0:
            raise ConfigurationError(f"friction must be in (0, 1], got {self.friction}")

    @property
    def max_ticks(self) -> int:
        return self.ticks_per_second * self.match_seconds

    @property
    def standing_y(self) -> float:
        """Top edge of a fighter standing on the ground."""
        return self.ground_y - self.fighter_height


@dataclass(frozen=True)
class FitnessConfig:
    """
    Fitness shaping and match-end scoring.

    Per-tick values are added to a fighter's match fitness every tick
    while both fighters are alive (training evaluation only). Match-end
    values are applied once by the match runner.
    """

    # Per-tick shaping
    proximity_reward_400: float = 0.003
    proximity_reward_200: float = 0.015
    proximity_reward_80: float = 0.12
    facing_reward: float = 0.05
    aggression_reward: float = 0.25
    aggression_range: float = 100.0
    time_penalty: float = -0.008
    edge_penalty: float = -0.05
    edge_threshold: float = 80.0
    center_bonus: float = 0.03
    center_threshold: float = 120.0
    movement_bonus: float = 0.008
    movement_threshold: float = 0.5

    # Hits
    hit_bonus: float = 50.0
    hit_penalty: float = 20.0

    # Match end
    damage_multiplier: float = 3.0
    health_multiplier: float = 2.0
    ko_win_bonus: float = 400.0
    timeout_win_bonus: float = 100.0
    stalemate_penalty: float = -150.0
    stalemate_threshold: float = 40.0

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"{f.name} must be numeric, got {value!r}")
            if value != value or value in (float('inf'), float('-inf')):
                raise ConfigurationError(f"{f.name} must be finite")
        if not 0 <= self.edge_threshold <= 400 or not 0 <= self.center_threshold <= 400:
            raise ConfigurationError("Shaping thresholds must be within 0-400 pixels")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FitnessConfig':
        """
        Build a config from a partial mapping; missing keys keep defaults.

        Raises:
            ConfigurationError: On unknown keys or non-numeric values.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown fitness settings: {sorted(unknown)}")
        return cls(**data)
