"""
Fighter state and per-tick fighter update.

A fighter is created per match and owns nothing beyond its physical
state and the fitness it accumulated during the match. Decisions come
either from the ``InputState`` passed to ``update`` or, when a control
source is attached, from ``controller.decide(fighter, opponent)``.
"""
from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any, Dict, Optional

from .config import CombatConfig, FitnessConfig


class ActionState(IntEnum):
    """Fighter action states; values index the network outputs."""
    IDLE = 0
    MOVE_LEFT = 1
    MOVE_RIGHT = 2
    JUMP = 3
    CROUCH = 4
    PUNCH = 5
    KICK = 6
    BLOCK = 7


@dataclass(frozen=True)
class InputState:
    """Seven control booleans for one tick."""
    left: bool = False
    right: bool = False
    up: bool = False
    down: bool = False
    action1: bool = False  # punch
    action2: bool = False  # kick
    action3: bool = False  # block

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'InputState':
        """Build from a mapping, ignoring unknown keys and coercing to bool."""
        return cls(**{
            key: bool(data.get(key, False))
            for key in ('left', 'right', 'up', 'down', 'action1', 'action2', 'action3')
        })


NEUTRAL_INPUT = InputState()


@dataclass
class Hitbox:
    x: float
    y: float
    w: float
    h: float

    def overlaps(self, fighter: 'Fighter') -> bool:
        return (
            self.x < fighter.x + fighter.width
            and self.x + self.w > fighter.x
            and self.y < fighter.y + fighter.height
            and self.y + self.h > fighter.y
        )


@dataclass
class HitEvent:
    """A landed attack, reported by ``CombatSimulator.step``."""
    attacker: str
    defender: str
    attack: ActionState
    damage: float
    blocked: bool
    backstab: bool


class Fighter:
    """
    One combatant.

    Attributes:
        label: 'a' or 'b'; used in hit events and snapshots.
        x, y: Top-left corner of the body box.
        health, energy: Clamped to [0, max].
        direction: +1 facing right, -1 facing left.
        cooldown: Ticks until another attack may start.
        match_fitness: Fitness accumulated during this match.
        controller: Optional control source with ``decide(self, opponent)``.
        tracks_fitness: Whether per-tick shaping applies to this fighter.
    """

    def __init__(
        self,
        x: float,
        direction: int = 1,
        config: Optional[CombatConfig] = None,
        controller: Any = None,
        tracks_fitness: bool = False,
        label: str = 'a',
    ):
        self.config = config or CombatConfig()
        self.label = label
        self.width = self.config.fighter_width
        self.height = self.config.fighter_height
        self.x = float(x)
        self.y = self.config.standing_y
        self.vx = 0.0
        self.vy = 0.0
        self.health = self.config.max_health
        self.energy = self.config.max_energy
        self.state = ActionState.IDLE
        self.direction = 1 if direction >= 0 else -1
        self.cooldown = 0
        self.hitbox: Optional[Hitbox] = None
        self.attack_landed = False
        self.match_fitness = 0.0
        self.controller = controller
        self.tracks_fitness = tracks_fitness

    @property
    def alive(self) -> bool:
        return self.health > 0

    @property
    def on_ground(self) -> bool:
        return self.y >= self.config.standing_y - 1

    def facing(self, other: 'Fighter') -> bool:
        dx = other.x - self.x
        return (dx > 0 and self.direction == 1) or (dx < 0 and self.direction == -1)

    def update(
        self,
        control: InputState,
        opponent: 'Fighter',
        shaping: Optional[FitnessConfig] = None,
    ) -> None:
        """
        Advance this fighter by one tick.

        Args:
            control: Input used when no controller is attached.
            opponent: The other fighter (read only).
            shaping: Fitness shaping constants, or None outside training.
        """
        cfg = self.config

        if not self.alive:
            self._fall()
            return

        if self.controller is not None:
            control = self.controller.decide(self, opponent)

        if shaping is not None and self.tracks_fitness and opponent.alive:
            self.match_fitness += shaping_delta(self, opponent, shaping)

        if self.cooldown > 0:
            self.cooldown -= 1

        idle = abs(self.vx) < 0.5 and self.state == ActionState.IDLE
        if self.energy < cfg.max_energy:
            self.energy = min(
                cfg.max_energy,
                self.energy + (cfg.regen_idle if idle else cfg.regen_active),
            )

        if self.cooldown <= cfg.animation_lock:
            self._apply_movement(control)

        self.hitbox = None
        if self.cooldown == 0:
            self._start_attack(control)
        self._activate_hitbox()

        self.x += self.vx
        self.y += self.vy
        self.vy += cfg.gravity
        self.vx *= cfg.friction

        if self.y > cfg.standing_y:
            self.y = cfg.standing_y
            self.vy = 0.0
            if self.state == ActionState.JUMP:
                self.state = ActionState.IDLE
        self.x = min(max(self.x, 0.0), cfg.arena_width - self.width)

    def _fall(self) -> None:
        cfg = self.config
        self.y += self.vy
        self.vy += cfg.gravity
        floor = cfg.ground_y - cfg.lying_height
        if self.y > floor:
            self.y = floor
            self.vx *= 0.5
            self.vy = 0.0
        else:
            self.x += self.vx
        self.hitbox = None

    def _apply_movement(self, control: InputState) -> None:
        cfg = self.config
        if control.left and self.energy >= cfg.move_cost:
            self.vx -= cfg.move_speed
            self.energy -= cfg.move_cost
            self.direction = -1
            self.state = ActionState.MOVE_LEFT
        elif control.right and self.energy >= cfg.move_cost:
            self.vx += cfg.move_speed
            self.energy -= cfg.move_cost
            self.direction = 1
            self.state = ActionState.MOVE_RIGHT
        else:
            self.state = ActionState.IDLE

        if control.up and self.on_ground and self.energy >= cfg.jump_cost:
            self.vy = cfg.jump_velocity
            self.energy -= cfg.jump_cost
            self.state = ActionState.JUMP

        if control.down and self.on_ground and self.energy >= cfg.crouch_cost:
            self.state = ActionState.CROUCH
            self.energy -= cfg.crouch_cost
            self.vx *= cfg.crouch_slowdown

        if control.action3 and self.energy >= cfg.block_cost:
            self.state = ActionState.BLOCK
            self.energy -= cfg.block_cost
            self.vx *= cfg.block_slowdown
            self.cooldown = max(self.cooldown, cfg.block_cooldown)

    def _start_attack(self, control: InputState) -> None:
        cfg = self.config
        if control.action1 and self.energy > cfg.punch_cost:
            self.state = ActionState.PUNCH
            self.attack_landed = False
            self.vx *= cfg.attack_slowdown
            self.cooldown = cfg.punch_cooldown
            self.energy -= cfg.punch_cost
        elif control.action2 and self.energy > cfg.kick_cost:
            self.state = ActionState.KICK
            self.attack_landed = False
            self.vx *= cfg.attack_slowdown
            self.cooldown = cfg.kick_cooldown
            self.energy -= cfg.kick_cost

    def _activate_hitbox(self) -> None:
        if self.attack_landed:
            return
        cfg = self.config
        lock = cfg.animation_lock
        if self.state == ActionState.PUNCH and lock < self.cooldown < cfg.punch_active_until:
            reach = cfg.punch_reach
            self.hitbox = Hitbox(
                x=self.x + self.width if self.direction == 1 else self.x - reach,
                y=self.y + 20,
                w=reach,
                h=20,
            )
        elif self.state == ActionState.KICK and lock < self.cooldown < cfg.kick_active_until:
            reach = cfg.kick_reach
            self.hitbox = Hitbox(
                x=self.x + self.width if self.direction == 1 else self.x - reach,
                y=self.y + 40,
                w=reach,
                h=30,
            )

    def check_hit(
        self,
        opponent: 'Fighter',
        fitness: Optional[FitnessConfig] = None,
    ) -> Optional[HitEvent]:
        """
        Resolve this fighter's active hitbox against the opponent.

        The hitbox is consumed on contact and stays off for the rest of the
        attack, so an attack lands at most once.

        Returns:
            The resulting ``HitEvent``, or None when nothing landed.
        """
        if self.hitbox is None or not opponent.alive:
            return None
        if not self.hitbox.overlaps(opponent):
            return None

        cfg = self.config
        fitness = fitness or FitnessConfig()
        attack = self.state
        attacker_to_right = self.x > opponent.x
        backstab = (
            (attacker_to_right and opponent.direction == -1)
            or (not attacker_to_right and opponent.direction == 1)
        )
        blocked = False

        if backstab:
            damage = opponent.health
            opponent.health = 0.0
        else:
            damage = cfg.punch_damage if attack == ActionState.PUNCH else cfg.kick_damage
            if opponent.state == ActionState.BLOCK:
                blocked = True
                damage *= cfg.block_multiplier
                opponent.energy = max(0.0, opponent.energy - cfg.block_energy_drain)
            opponent.health = max(0.0, opponent.health - damage)
            self.match_fitness += fitness.hit_bonus
            opponent.match_fitness -= fitness.hit_penalty

        knockback = cfg.kick_knockback if attack == ActionState.KICK else cfg.punch_knockback
        opponent.vx = self.direction * knockback
        opponent.vy = cfg.knockback_lift
        self.hitbox = None
        self.attack_landed = True

        return HitEvent(
            attacker=self.label,
            defender=opponent.label,
            attack=attack,
            damage=damage,
            blocked=blocked,
            backstab=backstab,
        )

    def snapshot(self) -> Dict[str, Any]:
        """Rendering-oriented view of the fighter."""
        return {
            'x': self.x,
            'y': self.y,
            'vx': self.vx,
            'vy': self.vy,
            'health': self.health,
            'energy': self.energy,
            'state': self.state.name,
            'direction': self.direction,
            'cooldown': self.cooldown,
            'hitbox': asdict(self.hitbox) if self.hitbox else None,
        }

    def __repr__(self) -> str:
        return (
            f"Fighter({self.label}, x={self.x:.1f}, health={self.health:.1f}, "
            f"state={self.state.name})"
        )


def shaping_delta(fighter: Fighter, opponent: Fighter, cfg: FitnessConfig) -> float:
    """
    Per-tick shaping reward for ``fighter``.

    Terms are summed in a fixed order: proximity bands, facing,
    close-range attack, time penalty, edge penalty, center bonus,
    movement bonus.
    """
    arena_width = fighter.config.arena_width
    dist = abs(fighter.x - opponent.x)
    delta = 0.0

    if dist < 400:
        delta += cfg.proximity_reward_400
    if dist < 200:
        delta += cfg.proximity_reward_200
    if dist < 80:
        delta += cfg.proximity_reward_80

    if fighter.facing(opponent):
        delta += cfg.facing_reward

    if dist < cfg.aggression_range and fighter.state in (ActionState.PUNCH, ActionState.KICK):
        delta += cfg.aggression_reward

    delta += cfg.time_penalty

    if fighter.x < cfg.edge_threshold or fighter.x > arena_width - fighter.width - cfg.edge_threshold:
        delta += cfg.edge_penalty

    center_offset = abs(fighter.x + fighter.width / 2 - arena_width / 2)
    if center_offset < cfg.center_threshold:
        delta += cfg.center_bonus

    if abs(fighter.vx) > cfg.movement_threshold:
        delta += cfg.movement_bonus

    return delta
