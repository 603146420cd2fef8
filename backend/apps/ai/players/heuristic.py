"""
Heuristic (scripted) player implementation.

A hand-written fighting bot used as a sparring partner and as a fixed
benchmark for evolved networks. Priorities, highest first:

- turn around when the opponent is behind
- block when an attack is coming inside the danger zone
- hop over close kicks (and occasionally at random)
- attack when in range and the moment is good
- otherwise approach from far away, or back off when crowded

A seeded ``random.Random`` provides the bot's unpredictability, so a
match between a network and a seeded bot is reproducible.
"""
import random
from typing import Any, Dict, Optional, TYPE_CHECKING

from apps.arena.combat import ActionState, InputState

from .base import BasePlayer

if TYPE_CHECKING:
    from apps.arena.combat import Fighter


class HeuristicPlayer(BasePlayer):
    """
    A player that fights using hand-coded rules.

    Attributes:
        punch_range: Distance under which the bot prefers punches.
        kick_range: Distance under which the bot kicks.
        danger_zone: Distance under which the bot considers blocking.
        approach_distance: Distance above which the bot closes in.

    Example:
        bot = HeuristicPlayer(player_id='bot', seed=7)
        controls = bot.decide(fighter, opponent)
    """

    def __init__(
        self,
        player_id: str,
        name: Optional[str] = None,
        seed: Optional[int] = None,
        punch_range: float = 80.0,
        kick_range: float = 120.0,
        danger_zone: float = 130.0,
        approach_distance: float = 200.0,
    ):
        super().__init__(player_id=player_id, name=name or 'Scripted Bot')
        self.seed = seed
        self._rng = random.Random(seed)
        self.punch_range = punch_range
        self.kick_range = kick_range
        self.danger_zone = danger_zone
        self.approach_distance = approach_distance

    def decide(self, fighter: 'Fighter', opponent: 'Fighter') -> InputState:
        rng = self._rng
        distance = abs(fighter.x - opponent.x)
        opponent_to_right = opponent.x > fighter.x

        move_left = move_right = jump = punch = kick = block = False

        if self._opponent_behind(fighter, opponent_to_right):
            move_right = opponent_to_right
            move_left = not opponent_to_right

        if self._should_block(fighter, opponent, distance):
            block = True
            move_left = move_right = False

        if self._should_jump(fighter, opponent, distance):
            jump = True

        if not block and self._good_time_to_attack(fighter, opponent):
            if distance < self.punch_range:
                if rng.random() < 0.7:
                    punch = True
                else:
                    kick = True
            elif distance < self.kick_range:
                kick = True

        if not (block or punch or kick):
            if fighter.energy > 30 and distance > self.approach_distance and rng.random() < 0.8:
                move_right = opponent_to_right
                move_left = not opponent_to_right
            elif distance < 50 and rng.random() < 0.3:
                # Back away from a crowding opponent.
                move_left = opponent_to_right
                move_right = not opponent_to_right

        return InputState(
            left=move_left,
            right=move_right,
            up=jump,
            down=False,
            action1=punch,
            action2=kick,
            action3=block,
        )

    @staticmethod
    def _opponent_behind(fighter: 'Fighter', opponent_to_right: bool) -> bool:
        return (
            (opponent_to_right and fighter.direction == -1)
            or (not opponent_to_right and fighter.direction == 1)
        )

    def _should_block(self, fighter: 'Fighter', opponent: 'Fighter', distance: float) -> bool:
        if fighter.energy < 20:
            return False
        in_danger = distance < self.danger_zone
        attacking = 15 < opponent.cooldown < 35
        if attacking and in_danger:
            return True
        return in_danger and self._rng.random() < 0.2

    def _should_jump(self, fighter: 'Fighter', opponent: 'Fighter', distance: float) -> bool:
        if fighter.y < fighter.config.standing_y - 10 or fighter.energy < 25:
            return False
        if opponent.state == ActionState.KICK and opponent.cooldown > 15 and distance < 80:
            return True
        return self._rng.random() < 0.05

    def _good_time_to_attack(self, fighter: 'Fighter', opponent: 'Fighter') -> bool:
        if fighter.cooldown > 10 or fighter.energy < 15:
            return False
        vulnerable = (
            opponent.cooldown > 15
            or opponent.energy < 10
            or opponent.state == ActionState.JUMP
        )
        return vulnerable or self._rng.random() < 0.4

    def on_match_start(self) -> None:
        if self.seed is not None:
            self._rng.seed(self.seed)

    def get_player_type(self) -> str:
        return 'heuristic'

    def get_config(self) -> Dict[str, Any]:
        config = super().get_config()
        config['seed'] = self.seed
        return config
