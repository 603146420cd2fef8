"""
Random player implementation.

Presses each control independently at random every tick. Useful as a
baseline opponent and for exercising the simulator in tests.
"""
import random
from typing import Any, Dict, Optional, TYPE_CHECKING

from apps.arena.combat import InputState

from .base import BasePlayer

if TYPE_CHECKING:
    from apps.arena.combat import Fighter


class RandomPlayer(BasePlayer):
    """
    A player that mashes buttons.

    Attributes:
        press_probability: Chance each control is held on a given tick.
        seed: Optional random seed for reproducibility.
    """

    def __init__(
        self,
        player_id: str,
        name: Optional[str] = None,
        seed: Optional[int] = None,
        press_probability: float = 0.2,
    ):
        super().__init__(player_id=player_id, name=name or 'Random Fighter')
        self.seed = seed
        self.press_probability = press_probability
        self._rng = random.Random(seed)

    def decide(self, fighter: 'Fighter', opponent: 'Fighter') -> InputState:
        p = self.press_probability
        r = self._rng.random
        return InputState(
            left=r() < p,
            right=r() < p,
            up=r() < p / 4,
            down=r() < p / 4,
            action1=r() < p,
            action2=r() < p,
            action3=r() < p,
        )

    def get_player_type(self) -> str:
        return 'random'

    def get_config(self) -> Dict[str, Any]:
        config = super().get_config()
        config['seed'] = self.seed
        return config
