"""
Human player implementation.

Input capture happens outside the engine (a browser, a websocket
client); the latest control state is pushed in with ``press`` and held
until the next update.
"""
from typing import Any, Dict, Optional, TYPE_CHECKING

from apps.arena.combat import InputState, NEUTRAL_INPUT

from .base import BasePlayer

if TYPE_CHECKING:
    from apps.arena.combat import Fighter


class HumanPlayer(BasePlayer):
    """A player whose controls are supplied from outside."""

    def __init__(self, player_id: str, name: Optional[str] = None):
        super().__init__(player_id=player_id, name=name or 'Human')
        self.current = NEUTRAL_INPUT

    def press(self, state: Any) -> None:
        """Replace the held controls with an ``InputState`` or a mapping of booleans."""
        if isinstance(state, InputState):
            self.current = state
        else:
            self.current = InputState.from_dict(state)

    def release(self) -> None:
        self.current = NEUTRAL_INPUT

    def decide(self, fighter: 'Fighter', opponent: 'Fighter') -> InputState:
        return self.current

    def on_match_start(self) -> None:
        self.release()

    def get_player_type(self) -> str:
        return 'human'
