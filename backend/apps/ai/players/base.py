"""
Base control source abstraction for fighters.

Every way of driving a fighter (a human at a keyboard, a scripted bot,
an evolved network) implements `decide`, which looks at both fighters
at the start of a tick and returns the seven control booleans for it.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from apps.arena.combat import Fighter, InputState, MatchOutcome


class BasePlayer(ABC):
    """
    Abstract base class for all control sources.

    Attributes:
        player_id: Unique identifier for this player instance.
        name: Human-readable name for display purposes.
        tracks_fitness: Whether the simulator applies per-tick fitness
            shaping to the fighter this player drives. Only genome-backed
            players set this.

    Example:
        class AlwaysPunch(BasePlayer):
            def decide(self, fighter, opponent):
                return InputState(action1=True)

            def get_player_type(self):
                return 'always_punch'
    """

    tracks_fitness: bool = False

    def __init__(self, player_id: str, name: Optional[str] = None):
        """
        Initialize a player.

        Args:
            player_id: Unique identifier for this player.
            name: Optional display name. Defaults to player_id if not provided.
        """
        self.player_id = player_id
        self.name = name or player_id

    @abstractmethod
    def decide(self, fighter: 'Fighter', opponent: 'Fighter') -> 'InputState':
        """
        Choose this tick's controls.

        Called once per tick, before the fighter's physics update, with
        the live fighters. Implementations must not modify either fighter.

        Args:
            fighter: The fighter this player controls.
            opponent: The other fighter.

        Returns:
            The ``InputState`` to apply this tick.
        """
        pass

    @abstractmethod
    def get_player_type(self) -> str:
        """
        Return the type identifier for this player.

        Used for serialization, logging, and player registry lookup.
        """
        pass

    def on_match_start(self) -> None:
        """Called before the first tick of a match."""
        pass

    def on_match_end(self, outcome: 'MatchOutcome') -> None:
        """Called once a match has finished."""
        pass

    def get_config(self) -> Dict[str, Any]:
        return {
            'player_id': self.player_id,
            'name': self.name,
            'type': self.get_player_type(),
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.player_id})"

    def __str__(self) -> str:
        return f"{self.name} ({self.get_player_type()})"
