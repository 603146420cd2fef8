"""
Control source registry.

Maps type names ('human', 'heuristic', 'random', 'neural') to player
classes so that the arena consumer and the management command can
build opponents from plain strings.
"""
from typing import Any, Callable, Dict, List, Optional, Type

from .base import BasePlayer


class PlayerRegistry:
    """
    Registry of player classes keyed by type name.

    Example:
        PlayerRegistry.register('turtle', TurtlePlayer)
        bot = PlayerRegistry.create('turtle', player_id='p2')
    """

    _registry: Dict[str, Type[BasePlayer]] = {}

    @classmethod
    def register(cls, player_type: str, player_class: Type[BasePlayer]) -> None:
        """
        Register a player class.

        Raises:
            ValueError: If the type name is taken.
            TypeError: If the class is not a BasePlayer subclass.
        """
        if player_type in cls._registry:
            raise ValueError(f"Player type '{player_type}' is already registered")
        if not issubclass(player_class, BasePlayer):
            raise TypeError(
                f"Player class must be a subclass of BasePlayer, "
                f"got {player_class.__name__}"
            )
        cls._registry[player_type] = player_class

    @classmethod
    def unregister(cls, player_type: str) -> None:
        cls._registry.pop(player_type, None)

    @classmethod
    def get(cls, player_type: str) -> Optional[Type[BasePlayer]]:
        return cls._registry.get(player_type)

    @classmethod
    def create(cls, player_type: str, player_id: str, **kwargs: Any) -> BasePlayer:
        """
        Instantiate a registered player.

        Raises:
            ValueError: If the type name is unknown.
        """
        player_class = cls.get(player_type)
        if player_class is None:
            available = ', '.join(sorted(cls._registry)) or '(none)'
            raise ValueError(
                f"Unknown player type '{player_type}'. Available types: {available}"
            )
        return player_class(player_id=player_id, **kwargs)

    @classmethod
    def list_types(cls) -> List[str]:
        return sorted(cls._registry)


def register_player(player_type: str) -> Callable[[Type[BasePlayer]], Type[BasePlayer]]:
    """Class decorator form of ``PlayerRegistry.register``."""
    def decorator(cls: Type[BasePlayer]) -> Type[BasePlayer]:
        PlayerRegistry.register(player_type, cls)
        return cls
    return decorator


def get_player(player_type: str, player_id: str, **kwargs: Any) -> BasePlayer:
    return PlayerRegistry.create(player_type, player_id, **kwargs)


def _register_builtin_players() -> None:
    from .heuristic import HeuristicPlayer
    from .human import HumanPlayer
    from .neural import NeuralPlayer
    from .random_player import RandomPlayer

    PlayerRegistry.register('human', HumanPlayer)
    PlayerRegistry.register('heuristic', HeuristicPlayer)
    PlayerRegistry.register('random', RandomPlayer)
    PlayerRegistry.register('neural', NeuralPlayer)


_register_builtin_players()
