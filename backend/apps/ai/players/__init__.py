"""
Control sources for fighters.

Every fighter is driven by a player implementing ``decide(fighter,
opponent) -> InputState``: a human feeding inputs from outside, a
scripted heuristic bot, a random button masher, or an evolved network.
"""
from .base import BasePlayer
from .human import HumanPlayer
from .heuristic import HeuristicPlayer
from .random_player import RandomPlayer
from .neural import NeuralPlayer
from .registry import PlayerRegistry, get_player, register_player

__all__ = [
    'BasePlayer',
    'HumanPlayer',
    'HeuristicPlayer',
    'RandomPlayer',
    'NeuralPlayer',
    'PlayerRegistry',
    'get_player',
    'register_player',
]
