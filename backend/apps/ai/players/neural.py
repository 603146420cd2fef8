"""
Neural network player implementation.

A player driven by an evolved feedforward network: the fighters' state
is encoded into nine features, the network runs one forward pass, and
every output above 0.5 switches the matching control on.
"""
from typing import Any, Dict, Optional, TYPE_CHECKING

from apps.arena.combat import decode_outputs, encode_inputs

from .base import BasePlayer

if TYPE_CHECKING:
    from apps.arena.combat import Fighter, InputState
    from ..evolution.genome import Genome
    from ..networks.feedforward import FeedForwardNetwork


class NeuralPlayer(BasePlayer):
    """
    A player that uses a network for decisions.

    The player holds its own network instance; the network's scratch
    buffers make it unsafe to share one instance between two players
    that may run concurrently.

    Attributes:
        network: The fighter brain.
        genome_id: Id of the genome the network came from, if any.

    Example:
        player = NeuralPlayer.from_genome(genome)
        sim = CombatSimulator.create(280, 470, controller_a=player, ...)
    """

    tracks_fitness = True

    def __init__(
        self,
        player_id: str,
        network: 'FeedForwardNetwork',
        name: Optional[str] = None,
        genome_id: Optional[str] = None,
    ):
        super().__init__(player_id=player_id, name=name or 'Neural Fighter')
        self.network = network
        self.genome_id = genome_id

    @classmethod
    def from_genome(cls, genome: 'Genome', copy: bool = False) -> 'NeuralPlayer':
        """
        Create a player driven by a genome's network.

        Args:
            genome: Source genome.
            copy: Clone the network instead of borrowing it.
        """
        network = genome.network.clone() if copy else genome.network
        return cls(
            player_id=f'neural-{genome.id}',
            network=network,
            name=genome.id,
            genome_id=genome.id,
        )

    def decide(self, fighter: 'Fighter', opponent: 'Fighter') -> 'InputState':
        outputs = self.network.predict(encode_inputs(fighter, opponent))
        return decode_outputs(outputs)

    def get_player_type(self) -> str:
        return 'neural'

    def get_config(self) -> Dict[str, Any]:
        config = super().get_config()
        config['architecture'] = self.network.architecture.tag
        config['genome_id'] = self.genome_id
        return config
