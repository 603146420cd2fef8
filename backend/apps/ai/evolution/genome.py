"""
Genome: one evolving individual.

A genome owns its network exclusively. Fitness accumulates additively
over the matches of one generation and is reset when the generation
is replaced.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..networks.feedforward import FeedForwardNetwork


@dataclass
class Genome:
    """
    An evolved individual.

    Attributes:
        id: Identifier, ``gen{generation}-{index}`` for bred genomes.
        network: The fighter brain, owned by this genome.
        fitness: Fitness accumulated this generation.
        matches_won: Matches won this generation.
    """
    id: str
    network: FeedForwardNetwork
    fitness: float = 0.0
    matches_won: int = 0

    def reset_fitness(self) -> None:
        self.fitness = 0.0
        self.matches_won = 0

    def clone(self, new_id: Optional[str] = None, keep_fitness: bool = True) -> 'Genome':
        """A deep copy with its own network."""
        return Genome(
            id=new_id or self.id,
            network=self.network.clone(),
            fitness=self.fitness if keep_fitness else 0.0,
            matches_won=self.matches_won if keep_fitness else 0,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Portable form, as written inside export files and job messages."""
        return {
            'id': self.id,
            'fitness': self.fitness,
            'matchesWon': self.matches_won,
            'network': self.network.to_portable(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Genome':
        """
        Rebuild a genome from ``to_dict`` output.

        Raises:
            ValueError: If the record or its network is malformed.
        """
        if not isinstance(data, dict) or 'network' not in data:
            raise ValueError("Genome record must be a dictionary with a network")
        return cls(
            id=str(data.get('id', 'imported')),
            network=FeedForwardNetwork.from_portable(data['network']),
            fitness=float(data.get('fitness', 0.0)),
            matches_won=int(data.get('matchesWon', 0)),
        )

    def __repr__(self) -> str:
        return (
            f"Genome(id={self.id}, fitness={self.fitness:.2f}, "
            f"won={self.matches_won}, arch={self.network.architecture.tag})"
        )
