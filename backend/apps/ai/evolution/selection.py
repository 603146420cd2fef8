"""
Selection strategies for the generational loop.

- rank: stable descending sort by fitness (ties keep population order)
- EliteSelection: the top genomes survive unchanged
- TruncationSelection: parents are drawn uniformly from the top fraction
"""
import random
from typing import List, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from .genome import Genome


def rank(population: List['Genome']) -> List['Genome']:
    """Population sorted best first; ``sorted`` is stable, so ties keep array order."""
    return sorted(population, key=lambda genome: genome.fitness, reverse=True)


class EliteSelection:
    """
    Elitism: preserve the best individuals unchanged.

    The elite bypass mutation and crossover and go directly to the next
    generation.
    """

    def __init__(self, elite_count: int = 2):
        self.elite_count = elite_count

    def get_elite(self, ranked: List['Genome']) -> List['Genome']:
        """
        Args:
            ranked: Population already sorted by ``rank``.
        """
        return ranked[:self.elite_count]


class TruncationSelection:
    """
    Truncation selection: only the top fraction reproduces.

    Attributes:
        pool_fraction: Share of the ranked population eligible as parents.
        min_pool: Lower bound on the pool size.
    """

    def __init__(self, pool_fraction: float = 0.25, min_pool: int = 2):
        self.pool_fraction = pool_fraction
        self.min_pool = min_pool

    def pool_size(self, population_size: int) -> int:
        size = max(self.min_pool, int(population_size * self.pool_fraction))
        return min(size, population_size)

    def select_pair(
        self,
        ranked: List['Genome'],
        rng: random.Random,
    ) -> Tuple['Genome', 'Genome']:
        """Two parents drawn independently and uniformly from the pool."""
        pool = ranked[:self.pool_size(len(ranked))]
        return rng.choice(pool), rng.choice(pool)
