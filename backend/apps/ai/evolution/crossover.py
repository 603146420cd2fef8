"""
Crossover operators for neuroevolution.

Uniform crossover on fixed-topology networks: each weight and each bias
of the child is taken from parent A or parent B with equal probability.
Parents must share an architecture; structural recombination of
different topologies is not supported.
"""
from typing import Optional, TYPE_CHECKING

import torch

if TYPE_CHECKING:
    from ..networks.feedforward import FeedForwardNetwork


class UniformCrossover:
    """
    Per-value uniform crossover.

    Attributes:
        generator: Torch RNG used for the parent choice masks.
        bias_a: Probability of taking a value from parent A.

    Example:
        child = UniformCrossover(generator=gen).crossover(parent_a, parent_b)
    """

    def __init__(
        self,
        generator: Optional[torch.Generator] = None,
        bias_a: float = 0.5,
    ):
        self.generator = generator
        self.bias_a = bias_a

    def crossover(
        self,
        parent_a: 'FeedForwardNetwork',
        parent_b: 'FeedForwardNetwork',
    ) -> 'FeedForwardNetwork':
        """
        Produce one child; both parents are left untouched.

        Raises:
            ValueError: If the parents have different architectures.
        """
        self._check_compatible(parent_a, parent_b)

        child = parent_a.clone()
        for param, from_a, from_b in zip(
            child.parameters(), parent_a.parameters(), parent_b.parameters(),
        ):
            take_a = torch.rand(param.shape, dtype=param.dtype, generator=self.generator) < self.bias_a
            param.copy_(torch.where(take_a, from_a, from_b))
        return child

    @staticmethod
    def _check_compatible(
        parent_a: 'FeedForwardNetwork',
        parent_b: 'FeedForwardNetwork',
    ) -> None:
        if parent_a.architecture != parent_b.architecture:
            raise ValueError(
                f"Cannot cross over {parent_a.architecture.tag} with "
                f"{parent_b.architecture.tag}"
            )
