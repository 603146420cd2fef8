"""
Mutation operators for neuroevolution.

Implements:
1. Weight perturbation on fixed-topology networks
2. The mutation-rate schedule: linear decay to a floor, with an optional
   "intelligent" mode that spikes the rate on fitness plateaus and adds
   a periodic boost to escape local optima

Perturbation rule, applied independently to every weight and bias:
with probability ``rate`` the value is perturbed; 10% of perturbations
are large (uniform in [-2, 2]), the rest small (uniform in
±(0.5 + rate * 0.5)). Values are clipped to ±WEIGHT_LIMIT afterwards.
"""
from dataclasses import dataclass
from typing import Optional, Sequence, TYPE_CHECKING

import torch

from ..networks.feedforward import WEIGHT_LIMIT

if TYPE_CHECKING:
    from ..networks.feedforward import FeedForwardNetwork

LARGE_PERTURBATION_SHARE = 0.1
LARGE_PERTURBATION_RANGE = 2.0


class WeightMutator:
    """
    Weight perturbation mutation operator.

    Attributes:
        generator: Torch RNG used for every draw; None uses the global RNG.
        weight_limit: Clip bound applied after perturbation.

    Example:
        mutator = WeightMutator(generator=torch.Generator().manual_seed(0))
        child = mutator.mutate(parent, rate=0.3)      # parent untouched
        mutator.mutate(child, rate=0.1, in_place=True)
    """

    def __init__(
        self,
        generator: Optional[torch.Generator] = None,
        weight_limit: float = WEIGHT_LIMIT,
    ):
        self.generator = generator
        self.weight_limit = weight_limit

    def mutate(
        self,
        network: 'FeedForwardNetwork',
        rate: float,
        in_place: bool = False,
    ) -> 'FeedForwardNetwork':
        """
        Perturb a network's weights and biases.

        Args:
            network: The network to mutate.
            rate: Per-value mutation probability in [0, 1]. At 0 nothing
                changes; at 1 every value is perturbed.
            in_place: Modify ``network`` instead of a clone.

        Returns:
            The mutated network (``network`` itself when in_place).

        Raises:
            ValueError: If rate is outside [0, 1].
        """
        if not 0.0 <= rate <= 1.0:
            raise ValueError(f"Mutation rate must be in [0, 1], got {rate}")
        if not in_place:
            network = network.clone()

        small = 0.5 + rate * 0.5
        gen = self.generator
        for param in network.parameters():
            mask = torch.rand(param.shape, dtype=param.dtype, generator=gen) < rate
            large = torch.rand(param.shape, dtype=param.dtype, generator=gen) < LARGE_PERTURBATION_SHARE
            large_delta = (
                torch.rand(param.shape, dtype=param.dtype, generator=gen) * 2 - 1
            ) * LARGE_PERTURBATION_RANGE
            small_delta = (
                torch.rand(param.shape, dtype=param.dtype, generator=gen) * 2 - 1
            ) * small
            delta = torch.where(large, large_delta, small_delta)
            param.copy_(torch.where(mask, param + delta, param))

        return network.clip_(self.weight_limit)


@dataclass
class MutationSchedule:
    """
    Generation-dependent mutation rate.

    ``rate(generation) = max(floor, base_rate - generation * decay_step)``.
    With ``intelligent`` on, the decayed rate is raised to at least
    ``plateau_rate`` when the best fitness improved by less than
    ``plateau_improvement`` (relative) over the last ``plateau_window``
    generations, and ``oscillation_boost`` is added every
    ``oscillation_interval`` generations; the result is capped at
    ``max_rate``.
    """

    base_rate: float = 0.30
    decay_step: float = 0.008
    floor: float = 0.05
    intelligent: bool = False
    plateau_window: int = 5
    plateau_improvement: float = 0.01
    plateau_rate: float = 0.20
    oscillation_interval: int = 25
    oscillation_boost: float = 0.05
    max_rate: float = 0.35

    def decayed(self, generation: int) -> float:
        return max(self.floor, self.base_rate - generation * self.decay_step)

    def rate(self, generation: int, best_history: Sequence[float] = ()) -> float:
        """
        Mutation rate for a generation.

        Args:
            generation: Generation being produced.
            best_history: Best fitness per past generation, oldest first.
                Only used in intelligent mode.
        """
        rate = self.decayed(generation)
        if not self.intelligent:
            return rate

        if self.is_plateau(best_history):
            rate = max(rate, self.plateau_rate)
        if generation > 0 and generation % self.oscillation_interval == 0:
            rate += self.oscillation_boost
        return max(self.floor, min(self.max_rate, rate))

    def is_plateau(self, best_history: Sequence[float]) -> bool:
        if len(best_history) < self.plateau_window:
            return False
        recent = list(best_history)[-self.plateau_window:]
        oldest, newest = recent[0], recent[-1]
        improvement = newest - oldest
        ratio = improvement / oldest if oldest > 0 else improvement
        return ratio < self.plateau_improvement
