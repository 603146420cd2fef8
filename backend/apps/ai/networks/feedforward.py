"""
Fixed-topology feedforward network used as a fighter brain.

Weights live in float64 PyTorch tensors, one ``[from, to]`` matrix per
layer plus one bias vector per layer. Inference runs hidden layers
through ReLU and the output layer through a logistic sigmoid.

``predict`` is called twice per simulated tick (once per fighter) and
training runs thousands of ticks per match, so the forward pass writes
into scratch tensors allocated once at construction instead of
building new activations every call. A consequence is that a single
network instance must not be shared between threads; every match works
on its own copy (see ``clone``).
"""
from typing import Any, Dict, List, Optional, Sequence

import torch

from ..exceptions import ShapeError
from .architectures import Architecture, default_architecture

DTYPE = torch.float64

# Absolute bound applied after mutation so repeated large perturbations
# cannot saturate every unit.
WEIGHT_LIMIT = 10.0


class FeedForwardNetwork:
    """
    A small multilayer perceptron with fixed shape.

    Attributes:
        architecture: Topology of the network.
        weights: One ``[from, to]`` tensor per layer (input side first).
        biases: One ``[to]`` tensor per layer.

    Example:
        net = FeedForwardNetwork.random(Architecture(hidden_layers=(13,)))
        outputs = net.predict([0.1] * 9)   # 8 values in (0, 1)

        record = net.to_portable()
        same = FeedForwardNetwork.from_portable(record)
    """

    def __init__(
        self,
        architecture: Optional[Architecture] = None,
        weights: Optional[List[torch.Tensor]] = None,
        biases: Optional[List[torch.Tensor]] = None,
    ):
        """
        Build a network, zero-initialized unless tensors are supplied.

        Args:
            architecture: Topology; defaults to 9 → 13 → 8.
            weights: Optional weight tensors matching the architecture.
            biases: Optional bias tensors matching the architecture.

        Raises:
            ValueError: If supplied tensors do not match the architecture.
        """
        self.architecture = architecture or default_architecture()
        sizes = self.architecture.layer_sizes

        if weights is None:
            weights = [
                torch.zeros(sizes[i], sizes[i + 1], dtype=DTYPE)
                for i in range(len(sizes) - 1)
            ]
        if biases is None:
            biases = [
                torch.zeros(sizes[i + 1], dtype=DTYPE)
                for i in range(len(sizes) - 1)
            ]
        self.weights = [w.to(DTYPE) for w in weights]
        self.biases = [b.to(DTYPE) for b in biases]
        self._check_shapes()

        # Scratch buffers reused by every predict() call.
        self._input = torch.zeros(sizes[0], dtype=DTYPE)
        self._activations = [torch.zeros(size, dtype=DTYPE) for size in sizes[1:]]

    @classmethod
    def random(
        cls,
        architecture: Optional[Architecture] = None,
        generator: Optional[torch.Generator] = None,
    ) -> 'FeedForwardNetwork':
        """Create a network with every weight and bias uniform in [-1, 1]."""
        architecture = architecture or default_architecture()
        sizes = architecture.layer_sizes
        weights = [
            torch.rand(sizes[i], sizes[i + 1], dtype=DTYPE, generator=generator) * 2 - 1
            for i in range(len(sizes) - 1)
        ]
        biases = [
            torch.rand(sizes[i + 1], dtype=DTYPE, generator=generator) * 2 - 1
            for i in range(len(sizes) - 1)
        ]
        return cls(architecture, weights, biases)

    def _check_shapes(self) -> None:
        sizes = self.architecture.layer_sizes
        if len(self.weights) != len(sizes) - 1 or len(self.biases) != len(sizes) - 1:
            raise ValueError(
                f"Expected {len(sizes) - 1} layers for architecture "
                f"{self.architecture.tag}"
            )
        for i, (weight, bias) in enumerate(zip(self.weights, self.biases)):
            if tuple(weight.shape) != (sizes[i], sizes[i + 1]):
                raise ValueError(
                    f"Layer {i} weights have shape {tuple(weight.shape)}, "
                    f"expected {(sizes[i], sizes[i + 1])}"
                )
            if tuple(bias.shape) != (sizes[i + 1],):
                raise ValueError(
                    f"Layer {i} biases have shape {tuple(bias.shape)}, "
                    f"expected {(sizes[i + 1],)}"
                )

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def predict(self, inputs: Sequence[float]) -> List[float]:
        """
        Run a forward pass.

        Args:
            inputs: Exactly ``architecture.input_nodes`` values.

        Returns:
            ``architecture.output_nodes`` values in (0, 1).

        Raises:
            ShapeError: If the input length is wrong. Nothing is written
                to the scratch buffers in that case.
        """
        expected = self.architecture.input_nodes
        if len(inputs) != expected:
            raise ShapeError(expected, len(inputs))

        x = self._input
        for i, value in enumerate(inputs):
            x[i] = float(value)
        x.nan_to_num_(nan=0.0, posinf=1.0, neginf=-1.0)

        last = len(self.weights) - 1
        for index, (weight, bias) in enumerate(zip(self.weights, self.biases)):
            out = self._activations[index]
            torch.addmv(bias, weight.t(), x, out=out)
            if index == last:
                torch.sigmoid(out, out=out)
            else:
                out.clamp_(min=0.0)
            x = out

        return x.tolist()

    # ------------------------------------------------------------------
    # Evolution helpers
    # ------------------------------------------------------------------

    def mutate(
        self,
        rate: float,
        generator: Optional[torch.Generator] = None,
    ) -> 'FeedForwardNetwork':
        """Mutate in place (see ``WeightMutator``); returns self."""
        from ..evolution.mutations import WeightMutator

        return WeightMutator(generator=generator).mutate(self, rate, in_place=True)

    @staticmethod
    def crossover(
        parent_a: 'FeedForwardNetwork',
        parent_b: 'FeedForwardNetwork',
        generator: Optional[torch.Generator] = None,
    ) -> 'FeedForwardNetwork':
        """Uniform crossover of two same-topology parents (see ``UniformCrossover``)."""
        from ..evolution.crossover import UniformCrossover

        return UniformCrossover(generator=generator).crossover(parent_a, parent_b)

    def parameters(self) -> List[torch.Tensor]:
        """All weight and bias tensors, weights first."""
        return [*self.weights, *self.biases]

    def clip_(self, limit: float = WEIGHT_LIMIT) -> 'FeedForwardNetwork':
        """Clamp every weight and bias into ``[-limit, limit]`` in place."""
        for tensor in self.parameters():
            tensor.clamp_(-limit, limit)
        return self

    def is_finite(self) -> bool:
        return all(bool(torch.isfinite(t).all()) for t in self.parameters())

    def clone(self) -> 'FeedForwardNetwork':
        """An independent copy with its own tensors and scratch buffers."""
        return FeedForwardNetwork(
            self.architecture,
            [w.clone() for w in self.weights],
            [b.clone() for b in self.biases],
        )

    def same_weights(self, other: 'FeedForwardNetwork') -> bool:
        """True when both networks share topology and every value is equal."""
        if self.architecture != other.architecture:
            return False
        return all(
            torch.equal(a, b) for a, b in zip(self.parameters(), other.parameters())
        )

    @property
    def input_weights(self) -> torch.Tensor:
        return self.weights[0]

    @property
    def output_weights(self) -> torch.Tensor:
        return self.weights[-1]

    # ------------------------------------------------------------------
    # Portable records
    # ------------------------------------------------------------------

    def to_portable(self) -> Dict[str, Any]:
        """
        Lossless JSON-friendly record of the network.

        Returns:
            ``{'architectureTag': '9-13-8', 'layerWeights': [...],
            'biases': [...]}`` where ``biases`` is the per-layer biases
            concatenated (hidden layers first, outputs last).
        """
        flat_biases: List[float] = []
        for bias in self.biases:
            flat_biases.extend(bias.tolist())
        return {
            'architectureTag': self.architecture.tag,
            'layerWeights': [w.tolist() for w in self.weights],
            'biases': flat_biases,
        }

    @classmethod
    def from_portable(cls, record: Dict[str, Any]) -> 'FeedForwardNetwork':
        """
        Rebuild a network from ``to_portable`` output.

        The network is rebuilt at the architecture the record declares;
        comparing it against the running architecture is the caller's
        job (see ``check_architecture``). Single-hidden-layer records
        using ``inputWeights``/``outputWeights`` keys are accepted too.

        Raises:
            ValueError: If the record is malformed or its values do not
                fit its declared architecture.
        """
        if not isinstance(record, dict):
            raise ValueError("Network record must be a dictionary")

        if 'layerWeights' in record:
            layer_weights = record['layerWeights']
        elif 'inputWeights' in record and 'outputWeights' in record:
            layer_weights = [record['inputWeights'], record['outputWeights']]
        else:
            raise ValueError("Network record has no layer weights")

        if 'architectureTag' in record:
            architecture = Architecture.from_tag(record['architectureTag'])
        else:
            architecture = _infer_architecture(layer_weights)

        sizes = architecture.layer_sizes
        try:
            weights = [torch.tensor(layer, dtype=DTYPE) for layer in layer_weights]
            flat = torch.tensor(record.get('biases', []), dtype=DTYPE)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Network record holds non-numeric values: {e}")

        if flat.dim() != 1 or flat.numel() != architecture.bias_count:
            raise ValueError(
                f"Expected {architecture.bias_count} biases for "
                f"{architecture.tag}, found {flat.numel()}"
            )
        biases = list(torch.split(flat, sizes[1:]))
        biases = [b.clone() for b in biases]

        return cls(architecture, weights, biases)


def _infer_architecture(layer_weights: List[List[List[float]]]) -> Architecture:
    """Derive the topology of an untagged record from its matrix shapes."""
    if len(layer_weights) < 2 or not all(layer_weights):
        raise ValueError("Cannot infer architecture from empty layer weights")
    sizes = [len(layer_weights[0])]
    for layer in layer_weights:
        sizes.append(len(layer[0]))
    return Architecture(
        input_nodes=sizes[0],
        hidden_layers=tuple(sizes[1:-1]),
        output_nodes=sizes[-1],
    )
