"""
Fighter brain architectures.

An architecture fixes the topology of a feedforward network:
input nodes, one or more hidden ReLU layers, sigmoid outputs.
Networks of different architectures cannot be crossed over, and a
genome exported from one architecture is not silently reshaped into
another; the mismatch is reported as an ``ArchitectureMismatch`` value.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import ConfigurationError

# Feature and action counts the combat simulator feeds / reads.
INPUT_NODES = 9
OUTPUT_NODES = 8

MIN_HIDDEN_LAYERS = 1
MAX_HIDDEN_LAYERS = 5
MIN_NODES_PER_LAYER = 4
MAX_NODES_PER_LAYER = 50


@dataclass(frozen=True)
class Architecture:
    """
    Topology of a fighter network.

    Attributes:
        input_nodes: Size of the input vector.
        hidden_layers: Sizes of the hidden layers, input side first.
        output_nodes: Number of sigmoid outputs.

    Example:
        arch = Architecture(hidden_layers=(16, 8))
        arch.tag          # '9-16-8-8'
        arch.layer_sizes  # [9, 16, 8, 8]
    """
    input_nodes: int = INPUT_NODES
    hidden_layers: Tuple[int, ...] = (13,)
    output_nodes: int = OUTPUT_NODES

    def __post_init__(self):
        # Accept lists from JSON without breaking hashability.
        object.__setattr__(self, 'hidden_layers', tuple(self.hidden_layers))

    @property
    def layer_sizes(self) -> List[int]:
        return [self.input_nodes, *self.hidden_layers, self.output_nodes]

    @property
    def tag(self) -> str:
        """Compact topology tag written into portable records."""
        return '-'.join(str(size) for size in self.layer_sizes)

    @property
    def parameter_count(self) -> int:
        sizes = self.layer_sizes
        return sum(
            sizes[i] * sizes[i + 1] + sizes[i + 1]
            for i in range(len(sizes) - 1)
        )

    @property
    def bias_count(self) -> int:
        return sum(self.hidden_layers) + self.output_nodes

    def describe(self) -> str:
        return ' → '.join(str(size) for size in self.layer_sizes)

    def validate(self) -> 'Architecture':
        """
        Check the architecture against the supported limits.

        Returns:
            self, for chaining.

        Raises:
            ConfigurationError: If any limit is violated.
        """
        if self.input_nodes < 1 or self.output_nodes < 1:
            raise ConfigurationError(
                f"Architecture {self.tag} needs at least one input and one output"
            )
        if not MIN_HIDDEN_LAYERS <= len(self.hidden_layers) <= MAX_HIDDEN_LAYERS:
            raise ConfigurationError(
                f"Architecture must have {MIN_HIDDEN_LAYERS}-{MAX_HIDDEN_LAYERS} "
                f"hidden layers, got {len(self.hidden_layers)}"
            )
        for size in self.hidden_layers:
            if not isinstance(size, int) or not (
                MIN_NODES_PER_LAYER <= size <= MAX_NODES_PER_LAYER
            ):
                raise ConfigurationError(
                    f"Hidden layer size {size!r} outside "
                    f"{MIN_NODES_PER_LAYER}-{MAX_NODES_PER_LAYER}"
                )
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            'input_nodes': self.input_nodes,
            'hidden_layers': list(self.hidden_layers),
            'output_nodes': self.output_nodes,
        }

    @classmethod
    def from_tag(cls, tag: str) -> 'Architecture':
        """
        Parse a tag such as ``'9-13-8'``.

        Raises:
            ValueError: If the tag is malformed.
        """
        try:
            sizes = [int(part) for part in str(tag).split('-')]
        except ValueError:
            raise ValueError(f"Malformed architecture tag: {tag!r}")
        if len(sizes) < 3:
            raise ValueError(f"Architecture tag needs at least 3 layers: {tag!r}")
        return cls(
            input_nodes=sizes[0],
            hidden_layers=tuple(sizes[1:-1]),
            output_nodes=sizes[-1],
        )


@dataclass(frozen=True)
class ArchitectureMismatch:
    """
    A portable network built for a different topology than the running one.

    Returned (never raised) so callers can decide whether to reject the
    import or switch the running configuration to ``found``.
    """
    expected: Architecture
    found: Architecture

    @property
    def message(self) -> str:
        return (
            f"Architecture mismatch: running {self.expected.tag}, "
            f"record has {self.found.tag}"
        )

    def __str__(self) -> str:
        return self.message


def default_architecture() -> Architecture:
    """The standard fighter brain: 9 → 13 → 8."""
    return Architecture()


def check_architecture(
    expected: Architecture,
    found: Architecture,
) -> Optional[ArchitectureMismatch]:
    """Return a mismatch record, or None when the two topologies agree."""
    if expected == found:
        return None
    return ArchitectureMismatch(expected=expected, found=found)
