"""
Exception taxonomy for the training engine.

Architecture mismatches are deliberately absent here: an imported genome
built for another topology is reported back as data
(see ``apps.ai.networks.architectures.ArchitectureMismatch``).
"""
from typing import Iterable, List


class ShapeError(ValueError):
    """Raised when an input vector does not match a network's input layer."""

    def __init__(self, expected: int, received: int):
        self.expected = expected
        self.received = received
        super().__init__(
            f"Expected {expected} network inputs, received {received}"
        )


class ConfigurationError(ValueError):
    """Raised for degenerate or out-of-range configuration values."""


class JobResultMismatchError(RuntimeError):
    """
    Raised when a batch returns fewer results than jobs were dispatched.

    Attributes:
        expected_ids: Job ids that were submitted.
        received_ids: Job ids a result came back for.
    """

    def __init__(self, expected_ids: Iterable[int], received_ids: Iterable[int]):
        self.expected_ids: List[int] = sorted(expected_ids)
        self.received_ids: List[int] = sorted(received_ids)
        super().__init__(
            f"Batch incomplete: {len(self.received_ids)} of "
            f"{len(self.expected_ids)} results received "
            f"(missing jobs {self.missing_ids})"
        )

    @property
    def missing_ids(self) -> List[int]:
        received = set(self.received_ids)
        return [job_id for job_id in self.expected_ids if job_id not in received]


class PoolBusyError(RuntimeError):
    """Raised when a batch is submitted while another is still in flight."""


class PoolClosedError(RuntimeError):
    """Raised when a terminated worker pool is asked to run matches."""
