"""
Neural network infrastructure for fighter brains.

This module provides:
- Architecture: fixed topologies (9 inputs, 1-5 hidden ReLU layers, 8 sigmoid outputs)
- FeedForwardNetwork: torch-backed inference, cloning and portable records
- ArchitectureMismatch / check_architecture: topology comparison as data
"""
from .architectures import (
    INPUT_NODES,
    OUTPUT_NODES,
    Architecture,
    ArchitectureMismatch,
    check_architecture,
    default_architecture,
)
from .feedforward import WEIGHT_LIMIT, FeedForwardNetwork

__all__ = [
    'INPUT_NODES',
    'OUTPUT_NODES',
    'Architecture',
    'ArchitectureMismatch',
    'check_architecture',
    'default_architecture',
    'WEIGHT_LIMIT',
    'FeedForwardNetwork',
]
