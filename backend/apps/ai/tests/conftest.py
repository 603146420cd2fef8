"""
Pytest fixtures for AI app tests.

Provides fixtures for:
- Network architectures and seeded networks
- Genomes and populations
- Short combat configurations so full matches stay fast
"""
import pytest
import torch

from apps.arena.combat import CombatConfig, FitnessConfig
from apps.ai.evolution import EvolutionConfig, Genome, Population
from apps.ai.networks import Architecture, FeedForwardNetwork


@pytest.fixture
def generator() -> torch.Generator:
    """Seeded torch RNG."""
    return torch.Generator().manual_seed(1234)


@pytest.fixture
def architecture() -> Architecture:
    """The default 9-13-8 topology."""
    return Architecture()


@pytest.fixture
def deep_architecture() -> Architecture:
    """A three-hidden-layer topology."""
    return Architecture(hidden_layers=(16, 12, 8))


@pytest.fixture
def network(architecture, generator) -> FeedForwardNetwork:
    """A random network with a fixed seed."""
    return FeedForwardNetwork.random(architecture, generator=generator)


@pytest.fixture
def make_genome(generator):
    """Factory fixture for random genomes."""
    def _make(genome_id: str = 'g', fitness: float = 0.0, architecture=None) -> Genome:
        return Genome(
            id=genome_id,
            network=FeedForwardNetwork.random(architecture, generator=generator),
            fitness=fitness,
        )
    return _make


@pytest.fixture
def fast_combat() -> CombatConfig:
    """Two-second matches (120 ticks)."""
    return CombatConfig(match_seconds=2)


@pytest.fixture
def fitness_config() -> FitnessConfig:
    return FitnessConfig()


@pytest.fixture
def evolution_config() -> EvolutionConfig:
    return EvolutionConfig(population_size=6, seed=11)


@pytest.fixture
def population(evolution_config) -> Population:
    """An initialized, seeded population of six."""
    return Population(evolution_config).initialize()
