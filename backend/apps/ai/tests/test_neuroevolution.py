"""
Tests for neuroevolution operators.

Tests the mutation, crossover, and selection operators for:
- Weight perturbation correctness and bounds
- Adaptive mutation schedule
- Uniform crossover provenance
- Elite and truncation selection
"""
import random

import pytest
import torch

from apps.ai.evolution import (
    EliteSelection,
    Genome,
    MutationSchedule,
    TruncationSelection,
    UniformCrossover,
    WeightMutator,
    rank,
)
from apps.ai.networks import WEIGHT_LIMIT, Architecture, FeedForwardNetwork


class TestWeightMutator:
    """Tests for WeightMutator."""

    @pytest.fixture
    def mutator(self, generator):
        """Create a seeded weight mutator."""
        return WeightMutator(generator=generator)

    def test_rate_zero_changes_nothing(self, mutator, network):
        """Test that mutate(rate=0) leaves every value unchanged."""
        mutated = mutator.mutate(network, rate=0.0)
        assert mutated.same_weights(network)

    def test_rate_one_changes_every_weight(self, mutator, network):
        """Test that mutate(rate=1) perturbs every value."""
        mutated = mutator.mutate(network, rate=1.0)
        for before, after in zip(network.parameters(), mutated.parameters()):
            assert bool((before != after).all())

    def test_not_in_place_by_default(self, mutator, network):
        original = network.clone()
        mutated = mutator.mutate(network, rate=0.5)
        assert mutated is not network
        assert network.same_weights(original)

    def test_in_place(self, mutator, network):
        original = network.clone()
        result = mutator.mutate(network, rate=1.0, in_place=True)
        assert result is network
        assert not network.same_weights(original)

    def test_weights_stay_clipped(self, generator, architecture):
        """Test that mutation never pushes values past the weight limit."""
        net = FeedForwardNetwork(architecture)
        for tensor in net.parameters():
            tensor.fill_(WEIGHT_LIMIT)
        mutator = WeightMutator(generator=generator)
        for _ in range(5):
            mutator.mutate(net, rate=1.0, in_place=True)
        for tensor in net.parameters():
            assert float(tensor.abs().max()) <= WEIGHT_LIMIT

    def test_invalid_rate_raises(self, mutator, network):
        with pytest.raises(ValueError, match="Mutation rate"):
            mutator.mutate(network, rate=1.5)
        with pytest.raises(ValueError):
            mutator.mutate(network, rate=-0.1)

    def test_seeded_mutation_is_reproducible(self, network):
        a = WeightMutator(torch.Generator().manual_seed(5)).mutate(network, 0.3)
        b = WeightMutator(torch.Generator().manual_seed(5)).mutate(network, 0.3)
        assert a.same_weights(b)

    def test_network_mutate_shortcut(self, network, generator):
        original = network.clone()
        assert network.mutate(1.0, generator=generator) is network
        assert not network.same_weights(original)


class TestMutationSchedule:
    """Tests for MutationSchedule."""

    def test_linear_decay(self):
        schedule = MutationSchedule()
        assert schedule.rate(0) == pytest.approx(0.30)
        assert schedule.rate(10) == pytest.approx(0.22)

    def test_floor(self):
        """Test that the rate never drops below the floor."""
        assert MutationSchedule().rate(1000) == pytest.approx(0.05)

    def test_plateau_spike(self):
        """Test the plateau rule in intelligent mode."""
        schedule = MutationSchedule(intelligent=True)
        flat = [100.0, 100.2, 100.3, 100.4, 100.5]
        assert schedule.is_plateau(flat)
        assert schedule.rate(30, flat) >= 0.20

    def test_no_plateau_when_improving(self):
        schedule = MutationSchedule(intelligent=True)
        rising = [100.0, 120.0, 140.0, 160.0, 180.0]
        assert not schedule.is_plateau(rising)
        assert schedule.rate(30, rising) == pytest.approx(schedule.decayed(30))

    def test_oscillation_boost_and_cap(self):
        schedule = MutationSchedule(intelligent=True)
        assert schedule.rate(25) == pytest.approx(schedule.decayed(25) + 0.05)
        flat = [10.0] * 5
        assert schedule.rate(50, flat) <= 0.35

    def test_plain_mode_ignores_history(self):
        schedule = MutationSchedule()
        assert schedule.rate(25, [10.0] * 5) == pytest.approx(schedule.decayed(25))


class TestUniformCrossover:
    """Tests for UniformCrossover."""

    @pytest.fixture
    def parents(self, architecture, generator):
        return (
            FeedForwardNetwork.random(architecture, generator=generator),
            FeedForwardNetwork.random(architecture, generator=generator),
        )

    def test_child_keeps_shape(self, parents, generator):
        child = UniformCrossover(generator).crossover(*parents)
        assert child.architecture == parents[0].architecture
        for a, c in zip(parents[0].parameters(), child.parameters()):
            assert a.shape == c.shape

    def test_every_value_from_a_parent(self, parents, generator):
        """Test that each child value equals parent A's or parent B's."""
        parent_a, parent_b = parents
        child = UniformCrossover(generator).crossover(parent_a, parent_b)
        for a, b, c in zip(parent_a.parameters(), parent_b.parameters(), child.parameters()):
            assert bool(((c == a) | (c == b)).all())

    def test_mixes_both_parents(self, parents, generator):
        parent_a, parent_b = parents
        child = UniformCrossover(generator).crossover(parent_a, parent_b)
        weights = child.input_weights
        assert bool((weights == parent_a.input_weights).any())
        assert bool((weights == parent_b.input_weights).any())

    def test_parents_untouched(self, parents, generator):
        copies = [p.clone() for p in parents]
        UniformCrossover(generator).crossover(*parents)
        assert parents[0].same_weights(copies[0])
        assert parents[1].same_weights(copies[1])

    def test_architecture_mismatch_raises(self, network, generator):
        other = FeedForwardNetwork.random(Architecture(hidden_layers=(8,)), generator=generator)
        with pytest.raises(ValueError, match="Cannot cross over"):
            UniformCrossover(generator).crossover(network, other)


class TestSelection:
    """Tests for ranking, elitism and truncation selection."""

    @pytest.fixture
    def genomes(self, make_genome):
        return [make_genome(f'g{i}', fitness=f) for i, f in enumerate([4.0, 10.0, 6.0, 8.0])]

    def test_rank_descending(self, genomes):
        assert [g.fitness for g in rank(genomes)] == [10.0, 8.0, 6.0, 4.0]

    def test_rank_is_stable_on_ties(self, make_genome):
        tied = [make_genome(f't{i}', fitness=1.0) for i in range(3)]
        assert [g.id for g in rank(tied)] == ['t0', 't1', 't2']

    def test_elite(self, genomes):
        elite = EliteSelection(elite_count=2).get_elite(rank(genomes))
        assert [g.id for g in elite] == ['g1', 'g3']

    def test_pool_size(self):
        selection = TruncationSelection(pool_fraction=0.25, min_pool=2)
        assert selection.pool_size(48) == 12
        assert selection.pool_size(4) == 2
        assert selection.pool_size(1) == 1

    def test_parents_come_from_top(self, genomes):
        selection = TruncationSelection(pool_fraction=0.25, min_pool=2)
        ranked = rank(genomes)
        rng = random.Random(3)
        for _ in range(20):
            a, b = selection.select_pair(ranked, rng)
            assert a.id in ('g1', 'g3')
            assert b.id in ('g1', 'g3')


class TestGenome:
    """Tests for Genome."""

    def test_clone_owns_network(self, make_genome):
        genome = make_genome('g', fitness=5.0)
        copy = genome.clone()
        assert copy.fitness == 5.0
        assert copy.network is not genome.network
        assert copy.network.same_weights(genome.network)

    def test_clone_reset(self, make_genome):
        copy = make_genome('g', fitness=5.0).clone(new_id='h', keep_fitness=False)
        assert copy.id == 'h'
        assert copy.fitness == 0.0

    def test_dict_round_trip(self, make_genome):
        genome = make_genome('gen3-1', fitness=12.5)
        genome.matches_won = 2
        restored = Genome.from_dict(genome.to_dict())
        assert restored.id == 'gen3-1'
        assert restored.fitness == 12.5
        assert restored.matches_won == 2
        assert restored.network.same_weights(genome.network)

    def test_from_dict_requires_network(self):
        with pytest.raises(ValueError, match="network"):
            Genome.from_dict({'id': 'x'})
