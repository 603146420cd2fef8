"""
Neuroevolution of fixed-topology fighter networks.

Weights evolve by perturbation and uniform crossover; topology stays
fixed for the lifetime of a population.

This module provides:
- Genome: a network plus its per-generation fitness
- WeightMutator / MutationSchedule: perturbation and the adaptive rate
- UniformCrossover: per-value recombination of two parents
- Elite and truncation selection
- Population: pairing, result application and generation advancement

Example usage:
    from apps.ai.evolution import Population, EvolutionConfig
    from apps.ai.training import WorkerPool

    population = Population(EvolutionConfig(population_size=24, seed=7))
    population.initialize()

    with WorkerPool(worker_count=4) as pool:
        for _ in range(50):
            jobs = population.create_jobs()
            population.apply_results(pool.run_matches(jobs))
            stats = population.evolve()
            print(f"Gen {stats.generation}: best={stats.best_fitness:.1f}")

    champion = population.get_best()
"""
from .genome import Genome
from .mutations import MutationSchedule, WeightMutator
from .crossover import UniformCrossover
from .selection import EliteSelection, TruncationSelection, rank
from .population import (
    EvolutionConfig,
    GenerationStats,
    Phase,
    Population,
)

__all__ = [
    'Genome',

    # Operators
    'MutationSchedule',
    'WeightMutator',
    'UniformCrossover',
    'EliteSelection',
    'TruncationSelection',
    'rank',

    # Population management
    'EvolutionConfig',
    'GenerationStats',
    'Phase',
    'Population',
]
