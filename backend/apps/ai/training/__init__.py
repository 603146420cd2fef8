"""
Training infrastructure for evolved fighters.

This module provides the complete training pipeline:
- WorkerPool: runs a generation's match batch across processes or threads
- EvolutionTrainer: the pair → play → apply → evolve generation loop
- BackgroundTrainer: the same loop on a cancellable background thread
- InteractiveSession: frame-driven arcade play and foreground training
- TrainingController: switches a population between foreground and background training
- Genome export/import and population checkpoints

Example usage:
    from apps.ai.evolution import EvolutionConfig, Population
    from apps.ai.training import EvolutionTrainer, WorkerPool

    population = Population(EvolutionConfig(population_size=32)).initialize()
    with WorkerPool(worker_count=4) as pool:
        result = EvolutionTrainer(population, pool).train(generations=100)
    print(f"Best fitness {result.best_fitness:.1f} at gen {result.best_generation}")
"""
from .worker_pool import WorkerPool, default_worker_count
from .trainer import EvolutionTrainer, TrainingResult
from .background import BackgroundTrainer, TrainingSnapshot
from .controller import TrainingController
from .interactive import (
    FrameSnapshot,
    InteractiveSession,
    RoundStatus,
    SessionMode,
    SessionStats,
)
from .checkpoints import (
    CheckpointManager,
    GenomeImport,
    export_genome,
    export_genome_json,
    import_genome,
    load_genome_file,
    save_genome_file,
)

__all__ = [
    # Parallel matches
    'WorkerPool',
    'default_worker_count',

    # Orchestration
    'EvolutionTrainer',
    'TrainingResult',
    'BackgroundTrainer',
    'TrainingSnapshot',
    'TrainingController',

    # Interactive play
    'FrameSnapshot',
    'InteractiveSession',
    'RoundStatus',
    'SessionMode',
    'SessionStats',

    # Persistence
    'CheckpointManager',
    'GenomeImport',
    'export_genome',
    'export_genome_json',
    'import_genome',
    'load_genome_file',
    'save_genome_file',
]
