"""
Management command to evolve fighter genomes.

Usage:
    python manage.py evolve [--generations 100] [--workers 4] [--seed-genome champ.json]
                            [--export best.json] [--save] [--checkpoint-dir ./checkpoints]

Runs the neuroevolution loop on the worker pool and optionally exports
the champion as genome JSON and/or stores it as a ``SavedGenome``.
"""
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone


class Command(BaseCommand):
    help = 'Evolve a population of fighter networks'

    def add_arguments(self, parser):
        parser.add_argument(
            '--generations',
            type=int,
            default=50,
            help='Number of generations to run (default: 50)',
        )
        parser.add_argument(
            '--population-size',
            type=int,
            default=None,
            help='Genomes per generation (default: NEUROFIGHT setting)',
        )
        parser.add_argument(
            '--mutation-rate',
            type=float,
            default=None,
            help='Base mutation rate (default: NEUROFIGHT setting)',
        )
        parser.add_argument(
            '--workers',
            type=int,
            default=None,
            help='Number of match workers (default: one per spare core)',
        )
        parser.add_argument(
            '--backend',
            type=str,
            default=None,
            choices=['process', 'thread'],
            help='Worker backend (default: NEUROFIGHT setting)',
        )
        parser.add_argument(
            '--seed',
            type=int,
            default=None,
            help='Random seed for a reproducible run',
        )
        parser.add_argument(
            '--intelligent-mutation',
            action='store_true',
            help='Spike the mutation rate on fitness plateaus',
        )
        parser.add_argument(
            '--seed-genome',
            type=str,
            default=None,
            help='Exported genome JSON to seed the population from',
        )
        parser.add_argument(
            '--checkpoint-dir',
            type=str,
            default=None,
            help='Directory for population checkpoints',
        )
        parser.add_argument(
            '--checkpoint-interval',
            type=int,
            default=10,
            help='Checkpoint every N generations (default: 10)',
        )
        parser.add_argument(
            '--resume',
            action='store_true',
            help='Resume from the latest checkpoint in --checkpoint-dir',
        )
        parser.add_argument(
            '--export',
            type=str,
            default=None,
            help='Write the champion as genome JSON to this path',
        )
        parser.add_argument(
            '--save',
            action='store_true',
            help='Store the champion in the database and make it the arcade champion',
        )
        parser.add_argument(
            '--name',
            type=str,
            default='',
            help='Name for the saved champion',
        )

    def handle(self, *args, **options):
        from apps.ai.conf import TrainingSettings
        from apps.ai.evolution import Population
        from apps.ai.exceptions import ConfigurationError, JobResultMismatchError
        from apps.ai.models import SavedGenome, TrainingRun
        from apps.ai.training import (
            CheckpointManager,
            EvolutionTrainer,
            WorkerPool,
            load_genome_file,
            save_genome_file,
        )

        if options['resume'] and not options['checkpoint_dir']:
            raise CommandError("--resume needs --checkpoint-dir")

        try:
            settings = TrainingSettings.from_django_settings()
            overrides = {
                'population_size': options['population_size'],
                'mutation_rate_base': options['mutation_rate'],
                'worker_count': options['workers'],
                'worker_backend': options['backend'],
            }
            values = settings.to_dict()
            values.update({k: v for k, v in overrides.items() if v is not None})
            settings = TrainingSettings.from_dict(values)

            config = settings.evolution_config(
                seed=options['seed'],
                intelligent_mutation=options['intelligent_mutation'],
            )
            population = Population(config)

            if options['seed_genome']:
                imported = load_genome_file(options['seed_genome'], config.architecture)
                if not imported.compatible:
                    raise CommandError(imported.mismatch.message)
                population.initialize_from_genome(imported.genome)
                self.stdout.write(f"Seeded from {imported.genome.id} (generation {imported.generation})")
            else:
                population.initialize()
        except (ConfigurationError, ValueError, OSError) as e:
            raise CommandError(str(e))

        manager = None
        if options['checkpoint_dir']:
            manager = CheckpointManager(options['checkpoint_dir'])
            if options['resume']:
                try:
                    state = manager.load_latest()
                    if state is None:
                        self.stdout.write(self.style.WARNING("No checkpoint found; starting fresh"))
                    else:
                        generation = manager.restore(state, population)
                        self.stdout.write(f"Resumed at generation {generation}")
                except (ConfigurationError, ValueError) as e:
                    raise CommandError(f"Cannot resume: {e}")

        run = TrainingRun.objects.create(
            population_size=config.population_size,
            mutation_rate_base=config.mutation_rate_base,
            architecture_tag=config.architecture.tag,
            generations_requested=options['generations'],
        )

        def progress(stats):
            self.stdout.write(
                f"  Gen {stats.generation:4d}  best={stats.best_fitness:9.1f}  "
                f"avg={stats.avg_fitness:9.1f}  rate={stats.mutation_rate:.3f}"
            )

        self.stdout.write(
            f"Evolving {config.population_size} genomes "
            f"({config.architecture.describe()}) for {options['generations']} generations..."
        )

        try:
            with WorkerPool(settings.worker_count, backend=settings.worker_backend) as pool:
                trainer = EvolutionTrainer(
                    population,
                    pool,
                    checkpoint_manager=manager,
                    checkpoint_interval=options['checkpoint_interval'],
                )
                result = trainer.train(options['generations'], progress_callback=progress)
        except (JobResultMismatchError, RuntimeError) as e:
            run.status = TrainingRun.Status.FAILED
            run.error = str(e)
            run.completed_at = timezone.now()
            run.save()
            raise CommandError(f"Evolution failed: {e}")

        self.stdout.write(self.style.SUCCESS(
            f"\nEvolution completed!"
            f"\n  Generations: {result.generations}"
            f"\n  Best fitness: {result.best_fitness:.1f} (generation {result.best_generation})"
            f"\n  Matches played: {result.total_matches}"
            f"\n  Retried batches: {result.retried_batches}"
            f"\n  Time: {result.training_time_seconds:.1f}s"
        ))

        champion = population.get_best()
        run.status = TrainingRun.Status.COMPLETED
        run.generations_completed = result.generations
        run.best_fitness = result.best_fitness
        run.history = result.history
        run.completed_at = timezone.now()

        if champion is not None and options['export']:
            path = save_genome_file(options['export'], champion, result.best_generation)
            self.stdout.write(f"Champion exported to {path}")

        if champion is not None and options['save']:
            saved = SavedGenome.from_genome(
                champion,
                generation=result.best_generation,
                name=options['name'],
                metadata={'run': str(run.id)},
            )
            saved.save()
            saved.make_champion()
            run.champion = saved
            self.stdout.write(self.style.SUCCESS(f"Champion saved as: {saved.name}"))

        run.save()
