"""Models for the AI app."""
import uuid
from django.db import models, transaction


class SavedGenome(models.Model):
    """
    An evolved fighter brain kept for later play or seeding.

    Stores the portable network record together with the generation
    and fitness it was saved at.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    genome_id = models.CharField(max_length=64, blank=True)

    # Network (portable record: architectureTag, layerWeights, biases)
    architecture_tag = models.CharField(max_length=64)
    network = models.JSONField()

    # Evolution metadata
    generation = models.PositiveIntegerField(default=0)
    fitness = models.FloatField(default=0.0)
    matches_won = models.PositiveIntegerField(default=0)
    metadata = models.JSONField(default=dict, blank=True)

    # Only one genome is the champion served to arcade players
    is_champion = models.BooleanField(default=False)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'saved_genomes'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.name} ({self.architecture_tag}, gen {self.generation})"

    @classmethod
    def from_genome(cls, genome, generation: int, name: str = '', **kwargs) -> 'SavedGenome':
        """Build an unsaved row from a ``Genome``."""
        record = genome.network.to_portable()
        return cls(
            name=name or genome.id,
            genome_id=genome.id,
            architecture_tag=record['architectureTag'],
            network=record,
            generation=generation,
            fitness=genome.fitness,
            matches_won=genome.matches_won,
            **kwargs,
        )

    def to_genome(self):
        """
        Rebuild the ``Genome``.

        Raises:
            ValueError: If the stored network record is malformed.
        """
        from .evolution.genome import Genome
        from .networks.feedforward import FeedForwardNetwork

        return Genome(
            id=self.genome_id or str(self.id),
            network=FeedForwardNetwork.from_portable(self.network),
            fitness=self.fitness,
            matches_won=self.matches_won,
        )

    def export_record(self):
        """The genome export JSON structure for this row."""
        return {
            'generation': self.generation,
            'genome': {
                'id': self.genome_id or str(self.id),
                'fitness': self.fitness,
                'matchesWon': self.matches_won,
                'network': self.network,
            },
        }

    def make_champion(self) -> None:
        """Flag this genome as the champion and unflag every other one."""
        with transaction.atomic():
            SavedGenome.objects.filter(is_champion=True).exclude(pk=self.pk).update(is_champion=False)
            self.is_champion = True
            self.save(update_fields=['is_champion', 'updated_at'])

    @classmethod
    def champion(cls):
        return cls.objects.filter(is_champion=True).first()


class TrainingRun(models.Model):
    """
    A record of one ``evolve`` run.
    """

    class Status(models.TextChoices):
        RUNNING = 'running', 'Running'
        COMPLETED = 'completed', 'Completed'
        FAILED = 'failed', 'Failed'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.RUNNING
    )

    # Training configuration
    population_size = models.PositiveIntegerField(default=48)
    mutation_rate_base = models.FloatField(default=0.30)
    architecture_tag = models.CharField(max_length=64)
    generations_requested = models.PositiveIntegerField(default=0)

    # Progress and results
    generations_completed = models.PositiveIntegerField(default=0)
    best_fitness = models.FloatField(null=True, blank=True)
    history = models.JSONField(default=list)
    champion = models.ForeignKey(
        SavedGenome,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='training_runs'
    )
    error = models.TextField(blank=True)

    # Timestamps
    started_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'training_runs'
        ordering = ['-started_at']

    def __str__(self):
        return f"Run {str(self.id)[:8]} - {self.status}"
