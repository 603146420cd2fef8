"""
Training settings.

``TrainingSettings`` is the plain configuration struct the interactive
and background sides are built from. It can be constructed directly or
read from the ``NEUROFIGHT`` dict in Django settings; Django is only
imported when ``from_django_settings`` is called.
"""
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

from .exceptions import ConfigurationError

WORKER_BACKENDS = ('process', 'thread')


@dataclass
class TrainingSettings:
    """
    Settings surface for a training session.

    Attributes:
        population_size: Genomes per generation (at least 2).
        mutation_rate_base: Starting mutation rate, in [0, 1].
        simulation_speed: Ticks simulated per frame in foreground training.
        background_training_enabled: Run evolution on a background thread.
        worker_count: Pool size; None picks one per spare core.
        worker_backend: 'process' or 'thread'.
        auto_stop_generation: Stop background training at this generation.
    """
    population_size: int = 48
    mutation_rate_base: float = 0.30
    simulation_speed: int = 1
    background_training_enabled: bool = False
    worker_count: Optional[int] = None
    worker_backend: str = 'process'
    auto_stop_generation: Optional[int] = 1000

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Raises:
            ConfigurationError: If any value is out of range.
        """
        if self.population_size < 2:
            raise ConfigurationError(
                f"population_size must be at least 2, got {self.population_size}"
            )
        if not 0.0 <= self.mutation_rate_base <= 1.0:
            raise ConfigurationError(
                f"mutation_rate_base must be in [0, 1], got {self.mutation_rate_base}"
            )
        if self.simulation_speed < 1:
            raise ConfigurationError(
                f"simulation_speed must be at least 1, got {self.simulation_speed}"
            )
        if self.worker_count is not None and self.worker_count < 1:
            raise ConfigurationError(f"worker_count must be at least 1, got {self.worker_count}")
        if self.worker_backend not in WORKER_BACKENDS:
            raise ConfigurationError(
                f"worker_backend must be one of {WORKER_BACKENDS}, got {self.worker_backend!r}"
            )
        if self.auto_stop_generation is not None and self.auto_stop_generation < 1:
            raise ConfigurationError(
                f"auto_stop_generation must be positive, got {self.auto_stop_generation}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TrainingSettings':
        """
        Build settings from a mapping with snake_case keys.

        Raises:
            ConfigurationError: On unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown training settings: {sorted(unknown)}")
        return cls(**data)

    @classmethod
    def from_django_settings(cls) -> 'TrainingSettings':
        """Read ``settings.NEUROFIGHT['TRAINING']``; missing keys keep their defaults."""
        from django.conf import settings

        config = getattr(settings, 'NEUROFIGHT', {})
        return cls.from_dict(dict(config.get('TRAINING', {})))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def evolution_config(self, **overrides: Any):
        """An ``EvolutionConfig`` seeded from these settings."""
        from .evolution.population import EvolutionConfig

        values = {
            'population_size': self.population_size,
            'mutation_rate_base': self.mutation_rate_base,
        }
        values.update(overrides)
        return EvolutionConfig(**values)
