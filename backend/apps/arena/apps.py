"""Arena app configuration."""
from django.apps import AppConfig


class ArenaConfig(AppConfig):
    """Configuration for the arena app."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.arena'
    verbose_name = 'Arena'
