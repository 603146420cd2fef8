"""
Pytest configuration and shared fixtures for the NeuroFight project.

This module provides fixtures for:
- Database-backed saved champions
- Training settings read from the test NEUROFIGHT dict
"""
import pytest


@pytest.fixture
def champion(db):
    """Create and return the saved champion genome."""
    from apps.ai.tests.factories import ChampionGenomeFactory
    return ChampionGenomeFactory()


@pytest.fixture
def training_settings():
    """Return TrainingSettings as configured for the test run."""
    from apps.ai.conf import TrainingSettings
    return TrainingSettings.from_django_settings()
