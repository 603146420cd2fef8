"""
Test settings for NeuroFight project.
"""
from .base import *

DEBUG = False

SECRET_KEY = 'test-secret-key'

ALLOWED_HOSTS = ['*']

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

CHANNEL_LAYERS = {
    'default': {
        'BACKEND': 'channels.layers.InMemoryChannelLayer',
    },
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

NEUROFIGHT = {
    'TRAINING': {
        'population_size': 4,
        'mutation_rate_base': 0.30,
        'simulation_speed': 1,
        'background_training_enabled': False,
        'worker_count': 2,
        'worker_backend': 'thread',
        'auto_stop_generation': None,
    },
}

LOGGING['loggers']['apps']['level'] = 'WARNING'
