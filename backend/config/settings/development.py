"""
Development settings for NeuroFight project.
"""
from .base import *

DEBUG = True

ALLOWED_HOSTS = ['localhost', '127.0.0.1', '0.0.0.0']

# Database - SQLite for easy development
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

# Channel layers - in-memory for development
CHANNEL_LAYERS = {
    'default': {
        'BACKEND': 'channels.layers.InMemoryChannelLayer',
    },
}

# Smaller, thread-backed training for quick local iteration
NEUROFIGHT['TRAINING'].update({
    'population_size': 16,
    'worker_backend': 'thread',
})

LOGGING['loggers']['apps']['level'] = 'DEBUG'
