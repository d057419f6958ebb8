"""Test settings: in-memory SQLite and quiet logs."""

from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

LOGGING['loggers']['apps']['level'] = 'WARNING'  # noqa: F405
LOGGING['loggers']['shared']['level'] = 'WARNING'  # noqa: F405
