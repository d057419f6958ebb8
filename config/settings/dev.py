"""Development settings for the club reservations project.

This module extends the base settings with development specific
configuration: debug mode, all hosts allowed and human readable log
lines. Do not use these settings in production!
"""

from .base import *  # noqa: F401,F403

# Enable debug mode for development
DEBUG = True

# Allow all hosts in development
ALLOWED_HOSTS = ['*']

# Readable console logs instead of JSON
LOGGING['handlers']['console']['formatter'] = 'console'  # noqa: F405
LOGGING['loggers']['apps']['level'] = 'DEBUG'  # noqa: F405
