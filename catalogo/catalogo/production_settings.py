"""
Production settings.

Catalog lookups and sessions live in Redis, the media release queue uses
another database of the same server, and logs go to a rotating file next
to the project.
"""

import os
from pathlib import Path

from .settings import *  # noqa: F401,F403
from .settings import _env_bool

DEBUG = False

SECRET_KEY = os.environ['SECRET_KEY']

CSRF_TRUSTED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get('CSRF_TRUSTED_ORIGINS', '').split(',')
    if origin.strip()
] or [f"https://{host}" for host in ALLOWED_HOSTS if host not in ('localhost', '127.0.0.1')]

# Redis: one server, separate databases for cache and broker
CATALOGO_REDIS = {
    'host': os.environ.get('REDIS_HOST', 'localhost'),
    'port': int(os.environ.get('REDIS_PORT', '6379')),
    'password': os.environ.get('REDIS_PASSWORD', ''),
    'ssl': _env_bool('REDIS_USE_SSL'),
}


def _build_redis_location(db_number, override_env=None):
    """
    ``redis://`` (or ``rediss://``) URI for ``db_number``. When
    ``override_env`` names a set environment variable its value is used as is.
    """
    if override_env and os.environ.get(override_env):
        return os.environ[override_env]
    scheme = 'rediss' if CATALOGO_REDIS['ssl'] else 'redis'
    credentials = f":{CATALOGO_REDIS['password']}@" if CATALOGO_REDIS['password'] else ''
    return f"{scheme}://{credentials}{CATALOGO_REDIS['host']}:{CATALOGO_REDIS['port']}/{db_number}"


CACHES = {
    'default': {
        'BACKEND': 'django_redis.cache.RedisCache',
        'LOCATION': _build_redis_location(os.environ.get('REDIS_CACHE_DB', '1'), 'REDIS_CACHE_URL'),
        'KEY_PREFIX': 'catalogo',
        'TIMEOUT': int(os.environ.get('CATALOG_CACHE_TIMEOUT', '300')),
        'OPTIONS': {
            'CLIENT_CLASS': 'django_redis.client.DefaultClient',
            # Store and category lookups fall through to the database on outages
            'IGNORE_EXCEPTIONS': True,
            'SOCKET_CONNECT_TIMEOUT': 3,
            'SOCKET_TIMEOUT': 3,
            'CONNECTION_POOL_KWARGS': {'max_connections': int(os.environ.get('REDIS_MAX_CONNECTIONS', '30'))},
        },
    },
}
DJANGO_REDIS_LOG_IGNORED_EXCEPTIONS = True

# Shopper carts survive a cache flush
SESSION_ENGINE = 'django.contrib.sessions.backends.cached_db'
SESSION_COOKIE_AGE = 60 * 60 * 24 * 14

CELERY_BROKER_URL = _build_redis_location(os.environ.get('REDIS_BROKER_DB', '3'), 'CELERY_BROKER_URL')
CELERY_RESULT_BACKEND = None
CELERY_TASK_ALWAYS_EAGER = False

SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')
SECURE_SSL_REDIRECT = _env_bool('SECURE_SSL_REDIRECT', 'true')
SECURE_HSTS_SECONDS = int(os.environ.get('SECURE_HSTS_SECONDS', '2592000'))
SECURE_CONTENT_TYPE_NOSNIFF = True
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True

LOG_DIR = Path(os.environ.get('CATALOGO_LOG_DIR', BASE_DIR / 'logs'))
LOG_DIR.mkdir(parents=True, exist_ok=True)

LOGGING['handlers'] = {
    'file': {
        'class': 'logging.handlers.RotatingFileHandler',
        'filename': LOG_DIR / 'catalogo.log',
        'maxBytes': 5 * 1024 * 1024,
        'backupCount': 5,
        'formatter': 'verbose',
    },
}
LOGGING['root'] = {'handlers': ['file'], 'level': 'WARNING'}
for _logger in LOGGING['loggers'].values():
    _logger['handlers'] = ['file']
