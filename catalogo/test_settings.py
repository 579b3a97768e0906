"""
Test settings: in-memory SQLite, no cache, eager Celery.

Usage:
    python manage.py test --settings=test_settings
    pytest
"""

from catalogo.settings import *  # noqa: F401,F403

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

DEBUG = False

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.dummy.DummyCache',
    }
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'

CLOUDINARY_CLOUD_NAME = 'demo-cloud'
CLOUDINARY_API_KEY = 'test-key'
CLOUDINARY_API_SECRET = 'test-secret'

CATALOG_PAGE_SIZE = 3
ORDERS_PAGE_SIZE = 2

LOGGING = {
    'version': 1,
    'disable_existing_loggers': True,
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'ERROR',
    },
}
