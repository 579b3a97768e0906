"""
WSGI config for the catalogo project.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(os.environ.get('DJANGO_ENV_FILE') or Path(__file__).resolve().parent.parent / '.env')

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'catalogo.settings')

from django.core.wsgi import get_wsgi_application  # noqa: E402

application = get_wsgi_application()
