"""
ASGI config for the catalogo project.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(os.environ.get('DJANGO_ENV_FILE') or Path(__file__).resolve().parent.parent / '.env')

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'catalogo.settings')

from django.core.asgi import get_asgi_application  # noqa: E402

application = get_asgi_application()
