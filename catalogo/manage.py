#!/usr/bin/env python
"""Management entry point for the Catalogo project."""
import os
import sys
from pathlib import Path

from dotenv import load_dotenv


def main():
    # Same .env lookup as wsgi.py and asgi.py
    load_dotenv(os.environ.get('DJANGO_ENV_FILE') or Path(__file__).resolve().parent / '.env')
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'catalogo.settings')
    from django.core.management import execute_from_command_line

    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
