"""
Tests for the project entry points and packaging metadata.
"""
import os
import re
from pathlib import Path
from unittest import mock

from django.test import SimpleTestCase

import manage

PYPROJECT = Path(manage.__file__).resolve().parent.parent / "pyproject.toml"


class ManageEnvTests(SimpleTestCase):
    def test_env_file_from_environment(self):
        with mock.patch.dict(os.environ, {"DJANGO_ENV_FILE": "/srv/catalogo/.env.production"}), \
                mock.patch.object(manage, "load_dotenv") as load, \
                mock.patch("django.core.management.execute_from_command_line") as run:
            manage.main()
        load.assert_called_once_with("/srv/catalogo/.env.production")
        run.assert_called_once()

    def test_default_env_file_sits_next_to_manage(self):
        env = {key: value for key, value in os.environ.items() if key != "DJANGO_ENV_FILE"}
        with mock.patch.dict(os.environ, env, clear=True), \
                mock.patch.object(manage, "load_dotenv") as load, \
                mock.patch("django.core.management.execute_from_command_line"):
            manage.main()
        load.assert_called_once_with(Path(manage.__file__).resolve().parent / ".env")


class DependencyTests(SimpleTestCase):
    def test_directly_imported_libraries_are_declared(self):
        if not PYPROJECT.exists():
            self.skipTest("pyproject.toml is not next to the project")
        declared = {
            re.split(r"[<>=!~\[ ]", name, maxsplit=1)[0].lower()
            for name in re.findall(r'^\s*"([^"]+)",?\s*$', PYPROJECT.read_text(), re.MULTILINE)
        }
        for name in ("django", "djangorestframework", "asgiref", "python-dotenv", "openpyxl"):
            self.assertIn(name, declared)
