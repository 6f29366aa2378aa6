"""Environment file persistence for AppInit."""

import os
import re
import tempfile
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

from appinit.errors import ConfigSourceError, PersistenceError
from appinit.errors_catalog import actionable_error

_BARE_VALUE = re.compile(r"^[A-Za-z0-9_./:@+,=-]*$")


class ConfigStore:
    """Ordered key/value view of a dotenv file with explicit saves.

    Mutations only touch the in-memory copy. Nothing reaches the file until
    ``save`` is called, and the file is never re-read after a save.
    """

    def __init__(self, logger):
        self.logger = logger
        self.path: Optional[str] = None
        self._values: Dict[str, str] = {}

    def load(self, path: str):
        if not os.path.isfile(path):
            raise ConfigSourceError(f"Environment file not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as file_obj:
                parsed = dotenv_values(stream=file_obj, interpolate=False)
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigSourceError(actionable_error("env_source_unreadable", path=path, reason=exc)) from exc

        self.path = path
        self._values = {key: "" if value is None else value for key, value in parsed.items()}
        self.logger.debug("Loaded %s key(s) from %s", len(self._values), path)

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set_one(self, key: str, value: str):
        self._values[key] = value

    def set_many(self, values: Mapping[str, str]):
        for key, value in values.items():
            self.set_one(key, value)

    def all(self) -> Dict[str, str]:
        return dict(self._values)

    def save(self):
        if not self.path:
            raise PersistenceError("Cannot save configuration before an environment file is loaded.")

        directory = os.path.dirname(os.path.abspath(self.path))
        fd, temp_path = tempfile.mkstemp(prefix=".env-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                for key, value in self._values.items():
                    file_obj.write(f"{key}={self._quote(value)}\n")
            if os.path.exists(self.path):
                os.chmod(temp_path, os.stat(self.path).st_mode & 0o777)
            os.replace(temp_path, self.path)
        except OSError as exc:
            raise PersistenceError(f"Could not write environment file '{self.path}': {exc}") from exc
        finally:
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    pass

        self.logger.debug("Saved %s key(s) to %s", len(self._values), self.path)

    @staticmethod
    def _quote(value: str) -> str:
        if _BARE_VALUE.match(value):
            return value
        escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
        return f'"{escaped}"'
