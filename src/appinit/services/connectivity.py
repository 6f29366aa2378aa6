"""Datastore connectivity probing for AppInit."""

from typing import Mapping

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import URL

from appinit.constants import DEFAULT_DRIVER, FILE_BASED_DRIVERS, SQLALCHEMY_DIALECTS
from appinit.errors import InitError


def database_url(settings: Mapping[str, str]) -> URL:
    """Builds a SQLAlchemy URL from ``DB_*`` settings."""
    driver = settings.get("DB_CONNECTION") or DEFAULT_DRIVER
    if driver not in SQLALCHEMY_DIALECTS:
        raise InitError(f"Unsupported database driver: {driver}")

    dialect = SQLALCHEMY_DIALECTS[driver]
    if driver in FILE_BASED_DRIVERS:
        return URL.create(dialect, database=settings.get("DB_DATABASE") or None)

    port = (settings.get("DB_PORT") or "").strip()
    if port and not port.isdigit():
        raise InitError(f"Invalid database port: {port}")

    return URL.create(
        dialect,
        username=settings.get("DB_USERNAME") or None,
        password=settings.get("DB_PASSWORD") or None,
        host=settings.get("DB_HOST") or None,
        port=int(port) if port else None,
        database=settings.get("DB_DATABASE") or None,
    )


class ConnectivityProbe:
    """Checks that an authenticated connection can be opened with given settings."""

    def __init__(self, logger, engine_factory=create_engine):
        self.logger = logger
        self.engine_factory = engine_factory

    def check(self, settings: Mapping[str, str]) -> bool:
        engine = None
        try:
            url = database_url(settings)
            if url.get_backend_name() == "sqlite" and not url.database:
                raise InitError("SQLite database path is empty.")
            engine = self.engine_factory(url)
            with engine.connect() as connection:
                inspect(connection).get_table_names()
        except Exception:
            self.logger.error("Database connectivity check failed.", exc_info=True)
            return False
        finally:
            if engine is not None:
                engine.dispose()

        return True
