"""Schema migration, identity and settings collaborators backed by SQLAlchemy."""

import hashlib
import json
import os
import secrets
from typing import Any, Callable, Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import column, create_engine, func, insert, select, table, update
from sqlalchemy.engine import URL

from appinit.constants import (
    BASELINE_SETTINGS,
    FIRST_ADMIN_EMAIL,
    FIRST_ADMIN_NAME,
    FIRST_ADMIN_PASSWORD,
)
from appinit.errors import InitError, MigrationError
from appinit.models import AdminIdentity

UrlProvider = Callable[[], URL]

settings_table = table("settings", column("key"), column("value"))
users_table = table("users", column("name"), column("email"), column("password"), column("is_admin"))


def hash_password(password: str, iterations: int = 260000) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("ascii"), iterations)
    return f"pbkdf2_sha256${iterations}${salt}${digest.hex()}"


class MigrationEngine:
    """Applies pending Alembic revisions up to ``head``."""

    def __init__(self, alembic_ini: str, url_provider: UrlProvider, logger, upgrade_fn=command.upgrade):
        self.alembic_ini = alembic_ini
        self.url_provider = url_provider
        self.logger = logger
        self.upgrade_fn = upgrade_fn

    def apply_pending_migrations(self):
        if not os.path.isfile(self.alembic_ini):
            raise MigrationError(f"Migration config not found: {self.alembic_ini}")

        alembic_cfg = Config(self.alembic_ini)
        url = self.url_provider().render_as_string(hide_password=False)
        # Config values go through configparser interpolation.
        alembic_cfg.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
        try:
            self.upgrade_fn(alembic_cfg, "head")
        except Exception as exc:
            raise MigrationError(f"Schema migration failed: {exc}") from exc
        self.logger.info("Database migrations applied")


class _SqlStore:
    def __init__(self, url_provider: UrlProvider, logger):
        self.url_provider = url_provider
        self.logger = logger

    def _engine(self):
        return create_engine(self.url_provider(), pool_pre_ping=True)


class SettingsStore(_SqlStore):
    """Application settings persisted as JSON values in the ``settings`` table."""

    def get(self, key: str) -> Optional[Any]:
        engine = self._engine()
        try:
            with engine.connect() as connection:
                row = connection.execute(
                    select(settings_table.c.value).where(settings_table.c.key == key)
                ).first()
        finally:
            engine.dispose()

        if row is None or row[0] is None:
            return None
        return json.loads(row[0])

    def set(self, key: str, value: Any):
        payload = json.dumps(value)
        engine = self._engine()
        try:
            with engine.begin() as connection:
                updated = connection.execute(
                    update(settings_table)
                    .where(settings_table.c.key == key)
                    .values(value=payload)
                )
                if updated.rowcount == 0:
                    connection.execute(insert(settings_table).values(key=key, value=payload))
        finally:
            engine.dispose()
        self.logger.debug("Setting '%s' updated", key)


class RecordStore(_SqlStore):
    """Identity records and baseline seed data."""

    TABLES = {"users": users_table}

    def count_records(self, kind: str) -> int:
        if kind not in self.TABLES:
            raise InitError(f"Unknown record kind: {kind}")

        engine = self._engine()
        try:
            with engine.connect() as connection:
                count = connection.execute(
                    select(func.count()).select_from(self.TABLES[kind])
                ).scalar()
        finally:
            engine.dispose()
        return int(count or 0)

    def create_first_admin(self) -> AdminIdentity:
        identity = AdminIdentity(
            name=FIRST_ADMIN_NAME,
            email=FIRST_ADMIN_EMAIL,
            password=FIRST_ADMIN_PASSWORD,
        )
        engine = self._engine()
        try:
            with engine.begin() as connection:
                connection.execute(
                    insert(users_table).values(
                        name=identity.name,
                        email=identity.email,
                        password=hash_password(identity.password),
                        is_admin=True,
                    )
                )
        finally:
            engine.dispose()

        self.logger.info("Created first admin account %s", identity.email)
        return identity

    def seed_baseline(self, settings_store: SettingsStore):
        for key, value in BASELINE_SETTINGS.items():
            if settings_store.get(key) is None:
                settings_store.set(key, value)
        self.logger.info("Baseline data seeded")
