"""Shared domain models for AppInit."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

SKIPPED = "skipped"
SUCCEEDED = "succeeded"
FAILED = "failed"


@dataclass(frozen=True)
class ConnectionCredentials:
    """Datastore connection parameters gathered from an operator."""

    driver: str
    database: str
    host: str = ""
    port: str = ""
    username: str = ""
    password: str = ""

    def as_env(self) -> Dict[str, str]:
        return {
            "DB_CONNECTION": self.driver,
            "DB_HOST": self.host,
            "DB_PORT": self.port,
            "DB_DATABASE": self.database,
            "DB_USERNAME": self.username,
            "DB_PASSWORD": self.password,
        }


@dataclass(frozen=True)
class StepOutcome:
    """Result of one orchestrated step: skipped, succeeded or failed."""

    label: str
    status: str
    value: Any = None
    cause: Optional[BaseException] = None

    @property
    def failed(self) -> bool:
        return self.status == FAILED

    @property
    def skipped(self) -> bool:
        return self.status == SKIPPED


@dataclass(frozen=True)
class AdminIdentity:
    name: str
    email: str
    password: str


@dataclass(frozen=True)
class InitSettings:
    """Host application layout and behavior switches for one run."""

    base_dir: str = "."
    env_file: str = ".env"
    env_template: str = ".env.example"
    public_dir: str = "public"
    manifests: Tuple[str, ...] = ("manifest.json", "manifest-remote.json")
    cache_dirs: Tuple[str, ...] = ("storage/framework/cache", "bootstrap/cache")
    asset_commands: Tuple[Tuple[str, ...], ...] = (
        ("pnpm", "install", "--color"),
        ("pnpm", "run", "--color", "build"),
    )
    schedule_command: str = "php artisan schedule:run"
    alembic_ini: str = "alembic.ini"
    cipher: str = "AES-256-CBC"
    log_file: str = "storage/logs/appinit.log"
    report_file: Optional[str] = None
    docs_url: str = "https://docs.appinit.dev"
    troubleshooting_url: str = "https://docs.appinit.dev/troubleshooting"
    scheduler_docs_url: str = "https://docs.appinit.dev/cli-commands#command-scheduling"
    skip_assets: bool = False
    skip_scheduler: bool = False
    verbose: bool = False


@dataclass
class InitResult:
    """Overall outcome plus the facts the closing summary needs."""

    success: bool = False
    admin_created: bool = False
    storage_unset: bool = False
    outcomes: list = field(default_factory=list)
    warnings: list = field(default_factory=list)
