import logging
import os
import sys
from typing import Any, Callable, Optional

from rich.console import Console

from .constants import (
    APP_ENV,
    APP_KEY,
    APP_URL,
    FIRST_ADMIN_EMAIL,
    FIRST_ADMIN_PASSWORD,
    MEDIA_PATH_ENV,
    MEDIA_PATH_SETTING,
)
from .errors import InitError, InstallationFailedException, SchedulerInstallFailed
from .errors_catalog import actionable_error
from .models import FAILED, InitResult, InitSettings, StepOutcome
from .services.app_key import generate_app_key, truncate_secret
from .services.command_runner import CommandRunner
from .services.config_store import ConfigStore
from .services.connectivity import ConnectivityProbe, database_url
from .services.connector import RetryingConnector
from .services.credentials import CredentialCollector
from .services.datastore import MigrationEngine, RecordStore, SettingsStore
from .services.filesystem import FileSystemService
from .services.interaction import NonInteractiveOperator, TerminalOperator
from .services.live_settings import LiveSettings
from .services.run_report import RunReportService
from .services.scheduler import SchedulerService
from .services.step_runner import StepRunner

console = Console()
logger = logging.getLogger("appinit")


class StepFailed(Exception):
    """Carries a failed outcome out of the step sequence."""

    def __init__(self, outcome: StepOutcome):
        super().__init__(outcome.label)
        self.outcome = outcome


class AppInitializer:
    """Installs or upgrades the host application in one fixed pass.

    Every step checks whether its effect is already in place, so a failed run
    can simply be started again from the top.
    """

    def __init__(
        self,
        settings: InitSettings,
        interactive: bool = True,
        operator=None,
        config_store: Optional[ConfigStore] = None,
        live_settings: Optional[LiveSettings] = None,
        probe=None,
        migration_engine=None,
        record_store=None,
        settings_store=None,
        command_runner: Optional[CommandRunner] = None,
        scheduler=None,
        console_obj: Optional[Console] = None,
    ):
        self.settings = settings
        self.console = console_obj or console
        self.base_dir = os.path.abspath(settings.base_dir)
        self.env_file = self._path(settings.env_file)
        self.env_template = self._path(settings.env_template)
        self.public_dir = self._path(settings.public_dir)

        if operator is None:
            operator = TerminalOperator(self.console) if interactive else NonInteractiveOperator()
        self.operator = operator

        self.config_store = config_store or ConfigStore(logger=logger)
        self.live_settings = live_settings or LiveSettings()
        self.filesystem_service = FileSystemService(logger=logger, console=self.console)
        self.command_runner = command_runner or CommandRunner(logger=logger)
        self.probe = probe or ConnectivityProbe(logger=logger)
        self.migration_engine = migration_engine or MigrationEngine(
            alembic_ini=self._path(settings.alembic_ini),
            url_provider=self._database_url,
            logger=logger,
        )
        self.record_store = record_store or RecordStore(url_provider=self._database_url, logger=logger)
        self.settings_store = settings_store or SettingsStore(
            url_provider=self._database_url,
            logger=logger,
        )
        self.scheduler = scheduler or SchedulerService(command_runner=self.command_runner, logger=logger)
        self.connector = RetryingConnector(
            probe=self.probe,
            collector=CredentialCollector(self.operator),
            config_store=self.config_store,
            live_settings=self.live_settings,
            operator=self.operator,
            logger=logger,
            console=self.console,
        )

        self.report = RunReportService(settings.report_file, logger=logger) if settings.report_file else None
        self.step_runner = StepRunner(logger=logger, console=self.console, report=self.report)
        self.result = InitResult()

    def _path(self, relative: str) -> str:
        return os.path.join(self.base_dir, relative)

    def _database_url(self):
        return database_url(self.live_settings.snapshot())

    def _step(
        self,
        label: str,
        action: Callable[[], Any],
        precondition: Optional[Callable[[], bool]] = None,
        skip_label: Optional[str] = None,
    ) -> StepOutcome:
        outcome = self.step_runner.run(label, action, precondition=precondition, skip_label=skip_label)
        self.result.outcomes.append(outcome)
        if outcome.failed:
            raise StepFailed(outcome)
        return outcome

    def _warn(self, message: str):
        self.console.print(f"[yellow]{message}[/yellow]")
        logger.warning(message)
        self.result.warnings.append(message)
        if self.report:
            self.report.add_warning(message)

    def clear_caches(self):
        for cache_dir in self.settings.cache_dirs:
            self.filesystem_service.clear_dir_contents(self._path(cache_dir))

    def load_env_file(self):
        self._step(
            "Copying .env file",
            lambda: self.filesystem_service.copy_file(self.env_template, self.env_file),
            precondition=lambda: os.path.exists(self.env_file),
            skip_label=".env file exists -- skipping",
        )
        self._step("Loading .env file", self._read_env_file)

    def _read_env_file(self):
        self.config_store.load(self.env_file)
        self.live_settings.seed(self.config_store.all())

    def maybe_generate_app_key(self):
        existing = self.config_store.get(APP_KEY) or self.live_settings.get(APP_KEY)

        def generate() -> str:
            key = generate_app_key(self.settings.cipher)
            self.config_store.set_one(APP_KEY, key)
            self.live_settings.set(APP_KEY, key)
            return key

        outcome = self._step(
            "Generating app key",
            generate,
            precondition=lambda: bool(existing),
            skip_label="Retrieving app key",
        )
        key = existing if outcome.skipped else outcome.value
        self.console.print(f"  Using app key: {truncate_secret(key)}", highlight=False)

    def migrate_database(self):
        self._step("Migrating database", self.migration_engine.apply_pending_migrations)

    def _seed_database(self) -> bool:
        self.record_store.create_first_admin()
        self.record_store.seed_baseline(self.settings_store)
        return True

    def maybe_seed_database(self):
        outcome = self._step(
            "Creating default admin account and seeding data",
            self._seed_database,
            precondition=lambda: self.record_store.count_records("users") > 0,
            skip_label="Data already seeded -- skipping",
        )
        self.result.admin_created = bool(outcome.value)

    def maybe_set_media_path(self):
        label = "Setting up media path"
        outcome = self._step_soft(
            label,
            self._set_media_path,
            precondition=lambda: bool(self.settings_store.get(MEDIA_PATH_SETTING)),
            skip_label="Media path already set -- skipping",
        )
        if outcome.failed:
            self._warn(f"{label} did not complete. You can configure it later.")

    def _set_media_path(self):
        if not self.operator.interactive:
            self._set_media_path_from_env()
            return

        self.console.print(
            "The absolute path to your media directory. "
            "You can leave it blank and set it later via the web interface."
        )
        while True:
            path = self.operator.ask("Media path", default=self.live_settings.get(MEDIA_PATH_ENV))
            if not path:
                return

            if self.filesystem_service.is_readable_dir(path):
                self.settings_store.set(MEDIA_PATH_SETTING, path)
                return

            self.console.print("[red]The path does not exist or is not readable. Try again?[/red]")

    def _set_media_path_from_env(self):
        path = self.live_settings.get(MEDIA_PATH_ENV)
        if not path:
            return

        if self.filesystem_service.is_readable_dir(path):
            self.settings_store.set(MEDIA_PATH_SETTING, path)
        else:
            self._warn(actionable_error("storage_path_invalid", path=path))

    def _run_ok_or_raise(self, cmd):
        try:
            result = self.command_runner.run(
                cmd,
                check=False,
                capture_output=not self.settings.verbose,
                cwd=self.base_dir,
            )
        except InitError as exc:
            raise InstallationFailedException(str(exc)) from exc

        if result.returncode != 0:
            raise InstallationFailedException(
                actionable_error("asset_build_failed", command=" ".join(cmd))
            )

    def maybe_compile_assets(self):
        if self.settings.skip_assets:
            return

        labels = ["Installing front-end dependencies", "Compiling front-end assets"]
        for index, cmd in enumerate(self.settings.asset_commands):
            label = labels[index] if index < len(labels) else f"Running {' '.join(cmd)}"
            self._step(label, lambda cmd=cmd: self._run_ok_or_raise(cmd))

    def maybe_copy_manifests(self):
        for file_name in self.settings.manifests:
            destination = os.path.join(self.public_dir, file_name)
            source = os.path.join(self.public_dir, f"{file_name}.example")
            self._step(
                f"Copying {file_name}",
                lambda source=source, destination=destination: self.filesystem_service.copy_file(
                    source, destination
                ),
                precondition=lambda destination=destination: os.path.exists(destination),
                skip_label=f"{file_name} already exists -- skipping",
            )

    def try_installing_scheduler(self):
        if sys.platform == "win32" or self.settings.skip_scheduler:
            return

        outcome = self._step_soft("Installing scheduler", self._install_scheduler)
        if outcome.failed:
            self._warn(
                actionable_error(
                    "scheduler_install_failed",
                    code=getattr(outcome.cause, "returncode", 1),
                    docs_url=self.settings.scheduler_docs_url,
                )
            )

    def _install_scheduler(self) -> int:
        code = self.scheduler.install(self.base_dir, self.settings.schedule_command)
        if code != 0:
            raise SchedulerInstallFailed(f"Scheduler registration exited with code {code}", returncode=code)
        return code

    def execute(self) -> InitResult:
        self.console.rule("[bold]APP INSTALLATION WIZARD[/bold]")
        self.console.print(
            "Remember, you can always install/upgrade manually using the guide at "
            f"{self.settings.docs_url}"
        )
        if not self.operator.interactive:
            self.console.print("[blue]Running in no-interaction mode[/blue]")

        if self.report:
            self.report.start_run(self.operator.interactive)

        try:
            self._step("Clearing caches", self.clear_caches)
            self.load_env_file()
            self.maybe_generate_app_key()
            self._step("Checking database connection", self.connector.connect)
            self.migrate_database()
            self.maybe_seed_database()
            self.maybe_set_media_path()
            self.maybe_compile_assets()
            self.maybe_copy_manifests()
            self._step("Saving configuration", self.config_store.save)
        except StepFailed as exc:
            self._fail(exc.outcome.cause)
            return self.result
        except Exception as exc:
            # Precondition checks run outside the step runner.
            logger.error("Installation failed", exc_info=True)
            self._fail(exc)
            return self.result

        self.try_installing_scheduler()
        self.result.success = True
        self.result.storage_unset = self._storage_unset()
        if self.report:
            self.report.finalize(
                "success",
                admin_created=self.result.admin_created,
                storage_unset=self.result.storage_unset,
            )
        return self.result

    def _step_soft(
        self,
        label: str,
        action: Callable[[], Any],
        precondition: Optional[Callable[[], bool]] = None,
        skip_label: Optional[str] = None,
    ) -> StepOutcome:
        """Runs an optional step. A failed outcome is recorded but never stops the run."""
        try:
            outcome = self.step_runner.run(label, action, precondition=precondition, skip_label=skip_label)
        except Exception as exc:
            # Only the precondition can raise here.
            logger.warning("Could not check whether '%s' is needed.", label, exc_info=True)
            outcome = StepOutcome(label=label, status=FAILED, cause=exc)
        self.result.outcomes.append(outcome)
        return outcome

    def _storage_unset(self) -> bool:
        try:
            return not self.settings_store.get(MEDIA_PATH_SETTING)
        except Exception:
            logger.warning("Could not read the storage location setting.", exc_info=True)
            return True

    def _fail(self, cause: Optional[BaseException]):
        self.result.success = False
        if self.report:
            self.report.finalize("failed", error=str(cause) if cause else None)

        if cause is not None and self.settings.verbose:
            self.console.print(f"[bold red]Error:[/bold red] {cause}")

        log_file = self.settings.log_file
        self.console.print("[bold red]Oops! Installation or upgrade didn't finish successfully.[/bold red]")
        self.console.print(f"[red]Please check the error log at {log_file} and try again.[/red]")
        self.console.print(
            f"[red]For further troubleshooting, visit {self.settings.troubleshooting_url}.[/red]"
        )
        self.console.print("[red]Sorry for this. You deserve better.[/red]")

    def print_summary(self):
        self.console.print()
        self.console.print("[bold green]All done![/bold green]")

        if self.live_settings.get(APP_ENV) == "local":
            self.console.print("The application can now be served locally.")
        elif self.live_settings.get(APP_URL):
            self.console.print(f"The application is now available at {self.live_settings.get(APP_URL)}")

        if self.result.admin_created:
            self.console.print(
                f"Log in with email [bold]{FIRST_ADMIN_EMAIL}[/bold] "
                f"and password [bold]{FIRST_ADMIN_PASSWORD}[/bold]"
            )
        if self.result.storage_unset:
            self.console.print("You can set up the media storage later from the web interface.")

        self.console.print(f"Documentation can be found at {self.settings.docs_url}")

    def run(self) -> int:
        mode = "interactive" if self.operator.interactive else "non-interactive"
        logger.info("Starting AppInit in %s mode...", mode)
        try:
            result = self.execute()
        except KeyboardInterrupt:
            self.console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return 1

        if not result.success:
            return 1

        self.print_summary()
        return 0
