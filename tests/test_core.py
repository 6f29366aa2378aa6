import io
import json
import subprocess

import pytest
from rich.console import Console

from appinit.core import AppInitializer
from appinit.errors import InitError, MigrationError
from appinit.models import FAILED, SKIPPED, InitSettings
from appinit.services.config_store import ConfigStore
from appinit.services.live_settings import LiveSettings


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None


class FakeProbe:
    def __init__(self, healthy=True):
        self.healthy = healthy
        self.calls = 0

    def check(self, _settings):
        self.calls += 1
        return self.healthy


class FakeMigrationEngine:
    def __init__(self, events, fail=False):
        self.events = events
        self.fail = fail

    def apply_pending_migrations(self):
        self.events.append("migrate")
        if self.fail:
            raise MigrationError("Schema migration failed: boom")


class FakeSettingsStore:
    def __init__(self, events):
        self.events = events
        self.values = {}

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value):
        self.events.append(f"setting:{key}")
        self.values[key] = value


class FakeRecordStore:
    def __init__(self, events):
        self.events = events
        self.users = 0

    def count_records(self, kind):
        assert kind == "users"
        return self.users

    def create_first_admin(self):
        self.events.append("create_admin")
        self.users += 1

    def seed_baseline(self, settings_store):
        self.events.append("seed")


class FakeCommandRunner:
    def __init__(self, events, returncode=0):
        self.events = events
        self.returncode = returncode

    def run(self, cmd, check=True, capture_output=False, **_kwargs):
        self.events.append("command:" + " ".join(cmd))
        return subprocess.CompletedProcess(cmd, self.returncode, stdout="", stderr="")


class FakeScheduler:
    def __init__(self, events, code=0, error=None):
        self.events = events
        self.code = code
        self.error = error

    def install(self, base_dir, schedule_command):
        self.events.append("scheduler")
        if self.error is not None:
            raise self.error
        return self.code


class ScriptedOperator:
    interactive = True

    def __init__(self, answers):
        self.answers = list(answers)

    def choice(self, question, options, default=None):
        raise AssertionError("no driver prompt expected")

    def ask(self, question, default=None, hide_input=False):
        return self.answers.pop(0)


@pytest.fixture
def app_dir(tmp_path):
    base = tmp_path / "app"
    (base / "public").mkdir(parents=True)
    (base / "storage" / "framework" / "cache").mkdir(parents=True)
    (base / "storage" / "framework" / "cache" / "stale").write_text("x", encoding="utf-8")
    (base / ".env.example").write_text(
        "APP_NAME=Demo\nAPP_KEY=\nAPP_URL=https://demo.test\nDB_CONNECTION=sqlite\nDB_DATABASE=demo.sqlite\n",
        encoding="utf-8",
    )
    (base / "public" / "manifest.json.example").write_text("{}", encoding="utf-8")
    (base / "public" / "manifest-remote.json.example").write_text("{}", encoding="utf-8")
    return base


class Harness:
    """Wires fakes around a real ConfigStore so runs can be repeated on the same app dir."""

    def __init__(self, app_dir, interactive=False, **overrides):
        self.events = []
        self.output = io.StringIO()
        self.probe = overrides.pop("probe", FakeProbe())
        self.migrations = FakeMigrationEngine(self.events, fail=overrides.pop("migration_fails", False))
        self.records = FakeRecordStore(self.events)
        self.settings_store = FakeSettingsStore(self.events)
        self.commands = FakeCommandRunner(self.events, returncode=overrides.pop("command_code", 0))
        self.scheduler = FakeScheduler(
            self.events,
            code=overrides.pop("scheduler_code", 0),
            error=overrides.pop("scheduler_error", None),
        )
        self.live = LiveSettings(overrides.pop("environ", {}))
        self.operator = overrides.pop("operator", None)
        self.interactive = interactive
        self.settings = InitSettings(
            base_dir=str(app_dir),
            log_file=str(app_dir / "storage" / "logs" / "appinit.log"),
            **overrides,
        )

    def build(self):
        return AppInitializer(
            settings=self.settings,
            interactive=self.interactive,
            operator=self.operator,
            config_store=ConfigStore(logger=DummyLogger()),
            live_settings=self.live,
            probe=self.probe,
            migration_engine=self.migrations,
            record_store=self.records,
            settings_store=self.settings_store,
            command_runner=self.commands,
            scheduler=self.scheduler,
            console_obj=Console(file=self.output, width=120),
        )


def test_fresh_install_runs_every_step(app_dir):
    harness = Harness(app_dir)

    result = harness.build().execute()

    assert result.success is True
    assert result.admin_created is True
    assert result.storage_unset is True
    assert harness.events == [
        "migrate",
        "create_admin",
        "seed",
        "command:pnpm install --color",
        "command:pnpm run --color build",
        "scheduler",
    ]
    env_text = (app_dir / ".env").read_text(encoding="utf-8")
    assert "APP_KEY=base64:" in env_text
    assert (app_dir / "public" / "manifest.json").exists()
    assert (app_dir / "public" / "manifest-remote.json").exists()
    assert not (app_dir / "storage" / "framework" / "cache" / "stale").exists()
    assert harness.live.get("APP_KEY").startswith("base64:")
    assert "Using app key: base64:" in harness.output.getvalue()


def test_second_run_skips_completed_work(app_dir):
    harness = Harness(app_dir, skip_assets=True)
    harness.build().execute()
    env_after_first = (app_dir / ".env").read_text(encoding="utf-8")
    harness.events.clear()

    second = harness.build().execute()

    assert second.success is True
    assert second.admin_created is False
    assert harness.events == ["migrate", "scheduler"]
    assert (app_dir / ".env").read_text(encoding="utf-8") == env_after_first
    skipped = [outcome.label for outcome in second.outcomes if outcome.status == SKIPPED]
    assert skipped == [
        ".env file exists -- skipping",
        "Retrieving app key",
        "Data already seeded -- skipping",
        "manifest.json already exists -- skipping",
        "manifest-remote.json already exists -- skipping",
    ]


def test_migration_failure_stops_remaining_steps(app_dir):
    harness = Harness(app_dir, migration_fails=True)

    initializer = harness.build()
    result = initializer.execute()

    assert result.success is False
    assert harness.events == ["migrate"]
    assert not (app_dir / "public" / "manifest.json").exists()
    assert result.outcomes[-1].status == FAILED
    assert isinstance(result.outcomes[-1].cause, MigrationError)
    # The key generated in memory is never flushed because the run did not finish.
    assert "APP_KEY=\n" in (app_dir / ".env").read_text(encoding="utf-8")
    output = harness.output.getvalue()
    assert "didn't finish successfully" in output
    assert "boom" not in output


def test_failed_run_prints_cause_only_in_verbose_mode(app_dir):
    harness = Harness(app_dir, migration_fails=True, verbose=True)

    harness.build().execute()

    assert "boom" in harness.output.getvalue()


def test_scheduler_failure_is_only_a_warning(app_dir):
    harness = Harness(app_dir, scheduler_code=3, skip_assets=True)

    initializer = harness.build()

    assert initializer.run() == 0
    assert initializer.result.success is True
    assert any("Failed to install the scheduler (exit code 3)" in warning for warning in initializer.result.warnings)
    scheduler_outcome = initializer.result.outcomes[-1]
    assert scheduler_outcome.label == "Installing scheduler"
    assert scheduler_outcome.status == FAILED
    scheduler_line = [line for line in harness.output.getvalue().splitlines() if "Installing scheduler" in line]
    assert scheduler_line[0].rstrip().endswith("FAIL")


def test_scheduler_that_cannot_run_is_only_a_warning(app_dir):
    harness = Harness(app_dir, scheduler_error=InitError("Required command not found: crontab"), skip_assets=True)

    initializer = harness.build()

    assert initializer.run() == 0
    assert initializer.result.success is True
    assert any("Failed to install the scheduler (exit code 1)" in warning for warning in initializer.result.warnings)


def test_skip_scheduler_flag(app_dir):
    harness = Harness(app_dir, skip_scheduler=True, skip_assets=True)

    harness.build().execute()

    assert "scheduler" not in harness.events


def test_asset_build_failure_is_fatal(app_dir):
    harness = Harness(app_dir, command_code=1)

    initializer = harness.build()

    assert initializer.run() == 1
    assert harness.events[-1] == "command:pnpm install --color"
    assert not (app_dir / "public" / "manifest.json").exists()


def test_invalid_media_path_from_env_warns_and_continues(app_dir):
    harness = Harness(app_dir, environ={"MEDIA_PATH": str(app_dir / "does-not-exist")}, skip_assets=True)

    result = harness.build().execute()

    assert result.success is True
    assert harness.settings_store.values.get("media_path") is None
    assert result.storage_unset is True
    assert any("does not exist or is not readable" in warning for warning in result.warnings)


def test_valid_media_path_from_env_is_stored(app_dir, tmp_path):
    media = tmp_path / "media"
    media.mkdir()
    harness = Harness(app_dir, environ={"MEDIA_PATH": str(media)}, skip_assets=True)

    result = harness.build().execute()

    assert harness.settings_store.values["media_path"] == str(media)
    assert result.storage_unset is False


def test_interactive_media_prompt_retries_until_valid(app_dir, tmp_path):
    media = tmp_path / "media"
    media.mkdir()
    operator = ScriptedOperator([str(tmp_path / "nope"), str(media)])
    harness = Harness(app_dir, interactive=True, operator=operator, skip_assets=True)

    harness.build().execute()

    assert harness.settings_store.values["media_path"] == str(media)
    assert operator.answers == []


def test_interactive_media_prompt_accepts_blank(app_dir):
    harness = Harness(app_dir, interactive=True, operator=ScriptedOperator([""]), skip_assets=True)

    result = harness.build().execute()

    assert result.success is True
    assert result.storage_unset is True


def test_unreachable_database_in_non_interactive_mode_fails_after_retries(app_dir):
    probe = FakeProbe(healthy=False)
    harness = Harness(app_dir, probe=probe)

    initializer = harness.build()

    assert initializer.run() == 1
    assert probe.calls == 10
    assert harness.events == []


def test_existing_app_key_is_kept(app_dir):
    (app_dir / ".env").write_text("APP_KEY=base64:existingkeyvalue1234567890\n", encoding="utf-8")
    harness = Harness(app_dir, skip_assets=True)

    harness.build().execute()

    assert "APP_KEY=base64:existingkeyvalue1234567890" in (app_dir / ".env").read_text(encoding="utf-8")
    assert "Using app key: base64:existingk..." in harness.output.getvalue()


def test_report_file_records_outcome(app_dir):
    report_file = app_dir / "storage" / "report.json"
    harness = Harness(app_dir, report_file=str(report_file), skip_assets=True)

    harness.build().execute()

    data = json.loads(report_file.read_text(encoding="utf-8"))
    assert data["status"] == "success"
    assert data["admin_created"] is True
    assert data["steps"][0]["label"] == "Clearing caches"


def test_media_path_step_is_skipped_once_configured(app_dir):
    harness = Harness(app_dir, skip_assets=True)
    harness.settings_store.values["media_path"] = "/srv/media"

    result = harness.build().execute()

    assert "Media path already set -- skipping" in [
        outcome.label for outcome in result.outcomes if outcome.status == SKIPPED
    ]
    assert result.storage_unset is False


def test_media_path_lookup_failure_is_only_a_warning(app_dir):
    harness = Harness(app_dir, skip_assets=True)

    def broken_get(_key):
        raise RuntimeError("settings table missing")

    harness.settings_store.get = broken_get

    result = harness.build().execute()

    assert result.success is True
    assert any("Setting up media path did not complete" in warning for warning in result.warnings)
    assert "Setting up media path" in [outcome.label for outcome in result.outcomes if outcome.status == FAILED]
