import logging
import os

import click
from rich.logging import RichHandler

from .core import AppInitializer
from .errors import InitError
from .models import InitSettings
from .services.config_loader import ConfigLoader

DEFAULT_CONFIG_FILE = ".appinit.yml"

# Config keys copied verbatim into InitSettings; list values become tuples.
_SETTINGS_KEYS = (
    "env_file",
    "env_template",
    "public_dir",
    "manifests",
    "cache_dirs",
    "schedule_command",
    "alembic_ini",
    "cipher",
    "docs_url",
    "troubleshooting_url",
    "scheduler_docs_url",
)


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


def _as_tuple(value):
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


def configure_logging(log_file: str, verbose: bool) -> logging.Logger:
    """File log always; console log only in verbose mode so raw errors stay off the terminal."""
    logger = logging.getLogger("appinit")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    logger.addHandler(file_handler)

    if verbose:
        logger.addHandler(RichHandler(rich_tracebacks=True, show_level=False, show_path=False))

    return logger


def build_settings(config_values, **cli_values) -> InitSettings:
    kwargs = {}
    for key in _SETTINGS_KEYS:
        if key in config_values:
            value = config_values[key]
            kwargs[key] = _as_tuple(value) if key in ("manifests", "cache_dirs") else str(value)

    if "asset_commands" in config_values:
        kwargs["asset_commands"] = tuple(
            tuple(cmd.split()) if isinstance(cmd, str) else tuple(cmd)
            for cmd in config_values["asset_commands"]
        )

    base_dir = _resolve_option(cli_values["base_dir"], config_values, "base_dir", default=os.getcwd())
    log_file = _resolve_option(cli_values["log_file"], config_values, "log_file")
    if not log_file:
        log_file = os.path.join(base_dir, InitSettings.log_file)

    return InitSettings(
        base_dir=str(base_dir),
        log_file=str(log_file),
        report_file=_resolve_option(cli_values["report_file"], config_values, "report_file"),
        skip_assets=bool(_resolve_option(cli_values["no_assets"], config_values, "no_assets", default=False)),
        skip_scheduler=bool(
            _resolve_option(cli_values["no_scheduler"], config_values, "no_scheduler", default=False)
        ),
        verbose=bool(_resolve_option(cli_values["verbose"], config_values, "verbose", default=False)),
        **kwargs,
    )


@click.command()
@click.option("--no-assets", is_flag=True, default=None, help="Do not compile front-end assets.")
@click.option("--no-scheduler", is_flag=True, default=None, help="Do not install the scheduler.")
@click.option(
    "-n",
    "--no-interaction",
    is_flag=True,
    default=None,
    help="Never prompt. Database connection is retried a bounded number of times.",
)
@click.option("--verbose", is_flag=True, default=None, help="Show command output and log to the console.")
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option(
    "--base-dir",
    required=False,
    type=click.Path(file_okay=False),
    help="Root directory of the application to install (default: current directory).",
)
@click.option("--log-file", type=click.Path(), help="Path to log file.")
@click.option("--report-file", type=click.Path(), help="Write a JSON report of the run to this path.")
def main(no_assets, no_scheduler, no_interaction, verbose, config, base_dir, log_file, report_file):
    """Install or upgrade the application."""
    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except InitError as exc:
        raise click.ClickException(str(exc)) from exc

    settings = build_settings(
        config_values,
        no_assets=no_assets,
        no_scheduler=no_scheduler,
        verbose=verbose,
        base_dir=base_dir,
        log_file=log_file,
        report_file=report_file,
    )
    interactive = not bool(
        _resolve_option(no_interaction, config_values, "no_interaction", default=False)
    )

    configure_logging(settings.log_file, settings.verbose)

    initializer = AppInitializer(settings=settings, interactive=interactive)
    raise SystemExit(initializer.run())


if __name__ == "__main__":
    main()
