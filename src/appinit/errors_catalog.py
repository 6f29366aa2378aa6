"""Actionable error catalog for AppInit."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "env_source_unreadable": {
        "what": "Environment file could not be read: {path} ({reason}).",
        "next": "Check the file permissions or remove it so it is recreated from the template.",
    },
    "connection_unavailable": {
        "what": "Cannot connect to the database after {attempts} attempt(s).",
        "next": "Fix the DB_* values in {path} or run interactively to enter new credentials.",
    },
    "asset_build_failed": {
        "what": "Command `{command}` did not finish successfully.",
        "next": "Re-run with `--verbose` to see the build output, or use `--no-assets`.",
    },
    "storage_path_invalid": {
        "what": "The path {path} does not exist or is not readable.",
        "next": "Create the directory or set the storage location later from the web interface.",
    },
    "scheduler_install_failed": {
        "what": "Failed to install the scheduler (exit code {code}).",
        "next": "Install it manually: {docs_url}",
    },
}


def actionable_error(key: str, /, **kwargs: object) -> str:
    if key not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {key}")

    template = _ERROR_MESSAGES[key]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
