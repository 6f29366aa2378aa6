"""Configuration loader for AppInit."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from appinit.errors import InitError


class ConfigLoader:
    """Loads YAML configuration files for CLI defaults."""

    SUPPORTED_KEYS = {
        "base_dir",
        "no_assets",
        "no_scheduler",
        "no_interaction",
        "verbose",
        "log_file",
        "report_file",
        "env_file",
        "env_template",
        "public_dir",
        "manifests",
        "cache_dirs",
        "asset_commands",
        "schedule_command",
        "alembic_ini",
        "cipher",
        "docs_url",
        "troubleshooting_url",
        "scheduler_docs_url",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise InitError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise InitError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise InitError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            unknown_list = ", ".join(unknown)
            raise InitError(f"Unknown configuration keys: {unknown_list}")

        return parsed
