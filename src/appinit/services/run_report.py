"""JSON report of an installation run."""

import json
import os
import tempfile
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class RunReportService:
    """Collects step outcomes and rewrites the report file after each change."""

    def __init__(self, report_file: str, logger):
        self.report_file = report_file
        self.logger = logger
        self.report: Dict[str, Any] = {
            "status": "running",
            "interactive": None,
            "started_at": None,
            "finished_at": None,
            "steps": [],
            "admin_created": False,
            "storage_unset": None,
            "warnings": [],
            "error": None,
        }

    def start_run(self, interactive: bool):
        self.report["status"] = "running"
        self.report["interactive"] = interactive
        self.report["started_at"] = self._now()
        self.write()

    def step_finished(self, label: str, status: str, error: Optional[str] = None):
        self.report["steps"].append(
            {
                "label": label,
                "status": status,
                "finished_at": self._now(),
                "error": error,
            }
        )
        self.write()

    def add_warning(self, message: str):
        self.report["warnings"].append(message)
        self.write()

    def finalize(
        self,
        status: str,
        admin_created: bool = False,
        storage_unset: Optional[bool] = None,
        error: Optional[str] = None,
    ):
        self.report["status"] = status
        self.report["finished_at"] = self._now()
        self.report["admin_created"] = admin_created
        self.report["storage_unset"] = storage_unset
        self.report["error"] = error
        self.write()

    def write(self):
        directory = os.path.dirname(os.path.abspath(self.report_file))
        os.makedirs(directory, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(prefix="appinit-report-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(self.report, file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, self.report_file)
        except OSError as exc:
            self.logger.warning("Could not write report file '%s': %s", self.report_file, exc)
            try:
                os.remove(temp_path)
            except OSError:
                pass

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()
