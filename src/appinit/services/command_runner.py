"""Subprocess execution service for AppInit."""

import subprocess
from typing import List, Optional, Sequence

from appinit.errors import InitError


class CommandRunner:
    """Runs external commands with consistent error handling."""

    def __init__(self, logger, default_timeout: Optional[float] = None):
        self.logger = logger
        self.default_timeout = default_timeout

    def run(
        self,
        cmd: Sequence[str],
        check: bool = True,
        capture_output: bool = False,
        timeout: Optional[float] = None,
        cwd: Optional[str] = None,
        input_text: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        cmd_list: List[str] = list(cmd)
        cmd_str = " ".join(cmd_list)
        self.logger.debug("Executing: %s", cmd_str)

        effective_timeout = timeout if timeout is not None else self.default_timeout

        try:
            result = subprocess.run(
                cmd_list,
                text=True,
                capture_output=capture_output,
                timeout=effective_timeout,
                cwd=cwd,
                input=input_text,
            )
        except FileNotFoundError as exc:
            raise InitError(
                f"Required command not found: {cmd_list[0]}. Please install it and try again."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise InitError(f"Command timed out after {effective_timeout}s: {cmd_str}") from exc
        except Exception as exc:
            raise InitError(f"Failed to execute command: {cmd_str}. {exc}") from exc

        if capture_output and result.stdout:
            self.logger.debug("Command output: %s", result.stdout.strip())

        if result.returncode == 0:
            return result

        stderr = (result.stderr or "").strip() if capture_output else ""
        message = f"Command failed ({result.returncode}): {cmd_str}"
        if stderr:
            message = f"{message}\n{stderr}"

        if check:
            raise InitError(message)

        self.logger.warning(message)
        return result
