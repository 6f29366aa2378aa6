"""Crontab registration for the host application's scheduler."""

import shlex


class SchedulerService:
    """Adds a once-a-minute crontab entry for the application scheduler.

    Returns process-style result codes: 0 on success, non-zero otherwise.
    """

    def __init__(self, command_runner, logger):
        self.command_runner = command_runner
        self.logger = logger

    def build_entry(self, base_dir: str, schedule_command: str) -> str:
        return f"* * * * * cd {shlex.quote(base_dir)} && {schedule_command} >> /dev/null 2>&1"

    def install(self, base_dir: str, schedule_command: str) -> int:
        entry = self.build_entry(base_dir, schedule_command)

        listing = self.command_runner.run(["crontab", "-l"], check=False, capture_output=True)
        if listing.returncode == 0:
            current = listing.stdout or ""
        elif "no crontab for" in (listing.stderr or ""):
            current = ""
        else:
            # Writing now would replace entries we could not read.
            self.logger.warning("Could not read the current crontab: %s", (listing.stderr or "").strip())
            return listing.returncode

        lines = [line for line in current.splitlines() if line.strip()]
        if entry in lines:
            self.logger.info("Scheduler entry already present in crontab.")
            return 0

        lines.append(entry)
        result = self.command_runner.run(
            ["crontab", "-"],
            check=False,
            capture_output=True,
            input_text="\n".join(lines) + "\n",
        )
        return result.returncode
