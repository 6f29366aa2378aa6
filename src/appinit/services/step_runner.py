"""Uniform execution and reporting of installation steps."""

from typing import Any, Callable, Optional

from appinit.models import FAILED, SKIPPED, SUCCEEDED, StepOutcome

_LABEL_WIDTH = 60


class StepRunner:
    """Runs one step with an optional already-done check and prints a status line."""

    def __init__(self, logger, console, report=None):
        self.logger = logger
        self.console = console
        self.report = report

    def run(
        self,
        label: str,
        action: Callable[[], Any],
        precondition: Optional[Callable[[], bool]] = None,
        skip_label: Optional[str] = None,
    ) -> StepOutcome:
        if precondition is not None and precondition():
            outcome = StepOutcome(label=skip_label or f"{label} -- skipping", status=SKIPPED)
            self._print(outcome.label, "[yellow]SKIPPED[/yellow]")
            self.logger.info("Skipped step: %s", label)
            return self._record(outcome)

        try:
            value = action()
        except Exception as exc:
            self._print(label, "[bold red]FAIL[/bold red]")
            self.logger.error("Step failed: %s", label, exc_info=True)
            return self._record(StepOutcome(label=label, status=FAILED, cause=exc))

        self._print(label, "[green]DONE[/green]")
        self.logger.info("Completed step: %s", label)
        return self._record(StepOutcome(label=label, status=SUCCEEDED, value=value))

    def _record(self, outcome: StepOutcome) -> StepOutcome:
        if self.report is not None:
            self.report.step_finished(
                outcome.label,
                outcome.status,
                error=str(outcome.cause) if outcome.cause else None,
            )
        return outcome

    def _print(self, label: str, marker: str):
        dots = "." * max(3, _LABEL_WIDTH - len(label))
        self.console.print(f"  {label} [dim]{dots}[/dim] {marker}", highlight=False)
