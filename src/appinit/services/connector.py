"""Bounded-retry datastore connection negotiation."""

from dataclasses import dataclass, replace

from appinit.constants import NON_INTERACTIVE_MAX_CONNECTION_ATTEMPTS
from appinit.errors import ConnectionUnavailable
from appinit.errors_catalog import actionable_error

PROBING = "probing"
CORRECTING = "correcting"
CONNECTED = "connected"
GIVING_UP = "giving_up"


@dataclass(frozen=True)
class ConnectorState:
    phase: str = PROBING
    attempts: int = 0


class RetryingConnector:
    """Makes sure the datastore is reachable before the schema is touched.

    Unattended runs retry a fixed number of times without touching stored
    credentials, so a network blip cannot wipe valid values. With an operator
    present every failed probe leads to a credential prompt and there is no
    attempt cap.
    """

    def __init__(
        self,
        probe,
        collector,
        config_store,
        live_settings,
        operator,
        logger,
        console,
        max_attempts: int = NON_INTERACTIVE_MAX_CONNECTION_ATTEMPTS,
    ):
        self.probe = probe
        self.collector = collector
        self.config_store = config_store
        self.live_settings = live_settings
        self.operator = operator
        self.logger = logger
        self.console = console
        self.max_attempts = max_attempts

    def connect(self) -> int:
        """Returns the number of probes it took to get a connection."""
        state = ConnectorState()
        while state.phase not in (CONNECTED, GIVING_UP):
            state = self.transition(state)

        if state.phase == GIVING_UP:
            self.console.print("[bold red]Maximum database connection attempts reached. Giving up.[/bold red]")
            raise ConnectionUnavailable(
                actionable_error(
                    "connection_unavailable",
                    attempts=state.attempts,
                    path=self.config_store.path or ".env",
                )
            )

        self.logger.info("Database connection established after %s attempt(s).", state.attempts)
        return state.attempts

    def transition(self, state: ConnectorState) -> ConnectorState:
        if state.phase == PROBING:
            attempts = state.attempts + 1
            if self.probe.check(self.live_settings.snapshot()):
                return ConnectorState(CONNECTED, attempts)
            self.logger.warning("Database connectivity probe %s failed.", attempts)
            return ConnectorState(CORRECTING, attempts)

        if state.phase == CORRECTING:
            if not self.operator.interactive:
                self.console.print(
                    "[yellow]Cannot connect to the database. "
                    f"Attempt: {state.attempts}/{self.max_attempts}[/yellow]"
                )
                if state.attempts >= self.max_attempts:
                    return replace(state, phase=GIVING_UP)
                return replace(state, phase=PROBING)

            self.console.print("[yellow]Cannot connect to the database. Let's set it up.[/yellow]")
            self._apply_credentials(self.collector.collect())
            return replace(state, phase=PROBING)

        return state

    def _apply_credentials(self, credentials):
        values = credentials.as_env()
        # The file is written before the live layer so a failed save leaves both untouched.
        self.config_store.set_many(values)
        self.config_store.save()
        self.live_settings.update(values)
        self.logger.info("Stored new database credentials for driver '%s'.", credentials.driver)
