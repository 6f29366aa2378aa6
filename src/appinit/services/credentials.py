"""Interactive collection of datastore credentials."""

from appinit.constants import DEFAULT_DRIVER, DRIVERS, FILE_BASED_DRIVERS
from appinit.errors import InitError
from appinit.models import ConnectionCredentials


class CredentialCollector:
    """Asks the operator for connection parameters. Reachability is not checked here."""

    def __init__(self, operator):
        self.operator = operator

    def collect(self) -> ConnectionCredentials:
        driver = (self.operator.choice("Your DB driver of choice", DRIVERS, DEFAULT_DRIVER) or "").strip()
        if driver not in DRIVERS:
            raise InitError(f"Unsupported database driver: {driver or '<empty>'}")

        if driver in FILE_BASED_DRIVERS:
            return ConnectionCredentials(
                driver=driver,
                database=self.operator.ask("Absolute path to the DB file"),
            )

        return ConnectionCredentials(
            driver=driver,
            host=self.operator.ask("DB host", default="127.0.0.1"),
            port=self.operator.ask("DB port (leave empty for default)"),
            database=self.operator.ask("DB name", default="appinit"),
            username=self.operator.ask("DB user", default="appinit"),
            password=self.operator.ask("DB password", hide_input=True),
        )
