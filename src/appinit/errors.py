"""Domain errors for AppInit."""


class InitError(RuntimeError):
    """Raised when the installation cannot continue safely."""


class ConfigSourceError(InitError, OSError):
    """Raised when the environment file cannot be read."""


class PersistenceError(InitError):
    """Raised when configuration cannot be written to disk."""


class ConnectionUnavailable(InitError):
    """Raised when the datastore stays unreachable after the retry budget."""


class MigrationError(InitError):
    """Raised when pending schema migrations cannot be applied."""


class InstallationFailedException(InitError):
    """Raised when an external build command reports failure."""


class OperatorUnavailable(InitError):
    """Raised when input is requested while no operator is present."""


class SchedulerInstallFailed(InitError):
    """Raised when scheduler registration reports a non-zero result code."""

    def __init__(self, message: str, returncode: int):
        super().__init__(message)
        self.returncode = returncode
