"""Shared constants for AppInit."""

NON_INTERACTIVE_MAX_CONNECTION_ATTEMPTS = 10

DRIVERS = {
    "mysql": "MySQL/MariaDB",
    "pgsql": "PostgreSQL",
    "sqlsrv": "SQL Server",
    "sqlite": "SQLite",
}
DEFAULT_DRIVER = "mysql"
FILE_BASED_DRIVERS = {"sqlite"}

SQLALCHEMY_DIALECTS = {
    "mysql": "mysql+pymysql",
    "pgsql": "postgresql+psycopg2",
    "sqlsrv": "mssql+pyodbc",
    "sqlite": "sqlite",
}

APP_KEY = "APP_KEY"
APP_URL = "APP_URL"
APP_ENV = "APP_ENV"
MEDIA_PATH_ENV = "MEDIA_PATH"
MEDIA_PATH_SETTING = "media_path"

FIRST_ADMIN_NAME = "AppInit Admin"
FIRST_ADMIN_EMAIL = "admin@appinit.dev"
FIRST_ADMIN_PASSWORD = "AppInit"

BASELINE_SETTINGS = {
    "allow_registration": False,
    "theme": "default",
}

SECRET_DISPLAY_LENGTH = 16
