"""Zentrale Konfigurationsverwaltung

All values are read from the environment; a ``.env`` file in the working
directory is loaded first if present.
"""

import os
import platform

from dotenv import find_dotenv, load_dotenv

load_dotenv(find_dotenv(usecwd=True))


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _default_driver() -> str:
    """ODBC driver name differs between Linux and Windows installations."""
    return 'ODBC Driver 18 for SQL Server' if platform.system() == 'Linux' else 'SQL Server'


# --- SQL Server Connection ---
SQL_SERVER = os.getenv('SQL_SERVER', 'localhost')
SQL_DATABASE = os.getenv('SQL_DATABASE', 'master')
SQL_USERNAME = os.getenv('SQL_USERNAME')
SQL_PASSWORD = os.getenv('SQL_PASSWORD')
SQL_INTEGRATED_SECURITY = _env_bool('SQL_INTEGRATED_SECURITY', False)

SQL_DRIVER = os.getenv('SQL_DRIVER') or _default_driver()
SQL_TRUST_SERVER_CERTIFICATE = _env_bool('SQL_TRUST_SERVER_CERTIFICATE', True)

# --- Timeouts (Sekunden) ---
SQL_COMMAND_TIMEOUT = int(os.getenv('SQL_COMMAND_TIMEOUT', '30'))
SQL_LOGIN_TIMEOUT = int(os.getenv('SQL_LOGIN_TIMEOUT', '10'))

# --- Logging ---
# Empty LOG_DIR disables the file handler
LOG_DIR = os.getenv('LOG_DIR', 'logs')
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
