"""
Configuration - Re-Export Layer

Stellt die zentrale Konfiguration aus config/settings.py bereit.
Alle Werte werden aus der .env Datei geladen.
"""

from .settings import (
    # SQL Server Connection
    SQL_SERVER,
    SQL_DATABASE,
    SQL_USERNAME,
    SQL_PASSWORD,
    SQL_INTEGRATED_SECURITY,
    SQL_DRIVER,
    SQL_TRUST_SERVER_CERTIFICATE,

    # Timeouts
    SQL_COMMAND_TIMEOUT,
    SQL_LOGIN_TIMEOUT,

    # Logging
    LOG_DIR,
    LOG_LEVEL,
)

__all__ = [
    # SQL Server
    "SQL_SERVER",
    "SQL_DATABASE",
    "SQL_USERNAME",
    "SQL_PASSWORD",
    "SQL_INTEGRATED_SECURITY",
    "SQL_DRIVER",
    "SQL_TRUST_SERVER_CERTIFICATE",

    # Timeouts
    "SQL_COMMAND_TIMEOUT",
    "SQL_LOGIN_TIMEOUT",

    # Logging
    "LOG_DIR",
    "LOG_LEVEL",
]
