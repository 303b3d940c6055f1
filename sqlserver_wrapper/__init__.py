"""
SQL Server DB Wrapper - Zentrale Schnittstelle zum SQL Server

Verwendung:
    from sqlserver_wrapper import SqlServerDBWrapper, SqlParameter, SqlDbType
    from sqlserver_wrapper import SqlServerDBWrapperError, ErrorType
"""

# Database
from .database import (
    FUNCTION_RETURN_PARAMETER,
    ErrorType,
    ParameterDirection,
    SqlDbType,
    SqlParameter,
    SqlServerDBWrapper,
    SqlServerDBWrapperError,
    build_connection_string,
)

# Logging
from .logging import create_module_logger, db_logger

# Public API
__all__ = [
    # Database
    "SqlServerDBWrapper",
    "SqlServerDBWrapperError",
    "ErrorType",
    "SqlParameter",
    "SqlDbType",
    "ParameterDirection",
    "FUNCTION_RETURN_PARAMETER",
    "build_connection_string",

    # Logging
    "create_module_logger",
    "db_logger",
]

# Version
__version__ = "1.0.0"
