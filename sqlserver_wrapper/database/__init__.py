"""
Database Module Initialization
Exportiert die wichtigsten DB-Funktionen für einfacheren Zugriff.
"""
from .connection import build_connection_string, mask_connection_string
from .exceptions import ErrorType, SqlServerDBWrapperError
from .parameters import ParameterDirection, SqlDbType, SqlParameter
from .wrapper import FUNCTION_RETURN_PARAMETER, SqlServerDBWrapper

__all__ = [
    "build_connection_string",
    "mask_connection_string",
    "ErrorType",
    "SqlServerDBWrapperError",
    "ParameterDirection",
    "SqlDbType",
    "SqlParameter",
    "FUNCTION_RETURN_PARAMETER",
    "SqlServerDBWrapper",
]
