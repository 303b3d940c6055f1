"""Wrapper Exception - einziger öffentlicher Fehlertyp des Wrappers"""

from enum import Enum


class ErrorType(Enum):
    """Coarse category of a wrapper failure"""

    # Probe connection failed, or a call was blocked by a cached invalid connection
    CONNECTION = "connection"

    # Ad-hoc SQL text (query, XML query, insert, update)
    SQL = "sql"

    # Stored routines (procedure, function, table-valued function)
    STORED_PROCEDURE = "stored_procedure"


class SqlServerDBWrapperError(Exception):
    """
    Raised by every SqlServerDBWrapper operation.

    Attributes:
        message: Operation prefix plus driver message
        connection_string: Connection string in use when the error occurred
        error_type: ErrorType category
    """

    def __init__(self, message: str, connection_string: str, error_type: ErrorType):
        super().__init__(message)
        self.message = message
        self.connection_string = connection_string
        self.error_type = error_type

    def __str__(self):
        return self.message

    def __repr__(self):
        return f"SqlServerDBWrapperError({self.message!r}, error_type={self.error_type.name})"


def driver_message(exc: BaseException) -> str:
    """
    Extract the human readable message from a driver exception.

    SQLAlchemy wraps DBAPI errors (``DBAPIError.orig``); pyodbc errors carry
    ``(sqlstate, message)`` in their args.
    """
    orig = getattr(exc, 'orig', None)
    if isinstance(orig, BaseException):
        exc = orig

    args = getattr(exc, 'args', ())
    if len(args) > 1 and isinstance(args[0], str) and isinstance(args[1], str):
        return args[1]
    return str(exc)
