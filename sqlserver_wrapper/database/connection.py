"""
sqlserver_wrapper/database/connection.py
Database Connection Manager - SQL Server via SQLAlchemy Engine + pyodbc.

The engine uses NullPool: every ``connect()`` opens a fresh DBAPI connection
and closing it really closes it. Any pooling is left to the ODBC driver.
"""

import re
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine
from sqlalchemy.pool import NullPool

from ..config.settings import SQL_DRIVER, SQL_LOGIN_TIMEOUT, SQL_TRUST_SERVER_CERTIFICATE

_PASSWORD_PATTERN = re.compile(r'(PWD=)(\{(?:[^}]|\}\})*\}|[^;]*)', re.IGNORECASE)


def _parse_server(data_source: str) -> str:
    """Normalize 'host:port' to the ODBC 'host,port' form; 'host\\instance' stays as is."""
    data_source = data_source.strip()
    host, sep, port = data_source.rpartition(':')
    if sep and port.isdigit() and ',' not in host:
        return f"{host},{port}"
    return data_source


def _odbc_value(value: str) -> str:
    """Brace-quote ODBC attribute values containing separators"""
    if any(ch in value for ch in ';{}') or value != value.strip():
        return '{' + value.replace('}', '}}') + '}'
    return value


def build_connection_string(
    data_source: str,
    initial_catalog: str,
    user_id: Optional[str] = None,
    password: Optional[str] = None,
    integrated_security: bool = False,
    driver: str = SQL_DRIVER,
    trust_server_certificate: bool = SQL_TRUST_SERVER_CERTIFICATE,
) -> str:
    """
    Build the ODBC connection string.

    Identical inputs always give the identical string. UID/PWD are only
    appended when a user id is given.

    Returns:
        e.g. 'DRIVER={ODBC Driver 18 for SQL Server};SERVER=db01,1433;DATABASE=Sales;
              Trusted_Connection=no;TrustServerCertificate=yes;UID=app;PWD=secret'
    """
    parts = [
        f"DRIVER={{{driver}}}",
        f"SERVER={_odbc_value(_parse_server(data_source))}",
        f"DATABASE={_odbc_value(initial_catalog)}",
        f"Trusted_Connection={'yes' if integrated_security else 'no'}",
        f"TrustServerCertificate={'yes' if trust_server_certificate else 'no'}",
    ]

    if user_id:
        parts.append(f"UID={_odbc_value(user_id)}")
        parts.append(f"PWD={_odbc_value(password or '')}")

    return ';'.join(parts)


def mask_connection_string(connection_string: str) -> str:
    """Replace the PWD value for log output"""
    return _PASSWORD_PATTERN.sub(r'\1***', connection_string)


def create_wrapper_engine(connection_string: str, login_timeout: int = SQL_LOGIN_TIMEOUT) -> Engine:
    """Create a non-pooling SQLAlchemy Engine for the given ODBC connection string."""
    url = URL.create("mssql+pyodbc", query={"odbc_connect": connection_string})
    return create_engine(
        url,
        poolclass=NullPool,
        isolation_level="AUTOCOMMIT",
        connect_args={"timeout": login_timeout},
        future=True,
    )


def probe_connection(engine: Engine) -> None:
    """Open and immediately close one connection; raises on failure."""
    with engine.connect():
        pass


@contextmanager
def open_cursor(engine: Engine, command_timeout: int) -> Iterator:
    """
    Context manager for one command: yields a raw pyodbc cursor.

    Cursor and connection are closed on every exit path.

    Args:
        engine: Engine from create_wrapper_engine()
        command_timeout: Query timeout in seconds (0 = no timeout)
    """
    with engine.connect() as conn:
        dbapi_conn = conn.connection.dbapi_connection
        dbapi_conn.timeout = command_timeout
        cursor = dbapi_conn.cursor()
        try:
            yield cursor
        finally:
            cursor.close()
