"""Shared fixtures (no SQL Server needed)"""

import os
from unittest.mock import patch

# Keine Log-Dateien während der Tests
os.environ.setdefault("LOG_DIR", "")

import pytest

from sqlserver_wrapper import SqlServerDBWrapper, SqlServerDBWrapperError

from .fakes import DRIVER, ENGINE_FACTORY, FakeDriverError, FakeEngine


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def db(engine):
    """Wrapper with SQL login, validated against the fake engine"""
    with patch(ENGINE_FACTORY, return_value=engine):
        wrapper = SqlServerDBWrapper("db01", "Sales", "app", "secret",
                                     driver=DRIVER, trust_server_certificate=True)
    return wrapper


@pytest.fixture
def broken_db(db):
    """Wrapper whose last reconfiguration failed"""
    failing = FakeEngine(connect_error=FakeDriverError("08001", "Named Pipes Provider: Could not open a connection"))
    with patch(ENGINE_FACTORY, return_value=failing):
        with pytest.raises(SqlServerDBWrapperError):
            db.set_connection_params("nowhere", "app", "secret", "Sales", False)
    db.failing_engine = failing
    return db
