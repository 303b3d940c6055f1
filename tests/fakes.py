"""Fake SQLAlchemy engine + pyodbc-like cursor for tests without SQL Server"""

from types import SimpleNamespace

DRIVER = "ODBC Driver 18 for SQL Server"
ENGINE_FACTORY = "sqlserver_wrapper.database.wrapper.create_wrapper_engine"


class FakeDriverError(Exception):
    """Looks like pyodbc.Error: args = (sqlstate, message)"""


class FakeCursor:
    """
    Minimal pyodbc-like cursor.

    result_sets: list of None (row count only) or (column_names, rows)
    nextset_error: raised when the cursor advances past the first result set
    """

    def __init__(self, result_sets=None, execute_error=None, nextset_error=None):
        self.result_sets = list(result_sets or [])
        self.execute_error = execute_error
        self.nextset_error = nextset_error
        self.executed = []
        self.closed = False
        self._set_index = 0
        self._row_index = 0

    def execute(self, sql, params=None):
        self.executed.append((sql, params))
        if self.execute_error is not None:
            raise self.execute_error
        self._set_index = 0
        self._row_index = 0
        return self

    def _current(self):
        if self._set_index < len(self.result_sets):
            return self.result_sets[self._set_index]
        return None

    @property
    def description(self):
        current = self._current()
        if current is None:
            return None
        columns, _ = current
        return [(name, str, None, None, None, None, True) for name in columns]

    def fetchone(self):
        _, rows = self._current()
        if self._row_index >= len(rows):
            return None
        row = rows[self._row_index]
        self._row_index += 1
        return row

    def fetchall(self):
        _, rows = self._current()
        remaining = list(rows[self._row_index:])
        self._row_index = len(rows)
        return remaining

    def __iter__(self):
        while True:
            row = self.fetchone()
            if row is None:
                return
            yield row

    def nextset(self):
        # pyodbc raises errors of later statements in the batch only here
        if self.nextset_error is not None:
            raise self.nextset_error
        if self._set_index + 1 < len(self.result_sets):
            self._set_index += 1
            self._row_index = 0
            return True
        self._set_index = len(self.result_sets)
        return False

    def close(self):
        self.closed = True


class FakeConnection:
    """Stands in for sqlalchemy.engine.Connection"""

    def __init__(self, engine):
        self.engine = engine
        self.connection = SimpleNamespace(dbapi_connection=engine.dbapi_connection)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.engine.closed_connections += 1
        return False


class FakeEngine:
    def __init__(self, cursor=None, connect_error=None):
        self.cursor = cursor or FakeCursor()
        self.dbapi_connection = SimpleNamespace(timeout=0, cursor=lambda: self.cursor)
        self.connect_error = connect_error
        self.connect_calls = 0
        self.closed_connections = 0
        self.disposed = False

    def connect(self):
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error
        return FakeConnection(self)

    def dispose(self):
        self.disposed = True
