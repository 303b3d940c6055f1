"""
sqlserver_wrapper/database/wrapper.py
SqlServerDBWrapper - single point of interaction with a SQL Server database.

Each call opens its own connection, runs exactly one batch, hands the cursor
to the caller's function (if any) and closes everything again.

Example:
    def print_rows(cursor):
        for row in cursor:
            print(row.ProductID, row.Name)

    db = SqlServerDBWrapper("192.168.5.22", "AdventureWorks", integrated_security=True)
    params = [
        SqlParameter("StartProductID", SqlDbType.INT, 717),
        SqlParameter("CheckDate", SqlDbType.DATETIME, datetime.now()),
    ]
    db.run_procedure("dbo", "uspGetBillOfMaterials", params, print_rows)
"""

import xml.etree.ElementTree as ET
from contextlib import contextmanager
from typing import Any, Callable, List, Optional, Sequence

from ..config.settings import (
    SQL_COMMAND_TIMEOUT,
    SQL_DATABASE,
    SQL_DRIVER,
    SQL_INTEGRATED_SECURITY,
    SQL_LOGIN_TIMEOUT,
    SQL_PASSWORD,
    SQL_SERVER,
    SQL_TRUST_SERVER_CERTIFICATE,
    SQL_USERNAME,
)
from ..logging import db_logger
from .connection import (
    build_connection_string,
    create_wrapper_engine,
    mask_connection_string,
    open_cursor,
    probe_connection,
)
from .exceptions import ErrorType, SqlServerDBWrapperError, driver_message
from .parameters import ParameterDirection, SqlDbType, SqlParameter
from .statements import (
    build_bound_table_valued_function_query,
    build_parameterized_batch,
    build_positional_batch,
    build_procedure_batch,
    build_table_valued_function_query,
    contains_for_xml,
)

# Reserved name of the return value parameter registered by run_function()
FUNCTION_RETURN_PARAMETER = "FUNCTION_RETURN_PARAMETER"

QueryFunction = Callable[[Any], Any]


# ===== Cursor Helpers =====

def _execute(cursor, sql: str, values: Sequence[Any]):
    if values:
        cursor.execute(sql, list(values))
    else:
        cursor.execute(sql)


def _skip_to_result_set(cursor) -> None:
    """Skip row-count-only results so the cursor sits on the first real result set"""
    while cursor.description is None:
        if not cursor.nextset():
            break


def _drain(cursor) -> None:
    """Consume remaining results; errors raised later in the batch surface here"""
    while cursor.nextset():
        pass


def _read_output_row(cursor):
    """Return the first row of the last result set (the batch's output SELECT)"""
    row = None
    while True:
        if cursor.description is not None:
            row = cursor.fetchone()
        if not cursor.nextset():
            return row


def _apply_outputs(cursor, output_parameters: List[SqlParameter]) -> None:
    """
    Write output/return values back into the caller's parameter objects.

    Always reads the batch to its end, so errors raised by later statements
    surface here.
    """
    if not output_parameters:
        _drain(cursor)
        return

    row = _read_output_row(cursor)
    if row is None:
        names = ", ".join(p.name for p in output_parameters)
        db_logger.warning(f"Output values not available (already consumed by query function?): {names}")
        return

    for param, value in zip(output_parameters, row):
        param.value = value


def _is_output_result(cursor, output_parameters: Sequence[SqlParameter]) -> bool:
    """True if the current result set is the batch's own SELECT of the output variables"""
    if not output_parameters or cursor.description is None:
        return False
    columns = [column[0] for column in cursor.description]
    return columns == [p.name for p in output_parameters]


def _read_xml(cursor, output_parameters: Sequence[SqlParameter] = ()) -> Optional[ET.Element]:
    """
    Read a FOR XML result (possibly split over several rows) into an Element.

    Args:
        cursor: Cursor right after execute()
        output_parameters: Outputs selected at the end of the batch; their
            result set is left untouched for _apply_outputs()

    Returns:
        The first top-level element, or None if the server returned no XML
    """
    _skip_to_result_set(cursor)
    if cursor.description is None or _is_output_result(cursor, output_parameters):
        return None

    chunks = [row[0] for row in cursor.fetchall() if row[0] is not None]
    text = "".join(chunk.decode("utf-8") if isinstance(chunk, bytes) else chunk for chunk in chunks)
    if not text.strip():
        return None

    # FOR XML without ROOT() yields a fragment with several top-level elements
    fragment = ET.fromstring(f"<fragment>{text}</fragment>")
    return fragment[0] if len(fragment) else None


class SqlServerDBWrapper:
    """
    Provides wrapper functions for common SQL Server database tasks.

    Connection parameters can be changed without creating a new instance;
    every change re-validates the connection immediately.
    """

    def __init__(self, data_source: str, initial_catalog: str,
                 user_id: Optional[str] = None, password: Optional[str] = None,
                 integrated_security: bool = False, *,
                 driver: Optional[str] = None,
                 trust_server_certificate: Optional[bool] = None,
                 login_timeout: Optional[int] = None,
                 default_command_timeout: Optional[int] = None):
        """
        Args:
            data_source: Server ('host', 'host,port', 'host:port' or 'host\\instance')
            initial_catalog: Database to use once connected
            user_id: SQL login; omit for integrated security
            password: Password of the SQL login
            integrated_security: Authenticate with the OS credentials of this process
            driver: ODBC driver name (default: SQL_DRIVER setting)
            trust_server_certificate: Skip server certificate validation
            login_timeout: Seconds to wait for the login
            default_command_timeout: Seconds before a command is aborted (default 30)

        Raises:
            SqlServerDBWrapperError: CONNECTION if the probe connection fails
        """
        self._driver = driver or SQL_DRIVER
        self._trust_server_certificate = (SQL_TRUST_SERVER_CERTIFICATE
                                          if trust_server_certificate is None
                                          else trust_server_certificate)
        self._login_timeout = SQL_LOGIN_TIMEOUT if login_timeout is None else login_timeout
        self.default_command_timeout = (SQL_COMMAND_TIMEOUT
                                        if default_command_timeout is None
                                        else default_command_timeout)

        self._engine = None
        self._valid_connection = False

        self.set_connection_params(data_source, user_id, password, initial_catalog, integrated_security)

    @classmethod
    def from_settings(cls, **kwargs) -> "SqlServerDBWrapper":
        """Create a wrapper from the SQL_* settings (.env / environment)"""
        if SQL_INTEGRATED_SECURITY:
            return cls(SQL_SERVER, SQL_DATABASE, integrated_security=True, **kwargs)
        return cls(SQL_SERVER, SQL_DATABASE, SQL_USERNAME, SQL_PASSWORD, **kwargs)

    # ===== Connection =====

    def set_connection_params(self, data_source: str, user_id: Optional[str],
                              password: Optional[str], initial_catalog: str,
                              integrated_security: bool) -> None:
        """Set the connection string parameters and then test the connection"""
        self._valid_connection = False

        for label, value in (("Data Source", data_source), ("Initial Catalog", initial_catalog)):
            if not isinstance(value, str) or not value.strip():
                db_logger.error(f"Connection parameters rejected: {label} = {value!r}")
                raise SqlServerDBWrapperError(f"{label} Must Be A Non-Empty String", "",
                                              ErrorType.CONNECTION)
        for label, value in (("User Id", user_id), ("Password", password)):
            if value is not None and not isinstance(value, str):
                db_logger.error(f"Connection parameters rejected: {label} is {type(value).__name__}")
                raise SqlServerDBWrapperError(f"{label} Must Be A String", "", ErrorType.CONNECTION)

        self._data_source = data_source
        self._user_id = user_id or ""
        self._password = password or ""
        self._initial_catalog = initial_catalog
        self._integrated_security = bool(integrated_security)

        self._test_connection()

    @property
    def connection_string(self) -> str:
        """The string passed to the driver to establish the connection"""
        return build_connection_string(
            self._data_source,
            self._initial_catalog,
            user_id=self._user_id,
            password=self._password,
            integrated_security=self._integrated_security,
            driver=self._driver,
            trust_server_certificate=self._trust_server_certificate,
        )

    @property
    def is_valid_connection(self) -> bool:
        """Result of the last connection test (not re-verified)"""
        return self._valid_connection

    def _test_connection(self) -> None:
        """Try to open and close a connection with the current connection string"""
        self._valid_connection = False
        connection_string = ""
        masked = ""

        try:
            connection_string = self.connection_string
            masked = mask_connection_string(connection_string)
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None
            self._engine = create_wrapper_engine(connection_string, self._login_timeout)
            probe_connection(self._engine)
        except Exception as e:
            db_logger.error(f"Connection test failed ({masked}): {driver_message(e)}")
            raise SqlServerDBWrapperError(driver_message(e), connection_string,
                                          ErrorType.CONNECTION) from e

        self._valid_connection = True
        db_logger.info(f"Connection OK: {masked}")

    def dispose(self) -> None:
        """Release the engine; the wrapper is unusable until set_connection_params()"""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
        self._valid_connection = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()

    # ===== Call Boundary =====

    def _timeout(self, command_timeout: Optional[int]) -> int:
        return self.default_command_timeout if command_timeout is None else command_timeout

    @contextmanager
    def _operation(self, operation: str, error_type: ErrorType):
        """
        Fail fast on an invalid connection, otherwise wrap every failure of
        the block into SqlServerDBWrapperError.
        """
        connection_string = self.connection_string

        # if connection has already failed and hasn't changed, throw exception
        if not self._valid_connection:
            raise SqlServerDBWrapperError("Invalid Connection String", connection_string,
                                          ErrorType.CONNECTION)

        try:
            yield
        except Exception as e:
            message = f"{operation} Error: {driver_message(e)}"
            db_logger.error(message, exc_info=True)
            raise SqlServerDBWrapperError(message, connection_string, error_type) from e

    # ===== Ad-hoc SQL =====

    def run_query(self, query: str, query_function: QueryFunction, *parameters: str,
                  command_timeout: Optional[int] = None):
        """
        Execute the specified SQL query.

        Args:
            query: SQL text; parameters are referenced as @Param1, @Param2, ...
                (ex. select ID from PERSON where FIRST_NAME = @Param1 and LAST_NAME = @Param2)
            query_function: Called with the open cursor to handle the results
            *parameters: Values for @Param1, @Param2, ... in that order
            command_timeout: Seconds before the command is aborted

        Returns:
            Whatever query_function returns
        """
        with self._operation("run_query", ErrorType.SQL):
            batch = build_positional_batch(query, parameters)
            db_logger.debug(f"run_query: {query}")

            with open_cursor(self._engine, self._timeout(command_timeout)) as cursor:
                _execute(cursor, batch.sql, batch.values)
                _skip_to_result_set(cursor)
                result = query_function(cursor)
                _drain(cursor)
                return result

    def run_query_xml(self, query: str, *parameters: str,
                      command_timeout: Optional[int] = None) -> Optional[ET.Element]:
        """
        Execute the specified SQL query expecting an XML result.

        Returns:
            The result as Element, or None if the query produced no XML

        Raises:
            SqlServerDBWrapperError: SQL if the query has no "FOR XML" clause.
                The rejected text is an ad-hoc query, so this uses the SQL
                category rather than the stored-routine one; the check runs
                before the connection validity check.
        """
        # if query string doesn't contain the "FOR XML" clause, throw exception
        if not contains_for_xml(query):
            raise SqlServerDBWrapperError('Query String Does Not Contain "FOR XML" Clause',
                                          self.connection_string, ErrorType.SQL)

        with self._operation("run_query_xml", ErrorType.SQL):
            batch = build_positional_batch(query, parameters)
            db_logger.debug(f"run_query_xml: {query}")

            with open_cursor(self._engine, self._timeout(command_timeout)) as cursor:
                _execute(cursor, batch.sql, batch.values)
                element = _read_xml(cursor)
                _drain(cursor)
                return element

    def _run_non_query(self, operation: str, sql: str, parameters: Sequence[SqlParameter],
                       command_timeout: Optional[int]) -> None:
        with self._operation(operation, ErrorType.SQL):
            batch = build_parameterized_batch(sql, parameters)
            db_logger.debug(f"{operation}: {sql}")

            with open_cursor(self._engine, self._timeout(command_timeout)) as cursor:
                _execute(cursor, batch.sql, batch.values)
                _apply_outputs(cursor, batch.output_parameters)

    def run_insert(self, insert_sql: str, *parameters: SqlParameter,
                   command_timeout: Optional[int] = None) -> None:
        """
        Execute the specified SQL insert.

        Args:
            insert_sql: Insert statement referencing the parameters as @<name>
            *parameters: SqlParameter objects for the referenced names
        """
        self._run_non_query("run_insert", insert_sql, parameters, command_timeout)

    def run_update(self, update_sql: str, *parameters: SqlParameter,
                   command_timeout: Optional[int] = None) -> None:
        """Execute the specified SQL update (see run_insert)"""
        self._run_non_query("run_update", update_sql, parameters, command_timeout)

    # ===== Stored Routines =====

    def run_procedure(self, schema_name: str, procedure_name: str,
                      parameters: Optional[List[SqlParameter]] = None,
                      query_function: Optional[QueryFunction] = None,
                      command_timeout: Optional[int] = None):
        """
        Execute the specified SQL Server stored procedure.

        Args:
            schema_name: Schema of the procedure ('dbo' or '[dbo]')
            procedure_name: Name of the procedure
            parameters: SqlParameter objects; keep references to read
                OUTPUT / INPUT_OUTPUT / RETURN_VALUE values after the call
            query_function: Called with the open cursor to handle result sets;
                without it the procedure runs as a non-query
            command_timeout: Seconds before the command is aborted

        Returns:
            Whatever query_function returns (None for a non-query)
        """
        parameters = parameters or []

        with self._operation("run_procedure", ErrorType.STORED_PROCEDURE):
            batch = build_procedure_batch(schema_name, procedure_name, parameters)
            db_logger.debug(f"run_procedure: {schema_name}.{procedure_name} ({len(parameters)} params)")

            with open_cursor(self._engine, self._timeout(command_timeout)) as cursor:
                _execute(cursor, batch.sql, batch.values)

                if query_function is None:
                    _apply_outputs(cursor, batch.output_parameters)
                    return None

                _skip_to_result_set(cursor)
                result = query_function(cursor)
                _apply_outputs(cursor, batch.output_parameters)
                return result

    def run_procedure_xml(self, schema_name: str, procedure_name: str,
                          parameters: Optional[List[SqlParameter]] = None,
                          command_timeout: Optional[int] = None) -> Optional[ET.Element]:
        """
        Execute the specified SQL Server stored procedure expecting an XML result.

        Returns:
            The first result set as Element, or None if there is no XML
        """
        parameters = parameters or []

        with self._operation("run_procedure_xml", ErrorType.STORED_PROCEDURE):
            batch = build_procedure_batch(schema_name, procedure_name, parameters)
            db_logger.debug(f"run_procedure_xml: {schema_name}.{procedure_name}")

            with open_cursor(self._engine, self._timeout(command_timeout)) as cursor:
                _execute(cursor, batch.sql, batch.values)
                element = _read_xml(cursor, batch.output_parameters)
                _apply_outputs(cursor, batch.output_parameters)
                return element

    def run_function(self, schema_name: str, function_name: str, return_type: SqlDbType,
                     *parameters: SqlParameter, command_timeout: Optional[int] = None):
        """
        Execute the specified SQL Server scalar function and return its value.

        Args:
            schema_name: Schema of the function
            function_name: Name of the function
            return_type: SqlDbType of the return value
            *parameters: Function arguments (named)

        Returns:
            The function result (None for SQL NULL)
        """
        return_param = SqlParameter(FUNCTION_RETURN_PARAMETER, return_type,
                                    direction=ParameterDirection.RETURN_VALUE)

        with self._operation("run_function", ErrorType.STORED_PROCEDURE):
            batch = build_procedure_batch(schema_name, function_name, [return_param, *parameters])
            db_logger.debug(f"run_function: {schema_name}.{function_name}")

            with open_cursor(self._engine, self._timeout(command_timeout)) as cursor:
                _execute(cursor, batch.sql, batch.values)
                _apply_outputs(cursor, batch.output_parameters)

        return return_param.value

    def run_table_valued_function(self, schema_name: str, function_name: str,
                                  parameters: List[SqlParameter], query_function: QueryFunction,
                                  command_timeout: Optional[int] = None,
                                  bind_parameters: bool = False):
        """
        Execute the specified SQL Server table-valued function.

        By default the parameter values are written into the SQL text as
        literals (declare @param1 ... = 'value'; select * from [schema].fn(@param1)).
        Single quotes are escaped, but the values still become part of the
        statement: pass bind_parameters=True for untrusted input.

        Args:
            schema_name: Schema of the function
            function_name: Name of the function
            parameters: Arguments in the order the function declares them
            query_function: Called with the open cursor to handle the rows
            command_timeout: Seconds before the command is aborted
            bind_parameters: Bind values through the driver instead of the SQL text

        Returns:
            Whatever query_function returns
        """
        with self._operation("run_table_valued_function", ErrorType.STORED_PROCEDURE):
            if bind_parameters:
                batch = build_bound_table_valued_function_query(schema_name, function_name, parameters)
                sql, values = batch.sql, batch.values
            else:
                sql, values = build_table_valued_function_query(schema_name, function_name, parameters), []
            db_logger.debug(f"run_table_valued_function: {schema_name}.{function_name} ({len(parameters)} params)")

            with open_cursor(self._engine, self._timeout(command_timeout)) as cursor:
                _execute(cursor, sql, values)
                _skip_to_result_set(cursor)
                result = query_function(cursor)
                _drain(cursor)
                return result
