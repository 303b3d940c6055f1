"""CLI for the SQL Server DB Wrapper.

Usage examples:
- Check connection:   python -m sqlserver_wrapper test-connection
- Ad-hoc query:       python -m sqlserver_wrapper query "select * from dbo.Person where LastName = @Param1" Smith
- XML query:          python -m sqlserver_wrapper query-xml "select top 5 Name from Production.Product for xml auto"
- Stored procedure:   python -m sqlserver_wrapper procedure dbo uspGetBillOfMaterials \
                          --param StartProductID:Int=717 --param CheckDate:DateTime=2024-01-01
- Scalar function:    python -m sqlserver_wrapper function dbo ufnGetStock Int --param ProductID:Int=709
"""

import argparse
import sys
import xml.etree.ElementTree as ET
from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Optional

from .config.settings import (
    SQL_DATABASE,
    SQL_INTEGRATED_SECURITY,
    SQL_PASSWORD,
    SQL_SERVER,
    SQL_USERNAME,
)
from .database import (
    ParameterDirection,
    SqlDbType,
    SqlParameter,
    SqlServerDBWrapper,
    SqlServerDBWrapperError,
    mask_connection_string,
)

_INTEGER_TYPES = {SqlDbType.BIGINT, SqlDbType.INT, SqlDbType.SMALLINT, SqlDbType.TINYINT}
_DECIMAL_TYPES = {SqlDbType.DECIMAL, SqlDbType.MONEY, SqlDbType.SMALLMONEY}
_FLOAT_TYPES = {SqlDbType.FLOAT, SqlDbType.REAL}
_DATETIME_TYPES = {SqlDbType.DATETIME, SqlDbType.DATETIME2, SqlDbType.SMALLDATETIME,
                   SqlDbType.DATETIMEOFFSET}


def convert_value(db_type: SqlDbType, text: str):
    """Convert command line text into the Python value the driver expects for db_type"""
    if db_type in _INTEGER_TYPES:
        return int(text)
    if db_type in _DECIMAL_TYPES:
        return Decimal(text)
    if db_type in _FLOAT_TYPES:
        return float(text)
    if db_type is SqlDbType.BIT:
        return text.strip().lower() in ('1', 'true', 'yes')
    if db_type is SqlDbType.DATE:
        return date.fromisoformat(text)
    if db_type in _DATETIME_TYPES:
        return datetime.fromisoformat(text)
    if db_type is SqlDbType.TIME:
        return time.fromisoformat(text)
    return text


def parse_parameter(text: str, direction: ParameterDirection = ParameterDirection.INPUT) -> SqlParameter:
    """
    Parse 'name:Type=value' (or 'name:Type' for output parameters).

    Raises:
        argparse.ArgumentTypeError: on malformed input
    """
    head, sep, raw_value = text.partition('=')
    name, colon, type_name = head.partition(':')
    if not colon or not name:
        raise argparse.ArgumentTypeError(f"expected name:Type[=value], got {text!r}")

    try:
        db_type = SqlDbType.parse(type_name)
        value = convert_value(db_type, raw_value) if sep else None
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e

    return SqlParameter(name, db_type, value, direction=direction)


def _output_parameter(text: str) -> SqlParameter:
    return parse_parameter(text, ParameterDirection.OUTPUT)


def _input_output_parameter(text: str) -> SqlParameter:
    return parse_parameter(text, ParameterDirection.INPUT_OUTPUT)


def print_rows(cursor) -> int:
    """Print the current result set tab-separated with a header line"""
    if cursor.description is None:
        return 0

    print("\t".join(column[0] for column in cursor.description))
    count = 0
    for row in cursor:
        print("\t".join("" if value is None else str(value) for value in row))
        count += 1
    return count


def _connect(args) -> SqlServerDBWrapper:
    if args.integrated:
        return SqlServerDBWrapper(args.server, args.database, integrated_security=True)
    return SqlServerDBWrapper(args.server, args.database, args.user, args.password)


def cmd_test_connection(db: SqlServerDBWrapper, args) -> None:
    print(f"Connection OK: {mask_connection_string(db.connection_string)}")


def cmd_query(db: SqlServerDBWrapper, args) -> None:
    count = db.run_query(args.sql, print_rows, *args.params, command_timeout=args.timeout)
    print(f"({count} rows)")


def cmd_query_xml(db: SqlServerDBWrapper, args) -> None:
    element = db.run_query_xml(args.sql, *args.params, command_timeout=args.timeout)
    if element is None:
        print("(no xml)")
    else:
        print(ET.tostring(element, encoding="unicode"))


def cmd_procedure(db: SqlServerDBWrapper, args) -> None:
    parameters = args.param + args.inout + args.out
    db.run_procedure(args.schema, args.name, parameters, print_rows, command_timeout=args.timeout)
    for param in parameters:
        if param.is_output:
            print(f"@{param.name} = {param.value}")


def cmd_function(db: SqlServerDBWrapper, args) -> None:
    value = db.run_function(args.schema, args.name, args.return_type, *args.param,
                            command_timeout=args.timeout)
    print(value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sqlserver-wrapper", description="SQL Server DB Wrapper CLI")
    parser.add_argument("--server", default=SQL_SERVER, help="Data source (default: SQL_SERVER)")
    parser.add_argument("--database", default=SQL_DATABASE, help="Initial catalog (default: SQL_DATABASE)")
    parser.add_argument("--user", default=SQL_USERNAME, help="SQL login (default: SQL_USERNAME)")
    parser.add_argument("--password", default=SQL_PASSWORD, help="Password (default: SQL_PASSWORD)")
    parser.add_argument("--integrated", action="store_true", default=SQL_INTEGRATED_SECURITY,
                        help="Use integrated security instead of a SQL login")
    parser.add_argument("--timeout", type=int, default=None, help="Command timeout in seconds")

    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("test-connection", help="Open and close a connection")

    query = sub.add_parser("query", help="Run a query; parameters bind to @Param1, @Param2, ...")
    query.add_argument("sql")
    query.add_argument("params", nargs="*")

    query_xml = sub.add_parser("query-xml", help="Run a FOR XML query and print the document")
    query_xml.add_argument("sql")
    query_xml.add_argument("params", nargs="*")

    procedure = sub.add_parser("procedure", help="Run a stored procedure")
    procedure.add_argument("schema")
    procedure.add_argument("name")
    procedure.add_argument("--param", type=parse_parameter, action="append", default=[],
                           help="Input parameter name:Type=value")
    procedure.add_argument("--inout", type=_input_output_parameter, action="append", default=[],
                           help="In/out parameter name:Type=value")
    procedure.add_argument("--out", type=_output_parameter, action="append", default=[],
                           help="Output parameter name:Type")

    function = sub.add_parser("function", help="Run a scalar function")
    function.add_argument("schema")
    function.add_argument("name")
    function.add_argument("return_type", type=SqlDbType.parse)
    function.add_argument("--param", type=parse_parameter, action="append", default=[],
                          help="Parameter name:Type=value")

    return parser


_COMMANDS = {
    "test-connection": cmd_test_connection,
    "query": cmd_query,
    "query-xml": cmd_query_xml,
    "procedure": cmd_procedure,
    "function": cmd_function,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    command = _COMMANDS.get(args.cmd)
    if command is None:
        parser.print_help()
        return 2

    try:
        with _connect(args) as db:
            command(db, args)
    except SqlServerDBWrapperError as e:
        print(f"{e.error_type.name} Error: {e.message}", file=sys.stderr)
        print(f"Connection String: {mask_connection_string(e.connection_string)}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
