"""
sqlserver_wrapper/database/statements.py
T-SQL Batch-Aufbau für den Wrapper.

pyodbc only knows positional ``?`` markers and has no output parameters, so
every named or output parameter is expressed as a T-SQL variable around the
caller's statement:

    DECLARE @Param1 VarChar(max) = ?;          -- positional query parameters
    DECLARE @__out_total Int;                  -- procedure output parameters
    EXEC @__return = [dbo].usp @a = ?, @total = @__out_total OUTPUT;
    SELECT @__out_total AS [total], @__return AS [FUNCTION_RETURN_PARAMETER];
"""

from datetime import date, datetime, time
from typing import Any, List, NamedTuple, Sequence

from .parameters import ParameterDirection, SqlDbType, SqlParameter

OUTPUT_VARIABLE_PREFIX = "__out_"
RETURN_VARIABLE = "__return"

# Types whose value is written as a quoted literal in a table-valued function call
QUOTED_TYPES = frozenset({
    SqlDbType.VARCHAR,
    SqlDbType.XML,
    SqlDbType.DATE,
    SqlDbType.DATETIME,
    SqlDbType.CHAR,
    SqlDbType.TEXT,
    SqlDbType.TIME,
    SqlDbType.NCHAR,
    SqlDbType.NTEXT,
    SqlDbType.NVARCHAR,
    SqlDbType.BINARY,
    SqlDbType.DATETIME2,
    SqlDbType.SMALLDATETIME,
    SqlDbType.TIMESTAMP,
})

# Quoted literals of these types get the N'' prefix
UNICODE_TYPES = frozenset({SqlDbType.NCHAR, SqlDbType.NTEXT, SqlDbType.NVARCHAR})

# Declared as (max) in a table-valued function call
MAX_LENGTH_TYPES = frozenset({SqlDbType.VARCHAR, SqlDbType.NVARCHAR})


class CommandBatch(NamedTuple):
    """SQL text plus the values for its ``?`` markers in text order"""
    sql: str
    values: List[Any]
    output_parameters: List[SqlParameter]


def strip_brackets(schema_name: str) -> str:
    """Get rid of brackets if the caller already put them in"""
    return schema_name.replace("[", "").replace("]", "")


def qualified_name(schema_name: str, object_name: str) -> str:
    """'[dbo]' / 'dbo' + 'uspName' -> '[dbo].uspName'"""
    return f"[{strip_brackets(schema_name)}].{object_name}"


def contains_for_xml(query: str) -> bool:
    return "FOR XML" in query.upper()


def build_positional_batch(query: str, parameters: Sequence[Any]) -> CommandBatch:
    """
    Bind positional values to @Param1, @Param2, ... (declared VarChar(max)).

    Args:
        query: SQL text referencing @Param<n>
        parameters: Values in @Param order

    Returns:
        CommandBatch with the declarations prepended
    """
    if not parameters:
        return CommandBatch(query, [], [])

    lines = [f"DECLARE @Param{i} VarChar(max) = ?;" for i in range(1, len(parameters) + 1)]
    lines.append(query)
    return CommandBatch("\n".join(lines), list(parameters), [])


def build_parameterized_batch(sql: str, parameters: Sequence[SqlParameter]) -> CommandBatch:
    """
    Declare typed parameters as variables named after the parameter, run the
    caller's statement, then select OUTPUT/INPUT_OUTPUT variables back.
    """
    lines = []
    values = []
    outputs = []

    for param in parameters:
        if param.direction is ParameterDirection.RETURN_VALUE:
            raise ValueError(f"Return value parameter '{param.name}' is only valid for stored routines")

        if param.sends_value:
            lines.append(f"DECLARE @{param.name} {param.declaration_type()} = ?;")
            values.append(param.value)
        else:
            lines.append(f"DECLARE @{param.name} {param.declaration_type()};")

        if param.is_output:
            outputs.append(param)

    lines.append(sql)

    if outputs:
        columns = ", ".join(f"@{p.name} AS [{p.name}]" for p in outputs)
        lines.append(f"SELECT {columns};")

    return CommandBatch("\n".join(lines), values, outputs)


def build_procedure_batch(schema_name: str, procedure_name: str,
                          parameters: Sequence[SqlParameter]) -> CommandBatch:
    """
    EXEC a stored procedure (or scalar function) with named arguments.

    Output and in/out parameters are routed through local variables, a
    RETURN_VALUE parameter captures the routine's return value. All of them
    come back as the last result set of the batch, in ``output_parameters``
    order.
    """
    return_params = [p for p in parameters if p.direction is ParameterDirection.RETURN_VALUE]
    if len(return_params) > 1:
        raise ValueError("Only one return value parameter is allowed")

    lines = ["SET NOCOUNT ON;"]
    values = []
    outputs = []
    arguments = []

    for param in parameters:
        if param.direction in (ParameterDirection.OUTPUT, ParameterDirection.INPUT_OUTPUT):
            variable = f"@{OUTPUT_VARIABLE_PREFIX}{param.name}"
            if param.sends_value:
                lines.append(f"DECLARE {variable} {param.declaration_type()} = ?;")
                values.append(param.value)
            else:
                lines.append(f"DECLARE {variable} {param.declaration_type()};")
            outputs.append((param, variable))

    if return_params:
        lines.append(f"DECLARE @{RETURN_VARIABLE} {return_params[0].declaration_type()};")

    for param in parameters:
        if param.direction is ParameterDirection.INPUT:
            arguments.append(f"@{param.name} = ?")
            values.append(param.value)
        elif param.direction is not ParameterDirection.RETURN_VALUE:
            arguments.append(f"@{param.name} = @{OUTPUT_VARIABLE_PREFIX}{param.name} OUTPUT")

    call = "EXEC "
    if return_params:
        call += f"@{RETURN_VARIABLE} = "
    call += qualified_name(schema_name, procedure_name)
    if arguments:
        call += " " + ", ".join(arguments)
    lines.append(call + ";")

    if return_params:
        outputs.append((return_params[0], f"@{RETURN_VARIABLE}"))

    if outputs:
        columns = ", ".join(f"{variable} AS [{param.name}]" for param, variable in outputs)
        lines.append(f"SELECT {columns};")

    return CommandBatch("\n".join(lines), values, [param for param, _ in outputs])


# ===== Table-Valued Functions =====

def render_literal(param: SqlParameter) -> str:
    """
    Render a parameter value as a T-SQL literal for a table-valued function call.

    Quoting and the N prefix follow QUOTED_TYPES / UNICODE_TYPES. Embedded
    single quotes are doubled; unquoted types refuse ``str`` values so raw text
    never lands in the batch.
    """
    value = param.value
    if value is None:
        return "NULL"

    if isinstance(value, bool):
        text = "1" if value else "0"
    elif isinstance(value, datetime):
        text = value.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]
    elif isinstance(value, (date, time)):
        text = value.isoformat()
    elif isinstance(value, (bytes, bytearray)):
        text = bytes(value).hex()
    else:
        text = str(value)

    if param.db_type not in QUOTED_TYPES:
        if isinstance(value, str):
            raise ValueError(
                f"Parameter '{param.name}' of type {param.db_type.value} needs a non-text value, got {value!r}"
            )
        return text

    prefix = "N" if param.db_type in UNICODE_TYPES else ""
    return prefix + "'" + text.replace("'", "''") + "'"


def build_table_valued_function_query(schema_name: str, function_name: str,
                                      parameters: Sequence[SqlParameter]) -> str:
    """
    Textual table-valued function call.

    Example:
        VarChar 'abc', Int 5 ->
        declare @param1 VarChar(max) = 'abc';declare @param2 Int = 5;select * from [dbo].fn(@param1,@param2);

    Values are interpolated, not bound: use build_bound_table_valued_function_query
    for untrusted input.
    """
    query = []
    for i, param in enumerate(parameters, start=1):
        suffix = "(max)" if param.db_type in MAX_LENGTH_TYPES else ""
        query.append(f"declare @param{i} {param.db_type.sql_name}{suffix} = {render_literal(param)};")

    arguments = ",".join(f"@param{i}" for i in range(1, len(parameters) + 1))
    query.append(f"select * from {qualified_name(schema_name, function_name)}({arguments});")
    return "".join(query)


def build_bound_table_valued_function_query(schema_name: str, function_name: str,
                                            parameters: Sequence[SqlParameter]) -> CommandBatch:
    """Table-valued function call with driver-bound values"""
    markers = ", ".join("?" for _ in parameters)
    sql = f"select * from {qualified_name(schema_name, function_name)}({markers});"
    return CommandBatch(sql, [p.value for p in parameters], [])
