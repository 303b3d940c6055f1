"""Test: T-SQL Batch-Aufbau (Parameter, Prozeduren, Table-Valued Functions)"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from sqlserver_wrapper.database.parameters import ParameterDirection, SqlDbType, SqlParameter
from sqlserver_wrapper.database.statements import (
    MAX_LENGTH_TYPES,
    QUOTED_TYPES,
    UNICODE_TYPES,
    build_bound_table_valued_function_query,
    build_parameterized_batch,
    build_positional_batch,
    build_procedure_batch,
    build_table_valued_function_query,
    contains_for_xml,
    qualified_name,
    render_literal,
)


# ===== Names =====

@pytest.mark.parametrize("schema", ["dbo", "[dbo]", "[dbo", "dbo]", "[[dbo]]"])
def test_qualified_name_wraps_schema_once(schema):
    assert qualified_name(schema, "procName") == "[dbo].procName"


@pytest.mark.parametrize("query, expected", [
    ("select * from t for xml auto", True),
    ("SELECT * FROM t FOR XML PATH('row'), ROOT('rows')", True),
    ("select * from t For Xml Raw", True),
    ("select * from t", False),
    ("select * from t forxml", False),
])
def test_contains_for_xml(query, expected):
    assert contains_for_xml(query) is expected


# ===== Positional / typed batches =====

def test_positional_batch_declares_params_in_order():
    batch = build_positional_batch("select 1 where a = @Param1 and b = @Param2", ("x", "y"))

    assert batch.sql.splitlines() == [
        "DECLARE @Param1 VarChar(max) = ?;",
        "DECLARE @Param2 VarChar(max) = ?;",
        "select 1 where a = @Param1 and b = @Param2",
    ]
    assert batch.values == ["x", "y"]


def test_positional_batch_without_params_is_unchanged():
    batch = build_positional_batch("select 1", ())
    assert batch.sql == "select 1"
    assert batch.values == []


def test_parameterized_batch_selects_outputs():
    name = SqlParameter("Name", SqlDbType.NVARCHAR, "Widget", size=50)
    new_id = SqlParameter("NewId", SqlDbType.INT, direction=ParameterDirection.OUTPUT)

    batch = build_parameterized_batch(
        "insert into dbo.Product (Name) values (@Name); set @NewId = scope_identity();",
        [name, new_id],
    )

    assert batch.sql.splitlines() == [
        "DECLARE @Name NVarChar(50) = ?;",
        "DECLARE @NewId Int;",
        "insert into dbo.Product (Name) values (@Name); set @NewId = scope_identity();",
        "SELECT @NewId AS [NewId];",
    ]
    assert batch.values == ["Widget"]
    assert batch.output_parameters == [new_id]


def test_parameterized_batch_rejects_return_value():
    ret = SqlParameter("ret", SqlDbType.INT, direction=ParameterDirection.RETURN_VALUE)
    with pytest.raises(ValueError):
        build_parameterized_batch("update t set a = 1", [ret])


# ===== Procedure batch =====

def test_procedure_batch_routes_outputs_through_variables():
    start = SqlParameter("StartProductID", SqlDbType.INT, 717)
    total = SqlParameter("Total", SqlDbType.INT, direction=ParameterDirection.OUTPUT)
    counter = SqlParameter("Counter", SqlDbType.INT, 5, direction=ParameterDirection.INPUT_OUTPUT)
    ret = SqlParameter("rc", SqlDbType.INT, direction=ParameterDirection.RETURN_VALUE)

    batch = build_procedure_batch("[dbo]", "uspCount", [start, total, counter, ret])

    assert batch.sql.splitlines() == [
        "SET NOCOUNT ON;",
        "DECLARE @__out_Total Int;",
        "DECLARE @__out_Counter Int = ?;",
        "DECLARE @__return Int;",
        "EXEC @__return = [dbo].uspCount @StartProductID = ?, @Total = @__out_Total OUTPUT, "
        "@Counter = @__out_Counter OUTPUT;",
        "SELECT @__out_Total AS [Total], @__out_Counter AS [Counter], @__return AS [rc];",
    ]
    # Values in text order: DECLARE initializers first, then EXEC arguments
    assert batch.values == [5, 717]
    assert batch.output_parameters == [total, counter, ret]


def test_procedure_batch_without_parameters():
    batch = build_procedure_batch("dbo", "uspNightly", [])
    assert batch.sql == "SET NOCOUNT ON;\nEXEC [dbo].uspNightly;"
    assert batch.values == []
    assert batch.output_parameters == []


def test_procedure_batch_allows_one_return_value_only():
    params = [
        SqlParameter("a", SqlDbType.INT, direction=ParameterDirection.RETURN_VALUE),
        SqlParameter("b", SqlDbType.INT, direction=ParameterDirection.RETURN_VALUE),
    ]
    with pytest.raises(ValueError):
        build_procedure_batch("dbo", "usp", params)


# ===== Table-valued functions =====

def test_tvf_varchar_is_quoted_with_max():
    params = [SqlParameter("name", SqlDbType.VARCHAR, "abc")]
    query = build_table_valued_function_query("dbo", "fnFind", params)
    assert query == "declare @param1 VarChar(max) = 'abc';select * from [dbo].fnFind(@param1);"


def test_tvf_int_is_not_quoted():
    params = [SqlParameter("id", SqlDbType.INT, 5)]
    query = build_table_valued_function_query("dbo", "fnFind", params)
    assert "declare @param1 Int = 5;" in query


def test_tvf_declaration_and_argument_order():
    params = [
        SqlParameter("c", SqlDbType.NVARCHAR, "zürich"),
        SqlParameter("a", SqlDbType.INT, 1),
        SqlParameter("b", SqlDbType.DATE, date(2024, 3, 1)),
    ]
    query = build_table_valued_function_query("[Sales]", "fnOrders", params)

    assert query == (
        "declare @param1 NVarChar(max) = N'zürich';"
        "declare @param2 Int = 1;"
        "declare @param3 Date = '2024-03-01';"
        "select * from [Sales].fnOrders(@param1,@param2,@param3);"
    )


def test_tvf_without_parameters():
    assert build_table_valued_function_query("dbo", "fnAll", []) == "select * from [dbo].fnAll();"


def test_quoting_table():
    """Test: Genau diese Typen werden gequotet / mit N versehen"""
    assert QUOTED_TYPES == {
        SqlDbType.VARCHAR, SqlDbType.XML, SqlDbType.DATE, SqlDbType.DATETIME,
        SqlDbType.CHAR, SqlDbType.TEXT, SqlDbType.TIME, SqlDbType.NCHAR,
        SqlDbType.NTEXT, SqlDbType.NVARCHAR, SqlDbType.BINARY, SqlDbType.DATETIME2,
        SqlDbType.SMALLDATETIME, SqlDbType.TIMESTAMP,
    }
    assert UNICODE_TYPES == {SqlDbType.NCHAR, SqlDbType.NTEXT, SqlDbType.NVARCHAR}
    assert MAX_LENGTH_TYPES == {SqlDbType.VARCHAR, SqlDbType.NVARCHAR}


@pytest.mark.parametrize("db_type", sorted(QUOTED_TYPES, key=lambda t: t.value))
def test_render_literal_quotes_table_types(db_type):
    literal = render_literal(SqlParameter("p", db_type, "x"))
    expected = "N'x'" if db_type in UNICODE_TYPES else "'x'"
    assert literal == expected


@pytest.mark.parametrize("db_type, value, expected", [
    (SqlDbType.BIGINT, 9007199254740993, "9007199254740993"),
    (SqlDbType.DECIMAL, Decimal("12.50"), "12.50"),
    (SqlDbType.FLOAT, 1.5, "1.5"),
    (SqlDbType.BIT, True, "1"),
    (SqlDbType.BIT, False, "0"),
    (SqlDbType.MONEY, Decimal("-3.20"), "-3.20"),
])
def test_render_literal_unquoted_types(db_type, value, expected):
    assert render_literal(SqlParameter("p", db_type, value)) == expected


def test_render_literal_escapes_single_quotes():
    assert render_literal(SqlParameter("p", SqlDbType.VARCHAR, "O'Brien")) == "'O''Brien'"
    assert render_literal(SqlParameter("p", SqlDbType.NVARCHAR, "x'; drop table t;--")) == \
        "N'x''; drop table t;--'"


def test_render_literal_null_is_never_quoted():
    assert render_literal(SqlParameter("p", SqlDbType.NVARCHAR, None)) == "NULL"
    assert render_literal(SqlParameter("p", SqlDbType.INT, None)) == "NULL"


def test_render_literal_datetime_uses_milliseconds():
    value = datetime(2024, 1, 2, 3, 4, 5, 123456)
    assert render_literal(SqlParameter("p", SqlDbType.DATETIME, value)) == "'2024-01-02T03:04:05.123'"


def test_render_literal_binary_as_hex():
    assert render_literal(SqlParameter("p", SqlDbType.BINARY, b"\x01\xff")) == "'01ff'"


def test_render_literal_rejects_text_for_unquoted_type():
    with pytest.raises(ValueError):
        render_literal(SqlParameter("p", SqlDbType.INT, "1; drop table t"))


def test_bound_tvf_query_uses_markers():
    params = [SqlParameter("a", SqlDbType.VARCHAR, "abc"), SqlParameter("b", SqlDbType.INT, 5)]
    batch = build_bound_table_valued_function_query("[dbo]", "fnFind", params)

    assert batch.sql == "select * from [dbo].fnFind(?, ?);"
    assert batch.values == ["abc", 5]
