"""
sqlserver_wrapper/database/parameters.py
Typed command parameters (name, SQL Server type, value, direction).
"""

from enum import Enum
from typing import Any, Optional


class SqlDbType(Enum):
    """SQL Server column/variable types, spelled the way the .NET client names them"""

    BIGINT = "BigInt"
    BINARY = "Binary"
    BIT = "Bit"
    CHAR = "Char"
    DATE = "Date"
    DATETIME = "DateTime"
    DATETIME2 = "DateTime2"
    DATETIMEOFFSET = "DateTimeOffset"
    DECIMAL = "Decimal"
    FLOAT = "Float"
    IMAGE = "Image"
    INT = "Int"
    MONEY = "Money"
    NCHAR = "NChar"
    NTEXT = "NText"
    NVARCHAR = "NVarChar"
    REAL = "Real"
    SMALLDATETIME = "SmallDateTime"
    SMALLINT = "SmallInt"
    SMALLMONEY = "SmallMoney"
    TEXT = "Text"
    TIME = "Time"
    TIMESTAMP = "Timestamp"
    TINYINT = "TinyInt"
    UNIQUEIDENTIFIER = "UniqueIdentifier"
    VARBINARY = "VarBinary"
    VARCHAR = "VarChar"
    VARIANT = "Variant"
    XML = "Xml"

    @property
    def sql_name(self) -> str:
        """Name usable in a T-SQL DECLARE"""
        if self is SqlDbType.VARIANT:
            return "sql_variant"
        return self.value

    @classmethod
    def parse(cls, name: str) -> "SqlDbType":
        """Case-insensitive lookup by type name ('nvarchar', 'NVarChar', 'NVARCHAR')"""
        key = name.strip().lower()
        for member in cls:
            if member.value.lower() == key or member.name.lower() == key:
                return member
        if key == "sql_variant":
            return cls.VARIANT
        raise ValueError(f"Unknown SQL Server type: {name!r}")


class ParameterDirection(Enum):
    INPUT = "input"
    OUTPUT = "output"
    INPUT_OUTPUT = "input_output"
    RETURN_VALUE = "return_value"


# Types whose declaration carries a length; without size they become (max)
_VARIABLE_LENGTH = {SqlDbType.VARCHAR, SqlDbType.NVARCHAR, SqlDbType.VARBINARY}
_FIXED_LENGTH = {SqlDbType.CHAR, SqlDbType.NCHAR, SqlDbType.BINARY}


class SqlParameter:
    """
    A single command parameter.

    The object is mutable on purpose: after a procedure/function call the
    values of OUTPUT, INPUT_OUTPUT and RETURN_VALUE parameters are written
    back into ``value``, so callers keep a reference and read it afterwards.
    """

    def __init__(self, name: str, db_type: SqlDbType, value: Any = None,
                 direction: ParameterDirection = ParameterDirection.INPUT,
                 size: Optional[int] = None, precision: Optional[int] = None,
                 scale: Optional[int] = None):
        if not name or not name.lstrip('@'):
            raise ValueError("Parameter name must not be empty")
        self.name = name.lstrip('@')
        self.db_type = db_type
        self.value = value
        self.direction = direction
        self.size = size
        self.precision = precision
        self.scale = scale

    @property
    def is_output(self) -> bool:
        """True if the server writes a value back"""
        return self.direction in (ParameterDirection.OUTPUT,
                                  ParameterDirection.INPUT_OUTPUT,
                                  ParameterDirection.RETURN_VALUE)

    @property
    def sends_value(self) -> bool:
        return self.direction in (ParameterDirection.INPUT, ParameterDirection.INPUT_OUTPUT)

    def declaration_type(self) -> str:
        """T-SQL type text for a DECLARE, e.g. 'NVarChar(50)', 'VarChar(max)', 'Decimal(18, 2)'"""
        type_name = self.db_type.sql_name
        if self.db_type in _VARIABLE_LENGTH:
            length = str(self.size) if self.size and self.size > 0 else "max"
            return f"{type_name}({length})"
        if self.db_type in _FIXED_LENGTH and self.size:
            return f"{type_name}({self.size})"
        if self.db_type is SqlDbType.DECIMAL and self.precision:
            return f"{type_name}({self.precision}, {self.scale or 0})"
        return type_name

    def __repr__(self):
        return (f"SqlParameter({self.name!r}, {self.db_type.value}, value={self.value!r}, "
                f"direction={self.direction.name})")
