"""
Console Example - Stored Procedure mit Callback

Ruft dbo.uspGetBillOfMaterials der AdventureWorks Datenbank auf und gibt die
Zeilen auf der Konsole aus.

Usage:
    python examples/console_simple_example.py [data_source] [initial_catalog]
"""

import sys
from datetime import datetime

from sqlserver_wrapper import SqlDbType, SqlParameter, SqlServerDBWrapper, SqlServerDBWrapperError


def print_bill_of_materials(cursor):
    """Write retrieved data to console"""
    for row in cursor:
        print(f"{row[0]}   {row[1]}   {row[2]}   {row[3]}   {row[4]}")


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv

    # The SQL Server instance name or IP, and the database to use once connected
    data_source = argv[0] if len(argv) > 0 else "192.168.5.22"
    initial_catalog = argv[1] if len(argv) > 1 else "AdventureWorks"

    try:
        db = SqlServerDBWrapper(data_source, initial_catalog, integrated_security=True)

        parameters = [
            SqlParameter("StartProductID", SqlDbType.INT, 717),
            SqlParameter("CheckDate", SqlDbType.DATETIME, datetime.now()),
        ]

        db.run_procedure("dbo", "uspGetBillOfMaterials", parameters, print_bill_of_materials)
    except SqlServerDBWrapperError as e:
        print("SqlServerDBWrapperError:")
        print(e.message)
        print(f"Connection String: {e.connection_string}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
