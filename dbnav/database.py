from dataclasses import dataclass
import json
from typing import Protocol

from dbnav.config import SQLITE, ConnectionConfig
from dbnav.records import Column, Schema, Table


TABLE_DATA_LIMIT = 100
RESULT_COLUMN = "Result"


@dataclass(frozen=True)
class QueryResult:
    columns: list[str]
    rows: list[list[str]]


class Database(Protocol):
    async def test(self) -> bool: ...

    async def execute_sql(self, sql: str) -> QueryResult: ...

    async def get_schemas(self) -> list[Schema]: ...

    async def get_tables(self, schema_name: str) -> list[Table]: ...

    async def get_columns(self, schema_name: str, table_name: str) -> list[Column]: ...

    async def get_table_data_with_columns(
        self,
        schema_name: str,
        table_name: str,
    ) -> QueryResult: ...


def format_cell_value(value: object) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=True)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"<{len(value)} bytes>"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def status_result(message: str) -> QueryResult:
    return QueryResult(columns=[RESULT_COLUMN], rows=[[message]])


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def open_database(connection: ConnectionConfig, password: str) -> Database:
    if connection.db_type == SQLITE:
        from dbnav.sqlite_driver import SqliteDatabase

        return SqliteDatabase(connection.database)
    from dbnav.postgres_driver import PostgresDatabase, connection_parameters_for

    return PostgresDatabase(connection_parameters_for(connection, password))
