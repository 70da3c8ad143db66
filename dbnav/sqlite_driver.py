from contextlib import asynccontextmanager
import logging
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from dbnav.database import (
    TABLE_DATA_LIMIT,
    QueryResult,
    format_cell_value,
    quote_identifier,
    status_result,
)
from dbnav.records import Column, Schema, Table


logger = logging.getLogger(__name__)


def _database_uri(database_path: str) -> str:
    return Path(database_path).expanduser().resolve().as_uri() + "?mode=rw"


@asynccontextmanager
async def _open_connection(database_path: str) -> AsyncIterator[aiosqlite.Connection]:
    # mode=rw keeps a mistyped path from silently creating an empty file.
    db = await aiosqlite.connect(_database_uri(database_path), uri=True)
    try:
        yield db
    finally:
        await db.close()


class SqliteDatabase:
    def __init__(self, database_path: str) -> None:
        self.database_path = database_path

    async def test(self) -> bool:
        try:
            async with _open_connection(self.database_path) as db:
                cursor = await db.execute("SELECT 1")
                await cursor.fetchone()
        except Exception as error:
            logger.warning("Connection test failed for %s: %s", self.database_path, error)
            return False
        return True

    async def execute_sql(self, sql: str) -> QueryResult:
        async with _open_connection(self.database_path) as db:
            cursor = await db.execute(sql)
            if cursor.description is None:
                await db.commit()
                return status_result(f"Affected rows: {max(cursor.rowcount, 0)}")
            columns = [description[0] for description in cursor.description]
            records = await cursor.fetchall()
        rows = [[format_cell_value(value) for value in record] for record in records]
        return QueryResult(columns=columns, rows=rows)

    async def get_schemas(self) -> list[Schema]:
        async with _open_connection(self.database_path) as db:
            cursor = await db.execute("PRAGMA database_list")
            rows = await cursor.fetchall()
        return [Schema(name=row[1]) for row in rows]

    async def get_tables(self, schema_name: str) -> list[Table]:
        query = (
            f"SELECT name FROM {quote_identifier(schema_name)}.sqlite_master"
            " WHERE type = 'table' AND name NOT LIKE 'sqlite_%'"
            " ORDER BY name"
        )
        async with _open_connection(self.database_path) as db:
            cursor = await db.execute(query)
            rows = await cursor.fetchall()
        return [Table(name=row[0], schema=schema_name) for row in rows]

    async def get_columns(self, schema_name: str, table_name: str) -> list[Column]:
        query = (
            f"PRAGMA {quote_identifier(schema_name)}"
            f".table_info({quote_identifier(table_name)})"
        )
        async with _open_connection(self.database_path) as db:
            cursor = await db.execute(query)
            rows = await cursor.fetchall()
        # cid, name, type, notnull, dflt_value, pk
        return [
            Column(
                name=row[1],
                data_type=row[2] or "",
                nullable=not row[3],
                default=None if row[4] is None else str(row[4]),
            )
            for row in rows
        ]

    async def get_table_data_with_columns(
        self,
        schema_name: str,
        table_name: str,
    ) -> QueryResult:
        query = (
            f"SELECT * FROM {quote_identifier(schema_name)}.{quote_identifier(table_name)}"
            f" LIMIT {TABLE_DATA_LIMIT}"
        )
        async with _open_connection(self.database_path) as db:
            cursor = await db.execute(query)
            columns = [description[0] for description in cursor.description]
            records = await cursor.fetchall()
        rows = [[format_cell_value(value) for value in record] for record in records]
        return QueryResult(columns=columns, rows=rows)
