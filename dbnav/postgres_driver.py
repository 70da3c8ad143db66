from contextlib import asynccontextmanager
from dataclasses import dataclass
import logging
from typing import AsyncIterator

import asyncpg
from asyncpg import Connection

from dbnav.config import ConnectionConfig
from dbnav.database import (
    TABLE_DATA_LIMIT,
    QueryResult,
    format_cell_value,
    quote_identifier,
    status_result,
)
from dbnav.records import Column, Schema, Table


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionParameters:
    host: str
    port: int
    username: str
    password: str
    database_name: str


def connection_parameters_for(
    connection: ConnectionConfig,
    password: str,
) -> ConnectionParameters:
    return ConnectionParameters(
        host=connection.host or "localhost",
        port=connection.port,
        username=connection.user,
        password=password,
        database_name=connection.database,
    )


@asynccontextmanager
async def _open_connection(
    connection_parameters: ConnectionParameters,
) -> AsyncIterator[Connection]:
    connection = await asyncpg.connect(
        host=connection_parameters.host,
        port=connection_parameters.port,
        user=connection_parameters.username,
        password=connection_parameters.password,
        database=connection_parameters.database_name,
    )
    try:
        yield connection
    finally:
        await connection.close()


def _affected_rows_message(status: str | None) -> str:
    if not status:
        return "Affected rows: 0"
    last_token = status.rsplit(" ", 1)[-1]
    if last_token.isdigit():
        return f"Affected rows: {last_token}"
    return status


async def _fetch_schemas(connection: Connection) -> list[Schema]:
    query = """
        SELECT schema_name, schema_owner
        FROM information_schema.schemata
        WHERE schema_name NOT IN ('information_schema', 'pg_catalog', 'pg_toast')
        ORDER BY schema_name
    """
    rows = await connection.fetch(query)
    return [
        Schema(name=row["schema_name"], owner=row["schema_owner"] or "")
        for row in rows
    ]


async def _fetch_tables(connection: Connection, schema_name: str) -> list[Table]:
    query = """
        SELECT
            t.table_name,
            t.table_schema,
            pg_size_pretty(
                pg_total_relation_size(
                    quote_ident(t.table_schema) || '.' || quote_ident(t.table_name)
                )
            ) AS size
        FROM information_schema.tables t
        WHERE t.table_schema = $1
          AND t.table_type = 'BASE TABLE'
        ORDER BY t.table_name
    """
    rows = await connection.fetch(query, schema_name)
    return [
        Table(
            name=row["table_name"],
            schema=row["table_schema"],
            size=row["size"],
        )
        for row in rows
    ]


async def _fetch_columns(
    connection: Connection,
    schema_name: str,
    table_name: str,
) -> list[Column]:
    query = """
        SELECT
            c.column_name,
            c.data_type,
            c.is_nullable,
            c.column_default,
            pgd.description
        FROM information_schema.columns c
        LEFT JOIN pg_catalog.pg_statio_all_tables st
            ON c.table_schema = st.schemaname AND c.table_name = st.relname
        LEFT JOIN pg_catalog.pg_description pgd
            ON pgd.objoid = st.relid AND pgd.objsubid = c.ordinal_position
        WHERE c.table_schema = $1
          AND c.table_name = $2
        ORDER BY c.ordinal_position
    """
    rows = await connection.fetch(query, schema_name, table_name)
    return [
        Column(
            name=row["column_name"],
            data_type=row["data_type"],
            nullable=row["is_nullable"] == "YES",
            default=row["column_default"],
            description=row["description"],
        )
        for row in rows
    ]


class PostgresDatabase:
    def __init__(self, connection_parameters: ConnectionParameters) -> None:
        self.connection_parameters = connection_parameters

    async def test(self) -> bool:
        try:
            async with _open_connection(self.connection_parameters) as connection:
                await connection.fetchval("SELECT 1")
        except Exception as error:
            logger.warning(
                "Connection test failed for %s@%s:%s/%s: %s",
                self.connection_parameters.username,
                self.connection_parameters.host,
                self.connection_parameters.port,
                self.connection_parameters.database_name,
                error,
            )
            return False
        return True

    async def execute_sql(self, sql: str) -> QueryResult:
        async with _open_connection(self.connection_parameters) as connection:
            statement = await connection.prepare(sql)
            attributes = statement.get_attributes()
            records = await statement.fetch()
            if not attributes:
                return status_result(_affected_rows_message(statement.get_statusmsg()))
        columns = [attribute.name for attribute in attributes]
        rows = [[format_cell_value(value) for value in record] for record in records]
        return QueryResult(columns=columns, rows=rows)

    async def get_schemas(self) -> list[Schema]:
        async with _open_connection(self.connection_parameters) as connection:
            return await _fetch_schemas(connection)

    async def get_tables(self, schema_name: str) -> list[Table]:
        async with _open_connection(self.connection_parameters) as connection:
            return await _fetch_tables(connection, schema_name)

    async def get_columns(self, schema_name: str, table_name: str) -> list[Column]:
        async with _open_connection(self.connection_parameters) as connection:
            return await _fetch_columns(connection, schema_name, table_name)

    async def get_table_data_with_columns(
        self,
        schema_name: str,
        table_name: str,
    ) -> QueryResult:
        query = (
            f"SELECT * FROM {quote_identifier(schema_name)}.{quote_identifier(table_name)}"
            f" LIMIT {TABLE_DATA_LIMIT}"
        )
        async with _open_connection(self.connection_parameters) as connection:
            statement = await connection.prepare(query)
            columns = [attribute.name for attribute in statement.get_attributes()]
            records = await statement.fetch()
        rows = [[format_cell_value(value) for value in record] for record in records]
        return QueryResult(columns=columns, rows=rows)
