from dataclasses import dataclass
from enum import Enum
import logging
from typing import Awaitable, Sequence, TypeVar

from dbnav.config import ConnectionConfig
from dbnav.database import Database, QueryResult
from dbnav.errors import FetchFailed
from dbnav.filtered_view import FilteredView
from dbnav.records import Column, RawRow, Schema, Table, raw_rows
from dbnav.sql_executor import SqlExecutor


logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")


class ExplorerLevel(Enum):
    SCHEMAS = "schemas"
    TABLES = "tables"
    COLUMNS = "columns"
    TABLE_DATA = "table_data"
    SQL_EXECUTOR = "sql_executor"


@dataclass(frozen=True)
class ExplorerState:
    level: ExplorerLevel
    schema_name: str | None = None
    table_name: str | None = None

    @classmethod
    def schemas(cls) -> "ExplorerState":
        return cls(ExplorerLevel.SCHEMAS)

    @classmethod
    def tables(cls, schema_name: str) -> "ExplorerState":
        return cls(ExplorerLevel.TABLES, schema_name)

    @classmethod
    def columns(cls, schema_name: str, table_name: str) -> "ExplorerState":
        return cls(ExplorerLevel.COLUMNS, schema_name, table_name)

    @classmethod
    def table_data(cls, schema_name: str, table_name: str) -> "ExplorerState":
        return cls(ExplorerLevel.TABLE_DATA, schema_name, table_name)

    @classmethod
    def sql_executor(cls) -> "ExplorerState":
        return cls(ExplorerLevel.SQL_EXECUTOR)

    def title(self) -> str:
        if self.level is ExplorerLevel.SCHEMAS:
            return "Schemas"
        if self.level is ExplorerLevel.TABLES:
            return f"Tables ({self.schema_name})"
        if self.level is ExplorerLevel.COLUMNS:
            return f"Columns ({self.schema_name}.{self.table_name})"
        if self.level is ExplorerLevel.TABLE_DATA:
            return f"Table Data ({self.schema_name}.{self.table_name})"
        return "SQL Executor"


@dataclass
class ActiveConnection:
    connection: ConnectionConfig
    database: Database
    current_schema: str | None = None
    current_table: str | None = None

    def breadcrumb(self) -> list[str]:
        parts = [self.connection.name]
        if self.current_schema:
            parts.append(self.current_schema)
        if self.current_table:
            parts.append(self.current_table)
        return parts


@dataclass(frozen=True)
class CellValue:
    column_name: str
    value: str


class ExplorerStateMachine:
    """Where the user is inside one open connection.

    Every transition fetches before it mutates: a failed fetch raises
    ``FetchFailed`` and leaves both the state and the ``ActiveConnection``
    exactly as they were.
    """

    def __init__(self, sql_executor: SqlExecutor | None = None) -> None:
        self.state = ExplorerState.schemas()
        self.sql_executor = sql_executor or SqlExecutor()
        self.schemas_view: FilteredView[Schema] | None = None
        self.tables_view: FilteredView[Table] | None = None
        self.columns_view: FilteredView[Column] | None = None
        self.table_data_view: FilteredView[RawRow] | None = None
        self._tables_schema: str | None = None
        self._columns_table: tuple[str, str] | None = None

    @property
    def level(self) -> ExplorerLevel:
        return self.state.level

    def active_view(self) -> FilteredView | None:
        level = self.state.level
        if level is ExplorerLevel.SCHEMAS:
            return self.schemas_view
        if level is ExplorerLevel.TABLES:
            return self.tables_view
        if level is ExplorerLevel.COLUMNS:
            return self.columns_view
        if level is ExplorerLevel.TABLE_DATA:
            return self.table_data_view
        return self.sql_executor.results

    async def start(self, active: ActiveConnection) -> None:
        schemas = await self._fetch("schemas", active.database.get_schemas())
        self.schemas_view = FilteredView(Schema.HEADER, schemas)
        self.state = ExplorerState.schemas()
        active.current_schema = None
        active.current_table = None

    async def drill_in(self, active: ActiveConnection) -> CellValue | None:
        level = self.state.level
        if level is ExplorerLevel.SCHEMAS:
            schema = self.schemas_view.selected_item() if self.schemas_view else None
            if schema is not None:
                await self.open_schema(active, schema.name)
            return None
        if level is ExplorerLevel.TABLES:
            table = self.tables_view.selected_item() if self.tables_view else None
            if table is not None:
                await self._show_table_data(active, self.state.schema_name, table.name)
            return None
        if level is ExplorerLevel.COLUMNS:
            await self._show_table_data(
                active,
                self.state.schema_name,
                self.state.table_name,
            )
            return None
        if level is ExplorerLevel.TABLE_DATA:
            cell = self.table_data_view.selected_cell() if self.table_data_view else None
            if cell is not None:
                return CellValue(column_name=cell[0], value=cell[1])
            await self._show_columns(
                active,
                self.state.schema_name,
                self.state.table_name,
                use_cache=True,
            )
            return None
        await self.sql_executor.submit(active.database)
        return None

    async def open_schema(self, active: ActiveConnection, schema_name: str) -> None:
        tables = await self._fetch(
            "tables",
            active.database.get_tables(schema_name),
        )
        self.tables_view = FilteredView(Table.HEADER, tables)
        self._tables_schema = schema_name
        self.state = ExplorerState.tables(schema_name)
        active.current_schema = schema_name
        active.current_table = None

    async def go_back(self, active: ActiveConnection) -> bool:
        """Step up one level; False means the caller should disconnect."""
        level = self.state.level
        if level is ExplorerLevel.SCHEMAS:
            return False
        if level in {ExplorerLevel.TABLES, ExplorerLevel.SQL_EXECUTOR}:
            if self.schemas_view is None:
                schemas = await self._fetch("schemas", active.database.get_schemas())
                self.schemas_view = FilteredView(Schema.HEADER, schemas)
            self.sql_executor.deactivate()
            self.state = ExplorerState.schemas()
            active.current_schema = None
            active.current_table = None
            return True
        schema_name = self.state.schema_name
        if self.tables_view is None or self._tables_schema != schema_name:
            tables = await self._fetch("tables", active.database.get_tables(schema_name))
            self.tables_view = FilteredView(Table.HEADER, tables)
            self._tables_schema = schema_name
        self.state = ExplorerState.tables(schema_name)
        active.current_schema = schema_name
        active.current_table = None
        return True

    async def toggle_table_view(self, active: ActiveConnection) -> None:
        level = self.state.level
        if level is ExplorerLevel.TABLE_DATA:
            await self._show_columns(
                active,
                self.state.schema_name,
                self.state.table_name,
                use_cache=False,
            )
        elif level is ExplorerLevel.COLUMNS:
            await self._show_table_data(
                active,
                self.state.schema_name,
                self.state.table_name,
            )

    def enter_sql_mode(self, active: ActiveConnection) -> None:
        self.state = ExplorerState.sql_executor()
        self.sql_executor.activate()
        active.current_schema = None
        active.current_table = None

    async def refresh(self, active: ActiveConnection) -> None:
        level = self.state.level
        schema_name = self.state.schema_name
        table_name = self.state.table_name
        if level is ExplorerLevel.SCHEMAS:
            schemas = await self._fetch("schemas", active.database.get_schemas())
            self.schemas_view = _reloaded(self.schemas_view, Schema.HEADER, schemas)
        elif level is ExplorerLevel.TABLES:
            tables = await self._fetch("tables", active.database.get_tables(schema_name))
            self.tables_view = _reloaded(self.tables_view, Table.HEADER, tables)
        elif level is ExplorerLevel.COLUMNS:
            columns = await self._fetch(
                "columns",
                active.database.get_columns(schema_name, table_name),
            )
            self.columns_view = _reloaded(self.columns_view, Column.HEADER, columns)
        elif level is ExplorerLevel.TABLE_DATA:
            result = await self._fetch(
                "table data",
                active.database.get_table_data_with_columns(schema_name, table_name),
            )
            self.table_data_view = _reloaded(
                self.table_data_view,
                result.columns,
                raw_rows(result.rows, result.columns),
            )

    async def _show_table_data(
        self,
        active: ActiveConnection,
        schema_name: str,
        table_name: str,
    ) -> None:
        result: QueryResult = await self._fetch(
            "table data",
            active.database.get_table_data_with_columns(schema_name, table_name),
        )
        self.table_data_view = FilteredView(
            result.columns,
            raw_rows(result.rows, result.columns),
        )
        self.state = ExplorerState.table_data(schema_name, table_name)
        active.current_schema = schema_name
        active.current_table = table_name

    async def _show_columns(
        self,
        active: ActiveConnection,
        schema_name: str,
        table_name: str,
        *,
        use_cache: bool,
    ) -> None:
        cached = (
            use_cache
            and self.columns_view is not None
            and self._columns_table == (schema_name, table_name)
        )
        if not cached:
            columns = await self._fetch(
                "columns",
                active.database.get_columns(schema_name, table_name),
            )
            self.columns_view = FilteredView(Column.HEADER, columns)
            self._columns_table = (schema_name, table_name)
        self.state = ExplorerState.columns(schema_name, table_name)
        active.current_schema = schema_name
        active.current_table = table_name

    async def _fetch(self, label: str, operation: Awaitable[ResultT]) -> ResultT:
        try:
            return await operation
        except Exception as error:
            logger.warning("Failed to load %s: %s", label, error)
            raise FetchFailed(f"Failed to load {label}: {error}") from error


def _reloaded(
    previous: FilteredView | None,
    header: Sequence[str],
    items: list,
) -> FilteredView:
    view = FilteredView(header, items)
    if previous is not None and previous.filter_query:
        view.apply_filter(previous.filter_query)
    return view
