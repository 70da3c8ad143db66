import logging

from dbnav.config import load_last_query, save_last_query
from dbnav.database import Database
from dbnav.filtered_view import FilteredView
from dbnav.records import RawRow, raw_rows
from dbnav.text_input import TextInput


logger = logging.getLogger(__name__)


class SqlExecutor:
    """Query input plus the outcome of the last submitted statement.

    At most one of ``results`` and ``error`` is set. Editing the query drops
    both so a stale outcome is never shown next to a different query.
    """

    def __init__(self, query: str = "", *, remember_queries: bool = True) -> None:
        self.input = TextInput(query)
        self.results: FilteredView[RawRow] | None = None
        self.error: str | None = None
        self.is_active = False
        self.remember_queries = remember_queries

    @classmethod
    def with_last_query(cls) -> "SqlExecutor":
        return cls(load_last_query())

    @property
    def query(self) -> str:
        return self.input.text

    def activate(self) -> None:
        self.is_active = True
        self.input.move_to_end()

    def deactivate(self) -> None:
        self.is_active = False

    def set_error(self, message: str) -> None:
        self.error = message
        self.results = None

    def clear_outcome(self) -> None:
        self.results = None
        self.error = None

    def handle_key(self, key: str, character: str | None) -> bool:
        if not self.is_active or not self.input.is_editing_key(key, character):
            return False
        if self.input.handle_key(key, character):
            self.clear_outcome()
        return True

    async def submit(self, database: Database) -> FilteredView[RawRow] | None:
        query_text = self.query.strip()
        if not query_text:
            return None
        try:
            result = await database.execute_sql(query_text)
        except Exception as error:
            logger.warning("Query failed: %s", error)
            self.set_error(str(error))
            return None
        view = FilteredView(
            result.columns,
            raw_rows(result.rows, result.columns),
        )
        self.results = view
        self.error = None
        if self.remember_queries:
            save_last_query(query_text)
        return view
