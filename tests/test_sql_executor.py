import pytest

from dbnav.config import DEFAULT_QUERY, load_last_query
from dbnav.sql_executor import SqlExecutor
from conftest import StubDatabase


@pytest.mark.asyncio
async def test_submit_select_one_yields_single_row(stub_database: StubDatabase) -> None:
    executor = SqlExecutor("SELECT 1", remember_queries=False)

    view = await executor.submit(stub_database)

    assert view is executor.results
    assert view.header == ["?column?"]
    assert [row.column_values() for row in view.displayed] == [["1"]]
    assert executor.error is None


@pytest.mark.asyncio
async def test_statement_without_rows_reports_affected_count(
    stub_database: StubDatabase,
) -> None:
    executor = SqlExecutor("DELETE FROM users", remember_queries=False)

    await executor.submit(stub_database)

    assert executor.results.header == ["Result"]
    assert executor.results.displayed[0].column_values() == ["Affected rows: 3"]


@pytest.mark.asyncio
async def test_failed_query_drops_previous_results(stub_database: StubDatabase) -> None:
    executor = SqlExecutor("SELECT 1", remember_queries=False)
    await executor.submit(stub_database)
    executor.input.set_text("SELEC nonsense")

    view = await executor.submit(stub_database)

    assert view is None
    assert executor.results is None
    assert executor.error == 'syntax error at or near "SELEC"'


@pytest.mark.asyncio
async def test_successful_query_clears_previous_error(stub_database: StubDatabase) -> None:
    executor = SqlExecutor("bogus", remember_queries=False)
    await executor.submit(stub_database)
    assert executor.error is not None
    executor.input.set_text("SELECT 1")

    await executor.submit(stub_database)

    assert executor.error is None
    assert executor.results is not None


@pytest.mark.asyncio
async def test_blank_query_is_not_sent(stub_database: StubDatabase) -> None:
    executor = SqlExecutor("   ", remember_queries=False)

    assert await executor.submit(stub_database) is None
    assert stub_database.calls == []


@pytest.mark.asyncio
async def test_typing_clears_stale_outcome(stub_database: StubDatabase) -> None:
    executor = SqlExecutor("SELECT 1", remember_queries=False)
    executor.activate()
    await executor.submit(stub_database)

    handled = executor.handle_key(";", ";")

    assert handled is True
    assert executor.query == "SELECT 1;"
    assert executor.results is None
    assert executor.error is None


@pytest.mark.asyncio
async def test_cursor_moves_keep_outcome(stub_database: StubDatabase) -> None:
    executor = SqlExecutor("SELECT 1", remember_queries=False)
    executor.activate()
    await executor.submit(stub_database)

    executor.handle_key("left", None)

    assert executor.input.cursor == len("SELECT 1") - 1
    assert executor.results is not None


def test_inactive_executor_ignores_keys() -> None:
    executor = SqlExecutor("SELECT 1", remember_queries=False)

    assert executor.handle_key("x", "x") is False
    assert executor.query == "SELECT 1"


def test_navigation_keys_are_not_consumed() -> None:
    executor = SqlExecutor(remember_queries=False)
    executor.activate()

    assert executor.handle_key("enter", None) is False
    assert executor.handle_key("escape", None) is False


@pytest.mark.asyncio
async def test_successful_query_is_remembered(home, stub_database: StubDatabase) -> None:
    executor = SqlExecutor("  SELECT 1  ")

    await executor.submit(stub_database)

    assert load_last_query() == "SELECT 1"
    assert SqlExecutor.with_last_query().query == "SELECT 1"


@pytest.mark.asyncio
async def test_failed_query_is_not_remembered(home, stub_database: StubDatabase) -> None:
    executor = SqlExecutor("bogus")

    await executor.submit(stub_database)

    assert load_last_query() == "SELECT 1 AS one;"


def test_last_query_defaults_when_nothing_saved(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))

    assert SqlExecutor.with_last_query().query == DEFAULT_QUERY
