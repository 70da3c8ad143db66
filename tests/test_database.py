import pytest

from dbnav.database import format_cell_value, open_database, quote_identifier
from dbnav.postgres_driver import (
    PostgresDatabase,
    _affected_rows_message,
    connection_parameters_for,
)
from conftest import postgres_connection


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, "NULL"),
        (True, "true"),
        (False, "false"),
        (42, "42"),
        ({"a": [1, 2]}, '{"a": [1, 2]}'),
        ([1, "x"], '[1, "x"]'),
        (b"\x00\xff", "<2 bytes>"),
        ("plain", "plain"),
    ],
)
def test_format_cell_value(value: object, expected: str) -> None:
    assert format_cell_value(value) == expected


def test_quote_identifier_escapes_quotes() -> None:
    assert quote_identifier('odd"name') == '"odd""name"'


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        ("UPDATE 3", "Affected rows: 3"),
        ("INSERT 0 1", "Affected rows: 1"),
        ("CREATE TABLE", "CREATE TABLE"),
        (None, "Affected rows: 0"),
    ],
)
def test_affected_rows_message(status: str | None, expected: str) -> None:
    assert _affected_rows_message(status) == expected


def test_open_database_picks_postgres() -> None:
    database = open_database(postgres_connection("local", port=6543), "secret")

    assert isinstance(database, PostgresDatabase)
    assert database.connection_parameters == connection_parameters_for(
        postgres_connection("local", port=6543),
        "secret",
    )
    assert database.connection_parameters.port == 6543
    assert database.connection_parameters.password == "secret"
