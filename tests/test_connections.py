from dbnav.config import ASK_STORAGE, ConnectionStore
from dbnav.connections import ConnectionListView
from dbnav.credentials import PasswordResolver, SessionPasswordCache
from dbnav.filtered_view import Direction
from conftest import MemoryCredentialStore, postgres_connection


def _list_view(
    connection_store: ConnectionStore,
) -> tuple[ConnectionListView, PasswordResolver, MemoryCredentialStore]:
    credentials = MemoryCredentialStore()
    resolver = PasswordResolver(credentials, SessionPasswordCache())
    list_view = ConnectionListView(connection_store)
    list_view.reload()
    return list_view, resolver, credentials


def test_reload_lists_stored_connections(connection_store) -> None:
    list_view, _, _ = _list_view(connection_store)

    assert [connection.name for connection in list_view.view.displayed] == [
        "local",
        "staging",
        "adhoc",
        "notes",
    ]
    assert list_view.selected_connection().name == "local"


def test_reload_keeps_filter(connection_store) -> None:
    list_view, _, _ = _list_view(connection_store)
    list_view.view.apply_filter("staging")
    connection_store.create(postgres_connection("staging-eu"))

    list_view.reload()

    assert [connection.name for connection in list_view.view.displayed] == [
        "staging",
        "staging-eu",
    ]


def test_save_new_connection_stores_password_and_selects_it(connection_store) -> None:
    list_view, resolver, credentials = _list_view(connection_store)

    list_view.save(postgres_connection("prod"), "pw", resolver)

    assert credentials.passwords == {"prod": "pw"}
    assert list_view.selected_connection().name == "prod"


def test_save_ask_connection_never_touches_keyring(connection_store) -> None:
    list_view, resolver, credentials = _list_view(connection_store)

    list_view.save(
        postgres_connection("scratch", password_storage=ASK_STORAGE),
        "pw",
        resolver,
    )

    assert credentials.passwords == {}


def test_rename_moves_keyring_entry(connection_store) -> None:
    list_view, resolver, credentials = _list_view(connection_store)
    credentials.set("local", "secret")

    list_view.save(postgres_connection("dev"), "", resolver, original_name="local")

    assert credentials.passwords == {"dev": "secret"}
    assert connection_store.find("local") is None
    assert list_view.selected_connection().name == "dev"


def test_switching_to_ask_removes_keyring_entry(connection_store) -> None:
    list_view, resolver, credentials = _list_view(connection_store)
    credentials.set("local", "secret")

    list_view.save(
        postgres_connection("local", password_storage=ASK_STORAGE),
        "",
        resolver,
        original_name="local",
    )

    assert credentials.passwords == {}


def test_edit_without_password_keeps_existing_entry(connection_store) -> None:
    list_view, resolver, credentials = _list_view(connection_store)
    credentials.set("local", "secret")

    list_view.save(
        postgres_connection("local", host="127.0.0.1"),
        "",
        resolver,
        original_name="local",
    )

    assert credentials.passwords == {"local": "secret"}
    assert connection_store.find("local").host == "127.0.0.1"


def test_delete_removes_connection_and_password(connection_store) -> None:
    list_view, resolver, credentials = _list_view(connection_store)
    credentials.set("staging", "pw")
    list_view.view.move_selection(Direction.LAST_ROW, 80)

    list_view.delete(connection_store.find("staging"), resolver)

    assert credentials.passwords == {}
    assert [connection.name for connection in list_view.view.displayed] == [
        "local",
        "adhoc",
        "notes",
    ]
    assert list_view.view.selected_row == 0


def test_reload_refits_restored_column(connection_store) -> None:
    list_view, _, _ = _list_view(connection_store)
    list_view.view.selected_column = 2
    list_view.view.ensure_column_visible(30)
    assert list_view.view.column_scroll_offset == 0
    connection_store.create(postgres_connection("warehouse-" + "x" * 30))

    list_view.reload()

    assert list_view.view.selected_column == 2
    assert list_view.view.column_scroll_offset == 1
    assert 2 in list_view.view.visible_columns(30)
