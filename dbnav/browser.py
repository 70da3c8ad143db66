import logging
from typing import Awaitable, Callable

from dbnav.config import ConnectionConfig, ConnectionStore
from dbnav.connections import ConnectionListView
from dbnav.credentials import (
    CredentialStore,
    KeyringCredentialStore,
    PasswordResolver,
    SessionPasswordCache,
)
from dbnav.database import Database, open_database
from dbnav.errors import ConnectivityFailed, CredentialUnavailable, FetchFailed
from dbnav.explorer import ActiveConnection, ExplorerLevel, ExplorerStateMachine
from dbnav.filtered_view import FilteredView
from dbnav.modals import (
    CellValueModal,
    ConnectionFormModal,
    DeleteConfirmationModal,
    Modal,
    ModalAction,
    ModalGate,
    PasswordPromptModal,
)
from dbnav.navigation import NavigationCursor
from dbnav.search_filter import FilterOutcome, SearchFilter
from dbnav.sql_executor import SqlExecutor


logger = logging.getLogger(__name__)

DatabaseFactory = Callable[[ConnectionConfig, str], Database]


class Browser:
    """All mutable application state and the per-key control flow.

    A key goes to the open modal, else the search filter while it is being
    edited, else the SQL input, else the application shortcuts and finally
    navigation of the active view.
    """

    def __init__(
        self,
        connection_store: ConnectionStore | None = None,
        credential_store: CredentialStore | None = None,
        database_factory: DatabaseFactory = open_database,
        sql_executor_factory: Callable[[], SqlExecutor] | None = None,
    ) -> None:
        self.connection_store = connection_store or ConnectionStore()
        self.session_cache = SessionPasswordCache()
        self.passwords = PasswordResolver(
            credential_store or KeyringCredentialStore(),
            self.session_cache,
        )
        self.database_factory = database_factory
        self.sql_executor_factory = sql_executor_factory or SqlExecutor.with_last_query
        self.connection_list = ConnectionListView(self.connection_store)
        self.explorer: ExplorerStateMachine | None = None
        self.active_connection: ActiveConnection | None = None
        self.modal_gate = ModalGate()
        self.search_filter = SearchFilter()
        self.navigation = NavigationCursor()
        self.status = ""
        self.viewport_width = 80
        self.page_size = 10
        self.running = True

    @property
    def is_connected(self) -> bool:
        return self.explorer is not None and self.active_connection is not None

    @property
    def in_sql_mode(self) -> bool:
        return self.is_connected and self.explorer.level is ExplorerLevel.SQL_EXECUTOR

    def active_view(self) -> FilteredView | None:
        if self.is_connected:
            return self.explorer.active_view()
        return self.connection_list.view

    def breadcrumb(self) -> str:
        if not self.is_connected:
            return "Connections"
        return " > ".join(self.active_connection.breadcrumb())

    def view_title(self) -> str:
        if not self.is_connected:
            return "Connections"
        return self.explorer.state.title()

    def load_connections(self) -> None:
        self.connection_list.reload()

    async def open_initial(
        self,
        connection_name: str | None,
        schema_name: str | None = None,
    ) -> None:
        await self._open_location(connection_name, schema_name)
        self.fit_active_view()

    async def _open_location(
        self,
        connection_name: str | None,
        schema_name: str | None,
    ) -> None:
        self.load_connections()
        if not connection_name:
            return
        connection = self.connection_list.select(connection_name)
        if connection is None:
            self.status = f"Connection not found: {connection_name}"
            return
        if not await self.connect(connection) or not schema_name:
            return
        try:
            await self.explorer.open_schema(self.active_connection, schema_name)
        except FetchFailed as error:
            self.status = str(error)

    async def handle_key(self, key: str, character: str | None = None) -> None:
        await self._route_key(key, character)
        # Any key may have switched views or reloaded one; cached views keep
        # the offset from the width they were last laid out for.
        self.fit_active_view()

    async def _route_key(self, key: str, character: str | None) -> None:
        if self.modal_gate.is_open:
            modal, action = self.modal_gate.handle_key(key, character)
            if modal is not None:
                await self._handle_modal_action(modal, action)
            return
        if self.search_filter.is_active:
            self._handle_search_key(key, character)
            return
        if self.in_sql_mode and key not in {"escape", "enter"}:
            if self.explorer.sql_executor.handle_key(key, character):
                return
        if await self._handle_shortcut(key):
            return
        view = self.active_view()
        if view is not None:
            self.navigation.navigate(view, key, self.viewport_width, self.page_size)

    def set_viewport(self, width: int, page_size: int | None = None) -> None:
        self.viewport_width = max(1, width)
        if page_size is not None:
            self.page_size = max(1, page_size)
        self.fit_active_view()

    def fit_active_view(self) -> None:
        view = self.active_view()
        if view is not None:
            view.ensure_column_visible(self.viewport_width)

    async def _handle_shortcut(self, key: str) -> bool:
        if key in {"q", "ctrl+c"}:
            self.running = False
            return True
        if key == "enter":
            if self.is_connected:
                await self._drill_in()
            else:
                await self.connect_selected()
            return True
        if key == "escape":
            await self._escape()
            return True
        if key in {"slash", "/"}:
            view = self.active_view()
            if view is not None:
                self.search_filter.activate(view.filter_query)
            return True
        if key == "r":
            await self.refresh()
            return True
        if not self.is_connected:
            return self._handle_connection_shortcut(key)
        if key == "t":
            await self._run_transition(
                self.explorer.toggle_table_view(self.active_connection)
            )
            return True
        if key == "s":
            self.explorer.enter_sql_mode(self.active_connection)
            self.search_filter.reset()
            return True
        return False

    def _handle_connection_shortcut(self, key: str) -> bool:
        if key == "n":
            self.modal_gate.open(ConnectionFormModal())
            return True
        connection = self.connection_list.selected_connection()
        if key == "e":
            if connection is not None:
                self.modal_gate.open(ConnectionFormModal(connection))
            return True
        if key == "d":
            if connection is not None:
                self.modal_gate.open(DeleteConfirmationModal(connection))
            return True
        return False

    def _handle_search_key(self, key: str, character: str | None) -> None:
        outcome = self.search_filter.handle_key(key, character)
        view = self.active_view()
        if view is None:
            return
        if outcome is FilterOutcome.CLEAR:
            view.clear_filter()
        elif outcome is FilterOutcome.APPLY:
            view.apply_filter(self.search_filter.query)

    async def _escape(self) -> None:
        view = self.active_view()
        if not self.in_sql_mode and view is not None and view.is_filtered:
            view.clear_filter()
            self.search_filter.reset()
            return
        if not self.is_connected:
            return
        try:
            stay_connected = await self.explorer.go_back(self.active_connection)
        except FetchFailed as error:
            self.status = str(error)
            return
        self.search_filter.reset()
        if not stay_connected:
            self.disconnect()

    async def _drill_in(self) -> None:
        try:
            cell = await self.explorer.drill_in(self.active_connection)
        except FetchFailed as error:
            self.status = str(error)
            return
        if cell is not None:
            self.modal_gate.open(CellValueModal(cell.column_name, cell.value))
        elif not self.in_sql_mode:
            self.search_filter.reset()

    async def _run_transition(self, transition: Awaitable[None]) -> None:
        try:
            await transition
        except FetchFailed as error:
            self.status = str(error)
            return
        self.search_filter.reset()

    async def refresh(self) -> None:
        if not self.is_connected:
            self.load_connections()
            self.status = "Connections reloaded."
            return
        try:
            await self.explorer.refresh(self.active_connection)
        except FetchFailed as error:
            self.status = str(error)
            return
        self.status = f"Refreshed {self.explorer.state.title()}."

    async def connect_selected(self) -> bool:
        connection = self.connection_list.selected_connection()
        if connection is None:
            self.status = "No connection selected."
            return False
        return await self.connect(connection)

    async def connect(self, connection: ConnectionConfig) -> bool:
        try:
            password = self.passwords.resolve(connection)
        except CredentialUnavailable as error:
            logger.info("Prompting for password for %s: %s", connection.name, error)
            self.modal_gate.open(PasswordPromptModal(connection))
            return False
        try:
            await self._open_explorer(connection, password)
        except (ConnectivityFailed, FetchFailed) as error:
            self.status = str(error)
            return False
        return True

    def disconnect(self) -> None:
        name = self.active_connection.connection.name if self.active_connection else ""
        self.explorer = None
        self.active_connection = None
        self.search_filter.reset()
        self.status = f"Disconnected from {name}." if name else ""

    async def _open_explorer(self, connection: ConnectionConfig, password: str) -> None:
        database = self.database_factory(connection, password)
        if not await database.test():
            raise ConnectivityFailed(f"Could not connect to {connection.name}")
        explorer = ExplorerStateMachine(self.sql_executor_factory())
        active = ActiveConnection(connection=connection, database=database)
        await explorer.start(active)
        self.explorer = explorer
        self.active_connection = active
        self.search_filter.reset()
        self.status = f"Connected to {connection.name}."
        logger.info("Connected to %s", connection.name)

    async def _handle_modal_action(self, modal: Modal, action: ModalAction) -> None:
        if isinstance(modal, ConnectionFormModal):
            if action is ModalAction.SAVE:
                self._save_connection(modal)
            elif action is ModalAction.TEST:
                await self._test_connection(modal)
        elif isinstance(modal, DeleteConfirmationModal):
            if action is ModalAction.SAVE:
                self._delete_connection(modal.connection)
        elif isinstance(modal, PasswordPromptModal):
            if action is ModalAction.SAVE:
                await self._submit_password(modal)
            elif action is ModalAction.CANCEL:
                self.status = "Connection cancelled."

    def _save_connection(self, modal: ConnectionFormModal) -> None:
        try:
            connection = modal.to_connection()
            self.connection_list.save(
                connection,
                modal.password,
                self.passwords,
                original_name=modal.original_name,
            )
        except (ValueError, CredentialUnavailable) as error:
            modal.feedback = str(error)
            return
        self.modal_gate.close()
        self.status = f"Saved connection: {connection.name}"

    async def _test_connection(self, modal: ConnectionFormModal) -> None:
        connection = modal.to_connection()
        password = modal.password
        stored = None
        if modal.original_name:
            stored = self.connection_store.find(modal.original_name)
        if not password and stored is not None:
            try:
                password = self.passwords.resolve(stored)
            except CredentialUnavailable:
                password = ""
        database = self.database_factory(connection, password)
        if await database.test():
            modal.feedback = "Connection successful"
        else:
            modal.feedback = "Connection failed"

    def _delete_connection(self, connection: ConnectionConfig) -> None:
        try:
            self.connection_list.delete(connection, self.passwords)
        except ValueError as error:
            self.status = str(error)
            return
        self.status = f"Deleted connection: {connection.name}"

    async def _submit_password(self, modal: PasswordPromptModal) -> None:
        try:
            await self._open_explorer(modal.connection, modal.password)
        except (ConnectivityFailed, FetchFailed) as error:
            modal.reject(str(error))
            return
        try:
            self.passwords.remember(
                modal.connection,
                modal.password,
                save_in_keyring=modal.save_in_keyring,
            )
        except CredentialUnavailable as error:
            self.status = f"Connected, but the password was not saved: {error}"
        self.modal_gate.close()
