import logging

from dbnav.config import ConnectionConfig, ConnectionStore
from dbnav.credentials import PasswordResolver
from dbnav.errors import CredentialUnavailable
from dbnav.filtered_view import FilteredView


logger = logging.getLogger(__name__)


class ConnectionListView:
    """The top-level list of stored connections."""

    def __init__(self, store: ConnectionStore) -> None:
        self.store = store
        self.view: FilteredView[ConnectionConfig] = FilteredView(
            ConnectionConfig.HEADER
        )

    def reload(self) -> None:
        query = self.view.filter_query
        selected_column = self.view.selected_column
        self.view.load(self.store.list())
        self.view.selected_column = selected_column
        if query:
            self.view.apply_filter(query)
        else:
            self.view.refit_columns()

    def selected_connection(self) -> ConnectionConfig | None:
        return self.view.selected_item()

    def select(self, name: str) -> ConnectionConfig | None:
        for index, connection in enumerate(self.view.displayed):
            if connection.name == name:
                self.view.selected_row = index
                return connection
        return None

    def save(
        self,
        connection: ConnectionConfig,
        password: str,
        passwords: PasswordResolver,
        *,
        original_name: str | None = None,
    ) -> None:
        """Persist a created or edited connection and its keyring password."""
        previous = self.store.find(original_name) if original_name else None
        if previous is None:
            self.store.create(connection)
        else:
            self.store.update(original_name, connection)
            renamed = previous.name != connection.name
            if previous.uses_keyring() and (renamed or not connection.uses_keyring()):
                # Keyring entries are keyed by connection name.
                if renamed and connection.uses_keyring() and not password:
                    password = _stored_password(passwords, previous)
                _forget_keyring_entry(passwords, previous)
        if password and connection.uses_keyring():
            passwords.credential_store.set(connection.name, password)
        self.reload()
        self.select(connection.name)

    def delete(self, connection: ConnectionConfig, passwords: PasswordResolver) -> None:
        self.store.delete(connection.name)
        passwords.discard(connection)
        self.reload()


def _forget_keyring_entry(
    passwords: PasswordResolver,
    connection: ConnectionConfig,
) -> None:
    try:
        passwords.credential_store.delete(connection.name)
    except CredentialUnavailable as error:
        logger.info("No keyring entry removed for %s: %s", connection.name, error)


def _stored_password(passwords: PasswordResolver, connection: ConnectionConfig) -> str:
    try:
        return passwords.credential_store.get(connection.name)
    except CredentialUnavailable:
        return ""
