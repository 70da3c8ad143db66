import logging
from typing import Protocol

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from dbnav.config import ConnectionConfig
from dbnav.errors import CredentialUnavailable


logger = logging.getLogger(__name__)

SERVICE_NAME = "dbnav"


class CredentialStore(Protocol):
    def get(self, connection_name: str) -> str: ...

    def set(self, connection_name: str, password: str) -> None: ...

    def delete(self, connection_name: str) -> None: ...


class KeyringCredentialStore:
    """Passwords in the OS credential store, one entry per connection name."""

    def __init__(self, service_name: str = SERVICE_NAME) -> None:
        self._service_name = service_name

    def get(self, connection_name: str) -> str:
        try:
            password = keyring.get_password(self._service_name, connection_name)
        except KeyringError as error:
            logger.warning("Keyring lookup failed for %s: %s", connection_name, error)
            raise CredentialUnavailable(str(error)) from error
        if password is None:
            raise CredentialUnavailable(f"No stored password for {connection_name}")
        return password

    def set(self, connection_name: str, password: str) -> None:
        try:
            keyring.set_password(self._service_name, connection_name, password)
        except KeyringError as error:
            logger.warning("Keyring write failed for %s: %s", connection_name, error)
            raise CredentialUnavailable(str(error)) from error

    def delete(self, connection_name: str) -> None:
        try:
            keyring.delete_password(self._service_name, connection_name)
        except PasswordDeleteError as error:
            raise CredentialUnavailable(
                f"No stored password for {connection_name}"
            ) from error
        except KeyringError as error:
            logger.warning("Keyring delete failed for %s: %s", connection_name, error)
            raise CredentialUnavailable(str(error)) from error


class SessionPasswordCache:
    """Passwords for "ask every time" connections, kept for this process only."""

    def __init__(self) -> None:
        self._passwords: dict[str, str] = {}

    def get(self, connection: ConnectionConfig) -> str | None:
        return self._passwords.get(connection.identity_key())

    def store(self, connection: ConnectionConfig, password: str) -> None:
        self._passwords[connection.identity_key()] = password

    def forget(self, connection: ConnectionConfig) -> None:
        self._passwords.pop(connection.identity_key(), None)


class PasswordResolver:
    def __init__(
        self,
        credential_store: CredentialStore,
        session_cache: SessionPasswordCache,
    ) -> None:
        self.credential_store = credential_store
        self.session_cache = session_cache

    def resolve(self, connection: ConnectionConfig) -> str:
        """Return the password to connect with.

        Raises ``CredentialUnavailable`` when the user has to be prompted.
        """
        if not connection.needs_password():
            return ""
        if connection.should_ask_every_time():
            password = self.session_cache.get(connection)
            if password is None:
                raise CredentialUnavailable(
                    f"Password required for {connection.name}"
                )
            return password
        return self.credential_store.get(connection.name)

    def remember(
        self,
        connection: ConnectionConfig,
        password: str,
        *,
        save_in_keyring: bool,
    ) -> None:
        if save_in_keyring:
            self.credential_store.set(connection.name, password)
        if connection.should_ask_every_time():
            self.session_cache.store(connection, password)

    def discard(self, connection: ConnectionConfig) -> None:
        self.session_cache.forget(connection)
        if not connection.uses_keyring():
            return
        try:
            self.credential_store.delete(connection.name)
        except CredentialUnavailable as error:
            logger.info("No keyring entry removed for %s: %s", connection.name, error)
