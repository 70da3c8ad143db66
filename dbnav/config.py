from dataclasses import dataclass
import json
from pathlib import Path
from urllib.parse import unquote, urlparse

from dbnav.errors import ValidationFailed


POSTGRES = "postgres"
SQLITE = "sqlite"
DB_TYPES = (POSTGRES, SQLITE)

KEYRING_STORAGE = "keyring"
ASK_STORAGE = "ask"
PASSWORD_STORAGES = (KEYRING_STORAGE, ASK_STORAGE)

DEFAULT_POSTGRES_PORT = 5432
DEFAULT_QUERY = "SELECT 1;"


@dataclass(frozen=True)
class ConnectionConfig:
    name: str
    db_type: str = POSTGRES
    host: str = ""
    port: int = DEFAULT_POSTGRES_PORT
    user: str = ""
    database: str = ""
    password_storage: str = KEYRING_STORAGE

    HEADER = ("Name", "Type", "Host", "Port", "User", "Database", "Password")

    def header(self) -> list[str]:
        return list(self.HEADER)

    def column_values(self) -> list[str]:
        if self.db_type == SQLITE:
            return [self.name, self.db_type, "", "", "", self.database, ""]
        return [
            self.name,
            self.db_type,
            self.host,
            str(self.port),
            self.user,
            self.database,
            "ask" if self.should_ask_every_time() else "keyring",
        ]

    def identity_key(self) -> str:
        return f"{self.user}@{self.host}:{self.port}/{self.database}"

    def should_ask_every_time(self) -> bool:
        return self.password_storage == ASK_STORAGE

    def needs_password(self) -> bool:
        return self.db_type == POSTGRES

    def uses_keyring(self) -> bool:
        return self.needs_password() and not self.should_ask_every_time()


@dataclass(frozen=True)
class AppConfig:
    connections: list[ConnectionConfig]


def _config_dir() -> Path:
    return Path.home() / ".config" / ".dbnav"


def _config_path() -> Path:
    return _config_dir() / "connections.json"


def _query_path() -> Path:
    return _config_dir() / "query.sql"


def log_path() -> Path:
    return _config_dir() / "dbnav.log"


def _connection_from_dict(item: dict) -> ConnectionConfig:
    return ConnectionConfig(
        name=item["name"],
        db_type=item.get("db_type", POSTGRES),
        host=item.get("host", ""),
        port=int(item.get("port", DEFAULT_POSTGRES_PORT)),
        user=item.get("user", ""),
        database=item.get("database", ""),
        password_storage=item.get("password_storage", KEYRING_STORAGE),
    )


def _connection_to_dict(connection: ConnectionConfig) -> dict:
    return {
        "name": connection.name,
        "db_type": connection.db_type,
        "host": connection.host,
        "port": connection.port,
        "user": connection.user,
        "database": connection.database,
        "password_storage": connection.password_storage,
    }


def load_config() -> AppConfig:
    config_path = _config_path()
    if not config_path.exists():
        return AppConfig(connections=[])
    data = json.loads(config_path.read_text(encoding="utf-8"))
    connections = [_connection_from_dict(item) for item in data.get("connections", [])]
    return AppConfig(connections=connections)


def save_config(config: AppConfig) -> None:
    config_dir = _config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)
    payload = {
        "connections": [
            _connection_to_dict(connection) for connection in config.connections
        ],
    }
    _config_path().write_text(json.dumps(payload, indent=2), encoding="utf-8")


def validate_connection(connection: ConnectionConfig) -> None:
    if not connection.name.strip():
        raise ValidationFailed("Connection name is required")
    if connection.db_type not in DB_TYPES:
        raise ValidationFailed(f"Unknown database type: {connection.db_type}")
    if connection.password_storage not in PASSWORD_STORAGES:
        raise ValidationFailed(
            f"Unknown password storage: {connection.password_storage}"
        )
    if connection.db_type == POSTGRES:
        if not connection.host.strip():
            raise ValidationFailed("Host is required")
        if not connection.user.strip():
            raise ValidationFailed("User is required")
        if not 0 < connection.port < 65536:
            raise ValidationFailed(f"Invalid port: {connection.port}")
    if not connection.database.strip():
        raise ValidationFailed("Database is required")


def add_connection(config: AppConfig, connection: ConnectionConfig) -> AppConfig:
    if any(existing.name == connection.name for existing in config.connections):
        raise ValueError(f"Connection name already exists: {connection.name}")
    updated_connections = [*config.connections, connection]
    return AppConfig(connections=updated_connections)


def replace_connection(
    config: AppConfig,
    old_name: str,
    connection: ConnectionConfig,
) -> AppConfig:
    if not any(existing.name == old_name for existing in config.connections):
        raise ValueError(f"Connection not found: {old_name}")
    if connection.name != old_name and any(
        existing.name == connection.name for existing in config.connections
    ):
        raise ValueError(f"Connection name already exists: {connection.name}")
    updated_connections = [
        connection if existing.name == old_name else existing
        for existing in config.connections
    ]
    return AppConfig(connections=updated_connections)


def remove_connection(config: AppConfig, name: str) -> AppConfig:
    if not any(existing.name == name for existing in config.connections):
        raise ValueError(f"Connection not found: {name}")
    updated_connections = [
        existing for existing in config.connections if existing.name != name
    ]
    return AppConfig(connections=updated_connections)


class ConnectionStore:
    """Named connections persisted to ``connections.json``.

    Passwords never reach this file; they live in the credential store.
    """

    def list(self) -> list[ConnectionConfig]:
        return list(load_config().connections)

    def find(self, name: str) -> ConnectionConfig | None:
        for connection in self.list():
            if connection.name == name:
                return connection
        return None

    def create(self, connection: ConnectionConfig) -> None:
        validate_connection(connection)
        save_config(add_connection(load_config(), connection))

    def update(self, old_name: str, connection: ConnectionConfig) -> None:
        validate_connection(connection)
        save_config(replace_connection(load_config(), old_name, connection))

    def delete(self, name: str) -> None:
        save_config(remove_connection(load_config(), name))


def parse_connection_url(
    name: str,
    url: str,
    *,
    ask_password: bool = False,
) -> tuple[ConnectionConfig, str | None]:
    """Build a connection from a URL, returning it with the URL's password."""
    parsed_url = urlparse(url)
    storage = ASK_STORAGE if ask_password else KEYRING_STORAGE
    if parsed_url.scheme == "sqlite":
        # sqlite:///relative.db and sqlite:////absolute/path.db
        if parsed_url.netloc:
            database = unquote(parsed_url.netloc + parsed_url.path)
        else:
            database = unquote(parsed_url.path[1:])
        connection = ConnectionConfig(name=name, db_type=SQLITE, database=database)
        validate_connection(connection)
        return connection, None
    if parsed_url.scheme not in {"postgres", "postgresql"}:
        raise ValidationFailed(f"Unsupported connection URL scheme: {parsed_url.scheme}")
    if parsed_url.hostname is None:
        raise ValidationFailed("Missing required connection field: host")
    if parsed_url.username is None:
        raise ValidationFailed("Missing required connection field: username")
    connection = ConnectionConfig(
        name=name,
        db_type=POSTGRES,
        host=parsed_url.hostname,
        port=parsed_url.port or DEFAULT_POSTGRES_PORT,
        user=unquote(parsed_url.username),
        database=parsed_url.path.lstrip("/") or "postgres",
        password_storage=storage,
    )
    validate_connection(connection)
    password = unquote(parsed_url.password) if parsed_url.password else None
    return connection, password


def load_last_query() -> str:
    query_path = _query_path()
    if not query_path.exists():
        return DEFAULT_QUERY
    return query_path.read_text(encoding="utf-8").strip() or DEFAULT_QUERY


def save_last_query(query_text: str) -> None:
    config_dir = _config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)
    _query_path().write_text(query_text.strip() or DEFAULT_QUERY, encoding="utf-8")
