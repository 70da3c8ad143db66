import argparse
import logging
from pathlib import Path

from dbnav.config import ConnectionStore, log_path, parse_connection_url
from dbnav.credentials import KeyringCredentialStore
from dbnav.errors import CredentialUnavailable
from dbnav.tui import DatabaseBrowserApp


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(log_file: Path, level: str) -> None:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format=LOG_FORMAT,
        handlers=[logging.FileHandler(log_file, encoding="utf-8")],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dbnav")
    subparsers = parser.add_subparsers(dest="command")

    add_parser = subparsers.add_parser("add-connection")
    add_parser.add_argument("--name", required=True)
    add_parser.add_argument("--url", required=True)
    add_parser.add_argument("--ask-password", action="store_true")

    subparsers.add_parser("list-connections")

    parser.add_argument("--conn")
    parser.add_argument("--schema")
    parser.add_argument("--log-file", type=Path)
    parser.add_argument("--log-level", default="WARNING")
    return parser


def add_connection_command(name: str, url: str, ask_password: bool) -> int:
    try:
        connection, password = parse_connection_url(
            name,
            url,
            ask_password=ask_password,
        )
        ConnectionStore().create(connection)
    except ValueError as error:
        print(f"Could not save connection: {error}")
        return 1
    if password and connection.uses_keyring():
        try:
            KeyringCredentialStore().set(connection.name, password)
        except CredentialUnavailable as error:
            print(f"Saved connection without password: {error}")
            return 0
    print(f"Saved connection: {connection.name}")
    return 0


def list_connections_command() -> int:
    connections = ConnectionStore().list()
    if not connections:
        print("No connections saved.")
        return 0
    for connection in connections:
        if connection.needs_password():
            print(f"{connection.name}\t{connection.db_type}\t{connection.identity_key()}")
        else:
            print(f"{connection.name}\t{connection.db_type}\t{connection.database}")
    return 0


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(args.log_file or log_path(), args.log_level)

    if args.command == "add-connection":
        raise SystemExit(
            add_connection_command(args.name, args.url, args.ask_password)
        )
    if args.command == "list-connections":
        raise SystemExit(list_connections_command())

    logger.info("Starting dbnav")
    app = DatabaseBrowserApp(
        initial_connection_name=args.conn,
        initial_schema_name=args.schema,
    )
    app.run()


if __name__ == "__main__":
    main()
