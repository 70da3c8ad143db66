from dataclasses import dataclass
from enum import Enum

from dbnav.config import (
    DB_TYPES,
    DEFAULT_POSTGRES_PORT,
    KEYRING_STORAGE,
    PASSWORD_STORAGES,
    POSTGRES,
    ConnectionConfig,
    validate_connection,
)
from dbnav.errors import ValidationFailed
from dbnav.text_input import TextInput


class ModalAction(Enum):
    NONE = "none"
    SAVE = "save"
    TEST = "test"
    CANCEL = "cancel"


class Modal:
    title = ""

    def __init__(self) -> None:
        self.is_open = True
        self.feedback = ""

    def close(self) -> None:
        self.is_open = False

    def handle_key(self, key: str, character: str | None) -> ModalAction:
        raise NotImplementedError


@dataclass
class FormField:
    label: str
    input: TextInput
    choices: tuple[str, ...] = ()
    masked: bool = False

    @property
    def value(self) -> str:
        return self.input.text

    def cycle(self) -> None:
        index = self.choices.index(self.value) if self.value in self.choices else -1
        self.input.set_text(self.choices[(index + 1) % len(self.choices)])


FORM_BUTTONS = ("OK", "Test", "Cancel")


class ConnectionFormModal(Modal):
    """Create or edit a stored connection.

    Tab / up / down move between fields, left / right between buttons and
    space cycles the Type and Storage choices.
    """

    def __init__(self, connection: ConnectionConfig | None = None) -> None:
        super().__init__()
        self.original_name = connection.name if connection else None
        self.title = "Edit Connection" if connection else "New Connection"
        source = connection or ConnectionConfig(name="")
        self.fields = [
            FormField("Name", TextInput(source.name)),
            FormField("Type", TextInput(source.db_type), choices=DB_TYPES),
            FormField("Host", TextInput(source.host)),
            FormField("Port", TextInput(str(source.port))),
            FormField("User", TextInput(source.user)),
            FormField("Database", TextInput(source.database)),
            FormField("Password", TextInput(), masked=True),
            FormField(
                "Storage",
                TextInput(source.password_storage),
                choices=PASSWORD_STORAGES,
            ),
        ]
        self.focused_field = 0
        self.selected_button = 0

    @property
    def password(self) -> str:
        return self._field("Password").value

    def _field(self, label: str) -> FormField:
        for form_field in self.fields:
            if form_field.label == label:
                return form_field
        raise KeyError(label)

    def to_connection(self) -> ConnectionConfig:
        port_text = self._field("Port").value.strip() or str(DEFAULT_POSTGRES_PORT)
        if not port_text.isdigit():
            raise ValidationFailed(f"Invalid port: {port_text}")
        connection = ConnectionConfig(
            name=self._field("Name").value.strip(),
            db_type=self._field("Type").value or POSTGRES,
            host=self._field("Host").value.strip(),
            port=int(port_text),
            user=self._field("User").value.strip(),
            database=self._field("Database").value.strip(),
            password_storage=self._field("Storage").value or KEYRING_STORAGE,
        )
        validate_connection(connection)
        return connection

    def handle_key(self, key: str, character: str | None) -> ModalAction:
        if key == "escape":
            self.close()
            return ModalAction.CANCEL
        if key in {"tab", "down"}:
            self.focused_field = (self.focused_field + 1) % len(self.fields)
            return ModalAction.NONE
        if key in {"shift+tab", "up"}:
            self.focused_field = (self.focused_field - 1) % len(self.fields)
            return ModalAction.NONE
        if key == "left":
            self.selected_button = (self.selected_button - 1) % len(FORM_BUTTONS)
            return ModalAction.NONE
        if key == "right":
            self.selected_button = (self.selected_button + 1) % len(FORM_BUTTONS)
            return ModalAction.NONE
        if key == "enter":
            return self._press_button()
        form_field = self.fields[self.focused_field]
        if form_field.choices:
            if key == "space":
                form_field.cycle()
            return ModalAction.NONE
        if key == "backspace":
            form_field.input.backspace()
        elif character and character.isprintable() and len(character) == 1:
            form_field.input.insert(character)
        return ModalAction.NONE

    def _press_button(self) -> ModalAction:
        button = FORM_BUTTONS[self.selected_button]
        if button == "Cancel":
            self.close()
            return ModalAction.CANCEL
        try:
            self.to_connection()
        except ValidationFailed as error:
            self.feedback = str(error)
            return ModalAction.NONE
        self.feedback = ""
        if button == "Test":
            return ModalAction.TEST
        return ModalAction.SAVE


class DeleteConfirmationModal(Modal):
    title = "Confirm Delete"

    def __init__(self, connection: ConnectionConfig) -> None:
        super().__init__()
        self.connection = connection
        self.message = f"Delete connection '{connection.name}'?"
        self.selected_button = 0

    @property
    def confirmed(self) -> bool:
        return self.selected_button == 0

    def handle_key(self, key: str, character: str | None) -> ModalAction:
        if key == "escape":
            self.close()
            return ModalAction.CANCEL
        if key in {"left", "right", "tab"}:
            self.selected_button = 1 - self.selected_button
            return ModalAction.NONE
        if key == "enter":
            self.close()
            return ModalAction.SAVE if self.confirmed else ModalAction.CANCEL
        return ModalAction.NONE


class CellValueModal(Modal):
    title = "Cell Value"

    def __init__(self, column_name: str, value: str) -> None:
        super().__init__()
        self.column_name = column_name
        self.value = value

    def handle_key(self, key: str, character: str | None) -> ModalAction:
        if key in {"escape", "enter"}:
            self.close()
            return ModalAction.CANCEL
        return ModalAction.NONE


class PasswordPromptModal(Modal):
    """Asks for a password; the host closes it once connecting succeeds."""

    title = "Password Required"

    def __init__(self, connection: ConnectionConfig) -> None:
        super().__init__()
        self.connection = connection
        self.prompt = f"Password for {connection.identity_key()}"
        self.input = TextInput()
        self.save_in_keyring = not connection.should_ask_every_time()

    @property
    def password(self) -> str:
        return self.input.text

    def toggle_save_in_keyring(self) -> None:
        self.save_in_keyring = not self.save_in_keyring

    def reject(self, message: str) -> None:
        self.input.clear()
        self.feedback = message

    def handle_key(self, key: str, character: str | None) -> ModalAction:
        if key == "escape":
            self.close()
            return ModalAction.CANCEL
        if key == "enter":
            if not self.password:
                self.feedback = "Password is required"
                return ModalAction.NONE
            return ModalAction.SAVE
        if key == "space":
            self.toggle_save_in_keyring()
            return ModalAction.NONE
        if key == "backspace":
            self.input.backspace()
        elif character and character.isprintable() and len(character) == 1:
            self.input.insert(character)
        return ModalAction.NONE


class ModalGate:
    """Holds the single open modal and routes keys to it."""

    def __init__(self) -> None:
        self.active: Modal | None = None

    @property
    def is_open(self) -> bool:
        return self.active is not None and self.active.is_open

    def open(self, modal: Modal) -> Modal:
        if self.is_open:
            raise RuntimeError(f"A modal is already open: {self.active.title}")
        self.active = modal
        return modal

    def close(self) -> None:
        if self.active is not None:
            self.active.close()
        self.active = None

    def handle_key(
        self,
        key: str,
        character: str | None,
    ) -> tuple[Modal | None, ModalAction]:
        modal = self.active
        if modal is None or not modal.is_open:
            self.active = None
            return None, ModalAction.NONE
        action = modal.handle_key(key, character)
        if not modal.is_open:
            self.active = None
        return modal, action
