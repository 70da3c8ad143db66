from rich.cells import set_cell_size
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.text import Text
from textual.widgets import Static

from dbnav.browser import Browser
from dbnav.explorer import ExplorerLevel
from dbnav.filtered_view import FilteredView
from dbnav.modals import (
    FORM_BUTTONS,
    CellValueModal,
    ConnectionFormModal,
    DeleteConfirmationModal,
    Modal,
    PasswordPromptModal,
)
from dbnav.text_input import TextInput


SELECTED_ROW_STYLE = "reverse"
SELECTED_CELL_STYLE = "bold magenta reverse"
HEADER_STYLE = "bold rgb(160,200,255)"


class KeyBindingBar(Static):
    def __init__(self) -> None:
        super().__init__("", markup=True)


def format_binding(key: str, label: str) -> str:
    return f"[bold cyan]{key}[/] {label}"


def footer_bindings(browser: Browser) -> list[tuple[str, str]]:
    modal = browser.modal_gate.active
    if isinstance(modal, ConnectionFormModal):
        return [
            ("tab/↑/↓", "Field"),
            ("←/→", "Button"),
            ("space", "Toggle"),
            ("enter", "Press"),
            ("esc", "Cancel"),
        ]
    if isinstance(modal, PasswordPromptModal):
        return [("enter", "Connect"), ("space", "Save In Keyring"), ("esc", "Cancel")]
    if isinstance(modal, DeleteConfirmationModal):
        return [("←/→", "Choose"), ("enter", "Confirm"), ("esc", "Cancel")]
    if isinstance(modal, CellValueModal):
        return [("enter/esc", "Close")]
    if browser.search_filter.is_active:
        return [
            ("enter", "Apply"),
            ("esc", "Clear"),
            ("^a/^e", "Home/End"),
            ("^u", "Erase"),
        ]

    movement = [("h/j/k/l", "Move"), ("0/$", "First/Last Col"), ("g/G", "Top/Bottom")]
    if not browser.is_connected:
        return (
            movement
            + [
                ("enter", "Connect"),
                ("n", "New"),
                ("e", "Edit"),
                ("d", "Delete"),
                ("/", "Filter"),
                ("r", "Reload"),
                ("q", "Quit"),
            ]
        )
    if browser.in_sql_mode:
        return [
            ("enter", "Run"),
            ("↑/↓", "Results"),
            ("esc", "Back"),
            ("^c", "Quit"),
        ]
    bindings = movement + [("enter", "Select"), ("esc", "Back"), ("/", "Filter")]
    if browser.explorer.level in {ExplorerLevel.TABLE_DATA, ExplorerLevel.COLUMNS}:
        bindings.append(("t", "Toggle Columns/Data"))
    return bindings + [("s", "SQL"), ("r", "Refresh"), ("q", "Quit")]


def footer_text(browser: Browser) -> str:
    bindings = footer_bindings(browser)
    return "  ".join(format_binding(key, label) for key, label in bindings)


def view_summary(view: FilteredView | None) -> str:
    if view is None:
        return ""
    total = len(view.original)
    noun = "row" if total == 1 else "rows"
    if view.is_filtered:
        return f"{len(view.displayed)} of {total} {noun}"
    return f"{total} {noun}"


def render_input(text_input: TextInput, *, masked: bool = False) -> Text:
    value = "*" * len(text_input.text) if masked else text_input.text
    rendered = Text(value)
    if text_input.cursor >= len(value):
        rendered.append(" ", style="reverse")
    else:
        rendered.stylize("reverse", text_input.cursor, text_input.cursor + 1)
    return rendered


def render_table(view: FilteredView | None, width: int, height: int) -> RenderableType:
    if view is None:
        return Text("")
    if not view.displayed:
        message = "No matches." if view.is_filtered else "No rows."
        return Text(message, style="italic")
    widths = view.column_widths()
    columns = view.visible_columns(width)
    lines = Text(no_wrap=True, overflow="crop")
    header = view.header
    for index in columns:
        lines.append(set_cell_size(header[index], widths[index]), style=HEADER_STYLE)
    body_height = max(1, height - 1)
    selected_row = view.selected_row or 0
    first_row = max(0, selected_row - body_height + 1)
    last_row = min(len(view.displayed), first_row + body_height)
    for row_index in range(first_row, last_row):
        lines.append("\n")
        values = view.displayed[row_index].column_values()
        is_selected_row = row_index == view.selected_row
        for index in columns:
            value = values[index] if index < len(values) else ""
            cell = set_cell_size(value.replace("\n", " "), widths[index])
            style = ""
            if is_selected_row:
                style = SELECTED_ROW_STYLE
                if index == view.selected_column:
                    style = SELECTED_CELL_STYLE
            lines.append(cell, style=style)
    return lines


def render_modal(modal: Modal | None) -> RenderableType:
    if modal is None:
        return Text("")
    body: list[RenderableType] = []
    if isinstance(modal, ConnectionFormModal):
        for index, form_field in enumerate(modal.fields):
            line = Text(f"{form_field.label:>9}: ", style="bold")
            if index == modal.focused_field:
                line.append_text(
                    render_input(form_field.input, masked=form_field.masked)
                )
            else:
                value = form_field.value
                line.append("*" * len(value) if form_field.masked else value)
            body.append(line)
        buttons = Text()
        for index, label in enumerate(FORM_BUTTONS):
            style = "reverse" if index == modal.selected_button else ""
            buttons.append(f" {label} ", style=style)
            buttons.append("  ")
        body.append(Text(""))
        body.append(buttons)
    elif isinstance(modal, DeleteConfirmationModal):
        body.append(Text(modal.message))
        buttons = Text()
        for index, label in enumerate(("Yes", "No")):
            style = "reverse" if index == modal.selected_button else ""
            buttons.append(f" {label} ", style=style)
            buttons.append("  ")
        body.append(buttons)
    elif isinstance(modal, CellValueModal):
        body.append(Text(modal.column_name, style="bold"))
        body.append(Text(modal.value))
    elif isinstance(modal, PasswordPromptModal):
        body.append(Text(modal.prompt))
        body.append(render_input(modal.input, masked=True))
        mark = "x" if modal.save_in_keyring else " "
        body.append(Text(f"[{mark}] Save password in keyring (space)"))
    if modal.feedback:
        succeeded = modal.feedback == "Connection successful"
        style = "rgb(150,230,150)" if succeeded else "rgb(255,150,150)"
        body.append(Text(modal.feedback, style=style))
    return Panel(
        Group(*body),
        title=modal.title,
        border_style="rgb(80,120,180)",
        expand=True,
    )
