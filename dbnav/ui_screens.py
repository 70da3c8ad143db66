from typing import Protocol, runtime_checkable

from textual.app import ComposeResult
from textual.containers import Vertical
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

from dbnav.modals import Modal
from dbnav.ui_widgets import render_modal


@runtime_checkable
class _AppWithBrowserKeys(Protocol):
    async def dispatch_browser_key(self, key: str, character: str | None) -> None: ...


class ModalOverlayScreen(ModalScreen[None]):
    """Draws the open modal above the browser.

    Keys still belong to ``Browser``; the screen only hands them back to the
    app, which closes the overlay once the modal gate is empty.
    """

    DEFAULT_CSS = """
    ModalOverlayScreen {
        align: center middle;
    }

    #modal-dialog {
        width: 80%;
        height: auto;
        max-height: 80%;
    }

    #modal-panel {
        height: auto;
        background: rgb(20, 24, 30);
        color: rgb(230, 240, 255);
    }
    """

    def __init__(self, modal: Modal) -> None:
        super().__init__()
        self.modal = modal

    def compose(self) -> ComposeResult:
        with Vertical(id="modal-dialog"):
            yield Static(render_modal(self.modal), id="modal-panel")

    def on_mount(self) -> None:
        self.focus()

    def show(self, modal: Modal) -> None:
        self.modal = modal
        if self.is_mounted:
            self.query_one("#modal-panel", Static).update(render_modal(modal))

    async def on_key(self, event: Key) -> None:
        event.prevent_default()
        event.stop()
        app = self.app
        if isinstance(app, _AppWithBrowserKeys):
            await app.dispatch_browser_key(event.key, event.character)
