from contextlib import asynccontextmanager
import logging
from typing import AsyncIterator

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import Key, Resize
from textual.widgets import Header, Static

from dbnav.browser import Browser
from dbnav.ui_screens import ModalOverlayScreen
from dbnav.ui_widgets import (
    KeyBindingBar,
    footer_text,
    render_input,
    render_table,
    view_summary,
)


logger = logging.getLogger(__name__)

# Rows taken by everything above and below the table.
CHROME_HEIGHT = 8


class DatabaseBrowserApp(App):
    DEFAULT_CSS = """
    #top-bar {
        height: 1;
    }

    #selected-status {
        width: 1fr;
    }

    #loading-indicator {
        width: 1fr;
        content-align: right middle;
        color: rgb(255, 170, 60);
    }

    #keybinds-bar {
        height: auto;
        min-height: 1;
        text-wrap: wrap;
    }

    #view-bar {
        height: 1;
        background: rgb(18, 60, 90);
        color: rgb(235, 245, 255);
        padding: 0 1;
        content-align: center middle;
    }

    #view-bar-left {
        width: 1fr;
        content-align: left middle;
    }

    #view-bar-text {
        width: auto;
        content-align: center middle;
    }

    #message-line {
        height: auto;
        background: rgb(28, 32, 36);
        color: rgb(200, 210, 220);
        padding: 0 1;
    }

    #input-bar {
        height: 1;
    }

    #input-prefix {
        width: auto;
        padding: 0 1;
        content-align: left middle;
        color: rgb(160, 200, 255);
    }

    #input-text {
        width: 1fr;
    }

    #sql-error {
        height: auto;
        padding: 0 1;
        background: rgb(90, 10, 10);
        color: rgb(255, 230, 230);
    }

    #table-view {
        height: 1fr;
        padding: 0 1;
    }
    """

    def __init__(
        self,
        browser: Browser | None = None,
        initial_connection_name: str | None = None,
        initial_schema_name: str | None = None,
    ) -> None:
        super().__init__()
        self.browser = browser or Browser()
        self._initial_connection_name = initial_connection_name or ""
        self._initial_schema_name = initial_schema_name or ""

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical():
            with Horizontal(id="top-bar"):
                yield Static("", id="selected-status")
                yield Static("", id="loading-indicator")
            keybinds = KeyBindingBar()
            keybinds.id = "keybinds-bar"
            yield keybinds
            with Horizontal(id="input-bar"):
                yield Static("", id="input-prefix")
                yield Static("", id="input-text")
            yield Static("", id="message-line")
            with Horizontal(id="view-bar"):
                yield Static("", id="view-bar-left")
                yield Static("", id="view-bar-text")
            yield Static("", id="sql-error")
            yield Static("", id="table-view")

    async def on_mount(self) -> None:
        self._update_viewport(self.size.width, self.size.height)
        async with self._loading("Loading connections..."):
            await self.browser.open_initial(
                self._initial_connection_name,
                self._initial_schema_name or None,
            )
        self._refresh_screen()

    async def on_key(self, event: Key) -> None:
        event.prevent_default()
        event.stop()
        await self.dispatch_browser_key(event.key, event.character)

    async def dispatch_browser_key(self, key: str, character: str | None) -> None:
        async with self._loading("Working..."):
            try:
                await self.browser.handle_key(key, character)
            except Exception as error:
                logger.exception("Unhandled error for key %s", key)
                self.browser.status = f"Error: {error}"
        if not self.browser.running:
            self.exit()
            return
        self._refresh_screen()

    def on_resize(self, event: Resize) -> None:
        self._update_viewport(event.size.width, event.size.height)
        self._refresh_screen()

    def _update_viewport(self, width: int, height: int) -> None:
        self.browser.set_viewport(
            max(1, width - 2),
            page_size=max(1, height - CHROME_HEIGHT - 1),
        )

    def _table_height(self) -> int:
        return max(2, self.size.height - CHROME_HEIGHT)

    def _refresh_screen(self) -> None:
        browser = self.browser
        self.query_one("#selected-status", Static).update(
            Text(browser.breadcrumb())
        )
        self.query_one("#keybinds-bar", KeyBindingBar).update(footer_text(browser))
        self.query_one("#view-bar-left", Static).update(
            Text(view_summary(browser.active_view()))
        )
        self.query_one("#view-bar-text", Static).update(Text(browser.view_title()))
        self._update_input_bar()
        message_line = self.query_one("#message-line", Static)
        message_line.update(Text(browser.status))
        message_line.display = bool(browser.status)
        sql_error = self.query_one("#sql-error", Static)
        error = browser.explorer.sql_executor.error if browser.in_sql_mode else None
        sql_error.update(Text(f"Error: {error}") if error else "")
        sql_error.display = bool(error)
        self.query_one("#table-view", Static).update(
            render_table(
                browser.active_view(),
                browser.viewport_width,
                self._table_height(),
            )
        )
        self._sync_modal_screen()

    def _sync_modal_screen(self) -> None:
        modal = self.browser.modal_gate.active
        screen = self.screen
        if isinstance(screen, ModalOverlayScreen):
            if modal is None:
                self.pop_screen()
            else:
                screen.show(modal)
        elif modal is not None:
            self.push_screen(ModalOverlayScreen(modal))

    def _update_input_bar(self) -> None:
        browser = self.browser
        input_bar = self.query_one("#input-bar", Horizontal)
        prefix = self.query_one("#input-prefix", Static)
        input_text = self.query_one("#input-text", Static)
        view = browser.active_view()
        if browser.search_filter.is_active:
            prefix.update("/")
            input_text.update(render_input(browser.search_filter.input))
            input_bar.display = True
        elif browser.in_sql_mode:
            prefix.update("SQL>")
            input_text.update(render_input(browser.explorer.sql_executor.input))
            input_bar.display = True
        elif view is not None and view.is_filtered:
            prefix.update("Filter:")
            input_text.update(Text(view.filter_query))
            input_bar.display = True
        else:
            input_bar.display = False

    def _set_loading(self, is_loading: bool, message: str = "Loading...") -> None:
        loading_indicator = self.query_one("#loading-indicator", Static)
        loading_indicator.update(message if is_loading else "")

    @asynccontextmanager
    async def _loading(self, message: str) -> AsyncIterator[None]:
        self._set_loading(True, message)
        try:
            yield
        finally:
            self._set_loading(False)
