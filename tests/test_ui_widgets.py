import pytest
from rich.panel import Panel

from dbnav.browser import Browser
from dbnav.filtered_view import Direction, FilteredView
from dbnav.modals import CellValueModal, DeleteConfirmationModal
from dbnav.records import raw_rows
from dbnav.text_input import TextInput
from dbnav.ui_widgets import (
    SELECTED_CELL_STYLE,
    footer_bindings,
    footer_text,
    render_input,
    render_modal,
    render_table,
    view_summary,
)
from conftest import postgres_connection


def _keys(browser: Browser) -> list[str]:
    return [key for key, _ in footer_bindings(browser)]


def test_render_table_shows_header_and_rows() -> None:
    columns = ["id", "name"]
    view = FilteredView(columns, raw_rows([["1", "ada"], ["2", "grace"]], columns))

    rendered = render_table(view, 80, 10)

    assert rendered.plain.splitlines() == ["id name  ", "1  ada   ", "2  grace "]


def test_render_table_scrolls_to_selected_row() -> None:
    view = FilteredView(["n"], raw_rows([[str(index)] for index in range(20)], ["n"]))
    view.move_selection(Direction.LAST_ROW, 80)

    lines = render_table(view, 80, 4).plain.splitlines()

    assert lines == ["n  ", "17 ", "18 ", "19 "]


def test_render_table_highlights_selected_cell() -> None:
    columns = ["id", "name"]
    view = FilteredView(columns, raw_rows([["1", "ada"]], columns))
    view.move_selection(Direction.LAST_COLUMN, 80)

    rendered = render_table(view, 80, 10)

    assert any(span.style == SELECTED_CELL_STYLE for span in rendered.spans)


def test_render_table_only_draws_visible_columns() -> None:
    columns = ["aaaa", "bbbb", "cccc"]
    view = FilteredView(columns, raw_rows([["1", "2", "3"]], columns))
    view.move_selection(Direction.LAST_COLUMN, 10)

    header = render_table(view, 10, 10).plain.splitlines()[0]

    assert header == "bbbb cccc "


@pytest.mark.parametrize(
    ("filtered", "message"),
    [(False, "No rows."), (True, "No matches.")],
)
def test_render_table_empty_messages(filtered: bool, message: str) -> None:
    view = FilteredView(["id"], raw_rows([["1"]], ["id"]) if filtered else [])
    if filtered:
        view.apply_filter("zzz")

    assert render_table(view, 80, 10).plain == message


def test_render_input_masks_and_marks_cursor() -> None:
    text_input = TextInput("secret")

    rendered = render_input(text_input, masked=True)

    assert rendered.plain == "****** "


def test_render_modal_wraps_content_in_panel() -> None:
    modal = CellValueModal("bio", "hello")

    rendered = render_modal(modal)

    assert isinstance(rendered, Panel)
    assert rendered.title == "Cell Value"
    assert render_modal(None).plain == ""


def test_footer_follows_context(browser: Browser) -> None:
    assert "n" in _keys(browser)
    assert "t" not in _keys(browser)

    browser.modal_gate.open(DeleteConfirmationModal(postgres_connection("local")))
    assert _keys(browser) == ["←/→", "enter", "esc"]
    browser.modal_gate.close()

    browser.search_filter.activate()
    assert "^u" in _keys(browser)
    assert "[bold cyan]enter[/] Apply" in footer_text(browser)


@pytest.mark.asyncio
async def test_footer_for_connected_levels(browser: Browser) -> None:
    await browser.handle_key("enter")
    assert "s" in _keys(browser)
    assert "n" not in _keys(browser)

    await browser.handle_key("enter")
    await browser.handle_key("enter")
    assert "t" in _keys(browser)

    await browser.handle_key("s", "s")
    assert _keys(browser) == ["enter", "↑/↓", "esc", "^c"]


def test_view_summary_counts_rows() -> None:
    columns = ["name"]
    view = FilteredView(columns, raw_rows([["ada"], ["grace"], ["alan"]], columns))

    assert view_summary(None) == ""
    assert view_summary(view) == "3 rows"
    view.apply_filter("gr")
    assert view_summary(view) == "1 of 3 rows"
    assert view_summary(FilteredView(columns, view.displayed)) == "1 row"
