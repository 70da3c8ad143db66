from enum import Enum
from typing import Generic, Iterable, Sequence, TypeVar

from rich.cells import cell_len

from dbnav.records import Record


RecordT = TypeVar("RecordT", bound=Record)

COLUMN_PADDING = 1


class Direction(Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    FIRST_ROW = "first_row"
    LAST_ROW = "last_row"
    FIRST_COLUMN = "first_column"
    LAST_COLUMN = "last_column"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"


_ROW_DIRECTIONS = {
    Direction.UP,
    Direction.DOWN,
    Direction.FIRST_ROW,
    Direction.LAST_ROW,
    Direction.PAGE_UP,
    Direction.PAGE_DOWN,
}


class FilteredView(Generic[RecordT]):
    """An ordered record collection with a filtered subset and cursors.

    ``original`` is only ever replaced by ``load``; filtering rebuilds
    ``displayed`` from it. Row selection is ``None`` exactly when nothing is
    displayed.
    """

    def __init__(
        self,
        header: Sequence[str],
        items: Iterable[RecordT] = (),
        *,
        first_selectable_row: int = 0,
    ) -> None:
        self._header = list(header)
        self.first_selectable_row = max(0, first_selectable_row)
        self.original: list[RecordT] = []
        self.displayed: list[RecordT] = []
        self.selected_row: int | None = None
        self.selected_column: int | None = None
        self.column_scroll_offset = 0
        self.filter_query = ""
        # Last width the columns were laid out for; None until first layout.
        self.viewport_width: int | None = None
        self.load(items)

    @property
    def header(self) -> list[str]:
        return list(self._header)

    @property
    def num_columns(self) -> int:
        return len(self._header)

    @property
    def is_filtered(self) -> bool:
        return bool(self.filter_query)

    def load(self, items: Iterable[RecordT]) -> None:
        self.original = list(items)
        self.displayed = list(self.original)
        self.filter_query = ""
        self.selected_row = 0 if self.displayed else None
        self.selected_column = None
        self.column_scroll_offset = 0

    def apply_filter(self, query: str) -> None:
        if not query:
            self.filter_query = ""
            self.displayed = list(self.original)
        else:
            self.filter_query = query
            needle = query.lower()
            self.displayed = [
                item
                for item in self.original
                if any(needle in value.lower() for value in item.column_values())
            ]
        self._clamp_row()
        self.refit_columns()

    def clear_filter(self) -> None:
        self.filter_query = ""
        self.displayed = list(self.original)
        self._clamp_row()
        self.refit_columns()

    def refit_columns(self) -> None:
        """Re-run ``ensure_column_visible`` for the last known viewport width."""
        if self.viewport_width is not None:
            self.ensure_column_visible(self.viewport_width)

    def selected_item(self) -> RecordT | None:
        if self.selected_row is None:
            return None
        return self.displayed[self.selected_row]

    def selected_cell(self) -> tuple[str, str] | None:
        item = self.selected_item()
        if item is None:
            return None
        column_index = self.selected_column or 0
        values = item.column_values()
        if column_index >= len(values) or column_index >= self.num_columns:
            return None
        return self._header[column_index], values[column_index]

    def move_selection(
        self,
        direction: Direction,
        viewport_width: int,
        page_size: int = 1,
    ) -> None:
        if not self.displayed:
            return
        if direction in _ROW_DIRECTIONS:
            self._move_row(direction, max(1, page_size))
            return
        if self.num_columns == 0:
            return
        last_column = self.num_columns - 1
        current = self.selected_column
        if direction is Direction.RIGHT:
            target = 0 if current is None else min(current + 1, last_column)
        elif direction is Direction.LEFT:
            target = last_column if current is None else max(current - 1, 0)
        elif direction is Direction.FIRST_COLUMN:
            target = 0
        else:
            target = last_column
        self.selected_column = target
        self.ensure_column_visible(viewport_width)

    def _move_row(self, direction: Direction, page_size: int) -> None:
        last_row = len(self.displayed) - 1
        current = self.selected_row if self.selected_row is not None else 0
        if direction is Direction.UP:
            target = current - 1
        elif direction is Direction.DOWN:
            target = current + 1
        elif direction is Direction.PAGE_UP:
            target = current - page_size
        elif direction is Direction.PAGE_DOWN:
            target = current + page_size
        elif direction is Direction.FIRST_ROW:
            target = self.first_selectable_row
        else:
            target = last_row
        self.selected_row = min(max(target, 0), last_row)

    def column_widths(self) -> list[int]:
        widths = [cell_len(name) for name in self._header]
        for item in self.displayed:
            for index, value in enumerate(item.column_values()[: len(widths)]):
                widths[index] = max(widths[index], cell_len(value))
        return [width + COLUMN_PADDING for width in widths]

    def ensure_column_visible(self, viewport_width: int) -> None:
        self.viewport_width = viewport_width
        if self.num_columns == 0:
            self.column_scroll_offset = 0
            return
        self.column_scroll_offset = min(
            self.column_scroll_offset, self.num_columns - 1
        )
        selected = self.selected_column
        if selected is None:
            return
        if selected < self.column_scroll_offset:
            self.column_scroll_offset = selected
            return
        widths = self.column_widths()
        offset = self.column_scroll_offset
        if sum(widths[offset : selected + 1]) <= viewport_width:
            return
        # Columns left of the selection must leave room for at least its
        # first cell.
        while offset < selected and sum(widths[offset:selected]) >= viewport_width:
            offset += 1
        self.column_scroll_offset = offset

    def visible_columns(self, viewport_width: int) -> list[int]:
        if self.num_columns == 0:
            return []
        widths = self.column_widths()
        visible: list[int] = []
        used = 0
        for index in range(self.column_scroll_offset, self.num_columns):
            if visible and used >= viewport_width:
                break
            visible.append(index)
            used += widths[index]
        return visible

    def _clamp_row(self) -> None:
        if not self.displayed:
            self.selected_row = None
        elif self.selected_row is None:
            self.selected_row = 0
        else:
            self.selected_row = min(self.selected_row, len(self.displayed) - 1)
