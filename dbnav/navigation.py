from dbnav.filtered_view import Direction, FilteredView


_KEY_DIRECTIONS: dict[str, Direction] = {
    "j": Direction.DOWN,
    "down": Direction.DOWN,
    "k": Direction.UP,
    "up": Direction.UP,
    "h": Direction.LEFT,
    "b": Direction.LEFT,
    "left": Direction.LEFT,
    "l": Direction.RIGHT,
    "w": Direction.RIGHT,
    "right": Direction.RIGHT,
    "0": Direction.FIRST_COLUMN,
    "$": Direction.LAST_COLUMN,
    "dollar_sign": Direction.LAST_COLUMN,
    "g": Direction.FIRST_ROW,
    "home": Direction.FIRST_ROW,
    "G": Direction.LAST_ROW,
    "shift+g": Direction.LAST_ROW,
    "end": Direction.LAST_ROW,
    "pageup": Direction.PAGE_UP,
    "ctrl+u": Direction.PAGE_UP,
    "pagedown": Direction.PAGE_DOWN,
    "ctrl+d": Direction.PAGE_DOWN,
}


class NavigationCursor:
    def direction_for(self, key: str) -> Direction | None:
        return _KEY_DIRECTIONS.get(key)

    def navigate(
        self,
        view: FilteredView,
        key: str,
        viewport_width: int,
        page_size: int = 1,
    ) -> bool:
        direction = self.direction_for(key)
        if direction is None:
            return False
        view.move_selection(direction, viewport_width, page_size)
        return True
