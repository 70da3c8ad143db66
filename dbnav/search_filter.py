from enum import Enum

from dbnav.text_input import TextInput


class FilterOutcome(Enum):
    IGNORED = "ignored"
    APPLY = "apply"
    CLEAR = "clear"


class SearchFilter:
    """The "/" input that narrows the active view as the user types."""

    def __init__(self) -> None:
        self.input = TextInput()
        self.is_active = False

    @property
    def query(self) -> str:
        return self.input.text

    def activate(self, query: str = "") -> None:
        self.input.set_text(query)
        self.is_active = True

    def deactivate(self) -> None:
        self.is_active = False

    def reset(self) -> None:
        self.input.clear()
        self.is_active = False

    def handle_key(self, key: str, character: str | None) -> FilterOutcome:
        if not self.is_active:
            return FilterOutcome.IGNORED
        if key == "escape":
            self.reset()
            return FilterOutcome.CLEAR
        if key == "enter":
            self.deactivate()
            return FilterOutcome.APPLY
        self.input.handle_key(key, character)
        return FilterOutcome.APPLY
