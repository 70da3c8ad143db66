class TextInput:
    """Single-line editable text with a cursor measured in characters."""

    def __init__(self, text: str = "") -> None:
        self.text = text
        self.cursor = len(text)

    def set_text(self, text: str) -> None:
        self.text = text
        self.cursor = len(text)

    def insert(self, character: str) -> None:
        self.text = self.text[: self.cursor] + character + self.text[self.cursor :]
        self.cursor += len(character)

    def backspace(self) -> bool:
        if self.cursor == 0:
            return False
        self.text = self.text[: self.cursor - 1] + self.text[self.cursor :]
        self.cursor -= 1
        return True

    def delete_forward(self) -> bool:
        if self.cursor >= len(self.text):
            return False
        self.text = self.text[: self.cursor] + self.text[self.cursor + 1 :]
        return True

    def move_left(self) -> None:
        self.cursor = max(0, self.cursor - 1)

    def move_right(self) -> None:
        self.cursor = min(len(self.text), self.cursor + 1)

    def move_to_start(self) -> None:
        self.cursor = 0

    def move_to_end(self) -> None:
        self.cursor = len(self.text)

    def clear(self) -> None:
        self.text = ""
        self.cursor = 0

    def handle_key(self, key: str, character: str | None) -> bool:
        """Apply an editing key, returning whether the text changed."""
        if key == "backspace":
            return self.backspace()
        if key == "delete":
            return self.delete_forward()
        if key == "left":
            self.move_left()
            return False
        if key == "right":
            self.move_right()
            return False
        if key in {"home", "ctrl+a"}:
            self.move_to_start()
            return False
        if key in {"end", "ctrl+e"}:
            self.move_to_end()
            return False
        if key == "ctrl+u":
            changed = bool(self.text)
            self.clear()
            return changed
        if character and character.isprintable() and len(character) == 1:
            self.insert(character)
            return True
        return False

    def is_editing_key(self, key: str, character: str | None) -> bool:
        if key in {
            "backspace",
            "delete",
            "left",
            "right",
            "home",
            "end",
            "ctrl+a",
            "ctrl+e",
            "ctrl+u",
        }:
            return True
        return bool(character and character.isprintable() and len(character) == 1)
