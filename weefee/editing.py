from __future__ import annotations

from dataclasses import dataclass, replace


def _word_start(text: str, cursor: int) -> int:
    index = cursor
    while index > 0 and text[index - 1] == " ":
        index -= 1
    while index > 0 and text[index - 1] != " ":
        index -= 1
    return index


def _word_end(text: str, cursor: int) -> int:
    index = cursor
    while index < len(text) and text[index] == " ":
        index += 1
    while index < len(text) and text[index] != " ":
        index += 1
    return index


@dataclass(frozen=True)
class LineBuffer:
    """Single-line text with a cursor; every edit returns a new buffer.

    A word is a maximal run of non-space characters.
    """

    text: str = ""
    cursor: int = 0

    def insert(self, chars: str) -> LineBuffer:
        text = self.text[: self.cursor] + chars + self.text[self.cursor :]
        return LineBuffer(text, self.cursor + len(chars))

    def delete_backward(self) -> LineBuffer:
        if self.cursor == 0:
            return self
        return LineBuffer(self.text[: self.cursor - 1] + self.text[self.cursor :], self.cursor - 1)

    def delete_forward(self) -> LineBuffer:
        if self.cursor >= len(self.text):
            return self
        return replace(self, text=self.text[: self.cursor] + self.text[self.cursor + 1 :])

    def delete_word(self) -> LineBuffer:
        start = _word_start(self.text, self.cursor)
        return LineBuffer(self.text[:start] + self.text[self.cursor :], start)

    def move_left(self) -> LineBuffer:
        return replace(self, cursor=max(0, self.cursor - 1))

    def move_right(self) -> LineBuffer:
        return replace(self, cursor=min(len(self.text), self.cursor + 1))

    def move_home(self) -> LineBuffer:
        return replace(self, cursor=0)

    def move_end(self) -> LineBuffer:
        return replace(self, cursor=len(self.text))

    def word_left(self) -> LineBuffer:
        return replace(self, cursor=_word_start(self.text, self.cursor))

    def word_right(self) -> LineBuffer:
        return replace(self, cursor=_word_end(self.text, self.cursor))
