from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from prompt_toolkit.key_binding import KeyPress
from prompt_toolkit.keys import Keys

from weefee.messages import (
    Cancel,
    CursorEnd,
    CursorHome,
    CursorLeft,
    CursorRight,
    DeleteBackward,
    DeleteForward,
    DeleteWord,
    InsertText,
    Message,
    MoveDown,
    MoveUp,
    Quit,
    RequestForget,
    RequestScan,
    Select,
    Submit,
    ToggleAutoconnect,
    ToggleDetails,
    WordLeft,
    WordRight,
)
from weefee.state import ModalKind

ENTER_KEYS = {Keys.ControlM.value, Keys.ControlJ.value}
ESCAPE = Keys.Escape.value
BACKSPACE = Keys.ControlH.value
PASTE = Keys.BracketedPaste.value

# Terminal reports that are not keystrokes.
_IGNORED = {Keys.CPRResponse.value, Keys.Vt100MouseEvent.value, Keys.WindowsMouseEvent.value, Keys.Ignore.value}

BROWSING_KEYS = {
    Keys.Up.value: MoveUp,
    "k": MoveUp,
    Keys.Down.value: MoveDown,
    "j": MoveDown,
    Keys.ControlM.value: Select,
    Keys.ControlJ.value: Select,
    "f": RequestForget,
    "F": RequestForget,
    "a": ToggleAutoconnect,
    "A": ToggleAutoconnect,
    "d": ToggleDetails,
    "D": ToggleDetails,
    "r": RequestScan,
    "s": RequestScan,
    "q": Quit,
}

PASSWORD_KEYS = {
    Keys.Left.value: CursorLeft,
    Keys.Right.value: CursorRight,
    Keys.ControlLeft.value: WordLeft,
    Keys.ControlRight.value: WordRight,
    Keys.Home.value: CursorHome,
    Keys.ControlA.value: CursorHome,
    Keys.End.value: CursorEnd,
    Keys.ControlE.value: CursorEnd,
    Keys.Delete.value: DeleteForward,
    Keys.ControlW.value: DeleteWord,
    BACKSPACE: DeleteBackward,
}

# Alt arrives as an Escape prefix.
PASSWORD_ALT_KEYS = {
    Keys.Left.value: WordLeft,
    Keys.Right.value: WordRight,
    "b": WordLeft,
    "f": WordRight,
    BACKSPACE: DeleteWord,
}

CONFIRM_KEYS = {"y", "Y", *ENTER_KEYS}
DECLINE_KEYS = {"n", "N", ESCAPE}


@dataclass(frozen=True)
class KeyEvent:
    key: str
    alt: bool = False
    data: str = ""


def _key_name(press: KeyPress) -> str:
    key = press.key
    return key.value if isinstance(key, Keys) else str(key)


def coalesce(presses: Iterable[KeyPress]) -> list[KeyEvent]:
    """Fold Escape prefixes into Alt-modified events."""
    events: list[KeyEvent] = []
    pending_escape = False
    for press in presses:
        key = _key_name(press)
        if key in _IGNORED:
            continue
        if key == ESCAPE:
            if pending_escape:
                events.append(KeyEvent(ESCAPE))
            pending_escape = True
            continue
        events.append(KeyEvent(key, alt=pending_escape, data=press.data if key == PASTE else ""))
        pending_escape = False
    if pending_escape:
        events.append(KeyEvent(ESCAPE))
    return events


def _printable(text: str) -> str:
    return "".join(char for char in text if char.isprintable())


def translate(kind: ModalKind, event: KeyEvent) -> list[Message]:
    if event.key == Keys.ControlC.value:
        return [Quit()]
    if kind is ModalKind.BROWSING:
        message = BROWSING_KEYS.get(event.key)
        return [message()] if message else []
    if kind is ModalKind.ENTERING_PASSWORD:
        return _password(event)
    if kind in (ModalKind.CONFIRMING_DISCONNECT, ModalKind.CONFIRMING_FORGET, ModalKind.CONFIRMING_WEAK_SECURITY):
        if event.key in CONFIRM_KEYS:
            return [Submit()]
        if event.key in DECLINE_KEYS:
            return [Cancel()]
        return []
    if kind is ModalKind.SHOWING_ERROR:
        if event.key in ENTER_KEYS or event.key == ESCAPE:
            return [Cancel()]
        return []
    # Connecting and Quitting take no input.
    return []


def _password(event: KeyEvent) -> list[Message]:
    if event.key in ENTER_KEYS:
        return [Submit()]
    if event.key == ESCAPE:
        return [Cancel()]
    if event.key == PASTE:
        text = _printable(event.data)
        return [InsertText(text)] if text else []
    if event.alt:
        message = PASSWORD_ALT_KEYS.get(event.key)
        return [message()] if message else []
    message = PASSWORD_KEYS.get(event.key)
    if message:
        return [message()]
    if len(event.key) == 1 and event.key.isprintable():
        return [InsertText(event.key)]
    return []
