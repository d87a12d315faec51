"""Application state and its transitions.

``apply`` is the only way state changes. It is pure: the network work a
message implies is worked out separately by ``plan``, which the main
loop calls with the state *before* applying the same message.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import ClassVar, Sequence, Union

from weefee.editing import LineBuffer
from weefee.errors import IncorrectPassword
from weefee.messages import (
    Cancel,
    Command,
    ConnectCommand,
    ConnectionFailed,
    ConnectionSucceeded,
    CursorEnd,
    CursorHome,
    CursorLeft,
    CursorRight,
    DeleteBackward,
    DeleteForward,
    DeleteWord,
    DeviceStatusUpdated,
    DisconnectCommand,
    ForgetCommand,
    InsertText,
    Message,
    MoveDown,
    MoveUp,
    NetworksFound,
    Quit,
    RequestForget,
    RequestScan,
    ScanCommand,
    Select,
    ServiceError,
    Submit,
    Tick,
    ToggleAutoconnect,
    ToggleAutoconnectCommand,
    ToggleDetails,
    WordLeft,
    WordRight,
)
from weefee.models import DeviceStatus, WifiNetwork

INCORRECT_PASSWORD_TEXT = "Incorrect password. Try again."


class ModalKind(Enum):
    BROWSING = "browsing"
    ENTERING_PASSWORD = "entering_password"
    CONNECTING = "connecting"
    SHOWING_ERROR = "showing_error"
    CONFIRMING_DISCONNECT = "confirming_disconnect"
    CONFIRMING_FORGET = "confirming_forget"
    CONFIRMING_WEAK_SECURITY = "confirming_weak_security"
    QUITTING = "quitting"


@dataclass(frozen=True)
class Browsing:
    kind: ClassVar[ModalKind] = ModalKind.BROWSING


@dataclass(frozen=True)
class EnteringPassword:
    kind: ClassVar[ModalKind] = ModalKind.ENTERING_PASSWORD

    target_ssid: str
    buffer: LineBuffer = field(default_factory=LineBuffer)
    last_error: str | None = None

    @property
    def password_text(self) -> str:
        return self.buffer.text

    @property
    def cursor_position(self) -> int:
        return self.buffer.cursor


@dataclass(frozen=True)
class Connecting:
    kind: ClassVar[ModalKind] = ModalKind.CONNECTING

    target_ssid: str
    spinner_frame: int = 0


@dataclass(frozen=True)
class ShowingError:
    kind: ClassVar[ModalKind] = ModalKind.SHOWING_ERROR

    message: str


@dataclass(frozen=True)
class ConfirmingDisconnect:
    kind: ClassVar[ModalKind] = ModalKind.CONFIRMING_DISCONNECT


@dataclass(frozen=True)
class ConfirmingForget:
    kind: ClassVar[ModalKind] = ModalKind.CONFIRMING_FORGET


@dataclass(frozen=True)
class ConfirmingWeakSecurity:
    kind: ClassVar[ModalKind] = ModalKind.CONFIRMING_WEAK_SECURITY

    target_ssid: str
    security_label: str


Modal = Union[
    Browsing,
    EnteringPassword,
    Connecting,
    ShowingError,
    ConfirmingDisconnect,
    ConfirmingForget,
    ConfirmingWeakSecurity,
]


@dataclass(frozen=True)
class Quitting:
    pass


@dataclass(frozen=True)
class Active:
    networks: tuple[WifiNetwork, ...] = ()
    selected_index: int | None = None
    device_status: DeviceStatus | None = None
    modal: Modal = field(default_factory=Browsing)
    show_details: bool = False

    @property
    def selected_network(self) -> WifiNetwork | None:
        if self.selected_index is None or not 0 <= self.selected_index < len(self.networks):
            return None
        return self.networks[self.selected_index]

    def find(self, ssid: str) -> WifiNetwork | None:
        index = _index_of(self.networks, ssid)
        return None if index is None else self.networks[index]


ApplicationState = Union[Quitting, Active]


def initial_state() -> Active:
    return Active()


def modal_kind(state: ApplicationState) -> ModalKind:
    if isinstance(state, Quitting):
        return ModalKind.QUITTING
    return state.modal.kind


def _index_of(networks: Sequence[WifiNetwork], ssid: str) -> int | None:
    for index, network in enumerate(networks):
        if network.ssid == ssid:
            return index
    return None


def _clamp(index: int | None, length: int) -> int | None:
    if length == 0:
        return None
    if index is None:
        return 0
    return max(0, min(index, length - 1))


def _no_longer_available(ssid: str) -> ShowingError:
    return ShowingError(f'Network "{ssid}" is no longer available.')


def _with_modal(state: Active, modal: Modal) -> Active:
    return replace(state, modal=modal)


def apply(state: ApplicationState, message: Message) -> ApplicationState:
    if isinstance(state, Quitting):
        return state
    if isinstance(message, Quit):
        return Quitting()
    if isinstance(message, NetworksFound):
        return _refresh(state, message.networks)
    if isinstance(message, DeviceStatusUpdated):
        return replace(state, device_status=message.status)
    if isinstance(message, ServiceError):
        return _service_error(state, message.message)
    if isinstance(message, (ConnectionSucceeded, ConnectionFailed)):
        return _connection_outcome(state, message)

    modal = state.modal
    if isinstance(modal, Browsing):
        return _browsing(state, message)
    if isinstance(modal, EnteringPassword):
        return _entering_password(state, modal, message)
    if isinstance(modal, Connecting):
        if isinstance(message, Tick):
            return _with_modal(state, replace(modal, spinner_frame=modal.spinner_frame + 1))
        return state
    if isinstance(modal, ConfirmingWeakSecurity):
        return _confirming_weak_security(state, modal, message)
    if isinstance(modal, (ConfirmingDisconnect, ConfirmingForget)):
        if isinstance(message, (Submit, Cancel)):
            return _with_modal(state, Browsing())
        return state
    if isinstance(modal, ShowingError):
        if isinstance(message, Cancel):
            return _with_modal(state, Browsing())
        return state
    return state


def _refresh(state: Active, networks: Sequence[WifiNetwork]) -> Active:
    networks = tuple(networks)
    modal = state.modal
    previous = state.selected_network

    found = None if previous is None else _index_of(networks, previous.ssid)
    if found is not None:
        selected: int | None = found
    elif isinstance(modal, Browsing):
        selected = _clamp(state.selected_index, len(networks))
    else:
        # A dialog was opened for a network that is gone; never let it
        # silently point at a different one.
        selected = None

    if isinstance(modal, EnteringPassword) and _index_of(networks, modal.target_ssid) is None:
        modal = _no_longer_available(modal.target_ssid)
        selected = None

    return replace(state, networks=networks, selected_index=selected, modal=modal)


def _service_error(state: Active, message: str) -> Active:
    if isinstance(state.modal, (Browsing, ShowingError)):
        return _with_modal(state, ShowingError(message))
    return state


def _connection_outcome(state: Active, message: ConnectionSucceeded | ConnectionFailed) -> Active:
    modal = state.modal
    pending = isinstance(modal, Connecting) and modal.target_ssid == message.ssid
    if isinstance(message, ConnectionSucceeded):
        return _with_modal(state, Browsing()) if pending else state
    if not pending:
        return _service_error(state, f"Connection failed: {message.error}")
    if isinstance(message.error, IncorrectPassword):
        return _with_modal(state, EnteringPassword(message.ssid, last_error=INCORRECT_PASSWORD_TEXT))
    return _with_modal(state, ShowingError(f"Connection failed: {message.error}"))


def _select(state: Active) -> Active:
    network = state.selected_network
    if network is None:
        return state
    if network.is_active:
        return _with_modal(state, ConfirmingDisconnect())
    if network.is_weak_security:
        return _with_modal(state, ConfirmingWeakSecurity(network.ssid, network.security_label))
    if network.is_known:
        return _with_modal(state, Connecting(network.ssid))
    return _with_modal(state, EnteringPassword(network.ssid))


def _browsing(state: Active, message: Message) -> Active:
    count = len(state.networks)
    if isinstance(message, MoveUp):
        if state.selected_index is None:
            return replace(state, selected_index=_clamp(None, count))
        return replace(state, selected_index=max(0, state.selected_index - 1))
    if isinstance(message, MoveDown):
        if state.selected_index is None:
            return replace(state, selected_index=_clamp(None, count))
        return replace(state, selected_index=min(count - 1, state.selected_index + 1))
    if isinstance(message, Select):
        return _select(state)
    if isinstance(message, RequestForget):
        network = state.selected_network
        if network is not None and network.is_known:
            return _with_modal(state, ConfirmingForget())
        return state
    if isinstance(message, ToggleDetails):
        return replace(state, show_details=not state.show_details)
    if isinstance(message, ToggleAutoconnect):
        network = state.selected_network
        if not state.show_details or network is None or network.is_known:
            return state
        return _with_modal(state, ShowingError(f'Network "{network.ssid}" is not a saved network.'))
    return state


def _entering_password(state: Active, modal: EnteringPassword, message: Message) -> Active:
    if isinstance(message, Submit):
        return _with_modal(state, Connecting(modal.target_ssid))
    if isinstance(message, Cancel):
        return _with_modal(state, Browsing())

    buffer = modal.buffer
    if isinstance(message, InsertText):
        buffer = buffer.insert(message.text)
    elif isinstance(message, DeleteBackward):
        buffer = buffer.delete_backward()
    elif isinstance(message, DeleteForward):
        buffer = buffer.delete_forward()
    elif isinstance(message, DeleteWord):
        buffer = buffer.delete_word()
    elif isinstance(message, CursorLeft):
        buffer = buffer.move_left()
    elif isinstance(message, CursorRight):
        buffer = buffer.move_right()
    elif isinstance(message, CursorHome):
        buffer = buffer.move_home()
    elif isinstance(message, CursorEnd):
        buffer = buffer.move_end()
    elif isinstance(message, WordLeft):
        buffer = buffer.word_left()
    elif isinstance(message, WordRight):
        buffer = buffer.word_right()
    else:
        return state
    return _with_modal(state, replace(modal, buffer=buffer))


def _confirming_weak_security(state: Active, modal: ConfirmingWeakSecurity, message: Message) -> Active:
    if isinstance(message, Cancel):
        return _with_modal(state, Browsing())
    if not isinstance(message, Submit):
        return state
    network = state.find(modal.target_ssid)
    if network is None:
        return _with_modal(state, _no_longer_available(modal.target_ssid))
    if network.is_known:
        return _with_modal(state, Connecting(network.ssid))
    return _with_modal(state, EnteringPassword(network.ssid))


def plan(state: ApplicationState, message: Message) -> Command | None:
    """Return the network command implied by applying ``message`` to ``state``."""
    if not isinstance(state, Active):
        return None
    if isinstance(message, RequestScan):
        return ScanCommand()

    modal = state.modal
    if isinstance(modal, Browsing):
        network = state.selected_network
        if network is None:
            return None
        if isinstance(message, Select):
            if not network.is_active and not network.is_weak_security and network.is_known:
                return ConnectCommand(network.ssid)
            return None
        if isinstance(message, ToggleAutoconnect) and state.show_details and network.is_known:
            return ToggleAutoconnectCommand(network.ssid)
        return None

    if not isinstance(message, Submit):
        return None
    if isinstance(modal, EnteringPassword):
        # Saved profiles connect with their stored secrets.
        network = state.find(modal.target_ssid)
        password = "" if network is not None and network.is_known else modal.password_text
        return ConnectCommand(modal.target_ssid, password)
    if isinstance(modal, ConfirmingWeakSecurity):
        network = state.find(modal.target_ssid)
        if network is not None and network.is_known:
            return ConnectCommand(network.ssid)
        return None
    if isinstance(modal, ConfirmingDisconnect):
        return DisconnectCommand()
    if isinstance(modal, ConfirmingForget):
        network = state.selected_network
        if network is not None and network.is_known:
            return ForgetCommand(network.ssid)
        return None
    return None
