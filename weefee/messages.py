"""Messages applied to the application state and commands for the worker."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from weefee.errors import WifiError
from weefee.models import DeviceStatus, WifiNetwork


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class Quit:
    pass


@dataclass(frozen=True)
class MoveUp:
    pass


@dataclass(frozen=True)
class MoveDown:
    pass


@dataclass(frozen=True)
class RequestScan:
    pass


@dataclass(frozen=True)
class Select:
    """Enter on the highlighted network."""


@dataclass(frozen=True)
class RequestForget:
    pass


@dataclass(frozen=True)
class ToggleDetails:
    pass


@dataclass(frozen=True)
class ToggleAutoconnect:
    pass


@dataclass(frozen=True)
class Submit:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class InsertText:
    text: str


@dataclass(frozen=True)
class DeleteBackward:
    pass


@dataclass(frozen=True)
class DeleteForward:
    pass


@dataclass(frozen=True)
class DeleteWord:
    pass


@dataclass(frozen=True)
class CursorLeft:
    pass


@dataclass(frozen=True)
class CursorRight:
    pass


@dataclass(frozen=True)
class CursorHome:
    pass


@dataclass(frozen=True)
class CursorEnd:
    pass


@dataclass(frozen=True)
class WordLeft:
    pass


@dataclass(frozen=True)
class WordRight:
    pass


@dataclass(frozen=True)
class NetworksFound:
    networks: tuple[WifiNetwork, ...]


@dataclass(frozen=True)
class DeviceStatusUpdated:
    status: DeviceStatus


@dataclass(frozen=True)
class ServiceError:
    message: str


@dataclass(frozen=True)
class ConnectionSucceeded:
    ssid: str


@dataclass(frozen=True)
class ConnectionFailed:
    ssid: str
    error: WifiError


Message = Union[
    Tick,
    Quit,
    MoveUp,
    MoveDown,
    RequestScan,
    Select,
    RequestForget,
    ToggleDetails,
    ToggleAutoconnect,
    Submit,
    Cancel,
    InsertText,
    DeleteBackward,
    DeleteForward,
    DeleteWord,
    CursorLeft,
    CursorRight,
    CursorHome,
    CursorEnd,
    WordLeft,
    WordRight,
    NetworksFound,
    DeviceStatusUpdated,
    ServiceError,
    ConnectionSucceeded,
    ConnectionFailed,
]


@dataclass(frozen=True)
class ScanCommand:
    pass


@dataclass(frozen=True)
class ConnectCommand:
    ssid: str
    password: str = field(default="", repr=False)


@dataclass(frozen=True)
class DisconnectCommand:
    pass


@dataclass(frozen=True)
class ForgetCommand:
    ssid: str


@dataclass(frozen=True)
class ToggleAutoconnectCommand:
    ssid: str


Command = Union[ScanCommand, ConnectCommand, DisconnectCommand, ForgetCommand, ToggleAutoconnectCommand]
