"""Terminal WiFi manager for NetworkManager."""

__version__ = "0.3.0"

from weefee.errors import (
    ActivationRejected,
    ActivationTimeout,
    IncorrectPassword,
    NoWirelessDevice,
    OperationFailed,
    ServiceUnavailable,
    UnknownNetwork,
    WifiError,
)
from weefee.models import DeviceStatus, WifiNetwork
from weefee.network import NetworkClient, Timings
from weefee.security import classify

__all__ = [
    "__version__",
    "ActivationRejected",
    "ActivationTimeout",
    "DeviceStatus",
    "IncorrectPassword",
    "NetworkClient",
    "NoWirelessDevice",
    "OperationFailed",
    "ServiceUnavailable",
    "Timings",
    "UnknownNetwork",
    "WifiError",
    "WifiNetwork",
    "classify",
]
