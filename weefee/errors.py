from __future__ import annotations


class WifiError(RuntimeError):
    """Base class for failures reported by the network client."""


class ServiceUnavailable(WifiError):
    pass


class NoWirelessDevice(WifiError):
    def __init__(self, message: str = "No WiFi device found") -> None:
        super().__init__(message)


class ActivationRejected(WifiError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class IncorrectPassword(WifiError):
    def __init__(self, message: str = "Incorrect password") -> None:
        super().__init__(message)


class ActivationTimeout(WifiError):
    def __init__(self, message: str = "Connection timeout") -> None:
        super().__init__(message)


class UnknownNetwork(WifiError):
    def __init__(self, ssid: str) -> None:
        super().__init__(f"Network '{ssid}' is not a saved network")
        self.ssid = ssid


class OperationFailed(WifiError):
    def __init__(self, context: str) -> None:
        super().__init__(context)
        self.context = context
