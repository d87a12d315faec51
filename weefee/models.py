from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class WifiNetwork:
    ssid: str
    signal_strength: int = 0
    security_label: str = "Open"
    is_weak_security: bool = True
    is_active: bool = False
    is_known: bool = False
    priority: int | None = None
    autoconnect_enabled: bool | None = None
    autoconnect_retry_limit: int | None = None
    frequency_mhz: int | None = None

    def band_label(self) -> str:
        freq = self.frequency_mhz
        if freq is None:
            return "unknown band"
        if 2400 <= freq < 2500:
            return "2.4 GHz"
        if 5150 <= freq < 5925:
            return "5 GHz"
        if 5925 <= freq <= 7125:
            return "6 GHz"
        return "unknown band"


@dataclass(frozen=True)
class DeviceStatus:
    wifi_radio_enabled: bool


@dataclass(frozen=True)
class SavedProfile:
    """A connection profile stored by NetworkManager.

    ``handle`` is the settings object path; it never leaves the network
    client.
    """

    handle: str
    ssid: str
    priority: int | None = None
    autoconnect_enabled: bool | None = None
    autoconnect_retry_limit: int | None = None
