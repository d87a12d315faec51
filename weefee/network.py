from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from weefee.dbus import BusError
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
from weefee.models import DeviceStatus, SavedProfile, WifiNetwork
from weefee.security import classify

logger = logging.getLogger(__name__)

DEVICE_TYPE_WIFI = 2
DEVICE_STATE_ACTIVATED = 100

# NMActiveConnectionState
ACTIVE_STATE_UNKNOWN = 0
ACTIVE_STATE_ACTIVATING = 1
ACTIVE_STATE_ACTIVATED = 2
ACTIVE_STATE_DEACTIVATING = 3
ACTIVE_STATE_DEACTIVATED = 4

# NMDeviceStateReason: NO_SECRETS, SUPPLICANT_DISCONNECT
INCORRECT_PASSWORD_REASONS = frozenset({7, 8})

ROOT_OBJECT = "/"
WIRELESS_TYPE = "802-11-wireless"
SECRETS_ERROR_MARKERS = ("secrets", "802-1x", "password")


@dataclass(frozen=True)
class Timings:
    poll_interval: float = 0.2
    activation_timeout: float = 30.0
    missing_object_grace: float = 2.0
    scan_settle: float = 0.1


def decode_ssid(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    return bytes(raw).decode("utf-8", errors="replace")


def _optional_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def profile_from_settings(handle: str, settings: dict[str, dict[str, Any]]) -> SavedProfile | None:
    connection = settings.get("connection", {})
    if connection.get("type") != WIRELESS_TYPE:
        return None
    ssid = decode_ssid(settings.get(WIRELESS_TYPE, {}).get("ssid"))
    if not ssid:
        return None
    autoconnect = connection.get("autoconnect")
    return SavedProfile(
        handle=handle,
        ssid=ssid,
        priority=_optional_int(connection.get("autoconnect-priority")),
        autoconnect_enabled=None if autoconnect is None else bool(autoconnect),
        autoconnect_retry_limit=_optional_int(connection.get("autoconnect-retries")),
    )


def new_profile_settings(ssid: str, password: str) -> dict[str, dict[str, Any]]:
    settings: dict[str, dict[str, Any]] = {
        "connection": {"id": ssid, "type": WIRELESS_TYPE},
        WIRELESS_TYPE: {"ssid": ssid.encode("utf-8"), "mode": "infrastructure"},
    }
    if password:
        settings["802-11-wireless-security"] = {"key-mgmt": "wpa-psk", "psk": password}
    return settings


def order_networks(networks: Iterable[WifiNetwork]) -> list[WifiNetwork]:
    """Drop duplicate SSIDs and put the list in display order.

    Of several entries sharing an SSID the active one survives, otherwise
    the first seen. The result lists active entries first, then the rest
    by descending signal strength.
    """
    by_ssid = sorted(networks, key=lambda network: (network.ssid, not network.is_active))
    unique: list[WifiNetwork] = []
    for network in by_ssid:
        if unique and unique[-1].ssid == network.ssid:
            continue
        unique.append(network)
    return sorted(unique, key=lambda network: (not network.is_active, -network.signal_strength))


def _is_already_active(exc: BusError) -> bool:
    name = exc.name or ""
    return name.endswith("AlreadyActive") or "already active" in str(exc).lower()


class NetworkClient:
    """Wireless operations against NetworkManager.

    Owns its bus adapter exclusively; use it from a single thread.
    """

    def __init__(
        self,
        bus,
        *,
        timings: Timings | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._bus = bus
        self._timings = timings or Timings()
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def open(cls, *, timings: Timings | None = None) -> "NetworkClient":
        from weefee.dbus import NetworkManagerBus

        try:
            bus = NetworkManagerBus()
        except BusError as exc:
            raise ServiceUnavailable(f"Failed to connect to system bus: {exc}") from exc
        except (ImportError, ValueError) as exc:
            # gi missing, or its GLib bindings unusable.
            raise ServiceUnavailable(f"PyGObject is not available: {exc}") from exc
        return cls(bus, timings=timings)

    def device_status(self) -> DeviceStatus:
        try:
            enabled = self._bus.wireless_enabled()
        except BusError as exc:
            raise ServiceUnavailable(f"Failed to read WiFi state: {exc}") from exc
        return DeviceStatus(wifi_radio_enabled=bool(enabled))

    def scan(self) -> list[WifiNetwork]:
        try:
            device = self._wifi_device()
        except BusError as exc:
            raise ServiceUnavailable(f"Failed to get devices: {exc}") from exc
        if device is None:
            return []

        profiles: dict[str, SavedProfile] = {}
        for profile in self._saved_profiles_or_empty():
            profiles.setdefault(profile.ssid, profile)

        try:
            self._bus.request_scan(device)
        except BusError as exc:
            logger.debug("Scan request rejected, using cached results: %s", exc)
        self._sleep(self._timings.scan_settle)

        try:
            access_points = self._bus.access_points(device)
        except BusError as exc:
            logger.warning("Failed to list access points: %s", exc)
            return []

        active = self._activated_access_point(device)
        networks = []
        for path in access_points:
            network = self._read_access_point(path, active, profiles)
            if network is not None:
                networks.append(network)
        return order_networks(networks)

    def connect(self, ssid: str, password: str) -> None:
        try:
            device = self._wifi_device()
        except BusError as exc:
            raise ServiceUnavailable(f"Failed to get devices: {exc}") from exc
        if device is None:
            raise NoWirelessDevice()

        profile = self._find_profile(self._saved_profiles_or_empty(), ssid)
        if profile is not None:
            logger.info("Activating saved profile for %s", ssid)
            active = self._activate_saved(profile, device, ssid)
            if active is not None:
                self._wait_for_activation(active, device, new_profile=False)
            return

        logger.info("Creating a new profile for %s", ssid)
        created, active = self._add_and_activate(ssid, password, device)
        try:
            self._wait_for_activation(active, device, new_profile=True)
        except WifiError:
            self._discard_profile(created)
            raise

    def disconnect(self) -> None:
        try:
            device = self._wifi_device()
        except BusError as exc:
            raise OperationFailed(f"Failed to get devices: {exc}") from exc
        if device is None:
            raise NoWirelessDevice()
        try:
            self._bus.disconnect_device(device)
        except BusError as exc:
            raise OperationFailed(f"Failed to disconnect: {exc}") from exc

    def forget(self, ssid: str) -> None:
        try:
            matches = [profile for profile in self._saved_profiles() if profile.ssid == ssid]
        except BusError as exc:
            raise OperationFailed(f"Failed to list saved connections: {exc}") from exc
        if not matches:
            logger.info("No saved profile for %s, nothing to forget", ssid)
            return

        deleted = 0
        last_error: BusError | None = None
        for profile in matches:
            try:
                self._bus.delete_connection(profile.handle)
            except BusError as exc:
                logger.warning("Failed to delete %s: %s", profile.handle, exc)
                last_error = exc
            else:
                deleted += 1
        if deleted == 0:
            raise OperationFailed(f"Failed to forget '{ssid}': {last_error}")

    def toggle_autoconnect(self, ssid: str) -> None:
        try:
            profile = self._find_profile(self._saved_profiles(), ssid)
        except BusError as exc:
            raise OperationFailed(f"Failed to list saved connections: {exc}") from exc
        if profile is None:
            raise UnknownNetwork(ssid)
        current = True if profile.autoconnect_enabled is None else profile.autoconnect_enabled
        try:
            self._bus.set_autoconnect(profile.handle, not current)
        except BusError as exc:
            raise OperationFailed(f"Failed to toggle autoconnect: {exc}") from exc
        logger.info("Auto-connect for %s is now %s", ssid, "off" if current else "on")

    def _wifi_device(self) -> str | None:
        for path in self._bus.devices():
            try:
                kind = self._bus.device_type(path)
            except BusError as exc:
                logger.debug("Skipping device %s: %s", path, exc)
                continue
            if kind == DEVICE_TYPE_WIFI:
                return path
        return None

    def _saved_profiles(self) -> list[SavedProfile]:
        profiles = []
        for path in self._bus.list_connections():
            try:
                settings = self._bus.connection_settings(path)
            except BusError as exc:
                logger.debug("Skipping profile %s: %s", path, exc)
                continue
            profile = profile_from_settings(path, settings)
            if profile is not None:
                profiles.append(profile)
        return profiles

    def _saved_profiles_or_empty(self) -> list[SavedProfile]:
        try:
            return self._saved_profiles()
        except BusError as exc:
            logger.warning("Failed to list saved connections: %s", exc)
            return []

    @staticmethod
    def _find_profile(profiles: list[SavedProfile], ssid: str) -> SavedProfile | None:
        return next((profile for profile in profiles if profile.ssid == ssid), None)

    def _activated_access_point(self, device: str) -> str | None:
        # A device can report an access point while still associating;
        # only a fully activated device has a connected one.
        try:
            state = self._bus.device_state(device)
        except BusError as exc:
            logger.debug("Failed to read device state: %s", exc)
            return None
        if state != DEVICE_STATE_ACTIVATED:
            return None
        try:
            path = self._bus.active_access_point(device)
        except BusError as exc:
            logger.debug("Failed to read active access point: %s", exc)
            return None
        if not path or path == ROOT_OBJECT:
            return None
        return path

    def _read_access_point(
        self,
        path: str,
        active: str | None,
        profiles: dict[str, SavedProfile],
    ) -> WifiNetwork | None:
        try:
            props = self._bus.access_point_properties(path)
        except BusError as exc:
            logger.debug("Skipping access point %s: %s", path, exc)
            return None
        ssid = decode_ssid(props.get("Ssid"))
        if not ssid:
            return None
        label, weak = classify(int(props.get("WpaFlags") or 0), int(props.get("RsnFlags") or 0))
        strength = max(0, min(100, int(props.get("Strength") or 0)))
        profile = profiles.get(ssid)
        return WifiNetwork(
            ssid=ssid,
            signal_strength=strength,
            security_label=label,
            is_weak_security=weak,
            is_active=active is not None and path == active,
            is_known=profile is not None,
            priority=profile.priority if profile else None,
            autoconnect_enabled=profile.autoconnect_enabled if profile else None,
            autoconnect_retry_limit=profile.autoconnect_retry_limit if profile else None,
            frequency_mhz=_optional_int(props.get("Frequency")),
        )

    def _access_point_for(self, device: str, ssid: str) -> str:
        try:
            paths = self._bus.access_points(device)
        except BusError as exc:
            logger.debug("Failed to list access points: %s", exc)
            return ROOT_OBJECT
        for path in paths:
            try:
                props = self._bus.access_point_properties(path)
            except BusError:
                continue
            if decode_ssid(props.get("Ssid")) == ssid:
                return path
        return ROOT_OBJECT

    def _activate_saved(self, profile: SavedProfile, device: str, ssid: str) -> str | None:
        specific = self._access_point_for(device, ssid)
        try:
            return self._bus.activate_connection(profile.handle, device, specific)
        except BusError as exc:
            if _is_already_active(exc):
                logger.info("%s is already active", ssid)
                return None
            raise ActivationRejected(f"Failed to activate: {exc}") from exc

    def _add_and_activate(self, ssid: str, password: str, device: str) -> tuple[str, str]:
        settings = new_profile_settings(ssid, password)
        try:
            return self._bus.add_and_activate_connection(settings, device, ROOT_OBJECT)
        except BusError as exc:
            message = str(exc).lower()
            if any(marker in message for marker in SECRETS_ERROR_MARKERS):
                raise IncorrectPassword() from exc
            raise ActivationRejected(f"Failed to activate: {exc}") from exc

    def _wait_for_activation(self, active: str, device: str, *, new_profile: bool) -> None:
        timings = self._timings
        started = self._clock()
        unreadable_since: float | None = None
        last_state: int | None = None
        while True:
            now = self._clock()
            if now - started > timings.activation_timeout:
                raise ActivationTimeout(f"Connection timeout after {timings.activation_timeout:g}s")
            try:
                state = self._bus.active_connection_state(active)
            except BusError as exc:
                if unreadable_since is None:
                    unreadable_since = now
                # NetworkManager often reports rejected secrets only by
                # removing the half-built connection object.
                if (
                    new_profile
                    and timings.missing_object_grace > 0
                    and now - unreadable_since > timings.missing_object_grace
                ):
                    logger.info("Activation object gone for %.1fs: %s", now - unreadable_since, exc)
                    raise IncorrectPassword() from exc
            else:
                unreadable_since = None
                if state != last_state:
                    logger.debug("Activation %s state %s", active, state)
                    last_state = state
                if state == ACTIVE_STATE_ACTIVATED:
                    return
                if state == ACTIVE_STATE_DEACTIVATED:
                    raise self._deactivation_error(device)
            self._sleep(timings.poll_interval)

    def _deactivation_error(self, device: str) -> WifiError:
        try:
            _, reason = self._bus.device_state_reason(device)
        except BusError as exc:
            logger.debug("Failed to read failure reason: %s", exc)
            return ActivationRejected("Connection failed")
        if reason in INCORRECT_PASSWORD_REASONS:
            return IncorrectPassword()
        return ActivationRejected(f"Connection failed (reason: {reason})")

    def _discard_profile(self, handle: str) -> None:
        try:
            self._bus.delete_connection(handle)
        except BusError as exc:
            logger.warning("Failed to remove profile %s after a failed connect: %s", handle, exc)
        else:
            logger.info("Removed profile %s after a failed connect", handle)
