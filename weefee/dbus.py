"""NetworkManager over the system bus.

A thin adapter around ``Gio.DBusConnection``: every method is a single
remote call (or property read) with plain Python values in and out.
``GLib.Error`` never escapes; it is re-raised as :class:`BusError`.

The connection is not shared across threads. Create the adapter on the
thread that will use it.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

NM_BUS_NAME = "org.freedesktop.NetworkManager"
NM_PATH = "/org/freedesktop/NetworkManager"
NM_SETTINGS_PATH = "/org/freedesktop/NetworkManager/Settings"

NM_IFACE = "org.freedesktop.NetworkManager"
DEVICE_IFACE = f"{NM_IFACE}.Device"
WIRELESS_IFACE = f"{NM_IFACE}.Device.Wireless"
ACCESS_POINT_IFACE = f"{NM_IFACE}.AccessPoint"
SETTINGS_IFACE = f"{NM_IFACE}.Settings"
CONNECTION_IFACE = f"{NM_IFACE}.Settings.Connection"
ACTIVE_CONNECTION_IFACE = f"{NM_IFACE}.Connection.Active"
PROPERTIES_IFACE = "org.freedesktop.DBus.Properties"

WIRELESS_SECURITY_SETTING = "802-11-wireless-security"

DEFAULT_TIMEOUT_MS = 5000
ACTIVATION_TIMEOUT_MS = 60000


class BusError(Exception):
    """A failed call against the bus, with the remote error name if any."""

    def __init__(self, message: str, name: str | None = None) -> None:
        super().__init__(message)
        self.name = name


def _repository():
    import gi

    gi.require_version("Gio", "2.0")
    gi.require_version("GLib", "2.0")
    from gi.repository import Gio, GLib

    return Gio, GLib


def _bus_error(exc: Exception) -> BusError:
    Gio, _ = _repository()
    name = Gio.DBusError.get_remote_error(exc)
    message = getattr(exc, "message", None) or str(exc)
    return BusError(message, name=name)


def _variant(value: Any):
    _, GLib = _repository()
    if isinstance(value, bool):
        return GLib.Variant("b", value)
    if isinstance(value, int):
        return GLib.Variant("i", value)
    if isinstance(value, (bytes, bytearray)):
        return GLib.Variant("ay", bytes(value))
    if isinstance(value, str):
        return GLib.Variant("s", value)
    raise TypeError(f"Unsupported setting value: {value!r}")


def _pack_settings(settings: dict[str, dict[str, Any]]) -> dict[str, dict[str, Any]]:
    return {
        group: {key: _variant(value) for key, value in values.items()}
        for group, values in settings.items()
    }


def _settings_tree(variant) -> dict[str, dict[str, Any]]:
    # Keeps every value as its original GLib.Variant so an Update call
    # writes back exactly the types NetworkManager handed out.
    tree: dict[str, dict[str, Any]] = {}
    for index in range(variant.n_children()):
        entry = variant.get_child_value(index)
        group = entry.get_child_value(0).get_string()
        values = entry.get_child_value(1)
        tree[group] = {}
        for item_index in range(values.n_children()):
            item = values.get_child_value(item_index)
            key = item.get_child_value(0).get_string()
            tree[group][key] = item.get_child_value(1).get_variant()
    return tree


class NetworkManagerBus:
    def __init__(self, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> None:
        Gio, GLib = _repository()
        self._timeout_ms = timeout_ms
        try:
            self._connection = Gio.bus_get_sync(Gio.BusType.SYSTEM, None)
        except GLib.Error as exc:
            raise _bus_error(exc) from exc
        logger.info("Connected to the system bus")

    def _call_variant(
        self,
        path: str,
        interface: str,
        method: str,
        params=None,
        reply_type: str | None = None,
        timeout_ms: int | None = None,
    ):
        Gio, GLib = _repository()
        try:
            return self._connection.call_sync(
                NM_BUS_NAME,
                path,
                interface,
                method,
                params,
                GLib.VariantType.new(reply_type) if reply_type else None,
                Gio.DBusCallFlags.NONE,
                timeout_ms or self._timeout_ms,
                None,
            )
        except GLib.Error as exc:
            raise _bus_error(exc) from exc

    def _call(self, path: str, interface: str, method: str, params=None, reply_type: str | None = None, timeout_ms: int | None = None) -> tuple:
        result = self._call_variant(path, interface, method, params, reply_type, timeout_ms)
        if result is None:
            return ()
        return tuple(result.unpack())

    def _get(self, path: str, interface: str, name: str) -> Any:
        _, GLib = _repository()
        (value,) = self._call(path, PROPERTIES_IFACE, "Get", GLib.Variant("(ss)", (interface, name)), "(v)")
        return value

    def _get_all(self, path: str, interface: str) -> dict[str, Any]:
        _, GLib = _repository()
        (values,) = self._call(path, PROPERTIES_IFACE, "GetAll", GLib.Variant("(s)", (interface,)), "(a{sv})")
        return dict(values)

    def wireless_enabled(self) -> bool:
        return bool(self._get(NM_PATH, NM_IFACE, "WirelessEnabled"))

    def devices(self) -> list[str]:
        (paths,) = self._call(NM_PATH, NM_IFACE, "GetDevices", None, "(ao)")
        return list(paths)

    def device_type(self, device: str) -> int:
        return int(self._get(device, DEVICE_IFACE, "DeviceType"))

    def device_state(self, device: str) -> int:
        return int(self._get(device, DEVICE_IFACE, "State"))

    def device_state_reason(self, device: str) -> tuple[int, int]:
        state, reason = self._get(device, DEVICE_IFACE, "StateReason")
        return int(state), int(reason)

    def request_scan(self, device: str) -> None:
        _, GLib = _repository()
        self._call(device, WIRELESS_IFACE, "RequestScan", GLib.Variant("(a{sv})", ({},)))

    def access_points(self, device: str) -> list[str]:
        (paths,) = self._call(device, WIRELESS_IFACE, "GetAccessPoints", None, "(ao)")
        return list(paths)

    def active_access_point(self, device: str) -> str:
        return str(self._get(device, WIRELESS_IFACE, "ActiveAccessPoint"))

    def access_point_properties(self, access_point: str) -> dict[str, Any]:
        return self._get_all(access_point, ACCESS_POINT_IFACE)

    def list_connections(self) -> list[str]:
        (paths,) = self._call(NM_SETTINGS_PATH, SETTINGS_IFACE, "ListConnections", None, "(ao)")
        return list(paths)

    def connection_settings(self, connection: str) -> dict[str, dict[str, Any]]:
        (settings,) = self._call(connection, CONNECTION_IFACE, "GetSettings", None, "(a{sa{sv}})")
        return {group: dict(values) for group, values in settings.items()}

    def activate_connection(self, connection: str, device: str, specific_object: str) -> str:
        _, GLib = _repository()
        (active,) = self._call(
            NM_PATH,
            NM_IFACE,
            "ActivateConnection",
            GLib.Variant("(ooo)", (connection, device, specific_object)),
            "(o)",
            timeout_ms=ACTIVATION_TIMEOUT_MS,
        )
        return str(active)

    def add_and_activate_connection(
        self,
        settings: dict[str, dict[str, Any]],
        device: str,
        specific_object: str,
    ) -> tuple[str, str]:
        _, GLib = _repository()
        connection, active = self._call(
            NM_PATH,
            NM_IFACE,
            "AddAndActivateConnection",
            GLib.Variant("(a{sa{sv}}oo)", (_pack_settings(settings), device, specific_object)),
            "(oo)",
            timeout_ms=ACTIVATION_TIMEOUT_MS,
        )
        return str(connection), str(active)

    def active_connection_state(self, active_connection: str) -> int:
        return int(self._get(active_connection, ACTIVE_CONNECTION_IFACE, "State"))

    def delete_connection(self, connection: str) -> None:
        self._call(connection, CONNECTION_IFACE, "Delete")

    def disconnect_device(self, device: str) -> None:
        self._call(device, DEVICE_IFACE, "Disconnect")

    def set_autoconnect(self, connection: str, enabled: bool) -> None:
        _, GLib = _repository()
        reply = self._call_variant(connection, CONNECTION_IFACE, "GetSettings", None, "(a{sa{sv}})")
        tree = _settings_tree(reply.get_child_value(0))
        if WIRELESS_SECURITY_SETTING in tree:
            # GetSettings never includes secrets and Update replaces the
            # whole profile, so fold the stored secrets back in first.
            try:
                secrets = self._call_variant(
                    connection,
                    CONNECTION_IFACE,
                    "GetSecrets",
                    GLib.Variant("(s)", (WIRELESS_SECURITY_SETTING,)),
                    "(a{sa{sv}})",
                )
            except BusError as exc:
                logger.warning("Could not read secrets for %s: %s", connection, exc)
            else:
                for group, values in _settings_tree(secrets.get_child_value(0)).items():
                    tree.setdefault(group, {}).update(values)
        tree.setdefault("connection", {})["autoconnect"] = GLib.Variant("b", enabled)
        self._call(connection, CONNECTION_IFACE, "Update", GLib.Variant("(a{sa{sv}})", (tree,)))
