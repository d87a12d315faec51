from __future__ import annotations

import logging
import threading
from typing import Callable

from weefee.channel import Channel
from weefee.errors import OperationFailed, ServiceUnavailable, WifiError
from weefee.messages import (
    Command,
    ConnectCommand,
    ConnectionFailed,
    ConnectionSucceeded,
    DeviceStatusUpdated,
    DisconnectCommand,
    ForgetCommand,
    Message,
    NetworksFound,
    ScanCommand,
    ServiceError,
    ToggleAutoconnectCommand,
)
from weefee.network import NetworkClient

logger = logging.getLogger(__name__)

COMMAND_QUEUE_SIZE = 16
RECEIVE_POLL_SECONDS = 0.1


class NetworkWorker(threading.Thread):
    """Runs network commands one at a time on a dedicated thread.

    The client, and with it the bus connection, is created and used on
    this thread only. Every command is followed by a fresh scan so the
    list shown reflects what actually happened. A command that fails in
    an unexpected way is reported and the worker carries on.
    """

    def __init__(
        self,
        results: Channel[Message],
        client_factory: Callable[[], NetworkClient],
        *,
        queue_size: int = COMMAND_QUEUE_SIZE,
    ) -> None:
        super().__init__(name="weefee-network", daemon=True)
        self.commands: Channel[Command] = Channel(queue_size, name="commands")
        self._results = results
        self._client_factory = client_factory
        self._scan_lock = threading.Lock()
        self._scan_queued = False

    def submit(self, command: Command) -> bool:
        """Queue a command without blocking; False when it was dropped.

        A scan still waiting in the queue absorbs further scans.
        """
        if isinstance(command, ScanCommand):
            with self._scan_lock:
                if self._scan_queued:
                    return True
                self._scan_queued = self.commands.try_send(command)
                if self._scan_queued:
                    return True
        elif self.commands.try_send(command):
            return True
        logger.warning("Dropped %r, network worker is busy", command)
        return False

    def stop(self) -> None:
        self.commands.close()

    def run(self) -> None:
        try:
            self._serve()
        except Exception as exc:
            logger.exception("Network worker stopped")
            self._emit(ServiceError(f"Network worker stopped: {exc}"))
        finally:
            # Nothing drains the queue any more; make submit say so.
            self.commands.close()

    def _next_command(self) -> Command | None:
        command = self.commands.receive(timeout=RECEIVE_POLL_SECONDS)
        if isinstance(command, ScanCommand):
            # Cleared before the scan runs, so a scan requested from now
            # on is queued rather than absorbed.
            with self._scan_lock:
                self._scan_queued = False
        return command

    def _serve(self) -> None:
        client = self._open_client()
        if client is not None:
            self._refresh(client)
        while True:
            command = self._next_command()
            if command is None:
                if self.commands.closed:
                    return
                continue
            if client is None:
                client = self._open_client()
                if client is None:
                    if isinstance(command, ConnectCommand):
                        self._emit(ConnectionFailed(command.ssid, ServiceUnavailable("NetworkManager is not reachable")))
                    continue
            self._handle(client, command)
            self._refresh(client)

    def _open_client(self) -> NetworkClient | None:
        try:
            client = self._client_factory()
        except WifiError as exc:
            logger.error("Failed to init NetworkManager client: %s", exc)
            self._emit(ServiceError(f"Failed to init NetworkManager: {exc}"))
            return None
        except Exception as exc:
            logger.exception("Unexpected failure creating the NetworkManager client")
            self._emit(ServiceError(f"Failed to init NetworkManager: {exc}"))
            return None
        logger.info("NetworkManager client ready")
        return client

    def _handle(self, client: NetworkClient, command: Command) -> None:
        logger.debug("Handling %r", command)
        try:
            self._dispatch(client, command)
        except Exception as exc:
            logger.exception("Unexpected failure handling %r", command)
            if isinstance(command, ConnectCommand):
                self._emit(ConnectionFailed(command.ssid, OperationFailed(f"Unexpected error: {exc}")))
            else:
                self._emit(ServiceError(f"Unexpected error: {exc}"))

    def _dispatch(self, client: NetworkClient, command: Command) -> None:
        if isinstance(command, ConnectCommand):
            try:
                client.connect(command.ssid, command.password)
            except WifiError as exc:
                logger.warning("Connecting to %s failed: %s", command.ssid, exc)
                self._emit(ConnectionFailed(command.ssid, exc))
            else:
                logger.info("Connected to %s", command.ssid)
                self._emit(ConnectionSucceeded(command.ssid))
        elif isinstance(command, DisconnectCommand):
            self._operation("disconnect", client.disconnect)
        elif isinstance(command, ForgetCommand):
            self._operation(f"forget {command.ssid}", lambda: client.forget(command.ssid))
        elif isinstance(command, ToggleAutoconnectCommand):
            self._operation(f"toggle auto-connect for {command.ssid}", lambda: client.toggle_autoconnect(command.ssid))

    def _operation(self, label: str, action: Callable[[], None]) -> None:
        try:
            action()
        except WifiError as exc:
            logger.warning("Failed to %s: %s", label, exc)
            self._emit(ServiceError(str(exc)))
        else:
            logger.info("Done: %s", label)

    def _refresh(self, client: NetworkClient) -> None:
        try:
            status = client.device_status()
        except WifiError as exc:
            logger.warning("Device status unavailable: %s", exc)
        except Exception:
            logger.exception("Unexpected failure reading device status")
        else:
            self._emit(DeviceStatusUpdated(status))
        try:
            networks = client.scan()
        except WifiError as exc:
            logger.warning("Scan failed: %s", exc)
            self._emit(ServiceError(str(exc)))
        except Exception as exc:
            logger.exception("Unexpected failure while scanning")
            self._emit(ServiceError(f"Scan failed: {exc}"))
        else:
            self._emit(NetworksFound(tuple(networks)))

    def _emit(self, message: Message) -> None:
        if not self._results.send(message):
            logger.debug("Result channel closed, dropped %r", message)
