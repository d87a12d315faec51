"""Wires the worker, timer, key reader and the state loop together.

Only the main loop touches the application state. The other threads
talk to it through the inbox channel; the key reader additionally reads
the modal kind the main loop publishes after every update.
"""

from __future__ import annotations

import logging
import select
import threading
from typing import Callable

from prompt_toolkit.input import Input, create_input
from prompt_toolkit.output import Output, create_output

from weefee import ui
from weefee.channel import Channel
from weefee.errors import OperationFailed
from weefee.keys import coalesce, translate
from weefee.messages import Command, ConnectCommand, ConnectionFailed, Message, Quit, RequestScan, Tick
from weefee.network import NetworkClient
from weefee.state import (
    Active,
    ApplicationState,
    ModalKind,
    Quitting,
    apply,
    initial_state,
    modal_kind,
    plan,
)
from weefee.worker import NetworkWorker

logger = logging.getLogger(__name__)

INBOX_SIZE = 100
KEY_POLL_SECONDS = 0.2
DEFAULT_RESCAN_INTERVAL = 1.0


class ModalKindCell:
    """Most recently published modal kind.

    Read by the key reader to decide what a keystroke means. It may lag
    the real state by one update; nothing synchronises on it.
    """

    def __init__(self, kind: ModalKind = ModalKind.BROWSING) -> None:
        self._lock = threading.Lock()
        self._kind = kind

    def get(self) -> ModalKind:
        with self._lock:
            return self._kind

    def set(self, kind: ModalKind) -> None:
        with self._lock:
            self._kind = kind


def run_timer(inbox: Channel[Message], stop: threading.Event, interval: float) -> None:
    while not stop.wait(interval):
        if not inbox.try_send(RequestScan()) and inbox.closed:
            return


def read_keys(
    source: Input,
    inbox: Channel[Message],
    cell: ModalKindCell,
    stop: threading.Event,
    poll: float = KEY_POLL_SECONDS,
) -> None:
    fileno = source.fileno()
    while not stop.is_set():
        if source.closed:
            inbox.send(Quit())
            return
        ready, _, _ = select.select([fileno], [], [], poll)
        # A lone Escape stays buffered in the parser until flushed.
        presses = source.read_keys() if ready else source.flush_keys()
        if not presses:
            if not ready and not inbox.try_send(Tick()) and inbox.closed:
                return
            continue
        for event in coalesce(presses):
            for message in translate(cell.get(), event):
                if isinstance(message, Quit):
                    inbox.send(message)
                else:
                    inbox.try_send(message)


def step(state: ApplicationState, message: Message, submit: Callable[[Command], bool]) -> ApplicationState:
    command = plan(state, message)
    state = apply(state, message)
    if command is not None and not submit(command) and isinstance(command, ConnectCommand):
        failure = OperationFailed("Network worker is busy, try again")
        state = apply(state, ConnectionFailed(command.ssid, failure))
    return state


def main_loop(
    inbox: Channel[Message],
    submit: Callable[[Command], bool],
    cell: ModalKindCell,
    render: Callable[[Active], None],
) -> ApplicationState:
    state: ApplicationState = initial_state()
    render(state)
    while True:
        message = inbox.receive()
        if message is None:
            continue
        updated = step(state, message, submit)
        cell.set(modal_kind(updated))
        if isinstance(updated, Quitting):
            return updated
        if updated != state:
            render(updated)
        state = updated


class App:
    def __init__(
        self,
        client_factory: Callable[[], NetworkClient],
        *,
        rescan_interval: float = DEFAULT_RESCAN_INTERVAL,
        source: Input | None = None,
        output: Output | None = None,
    ) -> None:
        self._client_factory = client_factory
        self._rescan_interval = rescan_interval
        self._source = source
        self._output = output

    def run(self) -> int:
        source = self._source or create_input()
        output = self._output or create_output()
        inbox: Channel[Message] = Channel(INBOX_SIZE, name="inbox")
        worker = NetworkWorker(inbox, self._client_factory)
        cell = ModalKindCell()
        stop = threading.Event()
        helpers = [
            threading.Thread(
                target=run_timer,
                args=(inbox, stop, self._rescan_interval),
                name="weefee-timer",
                daemon=True,
            ),
            threading.Thread(
                target=read_keys,
                args=(source, inbox, cell, stop),
                name="weefee-keys",
                daemon=True,
            ),
        ]

        with source.raw_mode():
            output.enter_alternate_screen()
            output.hide_cursor()
            output.enable_bracketed_paste()
            output.flush()
            try:
                worker.start()
                for thread in helpers:
                    thread.start()
                main_loop(inbox, worker.submit, cell, lambda state: ui.draw(output, state))
            finally:
                stop.set()
                inbox.close()
                worker.stop()
                output.disable_bracketed_paste()
                output.show_cursor()
                output.quit_alternate_screen()
                output.flush()
        logger.info("Exited cleanly")
        return 0
