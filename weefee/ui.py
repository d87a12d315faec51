"""Draws the application state with prompt_toolkit formatted text.

Rendering reads the state and never changes it.
"""

from __future__ import annotations

import textwrap
from typing import List, Tuple

from prompt_toolkit.formatted_text import FormattedText, fragment_list_to_text
from prompt_toolkit.output import Output
from prompt_toolkit.shortcuts import print_formatted_text
from prompt_toolkit.styles import Style

from weefee.models import WifiNetwork
from weefee.state import (
    Active,
    Browsing,
    ConfirmingDisconnect,
    ConfirmingForget,
    ConfirmingWeakSecurity,
    Connecting,
    EnteringPassword,
    ShowingError,
)

Fragments = List[Tuple[str, str]]

SPINNER_FRAMES = ("⣾", "⣽", "⣻", "⢿", "⡿", "⣟", "⣯", "⣷")
DIALOG_WIDTH = 60
DETAIL_INDENT = " " * 10
SAVED_PASSWORD_HINT = "Saved credentials are used; forget the network (F) to enter a new password."

APP_STYLE = Style.from_dict(
    {
        "header": "bold #22d3ee",
        "header.disconnected": "bold #ffa500",
        "header.disabled": "bold #ef4444",
        "title": "bold #ffffff",
        "network": "#e5e7eb",
        "network.selected": "bold #facc15",
        "dim": "#6b7280",
        "detail": "#9ca3af",
        "hint": "#6b7280",
        "dialog.border": "#39ff14",
        "dialog.border.error": "#ef4444",
        "dialog.border.warning": "#facc15",
        "dialog.title": "bold #ffffff",
        "dialog.text": "#e5e7eb",
        "dialog.error": "bold #ef4444",
        "input": "#facc15",
        "input.cursor": "reverse #facc15",
        "spinner": "bold #22d3ee",
    }
)


def signal_bars(strength: int) -> str:
    if strength <= 25:
        return "▁   "
    if strength <= 50:
        return "▁▃  "
    if strength <= 75:
        return "▁▃▅ "
    return "▁▃▅▇"


def header(state: Active) -> Fragments:
    status = state.device_status
    connected = any(network.is_active for network in state.networks)
    if status is None:
        return [("class:header", "WeeFee | Loading...")]
    if not status.wifi_radio_enabled:
        style = "class:header.disabled"
    elif not connected:
        style = "class:header.disconnected"
    else:
        style = "class:header"
    text = "WeeFee | WiFi {}, {}".format(
        "enabled" if status.wifi_radio_enabled else "disabled",
        "connected" if connected else "not connected",
    )
    return [(style, text)]


def detail_lines(network: WifiNetwork) -> list[str]:
    parts = [f"signal: {network.signal_strength}%"]
    if network.frequency_mhz is not None:
        parts.append(f"frequency: {network.frequency_mhz} MHz ({network.band_label()})")
    warning = " (⚠ insecure)" if network.is_weak_security else ""
    parts.append(f"security: {network.security_label}{warning}")
    if network.is_known:
        parts.append("known network (F to forget)")
    lines = [" | ".join(parts)]
    if not network.is_known:
        return lines

    advanced = []
    if network.priority is not None:
        advanced.append(f"priority: {network.priority}")
    if network.autoconnect_enabled is None:
        advanced.append("auto-connect: default (A to toggle)")
    else:
        advanced.append(f"auto-connect: {'on' if network.autoconnect_enabled else 'off'} (A to toggle)")
    if network.autoconnect_retry_limit is None:
        advanced.append("auto-connect retries: default")
    else:
        advanced.append(f"auto-connect retries: {network.autoconnect_retry_limit}")
    lines.append(" | ".join(advanced))
    return lines


def _network_block(network: WifiNetwork, selected: bool, details: bool, dimmed: bool) -> list[Fragments]:
    if dimmed:
        style = "class:dim"
    elif selected:
        style = "class:network.selected"
    else:
        style = "class:network"
    prefix = "→ " if selected else "  "
    marker = "🔗 " if network.is_active else "   "
    lines: list[Fragments] = [[(style, f"{prefix}{marker}{signal_bars(network.signal_strength)} {network.ssid}")]]
    if details:
        detail_style = "class:dim" if dimmed else "class:detail"
        lines.extend([(detail_style, DETAIL_INDENT + line)] for line in detail_lines(network))
    return lines


def network_list(state: Active, rows: int) -> list[Fragments]:
    dimmed = not isinstance(state.modal, Browsing)
    blocks = [
        _network_block(network, index == state.selected_index, state.show_details, dimmed)
        for index, network in enumerate(state.networks)
    ]
    if not blocks:
        return [[("class:dim", "  No networks found")]]

    # Scroll just far enough that the selected entry is on screen.
    start = 0
    if state.selected_index is not None:
        start = state.selected_index
        used = len(blocks[start])
        while start > 0 and used + len(blocks[start - 1]) <= rows:
            start -= 1
            used += len(blocks[start])

    lines: list[Fragments] = []
    for block in blocks[start:]:
        if lines and len(lines) + len(block) > rows:
            break
        lines.extend(block)
    return lines


def _box(title: str, body: list[Fragments], border: str, width: int) -> list[Fragments]:
    inner = max(10, width - 4)
    top_label = f" {title} " if title else ""
    lines: list[Fragments] = [
        [(border, "╭─"), ("class:dialog.title", top_label), (border, "─" * max(0, inner - len(top_label)) + "─╮")]
    ]
    for content in body:
        text_length = len(fragment_list_to_text(content))
        padding = " " * max(0, inner - text_length)
        lines.append([(border, "│ "), *content, ("", padding), (border, " │")])
    lines.append([(border, "╰" + "─" * (inner + 2) + "╯")])
    return lines


def _wrapped(text: str, style: str, width: int) -> list[Fragments]:
    lines: list[Fragments] = []
    for paragraph in text.split("\n"):
        wrapped = textwrap.wrap(paragraph, width) or [""]
        lines.extend([(style, line)] for line in wrapped)
    return lines


def _password_field(modal: EnteringPassword) -> Fragments:
    masked = "•" * len(modal.password_text)
    cursor = modal.cursor_position
    under_cursor = masked[cursor] if cursor < len(masked) else " "
    return [
        ("class:dialog.text", "Password: "),
        ("class:input", masked[:cursor]),
        ("class:input.cursor", under_cursor),
        ("class:input", masked[cursor + 1 :]),
    ]


def weak_security_message(ssid: str, label: str) -> str:
    if label == "Open":
        return f"Network {ssid} has no security. Anyone can intercept your data."
    if "WEP" in label:
        return (
            f"Network {ssid} uses {label}.\n"
            "WEP is outdated and can be cracked in minutes. "
            "Your data can be easily intercepted by attackers."
        )
    return (
        f"Network {ssid} uses {label}.\n"
        "This encryption method is outdated and insecure. Your data may be vulnerable to interception."
    )


def dialog(state: Active, width: int) -> list[Fragments]:
    modal = state.modal
    width = min(width, DIALOG_WIDTH)
    inner = max(10, width - 4)
    selected = state.selected_network
    yes_no = [("class:hint", "Yes (y) / No (n)")]

    if isinstance(modal, EnteringPassword):
        body = _wrapped(f"Connecting to {modal.target_ssid}...", "class:dialog.text", inner)
        body.append(_password_field(modal))
        if modal.last_error:
            body.extend(_wrapped(modal.last_error, "class:dialog.error", inner))
        target = state.find(modal.target_ssid)
        if target is not None and target.is_known:
            body.extend(_wrapped(SAVED_PASSWORD_HINT, "class:hint", inner))
        body.append([("class:hint", "Enter to connect | Esc to cancel")])
        return _box("Password", body, "class:dialog.border", width)
    if isinstance(modal, Connecting):
        frame = SPINNER_FRAMES[modal.spinner_frame % len(SPINNER_FRAMES)]
        body = [[("class:spinner", frame), ("class:dialog.text", f" Connecting to {modal.target_ssid}...")]]
        return _box("", body, "class:dialog.border", width)
    if isinstance(modal, ShowingError):
        body = _wrapped(modal.message, "class:dialog.text", inner)
        body.append([("class:hint", "Enter or Esc to dismiss")])
        return _box("Error", body, "class:dialog.border.error", width)
    if isinstance(modal, ConfirmingDisconnect):
        name = selected.ssid if selected else "the current network"
        body = _wrapped(f"Disconnect from {name}?", "class:dialog.text", inner)
        return _box("Disconnect", [*body, yes_no], "class:dialog.border.warning", width)
    if isinstance(modal, ConfirmingForget):
        name = selected.ssid if selected else "this network"
        if selected is not None and selected.is_active:
            detail = "This will disconnect and delete the saved password and settings."
        else:
            detail = "This will delete the saved password and settings."
        body = _wrapped(f"Forget network {name}?\n\n{detail}", "class:dialog.text", inner)
        return _box("Forget Network", [*body, yes_no], "class:dialog.border.error", width)
    if isinstance(modal, ConfirmingWeakSecurity):
        message = weak_security_message(modal.target_ssid, modal.security_label)
        body = _wrapped(message, "class:dialog.text", inner)
        body.append([("class:dialog.text", "Continue anyway? Y/N")])
        return _box("Insecure Network", body, "class:dialog.border.error", width)
    return []


FOOTER = "↑/↓: Navigate | Enter: dis/connect | D: Details | F: Forget | A: Auto-connect | Q: Quit"


def frame(state: Active, width: int = 80, height: int = 24) -> FormattedText:
    overlay = dialog(state, width)
    rows = max(1, height - 4 - (len(overlay) + 1 if overlay else 0))
    lines: list[Fragments] = [header(state), [("class:title", "Networks")]]
    lines.extend(network_list(state, rows))
    if overlay:
        lines.append([])
        lines.extend(overlay)
    lines.append([("class:hint", FOOTER)])

    fragments: Fragments = []
    for index, line in enumerate(lines):
        if index:
            fragments.append(("", "\n"))
        fragments.extend(line)
    return FormattedText(fragments)


def draw(output: Output, state: Active, style: Style = APP_STYLE) -> None:
    size = output.get_size()
    output.erase_screen()
    output.cursor_goto(0, 0)
    print_formatted_text(frame(state, size.columns, size.rows), style=style, output=output, end="")
    output.flush()
