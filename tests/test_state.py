import unittest
from dataclasses import replace

from weefee.editing import LineBuffer
from weefee.errors import ActivationTimeout, IncorrectPassword
from weefee.messages import (
    Cancel,
    ConnectCommand,
    ConnectionFailed,
    ConnectionSucceeded,
    DeleteBackward,
    DeviceStatusUpdated,
    DisconnectCommand,
    ForgetCommand,
    InsertText,
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
)
from weefee.models import DeviceStatus, WifiNetwork
from weefee.state import (
    INCORRECT_PASSWORD_TEXT,
    Active,
    Browsing,
    ConfirmingDisconnect,
    ConfirmingForget,
    ConfirmingWeakSecurity,
    Connecting,
    EnteringPassword,
    ModalKind,
    Quitting,
    ShowingError,
    apply,
    initial_state,
    modal_kind,
    plan,
)

CAFE = WifiNetwork("Cafe", signal_strength=70, security_label="WPA2", is_weak_security=False)
HOME = WifiNetwork("Home", signal_strength=90, security_label="WPA2", is_weak_security=False, is_known=True)
OFFICE = WifiNetwork(
    "Office", signal_strength=40, security_label="WPA2", is_weak_security=False, is_active=True, is_known=True
)
LIBRARY = WifiNetwork("Library", signal_strength=30)


def browsing(*networks, selected=0, **kwargs) -> Active:
    return Active(networks=tuple(networks), selected_index=selected, **kwargs)


def step(state, message):
    """Plan then apply, as the main loop does."""
    return plan(state, message), apply(state, message)


class TestNavigation(unittest.TestCase):
    def test_initial_state_is_empty_browsing(self) -> None:
        state = initial_state()

        self.assertEqual(state.networks, ())
        self.assertIsNone(state.selected_index)
        self.assertIsNone(state.device_status)
        self.assertIsInstance(state.modal, Browsing)
        self.assertIs(modal_kind(state), ModalKind.BROWSING)

    def test_first_scan_selects_first_network(self) -> None:
        state = apply(initial_state(), NetworksFound((HOME, CAFE)))

        self.assertEqual(state.selected_index, 0)

    def test_move_is_clamped(self) -> None:
        state = browsing(HOME, CAFE)

        state = apply(state, MoveUp())
        self.assertEqual(state.selected_index, 0)
        state = apply(apply(state, MoveDown()), MoveDown())
        self.assertEqual(state.selected_index, 1)

    def test_move_on_empty_list_keeps_no_selection(self) -> None:
        state = apply(initial_state(), MoveDown())

        self.assertIsNone(state.selected_index)

    def test_device_status_update(self) -> None:
        state = apply(initial_state(), DeviceStatusUpdated(DeviceStatus(wifi_radio_enabled=False)))

        self.assertFalse(state.device_status.wifi_radio_enabled)

    def test_quit_from_any_modal(self) -> None:
        for modal in (Browsing(), EnteringPassword("Cafe"), Connecting("Cafe"), ShowingError("x")):
            state = apply(browsing(CAFE, modal=modal), Quit())
            self.assertIsInstance(state, Quitting)
            self.assertIs(modal_kind(state), ModalKind.QUITTING)

    def test_quitting_absorbs_everything(self) -> None:
        state = Quitting()

        self.assertIs(apply(state, NetworksFound((CAFE,))), state)
        self.assertIsNone(plan(state, RequestScan()))

    def test_request_scan_plans_scan_everywhere(self) -> None:
        for modal in (Browsing(), EnteringPassword("Cafe"), Connecting("Cafe")):
            command, state = step(browsing(CAFE, modal=modal), RequestScan())
            self.assertEqual(command, ScanCommand())
            self.assertEqual(state.modal, modal)


class TestConnectFlow(unittest.TestCase):
    def test_unknown_network_asks_for_password(self) -> None:
        command, state = step(browsing(CAFE), Select())

        self.assertIsNone(command)
        self.assertEqual(state.modal, EnteringPassword("Cafe"))

    def test_password_entry_and_submit(self) -> None:
        state = browsing(CAFE, modal=EnteringPassword("Cafe"))
        for char in "latte":
            state = apply(state, InsertText(char))
        state = apply(state, DeleteBackward())

        command, state = step(state, Submit())

        self.assertEqual(command, ConnectCommand("Cafe", "latt"))
        self.assertEqual(state.modal, Connecting("Cafe"))

    def test_wrong_password_returns_to_entry_with_message(self) -> None:
        state = browsing(CAFE, modal=Connecting("Cafe"))

        state = apply(state, ConnectionFailed("Cafe", IncorrectPassword()))

        self.assertEqual(state.modal, EnteringPassword("Cafe", last_error=INCORRECT_PASSWORD_TEXT))
        self.assertEqual(state.modal.password_text, "")

    def test_other_failure_shows_error(self) -> None:
        state = browsing(CAFE, modal=Connecting("Cafe"))

        state = apply(state, ConnectionFailed("Cafe", ActivationTimeout()))

        self.assertEqual(state.modal, ShowingError("Connection failed: Connection timeout"))

    def test_success_returns_to_browsing(self) -> None:
        state = apply(browsing(CAFE, modal=Connecting("Cafe")), ConnectionSucceeded("Cafe"))

        self.assertIsInstance(state.modal, Browsing)

    def test_stale_success_is_ignored(self) -> None:
        state = browsing(CAFE, modal=EnteringPassword("Cafe"))

        self.assertIs(apply(state, ConnectionSucceeded("Home")), state)

    def test_stale_failure_while_browsing_shows_error(self) -> None:
        state = apply(browsing(CAFE), ConnectionFailed("Home", ActivationTimeout()))

        self.assertIsInstance(state.modal, ShowingError)

    def test_known_network_connects_without_password(self) -> None:
        command, state = step(browsing(HOME), Select())

        self.assertEqual(command, ConnectCommand("Home", ""))
        self.assertEqual(state.modal, Connecting("Home"))

    def test_known_network_never_sends_typed_password(self) -> None:
        state = browsing(HOME, modal=EnteringPassword("Home", buffer=LineBuffer("secret", 6)))

        command, _ = step(state, Submit())

        self.assertEqual(command, ConnectCommand("Home", ""))

    def test_active_network_asks_to_disconnect(self) -> None:
        command, state = step(browsing(OFFICE), Select())
        self.assertIsNone(command)
        self.assertIsInstance(state.modal, ConfirmingDisconnect)

        command, state = step(state, Submit())
        self.assertEqual(command, DisconnectCommand())
        self.assertIsInstance(state.modal, Browsing)

    def test_weak_unknown_network_warns_then_asks_for_password(self) -> None:
        command, state = step(browsing(LIBRARY), Select())
        self.assertIsNone(command)
        self.assertEqual(state.modal, ConfirmingWeakSecurity("Library", "Open"))

        command, state = step(state, Submit())
        self.assertIsNone(command)
        self.assertEqual(state.modal, EnteringPassword("Library"))

    def test_weak_known_network_connects_after_confirmation(self) -> None:
        saved = replace(LIBRARY, is_known=True)
        state = browsing(saved, modal=ConfirmingWeakSecurity("Library", "Open"))

        command, state = step(state, Submit())

        self.assertEqual(command, ConnectCommand("Library", ""))
        self.assertEqual(state.modal, Connecting("Library"))

    def test_spinner_advances_only_while_connecting(self) -> None:
        state = apply(browsing(CAFE, modal=Connecting("Cafe")), Tick())
        self.assertEqual(state.modal.spinner_frame, 1)

        idle = browsing(CAFE)
        self.assertIs(apply(idle, Tick()), idle)

    def test_connecting_ignores_input(self) -> None:
        state = browsing(CAFE, modal=Connecting("Cafe"))

        for message in (Cancel(), Submit(), MoveDown(), InsertText("x")):
            self.assertIs(apply(state, message), state)
            self.assertIsNone(plan(state, message))

    def test_word_navigation_in_password(self) -> None:
        state = browsing(CAFE, modal=EnteringPassword("Cafe", buffer=LineBuffer("hello world", 11)))

        state = apply(state, WordLeft())

        self.assertEqual(state.modal.cursor_position, 6)


class TestCancel(unittest.TestCase):
    def test_cancel_returns_to_browsing_from_every_dialog(self) -> None:
        dialogs = (
            EnteringPassword("Cafe"),
            ShowingError("Something broke"),
            ConfirmingDisconnect(),
            ConfirmingForget(),
            ConfirmingWeakSecurity("Library", "Open"),
        )
        for modal in dialogs:
            command, state = step(browsing(CAFE, HOME, selected=1, modal=modal), Cancel())
            self.assertIsNone(command)
            self.assertIsInstance(state.modal, Browsing)
            self.assertEqual(state.selected_index, 1)


class TestForgetAndAutoconnect(unittest.TestCase):
    def test_forget_known_network(self) -> None:
        command, state = step(browsing(HOME), RequestForget())
        self.assertIsNone(command)
        self.assertIsInstance(state.modal, ConfirmingForget)

        command, state = step(state, Submit())
        self.assertEqual(command, ForgetCommand("Home"))
        self.assertIsInstance(state.modal, Browsing)

    def test_forget_unknown_network_is_ignored(self) -> None:
        state = browsing(CAFE)

        command, updated = step(state, RequestForget())

        self.assertIsNone(command)
        self.assertIs(updated, state)

    def test_toggle_details(self) -> None:
        state = apply(browsing(CAFE), ToggleDetails())

        self.assertTrue(state.show_details)
        self.assertFalse(apply(state, ToggleDetails()).show_details)

    def test_toggle_autoconnect_needs_details(self) -> None:
        state = browsing(HOME)

        command, updated = step(state, ToggleAutoconnect())

        self.assertIsNone(command)
        self.assertIs(updated, state)

    def test_toggle_autoconnect_known_network(self) -> None:
        command, state = step(browsing(HOME, show_details=True), ToggleAutoconnect())

        self.assertEqual(command, ToggleAutoconnectCommand("Home"))
        self.assertIsInstance(state.modal, Browsing)

    def test_toggle_autoconnect_unknown_network_explains(self) -> None:
        command, state = step(browsing(CAFE, show_details=True), ToggleAutoconnect())

        self.assertIsNone(command)
        self.assertIsInstance(state.modal, ShowingError)


class TestRefresh(unittest.TestCase):
    def test_selection_follows_ssid(self) -> None:
        state = browsing(CAFE, HOME, selected=1)

        state = apply(state, NetworksFound((HOME, CAFE)))

        self.assertEqual(state.selected_network.ssid, "Home")
        self.assertEqual(state.selected_index, 0)

    def test_vanished_selection_is_clamped_while_browsing(self) -> None:
        state = browsing(CAFE, HOME, LIBRARY, selected=2)

        state = apply(state, NetworksFound((CAFE, HOME)))

        self.assertEqual(state.selected_index, 1)

    def test_empty_scan_clears_selection(self) -> None:
        state = apply(browsing(CAFE), NetworksFound(()))

        self.assertIsNone(state.selected_index)

    def test_vanished_selection_under_dialog_is_cleared(self) -> None:
        state = browsing(CAFE, HOME, selected=1, modal=ConfirmingForget())

        state = apply(state, NetworksFound((CAFE,)))

        self.assertIsNone(state.selected_index)
        self.assertIsInstance(state.modal, ConfirmingForget)
        self.assertIsNone(plan(state, Submit()))

    def test_password_target_vanishing_shows_error(self) -> None:
        state = browsing(CAFE, HOME, modal=EnteringPassword("Cafe"))

        state = apply(state, NetworksFound((HOME,)))

        self.assertEqual(state.modal, ShowingError('Network "Cafe" is no longer available.'))
        self.assertIsNone(state.selected_index)

    def test_refresh_keeps_password_in_progress(self) -> None:
        modal = EnteringPassword("Cafe", buffer=LineBuffer("abc", 3))
        state = browsing(CAFE, modal=modal)

        state = apply(state, NetworksFound((HOME, CAFE)))

        self.assertEqual(state.modal, modal)
        self.assertEqual(state.selected_index, 1)


class TestServiceError(unittest.TestCase):
    def test_shown_while_browsing(self) -> None:
        state = apply(browsing(CAFE), ServiceError("NetworkManager went away"))

        self.assertEqual(state.modal, ShowingError("NetworkManager went away"))

    def test_does_not_interrupt_password_entry(self) -> None:
        state = browsing(CAFE, modal=EnteringPassword("Cafe"))

        self.assertIs(apply(state, ServiceError("Scan failed")), state)


if __name__ == "__main__":
    unittest.main()
