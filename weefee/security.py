from __future__ import annotations

# NM80211ApSecurityFlags
KEY_MGMT_PSK = 0x100
KEY_MGMT_802_1X = 0x200
KEY_MGMT_SAE = 0x400

OPEN_LABEL = "Open"
UNRECOGNIZED_LABEL = "WEP/Open"
LEGACY_LABEL = "WPA"


def classify(wpa_flags: int, rsn_flags: int) -> tuple[str, bool]:
    """Return ``(label, is_weak)`` for an access point's security flags."""
    if not wpa_flags and not rsn_flags:
        return OPEN_LABEL, True

    modes: list[str] = []
    if rsn_flags & KEY_MGMT_SAE:
        modes.append("WPA3")
    elif rsn_flags & KEY_MGMT_PSK:
        modes.append("WPA2")
    elif rsn_flags & KEY_MGMT_802_1X:
        modes.append("WPA2-Ent")
    elif rsn_flags:
        modes.append("RSN")

    if not modes and wpa_flags:
        modes.append(LEGACY_LABEL)

    if not modes:
        return UNRECOGNIZED_LABEL, True
    return "/".join(modes), modes == [LEGACY_LABEL]
