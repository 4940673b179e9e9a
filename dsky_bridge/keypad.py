"""Keypad codec translating hardware keystrokes into DSKY key commands."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Union


class AgcKey(str, Enum):
    """Keys of the DSKY keyboard accepted by the simulator."""

    VERB = "VERB"
    NOUN = "NOUN"
    PLUS = "PLUS"
    MINUS = "MINUS"
    KEY_REL = "KEY_REL"
    PRO = "PRO"
    CLEAR = "CLEAR"
    ENTER = "ENTER"
    RESET = "RESET"
    D0 = "D0"
    D1 = "D1"
    D2 = "D2"
    D3 = "D3"
    D4 = "D4"
    D5 = "D5"
    D6 = "D6"
    D7 = "D7"
    D8 = "D8"
    D9 = "D9"


KEY_MAP: Dict[str, AgcKey] = {
    "v": AgcKey.VERB,
    "n": AgcKey.NOUN,
    "+": AgcKey.PLUS,
    "-": AgcKey.MINUS,
    "k": AgcKey.KEY_REL,
    "p": AgcKey.PRO,
    "c": AgcKey.CLEAR,
    "e": AgcKey.ENTER,
    "r": AgcKey.RESET,
    **{str(digit): AgcKey(f"D{digit}") for digit in range(10)},
}


def decode_key(message: Union[str, bytes, None]) -> Optional[AgcKey]:
    """Return the key for a keystroke message, or ``None`` if unrecognized.

    Only the first non-blank character is significant and matching is
    case-insensitive, so ``"V"``, ``"v"`` and ``"v2"`` all decode to ``VERB``.
    """

    if message is None:
        return None
    if isinstance(message, bytes):
        try:
            message = message.decode("utf-8")
        except UnicodeDecodeError:
            return None

    text = message.strip()
    if not text:
        return None
    return KEY_MAP.get(text[0].lower())
