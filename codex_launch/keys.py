"""Key events for the picker and decoding of raw terminal input."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Key:
    """
    One key press.

    ``name`` is ``"char"`` for printable input (with ``char`` set), or a
    symbolic name such as ``"up"``, ``"enter"`` or ``"ctrl+o"``.
    """

    name: str
    char: Optional[str] = None

    @classmethod
    def of(cls, char: str) -> "Key":
        """Printable character key."""
        return cls("char", char)

    def __str__(self) -> str:
        return self.char if self.name == "char" and self.char else self.name


UP = Key("up")
DOWN = Key("down")
LEFT = Key("left")
RIGHT = Key("right")
PAGE_UP = Key("pageup")
PAGE_DOWN = Key("pagedown")
HOME = Key("home")
END = Key("end")
ENTER = Key("enter")
ESCAPE = Key("escape")
BACKSPACE = Key("backspace")
TAB = Key("tab")
SHIFT_TAB = Key("shift+tab")
CTRL_C = Key("ctrl+c")
CTRL_N = Key("ctrl+n")
CTRL_O = Key("ctrl+o")
CTRL_U = Key("ctrl+u")

# CSI / SS3 sequences (after the leading ESC)
ESCAPE_SEQUENCES = {
    "[A": UP,
    "[B": DOWN,
    "[C": RIGHT,
    "[D": LEFT,
    "OA": UP,
    "OB": DOWN,
    "OC": RIGHT,
    "OD": LEFT,
    "[H": HOME,
    "[F": END,
    "OH": HOME,
    "OF": END,
    "[1~": HOME,
    "[7~": HOME,
    "[4~": END,
    "[8~": END,
    "[5~": PAGE_UP,
    "[6~": PAGE_DOWN,
    "[Z": SHIFT_TAB,
}


def _control_key(ch: str) -> Optional[Key]:
    if ch in ("\r", "\n"):
        return ENTER
    if ch == "\t":
        return TAB
    if ch in ("\x7f", "\x08"):
        return BACKSPACE
    code = ord(ch)
    if 1 <= code <= 26:
        return Key(f"ctrl+{chr(code + 96)}")
    return None


def _read_sequence(data: str, start: int) -> tuple[Optional[Key], int]:
    """Decode an escape sequence at ``data[start]`` (the ESC)."""
    if start + 1 >= len(data):
        return ESCAPE, start + 1
    lead = data[start + 1]
    if lead == "O" and start + 2 < len(data):
        seq = data[start + 1:start + 3]
        return ESCAPE_SEQUENCES.get(seq), start + 3
    if lead != "[":
        # Alt+key or a lone ESC followed by typing
        return ESCAPE, start + 1
    end = start + 2
    # Parameter bytes, then one final byte in @..~
    while end < len(data) and not ("@" <= data[end] <= "~"):
        end += 1
    if end >= len(data):
        return None, len(data)
    seq = data[start + 1:end + 1]
    return ESCAPE_SEQUENCES.get(seq), end + 1


def decode_keys(data: str) -> list[Key]:
    """
    Split a chunk of raw terminal input into keys.

    Unknown escape sequences and unmapped control characters are dropped.
    """
    keys = []
    i = 0
    while i < len(data):
        ch = data[i]
        if ch == "\x1b":
            key, i = _read_sequence(data, i)
            if key is not None:
                keys.append(key)
            continue
        i += 1
        if ch.isprintable():
            keys.append(Key.of(ch))
            continue
        key = _control_key(ch)
        if key is not None:
            keys.append(key)
    return keys
