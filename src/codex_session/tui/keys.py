"""Key names understood by the browser state machine.

Keys are plain strings: printable characters as themselves, everything
else by name. `translate_key` maps textual key events onto these names.
"""

UP = "up"
DOWN = "down"
LEFT = "left"
RIGHT = "right"
ENTER = "enter"
ESC = "esc"
BACKSPACE = "backspace"
TAB = "tab"
CTRL_C = "ctrl-c"

# textual key name -> browser key, for keys the app binds with priority
BOUND_KEYS = {
    "up": UP,
    "down": DOWN,
    "left": LEFT,
    "right": RIGHT,
    "enter": ENTER,
    "escape": ESC,
    "backspace": BACKSPACE,
    "tab": TAB,
    "ctrl+c": CTRL_C,
}


def is_printable(key: str) -> bool:
    return len(key) == 1 and key.isprintable()


def translate_key(key: str, character: str | None) -> str | None:
    """Map a textual key event to a browser key, or None to ignore it."""
    named = BOUND_KEYS.get(key)
    if named is not None:
        return named
    if character is not None and is_printable(character):
        return character
    return None
