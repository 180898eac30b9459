# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
"""Key codes a virtual key can carry.

A KeyCode is one of three frozen structs: a printable character, a named key
(modifiers, navigation, editing and the tmux control actions) or a pane
selector. Consumers match on the struct type rather than subclassing.
"""
from __future__ import annotations

import enum
import typing

import msgspec


@enum.unique
class Special(enum.Enum):
    SHIFT = "S-"
    CTRL = "C-"
    ALT = "M-"
    UP = "Up"
    DOWN = "Down"
    LEFT = "Left"
    RIGHT = "Right"
    ENTER = "Enter"
    BACKSPACE = "BSpace"
    DELETE = "Delete"
    TAB = "Tab"
    QUIT = "Quit"
    DISPLAY_PANES = "DisplayPanes"
    SHOW_CURSOR = "ShowCursor"
    COPY_MODE = "CopyMode"
    PASTE = "Paste"

    @property
    def token(self):
        "The spelling used in layout files."
        return self.value


MODIFIERS = frozenset({Special.SHIFT, Special.CTRL, Special.ALT})
ARROWS = frozenset({Special.UP, Special.DOWN, Special.LEFT, Special.RIGHT})
CONTROL_ACTIONS = frozenset(
    {Special.QUIT, Special.DISPLAY_PANES, Special.SHOW_CURSOR, Special.COPY_MODE, Special.PASTE}
)

LABELS = {
    Special.QUIT: "Quit",
    Special.DISPLAY_PANES: "Panes",
    Special.SHOW_CURSOR: "Cursor",
    Special.COPY_MODE: "Copy",
    Special.PASTE: "Paste",
}

# tmux key names, where they differ from the layout token
NOTATIONS = {
    Special.DELETE: "DC",
}


class Char(msgspec.Struct, frozen=True):
    char: str

    @property
    def label(self):
        return "Space" if self.char == " " else self.char

    @property
    def notation(self):
        return "Space" if self.char == " " else self.char

    def is_modifier(self):
        return False

    def is_control(self):
        return False

    def is_modifiable(self):
        return True

    def default_shift(self) -> Char:
        if "a" <= self.char <= "z":
            return Char(self.char.upper())
        return self


class Named(msgspec.Struct, frozen=True):
    name: Special

    @property
    def label(self):
        return LABELS.get(self.name, self.name.value)

    @property
    def notation(self):
        if self.is_control():
            raise ValueError(f"{self.name} is an action, not a key")
        return NOTATIONS.get(self.name, self.name.value)

    def is_modifier(self):
        return self.name in MODIFIERS

    def is_control(self):
        return self.name in CONTROL_ACTIONS

    def is_modifiable(self):
        return self.name in ARROWS

    def default_shift(self) -> Named:
        return self


class SelectPane(msgspec.Struct, frozen=True):
    index: int

    @property
    def label(self):
        return f"#{self.index}"

    @property
    def notation(self):
        raise ValueError("SelectPane is an action, not a key")

    def is_modifier(self):
        return False

    def is_control(self):
        return True

    def is_modifiable(self):
        return False

    def default_shift(self) -> SelectPane:
        return self


KeyCode = Char | Named | SelectPane

SHIFT = Named(Special.SHIFT)
CTRL = Named(Special.CTRL)
ALT = Named(Special.ALT)

_BY_TOKEN = {s.token: s for s in Special}


def parse_key_code(value: typing.Any) -> KeyCode:
    """Convert a layout-file token into a KeyCode.

    Tokens are either a named key ("S-", "Up", "BSpace", "Quit", ...), a single printable
    ASCII character, or a mapping of the form {"select_pane": N}.

    Raises ValueError for anything else.
    """
    if isinstance(value, dict):
        if set(value) != {"select_pane"}:
            raise ValueError(f"unknown key code {value!r}")
        index = value["select_pane"]
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise ValueError(f"select_pane index must be a non-negative integer, not {index!r}")
        return SelectPane(index)
    if not isinstance(value, str):
        raise ValueError(f"key code must be a string, not {value!r}")
    if value in _BY_TOKEN:
        return Named(_BY_TOKEN[value])
    if len(value) == 1 and " " <= value <= "~":
        return Char(value)
    raise ValueError(f"unknown key code {value!r}")
