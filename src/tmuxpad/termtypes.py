# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import enum

import msgspec

from .commontypes import Point, Size, TmuxpadError


class TerminalError(TmuxpadError):
    pass


class KeyInput(msgspec.Struct, frozen=True):
    # a single character, or a complete escape sequence
    key: str


class MouseButton(enum.IntEnum):
    LEFT = 0
    MIDDLE = 1
    RIGHT = 2
    NONE = 3


class MouseAction(enum.Enum):
    PRESSED = enum.auto()
    RELEASED = enum.auto()
    DRAGGED = enum.auto()
    SCROLLED = enum.auto()


class MouseInput(msgspec.Struct, frozen=True):
    location: Point
    button: MouseButton
    action: MouseAction

    @classmethod
    def released(cls, x: int, y: int, button: MouseButton = MouseButton.LEFT):
        return cls(location=Point(x=x, y=y), button=button, action=MouseAction.RELEASED)

    @classmethod
    def pressed(cls, x: int, y: int, button: MouseButton = MouseButton.LEFT):
        return cls(location=Point(x=x, y=y), button=button, action=MouseAction.PRESSED)


class Resize(msgspec.Struct, frozen=True):
    size: Size


TerminalInput = KeyInput | MouseInput

TerminalEvent = KeyInput | MouseInput | Resize
