# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import collections.abc
import logging
import typing

import msgspec

from .commontypes import Point
from .keycodes import Named, Special
from .keystate import Chord, KeyboardState
from .termtypes import KeyInput, MouseAction, MouseInput, Resize, TerminalEvent
from .tmux import action_command

logger = logging.getLogger(__name__)


class SendChord(msgspec.Struct, frozen=True):
    chord: Chord


class RunCommand(msgspec.Struct, frozen=True):
    command: str
    args: tuple[str, ...] = ()


class Quit(msgspec.Struct, frozen=True):
    pass


OutgoingCommand = SendChord | RunCommand | Quit


class InputRouter:
    """Turns terminal events into key state changes.

    Only a mouse button release taps a key. Presses and drags move the highlight that shows which
    key is under the pointer.
    """

    def __init__(
        self,
        keyboard: KeyboardState,
        quit_keys: collections.abc.Iterable[str] = ("q", "\x03"),
        target: typing.Optional[str] = None,
        client: typing.Optional[str] = None,
    ):
        self.keyboard = keyboard
        self.quit_keys = frozenset(quit_keys)
        self.target = target
        self.client = client
        # the centering offset of the layout within the terminal
        self.offset = Point.zeroes()
        self.highlighted: typing.Optional[int] = None

    def hit_test(self, point: Point) -> typing.Optional[int]:
        "Index of the first key whose region contains the layout-local point."
        for index, keystate in enumerate(self.keyboard):
            if point in keystate.key.region:
                return index
        return None

    def _tap(self, index: int) -> typing.Optional[OutgoingCommand]:
        code = self.keyboard[index].code
        match code:
            case Named(name=Special.QUIT):
                self.keyboard.tap_control(index)
                return Quit()
            case _ if code.is_modifier():
                self.keyboard.tap_modifier(index)
                return None
            case _ if code.is_control():
                self.keyboard.tap_control(index)
                command, args = action_command(code, self.target, self.client)
                return RunCommand(command=command, args=tuple(args))
            case _:
                return SendChord(chord=self.keyboard.tap_normal(index))

    def dispatch(self, event: TerminalEvent) -> typing.Optional[OutgoingCommand]:
        match event:
            case KeyInput(key=key) if key in self.quit_keys:
                return Quit()
            case KeyInput():
                return None
            case MouseInput(action=MouseAction.SCROLLED):
                return None
            case MouseInput(action=MouseAction.PRESSED | MouseAction.DRAGGED, location=location):
                self.highlighted = self.hit_test(location - self.offset)
                return None
            case MouseInput(action=MouseAction.RELEASED, location=location):
                self.highlighted = None
                index = self.hit_test(location - self.offset)
                if index is None:
                    return None
                return self._tap(index)
            case Resize():
                return None
        raise NotImplementedError(f"Don't know how to handle {type(event)}.")
