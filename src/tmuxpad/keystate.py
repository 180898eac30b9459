# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import collections.abc
import enum
import logging

import attr
import msgspec

from .keycodes import ALT, CTRL, SHIFT, Char, KeyCode, Named, SelectPane
from .layout import Key

logger = logging.getLogger(__name__)


class PressState(enum.Enum):
    NEUTRAL = enum.auto()
    PRESSED = enum.auto()
    ACTIVATED = enum.auto()
    ONESHOT_ACTIVATED = enum.auto()


class Chord(msgspec.Struct, frozen=True):
    code: KeyCode
    ctrl: bool = False
    alt: bool = False

    def _prefix(self):
        return ("C-" if self.ctrl else "") + ("M-" if self.alt else "")

    @property
    def notation(self):
        "tmux send-keys notation."
        return self._prefix() + self.code.notation

    @property
    def label(self):
        return self._prefix() + self.code.label

    @property
    def is_visible(self):
        "True when sending this chord types a character."
        return not (self.ctrl or self.alt) and isinstance(self.code, Char)


@attr.s(auto_attribs=True, kw_only=True)
class KeyState:
    key: Key
    press: PressState = PressState.NEUTRAL
    selected: bool = False

    @property
    def code(self):
        return self.key.code


class KeyboardState:
    """Press state for every key of a layout, in layout order.

    Modifier keys toggle NEUTRAL -> ONESHOT_ACTIVATED -> ACTIVATED -> NEUTRAL on each tap. A one-shot
    modifier is consumed by the next normal key: it is promoted to PRESSED before the chord is
    composed, and goes back to NEUTRAL on the normal key tap after that.
    """

    def __init__(self, keys: collections.abc.Iterable[Key]):
        self.keystates = [KeyState(key=key) for key in keys]

    def __len__(self):
        return len(self.keystates)

    def __getitem__(self, index) -> KeyState:
        return self.keystates[index]

    def __iter__(self):
        return iter(self.keystates)

    def _release_pressed(self, *, keep: KeyState | None = None):
        for keystate in self.keystates:
            if keystate is not keep and keystate.press is PressState.PRESSED:
                keystate.press = PressState.NEUTRAL

    def is_active(self, modifier: Named) -> bool:
        "Whether the modifier applies to a chord composed right now."
        return any(
            ks.code == modifier and ks.press in (PressState.PRESSED, PressState.ACTIVATED) for ks in self.keystates
        )

    @property
    def shift_label_active(self) -> bool:
        "Whether keycaps should show their shifted label. Unlike is_active, an armed one-shot counts."
        return any(
            ks.code == SHIFT and ks.press in (PressState.ACTIVATED, PressState.ONESHOT_ACTIVATED)
            for ks in self.keystates
        )

    def compose(self, key: Key) -> Chord:
        code = key.shift_code if self.is_active(SHIFT) else key.code
        modifiable = code.is_modifiable()
        return Chord(
            code=code,
            ctrl=modifiable and self.is_active(CTRL),
            alt=modifiable and self.is_active(ALT),
        )

    def tap_modifier(self, index: int):
        tapped = self.keystates[index]
        self._release_pressed(keep=tapped)
        match tapped.press:
            case PressState.NEUTRAL | PressState.PRESSED:
                tapped.press = PressState.ONESHOT_ACTIVATED
            case PressState.ONESHOT_ACTIVATED:
                tapped.press = PressState.ACTIVATED
            case PressState.ACTIVATED:
                tapped.press = PressState.NEUTRAL
        logger.debug("Modifier %s is now %s", tapped.code.label, tapped.press.name)

    def tap_normal(self, index: int) -> Chord:
        tapped = self.keystates[index]
        self._release_pressed()
        for keystate in self.keystates:
            if keystate.code.is_modifier() and keystate.press is PressState.ONESHOT_ACTIVATED:
                keystate.press = PressState.PRESSED
        tapped.press = PressState.PRESSED
        return self.compose(tapped.key)

    def tap_control(self, index: int) -> KeyCode:
        tapped = self.keystates[index]
        self._release_pressed()
        tapped.press = PressState.PRESSED
        if isinstance(tapped.code, SelectPane):
            for keystate in self.keystates:
                if isinstance(keystate.code, SelectPane):
                    keystate.selected = keystate is tapped
        return tapped.code
