# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import dataclasses

from .commontypes import Rect
from .keystate import Chord


@dataclasses.dataclass(kw_only=True)
class Preview:
    """Recently sent chords, shown in a one-row strip.

    The history is in one of two modes. Visible mode holds plain characters, which render as typed
    text. Chord mode holds repetitions of a single modifier chord or named key, which render as one
    indicator with a repeat count; only the chord itself is kept, alongside the count. Sending
    something that does not fit the current mode starts a fresh history.
    """

    region: Rect
    history: list[Chord] = dataclasses.field(default_factory=list)
    repeats: int = 0

    @property
    def capacity(self):
        return self.region.spread.width

    @property
    def in_chord_mode(self):
        return bool(self.history) and not self.history[-1].is_visible

    def on_chord_sent(self, chord: Chord):
        if chord.is_visible:
            if self.in_chord_mode:
                self.history.clear()
            self.history.append(chord)
            del self.history[: -self.capacity]
            self.repeats = 0
        elif self.history == [chord]:
            self.repeats += 1
        else:
            self.history = [chord]
            self.repeats = 1

    @property
    def repeat_count(self):
        return self.repeats if self.in_chord_mode else 0

    def typed_text(self, limit: int) -> str:
        if limit <= 0:
            return ""
        return "".join(chord.code.char for chord in self.history[-limit:])
