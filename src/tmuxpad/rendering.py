# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import collections.abc
import enum
import logging
import typing

import msgspec

from .commontypes import Point, Rect, Size
from .keystate import KeyState, PressState
from .layout import Layout
from .preview import Preview

logger = logging.getLogger(__name__)


class Style(enum.Flag):
    PLAIN = 0
    BOLD = enum.auto()
    ITALIC = enum.auto()
    REVERSE = enum.auto()
    UNDERLINE = enum.auto()


class Cell(msgspec.Struct, frozen=True):
    char: str = " "
    style: Style = Style.PLAIN


BLANK = Cell()


class Frame:
    "A rectangular buffer of styled cells."

    def __init__(self, size: Size):
        self.size = size
        self.rows = [[BLANK] * size.width for _ in range(size.height)]

    def put(self, location: Point, text: str, style: Style = Style.PLAIN):
        "Write text starting at location, clipping anything outside the frame."
        if not 0 <= location.y < self.size.height:
            return
        row = self.rows[location.y]
        for offset, char in enumerate(text):
            x = location.x + offset
            if 0 <= x < self.size.width:
                row[x] = Cell(char=char, style=style)

    def paste(self, other: Frame, origin: Point):
        for y, row in enumerate(other.rows):
            target_y = origin.y + y
            if not 0 <= target_y < self.size.height:
                continue
            for x, cell in enumerate(row):
                target_x = origin.x + x
                if 0 <= target_x < self.size.width:
                    self.rows[target_y][target_x] = cell

    def cell(self, location: Point) -> Cell:
        return self.rows[location.y][location.x]

    def text(self) -> list[str]:
        return ["".join(cell.char for cell in row) for row in self.rows]


def key_style(keystate: KeyState) -> Style:
    match keystate.press:
        case PressState.NEUTRAL:
            style = Style.PLAIN
        case PressState.PRESSED:
            style = Style.BOLD
        case PressState.ACTIVATED if keystate.code.is_modifier():
            style = Style.ITALIC | Style.REVERSE
        case PressState.ACTIVATED:
            style = Style.BOLD | Style.REVERSE
        case PressState.ONESHOT_ACTIVATED:
            style = Style.ITALIC
    if keystate.selected:
        style |= Style.BOLD
    return style


def render_key(keystate: KeyState, shift_active: bool, highlighted: bool = False) -> Frame:
    size = keystate.key.region.spread
    frame = Frame(size)
    style = key_style(keystate)
    inner = size.width - 2

    frame.put(Point(x=0, y=0), "┌" + "─" * inner + "┐", style)
    for y in range(1, size.height - 1):
        frame.put(Point(x=0, y=y), "│" + " " * inner + "│", style)
    frame.put(Point(x=0, y=size.height - 1), "└" + "─" * inner + "┘", style)

    code = keystate.key.shift_code if shift_active else keystate.key.code
    label = code.label[:inner]
    label_style = style | Style.UNDERLINE if highlighted else style
    frame.put(Point(x=1 + (inner - len(label)) // 2, y=(size.height - 1) // 2), label, label_style)
    return frame


def render_preview(preview: Preview) -> Frame:
    frame = Frame(preview.region.spread)
    if not preview.history:
        return frame
    frame.put(Point(x=0, y=0), "> ")
    if preview.in_chord_mode:
        indicator = preview.history[-1].label
        frame.put(Point(x=2, y=0), indicator, Style.BOLD | Style.ITALIC)
        if preview.repeat_count > 1:
            frame.put(Point(x=2 + len(indicator), y=0), f" (x{preview.repeat_count})")
    else:
        # leave room for the prompt and the cursor cell
        text = preview.typed_text(preview.region.spread.width - 3)
        frame.put(Point(x=2, y=0), text, Style.BOLD)
        frame.put(Point(x=2 + len(text), y=0), " ", Style.REVERSE)
    return frame


def centering_offset(content: Size, available: Size) -> Point:
    return Point(
        x=max(0, (available.width - content.width) // 2),
        y=max(0, (available.height - content.height) // 2),
    )


class Renderer:
    """Draws a layout's key states, centered in the terminal.

    Call resize whenever the terminal size changes; the centering offset is recomputed there and is
    also what input coordinates must be translated by.
    """

    def __init__(self, layout: Layout, terminal_size: Size):
        self.layout = layout
        self.bounds = layout.bounds
        self.resize(terminal_size)

    def resize(self, terminal_size: Size):
        self.terminal_size = terminal_size
        self.offset = centering_offset(self.bounds.spread, terminal_size)
        logger.debug("Terminal is %r; layout offset is %r", terminal_size, self.offset)

    def render(
        self,
        keystates: collections.abc.Iterable[KeyState],
        shift_active: bool,
        preview: typing.Optional[Preview] = None,
        highlighted: typing.Optional[int] = None,
    ) -> Frame:
        frame = Frame(self.terminal_size)
        for index, keystate in enumerate(keystates):
            region: Rect = keystate.key.region
            frame.paste(render_key(keystate, shift_active, index == highlighted), region.origin + self.offset)
        if preview is not None:
            frame.paste(render_preview(preview), preview.region.origin + self.offset)
        return frame
