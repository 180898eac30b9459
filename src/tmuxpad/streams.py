# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import abc
import codecs
import re
import typing
from contextlib import aclosing, asynccontextmanager
from typing import Any, AsyncIterable, cast

import trio

from .commontypes import Point
from .termtypes import KeyInput, MouseAction, MouseButton, MouseInput, TerminalInput

ESC = "\x1b"
SGR_MOUSE = re.compile(r"\x1b\[<(?P<code>\d+);(?P<x>\d+);(?P<y>\d+)(?P<final>[Mm])\Z")

MOTION_BIT = 32
WHEEL_BIT = 64


class Section(abc.ABC):
    @abc.abstractmethod
    async def pump(self, source: trio.MemoryReceiveChannel[Any], sink: trio.MemorySendChannel[Any]): ...


# stage 1: bytes from the tty into text
class DecodeText(Section):
    def __init__(self):
        self.decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    async def pump(self, source: trio.MemoryReceiveChannel[bytes], sink: trio.MemorySendChannel[str]):
        async with aclosing(source), aclosing(sink):
            async for chunk in source:
                text = self.decoder.decode(chunk)
                if text:
                    await sink.send(text)


def _sequence_end(buffer: str, start: int) -> typing.Optional[int]:
    "Index just past the escape sequence beginning at start, or None if it is incomplete."
    if start + 1 >= len(buffer):
        return None
    introducer = buffer[start + 1]
    if introducer == "[":
        for i in range(start + 2, len(buffer)):
            if "\x40" <= buffer[i] <= "\x7e":
                return i + 1
        return None
    if introducer == "O":
        return start + 3 if start + 2 < len(buffer) else None
    return start + 2


def split_sequences(buffer: str) -> tuple[list[str], str]:
    "Split buffer into characters and complete escape sequences. Returns (sequences, remainder)."
    sequences = []
    pos = 0
    while pos < len(buffer):
        if buffer[pos] != ESC:
            sequences.append(buffer[pos])
            pos += 1
            continue
        end = _sequence_end(buffer, pos)
        if end is None:
            return sequences, buffer[pos:]
        sequences.append(buffer[pos:end])
        pos = end
    return sequences, ""


# stage 2: text into single characters and escape sequences
class SplitSequences(Section):
    async def pump(self, source: trio.MemoryReceiveChannel[str], sink: trio.MemorySendChannel[str]):
        async with aclosing(source), aclosing(sink):
            pending = ""
            async for text in source:
                sequences, pending = split_sequences(pending + text)
                if pending == ESC:
                    # a chunk ending in a bare escape is the escape key itself
                    sequences.append(pending)
                    pending = ""
                for sequence in sequences:
                    await sink.send(sequence)


def decode_sequence(sequence: str) -> TerminalInput:
    match = SGR_MOUSE.match(sequence)
    if match is None:
        return KeyInput(key=sequence)
    code = int(match["code"])
    if code & WHEEL_BIT:
        action = MouseAction.SCROLLED
    elif match["final"] == "m":
        action = MouseAction.RELEASED
    elif code & MOTION_BIT:
        action = MouseAction.DRAGGED
    else:
        action = MouseAction.PRESSED
    # SGR coordinates are 1-based
    return MouseInput(
        location=Point(x=int(match["x"]) - 1, y=int(match["y"]) - 1),
        button=MouseButton(code & 3),
        action=action,
    )


# stage 3: sequences into key and mouse events
class DecodeInput(Section):
    async def pump(self, source: trio.MemoryReceiveChannel[str], sink: trio.MemorySendChannel[TerminalInput]):
        async with aclosing(source), aclosing(sink):
            async for sequence in source:
                await sink.send(decode_sequence(sequence))


@asynccontextmanager
async def pump_all(first_source: AsyncIterable[Any], *sections: Section):
    async with trio.open_nursery() as nursery:
        section_input = first_source
        for section in sections:
            section_send_channel, section_receive_channel = trio.open_memory_channel(0)
            nursery.start_soon(section.pump, section_input, section_send_channel)
            section_input = section_receive_channel
        yield section_input
        nursery.cancel_scope.cancel()


@asynccontextmanager
async def make_inputstream(byte_source: AsyncIterable[bytes]):
    async with pump_all(byte_source, DecodeText(), SplitSequences(), DecodeInput()) as inputstream:
        yield cast(trio.MemoryReceiveChannel[TerminalInput], inputstream)
