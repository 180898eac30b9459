# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import contextlib
import errno
import logging
import os
import signal
import sys
import typing
from contextlib import aclosing

import blessed
import trio

from .commontypes import NotInContextError, Size
from .rendering import Frame, Style
from .streams import make_inputstream
from .termtypes import Resize, TerminalError, TerminalEvent

logger = logging.getLogger(__name__)

# button press/release, drag reporting, SGR extended coordinates
MOUSE_REPORTING_ON = "\x1b[?1000h\x1b[?1002h\x1b[?1006h"
MOUSE_REPORTING_OFF = "\x1b[?1006l\x1b[?1002l\x1b[?1000l"


class Terminal(contextlib.AbstractContextManager):
    """The controlling terminal, in fullscreen raw mode with mouse reporting.

    Use as a context manager; the previous terminal state is restored on exit.
    """

    def __init__(self, term: typing.Optional[blessed.Terminal] = None):
        self.term = term if term is not None else blessed.Terminal()
        self._stack = None

    def __enter__(self):
        if not self.term.is_a_tty:
            raise TerminalError("tmuxpad must be run in a terminal")
        with contextlib.ExitStack() as stack:
            stack.enter_context(self.term.fullscreen())
            stack.enter_context(self.term.raw())
            stack.enter_context(self.term.hidden_cursor())
            self._write(MOUSE_REPORTING_ON)
            stack.callback(self._write, MOUSE_REPORTING_OFF)
            self._stack = stack.pop_all()
        return self

    def __exit__(self, _exc_type, _exc_value, _traceback):
        self._stack.close()
        self._stack = None
        return False

    def _write(self, text: str):
        self.term.stream.write(text)
        self.term.stream.flush()

    def size(self) -> Size:
        return Size(width=self.term.width, height=self.term.height)

    def _style(self, style: Style) -> str:
        parts = [self.term.normal]
        if Style.BOLD in style:
            parts.append(self.term.bold)
        if Style.ITALIC in style:
            parts.append(self.term.italic)
        if Style.REVERSE in style:
            parts.append(self.term.reverse)
        if Style.UNDERLINE in style:
            parts.append(self.term.underline)
        return "".join(parts)

    def draw(self, frame: Frame):
        if self._stack is None:
            raise NotInContextError()
        out = []
        for y, row in enumerate(frame.rows):
            out.append(self.term.move_xy(0, y))
            current = None
            for cell in row:
                if cell.style != current:
                    out.append(self._style(cell.style))
                    current = cell.style
                out.append(cell.char)
        out.append(self.term.normal)
        self._write("".join(out))

    def _input_fd(self) -> int:
        try:
            fd = sys.stdin.fileno()
        except (AttributeError, OSError, ValueError) as exc:
            raise TerminalError("no keyboard input available") from exc
        if not os.isatty(fd):
            raise TerminalError("standard input is not a terminal")
        return fd

    async def _read_chunks(self):
        fd = self._input_fd()
        while True:
            await trio.lowlevel.wait_readable(fd)
            try:
                data = os.read(fd, 1024)
            except OSError as exc:
                if exc.errno in (errno.EAGAIN, errno.EINTR):
                    continue
                raise TerminalError("unable to read from the terminal") from exc
            if not data:
                return
            yield data

    async def _pump_resizes(self, event_channel: trio.MemorySendChannel[TerminalEvent]):
        with trio.open_signal_receiver(signal.SIGWINCH) as signals:
            async with event_channel:
                async for _ in signals:
                    await event_channel.send(Resize(size=self.size()))

    async def run(self, event_channel: trio.MemorySendChannel[TerminalEvent], *, task_status=trio.TASK_STATUS_IGNORED):
        if self._stack is None:
            raise NotInContextError()
        async with trio.open_nursery() as nursery:
            nursery.start_soon(self._pump_resizes, event_channel.clone())
            task_status.started()
            async with event_channel, aclosing(self._read_chunks()) as chunks, make_inputstream(chunks) as inputstream:
                async for event in inputstream:
                    await event_channel.send(event)
            logger.debug("Terminal input closed")
            nursery.cancel_scope.cancel()
