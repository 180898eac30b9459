# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import argparse
import logging
import math
import pathlib
import sys
import typing

import outcome
import trio

from .keycodes import Named, Special
from .keystate import Chord, KeyboardState
from .layout import Layout, LayoutError, default_layout, load_layout
from .preview import Preview
from .rendering import Renderer
from .router import InputRouter, OutgoingCommand, Quit, RunCommand, SendChord
from .settings import Settings, SettingsError, Transport
from .terminal import Terminal
from .termtypes import Resize, TerminalError, TerminalEvent
from .tmux import Channel, ChannelRejectedError, ChannelTransportError, action_command, open_channel, send_keys_command

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Tmuxpad:
    """The event loop: draw, wait for input, update the key states, send to tmux.

    While the user is active, a quiet period of idle_timeout makes tmux redraw the target pane's
    cursor once. The next input arms that again.
    """

    def __init__(self, settings: Settings, layout: Layout, terminal: Terminal, channel: Channel):
        self.settings = settings
        self.terminal = terminal
        self.channel = channel
        self.keyboard = KeyboardState(layout.keys)
        self.router = InputRouter(
            self.keyboard,
            settings.quit_keys,
            target=settings.target_pane,
            client=settings.target_client,
        )
        self.preview = Preview(region=layout.preview) if layout.preview is not None else None
        self.renderer = Renderer(layout, terminal.size())
        self.router.offset = self.renderer.offset
        self._cursor_pending = True

    def redraw(self):
        frame = self.renderer.render(
            self.keyboard,
            self.keyboard.shift_label_active,
            preview=self.preview,
            highlighted=self.router.highlighted,
        )
        self.terminal.draw(frame)

    async def _send(self, command: str, args: typing.Iterable[str]) -> bool:
        "Returns whether tmux accepted the command."
        try:
            await self.channel.send(command, *args)
        except ChannelRejectedError as exc:
            logger.warning("%s", exc)
            return False
        return True

    async def send_chord(self, chord: Chord):
        command, args = send_keys_command(chord, self.settings.target_pane)
        if await self._send(command, args) and self.preview is not None:
            self.preview.on_chord_sent(chord)

    async def keep_cursor_visible(self):
        logger.debug("Idle; asking tmux to show the cursor")
        command, args = action_command(Named(name=Special.SHOW_CURSOR), self.settings.target_pane, self.settings.target_client)
        await self._send(command, args)

    def resize(self, event: Resize):
        self.renderer.resize(event.size)
        self.router.offset = self.renderer.offset

    async def execute(self, outgoing: OutgoingCommand) -> bool:
        "Returns False when the loop should stop."
        match outgoing:
            case SendChord(chord=chord):
                await self.send_chord(chord)
            case RunCommand(command=command, args=args):
                await self._send(command, args)
            case Quit():
                logger.info("Quit requested")
                return False
        return True

    async def run(self, events: trio.MemoryReceiveChannel[TerminalEvent]):
        while True:
            self.redraw()
            timeout = self.settings.idle_timeout.total_seconds() if self._cursor_pending else math.inf
            with trio.move_on_after(timeout) as idle_scope:
                try:
                    event = await events.receive()
                except trio.EndOfChannel:
                    logger.info("Terminal input ended")
                    return
            if idle_scope.cancelled_caught:
                self._cursor_pending = False
                await self.keep_cursor_visible()
                continue

            self._cursor_pending = True
            if isinstance(event, Resize):
                self.resize(event)
            outgoing = self.router.dispatch(event)
            if outgoing is not None and not await self.execute(outgoing):
                return


def _single_terminal_error(group: BaseExceptionGroup) -> typing.Optional[TerminalError]:
    "The TerminalError a nursery failed with, if that is all the group holds."
    matched, rest = group.split(TerminalError)
    if matched is None or rest is not None:
        return None
    error = matched
    while isinstance(error, BaseExceptionGroup):
        error = error.exceptions[0]
    return error


async def start_tmuxpad(settings: Settings, layout: Layout):
    event_send_channel, event_receive_channel = trio.open_memory_channel(0)
    async with open_channel(settings) as channel:
        with Terminal() as terminal:
            app = Tmuxpad(settings, layout, terminal, channel)
            try:
                async with trio.open_nursery() as nursery:
                    await nursery.start(terminal.run, event_send_channel)
                    # capture the loop's outcome so a fatal error escapes the nursery unwrapped
                    result = await outcome.acapture(app.run, event_receive_channel)
                    nursery.cancel_scope.cancel()
            except BaseExceptionGroup as group:
                error = _single_terminal_error(group)
                if error is None:
                    raise
                raise TerminalError(str(error)) from error
    return result.unwrap()


parser = argparse.ArgumentParser(prog="tmuxpad", description="An on-screen keyboard that types into a tmux pane.")
parser.add_argument("--settings", type=pathlib.Path, help="JSON settings file")
parser.add_argument("--layout", type=pathlib.Path, help="JSON layout file (default: built-in QWERTY)")
parser.add_argument("--transport", choices=[t.value for t in Transport])
parser.add_argument("--target", help="tmux target pane for keys and pane commands")
parser.add_argument("--log-file", type=pathlib.Path)
parser.add_argument("-v", "--verbose", action="store_true")


def make_settings(parsed: argparse.Namespace) -> Settings:
    settings = Settings.load(parsed.settings) if parsed.settings is not None else Settings.default()
    if parsed.layout is not None:
        settings.layout_path = parsed.layout
    if parsed.transport is not None:
        settings.transport = Transport(parsed.transport)
    if parsed.target is not None:
        settings.target_pane = parsed.target
    if parsed.log_file is not None:
        settings.log_path = parsed.log_file
    return settings


def setup_logging(log_path: typing.Optional[pathlib.Path], verbose: bool):
    # the terminal belongs to the keyboard, so logs only ever go to a file
    if log_path is None:
        logging.basicConfig(handlers=[logging.NullHandler()])
    else:
        logging.basicConfig(filename=log_path, format=LOG_FORMAT, level=logging.DEBUG if verbose else logging.INFO)


def main(argv=sys.argv):
    """
    Args:
        argv (list): List of arguments

    Returns:
        int: A return code; 2 for bad settings or layout, 1 when tmux or the terminal fails.
    """
    parsed = parser.parse_args(argv[1:])
    try:
        settings = make_settings(parsed)
        setup_logging(settings.log_path, parsed.verbose)
        layout = load_layout(settings.layout_path) if settings.layout_path is not None else default_layout()
    except (LayoutError, SettingsError) as exc:
        print(f"tmuxpad: {exc}", file=sys.stderr)
        return 2
    try:
        trio.run(start_tmuxpad, settings, layout)
    except (ChannelTransportError, TerminalError) as exc:
        logger.error("Fatal: %s", exc, exc_info=True)
        print(f"tmuxpad: {exc}", file=sys.stderr)
        return 1
    return 0
