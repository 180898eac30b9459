# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
"""Sending commands to tmux.

TmuxControlChannel keeps one tmux client running in control mode (see
https://github.com/tmux/tmux/wiki/Control-Mode) and writes one command per line
to it, waiting for the %end or %error line that closes each command's reply.
TmuxCommandRunner is the fallback that spawns a fresh tmux process per command.
"""
from __future__ import annotations

import abc
import collections.abc
import logging
import subprocess
import typing
from contextlib import asynccontextmanager

import tricycle
import trio

from .commontypes import TmuxpadError
from .keycodes import Named, SelectPane, Special
from .keystate import Chord
from .settings import Transport

if typing.TYPE_CHECKING:
    from .keycodes import KeyCode
    from .settings import Settings

logger = logging.getLogger(__name__)

SUCCESS_MARKER = "%end"
FAILURE_MARKER = "%error"
BEGIN_MARKER = "%begin"
EXIT_MARKER = "%exit"

EXIT_GRACE_SECONDS = 5

NEEDS_QUOTING = frozenset(";\"'#{}$~\\")


class ChannelError(TmuxpadError):
    pass


class ChannelTransportError(ChannelError):
    "Talking to tmux failed; commands can no longer be delivered."


class ChannelRejectedError(ChannelError):
    "tmux received the command and reported it as failed."

    def __init__(self, command: str, details: collections.abc.Sequence[str] = ()):
        self.command = command
        self.details = tuple(details)
        message = f"tmux rejected {command!r}"
        if self.details:
            message = f"{message}: {' '.join(self.details)}"
        super().__init__(message)


def quote_argument(arg: str) -> str:
    if arg and not any(c.isspace() or c in NEEDS_QUOTING for c in arg):
        return arg
    escaped = arg.replace("\\", "\\\\").replace('"', '\\"').replace("$", "\\$")
    return f'"{escaped}"'


def format_command(command: str, args: collections.abc.Iterable[str] = ()) -> str:
    return " ".join([command, *(quote_argument(arg) for arg in args)])


def _target_args(target: typing.Optional[str]) -> list[str]:
    return [] if target is None else ["-t", target]


def send_keys_command(chord: Chord, target: typing.Optional[str] = None) -> tuple[str, list[str]]:
    return "send-keys", [*_target_args(target), chord.notation]


def action_command(
    code: KeyCode, target: typing.Optional[str] = None, client: typing.Optional[str] = None
) -> tuple[str, list[str]]:
    match code:
        case SelectPane(index=index):
            return "select-pane", ["-t", str(index)]
        case Named(name=Special.DISPLAY_PANES):
            return "display-panes", _target_args(client)
        case Named(name=Special.SHOW_CURSOR):
            # re-selecting the pane makes tmux redraw its cursor
            return "select-pane", _target_args(target)
        case Named(name=Special.COPY_MODE):
            return "copy-mode", _target_args(target)
        case Named(name=Special.PASTE):
            return "paste-buffer", _target_args(target)
    raise ValueError(f"{code!r} has no tmux command")


class Channel(abc.ABC):
    @abc.abstractmethod
    async def send(self, command: str, *args: str) -> None: ...

    async def aclose(self):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, _exc_type, _exc_value, _traceback):
        await self.aclose()
        return False


class TmuxControlChannel(Channel):
    def __init__(self, send_stream: trio.abc.SendStream, receive_stream: trio.abc.ReceiveStream):
        self._send_stream = send_stream
        # only \n ends a line; a \r before it is stripped
        self._lines = tricycle.TextReceiveStream(receive_stream, "utf-8", errors="replace", newline="\n")

    async def _readline(self) -> str:
        try:
            line = await self._lines.receive_line()
        except (trio.BrokenResourceError, trio.ClosedResourceError, OSError) as exc:
            raise ChannelTransportError("unable to read from tmux") from exc
        if not line.endswith("\n"):
            raise ChannelTransportError("tmux closed the control connection")
        return line.rstrip("\r\n")

    async def read_reply(self, command: str = "") -> None:
        """Read lines up to the end of the next reply block.

        Notifications that arrive before or inside the block are skipped.
        """
        details = []
        in_block = False
        while True:
            line = await self._readline()
            if line.startswith(SUCCESS_MARKER):
                return
            if line.startswith(FAILURE_MARKER):
                raise ChannelRejectedError(command, details)
            if line.startswith(EXIT_MARKER):
                raise ChannelTransportError(f"tmux client exited: {line}")
            if line.startswith(BEGIN_MARKER):
                in_block = True
            elif in_block:
                details.append(line)

    async def send(self, command: str, *args: str) -> None:
        line = format_command(command, args)
        logger.debug("tmux <- %s", line)
        try:
            await self._send_stream.send_all(line.encode("utf-8") + b"\n")
        except (trio.BrokenResourceError, trio.ClosedResourceError, OSError) as exc:
            raise ChannelTransportError(f"unable to send {line!r} to tmux") from exc
        await self.read_reply(line)

    async def aclose(self):
        # end of input makes the control client detach and exit
        await self._send_stream.aclose()

    @classmethod
    @asynccontextmanager
    async def open(cls, argv: collections.abc.Sequence[str]):
        "Start a control mode client and wait for its greeting."
        logger.info("Starting %s", " ".join(argv))
        try:
            process = await trio.lowlevel.open_process(
                list(argv),
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
            )
        except OSError as exc:
            raise ChannelTransportError(f"unable to start {argv[0]}") from exc
        try:
            async with cls(process.stdin, process.stdout) as channel:
                # the attach command itself gets a reply block
                await channel.read_reply(" ".join(argv))
                yield channel
        finally:
            with trio.move_on_after(EXIT_GRACE_SECONDS) as cleanup_scope:
                cleanup_scope.shield = True
                await process.wait()
            if process.returncode is None:
                logger.warning("tmux control client did not exit; killing it")
                process.kill()
                with trio.CancelScope(shield=True):
                    await process.wait()
            logger.debug("tmux control client exited with %r", process.returncode)


class TmuxCommandRunner(Channel):
    def __init__(self, tmux_binary: str = "tmux"):
        self.tmux_binary = tmux_binary

    async def send(self, command: str, *args: str) -> None:
        argv = [self.tmux_binary, command, *args]
        logger.debug("running %r", argv)
        try:
            await trio.run_process(argv, capture_stdout=True, capture_stderr=True)
        except OSError as exc:
            raise ChannelTransportError(f"unable to run {self.tmux_binary}") from exc
        except subprocess.CalledProcessError as exc:
            details = exc.stderr.decode("utf-8", errors="replace").splitlines() if exc.stderr else []
            raise ChannelRejectedError(format_command(command, args), details) from exc


@asynccontextmanager
async def open_channel(settings: Settings):
    match settings.transport:
        case Transport.CONTROL:
            async with TmuxControlChannel.open([settings.tmux_binary, *settings.control_args]) as channel:
                yield channel
        case Transport.COMMAND:
            async with TmuxCommandRunner(settings.tmux_binary) as channel:
                yield channel
