# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
import contextlib
import datetime
import logging
import pathlib

import pytest
import trio
import trio.testing
from tmuxpad.app import Tmuxpad, _single_terminal_error, main, make_settings, parser
from tmuxpad.commontypes import Point, Size
from tmuxpad.keycodes import Char
from tmuxpad.keystate import Chord, PressState
from tmuxpad.layout import build_layout, parse_directives
from tmuxpad.rendering import Frame
from tmuxpad.settings import Settings, Transport
from tmuxpad.termtypes import KeyInput, MouseInput, Resize, TerminalError
from tmuxpad.tmux import Channel, ChannelRejectedError, ChannelTransportError

SHOW_CURSOR = ("select-pane", ())


class FakeTerminal:
    def __init__(self, size: Size):
        self._size = size
        self.frames: list[Frame] = []

    def size(self):
        return self._size

    def draw(self, frame: Frame):
        self.frames.append(frame)


class FakeChannel(Channel):
    def __init__(self):
        self.sent = []
        self.reject = False
        self.broken = False

    async def send(self, command, *args):
        await trio.lowlevel.checkpoint()
        if self.broken:
            raise ChannelTransportError("tmux went away")
        if self.reject:
            raise ChannelRejectedError(command, ["no such pane"])
        self.sent.append((command, args))


def make_app(**overrides):
    # preview on row 0, then [a][C-][Quit] on rows 1-3; centered at (15, 3) in 40x10
    layout = build_layout(
        parse_directives([{"preview": {"columns": 10}}, {"newline": 1}, {"key": "a"}, {"key": "C-"}, {"key": "Quit"}])
    )
    settings = Settings.for_test()
    settings.idle_timeout = datetime.timedelta(minutes=5)
    for name, value in overrides.items():
        setattr(settings, name, value)
    terminal = FakeTerminal(Size(width=40, height=10))
    channel = FakeChannel()
    return Tmuxpad(settings, layout, terminal, channel), terminal, channel


def click(x, y):
    return [MouseInput.pressed(x, y), MouseInput.released(x, y)]


async def run_with_events(app, events):
    send_channel, receive_channel = trio.open_memory_channel(len(events))
    for event in events:
        send_channel.send_nowait(event)
    send_channel.close()
    await app.run(receive_channel)


async def test_click_sends_keys():
    app, terminal, channel = make_app(target_pane="main:0.1")
    await run_with_events(app, [*click(16, 5), *click(19, 5), *click(16, 5)])
    assert channel.sent == [("send-keys", ("-t", "main:0.1", "a")), ("send-keys", ("-t", "main:0.1", "C-a"))]
    assert app.preview.history == [Chord(code=Char("a"), ctrl=True)]
    assert terminal.frames[-1].text()[3][15:18] == "> C"


async def test_quit_key_stops_loop():
    app, _terminal, channel = make_app()
    send_channel, receive_channel = trio.open_memory_channel(0)
    with trio.fail_after(1):
        async with trio.open_nursery() as nursery:
            nursery.start_soon(app.run, receive_channel)
            await send_channel.send(KeyInput(key="q"))
    assert channel.sent == []


async def test_quit_button_stops_loop():
    app, _terminal, channel = make_app()
    send_channel, receive_channel = trio.open_memory_channel(0)
    with trio.fail_after(1):
        async with trio.open_nursery() as nursery:
            nursery.start_soon(app.run, receive_channel)
            for event in click(22, 5):
                await send_channel.send(event)
    assert app.keyboard[2].press is PressState.PRESSED


async def test_idle_timeout_shows_cursor_once(autojump_clock: trio.testing.MockClock):
    app, _terminal, channel = make_app(idle_timeout=datetime.timedelta(seconds=1))
    send_channel, receive_channel = trio.open_memory_channel(0)
    async with trio.open_nursery() as nursery:
        nursery.start_soon(app.run, receive_channel)
        await trio.sleep(10)
        assert channel.sent == [SHOW_CURSOR]
        # any input re-arms the timer, even one that hits no key
        await send_channel.send(MouseInput.released(0, 0))
        await trio.sleep(10)
        assert channel.sent == [SHOW_CURSOR, SHOW_CURSOR]
        await send_channel.send(KeyInput(key="q"))


async def test_rejected_command_is_logged(caplog):
    app, _terminal, channel = make_app()
    channel.reject = True
    with caplog.at_level(logging.WARNING):
        await run_with_events(app, click(16, 5))
    assert "no such pane" in caplog.text
    assert app.preview.history == []
    assert app.keyboard[0].press is PressState.PRESSED


async def test_transport_error_ends_loop():
    app, _terminal, channel = make_app()
    channel.broken = True
    with pytest.raises(ChannelTransportError):
        await run_with_events(app, click(16, 5))


async def test_resize_recenters():
    app, terminal, channel = make_app()
    await run_with_events(app, [Resize(size=Size(width=12, height=4)), *click(1, 2)])
    assert app.router.offset == Point(x=1, y=0)
    assert terminal.frames[-1].size == Size(width=12, height=4)
    assert channel.sent == [("send-keys", ("a",))]


def test_make_settings_applies_flags(tmp_path: pathlib.Path):
    parsed = parser.parse_args(
        ["--layout", "mine.json", "--transport", "command", "--target", "%2", "--log-file", str(tmp_path / "log")]
    )
    settings = make_settings(parsed)
    assert settings.layout_path == pathlib.Path("mine.json")
    assert settings.transport is Transport.COMMAND
    assert settings.target_pane == "%2"
    assert settings.log_path == tmp_path / "log"


def test_main_rejects_bad_layout(tmp_path: pathlib.Path, capsys):
    layout = tmp_path / "layout.json"
    layout.write_text('[{"key": "a", "size": {"width": 2, "height": 3}}]')
    assert main(["tmuxpad", "--layout", str(layout)]) == 2
    assert "width must be at least 3" in capsys.readouterr().err


def test_main_rejects_bad_settings(tmp_path: pathlib.Path, capsys):
    assert main(["tmuxpad", "--settings", str(tmp_path / "missing.json")]) == 2
    assert "tmuxpad:" in capsys.readouterr().err


class FailingTerminal(FakeTerminal):
    "Starts reading, then loses the tty."

    def __init__(self):
        super().__init__(Size(width=80, height=24))

    def __enter__(self):
        return self

    def __exit__(self, _exc_type, _exc_value, _traceback):
        return False

    async def run(self, event_channel, *, task_status=trio.TASK_STATUS_IGNORED):
        task_status.started()
        await trio.lowlevel.checkpoint()
        raise TerminalError("tty went away")


def test_main_reports_terminal_failure(monkeypatch, capsys):
    @contextlib.asynccontextmanager
    async def fake_open_channel(_settings):
        yield FakeChannel()

    monkeypatch.setattr("tmuxpad.app.Terminal", FailingTerminal)
    monkeypatch.setattr("tmuxpad.app.open_channel", fake_open_channel)
    assert main(["tmuxpad"]) == 1
    assert "tmuxpad: tty went away" in capsys.readouterr().err


def test_single_terminal_error():
    error = TerminalError("read failed")
    nested = ExceptionGroup("outer", [ExceptionGroup("inner", [error])])
    assert _single_terminal_error(nested) is error
    assert _single_terminal_error(ExceptionGroup("mixed", [error, ValueError()])) is None
    assert _single_terminal_error(ExceptionGroup("other", [ValueError()])) is None
