# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
import pytest
import trio
import trio.testing
from tmuxpad.keycodes import Char, Named, SelectPane, Special
from tmuxpad.keystate import Chord
from tmuxpad.settings import Settings, Transport
from tmuxpad.tmux import (
    ChannelRejectedError,
    ChannelTransportError,
    TmuxCommandRunner,
    TmuxControlChannel,
    action_command,
    format_command,
    open_channel,
    quote_argument,
    send_keys_command,
)

# answers every command line with an empty successful reply
FAKE_CONTROL_CLIENT = [
    "sh",
    "-c",
    'echo "%begin 1 0 0"; echo "%end 1 0 0"; while read line; do echo "%begin 1 1 1"; echo "%end 1 1 1"; done',
]


@pytest.mark.parametrize(
    "arg,expected",
    (
        ("a", "a"),
        ("C-M-Up", "C-M-Up"),
        ("", '""'),
        ("two words", '"two words"'),
        (";", '";"'),
        ("#", '"#"'),
        ('"', '"\\""'),
        ("\\", '"\\\\"'),
        ("$", '"\\$"'),
        ("~", '"~"'),
        ("{", '"{"'),
        ("'", "\"'\""),
    ),
)
def test_quote_argument(arg, expected):
    assert quote_argument(arg) == expected


def test_format_command():
    assert format_command("send-keys", ["-t", "main:0.1", ";"]) == 'send-keys -t main:0.1 ";"'
    assert format_command("copy-mode") == "copy-mode"


def test_send_keys_command():
    assert send_keys_command(Chord(code=Char("a"), ctrl=True)) == ("send-keys", ["C-a"])
    assert send_keys_command(Chord(code=Char(" ")), "work") == ("send-keys", ["-t", "work", "Space"])


@pytest.mark.parametrize(
    "code,expected",
    (
        (SelectPane(2), ("select-pane", ["-t", "2"])),
        (Named(Special.DISPLAY_PANES), ("display-panes", ["-t", "/dev/pts/1"])),
        (Named(Special.SHOW_CURSOR), ("select-pane", ["-t", "%3"])),
        (Named(Special.COPY_MODE), ("copy-mode", ["-t", "%3"])),
        (Named(Special.PASTE), ("paste-buffer", ["-t", "%3"])),
    ),
)
def test_action_command(code, expected):
    assert action_command(code, "%3", "/dev/pts/1") == expected


def test_action_command_without_targets():
    assert action_command(Named(Special.SHOW_CURSOR)) == ("select-pane", [])
    assert action_command(Named(Special.DISPLAY_PANES)) == ("display-panes", [])
    with pytest.raises(ValueError):
        action_command(Char("a"))
    with pytest.raises(ValueError):
        action_command(Named(Special.QUIT))


def make_channel():
    to_tmux_send, to_tmux_receive = trio.testing.memory_stream_one_way_pair()
    from_tmux_send, from_tmux_receive = trio.testing.memory_stream_one_way_pair()
    return TmuxControlChannel(to_tmux_send, from_tmux_receive), to_tmux_receive, from_tmux_send


async def test_send_waits_for_end():
    channel, commands, replies = make_channel()
    await replies.send_all(
        b"%output %1 hello\r\n%begin 1700000000 12 1\nsome output\nmore output\n%end 1700000000 12 1\n"
    )
    await channel.send("send-keys", "-t", "x", "C-a")
    assert await commands.receive_some() == b"send-keys -t x C-a\n"


async def test_replies_split_across_reads():
    channel, commands, replies = make_channel()

    async def reply_slowly():
        for part in (b"%beg", b"in 1 2 1\n%e", b"nd 1 2 1", b"\n"):
            await trio.sleep(0.1)
            await replies.send_all(part)

    async with trio.open_nursery() as nursery:
        nursery.start_soon(reply_slowly)
        await channel.send("copy-mode")
    assert await commands.receive_some() == b"copy-mode\n"


async def test_error_reply_is_rejected():
    channel, _commands, replies = make_channel()
    await replies.send_all(b"%begin 1 3 1\nunknown command: frobnicate\n%error 1 3 1\n%begin 1 4 1\n%end 1 4 1\n")
    with pytest.raises(ChannelRejectedError) as excinfo:
        await channel.send("frobnicate")
    assert excinfo.value.command == "frobnicate"
    assert excinfo.value.details == ("unknown command: frobnicate",)
    # the channel stays usable after a rejection
    await channel.send("copy-mode")


async def test_end_of_stream_is_transport_error():
    channel, _commands, replies = make_channel()
    await replies.send_all(b"%begin 1 5 1\n")
    await replies.aclose()
    with pytest.raises(ChannelTransportError):
        await channel.send("copy-mode")


async def test_exit_notification_is_transport_error():
    channel, _commands, replies = make_channel()
    await replies.send_all(b"%exit server exited\n")
    with pytest.raises(ChannelTransportError):
        await channel.send("copy-mode")


async def test_broken_input_is_transport_error():
    channel, commands, _replies = make_channel()
    await commands.aclose()
    with pytest.raises(ChannelTransportError):
        await channel.send("copy-mode")


async def test_control_channel_process():
    with trio.fail_after(5):
        async with TmuxControlChannel.open(FAKE_CONTROL_CLIENT) as channel:
            await channel.send("send-keys", "a")
            await channel.send("display-panes")


async def test_control_channel_missing_binary():
    with pytest.raises(ChannelTransportError):
        async with TmuxControlChannel.open(["/nonexistent/tmux", "-C"]):
            pass


async def test_control_channel_exits_before_greeting():
    with pytest.raises(ChannelTransportError):
        async with TmuxControlChannel.open(["sh", "-c", "exit 1"]):
            pass


async def test_command_runner():
    await TmuxCommandRunner("true").send("send-keys", "a")
    with pytest.raises(ChannelRejectedError):
        await TmuxCommandRunner("false").send("send-keys", "a")
    with pytest.raises(ChannelTransportError):
        await TmuxCommandRunner("/nonexistent/tmux").send("send-keys", "a")


async def test_open_channel_follows_transport():
    settings = Settings.for_test()
    settings.tmux_binary = "true"
    async with open_channel(settings) as channel:
        assert isinstance(channel, TmuxCommandRunner)
        await channel.send("copy-mode")

    settings.transport = Transport.CONTROL
    settings.tmux_binary = FAKE_CONTROL_CLIENT[0]
    settings.control_args = FAKE_CONTROL_CLIENT[1:]
    with trio.fail_after(5):
        async with open_channel(settings) as channel:
            assert isinstance(channel, TmuxControlChannel)
            await channel.send("copy-mode")
