# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
import dataclasses
import datetime
import enum
import json
import pathlib
import typing

import cattrs

from .commontypes import TmuxpadError


class SettingsError(TmuxpadError):
    pass


class Transport(enum.Enum):
    CONTROL = "control"
    COMMAND = "command"


def timedelta_seconds(seconds: datetime.timedelta | int | float, _=None) -> datetime.timedelta:
    if isinstance(seconds, datetime.timedelta):
        value = seconds
    elif isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
        value = datetime.timedelta(seconds=seconds)
    else:
        raise ValueError(f"Expected a number of seconds, got {seconds!r}")
    if value < datetime.timedelta():
        raise ValueError(f"Duration must not be negative, got {seconds!r}")
    return value


settings_converter = cattrs.Converter()
settings_converter.register_unstructure_hook(datetime.timedelta, datetime.timedelta.total_seconds)
settings_converter.register_structure_hook(datetime.timedelta, timedelta_seconds)
settings_converter.register_unstructure_hook(pathlib.Path, str)
settings_converter.register_structure_hook(pathlib.Path, lambda v, _: pathlib.Path(v))
settings_converter.register_unstructure_hook(Transport, lambda t: t.value)
settings_converter.register_structure_hook(Transport, lambda v, _: Transport(v))

DEFAULTS = {
    "layout_path": None,
    "tmux_binary": "tmux",
    "transport": "control",
    # no-output stops %output notifications piling up while the channel is idle
    "control_args": ["-C", "attach-session", "-f", "no-output"],
    "target_pane": None,
    "target_client": None,
    "idle_timeout": 1,
    # Ctrl-C arrives as a plain character because the terminal is in raw mode
    "quit_keys": ["q", "\x03"],
    "log_path": None,
}


@dataclasses.dataclass(kw_only=True)
class Settings:
    _path: typing.Optional[pathlib.Path]
    # None means the built-in QWERTY layout
    layout_path: typing.Optional[pathlib.Path]
    tmux_binary: str
    transport: Transport
    control_args: list[str]
    target_pane: typing.Optional[str]
    target_client: typing.Optional[str]
    idle_timeout: datetime.timedelta
    quit_keys: list[str]
    log_path: typing.Optional[pathlib.Path]

    def save(self, dest: typing.Optional[pathlib.Path] = None):
        if dest is None:
            dest = self._path
        if dest is None:
            raise SettingsError("No path to save settings to")
        raw = settings_converter.unstructure(self)
        del raw["_path"]
        with dest.open("w") as out:
            json.dump(raw, out, indent=2)

    @classmethod
    def _structure(cls, raw: dict, path: typing.Optional[pathlib.Path]):
        unknown = set(raw) - set(DEFAULTS)
        if unknown:
            raise SettingsError(f"Unknown settings: {', '.join(sorted(unknown))}")
        merged = DEFAULTS | raw
        merged["_path"] = path
        try:
            return settings_converter.structure(merged, cls)
        except (cattrs.BaseValidationError, ValueError, TypeError) as exc:
            raise SettingsError(f"Invalid settings in {path or 'defaults'}: {exc}") from exc

    @classmethod
    def load(cls, src: pathlib.Path):
        try:
            with src.open() as inp:
                raw = json.load(inp)
        except OSError as exc:
            raise SettingsError(f"Unable to read settings from {src}") from exc
        except json.JSONDecodeError as exc:
            raise SettingsError(f"Settings file {src} is not valid JSON: {exc}") from exc
        if not isinstance(raw, dict):
            raise SettingsError(f"Settings file {src} must contain a JSON object")
        return cls._structure(raw, src)

    @classmethod
    def default(cls):
        return cls._structure({}, None)

    @classmethod
    def for_test(cls):
        return cls._structure(
            {
                "tmux_binary": "/bin/false",
                "transport": "command",
                "idle_timeout": 0.5,
            },
            pathlib.Path("test.settings.json"),
        )


settings_converter.register_structure_hook(Settings, cattrs.gen.make_dict_structure_fn(Settings, settings_converter))
