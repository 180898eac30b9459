# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
from __future__ import annotations

import collections.abc
import logging
import pathlib
import typing

import msgspec

from .commontypes import Point, Rect, Size, TmuxpadError
from .keycodes import KeyCode, SelectPane, parse_key_code

logger = logging.getLogger(__name__)

MIN_KEY_WIDTH = 3
MIN_KEY_HEIGHT = 3


class LayoutError(TmuxpadError):
    pass


class Key(msgspec.Struct, frozen=True):
    code: KeyCode
    shift_code: KeyCode
    region: Rect


class KeyDirective(msgspec.Struct, frozen=True):
    key: KeyCode
    shift: typing.Optional[KeyCode] = None
    size: typing.Optional[Size] = None


class Blank(msgspec.Struct, frozen=True):
    count: int


class Newline(msgspec.Struct, frozen=True):
    count: int


class BasePosition(msgspec.Struct, frozen=True):
    position: Point


class DefaultSize(msgspec.Struct, frozen=True):
    size: Size


class PreviewDirective(msgspec.Struct, frozen=True):
    columns: int


Directive = KeyDirective | Blank | Newline | BasePosition | DefaultSize | PreviewDirective


class Layout(msgspec.Struct, frozen=True):
    keys: tuple[Key, ...]
    preview: typing.Optional[Rect] = None

    @property
    def bounds(self) -> Rect:
        regions = [key.region for key in self.keys]
        if self.preview is not None:
            regions.append(self.preview)
        return Rect.bounding(regions)


def _check_size(size: Size, index: int):
    if size.width < MIN_KEY_WIDTH:
        raise LayoutError(f"directive {index}: width must be at least {MIN_KEY_WIDTH}, not {size.width}")
    if size.height < MIN_KEY_HEIGHT:
        raise LayoutError(f"directive {index}: height must be at least {MIN_KEY_HEIGHT}, not {size.height}")


def _check_count(count: int, what: str, index: int):
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise LayoutError(f"directive {index}: {what} must be a positive integer, not {count!r}")


def _check_code(code: KeyCode, index: int):
    match code:
        case SelectPane(index=pane) if isinstance(pane, bool) or not isinstance(pane, int) or pane < 0:
            raise LayoutError(f"directive {index}: select_pane index must be a non-negative integer, not {pane!r}")


def build_layout(directives: collections.abc.Iterable[Directive]) -> Layout:
    """Place keys left to right, top to bottom, following the directives in order.

    The cursor starts at the origin. Each key is placed at the cursor and the cursor then moves one
    column past the key's right edge. A newline returns to the row's base column and moves down past
    the tallest key placed since the previous newline.
    """
    keys = []
    preview = None
    position = Point.zeroes()
    base_column = 0
    row_height = 1
    default_size = Size(width=MIN_KEY_WIDTH, height=MIN_KEY_HEIGHT)

    for index, directive in enumerate(directives):
        match directive:
            case Blank(count=count):
                _check_count(count, "blank", index)
                position = Point(x=position.x + count, y=position.y)
            case Newline(count=count):
                _check_count(count, "newline", index)
                position = Point(x=base_column, y=position.y + row_height - 1 + count)
                row_height = 1
            case BasePosition(position=new_position):
                if new_position.x < 0 or new_position.y < 0:
                    raise LayoutError(f"directive {index}: base position must not be negative")
                position = new_position
                base_column = new_position.x
                row_height = 1
            case DefaultSize(size=size):
                _check_size(size, index)
                default_size = size
            case PreviewDirective(columns=columns):
                _check_count(columns, "preview columns", index)
                if preview is not None:
                    raise LayoutError(f"directive {index}: only one preview is allowed")
                preview = Rect(origin=position, spread=Size(width=columns, height=1))
                position = Point(x=preview.right, y=position.y)
            case KeyDirective(key=code, shift=shift, size=size):
                if size is None:
                    size = default_size
                else:
                    _check_size(size, index)
                _check_code(code, index)
                key = Key(
                    code=code,
                    shift_code=code.default_shift() if shift is None else shift,
                    region=Rect(origin=position, spread=size),
                )
                keys.append(key)
                position = Point(x=key.region.right, y=position.y)
                row_height = max(row_height, size.height)
            case _:
                raise LayoutError(f"directive {index}: unknown directive {directive!r}")

    logger.debug("Built layout with %d keys", len(keys))
    return Layout(keys=tuple(keys), preview=preview)


def _required(record: dict, name: str, index: int):
    if not isinstance(record, dict) or name not in record:
        raise LayoutError(f"directive {index}: missing required field {name!r}")
    return record[name]


def _parse_int(value: typing.Any, what: str, index: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise LayoutError(f"directive {index}: {what} must be an integer, not {value!r}")
    return value


def _parse_size(value: typing.Any, index: int) -> Size:
    return Size(
        width=_parse_int(_required(value, "width", index), "width", index),
        height=_parse_int(_required(value, "height", index), "height", index),
    )


def _parse_code(value: typing.Any, index: int) -> KeyCode:
    try:
        return parse_key_code(value)
    except ValueError as exc:
        raise LayoutError(f"directive {index}: {exc}") from exc


KEY_FIELDS = frozenset({"key", "shift", "size"})


def parse_directive(record: typing.Any, index: int = 0) -> Directive:
    if not isinstance(record, dict):
        raise LayoutError(f"directive {index}: expected an object, not {record!r}")
    if "key" in record:
        unknown = set(record) - KEY_FIELDS
        if unknown:
            raise LayoutError(f"directive {index}: unknown fields {sorted(unknown)}")
        return KeyDirective(
            key=_parse_code(record["key"], index),
            shift=_parse_code(record["shift"], index) if "shift" in record else None,
            size=_parse_size(record["size"], index) if "size" in record else None,
        )
    if len(record) != 1:
        raise LayoutError(f"directive {index}: expected exactly one field, got {sorted(record)}")
    (name, value) = next(iter(record.items()))
    match name:
        case "blank":
            return Blank(count=_parse_int(value, "blank", index))
        case "newline":
            return Newline(count=_parse_int(value, "newline", index))
        case "base_position":
            row = _parse_int(_required(value, "row", index), "row", index)
            column = _parse_int(_required(value, "column", index), "column", index)
            return BasePosition(position=Point(x=column, y=row))
        case "default_size":
            return DefaultSize(size=_parse_size(value, index))
        case "preview":
            return PreviewDirective(columns=_parse_int(_required(value, "columns", index), "columns", index))
        case _:
            raise LayoutError(f"directive {index}: unknown directive {name!r}")


def parse_directives(records: typing.Any) -> list[Directive]:
    if not isinstance(records, list):
        raise LayoutError("layout must be a list of directives")
    return [parse_directive(record, index) for index, record in enumerate(records)]


def load_layout(path: pathlib.Path) -> Layout:
    try:
        raw = msgspec.json.decode(path.read_bytes())
    except OSError as exc:
        raise LayoutError(f"unable to read layout {path}: {exc}") from exc
    except msgspec.DecodeError as exc:
        raise LayoutError(f"unable to parse layout {path}: {exc}") from exc
    return build_layout(parse_directives(raw))


def default_layout() -> Layout:
    return build_layout(parse_directives(DEFAULT_LAYOUT))


def _row(*chars: str):
    return [{"key": c} for c in chars]


def _shifted_row(pairs: str):
    return [{"key": pairs[i], "shift": pairs[i + 1]} for i in range(0, len(pairs), 2)]


DEFAULT_LAYOUT = [
    {"default_size": {"width": 5, "height": 3}},
    {"preview": {"columns": 72}},
    {"newline": 1},
    *_shifted_row("`~1!2@3#4$5%6^7&8*9(0)-_=+"),
    {"key": "BSpace", "size": {"width": 7, "height": 3}},
    {"newline": 1},
    {"key": "Tab", "size": {"width": 7, "height": 3}},
    *_row(*"qwertyuiop"),
    *_shifted_row("[{]}\\|"),
    {"newline": 1},
    {"key": "C-", "size": {"width": 8, "height": 3}},
    *_row(*"asdfghjkl"),
    *_shifted_row(";:'\""),
    {"key": "Enter", "size": {"width": 9, "height": 3}},
    {"newline": 1},
    {"key": "S-", "size": {"width": 10, "height": 3}},
    *_row(*"zxcvbnm"),
    *_shifted_row(",<.>/?"),
    {"blank": 2},
    {"key": "Up"},
    {"newline": 1},
    {"key": "M-", "size": {"width": 8, "height": 3}},
    {"key": " ", "size": {"width": 35, "height": 3}},
    {"key": "Delete", "size": {"width": 8, "height": 3}},
    {"blank": 6},
    {"key": "Left"},
    {"key": "Down"},
    {"key": "Right"},
    {"newline": 2},
    {"default_size": {"width": 8, "height": 3}},
    {"key": {"select_pane": 0}},
    {"key": {"select_pane": 1}},
    {"key": {"select_pane": 2}},
    {"key": {"select_pane": 3}},
    {"key": "DisplayPanes"},
    {"key": "CopyMode"},
    {"key": "Paste"},
    {"key": "ShowCursor"},
    {"key": "Quit"},
]
