# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
import argparse
import pathlib
import sys

from .layout import Layout, LayoutError, default_layout, load_layout


def describe_layout(layout: Layout) -> list[str]:
    lines = []
    for key in layout.keys:
        region = key.region
        shift = f" / {key.shift_code.label}" if key.shift_code != key.code else ""
        lines.append(
            f"{key.code.label}{shift}: x={region.origin.x} y={region.origin.y}"
            f" w={region.spread.width} h={region.spread.height}"
        )
    if layout.preview is not None:
        lines.append(f"preview: x={layout.preview.origin.x} y={layout.preview.origin.y} w={layout.preview.spread.width}")
    bounds = layout.bounds
    lines.append(f"bounds: {bounds.spread.width}x{bounds.spread.height}")
    return lines


check_layout_parser = argparse.ArgumentParser(prog="tmuxpad-check-layout")
check_layout_parser.add_argument("layout", type=pathlib.Path, nargs="?", help="layout file (default: built-in QWERTY)")


def check_layout_cli():
    args = check_layout_parser.parse_args()
    try:
        layout = load_layout(args.layout) if args.layout is not None else default_layout()
    except LayoutError as exc:
        print(f"tmuxpad-check-layout: {exc}", file=sys.stderr)
        return 2
    for line in describe_layout(layout):
        print(line)
    return 0
