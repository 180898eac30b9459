# SPDX-FileCopyrightText: 2021 Rose Davidson <rose@metaclassical.com>
#
# SPDX-License-Identifier: GPL-3.0-or-later
import msgspec


class Point(msgspec.Struct, frozen=True):
    x: int
    y: int

    def __add__(self, other):
        if not isinstance(other, Point):
            return NotImplemented
        return Point(x=self.x + other.x, y=self.y + other.y)

    def __sub__(self, other):
        if not isinstance(other, Point):
            return NotImplemented
        return Point(x=self.x - other.x, y=self.y - other.y)

    @classmethod
    def zeroes(cls):
        return cls(x=0, y=0)


class Size(msgspec.Struct, frozen=True):
    width: int
    height: int

    def as_tuple(self):
        return (self.width, self.height)

    @classmethod
    def from_tuple(cls, tup):
        return cls(width=tup[0], height=tup[1])

    def __sub__(self, other):
        if not isinstance(other, Size):
            return NotImplemented
        return Size(width=self.width - other.width, height=self.height - other.height)


class Rect(msgspec.Struct, frozen=True):
    origin: Point
    spread: Size

    @property
    def bottom(self):
        return self.origin.y + self.spread.height

    @property
    def right(self):
        return self.origin.x + self.spread.width

    def __contains__(self, item):
        # Terminal cells: the right and bottom edges are exclusive.
        if not isinstance(item, Point):
            return NotImplemented
        return self.origin.x <= item.x < self.right and self.origin.y <= item.y < self.bottom

    @classmethod
    def bounding(cls, rects):
        "Return the smallest rect anchored at the origin that covers every rect given."
        width = max((r.right for r in rects), default=0)
        height = max((r.bottom for r in rects), default=0)
        return cls(origin=Point.zeroes(), spread=Size(width=width, height=height))


class TmuxpadError(Exception):
    pass


class NotInContextError(TmuxpadError):
    def __init__(self):
        return super().__init__("Must be inside an appropriate context manager")
