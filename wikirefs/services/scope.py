#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Scope resolver
==============
Turns a page path and a ``depth=`` option into a regular expression over
page paths.

Depth counts path segments from the scope's root page, the root itself
being depth 1::

    /docs          depth 1
    /docs/a        depth 2
    /docs/a/b      depth 3

Accepted depth forms::

    3       -> 3..3        2-4, 2:4, 2..4  -> 2..4
    -3      -> 1..3        2-, 2:, 2..     -> 2..(unbounded)
    2+1     -> 2..3
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

from wikirefs.core.errors import InvalidOption


# -----------------------------------------------------------------------------

_RANGE_RE = re.compile(
    r"^(?P<start>\d+)?"
    r"(?:(?P<op>-|:|\.\.|\+)(?P<end>\d+)?)?$"
)

DepthSpec = Union[str, int, bool, None]


# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class DepthRange:
    start: int
    end: Optional[int]      # None: no ceiling

    def __str__(self) -> str:
        return f"[{self.start}:{'' if self.end is None else self.end}]"


@dataclass(frozen=True)
class PathScope:
    prefix: str
    depth_range: Optional[DepthRange] = None


# -----------------------------------------------------------------------------

def parse_depth_range(depth_spec: DepthSpec) -> DepthRange:
    """Parse a ``depth=`` option value into a :class:`DepthRange`."""
    # 'depth=' with no value arrives as True
    if depth_spec is None or depth_spec is True or depth_spec is False:
        raise InvalidOption("The value of depth option is invalid.")

    text = str(depth_spec).strip()
    m = _RANGE_RE.match(text)
    if not text or not m:
        raise InvalidOption(f"The value of depth option is invalid: '{depth_spec}'")

    start_s, op, end_s = m.group("start"), m.group("op"), m.group("end")

    if op is None:
        start = end = int(start_s)
    elif op == "+":
        if start_s is None:
            raise InvalidOption(f"The value of depth option is invalid: '{depth_spec}'")
        start = int(start_s)
        end = start + int(end_s or 0)
    else:
        if start_s is None and end_s is None:
            raise InvalidOption(f"The value of depth option is invalid: '{depth_spec}'")
        start = int(start_s) if start_s is not None else 1
        end = int(end_s) if end_s is not None else None

    if start < 1 or (end is not None and end < 1):
        raise InvalidOption(
            f"specified depth is [{start}:{'' if end is None else end}] : "
            "start and end are must be larger than 1"
        )
    if end is not None and start > end:
        raise InvalidOption(
            f"specified depth is [{start}:{end}] : start must not be larger than end"
        )
    return DepthRange(start, end)


# -----------------------------------------------------------------------------

def segment_bounds(page_path: str, depth_range: DepthRange) -> tuple[int, Optional[int]]:
    """Return the (floor, ceiling) number of '/' separators a matching path has."""
    slash_count = page_path.count("/")
    # depth 1 is the scope root itself, so the floor never rises with start
    floor = slash_count
    ceiling = None if depth_range.end is None else slash_count + depth_range.end - 1
    return floor, ceiling


def depth_range_predicate(page_path: str, depth_range: DepthRange) -> str:
    floor, ceiling = segment_bounds(page_path, depth_range)
    upper = "" if ceiling is None else str(ceiling)
    return rf"^(\/[^\/]*){{{floor},{upper}}}$"


def resolve_depth_predicate(page_path: str, depth_spec: DepthSpec) -> str:
    """Return the path regex limiting a subtree under *page_path* to *depth_spec*."""
    return depth_range_predicate(page_path, parse_depth_range(depth_spec))


def path_scope(prefix: str, depth_spec: DepthSpec = None) -> PathScope:
    """Subtree scope at *prefix*; a depth, when given, is validated here."""
    if depth_spec is None:
        return PathScope(prefix)
    return PathScope(prefix, parse_depth_range(depth_spec))


# -----------------------------------------------------------------------------
