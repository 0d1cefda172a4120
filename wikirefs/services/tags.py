#!/usr/bin/env python
#
#
# -----------------------------------------------------------------------------
"""
Refs tag scanner
================
Finds ``$ref(...)``, ``$refs(...)``, ``$refimg(...)`` and ``$refsimg(...)``
tags in rendered HTML and swaps each one for a placeholder element::

    <p>See $refs(/docs, regexp=/\\.pdf$/, depth=2)</p>
      -> <p>See <div class="refs-placeholder" id="refs-0"></div></p>

The returned context map is keyed by placeholder id, in order of appearance,
and carries the parsed arguments for the resolution step.

Arguments are comma separated.  Each is either ``key=value`` or a bare
positional token (page path, then file name or id).  Values may be quoted
with ' or " to protect commas and parentheses.  ``key=`` with no value reads
as ``True``.

A tag that cannot be parsed (no closing parenthesis on the same line,
unterminated quote, empty key) is left as literal text without an entry.
"""
# -----------------------------------------------------------------------------

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Iterable, Optional, Union

log = logging.getLogger(__name__)


# -----------------------------------------------------------------------------

REF_ALIASES: frozenset[str] = frozenset({"ref", "refs", "refimg", "refsimg"})
MULTIPLE_ALIASES: frozenset[str] = frozenset({"refs", "refsimg"})
IMAGE_ALIASES: frozenset[str] = frozenset({"refimg", "refsimg"})

PLACEHOLDER_TEMPLATE = '<div class="refs-placeholder" id="{id}"></div>'

_KEY_VALUE_RE = re.compile(r"^(?P<key>[A-Za-z_][\w-]*)\s*=(?P<value>.*)$", re.DOTALL)

OptionValue = Union[str, bool]


class TagSyntaxError(ValueError):
    """Raised internally for a tag whose arguments cannot be parsed."""


# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class TagMatch:
    """
    One recognised tag.

    ``position`` is the index of the leading '$' in the scanned ``str``,
    counted in characters (code points), not UTF-8 bytes.  Slicing the
    scanned content at ``position`` yields ``raw_tag``.
    """

    raw_tag: str
    alias: str
    raw_args: str
    args: tuple[tuple[Optional[str], OptionValue], ...]
    position: int

    @property
    def positional(self) -> list[str]:
        return [str(value) for key, value in self.args if key is None]

    def option(self, *keys: str, default: Optional[OptionValue] = None) -> Optional[OptionValue]:
        """Value of the first of *keys* present; later duplicates win."""
        for key in keys:
            found = [value for k, value in self.args if k == key]
            if found:
                return found[-1]
        return default

    @property
    def is_multiple(self) -> bool:
        return self.alias in MULTIPLE_ALIASES

    @property
    def is_image(self) -> bool:
        return self.alias in IMAGE_ALIASES

    @property
    def signature(self) -> tuple[str, str]:
        return self.alias, self.raw_args

    def to_dict(self) -> dict:
        return {
            "alias":    self.alias,
            "raw_tag":  self.raw_tag,
            "args":     [[key, value] for key, value in self.args],
            "position": self.position,
        }


@dataclass(frozen=True)
class PlaceholderEntry:
    placeholder_id: str
    match: TagMatch


# placeholder id -> entry, insertion order = order of appearance
TagContextMap = dict[str, PlaceholderEntry]


@dataclass
class ScanResult:
    html: str
    context_map: TagContextMap = field(default_factory=dict)

    def __iter__(self):
        return iter((self.html, self.context_map))


# -----------------------------------------------------------------------------
# Argument parsing
# -----------------------------------------------------------------------------

def _at_token_start(buf: list[str]) -> bool:
    text = "".join(buf).rstrip()
    return not text or text.endswith("=")


def _split_args(text: str) -> list[str]:
    parts: list[str] = []
    buf: list[str] = []
    quote: Optional[str] = None
    depth = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\" and i + 1 < len(text):
                buf.append(text[i:i + 2])
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "\"'" and _at_token_start(buf):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append("".join(buf))
            buf = []
            i += 1
            continue
        buf.append(ch)
        i += 1
    if quote:
        raise TagSyntaxError(f"unterminated {quote} quote")
    parts.append("".join(buf))
    return parts


def _unquote(value: str) -> str:
    if value[:1] in ("'", '"'):
        if len(value) < 2 or value[-1] != value[0]:
            raise TagSyntaxError(f"unbalanced quotes in {value!r}")
        return re.sub(r"\\(.)", r"\1", value[1:-1])
    return value


def parse_tag_args(raw_args: str) -> tuple[tuple[Optional[str], OptionValue], ...]:
    """Parse the text between a tag's parentheses into ordered options."""
    text = html.unescape(raw_args).strip()
    if not text:
        return ()

    args: list[tuple[Optional[str], OptionValue]] = []
    for part in _split_args(text):
        part = part.strip()
        if not part:
            continue
        if part.startswith("="):
            raise TagSyntaxError(f"option without a key: {part!r}")
        m = _KEY_VALUE_RE.match(part)
        if m and part[:1] not in ("'", '"'):
            value = m.group("value").strip()
            args.append((m.group("key"), _unquote(value) if value else True))
        else:
            args.append((None, _unquote(part)))
    return tuple(args)


# -----------------------------------------------------------------------------
# Scanning
# -----------------------------------------------------------------------------

@lru_cache(maxsize=32)
def _tag_start_re(aliases: frozenset[str]) -> re.Pattern[str]:
    names = "|".join(re.escape(a) for a in sorted(aliases, key=len, reverse=True))
    return re.compile(rf"(?<!\\)\$({names})\(")


_QUOTE_ENTITIES = (("&quot;", '"'), ("&#34;", '"'), ("&#x27;", "'"), ("&#39;", "'"))


def _char_at(content: str, i: int) -> tuple[str, int]:
    """Character at *i*, reading escaped quotes as one quote."""
    if content[i] == "&":
        for entity, ch in _QUOTE_ENTITIES:
            if content.startswith(entity, i):
                return ch, len(entity)
    return content[i], 1


def _find_close(content: str, start: int) -> Optional[int]:
    """Index of the ')' closing a tag whose arguments begin at *start*."""
    buf: list[str] = []
    quote: Optional[str] = None
    depth = 0
    i = start
    while i < len(content):
        ch, width = _char_at(content, i)
        if ch in "\n<":
            return None
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "\"'" and _at_token_start(buf):
            quote = ch
        elif ch == ",":
            buf = []
            i += width
            continue
        elif ch == "(":
            depth += 1
        elif ch == ")":
            if depth == 0:
                return i
            depth -= 1
        buf.append(ch)
        i += width
    return None


def scan(content: str, aliases: Iterable[str] = REF_ALIASES) -> ScanResult:
    """Replace recognised tags in *content* with placeholders.

    Returns ``(rewritten_html, context_map)``.  Text outside recognised tags
    is copied unchanged.
    """
    aliases = frozenset(aliases)
    result = ScanResult(html=content)
    if not content or not aliases:
        return result

    pattern = _tag_start_re(aliases)
    out: list[str] = []
    cursor = 0
    pos = 0
    while True:
        m = pattern.search(content, pos)
        if m is None:
            break
        close = _find_close(content, m.end())
        if close is None:
            log.debug("unterminated $%s tag at %d left as text", m.group(1), m.start())
            pos = m.end()
            continue
        raw_args = content[m.end():close]
        try:
            args = parse_tag_args(raw_args)
        except TagSyntaxError as exc:
            log.debug("malformed $%s tag at %d left as text: %s", m.group(1), m.start(), exc)
            pos = close + 1
            continue

        placeholder_id = f"{m.group(1)}-{len(result.context_map)}"
        match = TagMatch(
            raw_tag=content[m.start():close + 1],
            alias=m.group(1),
            raw_args=raw_args,
            args=args,
            position=m.start(),
        )
        result.context_map[placeholder_id] = PlaceholderEntry(placeholder_id, match)
        out.append(content[cursor:m.start()])
        out.append(PLACEHOLDER_TEMPLATE.format(id=placeholder_id))
        cursor = pos = close + 1

    out.append(content[cursor:])
    result.html = "".join(out)
    log.debug("replaced %d refs tag(s)", len(result.context_map))
    return result


# -----------------------------------------------------------------------------
