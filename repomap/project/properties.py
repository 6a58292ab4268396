"""Read and write flat key/value property files.

The format is the line-oriented ``.properties`` format: ``key=value``
(``:`` or whitespace also separate), ``#``/``!`` comments, backslash
escapes and line continuations.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import IO

_ESCAPES_OUT = {
    "\\": "\\\\",
    "\t": "\\t",
    "\n": "\\n",
    "\r": "\\r",
    "\f": "\\f",
    "=": "\\=",
    ":": "\\:",
    "#": "\\#",
    "!": "\\!",
}
_ESCAPES_IN = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_SEPARATORS = "=:"
_WHITESPACE = " \t\f"


def _escape(text: str, *, is_key: bool) -> str:
    out: list[str] = []
    for index, ch in enumerate(text):
        if ch == " " and (is_key or index == 0):
            out.append("\\ ")
        elif ch in _ESCAPES_OUT:
            out.append(_ESCAPES_OUT[ch])
        elif ord(ch) < 0x20 or ord(ch) > 0x7E:
            out.append(f"\\u{ord(ch):04x}" if ord(ch) <= 0xFFFF else ch)
        else:
            out.append(ch)
    return "".join(out)


def _unescape(text: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch != "\\" or i + 1 >= len(text):
            out.append(ch)
            i += 1
            continue
        nxt = text[i + 1]
        if nxt == "u" and i + 6 <= len(text):
            try:
                out.append(chr(int(text[i + 2:i + 6], 16)))
                i += 6
                continue
            except ValueError:
                pass
        out.append(_ESCAPES_IN.get(nxt, nxt))
        i += 2
    return "".join(out)


def _ends_with_continuation(line: str) -> bool:
    backslashes = len(line) - len(line.rstrip("\\"))
    return backslashes % 2 == 1


def _logical_lines(stream: IO[str]):
    pending = ""
    for raw in stream:
        line = raw.rstrip("\r\n")
        if pending:
            line = line.lstrip(_WHITESPACE)
        elif not line.strip(_WHITESPACE) or line.lstrip(_WHITESPACE)[0] in "#!":
            continue
        if _ends_with_continuation(line):
            pending += line[:-1]
            continue
        yield pending + line
        pending = ""
    if pending:
        yield pending


def _split(line: str) -> tuple[str, str]:
    line = line.lstrip(_WHITESPACE)
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == "\\":
            i += 2
            continue
        if ch in _SEPARATORS or ch in _WHITESPACE:
            break
        i += 1
    key = line[:i]
    rest = line[i:].lstrip(_WHITESPACE)
    if rest and rest[0] in _SEPARATORS:
        rest = rest[1:].lstrip(_WHITESPACE)
    return key, rest


def load_properties(stream: IO[str]) -> dict[str, str]:
    """Parse a property file; later duplicates win."""
    props: dict[str, str] = {}
    for line in _logical_lines(stream):
        key, value = _split(line)
        props[_unescape(key)] = _unescape(value)
    return props


def dump_properties(
    props: dict[str, str],
    stream: IO[str],
    comment: str | None = None,
) -> None:
    """Write *props* sorted by key, preceded by a comment and a timestamp."""
    if comment:
        for line in comment.splitlines():
            stream.write(f"#{line}\n")
    stream.write(f"#{datetime.now(timezone.utc).strftime('%a %b %d %H:%M:%S UTC %Y')}\n")
    for key in sorted(props):
        stream.write(f"{_escape(key, is_key=True)}={_escape(props[key], is_key=False)}\n")
