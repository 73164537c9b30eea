"""Parsing of RFC 822 message headers, dates and addresses."""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from typing import Iterator

_READ_SIZE = 4096
_FIELD_LIMIT = 1023
_TOKEN_LIMIT = 1024
_WSP = " \t"

_NAME_END = re.compile(rb"[^:\n]*")
_NEWLINES = re.compile(rb"\n*")
_FOLD = re.compile(rb"\n[ \t\n\r]*")
_NUMBER = re.compile(r"[ \t\n\v\f\r]*([+-]?)([0-9]*)")
_NEEDS_QUOTING = re.compile(r'[()<>\[\]:;@\\," \t]')

_DAYS = ("mon,", "tue,", "wed,", "thu,", "fri,", "sat,", "sun,")
_MONTHS = (
    "jan", "feb", "mar", "apr", "may", "jun",
    "jul", "aug", "sep", "oct", "nov", "dec",
)
_LONG_MIN = -(2**63)
_LONG_MAX = 2**63 - 1


def _fold_case(data: bytes) -> bytes:
    """Lowercase the way header names are stored: set bit 0x20 on every byte."""
    return bytes(b | 0x20 for b in data)


def _fold_case_text(text: str) -> str:
    raw = text.encode("utf-8", "surrogateescape")
    return _fold_case(raw).decode("utf-8", "surrogateescape")


def _compress(chunk: bytes) -> bytes:
    if b"\n" not in chunk:
        return chunk
    return _FOLD.sub(b" ", chunk).rstrip(b" \t\n\r")


def unfold_header(data: bytes) -> list[str]:
    """Split a raw header block into unfolded 'name:value' lines.

    Header names are lowercased, NUL bytes become spaces and continuation
    lines are joined with a single space.
    """
    buf = data.replace(b"\0", b" ").replace(b"\r\n", b"\n\n").replace(b"\r", b" ")
    size = len(buf)

    spans = []
    start = 0
    pos = name_end = _NAME_END.match(buf, 0).end()
    while pos < size:
        newline = buf.find(b"\n", pos + 1)
        if newline < 0:
            break
        nxt = _NEWLINES.match(buf, newline).end()
        if nxt < size and buf[nxt] in b" \t":
            pos = nxt
            continue
        spans.append((start, name_end, nxt - 1))
        start = nxt
        pos = name_end = _NAME_END.match(buf, nxt).end()
    spans.append((start, name_end, size))

    lines = []
    for begin, name_stop, stop in spans:
        name_stop = min(name_stop, stop)
        chunk = _compress(_fold_case(buf[begin:name_stop]) + buf[name_stop:stop])
        if chunk:
            lines.append(chunk.decode("utf-8", "surrogateescape"))
    return lines


@dataclass
class Message:
    """A parsed message: unfolded header lines and, if read, the body."""

    lines: list[str]
    body: bytes | None = None
    raw: bytes | None = None

    def header(self, name: str) -> str | None:
        """Return the value of the first header called name, or None."""
        prefix = _fold_case_text(name) + ":"
        for line in self.lines:
            if line.startswith(prefix):
                return line[len(prefix):].lstrip(_WSP)
        return None

    def headers(self) -> list[str]:
        """Return all header lines in order, as 'name:value'."""
        return list(self.lines)


def read_header(path) -> Message:
    """Read only the header block of the message file at path."""
    buf = bytearray()
    with open(path, "rb") as handle:
        while chunk := handle.read(_READ_SIZE):
            start = max(len(buf) - 3, 0)
            buf += chunk
            end = buf.find(b"\n\n", start)
            if end >= 0:
                return Message(unfold_header(bytes(buf[: end + 1])))
            end = buf.find(b"\r\n\r\n", start)
            if end >= 0:
                return Message(unfold_header(bytes(buf[: end + 2])))
    return Message(unfold_header(bytes(buf)))


def parse_message(data: bytes) -> Message:
    """Parse a complete message held in memory."""
    end = data.find(b"\n\n")
    if end >= 0:
        header, body = data[:end], data[end + 2:]
    else:
        end = data.find(b"\r\n\r\n")
        if end >= 0:
            header, body = data[:end], data[end + 4:]
        else:
            header, body = data, b""
    return Message(unfold_header(header), body, data)


def read_message(path) -> Message:
    """Read and parse the whole message file at path."""
    with open(path, "rb") as handle:
        data = handle.read()
    return parse_message(data)


def _skip_wsp(s: str, pos: int) -> int:
    while pos < len(s) and s[pos] in _WSP:
        pos += 1
    return pos


def _strtol(s: str, pos: int) -> tuple[int, int]:
    match = _NUMBER.match(s, pos)
    sign, digits = match.groups()
    if not digits:
        return 0, pos
    value = int(sign + digits)
    if not _LONG_MIN <= value <= _LONG_MAX:
        raise ValueError("number out of range")
    return value, match.end()


def _posint(s: str, pos: int, low: int, high: int) -> tuple[int, int]:
    value, end = _strtol(s, pos)
    if not low <= value <= high:
        raise ValueError(f"value {value} not in {low}..{high}")
    return value, end


def _lower_ascii(text: str) -> str:
    return "".join(chr(ord(c) | 0x20) if ord(c) < 128 else c for c in text)


def parse_date(s: str) -> int:
    """Parse an RFC 822 date into seconds since the epoch.

    Raises ValueError if the date cannot be parsed.
    """
    try:
        return _parse_date(s)
    except ValueError as exc:
        raise ValueError(f"invalid date: {s!r}") from exc


def _parse_date(s: str) -> int:
    pos = _skip_wsp(s, 0)
    if _lower_ascii(s[pos:pos + 4]) in _DAYS:
        pos = _skip_wsp(s, pos + 4)

    day, pos = _posint(s, pos, 1, 31)
    pos = _skip_wsp(s, pos)

    month_name = _lower_ascii(s[pos:pos + 3])
    if month_name not in _MONTHS:
        raise ValueError("unknown month")
    month = _MONTHS.index(month_name)
    pos = _skip_wsp(s, pos + 3)

    year = None
    for low, high, offset in ((1000, 9999, 0), (0, 49, 2000), (50, 99, 1900)):
        try:
            value, pos = _posint(s, pos, low, high)
        except ValueError:
            continue
        if value > 0:
            year = value + offset
            break
    if year is None:
        raise ValueError("invalid year")

    pos = _skip_wsp(s, pos)
    hour, pos = _posint(s, pos, 0, 24)
    if pos >= len(s) or s[pos] != ":":
        raise ValueError("missing minutes")
    minute, pos = _posint(s, pos + 1, 0, 59)

    sep = s[pos] if pos < len(s) else ""
    pos += 1
    second = 0
    if sep == ":":
        second, pos = _posint(s, pos, 0, 61)

    pos = _skip_wsp(s, pos)
    if pos < len(s) and s[pos] in "+-":
        negative = s[pos] == "-"
        offset, pos = _posint(s, pos + 1, 0, 10000)
        sign = 1 if negative else -1
        hour += sign * (offset // 100)
        minute += sign * (offset % 100)

    return calendar.timegm((year, month + 1, day, hour, minute, second))


def _join(dst: str, text: str) -> str:
    return (dst + text)[:_FIELD_LIMIT]


def _extend(word: list[str], text: str) -> None:
    word.extend(text[: max(_TOKEN_LIMIT - len(word), 0)])


def _skip_comment(s: str, pos: int) -> int:
    if pos >= len(s) or s[pos] != "(":
        return pos
    depth = 0
    while pos < len(s):
        if s[pos] == "(":
            depth += 1
        elif s[pos] == ")":
            depth -= 1
        pos += 1
        if depth <= 0:
            break
    return pos


def _read_angle(s: str, pos: int) -> tuple[int, str]:
    size = len(s)
    tok: list[str] = []
    while pos < size and len(tok) < _TOKEN_LIMIT and s[pos] != ">":
        pos = _skip_comment(s, pos)
        if pos >= size:
            break
        ch = s[pos]
        if ch == '"':
            pos += 1
            while pos < size and len(tok) < _TOKEN_LIMIT and s[pos] != '"':
                if s[pos] == "\\":
                    pos += 1
                    if pos >= size:
                        break
                tok.append(s[pos])
                pos += 1
            if pos < size and s[pos] == '"':
                pos += 1
        elif ch == "<":
            tok = []
            pos += 1
        elif ch in _WSP:
            pos += 1
        else:
            tok.append(ch)
            pos += 1
    if pos < size and s[pos] == ">":
        pos += 1
    return pos, "".join(tok)


def _read_quoted(s: str, pos: int) -> tuple[int, str]:
    size = len(s)
    chars: list[str] = []
    while pos < size and len(chars) < _TOKEN_LIMIT and s[pos] != '"':
        if s[pos] == "\\" and pos + 1 < size:
            pos += 1
        chars.append(s[pos])
        pos += 1
    if pos < size and s[pos] == '"':
        pos += 1
    return pos, "".join(chars)


def _quote_local_part(addr: str) -> str:
    host = addr.rfind("@")
    if host < 0:
        return addr
    special = _NEEDS_QUOTING.search(addr)
    if not special or special.start() >= host:
        return addr
    local = addr[:host].replace("\\", "\\\\").replace('"', '\\"')
    quoted = f'"{local}"{addr[host:]}'
    return quoted if len(quoted) <= _FIELD_LIMIT else addr


def parse_address(s: str) -> tuple[str | None, str | None, str] | None:
    """Parse the first address of an address list.

    Returns (display name, address, rest of the string), where either of
    the first two may be None, or None when no address is left.
    """
    size = len(s)
    disp = ""
    addr = ""
    word: list[str] = []
    not_addr = False
    pos = 0

    while True:
        ch = s[pos] if pos < size else ""
        if ch in ("", " ", "\t", ",", ";"):
            if word:
                text = "".join(word)
                if not addr and not not_addr and "@" in text:
                    addr = _join(addr, text)
                else:
                    if disp:
                        disp = _join(disp, " ")
                    disp = _join(disp, text)
                word = []
                not_addr = False
            if not ch:
                if not addr and not disp:
                    return None
                break
            pos += 1
            if ch in ",;" and (addr or disp):
                break
        elif ch == "<":
            pos, inner = _read_angle(s, pos + 1)
            if addr:
                if disp:
                    disp = _join(disp, " ")
                disp = _join(disp, addr)
            addr = inner[:_FIELD_LIMIT]
        elif ch == '"':
            pos, quoted = _read_quoted(s, pos + 1)
            if "@" in quoted:
                not_addr = True  # an @ inside quotes never makes an address
            if word:
                _extend(word, " ")
            _extend(word, quoted)
        elif ch == "(":
            end = _skip_comment(s, pos)
            if not disp and addr:
                stop = end - 1 if end < size or s[end - 1] == ")" else end
                disp = s[pos + 1:stop][:_FIELD_LIMIT]
            elif disp:
                disp = _join(_join(disp, " "), s[pos:end])
            pos = end
        elif ch == ":":
            pos += 1
            if "[" in word:
                _extend(word, ":")
            else:  # group name: forget it and start over
                word = []
                addr = disp = ""
                not_addr = False
        else:
            if ch == "\\" and pos + 1 < size:
                pos += 1
            _extend(word, s[pos])
            pos += 1

    addr = _quote_local_part(addr)
    return (disp or None, addr or None, s[pos:])


def iter_addresses(s: str) -> Iterator[tuple[str | None, str | None]]:
    """Yield (display name, address) pairs of an address list."""
    while (parsed := parse_address(s)) is not None:
        disp, addr, s = parsed
        yield disp, addr