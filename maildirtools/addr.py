"""List the addresses found in message headers."""

from __future__ import annotations

import argparse
import sys
from typing import Iterator

from .message import iter_addresses, read_header

DEFAULT_HEADERS = (
    "from:sender:reply-to:to:cc:bcc:"
    "resent-from:resent-sender:resent-to:resent-cc:resent-bcc:"
)
_SPECIALS = set('()<>[]:;@\\,."')


def quote_display(s: str) -> str:
    """Quote a display name when it holds specials or control characters."""
    if not any(ord(c) < 32 or c in _SPECIALS for c in s):
        return s
    inner = s.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{inner}"'


def message_addresses(path, headers=DEFAULT_HEADERS, addresses_only=False) -> Iterator[str]:
    """Yield formatted addresses from the given colon-separated headers."""
    path = str(path).lstrip(" \t")
    try:
        msg = read_header(path)
    except OSError:
        return
    for name in headers.split(":"):
        if not name:
            continue
        value = msg.header(name)
        if value is None:
            continue
        for disp, addr in iter_addresses(value):
            if disp and addr and disp == addr:
                disp = None
            if disp and addr:
                yield addr if addresses_only else f"{quote_display(disp)} <{addr}>"
            elif addr:
                yield addr


def _paths(files: list[str]) -> Iterator[str]:
    if files:
        yield from files
    else:
        for line in sys.stdin:
            line = line.rstrip("\n")
            if line:
                yield line


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="maddr")
    parser.add_argument("-a", action="store_true")
    parser.add_argument("-H", "--headers", dest="headers", default=DEFAULT_HEADERS)
    parser.add_argument("msgs", nargs="*")
    args = parser.parse_args(argv)
    for path in _paths(args.msgs):
        for line in message_addresses(path, args.headers, args.a):
            print(line)
    return 0