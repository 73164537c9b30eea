"""Export messages as an mboxrd stream."""

from __future__ import annotations

import argparse
import re
import sys
import time

from .message import parse_date, read_header

_FROM_LINE = re.compile(rb">*From ")


def mboxrd_escape(line: bytes) -> bytes:
    """Prefix '>' to lines matching '>*From '."""
    return b">" + line if _FROM_LINE.match(line) else line


def _envelope(path) -> tuple[str, float]:
    sender = "nobody"
    date = -1
    msg = read_header(path)
    value = msg.header("return-path") or msg.header("x-envelope-from")
    if value:
        lt = value.find("<")
        if lt >= 0:
            gt = value.find(">", lt)
            if gt >= 0:
                sender = value[lt + 1:gt]
        else:
            sender = value
    d = msg.header("date")
    if d:
        try:
            date = parse_date(d)
        except ValueError:
            date = -1
    return sender, date


def export_message(path, out, status_flags=False) -> None:
    """Write the message at path to binary stream out in mboxrd form."""
    path = str(path).lstrip(" \t")
    sender, date = _envelope(path)
    out.write(f"From {sender} {time.ctime(date)}\n".encode())
    with open(path, "rb") as handle:
        in_header = True
        final_nl = True
        for line in handle:
            if in_header and line == b"\n":
                if status_flags:
                    idx = path.find(":2,")
                    flags = path[idx + 3:] if idx >= 0 else ""
                    status = "R" if "S" in flags else ""
                    slash = path.rfind("/")
                    if slash < 0 or not path[:slash].endswith("new"):
                        status += "O"
                    xstatus = "".join(o for f, o in (("R", "A"), ("T", "D"), ("F", "F")) if f in flags)
                    out.write(f"Status: {status}\nX-Status: {xstatus}\n".encode())
                in_header = False
            out.write(mboxrd_escape(line))
            final_nl = line.endswith(b"\n")
        if not final_nl:
            out.write(b"\n")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="mexport")
    parser.add_argument("-S", action="store_true")
    parser.add_argument("msgs", nargs="*")
    args = parser.parse_args(argv)
    files = args.msgs or [l.rstrip("\n") for l in sys.stdin if l.strip()]
    status = 0
    out = sys.stdout.buffer
    for path in files:
        try:
            export_message(path, out, args.S)
        except OSError as exc:
            print(f"mexport: error opening '{path}': {exc.strerror}", file=sys.stderr)
            status = 1
    out.flush()
    return status