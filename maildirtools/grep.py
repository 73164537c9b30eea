"""Search messages for header or body values matching a regex."""

from __future__ import annotations

import argparse
import re
import sys
from dataclasses import dataclass, field

from .message import iter_addresses, read_header, read_message


class _Quit(Exception):
    pass


@dataclass
class Grep:
    """Matcher for one 'header:regex' query; output lines go to `output`."""

    header: str
    pattern: str
    count: bool = False
    header_prefix: bool = False
    ignore_case: bool = False
    list_once: bool = False
    max_matches: int = 0
    only_matching: bool = False
    print_path: bool = False
    quiet: bool = False
    invert: bool = False
    addresses: bool = False
    matches: int = 0
    output: list = field(default_factory=list)

    def __post_init__(self):
        self._rx = re.compile(self.pattern, re.IGNORECASE if self.ignore_case else 0)

    def match(self, file: str, hdr: str, value: str) -> bool:
        """Test value and record output; returns whether it matched."""
        if self.only_matching and not (self.count or self.quiet or self.invert or self.list_once):
            found = 0
            for m in self._rx.finditer(value):
                if not m.group(0):
                    continue
                if self.print_path:
                    self.output.append(f"{file}: {hdr}: {m.group(0)}")
                elif self.header_prefix:
                    self.output.append(f"{hdr}: {m.group(0)}")
                else:
                    self.output.append(m.group(0))
                found += 1
            matched = bool(found and self.matches)
            if found:
                self.matches += 1
            return matched
        if self.invert ^ (self._rx.search(value) is not None):
            if self.quiet:
                self.matches += 1
                raise _Quit
            self.matches += 1
            if not self.count:
                line = file if (self.invert or not self.header_prefix) else ""
                if self.print_path and not self.invert:
                    line += f": {hdr}: {value}"
                elif self.header_prefix and not self.invert:
                    line += f"{hdr}: {value}"
                self.output.append(line)
            if self.max_matches and self.matches >= self.max_matches:
                raise _Quit
            return True
        return False

    def _match_value(self, file, hdr, value):
        if self.addresses:
            return any(addr and self.match(file, hdr, addr)
                       for _, addr in iter_addresses(value))
        return self.match(file, hdr, value)

    def _search_body(self, file):
        try:
            msg = read_message(file.lstrip(" \t"))
        except OSError:
            return
        ct = msg.header("content-type")
        if ct and not ct.startswith("text/plain"):
            return
        text = (msg.body or b"").decode("utf-8", "replace")
        if (self.header_prefix or self.print_path) and not (self.count or self.only_matching or self.invert):
            for line in re.split(r"[\r\n]", text):
                if len(line) > 1:
                    self.match(file, "/", line)
        else:
            self.match(file, "/", text)

    def search(self, file: str) -> bool:
        """Search one file; returns False once searching should stop."""
        try:
            if not self.header:
                idx = file.find(":2,")
                if idx >= 0:
                    self.match(file, "flags", file[idx + 3:])
            elif self.header == "/":
                self._search_body(file)
            else:
                try:
                    msg = read_header(file.lstrip(" \t"))
                except OSError:
                    return True
                if self.header == "*":
                    for line in msg.headers():
                        name, sep, value = line.partition(":")
                        if not sep:
                            continue
                        if value.startswith(" "):
                            value = value[1:]
                        if self._match_value(file, name, value) and self.list_once:
                            break
                else:
                    value = msg.header(self.header)
                    if value is not None:
                        self._match_value(file, self.header, value)
        except _Quit:
            return False
        return True


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="magrep", add_help=False)
    for flag in "acdhilopqv":
        parser.add_argument(f"-{flag}", action="store_true")
    parser.add_argument("-m", type=int, default=0)
    parser.add_argument("query")
    parser.add_argument("msgs", nargs="*")
    try:
        args = parser.parse_args(argv)
    except SystemExit:
        return 2
    header, sep, rx = args.query.partition(":")
    if not sep:
        print("Usage: magrep [options] header:regex [msgs...]", file=sys.stderr)
        return 2
    try:
        grep = Grep(header, rx, count=args.c, header_prefix=args.h, ignore_case=args.i,
                    list_once=args.l, max_matches=args.m, only_matching=args.o,
                    print_path=args.p, quiet=args.q, invert=args.v, addresses=args.a)
    except re.error as exc:
        print(f"magrep: regex error: {exc}", file=sys.stderr)
        return 2
    files = args.msgs or [l.rstrip("\n") for l in sys.stdin if l.strip()]
    for path in files:
        keep = grep.search(path)
        for line in grep.output:
            print(line)
        grep.output.clear()
        if not keep:
            return 0
    if args.c and not args.q and not args.m:
        print(grep.matches)
    return 0 if grep.matches else 1