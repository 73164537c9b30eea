"""Reflow format=flowed text and wrap long lines."""

from __future__ import annotations

import getopt
import os
import string
import sys
from dataclasses import dataclass, field

_USAGE = "Usage: mflow [-f] [-q] [-w MAXCOLUMNS]"


@dataclass
class Reflower:
    """Line-at-a-time reflowing of (possibly quoted) flowed text."""

    maxcolumn: int = 80
    reflow: bool = True
    force: bool = False
    delsp: bool = False
    outer_quotes: int = 0
    column: int = field(default=0, init=False)
    _quotes: int = field(default=0, init=False)
    _out: list = field(default_factory=list, init=False)

    def _write(self, text: str) -> None:
        self._out.append(text)

    def _take(self) -> str:
        text = "".join(self._out)
        self._out.clear()
        return text

    def _change_quotes(self, quotes: int) -> None:
        if quotes != self._quotes:
            if self.column:
                self._write("\n")
            self.column = 0
            self._quotes = quotes

    def _fixed(self, quotes: int, line: str) -> None:
        self._change_quotes(quotes)
        room = self.maxcolumn - self.column
        if self.column and room >= 0 and len(line) > room:
            self._write("\n")
            self.column = 0
        if self.column == 0:
            self._write(">" * quotes)
            self.column = quotes
            if quotes and not line.startswith(" "):
                self._write(" ")
        self._write(line + "\n")
        self.column = 0

    def _flowed(self, quotes: int, line: str) -> None:
        self._change_quotes(quotes)
        done = False
        while not done:
            if self.column == 0:
                self._write(">" * quotes)
                self.column = quotes + 1
                if quotes and not line.startswith(" "):
                    self._write(" ")

            eow = line.find(" ", 1) if line.startswith(" ") else line.find(" ")
            if eow < 0:
                eow = len(line)
                done = True

            if (self.column + eow > self.maxcolumn and eow < self.maxcolumn
                    and self.column - quotes > 1):
                self._write("\n")
                self.column = 0
                done = False
                if line.startswith(" "):
                    line = line[1:]
            else:
                self._write(line[:eow])
                self.column += eow
                line = line[eow:]

    def feed(self, line: str) -> str:
        """Process one input line (with its newline); return the output produced."""
        if not self.reflow and not self.force:
            return line

        if line.endswith("\n"):
            line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]

        stripped = line.lstrip(">")
        quotes = self.outer_quotes + len(line) - len(stripped)
        line = stripped

        if self.reflow and line.startswith(" "):  # space stuffing
            line = line[1:]

        if line == "-- ":  # signature separator
            if self.column:
                self._fixed(quotes, "")
            self._fixed(quotes, line)
        elif self.reflow and line.endswith(" "):
            if self.delsp:
                line = line[:-1]
            self._flowed(quotes, line)
        elif self.force and len(line) > self.maxcolumn:
            self._flowed(quotes, line)
            self._fixed(quotes, "")
        else:
            self._fixed(quotes, line)
        return self._take()

    def finish(self) -> str:
        """Return what is needed to end an unterminated paragraph."""
        if self.reflow and self.column != 0:
            self.column = 0
            return "\n"
        return ""


def _mime_parameter(value: str, name: str) -> str | None:
    for part in value.split(";")[1:]:
        key, sep, val = part.strip().partition("=")
        if sep and key.strip().lower() == name:
            val = val.strip()
            return val.strip('"')
    return None


def _atoi(text: str) -> int:
    digits = ""
    for ch in text:
        if ch not in string.digits:
            break
        digits += ch
    return int(digits) if digits else 0


def _terminal_width(default: int) -> int:
    try:
        fd = os.open("/dev/tty", os.O_RDONLY | getattr(os, "O_NOCTTY", 0))
    except OSError:
        return default
    try:
        return os.get_terminal_size(fd).columns
    except OSError:
        return default
    finally:
        os.close(fd)


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv

    reflow = True
    delsp = False
    content_type = os.environ.get("PIPE_CONTENTTYPE")
    if content_type is not None:
        reflow = False
        fmt = _mime_parameter(content_type, "format")
        if fmt is not None:
            reflow = fmt[:6].lower() == "flowed"
        dsp = _mime_parameter(content_type, "delsp")
        if dsp is not None:
            delsp = dsp[:3].lower() == "yes"

    maxcolumn = 80
    cols = os.environ.get("COLUMNS")
    if cols and cols[0] in string.digits:
        maxcolumn = _atoi(cols)
    else:
        maxcolumn = _terminal_width(maxcolumn)

    maxcols = os.environ.get("MAXCOLUMNS")
    if maxcols and maxcols[0] in string.digits:
        maxcolumn = min(maxcolumn, _atoi(maxcols))

    try:
        opts, _ = getopt.getopt(argv, "fqw:")
    except getopt.GetoptError:
        print(_USAGE, file=sys.stderr)
        return 2

    force = False
    outer_quotes = 0
    for opt, value in opts:
        if opt == "-f":
            force = True
        elif opt == "-q":
            outer_quotes += 1
        elif opt == "-w":
            maxcolumn = _atoi(value)

    flow = Reflower(maxcolumn=maxcolumn, reflow=reflow, force=force,
                    delsp=delsp, outer_quotes=outer_quotes)
    out = sys.stdout.buffer
    for raw in sys.stdin.buffer:
        text = flow.feed(raw.decode("utf-8", "surrogateescape"))
        out.write(text.encode("utf-8", "surrogateescape"))
    out.write(flow.finish().encode())
    out.flush()
    return 0