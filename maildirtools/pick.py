"""Select messages from a message list by flags, headers and thread structure."""

from __future__ import annotations

import fnmatch
import getopt
import os
import sys
import time
from dataclasses import dataclass, field
from typing import TextIO

from .message import Message, iter_addresses, parse_date, read_header
from .pickexpr import Expr, Flag, Op, ParseError, Prop, Var, parse_expr, parse_msglist

_LONG_MAX = (1 << 63) - 1
_USAGE = "Usage: mpick [-Tv] [-t test] [msglist ...]"
_MAILDIR_FLAGS = (
    ("P", Flag.PASSED),
    ("R", Flag.REPLIED),
    ("S", Flag.SEEN),
    ("T", Flag.TRASHED),
    ("D", Flag.DRAFT),
    ("F", Flag.FLAGGED),
)
_STAT_PROPS = (Prop.ATIME, Prop.CTIME, Prop.MTIME, Prop.SIZE)
_NUMERIC_OPS = (Op.LT, Op.LE, Op.EQ, Op.NEQ, Op.GE, Op.GT, Op.ALLSET, Op.ANYSET)
_STRING_OPS = (Op.STREQ, Op.STREQI, Op.GLOB, Op.GLOBI, Op.REGEX, Op.REGEXI)


@dataclass(eq=False)
class MailInfo:
    """One entry of the message list, with lazily loaded header and status."""

    path: str
    index: int
    depth: int = 0
    flags: int = 0
    replies: int = 0
    matched: bool = False
    pruned: bool = False
    parent: MailInfo | None = field(default=None, repr=False)
    _message: Message | None = field(default=None, init=False, repr=False)
    _loaded: bool = field(default=False, init=False, repr=False)
    _stat: os.stat_result | None = field(default=None, init=False, repr=False)
    _date: int | None = field(default=None, init=False, repr=False)

    @property
    def message(self) -> Message | None:
        """The parsed header, or None if the file cannot be read."""
        if not self._loaded:
            self._loaded = True
            try:
                self._message = read_header(self.path)
            except OSError:
                self._message = None
        return self._message

    @property
    def stat(self) -> os.stat_result:
        """The file status; raises OSError if the file cannot be examined."""
        if self._stat is None:
            self._stat = os.stat(self.path)
        return self._stat

    @property
    def date(self) -> int:
        """The Date: header as seconds since the epoch, or -1."""
        if self._date is not None:
            return self._date
        msg = self.message
        value = msg.header("date") if msg is not None else None
        if value is None:
            return -1
        try:
            self._date = int(parse_date(value))
        except ValueError:
            self._date = -1
        return self._date

    def header(self, name: str) -> str:
        """The value of a header, or '' if absent."""
        msg = self.message
        if msg is None:
            return ""
        return msg.header(name) or ""

    def address(self, name: str, want_address: bool) -> str:
        """The address or display name of the first address in a header."""
        value = self.header(name)
        if not value:
            return ""
        for disp, addr in iter_addresses(value):
            return (addr if want_address else disp) or ""
        return ""


def _numeric_value(prop: Prop, info: MailInfo, picker: Picker) -> int:
    if prop is Prop.ATIME:
        return int(info.stat.st_atime)
    if prop is Prop.CTIME:
        return int(info.stat.st_ctime)
    if prop is Prop.MTIME:
        return int(info.stat.st_mtime)
    if prop is Prop.SIZE:
        return info.stat.st_size
    if prop is Prop.KEPT:
        return picker.kept
    if prop is Prop.REPLIES:
        return info.replies
    if prop is Prop.DATE:
        return info.date
    if prop is Prop.FLAG:
        return int(info.flags)
    if prop is Prop.INDEX:
        return info.index
    if prop is Prop.DEPTH:
        return info.depth
    raise ParseError("unknown property")


def _compare(op: Op, v: int, n: int) -> bool:
    if op is Op.LT:
        return v < n
    if op is Op.LE:
        return v <= n
    if op is Op.EQ:
        return v == n
    if op is Op.NEQ:
        return v != n
    if op is Op.GE:
        return v >= n
    if op is Op.GT:
        return v > n
    if op is Op.ALLSET:
        return (v & n) == n
    return (v & n) > 0


def _string_value(e: Expr, info: MailInfo) -> str:
    if e.a is Prop.PATH:
        return info.path
    if e.a is Prop.FROM:
        return info.address("from", bool(e.extra))
    if e.a is Prop.TO:
        return info.address("to", bool(e.extra))
    return info.header(e.a)


def evaluate(expr: Expr, info: MailInfo, picker: Picker) -> bool:
    """Evaluate a selection expression for one message.

    Raises OSError when a file status is needed but unavailable, and
    ParseError for comparisons on properties that have no value.
    """
    op = expr.op
    if op is Op.OR:
        return evaluate(expr.a, info, picker) or evaluate(expr.b, info, picker)
    if op is Op.AND:
        return evaluate(expr.a, info, picker) and evaluate(expr.b, info, picker)
    if op is Op.NOT:
        return not evaluate(expr.a, info, picker)
    if op is Op.PRUNE:
        picker.prune = True
        return True
    if op is Op.PRINT:
        return True
    if op in _NUMERIC_OPS:
        n = expr.b
        if expr.extra and n is Var.CUR:
            if not picker.cur_index:
                n = _LONG_MAX if op in (Op.LT, Op.LE) else -1
            else:
                n = picker.cur_index
        return _compare(op, _numeric_value(expr.a, info, picker), int(n))
    if op in _STRING_OPS:
        s = _string_value(expr, info)
        if op is Op.STREQ:
            return expr.b == s
        if op is Op.STREQI:
            return expr.b.lower() == s.lower()
        if op is Op.GLOB:
            return fnmatch.fnmatchcase(s, expr.b)
        if op is Op.GLOBI:
            return fnmatch.fnmatchcase(s.lower(), expr.b.lower())
        return expr.b.search(s) is not None
    return False


@dataclass
class Picker:
    """Filters message list lines, writing the selected ones to out.

    With threads, lines are grouped into threads by their indentation;
    with thread_mode, a whole thread is printed when any message matches.
    """

    expr: Expr | None = None
    thread_mode: bool = False
    threads: bool | None = None
    cur: str | None = None
    out: TextIO = field(default_factory=lambda: sys.stdout)
    kept: int = field(default=0, init=False)
    cur_index: int = field(default=0, init=False)
    prune: bool = field(default=False, init=False)
    _num: int = field(default=1, init=False, repr=False)
    _thread: list[MailInfo] | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.threads is None:
            self.threads = self.thread_mode or (
                self.expr is not None and self.expr.needs_threads)

    def _mailinfo(self, line: str) -> tuple[MailInfo, str]:
        line = line.rstrip(" \t")
        path = line.lstrip(" \t")
        info = MailInfo(path=path, index=self._num, depth=len(line) - len(path))
        self._num += 1

        if path.startswith("<"):
            info.flags |= Flag.SEEN | Flag.INFO
            return info, line

        slash = path.rfind("/")
        if slash >= 3 and path[slash - 3:slash] == "new":
            info.flags |= Flag.NEW

        if self.cur is not None and self.cur == path:
            info.flags |= Flag.CUR
            self.cur_index = info.index

        idx = path.find(":2,")
        if idx >= 0:
            info_part = path[idx:]
            for char, flag in _MAILDIR_FLAGS:
                if char in info_part:
                    info.flags |= flag
        return info, line

    def add(self, line: str) -> None:
        """Process one line of the message list."""
        info, stripped = self._mailinfo(line.rstrip("\n"))
        if self.threads:
            self._collect(info)
        else:
            if self.expr is None or evaluate(self.expr, info, self):
                self.out.write(stripped + "\n")
                self.kept += 1

    def _collect(self, info: MailInfo) -> None:
        if info.depth == 0 or self._thread is None:
            if self._thread is not None:
                self._flush()
            self._thread = [info]
            return

        prev = self._thread[-1]
        if prev.depth < info.depth:
            prev.flags |= Flag.PARENT
            info.parent = prev
        elif prev.depth == info.depth:
            info.parent = prev.parent
        else:
            for candidate in reversed(self._thread):
                if candidate.depth < info.depth:
                    info.parent = candidate
                    break
        info.flags |= Flag.CHILD
        self._thread.append(info)

        ancestor = info.parent
        while ancestor is not None:
            ancestor.replies += 1
            ancestor = ancestor.parent

    def _flush(self) -> None:
        thread = self._thread
        if thread is None:
            return
        self._thread = None

        matched = 0
        for info in thread:
            info.pruned = self.prune
            if info.pruned or (self.thread_mode and matched):
                continue
            if self.expr is not None and evaluate(self.expr, info, self):
                info.matched = True
                matched += 1
        self.prune = False

        for info in thread:
            if ((self.thread_mode and matched) or info.matched) and not info.pruned:
                self.out.write(" " * info.depth + info.path + "\n")
                self.kept += 1

    def finish(self) -> None:
        """Print the last collected thread when whole threads are selected."""
        if self.thread_mode and self._thread is not None:
            self._flush()


def _and(e1: Expr | None, e2: Expr) -> Expr:
    return e2 if e1 is None else Expr(Op.AND, e1, e2)


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        opts, args = getopt.getopt(argv, "Tt:v")
    except getopt.GetoptError:
        print(_USAGE, file=sys.stderr)
        return 1

    expr = None
    thread_mode = verbose = False
    now = int(time.time())
    try:
        for opt, value in opts:
            if opt == "-T":
                thread_mode = True
            elif opt == "-t":
                expr = _and(expr, parse_expr(value, now))
            elif opt == "-v":
                verbose = True
        for arg in args:
            expr = _and(expr, parse_msglist(arg))
    except ParseError as exc:
        print(f"mpick: parse error: {exc}", file=sys.stderr)
        return 2

    picker = Picker(expr=expr, thread_mode=thread_mode)
    tested = 0
    try:
        for line in sys.stdin:
            line = line.rstrip("\n")
            if not line.strip():
                continue
            tested += 1
            picker.add(line)
        picker.finish()
    except ParseError as exc:
        print(f"mpick: parse error: {exc}", file=sys.stderr)
        return 2
    except OSError as exc:
        print(f"stat: {exc}", file=sys.stderr)
        return 2

    if verbose:
        print(f"{tested} mails tested, {picker.kept} picked.", file=sys.stderr)
    return 0