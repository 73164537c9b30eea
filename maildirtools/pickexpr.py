"""Parsing of message selection expressions and message list arguments."""

from __future__ import annotations

import enum
import os
import re
import string
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from .message import iter_addresses

_INT64_MAX = (1 << 63) - 1
_NAME_CHARS = set(string.ascii_letters + string.digits + "_")
_SUFFIXES = (
    ("c", 1),
    ("b", 512),
    ("k", 1024),
    ("M", 1024 ** 2),
    ("G", 1024 ** 3),
    ("T", 1024 ** 4),
)


class ParseError(ValueError):
    """A selection expression could not be parsed."""


class Op(enum.Enum):
    OR = 1
    AND = 2
    NOT = 3
    LT = 4
    LE = 5
    EQ = 6
    NEQ = 7
    GE = 8
    GT = 9
    STREQ = 10
    STREQI = 11
    GLOB = 12
    GLOBI = 13
    REGEX = 14
    REGEXI = 15
    PRUNE = 16
    PRINT = 17
    TYPE = 18
    ALLSET = 19
    ANYSET = 20


class Prop(enum.Enum):
    ATIME = 1
    CTIME = 2
    DEPTH = 3
    KEPT = 4
    MTIME = 5
    PATH = 6
    REPLIES = 7
    SIZE = 8
    TOTAL = 9
    FROM = 10
    TO = 11
    INDEX = 12
    DATE = 13
    FLAG = 14


class Flag(enum.IntFlag):
    PASSED = 1
    REPLIED = 2
    SEEN = 4
    TRASHED = 8
    DRAFT = 16
    FLAGGED = 32
    NEW = 64
    CUR = 128
    PARENT = 256
    CHILD = 512
    INFO = 1024


class Var(enum.Enum):
    CUR = 1


@dataclass
class Expr:
    """One node of a selection expression.

    For AND/OR, a and b are sub-expressions; for NOT, a is. For comparisons
    a is a Prop and b a number (or Var.CUR when extra is set). For string
    tests a is a Prop or a header name and b a string or compiled regex;
    extra set means the address part of From/To is compared, not the name.
    """

    op: Op
    a: Any = None
    b: Any = None
    extra: int = 0

    @property
    def needs_threads(self) -> bool:
        """Whether evaluating this expression needs thread structure."""
        if self.op in (Op.AND, Op.OR):
            return self.a.needs_threads or self.b.needs_threads
        if self.op is Op.NOT:
            return self.a.needs_threads
        if self.a is Prop.REPLIES:
            return True
        if self.a is Prop.FLAG and isinstance(self.b, int):
            return bool(self.b & (Flag.PARENT | Flag.CHILD))
        return False


def _chain(e1: Expr | None, op: Op, e2: Expr | None) -> Expr | None:
    """Append e2 to the right-leaning op chain e1."""
    if e1 is None:
        return e2
    if e2 is None:
        return e1
    parent = None
    node = e1
    while node.op is op:
        parent, node = node, node.b
    joined = Expr(op, node, e2)
    if parent is None:
        return joined
    parent.b = joined
    return e1


def _first_address(s: str) -> tuple[str | None, str | None]:
    for disp, addr in iter_addresses(s):
        return disp, addr
    return None, None


def _compile(pattern: str, ignore_case: bool) -> re.Pattern:
    try:
        return re.compile(pattern, re.IGNORECASE if ignore_case else 0)
    except re.error as exc:
        raise ParseError(f"invalid regex '{pattern}': {exc}") from None


def _local_midnight(day) -> int:
    return int(time.mktime((day.year, day.month, day.day, 0, 0, 0, 0, 0, -1)))


class _Parser:
    def __init__(self, text: str, now: int):
        self.text = text
        self.pos = 0
        self.now = now

    @property
    def rest(self) -> str:
        return self.text[self.pos:]

    def at(self) -> str:
        return self.rest[:15]

    def peek(self, offset: int = 0) -> str:
        i = self.pos + offset
        return self.text[i] if i < len(self.text) else ""

    def ws(self) -> None:
        while self.peek() and self.peek().isspace():
            self.pos += 1

    def token(self, tok: str) -> bool:
        if self.text.startswith(tok, self.pos):
            self.pos += len(tok)
            self.ws()
            return True
        return False

    def parse_op(self) -> Op | None:
        if self.token("<="):
            return Op.LE
        if self.token("<"):
            return Op.LT
        if self.token(">="):
            return Op.GE
        if self.token(">"):
            return Op.GT
        if self.token("==") or self.token("="):
            return Op.EQ
        if self.token("!="):
            return Op.NEQ
        return None

    def parse_inner(self) -> Expr:
        if self.token("prune"):
            return Expr(Op.PRUNE)
        if self.token("print"):
            return Expr(Op.PRINT)
        if self.token("!"):
            return Expr(Op.NOT, self.parse_cmp())
        if self.token("("):
            e = self.parse_or()
            if self.token(")"):
                return e
            raise ParseError(f"missing ) at '{self.at()}'")
        raise ParseError(f"unknown expression at '{self.at()}'")

    def parse_string(self) -> str | None:
        if self.peek() == '"':
            self.pos += 1
            chars = []
            while self.peek() and (self.peek() != '"' or self.peek(1) == '"'):
                if self.peek() == '"':
                    self.pos += 1
                chars.append(self.peek())
                self.pos += 1
            if not self.peek():
                raise ParseError("unterminated string")
            self.pos += 1
            self.ws()
            return "".join(chars)
        if self.peek() == "$":
            self.pos += 1
            start = self.pos
            while self.peek() and self.peek() in _NAME_CHARS:
                self.pos += 1
            if start == self.pos:
                raise ParseError("invalid environment variable name")
            value = os.environ.get(self.text[start:self.pos], "")
            self.ws()
            return value
        return None

    def parse_strcmp(self) -> Expr:
        prop = None
        header = None
        if self.token("from"):
            prop = Prop.FROM
        elif self.token("to"):
            prop = Prop.TO
        elif self.token("subject"):
            header = "subject"
        else:
            header = self.parse_string()
            if header is None:
                return self.parse_inner()

        negate = False
        for tok, op, neg in (
            ("~~~", Op.GLOBI, False),
            ("~~", Op.GLOB, False),
            ("=~~", Op.REGEXI, False),
            ("=~", Op.REGEX, False),
            ("===", Op.STREQI, False),
            ("==", Op.STREQ, False),
            ("=", Op.STREQ, False),
            ("!~~~", Op.GLOBI, True),
            ("!~~", Op.GLOB, True),
            ("!=~~", Op.REGEXI, True),
            ("!=~", Op.REGEX, True),
            ("!===", Op.STREQI, True),
            ("!==", Op.STREQ, True),
            ("!=", Op.STREQ, True),
        ):
            if self.token(tok):
                negate = neg
                break
        else:
            raise ParseError(f"invalid string operator at '{self.at()}'")

        value = self.parse_string()
        if value is None:
            raise ParseError(f"invalid string at '{self.at()}'")

        e = Expr(op, prop if prop is not None else header)
        if prop in (Prop.FROM, Prop.TO):
            disp, addr = _first_address(value)
            if not disp and not addr:
                raise ParseError(f"invalid address at '{self.at()}'")
            value = disp or addr
            e.extra = 0 if disp else 1

        if op is Op.REGEX:
            e.b = _compile(value, False)
        elif op is Op.REGEXI:
            e.b = _compile(value, True)
        else:
            e.b = value

        return Expr(Op.NOT, e) if negate else e

    def parse_num(self) -> int | None:
        start = self.pos
        if not (self.peek() and self.peek() in string.digits):
            return None
        n = 0
        while self.peek() and self.peek() in string.digits and n <= _INT64_MAX // 10 - 10:
            n = 10 * n + int(self.peek())
            self.pos += 1
        if self.peek() and self.peek() in string.digits:
            raise ParseError(f"number too big: {self.text[start:]}")
        for suffix, factor in _SUFFIXES:
            if self.token(suffix):
                n *= factor
                break
        self.ws()
        return n

    def parse_flag(self) -> Expr:
        for name, flag in (
            ("passed", Flag.PASSED),
            ("replied", Flag.REPLIED),
            ("seen", Flag.SEEN),
            ("trashed", Flag.TRASHED),
            ("draft", Flag.DRAFT),
            ("flagged", Flag.FLAGGED),
            ("new", Flag.NEW),
            ("cur", Flag.CUR),
            ("info", Flag.INFO),
            ("parent", Flag.PARENT),
            ("child", Flag.CHILD),
        ):
            if self.token(name):
                return Expr(Op.ANYSET, Prop.FLAG, flag)
        return self.parse_strcmp()

    def parse_cmp(self) -> Expr:
        for name, prop in (
            ("depth", Prop.DEPTH),
            ("kept", Prop.KEPT),
            ("index", Prop.INDEX),
            ("replies", Prop.REPLIES),
            ("size", Prop.SIZE),
            ("total", Prop.TOTAL),
        ):
            if self.token(name):
                break
        else:
            return self.parse_flag()

        op = self.parse_op()
        if op is None:
            raise ParseError(f"invalid comparison at '{self.at()}'")
        n = self.parse_num()
        if n is not None:
            return Expr(op, prop, n)
        if self.token("cur"):
            return Expr(op, prop, Var.CUR, extra=1)
        raise ParseError(f"invalid number at '{self.at()}'")

    def parse_dur(self) -> int | None:
        s = self.parse_string()
        if s is None:
            return None

        if s.startswith(("/", ".")):
            try:
                return int(os.stat(s).st_mtime)
            except OSError as exc:
                raise ParseError(f"can't stat file '{s}': {exc.strerror}") from None

        for fmt in ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d"):
            try:
                parsed = datetime.strptime(s, fmt)
            except ValueError:
                continue
            return int(time.mktime(parsed.timetuple()))

        today = datetime.fromtimestamp(self.now)
        for fmt in ("%H:%M:%S", "%H:%M"):
            try:
                parsed = datetime.strptime(s, fmt)
            except ValueError:
                continue
            combined = today.replace(hour=parsed.hour, minute=parsed.minute,
                                     second=parsed.second, microsecond=0)
            return int(time.mktime(combined.timetuple()))

        if s.startswith("-"):
            rest = s[1:]
            m = re.match(r"\s*[+-]?\d+", rest)
            if m:
                amount = int(m.group().strip())
                unit = rest[m.end():]
            else:
                amount, unit = 0, rest
            if unit == "d":
                return _local_midnight(today.date() - timedelta(days=amount))
            if unit == "h":
                return self.now - amount * 60 * 60
            if unit == "m":
                return self.now - amount * 60
            if unit == "s":
                return self.now - amount
            raise ParseError(f"invalid relative time format '{s}'")

        raise ParseError(f"invalid time format '{s}'")

    def parse_timecmp(self) -> Expr:
        for name, prop in (
            ("atime", Prop.ATIME),
            ("ctime", Prop.CTIME),
            ("mtime", Prop.MTIME),
            ("date", Prop.DATE),
        ):
            if self.token(name):
                break
        else:
            return self.parse_cmp()

        op = self.parse_op()
        if op is None:
            raise ParseError(f"invalid comparison at '{self.at()}'")
        n = self.parse_num()
        if n is None:
            n = self.parse_dur()
        if n is None:
            raise ParseError(f"invalid time at '{self.at()}'")
        return Expr(op, prop, n)

    def parse_and(self) -> Expr:
        r = self.parse_timecmp()
        while self.token("&&"):
            r = _chain(r, Op.AND, self.parse_timecmp())
        return r

    def parse_or(self) -> Expr:
        r = self.parse_and()
        while self.token("||"):
            r = _chain(r, Op.OR, self.parse_and())
        return r


def parse_expr(s: str, now: int | None = None) -> Expr:
    """Parse a selection expression; relative times count back from now."""
    parser = _Parser(s, int(time.time()) if now is None else int(now))
    e = parser.parse_or()
    if parser.pos < len(s):
        raise ParseError(f"trailing garbage at '{parser.at()}'")
    return e


_TYPE_FLAGS = {
    "P": (Flag.PASSED, False),
    "F": (Flag.FLAGGED, False),
    "D": (Flag.DRAFT, False),
    "d": (Flag.TRASHED, False),
    "T": (Flag.TRASHED, False),
    "u": (Flag.SEEN, True),
    "r": (Flag.SEEN, False),
    "S": (Flag.SEEN, False),
    "o": (Flag.NEW, True),
    "n": (Flag.NEW, False),
    "R": (Flag.REPLIED, False),
}


def parse_msglist(s: str) -> Expr:
    """Parse a message list argument: /regex, :type, n, n:m, n-m or an address."""
    if s.startswith("/"):
        return Expr(Op.REGEXI, "subject", _compile(s[1:], True))

    if s.startswith(":"):
        if len(s) <= 1:
            raise ParseError(f"missing type at '{s[:15]}'")
        kind = _TYPE_FLAGS.get(s[1])
        if kind is None:
            raise ParseError(f"unknown type at '{s[1:16]}'")
        flag, negate = kind
        e = Expr(Op.ANYSET, Prop.FLAG, flag)
        return Expr(Op.NOT, e) if negate else e

    parser = _Parser(s, int(time.time()))
    sep = s.find(":")
    if sep < 0:
        sep = s.find("-")
    if sep >= 0:
        n = parser.parse_num()
        if n is not None:
            parser.pos = sep + 1
            m = parser.parse_num()
            if m is not None:
                return _chain(Expr(Op.GE, Prop.INDEX, n), Op.AND,
                              Expr(Op.LE, Prop.INDEX, m))
    n = parser.parse_num()
    if n is not None:
        return Expr(Op.EQ, Prop.INDEX, n)

    disp, addr = _first_address(s)
    if not disp and not addr:
        raise ParseError(f"invalid address at '{parser.at()}'")
    return Expr(Op.REGEXI, Prop.FROM, _compile(disp or addr, True),
                extra=0 if disp else 1)