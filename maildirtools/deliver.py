"""Deliver messages into maildirs and refile messages between them."""

from __future__ import annotations

import getopt
import itertools
import os
import re
import socket
import stat
import sys
import time

from .message import parse_date, read_message

_ESCAPED_FROM = re.compile(rb">+From ")
_STATUS_FLAGS = ((b"F", "F"), (b"A", "R"), (b"R", "S"), (b"D", "T"))
_deliveries = itertools.count(1)

_USAGE = (
    "Usage: mdeliver [-c] [-v] [-X flags] dir < message\n"
    "       mdeliver -M [-c] [-v] [-X flags] dir < mbox"
)
_REFILE_USAGE = "Usage: mrefile [-kv] [msgs...] maildir"


def _hostname() -> str:
    host = socket.gethostname()[:63]
    return host.replace("/", "-").replace(":", "-")


def _unique_name(delivery: int, host: str) -> tuple[int, str]:
    now_ns = time.time_ns()
    sec, ns = divmod(now_ns, 1_000_000_000)
    return now_ns, f"{sec}.M{ns // 1000:06d}P{os.getpid()}Q{delivery}.{host}"


def _source_stat(stream) -> tuple[int, int | None]:
    """Return the permission bits and mtime (ns) of the input, if known."""
    try:
        st = os.fstat(stream.fileno())
    except (AttributeError, OSError):
        return 0o600, None
    if stat.S_ISFIFO(st.st_mode):
        return 0o600, st.st_mtime_ns
    return stat.S_IMODE(st.st_mode), st.st_mtime_ns


def _copy(stream, out, mbox: bool) -> tuple[str, bool, bool]:
    """Copy one message; returns (status flags, is old, reached end of input)."""
    status: set[str] = set()
    is_old = False
    in_header = True
    for line in iter(stream.readline, b""):
        if line == b"\n":
            in_header = False
        if mbox and line.startswith(b"From "):
            return "".join(sorted(status)), is_old, False
        if mbox and in_header and (
            line[:7].lower() == b"status:" or line[:9].lower() == b"x-status:"
        ):
            value = line[line.index(b":"):]
            status.update(flag for char, flag in _STATUS_FLAGS if char in value)
            is_old = is_old or b"O" in value
            continue
        if mbox and _ESCAPED_FROM.match(line):
            line = line[1:]
        out.write(line)
    return "".join(sorted(status)), is_old, True


def _set_date_mtime(path: str, now_ns: int) -> None:
    try:
        value = read_message(path).header("date")
    except OSError:
        return
    if value is None:
        return
    try:
        date = parse_date(value)
    except ValueError:
        return
    os.utime(path, ns=(now_ns, date * 1_000_000_000))


def _deliver_one(stream, maildir: str, delivery: int, host: str, *, cur: bool,
                 flags: str | None, mbox: bool, mode: int,
                 mtime_ns: int | None) -> tuple[str, bool]:
    while True:
        now_ns, name = _unique_name(delivery, host)
        tmp = f"{maildir}/tmp/{name}"
        try:
            fd = os.open(tmp, os.O_CREAT | os.O_WRONLY | os.O_EXCL, mode)
        except FileExistsError:
            continue
        break

    with os.fdopen(fd, "wb") as out:
        status, is_old, at_end = _copy(stream, out, mbox)
        out.flush()
        os.fsync(out.fileno())

    if mbox:
        _set_date_mtime(tmp, now_ns)
    if mtime_ns is not None:
        os.utime(tmp, ns=(now_ns, mtime_ns))

    box = "cur" if cur or is_old else "new"
    dst = f"{maildir}/{box}/{name}:2,{status if flags is None else flags}"
    os.rename(tmp, dst)
    return dst, at_end


def deliver(stream, maildir, cur=False, flags=None, verbose=False) -> str:
    """Deliver the single message read from binary stream into maildir.

    Returns the path of the delivered file.
    """
    mode, _ = _source_stat(stream)
    dst, _ = _deliver_one(stream, str(maildir), next(_deliveries), _hostname(),
                          cur=cur, flags=flags, mbox=False, mode=mode, mtime_ns=None)
    if verbose:
        print(dst)
    return dst


def deliver_mbox(stream, maildir, cur=False, flags=None, verbose=False) -> list[str]:
    """Split an mboxrd stream and deliver each message into maildir.

    Raises ValueError if the input holds no 'From ' line.
    """
    for line in iter(stream.readline, b""):
        if line.startswith(b"From "):
            break
    else:
        raise ValueError("invalid mbox file")

    mode, _ = _source_stat(stream)
    host = _hostname()
    delivered = []
    while True:
        dst, at_end = _deliver_one(stream, str(maildir), next(_deliveries), host,
                                   cur=cur, flags=flags, mbox=True, mode=mode,
                                   mtime_ns=None)
        if verbose:
            print(dst)
        delivered.append(dst)
        if at_end:
            return delivered


def refile(path, maildir, keep=False, verbose=False) -> str:
    """Move the message at path into maildir/cur, keeping its flags.

    With keep, the message is copied and the original left in place.
    Returns the new path.
    """
    path = str(path).lstrip(" \t")
    maildir = str(maildir)
    idx = path.find(":2,")
    flags = path[idx + 3:] if idx >= 0 else ""
    host = _hostname()
    delivery = next(_deliveries)

    if not keep:
        _, name = _unique_name(delivery, host)
        dst = f"{maildir}/cur/{name}:2,{flags}"
        try:
            os.rename(path, dst)
        except OSError:
            pass
        else:
            if verbose:
                print(dst)
            return dst

    with open(path, "rb") as stream:
        mode, mtime_ns = _source_stat(stream)
        dst, _ = _deliver_one(stream, maildir, delivery, host, cur=True, flags=flags,
                              mbox=False, mode=mode, mtime_ns=mtime_ns)
    if verbose:
        print(dst)
    return dst


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        opts, args = getopt.gnu_getopt(argv, "cMvX:")
    except getopt.GetoptError:
        print(_USAGE, file=sys.stderr)
        return 1
    if len(args) != 1:
        print(_USAGE, file=sys.stderr)
        return 1

    cur = mbox = verbose = False
    flags = None
    for opt, value in opts:
        if opt == "-c":
            cur = True
        elif opt == "-M":
            mbox = True
        elif opt == "-v":
            verbose = True
        elif opt == "-X":
            flags = value

    stream = sys.stdin.buffer
    try:
        if mbox:
            deliver_mbox(stream, args[0], cur, flags, verbose)
        else:
            deliver(stream, args[0], cur, flags, verbose)
    except (OSError, ValueError) as exc:
        print(f"mdeliver: {exc}", file=sys.stderr)
        return 2
    return 0


def refile_main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        opts, args = getopt.gnu_getopt(argv, "kv")
    except getopt.GetoptError:
        print(_REFILE_USAGE, file=sys.stderr)
        return 1
    if not args:
        print(_REFILE_USAGE, file=sys.stderr)
        return 1

    keep = any(opt == "-k" for opt, _ in opts)
    verbose = any(opt == "-v" for opt, _ in opts)
    maildir, msgs = args[-1], args[:-1]
    if not msgs and sys.stdin.isatty():
        print(_REFILE_USAGE, file=sys.stderr)
        return 1

    paths = msgs or (line.rstrip("\n") for line in sys.stdin if line.strip())
    for path in paths:
        try:
            refile(path, maildir, keep, verbose)
        except OSError as exc:
            print(f"mrefile: {exc}", file=sys.stderr)
    return 0