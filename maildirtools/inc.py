"""Move new messages of a maildir into cur."""

from __future__ import annotations

import getopt
import sys

import os

_USAGE = "Usage: minc [-q] dirs..."


def incorporate(maildir) -> tuple[list[str], list[tuple[str, str, OSError]]]:
    """Move every message in maildir/new to maildir/cur, adding ':2,'.

    Returns (moved destinations, failures as (source, destination, error)).
    Raises OSError if maildir/new cannot be read.
    """
    maildir = str(maildir)
    with os.scandir(f"{maildir}/new") as it:
        names = [entry.name for entry in it
                 if not entry.name.startswith(".")
                 and entry.is_file(follow_symlinks=False)]

    moved: list[str] = []
    failed: list[tuple[str, str, OSError]] = []
    for name in names:
        src = f"{maildir}/new/{name}"
        dst = f"{maildir}/cur/{name}{'' if ':2,' in name else ':2,'}"
        try:
            os.rename(src, dst)
        except OSError as exc:
            failed.append((src, dst, exc))
        else:
            moved.append(dst)
    return moved, failed


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        opts, args = getopt.gnu_getopt(argv, "q")
    except getopt.GetoptError:
        print(_USAGE, file=sys.stderr)
        return 1
    if not args:
        print(_USAGE, file=sys.stderr)
        return 1
    quiet = bool(opts)

    status = 0
    for maildir in args:
        try:
            moved, failed = incorporate(maildir)
        except OSError as exc:
            print(f"minc: can't open maildir '{maildir}/new': {exc.strerror}",
                  file=sys.stderr)
            status = 2
            continue
        for src, dst, exc in failed:
            print(f"minc: can't rename '{src}' to '{dst}': {exc.strerror}",
                  file=sys.stderr)
            status = 3
        if not quiet:
            for dst in moved:
                print(dst)
    return status