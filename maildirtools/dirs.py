"""Find maildirs, including Maildir++ subfolders, below directories."""

from __future__ import annotations

import getopt
import os
import sys
from typing import Iterator

_USAGE = "Usage: mdirs [-0] dirs..."


def find_maildirs(path) -> Iterator[str]:
    """Yield the absolute paths of the maildirs at or below path.

    Inside a maildir only subdirectories starting with '.' are searched.
    """
    try:
        with os.scandir(path) as it:
            entries = list(it)
    except OSError:
        return
    path = os.path.realpath(path)
    dot_only = (os.path.isdir(os.path.join(path, "cur"))
                and os.path.isdir(os.path.join(path, "new")))
    if dot_only:
        yield path
    for entry in entries:
        if not entry.is_dir(follow_symlinks=False):
            continue
        if dot_only and not entry.name.startswith("."):
            continue
        yield from find_maildirs(os.path.join(path, entry.name))


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        opts, args = getopt.gnu_getopt(argv, "0")
    except getopt.GetoptError:
        print(_USAGE, file=sys.stderr)
        return 1
    if not args:
        print(_USAGE, file=sys.stderr)
        return 1
    sep = "\0" if opts else "\n"
    for arg in args:
        for found in find_maildirs(arg):
            sys.stdout.write(found + sep)
    return 0