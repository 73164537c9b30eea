"""Change the flags in maildir file names."""

from __future__ import annotations

import getopt
import os
import sys
from typing import Mapping

_USAGE = (
    "Usage: mflag [-DFPRST] [-X str]\n"
    "\t\t  [-dfprst] [-x str]\n"
    "\t\t  [-v] [msgs...]"
)


def apply_flags(path: str, changes: Mapping[str, bool]) -> str | None:
    """Return path with flags set (True) or cleared (False), sorted.

    Returns None when path has no ':2,' info part or nothing changes.
    """
    idx = path.find(":2,")
    if idx < 0:
        return None
    present = set(path[idx + 3:])
    added = {flag for flag, on in changes.items() if on}
    removed = {flag for flag, on in changes.items() if not on}
    wanted = (present | added) - removed
    if wanted == present:
        return None
    return path[:idx + 3] + "".join(sorted(wanted))


def flag_file(path: str, changes: Mapping[str, bool]) -> str | None:
    """Rename the message at path to carry the changed flags.

    Returns the new path, or None when nothing changed. Raises OSError
    if the rename fails.
    """
    path = str(path).lstrip(" \t")
    new = apply_flags(path, changes)
    if new is None:
        return None
    os.rename(path, new)
    return new


def _stdin_lines():
    return (line.rstrip("\n") for line in sys.stdin if line.strip())


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        opts, args = getopt.gnu_getopt(argv, "PRSTDFprstdfX:x:v")
    except getopt.GetoptError:
        print(_USAGE, file=sys.stderr)
        return 1

    changes: dict[str, bool] = {}
    verbose = False
    for opt, value in opts:
        letter = opt[1]
        if letter == "v":
            verbose = True
        elif letter == "X":
            changes.update(dict.fromkeys(value, True))
        elif letter == "x":
            changes.update(dict.fromkeys(value, False))
        elif letter.isupper():
            changes[letter] = True
        else:
            changes[letter.upper()] = False

    if verbose and args:
        selected = {arg.lstrip(" \t") for arg in args}
        targets = _stdin_lines()
    else:
        selected = None
        targets = args or _stdin_lines()

    for line in targets:
        stripped = line.lstrip(" \t")
        indent = line[:len(line) - len(stripped)]
        new = None
        if selected is None or stripped in selected:
            try:
                new = flag_file(stripped, changes)
            except OSError as exc:
                print(f"mflag: can't rename '{stripped}' to "
                      f"'{apply_flags(stripped, changes)}': {exc.strerror}",
                      file=sys.stderr)
        if new is not None:
            print(indent + new)
        elif verbose:
            print(line)
    return 0