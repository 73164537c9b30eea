"""List maildir messages, optionally filtered by flags or summarised."""

from __future__ import annotations

import getopt
import os
import stat
import sys
from dataclasses import dataclass, field
from typing import TextIO

_USAGE = (
    "Usage: mlist [-DFPRST] [-X str]\n"
    "             [-dfprst] [-x str]\n"
    "             [-N | -n | -C | -c]\n"
    "             [-i] [dirs...]"
)


@dataclass
class FlagFilter:
    """Flags a message must have (True) or must not have (False)."""

    flags: dict[str, bool] = field(default_factory=dict)

    @property
    def active(self) -> bool:
        return bool(self.flags)

    def matches(self, name: str) -> bool:
        """Whether the file name satisfies the filter."""
        idx = name.find(":2,")
        if idx < 0:
            return not self.active
        required = 0
        for char in name[idx + 3:]:
            want = self.flags.get(char)
            if want is False:
                return False
            if want:
                required += 1
        return required == sum(self.flags.values())


@dataclass
class Lister:
    """Lists message files; with info, prints per-folder counts instead.

    new and cur are 1 to list only that subfolder, -1 to exclude it.
    """

    flags: FlagFilter = field(default_factory=FlagFilter)
    new: int = 0
    cur: int = 0
    info: bool = False
    out: TextIO = field(default_factory=lambda: sys.stdout)
    dirs: int = field(default=0, init=False)
    total_count: int = field(default=0, init=False)
    total_unseen: int = field(default=0, init=False)
    total_flagged: int = field(default=0, init=False)
    count: int = field(default=0, init=False)
    unseen: int = field(default=0, init=False)
    flagged: int = field(default=0, init=False)
    matched: int = field(default=0, init=False)

    def _list(self, prefix: str | None, name: str) -> None:
        if self.flags.active:
            if ":2," not in name:
                return
            self.count += 1
            self.total_count += 1
            if not self.flags.matches(name):
                return

        if self.info:
            idx = name.find(":2,")
            if idx < 0:
                return
            info = name[idx:]
            self.matched += 1
            if not self.flags.active:
                self.count += 1
                self.total_count += 1
            if "S" not in info:
                self.unseen += 1
                self.total_unseen += 1
            if "F" in info:
                self.flagged += 1
                self.total_flagged += 1
            return

        self.out.write(f"{prefix}/{name}\n" if prefix is not None else f"{name}\n")

    def _list_dir(self, path: str) -> None:
        try:
            with os.scandir(path) as it:
                names = [entry.name for entry in it
                         if not entry.name.startswith(".")
                         and entry.is_file(follow_symlinks=False)]
        except OSError:
            return
        for name in names:
            self._list(path, name)

    def list_arg(self, arg: str) -> None:
        """List a maildir, a plain directory or a single message file."""
        arg = str(arg)
        try:
            st = os.stat(arg)
        except OSError:
            return

        if stat.S_ISREG(st.st_mode):
            self._list(None, arg)
            return
        if not stat.S_ISDIR(st.st_mode):
            return

        saved = (self.count, self.unseen, self.flagged, self.matched)
        self.count = self.unseen = self.flagged = 0
        maildir = False

        if os.path.exists(f"{arg}/cur"):
            maildir = True
            if self.cur >= 0 and self.new <= 0:
                self._list_dir(f"{arg}/cur")
        if os.path.exists(f"{arg}/new"):
            maildir = True
            if self.new >= 0 and self.cur <= 0:
                self._list_dir(f"{arg}/new")
        if not maildir:
            self._list_dir(arg)

        if self.info and (self.matched or (maildir and not self.flags.active)):
            self.dirs += 1
            self.out.write(f"{self.unseen:6d} unseen  {self.flagged:3d} flagged  "
                           f"{self.count:6d} msg  {arg}\n")

        self.count, self.unseen, self.flagged, self.matched = saved


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        opts, args = getopt.gnu_getopt(argv, "PRSTDFprstdfX:x:NnCci")
    except getopt.GetoptError:
        print(_USAGE, file=sys.stderr)
        return 1

    flags: dict[str, bool] = {}
    lister = Lister()
    for opt, value in opts:
        letter = opt[1]
        if letter == "X":
            flags.update(dict.fromkeys(value, True))
        elif letter == "x":
            flags.update(dict.fromkeys(value, False))
        elif letter in "PRSTDF":
            flags[letter] = True
        elif letter in "prstdf":
            flags[letter.upper()] = False
        elif letter == "N":
            lister.new = 1
        elif letter == "n":
            lister.new = -1
        elif letter == "C":
            lister.cur = 1
        elif letter == "c":
            lister.cur = -1
        elif letter == "i":
            lister.info = True
    lister.flags = FlagFilter(flags)

    if args:
        targets = args
    else:
        if sys.stdin.isatty():
            print(_USAGE, file=sys.stderr)
            return 1
        targets = [line.rstrip("\n") for line in sys.stdin if line.strip()]

    for arg in targets:
        lister.list_arg(arg)

    if lister.info and lister.dirs > 1:
        print(f"{lister.total_unseen:6d} unseen  {lister.total_flagged:3d} flagged  "
              f"{lister.total_count:6d} msg")
    return 0