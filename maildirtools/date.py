"""Print the current date in RFC 5322 format."""

from __future__ import annotations

import sys
from datetime import datetime


def format_date(when: datetime | None = None) -> str:
    """Format when (default now, local time) as an RFC 5322 date."""
    if when is None:
        when = datetime.now().astimezone()
    elif when.tzinfo is None:
        when = when.astimezone()
    return when.strftime("%a, %d %b %Y %H:%M:%S %z")


def main(argv=None) -> int:
    try:
        sys.stdout.write(format_date() + "\n")
        sys.stdout.flush()
    except OSError:
        return 1
    return 0