"""Run a shell command as a filter over a block of data."""

from __future__ import annotations

import subprocess


def run_filter(data: bytes, command: str) -> tuple[int, bytes]:
    """Feed data to `/bin/sh -c command` and collect its output.

    Returns (exit status, output). Raises OSError if the shell cannot start.
    A command that stops reading early is not an error.
    """
    proc = subprocess.Popen(
        ["/bin/sh", "-c", command],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
    )
    try:
        output, _ = proc.communicate(data)
    except BrokenPipeError:
        output = proc.stdout.read() if proc.stdout else b""
        proc.wait()
    status = proc.returncode
    if status < 0:
        status = 0
    return status & 0xFF, output