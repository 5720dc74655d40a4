"""Non-blocking single-key reads from a terminal or stream."""

from __future__ import annotations

import os
import sys
from typing import TextIO

try:
    import termios
except ImportError:  # not available on Windows
    termios = None  # type: ignore[assignment]

try:
    import msvcrt
except ImportError:  # only available on Windows
    msvcrt = None  # type: ignore[assignment]


def get_key(stream: TextIO | None = None) -> str:
    """Return one pending character from ``stream``, or "" if none is waiting.

    On a terminal the read does not wait for Enter or for input; on any
    other stream the next character is read directly.
    """
    if stream is None:
        stream = sys.stdin
    if not stream.isatty():
        return stream.read(1)

    if msvcrt is not None:
        return msvcrt.getwch() if msvcrt.kbhit() else ""

    fd = stream.fileno()
    saved = termios.tcgetattr(fd)
    raw = termios.tcgetattr(fd)
    raw[3] &= ~termios.ICANON
    raw[6][termios.VMIN] = 0
    raw[6][termios.VTIME] = 0
    termios.tcsetattr(fd, termios.TCSANOW, raw)
    try:
        data = os.read(fd, 1)
    finally:
        termios.tcsetattr(fd, termios.TCSANOW, saved)
    return data.decode("latin-1")