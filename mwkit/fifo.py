"""A fixed-size ring buffer of bytes."""

from __future__ import annotations

from collections.abc import Iterable


class Fifo:
    """Single-producer, single-consumer byte ring buffer.

    A buffer created with ``size`` holds at most ``size - 1`` bytes: one
    slot always stays free so that a full buffer can be told apart from an
    empty one.
    """

    def __init__(self, size: int) -> None:
        if size < 1:
            raise ValueError("fifo size must be at least 1")
        self.size = size
        self._buf = bytearray(size)
        self._rd = 0
        self._wr = 0

    def __len__(self) -> int:
        return self.items()

    def clear(self) -> None:
        """Drop everything in the buffer."""
        self._rd = self._wr = 0

    def get(self) -> int | None:
        """Remove and return the oldest byte, or None when empty."""
        if self._rd == self._wr:
            return None
        ch = self._buf[self._rd]
        self._rd = (self._rd + 1) % self.size
        return ch

    def items(self) -> int:
        """Number of bytes waiting to be read."""
        wr, rd = self._wr, self._rd
        if wr >= rd:
            return wr - rd
        return self.size - (rd - wr)

    def put(self, ch: int) -> bool:
        """Append one byte; return False if the buffer is full."""
        nxt = (self._wr + 1) % self.size
        if nxt == self._rd:
            return False
        self._buf[self._wr] = ch
        self._wr = nxt
        return True

    def read(self, n: int) -> bytes:
        """Remove and return up to ``n`` bytes."""
        out = bytearray()
        while len(out) < n:
            ch = self.get()
            if ch is None:
                break
            out.append(ch)
        return bytes(out)

    def write(self, data: Iterable[int]) -> int:
        """Append as much of ``data`` as fits; return the count written."""
        written = 0
        for ch in data:
            if not self.put(ch):
                break
            written += 1
        return written