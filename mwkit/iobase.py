"""Base class for byte devices with blocking helpers built on a non-blocking read."""

from __future__ import annotations

from abc import ABC, abstractmethod

from mwkit.fifo import Fifo
from mwkit.timer import Timer, sleepms


def _as_byte(ch: int | bytes | str) -> int:
    if isinstance(ch, int):
        return ch
    if isinstance(ch, str):
        ch = ch.encode("latin-1")
    if len(ch) != 1:
        raise ValueError("expected a single byte")
    return ch[0]


class IOBase(ABC):
    """A device with non-blocking read/write and a put-back buffer.

    Subclasses supply ``_read_device`` (returning whatever bytes are
    available, possibly none) and ``_write_device`` (returning how many
    bytes were accepted). Both raise OSError on failure.
    """

    def __init__(self, fifo_size: int = 256) -> None:
        self._fifo = Fifo(fifo_size)

    @abstractmethod
    def _read_device(self, n: int) -> bytes:
        """Read up to ``n`` bytes that are available right now."""

    @abstractmethod
    def _write_device(self, data: bytes) -> int:
        """Write what can be written right now; return the count."""

    def read(self, n: int) -> bytes:
        """Read up to ``n`` bytes without blocking; put-back bytes come first."""
        if self._fifo.items() > 0:
            return self._fifo.read(n)
        return self._read_device(n)

    def write(self, data: bytes) -> int:
        """Write without blocking; return the number of bytes accepted."""
        return self._write_device(bytes(data))

    def put_back(self, ch: int | bytes | str) -> bool:
        """Push one byte back so the next read returns it; False if full."""
        return self._fifo.put(_as_byte(ch))

    def readv(self, n: int, timeout_ms: int | None = None) -> bytes:
        """Read until ``n`` bytes arrive, the timeout runs out or an error occurs.

        ``timeout_ms`` of None waits without limit.
        """
        buf = bytearray()
        timer = Timer(timeout_ms or 0)
        if timeout_ms is not None:
            timer.start()
        try:
            while not timer.expired() and len(buf) < n:
                try:
                    chunk = self.read(n - len(buf))
                except OSError:
                    break
                if not chunk:
                    sleepms(1)
                buf += chunk
        finally:
            timer.stop()
        return bytes(buf)

    def writev(self, data: bytes, timeout_ms: int | None = None) -> int:
        """Write until all of ``data`` is sent, the timeout runs out or an error occurs.

        Returns the number of bytes written.
        """
        view = memoryview(bytes(data))
        written = 0
        timer = Timer(timeout_ms or 0)
        if timeout_ms is not None:
            timer.start()
        try:
            while not timer.expired() and written < len(view):
                try:
                    n = self.write(view[written:])
                except OSError:
                    break
                if not n:
                    sleepms(1)
                written += n
        finally:
            timer.stop()
        return written

    def read_until_eos(
        self,
        eos: bytes | str,
        timeout_ms: int = 1000,
        quote: int | bytes | str | None = None,
    ) -> tuple[bytes, bool]:
        """Read until the end-of-string sequence ``eos`` is seen.

        Characters between two ``quote`` characters never match ``eos``.
        Returns the data read (without ``eos``) and whether ``eos`` was
        found before the timeout. A read error raises OSError.
        """
        if isinstance(eos, str):
            eos = eos.encode("latin-1")
        if not eos:
            raise ValueError("end-of-string sequence must not be empty")
        quote_byte = None if quote is None else _as_byte(quote)

        buf = bytearray()
        matched = 0
        quoted = False
        with Timer(timeout_ms) as timer:
            while not timer.expired():
                chunk = self.read(1)
                if not chunk:
                    sleepms(10)
                    continue
                ch = chunk[0]
                if matched and ch != eos[matched]:
                    # Partially matched characters are dropped; only the
                    # mismatching byte is re-examined.
                    self.put_back(ch)
                    matched = 0
                    continue
                if ch == eos[matched] and not quoted:
                    matched += 1
                    if matched == len(eos):
                        return bytes(buf), True
                    continue
                if ch == quote_byte:
                    quoted = not quoted
                buf.append(ch)
        return bytes(buf), False