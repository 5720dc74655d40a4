"""One-shot timers and millisecond sleeps."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable


class Timer:
    """A one-shot timer that marks itself expired after ``msecs``.

    When it expires the optional ``on_expire`` callback is called (with no
    arguments) and :meth:`expired` starts returning True.
    """

    def __init__(self, msecs: int, on_expire: Callable[[], object] | None = None) -> None:
        self.msecs = max(int(msecs), 0)
        self._on_expire = on_expire
        self._expired = threading.Event()
        self._thread: threading.Timer | None = None

    def _fire(self) -> None:
        if self._on_expire is not None:
            self._on_expire()
        self._expired.set()

    def start(self) -> None:
        """Start (or restart) the timer."""
        self.stop()
        self._expired.clear()
        self._thread = threading.Timer(self.msecs / 1000.0, self._fire)
        self._thread.daemon = True
        self._thread.start()

    def stop(self) -> None:
        """Cancel the timer if it has not fired yet."""
        if self._thread is not None:
            self._thread.cancel()
            self._thread = None

    def expired(self) -> bool:
        """True once the timer has run out."""
        return self._expired.is_set()

    def __enter__(self) -> Timer:
        self.start()
        return self

    def __exit__(self, *exc: object) -> None:
        self.stop()


def sleepms(ms: int) -> None:
    """Sleep for ``ms`` milliseconds."""
    time.sleep(ms / 1000.0)