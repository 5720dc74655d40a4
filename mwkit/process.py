"""Starting child processes with optional pipes to their standard streams."""

from __future__ import annotations

import enum
import os
import queue
import subprocess
import threading
import time
from typing import IO

DEFAULT_BUFFER_SIZE = 256
_PUMP_CHUNK = 4096


class ShellFlags(enum.IntFlag):
    """Options for starting and reading a child process."""

    NONE = 0
    ALLOC = 0x1
    SHOW_WINDOW = 0x2
    READ_STDOUT_ALL = 0x4
    CONVERT_LF = 0x8
    REDIRECT_STDIN = 0x1000
    REDIRECT_STDOUT = 0x2000
    REDIRECT_STDERR = 0x4000
    REDIRECT_OUTPUT = 0x8000 | 0x2000


class ShellError(Exception):
    """Raised when a child process cannot be started or talked to."""


def tokenize(text: str, delimiter: str = " ") -> list[str]:
    """Split a command line on ``delimiter``.

    Runs of delimiters count as one separator. A token that starts with a
    double quote runs to the next double quote, delimiters included. A
    leading or trailing delimiter yields an empty token. At most one more
    token than there are delimiter runs is returned.
    """
    if len(delimiter) != 1:
        raise ValueError("delimiter must be a single character")
    length = len(text)

    count = 1
    pos = 0
    while True:
        pos = text.find(delimiter, pos)
        if pos < 0:
            break
        count += 1
        while pos < length and text[pos] == delimiter:
            pos += 1

    tokens: list[str] = []
    pos = 0
    while len(tokens) < count:
        if pos < length and text[pos] == '"':
            end = text.find('"', pos + 1)
            if end < 0:
                tokens.append(text[pos + 1 :])
                break
            tokens.append(text[pos + 1 : end])
        else:
            end = text.find(delimiter, pos)
            if end < 0:
                tokens.append(text[pos:])
                break
            tokens.append(text[pos:end])
        pos = end + 1
        while pos < length and text[pos] == delimiter:
            pos += 1
    return tokens


def _pump(stream: IO[bytes], sink: queue.Queue[bytes | None]) -> None:
    try:
        while True:
            chunk = stream.read1(_PUMP_CHUNK)  # type: ignore[attr-defined]
            if not chunk:
                break
            sink.put(chunk)
    except (OSError, ValueError):
        pass
    finally:
        try:
            stream.close()
        except OSError:
            pass
        sink.put(None)


class Shell:
    """One child process with optionally redirected stdin and stdout.

    Reads never block longer than the timeout given; output is collected
    by a background thread.
    """

    def __init__(
        self,
        flags: ShellFlags | int = ShellFlags.NONE,
        cwd: str | os.PathLike[str] | None = None,
        path: str | None = None,
    ) -> None:
        self.flags = ShellFlags(flags)
        self.cwd = cwd
        self.path = path
        self.buffer_size = DEFAULT_BUFFER_SIZE
        self.returncode: int | None = None
        self._proc: subprocess.Popen[bytes] | None = None
        self._stdin: IO[bytes] | None = None
        self._reader: IO[bytes] | None = None
        self._thread: threading.Thread | None = None
        self._queue: queue.Queue[bytes | None] | None = None
        self._pending = b""
        self._eof = False

    def __enter__(self) -> Shell:
        return self

    def __exit__(self, *exc: object) -> None:
        self.terminate()
        self.clean()

    @property
    def running(self) -> bool:
        """True while the child process has not exited."""
        return self._proc is not None and self._proc.poll() is None

    @property
    def pid(self) -> int | None:
        """Process id of the child, or None when there is none."""
        return None if self._proc is None else self._proc.pid

    def _environment(self) -> dict[str, str] | None:
        if not self.path:
            return None
        env = dict(os.environ)
        previous = env.get("PATH", "")
        env["PATH"] = f"{previous}{os.pathsep}{self.path}" if previous else self.path
        return env

    def execute(self, cmdline: str) -> None:
        """Start ``cmdline``, split with :func:`tokenize`."""
        if self._proc is not None:
            raise ShellError("a process is already running")
        if not cmdline:
            raise ShellError("empty command line")
        argv = tokenize(cmdline, " ")

        stdin = subprocess.PIPE if self.flags & ShellFlags.REDIRECT_STDIN else None
        stdout = subprocess.PIPE if self.flags & ShellFlags.REDIRECT_STDOUT else None
        stderr = None
        if self.flags & ShellFlags.REDIRECT_STDERR:
            stderr = subprocess.STDOUT if stdout is not None else subprocess.PIPE

        extra: dict[str, object] = {}
        if os.name == "nt":
            info = subprocess.STARTUPINFO()  # type: ignore[attr-defined]
            info.dwFlags |= subprocess.STARTF_USESHOWWINDOW  # type: ignore[attr-defined]
            info.wShowWindow = 5 if self.flags & ShellFlags.SHOW_WINDOW else 0
            extra["startupinfo"] = info

        try:
            proc = subprocess.Popen(
                argv,
                stdin=stdin,
                stdout=stdout,
                stderr=stderr,
                cwd=self.cwd,
                env=self._environment(),
                **extra,  # type: ignore[arg-type]
            )
        except (OSError, ValueError) as exc:
            raise ShellError(f"cannot start {argv[0]!r}: {exc}") from exc

        self._proc = proc
        self.returncode = None
        self._stdin = proc.stdin
        self._pending = b""
        self._eof = False
        reader = proc.stdout if proc.stdout is not None else proc.stderr
        self._reader = reader
        if reader is not None:
            self._queue = queue.Queue()
            self._thread = threading.Thread(
                target=_pump, args=(reader, self._queue), daemon=True
            )
            self._thread.start()
        else:
            self._queue = None
            self._thread = None

    def _next_chunk(self, timeout: float | None) -> bytes | None:
        assert self._queue is not None
        if self._eof:
            return None
        try:
            if timeout is None:
                chunk = self._queue.get()
            else:
                chunk = self._queue.get(timeout=max(timeout, 0.0))
        except queue.Empty:
            return None
        if chunk is None:
            self._eof = True
        return chunk

    def read(self, timeout: int | None = None) -> bytes:
        """Read the child's output, waiting at most ``timeout`` milliseconds.

        A timeout of None or below zero waits without limit. Normally at
        most ``buffer_size - 1`` bytes come back; with READ_STDOUT_ALL all
        output up to the end of the stream (or the timeout) is returned.
        An empty result means nothing arrived in time or the output is
        closed.
        """
        if self._queue is None:
            raise ShellError("process output is not redirected")
        seconds = None if timeout is None or timeout < 0 else timeout / 1000.0

        if self.flags & ShellFlags.READ_STDOUT_ALL:
            parts = [self._pending]
            self._pending = b""
            deadline = None if seconds is None else time.monotonic() + seconds
            while True:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    break
                chunk = self._next_chunk(remaining)
                if chunk is None:
                    break
                parts.append(chunk)
            return b"".join(parts)

        if not self._pending:
            chunk = self._next_chunk(seconds)
            if chunk is None:
                return b""
            self._pending = chunk
        limit = max(self.buffer_size - 1, 1)
        data, self._pending = self._pending[:limit], self._pending[limit:]
        return data

    def write(self, data: bytes | str) -> int:
        """Send ``data`` to the child's stdin; return the number of bytes sent."""
        if self._stdin is None:
            raise ShellError("process input is not redirected")
        if isinstance(data, str):
            data = data.encode()
        try:
            self._stdin.write(data)
            self._stdin.flush()
        except (OSError, ValueError) as exc:
            raise ShellError(f"cannot write to process: {exc}") from exc
        return len(data)

    def wait(self, timeout: int | None = None) -> int | None:
        """Wait up to ``timeout`` milliseconds for the child to exit.

        0 only checks; None or below zero waits without limit. Returns the
        exit code, or None if the child is still running.
        """
        if self._proc is None:
            raise ShellError("no process to wait for")
        try:
            if timeout is None or timeout < 0:
                code = self._proc.wait()
            else:
                code = self._proc.wait(timeout / 1000.0)
        except subprocess.TimeoutExpired:
            return None
        self.returncode = code
        return code

    def terminate(self) -> None:
        """Kill the child process, if there is one."""
        if self._proc is None:
            return
        proc, self._proc = self._proc, None
        try:
            proc.kill()
        except OSError:
            pass
        self.returncode = proc.wait()

    def clean(self) -> None:
        """Close the pipes and forget the process."""
        if self._stdin is not None:
            try:
                self._stdin.close()
            except OSError:
                pass
        if self._reader is not None and (self._thread is None or not self._thread.is_alive()):
            try:
                self._reader.close()
            except OSError:
                pass
        self._stdin = None
        self._reader = None
        self._thread = None
        self._queue = None
        self._pending = b""
        self._eof = False
        self._proc = None


def shell_run(cmdline: str, flags: ShellFlags | int = ShellFlags.NONE) -> tuple[int, bytes]:
    """Run ``cmdline`` to completion.

    With READ_STDOUT_ALL the whole output is collected and returned with
    the exit code; otherwise the output is empty.
    """
    flags = ShellFlags(flags)
    if flags & ShellFlags.READ_STDOUT_ALL:
        flags |= ShellFlags.REDIRECT_STDOUT
    with Shell(flags) as shell:
        shell.execute(cmdline)
        output = b""
        if flags & ShellFlags.READ_STDOUT_ALL:
            output = shell.read(None)
        code = shell.wait(None)
    assert code is not None
    return code, output