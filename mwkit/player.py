"""Control of a slave-mode media player fed from a playlist."""

from __future__ import annotations

import enum
import re
import threading
import time
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from mwkit.process import Shell, ShellError, ShellFlags

DEFAULT_BINARY = "mplayer"
READ_TIMEOUT_MS = 1000
POLL_INTERVAL = 0.5
QUIT_WAIT_MS = 1000
_RESPONSE_SIZE = 1023
_COMMAND_MAX = 31
_POSITION = re.compile(rb"ANS_TIME_POSITION=\s*([+-]?\d+)")


class PlayerState(enum.Enum):
    """What the player is doing; the values are the names reported to clients."""

    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass
class PlaylistEntry:
    """One stream waiting to be played."""

    stream: str
    title: str = ""


class Playlist:
    """A thread-safe queue of streams to play."""

    def __init__(self) -> None:
        self._entries: list[PlaylistEntry] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[PlaylistEntry]:
        with self._lock:
            return iter(list(self._entries))

    def __getitem__(self, index: int) -> PlaylistEntry:
        with self._lock:
            return self._entries[index]

    def _check(self, index: int) -> None:
        if not 0 <= index < len(self._entries):
            raise IndexError(f"no playlist entry {index}")

    def add(self, stream: str, title: str = "") -> PlaylistEntry:
        """Append a stream to the end of the list."""
        entry = PlaylistEntry(stream, title or "")
        with self._lock:
            self._entries.append(entry)
        return entry

    def pin(self, index: int) -> PlaylistEntry:
        """Move the entry at ``index`` to the front so it plays next."""
        with self._lock:
            self._check(index)
            entry = self._entries.pop(index)
            self._entries.insert(0, entry)
        return entry

    def delete(self, index: int) -> PlaylistEntry:
        """Remove and return the entry at ``index``."""
        with self._lock:
            self._check(index)
            return self._entries.pop(index)

    def pop(self) -> PlaylistEntry | None:
        """Remove and return the first entry, or None when the list is empty."""
        with self._lock:
            return self._entries.pop(0) if self._entries else None


class MediaPlayer:
    """Drives a media player in slave mode through its stdin and stdout.

    A background thread plays the playlist entry by entry, polling the
    playback position, and falls back to ``loop_clip`` when the list runs
    dry.
    """

    def __init__(self, binary: str = DEFAULT_BINARY, loop_clip: str | None = None) -> None:
        self.binary = binary
        self.loop_clip = loop_clip
        self.playlist = Playlist()
        self.state = PlayerState.IDLE
        self.pos = 0
        self._shell = Shell(ShellFlags.REDIRECT_STDIN | ShellFlags.REDIRECT_STDOUT)
        self._lock = threading.RLock()
        self._thread: threading.Thread | None = None

    def __enter__(self) -> MediaPlayer:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def running(self) -> bool:
        """True while the playback thread is alive."""
        thread = self._thread
        return thread is not None and thread.is_alive()

    def parse_args(self, argv: Sequence[str]) -> None:
        """Pick ``--mpbin BINARY`` and ``--mploop CLIP`` out of ``argv``.

        Parsing stops after ``--mploop``.
        """
        words = iter(argv)
        for word in words:
            if word not in ("--mploop", "--mpbin"):
                continue
            value = next(words, None)
            if value is None:
                raise ValueError(f"{word} needs a value")
            if word == "--mploop":
                self.loop_clip = value
                break
            self.binary = value

    def open(self, filename: str, opts: str | None = None) -> None:
        """Start the player on ``filename``, stopping any clip already open."""
        self.close()
        cmdline = f"{self.binary} {filename} -slave -quiet {opts or ''}"
        with self._lock:
            self.state = PlayerState.LOADING
            try:
                self._shell.execute(cmdline)
            except ShellError:
                self.state = PlayerState.IDLE
                raise

    def command(self, cmd: str) -> bool:
        """Send one slave-mode command line; False if it could not be sent."""
        try:
            self._shell.write(cmd + "\n")
        except ShellError:
            return False
        return bool(cmd)

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes of player output; empty if none came in time."""
        if self.state is PlayerState.IDLE:
            return b""
        self._shell.buffer_size = size + 1
        try:
            return self._shell.read(READ_TIMEOUT_MS)
        except ShellError:
            return b""

    def close(self) -> None:
        """Ask the player to quit, then kill it and release its pipes."""
        self.pos = -1
        with self._lock:
            if self.state is not PlayerState.IDLE or self._shell.pid is not None:
                if self.command("quit"):
                    try:
                        self._shell.wait(QUIT_WAIT_MS)
                    except ShellError:
                        pass
                self._shell.terminate()
                self._shell.clean()
            if not self.running:
                self.state = PlayerState.IDLE

    def _poll_position(self) -> None:
        buf = b""
        while len(buf) < _RESPONSE_SIZE:
            chunk = self.read(_RESPONSE_SIZE - len(buf))
            if not chunk:
                break
            buf += chunk
            match = _POSITION.search(buf)
            if match:
                self.pos = int(match.group(1))
                break

    def _next_clip(self, args: str | None) -> tuple[str, str | None] | None:
        entry = self.playlist.pop()
        if entry is not None:
            return entry.stream, args
        if self.loop_clip:
            return self.loop_clip, None
        return None

    def _run(self, args: str | None) -> None:
        try:
            while True:
                clip = self._next_clip(args)
                if clip is None:
                    break
                try:
                    self.open(*clip)
                except ShellError:
                    break
                self.state = PlayerState.PLAYING
                while True:
                    with self._lock:
                        sent = self.command("get_time_pos")
                        if sent:
                            self._poll_position()
                    if not sent:
                        break
                    time.sleep(POLL_INTERVAL)
                    while self.state is PlayerState.PAUSED:
                        time.sleep(POLL_INTERVAL)
                with self._lock:
                    self._shell.terminate()
                    self._shell.clean()
        finally:
            self.state = PlayerState.IDLE
            if self._thread is threading.current_thread():
                self._thread = None

    def play(self, filename: str | None = None, args: str | None = None) -> None:
        """Queue ``filename`` and make sure playback runs.

        If playback is already running the current clip is stopped so the
        queue moves on.
        """
        if filename:
            self.playlist.add(filename)
        if not self.running:
            thread = threading.Thread(target=self._run, args=(args,), daemon=True)
            self._thread = thread
            thread.start()
        else:
            self.close()

    def pause(self) -> bool:
        """Toggle between playing and paused; False if the command failed."""
        self.state = (
            PlayerState.PAUSED if self.state is PlayerState.PLAYING else PlayerState.PLAYING
        )
        return self.command("pause")

    def seek(self, arg: str) -> bool:
        """Send a seek command with ``arg``; False if it could not be sent."""
        return self.command(f"seek {arg}"[:_COMMAND_MAX])

    def query(self, infos: Iterable[str]) -> list[tuple[str, int | str]]:
        """Report the requested items ("pos" and/or "state") in request order."""
        result: list[tuple[str, int | str]] = []
        for info in infos:
            if info == "pos":
                result.append(("pos", self.pos))
            elif info == "state":
                result.append(("state", self.state.value))
        return result