"""Start-up settings, banner and upload handling for the web server."""

from __future__ import annotations

import enum
import os
import re
import socket
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from typing import BinaryIO

import psutil

APP_NAME = "MiniWeb-avih"
DEFAULT_ROOT = "htdocs"
WEB_PATH_MAX = 256

USAGE = (
    "Usage: miniweb\t-h\t: display this help screen\n"
    "\t\t-v\t: log status/error info\n"
    "\t\t-p\t: specifiy http port [default 80]\n"
    "\t\t-i\t: interface [default 0.0.0.0]\n"
    "\t\t-r\t: specify http document directory [default htdocs]\n"
    "\t\t-l\t: specify log file\n"
    "\t\t-m\t: specifiy max clients [default 32]\n"
    "\t\t-M\t: specifiy max clients per IP\n"
    "\t\t-s\t: specifiy download speed limit in KB/s [default: none]\n"
    "\t\t-n\t: disallow multi-part download [default: allow]\n"
    "\t\t-d\t: disallow directory listing [default: allow]\n"
)


class ServerFlags(enum.IntFlag):
    """Server behaviour switches."""

    NONE = 0
    DIR_LISTING = 0x1
    DISABLE_RANGE = 0x2


@dataclass
class ServerSettings:
    """Settings the server is started with."""

    port: int = 80
    bind_ip: str | None = None
    web_path: str = ""
    log_file: str | None = None
    max_clients: int = 32
    max_clients_per_ip: int = 0
    max_download_speed: int = 0
    flags: ServerFlags = ServerFlags.DIR_LISTING
    socket_expire_time: int = 15


class UsageError(Exception):
    """Raised for a command line that cannot be used, or when help is asked for."""


def _atoi(text: str) -> int:
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


def get_full_path(argv0: str, path: str, max_bytes: int = WEB_PATH_MAX) -> str:
    """Join ``path`` to the directory of the program named by ``argv0``.

    Raises ValueError if the result (plus a terminator) would not fit in
    ``max_bytes`` bytes.
    """
    cut = argv0.rfind("/")
    if cut < 0:
        cut = argv0.rfind("\\")
    result = argv0[: cut + 1] + path
    if len(result.encode()) >= max_bytes:
        raise ValueError(f"path longer than {max_bytes - 1} bytes: {result!r}")
    return result


def _bind_address(value: str) -> str | None:
    try:
        packed = socket.inet_aton(value)
    except OSError:
        raise UsageError(f"invalid interface address {value!r}") from None
    return None if packed == bytes(4) else value


def parse_args(argv: Sequence[str] | None = None) -> ServerSettings:
    """Build the server settings from a command line (program name first).

    Unknown options and plain words are ignored. ``-h`` raises UsageError
    carrying the help text.
    """
    args = list(sys.argv if argv is None else argv)
    program = args[0] if args else ""
    settings = ServerSettings()
    words = iter(args[1:])
    for word in words:
        if not word.startswith("-") or len(word) < 2:
            continue
        opt = word[1]
        if opt == "h":
            raise UsageError(USAGE)
        if opt == "n":
            settings.flags |= ServerFlags.DISABLE_RANGE
        elif opt == "d":
            settings.flags &= ~ServerFlags.DIR_LISTING
        elif opt == "r":
            value = next(words, None)
            if not value or len(value.encode()) >= WEB_PATH_MAX:
                raise UsageError("invalid or too long path argument")
            settings.web_path = value
        elif opt in "pimMsl":
            value = next(words, None)
            if value is None:
                continue
            if opt == "p":
                settings.port = _atoi(value)
            elif opt == "i":
                settings.bind_ip = _bind_address(value)
            elif opt == "m":
                settings.max_clients = _atoi(value)
            elif opt == "M":
                settings.max_clients_per_ip = _atoi(value)
            elif opt == "s":
                settings.max_download_speed = _atoi(value)
            else:
                settings.log_file = value

    if not settings.web_path:
        try:
            settings.web_path = get_full_path(program, DEFAULT_ROOT, WEB_PATH_MAX)
        except ValueError:
            raise UsageError("root path ends up too long") from None
    return settings


def substitute(name: str) -> str | None:
    """Value of a page variable, or None if the name is unknown."""
    if name == "mykeyword":
        return "1234"
    return None


def list_interfaces(prefix: str = "  ", port: int = 80) -> list[str]:
    """One line per IPv4 address of this machine: ``prefix``, address, port, interface."""
    lines: list[str] = []
    for name, addrs in psutil.net_if_addrs().items():
        for addr in addrs:
            if addr.family == socket.AF_INET:
                lines.append(f"{prefix}{addr.address}:{port} ({name or '???'})")
    return lines


def describe(settings: ServerSettings, handler_count: int = 0) -> str:
    """The start-up banner describing where and how the server listens."""
    lines: list[str] = []
    if settings.bind_ip:
        lines.append(f"Host: {settings.bind_ip}:{settings.port}")
    else:
        lines.append(f"Host: port {settings.port} on all interfaces:")
        interfaces = list_interfaces("  ", settings.port)
        lines.extend(interfaces or [f"  0.0.0.0:{settings.port} (generic)"])
    lines.append(f"Web root: {settings.web_path}")
    lines.append(
        f"Max clients (per IP): {settings.max_clients} ({settings.max_clients_per_ip})"
    )
    lines.append(f"URL handlers: {handler_count}")
    if settings.flags & ServerFlags.DIR_LISTING:
        lines.append("Dir listing enabled")
    if settings.flags & ServerFlags.DISABLE_RANGE:
        lines.append("Byte-range disabled")
    return "\n".join(lines)


class UploadWriter:
    """Stores multipart upload chunks as files under the web root."""

    def __init__(self, web_path: str | os.PathLike[str]) -> None:
        self.web_path = os.fspath(web_path)
        self._files: dict[str, BinaryIO] = {}

    def __enter__(self) -> UploadWriter:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _close_one(self, filename: str) -> None:
        fh = self._files.pop(filename, None)
        if fh is not None:
            fh.close()

    def write_chunk(self, filename: str, data: bytes | None, last: bool = False) -> int:
        """Append ``data`` to the upload ``filename``; return the bytes written.

        The file is created (or truncated) on its first chunk and closed
        after the ``last`` one. ``data`` of None abandons the upload and
        closes the file.
        """
        if data is None:
            self._close_one(filename)
            return 0
        fh = self._files.get(filename)
        if fh is None:
            fh = open(f"{self.web_path}/{filename}", "wb")
            self._files[filename] = fh
        try:
            fh.write(data)
        except OSError:
            self._close_one(filename)
            raise
        if last:
            self._close_one(filename)
        print(f"Received {len(data)} bytes for multipart upload file {filename}")
        return len(data)

    def close(self) -> None:
        """Close every upload still open."""
        for filename in list(self._files):
            self._close_one(filename)