"""A small HTTP/1.0 client with form, stream and multipart uploads."""

from __future__ import annotations

import enum
import os
import socket
import sys
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

MULTIPART_BOUNDARY = "---------------------------24464570528145"
POST_BUFFER_SIZE = 1024
MAX_HEADER_SIZE = 4095
DEFAULT_TIMEOUT = 30.0

_GET_HEADER = (
    "{method} {path} HTTP/1.0\r\nAccept: */*\r\nConnection: {connection}\r\n"
    "User-Agent: Mozilla/5.0\r\nHost: {host}\r\n{extra}\r\n"
)
_POST_HEADER = (
    "POST {path} HTTP/1.0\r\nHost: {host}\r\n"
    "Content-Type: application/x-www-form-urlencoded\r\n"
    "User-Agent: Mozilla/5.0\r\nContent-Length: {length}\r\n\r\n"
)
_BROWSER_ACCEPT = (
    "User-Agent: Mozilla/5.0\r\n"
    "Accept: text/xml,application/xml,application/xhtml+xml,text/html;q=0.9,"
    "text/plain;q=0.8,image/png,*/*;q=0.5\r\n"
    "Accept-Language: en-us,en;q=0.5\r\nAccept-Encoding: gzip,deflate\r\n"
    "Accept-Charset: ISO-8859-1;q=0.7,*;q=0.7\r\nKeep-Alive: 300\r\n"
)
_POST_MULTIPART_HEADER = (
    "POST {path} HTTP/1.0\r\nHost: {host}\r\n" + _BROWSER_ACCEPT
    + "Connection: keep-alive\r\nContent-Type: multipart/form-data; boundary={boundary}\r\n"
    "Content-Length: {length}\r\n\r\n"
)
_POST_STREAM_HEADER = (
    "POST {path} HTTP/1.0\r\nHost: {host}\r\n" + _BROWSER_ACCEPT
    + "Connection: close\r\nContent-Type: application/octet-stream; filename={filename}\r\n"
    "Content-Length: {length}\r\n\r\n"
)
_FILE_CHUNK_HEADER = 'Content-Disposition: form-data; name="{field}"; filename="{filename}"\r\n\r\n'


class Method(enum.Enum):
    """Kinds of request."""

    GET = 0
    HEAD = 1
    POST = 2
    POST_STREAM = 3
    POST_MULTIPART = 4


class State(enum.Enum):
    """Where a request is in its life."""

    IDLE = 0
    REQUESTING = 1
    RECEIVING = 2
    STOPPING = 3


class ChunkType(enum.Enum):
    """How the data of a multipart chunk is supplied."""

    STRING = 0
    BINARY = 1
    FD = 2
    CALLBACK = 3


@dataclass
class PostChunk:
    """One part of a multipart upload.

    ``data`` is a str (STRING), bytes (BINARY), a file object or descriptor
    (FD) or a callable taking a size and returning bytes, ``b""`` at the
    end or None to abort (CALLBACK). ``length`` is the number of bytes the
    part contributes; for STRING chunks it is worked out when sending.
    """

    data: Any
    type: ChunkType = ChunkType.BINARY
    length: int = 0


class HttpClientError(Exception):
    """Raised when a request cannot be made or the response is unusable."""


def _atoi(text: str) -> int:
    text = text.lstrip()
    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    digits = ""
    for ch in text:
        if not ch.isdigit():
            break
        digits += ch
    return sign * int(digits) if digits else 0


def parse_url(url: str) -> tuple[str, int, str]:
    """Split an ``http://`` URL into host name, port and path.

    The port defaults to 80 and the path to "/".
    """
    if not url.startswith("http://"):
        raise HttpClientError(f"not an http URL: {url!r}")
    rest = url[7:]
    slash = rest.find("/")
    if slash < 0:
        host, path = rest, "/"
    else:
        host, path = rest[:slash], rest[slash:]
    port = 0
    colon = host.find(":")
    if colon >= 0 and host[colon + 1 : colon + 2] != "":
        port = _atoi(host[colon + 1 :]) & 0xFFFF
        host = host[:colon]
    return host, port or 80, path


def _base_name(path: str) -> str:
    return path.replace("\\", "/").rsplit("/", 1)[-1]


class HttpRequest:
    """One HTTP request and the response that comes back for it."""

    def __init__(self, url: str, proxy: str | None = None) -> None:
        self.url = url
        self.proxy = proxy or None
        self.method = Method.GET
        self.state = State.IDLE
        self.keep_alive = False
        self.request_only = False
        self.keep_header = False
        self.chunked = False
        self.timeout: float | None = DEFAULT_TIMEOUT
        self.hostname: str | None = None
        self.port = 0
        self.header: str | None = None
        self.body: bytes | None = None
        self.post_payload = b""
        self.data_size = 0
        self.bytes_start = 0
        self.bytes_end = 0
        self.payload_size = 0
        self.content_type: str | None = None
        self.http_code = 0
        self.chunks: list[PostChunk] = []
        self.filename = ""
        self._sock: socket.socket | None = None

    def __enter__(self) -> HttpRequest:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _resolve_target(self) -> str:
        if self.proxy:
            self.hostname, self.port, _ = parse_url(self.proxy)
            return self.url
        self.hostname, self.port, path = parse_url(self.url)
        return path

    @staticmethod
    def _chunk_bytes(chunk: PostChunk) -> bytes:
        if isinstance(chunk.data, str):
            return chunk.data.encode("utf-8")
        return bytes(chunk.data)

    def build_header(self) -> str:
        """Work out the target host and return the request header text."""
        path = self._resolve_target()
        host = self.hostname
        if self.bytes_start or self.bytes_end:
            extra = f"Range: bytes={self.bytes_start}-"
            extra += f"{self.bytes_end}\r\n" if self.bytes_end > 0 else "\r\n"
            return _GET_HEADER.format(
                method="GET", path=path, connection="close", host=host, extra=extra
            )
        if self.method in (Method.GET, Method.HEAD):
            return _GET_HEADER.format(
                method=self.method.name,
                path=path,
                connection="Keep-Alive" if self.keep_alive else "close",
                host=host,
                extra="",
            )
        if self.method is Method.POST:
            return _POST_HEADER.format(path=path, host=host, length=len(self.post_payload))
        if self.method is Method.POST_STREAM:
            return _POST_STREAM_HEADER.format(
                path=path, host=host, filename=self.filename, length=0
            )
        overhead = len(MULTIPART_BOUNDARY) + 6
        total = overhead
        for chunk in self.chunks:
            if chunk.type is ChunkType.STRING:
                chunk.length = len(self._chunk_bytes(chunk))
            total += chunk.length + overhead
        return _POST_MULTIPART_HEADER.format(
            path=path, host=host, boundary=MULTIPART_BOUNDARY, length=total
        )

    def send(self, data: bytes) -> int:
        """Send ``data``; return how many bytes went out before any failure."""
        if self._sock is None:
            return 0
        view = memoryview(bytes(data))
        offset = 0
        while offset < len(view):
            try:
                sent = self._sock.send(view[offset:])
            except OSError:
                break
            if sent <= 0:
                break
            offset += sent
        return offset

    def _send_all(self, data: bytes) -> bool:
        return self.send(data) == len(data)

    def _send_chunk_data(self, chunk: PostChunk) -> None:
        if chunk.type in (ChunkType.STRING, ChunkType.BINARY):
            self._send_all(self._chunk_bytes(chunk))
        elif chunk.type is ChunkType.FD:
            source = chunk.data
            while True:
                if isinstance(source, int):
                    block = os.read(source, POST_BUFFER_SIZE)
                else:
                    block = source.read(POST_BUFFER_SIZE)
                if not block or not self._send_all(block):
                    break
        else:
            callback: Callable[[int], bytes | None] = chunk.data
            while True:
                block = callback(POST_BUFFER_SIZE)
                if block is None:
                    self.state = State.STOPPING
                    break
                if not block or not self._send_all(block):
                    break

    def _send_body(self) -> None:
        if self.method is Method.POST:
            self._send_all(self.post_payload)
        elif self.method is Method.POST_MULTIPART:
            for chunk in self.chunks:
                if self.state is State.STOPPING:
                    break
                if not self._send_all(f"--{MULTIPART_BOUNDARY}\r\n".encode("latin-1")):
                    break
                self._send_chunk_data(chunk)
                if not self._send_all(b"\r\n"):
                    break
            self.send(f"--{MULTIPART_BOUNDARY}--\r\n".encode("latin-1"))

    def request(self) -> bytes | None:
        """Send the request.

        For GET, HEAD and POST the response is read and its body returned
        (None for HEAD). For stream and multipart posts the connection stays
        open and None is returned; call :meth:`get_response` afterwards.
        """
        self.state = State.REQUESTING
        self.payload_size = 0
        self.header = self.build_header()
        if self._sock is None:
            try:
                self._sock = socket.create_connection(
                    (self.hostname, self.port), timeout=self.timeout
                )
            except OSError as exc:
                self.state = State.IDLE
                raise HttpClientError(
                    f"cannot connect to {self.hostname}:{self.port}: {exc}"
                ) from exc
        head = self.header.encode("latin-1")
        if self._send_all(head):
            self._send_body()
        if self.method in (Method.POST_STREAM, Method.POST_MULTIPART):
            return None
        return self.get_response()

    def _recv(self, size: int) -> bytes:
        assert self._sock is not None
        try:
            return self._sock.recv(size)
        except OSError:
            return b""

    def _close_socket(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None

    def _parse_header(self, text: str) -> None:
        pos = text.find("HTTP/1.")
        if pos >= 0:
            self.http_code = _atoi(text[pos + 9 :])
        if self.http_code == 404:
            self._close_socket()
            self.state = State.IDLE
            self.header = None
            raise HttpClientError("file not found on server (404)")
        for line in text.split("\r\n")[1:]:
            name, sep, value = line.partition(":")
            if not sep:
                continue
            name = name.lower()
            value = value.strip()
            if name == "content-length":
                self.payload_size = _atoi(value)
            elif name == "content-type":
                self.content_type = value
            elif name == "transfer-encoding" and value.startswith("chunked"):
                self.chunked = True

    def get_response(self) -> bytes | None:
        """Read the response header and body; return the body (None for HEAD).

        A 404 status or a response without a complete header raises
        HttpClientError.
        """
        if self._sock is None:
            raise HttpClientError("no connection to read a response from")
        received = bytearray()
        end = -1
        while True:
            data = self._recv(MAX_HEADER_SIZE - len(received))
            if not data:
                break
            received += data
            end = received.find(b"\r\n\r\n")
            if end >= 0:
                break
            if len(received) == MAX_HEADER_SIZE:
                end = len(received) - 4
                break
        if end < 0:
            self._close_socket()
            self.state = State.IDLE
            raise HttpClientError("invalid server response")
        header_bytes = end + 4
        self.header = received[: end + 2].decode("latin-1")
        self._parse_header(self.header)

        extra = bytes(received[header_bytes:])
        if self.payload_size == 0:
            self.payload_size = self.data_size - 1 if self.data_size else len(extra)
        if self.request_only:
            self._close_socket()
            self.state = State.IDLE
            return None

        if self.method is not Method.HEAD:
            self.state = State.RECEIVING
            body = bytearray(extra)
            while len(body) < self.payload_size:
                data = self._recv(self.payload_size - len(body))
                if not data:
                    break
                body += data
            self.body = bytes(body)
            self.data_size = len(body)

        if not self.keep_alive:
            self._close_socket()
        self.state = State.IDLE
        if not self.keep_header:
            self.header = None
        return self.body if self.method is not Method.HEAD else None

    def close(self) -> None:
        """Close the connection and drop the received data."""
        self._close_socket()
        self.body = None
        self.hostname = None


def post_file(url: str, fieldname: str, filename: str | os.PathLike[str]) -> bytes:
    """Upload a file as a multipart form field; return the response body."""
    path = os.fspath(filename)
    name = _base_name(path)
    with open(path, "rb") as fh:
        size = os.fstat(fh.fileno()).st_size
        prefix = _FILE_CHUNK_HEADER.format(field=fieldname, filename=name).encode("utf-8")
        pending = [prefix]

        def read_data(bufsize: int) -> bytes:
            if pending:
                return pending.pop()
            return fh.read(bufsize)

        with HttpRequest(url) as req:
            req.method = Method.POST_MULTIPART
            req.filename = name
            req.chunks = [PostChunk(read_data, ChunkType.CALLBACK, size + len(prefix))]
            req.request()
            return req.get_response() or b""


def post_file_stream(url: str, filename: str | os.PathLike[str]) -> int:
    """Send a file as a raw octet stream; return the number of file bytes sent."""
    path = os.fspath(filename)
    with open(path, "rb") as fh, HttpRequest(url) as req:
        req.method = Method.POST_STREAM
        req.filename = _base_name(path)
        req.request()
        sent = 0
        while True:
            block = fh.read(1024)
            if not block:
                break
            count = req.send(block)
            sent += count
            if count != len(block):
                break
        return sent


def main(argv: Sequence[str] | None = None) -> int:
    """Upload FILE to URL as the form field "file" and print the reply."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        print("usage: postfile URL FILE", file=sys.stderr)
        return -1
    try:
        reply = post_file(args[0], "file", args[1])
    except (OSError, HttpClientError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    sys.stdout.buffer.write(reply)
    sys.stdout.flush()
    return 0