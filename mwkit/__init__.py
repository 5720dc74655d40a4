"""Byte FIFOs, timers, serial ports, child processes, an HTTP/1.0 client, media player control and web server start-up settings."""

__version__ = "0.1.0"

__all__ = [
    "fifo",
    "timer",
    "iobase",
    "getopt",
    "keys",
    "serialport",
    "process",
    "httpclient",
    "player",
    "miniweb",
]