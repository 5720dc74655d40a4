"""Serial ports: protocol strings, device names, port discovery and a port class."""

from __future__ import annotations

import enum
import glob
import os
from dataclasses import dataclass

import serial

from mwkit.iobase import IOBase

_WINDOWS = os.name == "nt"

_STANDARD_RATES = frozenset(
    {
        150, 300, 600, 1200, 2400, 4800, 9600, 19200, 38400, 57600,
        115200, 230400, 460800, 921600,
    }
)


class Parity(enum.Enum):
    """Parity modes; the values are the letters used in protocol strings."""

    NONE = "N"
    ODD = "O"
    EVEN = "E"
    MARK = "M"
    SPACE = "S"


class FlowControl(enum.Enum):
    """Flow control modes."""

    NONE = 0
    RTSCTS = 1
    XONXOFF = 2


class LineState(enum.IntFlag):
    """Modem control and status lines, with the Linux TIOCM bit values."""

    NULL = 0x000
    LE = 0x001
    DTR = 0x002
    RTS = 0x004
    ST = 0x008
    SR = 0x010
    CTS = 0x020
    DCD = 0x040
    RING = 0x080
    DSR = 0x100


@dataclass
class SerialSettings:
    """Line settings of a serial port."""

    baud: int = 19200
    wordlen: int = 8
    parity: Parity = Parity.NONE
    stopbits: int = 1
    rtscts: bool = False
    xonxoff: bool = False


def parse_protocol(protocol: str) -> tuple[int, Parity, int]:
    """Split a protocol string such as "8N1" into word length, parity and stop bits.

    The first character gives the data bits (5 to 8), the second the parity
    (N, O, E, M or S, in either case) and the third the stop bits (1 or 2).
    """
    if len(protocol) < 3:
        raise ValueError(f"invalid protocol {protocol!r}")
    bits, par, stop = protocol[0], protocol[1], protocol[2]
    if bits not in "5678":
        raise ValueError(f"invalid word length in protocol {protocol!r}")
    try:
        parity = Parity(par.upper())
    except ValueError:
        raise ValueError(f"invalid parity in protocol {protocol!r}") from None
    if stop not in "12":
        raise ValueError(f"invalid stop bits in protocol {protocol!r}")
    return int(bits), parity, int(stop)


def is_standard_rate(rate: int) -> bool:
    """True if ``rate`` is one of the usual UART baud rates."""
    return rate in _STANDARD_RATES


def port_device_name(portnumber: int) -> str:
    """Device name of the serial port numbered from 1."""
    if portnumber < 1:
        raise ValueError("port numbers start with 1")
    if _WINDOWS:
        return f"com{portnumber}" if portnumber < 10 else f"\\\\.\\com{portnumber}"
    return f"/dev/ttyS{portnumber - 1}"


def _can_open(devname: str) -> bool:
    port = SerialPort()
    try:
        port.open(devname)
    except (OSError, ValueError):
        return False
    port.close()
    return True


def available_ports(check_in_use: bool = True) -> list[str]:
    """List serial ports on this machine.

    With ``check_in_use`` only ports that can be opened right now are listed.
    """
    result: list[str] = []
    if _WINDOWS:
        for number in range(1, 64):
            if _can_open(port_device_name(number)):
                result.append(f"COM{number}")
        return result
    for pattern in ("/dev/ttyS*", "/dev/ttyUSB*"):
        for path in sorted(glob.glob(pattern)):
            if check_in_use and not _can_open(path):
                continue
            result.append(path)
    return result


class SerialPort(IOBase):
    """A serial port with non-blocking reads and writes."""

    def __init__(self, fifo_size: int = 256) -> None:
        super().__init__(fifo_size)
        self._serial: serial.SerialBase | None = None
        self.settings = SerialSettings()
        self.device_name = ""
        self._timeout = 0

    def __enter__(self) -> SerialPort:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _port(self) -> serial.SerialBase:
        if self._serial is None:
            raise OSError("serial port is not open")
        return self._serial

    def open(
        self,
        port: int | str,
        baudrate: int = 19200,
        protocol: str = "8N1",
        flow_control: FlowControl = FlowControl.NONE,
    ) -> SerialPort:
        """Open ``port`` (a device name, pyserial URL or number from 1).

        Raises ValueError for a bad protocol string and OSError when the
        device cannot be opened.
        """
        devname = port_device_name(port) if isinstance(port, int) else port
        wordlen, parity, stopbits = parse_protocol(protocol)
        settings = SerialSettings(
            baud=baudrate,
            wordlen=wordlen,
            parity=parity,
            stopbits=stopbits,
            rtscts=flow_control is FlowControl.RTSCTS,
            xonxoff=flow_control is FlowControl.XONXOFF,
        )
        self.close()
        kwargs: dict[str, object] = {
            "baudrate": baudrate,
            "bytesize": wordlen,
            "parity": parity.value,
            "stopbits": stopbits,
            "rtscts": settings.rtscts,
            "xonxoff": settings.xonxoff,
            "timeout": 0,
        }
        if "://" not in devname:
            kwargs["write_timeout"] = 0
            if not _WINDOWS:
                kwargs["exclusive"] = True
        self._serial = serial.serial_for_url(devname, **kwargs)
        self.settings = settings
        self.device_name = devname
        self._timeout = 0
        self._fifo.clear()
        return self

    def close(self) -> None:
        """Flush pending output and close the port; closing twice is harmless."""
        if self._serial is None:
            return
        ser, self._serial = self._serial, None
        try:
            ser.reset_output_buffer()
        finally:
            ser.close()

    def is_open(self) -> bool:
        """True while the port is open."""
        return self._serial is not None and self._serial.is_open

    def read(self, n: int) -> bytes:
        """Read up to ``n`` bytes without waiting; put-back bytes come first."""
        return super().read(n)

    def write(self, data: bytes) -> int:
        """Write what the port accepts now and return the number of bytes written."""
        return super().write(data)

    def _read_device(self, n: int) -> bytes:
        return bytes(self._port().read(n))

    def _write_device(self, data: bytes) -> int:
        return self._port().write(data) or 0

    def send_break(self, duration: int = 0) -> None:
        """Send a break for ``duration`` quarter seconds (at least one)."""
        if duration <= 0:
            duration = 1
        self._port().send_break(duration * 0.25)

    def set_baudrate(self, baudrate: int) -> None:
        """Change the baud rate; non-standard rates are passed to the driver."""
        self._port().baudrate = baudrate
        self.settings.baud = baudrate

    def set_line_state(self, flags: LineState) -> None:
        """Raise the DTR and/or RTS lines given in ``flags``."""
        ser = self._port()
        if flags & LineState.DTR:
            ser.dtr = True
        if flags & LineState.RTS:
            ser.rts = True

    def clr_line_state(self, flags: LineState) -> None:
        """Lower the DTR and/or RTS lines given in ``flags``."""
        ser = self._port()
        if flags & LineState.DTR:
            ser.dtr = False
        if flags & LineState.RTS:
            ser.rts = False

    def change_line_state(self, flags: LineState) -> None:
        """Toggle the DTR and/or RTS lines given in ``flags``."""
        ser = self._port()
        if flags & LineState.DTR:
            ser.dtr = not ser.dtr
        if flags & LineState.RTS:
            ser.rts = not ser.rts

    def get_line_state(self) -> LineState:
        """Current state of the control and status lines."""
        ser = self._port()
        state = LineState.NULL
        for on, flag in (
            (ser.dtr, LineState.DTR),
            (ser.rts, LineState.RTS),
            (ser.cts, LineState.CTS),
            (ser.dsr, LineState.DSR),
            (ser.ri, LineState.RING),
            (ser.cd, LineState.DCD),
        ):
            if on:
                state |= flag
        return state

    def set_parity_bit(self, parity: bool) -> None:
        """Wait for output to drain, then force the parity bit to 1 (mark) or 0 (space)."""
        ser = self._port()
        ser.flush()
        new = Parity.MARK if parity else Parity.SPACE
        ser.parity = new.value
        self.settings.parity = new

    def set_timeout(self, duration: int) -> None:
        """Set the read timeout in milliseconds; 0 makes reads non-blocking."""
        if duration != self._timeout:
            self._port().timeout = duration / 1000.0
            self._timeout = duration