import pytest

from mwkit.iobase import IOBase


class ScriptedDevice(IOBase):
    """Serves bytes from a script; an empty entry means 'nothing yet'."""

    def __init__(self, chunks=(), accept=None, fail_after=None):
        super().__init__(16)
        self.chunks = list(chunks)
        self.accept = accept
        self.fail_after = fail_after
        self.sent = bytearray()

    def _read_device(self, n):
        if not self.chunks:
            if self.fail_after is not None:
                raise OSError("device gone")
            return b""
        head = self.chunks[0]
        out, rest = head[:n], head[n:]
        if rest:
            self.chunks[0] = rest
        else:
            self.chunks.pop(0)
        return out

    def _write_device(self, data):
        if self.fail_after is not None and len(self.sent) >= self.fail_after:
            raise OSError("device gone")
        n = len(data) if self.accept is None else min(self.accept, len(data))
        self.sent += data[:n]
        return n


def test_read_prefers_put_back_bytes():
    dev = ScriptedDevice([b"bc"])
    assert IOBase.put_back(dev, b"a") is True
    assert IOBase.read(dev, 5) == b"a"
    assert IOBase.read(dev, 5) == b"bc"


def test_readv_collects_all_bytes():
    dev = ScriptedDevice([b"he", b"", b"llo", b"!!"])
    assert IOBase.readv(dev, 5, 1000) == b"hello"
    assert IOBase.read(dev, 5) == b"!!"


def test_readv_times_out_with_partial_data():
    dev = ScriptedDevice([b"ab"])
    assert IOBase.readv(dev, 10, 50) == b"ab"


def test_readv_stops_on_error():
    dev = ScriptedDevice([b"xy"], fail_after=0)
    assert IOBase.readv(dev, 10) == b"xy"


def test_writev_writes_everything_in_pieces():
    dev = ScriptedDevice(accept=2)
    data = b"abcdefg"
    assert IOBase.writev(dev, data, 1000) == len(data)
    assert bytes(dev.sent) == data


def test_writev_stops_on_error():
    dev = ScriptedDevice(accept=1, fail_after=3)
    assert IOBase.writev(dev, b"abcdef") == 3
    assert bytes(dev.sent) == b"abc"


def test_read_until_eos_found():
    dev = ScriptedDevice([b"line one\r\nrest"])
    data, found = IOBase.read_until_eos(dev, b"\r\n", 1000)
    assert found is True
    assert data == b"line one"
    assert IOBase.read(dev, 10) == b"rest"


def test_read_until_eos_timeout():
    dev = ScriptedDevice([b"no end"])
    data, found = IOBase.read_until_eos(dev, "\n", 50)
    assert found is False
    assert data == b"no end"


def test_read_until_eos_ignores_eos_inside_quotes():
    dev = ScriptedDevice([b'say "a;b";tail'])
    data, found = IOBase.read_until_eos(dev, ";", 1000, quote='"')
    assert found is True
    assert data == b'say "a;b"'


def test_read_until_eos_mismatch_drops_partial_match():
    dev = ScriptedDevice([b"a\rb\r\n"])
    data, found = IOBase.read_until_eos(dev, b"\r\n", 1000)
    assert found is True
    assert data == b"ab"


def test_read_until_eos_rejects_empty_eos():
    dev = ScriptedDevice()
    with pytest.raises(ValueError):
        IOBase.read_until_eos(dev, b"")


def test_put_back_rejects_multiple_bytes():
    dev = ScriptedDevice()
    with pytest.raises(ValueError):
        IOBase.put_back(dev, b"ab")