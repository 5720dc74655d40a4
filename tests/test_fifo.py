import pytest

from mwkit.fifo import Fifo


def test_empty_fifo_has_nothing():
    fifo = Fifo(8)
    assert fifo.items() == 0
    assert fifo.get() is None
    assert fifo.read(4) == b""


def test_capacity_is_one_less_than_size():
    fifo = Fifo(5)
    results = [fifo.put(c) for c in b"abcde"]
    assert results == [True, True, True, True, False]
    assert fifo.items() == fifo.size - 1


def test_get_returns_bytes_in_order():
    fifo = Fifo(8)
    fifo.write(b"xyz")
    assert fifo.get() == ord("x")
    assert fifo.get() == ord("y")
    assert fifo.get() == ord("z")
    assert fifo.get() is None


def test_write_stops_when_full():
    fifo = Fifo(4)
    assert fifo.write(b"hello") == 3
    assert fifo.read(10) == b"hel"


def test_wraparound_keeps_order_and_count():
    fifo = Fifo(4)
    for _ in range(5):
        assert fifo.write(b"ab") == 2
        assert fifo.items() == 2
        assert len(fifo) == 2
        assert fifo.read(2) == b"ab"
    fifo.write(b"abc")
    assert fifo.read(1) == b"a"
    fifo.write(b"d")
    assert fifo.items() == 3
    assert fifo.read(5) == b"bcd"


def test_read_limits_to_n():
    fifo = Fifo(16)
    fifo.write(b"0123456789")
    assert fifo.read(4) == b"0123"
    assert fifo.items() == 6


def test_clear_empties():
    fifo = Fifo(8)
    fifo.write(b"abc")
    fifo.clear()
    assert fifo.items() == 0
    assert fifo.get() is None


def test_invalid_size():
    with pytest.raises(ValueError):
        Fifo(0)