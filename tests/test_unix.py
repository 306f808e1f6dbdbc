import os
import select
import termios
import threading
import time

import pytest

from serialcomm.base import (
    DataBits,
    ErrorCode,
    FlowControl,
    OperateMode,
    Parity,
    ReadListener,
    SerialPortError,
    StopBits,
)
from serialcomm.unix import UnixSerialPort, apply_settings, rate_to_constant


@pytest.fixture
def pty_pair():
    master, slave = os.openpty()
    name = os.ttyname(slave)
    yield master, name
    os.close(master)
    os.close(slave)


def _blank_attrs():
    return [0, 0, 0, 0, 0, 0, [0] * 32]


def _wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def _read_master(master, size, timeout=3.0):
    data = b""
    deadline = time.monotonic() + timeout
    while len(data) < size and time.monotonic() < deadline:
        readable, _, _ = select.select([master], [], [], 0.05)
        if readable:
            data += os.read(master, size - len(data))
    return data


def test_rate_to_constant_standard_rates():
    assert rate_to_constant(9600) == termios.B9600
    assert rate_to_constant(115200) == termios.B115200


def test_rate_to_constant_unknown_rate():
    assert rate_to_constant(12345) == 0


def test_apply_settings_odd_parity_seven_bits():
    attrs = apply_settings(_blank_attrs(), Parity.ODD, DataBits.SEVEN, StopBits.ONE, FlowControl.NONE)
    cflag = attrs[2]
    assert cflag & termios.PARENB
    assert cflag & termios.PARODD
    assert cflag & termios.CSIZE == termios.CS7
    assert not cflag & termios.CSTOPB
    assert cflag & termios.CREAD and cflag & termios.CLOCAL


def test_apply_settings_even_parity_two_stop_bits():
    start = _blank_attrs()
    start[2] = termios.PARODD
    attrs = apply_settings(start, Parity.EVEN, DataBits.EIGHT, StopBits.TWO, FlowControl.NONE)
    assert attrs[2] & termios.PARENB
    assert not attrs[2] & termios.PARODD
    assert attrs[2] & termios.CSTOPB
    assert attrs[2] & termios.CSIZE == termios.CS8


def test_apply_settings_raw_mode_and_timing():
    start = _blank_attrs()
    start[0] = termios.ICRNL | termios.BRKINT
    start[1] = termios.OPOST
    start[3] = termios.ICANON | termios.ECHO
    attrs = apply_settings(start, Parity.NONE, DataBits.EIGHT, StopBits.ONE, FlowControl.NONE)
    assert attrs[0] & (termios.ICRNL | termios.BRKINT) == 0
    assert attrs[1] & termios.OPOST == 0
    assert attrs[3] & (termios.ICANON | termios.ECHO) == 0
    assert attrs[6][termios.VMIN] == 1
    assert attrs[6][termios.VTIME] == 0
    assert start[6][termios.VMIN] == 0


def test_apply_settings_software_flow_control():
    attrs = apply_settings(_blank_attrs(), Parity.NONE, DataBits.EIGHT, StopBits.ONE, FlowControl.SOFTWARE)
    wanted = termios.IXON | termios.IXOFF
    assert attrs[0] & wanted == wanted


@pytest.mark.parametrize(
    "parity, stop_bits",
    [(Parity.NONE, StopBits.ONE_AND_HALF), (Parity.MARK, StopBits.ONE)],
)
def test_apply_settings_rejects_unsupported(parity, stop_bits):
    with pytest.raises(SerialPortError) as info:
        apply_settings(_blank_attrs(), parity, DataBits.EIGHT, stop_bits, FlowControl.NONE)
    assert info.value.code is ErrorCode.INVALID_PARAMETER


def test_init_replaces_settings():
    port = UnixSerialPort()
    port.init("/dev/null-port", 115200, Parity.EVEN, DataBits.SEVEN, StopBits.TWO, FlowControl.HARDWARE, 64)
    assert port.port_name == "/dev/null-port"
    assert port.baud_rate == 115200
    assert port.parity is Parity.EVEN
    assert port.read_buffer_size == 64
    assert port.is_open() is False


def test_open_missing_device_fails():
    port = UnixSerialPort("/nonexistent/ttyMISSING")
    with pytest.raises(SerialPortError) as info:
        port.open()
    assert info.value.code is ErrorCode.OPEN
    assert port.last_error is ErrorCode.OPEN
    assert port.is_open() is False


def test_operations_on_closed_port():
    port = UnixSerialPort("/nonexistent/ttyMISSING")
    assert port.read(0) == b""
    with pytest.raises(SerialPortError) as info:
        port.read(4)
    assert info.value.code is ErrorCode.NOT_OPEN
    with pytest.raises(SerialPortError):
        port.write(b"x")
    with pytest.raises(SerialPortError):
        port.flush_buffers()
    assert port.last_error is ErrorCode.NOT_OPEN


def test_write_reaches_other_end(pty_pair):
    master, name = pty_pair
    with UnixSerialPort(name) as port:
        assert port.is_open()
        assert port.write(b"ping") == 4
        assert _read_master(master, 4) == b"ping"
    assert port.is_open() is False


def test_async_read_through_buffer(pty_pair):
    master, name = pty_pair
    with UnixSerialPort(name) as port:
        os.write(master, b"hello\nworld")
        assert _wait_for(lambda: port.read_buffer_used_len() == 11)
        assert port.read_line(100) == b"hello\n"
        assert port.read_all() == b"world"
        assert port.read_buffer_used_len() == 0


def test_async_buffer_is_bounded(pty_pair):
    master, name = pty_pair
    port = UnixSerialPort()
    port.init(name, read_buffer_size=4)
    with port:
        os.write(master, b"0123456789")
        assert _wait_for(lambda: port.read_buffer_used_len() == 4)
        time.sleep(0.1)
        assert port.read(100) == b"0123"


def test_listener_notified_immediately(pty_pair):
    master, name = pty_pair
    events = []
    seen = threading.Event()

    def record(port_name, read_len):
        events.append((port_name, read_len))
        seen.set()

    port = UnixSerialPort(name)
    port.read_interval_timeout_ms = 0
    port.connect_read_event(ReadListener(record))
    with port:
        os.write(master, b"abc")
        assert seen.wait(3.0)
    assert events[0][0] == name
    assert events[0][1] >= 1


def test_listener_notified_after_interval(pty_pair):
    master, name = pty_pair
    seen = threading.Event()
    events = []

    def record(port_name, read_len):
        events.append((port_name, read_len))
        seen.set()

    port = UnixSerialPort(name)
    port.read_interval_timeout_ms = 20
    port.connect_read_event(ReadListener(record))
    with port:
        os.write(master, b"xy")
        assert seen.wait(3.0)
        assert _wait_for(lambda: port.read_buffer_used_len() == 2)
        assert port.read_all() == b"xy"
    last_name, last_len = events[-1]
    assert last_name == name
    assert 1 <= last_len <= 2


def test_sync_read_from_device(pty_pair):
    master, name = pty_pair
    port = UnixSerialPort(name)
    port.operate_mode = OperateMode.SYNCHRONOUS
    with port:
        os.write(master, b"abc")
        assert _wait_for(lambda: port.read_buffer_used_len() == 3)
        assert port.read(3) == b"abc"


def test_sync_read_line(pty_pair):
    master, name = pty_pair
    port = UnixSerialPort(name)
    port.operate_mode = OperateMode.SYNCHRONOUS
    with port:
        os.write(master, b"one\ntwo")
        assert port.read_line(50) == b"one\n"
        assert port.read_line(2) == b"tw"