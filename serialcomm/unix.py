"""Serial port backend for POSIX terminals."""

from __future__ import annotations

import fcntl
import os
import select
import struct
import sys
import termios
import threading
import time
from typing import List, Optional

from .base import (
    DataBits,
    ErrorCode,
    FlowControl,
    OperateMode,
    Parity,
    SerialPortBase,
    SerialPortError,
    StopBits,
)

_STANDARD_RATES = (
    50, 75, 110, 134, 150, 200, 300, 600, 1200, 1800, 2400, 4800, 9600,
    19200, 38400, 57600, 115200, 230400, 460800, 500000, 576000, 921600,
    1000000, 1152000, 1500000, 2000000, 2500000, 3000000, 3500000, 4000000,
)

_CRTSCTS = getattr(termios, "CRTSCTS", 0)

# Linux termios2 interface for arbitrary baud rates.
_TERMIOS2 = struct.Struct("=4IB19s2I")
_TCGETS2 = 0x802C542A
_TCSETS2 = 0x402C542B
_CBAUD = 0o010017
_BOTHER = 0o010000

_IFLAG, _OFLAG, _CFLAG, _LFLAG, _ISPEED, _OSPEED, _CC = range(7)


def rate_to_constant(baud_rate: int) -> int:
    """Return the termios speed constant for a baud rate, or 0 if there is none."""
    if baud_rate not in _STANDARD_RATES:
        return 0
    return getattr(termios, f"B{baud_rate}", 0)


def apply_settings(
    attrs: List,
    parity: Parity,
    data_bits: DataBits,
    stop_bits: StopBits,
    flow_control: FlowControl,
) -> List:
    """Return a copy of termios attributes set up for raw I/O with these line settings."""
    attrs = list(attrs)
    attrs[_CC] = list(attrs[_CC])
    iflag, oflag, cflag, lflag = attrs[_IFLAG], attrs[_OFLAG], attrs[_CFLAG], attrs[_LFLAG]

    if parity == Parity.NONE:
        cflag &= ~termios.PARENB
    elif parity == Parity.ODD:
        cflag |= termios.PARENB | termios.PARODD
    elif parity == Parity.EVEN:
        cflag |= termios.PARENB
        cflag &= ~termios.PARODD
    elif parity == Parity.SPACE:
        cflag &= ~(termios.PARENB | termios.CSTOPB)
    else:
        raise SerialPortError(ErrorCode.INVALID_PARAMETER, f"unsupported parity {parity!r}")

    sizes = {
        DataBits.FIVE: termios.CS5,
        DataBits.SIX: termios.CS6,
        DataBits.SEVEN: termios.CS7,
        DataBits.EIGHT: termios.CS8,
    }
    try:
        size = sizes[DataBits(data_bits)]
    except (KeyError, ValueError):
        raise SerialPortError(ErrorCode.INVALID_PARAMETER, f"unknown data bits {data_bits!r}") from None
    cflag = (cflag & ~termios.CSIZE) | size

    if stop_bits == StopBits.ONE:
        cflag &= ~termios.CSTOPB
    elif stop_bits == StopBits.TWO:
        cflag |= termios.CSTOPB
    elif stop_bits == StopBits.ONE_AND_HALF:
        raise SerialPortError(ErrorCode.INVALID_PARAMETER, "POSIX does not support 1.5 stop bits")
    else:
        raise SerialPortError(ErrorCode.INVALID_PARAMETER, f"unknown stop bits {stop_bits!r}")

    cflag |= termios.CLOCAL | termios.CREAD
    oflag &= ~termios.OPOST
    lflag &= ~(termios.ICANON | termios.ECHO | termios.ECHOE | termios.ISIG)
    iflag &= ~(termios.BRKINT | termios.ICRNL | termios.INPCK | termios.ISTRIP | termios.IXON)

    if flow_control == FlowControl.NONE:
        cflag &= ~_CRTSCTS
    elif flow_control == FlowControl.HARDWARE:
        cflag |= _CRTSCTS
    elif flow_control == FlowControl.SOFTWARE:
        iflag |= termios.IXON | termios.IXOFF | termios.IXANY
    else:
        raise SerialPortError(ErrorCode.INVALID_PARAMETER, f"unknown flow control {flow_control!r}")

    attrs[_IFLAG], attrs[_OFLAG], attrs[_CFLAG], attrs[_LFLAG] = iflag, oflag, cflag, lflag
    attrs[_CC][termios.VTIME] = 0
    attrs[_CC][termios.VMIN] = 1
    return attrs


def _set_custom_baud(fd: int, baud_rate: int) -> None:
    if not sys.platform.startswith("linux"):
        raise SerialPortError(ErrorCode.INVALID_PARAMETER, "custom baud rates are not supported")
    try:
        raw = fcntl.ioctl(fd, _TCGETS2, bytes(_TERMIOS2.size))
        iflag, oflag, cflag, lflag, line, cc, _, _ = _TERMIOS2.unpack(raw)
        cflag = (cflag & ~_CBAUD) | _BOTHER
        packed = _TERMIOS2.pack(iflag, oflag, cflag, lflag, line, cc, baud_rate, baud_rate)
        fcntl.ioctl(fd, _TCSETS2, packed)
        fcntl.ioctl(fd, _TCGETS2, bytes(_TERMIOS2.size))
    except OSError as exc:
        raise SerialPortError(ErrorCode.INVALID_PARAMETER, f"cannot set baud rate {baud_rate}: {exc}") from exc


class _RingBuffer:
    """Bounded byte queue; bytes that do not fit are dropped."""

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        self._data = bytearray()

    def __len__(self) -> int:
        return len(self._data)

    def write(self, data: bytes) -> int:
        chunk = data[: max(self.capacity - len(self._data), 0)]
        self._data += chunk
        return len(chunk)

    def read(self, size: int) -> bytes:
        chunk = bytes(self._data[:size])
        del self._data[:size]
        return chunk

    def read_line(self, size: int) -> bytes:
        end = self._data.find(b"\n", 0, size)
        return self.read(size if end < 0 else end + 1)


class UnixSerialPort(SerialPortBase):
    """A serial port backed by a POSIX terminal device."""

    def __init__(self, port_name: str = "") -> None:
        super().__init__(port_name)
        self.baud_rate = 9600
        self.parity = Parity.NONE
        self.data_bits = DataBits.EIGHT
        self.stop_bits = StopBits.ONE
        self.flow_control = FlowControl.NONE
        self.read_buffer_size = 4096
        self._buffer = _RingBuffer(self.read_buffer_size)
        self._fd: Optional[int] = None
        self._running = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def init(
        self,
        port_name: str,
        baud_rate: int = 9600,
        parity: Parity = Parity.NONE,
        data_bits: DataBits = DataBits.EIGHT,
        stop_bits: StopBits = StopBits.ONE,
        flow_control: FlowControl = FlowControl.NONE,
        read_buffer_size: int = 4096,
    ) -> None:
        """Set every line setting at once and allocate a fresh read buffer."""
        self.port_name = port_name
        self.baud_rate = baud_rate
        self.parity = parity
        self.data_bits = data_bits
        self.stop_bits = stop_bits
        self.flow_control = flow_control
        self.read_buffer_size = read_buffer_size
        self._buffer = _RingBuffer(read_buffer_size)

    def open(self) -> None:
        """Open and configure the device; raise SerialPortError on failure."""
        with self._lock:
            try:
                fd = os.open(self.port_name, os.O_RDWR | os.O_NOCTTY | os.O_NDELAY)
            except OSError as exc:
                raise self._fail(ErrorCode.OPEN, f"unable to open {self.port_name}: {exc}") from exc
            self._fd = fd
            try:
                try:
                    fcntl.fcntl(fd, fcntl.F_SETFL, 0)
                except OSError as exc:
                    raise self._fail(ErrorCode.SYSTEM, str(exc)) from exc
                try:
                    self._configure(fd)
                except SerialPortError as exc:
                    raise self._fail(ErrorCode.INVALID_PARAMETER, str(exc)) from exc
                except (termios.error, OSError) as exc:
                    raise self._fail(ErrorCode.INVALID_PARAMETER, str(exc)) from exc
                if self.operate_mode is OperateMode.ASYNCHRONOUS:
                    self._start_monitor()
            except SerialPortError:
                self.close()
                raise

    def _configure(self, fd: int) -> None:
        attrs = apply_settings(
            termios.tcgetattr(fd), self.parity, self.data_bits, self.stop_bits, self.flow_control
        )
        speed = rate_to_constant(self.baud_rate)
        if speed:
            attrs[_ISPEED] = attrs[_OSPEED] = speed
        termios.tcflush(fd, termios.TCIFLUSH)
        termios.tcsetattr(fd, termios.TCSANOW, attrs)
        if not speed:
            _set_custom_baud(fd, self.baud_rate)

    def _start_monitor(self) -> None:
        self._running.set()
        self._thread = threading.Thread(target=self._monitor, name=f"serial:{self.port_name}", daemon=True)
        self._thread.start()

    def _stop_monitor(self) -> None:
        self._running.clear()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None

    def _monitor(self) -> None:
        while self._running.is_set():
            fd = self._fd
            if fd is None:
                break
            try:
                readable, _, _ = select.select([fd], [], [], 0.05)
            except (OSError, ValueError):
                break
            if not readable:
                continue
            available = self._available(fd)
            if available <= 0 or available < self.min_byte_read_notify:
                time.sleep(0.001)
                continue
            with self._lock:
                if self._fd is None:
                    break
                try:
                    data = os.read(self._fd, available)
                except OSError:
                    self.last_error = ErrorCode.READ
                    continue
                self._buffer.write(data)
                used = len(self._buffer)
            self._notify_read(used)

    @staticmethod
    def _available(fd: int) -> int:
        try:
            raw = fcntl.ioctl(fd, termios.FIONREAD, struct.pack("i", 0))
        except OSError:
            return 0
        return struct.unpack("i", raw)[0]

    def close(self) -> None:
        """Stop the reader thread and close the device."""
        if not self.is_open():
            return
        self._stop_monitor()
        self._cancel_timer()
        with self._lock:
            if self._fd is not None:
                os.close(self._fd)
                self._fd = None

    def is_open(self) -> bool:
        return self._fd is not None

    def read_buffer_used_len(self) -> int:
        """Bytes ready to read: buffered ones, or the device's queue in synchronous mode."""
        if self.operate_mode is OperateMode.ASYNCHRONOUS:
            return len(self._buffer)
        if self._fd is None:
            return 0
        return self._available(self._fd)

    def _require_open(self) -> int:
        if self._fd is None:
            raise self._fail(ErrorCode.NOT_OPEN, f"port {self.port_name!r} is not open")
        return self._fd

    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes."""
        with self._lock:
            if size <= 0:
                return b""
            fd = self._require_open()
            if self.operate_mode is OperateMode.ASYNCHRONOUS:
                return self._buffer.read(size)
            try:
                return os.read(fd, size)
            except OSError as exc:
                raise self._fail(ErrorCode.READ, str(exc)) from exc

    def read_all(self) -> bytes:
        """Read every byte that is ready."""
        return self.read(self.read_buffer_used_len())

    def read_line(self, size: int) -> bytes:
        """Read up to ``size`` bytes, stopping after the first newline."""
        with self._lock:
            fd = self._require_open()
            if size <= 0:
                return b""
            if self.operate_mode is OperateMode.ASYNCHRONOUS:
                return self._buffer.read_line(size)
            line = bytearray()
            try:
                while len(line) < size:
                    byte = os.read(fd, 1)
                    if not byte:
                        break
                    line += byte
                    if byte == b"\n":
                        break
            except OSError as exc:
                raise self._fail(ErrorCode.READ, str(exc)) from exc
            return bytes(line)

    def write(self, data: bytes) -> int:
        """Write bytes to the device and return how many were written."""
        with self._lock:
            fd = self._require_open()
            try:
                return os.write(fd, data)
            except OSError as exc:
                raise self._fail(ErrorCode.WRITE, str(exc)) from exc

    def flush_buffers(self) -> None:
        """Wait until all written data has been sent."""
        with self._lock:
            termios.tcdrain(self._require_open())

    def flush_read_buffers(self) -> None:
        """Discard data received by the device but not yet read."""
        with self._lock:
            termios.tcflush(self._require_open(), termios.TCIFLUSH)

    def flush_write_buffers(self) -> None:
        """Discard data written but not yet sent."""
        with self._lock:
            termios.tcflush(self._require_open(), termios.TCOFLUSH)

    def _set_modem_line(self, line: int, value: bool) -> None:
        with self._lock:
            if self._fd is None:
                return
            request = termios.TIOCMBIS if value else termios.TIOCMBIC
            try:
                fcntl.ioctl(self._fd, request, struct.pack("i", line))
            except OSError as exc:
                raise self._fail(ErrorCode.SYSTEM, str(exc)) from exc

    def set_dtr(self, value: bool = True) -> None:
        """Raise or lower the DTR line of an open port."""
        self._set_modem_line(termios.TIOCM_DTR, value)

    def set_rts(self, value: bool = True) -> None:
        """Raise or lower the RTS line of an open port."""
        self._set_modem_line(termios.TIOCM_RTS, value)

    def __enter__(self) -> "UnixSerialPort":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()