"""Settings, error types and the shared state of a serial port."""

from __future__ import annotations

import enum
import threading
from typing import Callable, Optional, Protocol


class Parity(enum.IntEnum):
    """Parity mode of a serial line."""

    NONE = 0
    ODD = 1
    EVEN = 2
    MARK = 3
    SPACE = 4


class DataBits(enum.IntEnum):
    """Number of data bits in a character."""

    FIVE = 5
    SIX = 6
    SEVEN = 7
    EIGHT = 8


class StopBits(enum.IntEnum):
    """Number of stop bits after a character."""

    ONE = 0
    ONE_AND_HALF = 1
    TWO = 2


class FlowControl(enum.IntEnum):
    """Flow control scheme of a serial line."""

    NONE = 0
    HARDWARE = 1
    SOFTWARE = 2


class OperateMode(enum.Enum):
    """Whether reads come from a background buffer or straight from the device."""

    ASYNCHRONOUS = "async"
    SYNCHRONOUS = "sync"


class ErrorCode(enum.Enum):
    """Kinds of failure a serial port can report."""

    NO_ERROR = enum.auto()
    UNKNOWN = enum.auto()
    SYSTEM = enum.auto()
    PERMISSION = enum.auto()
    OPEN = enum.auto()
    NOT_OPEN = enum.auto()
    INVALID_PARAMETER = enum.auto()
    READ = enum.auto()
    WRITE = enum.auto()
    DEVICE_NOT_FOUND = enum.auto()


class SerialPortError(Exception):
    """Raised when a serial port operation fails."""

    def __init__(self, code: ErrorCode, message: Optional[str] = None) -> None:
        super().__init__(message or code.name.lower().replace("_", " "))
        self.code = code


class _ReadHandler(Protocol):
    def on_read_event(self, port_name: str, read_len: int) -> None: ...


class ReadListener:
    """Receives notice that data is waiting in a port's read buffer.

    Either pass a callback or subclass and override ``on_read_event``.
    """

    def __init__(self, callback: Optional[Callable[[str, int], None]] = None) -> None:
        self._callback = callback

    def on_read_event(self, port_name: str, read_len: int) -> None:
        """Called with the port name and the number of buffered bytes."""
        if self._callback is not None:
            self._callback(port_name, read_len)


class SerialPortBase:
    """State shared by every serial port backend."""

    def __init__(self, port_name: str = "") -> None:
        self.port_name = port_name
        self.last_error = ErrorCode.NO_ERROR
        self.operate_mode = OperateMode.ASYNCHRONOUS
        self.read_interval_timeout_ms = 50
        self.min_byte_read_notify = 1
        self._lock = threading.RLock()
        self._listener: Optional[_ReadHandler] = None
        self._timer: Optional[threading.Timer] = None

    @property
    def read_listener(self) -> Optional[_ReadHandler]:
        """The listener currently told about incoming data, if any."""
        return self._listener

    def connect_read_event(self, listener: _ReadHandler) -> None:
        """Register the listener told about incoming data."""
        if listener is None:
            raise SerialPortError(ErrorCode.INVALID_PARAMETER, "listener must not be None")
        self._listener = listener

    def disconnect_read_event(self) -> None:
        """Stop telling any listener about incoming data."""
        self._listener = None

    def clear_error(self) -> None:
        """Reset the last recorded error."""
        self.last_error = ErrorCode.NO_ERROR

    def _fail(self, code: ErrorCode, message: Optional[str] = None) -> SerialPortError:
        self.last_error = code
        return SerialPortError(code, message)

    def _notify_read(self, used_len: int) -> None:
        """Tell the listener about buffered data, after the read interval if one is set."""
        listener = self._listener
        if listener is None:
            return
        timeout_ms = self.read_interval_timeout_ms
        if timeout_ms > 0:
            self._cancel_timer()
            timer = threading.Timer(
                timeout_ms / 1000.0,
                listener.on_read_event,
                args=(self.port_name, used_len),
            )
            timer.daemon = True
            self._timer = timer
            timer.start()
        else:
            listener.on_read_event(self.port_name, used_len)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None