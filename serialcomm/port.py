"""The serial port handle applications use."""

from __future__ import annotations

from typing import Optional

from .base import (
    DataBits,
    ErrorCode,
    FlowControl,
    OperateMode,
    Parity,
    ReadListener,
    StopBits,
)
from .unix import UnixSerialPort

_VERSION = "1.0.0"


def get_version() -> str:
    """Return the library's version string."""
    return f"serialcomm - V{_VERSION}"


class SerialPort:
    """A serial port: configure it, open it, then read and write bytes.

    Listeners are told about incoming data as soon as it arrives unless a
    read interval is set with ``read_interval_timeout_ms``.
    """

    def __init__(self, port_name: str = "") -> None:
        self._backend = UnixSerialPort(port_name)
        self._backend.read_interval_timeout_ms = 0
        self._backend.min_byte_read_notify = 1

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
        """Set every line setting at once."""
        self._backend.init(
            port_name, baud_rate, parity, data_bits, stop_bits, flow_control, read_buffer_size
        )

    def open(self) -> None:
        """Open the port; raise SerialPortError on failure."""
        self._backend.open()

    def close(self) -> None:
        self._backend.close()

    def is_open(self) -> bool:
        return self._backend.is_open()

    def connect_read_event(self, listener: ReadListener) -> None:
        """Register the listener told about incoming data."""
        self._backend.connect_read_event(listener)

    def disconnect_read_event(self) -> None:
        self._backend.disconnect_read_event()

    def read_buffer_used_len(self) -> int:
        """Number of bytes ready to read."""
        return self._backend.read_buffer_used_len()

    def read(self, size: int) -> bytes:
        return self._backend.read(size)

    def read_all(self) -> bytes:
        return self._backend.read_all()

    def read_line(self, size: int) -> bytes:
        return self._backend.read_line(size)

    def write(self, data: bytes) -> int:
        return self._backend.write(data)

    def flush_buffers(self) -> None:
        self._backend.flush_buffers()

    def flush_read_buffers(self) -> None:
        self._backend.flush_read_buffers()

    def flush_write_buffers(self) -> None:
        self._backend.flush_write_buffers()

    def clear_error(self) -> None:
        self._backend.clear_error()

    def set_dtr(self, value: bool = True) -> None:
        self._backend.set_dtr(value)

    def set_rts(self, value: bool = True) -> None:
        self._backend.set_rts(value)

    @property
    def last_error(self) -> ErrorCode:
        return self._backend.last_error

    @property
    def read_listener(self) -> Optional[ReadListener]:
        return self._backend.read_listener

    @property
    def port_name(self) -> str:
        return self._backend.port_name

    @port_name.setter
    def port_name(self, value: str) -> None:
        self._backend.port_name = value

    @property
    def baud_rate(self) -> int:
        return self._backend.baud_rate

    @baud_rate.setter
    def baud_rate(self, value: int) -> None:
        self._backend.baud_rate = value

    @property
    def parity(self) -> Parity:
        return self._backend.parity

    @parity.setter
    def parity(self, value: Parity) -> None:
        self._backend.parity = value

    @property
    def data_bits(self) -> DataBits:
        return self._backend.data_bits

    @data_bits.setter
    def data_bits(self, value: DataBits) -> None:
        self._backend.data_bits = value

    @property
    def stop_bits(self) -> StopBits:
        return self._backend.stop_bits

    @stop_bits.setter
    def stop_bits(self, value: StopBits) -> None:
        self._backend.stop_bits = value

    @property
    def flow_control(self) -> FlowControl:
        return self._backend.flow_control

    @flow_control.setter
    def flow_control(self, value: FlowControl) -> None:
        self._backend.flow_control = value

    @property
    def read_buffer_size(self) -> int:
        return self._backend.read_buffer_size

    @read_buffer_size.setter
    def read_buffer_size(self, value: int) -> None:
        self._backend.read_buffer_size = value

    @property
    def operate_mode(self) -> OperateMode:
        return self._backend.operate_mode

    @operate_mode.setter
    def operate_mode(self, value: OperateMode) -> None:
        self._backend.operate_mode = value

    @property
    def read_interval_timeout_ms(self) -> int:
        return self._backend.read_interval_timeout_ms

    @read_interval_timeout_ms.setter
    def read_interval_timeout_ms(self, value: int) -> None:
        self._backend.read_interval_timeout_ms = value

    @property
    def min_byte_read_notify(self) -> int:
        return self._backend.min_byte_read_notify

    @min_byte_read_notify.setter
    def min_byte_read_notify(self, value: int) -> None:
        self._backend.min_byte_read_notify = value

    def __enter__(self) -> "SerialPort":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()