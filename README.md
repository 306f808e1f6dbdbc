# serialcomm

`serialcomm` opens and configures serial ports on POSIX systems through
termios. It also lists the serial ports that are present on the machine.
It has no third-party dependencies.

## Modules

- `serialcomm.base`: the setting enums (`Parity`, `DataBits`, `StopBits`,
  `FlowControl`, `OperateMode`), `ErrorCode`, `SerialPortError`,
  `ReadListener` and `SerialPortBase`, the state that every port shares.
- `serialcomm.unix`: `UnixSerialPort`, the termios backend, together with
  `rate_to_constant()` and `apply_settings()`.
- `serialcomm.port`: `SerialPort`, the handle that applications use, and
  `get_version()`.
- `serialcomm.portinfo`: `PortInfo`, `available_port_infos()`,
  `list_linux_ports()` and `get_driver()`.

## Finding ports

```python
from serialcomm.portinfo import available_port_infos

for info in available_port_infos():
    print(info.port_name)
```

The result depends on the platform:

- **Linux.** Every entry in `/sys/class/tty` whose `device/driver` link
  names a driver is reported as `/dev/<name>`. A `serial8250` device is
  reported only if it can be opened and the `TIOCGSERIAL` ioctl reports a
  known UART type. Entries in `/dev/pts` follow, except `ptmx`.
- **macOS.** The sorted `/dev/cu.*` devices are reported.
- **Other platforms.** An empty list is returned.

`PortInfo` has `port_name`, `description` and `hardware_id` fields.
Discovery fills in only `port_name`; the other two are empty strings.

`list_linux_ports(sys_dir, pts_dir)` takes the two directories as
arguments. `get_driver(tty_dir)` returns the driver name for one sysfs tty
directory, or `""` if there is none.

## Opening a port

```python
from serialcomm.base import DataBits, FlowControl, Parity, StopBits
from serialcomm.port import SerialPort

port = SerialPort()
port.init(
    "/dev/ttyUSB0",
    115200,
    Parity.NONE,
    DataBits.EIGHT,
    StopBits.ONE,
    FlowControl.NONE,
    4096,
)

with port:
    port.write(b"hello\r\n")
```

Every argument of `init()` after the port name is optional. The defaults
are 9600 baud, no parity, 8 data bits, 1 stop bit, no flow control and a
read buffer of 4096 bytes. Each setting can also be assigned as a property
before `open()`: `port_name`, `baud_rate`, `parity`, `data_bits`,
`stop_bits`, `flow_control`, `read_buffer_size` and `operate_mode`.

`open()` opens the device and configures it for raw I/O. Entering a `with`
block calls `open()`, and leaving it calls `close()`.

Baud rates with a standard termios constant are set directly. On Linux,
any other rate is set through the `termios2` ioctls. On other systems, a
rate without a constant fails. Some settings are always rejected:
1.5 stop bits and `Parity.MARK`.

## Errors

Failures raise `SerialPortError`. Its `code` attribute is an `ErrorCode`,
which is also kept in the port's `last_error` until `clear_error()` is
called:

- `OPEN`: the device could not be opened.
- `INVALID_PARAMETER`: a line setting could not be applied.
- `SYSTEM`: a system call failed while the device was being set up, or
  DTR/RTS could not be changed.
- `NOT_OPEN`: a read, write or flush was attempted on a closed port.
- `READ` and `WRITE`: I/O on the device failed.

## Receiving data

In asynchronous mode (`OperateMode.ASYNCHRONOUS`, the default), `open()`
starts a background thread. This thread moves incoming bytes into a bounded
read buffer; bytes that do not fit into it are dropped.

Whenever at least `min_byte_read_notify` bytes have been read, the
connected listener's `on_read_event(port_name, read_len)` is called, with
the number of bytes in the buffer. On a `SerialPort`,
`read_interval_timeout_ms` is 0, so the listener is called at once. If you
set it to a positive value, the call is delayed by that many milliseconds,
and each new arrival restarts the delay. A burst of data then produces one
notification.

```python
from serialcomm.base import ReadListener

def show(port_name, read_len):
    print(port_name, port.read(read_len))

port.connect_read_event(ReadListener(show))
port.open()
```

You can also subclass `ReadListener` and override `on_read_event`.
`disconnect_read_event()` removes the listener.

In synchronous mode (`OperateMode.SYNCHRONOUS`), no thread is started, and
reads go straight to the device.

The reading methods are:

- `read(size)`: returns up to `size` bytes.
- `read_all()`: returns every byte that is ready.
- `read_line(size)`: returns up to `size` bytes, stopping after the first
  `\n`.
- `read_buffer_used_len()`: reports how many bytes are ready. This is the
  buffer's fill in asynchronous mode, and the device's input queue in
  synchronous mode.

## Flushing and control lines

- `flush_buffers()` waits until all output has been sent.
- `flush_read_buffers()` discards input that the device has received but
  that has not been read.
- `flush_write_buffers()` discards output that has not been sent.

`set_dtr(value)` and `set_rts(value)` raise or lower the modem control
lines. On a closed port they do nothing.

## Version

`serialcomm.port.get_version()` returns a version string for the library.

## Limitations

- Only POSIX systems with `termios` are supported. There is no Windows
  backend.
- No command-line tool is included; the package is a library.
- Port discovery does not report descriptions or hardware ids.