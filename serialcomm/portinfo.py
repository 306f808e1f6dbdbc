"""Discovery of the serial ports present on this machine."""

from __future__ import annotations

import fcntl
import glob
import os
import struct
import sys
import termios
from dataclasses import dataclass
from typing import List, Tuple

_SYS_TTY_DIR = "/sys/class/tty"
_PTS_DIR = "/dev/pts"

_TIOCGSERIAL = getattr(termios, "TIOCGSERIAL", 0x541E)
_PORT_UNKNOWN = 0
# Large enough for struct serial_struct on every Linux ABI.
_SERIAL_STRUCT_SIZE = 128


@dataclass(frozen=True)
class PortInfo:
    """A serial port found on the system."""

    port_name: str
    description: str = ""
    hardware_id: str = ""


def get_driver(tty_dir: str) -> str:
    """Return the name of the driver behind a sysfs tty directory, or "" if it has none."""
    device_dir = os.path.join(tty_dir, "device")
    if not os.path.islink(device_dir):
        return ""
    try:
        target = os.readlink(os.path.join(device_dir, "driver"))
    except OSError:
        return ""
    return os.path.basename(target.rstrip("/"))


def _register(tty_dir: str, ports: List[str], serial8250: List[str]) -> None:
    driver = get_driver(tty_dir)
    if not driver:
        return
    dev_file = "/dev/" + os.path.basename(tty_dir.rstrip("/"))
    if driver == "serial8250":
        serial8250.append(dev_file)
    else:
        ports.append(dev_file)


def _is_real_8250(dev_file: str) -> bool:
    """Open a serial8250 device and check that the UART behind it is known."""
    try:
        fd = os.open(dev_file, os.O_RDWR | os.O_NONBLOCK | os.O_NOCTTY)
    except OSError:
        return False
    try:
        raw = fcntl.ioctl(fd, _TIOCGSERIAL, bytes(_SERIAL_STRUCT_SIZE))
    except OSError:
        return False
    finally:
        os.close(fd)
    (port_type,) = struct.unpack_from("i", raw)
    return port_type != _PORT_UNKNOWN


def _entries(directory: str) -> Tuple[str, ...]:
    try:
        names = os.listdir(directory)
    except OSError:
        return ()
    return tuple(reversed(names))


def list_linux_ports(sys_dir: str = _SYS_TTY_DIR, pts_dir: str = _PTS_DIR) -> List[str]:
    """List serial device paths from a sysfs tty directory and a pseudo-terminal directory.

    Devices with a driver are reported; serial8250 devices only when probing
    shows a real UART. Pseudo terminals follow, except ``ptmx``.
    """
    ports: List[str] = []
    serial8250: List[str] = []
    for name in _entries(sys_dir):
        _register(os.path.join(sys_dir, name), ports, serial8250)

    ports.extend(dev for dev in serial8250 if _is_real_8250(dev))

    ports.extend(os.path.join(pts_dir, name) for name in _entries(pts_dir) if name != "ptmx")
    return ports


def available_port_infos() -> List[PortInfo]:
    """Return the serial ports available on this machine."""
    if sys.platform.startswith("linux"):
        return [PortInfo(name) for name in list_linux_ports()]
    if sys.platform == "darwin":
        return [PortInfo(name) for name in sorted(glob.glob("/dev/cu.*"))]
    return []