"""Serial port access over termios, with a buffered reader and port discovery."""

__version__ = "0.1.0"
__all__ = ["base", "unix", "portinfo", "port"]