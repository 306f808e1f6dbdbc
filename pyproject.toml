[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "serialcomm"
version = "0.1.0"
description = "Serial port access on POSIX systems with a buffered background reader and port discovery"
requires-python = ">=3.10"
dependencies = []
keywords = ["serial", "uart", "tty", "termios", "rs232", "com port"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Operating System :: POSIX :: Linux",
    "Operating System :: MacOS",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Terminals :: Serial",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["serialcomm"]

[tool.pytest.ini_options]
addopts = "-ra"
