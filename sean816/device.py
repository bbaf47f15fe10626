"""Memory-mapped devices and the logic that attaches them to memory."""

from __future__ import annotations

import os
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO, ClassVar

from .memory import IO_REGION_SIZE, Memory

ERASE_SEQUENCE = b"\b \b"
DELETE = 0x7F


class Device(ABC):
    """A device answering reads and writes at the addresses in ``offsets``."""

    offsets: ClassVar[tuple[int, ...]] = ()

    @abstractmethod
    def read(self, addr: int) -> int:
        """Return the byte the device presents at ``addr``."""

    @abstractmethod
    def write(self, addr: int, value: int) -> None:
        """Hand ``value`` written at ``addr`` to the device."""

    def init(self) -> None:
        """Prepare the device once it has been attached."""


class SerialDevice(Device):
    """A console: reads take bytes from stdin, writes go to stdout."""

    offsets = (0x00C0,)

    def __init__(self, stdin: BinaryIO | None = None, stdout: BinaryIO | None = None) -> None:
        self.stdin = stdin if stdin is not None else getattr(sys.stdin, "buffer", sys.stdin)
        self.stdout = stdout if stdout is not None else getattr(sys.stdout, "buffer", sys.stdout)

    def read(self, addr: int) -> int:
        data = self.stdin.read(1)
        return data[0] if data else 0

    def write(self, addr: int, value: int) -> None:
        if value == DELETE:
            self.stdout.write(ERASE_SEQUENCE)
        else:
            self.stdout.write(bytes([value & 0xFF]))
        self.stdout.flush()

    def init(self) -> None:
        """Switch an interactive terminal to unbuffered input without echo."""
        try:
            fd = self.stdin.fileno()
        except (AttributeError, OSError, ValueError):
            return
        if not os.isatty(fd):
            return
        try:
            import termios
        except ImportError:
            return
        attrs = termios.tcgetattr(fd)
        attrs[3] &= ~(termios.ICANON | termios.ECHO)
        termios.tcsetattr(fd, termios.TCSANOW, attrs)


class TemplateDevice(Device):
    """A one-byte latch: reads return the last byte written."""

    offsets = (0x0001,)

    def __init__(self) -> None:
        self.value = 0

    def read(self, addr: int) -> int:
        return self.value

    def write(self, addr: int, value: int) -> None:
        self.value = value & 0xFF

    def init(self) -> None:
        self.value = 27


def load_device(memory: Memory, device: Device) -> None:
    """Map ``device`` at its offsets and initialise it.

    Mapping stops, and the device is left uninitialised, at the first offset
    that falls outside the I/O region.
    """
    for addr in device.offsets:
        if addr >= IO_REGION_SIZE:
            return
        memory.map_io(addr, device.read, device.write)
    device.init()


_DEVICES: dict[str, type[Device]] = {
    "serial": SerialDevice,
    "template": TemplateDevice,
    "templatedevice": TemplateDevice,
}


def get_device(name: str) -> Device:
    """Create the device called ``name`` (a name or a path ending in one)."""
    key = Path(name).stem.lower()
    try:
        factory = _DEVICES[key]
    except KeyError:
        raise ValueError(f"unknown device: {name}") from None
    return factory()