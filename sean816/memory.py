"""Main memory with a memory-mapped I/O window at the bottom of the address space."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

MEMORY_SIZE = 0x6000
IO_REGION_SIZE = 0x00FF

Reader = Callable[[int], int]
Writer = Callable[[int, int], None]


@dataclass(frozen=True)
class _IoMapping:
    reader: Reader
    writer: Writer


class Memory:
    """Byte-addressed memory of MEMORY_SIZE bytes.

    Addresses below IO_REGION_SIZE may be bound to device callbacks; reads and
    writes through :meth:`read` and :meth:`write` then go to the device instead
    of the backing store.  ``data`` is the raw backing store.
    """

    def __init__(self) -> None:
        self.data = bytearray(MEMORY_SIZE)
        self._io: dict[int, _IoMapping] = {}

    def read(self, addr: int) -> int:
        """Return the byte at ``addr``; addresses outside memory read as 0."""
        addr &= 0xFFFF
        mapping = self._io.get(addr)
        if mapping is not None:
            return mapping.reader(addr) & 0xFF
        if addr < MEMORY_SIZE:
            return self.data[addr]
        return 0x00

    def write(self, addr: int, value: int) -> None:
        """Store ``value`` at ``addr``; writes outside memory are dropped."""
        addr &= 0xFFFF
        value &= 0xFF
        mapping = self._io.get(addr)
        if mapping is not None:
            mapping.writer(addr, value)
        elif addr < MEMORY_SIZE:
            self.data[addr] = value

    def map_io(self, addr: int, reader: Reader, writer: Writer) -> None:
        """Bind ``addr`` in the I/O window to a device's read and write callbacks."""
        if not 0 <= addr < IO_REGION_SIZE:
            raise ValueError(
                f"address {addr:#06x} is outside the I/O region (below {IO_REGION_SIZE:#06x})"
            )
        self._io[addr] = _IoMapping(reader, writer)

    def is_mapped(self, addr: int) -> bool:
        """Tell whether ``addr`` is bound to a device."""
        return (addr & 0xFFFF) in self._io