"""Executable image format and the loader that places images in memory."""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass, replace
from typing import ClassVar

from .cpu import Core
from .memory import IO_REGION_SIZE, MEMORY_SIZE, Memory

HEADER_MAGIC = 0xF27F
_HEADER = struct.Struct("<4H")
_WORD = struct.Struct("<H")


class RomError(Exception):
    """Raised when an executable image cannot be loaded."""


@dataclass(frozen=True)
class RomHeader:
    """The fixed header at the start of every executable image."""

    magic: int
    code_offset: int
    entry_offset: int
    reloc_count: int

    SIZE: ClassVar[int] = _HEADER.size

    def pack(self) -> bytes:
        """Encode the header as little-endian 16-bit words."""
        return _HEADER.pack(self.magic, self.code_offset, self.entry_offset, self.reloc_count)

    @classmethod
    def unpack(cls, data: bytes) -> RomHeader:
        """Decode a header from the start of ``data``."""
        if len(data) < cls.SIZE:
            raise RomError(f"image of {len(data)} bytes is too short for a header")
        return cls(*_HEADER.unpack_from(data))


class Loader:
    """Loads images one after another into memory above the I/O region."""

    def __init__(self, memory: Memory) -> None:
        self.memory = memory
        self.offset = IO_REGION_SIZE

    def _word(self, addr: int) -> int:
        if addr + _WORD.size > len(self.memory.data):
            raise RomError(f"relocation at {addr:#06x} lies outside memory")
        return _WORD.unpack_from(self.memory.data, addr)[0]

    def _put_word(self, addr: int, value: int) -> None:
        if addr + _WORD.size > len(self.memory.data):
            raise RomError(f"relocation at {addr:#06x} lies outside memory")
        _WORD.pack_into(self.memory.data, addr, value & 0xFFFF)

    def load(self, data: bytes) -> int:
        """Copy ``data`` into memory, relocate it and return its entry address."""
        base = self.offset
        if len(data) + base > MEMORY_SIZE:
            raise RomError("not enough memory available to load binary")
        mem = self.memory.data
        mem[base:base + len(data)] = data
        header = RomHeader.unpack(data)
        if header.magic != HEADER_MAGIC:
            raise RomError("binary is not a valid Sean816 binary")
        code = (header.code_offset + base) & 0xFFFF
        entry = (header.entry_offset + base) & 0xFFFF
        mem[base:base + RomHeader.SIZE] = replace(
            header, code_offset=code, entry_offset=entry
        ).pack()
        self.offset = base + len(data)

        table = base + RomHeader.SIZE
        for index in range(header.reloc_count):
            target = (code + self._word(table + _WORD.size * index)) & 0xFFFF
            self._put_word(target, self._word(target) + code)
        return entry

    def run(self, data: bytes) -> Core:
        """Load ``data`` and execute it on a fresh core until it halts."""
        entry = self.load(data)
        core = Core(self.memory)
        core.pc = entry
        core.run()
        return core


def run_file(path: str | os.PathLike[str], memory: Memory | None = None) -> Core:
    """Load and run the executable at ``path``; return the halted core."""
    try:
        with open(path, "rb") as handle:
            data = handle.read()
    except OSError as exc:
        raise RomError(f"couldn't open binary at {os.fspath(path)}") from exc
    return Loader(memory if memory is not None else Memory()).run(data)