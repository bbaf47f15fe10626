"""Emulator, assembler and devices for the Sean816 8-bit CPU."""

__version__ = "0.1.0"