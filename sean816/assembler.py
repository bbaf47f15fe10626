"""Two-pass assembler producing relocatable executable images."""

from __future__ import annotations

import os
import re
import struct
import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .cpu import REGISTER_NAMES, Opcode
from .rom import HEADER_MAGIC, RomHeader
from .tokenizer import MAX_WORDS, read_file, read_source

USAGE = "Usage: sean816-asm <input file> <output file>"

_REGISTERS: dict[str, int] = {name: index for index, name in enumerate(REGISTER_NAMES)}
_REGISTERS.update({"spl": 0x1B, "sph": 0x1C})

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")
_HEX_PREFIX = re.compile(r"0[xX]([0-9a-fA-F]+)")
_WORD = struct.Struct("<H")
_MAX_IMAGE = 0xFFFF
_SIGNATURE_SHIFTS = (5, 6, 7)


@dataclass(frozen=True)
class _Mnemonic:
    min_params: int
    max_params: int
    opcode: int | None


_MNEMONICS: dict[str, _Mnemonic] = {
    "halt": _Mnemonic(0, 0, Opcode.HLT),
    "load": _Mnemonic(3, 3, Opcode.LOAD),
    "store": _Mnemonic(3, 3, Opcode.STORE),
    "mhml": _Mnemonic(2, 2, Opcode.MHML),
    "loadlh": _Mnemonic(1, 1, Opcode.LOADLH),
    "llh": _Mnemonic(1, 1, Opcode.LOADLH),
    "storelh": _Mnemonic(1, 1, Opcode.STORELH),
    "slh": _Mnemonic(1, 1, Opcode.STORELH),
    "mov": _Mnemonic(2, 2, Opcode.MOV),
    "add": _Mnemonic(2, 2, Opcode.ADD),
    "sub": _Mnemonic(2, 2, Opcode.SUB),
    "mul": _Mnemonic(2, 2, Opcode.MUL),
    "div": _Mnemonic(2, 2, Opcode.DIV),
    "inc": _Mnemonic(1, 1, Opcode.INC),
    "dec": _Mnemonic(1, 1, Opcode.DEC),
    "jmp": _Mnemonic(2, 2, Opcode.JMP),
    "cmp": _Mnemonic(2, 2, Opcode.CMP),
    "je": _Mnemonic(2, 2, Opcode.JE),
    "jne": _Mnemonic(2, 2, Opcode.JNE),
    "jg": _Mnemonic(2, 2, Opcode.JG),
    "jl": _Mnemonic(2, 2, Opcode.JL),
    "push": _Mnemonic(1, 1, Opcode.PUSH),
    "pop": _Mnemonic(1, 1, Opcode.POP),
    "call": _Mnemonic(2, 2, Opcode.CALL),
    "calle": _Mnemonic(2, 2, Opcode.CALLE),
    "callne": _Mnemonic(2, 2, Opcode.CALLNE),
    "callg": _Mnemonic(2, 2, Opcode.CALLG),
    "calll": _Mnemonic(2, 2, Opcode.CALLL),
    "ret": _Mnemonic(0, 0, Opcode.RET),
    "and": _Mnemonic(2, 2, Opcode.AND),
    "or": _Mnemonic(2, 2, Opcode.OR),
    "xor": _Mnemonic(2, 2, Opcode.XOR),
    "not": _Mnemonic(1, 1, Opcode.NOT),
    "str": _Mnemonic(1, 1, None),
}


class AssemblyError(Exception):
    """Raised when source cannot be assembled; ``line`` is 1-based when known."""

    def __init__(self, message: str, line: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line

    def __str__(self) -> str:
        if self.line is None:
            return f"Error: {self.message}"
        return f"Error:{self.line}: {self.message}"


def _is_hex16(word: str) -> bool:
    return (
        len(word) == 6
        and word.startswith("0x")
        and all(ch in _HEX_DIGITS for ch in word[2:])
    )


def _is_number(word: str) -> bool:
    return bool(word) and all(ch in "0123456789" for ch in word)


def _hex_value(word: str) -> int:
    match = _HEX_PREFIX.match(word)
    return int(match.group(1), 16) if match else 0


def _label_name(word: str) -> str | None:
    """Return the label a word defines, or None if it is not a label."""
    if word.endswith(":"):
        return word[:-1]
    return None


def _word(lines: Sequence[Sequence[str]], row: int, col: int) -> str | None:
    if row >= len(lines) or col >= len(lines[row]):
        return None
    return lines[row][col]


def _layout(lines: Sequence[Sequence[str]]) -> tuple[dict[str, int], int | None]:
    """First pass: find the code offset of every label and of ``main``."""
    labels: dict[str, int] = {}
    main_offset: int | None = None
    offset = 0
    row = 0
    while row < len(lines):
        if _word(lines, row, 0) is not None:
            for col in range(MAX_WORDS):
                word = _word(lines, row, col)
                if word is None or word == ";":
                    break
                if _is_hex16(word):
                    offset += 1
                name = _label_name(word)
                if name is not None:
                    if main_offset is None and name == "main":
                        main_offset = offset
                    labels.setdefault(name, offset)
                    # The label shares its slot with the first word of the next line.
                    row += 1
                    if _word(lines, row, 0) == "str":
                        text = _word(lines, row, 1)
                        if text is not None:
                            offset += len(text.encode("utf-8")) - 1
                elif word.startswith("*"):
                    offset += 1
                offset += 1
        row += 1
    return labels, main_offset


def _check_count(words: Sequence[str], spec: _Mnemonic, line: int) -> None:
    count = 0
    for word in words[1:MAX_WORDS]:
        if word.startswith(";"):
            break
        count += 2 if _is_hex16(word) or word.startswith("*") else 1
    if not spec.min_params <= count <= spec.max_params:
        if spec.min_params != spec.max_params:
            expected = f"{spec.min_params} to {spec.max_params}"
        else:
            expected = f"{spec.min_params}"
        raise AssemblyError(f"Expected {expected} parameters, but got {count}", line)


def _emit_line(
    words: Sequence[str],
    line: int,
    labels: dict[str, int],
    code: bytearray,
    relocs: list[int],
) -> None:
    mnemonic = words[0]
    spec = _MNEMONICS.get(mnemonic)
    if spec is None:
        raise AssemblyError(f"No such operation: {mnemonic}", line)
    _check_count(words, spec, line)

    opcode_at: int | None = None
    if spec.opcode is not None:
        opcode_at = len(code)
        code.append(spec.opcode)

    signature = [False] * 6
    slot = 0
    for operand in words[1:4]:
        if operand.startswith(";"):
            break
        signature[slot] = True
        if operand in _REGISTERS:
            code.append(_REGISTERS[operand])
        elif operand.startswith(("0x", "0X")):
            digits = len(operand) - 2
            value = _hex_value(operand)
            if digits == 2:
                code.append(value & 0xFF)
                signature[slot] = False
            elif digits == 4:
                code += _WORD.pack(value & 0xFFFF)
                signature[slot] = False
                slot += 1
                signature[slot] = False
            else:
                raise AssemblyError(f"Invalid hex format (too large) for {operand}", line)
        elif _is_number(operand):
            code.append(int(operand) & 0xFF)
            signature[slot] = False
        elif mnemonic == "str":
            code += operand.encode("utf-8") + b"\0"
        elif operand.startswith("*") and operand[1:] in labels:
            relocs.append(len(code))
            code += _WORD.pack(labels[operand[1:]] & 0xFFFF)
            signature[slot] = False
            slot += 1
            signature[slot] = False
        else:
            raise AssemblyError(f"Unknown parameter type for {operand}", line)
        slot += 1

    if opcode_at is not None:
        for flag, shift in zip(signature, _SIGNATURE_SHIFTS):
            code[opcode_at] |= int(flag) << shift


def _emit(lines: Sequence[Sequence[str]], labels: dict[str, int]) -> tuple[bytearray, list[int]]:
    """Second pass: encode every instruction and collect relocation offsets."""
    code = bytearray()
    relocs: list[int] = []
    row = 0
    while row < len(lines):
        first = _word(lines, row, 0)
        if first is None or first.startswith(";"):
            row += 1
            continue
        if _label_name(first) is not None:
            row += 1
            if _word(lines, row, 0) is None:
                row += 2
                continue
        _emit_line(lines[row], row + 1, labels, code, relocs)
        row += 1
    return code, relocs


def assemble(lines: Iterable[Sequence[str]]) -> bytes:
    """Assemble tokenized source lines into an executable image."""
    rows = [list(words)[:MAX_WORDS] for words in lines]
    labels, main_offset = _layout(rows)
    code, relocs = _emit(rows, labels)
    if main_offset is None:
        raise AssemblyError('"main" symbol not found!')

    code_offset = RomHeader.SIZE + _WORD.size * len(relocs)
    if code_offset + len(code) > _MAX_IMAGE:
        raise AssemblyError("program is too large")
    header = RomHeader(
        magic=HEADER_MAGIC,
        code_offset=code_offset,
        entry_offset=(code_offset + main_offset) & 0xFFFF,
        reloc_count=len(relocs),
    )
    table = b"".join(_WORD.pack(offset & 0xFFFF) for offset in relocs)
    return header.pack() + table + bytes(code)


def assemble_source(text: str) -> bytes:
    """Tokenize and assemble source text."""
    return assemble(read_source(text))


def main(argv: Sequence[str] | None = None) -> int:
    """Assemble an input file into an output image; return the exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        print(USAGE)
        return 1
    source, target = args[0], args[1]

    try:
        lines = read_file(source)
    except OSError:
        print("Error: Could not open file.")
        lines = []

    try:
        image = assemble(lines)
    except AssemblyError as exc:
        print(exc)
        return 1

    try:
        os.remove(target)
    except OSError:
        pass
    try:
        fd = os.open(target, os.O_WRONLY | os.O_TRUNC | os.O_CREAT, 0o755)
    except OSError:
        print("Error: Failed to open binary file")
        return 1
    with os.fdopen(fd, "wb") as handle:
        handle.write(image)
    return 0


if __name__ == "__main__":
    sys.exit(main())