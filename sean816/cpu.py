"""The 8-bit CPU core: registers, instruction decoding and execution."""

from __future__ import annotations

import operator
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from functools import partial

from .memory import IO_REGION_SIZE, MEMORY_SIZE, Memory


class Opcode(IntEnum):
    """Instruction opcodes, held in the low five bits of an instruction byte."""

    HLT = 0x00

    LOAD = 0x01
    STORE = 0x02
    MHML = 0x03
    LOADLH = 0x04
    STORELH = 0x05
    MOV = 0x06

    ADD = 0x07
    SUB = 0x08
    MUL = 0x09
    DIV = 0x0A
    INC = 0x0B
    DEC = 0x0C

    JMP = 0x0D
    CMP = 0x0E
    JE = 0x0F
    JNE = 0x10
    JG = 0x11
    JL = 0x12

    PUSH = 0x13
    POP = 0x14
    CALL = 0x15
    CALLE = 0x16
    CALLNE = 0x17
    CALLG = 0x18
    CALLL = 0x19
    RET = 0x1A

    AND = 0x1B
    OR = 0x1C
    XOR = 0x1D
    NOT = 0x1E


# Register file in index order; 0x1B and 0x1C address the bytes of sp.
REGISTER_NAMES = (
    "a", "b", "c", "d", "e", "f", "g", "h",
    "ra", "rb", "rc", "rd", "re", "rf", "rg", "rh",
    "ga", "gb", "gc", "gd", "ge", "gf", "gg", "gh",
    "ml", "mh", "cmp",
)
SP_HIGH = 0x1B
SP_LOW = 0x1C

_GENERAL = ("a", "b", "c", "d", "e", "f", "g", "h")
_OPCODE_MASK = 0x1F
_SIGNATURE_BITS = (5, 6, 7)


@dataclass(frozen=True)
class _Operand:
    """An instruction operand: a register index or the address of an immediate byte."""

    register: bool
    location: int


class Core:
    """A single CPU core executing code from a :class:`Memory`."""

    def __init__(self, memory: Memory) -> None:
        self.memory = memory
        self.pc = IO_REGION_SIZE
        self.bp = 0
        self.sp = MEMORY_SIZE
        for name in REGISTER_NAMES:
            setattr(self, name, 0)
        self._signature: tuple[bool, bool, bool] = (False, False, False)
        self._handlers: dict[int, Callable[[], None]] = {
            Opcode.LOAD: self._load,
            Opcode.STORE: self._store,
            Opcode.MHML: self._mhml,
            Opcode.LOADLH: self._loadlh,
            Opcode.STORELH: self._storelh,
            Opcode.MOV: partial(self._binary, lambda _dst, src: src),
            Opcode.ADD: partial(self._binary, operator.add),
            Opcode.SUB: partial(self._binary, operator.sub),
            Opcode.MUL: partial(self._binary, operator.mul),
            Opcode.DIV: partial(self._binary, operator.floordiv),
            Opcode.INC: partial(self._unary, lambda value: value + 1),
            Opcode.DEC: partial(self._unary, lambda value: value - 1),
            Opcode.JMP: self._jump,
            Opcode.CMP: self._compare,
            Opcode.JE: partial(self._when, lambda cmp: cmp == 0, self._jump),
            Opcode.JNE: partial(self._when, lambda cmp: cmp != 0, self._jump),
            Opcode.JG: partial(self._when, lambda cmp: cmp == 1, self._jump),
            Opcode.JL: partial(self._when, lambda cmp: cmp == 2, self._jump),
            Opcode.PUSH: self._push_operand,
            Opcode.POP: self._pop_operand,
            Opcode.CALL: self._call,
            Opcode.CALLE: partial(self._when, lambda cmp: cmp == 0, self._call),
            Opcode.CALLNE: partial(self._when, lambda cmp: cmp != 0, self._call),
            Opcode.CALLG: partial(self._when, lambda cmp: cmp == 1, self._call),
            Opcode.CALLL: partial(self._when, lambda cmp: cmp == 2, self._call),
            Opcode.RET: self._ret,
            Opcode.AND: partial(self._binary, operator.and_),
            Opcode.OR: partial(self._binary, operator.or_),
            Opcode.XOR: partial(self._binary, operator.xor),
            Opcode.NOT: partial(self._unary, operator.invert),
        }

    # Registers

    @staticmethod
    def _register_name(index: int) -> str:
        # Indexes with no register of their own alias the accumulator.
        if 0 <= index < len(REGISTER_NAMES):
            return REGISTER_NAMES[index]
        return "a"

    def get_register(self, index: int) -> int:
        """Return the register with the given index."""
        if index == SP_HIGH:
            return (self.sp >> 8) & 0xFF
        if index == SP_LOW:
            return self.sp & 0xFF
        return getattr(self, self._register_name(index))

    def set_register(self, index: int, value: int) -> None:
        """Set the register with the given index to a byte value."""
        value &= 0xFF
        if index == SP_HIGH:
            self.sp = (value << 8) | (self.sp & 0xFF)
        elif index == SP_LOW:
            self.sp = (self.sp & 0xFF00) | value
        else:
            setattr(self, self._register_name(index), value)

    # Execution

    def step(self) -> bool:
        """Execute one instruction; return False once the core halts."""
        byte = self._fetch()
        self._signature = tuple(bool((byte >> bit) & 1) for bit in _SIGNATURE_BITS)
        handler = self._handlers.get(byte & _OPCODE_MASK)
        if handler is None:
            return False
        handler()
        return True

    def run(self) -> None:
        """Execute instructions until the core halts."""
        while self.step():
            pass

    # Raw memory access, as the core sees code and immediates

    def _peek(self, addr: int) -> int:
        return self.memory.data[addr] if addr < len(self.memory.data) else 0

    def _poke(self, addr: int, value: int) -> None:
        if addr < len(self.memory.data):
            self.memory.data[addr] = value & 0xFF

    def _fetch(self) -> int:
        byte = self._peek(self.pc)
        self.pc = (self.pc + 1) & 0xFFFF
        return byte

    def _operands(self, count: int) -> list[_Operand]:
        operands = []
        for is_register in self._signature[:count]:
            if is_register:
                operands.append(_Operand(True, self._fetch()))
            else:
                operands.append(_Operand(False, self.pc))
                self.pc = (self.pc + 1) & 0xFFFF
        return operands

    def _value(self, operand: _Operand) -> int:
        if operand.register:
            return self.get_register(operand.location)
        return self._peek(operand.location)

    def _assign(self, operand: _Operand, value: int) -> None:
        if operand.register:
            self.set_register(operand.location, value)
        else:
            self._poke(operand.location, value)

    def _address(self, low: _Operand, high: _Operand) -> int:
        return (self._value(high) << 8) | self._value(low)

    # Data

    def _load(self) -> None:
        target, low, high = self._operands(3)
        self._assign(target, self.memory.read(self._address(low, high)))

    def _store(self) -> None:
        source, low, high = self._operands(3)
        self.memory.write(self._address(low, high), self._value(source))

    def _mhml(self) -> None:
        low, high = self._operands(2)
        self.ml = self._value(low)
        self.mh = self._value(high)

    def _loadlh(self) -> None:
        (target,) = self._operands(1)
        self._assign(target, self.memory.read((self.mh << 8) | self.ml))

    def _storelh(self) -> None:
        (source,) = self._operands(1)
        self.memory.write((self.mh << 8) | self.ml, self._value(source))

    # Arithmetic and bit manipulation

    def _binary(self, func: Callable[[int, int], int]) -> None:
        target, source = self._operands(2)
        self._assign(target, func(self._value(target), self._value(source)))

    def _unary(self, func: Callable[[int], int]) -> None:
        (target,) = self._operands(1)
        self._assign(target, func(self._value(target)))

    # Flow control

    def _jump(self) -> None:
        low, high = self._operands(2)
        self.pc = self._address(low, high)

    def _compare(self) -> None:
        left, right = (self._value(op) for op in self._operands(2))
        if left == right:
            self.cmp = 0
        elif left > right:
            self.cmp = 1
        else:
            self.cmp = 2

    def _when(self, condition: Callable[[int], bool], action: Callable[[], None]) -> None:
        if condition(self.cmp):
            action()
        else:
            self.pc = (self.pc + 2) & 0xFFFF

    # Stack

    def _push(self, value: int) -> None:
        self.sp = (self.sp - 1) & 0xFFFF
        self.memory.write(self.sp, value)

    def _pop(self) -> int:
        addr = self.sp
        self.sp = (self.sp + 1) & 0xFFFF
        return self.memory.read(addr)

    def _push16(self, value: int) -> None:
        self._push(value & 0xFF)
        self._push((value >> 8) & 0xFF)

    def _pop16(self) -> int:
        high = self._pop()
        low = self._pop()
        return (high << 8) | low

    def _push_operand(self) -> None:
        (source,) = self._operands(1)
        self._push(self._value(source))

    def _pop_operand(self) -> None:
        (target,) = self._operands(1)
        self._assign(target, self._pop())

    def _call(self) -> None:
        low, high = self._operands(2)
        self._push16(self.bp)
        self._push16(self.pc)
        self._push(self.mh)
        self._push(self.ml)
        for name in _GENERAL:
            self._push(getattr(self, name))
        self.bp = self.sp
        self.pc = self._address(low, high)

    def _ret(self) -> None:
        for name in _GENERAL:
            setattr(self, "r" + name, getattr(self, name))
        self.sp = self.bp
        for name in reversed(_GENERAL):
            setattr(self, name, self._pop())
        self.ml = self._pop()
        self.mh = self._pop()
        self.pc = self._pop16()
        self.bp = self._pop16()