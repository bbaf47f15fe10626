import pytest

from sean816.cpu import SP_HIGH, SP_LOW, Core, Opcode
from sean816.memory import IO_REGION_SIZE, MEMORY_SIZE, Memory

R0 = 0x20
R1 = 0x40
R2 = 0x80
A, B = 0x00, 0x01


def make_core(*program):
    memory = Memory()
    memory.data[IO_REGION_SIZE:IO_REGION_SIZE + len(program)] = bytes(program)
    return Core(memory), memory


def test_initial_state():
    core, _ = make_core()
    assert core.pc == IO_REGION_SIZE
    assert core.sp == MEMORY_SIZE
    assert all(core.get_register(i) == 0 for i in range(0x1B))


def test_halt_stops():
    core, _ = make_core(Opcode.HLT)
    assert core.step() is False


def test_opcode_0x1f_halts():
    core, _ = make_core(0x1F)
    assert core.step() is False


def test_mov_immediate_to_register():
    core, _ = make_core(Opcode.MOV | R0, A, 7, Opcode.HLT)
    core.run()
    assert core.a == 7


def test_mov_register_to_register():
    core, _ = make_core(Opcode.MOV | R0 | R1, A, B, Opcode.HLT)
    core.b = 0x33
    core.run()
    assert core.a == 0x33


def test_immediate_destination_writes_code_byte():
    core, memory = make_core(Opcode.MOV | R1, 0x00, A, Opcode.HLT)
    core.a = 0x5C
    core.run()
    assert memory.data[IO_REGION_SIZE + 1] == 0x5C


def test_add_wraps_and_sub_restores():
    core, _ = make_core(
        Opcode.ADD | R0 | R1, A, B,
        Opcode.SUB | R0 | R1, A, B,
        Opcode.HLT,
    )
    core.a, core.b = 200, 100
    core.step()
    assert core.a == 44
    core.run()
    assert core.a == 200


def test_mul_then_div_round_trip():
    core, _ = make_core(
        Opcode.MUL | R0 | R1, A, B,
        Opcode.DIV | R0 | R1, A, B,
        Opcode.HLT,
    )
    core.a, core.b = 6, 7
    core.run()
    assert core.a == 6


def test_div_by_zero_raises():
    core, _ = make_core(Opcode.DIV | R0 | R1, A, B, Opcode.HLT)
    core.a = 5
    with pytest.raises(ZeroDivisionError):
        core.run()


def test_inc_dec_wrap():
    core, _ = make_core(Opcode.DEC | R0, A, Opcode.INC | R0, A, Opcode.HLT)
    core.step()
    assert core.a == 0xFF
    core.run()
    assert core.a == 0


def test_not_twice_restores_and_xor_self_clears():
    core, _ = make_core(
        Opcode.NOT | R0, A,
        Opcode.NOT | R0, A,
        Opcode.XOR | R0 | R1, B, B,
        Opcode.HLT,
    )
    core.a, core.b = 0x5A, 0x77
    core.step()
    assert core.a != 0x5A
    core.run()
    assert core.a == 0x5A
    assert core.b == 0


def test_and_or():
    core, _ = make_core(
        Opcode.AND | R0 | R1, A, B,
        Opcode.OR | R0 | R1, B, A,
        Opcode.HLT,
    )
    core.a, core.b = 0xF0, 0x3C
    core.run()
    assert core.a == 0xF0 & 0x3C
    assert core.b == 0x3C | core.a


@pytest.mark.parametrize("left, right, expected", [(5, 5, 0), (9, 3, 1), (3, 9, 2)])
def test_cmp(left, right, expected):
    core, _ = make_core(Opcode.CMP | R0 | R1, A, B, Opcode.HLT)
    core.a, core.b = left, right
    core.run()
    assert core.cmp == expected


def test_jmp_little_endian_target():
    core, _ = make_core(Opcode.JMP, 0x34, 0x12)
    core.step()
    assert core.pc == 0x1234


def test_je_taken_when_equal():
    core, _ = make_core(Opcode.JE, 0x00, 0x02)
    core.step()
    assert core.pc == 0x0200


def test_jne_not_taken_skips_operands():
    core, _ = make_core(Opcode.JNE, 0x00, 0x02)
    core.step()
    assert core.pc == IO_REGION_SIZE + 1 + 2


@pytest.mark.parametrize("opcode, cmp", [(Opcode.JG, 1), (Opcode.JL, 2)])
def test_jg_jl_taken(opcode, cmp):
    core, _ = make_core(opcode, 0x00, 0x03)
    core.cmp = cmp
    core.step()
    assert core.pc == 0x0300


def test_push_pop():
    core, memory = make_core(Opcode.PUSH | R0, A, Opcode.POP | R0, B, Opcode.HLT)
    core.a = 0x42
    core.step()
    assert core.sp == MEMORY_SIZE - 1
    assert memory.data[core.sp] == 0x42
    core.run()
    assert core.b == 0x42
    assert core.sp == MEMORY_SIZE


def test_call_and_ret():
    core, memory = make_core(
        Opcode.MOV | R0, A, 3,
        Opcode.CALL, 0x00, 0x02,
        Opcode.HLT,
    )
    memory.data[0x200:0x207] = bytes(
        [Opcode.MOV | R0, A, 9, Opcode.MOV | R0, B, 4, Opcode.RET]
    )
    core.step()
    core.step()
    assert core.pc == 0x0200
    assert core.bp == core.sp
    assert core.sp < MEMORY_SIZE
    core.run()
    assert core.a == 3
    assert core.b == 0
    assert core.ra == 9
    assert core.rb == 4
    assert core.sp == MEMORY_SIZE
    assert core.bp == 0
    assert memory.data[core.pc - 1] == Opcode.HLT


def test_callne_not_taken():
    core, _ = make_core(Opcode.CALLNE, 0x00, 0x02)
    core.step()
    assert core.sp == MEMORY_SIZE
    assert core.pc == IO_REGION_SIZE + 1 + 2


def test_calle_taken():
    core, _ = make_core(Opcode.CALLE, 0x00, 0x02)
    core.step()
    assert core.pc == 0x0200
    assert core.sp < MEMORY_SIZE


def test_load_from_memory():
    core, memory = make_core(Opcode.LOAD | R0, A, 0x00, 0x30, Opcode.HLT)
    memory.data[0x3000] = 0x5A
    core.run()
    assert core.a == 0x5A


def test_load_and_store_through_io():
    written = []
    core, memory = make_core(
        Opcode.LOAD | R0, A, 0xC0, 0x00,
        Opcode.STORE | R0, B, 0xC0, 0x00,
        Opcode.HLT,
    )
    memory.map_io(0xC0, lambda addr: 0x41, lambda addr, value: written.append((addr, value)))
    core.b = 0x21
    core.run()
    assert core.a == 0x41
    assert written == [(0xC0, 0x21)]


def test_mhml_loadlh_storelh():
    core, memory = make_core(
        Opcode.MHML, 0x10, 0x30,
        Opcode.LOADLH | R0, B,
        Opcode.STORELH | R0, A,
        Opcode.HLT,
    )
    memory.data[0x3010] = 0x66
    core.a = 0x77
    core.step()
    assert (core.ml, core.mh) == (0x10, 0x30)
    core.step()
    assert core.b == 0x66
    core.run()
    assert memory.data[0x3010] == 0x77


def test_stack_pointer_bytes_as_registers():
    core, _ = make_core()
    core.sp = 0x1234
    assert core.get_register(SP_HIGH) == 0x12
    assert core.get_register(SP_LOW) == 0x34
    core.set_register(SP_LOW, 0x99)
    assert core.sp == 0x1299
    core.set_register(SP_HIGH, 0x05)
    assert core.sp == 0x0599


@pytest.mark.parametrize(
    "index, name", [(0x08, "ra"), (0x10, "ga"), (0x18, "ml"), (0x19, "mh"), (0x1A, "cmp")]
)
def test_register_index_mapping(index, name):
    core, _ = make_core()
    core.set_register(index, 0x2B)
    assert getattr(core, name) == 0x2B
    assert core.get_register(index) == 0x2B


def test_unknown_register_index_aliases_accumulator():
    core, _ = make_core()
    core.set_register(0x40, 12)
    assert core.a == 12
    assert core.get_register(0xFE) == 12


def test_set_register_truncates_to_byte():
    core, _ = make_core()
    core.set_register(0x02, 0x1AB)
    assert core.c == 0xAB