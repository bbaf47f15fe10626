# sean816

An emulator and an assembler for the Sean816, a small 8-bit CPU with
16-bit addressing, memory-mapped I/O and attachable devices.

The package provides two commands:

- `sean816-asm` turns assembly source into a Sean816 executable image.
- `sean816` loads an executable image into memory and runs it.

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Quick start

Write a program, `hello.asm`, that prints one character on the serial device:

```
main:
    mov a 0x48
    store a 0xC0 0x00
    halt
```

Assemble it and run it with the serial device attached:

```
sean816-asm hello.asm hello.bin
sean816 -device serial hello.bin
```

## The emulator

```
sean816 [-device <name>] <path/to/binary>
```

The last argument is the executable to run. `-device` may be given more than
once; each device is mapped into the I/O region of memory and initialised
before the program starts. A device is chosen by name, or by a path whose file
name (without extension) is that name, case ignored. The built-in devices are:

- `serial` – at address `0x00C0`, a read takes one byte from standard input
  (0 at end of input) and a write sends one byte to standard output. Writing
  `0x7F` sends backspace, space, backspace, erasing the last character. When
  standard input is a terminal, line buffering and echo are switched off.
- `template` (also `templatedevice`) – a single byte of storage at address
  `0x0001`, set to 27 when the device is initialised.

An unknown device name, a missing path after `-device`, or an executable that
cannot be opened or loaded prints an error and exits with status 1. The
program runs until it executes `halt` or any byte whose opcode has no
instruction.

### Machine layout

- Memory is `0x6000` bytes.
- Addresses `0x0000`–`0x00FE` form the memory-mapped I/O region; an address
  there that no device claims behaves as ordinary memory. Reads beyond the
  end of memory give 0 and writes there are dropped.
- Executables are loaded starting at `0x00FF`; the stack grows down from the
  top of memory.
- Registers: the general registers `a`–`h`, the return registers `ra`–`rh`
  (filled from `a`–`h` by `ret`), the global registers `ga`–`gh`, the memory
  address pair `ml`/`mh`, the comparison result `cmp`, and `spl`/`sph`,
  which address the two bytes of the stack pointer (`spl` its high byte,
  `sph` its low byte).
- `call` saves the base pointer, the return address, `mh`, `ml` and `a`–`h`
  on the stack; `ret` restores them.

## The assembler

```
sean816-asm <input file> <output file>
```

Each line holds one instruction followed by its operands, separated by
whitespace. A comment starts with a `;` standing as a word of its own and runs
to the end of the line; a line whose first word starts with `;` is skipped.

Operands may be:

- a register name, such as `a`, `rb`, `gc`, `ml`, `cmp`, `spl`;
- a byte, written as `0x2A` or as a decimal number like `42`;
- a 16-bit word, written as `0x1234` (stored low byte first; it fills two
  operand slots);
- a label address, written as `*name` (relocated at load time; it also fills
  two operand slots).

A line whose only word ends with `:` defines a label for the line after it.
Every program needs a `main` label, which becomes its entry point. The `str`
directive, placed on the line after a label, puts a zero-terminated string in
the output. Quoted words may contain spaces and the escapes `\n`, `\t`, `\r`,
`\\`, `\"` and `\0`:

```
message:
    str "Hello\n"
```

Errors are reported as `Error:<line>: <message>` (for example a wrong number
of operands, an unknown operation or an unknown operand) and the command exits
with status 1.

### Instructions

| Group        | Mnemonics                                                          |
|--------------|--------------------------------------------------------------------|
| Execution    | `halt`                                                             |
| Data         | `load`, `store`, `mhml`, `loadlh`/`llh`, `storelh`/`slh`, `mov`    |
| Arithmetic   | `add`, `sub`, `mul`, `div`, `inc`, `dec`                           |
| Flow control | `jmp`, `cmp`, `je`, `jne`, `jg`, `jl`                              |
| Stack        | `push`, `pop`, `call`, `calle`, `callne`, `callg`, `calll`, `ret`  |
| Bits         | `and`, `or`, `xor`, `not`                                          |

`load r lo hi` and `store r lo hi` move a byte between a register and the
address `hi:lo`; `mhml lo hi` sets the address pair used by `loadlh` and
`storelh`. `cmp x y` records whether `x` is equal to, greater than or less
than `y`, and the conditional jumps and calls test that result. Arithmetic
wraps at 8 bits.

## Using it from Python

```python
from sean816.assembler import assemble_source
from sean816.memory import Memory
from sean816.device import TemplateDevice, load_device
from sean816.rom import Loader

program = assemble_source("""
main:
    load a 0x01 0x00
    halt
""")

memory = Memory()
load_device(memory, TemplateDevice())
core = Loader(memory).run(program)
print(core.a)  # 27
```

The main pieces:

- `sean816.tokenizer` – `tokenize_line`, `read_source` and `read_file` split
  source into lines of words.
- `sean816.assembler` – `assemble` (tokenized lines) and `assemble_source`
  (text) return an executable image as bytes; errors raise `AssemblyError`.
- `sean816.memory.Memory` – `read`, `write`, `map_io` and `is_mapped`; the raw
  bytes are in `data`.
- `sean816.cpu.Core` – registers as attributes, `get_register` and
  `set_register` by index, `step` to run one instruction and `run` to run
  until halt; `Opcode` lists the instructions.
- `sean816.rom` – `RomHeader` (`pack`/`unpack`), `Loader` (`load` returns the
  entry address, `run` returns the halted core) and `run_file`; an image that
  cannot be loaded raises `RomError`.
- `sean816.device` – the `Device` base class, `SerialDevice`,
  `TemplateDevice`, `load_device` and `get_device`.

## Limits

Devices are Python classes. The `sean816` command can attach only the
built-in `serial` and `template` devices; other devices have to be
subclassed from `Device` and attached with `load_device` from Python. There is
no paged memory: the address space is the single `0x6000`-byte memory.