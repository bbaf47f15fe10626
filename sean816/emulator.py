"""Command-line entry point that attaches devices and runs an executable."""

from __future__ import annotations

import sys
from collections.abc import Sequence

from .device import get_device, load_device
from .memory import Memory
from .rom import RomError, run_file

USAGE = "Usage: sean816 [-device <device>] <path/to/binary>"


def main(argv: Sequence[str] | None = None) -> int:
    """Run the emulator; return the process exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print(USAGE)
        return 1

    memory = Memory()
    index = 0
    while index < len(args):
        if args[index] == "-device":
            if index + 1 >= len(args):
                print("Error: -device option requires a path argument", file=sys.stderr)
                return 1
            name = args[index + 1]
            try:
                device = get_device(name)
            except ValueError:
                print(f"Error: device not found at {name}", file=sys.stderr)
                return 1
            load_device(memory, device)
            index += 1
        index += 1

    try:
        run_file(args[-1], memory)
    except RomError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())