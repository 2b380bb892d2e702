"""Reads immediate operand bytes from the program counter into micro-instructions."""

from __future__ import annotations

from jimbot.instruction import Arg, ArgKind, Op
from jimbot.registers import R16, Registers

_MEMORY_SIZE = 0x10000

Triple = tuple[Op, Arg, Arg]


class Bus:
    """Flat 64 KiB memory the CPU reads and writes through."""

    def __init__(self, data: bytes = b"") -> None:
        if len(data) > _MEMORY_SIZE:
            raise ValueError(f"{len(data)} bytes do not fit in 64 KiB")
        self._memory = bytearray(_MEMORY_SIZE)
        self._memory[: len(data)] = data

    @staticmethod
    def _check(address: int) -> int:
        if not 0 <= address < _MEMORY_SIZE:
            raise ValueError(f"address {address:#x} out of range")
        return address

    def get(self, address: int) -> int:
        return self._memory[self._check(address)]

    def set(self, address: int, value: int) -> None:
        self._memory[self._check(address)] = value & 0xFF


def _signed(byte: int) -> int:
    return byte - 0x100 if byte & 0x80 else byte


def _resolve(arg: Arg, byte: int) -> tuple[bool, Arg]:
    kind = arg.kind
    if kind is ArgKind.FETCH_U8:
        return True, Arg(ArgKind.U8, byte)
    if kind is ArgKind.FETCH_I8:
        return True, Arg(ArgKind.I8, _signed(byte))
    if kind is ArgKind.FETCH_SPI8:
        return True, Arg(ArgKind.SPI8, _signed(byte))
    if kind is ArgKind.FETCH_IN_ADDR_U8:
        return False, Arg(ArgKind.IN_ADDR_U8, byte)
    target = ArgKind.U16 if kind is ArgKind.FETCH_U16 else ArgKind.ADDR_U16
    if arg.value is None:
        return False, Arg(kind, byte)
    return True, Arg(target, (byte << 8) | arg.value)


_FETCH_ORDER = (
    ArgKind.FETCH_U8,
    ArgKind.FETCH_I8,
    ArgKind.FETCH_SPI8,
    ArgKind.FETCH_IN_ADDR_U8,
    ArgKind.FETCH_U16,
    ArgKind.FETCH_ADDR_U16,
)


def fetch(instruction: Triple, registers: Registers, bus: Bus) -> tuple[bool, Triple]:
    """Read at most one operand byte at PC into the first operand needing it.

    Returns whether the instruction may execute in this same cycle, together
    with the updated (op, p1, p2) triple. Instructions with nothing to fetch
    come back unchanged and ready.
    """
    op, p1, p2 = instruction
    for kind in _FETCH_ORDER:
        for position, arg in ((1, p1), (2, p2)):
            if arg.kind is not kind:
                continue
            byte = bus.get(registers.get16i(R16.PC, 1))
            done, resolved = _resolve(arg, byte)
            if position == 1:
                return done, (op, resolved, p2)
            return done, (op, p1, resolved)
    return True, (op, p1, p2)