"""Decoder for the 0xCB-prefixed opcodes: rotates, shifts, swaps and bit operations."""

from __future__ import annotations

from jimbot.instruction import NON, Arg, ArgKind, CpuError, Instruction, Op
from jimbot.registers import R8, R16

Triple = tuple[Op, Arg, Arg]
_Entry = tuple[bool, Triple]

# Operand order of each eight-opcode block; ``None`` stands for (HL).
_OPERANDS: tuple[R8 | None, ...] = (R8.B, R8.C, R8.D, R8.E, R8.H, R8.L, None, R8.A)

_SHIFT_OPS = (Op.RLC, Op.RRC, Op.RL, Op.RR, Op.SLA, Op.SRA, Op.SWAP, Op.SRL)
_BIT_OPS = (Op.BIT, Op.RES, Op.SET)

_HL = Arg(ArgKind.ADDR_REG16, R16.HL)


def _operand(r8: R8 | None) -> Arg:
    return _HL if r8 is None else Arg(ArgKind.REG8, r8)


def _build_table() -> dict[int, _Entry]:
    table: dict[int, _Entry] = {}

    for row, op in enumerate(_SHIFT_OPS):
        for index, r8 in enumerate(_OPERANDS):
            opcode = (row << 3) | index
            table[opcode] = (r8 is not None, (op, _operand(r8), NON))

    for group, op in enumerate(_BIT_OPS, start=1):
        for bit_index in range(8):
            for index, r8 in enumerate(_OPERANDS):
                opcode = (group << 6) | (bit_index << 3) | index
                table[opcode] = (
                    r8 is not None,
                    (op, Arg(ArgKind.U8, bit_index), _operand(r8)),
                )

    return table


_TABLE = _build_table()


def decode_cb(byte: int) -> tuple[bool, Instruction]:
    """Decode the byte following a 0xCB prefix.

    Returns whether the instruction executes in the same cycle it is decoded,
    and a fresh single-step instruction. Raises ``CpuError`` for bytes that
    are not opcodes.
    """
    try:
        immediate, (op, p1, p2) = _TABLE[byte]
    except (KeyError, TypeError):
        raise CpuError(f"[DCD CB] Unknown opcode {_hex_byte(byte)}") from None
    return immediate, Instruction(op, p1, p2)


def _hex_byte(byte: object) -> str:
    return f"0x{byte:02X}" if isinstance(byte, int) and byte >= 0 else repr(byte)