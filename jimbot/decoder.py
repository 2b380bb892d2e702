"""Opcode decoder: turns a fetched opcode byte into its micro-instruction chain."""

from __future__ import annotations

from jimbot.instruction import NON, Arg, ArgKind, Condition, CpuError, Instruction, Op
from jimbot.registers import R8, R16

Triple = tuple[Op, Arg, Arg]
_Entry = tuple[bool, tuple[Triple, ...]]

# Operand order used by the regular opcode blocks; ``None`` stands for (HL).
_OPERANDS: tuple[R8 | None, ...] = (R8.B, R8.C, R8.D, R8.E, R8.H, R8.L, None, R8.A)


def _reg8(r8: R8) -> Arg:
    return Arg(ArgKind.REG8, r8)


def _reg16(r16: R16) -> Arg:
    return Arg(ArgKind.REG16, r16)


def _addr(r16: R16) -> Arg:
    return Arg(ArgKind.ADDR_REG16, r16)


def _cc(condition: Condition) -> Arg:
    return Arg(ArgKind.CC, condition)


_FETCH_U8 = Arg(ArgKind.FETCH_U8)
_FETCH_I8 = Arg(ArgKind.FETCH_I8)
_FETCH_SPI8 = Arg(ArgKind.FETCH_SPI8)
_FETCH_IN_ADDR_U8 = Arg(ArgKind.FETCH_IN_ADDR_U8)
_FETCH_U16 = Arg(ArgKind.FETCH_U16)
_FETCH_ADDR_U16 = Arg(ArgKind.FETCH_ADDR_U16)
_POP = Arg(ArgKind.ADDR_REG16I, R16.SP)
_PUSH = Arg(ArgKind.ADDR_REGD16, R16.SP)

_PAIR_HALVES = {
    R16.BC: (R8.B, R8.C),
    R16.DE: (R8.D, R8.E),
    R16.HL: (R8.H, R8.L),
    R16.SP: (R8.S, R8.P),
    R16.AF: (R8.A, R8.F),
}

_CONDITIONS = (Condition.NZ, Condition.Z, Condition.NC, Condition.C)


def _one(immediate: bool, op: Op, p1: Arg = NON, p2: Arg = NON) -> _Entry:
    return immediate, ((op, p1, p2),)


def _build_table() -> dict[int, _Entry]:
    table: dict[int, _Entry] = {}

    table[0x00] = _one(True, Op.NOP)
    table[0xCB] = _one(False, Op.DCD_CB, _FETCH_U8)
    table[0x76] = _one(False, Op.HALT)

    # Single-byte operations on A and the flags.
    for opcode, op in (
        (0x07, Op.RLCA),
        (0x0F, Op.RRCA),
        (0x17, Op.RLA),
        (0x1F, Op.RRA),
        (0x27, Op.DAA),
        (0x2F, Op.CPL),
        (0x37, Op.SCF),
        (0x3F, Op.CCF),
        (0xF3, Op.DI),
        (0xFB, Op.EI),
    ):
        table[opcode] = _one(True, op)

    # Sixteen-bit loads, increments, decrements and HL additions.
    for row, pair in enumerate((R16.BC, R16.DE, R16.HL, R16.SP)):
        high, low = _PAIR_HALVES[pair]
        base = row << 4
        table[base | 0x01] = (
            False,
            ((Op.LD, _reg8(low), _FETCH_U8), (Op.LD, _reg8(high), _FETCH_U8)),
        )
        table[base | 0x03] = _one(False, Op.INC, _reg16(pair))
        table[base | 0x09] = _one(False, Op.ADD, _reg16(R16.HL), _reg16(pair))
        table[base | 0x0B] = _one(False, Op.DEC, _reg16(pair))

    # Eight-bit increments, decrements and immediate loads.
    for index, r8 in enumerate(_OPERANDS):
        base = index << 3
        if r8 is None:
            table[base | 0x04] = _one(False, Op.INC, _addr(R16.HL))
            table[base | 0x05] = _one(False, Op.DEC, _addr(R16.HL))
            table[base | 0x06] = _one(False, Op.LD, _addr(R16.HL), _FETCH_U8)
        else:
            table[base | 0x04] = _one(True, Op.INC, _reg8(r8))
            table[base | 0x05] = _one(True, Op.DEC, _reg8(r8))
            table[base | 0x06] = _one(False, Op.LD, _reg8(r8), _FETCH_U8)

    # Loads between A and memory.
    a = _reg8(R8.A)
    table[0x02] = _one(False, Op.LD, _addr(R16.BC), a)
    table[0x12] = _one(False, Op.LD, _addr(R16.DE), a)
    table[0x0A] = _one(False, Op.LD, a, _addr(R16.BC))
    table[0x1A] = _one(False, Op.LD, a, _addr(R16.DE))
    table[0x22] = _one(False, Op.LD, Arg(ArgKind.ADDR_REG16I, R16.HL), a)
    table[0x2A] = _one(False, Op.LD, a, Arg(ArgKind.ADDR_REG16I, R16.HL))
    table[0x32] = _one(False, Op.LD, Arg(ArgKind.ADDR_REG16D, R16.HL), a)
    table[0x3A] = _one(False, Op.LD, a, Arg(ArgKind.ADDR_REG16D, R16.HL))
    table[0x08] = _one(False, Op.LD, _FETCH_ADDR_U16, _reg16(R16.SP))
    table[0xE0] = _one(False, Op.LD, _FETCH_IN_ADDR_U8, a)
    table[0xF0] = _one(False, Op.LD, a, _FETCH_IN_ADDR_U8)
    table[0xE2] = _one(False, Op.LD, Arg(ArgKind.IN_ADDR_REG8, R8.C), a)
    table[0xF2] = _one(False, Op.LD, a, Arg(ArgKind.IN_ADDR_REG8, R8.C))
    table[0xEA] = _one(False, Op.LD, _FETCH_ADDR_U16, a)
    table[0xFA] = _one(False, Op.LD, a, _FETCH_ADDR_U16)
    table[0xF8] = _one(False, Op.LD, _reg16(R16.HL), _FETCH_SPI8)
    table[0xF9] = _one(False, Op.LD, _reg16(R16.SP), _reg16(R16.HL))
    table[0xE8] = _one(False, Op.ADD, _reg16(R16.SP), _FETCH_I8)

    # Register-to-register loads, 0x40..0x7F (0x76 is HALT).
    for dst_index, dst in enumerate(_OPERANDS):
        for src_index, src in enumerate(_OPERANDS):
            opcode = 0x40 | (dst_index << 3) | src_index
            if opcode == 0x76:
                continue
            if dst is None:
                table[opcode] = _one(False, Op.LD, _addr(R16.HL), _reg8(src))
            elif src is None:
                table[opcode] = _one(False, Op.LD, _reg8(dst), _addr(R16.HL))
            else:
                table[opcode] = _one(True, Op.LD, _reg8(dst), _reg8(src))

    # Arithmetic and logic on A, 0x80..0xBF, and the immediate forms.
    alu_ops = (Op.ADD, Op.ADC, Op.SUB, Op.SBC, Op.AND, Op.XOR, Op.OR, Op.CP)
    for row, op in enumerate(alu_ops):
        for index, src in enumerate(_OPERANDS):
            opcode = 0x80 | (row << 3) | index
            if src is None:
                table[opcode] = _one(False, op, a, _addr(R16.HL))
            else:
                table[opcode] = _one(True, op, a, _reg8(src))
        table[0xC6 | (row << 3)] = _one(False, op, a, _FETCH_U8)

    # Control flow.
    table[0x18] = _one(False, Op.JR, _FETCH_I8)
    table[0xC3] = _one(False, Op.JP, _FETCH_U16)
    table[0xCD] = _one(False, Op.CALL, _FETCH_U16)
    table[0xE9] = _one(True, Op.JP, _reg16(R16.HL))
    for row, condition in enumerate(_CONDITIONS):
        base = row << 3
        table[0x20 | base] = _one(False, Op.JR, _cc(condition), _FETCH_I8)
        table[0xC0 | base] = _one(False, Op.RET, _cc(condition))
        table[0xC2 | base] = _one(False, Op.JP, _cc(condition), _FETCH_U16)
        table[0xC4 | base] = _one(False, Op.CALL, _cc(condition), _FETCH_U16)

    pop_pc = (
        (Op.LD, _reg8(R8.PCL), _POP),
        (Op.LD, _reg8(R8.PCH), _POP),
    )
    table[0xC9] = (False, pop_pc + ((Op.INTERNAL, NON, NON),))
    table[0xD9] = (False, pop_pc + ((Op.EI_IMM, NON, NON),))

    for vector in range(0x00, 0x40, 0x08):
        table[0xC7 | vector] = _one(False, Op.RST, Arg(ArgKind.U16, vector))

    # Stack pushes and pops.
    for row, pair in enumerate((R16.BC, R16.DE, R16.HL, R16.AF)):
        high, low = _PAIR_HALVES[pair]
        base = row << 4
        table[0xC1 | base] = (
            False,
            ((Op.LD, _reg8(low), _POP), (Op.LD, _reg8(high), _POP)),
        )
        table[0xC5 | base] = (
            False,
            (
                (Op.INTERNAL, NON, NON),
                (Op.LD, _PUSH, _reg8(high)),
                (Op.LD, _PUSH, _reg8(low)),
            ),
        )

    return table


_TABLE = _build_table()


def decode(byte: int) -> tuple[bool, Instruction]:
    """Decode an opcode.

    Returns whether the instruction executes in the same cycle it is decoded,
    and a fresh instruction chain. Raises ``CpuError`` for unknown opcodes.
    """
    try:
        immediate, steps = _TABLE[byte]
    except KeyError:
        raise CpuError(f"[DCD] Unknown opcode {_hex_byte(byte)}") from None
    return immediate, Instruction.chain(*steps)


def _hex_byte(byte: int) -> str:
    return f"0x{byte:02X}" if isinstance(byte, int) and byte >= 0 else repr(byte)