"""Micro-operations the CPU steps through, one per machine cycle."""

from __future__ import annotations

import enum
from collections.abc import Iterator
from dataclasses import dataclass, field

from jimbot.registers import R8, R16


class CpuError(Exception):
    """Raised when the CPU meets an opcode or operation it cannot carry out."""


class Op(enum.Enum):
    """Operation of a micro-instruction."""

    DCD = "Dcd"
    DCD_CB = "DcdCB"
    EI = "Ei"
    EI_IMM = "EiImm"
    HALT = "Halt"
    BIT = "Bit"
    RES = "Res"
    SET = "Set"
    JR = "Jr"
    JP = "Jp"
    INC = "Inc"
    CP = "Cp"
    SUB = "Sub"
    SBC = "Sbc"
    AND = "And"
    ADC = "Adc"
    ADD = "Add"
    INTERNAL = "Internal"
    RST = "Rst"
    RL = "Rl"
    SRL = "Srl"
    RLC = "Rlc"
    RRC = "Rrc"
    SLA = "Sla"
    SRA = "Sra"
    RR = "Rr"
    SWAP = "Swap"
    RLA = "Rla"
    RRCA = "Rrca"
    RLCA = "Rlca"
    SCF = "Scf"
    RRA = "Rra"
    CCF = "Ccf"
    RET = "Ret"
    CALL = "Call"
    DEC = "Dec"
    LD = "Ld"
    WRITE = "Write"
    READ = "Read"
    PUSH = "Push"
    XOR = "Xor"
    OR = "Or"
    NOP = "Nop"
    DI = "Di"
    DAA = "Daa"
    CPL = "Cpl"

    def __repr__(self) -> str:
        return self.value


class Condition(enum.Enum):
    """Branch condition on the Z and C flags."""

    Z = "Z"
    NZ = "NZ"
    C = "C"
    NC = "NC"

    def __repr__(self) -> str:
        return self.value


class ArgKind(enum.Enum):
    """Kind of operand; ``Fetch*`` kinds still need bytes read from PC."""

    FETCH_U8 = "FetchU8"
    FETCH_IN_ADDR_U8 = "FetchInAddrU8"
    IN_ADDR_U8 = "InAddrU8"
    REG8 = "Reg8"
    REG16 = "Reg16"
    ADDR_REG16 = "AddrReg16"
    IN_ADDR_REG8 = "InAddrReg8"
    ADDR_U16 = "AddrU16"
    FETCH_ADDR_U16 = "FetchAddrU16"
    FETCH_I8 = "FetchI8"
    FETCH_SPI8 = "FetchSPI8"
    SPI8 = "SPI8"
    ADDR_REG16D = "AddrReg16d"
    ADDR_REG16I = "AddrReg16i"
    ADDR_REGD16 = "AddrRegd16"
    CC = "CC"
    U8 = "U8"
    I8 = "I8"
    FETCH_U16 = "FetchU16"
    U16 = "U16"
    NON = "Non"


_HEX8 = {ArgKind.U8, ArgKind.IN_ADDR_U8}
_HEX16 = {ArgKind.U16, ArgKind.ADDR_U16}
_PARTIAL16 = {ArgKind.FETCH_U16, ArgKind.FETCH_ADDR_U16}
_BARE = {
    ArgKind.FETCH_U8,
    ArgKind.FETCH_IN_ADDR_U8,
    ArgKind.FETCH_I8,
    ArgKind.FETCH_SPI8,
    ArgKind.NON,
}


@dataclass(frozen=True)
class Arg:
    """An operand.

    ``value`` holds the register, condition or number the kind carries. For
    the two-byte fetch kinds it is ``None`` until the low byte has been read,
    then that byte.
    """

    kind: ArgKind
    value: int | R8 | R16 | Condition | None = None

    def __repr__(self) -> str:
        name = self.kind.value
        if self.kind in _BARE:
            return name
        if self.kind in _PARTIAL16:
            low = "None" if self.value is None else f"Some(0x{self.value:02X})"
            return f"{name}(None, {low})"
        if self.kind in _HEX8:
            return f"{name}(0x{self.value:02X})"
        if self.kind in _HEX16:
            return f"{name}(0x{self.value:04X})"
        return f"{name}({self.value!r})"


NON = Arg(ArgKind.NON)


@dataclass
class Instruction:
    """One micro-operation and the rest of the chain it starts."""

    op: Op = Op.NOP
    p1: Arg = NON
    p2: Arg = NON
    next: Instruction | None = field(default=None, repr=False)

    def triple(self) -> tuple[Op, Arg, Arg]:
        return (self.op, self.p1, self.p2)

    def __iter__(self) -> Iterator[tuple[Op, Arg, Arg]]:
        node: Instruction | None = self
        while node is not None:
            yield node.triple()
            node = node.next

    @staticmethod
    def chain(*args: tuple[Op, Arg, Arg]) -> Instruction:
        """Build a chain running the given (op, p1, p2) triples in order."""
        if not args:
            raise ValueError("an instruction chain needs at least one step")
        head: Instruction | None = None
        for op, p1, p2 in reversed(args):
            head = Instruction(op, p1, p2, head)
        assert head is not None
        return head

    def then(self, op: Op, p1: Arg, p2: Arg) -> Instruction:
        """Return a new chain: this one followed by one more step."""
        return Instruction.chain(*self, (op, p1, p2))