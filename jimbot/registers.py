"""CPU register file: eight-bit registers, their sixteen-bit pairs and the flag bits."""

from __future__ import annotations

import enum


class R8(enum.Enum):
    """An eight-bit register."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    F = "F"
    H = "H"
    L = "L"
    S = "S"
    P = "P"
    PCL = "PCl"
    PCH = "PCh"

    def __repr__(self) -> str:
        return self.value


class R16(enum.Enum):
    """A sixteen-bit register pair."""

    AF = "AF"
    BC = "BC"
    DE = "DE"
    HL = "HL"
    SP = "SP"
    PC = "PC"

    def __repr__(self) -> str:
        return self.value


class Flag(enum.Enum):
    """A bit of the F register; the value is its mask."""

    Z = 0b1000_0000
    N = 0b0100_0000
    H = 0b0010_0000
    C = 0b0001_0000


_PAIRS: dict[R16, tuple[R8, R8]] = {
    R16.AF: (R8.A, R8.F),
    R16.BC: (R8.B, R8.C),
    R16.DE: (R8.D, R8.E),
    R16.HL: (R8.H, R8.L),
    R16.SP: (R8.S, R8.P),
    R16.PC: (R8.PCH, R8.PCL),
}


class Registers:
    """All CPU registers, zeroed on creation.

    The low nibble of F always reads as zero. Sixteen-bit arithmetic wraps.
    """

    def __init__(self) -> None:
        self._values: dict[R8, int] = dict.fromkeys(R8, 0)

    def get8(self, r8: R8) -> int:
        return self._values[r8]

    def set8(self, r8: R8, value: int) -> None:
        value &= 0xFF
        if r8 is R8.F:
            value &= 0xF0
        self._values[r8] = value

    def get16(self, r16: R16) -> int:
        high, low = _PAIRS[r16]
        return (self._values[high] << 8) | self._values[low]

    def set16(self, r16: R16, value: int) -> None:
        high, low = _PAIRS[r16]
        value &= 0xFFFF
        self.set8(high, value >> 8)
        self.set8(low, value)

    def get16i(self, r16: R16, by: int) -> int:
        """Return the pair's value, then increase it by ``by``."""
        value = self.get16(r16)
        self.set16(r16, value + by)
        return value

    def get16d(self, r16: R16, by: int) -> int:
        """Return the pair's value, then decrease it by ``by``."""
        value = self.get16(r16)
        self.set16(r16, value - by)
        return value

    def getd16(self, r16: R16, by: int) -> int:
        """Decrease the pair by ``by`` and return the new value."""
        self.set16(r16, self.get16(r16) - by)
        return self.get16(r16)

    def inc16(self, r16: R16, by: int) -> None:
        self.set16(r16, self.get16(r16) + by)

    def dec16(self, r16: R16, by: int) -> None:
        self.set16(r16, self.get16(r16) - by)

    def get_f(self, flag: Flag) -> bool:
        return self._values[R8.F] & flag.value == flag.value

    def set_f(self, flag: Flag, value: bool) -> None:
        f = self._values[R8.F]
        self._values[R8.F] = f | flag.value if value else f & ~flag.value & 0xFF