"""Arithmetic, logic, rotate and bit operations together with their flag effects."""

from __future__ import annotations

from jimbot.instruction import Condition
from jimbot.registers import R8, Flag, Registers


def _set_flags(
    registers: Registers,
    *,
    z: bool | None = None,
    n: bool | None = None,
    h: bool | None = None,
    c: bool | None = None,
) -> None:
    for flag, value in ((Flag.Z, z), (Flag.N, n), (Flag.H, h), (Flag.C, c)):
        if value is not None:
            registers.set_f(flag, value)


def _carry(registers: Registers) -> int:
    return 1 if registers.get_f(Flag.C) else 0


def add(registers: Registers, a: int, b: int) -> int:
    """Eight-bit addition."""
    total = a + b
    _set_flags(
        registers,
        z=total & 0xFF == 0,
        n=False,
        h=(a & 0x0F) + (b & 0x0F) > 0x0F,
        c=total > 0xFF,
    )
    return total & 0xFF


def adc(registers: Registers, a: int, b: int) -> int:
    """Eight-bit addition with the carry flag."""
    carry = _carry(registers)
    total = a + b + carry
    _set_flags(
        registers,
        z=total & 0xFF == 0,
        n=False,
        h=(a & 0x0F) + (b & 0x0F) + carry > 0x0F,
        c=total > 0xFF,
    )
    return total & 0xFF


def sub(registers: Registers, a: int, b: int) -> int:
    """Eight-bit subtraction."""
    result = (a - b) & 0xFF
    _set_flags(
        registers,
        z=result == 0,
        n=True,
        h=(a & 0x0F) < (b & 0x0F),
        c=a < b,
    )
    return result


def sbc(registers: Registers, a: int, b: int) -> int:
    """Eight-bit subtraction with the carry flag as borrow."""
    carry = _carry(registers)
    diff = a - b - carry
    _set_flags(
        registers,
        z=diff & 0xFF == 0,
        n=True,
        h=(a & 0x0F) - (b & 0x0F) - carry < 0,
        c=diff < 0,
    )
    return diff & 0xFF


def cp(registers: Registers, a: int, b: int) -> None:
    """Compare: set the flags of ``a - b`` and discard the result."""
    sub(registers, a, b)


def and_(registers: Registers, a: int, b: int) -> int:
    result = a & b
    _set_flags(registers, z=result == 0, n=False, h=True, c=False)
    return result


def or_(registers: Registers, a: int, b: int) -> int:
    result = (a | b) & 0xFF
    _set_flags(registers, z=result == 0, n=False, h=False, c=False)
    return result


def xor(registers: Registers, a: int, b: int) -> int:
    result = (a ^ b) & 0xFF
    _set_flags(registers, z=result == 0, n=False, h=False, c=False)
    return result


def inc8(registers: Registers, value: int) -> int:
    """Increment a register value; the carry flag is left alone."""
    result = (value + 1) & 0xFF
    _set_flags(registers, z=result == 0, n=False, h=(value & 0x0F) + 1 > 0x0F)
    return result


def dec8(registers: Registers, value: int) -> int:
    """Decrement a value; the carry flag is left alone."""
    result = (value - 1) & 0xFF
    _set_flags(registers, z=result == 0, n=True, h=(value & 0x0F) == 0)
    return result


def inc_memory(registers: Registers, value: int) -> int:
    """Increment a byte from memory; half carry is taken from the result."""
    result = (value + 1) & 0xFF
    _set_flags(registers, z=result == 0, n=False, h=(result & 0x0F) == 0)
    return result


def add16(registers: Registers, a: int, b: int) -> int:
    """Sixteen-bit addition; the zero flag is left alone."""
    total = a + b
    _set_flags(
        registers,
        n=False,
        h=(a & 0x0FFF) + (b & 0x0FFF) > 0x0FFF,
        c=total > 0xFFFF,
    )
    return total & 0xFFFF


def add_signed(registers: Registers, base: int, offset: int) -> int:
    """Add a signed byte to a sixteen-bit value; flags come from the low byte."""
    extended = offset & 0xFFFF
    _set_flags(
        registers,
        z=False,
        n=False,
        h=(base & 0x0F) + (extended & 0x0F) > 0x0F,
        c=(base & 0xFF) + (extended & 0xFF) > 0xFF,
    )
    return (base + extended) & 0xFFFF


def _shift_flags(registers: Registers, result: int, carry: bool) -> int:
    _set_flags(registers, z=result == 0, n=False, h=False, c=carry)
    return result


def rl(registers: Registers, value: int) -> int:
    """Rotate left through the carry flag."""
    result = ((value << 1) | _carry(registers)) & 0xFF
    return _shift_flags(registers, result, value & 0x80 != 0)


def rlc(registers: Registers, value: int) -> int:
    """Rotate left, bit 7 into bit 0 and the carry flag."""
    top = (value >> 7) & 1
    result = ((value << 1) | top) & 0xFF
    return _shift_flags(registers, result, top == 1)


def rr(registers: Registers, value: int) -> int:
    """Rotate right through the carry flag."""
    result = (value >> 1) | (0x80 if registers.get_f(Flag.C) else 0)
    return _shift_flags(registers, result, value & 1 == 1)


def rrc(registers: Registers, value: int) -> int:
    """Rotate right, bit 0 into bit 7 and the carry flag."""
    low = value & 1
    result = (value >> 1) | (low << 7)
    return _shift_flags(registers, result, low == 1)


def sla(registers: Registers, value: int) -> int:
    """Arithmetic shift left."""
    return _shift_flags(registers, (value << 1) & 0xFF, value & 0x80 != 0)


def sra(registers: Registers, value: int) -> int:
    """Arithmetic shift right, keeping bit 7."""
    return _shift_flags(registers, (value >> 1) | (value & 0x80), value & 1 == 1)


def srl(registers: Registers, value: int) -> int:
    """Logical shift right."""
    return _shift_flags(registers, value >> 1, value & 1 == 1)


def swap(registers: Registers, value: int) -> int:
    """Exchange the two nibbles."""
    result = ((value >> 4) & 0x0F) | ((value & 0x0F) << 4)
    return _shift_flags(registers, result, False)


def bit(registers: Registers, index: int, value: int) -> None:
    """Set Z when bit ``index`` of ``value`` is clear."""
    _set_flags(registers, z=(value >> index) & 1 == 0, n=False, h=True)


def set_bit(index: int, value: int) -> int:
    return (value | (1 << index)) & 0xFF


def reset_bit(index: int, value: int) -> int:
    return value & ~(1 << index) & 0xFF


def _accumulator_rotate(registers: Registers, result: int, carry: bool) -> None:
    _set_flags(registers, z=False, n=False, h=False, c=carry)
    registers.set8(R8.A, result)


def rla(registers: Registers) -> None:
    a = registers.get8(R8.A)
    _accumulator_rotate(registers, ((a << 1) | _carry(registers)) & 0xFF, a & 0x80 != 0)


def rra(registers: Registers) -> None:
    a = registers.get8(R8.A)
    high = 0x80 if registers.get_f(Flag.C) else 0
    _accumulator_rotate(registers, (a >> 1) | high, a & 1 == 1)


def rlca(registers: Registers) -> None:
    a = registers.get8(R8.A)
    top = (a >> 7) & 1
    _accumulator_rotate(registers, ((a << 1) | top) & 0xFF, top == 1)


def rrca(registers: Registers) -> None:
    a = registers.get8(R8.A)
    low = a & 1
    _accumulator_rotate(registers, (a >> 1) | (low << 7), low == 1)


def daa(registers: Registers) -> None:
    """Adjust A to binary-coded decimal after an addition or subtraction."""
    a = registers.get8(R8.A)
    carry = registers.get_f(Flag.C)
    half_carry = registers.get_f(Flag.H)
    if not registers.get_f(Flag.N):
        correction = 0
        if half_carry or (a & 0x0F) > 0x09:
            correction |= 0x06
        if carry or a > 0x99:
            correction |= 0x60
            registers.set_f(Flag.C, True)
        registers.set8(R8.A, a + correction)
    elif carry:
        registers.set_f(Flag.C, True)
        registers.set8(R8.A, a + (0x9A if half_carry else 0xA0))
    elif half_carry:
        registers.set8(R8.A, a + 0xFA)
    _set_flags(registers, z=registers.get8(R8.A) == 0, h=False)


def cpl(registers: Registers) -> None:
    """Complement A."""
    registers.set8(R8.A, ~registers.get8(R8.A))
    _set_flags(registers, n=True, h=True)


def scf(registers: Registers) -> None:
    """Set the carry flag."""
    _set_flags(registers, n=False, h=False, c=True)


def ccf(registers: Registers) -> None:
    """Complement the carry flag."""
    _set_flags(registers, n=False, h=False, c=not registers.get_f(Flag.C))


def check_condition(registers: Registers, condition: Condition) -> bool:
    if condition is Condition.NZ:
        return not registers.get_f(Flag.Z)
    if condition is Condition.Z:
        return registers.get_f(Flag.Z)
    if condition is Condition.NC:
        return not registers.get_f(Flag.C)
    return registers.get_f(Flag.C)