"""Executes one micro-instruction against the registers and the memory bus."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from jimbot import alu
from jimbot.decoder import decode
from jimbot.decoder_cb import decode_cb
from jimbot.fetcher import Bus
from jimbot.instruction import NON, Arg, ArgKind, CpuError, Instruction, Op
from jimbot.registers import R8, R16, Registers

Triple = tuple[Op, Arg, Arg]
_Handler = Callable[["Cpu", Any, Any, Bus], "Instruction | None"]

_INTERNAL: Triple = (Op.INTERNAL, NON, NON)
_PUSH = Arg(ArgKind.ADDR_REGD16, R16.SP)
_POP = Arg(ArgKind.ADDR_REG16I, R16.SP)


def _u8(value: int) -> Arg:
    return Arg(ArgKind.U8, value & 0xFF)


def _addr_u16(address: int) -> Arg:
    return Arg(ArgKind.ADDR_U16, address & 0xFFFF)


def _high_port(offset: int) -> int:
    return 0xFF00 + (offset & 0xFF)


@dataclass
class Cpu:
    """CPU state touched by execution: registers and interrupt/halt flags."""

    registers: Registers = field(default_factory=Registers)
    halted: bool = False
    ime: bool = False
    ime_requested: bool = False

    def execute(
        self, instruction: Triple | Instruction, bus: Bus
    ) -> Instruction | None:
        """Carry out one step.

        Returns the chain that must replace the current one, or ``None`` when
        the current chain simply continues. Raises ``CpuError`` for a step
        this CPU has no meaning for.
        """
        if isinstance(instruction, Instruction):
            instruction = instruction.triple()
        op, p1, p2 = instruction
        handler = _DISPATCH.get((op, p1.kind, p2.kind))
        if handler is None:
            raise CpuError(f"[EXE] Unknown instruction {op!r} {p1!r} {p2!r}")
        return handler(self, p1.value, p2.value, bus)

    # Helpers shared by the handlers.

    def _push(self, value: int) -> Instruction:
        return Instruction.chain(
            (Op.LD, _PUSH, _u8(value >> 8)),
            (Op.LD, _PUSH, _u8(value)),
        )

    def _call(self, target: int) -> Instruction:
        pc = self.registers.get16(R16.PC)
        self.registers.set16(R16.PC, target)
        push = self._push(pc)
        return Instruction(*_INTERNAL, next=push)

    def _jump_relative(self, offset: int) -> Instruction:
        target = (self.registers.get16(R16.PC) + offset) & 0xFFFF
        return Instruction(Op.LD, Arg(ArgKind.REG16, R16.PC), Arg(ArgKind.U16, target))

    def _decoded(
        self, result: tuple[bool, Instruction], bus: Bus
    ) -> Instruction | None:
        immediate, instruction = result
        if immediate:
            if instruction.next is not None:
                raise CpuError("Immediate should only have single instruction")
            return self.execute(instruction.triple(), bus)
        return instruction


# Sources an eight-bit operation may read from.


def _read_operand(cpu: Cpu, kind: ArgKind, value: Any, bus: Bus) -> int:
    if kind is ArgKind.REG8:
        return cpu.registers.get8(value)
    if kind is ArgKind.U8:
        return value
    return bus.get(cpu.registers.get16(value))


def _binary_handler(
    kind: ArgKind, operation: Callable[[Registers, int, int], int | None]
) -> _Handler:
    def handler(cpu: Cpu, target: R8, source: Any, bus: Bus) -> None:
        left = cpu.registers.get8(target)
        right = _read_operand(cpu, kind, source, bus)
        result = operation(cpu.registers, left, right)
        if result is not None:
            cpu.registers.set8(target, result)

    return handler


def _shift_reg_handler(operation: Callable[[Registers, int], int]) -> _Handler:
    def handler(cpu: Cpu, r8: R8, _unused: Any, bus: Bus) -> None:
        cpu.registers.set8(r8, operation(cpu.registers, cpu.registers.get8(r8)))

    return handler


def _memory_update(op: Op, transform: Callable[[Cpu, int], int]) -> _Handler:
    def handler(cpu: Cpu, r16: R16, _unused: Any, bus: Bus) -> Instruction:
        address = cpu.registers.get16(r16)
        result = transform(cpu, bus.get(address))
        return Instruction(op, _addr_u16(address), _u8(result))

    return handler


def _bit_memory_handler(op: Op, operation: Callable[[int, int], int]) -> _Handler:
    def handler(cpu: Cpu, index: int, r16: R16, bus: Bus) -> Instruction:
        address = cpu.registers.get16(r16)
        result = operation(index, bus.get(address))
        return Instruction(op, _addr_u16(address), _u8(result))

    return handler


def _bit_reg_handler(operation: Callable[[int, int], int]) -> _Handler:
    def handler(cpu: Cpu, index: int, r8: R8, bus: Bus) -> None:
        cpu.registers.set8(r8, operation(index, cpu.registers.get8(r8)))

    return handler


def _flag_handler(operation: Callable[[Registers], None]) -> _Handler:
    def handler(cpu: Cpu, _p1: Any, _p2: Any, bus: Bus) -> None:
        operation(cpu.registers)

    return handler


def _nothing(cpu: Cpu, _p1: Any, _p2: Any, bus: Bus) -> None:
    return None


# Individual handlers.


def _add_r16_i8(cpu: Cpu, r16: R16, offset: int, bus: Bus) -> Instruction:
    regs = cpu.registers
    regs.set16(r16, alu.add_signed(regs, regs.get16(r16), offset))
    return Instruction.chain(_INTERNAL, _INTERNAL)


def _add_r16_r16(cpu: Cpu, left: R16, right: R16, bus: Bus) -> None:
    regs = cpu.registers
    regs.set16(left, alu.add16(regs, regs.get16(left), regs.get16(right)))


def _bit_r8(cpu: Cpu, index: int, r8: R8, bus: Bus) -> None:
    alu.bit(cpu.registers, index, cpu.registers.get8(r8))


def _bit_addr(cpu: Cpu, index: int, r16: R16, bus: Bus) -> None:
    alu.bit(cpu.registers, index, bus.get(cpu.registers.get16(r16)))


def _call_cc(cpu: Cpu, condition: Any, target: int, bus: Bus) -> Instruction | None:
    if alu.check_condition(cpu.registers, condition):
        return cpu._call(target)
    return None


def _call(cpu: Cpu, target: int, _unused: Any, bus: Bus) -> Instruction:
    return cpu._call(target)


def _rst(cpu: Cpu, target: int, _unused: Any, bus: Bus) -> Instruction:
    pc = cpu.registers.get16(R16.PC)
    cpu.registers.set16(R16.PC, target)
    return cpu._push(pc)


def _ret_cc(cpu: Cpu, condition: Any, _unused: Any, bus: Bus) -> Instruction | None:
    if alu.check_condition(cpu.registers, condition):
        return Instruction.chain(
            (Op.LD, Arg(ArgKind.REG8, R8.PCL), _POP),
            (Op.LD, Arg(ArgKind.REG8, R8.PCH), _POP),
            _INTERNAL,
        )
    return None


def _decode(cpu: Cpu, byte: int, _unused: Any, bus: Bus) -> Instruction | None:
    return cpu._decoded(decode(byte), bus)


def _decode_cb(cpu: Cpu, byte: int, _unused: Any, bus: Bus) -> Instruction | None:
    return cpu._decoded(decode_cb(byte), bus)


def _dec_r16(cpu: Cpu, r16: R16, _unused: Any, bus: Bus) -> None:
    cpu.registers.dec16(r16, 1)


def _inc_r16(cpu: Cpu, r16: R16, _unused: Any, bus: Bus) -> None:
    cpu.registers.inc16(r16, 1)


def _di(cpu: Cpu, _p1: Any, _p2: Any, bus: Bus) -> None:
    cpu.ime_requested = False
    cpu.ime = False


def _ei(cpu: Cpu, _p1: Any, _p2: Any, bus: Bus) -> None:
    cpu.ime_requested = True


def _ei_imm(cpu: Cpu, _p1: Any, _p2: Any, bus: Bus) -> None:
    cpu.ime = True


def _halt(cpu: Cpu, _p1: Any, _p2: Any, bus: Bus) -> None:
    cpu.halted = True


def _jp_cc(cpu: Cpu, condition: Any, target: int, bus: Bus) -> Instruction | None:
    if alu.check_condition(cpu.registers, condition):
        cpu.registers.set16(R16.PC, target)
        return Instruction(*_INTERNAL)
    return None


def _jp_r16(cpu: Cpu, r16: R16, _unused: Any, bus: Bus) -> None:
    cpu.registers.set16(R16.PC, cpu.registers.get16(r16))


def _jp(cpu: Cpu, target: int, _unused: Any, bus: Bus) -> Instruction:
    cpu.registers.set16(R16.PC, target)
    return Instruction(*_INTERNAL)


def _jr_cc(cpu: Cpu, condition: Any, offset: int, bus: Bus) -> Instruction | None:
    if alu.check_condition(cpu.registers, condition):
        return cpu._jump_relative(offset)
    return None


def _jr(cpu: Cpu, offset: int, _unused: Any, bus: Bus) -> Instruction:
    return cpu._jump_relative(offset)


def _ld_addr_r8(cpu: Cpu, r16: R16, r8: R8, bus: Bus) -> None:
    bus.set(cpu.registers.get16(r16), cpu.registers.get8(r8))


def _ld_addr_u8(cpu: Cpu, r16: R16, value: int, bus: Bus) -> Instruction:
    return Instruction(Op.LD, _addr_u16(cpu.registers.get16(r16)), _u8(value))


def _ld_addr_dec_r8(cpu: Cpu, r16: R16, r8: R8, bus: Bus) -> None:
    bus.set(cpu.registers.get16d(r16, 1), cpu.registers.get8(r8))


def _ld_addr_inc_r8(cpu: Cpu, r16: R16, r8: R8, bus: Bus) -> None:
    bus.set(cpu.registers.get16i(r16, 1), cpu.registers.get8(r8))


def _ld_predec_r8(cpu: Cpu, r16: R16, r8: R8, bus: Bus) -> None:
    address = cpu.registers.getd16(r16, 1)
    bus.set(address, cpu.registers.get8(r8))


def _ld_predec_u8(cpu: Cpu, r16: R16, value: int, bus: Bus) -> None:
    bus.set(cpu.registers.getd16(r16, 1), value)


def _ld_addr_u16_r16(cpu: Cpu, address: int, r16: R16, bus: Bus) -> Instruction:
    value = cpu.registers.get16(r16)
    return Instruction.chain(
        (Op.LD, _addr_u16(address), _u8(value)),
        (Op.LD, _addr_u16(address + 1), _u8(value >> 8)),
    )


def _ld_addr_u16_r8(cpu: Cpu, address: int, r8: R8, bus: Bus) -> Instruction:
    return Instruction(Op.WRITE, _addr_u16(address), _u8(cpu.registers.get8(r8)))


def _store(cpu: Cpu, address: int, value: int, bus: Bus) -> None:
    bus.set(address, value)


def _ld_in_reg8_r8(cpu: Cpu, port: R8, r8: R8, bus: Bus) -> None:
    bus.set(_high_port(cpu.registers.get8(port)), cpu.registers.get8(r8))


def _ld_in_u8_r8(cpu: Cpu, offset: int, r8: R8, bus: Bus) -> None:
    bus.set(_high_port(offset), cpu.registers.get8(r8))


def _ld_r16_spi8(cpu: Cpu, r16: R16, offset: int, bus: Bus) -> Instruction:
    regs = cpu.registers
    regs.set16(r16, alu.add_signed(regs, regs.get16(R16.SP), offset))
    return Instruction(*_INTERNAL)


def _ld_r16_u16(cpu: Cpu, r16: R16, value: int, bus: Bus) -> None:
    cpu.registers.set16(r16, value)


def _ld_r16_r16(cpu: Cpu, left: R16, right: R16, bus: Bus) -> None:
    cpu.registers.set16(left, cpu.registers.get16(right))


def _ld_r8_addr(cpu: Cpu, r8: R8, r16: R16, bus: Bus) -> None:
    cpu.registers.set8(r8, bus.get(cpu.registers.get16(r16)))


def _ld_r8_addr_dec(cpu: Cpu, r8: R8, r16: R16, bus: Bus) -> None:
    cpu.registers.set8(r8, bus.get(cpu.registers.get16d(r16, 1)))


def _ld_r8_addr_inc(cpu: Cpu, r8: R8, r16: R16, bus: Bus) -> None:
    cpu.registers.set8(r8, bus.get(cpu.registers.get16i(r16, 1)))


def _ld_r8_addr_u16(cpu: Cpu, r8: R8, address: int, bus: Bus) -> Instruction:
    return Instruction(Op.READ, Arg(ArgKind.REG8, r8), _addr_u16(address))


def _read_r8_addr_u16(cpu: Cpu, r8: R8, address: int, bus: Bus) -> None:
    cpu.registers.set8(r8, bus.get(address))


def _ld_r8_in_u8(cpu: Cpu, r8: R8, offset: int, bus: Bus) -> None:
    cpu.registers.set8(r8, bus.get(_high_port(offset)))


def _ld_r8_u8(cpu: Cpu, r8: R8, value: int, bus: Bus) -> None:
    cpu.registers.set8(r8, value)


def _ld_r8_in_reg8(cpu: Cpu, r8: R8, port: R8, bus: Bus) -> None:
    cpu.registers.set8(r8, bus.get(_high_port(cpu.registers.get8(port))))


def _ld_r8_r8(cpu: Cpu, left: R8, right: R8, bus: Bus) -> None:
    cpu.registers.set8(left, cpu.registers.get8(right))


def _dec_r8(cpu: Cpu, r8: R8, _unused: Any, bus: Bus) -> None:
    cpu.registers.set8(r8, alu.dec8(cpu.registers, cpu.registers.get8(r8)))


def _inc_r8(cpu: Cpu, r8: R8, _unused: Any, bus: Bus) -> None:
    cpu.registers.set8(r8, alu.inc8(cpu.registers, cpu.registers.get8(r8)))


_BINARY_OPS: dict[Op, Callable[[Registers, int, int], int | None]] = {
    Op.ADD: alu.add,
    Op.ADC: alu.adc,
    Op.SUB: alu.sub,
    Op.SBC: alu.sbc,
    Op.AND: alu.and_,
    Op.OR: alu.or_,
    Op.XOR: alu.xor,
    Op.CP: alu.cp,
}

_SHIFT_OPS: dict[Op, Callable[[Registers, int], int]] = {
    Op.RL: alu.rl,
    Op.RLC: alu.rlc,
    Op.RR: alu.rr,
    Op.RRC: alu.rrc,
    Op.SLA: alu.sla,
    Op.SRA: alu.sra,
    Op.SRL: alu.srl,
    Op.SWAP: alu.swap,
}

_FLAG_OPS: dict[Op, Callable[[Registers], None]] = {
    Op.RLA: alu.rla,
    Op.RRA: alu.rra,
    Op.RLCA: alu.rlca,
    Op.RRCA: alu.rrca,
    Op.DAA: alu.daa,
    Op.CPL: alu.cpl,
    Op.SCF: alu.scf,
    Op.CCF: alu.ccf,
}


def _build_dispatch() -> dict[tuple[Op, ArgKind, ArgKind], _Handler]:
    K = ArgKind
    table: dict[tuple[Op, ArgKind, ArgKind], _Handler] = {}

    for op, operation in _BINARY_OPS.items():
        for kind in (K.REG8, K.U8, K.ADDR_REG16):
            table[(op, K.REG8, kind)] = _binary_handler(kind, operation)

    for op, shift in _SHIFT_OPS.items():
        table[(op, K.REG8, K.NON)] = _shift_reg_handler(shift)
        table[(op, K.ADDR_REG16, K.NON)] = _memory_update(
            Op.LD, lambda cpu, value, shift=shift: shift(cpu.registers, value)
        )

    for op, operation in _FLAG_OPS.items():
        table[(op, K.NON, K.NON)] = _flag_handler(operation)

    table[(Op.SET, K.U8, K.REG8)] = _bit_reg_handler(alu.set_bit)
    table[(Op.SET, K.U8, K.ADDR_REG16)] = _bit_memory_handler(Op.WRITE, alu.set_bit)
    table[(Op.RES, K.U8, K.REG8)] = _bit_reg_handler(alu.reset_bit)
    table[(Op.RES, K.U8, K.ADDR_REG16)] = _bit_memory_handler(Op.WRITE, alu.reset_bit)
    table[(Op.BIT, K.U8, K.REG8)] = _bit_r8
    table[(Op.BIT, K.U8, K.ADDR_REG16)] = _bit_addr

    table.update(
        {
            (Op.ADD, K.REG16, K.I8): _add_r16_i8,
            (Op.ADD, K.REG16, K.REG16): _add_r16_r16,
            (Op.CALL, K.CC, K.U16): _call_cc,
            (Op.CALL, K.U16, K.NON): _call,
            (Op.DCD, K.U8, K.NON): _decode,
            (Op.DCD_CB, K.U8, K.NON): _decode_cb,
            (Op.DEC, K.ADDR_REG16, K.NON): _memory_update(
                Op.LD, lambda cpu, value: alu.dec8(cpu.registers, value)
            ),
            (Op.DEC, K.REG16, K.NON): _dec_r16,
            (Op.DEC, K.REG8, K.NON): _dec_r8,
            (Op.DI, K.NON, K.NON): _di,
            (Op.EI, K.NON, K.NON): _ei,
            (Op.EI_IMM, K.NON, K.NON): _ei_imm,
            (Op.HALT, K.NON, K.NON): _halt,
            (Op.INC, K.ADDR_REG16, K.NON): _memory_update(
                Op.LD, lambda cpu, value: alu.inc_memory(cpu.registers, value)
            ),
            (Op.INC, K.REG16, K.NON): _inc_r16,
            (Op.INC, K.REG8, K.NON): _inc_r8,
            (Op.INTERNAL, K.NON, K.NON): _nothing,
            (Op.JP, K.CC, K.U16): _jp_cc,
            (Op.JP, K.REG16, K.NON): _jp_r16,
            (Op.JP, K.U16, K.NON): _jp,
            (Op.JR, K.CC, K.I8): _jr_cc,
            (Op.JR, K.I8, K.NON): _jr,
            (Op.LD, K.ADDR_REG16, K.REG8): _ld_addr_r8,
            (Op.LD, K.ADDR_REG16, K.U8): _ld_addr_u8,
            (Op.LD, K.ADDR_REG16D, K.REG8): _ld_addr_dec_r8,
            (Op.LD, K.ADDR_REG16I, K.REG8): _ld_addr_inc_r8,
            (Op.LD, K.ADDR_REGD16, K.REG8): _ld_predec_r8,
            (Op.LD, K.ADDR_REGD16, K.U8): _ld_predec_u8,
            (Op.LD, K.ADDR_U16, K.REG16): _ld_addr_u16_r16,
            (Op.LD, K.ADDR_U16, K.REG8): _ld_addr_u16_r8,
            (Op.LD, K.ADDR_U16, K.U8): _store,
            (Op.LD, K.IN_ADDR_REG8, K.REG8): _ld_in_reg8_r8,
            (Op.LD, K.IN_ADDR_U8, K.REG8): _ld_in_u8_r8,
            (Op.LD, K.REG16, K.SPI8): _ld_r16_spi8,
            (Op.LD, K.REG16, K.U16): _ld_r16_u16,
            (Op.LD, K.REG16, K.REG16): _ld_r16_r16,
            (Op.LD, K.REG8, K.ADDR_REG16): _ld_r8_addr,
            (Op.LD, K.REG8, K.ADDR_REG16D): _ld_r8_addr_dec,
            (Op.LD, K.REG8, K.ADDR_REG16I): _ld_r8_addr_inc,
            (Op.LD, K.REG8, K.ADDR_U16): _ld_r8_addr_u16,
            (Op.LD, K.REG8, K.IN_ADDR_U8): _ld_r8_in_u8,
            (Op.LD, K.REG8, K.U8): _ld_r8_u8,
            (Op.LD, K.REG8, K.IN_ADDR_REG8): _ld_r8_in_reg8,
            (Op.LD, K.REG8, K.REG8): _ld_r8_r8,
            (Op.NOP, K.NON, K.NON): _nothing,
            (Op.READ, K.REG8, K.ADDR_U16): _read_r8_addr_u16,
            (Op.RET, K.CC, K.NON): _ret_cc,
            (Op.RST, K.U16, K.NON): _rst,
            (Op.WRITE, K.ADDR_U16, K.U8): _store,
        }
    )
    return table


_DISPATCH = _build_dispatch()