import pytest

from jimbot import alu
from jimbot.decoder import decode
from jimbot.executor import Cpu
from jimbot.fetcher import Bus
from jimbot.instruction import NON, Arg, ArgKind, Condition, CpuError, Instruction, Op
from jimbot.registers import R8, R16, Flag, Registers


def reg8(r):
    return Arg(ArgKind.REG8, r)


def reg16(r):
    return Arg(ArgKind.REG16, r)


def u8(v):
    return Arg(ArgKind.U8, v)


def u16(v):
    return Arg(ArgKind.U16, v)


def run(cpu, bus, instruction):
    pending = instruction
    while pending is not None:
        replacement = cpu.execute(pending.triple(), bus)
        pending = replacement if replacement is not None else pending.next


@pytest.fixture
def cpu():
    return Cpu()


@pytest.fixture
def bus():
    return Bus()


def test_ld_r8_u8_and_r8_r8(cpu, bus):
    assert cpu.execute((Op.LD, reg8(R8.A), u8(0x42)), bus) is None
    cpu.execute((Op.LD, reg8(R8.B), reg8(R8.A)), bus)
    assert cpu.registers.get8(R8.B) == 0x42


def test_accepts_instruction_object(cpu, bus):
    cpu.execute(Instruction(Op.LD, reg8(R8.D), u8(7)), bus)
    assert cpu.registers.get8(R8.D) == 7


def test_unknown_instruction_raises(cpu, bus):
    with pytest.raises(CpuError, match="EXE"):
        cpu.execute((Op.PUSH, NON, NON), bus)


def test_decode_immediate_executes_now(cpu, bus):
    cpu.registers.set8(R8.A, 5)
    assert cpu.execute((Op.DCD, u8(0x3C), NON), bus) is None
    assert cpu.registers.get8(R8.A) == 5 + 1


def test_decode_deferred_returns_chain(cpu, bus):
    result = cpu.execute((Op.DCD, u8(0x01), NON), bus)
    assert result == decode(0x01)[1]


def test_decode_unknown_opcode_raises(cpu, bus):
    with pytest.raises(CpuError):
        cpu.execute((Op.DCD, u8(0xD3), NON), bus)


def test_decode_cb_immediate(cpu, bus):
    cpu.registers.set8(R8.B, 0x00)
    # 0xCB 0xC0 is SET 0,B
    assert cpu.execute((Op.DCD_CB, u8(0xC0), NON), bus) is None
    assert cpu.registers.get8(R8.B) == 1


def test_call_then_ret_round_trip(cpu, bus):
    cpu.registers.set16(R16.PC, 0x1234)
    cpu.registers.set16(R16.SP, 0xFFFE)
    chain = cpu.execute((Op.CALL, u16(0x4000), NON), bus)
    assert cpu.registers.get16(R16.PC) == 0x4000
    push = Arg(ArgKind.ADDR_REGD16, R16.SP)
    assert list(chain) == [
        (Op.INTERNAL, NON, NON),
        (Op.LD, push, u8(0x12)),
        (Op.LD, push, u8(0x34)),
    ]
    run(cpu, bus, chain)
    assert cpu.registers.get16(R16.SP) == 0xFFFE - 2
    assert bus.get(0xFFFE - 1) == 0x12
    assert bus.get(0xFFFE - 2) == 0x34
    run(cpu, bus, decode(0xC9)[1])
    assert cpu.registers.get16(R16.PC) == 0x1234
    assert cpu.registers.get16(R16.SP) == 0xFFFE


def test_conditional_call_not_taken(cpu, bus):
    cpu.registers.set16(R16.PC, 0x200)
    cpu.registers.set_f(Flag.Z, True)
    result = cpu.execute((Op.CALL, Arg(ArgKind.CC, Condition.NZ), u16(0x4000)), bus)
    assert result is None
    assert cpu.registers.get16(R16.PC) == 0x200


def test_ret_cc_not_taken(cpu, bus):
    cpu.registers.set_f(Flag.C, False)
    assert cpu.execute((Op.RET, Arg(ArgKind.CC, Condition.C), NON), bus) is None


def test_jp_conditional(cpu, bus):
    cpu.registers.set_f(Flag.C, True)
    result = cpu.execute((Op.JP, Arg(ArgKind.CC, Condition.C), u16(0x1500)), bus)
    assert result.triple() == (Op.INTERNAL, NON, NON)
    assert cpu.registers.get16(R16.PC) == 0x1500


def test_jp_hl(cpu, bus):
    cpu.registers.set16(R16.HL, 0x3456)
    cpu.execute((Op.JP, reg16(R16.HL), NON), bus)
    assert cpu.registers.get16(R16.PC) == 0x3456


def test_jr_backwards(cpu, bus):
    cpu.registers.set16(R16.PC, 0x200)
    run(cpu, bus, Instruction(Op.JR, Arg(ArgKind.I8, -2), NON))
    assert cpu.registers.get16(R16.PC) == 0x200 - 2


def test_rst_pushes_pc(cpu, bus):
    cpu.registers.set16(R16.PC, 0x0150)
    cpu.registers.set16(R16.SP, 0xD000)
    run(cpu, bus, Instruction(Op.RST, u16(0x38), NON))
    assert cpu.registers.get16(R16.PC) == 0x38
    assert bus.get(0xD000 - 1) == 0x01
    assert bus.get(0xD000 - 2) == 0x50


def test_ld_addr_u16_sp_writes_little_endian(cpu, bus):
    cpu.registers.set16(R16.SP, 0xBEEF)
    run(cpu, bus, Instruction(Op.LD, Arg(ArgKind.ADDR_U16, 0xC100), reg16(R16.SP)))
    assert bus.get(0xC100) == 0xEF
    assert bus.get(0xC101) == 0xBE


def test_shift_on_memory_writes_back(cpu, bus):
    cpu.registers.set16(R16.HL, 0xC000)
    bus.set(0xC000, 0x81)
    result = cpu.execute((Op.SRL, Arg(ArgKind.ADDR_REG16, R16.HL), NON), bus)
    assert result.op is Op.LD
    assert result.p2.value == alu.srl(Registers(), 0x81)
    run(cpu, bus, result)
    assert bus.get(0xC000) == result.p2.value
    assert cpu.registers.get_f(Flag.C)


def test_set_and_res_on_memory(cpu, bus):
    cpu.registers.set16(R16.HL, 0xC010)
    hl = Arg(ArgKind.ADDR_REG16, R16.HL)
    chain = cpu.execute((Op.SET, u8(3), hl), bus)
    assert chain.op is Op.WRITE
    run(cpu, bus, chain)
    assert bus.get(0xC010) & (1 << 3)
    run(cpu, bus, Instruction(Op.RES, u8(3), hl))
    assert bus.get(0xC010) == 0


def test_interrupt_flags(cpu, bus):
    cpu.execute((Op.EI, NON, NON), bus)
    assert cpu.ime_requested and not cpu.ime
    cpu.execute((Op.EI_IMM, NON, NON), bus)
    assert cpu.ime
    cpu.execute((Op.DI, NON, NON), bus)
    assert not cpu.ime and not cpu.ime_requested
    cpu.execute((Op.HALT, NON, NON), bus)
    assert cpu.halted


def test_xor_a_a_clears_and_sets_zero(cpu, bus):
    cpu.registers.set8(R8.A, 0x5A)
    cpu.execute((Op.XOR, reg8(R8.A), reg8(R8.A)), bus)
    assert cpu.registers.get8(R8.A) == 0
    assert cpu.registers.get_f(Flag.Z)


def test_cp_keeps_a(cpu, bus):
    cpu.registers.set8(R8.A, 0x30)
    cpu.execute((Op.CP, reg8(R8.A), u8(0x30)), bus)
    assert cpu.registers.get8(R8.A) == 0x30
    assert cpu.registers.get_f(Flag.Z)
    assert cpu.registers.get_f(Flag.N)


def test_high_page_store_and_load(cpu, bus):
    cpu.registers.set8(R8.A, 0x99)
    cpu.execute((Op.LD, Arg(ArgKind.IN_ADDR_U8, 0x80), reg8(R8.A)), bus)
    assert bus.get(0xFF80) == 0x99
    cpu.registers.set8(R8.C, 0x80)
    cpu.execute((Op.LD, reg8(R8.B), Arg(ArgKind.IN_ADDR_REG8, R8.C)), bus)
    assert cpu.registers.get8(R8.B) == 0x99


def test_add_sp_i8_takes_two_internal_cycles(cpu, bus):
    cpu.registers.set16(R16.SP, 0x1000)
    chain = cpu.execute((Op.ADD, reg16(R16.SP), Arg(ArgKind.I8, 4)), bus)
    assert list(chain) == [(Op.INTERNAL, NON, NON)] * 2
    assert cpu.registers.get16(R16.SP) == 0x1000 + 4


def test_ld_r8_addr_u16_reads_next_cycle(cpu, bus):
    bus.set(0xC200, 0x77)
    result = cpu.execute((Op.LD, reg8(R8.A), Arg(ArgKind.ADDR_U16, 0xC200)), bus)
    assert result.op is Op.READ
    assert cpu.registers.get8(R8.A) == 0
    run(cpu, bus, result)
    assert cpu.registers.get8(R8.A) == 0x77


def test_hl_increment_and_decrement_loads(cpu, bus):
    cpu.registers.set16(R16.HL, 0xC300)
    cpu.registers.set8(R8.A, 0x11)
    cpu.execute((Op.LD, Arg(ArgKind.ADDR_REG16I, R16.HL), reg8(R8.A)), bus)
    assert bus.get(0xC300) == 0x11
    assert cpu.registers.get16(R16.HL) == 0xC300 + 1
    cpu.execute((Op.LD, reg8(R8.B), Arg(ArgKind.ADDR_REG16D, R16.HL)), bus)
    assert cpu.registers.get16(R16.HL) == 0xC300


def test_push_bc_pop_de_round_trip(cpu, bus):
    cpu.registers.set16(R16.SP, 0xDFF0)
    cpu.registers.set16(R16.BC, 0xABCD)
    run(cpu, bus, decode(0xC5)[1])
    run(cpu, bus, decode(0xD1)[1])
    assert cpu.registers.get16(R16.DE) == 0xABCD
    assert cpu.registers.get16(R16.SP) == 0xDFF0


def test_inc_dec_memory(cpu, bus):
    cpu.registers.set16(R16.HL, 0xC400)
    bus.set(0xC400, 0x10)
    hl = Arg(ArgKind.ADDR_REG16, R16.HL)
    run(cpu, bus, Instruction(Op.INC, hl, NON))
    assert bus.get(0xC400) == 0x10 + 1
    run(cpu, bus, Instruction(Op.DEC, hl, NON))
    assert bus.get(0xC400) == 0x10
    assert cpu.registers.get_f(Flag.N)