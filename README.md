# jimbot

The instruction core of a handheld game console emulator, in plain Python
with no dependencies. An instruction is carried out as a short chain of
`(op, p1, p2)` steps, one step per machine cycle, with operand bytes read
from memory at `PC` as the chain goes.

## Modules

- `jimbot.registers`: `Registers` holds the 8-bit registers named by `R8`
  (`A`, `B`, `C`, `D`, `E`, `F`, `H`, `L`, `S`, `P`, `PCL`, `PCH`) and reads and
  writes them in the pairs named by `R16` (`AF`, `BC`, `DE`, `HL`, `SP`, `PC`).
  `get16i` / `get16d` return a pair and then step it; `getd16` steps it first and
  returns the new value. `get_f` / `set_f` work on the bits of `Flag`
  (`Z`, `N`, `H`, `C`). Writes to `F` keep only its upper nibble; 16-bit values
  wrap.
- `jimbot.instruction`: `Op`, `Condition`, `ArgKind`, the frozen operand `Arg`
  (with `NON` for "no operand"), and `Instruction`, a linked step with a `next`
  field. `Instruction.chain(*triples)` builds a chain, `then(op, p1, p2)` returns
  a new chain with one step added, `triple()` gives the step's
  `(op, p1, p2)`, and iterating over an instruction yields the triples of the
  whole chain. `CpuError` is raised for unknown opcodes and steps.
- `jimbot.fetcher`: `Bus` is a flat 64 KiB memory with `get(address)` and
  `set(address, value)`; addresses outside it raise `ValueError`.
  `fetch(triple, registers, bus)` reads at most one byte at `PC` into the first
  operand still waiting for one, and returns `(ready, triple)`. `ready` is
  `False` when the step must wait another cycle (the first byte of a 16-bit
  operand, or a high-page address) before it executes.
- `jimbot.decoder`: `decode(byte)` returns `(immediate, chain)` for a base
  opcode; `immediate` means the step executes in the cycle it is decoded.
- `jimbot.decoder_cb`: `decode_cb(byte)` does the same for the byte after a
  `0xCB` prefix.
- `jimbot.alu`: the arithmetic, logic, rotate, shift and bit operations
  (`add`, `adc`, `sub`, `sbc`, `cp`, `and_`, `or_`, `xor`, `inc8`, `dec8`,
  `inc_memory`, `add16`, `add_signed`, `rl`, `rlc`, `rr`, `rrc`, `sla`, `sra`,
  `srl`, `swap`, `bit`, `set_bit`, `reset_bit`, `rla`, `rra`, `rlca`, `rrca`,
  `daa`, `cpl`, `scf`, `ccf`) with their flag effects, and
  `check_condition(registers, condition)`.
- `jimbot.executor`: `Cpu` holds `registers`, `halted`, `ime` and
  `ime_requested`. `Cpu.execute(step, bus)` carries out one step (a triple or an
  `Instruction`) and returns the chain that replaces the current one, or `None`
  when the current chain just goes on to its `next` step. `bus` may be a `Bus`
  or any object with the same `get` and `set`.

## Example

Decoding and running `LD A, 0x42`:

```python
from jimbot.executor import Cpu
from jimbot.fetcher import Bus, fetch
from jimbot.instruction import NON, Arg, ArgKind, Op
from jimbot.registers import R8, R16

cpu = Cpu()
bus = Bus(bytes([0x3E, 0x42]))

# Cycle 1: read the opcode and decode it.
ready, step = fetch((Op.DCD, Arg(ArgKind.FETCH_U8), NON), cpu.registers, bus)
chain = cpu.execute(step, bus)          # LD A, <byte to fetch>

# Cycle 2: read the operand and execute.
ready, step = fetch(chain.triple(), cpu.registers, bus)
cpu.execute(step, bus)

assert cpu.registers.get8(R8.A) == 0x42
assert cpu.registers.get16(R16.PC) == 2
```

## What it does not do

The package carries out single steps; it has no loop that drives the CPU
cycle by cycle, and does not service interrupts, although `Cpu` keeps the
`halted`, `ime` and `ime_requested` state that `HALT`, `EI`, `DI` and `RETI`
set. There is no memory map beyond the flat `Bus`, and no cartridge loading,
graphics, sound, timer or joypad.

## Tests

Install the `test` extra and run `pytest`.