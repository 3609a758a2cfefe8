"""Main CHIP-8 emulator execution engine.

One cycle (``tick``) fetches the word at ``pc``, runs exactly one handler and
updates the timers. FX0A moves the machine into the awaiting-key state: ``tick``
then leaves the state untouched until ``change_key`` reports a press. A latched
fault halts the machine the same way, permanently.
"""

from functools import partial

import jax
import jax.lax
import jax.numpy as jnp
import numpy as np
from chipvm.state import EmulatorState
from chipvm.decode import decode, Operation
from chipvm.constants import PROGRAM_START, MAX_PROGRAM_SIZE, MEMORY_SIZE, NUM_KEYS
from chipvm.errors import Fault, FAULT_ERRORS, ProgramSizeError
from chipvm.logging import logger, trace_instruction, scan_with_progress
from chipvm.instructions.system import no_op, execute_clear_screen, execute_return
from chipvm.instructions.control_flow import (
    execute_jump, execute_call, execute_skip_if_equal_immediate,
    execute_skip_if_not_equal_immediate, execute_skip_if_equal_register,
    execute_skip_if_not_equal_register, execute_jump_with_offset,
    execute_skip_if_key_pressed, execute_skip_if_key_not_pressed,
)
from chipvm.instructions.alu import (
    execute_set_register, execute_or, execute_and, execute_xor, execute_add_registers,
    execute_sub_xy, execute_shift_right, execute_sub_yx, execute_shift_left,
)
from chipvm.instructions.memory import execute_set, execute_add, execute_set_index, execute_random
from chipvm.instructions.display import execute_display
from chipvm.instructions.misc import (
    execute_get_delay_timer, execute_wait_for_key, execute_set_delay_timer,
    execute_set_sound_timer, execute_add_to_index, execute_font_character,
    execute_bcd_conversion, execute_store_registers, execute_load_registers,
)

HANDLERS = {
    Operation.NOOP: no_op,
    Operation.CLS: execute_clear_screen,
    Operation.RET: execute_return,
    Operation.JP: execute_jump,
    Operation.CALL: execute_call,
    Operation.SE_VX_BYTE: execute_skip_if_equal_immediate,
    Operation.SNE_VX_BYTE: execute_skip_if_not_equal_immediate,
    Operation.SE_VX_VY: execute_skip_if_equal_register,
    Operation.LD_VX_BYTE: execute_set,
    Operation.ADD_VX_BYTE: execute_add,
    Operation.LD_VX_VY: execute_set_register,
    Operation.OR: execute_or,
    Operation.AND: execute_and,
    Operation.XOR: execute_xor,
    Operation.ADD_VX_VY: execute_add_registers,
    Operation.SUB: execute_sub_xy,
    Operation.SHR: execute_shift_right,
    Operation.SUBN: execute_sub_yx,
    Operation.SHL: execute_shift_left,
    Operation.SNE_VX_VY: execute_skip_if_not_equal_register,
    Operation.LD_I: execute_set_index,
    Operation.JP_V0: execute_jump_with_offset,
    Operation.RND: execute_random,
    Operation.DRW: execute_display,
    Operation.SKP: execute_skip_if_key_pressed,
    Operation.SKNP: execute_skip_if_key_not_pressed,
    Operation.LD_VX_DT: execute_get_delay_timer,
    Operation.LD_VX_K: execute_wait_for_key,
    Operation.LD_DT_VX: execute_set_delay_timer,
    Operation.LD_ST_VX: execute_set_sound_timer,
    Operation.ADD_I_VX: execute_add_to_index,
    Operation.LD_F_VX: execute_font_character,
    Operation.LD_B_VX: execute_bcd_conversion,
    Operation.LD_I_VX: execute_store_registers,
    Operation.LD_VX_I: execute_load_registers,
}

_BRANCHES = [HANDLERS[operation] for operation in sorted(Operation)]


def execute(state: EmulatorState, instruction: int) -> EmulatorState:
    """Execute single CHIP-8 instruction. Unmapped instructions are skipped silently."""
    decoded_instruction = decode(instruction)
    return jax.lax.switch(
        jnp.astype(decoded_instruction.op, jnp.int32),
        _BRANCHES,
        state, decoded_instruction
    )


def _pack_u16(high: jnp.uint8, low: jnp.uint8) -> jnp.uint16:
    """Pack two bytes into uint16."""
    return (high.astype(jnp.uint16) << 8) | low.astype(jnp.uint16)


def fetch(state: EmulatorState) -> tuple[EmulatorState, jnp.uint16]:
    """Fetch next instruction from memory.

    A ``pc`` leaving no room for a whole word latches ``ADDRESS_OUT_OF_RANGE`` and
    leaves ``pc`` where it was.
    """
    in_range = state.pc < MEMORY_SIZE - 1
    address = jnp.minimum(state.pc, MEMORY_SIZE - 2)
    instruction = _pack_u16(state.memory[address], state.memory[address + 1])
    state = jax.lax.cond(
        in_range,
        lambda s: s.replace(pc=s.pc + 2),
        lambda s: s.with_fault(Fault.ADDRESS_OUT_OF_RANGE),
        state
    )
    return state, instruction


def update_timers(state: EmulatorState) -> EmulatorState:
    """Count both timers down by one; a running sound timer raises ``need_sound``."""
    sound_active = state.sound_timer > 0
    return state.replace(
        delay_timer=jnp.astype(jnp.where(state.delay_timer > 0, state.delay_timer - 1, 0), jnp.uint8),
        sound_timer=jnp.astype(jnp.where(sound_active, state.sound_timer - 1, 0), jnp.uint8),
        need_sound=state.need_sound | sound_active,
    )


def is_halted(state: EmulatorState) -> jnp.ndarray:
    """Whether a fault stopped the machine."""
    return state.fault != int(Fault.NONE)


def is_awaiting_key(state: EmulatorState) -> jnp.ndarray:
    """Whether FX0A is waiting for ``change_key`` to report a press."""
    return state.need_keystroke


def _cycle(state: EmulatorState) -> EmulatorState:
    fetched, instruction = fetch(state)
    if state.debug:
        trace_instruction(state.pc, instruction)
    return jax.lax.cond(
        is_halted(fetched),
        lambda s: s,
        lambda s: update_timers(execute(s, instruction)),
        fetched
    )


def tick(state: EmulatorState) -> EmulatorState:
    """Run one fetch/decode/execute/timer cycle. No-op while awaiting a key or halted."""
    return jax.lax.cond(
        is_awaiting_key(state) | is_halted(state),
        lambda s: s,
        _cycle,
        state
    )


def _run_cycle(state, _):
    return tick(state), None


@partial(jax.jit, static_argnums=1)
def _run(state: EmulatorState, num_cycles: int) -> EmulatorState:
    state, _ = jax.lax.scan(_run_cycle, state, length=num_cycles)
    return state


@partial(jax.jit, static_argnums=1)
def _run_with_progress(state: EmulatorState, num_cycles: int) -> EmulatorState:
    body = scan_with_progress(num_cycles)(_run_cycle)
    state, _ = jax.lax.scan(body, state, jnp.arange(num_cycles))
    return state


def run(state: EmulatorState, num_cycles: int, progress: bool = False) -> EmulatorState:
    """Run ``num_cycles`` cycles as one compiled scan.

    Cycles issued while awaiting a key or halted are no-ops, so the caller can
    check ``need_keystroke`` afterwards, deliver the key and run again.
    """
    if num_cycles <= 0:
        return state
    if progress:
        return _run_with_progress(state, num_cycles)
    return _run(state, num_cycles)


def load_program(state: EmulatorState, image) -> EmulatorState:
    """Copy a program image into memory starting at 0x200.

    Args:
        state: Emulator state to load into.
        image: bytes, bytearray, memoryview or sequence of ints in [0, 255].

    Returns:
        New state holding the program. The given state is never modified.

    Raises:
        ProgramSizeError: If the image is larger than the 3584 bytes of program memory.
    """
    program = bytes(image)
    if len(program) > MAX_PROGRAM_SIZE:
        logger.error(f"Program of {len(program)} bytes does not fit in {MAX_PROGRAM_SIZE} bytes")
        raise ProgramSizeError(len(program), MAX_PROGRAM_SIZE)

    logger.debug(f"Loaded program ({len(program)} bytes at 0x{PROGRAM_START:03X})")
    if not program:
        return state
    program_array = jnp.asarray(np.frombuffer(program, dtype=np.uint8))
    new_memory = state.memory.at[PROGRAM_START:PROGRAM_START + len(program)].set(program_array)
    return state.replace(memory=new_memory)


def check_key(state: EmulatorState, key: int) -> jnp.ndarray:
    """Pressed state of a keypad key."""
    return state.keypad[key]


def change_key(state: EmulatorState, key: int, pressed: bool) -> EmulatorState:
    """Report a key transition from the host.

    A press while awaiting a key stores ``key`` in the register named by the
    pending FX0A and resumes normal cycling.

    Raises:
        ValueError: If ``key`` is not in 0..15.
    """
    if isinstance(key, (int, np.integer)) and not 0 <= key < NUM_KEYS:
        raise ValueError(f"Key must be in 0..{NUM_KEYS - 1}, got {key}")

    pressed = jnp.asarray(pressed, dtype=jnp.bool_)
    deliver = pressed & state.need_keystroke
    delivered_V = state.V.at[state.key_register].set(jnp.astype(key, jnp.uint8))
    return state.replace(
        keypad=state.keypad.at[key].set(pressed),
        V=jnp.where(deliver, delivered_V, state.V),
        need_keystroke=state.need_keystroke & ~deliver,
    )


def press_key(state: EmulatorState, key: int) -> EmulatorState:
    """Shorthand for ``change_key(state, key, True)``."""
    return change_key(state, key, True)


def release_key(state: EmulatorState, key: int) -> EmulatorState:
    """Shorthand for ``change_key(state, key, False)``."""
    return change_key(state, key, False)


def acknowledge_redraw(state: EmulatorState) -> EmulatorState:
    """Clear ``need_redraw`` once the display has been rendered."""
    return state.replace(need_redraw=jnp.zeros((), dtype=jnp.bool_))


def acknowledge_sound(state: EmulatorState) -> EmulatorState:
    """Clear ``need_sound`` once the host produced the beep."""
    return state.replace(need_sound=jnp.zeros((), dtype=jnp.bool_))


def raise_for_fault(state: EmulatorState) -> EmulatorState:
    """Raise the typed error matching a latched fault, return the state otherwise.

    Raises:
        MachineFault: The subclass matching ``state.fault``, with the halted ``pc``.
    """
    fault = Fault(int(state.fault))
    if fault == Fault.NONE:
        return state
    error = FAULT_ERRORS[fault](int(state.pc))
    logger.error(str(error))
    raise error
