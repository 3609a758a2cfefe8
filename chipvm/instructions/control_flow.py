"""CHIP-8 control flow instructions."""

import jax
import jax.lax
import jax.numpy as jnp
from chipvm.state import EmulatorState
from chipvm.decode import DecodedInstruction
from chipvm.constants import NUM_REGISTERS
from chipvm.errors import Fault
from chipvm.stack import can_push, push
from chipvm.instructions.system import require


def execute_jump(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """1NNN - Jump to address NNN."""
    return state.replace(pc=jnp.astype(instruction.nnn, jnp.uint16))


def execute_call(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """2NNN - Call subroutine at NNN."""
    def _call(state):
        state = state.replace(stack=push(state.stack, state.pc))
        return execute_jump(state, instruction)

    return require(can_push(state.stack), Fault.STACK_OVERFLOW, _call, state)


def make_skip_instruction(condition_fn):
    """Factory for skip instructions."""
    def skip_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        condition = condition_fn(state, instruction)
        return jax.lax.cond(
            condition,
            lambda s: s.replace(pc=s.pc + 2),
            lambda s: s,
            state
        )
    return skip_instruction


execute_skip_if_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == inst.nn
)

execute_skip_if_not_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != inst.nn
)

execute_skip_if_equal_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == state.V[inst.y]
)

_skip_if_not_equal_vy = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != state.V[inst.y]
)

_skip_if_not_equal_low_byte_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != state.V[inst.nn & 0xF]
)

execute_skip_if_key_pressed = make_skip_instruction(
    lambda state, inst: state.keypad[state.V[inst.x] & 0xF]
)

execute_skip_if_key_not_pressed = make_skip_instruction(
    lambda state, inst: ~state.keypad[state.V[inst.x] & 0xF]
)


def execute_skip_if_not_equal_register(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """9XY0 - Skip if VX != VY.

    With ``sne_register_low_byte`` the second operand is the register numbered by the
    whole low byte, and any number above 0xF halts the machine.
    """
    if not state.quirks.sne_register_low_byte:
        return _skip_if_not_equal_vy(state, instruction)

    return require(
        instruction.nn < NUM_REGISTERS,
        Fault.REGISTER_OUT_OF_RANGE,
        lambda s: _skip_if_not_equal_low_byte_register(s, instruction),
        state
    )


def execute_jump_with_offset(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """BNNN - Jump to address NNN + V0 (NNN + VX with ``jump_with_vx``)."""
    register = instruction.x if state.quirks.jump_with_vx else 0
    jump_address = jnp.astype(instruction.nnn + jnp.astype(state.V[register], jnp.uint16), jnp.uint16)
    return state.replace(pc=jump_address)
