"""CHIP-8 miscellaneous instructions (Fxxx)."""

import jax.numpy as jnp
from chipvm.state import EmulatorState
from chipvm.decode import DecodedInstruction
from chipvm.constants import FONT_START, FONT_GLYPH_SIZE, MEMORY_SIZE, NUM_REGISTERS
from chipvm.errors import Fault
from chipvm.instructions.system import require


def execute_get_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX07 - Set VX to delay timer value."""
    return state.replace(V=state.V.at[instruction.x].set(state.delay_timer))


def execute_set_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX15 - Set delay timer to VX."""
    return state.replace(delay_timer=state.V[instruction.x])


def execute_set_sound_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX18 - Set sound timer to VX."""
    return state.replace(sound_timer=state.V[instruction.x])


def execute_add_to_index(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX1E - Add VX to I register."""
    return state.replace(I=jnp.astype(state.I + jnp.astype(state.V[instruction.x], jnp.uint16), jnp.uint16))


def execute_wait_for_key(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX0A - Wait for key press.

    Only raises the latch; the key lands in VX when ``change_key`` reports a press.
    """
    return state.replace(
        need_keystroke=jnp.ones((), dtype=jnp.bool_),
        key_register=jnp.astype(instruction.x, jnp.uint8),
    )


def execute_font_character(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX29 - Set I to location of sprite for digit VX."""
    font_address = FONT_START + jnp.astype(state.V[instruction.x], jnp.uint16) * FONT_GLYPH_SIZE
    return state.replace(I=jnp.astype(font_address, jnp.uint16))


def execute_bcd_conversion(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX33 - Store BCD representation of VX at I, I+1, I+2."""
    def _store(state):
        value = state.V[instruction.x]
        digits = jnp.array([
            value // 100,
            (value // 10) % 10,
            value % 10
        ], dtype=jnp.uint8)
        indices = jnp.arange(3) + state.I
        return state.replace(memory=state.memory.at[indices].set(digits))

    return require(jnp.astype(state.I, jnp.int32) + 3 <= MEMORY_SIZE, Fault.ADDRESS_OUT_OF_RANGE, _store, state)


def _advance_index(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    if not state.quirks.load_store_increments_i:
        return state
    return state.replace(I=jnp.astype(state.I + instruction.x + 1, jnp.uint16))


def execute_store_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX55 - Store V0 through VX in memory starting at I."""
    def _store(state):
        register_mask = jnp.arange(NUM_REGISTERS) <= instruction.x
        indices = jnp.where(register_mask, state.I + jnp.arange(NUM_REGISTERS), MEMORY_SIZE)
        new_memory = state.memory.at[indices].set(state.V, mode="drop")
        return _advance_index(state.replace(memory=new_memory), instruction)

    last_address = jnp.astype(state.I, jnp.int32) + instruction.x
    return require(last_address < MEMORY_SIZE, Fault.ADDRESS_OUT_OF_RANGE, _store, state)


def execute_load_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX65 - Load V0 through VX from memory starting at I."""
    def _load(state):
        register_mask = jnp.arange(NUM_REGISTERS) <= instruction.x
        memory_values = state.memory.at[state.I + jnp.arange(NUM_REGISTERS)].get(mode="clip")
        new_V = jnp.where(register_mask, memory_values, state.V)
        return _advance_index(state.replace(V=new_V), instruction)

    last_address = jnp.astype(state.I, jnp.int32) + instruction.x
    return require(last_address < MEMORY_SIZE, Fault.ADDRESS_OUT_OF_RANGE, _load, state)
