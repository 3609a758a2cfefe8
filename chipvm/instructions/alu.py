"""CHIP-8 ALU operations (8xxx).

Every operation reads VX and VY before writing anything, then writes VF and
finally VX, so ``8FY4`` leaves the sum in VF rather than the carry.
"""

import jax.numpy as jnp
from chipvm.state import EmulatorState
from chipvm.decode import DecodedInstruction
from chipvm.constants import FLAG_REGISTER


def _u8(value) -> jnp.ndarray:
    return jnp.astype(value, jnp.uint8)


def alu_set(vx: int, vy: int) -> tuple[int, int]:
    """8XY0 - Set: VX = VY."""
    return vy, None


def alu_or(vx: int, vy: int) -> tuple[int, int]:
    """8XY1 - Binary OR: VX |= VY."""
    return vx | vy, None


def alu_and(vx: int, vy: int) -> tuple[int, int]:
    """8XY2 - Binary AND: VX &= VY."""
    return vx & vy, None


def alu_xor(vx: int, vy: int) -> tuple[int, int]:
    """8XY3 - Logical XOR: VX ^= VY."""
    return vx ^ vy, None


def alu_add(vx: int, vy: int) -> tuple[int, int]:
    """8XY4 - Add: VX += VY, set carry flag."""
    result = jnp.astype(vx, jnp.uint16) + jnp.astype(vy, jnp.uint16)
    carry = result > 255
    return result & 0xFF, carry


def alu_sub_xy(vx: int, vy: int) -> tuple[int, int]:
    """8XY5 - Subtract: VX -= VY, VF = no borrow."""
    no_borrow = vx >= vy
    result = (jnp.astype(vx, jnp.int32) - vy) & 0xFF
    return result, no_borrow


def alu_sub_yx(vx: int, vy: int) -> tuple[int, int]:
    """8XY7 - Subtract: VX = VY - VX, VF = no borrow."""
    no_borrow = vy >= vx
    result = (jnp.astype(vy, jnp.int32) - vx) & 0xFF
    return result, no_borrow


def alu_shift_right(source: int) -> tuple[int, int]:
    """8XY6 - Shift right, VF = bit shifted out."""
    shifted_bit = source & 1
    return source >> 1, shifted_bit


def alu_shift_left(source: int) -> tuple[int, int]:
    """8XYE - Shift left, VF = bit shifted out."""
    shifted_bit = (source & 0x80) >> 7
    return (jnp.astype(source, jnp.uint16) << 1) & 0xFF, shifted_bit


def _write_result(state: EmulatorState, x, result, flag) -> EmulatorState:
    new_V = state.V
    if flag is not None:
        new_V = new_V.at[FLAG_REGISTER].set(_u8(flag))
    new_V = new_V.at[x].set(_u8(result))
    return state.replace(V=new_V)


def make_alu_instruction(operation):
    """Factory for two-operand ALU instructions."""
    def alu_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        vx = state.V[instruction.x]
        vy = state.V[instruction.y]
        result, flag = operation(vx, vy)
        return _write_result(state, instruction.x, result, flag)
    return alu_instruction


def make_logic_instruction(operation):
    """Factory for OR/AND/XOR, which clear VF under ``logic_resets_vf``."""
    def logic_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        vx = state.V[instruction.x]
        vy = state.V[instruction.y]
        result, _ = operation(vx, vy)
        flag = 0 if state.quirks.logic_resets_vf else None
        return _write_result(state, instruction.x, result, flag)
    return logic_instruction


def make_shift_instruction(operation):
    """Factory for shifts. The source is VY under ``shift_uses_vy``, VX otherwise."""
    def shift_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        source = state.V[instruction.y] if state.quirks.shift_uses_vy else state.V[instruction.x]
        result, flag = operation(source)
        return _write_result(state, instruction.x, result, flag)
    return shift_instruction


execute_set_register = make_alu_instruction(alu_set)
execute_or = make_logic_instruction(alu_or)
execute_and = make_logic_instruction(alu_and)
execute_xor = make_logic_instruction(alu_xor)
execute_add_registers = make_alu_instruction(alu_add)
execute_sub_xy = make_alu_instruction(alu_sub_xy)
execute_shift_right = make_shift_instruction(alu_shift_right)
execute_sub_yx = make_alu_instruction(alu_sub_yx)
execute_shift_left = make_shift_instruction(alu_shift_left)
