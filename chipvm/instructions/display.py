"""CHIP-8 display operations."""

import jax.numpy as jnp
from chipvm.state import EmulatorState
from chipvm.decode import DecodedInstruction
from chipvm.constants import SCREEN_WIDTH, SCREEN_HEIGHT, SPRITE_WIDTH, MEMORY_SIZE, FLAG_REGISTER
from chipvm.errors import Fault
from chipvm.instructions.system import require

# Pre-computed coordinate grids for display operations
xx, yy = jnp.meshgrid(jnp.arange(SCREEN_WIDTH), jnp.arange(SCREEN_HEIGHT), indexing='ij')


def execute_display(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """DXYN - Draw sprite at (VX, VY) with height N.

    Sprite pixels past an edge wrap to the opposite edge. VF is set when a set
    pixel gets cleared.
    """
    def _draw(state):
        sprite_x = jnp.astype(state.V[instruction.x], jnp.int32) % SCREEN_WIDTH
        sprite_y = jnp.astype(state.V[instruction.y], jnp.int32) % SCREEN_HEIGHT

        col_offset = (xx - sprite_x) % SCREEN_WIDTH
        row_offset = (yy - sprite_y) % SCREEN_HEIGHT
        in_sprite = (col_offset < SPRITE_WIDTH) & (row_offset < instruction.n)

        addresses = jnp.where(in_sprite, jnp.astype(state.I, jnp.int32) + row_offset, 0)
        sprite_bytes = jnp.astype(state.memory[addresses], jnp.int32)
        bit_shift = jnp.where(in_sprite, SPRITE_WIDTH - 1 - col_offset, 0)
        sprite = jnp.astype(((sprite_bytes >> bit_shift) & 1) * in_sprite, jnp.uint8)

        collision = jnp.any((state.display & sprite) == 1)
        return state.replace(
            display=state.display ^ sprite,
            V=state.V.at[FLAG_REGISTER].set(jnp.astype(collision, jnp.uint8)),
            need_redraw=jnp.ones((), dtype=jnp.bool_),
        )

    sprite_end = jnp.astype(state.I, jnp.int32) + instruction.n
    return require(sprite_end <= MEMORY_SIZE, Fault.ADDRESS_OUT_OF_RANGE, _draw, state)
