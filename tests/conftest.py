"""Test configuration and fixtures for CHIP-8 emulator tests."""

import pytest
import jax.numpy as jnp
from chipvm import create_state


@pytest.fixture
def fresh_state():
    """Provide a fresh emulator state for each test."""
    return create_state()


@pytest.fixture
def shift_vx_state():
    """Provide a fresh state whose shifts read VX."""
    return create_state(quirks={"shift_uses_vy": False})


@pytest.fixture
def reference_state():
    """Provide a fresh state using the "reference" quirks preset."""
    return create_state(quirks="reference")


def setup_sprite_in_memory(state, address, sprite_bytes):
    """Helper to put sprite data in memory."""
    return state.replace(
        memory=state.memory.at[address:address+len(sprite_bytes)].set(
            jnp.array(sprite_bytes, dtype=jnp.uint8)
        )
    )


def setup_program(state, words, address=0x200):
    """Helper to put big-endian instruction words in memory."""
    program = []
    for word in words:
        program += [(word >> 8) & 0xFF, word & 0xFF]
    return setup_sprite_in_memory(state, address, program)
