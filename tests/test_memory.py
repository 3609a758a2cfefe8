"""Tests for register and index operations (6XNN, 7XNN, ANNN, CXNN)."""

import pytest
import jax
import jax.numpy as jnp
from chipvm import execute, create_state


class TestSetAndAdd:
    """Test immediate loads and adds."""

    def test_set_register(self, fresh_state):
        """6XNN - Set VX = NN."""
        state = execute(fresh_state, 0x6A42)
        assert state.V[0xA] == 0x42

    def test_set_every_register(self, fresh_state):
        """6XNN addresses all sixteen registers."""
        state = fresh_state
        for x in range(16):
            state = execute(state, 0x6000 | (x << 8) | (x + 1))
        for x in range(16):
            assert state.V[x] == x + 1

    def test_add_immediate(self, fresh_state):
        """7XNN - Add NN to VX."""
        state = execute(fresh_state, 0x6310)
        state = execute(state, 0x7305)
        assert state.V[3] == 0x15

    def test_add_immediate_wraps_without_flag(self, fresh_state):
        """7XNN - 0xFF + 2 wraps to 1 and leaves VF alone."""
        state = fresh_state.replace(V=fresh_state.V.at[15].set(0x07))
        state = execute(state, 0x63FF)
        state = execute(state, 0x7302)

        assert state.V[3] == 0x01
        assert state.V[15] == 0x07

    def test_add_immediate_to_vf(self, fresh_state):
        """7FNN adds to VF like any other register."""
        state = execute(fresh_state, 0x6FFE)
        state = execute(state, 0x7F03)
        assert state.V[15] == 0x01


class TestIndex:
    """Test ANNN."""

    def test_set_index(self, fresh_state):
        """ANNN - Set I = NNN."""
        state = execute(fresh_state, 0xA123)
        assert state.I == 0x123

    def test_set_index_max(self, fresh_state):
        """ANNN keeps all 12 bits."""
        state = execute(fresh_state, 0xAFFF)
        assert state.I == 0xFFF

    def test_set_index_keeps_pc(self, fresh_state):
        """Non-jump instructions leave pc to the fetch step."""
        initial_pc = fresh_state.pc
        state = execute(fresh_state, 0xA123)
        assert state.pc == initial_pc


class TestRandom:
    """Test CXNN."""

    def test_random_zero_mask(self, fresh_state):
        """CX00 always gives 0."""
        state = fresh_state.replace(V=fresh_state.V.at[4].set(0x99))
        for _ in range(5):
            state = execute(state, 0xC400)
            assert state.V[4] == 0

    def test_random_respects_mask(self, fresh_state):
        """Only bits of NN can be set."""
        state = fresh_state
        for _ in range(20):
            state = execute(state, 0xC10F)
            assert int(state.V[1]) & 0xF0 == 0

    def test_random_is_deterministic_for_a_key(self):
        """The same key gives the same value."""
        first = execute(create_state(jax.random.PRNGKey(7)), 0xC2FF)
        second = execute(create_state(jax.random.PRNGKey(7)), 0xC2FF)
        assert first.V[2] == second.V[2]

    def test_random_advances_key(self, fresh_state):
        """Every CXNN consumes the key it was given."""
        state = execute(fresh_state, 0xC2FF)
        assert not jnp.array_equal(state.rng, fresh_state.rng)

    def test_random_sequence_varies(self, fresh_state):
        """Consecutive draws do not repeat one value."""
        state = fresh_state
        values = set()
        for _ in range(16):
            state = execute(state, 0xC0FF)
            values.add(int(state.V[0]))
        assert len(values) > 1
