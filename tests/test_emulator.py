"""Tests for the fetch/execute cycle and the host-facing API."""

import pytest
import jax.numpy as jnp
from chipvm import (
    create_state, fetch, tick, run, load_program, check_key, change_key, press_key,
    release_key, acknowledge_redraw, acknowledge_sound, raise_for_fault, is_halted,
    is_awaiting_key, Fault, ProgramSizeError, AddressOutOfRangeError,
    StackUnderflowError, MachineFault, MAX_PROGRAM_SIZE, PROGRAM_START,
)
from conftest import setup_program


class TestFetch:

    def test_fetch_reads_big_endian_word(self, fresh_state):
        state = setup_program(fresh_state, [0xA2F0])
        state, instruction = fetch(state)

        assert instruction == 0xA2F0
        assert state.pc == 0x202

    def test_fetch_at_last_byte_faults(self, fresh_state):
        """A word needs two bytes, so pc = 0xFFF cannot be fetched."""
        state = fresh_state.replace(pc=jnp.asarray(0xFFF, dtype=jnp.uint16))
        state, _ = fetch(state)

        assert int(state.fault) == Fault.ADDRESS_OUT_OF_RANGE
        assert state.pc == 0xFFF

    def test_fetch_last_word(self, fresh_state):
        state = setup_program(fresh_state, [0x1234], address=0xFFE)
        state = state.replace(pc=jnp.asarray(0xFFE, dtype=jnp.uint16))
        state, instruction = fetch(state)

        assert instruction == 0x1234
        assert int(state.fault) == Fault.NONE


class TestTick:

    def test_tick_executes_one_instruction(self, fresh_state):
        state = setup_program(fresh_state, [0x6A42, 0x6B43])
        state = tick(state)

        assert state.V[0xA] == 0x42
        assert state.V[0xB] == 0
        assert state.pc == 0x202

    def test_jump_overrides_advance(self, fresh_state):
        state = setup_program(fresh_state, [0x1300])
        state = tick(state)
        assert state.pc == 0x300

    def test_skip_advances_four(self, fresh_state):
        state = setup_program(fresh_state, [0x3000])
        state = tick(state)
        assert state.pc == 0x204

    def test_timers_count_down(self, fresh_state):
        state = setup_program(fresh_state, [0x6505, 0xF515, 0x6000, 0x6000])
        state = tick(tick(state))
        assert state.delay_timer == 4

        state = tick(tick(state))
        assert state.delay_timer == 2

    def test_timers_stop_at_zero(self, fresh_state):
        state = setup_program(fresh_state, [0x6000, 0x6000])
        state = tick(tick(state))
        assert state.delay_timer == 0
        assert state.sound_timer == 0
        assert not state.need_sound

    def test_sound_timer_raises_need_sound(self, fresh_state):
        state = setup_program(fresh_state, [0x6302, 0xF318])
        state = tick(tick(state))

        assert state.sound_timer == 1
        assert state.need_sound

        state = acknowledge_sound(state)
        assert not state.need_sound

    def test_display_raises_need_redraw(self, fresh_state):
        state = setup_program(fresh_state, [0xD015])
        state = tick(state)
        assert state.need_redraw

        state = acknowledge_redraw(state)
        assert not state.need_redraw

    def test_halted_machine_does_not_advance(self, fresh_state):
        state = setup_program(fresh_state, [0x00EE, 0x6101])
        state = tick(state)
        assert is_halted(state)
        halted_pc = state.pc

        state = tick(state)
        assert state.pc == halted_pc
        assert state.V[1] == 0


class TestRun:

    def test_run_small_program(self, fresh_state):
        program = [
            0x6005,  # V0 = 5
            0x7003,  # V0 += 3
            0x1204,  # loop forever
        ]
        state = setup_program(fresh_state, program)
        state = run(state, 10)

        assert state.V[0] == 8
        assert state.pc == 0x204

    def test_run_subroutine(self, fresh_state):
        program = [
            0x2206,  # call 0x206
            0x6101,  # V1 = 1
            0x1204,  # loop forever
            0x7210,  # V2 += 0x10
            0x00EE,  # return
        ]
        state = setup_program(fresh_state, program)
        state = run(state, 8)

        assert state.V[1] == 1
        assert state.V[2] == 0x10
        assert state.stack.pointer == 0

    def test_run_zero_cycles(self, fresh_state):
        assert run(fresh_state, 0) is fresh_state

    def test_run_matches_tick(self, fresh_state):
        state = setup_program(fresh_state, [0x6005, 0xF015, 0x7001, 0x1204])
        ticked = state
        for _ in range(6):
            ticked = tick(ticked)
        ran = run(state, 6)

        assert jnp.array_equal(ran.V, ticked.V)
        assert ran.pc == ticked.pc
        assert ran.delay_timer == ticked.delay_timer

    def test_run_with_progress(self, fresh_state):
        state = setup_program(fresh_state, [0x7001, 0x1200])
        state = run(state, 40, progress=True)
        assert state.V[0] == 20

    def test_run_stops_at_fault(self, fresh_state):
        state = setup_program(fresh_state, [0x6001, 0x00EE, 0x6002])
        state = run(state, 10)

        assert int(state.fault) == Fault.STACK_UNDERFLOW
        assert state.V[0] == 1
        assert state.pc == 0x204


class TestLoadProgram:

    def test_load_program(self, fresh_state):
        state = load_program(fresh_state, bytes([0x12, 0x34, 0x56]))
        assert [int(b) for b in state.memory[PROGRAM_START:PROGRAM_START + 3]] == [0x12, 0x34, 0x56]
        assert state.pc == PROGRAM_START

    def test_load_program_from_list(self, fresh_state):
        state = load_program(fresh_state, [0x00, 0xE0])
        assert state.memory[PROGRAM_START + 1] == 0xE0

    def test_load_empty_program(self, fresh_state):
        state = load_program(fresh_state, b"")
        assert jnp.array_equal(state.memory, fresh_state.memory)

    def test_load_largest_program(self, fresh_state):
        state = load_program(fresh_state, bytes([0xAB]) * MAX_PROGRAM_SIZE)
        assert MAX_PROGRAM_SIZE == 3584
        assert state.memory[0xFFF] == 0xAB

    def test_load_oversized_program(self, fresh_state):
        with pytest.raises(ProgramSizeError) as excinfo:
            load_program(fresh_state, bytes(MAX_PROGRAM_SIZE + 1))

        assert excinfo.value.size == 3585
        assert excinfo.value.capacity == 3584
        assert jnp.sum(fresh_state.memory[PROGRAM_START:]) == 0

    def test_load_keeps_font(self, fresh_state):
        state = load_program(fresh_state, bytes(10))
        assert state.memory[0] == 0xF0


class TestKeypad:

    def test_press_and_release(self, fresh_state):
        state = press_key(fresh_state, 0x4)
        assert check_key(state, 0x4)
        assert not check_key(state, 0x5)

        state = release_key(state, 0x4)
        assert not check_key(state, 0x4)

    def test_change_key(self, fresh_state):
        state = change_key(fresh_state, 0xF, True)
        assert check_key(state, 0xF)

    @pytest.mark.parametrize("key", [-1, 16, 255])
    def test_change_key_out_of_range(self, fresh_state, key):
        with pytest.raises(ValueError):
            change_key(fresh_state, key, True)

    def test_wait_for_key_flow(self, fresh_state):
        program = [
            0xF30A,  # V3 = key
            0x6101,  # V1 = 1
        ]
        state = setup_program(fresh_state, program)
        state = tick(state)
        assert is_awaiting_key(state)
        assert state.pc == 0x202

        waiting = tick(tick(state))
        assert waiting.pc == 0x202
        assert waiting.V[1] == 0

        state = press_key(waiting, 0xB)
        assert not is_awaiting_key(state)
        assert state.V[3] == 0xB

        state = tick(state)
        assert state.V[1] == 1

    def test_release_does_not_satisfy_wait(self, fresh_state):
        state = setup_program(fresh_state, [0xF30A])
        state = tick(state)
        state = release_key(state, 0x2)

        assert is_awaiting_key(state)
        assert state.V[3] == 0

    def test_timers_freeze_while_waiting(self, fresh_state):
        state = setup_program(fresh_state, [0x6009, 0xF015, 0xF10A])
        state = run(state, 3)
        assert is_awaiting_key(state)
        frozen = state.delay_timer

        state = run(state, 5)
        assert state.delay_timer == frozen

    def test_key_wait_resumes_inside_run(self, fresh_state):
        program = [0xF20A, 0x7201, 0x1204]
        state = setup_program(fresh_state, program)
        state = run(state, 5)
        state = press_key(state, 0x7)
        state = run(state, 5)

        assert state.V[2] == 0x8


class TestFaults:

    def test_no_fault_returns_state(self, fresh_state):
        assert raise_for_fault(fresh_state) is fresh_state

    def test_raise_for_fault(self, fresh_state):
        state = setup_program(fresh_state, [0x00EE])
        state = tick(state)

        with pytest.raises(StackUnderflowError) as excinfo:
            raise_for_fault(state)
        assert excinfo.value.pc == 0x202
        assert excinfo.value.fault == Fault.STACK_UNDERFLOW

    def test_raise_for_fetch_fault(self, fresh_state):
        state = fresh_state.replace(pc=jnp.asarray(0xFFF, dtype=jnp.uint16))
        state = tick(state)

        with pytest.raises(AddressOutOfRangeError, match="address out of range"):
            raise_for_fault(state)

    def test_faults_share_base_class(self, fresh_state):
        state = fresh_state.with_fault(Fault.REGISTER_OUT_OF_RANGE)
        with pytest.raises(MachineFault):
            raise_for_fault(state)
