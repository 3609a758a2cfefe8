"""CHIP-8 system instructions (0x0xxx)."""

import jax
import jax.lax
import jax.numpy as jnp
from chipvm.state import EmulatorState
from chipvm.decode import DecodedInstruction
from chipvm.errors import Fault
from chipvm.stack import can_pop, pop


def no_op(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """No operation. Also handles every unmapped instruction."""
    return state


def require(condition, fault: Fault, action, state: EmulatorState) -> EmulatorState:
    """Apply ``action`` to the state if ``condition`` holds, otherwise latch ``fault``."""
    return jax.lax.cond(condition, action, lambda s: s.with_fault(fault), state)


def execute_clear_screen(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """00E0 - Clear display."""
    return state.replace(display=jnp.zeros_like(state.display))


def execute_return(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """00EE - Return from subroutine."""
    def _return(state):
        stack, address = pop(state.stack)
        return state.replace(stack=stack, pc=address)

    return require(can_pop(state.stack), Fault.STACK_UNDERFLOW, _return, state)
