"""CHIP-8 stack operations.

``push`` and ``pop`` assume the caller checked ``can_push``/``can_pop``; the
instructions latch a stack fault instead of calling them when the check fails.
"""

import jax.numpy as jnp
from chipvm.constants import ADDRESS_MASK, STACK_SIZE
from chipvm.state import StackState


def can_push(stack: StackState) -> jnp.ndarray:
    """Whether a free slot remains."""
    return stack.pointer < STACK_SIZE


def can_pop(stack: StackState) -> jnp.ndarray:
    """Whether at least one return address is held."""
    return stack.pointer > 0


def push(stack: StackState, address: jnp.ndarray) -> StackState:
    """Push address onto stack."""
    masked_address = jnp.astype(address & ADDRESS_MASK, jnp.uint16)
    new_data = stack.data.at[stack.pointer].set(masked_address)
    return stack.replace(data=new_data, pointer=jnp.astype(stack.pointer + 1, jnp.uint8))


def pop(stack: StackState) -> tuple[StackState, jnp.ndarray]:
    """Pop address from stack."""
    new_pointer = jnp.astype(stack.pointer - 1, jnp.uint8)
    popped_address = stack.data[new_pointer]
    new_data = stack.data.at[new_pointer].set(0)
    return stack.replace(data=new_data, pointer=new_pointer), popped_address
