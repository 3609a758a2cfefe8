"""CHIP-8 emulator state structures."""

import jax
import jax.numpy as jnp
from flax.struct import dataclass, PyTreeNode, field

from chipvm.config import Quirks, load_quirks
from chipvm.constants import (
    MEMORY_SIZE, PROGRAM_START, FONT_START, FONT_DATA, SCREEN_WIDTH, SCREEN_HEIGHT,
    STACK_SIZE, NUM_REGISTERS, NUM_KEYS,
)
from chipvm.errors import Fault


@dataclass(frozen=True)
class StackState:
    """Return-address stack. ``pointer`` counts the addresses currently held."""
    data: jnp.ndarray = field(default_factory=lambda: jnp.zeros(STACK_SIZE, dtype=jnp.uint16))
    pointer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))


class EmulatorState(PyTreeNode):
    """Main CHIP-8 emulator state.

    The display is indexed ``display[x, y]`` and holds one byte (0 or 1) per pixel.
    ``need_redraw`` and ``need_sound`` are raised by the machine and cleared by the
    caller; ``need_keystroke`` is raised by FX0A and cleared by the next key press,
    which lands in ``V[key_register]``.
    """
    rng: jax.random.PRNGKey
    memory: jnp.ndarray = field(default_factory=lambda: jnp.zeros(MEMORY_SIZE, dtype=jnp.uint8))
    pc: jnp.ndarray = field(default_factory=lambda: jnp.astype(PROGRAM_START, jnp.uint16))
    display: jnp.ndarray = field(default_factory=lambda: jnp.zeros((SCREEN_WIDTH, SCREEN_HEIGHT), dtype=jnp.uint8))
    stack: StackState = StackState()
    delay_timer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    sound_timer: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    keypad: jnp.ndarray = field(default_factory=lambda: jnp.zeros(NUM_KEYS, dtype=jnp.bool_))
    V: jnp.ndarray = field(default_factory=lambda: jnp.zeros(NUM_REGISTERS, dtype=jnp.uint8))
    I: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint16))
    need_redraw: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.bool_))
    need_sound: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.bool_))
    need_keystroke: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.bool_))
    key_register: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    fault: jnp.ndarray = field(default_factory=lambda: jnp.zeros((), dtype=jnp.uint8))
    quirks: Quirks = field(pytree_node=False, default=Quirks())
    debug: bool = field(pytree_node=False, default=False)

    def with_fault(self, fault: Fault) -> "EmulatorState":
        """Latch a fault code, halting the machine."""
        return self.replace(fault=jnp.asarray(int(fault), dtype=jnp.uint8))


def create_state(rng: jax.random.PRNGKey = jax.random.PRNGKey(0), quirks=None, debug: bool = False) -> EmulatorState:
    """Create initial emulator state with font data loaded.

    Args:
        rng: Random key feeding CXNN. Pass a different key per machine for independent streams.
        quirks: Anything accepted by ``chipvm.config.load_quirks``.
        debug: Trace every executed instruction through the console logger.
    """
    state = EmulatorState(rng, quirks=load_quirks(quirks), debug=debug)
    return state.replace(memory=state.memory.at[FONT_START:FONT_START + len(FONT_DATA)].set(FONT_DATA))
