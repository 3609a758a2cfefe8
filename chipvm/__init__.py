"""CHIP-8 virtual machine package."""

from chipvm.state import EmulatorState, StackState, create_state
from chipvm.emulator import (
    execute, fetch, tick, run, load_program, check_key, change_key, press_key, release_key,
    acknowledge_redraw, acknowledge_sound, raise_for_fault, is_halted, is_awaiting_key,
)
from chipvm.decode import DecodedInstruction, Operation, decode, classify, mnemonic
from chipvm.config import Quirks, PRESETS, load_quirks
from chipvm.errors import (
    Fault, Chip8Error, ProgramSizeError, MachineFault, StackOverflowError,
    StackUnderflowError, AddressOutOfRangeError, RegisterOutOfRangeError,
)
from chipvm.constants import *

__all__ = [
    "EmulatorState",
    "StackState",
    "create_state",
    "fetch",
    "execute",
    "tick",
    "run",
    "load_program",
    "check_key",
    "change_key",
    "press_key",
    "release_key",
    "acknowledge_redraw",
    "acknowledge_sound",
    "raise_for_fault",
    "is_halted",
    "is_awaiting_key",
    "DecodedInstruction",
    "Operation",
    "decode",
    "classify",
    "mnemonic",
    "Quirks",
    "PRESETS",
    "load_quirks",
    "Fault",
    "Chip8Error",
    "ProgramSizeError",
    "MachineFault",
    "StackOverflowError",
    "StackUnderflowError",
    "AddressOutOfRangeError",
    "RegisterOutOfRangeError",
    "MEMORY_SIZE",
    "PROGRAM_START",
    "MAX_PROGRAM_SIZE",
    "FONT_START",
    "FONT_DATA",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
    "STACK_SIZE",
]
