"""CHIP-8 error types and machine fault codes."""

from enum import IntEnum


class Fault(IntEnum):
    """Fault codes latched in ``EmulatorState.fault``."""
    NONE = 0
    STACK_OVERFLOW = 1
    STACK_UNDERFLOW = 2
    ADDRESS_OUT_OF_RANGE = 3
    REGISTER_OUT_OF_RANGE = 4


class Chip8Error(Exception):
    """Base class for every error raised by chipvm."""


class ProgramSizeError(Chip8Error):
    """Program image does not fit in program memory."""

    def __init__(self, size: int, capacity: int):
        self.size = size
        self.capacity = capacity
        super().__init__(f"Program is {size} bytes, only {capacity} bytes of program memory available")


class MachineFault(Chip8Error):
    """An instruction violated a machine precondition and halted the emulator."""

    fault = Fault.NONE

    def __init__(self, pc: int):
        self.pc = pc
        super().__init__(f"{self.fault.name.lower().replace('_', ' ')} (pc=0x{pc:03X})")


class StackOverflowError(MachineFault):
    fault = Fault.STACK_OVERFLOW


class StackUnderflowError(MachineFault):
    fault = Fault.STACK_UNDERFLOW


class AddressOutOfRangeError(MachineFault):
    fault = Fault.ADDRESS_OUT_OF_RANGE


class RegisterOutOfRangeError(MachineFault):
    fault = Fault.REGISTER_OUT_OF_RANGE


FAULT_ERRORS = {
    error.fault: error
    for error in (StackOverflowError, StackUnderflowError, AddressOutOfRangeError, RegisterOutOfRangeError)
}
