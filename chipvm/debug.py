"""Read-only introspection of emulator state for diagnostic tooling."""

from typing import Dict, List, Tuple

import numpy as np

from chipvm.constants import MEMORY_SIZE, NUM_KEYS, NUM_REGISTERS
from chipvm.decode import Operation, decode
from chipvm.state import EmulatorState

_SYNTAX = {
    Operation.NOOP: "DW 0x{raw:04X}",
    Operation.CLS: "CLS",
    Operation.RET: "RET",
    Operation.JP: "JP 0x{nnn:03X}",
    Operation.CALL: "CALL 0x{nnn:03X}",
    Operation.SE_VX_BYTE: "SE V{x:X}, 0x{nn:02X}",
    Operation.SNE_VX_BYTE: "SNE V{x:X}, 0x{nn:02X}",
    Operation.SE_VX_VY: "SE V{x:X}, V{y:X}",
    Operation.LD_VX_BYTE: "LD V{x:X}, 0x{nn:02X}",
    Operation.ADD_VX_BYTE: "ADD V{x:X}, 0x{nn:02X}",
    Operation.LD_VX_VY: "LD V{x:X}, V{y:X}",
    Operation.OR: "OR V{x:X}, V{y:X}",
    Operation.AND: "AND V{x:X}, V{y:X}",
    Operation.XOR: "XOR V{x:X}, V{y:X}",
    Operation.ADD_VX_VY: "ADD V{x:X}, V{y:X}",
    Operation.SUB: "SUB V{x:X}, V{y:X}",
    Operation.SHR: "SHR V{x:X}, V{y:X}",
    Operation.SUBN: "SUBN V{x:X}, V{y:X}",
    Operation.SHL: "SHL V{x:X}, V{y:X}",
    Operation.SNE_VX_VY: "SNE V{x:X}, V{y:X}",
    Operation.LD_I: "LD I, 0x{nnn:03X}",
    Operation.JP_V0: "JP V0, 0x{nnn:03X}",
    Operation.RND: "RND V{x:X}, 0x{nn:02X}",
    Operation.DRW: "DRW V{x:X}, V{y:X}, {n}",
    Operation.SKP: "SKP V{x:X}",
    Operation.SKNP: "SKNP V{x:X}",
    Operation.LD_VX_DT: "LD V{x:X}, DT",
    Operation.LD_VX_K: "LD V{x:X}, K",
    Operation.LD_DT_VX: "LD DT, V{x:X}",
    Operation.LD_ST_VX: "LD ST, V{x:X}",
    Operation.ADD_I_VX: "ADD I, V{x:X}",
    Operation.LD_F_VX: "LD F, V{x:X}",
    Operation.LD_B_VX: "LD B, V{x:X}",
    Operation.LD_I_VX: "LD [I], V{x:X}",
    Operation.LD_VX_I: "LD V{x:X}, [I]",
}


def register_snapshot(state: EmulatorState) -> Dict[str, object]:
    """Copy of the register file as plain Python values."""
    return {
        "V": tuple(int(v) for v in np.asarray(state.V)),
        "I": int(state.I),
        "pc": int(state.pc),
        "sp": int(state.stack.pointer),
        "delay_timer": int(state.delay_timer),
        "sound_timer": int(state.sound_timer),
    }


def _check_range(start: int, end: int):
    if not 0 <= start <= end <= MEMORY_SIZE:
        raise ValueError(f"Invalid memory range [0x{start:X}, 0x{end:X}) for {MEMORY_SIZE} bytes")


def memory_range(state: EmulatorState, start: int, end: int) -> np.ndarray:
    """Copy of ``memory[start:end]``."""
    _check_range(start, end)
    return np.array(state.memory[start:end], dtype=np.uint8)


def keypad_snapshot(state: EmulatorState) -> Dict[int, bool]:
    """Pressed state of every key."""
    return {key: bool(pressed) for key, pressed in enumerate(np.asarray(state.keypad))}


def format_registers(state: EmulatorState) -> str:
    """Register dump, eight general registers per line."""
    registers = register_snapshot(state)
    lines = []
    for row in range(0, NUM_REGISTERS, 8):
        lines.append(" ".join(f"V{u:X}: 0x{registers['V'][u]:02X}" for u in range(row, row + 8)))
    lines.append(
        f"I: 0x{registers['I']:03X}"
        f"\tSoundTimer: {registers['sound_timer']}"
        f"\tDelayTimer: {registers['delay_timer']}"
        f"\tPC: 0x{registers['pc']:03X}"
        f"\tSP: {registers['sp']}"
    )
    return "\n".join(lines)


def format_memory(state: EmulatorState, start: int, end: int) -> str:
    """Hex dump of ``memory[start:end]``, eight bytes per line."""
    values = memory_range(state, start, end)
    lines = [f"Memory in range [0x{start:03X}, 0x{end:03X})"]
    for offset in range(0, len(values), 8):
        address = start + offset
        row = " ".join(f"{value:02X}" for value in values[offset:offset + 8])
        lines.append(f"[0x{address:03X}] {row}")
    return "\n".join(lines)


def format_keypad(state: EmulatorState) -> str:
    """Keypad dump, ``[K]: 0/1`` per key."""
    keys = keypad_snapshot(state)
    return " ".join(f"[{key:X}]: {int(keys[key])}" for key in range(NUM_KEYS))


def disassemble(instruction: int) -> str:
    """Assembler text of one instruction word."""
    decoded = decode(int(instruction))
    return _SYNTAX[Operation(int(decoded.op))].format(
        raw=int(decoded.raw), x=int(decoded.x), y=int(decoded.y),
        n=int(decoded.n), nn=int(decoded.nn), nnn=int(decoded.nnn),
    )


def disassemble_range(state: EmulatorState, start: int, end: int) -> List[Tuple[int, int, str]]:
    """Disassemble the words in ``memory[start:end]`` as ``(address, word, text)``.

    A trailing odd byte is ignored.
    """
    values = memory_range(state, start, end)
    listing = []
    for offset in range(0, len(values) - 1, 2):
        word = (int(values[offset]) << 8) | int(values[offset + 1])
        listing.append((start + offset, word, disassemble(word)))
    return listing


def display_to_text(display, on: str = "#", off: str = ".") -> str:
    """Render a ``(64, 32)`` display as 32 lines of 64 characters."""
    pixels = np.asarray(display).astype(bool).T
    return "\n".join("".join(on if pixel else off for pixel in row) for row in pixels)
