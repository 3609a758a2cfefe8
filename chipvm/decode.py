"""CHIP-8 instruction decoding."""

from enum import IntEnum

import jax.numpy as jnp
import numpy as np
from chex import dataclass


class Operation(IntEnum):
    """Operation tags. The value is the handler's index in the dispatch table."""
    NOOP = 0
    CLS = 1          # 00E0
    RET = 2          # 00EE
    JP = 3           # 1NNN
    CALL = 4         # 2NNN
    SE_VX_BYTE = 5   # 3XNN
    SNE_VX_BYTE = 6  # 4XNN
    SE_VX_VY = 7     # 5XY0
    LD_VX_BYTE = 8   # 6XNN
    ADD_VX_BYTE = 9  # 7XNN
    LD_VX_VY = 10    # 8XY0
    OR = 11          # 8XY1
    AND = 12         # 8XY2
    XOR = 13         # 8XY3
    ADD_VX_VY = 14   # 8XY4
    SUB = 15         # 8XY5
    SHR = 16         # 8XY6
    SUBN = 17        # 8XY7
    SHL = 18         # 8XYE
    SNE_VX_VY = 19   # 9XY0
    LD_I = 20        # ANNN
    JP_V0 = 21       # BNNN
    RND = 22         # CXNN
    DRW = 23         # DXYN
    SKP = 24         # EX9E
    SKNP = 25        # EXA1
    LD_VX_DT = 26    # FX07
    LD_VX_K = 27     # FX0A
    LD_DT_VX = 28    # FX15
    LD_ST_VX = 29    # FX18
    ADD_I_VX = 30    # FX1E
    LD_F_VX = 31     # FX29
    LD_B_VX = 32     # FX33
    LD_I_VX = 33     # FX55
    LD_VX_I = 34     # FX65


# Top nibbles that name a single operation whatever the low byte.
_BY_OPCODE = {
    0x1: Operation.JP,
    0x2: Operation.CALL,
    0x3: Operation.SE_VX_BYTE,
    0x4: Operation.SNE_VX_BYTE,
    0x5: Operation.SE_VX_VY,
    0x6: Operation.LD_VX_BYTE,
    0x7: Operation.ADD_VX_BYTE,
    0x9: Operation.SNE_VX_VY,
    0xA: Operation.LD_I,
    0xB: Operation.JP_V0,
    0xC: Operation.RND,
    0xD: Operation.DRW,
}

# Top nibbles refined by the low byte.
_BY_LOW_BYTE = {
    0x0: {0xE0: Operation.CLS, 0xEE: Operation.RET},
    0xE: {0x9E: Operation.SKP, 0xA1: Operation.SKNP},
    0xF: {
        0x07: Operation.LD_VX_DT,
        0x0A: Operation.LD_VX_K,
        0x15: Operation.LD_DT_VX,
        0x18: Operation.LD_ST_VX,
        0x1E: Operation.ADD_I_VX,
        0x29: Operation.LD_F_VX,
        0x33: Operation.LD_B_VX,
        0x55: Operation.LD_I_VX,
        0x65: Operation.LD_VX_I,
    },
}

# 8XYN, refined by the low nibble.
_ALU_BY_N = {
    0x0: Operation.LD_VX_VY,
    0x1: Operation.OR,
    0x2: Operation.AND,
    0x3: Operation.XOR,
    0x4: Operation.ADD_VX_VY,
    0x5: Operation.SUB,
    0x6: Operation.SHR,
    0x7: Operation.SUBN,
    0xE: Operation.SHL,
}


def _build_operation_table() -> np.ndarray:
    """Operation tag for every (top nibble, low byte) pair."""
    table = np.full((16, 256), Operation.NOOP, dtype=np.uint8)
    for opcode, operation in _BY_OPCODE.items():
        table[opcode, :] = operation
    for opcode, operations in _BY_LOW_BYTE.items():
        for low_byte, operation in operations.items():
            table[opcode, low_byte] = operation
    for low_byte in range(256):
        table[0x8, low_byte] = _ALU_BY_N.get(low_byte & 0xF, Operation.NOOP)
    return table


OPERATION_TABLE = jnp.asarray(_build_operation_table())


@dataclass(frozen=True)
class DecodedInstruction:
    """Decoded CHIP-8 instruction with extracted operands."""
    raw: int
    op: int      # Operation tag
    opcode: int  # First nibble
    x: int       # Second nibble (VX register)
    y: int       # Third nibble (VY register)
    n: int       # Fourth nibble (4-bit immediate)
    nn: int      # Last byte (8-bit immediate)
    nnn: int     # Last 12 bits (12-bit address)


def classify(instruction: int) -> jnp.ndarray:
    """Operation tag of a 16-bit instruction, ``Operation.NOOP`` when unmapped."""
    return OPERATION_TABLE[(instruction & 0xF000) >> 12, instruction & 0x00FF]


def decode(instruction: int) -> DecodedInstruction:
    """Decode 16-bit instruction into components."""
    return DecodedInstruction(
        raw=instruction,
        op=classify(instruction),
        opcode=(instruction & 0xF000) >> 12,
        x=(instruction & 0x0F00) >> 8,
        y=(instruction & 0x00F0) >> 4,
        n=instruction & 0x000F,
        nn=instruction & 0x00FF,
        nnn=instruction & 0x0FFF
    )


def mnemonic(operation: int) -> str:
    """Lowercase assembler name of an operation tag."""
    return Operation(int(operation)).name.lower()
