"""CHIP-8 instruction handlers. Every handler maps ``(state, instruction)`` to a new state."""
