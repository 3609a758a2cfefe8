"""Console output for chipvm.

``logger`` reports host-side events (program loads, faults). States created
with ``debug=True`` print one line per executed instruction through
``trace_logger``; the line is produced inside traced code with
``jax.debug.callback``. Long ``run`` calls can show a tqdm bar driven from the
scan body through ``io_callback``.
"""

import sys
import time
from typing import Callable, Optional

import jax
import jax.numpy as jnp
from jax.experimental import io_callback
from tqdm import tqdm

from chipvm.decode import classify, mnemonic

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_ANSI = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
_RESET = "\033[0m"


class ConsoleLogger:
    """Leveled logger printing ``[elapsed][LEVEL][name] message`` lines to stdout.

    Colors are only used when stdout is a terminal.
    """

    def __init__(
        self,
        name: str = "chipvm",
        log_level: str = "INFO",
        use_colors: bool = True,
        show_timestamps: bool = True,
    ):
        self.name = name
        self.set_level(log_level)
        self.use_colors = use_colors and getattr(sys.stdout, "isatty", lambda: False)()
        self.show_timestamps = show_timestamps
        self.start_time = time.time()

    def set_level(self, log_level: str):
        """Change the minimum level that gets printed."""
        level = log_level.upper()
        if level not in LEVELS:
            raise ValueError(f"Unknown log level '{log_level}'. Available: {list(LEVELS)}")
        self.log_level = level

    def is_enabled_for(self, level: str) -> bool:
        return LEVELS.index(level.upper()) >= LEVELS.index(self.log_level)

    def _prefix(self, level: str) -> str:
        elapsed = f"[{time.time() - self.start_time:8.2f}s]" if self.show_timestamps else ""
        tag = f"[{level:>8s}]"
        if self.use_colors:
            tag = f"{_ANSI[level]}{tag}{_RESET}"
        return f"{elapsed}{tag}[{self.name}]"

    def log(self, level: str, message: str):
        level = level.upper()
        if self.is_enabled_for(level):
            print(f"{self._prefix(level)} {message}", flush=True)

    def debug(self, message: str):
        self.log("DEBUG", message)

    def info(self, message: str):
        self.log("INFO", message)

    def warning(self, message: str):
        self.log("WARNING", message)

    def error(self, message: str):
        self.log("ERROR", message)

    def critical(self, message: str):
        self.log("CRITICAL", message)


logger = ConsoleLogger("chipvm")

# Only reached from states created with debug=True, so it prints everything.
trace_logger = ConsoleLogger("chipvm.trace", log_level="DEBUG")


def format_instruction(pc: int, instruction: int) -> str:
    """One trace line: address, raw word and mnemonic."""
    return f"0x{pc:03X}: 0x{instruction:04X} {mnemonic(classify(instruction))}"


def log_instruction(pc, instruction):
    """Host-side sink for ``jax.debug.callback`` instruction traces."""
    trace_logger.debug(format_instruction(int(pc), int(instruction)))


def trace_instruction(pc, instruction):
    """Emit a trace line from inside traced code."""
    jax.debug.callback(log_instruction, pc, instruction)


class _CycleBar:
    """Host-side tqdm bar fed by ``io_callback`` from a scan body."""

    def __init__(self, total: int, desc: str, **tqdm_kwargs):
        self.total = total
        self.desc = desc
        self.tqdm_kwargs = tqdm_kwargs
        self.bar = None

    def open(self):
        self.bar = tqdm(total=self.total, desc=self.desc, unit="cycle", **self.tqdm_kwargs)

    def advance(self, cycles):
        if self.bar is not None:
            self.bar.update(int(cycles))

    def close(self):
        if self.bar is not None:
            self.bar.close()
            self.bar = None


def _host_call(condition, callback, *args):
    jax.lax.cond(
        condition,
        lambda: io_callback(callback, None, *args, ordered=True),
        lambda: None,
    )


def scan_with_progress(
    num_cycles: int,
    print_rate: Optional[int] = None,
    desc: Optional[str] = None,
    **tqdm_kwargs,
) -> Callable:
    """Decorate a ``(carry, cycle_index) -> (carry, y)`` scan body with a tqdm bar.

    The scan must iterate over ``jnp.arange(num_cycles)``. The bar advances
    every ``print_rate`` cycles and closes on the last one.
    """
    if print_rate is None:
        print_rate = max(1, min(num_cycles // 20, 50))
    print_rate = max(1, min(print_rate, num_cycles))
    bar = _CycleBar(num_cycles, desc or f"Running ({num_cycles:,} cycles)", **tqdm_kwargs)

    def decorator(body):
        def body_with_progress(carry, cycle):
            _host_call(cycle == 0, bar.open)
            done = cycle + 1
            _host_call((done % print_rate == 0) | (done == num_cycles), bar.advance,
                       jnp.where(done % print_rate == 0, print_rate, done % print_rate))
            result = body(carry, cycle)
            _host_call(done == num_cycles, bar.close)
            return result

        return body_with_progress

    return decorator
