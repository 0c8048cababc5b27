"""VM trace logging: per-step record formatting and per-run trace files.

:class:`~impvm.vm.emulator.VirtualMachine` attaches ``pc``, ``insn`` and
``stack`` to every step record it logs.  :class:`TraceFormatter` lays those
out in the same columns as :func:`~impvm.vm.insn.format_code`, so a trace
lines up with the bytecode listing it came from.
"""

from __future__ import annotations

import logging
from pathlib import Path

__all__ = [
    "TraceFormatter",
    "configure_debug_file_logger",
    "close_debug_logger",
]

_TRACE_HANDLER = "_impvm_trace"


class TraceFormatter(logging.Formatter):
    """Render VM step records as ``  pc  insn  stack=[..]``.

    Records without step fields (the halt summary, messages from other code)
    fall back to the plain message.
    """

    def __init__(self, *, show_stack: bool = True) -> None:
        super().__init__("%(message)s")
        self.show_stack = show_stack

    def format(self, record: logging.LogRecord) -> str:
        pc = getattr(record, "pc", None)
        if pc is None:
            return super().format(record)
        line = f"{pc:>4}  {getattr(record, 'insn', '?')}"
        stack = getattr(record, "stack", None)
        if self.show_stack and stack is not None:
            line = f"{line:<28}stack={stack}"
        return line


def configure_debug_file_logger(
    name: str,
    path: Path,
    *,
    level: int = logging.DEBUG,
    formatter: logging.Formatter | None = None,
) -> logging.Logger:
    """Return a logger writing a VM trace to ``path``.

    A trace handler installed earlier on ``name`` is closed first, so each run
    replaces the previous trace file.  Records are formatted with
    :class:`TraceFormatter` unless ``formatter`` is given.
    """

    path.parent.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    close_debug_logger(logger)

    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    setattr(handler, _TRACE_HANDLER, True)
    handler.setFormatter(formatter or TraceFormatter())
    logger.addHandler(handler)
    return logger


def close_debug_logger(logger: logging.Logger) -> None:
    """Detach and close trace handlers; handlers added by others stay."""

    for handler in [h for h in logger.handlers if getattr(h, _TRACE_HANDLER, False)]:
        logger.removeHandler(handler)
        handler.close()
