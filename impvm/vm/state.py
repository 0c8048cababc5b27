from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from .insn import Insn

Printer = Callable[[int], None]


@dataclass
class VMState:
    """Runtime state for :class:`VirtualMachine`.

    ``locals`` holds every frame back to back; ``fp`` is the index of the
    active frame's first slot and the saved frame pointer of the caller sits
    just below it.  ``output`` records every printed value in order.
    """

    code: Tuple[Insn, ...]
    args: Tuple[int, ...] = ()
    stack: List[int] = field(default_factory=list)
    locals: List[int] = field(default_factory=list)
    pc: int = 0
    fp: int = 0
    steps: int = 0
    halted: bool = False
    output: List[int] = field(default_factory=list)
    printer: Optional[Printer] = None


__all__ = ["Printer", "VMState"]
