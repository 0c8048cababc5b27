from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..exceptions import ProgramCounterFault, StepLimitExceeded
from .insn import Insn
from .opcodes import OPCODE_HANDLERS
from .state import Printer, VMState


def _print_line(value: int) -> None:
    print(value)


class VirtualMachine:
    """Stack-based virtual machine executing compiled bytecode.

    The emulator executes instructions from ``code`` using the handlers in
    :mod:`impvm.vm.opcodes`.  State and opcode handlers are kept separate so a
    handler can be tested against a hand-built :class:`VMState`.
    """

    def __init__(
        self,
        code: Sequence[Insn],
        args: Sequence[int] = (),
        *,
        printer: Optional[Printer] = _print_line,
        step_limit: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """Create a VM for ``code`` with the program argument vector ``args``.

        ``printer`` receives every printed value (``None`` keeps output
        silent; values are always recorded in ``state.output``).  A
        ``step_limit`` of ``None`` lets the program run until it halts.
        """

        self.state = VMState(code=tuple(code), args=tuple(args), printer=printer)
        self.step_limit = step_limit
        self.logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    def step(self) -> bool:
        """Execute a single instruction; return ``False`` once halted."""

        state = self.state
        if state.halted:
            return False
        if state.pc < 0 or state.pc >= len(state.code):
            raise ProgramCounterFault(
                f"program counter outside code (length {len(state.code)})", pc=state.pc
            )
        if self.step_limit is not None and state.steps >= self.step_limit:
            raise StepLimitExceeded(
                f"step limit of {self.step_limit} exhausted",
                pc=state.pc,
                insn=state.code[state.pc],
            )

        insn = state.code[state.pc]
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(
                "Executing %4d %s",
                state.pc,
                insn,
                extra={"pc": state.pc, "insn": insn, "stack": list(state.stack)},
            )

        handler = OPCODE_HANDLERS[insn.op]
        if insn.operand is None:
            advance, halt = handler(state)
        else:
            advance, halt = handler(state, insn.operand)
        state.steps += 1
        if halt:
            state.halted = True
            return False
        state.pc += advance
        return True

    # ------------------------------------------------------------------
    def run(self) -> List[int]:
        """Execute instructions until ``Halt`` and return the printed values."""

        self.state.pc = 0
        while self.step():
            pass
        self.logger.debug("Halted after %d steps", self.state.steps)
        return self.state.output

    def dump_state(self) -> str:
        """Return the program counter and operand stack for diagnostics."""

        return f"pc = {self.state.pc}\nstack = {self.state.stack}"


def execute(
    code: Sequence[Insn],
    args: Sequence[int] = (),
    *,
    printer: Optional[Printer] = _print_line,
    step_limit: Optional[int] = None,
) -> List[int]:
    """Run ``code`` to completion and return the printed values."""

    vm = VirtualMachine(code, args, printer=printer, step_limit=step_limit)
    return vm.run()


__all__ = ["VirtualMachine", "execute"]
