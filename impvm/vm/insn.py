"""Closed instruction set executed by :class:`impvm.vm.emulator.VirtualMachine`."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple


class Opcode(enum.Enum):
    HALT = "Halt"
    LITERAL = "Literal"
    ADD = "Add"
    SUB = "Sub"
    MUL = "Mul"
    LT = "LessThan"
    GT = "GreaterThan"
    PRINT = "Print"
    ENTER = "Enter"
    EXIT = "Exit"
    GET_LOCAL = "GetLocal"
    SET_LOCAL = "SetLocal"
    INPUT_READ = "InputRead"
    BRANCH = "Branch"
    BRANCH_IF_ZERO = "BranchIfZero"

    @property
    def takes_operand(self) -> bool:
        return self in _OPERAND_OPCODES

    @property
    def is_branch(self) -> bool:
        return self in (Opcode.BRANCH, Opcode.BRANCH_IF_ZERO)


_OPERAND_OPCODES = frozenset(
    {
        Opcode.LITERAL,
        Opcode.ENTER,
        Opcode.EXIT,
        Opcode.GET_LOCAL,
        Opcode.SET_LOCAL,
        Opcode.BRANCH,
        Opcode.BRANCH_IF_ZERO,
    }
)


@dataclass(frozen=True, slots=True)
class Insn:
    """One instruction: an opcode tag plus its operand, if the opcode has one.

    Branch operands are signed offsets relative to the branch's own index.
    """

    op: Opcode
    operand: Optional[int] = None

    def __post_init__(self) -> None:
        if self.op.takes_operand and self.operand is None:
            raise ValueError(f"{self.op.value} requires an operand")
        if not self.op.takes_operand and self.operand is not None:
            raise ValueError(f"{self.op.value} takes no operand")

    def __str__(self) -> str:
        if self.operand is None:
            return self.op.value
        if self.op.is_branch:
            return f"{self.op.value} {self.operand:+d}"
        return f"{self.op.value} {self.operand}"


Bytecode = Tuple[Insn, ...]


def format_code(code: Sequence[Insn]) -> str:
    """Return a listing of *code* with one indexed instruction per line."""

    lines: List[str] = []
    for index, insn in enumerate(code):
        lines.append(f"{index:>4}  {insn}")
    return "\n".join(lines)


__all__ = ["Bytecode", "Insn", "Opcode", "format_code"]
