"""Custom exception hierarchy for the toolchain."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .vm.insn import Insn


class ToolchainError(Exception):
    """Base class for all compiler, optimizer and VM errors."""


class UnsupportedConstruct(ToolchainError):
    """Raised when the graph builder meets control flow it cannot translate.

    Only straight-line blocks are translated; callers are expected to catch
    this and fall back to running the unoptimized program.
    """

    def __init__(self, construct: str) -> None:
        super().__init__(f"unsupported construct in value graph translation: {construct}")
        self.construct = construct


class InternalConsistencyFault(ToolchainError):
    """A malformed program violated an invariant the toolchain relies on."""


class UnresolvedVariable(InternalConsistencyFault):
    """A variable was read without any reaching assignment."""

    def __init__(self, name: str) -> None:
        super().__init__(f"variable {name!r} has no assigned slot")
        self.name = name


class VMFault(InternalConsistencyFault):
    """Raised when the virtual machine encounters an unrecoverable issue."""

    def __init__(self, message: str, *, pc: int, insn: Optional["Insn"] = None) -> None:
        location = f"pc={pc}" if insn is None else f"pc={pc} ({insn})"
        super().__init__(f"{message} at {location}")
        self.pc = pc
        self.insn = insn


class StackUnderflow(VMFault):
    """Pop from an empty operand stack or locals array."""


class AddressFault(VMFault):
    """Local slot or argument index outside its valid range."""


class ProgramCounterFault(VMFault):
    """The program counter left the code array."""


class StepLimitExceeded(VMFault):
    """The optional step budget ran out before ``Halt``."""


class RewriteBudgetExceeded(ToolchainError):
    """Rewriting stopped on a budget while strict limits were requested."""

    def __init__(self, kind: str, reason: str, iterations: int) -> None:
        super().__init__(f"{reason} after {iterations} iterations")
        self.kind = kind
        self.reason = reason
        self.iterations = iterations


__all__ = [
    "ToolchainError",
    "UnsupportedConstruct",
    "InternalConsistencyFault",
    "UnresolvedVariable",
    "VMFault",
    "StackUnderflow",
    "AddressFault",
    "ProgramCounterFault",
    "StepLimitExceeded",
    "RewriteBudgetExceeded",
]
