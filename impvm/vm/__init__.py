"""Bytecode instruction set and the stack-based virtual machine."""

from __future__ import annotations

from .emulator import VirtualMachine, execute
from .insn import Bytecode, Insn, Opcode, format_code
from .state import VMState

__all__ = [
    "Bytecode",
    "Insn",
    "Opcode",
    "VMState",
    "VirtualMachine",
    "execute",
    "format_code",
]
