"""Lower an AST :class:`~impvm.syntax.Program` to flat bytecode."""

from __future__ import annotations

import logging
from typing import Dict, List

from .exceptions import UnresolvedVariable
from .syntax import (
    Assign,
    BinOp,
    BinaryOp,
    Block,
    Expr,
    If,
    Input,
    Num,
    Print,
    Program,
    Stmt,
    Var,
    While,
)
from .vm.insn import Bytecode, Insn, Opcode

LOG = logging.getLogger(__name__)

_BINARY_OPCODES: Dict[BinOp, Opcode] = {
    BinOp.ADD: Opcode.ADD,
    BinOp.SUB: Opcode.SUB,
    BinOp.MUL: Opcode.MUL,
    BinOp.LT: Opcode.LT,
    BinOp.GT: Opcode.GT,
}


class Compiler:
    """Two-pass compiler: slot assignment, then code emission.

    Every distinct assigned variable gets its own slot for the whole program,
    numbered in order of first assignment.  Slots are never reused.
    """

    def __init__(self) -> None:
        self.code: List[Insn] = []
        self.slots: Dict[Var, int] = {}
        self.num_slots = 0

    # ------------------------------------------------------------------
    # Emission helpers
    # ------------------------------------------------------------------

    def emit(self, insn: Insn) -> None:
        self.code.append(insn)

    def here(self) -> int:
        return len(self.code)

    @staticmethod
    def branch_offset(source: int, target: int) -> int:
        return target - source

    def patch(self, site: int, target: int) -> None:
        """Rewrite the placeholder branch at ``site`` to jump to ``target``."""

        placeholder = self.code[site]
        offset = self.branch_offset(site, target)
        self.code[site] = Insn(placeholder.op, offset)
        LOG.debug("patched %s at %d -> %d (%+d)", placeholder.op.value, site, target, offset)

    def output(self) -> Bytecode:
        return tuple(self.code)

    def slot_of(self, var: Var) -> int:
        try:
            return self.slots[var]
        except KeyError:
            raise UnresolvedVariable(var.name) from None

    # ------------------------------------------------------------------
    # Code emission
    # ------------------------------------------------------------------

    def compile_expr(self, expr: Expr) -> None:
        if isinstance(expr, Var):
            self.emit(Insn(Opcode.GET_LOCAL, self.slot_of(expr)))
        elif isinstance(expr, Num):
            self.emit(Insn(Opcode.LITERAL, expr.value))
        elif isinstance(expr, BinaryOp):
            self.compile_expr(expr.left)
            self.compile_expr(expr.right)
            self.emit(Insn(_BINARY_OPCODES[expr.op]))
        elif isinstance(expr, Input):
            self.compile_expr(expr.index)
            self.emit(Insn(Opcode.INPUT_READ))
        else:
            raise TypeError(f"Unsupported expression: {expr!r}")

    def compile_stmt(self, stmt: Stmt) -> None:
        if isinstance(stmt, Assign):
            self.compile_expr(stmt.value)
            self.emit(Insn(Opcode.SET_LOCAL, self.slot_of(stmt.target)))
        elif isinstance(stmt, Print):
            self.compile_expr(stmt.value)
            self.emit(Insn(Opcode.PRINT))
        elif isinstance(stmt, If):
            self.compile_expr(stmt.test)
            branch = self.here()
            self.emit(Insn(Opcode.BRANCH_IF_ZERO, 0))

            self.compile_block(stmt.body)
            body_end = self.here()
            self.emit(Insn(Opcode.BRANCH, 0))

            orelse_start = self.here()
            self.compile_block(stmt.orelse)
            orelse_end = self.here()

            self.patch(branch, orelse_start)
            self.patch(body_end, orelse_end)
        elif isinstance(stmt, While):
            loop_start = self.here()
            self.compile_expr(stmt.test)
            branch = self.here()
            self.emit(Insn(Opcode.BRANCH_IF_ZERO, 0))

            self.compile_block(stmt.body)
            repeat = self.here()
            self.emit(Insn(Opcode.BRANCH, 0))
            loop_end = self.here()

            self.patch(branch, loop_end)
            self.patch(repeat, loop_start)
        else:
            raise TypeError(f"Unsupported statement: {stmt!r}")

    def compile_block(self, block: Block) -> None:
        for stmt in block:
            self.compile_stmt(stmt)

    def compile_program(self, program: Program) -> Bytecode:
        self.assign_slots(program)

        self.emit(Insn(Opcode.ENTER, self.num_slots))
        self.compile_block(program.body)
        self.emit(Insn(Opcode.EXIT, self.num_slots))
        self.emit(Insn(Opcode.HALT))
        return self.output()

    # ------------------------------------------------------------------
    # Slot assignment
    # ------------------------------------------------------------------

    def assign_slots(self, program: Program) -> Dict[Var, int]:
        self._assign_slots_block(program.body)
        return self.slots

    def _assign_slots_block(self, block: Block) -> None:
        for stmt in block:
            if isinstance(stmt, Assign):
                if stmt.target not in self.slots:
                    self.slots[stmt.target] = self.num_slots
                    LOG.debug("assigned slot %d to %s", self.num_slots, stmt.target.name)
                    self.num_slots += 1
            elif isinstance(stmt, If):
                self._assign_slots_block(stmt.body)
                self._assign_slots_block(stmt.orelse)
            elif isinstance(stmt, While):
                self._assign_slots_block(stmt.body)


def compile_program(program: Program) -> Bytecode:
    """Compile *program* into a frame-scoped, explicitly halting bytecode array."""

    return Compiler().compile_program(program)


__all__ = ["Compiler", "compile_program"]
