"""Turn an extracted term back into a sequential statement block."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, List

from ..syntax import Assign, BinOp, BinaryOp, Block, Expr, Input, Num, Print, Stmt, Var
from .rewriter import ExtractedTerm, GraphNode, NodeKind

LOG = logging.getLogger(__name__)

_BINARY_OPS: Dict[NodeKind, BinOp] = {
    NodeKind.ADD: BinOp.ADD,
    NodeKind.SUB: BinOp.SUB,
    NodeKind.MUL: BinOp.MUL,
    NodeKind.LT: BinOp.LT,
    NodeKind.GT: BinOp.GT,
}

# Placeholder value of effect nodes; consumed and discarded by the next link.
_EFFECT_DUMMY = Num(0)


def count_uses(term: ExtractedTerm) -> Counter:
    """Return how many times each node id is referenced by other nodes."""

    uses: Counter = Counter()
    for node in term.nodes:
        uses.update(node.children)
    return uses


class Linearizer:
    """Rebuild statements from a shared term in node-id order.

    A node referenced more than once is bound to a fresh temporary the moment
    it is produced and read through that variable afterwards.  Every other
    node is substituted at its single use site.  Effect links become
    ``Print`` statements in ascending id order, which is program order since
    the chain was built front to back.
    """

    def __init__(self, temp_prefix: str = "t", *, inline_literals: bool = False) -> None:
        self.temp_prefix = temp_prefix
        self.inline_literals = inline_literals
        self.temps: Dict[int, Var] = {}
        self.exprs: Dict[int, Expr] = {}
        self.literals: Dict[int, Num] = {}
        self.stmts: List[Stmt] = []

    def _reset(self) -> None:
        self.temps = {}
        self.exprs = {}
        self.literals = {}
        self.stmts = []

    def get_expr(self, node_id: int) -> Expr:
        temp = self.temps.get(node_id)
        if temp is not None:
            return temp
        literal = self.literals.get(node_id)
        if literal is not None:
            return literal
        return self.exprs.pop(node_id)

    def add_expr(self, node_id: int, node: GraphNode, expr: Expr) -> None:
        temp = self.temps.get(node_id)
        if temp is not None:
            self.stmts.append(Assign(temp, expr))
        elif node.kind is NodeKind.NUM and self.inline_literals:
            self.literals[node_id] = expr
        else:
            self.exprs[node_id] = expr

    def _build(self, node: GraphNode) -> Expr:
        kind = node.kind
        if kind is NodeKind.NUM:
            return Num(int(node.value))
        if kind is NodeKind.SYMBOL:
            return Var(str(node.value))
        if kind in _BINARY_OPS:
            left, right = node.children
            return BinaryOp(_BINARY_OPS[kind], self.get_expr(left), self.get_expr(right))
        if kind is NodeKind.ARG_REF:
            (index,) = node.children
            return Input(self.get_expr(index))
        if kind is NodeKind.IO_INIT:
            return _EFFECT_DUMMY
        if kind is NodeKind.IO_SEQ:
            effect, value = node.children
            self.get_expr(effect)
            self.stmts.append(Print(self.get_expr(value)))
            return _EFFECT_DUMMY
        raise TypeError(f"Unsupported graph node: {node!r}")

    def linearize(self, term: ExtractedTerm) -> Block:
        self._reset()
        uses = count_uses(term)
        for node_id, count in uses.items():
            if count <= 1:
                continue
            if self.inline_literals and term[node_id].kind is NodeKind.NUM:
                continue
            self.temps[node_id] = Var(f"{self.temp_prefix}{node_id}")
        if self.temps:
            LOG.debug("materializing %d shared nodes: %s", len(self.temps), sorted(self.temps))

        for node_id, node in enumerate(term.nodes):
            self.add_expr(node_id, node, self._build(node))
        return Block(list(self.stmts))


def linearize(term: ExtractedTerm, **options) -> Block:
    """Convert *term* into a statement block preserving sharing and print order."""

    return Linearizer(**options).linearize(term)


__all__ = ["Linearizer", "count_uses", "linearize"]
