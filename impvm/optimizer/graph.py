"""Translate straight-line blocks into an egglog value graph.

Every expression becomes a :class:`Term`; the e-graph deduplicates equal
terms into one congruence class.  Prints carry no value of their own, so they
are threaded through an explicit effect chain: ``io_seq(prior, value)`` means
"perform the effects of *prior*, then print *value*".  The chain's head is the
root handed to the rewriter, which is what keeps print order intact.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

import egglog
from egglog import EGraph, StringLike, i64Like, union

from ..exceptions import UnresolvedVariable, UnsupportedConstruct
from ..syntax import (
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
    Var,
    While,
)
from ..vm.opcodes import wrap_int64

LOG = logging.getLogger(__name__)


class Term(egglog.Expr):
    """Node kinds of the value graph."""

    @classmethod
    def num(cls, value: i64Like) -> Term: ...

    # Opaque value with no known definition.  Never produced by the builder.
    @classmethod
    def symbol(cls, name: StringLike) -> Term: ...

    @classmethod
    def add(cls, left: Term, right: Term) -> Term: ...

    @classmethod
    def sub(cls, left: Term, right: Term) -> Term: ...

    @classmethod
    def mul(cls, left: Term, right: Term) -> Term: ...

    @classmethod
    def lt(cls, left: Term, right: Term) -> Term: ...

    @classmethod
    def gt(cls, left: Term, right: Term) -> Term: ...

    # Program argument at the position given by ``index``.
    @classmethod
    def arg_ref(cls, index: Term) -> Term: ...

    # The empty effect: no prints performed yet.
    @classmethod
    def io_init(cls) -> Term: ...

    @classmethod
    def io_seq(cls, effect: Term, value: Term) -> Term: ...


_BINARY_TERMS: Dict[BinOp, Callable[[Term, Term], Term]] = {
    BinOp.ADD: Term.add,
    BinOp.SUB: Term.sub,
    BinOp.MUL: Term.mul,
    BinOp.LT: Term.lt,
    BinOp.GT: Term.gt,
}


class ValueGraph:
    """Thin wrapper around an :class:`egglog.EGraph` holding :class:`Term` nodes."""

    def __init__(self, egraph: Optional[EGraph] = None) -> None:
        self.egraph = egraph if egraph is not None else EGraph()

    def add(self, term: Term) -> Term:
        """Insert *term*; structurally equal terms share one class."""

        self.egraph.register(term)
        return term

    def union(self, left: Term, right: Term) -> None:
        """Declare two existing nodes equivalent, merging their classes."""

        self.egraph.register(union(left).with_(right))


@dataclass
class GraphBuild:
    """Result of :func:`build_graph`: the graph plus the effect-chain head."""

    graph: ValueGraph
    root: Term
    env: Dict[Var, Term] = field(default_factory=dict)
    prints: int = 0


class GraphBuilder:
    """Walk a block in order, binding each variable to its latest value.

    A reassignment simply rebinds the name.  That is only sound because
    branches and loops are rejected up front.
    """

    def __init__(self, graph: Optional[ValueGraph] = None) -> None:
        self.graph = graph if graph is not None else ValueGraph()
        self.env: Dict[Var, Term] = {}

    def translate_expr(self, expr: Expr) -> Term:
        if isinstance(expr, Var):
            try:
                return self.env[expr]
            except KeyError:
                raise UnresolvedVariable(expr.name) from None
        if isinstance(expr, Num):
            return Term.num(wrap_int64(expr.value))
        if isinstance(expr, BinaryOp):
            left = self.translate_expr(expr.left)
            right = self.translate_expr(expr.right)
            return _BINARY_TERMS[expr.op](left, right)
        if isinstance(expr, Input):
            return Term.arg_ref(self.translate_expr(expr.index))
        raise TypeError(f"Unsupported expression: {expr!r}")

    @staticmethod
    def sequence(io_root: Term, value: Term) -> Term:
        return Term.io_seq(io_root, value)

    def translate_block(self, block: Block, io_root: Term) -> Term:
        """Translate *block* starting from ``io_root``; return the new chain head."""

        for stmt in block:
            if isinstance(stmt, Assign):
                self.env[stmt.target] = self.translate_expr(stmt.value)
            elif isinstance(stmt, Print):
                io_root = self.sequence(io_root, self.translate_expr(stmt.value))
            elif isinstance(stmt, If):
                raise UnsupportedConstruct("if")
            elif isinstance(stmt, While):
                raise UnsupportedConstruct("while")
            else:
                raise TypeError(f"Unsupported statement: {stmt!r}")
        return io_root

    def build(self, block: Block) -> GraphBuild:
        root = self.translate_block(block, Term.io_init())
        self.graph.add(root)
        prints = sum(1 for stmt in block if isinstance(stmt, Print))
        LOG.debug(
            "translated %d statements (%d prints, %d variables)",
            len(block),
            prints,
            len(self.env),
        )
        return GraphBuild(graph=self.graph, root=root, env=dict(self.env), prints=prints)


def build_graph(block: Block | Program) -> GraphBuild:
    """Translate a straight-line block into a value graph and effect root."""

    if isinstance(block, Program):
        block = block.body
    return GraphBuilder().build(block)


__all__ = ["GraphBuild", "GraphBuilder", "Term", "ValueGraph", "build_graph"]
