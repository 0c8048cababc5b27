"""Equality saturation over the value graph and minimum-size extraction."""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from egglog import Ruleset, get_callable_args, get_literal_value

from ..exceptions import RewriteBudgetExceeded
from .graph import Term, ValueGraph
from .rules import RULE_NAMES, arithmetic_rules

LOG = logging.getLogger(__name__)

DEFAULT_ITERATION_LIMIT = 30
DEFAULT_TIME_LIMIT = 5.0


# ---------------------------------------------------------------------------
# Extracted term arena


class NodeKind(enum.Enum):
    NUM = "num"
    SYMBOL = "symbol"
    ADD = "+"
    SUB = "-"
    MUL = "*"
    LT = "<"
    GT = ">"
    ARG_REF = "args"
    IO_INIT = "[]"
    IO_SEQ = ">>>"


@dataclass(frozen=True)
class GraphNode:
    """One node of an extracted term; ``children`` are ids of earlier nodes."""

    kind: NodeKind
    children: Tuple[int, ...] = ()
    value: Union[int, str, None] = None


@dataclass
class ExtractedTerm:
    """Flat, id-addressed node list with the root last.

    Equal subterms occupy a single slot, so a node referenced from several
    places is shared rather than duplicated.
    """

    nodes: List[GraphNode]
    cost: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def root(self) -> int:
        return len(self.nodes) - 1

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, node_id: int) -> GraphNode:
        return self.nodes[node_id]

    def render(self) -> str:
        lines = []
        for node_id, node in enumerate(self.nodes):
            operands = [str(node.value)] if node.value is not None else []
            operands.extend(f"#{child}" for child in node.children)
            lines.append(f"#{node_id} = ({' '.join([node.kind.value, *operands])})")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Limits


@dataclass
class RewriteLimits:
    """Budgets enforced while the rule set runs."""

    iteration_limit: Optional[int] = DEFAULT_ITERATION_LIMIT
    time_limit: Optional[float] = DEFAULT_TIME_LIMIT
    strict: bool = False
    start_time: float = field(default_factory=time.perf_counter)
    iterations: int = 0
    partial: bool = False
    partial_reason: Optional[str] = None
    partial_kind: Optional[str] = None

    def begin(self) -> None:
        self.start_time = time.perf_counter()
        self.iterations = 0
        self.partial = False
        self.partial_kind = None
        self.partial_reason = None

    def mark_partial(self, kind: str, reason: str) -> None:
        if not self.partial:
            self.partial = True
            self.partial_kind = kind
            self.partial_reason = reason

    def consume(self) -> bool:
        """Account for one more iteration; ``False`` once a budget is spent."""

        if self.partial:
            return False
        if self.iteration_limit is not None and self.iterations >= self.iteration_limit:
            self.mark_partial("iteration_budget", "iteration budget exceeded")
            return False
        if self.time_limit is not None and self.time_limit > 0:
            if time.perf_counter() - self.start_time >= self.time_limit:
                self.mark_partial("time_budget", "time limit exceeded")
                return False
        self.iterations += 1
        return True


# ---------------------------------------------------------------------------
# Extraction


_CONSTRUCTORS = (
    (NodeKind.NUM, Term.num),
    (NodeKind.SYMBOL, Term.symbol),
    (NodeKind.ADD, Term.add),
    (NodeKind.SUB, Term.sub),
    (NodeKind.MUL, Term.mul),
    (NodeKind.LT, Term.lt),
    (NodeKind.GT, Term.gt),
    (NodeKind.ARG_REF, Term.arg_ref),
    (NodeKind.IO_INIT, Term.io_init),
    (NodeKind.IO_SEQ, Term.io_seq),
)


def _deconstruct(term: Term) -> Tuple[NodeKind, Sequence[Any]]:
    for kind, constructor in _CONSTRUCTORS:
        args = get_callable_args(term, constructor)
        if args is not None:
            return kind, args
    raise TypeError(f"Unsupported graph term: {term}")


def flatten_term(term: Term) -> List[GraphNode]:
    """Hash-cons an extracted expression tree into a post-order node list."""

    nodes: List[GraphNode] = []
    index: Dict[GraphNode, int] = {}

    def intern(node: GraphNode) -> int:
        node_id = index.get(node)
        if node_id is None:
            node_id = len(nodes)
            nodes.append(node)
            index[node] = node_id
        return node_id

    results: List[int] = []
    stack: List[Tuple[Term, Optional[Tuple[NodeKind, int]]]] = [(term, None)]
    while stack:
        current, pending = stack.pop()
        if pending is not None:
            kind, arity = pending
            split = len(results) - arity
            children = tuple(results[split:])
            del results[split:]
            results.append(intern(GraphNode(kind, children)))
            continue
        kind, args = _deconstruct(current)
        if kind in (NodeKind.NUM, NodeKind.SYMBOL):
            results.append(intern(GraphNode(kind, value=get_literal_value(args[0]))))
            continue
        stack.append((current, (kind, len(args))))
        for arg in reversed(args):
            stack.append((arg, None))
    return nodes


def saturate(
    graph: ValueGraph,
    root: Term,
    *,
    rules: Ruleset = arithmetic_rules,
    limits: Optional[RewriteLimits] = None,
) -> ExtractedTerm:
    """Apply ``rules`` until nothing changes or a budget runs out, then extract.

    Extraction picks the smallest term in each class reachable from ``root``.
    Running out of budget still extracts from the graph as it stands; the
    returned metadata then carries a ``partial`` flag, unless
    ``limits.strict`` asks for :class:`RewriteBudgetExceeded` instead.
    """

    limits = limits if limits is not None else RewriteLimits()
    limits.begin()
    egraph = graph.egraph

    saturated = False
    while limits.consume():
        report = egraph.run(rules)
        LOG.debug("rewrite iteration %d (updated=%s)", limits.iterations, report.updated)
        if not report.updated:
            saturated = True
            break

    metadata: Dict[str, Any] = {
        "saturated": saturated,
        "iterations": limits.iterations,
        "rules": list(RULE_NAMES) if rules is arithmetic_rules else [],
    }
    if limits.partial:
        metadata["partial"] = True
        metadata["partial_kind"] = limits.partial_kind
        metadata["partial_reason"] = limits.partial_reason
        if limits.strict:
            raise RewriteBudgetExceeded(
                limits.partial_kind or "budget",
                limits.partial_reason or "rewrite budget exceeded",
                limits.iterations,
            )
        LOG.warning(
            "rewriting stopped early (%s) after %d iterations; extracting partial result",
            limits.partial_reason,
            limits.iterations,
        )
    else:
        LOG.info("graph saturated after %d iterations", limits.iterations)

    best, cost = egraph.extract(root, include_cost=True)
    nodes = flatten_term(best)
    LOG.debug("extracted %d nodes (cost %s)", len(nodes), cost)
    metadata["nodes"] = len(nodes)
    return ExtractedTerm(nodes=nodes, cost=cost, metadata=metadata)


__all__ = [
    "DEFAULT_ITERATION_LIMIT",
    "DEFAULT_TIME_LIMIT",
    "ExtractedTerm",
    "GraphNode",
    "NodeKind",
    "RewriteLimits",
    "flatten_term",
    "saturate",
]
