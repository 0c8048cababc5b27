"""Equality-saturation optimizer for straight-line programs.

The program is translated into a value graph (:mod:`.graph`), rewritten to a
fixpoint (:mod:`.rewriter`, :mod:`.rules`) and turned back into statements
(:mod:`.linearize`).  Programs holding ``if`` or ``while`` raise
:class:`~impvm.exceptions.UnsupportedConstruct`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..syntax import Program, to_source
from .graph import GraphBuild, GraphBuilder, Term, ValueGraph, build_graph
from .linearize import Linearizer, linearize
from .rewriter import ExtractedTerm, GraphNode, NodeKind, RewriteLimits, saturate
from .rules import arithmetic_rules

LOG = logging.getLogger(__name__)


@dataclass
class OptimizationResult:
    program: Program
    extracted: ExtractedTerm

    @property
    def metadata(self) -> Dict[str, Any]:
        return self.extracted.metadata


def optimize_program(
    program: Program,
    *,
    limits: Optional[RewriteLimits] = None,
    linearizer: Optional[Linearizer] = None,
) -> OptimizationResult:
    built = build_graph(program.body)
    extracted = saturate(built.graph, built.root, limits=limits)
    block = (linearizer or Linearizer()).linearize(extracted)
    optimized = Program(block)
    LOG.debug("optimized program:\n%s", to_source(optimized))
    return OptimizationResult(program=optimized, extracted=extracted)


def optimize(program: Program, **options: Any) -> Program:
    """Return an equivalent, simplified copy of a straight-line *program*."""

    return optimize_program(program, **options).program


__all__ = [
    "ExtractedTerm",
    "GraphBuild",
    "GraphBuilder",
    "GraphNode",
    "Linearizer",
    "NodeKind",
    "OptimizationResult",
    "RewriteLimits",
    "Term",
    "ValueGraph",
    "arithmetic_rules",
    "build_graph",
    "linearize",
    "optimize",
    "optimize_program",
    "saturate",
]
