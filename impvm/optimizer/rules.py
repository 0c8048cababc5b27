"""Rewrite rules applied to the value graph."""

from __future__ import annotations

from egglog import rewrite, ruleset

from .graph import Term


@ruleset
def arithmetic_rules(x: Term, y: Term, a: Term, b: Term, c: Term):
    # add-comm, mul-comm
    yield rewrite(Term.add(x, y)).to(Term.add(y, x))
    yield rewrite(Term.mul(x, y)).to(Term.mul(y, x))
    # add-0, mul-1
    yield rewrite(Term.add(x, Term.num(0))).to(x)
    yield rewrite(Term.mul(x, Term.num(1))).to(x)
    # sub-self
    yield rewrite(Term.sub(x, x)).to(Term.num(0))
    # mul-dist-add
    yield rewrite(Term.mul(a, Term.add(b, c))).to(Term.add(Term.mul(a, b), Term.mul(a, c)))
    # sub-reorder: lets sub-self cancel operands that are not adjacent
    yield rewrite(Term.sub(Term.sub(a, b), c)).to(Term.sub(Term.sub(a, c), b))
    # mul-two
    yield rewrite(Term.mul(x, Term.num(2))).to(Term.add(x, x))


RULE_NAMES = (
    "add-comm",
    "mul-comm",
    "add-0",
    "mul-1",
    "sub-self",
    "mul-dist-add",
    "sub-reorder",
    "mul-two",
)

__all__ = ["RULE_NAMES", "arithmetic_rules"]
