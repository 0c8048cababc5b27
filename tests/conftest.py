"""Test configuration ensuring the project source tree is importable."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent

root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)
else:
    idx = sys.path.index(root_str)
    if idx != 0:
        sys.path.insert(0, sys.path.pop(idx))

from impvm.syntax import (  # noqa: E402
    Assign,
    BinOp,
    BinaryOp,
    Block,
    If,
    Input,
    Num,
    Print,
    Program,
    Var,
    While,
)

X, Y, Z = Var("x"), Var("y"), Var("z")


@pytest.fixture
def factorial_program() -> Program:
    """``x = 10; y = 1; while x > 0 do y = y * x; x = x - 1; end print y;``"""

    return Program(
        Block(
            [
                Assign(X, Num(10)),
                Assign(Y, Num(1)),
                While(
                    BinaryOp(BinOp.GT, X, Num(0)),
                    Block(
                        [
                            Assign(Y, BinaryOp(BinOp.MUL, Y, X)),
                            Assign(X, BinaryOp(BinOp.SUB, X, Num(1))),
                        ]
                    ),
                ),
                Print(Y),
            ]
        )
    )


@pytest.fixture
def branch_program() -> Program:
    """``x = 5; y = 3; if x > y then print 2; else print 4; end``"""

    return Program(
        Block(
            [
                Assign(X, Num(5)),
                Assign(Y, Num(3)),
                If(
                    BinaryOp(BinOp.GT, X, Y),
                    Block([Print(Num(2))]),
                    Block([Print(Num(4))]),
                ),
            ]
        )
    )


@pytest.fixture
def straight_program() -> Program:
    """``x = args(0); y = 2*x + args(1); print y - x - y; z = x + x; print z;``"""

    return Program(
        Block(
            [
                Assign(X, Input(Num(0))),
                Assign(
                    Y,
                    BinaryOp(BinOp.ADD, BinaryOp(BinOp.MUL, Num(2), X), Input(Num(1))),
                ),
                Print(BinaryOp(BinOp.SUB, BinaryOp(BinOp.SUB, Y, X), Y)),
                Assign(Z, BinaryOp(BinOp.ADD, X, X)),
                Print(Z),
            ]
        )
    )
