"""AST nodes for the imperative language and a source renderer."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterator, List


# ---------------------------------------------------------------------------
# Expression nodes


class Expr:
    """Base class for all expression nodes."""


class BinOp(enum.Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    LT = "<"
    GT = ">"

    @property
    def symbol(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Var(Expr):
    """An identifier; equality and hashing go by name."""

    name: str

    def render(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class Num(Expr):
    value: int

    def render(self) -> str:
        return str(self.value)


@dataclass(frozen=True, slots=True)
class BinaryOp(Expr):
    op: BinOp
    left: Expr
    right: Expr

    def render(self) -> str:
        return f"{_render_operand(self.left)} {self.op.symbol} {_render_operand(self.right)}"


@dataclass(frozen=True, slots=True)
class Input(Expr):
    """Read the program argument at the position given by ``index``."""

    index: Expr

    def render(self) -> str:
        return f"args({render_expr(self.index)})"


# ---------------------------------------------------------------------------
# Statement nodes


class Stmt:
    """Base class for statements."""


@dataclass(slots=True)
class Block:
    statements: List[Stmt] = field(default_factory=list)

    def __iter__(self) -> Iterator[Stmt]:
        return iter(self.statements)

    def __len__(self) -> int:
        return len(self.statements)


@dataclass(slots=True)
class Assign(Stmt):
    target: Var
    value: Expr


@dataclass(slots=True)
class Print(Stmt):
    value: Expr


@dataclass(slots=True)
class If(Stmt):
    test: Expr
    body: Block = field(default_factory=Block)
    orelse: Block = field(default_factory=Block)


@dataclass(slots=True)
class While(Stmt):
    test: Expr
    body: Block = field(default_factory=Block)


@dataclass(slots=True)
class Program:
    body: Block = field(default_factory=Block)


# ---------------------------------------------------------------------------
# Pretty printer helpers


def _render_operand(expr: Expr) -> str:
    if isinstance(expr, BinaryOp):
        return f"({expr.render()})"
    return render_expr(expr)


def render_expr(expr: Expr) -> str:
    if isinstance(expr, (Var, Num, BinaryOp, Input)):
        return expr.render()
    raise TypeError(f"Unsupported expression: {expr!r}")


def _render_block(block: Block, indent: str, level: int) -> List[str]:
    lines: List[str] = []
    pad = indent * level
    for stmt in block:
        if isinstance(stmt, Assign):
            lines.append(f"{pad}{stmt.target.name} = {render_expr(stmt.value)};")
        elif isinstance(stmt, Print):
            lines.append(f"{pad}print {render_expr(stmt.value)};")
        elif isinstance(stmt, If):
            lines.append(f"{pad}if {render_expr(stmt.test)} then")
            lines.extend(_render_block(stmt.body, indent, level + 1))
            if stmt.orelse.statements:
                lines.append(f"{pad}else")
                lines.extend(_render_block(stmt.orelse, indent, level + 1))
            lines.append(f"{pad}end")
        elif isinstance(stmt, While):
            lines.append(f"{pad}while {render_expr(stmt.test)} do")
            lines.extend(_render_block(stmt.body, indent, level + 1))
            lines.append(f"{pad}end")
        else:
            raise TypeError(f"Unsupported statement: {stmt!r}")
    return lines


def to_source(program: Program, *, indent: str = "    ") -> str:
    """Render *program* in the language's surface syntax."""

    return "\n".join(_render_block(program.body, indent, 0))


__all__ = [
    "Assign",
    "BinOp",
    "BinaryOp",
    "Block",
    "Expr",
    "If",
    "Input",
    "Num",
    "Print",
    "Program",
    "Stmt",
    "Var",
    "While",
    "render_expr",
    "to_source",
]
