from impvm.syntax import (
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
    render_expr,
    to_source,
)


def test_variables_compare_by_name():
    assert Var("x") == Var("x")
    assert len({Var("x"), Var("x"), Var("y")}) == 2


def test_nested_operands_are_parenthesized():
    expr = BinaryOp(BinOp.SUB, BinaryOp(BinOp.SUB, Var("y"), Var("x")), Var("y"))
    assert render_expr(expr) == "(y - x) - y"
    assert render_expr(Input(BinaryOp(BinOp.ADD, Num(1), Num(2)))) == "args(1 + 2)"


def test_to_source_renders_branches(branch_program):
    assert to_source(branch_program) == "\n".join(
        [
            "x = 5;",
            "y = 3;",
            "if x > y then",
            "    print 2;",
            "else",
            "    print 4;",
            "end",
        ]
    )


def test_to_source_omits_empty_else():
    program = Program(Block([If(Num(1), Block([Print(Num(1))]))]))
    assert to_source(program, indent="  ") == "if 1 then\n  print 1;\nend"


def test_to_source_renders_loops(factorial_program):
    source = to_source(factorial_program)
    assert "while x > 0 do" in source
    assert "    y = y * x;" in source
    assert source.endswith("end\nprint y;")


def test_blocks_iterate_statements():
    block = Block([Assign(Var("a"), Num(1)), While(Num(0))])
    assert len(block) == 2
    assert [type(stmt).__name__ for stmt in block] == ["Assign", "While"]
