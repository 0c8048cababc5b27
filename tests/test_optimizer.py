import pytest

from impvm.compiler import compile_program
from impvm.exceptions import UnsupportedConstruct
from impvm.optimizer import OptimizationResult, RewriteLimits, optimize, optimize_program
from impvm.syntax import Assign, BinOp, BinaryOp, Block, Input, Num, Print, Program, Var, to_source
from impvm.vm import execute

ARG_TABLE = [(3, 7), (0, 0), (1, 2), (-5, 11), (100, -3), ((1 << 62), 1)]


def _run(program, args):
    return execute(compile_program(program), args, printer=None)


def test_scenario_output_is_preserved(straight_program):
    optimized = optimize(straight_program)
    assert _run(straight_program, [3, 7]) == [-3, 6]
    assert _run(optimized, [3, 7]) == [-3, 6]


@pytest.mark.parametrize("args", ARG_TABLE)
def test_optimization_preserves_semantics(straight_program, args):
    optimized = optimize(straight_program)
    assert _run(optimized, list(args)) == _run(straight_program, list(args))


def test_dead_value_is_dropped(straight_program):
    result = optimize_program(straight_program)
    assert isinstance(result, OptimizationResult)
    assert "args(1)" not in to_source(result.program)
    assert result.metadata["nodes"] == len(result.extracted)


def test_print_count_and_order_are_kept():
    a = Var("a")
    program = Program(
        Block(
            [
                Assign(a, Input(Num(0))),
                Print(Num(1)),
                Print(BinaryOp(BinOp.MUL, a, Num(1))),
                Print(Num(1)),
                Print(BinaryOp(BinOp.SUB, a, a)),
            ]
        )
    )
    optimized = optimize(program)
    printed = [stmt for stmt in optimized.body if isinstance(stmt, Print)]
    assert len(printed) == 4
    assert _run(optimized, [9]) == [1, 9, 1, 0]


def test_comparisons_survive_rewriting():
    a = Var("a")
    program = Program(
        Block(
            [
                Assign(a, Input(Num(0))),
                Print(BinaryOp(BinOp.LT, a, Num(4))),
                Print(BinaryOp(BinOp.GT, BinaryOp(BinOp.ADD, a, Num(0)), Num(4))),
            ]
        )
    )
    optimized = optimize(program)
    for value in (3, 4, 5):
        assert _run(optimized, [value]) == _run(program, [value])


def test_control_flow_is_not_optimized(factorial_program):
    with pytest.raises(UnsupportedConstruct):
        optimize(factorial_program)


def test_partial_result_is_still_correct(straight_program):
    result = optimize_program(straight_program, limits=RewriteLimits(iteration_limit=1))
    assert result.metadata["partial"] is True
    assert _run(result.program, [3, 7]) == [-3, 6]


def test_out_of_range_literal_wraps_like_the_vm():
    program = Program(
        Block(
            [
                Print(BinaryOp(BinOp.ADD, Num(1 << 63), Num(0))),
                Print(BinaryOp(BinOp.MUL, Num((1 << 64) + 5), Input(Num(0)))),
            ]
        )
    )
    expected = _run(program, [2])
    assert expected == [-(1 << 63), 10]
    assert _run(optimize(program), [2]) == expected
