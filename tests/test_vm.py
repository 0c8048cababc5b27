import logging

import pytest

from impvm.compiler import compile_program
from impvm.exceptions import (
    AddressFault,
    ProgramCounterFault,
    StackUnderflow,
    StepLimitExceeded,
    VMFault,
)
from impvm.syntax import Assign, BinOp, BinaryOp, Block, If, Num, Print, Program, Var, While
from impvm.vm import Insn, Opcode, VirtualMachine, VMState, execute
from impvm.vm.opcodes import OPCODE_HANDLERS, handle_enter, handle_exit, wrap_int64


def _state(*insns, **kwargs) -> VMState:
    return VMState(code=tuple(insns), **kwargs)


def test_every_opcode_has_a_handler():
    assert set(OPCODE_HANDLERS) == set(Opcode)


def test_factorial_prints_ten_factorial(factorial_program):
    printed = []
    output = execute(compile_program(factorial_program), printer=printed.append)
    assert output == [3628800]
    assert printed == [3628800]


def test_if_takes_true_branch(branch_program):
    vm = VirtualMachine(compile_program(branch_program), printer=None)
    assert vm.run() == [2]
    assert vm.dump_state() == "pc = 15\nstack = []"


def test_straight_line_program_reads_args(straight_program):
    assert execute(compile_program(straight_program), [3, 7], printer=None) == [-3, 6]


def test_frame_is_released_on_halt(factorial_program):
    vm = VirtualMachine(compile_program(factorial_program), printer=None)
    vm.run()
    assert vm.state.locals == []
    assert vm.state.fp == 0
    assert vm.state.halted is True


def test_enter_and_exit_restore_frame_pointer():
    state = _state(Insn(Opcode.ENTER, 2), locals=[7, 8], fp=1)
    handle_enter(state, 2)
    assert state.locals == [7, 8, 1, 0, 0]
    assert state.fp == 3
    handle_exit(state, 2)
    assert state.locals == [7, 8]
    assert state.fp == 1


def test_exit_underflow_is_reported():
    vm = VirtualMachine([Insn(Opcode.EXIT, 3), Insn(Opcode.HALT)], printer=None)
    with pytest.raises(StackUnderflow):
        vm.run()


def test_pop_from_empty_stack():
    vm = VirtualMachine([Insn(Opcode.ADD), Insn(Opcode.HALT)], printer=None)
    with pytest.raises(StackUnderflow) as excinfo:
        vm.run()
    assert excinfo.value.pc == 0
    assert "pc=0 (Add)" in str(excinfo.value)


def test_local_outside_frame():
    code = [Insn(Opcode.ENTER, 1), Insn(Opcode.GET_LOCAL, 1), Insn(Opcode.HALT)]
    with pytest.raises(AddressFault):
        VirtualMachine(code, printer=None).run()


def test_argument_index_out_of_range():
    code = [Insn(Opcode.LITERAL, 2), Insn(Opcode.INPUT_READ), Insn(Opcode.HALT)]
    with pytest.raises(AddressFault, match="argument index 2"):
        VirtualMachine(code, [1, 2], printer=None).run()


def test_running_off_the_end_faults():
    with pytest.raises(ProgramCounterFault):
        VirtualMachine([Insn(Opcode.LITERAL, 1)], printer=None).run()


def test_step_limit_triggers(factorial_program):
    vm = VirtualMachine(compile_program(factorial_program), printer=None, step_limit=20)
    with pytest.raises(StepLimitExceeded, match="step limit"):
        vm.run()
    assert vm.state.steps == 20


def test_vm_faults_share_a_base():
    assert issubclass(StepLimitExceeded, VMFault)
    assert issubclass(AddressFault, VMFault)


def test_arithmetic_wraps_at_64_bits():
    code = [
        Insn(Opcode.LITERAL, 1 << 62),
        Insn(Opcode.LITERAL, 4),
        Insn(Opcode.MUL),
        Insn(Opcode.PRINT),
        Insn(Opcode.LITERAL, (1 << 63) - 1),
        Insn(Opcode.LITERAL, 1),
        Insn(Opcode.ADD),
        Insn(Opcode.PRINT),
        Insn(Opcode.HALT),
    ]
    assert execute(code, printer=None) == [0, -(1 << 63)]
    assert wrap_int64(-(1 << 63) - 1) == (1 << 63) - 1


def test_comparisons_push_one_or_zero():
    code = [
        Insn(Opcode.LITERAL, 1),
        Insn(Opcode.LITERAL, 2),
        Insn(Opcode.LT),
        Insn(Opcode.PRINT),
        Insn(Opcode.LITERAL, 1),
        Insn(Opcode.LITERAL, 2),
        Insn(Opcode.GT),
        Insn(Opcode.PRINT),
        Insn(Opcode.HALT),
    ]
    assert execute(code, printer=None) == [1, 0]


def test_branch_if_zero_falls_through_on_nonzero():
    code = [
        Insn(Opcode.LITERAL, 5),
        Insn(Opcode.BRANCH_IF_ZERO, 3),
        Insn(Opcode.LITERAL, 1),
        Insn(Opcode.PRINT),
        Insn(Opcode.HALT),
    ]
    assert execute(code, printer=None) == [1]


def test_steps_are_logged_at_debug(branch_program, caplog):
    logger = logging.getLogger("impvm.test.vm")
    with caplog.at_level(logging.DEBUG, logger="impvm.test.vm"):
        VirtualMachine(compile_program(branch_program), printer=None, logger=logger).run()
    executed = [record.getMessage() for record in caplog.records if "Executing" in record.getMessage()]
    assert executed[0] == "Executing    0 Enter 2"
    assert any("BranchIfZero +4" in line for line in executed)


def test_if_takes_else_branch_on_zero():
    x, y = Var("x"), Var("y")
    program = Program(
        Block(
            [
                Assign(x, Num(3)),
                Assign(y, Num(5)),
                If(BinaryOp(BinOp.GT, x, y), Block([Print(Num(2))]), Block([Print(Num(4))])),
            ]
        )
    )
    assert execute(compile_program(program), printer=None) == [4]


def test_loop_body_never_runs_when_condition_starts_false():
    x = Var("x")
    program = Program(
        Block(
            [
                Assign(x, Num(0)),
                While(BinaryOp(BinOp.GT, x, Num(0)), Block([Print(x)])),
                Print(Num(9)),
            ]
        )
    )
    assert execute(compile_program(program), printer=None) == [9]
