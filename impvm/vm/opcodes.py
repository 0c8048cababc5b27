from __future__ import annotations

from typing import Callable, Dict, Tuple

from ..exceptions import AddressFault, StackUnderflow
from .insn import Opcode
from .state import VMState

# Type alias for opcode handlers.  Handlers return a tuple of
# (advance, halt): ``advance`` is added to the program counter and ``halt``
# stops the run loop with the program counter left on the halting instruction.
HandlerResult = Tuple[int, bool]
# Handlers for opcodes with an operand receive it as a second positional
# argument; the others take only the state.
OpcodeHandler = Callable[..., HandlerResult]

_INT64_MIN = -(1 << 63)
_INT64_SPAN = 1 << 64


def wrap_int64(value: int) -> int:
    """Reduce *value* to a signed 64-bit integer (two's complement wrap)."""

    return (value - _INT64_MIN) % _INT64_SPAN + _INT64_MIN


def _pop(state: VMState) -> int:
    if not state.stack:
        raise StackUnderflow("operand stack underflow", pc=state.pc, insn=state.code[state.pc])
    return state.stack.pop()


def _local_index(state: VMState, slot: int) -> int:
    index = state.fp + slot
    if slot < 0 or index >= len(state.locals):
        raise AddressFault(
            f"local slot {slot} outside frame (fp={state.fp}, locals={len(state.locals)})",
            pc=state.pc,
            insn=state.code[state.pc],
        )
    return index


# ---------------------------------------------------------------------------
# Stack manipulation and loads


def handle_halt(state: VMState) -> HandlerResult:
    return 0, True


def handle_literal(state: VMState, value: int) -> HandlerResult:
    state.stack.append(wrap_int64(value))
    return 1, False


def handle_print(state: VMState) -> HandlerResult:
    value = _pop(state)
    state.output.append(value)
    if state.printer is not None:
        state.printer(value)
    return 1, False


def handle_input_read(state: VMState) -> HandlerResult:
    index = _pop(state)
    if index < 0 or index >= len(state.args):
        raise AddressFault(
            f"argument index {index} out of range ({len(state.args)} arguments)",
            pc=state.pc,
            insn=state.code[state.pc],
        )
    state.stack.append(state.args[index])
    return 1, False


# ---------------------------------------------------------------------------
# Arithmetic and comparisons


def _binary_op(state: VMState, op: Callable[[int, int], int]) -> None:
    right = _pop(state)
    left = _pop(state)
    state.stack.append(op(left, right))


def handle_add(state: VMState) -> HandlerResult:
    _binary_op(state, lambda a, b: wrap_int64(a + b))
    return 1, False


def handle_sub(state: VMState) -> HandlerResult:
    _binary_op(state, lambda a, b: wrap_int64(a - b))
    return 1, False


def handle_mul(state: VMState) -> HandlerResult:
    _binary_op(state, lambda a, b: wrap_int64(a * b))
    return 1, False


def handle_lt(state: VMState) -> HandlerResult:
    _binary_op(state, lambda a, b: 1 if a < b else 0)
    return 1, False


def handle_gt(state: VMState) -> HandlerResult:
    _binary_op(state, lambda a, b: 1 if a > b else 0)
    return 1, False


# ---------------------------------------------------------------------------
# Frames and locals


def handle_enter(state: VMState, count: int) -> HandlerResult:
    state.locals.append(state.fp)
    state.fp = len(state.locals)
    state.locals.extend([0] * count)
    return 1, False


def handle_exit(state: VMState, count: int) -> HandlerResult:
    if count < 0 or len(state.locals) < count + 1:
        raise StackUnderflow(
            f"cannot release {count} slots from {len(state.locals)} locals",
            pc=state.pc,
            insn=state.code[state.pc],
        )
    del state.locals[len(state.locals) - count:]
    state.fp = state.locals.pop()
    return 1, False


def handle_get_local(state: VMState, slot: int) -> HandlerResult:
    state.stack.append(state.locals[_local_index(state, slot)])
    return 1, False


def handle_set_local(state: VMState, slot: int) -> HandlerResult:
    index = _local_index(state, slot)
    state.locals[index] = _pop(state)
    return 1, False


# ---------------------------------------------------------------------------
# Control flow


def handle_branch(state: VMState, offset: int) -> HandlerResult:
    return offset, False


def handle_branch_if_zero(state: VMState, offset: int) -> HandlerResult:
    cond = _pop(state)
    return (offset if cond == 0 else 1), False


OPCODE_HANDLERS: Dict[Opcode, OpcodeHandler] = {
    Opcode.HALT: handle_halt,
    Opcode.LITERAL: handle_literal,
    Opcode.ADD: handle_add,
    Opcode.SUB: handle_sub,
    Opcode.MUL: handle_mul,
    Opcode.LT: handle_lt,
    Opcode.GT: handle_gt,
    Opcode.PRINT: handle_print,
    Opcode.ENTER: handle_enter,
    Opcode.EXIT: handle_exit,
    Opcode.GET_LOCAL: handle_get_local,
    Opcode.SET_LOCAL: handle_set_local,
    Opcode.INPUT_READ: handle_input_read,
    Opcode.BRANCH: handle_branch,
    Opcode.BRANCH_IF_ZERO: handle_branch_if_zero,
}

__all__ = ["OPCODE_HANDLERS", "OpcodeHandler", "HandlerResult", "wrap_int64"]
