"""Pass-based orchestration: compile and run a program, then its optimized form."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .compiler import compile_program
from .exceptions import UnsupportedConstruct
from .logging_config import close_debug_logger, configure_debug_file_logger
from .optimizer import Linearizer, RewriteLimits, optimize_program
from .optimizer.rewriter import DEFAULT_ITERATION_LIMIT, DEFAULT_TIME_LIMIT, ExtractedTerm
from .syntax import Program
from .vm.emulator import VirtualMachine
from .vm.insn import Bytecode, format_code

LOG = logging.getLogger(__name__)

TRACE_LOGGER = "impvm.trace"

PassFn = Callable[["Context"], None]


class PipelineExecutionError(RuntimeError):
    """A pass raised; carries the pass name and the timings gathered so far."""

    def __init__(
        self,
        pass_name: str,
        timings: List[Tuple[str, float]],
        duration: float,
    ) -> None:
        super().__init__(f"pass {pass_name!r} failed after {duration:.3f}s")
        self.pass_name = pass_name
        self.timings = timings
        self.duration = duration


@dataclass
class Context:
    """Shared state threaded through individual pipeline passes."""

    program: Program
    args: Tuple[int, ...] = ()
    options: Dict[str, Any] = field(default_factory=dict)
    code: Optional[Bytecode] = None
    output: List[int] = field(default_factory=list)
    state_dump: str = ""
    optimized: Optional[Program] = None
    extracted: Optional[ExtractedTerm] = None
    optimized_code: Optional[Bytecode] = None
    optimized_output: Optional[List[int]] = None
    optimized_state_dump: str = ""
    pass_metadata: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.args = tuple(int(value) for value in self.args)
        self.options.setdefault("optimize", True)
        self.options.setdefault("echo", False)

    def record_metadata(self, name: str, metadata: Dict[str, Any]) -> None:
        self.pass_metadata[name] = dict(metadata)

    @property
    def echo(self) -> bool:
        return bool(self.options.get("echo"))

    def rewrite_limits(self) -> RewriteLimits:
        return RewriteLimits(
            iteration_limit=self.options.get("iteration_limit", DEFAULT_ITERATION_LIMIT),
            time_limit=self.options.get("time_limit", DEFAULT_TIME_LIMIT),
            strict=bool(self.options.get("strict_budget", False)),
        )


class PassRegistry:
    def __init__(self) -> None:
        self._passes: Dict[str, Tuple[int, PassFn]] = {}

    def register_pass(self, name: str, fn: PassFn, order: int) -> None:
        self._passes[name] = (order, fn)

    def run_passes(
        self,
        ctx: Context,
        skip: Optional[Iterable[str]] = None,
        only: Optional[Iterable[str]] = None,
    ) -> List[Tuple[str, float]]:
        selected: List[Tuple[int, str, PassFn]] = []
        skip_set = {name.strip() for name in (skip or []) if name}
        only_set = {name.strip() for name in (only or []) if name}

        for name, (order, fn) in self._passes.items():
            if skip_set and name in skip_set:
                continue
            if only_set and name not in only_set:
                continue
            selected.append((order, name, fn))
        selected.sort()

        timings: List[Tuple[str, float]] = []
        for _, name, fn in selected:
            start = time.perf_counter()
            try:
                fn(ctx)
            except Exception as exc:
                duration = time.perf_counter() - start
                raise PipelineExecutionError(name, list(timings), duration) from exc
            duration = time.perf_counter() - start
            timings.append((name, duration))
            metadata = ctx.pass_metadata.get(name)
            summary_parts: List[str] = []
            if isinstance(metadata, dict):
                instructions = metadata.get("instructions")
                printed = metadata.get("printed")
                iterations = metadata.get("iterations")
                if isinstance(instructions, int):
                    summary_parts.append(f"ops={instructions}")
                if isinstance(printed, int):
                    summary_parts.append(f"printed={printed}")
                if isinstance(iterations, int):
                    summary_parts.append(f"iterations={iterations}")
                for key in ("partial", "skipped"):
                    if metadata.get(key):
                        summary_parts.append(f"{key}=true")
            suffix = f" ({', '.join(summary_parts)})" if summary_parts else ""
            LOG.info("pass %s completed in %.3fs%s", name, duration, suffix)
        return timings


PIPELINE = PassRegistry()


# ---------------------------------------------------------------------------
# Pass helpers


def _execute(ctx: Context, code: Bytecode, title: str) -> Tuple[List[int], str, int]:
    if ctx.echo:
        print(title)
        print("--- Compiled bytecode: ---")
        print(format_code(code))
        print("--- Results: ---")

    trace_path = ctx.options.get("trace_path")
    logger = configure_debug_file_logger(TRACE_LOGGER, Path(trace_path)) if trace_path else None
    try:
        vm = VirtualMachine(
            code,
            ctx.args,
            printer=print if ctx.echo else None,
            step_limit=ctx.options.get("step_limit"),
            logger=logger,
        )
        output = vm.run()
    finally:
        if logger is not None:
            close_debug_logger(logger)

    dump = vm.dump_state()
    if ctx.echo:
        print(dump)
    return list(output), dump, vm.state.steps


# ---------------------------------------------------------------------------
# Pass implementations


def _pass_compile(ctx: Context) -> None:
    ctx.code = compile_program(ctx.program)
    ctx.record_metadata("compile", {"instructions": len(ctx.code)})


def _pass_execute(ctx: Context) -> None:
    assert ctx.code is not None
    ctx.output, ctx.state_dump, steps = _execute(ctx, ctx.code, "Original program:")
    ctx.record_metadata("execute", {"printed": len(ctx.output), "steps": steps})


def _pass_optimize(ctx: Context) -> None:
    if not ctx.options.get("optimize"):
        ctx.record_metadata("optimize", {"skipped": True, "reason": "disabled"})
        return
    linearizer = Linearizer(inline_literals=bool(ctx.options.get("inline_literals", False)))
    try:
        result = optimize_program(ctx.program, limits=ctx.rewrite_limits(), linearizer=linearizer)
    except UnsupportedConstruct as exc:
        LOG.warning("skipping optimization: %s", exc)
        ctx.record_metadata(
            "optimize", {"skipped": True, "reason": "unsupported", "construct": exc.construct}
        )
        return
    ctx.optimized = result.program
    ctx.extracted = result.extracted
    metadata = dict(result.metadata)
    metadata["statements"] = len(result.program.body)
    ctx.record_metadata("optimize", metadata)


def _pass_compile_optimized(ctx: Context) -> None:
    if ctx.optimized is None:
        ctx.record_metadata("compile_optimized", {"skipped": True})
        return
    ctx.optimized_code = compile_program(ctx.optimized)
    ctx.record_metadata("compile_optimized", {"instructions": len(ctx.optimized_code)})


def _pass_execute_optimized(ctx: Context) -> None:
    if ctx.optimized_code is None:
        ctx.record_metadata("execute_optimized", {"skipped": True})
        return
    if ctx.echo:
        print("")
    output, dump, steps = _execute(ctx, ctx.optimized_code, "Optimized program:")
    ctx.optimized_output = output
    ctx.optimized_state_dump = dump
    ctx.record_metadata("execute_optimized", {"printed": len(output), "steps": steps})


PIPELINE.register_pass("compile", _pass_compile, 10)
PIPELINE.register_pass("execute", _pass_execute, 20)
PIPELINE.register_pass("optimize", _pass_optimize, 30)
PIPELINE.register_pass("compile_optimized", _pass_compile_optimized, 40)
PIPELINE.register_pass("execute_optimized", _pass_execute_optimized, 50)


def run_program(
    program: Program,
    args: Sequence[int] = (),
    *,
    registry: Optional[PassRegistry] = None,
    **options: Any,
) -> Context:
    """Compile and run *program*, then optimize, compile and run it again.

    Optimization is skipped (with a warning) for programs holding ``if`` or
    ``while``.  The returned context carries both outputs and every pass's
    metadata.
    """

    ctx = Context(program=program, args=tuple(args), options=dict(options))
    (registry or PIPELINE).run_passes(ctx)
    return ctx


__all__ = ["Context", "PassRegistry", "PipelineExecutionError", "PIPELINE", "run_program"]
