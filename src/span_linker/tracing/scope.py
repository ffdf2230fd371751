"""Ambient current context for async code.

The explicit API passes a CallContext in and out of every call. This module
keeps the current context in a ContextVar instead, so nested coroutines and
the tasks they create inherit it without threading it through arguments.
asyncio copies ContextVars into each new task, which keeps concurrently
started siblings isolated from one another.
"""

import asyncio
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from span_linker.tracing.context import CallContext
from span_linker.tracing.controller import SpanController
from span_linker.tracing.types import RunKind, SpanDescriptor, SpanLifecycle

_current_context: ContextVar[CallContext | None] = ContextVar(
    "span_linker_call_context", default=None
)


def current_context() -> CallContext:
    """Return the ambient context (the empty root context when none is set)."""
    return _current_context.get() or CallContext.background()


@contextmanager
def use_context(ctx: CallContext) -> Iterator[CallContext]:
    """Make ``ctx`` the ambient context for the duration of the block."""
    token = _current_context.set(ctx)
    try:
        yield ctx
    finally:
        _current_context.reset(token)


@dataclass
class SpanHandle:
    """Handle to a span opened by trace_span.

    Attributes:
        descriptor: The traced operation.
        run_id: Run id, or None when the span is not traced.
        context: Context carrying this span's state.
        lifecycle: Where the span is in its lifecycle.
        output: Output recorded when the block exits normally.
    """

    descriptor: SpanDescriptor
    run_id: str | None = None
    context: CallContext = field(default_factory=CallContext.background)
    lifecycle: SpanLifecycle = SpanLifecycle.PENDING
    output: Any = None

    def set_output(self, output: Any) -> None:
        """Record the output sent when the span ends."""
        self.output = output


@asynccontextmanager
async def trace_span(
    controller: SpanController,
    name: str,
    kind: RunKind | str = RunKind.CHAIN,
    *,
    inputs: Any = None,
    untraced: bool = False,
    ctx: CallContext | None = None,
) -> AsyncIterator[SpanHandle]:
    """Open a span around a block of async code.

    The span's context becomes the ambient context inside the block. On normal
    exit the span ends with ``handle.output``; if the block raises (or is
    cancelled) the span ends with the error, which is then re-raised.

    Example:
        >>> async with trace_span(controller, "graph") as span:
        ...     async with trace_span(controller, "node1", RunKind.TOOL):
        ...         ...
        ...     span.set_output({"answer": 42})
    """
    if not isinstance(kind, RunKind):
        kind = RunKind.from_str(kind)
    descriptor = SpanDescriptor(name=name, kind=kind, untraced=untraced)
    parent = ctx if ctx is not None else current_context()

    child_ctx, run_id = await controller.start_span(parent, descriptor, inputs)
    handle = SpanHandle(
        descriptor=descriptor,
        run_id=run_id,
        context=child_ctx,
        lifecycle=SpanLifecycle.STARTED,
    )

    token = _current_context.set(child_ctx)
    try:
        yield handle
    except (Exception, asyncio.CancelledError) as e:
        # No run id means nothing was recorded; child_ctx is then the parent's.
        if run_id is not None:
            await controller.end_span(child_ctx, descriptor, error=e, run_id=run_id)
        handle.lifecycle = SpanLifecycle.ENDED
        raise
    else:
        if run_id is not None:
            await controller.end_span(child_ctx, descriptor, handle.output, run_id=run_id)
        handle.lifecycle = SpanLifecycle.ENDED
    finally:
        _current_context.reset(token)
