"""Span linking: run ids, dotted orders, and trace state propagation.

This module provides:
- CallContext, TraceOptions and TraceState for carrying trace data
- SpanController / StreamingSpanController for span start and end
- Dotted-order helpers
- Serialized span handles for resuming a trace elsewhere
- trace_span for ambient (ContextVar-based) tracing of async code
"""

from span_linker.tracing.background import get_background_task_count, wait_for_background_tasks
from span_linker.tracing.context import (
    CallContext,
    TraceOption,
    TraceOptions,
    TraceState,
    get_or_init_state,
    get_state,
    get_trace_options,
    publish_state,
    set_trace_options,
    with_metadata,
    with_parent,
    with_reference_example_id,
    with_session_name,
    with_tags,
    with_trace_id,
)
from span_linker.tracing.controller import SpanController
from span_linker.tracing.handoff import resume_trace, span_to_string, string_to_span
from span_linker.tracing.models import Run, RunPatch
from span_linker.tracing.ordering import (
    compose_dotted_order,
    format_timestamp,
    is_ancestor,
    new_run_id,
    parse_dotted_order,
)
from span_linker.tracing.scope import SpanHandle, current_context, trace_span, use_context
from span_linker.tracing.streaming import (
    StreamingSpanController,
    aggregate_chunks,
    aggregate_usage,
)
from span_linker.tracing.types import (
    HandoffError,
    PayloadEncodingError,
    RunKind,
    SinkError,
    SpanDescriptor,
    SpanLifecycle,
    SpanLinkerError,
)

__all__ = [
    # Context
    "CallContext",
    "TraceOption",
    "TraceOptions",
    "TraceState",
    "get_or_init_state",
    "get_state",
    "get_trace_options",
    "publish_state",
    "set_trace_options",
    "with_metadata",
    "with_parent",
    "with_reference_example_id",
    "with_session_name",
    "with_tags",
    "with_trace_id",
    # Controllers
    "SpanController",
    "StreamingSpanController",
    "aggregate_chunks",
    "aggregate_usage",
    "get_background_task_count",
    "wait_for_background_tasks",
    # Ambient scope
    "SpanHandle",
    "current_context",
    "trace_span",
    "use_context",
    # Records and ordering
    "Run",
    "RunPatch",
    "compose_dotted_order",
    "format_timestamp",
    "is_ancestor",
    "new_run_id",
    "parse_dotted_order",
    # Handoff
    "resume_trace",
    "span_to_string",
    "string_to_span",
    # Types and errors
    "RunKind",
    "SpanDescriptor",
    "SpanLifecycle",
    "SpanLinkerError",
    "SinkError",
    "PayloadEncodingError",
    "HandoffError",
]
