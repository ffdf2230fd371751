"""Serialized span handles for crossing process boundaries.

``span_to_string`` encodes the trace state of a context as a short JSON
string; ``string_to_span`` decodes it on the other side and ``resume_trace``
seeds a fresh context with it, so the next span started there is attached
under the span that handed it off.
"""

import orjson

from span_linker.telemetry import (
    TRACE_HANDOFF_DECODE_FAILED,
    TRACE_HANDOFF_ENCODE_FAILED,
    TRACE_RESUMED,
    get_logger,
)
from span_linker.tracing.context import (
    CallContext,
    TraceState,
    get_state,
    set_trace_options,
    with_parent,
)
from span_linker.tracing.types import HandoffError

log = get_logger(__name__)

_FIELDS = ("trace_id", "parent_run_id", "parent_dotted_order")


def span_to_string(ctx: CallContext) -> str:
    """Encode the trace state carried by ``ctx``.

    Returns:
        JSON text, or an empty string when ``ctx`` carries no state.

    Raises:
        HandoffError: If the state cannot be encoded (e.g. an id that is not valid UTF-8).
    """
    state = get_state(ctx)
    if state is None:
        return ""
    try:
        data = orjson.dumps({name: getattr(state, name) for name in _FIELDS})
    except orjson.JSONEncodeError as e:
        log.warning(TRACE_HANDOFF_ENCODE_FAILED, error=str(e))
        raise HandoffError(f"Cannot encode span handle: {e}") from e
    return data.decode("utf-8")


def string_to_span(value: str) -> TraceState | None:
    """Decode a handle produced by span_to_string.

    Returns:
        The encoded TraceState, or None for an empty string.

    Raises:
        HandoffError: If ``value`` is not a valid handle.
    """
    if not value:
        return None

    try:
        data = orjson.loads(value)
    except orjson.JSONDecodeError as e:
        log.warning(TRACE_HANDOFF_DECODE_FAILED, error=str(e))
        raise HandoffError(f"Invalid span handle: {e}") from e

    if not isinstance(data, dict):
        raise HandoffError("Invalid span handle: expected a JSON object")
    for name in _FIELDS:
        if not isinstance(data.get(name, ""), str):
            raise HandoffError(f"Invalid span handle: {name} must be a string")

    return TraceState(**{name: data.get(name, "") for name in _FIELDS})


def resume_trace(ctx: CallContext, state: TraceState | None) -> CallContext:
    """Seed ``ctx`` so the next span started from it continues ``state``.

    The state is placed in the trace options; it takes effect for contexts
    that do not already carry trace state.

    Args:
        ctx: Context in the receiving process.
        state: Decoded handle; None leaves ``ctx`` unchanged.

    Returns:
        Derived context.
    """
    if state is None:
        return ctx
    log.debug(TRACE_RESUMED, trace_id=state.trace_id, parent_run_id=state.parent_run_id)
    return set_trace_options(
        ctx,
        None,
        with_parent(state.trace_id, state.parent_run_id, state.parent_dotted_order),
    )
