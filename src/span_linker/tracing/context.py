"""Call context carrying trace options and trace state.

A CallContext is an immutable key/value carrier. Deriving a context with
``with_value`` returns a new snapshot and leaves the original untouched, so
two branches derived from the same parent can never observe each other's
writes. The keys used for trace data are private to this module.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable


class _ContextKey:
    """Unforgeable context key; identity is the only thing compared."""

    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return f"<context key {self._name}>"


class CallContext:
    """Immutable, inheritable key/value carrier.

    Any hashable object may be used as a key; trace data is stored under keys
    only this module holds.
    """

    __slots__ = ("_values",)

    _EMPTY: "CallContext | None" = None

    def __init__(self, values: Mapping[Any, Any] | None = None) -> None:
        self._values = MappingProxyType(dict(values or {}))

    @classmethod
    def background(cls) -> "CallContext":
        """Return the shared empty root context."""
        if cls._EMPTY is None:
            cls._EMPTY = cls()
        return cls._EMPTY

    def with_value(self, key: Any, value: Any) -> "CallContext":
        """Derive a new context with ``key`` bound to ``value``."""
        values = dict(self._values)
        values[key] = value
        return CallContext(values)

    def value(self, key: Any, default: Any = None) -> Any:
        """Read the value bound to ``key`` or ``default``."""
        return self._values.get(key, default)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __repr__(self) -> str:
        return f"CallContext(keys={len(self._values)})"


_TRACE_OPTIONS_KEY = _ContextKey("trace_options")
_TRACE_STATE_KEY = _ContextKey("trace_state")


@dataclass(frozen=True)
class TraceOptions:
    """Per-trace options, set once and inherited by every span.

    Attributes:
        session_name: Session (project) the runs are filed under.
        tags: Free-form tags attached to every run.
        metadata: Free-form metadata attached to every run (read-only).
        trace_id: Explicit trace identifier; generated at the root when empty.
        reference_example_id: Example the trace is associated with.
        parent_run_id: Run to attach the first span to (resuming a trace).
        parent_dotted_order: Dotted order of that run (resuming a trace).
    """

    session_name: str = ""
    tags: frozenset[str] = frozenset()
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    trace_id: str = ""
    reference_example_id: str = ""
    parent_run_id: str = ""
    parent_dotted_order: str = ""

    def __post_init__(self) -> None:
        # Copy caller-owned containers so later mutation by the caller is not visible.
        object.__setattr__(self, "tags", frozenset(self.tags))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @classmethod
    def build(cls, *opts: "TraceOption") -> "TraceOptions":
        """Build options from functional option helpers.

        Example:
            >>> TraceOptions.build(with_session_name("eval"), with_tags("nightly"))
        """
        return cls().merged(*opts)

    def merged(self, *opts: "TraceOption") -> "TraceOptions":
        """Return a copy with ``opts`` layered on top; self is unchanged."""
        options = self
        for opt in opts:
            options = opt(options)
        return options


TraceOption = Callable[[TraceOptions], TraceOptions]


def with_session_name(name: str) -> TraceOption:
    """Set the session (project) name."""
    return lambda o: replace(o, session_name=name)


def with_tags(*tags: str) -> TraceOption:
    """Add tags to the trace."""
    return lambda o: replace(o, tags=o.tags | frozenset(tags))


def with_metadata(metadata: Mapping[str, Any]) -> TraceOption:
    """Merge metadata into the trace metadata."""
    return lambda o: replace(o, metadata={**o.metadata, **metadata})


def with_trace_id(trace_id: str) -> TraceOption:
    """Force a specific trace identifier."""
    return lambda o: replace(o, trace_id=trace_id)


def with_reference_example_id(example_id: str) -> TraceOption:
    """Associate the trace with a reference example."""
    return lambda o: replace(o, reference_example_id=example_id)


def with_parent(trace_id: str, parent_run_id: str, parent_dotted_order: str) -> TraceOption:
    """Attach the first span of this context under an existing run."""
    return lambda o: replace(
        o,
        trace_id=trace_id,
        parent_run_id=parent_run_id,
        parent_dotted_order=parent_dotted_order,
    )


@dataclass(frozen=True)
class TraceState:
    """Trace state published by the nearest enclosing span.

    This is a frozen dataclass and should never be modified after creation.
    Spans derive a new state with child() rather than modifying this one.

    Attributes:
        trace_id: Identifier shared by every run in the trace (empty before the root starts).
        parent_run_id: Run id of the enclosing span (empty at the root).
        parent_dotted_order: Dotted order of the enclosing span (empty at the root).
    """

    trace_id: str = ""
    parent_run_id: str = ""
    parent_dotted_order: str = ""

    def child(self, trace_id: str, run_id: str, dotted_order: str) -> "TraceState":
        """State seen by descendants of the run ``run_id``."""
        return TraceState(
            trace_id=trace_id,
            parent_run_id=run_id,
            parent_dotted_order=dotted_order,
        )


def set_trace_options(
    ctx: CallContext, options: TraceOptions | None = None, *opts: TraceOption
) -> CallContext:
    """Derive a context carrying trace options.

    Args:
        ctx: Context to derive from (not modified).
        options: Base options; defaults to the options already in ``ctx``.
        *opts: Functional options layered on top of the base.

    Returns:
        New context carrying the resulting options.
    """
    base = options if options is not None else get_trace_options(ctx) or TraceOptions()
    return ctx.with_value(_TRACE_OPTIONS_KEY, base.merged(*opts))


def get_trace_options(ctx: CallContext) -> TraceOptions | None:
    """Return the trace options carried by ``ctx``, if any."""
    options = ctx.value(_TRACE_OPTIONS_KEY)
    return options if isinstance(options, TraceOptions) else None


def get_state(ctx: CallContext) -> TraceState | None:
    """Return the trace state carried by ``ctx``, if any."""
    state = ctx.value(_TRACE_STATE_KEY)
    return state if isinstance(state, TraceState) else None


def publish_state(ctx: CallContext, state: TraceState) -> CallContext:
    """Derive a context carrying ``state`` for descendants."""
    return ctx.with_value(_TRACE_STATE_KEY, state)


def get_or_init_state(ctx: CallContext) -> tuple[CallContext, TraceState]:
    """Return the current trace state, seeding it from options when absent.

    Args:
        ctx: Current context.

    Returns:
        ``(ctx, state)`` unchanged when ``ctx`` already has state; otherwise a
        derived context carrying the initial state built from the trace id and
        parent fields of the options (all empty when there are no options).
    """
    state = get_state(ctx)
    if state is not None:
        return ctx, state

    options = get_trace_options(ctx) or TraceOptions()
    state = TraceState(
        trace_id=options.trace_id,
        parent_run_id=options.parent_run_id,
        parent_dotted_order=options.parent_dotted_order,
    )
    return publish_state(ctx, state), state


def iter_tags(options: TraceOptions | None) -> Iterable[str]:
    """Tags of ``options`` in a stable order."""
    return sorted(options.tags) if options is not None else []
