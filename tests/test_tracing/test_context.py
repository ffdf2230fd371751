"""Tests for the call context, trace options and trace state."""

from dataclasses import FrozenInstanceError

import pytest

from span_linker.tracing.context import (
    CallContext,
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


class TestCallContext:
    """Test the immutable context carrier."""

    def test_with_value_does_not_mutate(self) -> None:
        """Test that deriving a context leaves the original untouched."""
        root = CallContext.background()
        derived = root.with_value("key", 1)

        assert derived.value("key") == 1
        assert root.value("key") is None
        assert "key" not in root

    def test_background_is_shared(self) -> None:
        """Test that the empty root context is a singleton."""
        assert CallContext.background() is CallContext.background()

    def test_foreign_keys_do_not_collide(self) -> None:
        """Test that string keys never reach trace data."""
        ctx = set_trace_options(CallContext.background(), TraceOptions(session_name="s"))
        ctx = ctx.with_value("trace_options", "foreign")

        options = get_trace_options(ctx)
        assert options is not None
        assert options.session_name == "s"


class TestTraceOptions:
    """Test TraceOptions construction and layering."""

    def test_build_from_functional_options(self) -> None:
        """Test building options with helper functions."""
        options = TraceOptions.build(
            with_session_name("eval"),
            with_tags("nightly", "v2"),
            with_metadata({"user": "u1"}),
            with_trace_id("trace-1"),
            with_reference_example_id("example-9"),
        )

        assert options.session_name == "eval"
        assert options.tags == frozenset({"nightly", "v2"})
        assert dict(options.metadata) == {"user": "u1"}
        assert options.trace_id == "trace-1"
        assert options.reference_example_id == "example-9"

    def test_options_are_frozen(self) -> None:
        """Test that options cannot be reassigned."""
        options = TraceOptions(session_name="s")
        with pytest.raises(FrozenInstanceError):
            options.session_name = "other"  # type: ignore[misc]

    def test_metadata_is_read_only_copy(self) -> None:
        """Test that caller mutation of metadata is not visible."""
        metadata = {"a": 1}
        options = TraceOptions(metadata=metadata)
        metadata["a"] = 2

        assert options.metadata["a"] == 1
        with pytest.raises(TypeError):
            options.metadata["b"] = 3  # type: ignore[index]

    def test_layering_keeps_parent_copy(self) -> None:
        """Test that a child layering options does not change the parent's."""
        parent_ctx = set_trace_options(
            CallContext.background(), None, with_session_name("p"), with_tags("a")
        )
        child_ctx = set_trace_options(parent_ctx, None, with_tags("b"), with_metadata({"k": 1}))

        parent = get_trace_options(parent_ctx)
        child = get_trace_options(child_ctx)
        assert parent is not None and child is not None
        assert parent.tags == frozenset({"a"})
        assert dict(parent.metadata) == {}
        assert child.session_name == "p"
        assert child.tags == frozenset({"a", "b"})
        assert dict(child.metadata) == {"k": 1}


class TestTraceState:
    """Test trace state lookup and initialization."""

    def test_absent_state(self) -> None:
        """Test that a fresh context has no state or options."""
        ctx = CallContext.background()
        assert get_state(ctx) is None
        assert get_trace_options(ctx) is None

    def test_get_or_init_without_options(self) -> None:
        """Test that initial state is empty when no options are set."""
        ctx, state = get_or_init_state(CallContext.background())

        assert state == TraceState()
        assert get_state(ctx) == state

    def test_get_or_init_seeds_from_options(self) -> None:
        """Test that explicit trace id and parent come from the options."""
        base = set_trace_options(
            CallContext.background(), None, with_parent("trace-1", "run-1", "order-1")
        )
        _, state = get_or_init_state(base)

        assert state == TraceState(
            trace_id="trace-1", parent_run_id="run-1", parent_dotted_order="order-1"
        )

    def test_get_or_init_returns_existing(self) -> None:
        """Test that existing state and context are returned as is."""
        existing = TraceState(trace_id="t", parent_run_id="r", parent_dotted_order="o")
        ctx = publish_state(CallContext.background(), existing)

        same_ctx, state = get_or_init_state(ctx)

        assert same_ctx is ctx
        assert state is existing

    def test_siblings_are_isolated(self) -> None:
        """Test that two contexts derived from one parent do not see each other."""
        parent = publish_state(CallContext.background(), TraceState(trace_id="t"))
        left = publish_state(parent, TraceState(trace_id="t", parent_run_id="left"))
        right = publish_state(parent, TraceState(trace_id="t", parent_run_id="right"))

        assert get_state(parent) == TraceState(trace_id="t")
        assert get_state(left).parent_run_id == "left"  # type: ignore[union-attr]
        assert get_state(right).parent_run_id == "right"  # type: ignore[union-attr]

    def test_child_state(self) -> None:
        """Test deriving descendants' state."""
        state = TraceState(trace_id="t", parent_run_id="p", parent_dotted_order="o")
        child = state.child("t", "r", "o.x")

        assert child == TraceState(trace_id="t", parent_run_id="r", parent_dotted_order="o.x")
        assert state.parent_run_id == "p"
