"""Type definitions for the tracing module.

This module defines the core types shared by the span controller:
- RunKind: Closed set of run kinds understood by the trace sink
- SpanLifecycle: Pending → Started → Ended state machine of one span
- SpanDescriptor: What the host operation framework tells us about a span
- Error classes: Hierarchy of span-linker errors
"""

from dataclasses import dataclass
from enum import Enum


class RunKind(str, Enum):
    """Kinds of runs recorded by the sink."""

    CHAIN = "chain"
    LLM = "llm"
    TOOL = "tool"
    ROOT = "root"
    SUB_AGENT = "sub_agent"

    @classmethod
    def from_str(cls, value: str) -> "RunKind":
        """Convert string to RunKind enum.

        Args:
            value: String representation (case-insensitive).

        Returns:
            Matching RunKind.

        Raises:
            ValueError: If value is not a known run kind.
        """
        value_lower = value.strip().lower()
        for kind in cls:
            if kind.value == value_lower:
                return kind
        raise ValueError(f"Unknown run kind: {value!r}")


class SpanLifecycle(str, Enum):
    """Lifecycle of a single span.

    A span becomes STARTED once create_run has been attempted, whatever the
    outcome, and ENDED once update_run has been attempted.
    """

    PENDING = "pending"
    STARTED = "started"
    ENDED = "ended"


@dataclass(frozen=True)
class SpanDescriptor:
    """Description of a traced operation.

    Attributes:
        name: Display name of the operation.
        kind: Run kind reported to the sink.
        component: Component type (e.g. "ChatModel"); used as the display
            name when name is empty.
        untraced: When True the operation opted out of tracing.
    """

    name: str
    kind: RunKind = RunKind.CHAIN
    component: str = ""
    untraced: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.kind, RunKind):
            object.__setattr__(self, "kind", RunKind.from_str(str(self.kind)))

    @property
    def display_name(self) -> str:
        """Name shown for the run: name, falling back to component."""
        return self.name or self.component


# Error hierarchy


class SpanLinkerError(Exception):
    """Base exception for all span-linker errors."""

    pass


class SinkError(SpanLinkerError):
    """Raised by a RunSink when a run could not be delivered."""

    pass


class PayloadEncodingError(SpanLinkerError):
    """Raised when an input or output payload cannot be JSON-encoded."""

    pass


class HandoffError(SpanLinkerError):
    """Raised when a serialized span handle cannot be decoded."""

    pass
