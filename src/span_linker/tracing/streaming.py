"""Streaming spans.

Some operations receive their input, or produce their output, as a stream of
chunks. The span is placed in the trace tree synchronously so descendants can
link to it at once; the stream is drained by a background task that sends the
run (or its final update) once the last chunk has arrived.

Every background drain:
- consumes the whole stream, so the producer is never left blocked,
- always closes the stream, whatever happens,
- catches and logs its own failures, so nothing escapes into the event loop.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Callable, Mapping
from typing import TYPE_CHECKING, Any

from span_linker.telemetry import (
    SPAN_STATE_MISSING,
    STREAM_AGGREGATION_FAILED,
    STREAM_CLOSE_FAILED,
    STREAM_INPUT_ERROR,
    STREAM_OUTPUT_ERROR,
    STREAM_TASK_CRASHED,
    get_logger,
)
from span_linker.tracing.background import run_in_background
from span_linker.tracing.context import CallContext, get_state
from span_linker.tracing.controller import SpanController, utcnow
from span_linker.tracing.encoding import to_jsonable
from span_linker.tracing.models import Run, RunPatch
from span_linker.tracing.types import SpanDescriptor

if TYPE_CHECKING:
    from span_linker.sinks.base import RunSink

log = get_logger(__name__)

ChunkAggregator = Callable[[list[Any]], Any]

USAGE_FIELDS = ("prompt_tokens", "completion_tokens", "total_tokens")


def aggregate_chunks(chunks: list[Any]) -> Any:
    """Merge streamed chunks into one payload.

    Text chunks are concatenated; anything else is kept as a list.
    """
    if chunks and all(isinstance(chunk, str) for chunk in chunks):
        return "".join(chunks)
    return list(chunks)


def aggregate_usage(chunks: list[Any]) -> dict[str, int]:
    """Sum token usage reported by streamed chunks.

    A chunk reports usage through a ``usage`` key or attribute holding a
    mapping (or object) with any of prompt_tokens, completion_tokens and
    total_tokens.

    Returns:
        Summed counts for the fields that were reported; empty when none were.
    """
    totals: dict[str, int] = {}
    for chunk in chunks:
        usage = chunk.get("usage") if isinstance(chunk, Mapping) else getattr(chunk, "usage", None)
        if usage is None:
            continue
        for name in USAGE_FIELDS:
            value = usage.get(name) if isinstance(usage, Mapping) else getattr(usage, name, None)
            if isinstance(value, int):
                totals[name] = totals.get(name, 0) + value
    if totals and "total_tokens" not in totals:
        totals["total_tokens"] = totals.get("prompt_tokens", 0) + totals.get(
            "completion_tokens", 0
        )
    return totals


async def close_stream(stream: AsyncIterable[Any]) -> None:
    """Close ``stream`` if it can be closed; errors are logged."""
    aclose = getattr(stream, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception as e:
        log.warning(STREAM_CLOSE_FAILED, error=str(e), error_type=type(e).__name__)


class StreamingSpanController(SpanController):
    """SpanController that also traces streamed inputs and outputs.

    Attributes:
        aggregator: Turns the list of drained chunks into one payload.
    """

    def __init__(
        self,
        sink: RunSink,
        *,
        enabled: bool = True,
        default_session_name: str = "",
        aggregator: ChunkAggregator | None = None,
    ) -> None:
        super().__init__(sink, enabled=enabled, default_session_name=default_session_name)
        self.aggregator = aggregator or aggregate_chunks

    async def start_span_with_stream_input(
        self,
        ctx: CallContext,
        descriptor: SpanDescriptor | None,
        input_stream: AsyncIterable[Any],
    ) -> CallContext:
        """Start a span whose input arrives as a stream.

        Returns as soon as the new trace state is published; the run is sent
        by a background task after ``input_stream`` is exhausted. No run is
        sent if the stream fails.

        Args:
            ctx: Context of the caller.
            descriptor: Operation being traced; None disables tracing.
            input_stream: Async iterable of input chunks. Always consumed or closed.

        Returns:
            Context carrying the new span's state, or ``ctx`` when untraced.
        """
        if descriptor is None or not self.is_traced(descriptor):
            run_in_background(close_stream(input_stream), name="close-untraced-input")
            return ctx

        span = self.prepare_span(ctx, descriptor)
        if span is None:
            run_in_background(close_stream(input_stream), name="close-untraced-input")
            return ctx
        run_in_background(
            self._drain_input(span.run, input_stream),
            name=f"stream-input-{span.run.id}",
        )
        return span.child_ctx

    async def end_span_with_stream_output(
        self,
        ctx: CallContext,
        descriptor: SpanDescriptor | None,
        output_stream: AsyncIterable[Any],
    ) -> CallContext:
        """End a span whose output arrives as a stream.

        Returns immediately. A background task drains ``output_stream``,
        aggregates the output and token usage, and sends exactly one update.
        The task does not belong to the caller, so cancelling the caller does
        not stop the update.

        Args:
            ctx: Context returned when the span was started.
            descriptor: Operation being traced; None disables tracing.
            output_stream: Async iterable of output chunks. Always consumed or closed.

        Returns:
            ``ctx``, unchanged.
        """
        if descriptor is None or not self.is_traced(descriptor):
            run_in_background(close_stream(output_stream), name="close-untraced-output")
            return ctx

        state = get_state(ctx)
        if state is None or not state.parent_run_id:
            log.warning(
                SPAN_STATE_MISSING,
                name=descriptor.display_name,
                hook="end_span_with_stream_output",
            )
            run_in_background(close_stream(output_stream), name="close-orphan-output")
            return ctx

        run_id = state.parent_run_id
        run_in_background(
            self._drain_output(run_id, output_stream),
            name=f"stream-output-{run_id}",
        )
        return ctx

    async def _drain_input(self, run: Run, stream: AsyncIterable[Any]) -> None:
        try:
            chunks = []
            try:
                async for chunk in stream:
                    chunks.append(chunk)
            except Exception as e:
                log.warning(
                    STREAM_INPUT_ERROR,
                    run_id=run.id,
                    name=run.name,
                    chunks_received=len(chunks),
                    error=str(e),
                )
                return

            try:
                run.inputs = {"stream_inputs": to_jsonable(self.aggregator(chunks))}
            except Exception as e:
                log.warning(
                    STREAM_AGGREGATION_FAILED,
                    run_id=run.id,
                    name=run.name,
                    direction="input",
                    error=str(e),
                    exc_info=True,
                )
                return

            await self.send_create(run)
        except Exception as e:
            log.error(
                STREAM_TASK_CRASHED,
                run_id=run.id,
                direction="input",
                error=str(e),
                exc_info=True,
            )
        finally:
            await close_stream(stream)

    async def _drain_output(self, run_id: str, stream: AsyncIterable[Any]) -> None:
        try:
            chunks = []
            failure: Exception | None = None
            try:
                async for chunk in stream:
                    chunks.append(chunk)
            except Exception as e:
                log.warning(
                    STREAM_OUTPUT_ERROR,
                    run_id=run_id,
                    chunks_received=len(chunks),
                    error=str(e),
                )
                failure = e

            patch = RunPatch(end_time=utcnow())
            if failure is not None:
                patch.error = f"{type(failure).__name__}: {failure}"
            else:
                try:
                    patch.outputs = {"stream_outputs": to_jsonable(self.aggregator(chunks))}
                except Exception as e:
                    log.warning(
                        STREAM_AGGREGATION_FAILED,
                        run_id=run_id,
                        direction="output",
                        error=str(e),
                        exc_info=True,
                    )

            usage = aggregate_usage(chunks)
            if usage:
                patch.extra = {"model_usage": usage}
                patch.prompt_tokens = usage.get("prompt_tokens", 0)
                patch.completion_tokens = usage.get("completion_tokens", 0)
                patch.total_tokens = usage.get("total_tokens", 0)

            await self.send_update(run_id, patch)
        except Exception as e:
            log.error(
                STREAM_TASK_CRASHED,
                run_id=run_id,
                direction="output",
                error=str(e),
                exc_info=True,
            )
        finally:
            await close_stream(stream)
