"""Run sinks: the capability the tracing core writes to, plus in-process implementations."""

from span_linker.sinks.base import RunSink
from span_linker.sinks.log_sink import LoggingRunSink
from span_linker.sinks.memory import RecordingRunSink, SinkCall

__all__ = ["RunSink", "RecordingRunSink", "LoggingRunSink", "SinkCall"]
