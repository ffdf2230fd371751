"""Semantic event constants for structured logging.

All log events should use these constants rather than magic strings to ensure
consistency and enable reliable querying and analysis.
"""

# Span lifecycle events
RUN_CREATED = "run_created"
RUN_UPDATED = "run_updated"
RUN_CREATE_FAILED = "run_create_failed"
RUN_UPDATE_FAILED = "run_update_failed"
SPAN_STATE_MISSING = "span_state_missing"
SPAN_PAYLOAD_ENCODING_FAILED = "span_payload_encoding_failed"
SPAN_OPTIONS_INVALID = "span_options_invalid"

# Streaming events
STREAM_INPUT_ERROR = "stream_input_error"
STREAM_OUTPUT_ERROR = "stream_output_error"
STREAM_AGGREGATION_FAILED = "stream_aggregation_failed"
STREAM_TASK_CRASHED = "stream_task_crashed"
STREAM_CLOSE_FAILED = "stream_close_failed"

# Handoff events
TRACE_HANDOFF_ENCODE_FAILED = "trace_handoff_encode_failed"
TRACE_HANDOFF_DECODE_FAILED = "trace_handoff_decode_failed"
TRACE_RESUMED = "trace_resumed"
