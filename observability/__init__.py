"""Observability for briefing runs: logging context and optional tracing.

setup_logging:
    Console + rotating file logging, text or JSON, with run/stage context.

set_run_context / set_stage_context / clear_context:
    Attach the run ID and active stage to every log record.

setup_tracing / trace_operation:
    Optional Logfire spans with PydanticAI instrumentation.

Enable tracing via configuration:
    ENABLE_LOGFIRE=true
    LOGFIRE_TOKEN=your-token  # Optional
"""

from observability.logging import clear_context, set_run_context, set_stage_context, setup_logging
from observability.tracing import setup_tracing, trace_operation

__all__ = [
    "setup_logging",
    "set_run_context",
    "set_stage_context",
    "clear_context",
    "setup_tracing",
    "trace_operation",
]
