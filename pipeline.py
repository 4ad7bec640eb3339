"""Two-stage briefing pipeline.

This module coordinates one briefing run:

Pipeline Flow:
    1. DISCOVERING: Grounded request for subject, key facts and one post
    2. DISCOVERY_PARSED: Validate payload, extract sources, emit partial report
    3. WRITING: Grounded request for the long-form body, seeded with the facts
    4. WRITING_PARSED: Validate payload, merge sources of both stages
    5. COMPLETE: Assemble and return the final report

Any failure moves the run to FAILED and propagates to the caller unchanged.
There are no retries and no partial results; a partial report that was
already emitted is never retracted.

The stages run strictly in sequence because the writing prompt depends on the
parsed discovery output. Each call builds its own PipelineRun accumulator, so
concurrent runs share nothing but the (read-only) configuration.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from agents.backend import GeminiSearchBackend, SearchBackend
from agents.discovery import DiscoveryAgent
from agents.writer import WriterAgent
from config import Config
from models.progress import ProgressSnapshot, Stage
from models.report import AgentReport
from observability.logging import clear_context, set_run_context, set_stage_context
from observability.tracing import setup_tracing, trace_operation
from progress import ProgressCallback, ProgressChannel, as_channel
from tools.sources import merge_sources

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    """States of a single pipeline run."""

    IDLE = "idle"
    DISCOVERING = "discovering"
    DISCOVERY_PARSED = "discovery_parsed"
    WRITING = "writing"
    WRITING_PARSED = "writing_parsed"
    COMPLETE = "complete"
    FAILED = "failed"


_TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    PipelineState.IDLE: frozenset({PipelineState.DISCOVERING, PipelineState.FAILED}),
    PipelineState.DISCOVERING: frozenset({PipelineState.DISCOVERY_PARSED, PipelineState.FAILED}),
    PipelineState.DISCOVERY_PARSED: frozenset({PipelineState.WRITING, PipelineState.FAILED}),
    PipelineState.WRITING: frozenset({PipelineState.WRITING_PARSED, PipelineState.FAILED}),
    PipelineState.WRITING_PARSED: frozenset({PipelineState.COMPLETE, PipelineState.FAILED}),
    PipelineState.COMPLETE: frozenset(),
    PipelineState.FAILED: frozenset(),
}


@dataclass
class RunStats:
    """Statistics from a single pipeline run.

    Attributes:
        key_facts: Facts returned by discovery
        discovery_sources: Sources cited during discovery
        writing_sources: Sources cited during writing
        sources: Sources in the final report (merged, capped)
        body_chars: Length of the final body
        input_tokens: Total prompt tokens over both stages
        output_tokens: Total completion tokens over both stages
        duration: Total run time in seconds
    """

    key_facts: int = 0
    discovery_sources: int = 0
    writing_sources: int = 0
    sources: int = 0
    body_chars: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    duration: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d = asdict(self)
        d["duration"] = round(d["duration"], 2)
        return d


@dataclass
class PipelineRun:
    """Accumulator for one invocation: state, history, stats and error."""

    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: PipelineState = PipelineState.IDLE
    history: list[PipelineState] = field(default_factory=lambda: [PipelineState.IDLE])
    stats: RunStats = field(default_factory=RunStats)
    error: BaseException | None = None

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.state]

    def advance(self, state: PipelineState) -> None:
        """Move to ``state``.

        Raises:
            RuntimeError: If the transition is not allowed
        """
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal pipeline transition {self.state.value} -> {state.value}")
        logger.debug("State change | %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def fail(self, error: BaseException) -> None:
        """Record ``error`` and move to FAILED (no-op once terminal)."""
        if self.is_terminal:
            return
        self.error = error
        self.advance(PipelineState.FAILED)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_today(now: datetime) -> str:
    """Format the prompt date, e.g. 'Monday, October 19, 2026'."""
    return now.strftime("%A, %B %d, %Y")


class ReportPipeline:
    """Async briefing pipeline built on two grounded model calls.

    Components:
        - SearchBackend: Gemini + Google Search grounding (or a test double)
        - DiscoveryAgent: Stage 1, structured facts
        - WriterAgent: Stage 2, long-form body

    Example:
        >>> pipeline = ReportPipeline(config)
        >>> report = await pipeline.generate_report(lambda s: print(s.partial_report))
        >>> report.body[:20]
        '## 🚨 Highlights ...'
    """

    def __init__(
        self,
        config: Config,
        backend: SearchBackend | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize pipeline with all components.

        Args:
            config: Application configuration
            backend: Search backend; defaults to GeminiSearchBackend(config)
            clock: Source of report timestamps (defaults to UTC now)

        Raises:
            ConfigurationError: If the default backend has no API key
        """
        self.config = config
        self.backend = backend if backend is not None else GeminiSearchBackend(config)
        self.discovery = DiscoveryAgent(config, self.backend)
        self.writer = WriterAgent(config, self.backend)
        self._clock = clock or _utc_now

        # Optional: Distributed tracing
        if config.enable_logfire:
            setup_tracing(enabled=True, service_name="spotlight", token=config.logfire_token)

    async def generate_report(
        self,
        progress: ProgressChannel | ProgressCallback | None = None,
        run: PipelineRun | None = None,
    ) -> AgentReport:
        """Execute one complete briefing run.

        Args:
            progress: Channel (or bare callback) receiving the partial report
            run: Accumulator to record state into; a fresh one by default

        Returns:
            The completed AgentReport

        Raises:
            EmptyResponseError, ParseError, SchemaError, BackendError: Stage failures
        """
        channel = as_channel(progress)
        run = run if run is not None else PipelineRun()
        set_run_context(run.run_id)
        start = time.time()
        stats = run.stats
        today = format_today(self._clock())

        logger.info(
            "Pipeline started | subject=%s language=%s",
            self.config.subject_name,
            self.config.language,
        )

        try:
            with trace_operation("briefing_run", {"run_id": run.run_id}) as attrs:
                # Stage 1: discovery
                run.advance(PipelineState.DISCOVERING)
                set_stage_context(Stage.DISCOVERY.value)
                with trace_operation("discovery"):
                    discovery = await self.discovery.discover(today)
                run.advance(PipelineState.DISCOVERY_PARSED)
                stats.key_facts = len(discovery.payload.key_facts)
                stats.discovery_sources = len(discovery.sources)
                stats.input_tokens += discovery.input_tokens
                stats.output_tokens += discovery.output_tokens

                partial = AgentReport(
                    generated_at=self._clock(),
                    subject=discovery.payload.subject.strip(),
                    body="",
                    key_facts=tuple(discovery.payload.key_facts),
                    tweet=discovery.tweet,
                    sources=tuple(discovery.sources),
                )
                await channel.emit(ProgressSnapshot(stage=Stage.WRITING, partial_report=partial))

                # Stage 2: writing
                run.advance(PipelineState.WRITING)
                set_stage_context(Stage.WRITING.value)
                with trace_operation("writing"):
                    writing = await self.writer.write(discovery, today)
                run.advance(PipelineState.WRITING_PARSED)
                stats.writing_sources = len(writing.sources)
                stats.input_tokens += writing.input_tokens
                stats.output_tokens += writing.output_tokens

                all_sources = merge_sources(discovery.sources, writing.sources, self.config.max_sources)
                report = AgentReport(
                    generated_at=self._clock(),
                    subject=partial.subject,
                    body=writing.payload.body,
                    key_facts=partial.key_facts,
                    tweet=partial.tweet,
                    sources=tuple(all_sources),
                )
                run.advance(PipelineState.COMPLETE)
                stats.sources = len(report.sources)
                stats.body_chars = len(report.body)
                stats.duration = time.time() - start
                attrs.update(stats.to_dict())

            logger.info(
                "Pipeline done | duration=%.1fs facts=%d sources=%d/%d+%d tokens=%d/%d",
                stats.duration,
                stats.key_facts,
                stats.sources,
                stats.discovery_sources,
                stats.writing_sources,
                stats.input_tokens,
                stats.output_tokens,
            )
            return report

        except asyncio.CancelledError as e:
            run.fail(e)
            stats.duration = time.time() - start
            logger.info("Pipeline run cancelled")
            raise
        except Exception as e:
            failed_in = run.state
            run.fail(e)
            stats.duration = time.time() - start
            logger.error(
                "Pipeline failed | state=%s type=%s error=%s",
                failed_in.value,
                type(e).__name__,
                e,
                exc_info=True,
            )
            raise
        finally:
            clear_context()


async def generate_report(
    config: Config,
    on_progress: ProgressChannel | ProgressCallback | None = None,
) -> AgentReport:
    """Run the pipeline once with the default Gemini backend.

    Args:
        config: Application configuration
        on_progress: Receiver of the partial report emitted after discovery

    Raises:
        ConfigurationError: If GEMINI_API_KEY is not configured
    """
    pipeline = ReportPipeline(config)
    return await pipeline.generate_report(on_progress)
