import asyncio
import json

import pytest

from agents.backend import GroundedResponse
from conftest import FIXED_NOW, FakeBackend, discovery_response, web, writing_response
from errors import BackendError, ConfigurationError, EmptyResponseError, ParseError, SchemaError
from models.progress import Stage
from models.report import NewsSource, TweetHighlight
from pipeline import PipelineRun, PipelineState, ReportPipeline, format_today
from progress import ProgressChannel


def _run(pipeline: ReportPipeline, progress=None, run: PipelineRun | None = None):
    return asyncio.run(pipeline.generate_report(progress, run=run))


def test_two_stage_run_emits_partial_then_merges_sources(config, clock) -> None:
    stage1 = GroundedResponse(
        text=json.dumps({
            "germanSubject": "X",
            "keyFacts": ["a", "b"],
            "tweet": {"text": "t", "url": "https://x.com/elonmusk/status/1", "date": "2h ago"},
        }),
        citations=[web("https://a.com", "Src")],
    )
    stage2 = GroundedResponse(
        text=json.dumps({"germanBody": "full text"}),
        citations=[web("https://a.com"), web("https://b.com", "B")],
    )
    backend = FakeBackend(stage1, stage2)
    snapshots = []

    report = _run(ReportPipeline(config, backend=backend, clock=clock), snapshots.append)

    assert len(snapshots) == 1
    snapshot = snapshots[0]
    assert snapshot.stage == Stage.WRITING
    partial = snapshot.partial_report
    assert partial.body == ""
    assert partial.is_partial
    assert partial.subject == "X"
    assert partial.key_facts == ("a", "b")
    assert partial.sources == (NewsSource(title="Src", uri="https://a.com"),)

    assert report.body == "full text"
    assert report.sources == (
        NewsSource(title="Src", uri="https://a.com"),
        NewsSource(title="B", uri="https://b.com"),
    )
    assert report.subject == partial.subject
    assert report.key_facts == partial.key_facts
    assert report.tweet == TweetHighlight(text="t", url="https://x.com/elonmusk/status/1", date="2h ago")
    assert report.generated_at == FIXED_NOW


def test_empty_discovery_response_fails_before_any_emission(config, clock) -> None:
    backend = FakeBackend(GroundedResponse(text=""))
    channel = ProgressChannel()
    run = PipelineRun()

    with pytest.raises(EmptyResponseError) as exc_info:
        _run(ReportPipeline(config, backend=backend, clock=clock), channel, run)

    assert exc_info.value.stage == "discovery"
    assert not channel.emitted
    assert len(backend.requests) == 1
    assert run.state == PipelineState.FAILED
    assert run.history == [PipelineState.IDLE, PipelineState.DISCOVERING, PipelineState.FAILED]
    assert run.error is exc_info.value


def test_unparsable_writing_response_keeps_emitted_partial(config, clock) -> None:
    backend = FakeBackend(
        discovery_response(citations=[web("https://a.com", "A")]),
        GroundedResponse(text="Sorry, I cannot write this briefing today."),
    )
    channel = ProgressChannel()
    run = PipelineRun()

    with pytest.raises(ParseError) as exc_info:
        _run(ReportPipeline(config, backend=backend, clock=clock), channel, run)

    assert exc_info.value.stage == "writing"
    assert channel.emitted
    assert channel.snapshot.partial_report.subject == "Starship flies again"
    assert channel.snapshot.partial_report.body == ""
    assert run.history[-2:] == [PipelineState.WRITING, PipelineState.FAILED]


def test_source_cap_across_both_stages(config, clock) -> None:
    first = [web(f"https://s{i}.com", f"S{i}") for i in range(10)]
    second = [web(f"https://s{i}.com", f"S{i}") for i in range(10, 20)]
    backend = FakeBackend(discovery_response(citations=first), writing_response(citations=second))

    report = _run(ReportPipeline(config, backend=backend, clock=clock))

    assert len(report.sources) == 15
    assert [s.uri for s in report.sources] == [f"https://s{i}.com" for i in range(15)]


def test_successful_run_walks_every_state(config, clock) -> None:
    backend = FakeBackend(discovery_response(), writing_response())
    run = PipelineRun()

    _run(ReportPipeline(config, backend=backend, clock=clock), run=run)

    assert run.history == [
        PipelineState.IDLE,
        PipelineState.DISCOVERING,
        PipelineState.DISCOVERY_PARSED,
        PipelineState.WRITING,
        PipelineState.WRITING_PARSED,
        PipelineState.COMPLETE,
    ]
    assert run.is_terminal
    assert run.error is None
    assert run.stats.key_facts == 3
    assert run.stats.input_tokens == 320
    assert run.stats.output_tokens == 680


def test_writing_prompt_embeds_discovery_facts(config, clock) -> None:
    facts = ["Tesla Q3 deliveries beat estimates", "Starship \"Flight 12\" scrubbed"]
    backend = FakeBackend(discovery_response(facts=facts), writing_response())

    _run(ReportPipeline(config, backend=backend, clock=clock))

    discovery_request, writing_request = backend.requests
    assert discovery_request.stage == "discovery"
    assert writing_request.stage == "writing"
    assert f"Facts: {json.dumps(facts, ensure_ascii=False)}" in writing_request.prompt
    assert '"url": "https://x.com/elonmusk/status/1"' in writing_request.prompt
    assert format_today(FIXED_NOW) in discovery_request.prompt
    assert "keyFacts" in json.dumps(discovery_request.output_schema)
    assert "body" in writing_request.output_schema["properties"]


def test_discovery_prompt_uses_configured_subject(config, clock) -> None:
    config.subject_name = "Ada Lovelace"
    config.subject_handle = "ada"
    config.subject_topics = ["Analytical Engine"]
    config.lookback_hours = 24
    backend = FakeBackend(discovery_response(), writing_response())

    _run(ReportPipeline(config, backend=backend, clock=clock))

    prompt = backend.requests[0].prompt
    assert "Ada Lovelace" in prompt
    assert "@ada" in prompt
    assert "https://x.com/ada" in prompt
    assert "Last 24h" in prompt


def test_empty_tweet_is_reported_as_absent(config, clock) -> None:
    backend = FakeBackend(discovery_response(tweet_text="   "), writing_response())
    snapshots = []

    report = _run(ReportPipeline(config, backend=backend, clock=clock), snapshots.append)

    assert snapshots[0].partial_report.tweet is None
    assert report.tweet is None


def test_async_callback_completes_before_writing_stage(config, clock) -> None:
    backend = FakeBackend(discovery_response(), writing_response())
    seen_requests = []

    async def on_progress(snapshot) -> None:
        await asyncio.sleep(0)
        seen_requests.append(len(backend.requests))

    _run(ReportPipeline(config, backend=backend, clock=clock), on_progress)

    assert seen_requests == [1]
    assert len(backend.requests) == 2


def test_schema_error_in_discovery(config, clock) -> None:
    backend = FakeBackend(GroundedResponse(text='{"subject": "only a subject"}'))
    channel = ProgressChannel()

    with pytest.raises(SchemaError):
        _run(ReportPipeline(config, backend=backend, clock=clock), channel)

    assert not channel.emitted


def test_backend_error_propagates_unchanged(config, clock) -> None:
    failure = BackendError("quota exceeded", stage="discovery")
    backend = FakeBackend(failure)

    with pytest.raises(BackendError) as exc_info:
        _run(ReportPipeline(config, backend=backend, clock=clock))

    assert exc_info.value is failure


def test_each_run_gets_fresh_state(config, clock) -> None:
    backend = FakeBackend(
        discovery_response(subject="First"),
        writing_response(),
        discovery_response(subject="Second"),
        writing_response(),
    )
    pipeline = ReportPipeline(config, backend=backend, clock=clock)
    first_snapshots, second_snapshots = [], []

    first = _run(pipeline, first_snapshots.append)
    second = _run(pipeline, second_snapshots.append)

    assert first.subject == "First"
    assert second.subject == "Second"
    assert len(first_snapshots) == len(second_snapshots) == 1


def test_missing_api_key_raises_configuration_error(config) -> None:
    config.gemini_api_key = ""
    with pytest.raises(ConfigurationError):
        ReportPipeline(config)


def test_illegal_transition_rejected() -> None:
    run = PipelineRun()
    with pytest.raises(RuntimeError, match="Illegal pipeline transition"):
        run.advance(PipelineState.WRITING)


def test_fail_is_noop_once_terminal() -> None:
    run = PipelineRun()
    run.fail(ValueError("boom"))
    run.fail(ValueError("again"))
    assert run.history == [PipelineState.IDLE, PipelineState.FAILED]
    assert str(run.error) == "boom"
