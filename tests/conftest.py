import json
from datetime import datetime, timezone

import pytest

from agents.backend import GroundedResponse, StageRequest
from config import Config


class FakeBackend:
    """Scripted search backend: returns (or raises) one item per request."""

    def __init__(self, *script: GroundedResponse | BaseException):
        self.script = list(script)
        self.requests: list[StageRequest] = []

    async def generate(self, request: StageRequest) -> GroundedResponse:
        self.requests.append(request)
        if not self.script:
            raise AssertionError(f"Unexpected backend call for stage {request.stage}")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def web(uri: str, title: str | None = None) -> dict:
    entry = {"uri": uri}
    if title is not None:
        entry["title"] = title
    return {"web": entry}


def discovery_response(
    subject: str = "Starship flies again",
    facts: list[str] | None = None,
    tweet_text: str = "Next flight in 4 weeks",
    citations: list[dict] | None = None,
) -> GroundedResponse:
    payload = {
        "subject": subject,
        "keyFacts": facts if facts is not None else ["Fact one", "Fact two", "Fact three"],
        "tweet": {
            "text": tweet_text,
            "url": "https://x.com/elonmusk/status/1",
            "date": "2h ago",
        },
    }
    return GroundedResponse(
        text=f"Here is the briefing data:\n```json\n{json.dumps(payload)}\n```",
        citations=citations or [],
        input_tokens=120,
        output_tokens=80,
    )


def writing_response(body: str = "## Highlights\n\nFull text.", citations: list[dict] | None = None) -> GroundedResponse:
    return GroundedResponse(
        text=json.dumps({"body": body}),
        citations=citations or [],
        input_tokens=200,
        output_tokens=600,
    )


FIXED_NOW = datetime(2026, 10, 19, 7, 30, tzinfo=timezone.utc)


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        gemini_api_key="test-key",
        language="de",
        state_file=tmp_path / "last_run",
        export_dir=tmp_path / "exports",
        log_dir=tmp_path / "log",
    )


@pytest.fixture
def clock():
    return lambda: FIXED_NOW
