"""Pydantic models for the Spotlight briefing pipeline.

This package contains all data models used throughout the pipeline:

NewsSource:
    Grounding citation (title, uri). Identity is the URI.

TweetHighlight:
    One notable post by the subject (text, url, date).

AgentReport:
    The briefing aggregate. Partial while body is empty.

DiscoveryPayload / WritingPayload:
    JSON payloads the two stages must return.

ProgressSnapshot / Stage:
    Progress notification emitted between the stages.

Example:
    >>> from models import AgentReport, NewsSource
    >>> source = NewsSource(title="Reuters", uri="https://reuters.com/...")
"""

from models.report import (
    AgentReport,
    DiscoveryPayload,
    NewsSource,
    TweetHighlight,
    TweetPayload,
    WritingPayload,
)
from models.progress import ProgressSnapshot, Stage

__all__ = [
    "AgentReport",
    "DiscoveryPayload",
    "NewsSource",
    "TweetHighlight",
    "TweetPayload",
    "WritingPayload",
    "ProgressSnapshot",
    "Stage",
]
