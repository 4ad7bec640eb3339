"""Briefing report models.

The pipeline produces one AgentReport per run. Stage 1 (discovery) fills the
subject, key facts, tweet highlight and a first set of sources; Stage 2
(writing) adds the long-form body and more sources.

Model Hierarchy:
    NewsSource: A grounding citation (title + URI), identified by URI
    TweetHighlight: One notable post by the subject
    AgentReport: The aggregate briefing, partial or complete

Stage payloads (what the model must return as JSON):
    DiscoveryPayload: subject, keyFacts, tweet
    WritingPayload: body

All report models are frozen: once a snapshot is handed to a consumer it
cannot change underneath it.
"""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class NewsSource(BaseModel):
    """A web source backing the briefing.

    Attributes:
        title: Page title reported by the search grounding
        uri: Page URI; two sources are the same source iff their URIs match exactly
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(description="Title of the cited page")
    uri: str = Field(description="URI of the cited page")


class TweetHighlight(BaseModel):
    """A single significant recent post by the subject."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="The exact content of the post")
    url: str = Field(description="Link to the post status (or the profile if unknown)")
    date: str = Field(description="Rough relative time, e.g. '2h ago'")

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


class AgentReport(BaseModel):
    """Intelligence briefing about the configured subject.

    A report with an empty body is a partial report: it is what the pipeline
    emits after discovery, while the writing stage is still running.

    Attributes:
        generated_at: Timestamp when the report (or snapshot) was assembled
        subject: Neutral subject line
        body: Multi-section Markdown narrative (empty while partial)
        key_facts: Short factual bullet points, in model order
        tweet: Highlighted post, None when the model found none
        sources: Deduplicated grounding sources, first-seen order

    Example:
        >>> report = AgentReport(
        ...     generated_at=datetime.now(timezone.utc),
        ...     subject="Starship test flight",
        ...     key_facts=("Launch window opens Friday",),
        ... )
        >>> report.is_partial
        True
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    generated_at: datetime = Field(serialization_alias="generatedAt")
    subject: str
    body: str = ""
    key_facts: tuple[str, ...] = Field(default=(), serialization_alias="keyFacts")
    tweet: TweetHighlight | None = None
    sources: tuple[NewsSource, ...] = ()

    @property
    def is_partial(self) -> bool:
        return not self.body

    def __str__(self) -> str:
        """Human-readable representation for logging."""
        state = "partial" if self.is_partial else "complete"
        return f"AgentReport('{self.subject[:50]}', {state}, sources={len(self.sources)})"


# === Stage payloads ===
# The JSON schema of these models is sent to the backend with each request.
# Legacy German field names are accepted on input.


class TweetPayload(BaseModel):
    """Tweet object as returned by the discovery stage."""

    text: str = Field(description="The exact content of the tweet")
    url: str = Field(
        description="The specific URL to the tweet status (must contain /status/). "
        "If no specific URL is found, use the profile URL."
    )
    date: str = Field(description="Rough relative time, e.g. '2h ago'")

    def to_highlight(self) -> TweetHighlight | None:
        """Convert to a TweetHighlight, or None when the text is blank."""
        if not self.text.strip():
            return None
        return TweetHighlight(text=self.text.strip(), url=self.url.strip(), date=self.date.strip())


class DiscoveryPayload(BaseModel):
    """Structured output of the discovery stage."""

    subject: str = Field(
        validation_alias=AliasChoices("subject", "germanSubject"),
        description="Neutral subject line for the briefing",
    )
    key_facts: list[str] = Field(
        validation_alias=AliasChoices("keyFacts", "key_facts"),
        description="5-7 strictly factual, short bullet points",
    )
    tweet: TweetPayload = Field(description="One significant recent post by the subject")


class WritingPayload(BaseModel):
    """Structured output of the writing stage."""

    body: str = Field(
        validation_alias=AliasChoices("body", "germanBody"),
        description="A comprehensive, neutral summary. Use Markdown headings.",
    )
