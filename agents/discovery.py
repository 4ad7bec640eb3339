"""Discovery agent: fast structured scan of the latest news about the subject.

This is the first, latency-optimized stage. It returns a short structured
payload (subject line, key facts, one highlighted post) plus the sources the
search grounding cited, so the caller can show something immediately while
the writing stage runs.
"""

import logging
from dataclasses import dataclass, field

from agents.backend import SearchBackend, StageRequest
from config import Config
from models.report import DiscoveryPayload, NewsSource, TweetHighlight
from tools.parsing import parse_stage_response
from tools.sources import sources_from_citations

logger = logging.getLogger(__name__)

STAGE = "discovery"


# === System Prompts ===
# Bilingual instructions; task details go in the user message.

DISCOVERY_PROMPTS = {
    "de": """Du bist ein neutraler Nachrichten-Scout für ein Intelligence-Briefing.

## Regeln
1. Nutze die Websuche, um die aktuellsten Meldungen zu finden.
2. Nur überprüfbare Fakten, keine Spekulation, keine Wertung.
3. Internationale Genauigkeit hat Vorrang; deutschsprachige Quellen sind willkommen.
4. Alle Textfelder (subject, keyFacts) auf Deutsch.""",
    "en": """You are a neutral news scout for an intelligence briefing.

## Rules
1. Use web search to find the most recent reporting.
2. Verifiable facts only: no speculation, no opinion.
3. International accuracy comes first.
4. Write all text fields (subject, keyFacts) in English.""",
}


def build_discovery_message(config: Config, today: str) -> str:
    """Build the discovery task message.

    Args:
        config: Configuration with subject and recency settings
        today: Human-readable current date

    Returns:
        User message for the discovery request
    """
    topics = ", ".join(config.subject_topics) if config.subject_topics else config.subject_name
    handle = config.subject_handle
    hours = config.lookback_hours
    language = "German" if config.language == "de" else "English"

    return f"""Current Date: {today}

TASK: Fast Discovery of {config.subject_name} News (Last {hours}h).

1. **Search**: Find the absolute latest breaking news about {config.subject_name} and {topics}.
2. **TWEET**: Find the most significant or discussed post by @{handle} in the last {hours} hours. If multiple exist, pick the most relevant one. Return its text and TRY HARD to find the specific link (ending in /status/123...). If no specific link is found, use {config.subject_profile_url}.
3. **Filter**: Select the 5-7 most important facts.
4. **Output**: Return the facts, the tweet, and a subject line in {language}.

Strictly neutral."""


@dataclass
class DiscoveryResult:
    """Parsed outcome of the discovery stage.

    Attributes:
        payload: Validated discovery payload
        sources: Sources cited by the grounding, in citation order
        input_tokens: Prompt tokens consumed
        output_tokens: Completion tokens produced
    """

    payload: DiscoveryPayload
    sources: list[NewsSource] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def tweet(self) -> TweetHighlight | None:
        """Highlighted post, or None if the model returned an empty one."""
        return self.payload.tweet.to_highlight()


class DiscoveryAgent:
    """Runs the discovery stage against a search backend.

    Example:
        >>> discovery = DiscoveryAgent(config, backend)
        >>> result = await discovery.discover("Monday, 19 October 2026")
        >>> result.payload.key_facts
        ['...', '...']
    """

    def __init__(self, config: Config, backend: SearchBackend):
        self.config = config
        self.backend = backend

    def build_request(self, today: str) -> StageRequest:
        return StageRequest(
            stage=STAGE,
            model=self.config.discovery_model,
            instructions=DISCOVERY_PROMPTS.get(self.config.language, DISCOVERY_PROMPTS["en"]),
            prompt=build_discovery_message(self.config, today),
            output_schema=DiscoveryPayload.model_json_schema(),
            use_search=True,
        )

    async def discover(self, today: str) -> DiscoveryResult:
        """Run the discovery request and validate its payload.

        Raises:
            EmptyResponseError, ParseError, SchemaError, BackendError
        """
        response = await self.backend.generate(self.build_request(today))
        payload = parse_stage_response(response.text, DiscoveryPayload, stage=STAGE)
        sources = sources_from_citations(response.citations)

        if not 5 <= len(payload.key_facts) <= 7:
            logger.debug("Unexpected fact count | facts=%d", len(payload.key_facts))

        logger.info(
            "Discovery complete | facts=%d tweet=%s sources=%d input_tokens=%d output_tokens=%d",
            len(payload.key_facts),
            "no" if payload.tweet.to_highlight() is None else "yes",
            len(sources),
            response.input_tokens,
            response.output_tokens,
        )
        return DiscoveryResult(
            payload=payload,
            sources=sources,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
        )
