"""Writer agent: long-form briefing body built on the discovery facts.

The discovery facts and tweet are embedded verbatim (as JSON) in the prompt
so the narrative stays consistent with what the caller has already shown,
instead of being re-derived independently.
"""

import json
import logging
from dataclasses import dataclass, field

from agents.backend import SearchBackend, StageRequest
from agents.discovery import DiscoveryResult
from config import Config
from models.report import NewsSource, WritingPayload
from tools.parsing import parse_stage_response
from tools.sources import sources_from_citations

logger = logging.getLogger(__name__)

STAGE = "writing"


WRITER_PROMPTS = {
    "de": """Du schreibst ein tägliches Intelligence-Briefing.

## Struktur des Textes (Markdown-Überschriften)
1. 🚨 **Highlights**: 1 Satz zur wichtigsten Meldung.
2. 🧐 **Privat & Unterwegs**: Aufenthaltsort und persönliche Neuigkeiten.
3. 🚀 **Unternehmen & Projekte**: Neuigkeiten aus den Unternehmen.
4. 📱 **Auf X (Twitter)**: Den Post und seinen Kontext einordnen.

## Regeln
- Ton: professionell, neutral, auf Deutsch.
- Die übergebenen Fakten sind gesetzt; widersprich ihnen nicht.
- Suche bei Bedarf nach zusätzlichen Details, um den Bericht vollständig zu machen.""",
    "en": """You write a daily intelligence briefing.

## Body structure (Markdown headings)
1. 🚨 **Highlights**: 1 sentence on the biggest story.
2. 🧐 **Personal & Travel**: Location and personal updates.
3. 🚀 **Companies & Projects**: Company news.
4. 📱 **On X (Twitter)**: Mention the post and its context.

## Rules
- Tone: professional, neutral, English.
- The provided facts are settled; do not contradict them.
- Search for additional details if necessary to make the report comprehensive.""",
}


def build_writing_message(discovery: DiscoveryResult, today: str) -> str:
    """Build the writing task message with the discovery data embedded as JSON."""
    facts = json.dumps(list(discovery.payload.key_facts), ensure_ascii=False)
    tweet = json.dumps(discovery.payload.tweet.model_dump(), ensure_ascii=False)

    return f"""Current Date: {today}

TASK: Write a detailed Daily Briefing based on these Key Facts and this Tweet:
Facts: {facts}
Tweet: {tweet}"""


@dataclass
class WritingResult:
    """Parsed outcome of the writing stage."""

    payload: WritingPayload
    sources: list[NewsSource] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0


class WriterAgent:
    """Runs the writing stage against a search backend."""

    def __init__(self, config: Config, backend: SearchBackend):
        self.config = config
        self.backend = backend

    def build_request(self, discovery: DiscoveryResult, today: str) -> StageRequest:
        return StageRequest(
            stage=STAGE,
            model=self.config.writer_model,
            instructions=WRITER_PROMPTS.get(self.config.language, WRITER_PROMPTS["en"]),
            prompt=build_writing_message(discovery, today),
            output_schema=WritingPayload.model_json_schema(),
            use_search=True,
        )

    async def write(self, discovery: DiscoveryResult, today: str) -> WritingResult:
        """Run the writing request and validate its payload.

        Args:
            discovery: Result of the discovery stage
            today: Human-readable current date

        Raises:
            EmptyResponseError, ParseError, SchemaError, BackendError
        """
        response = await self.backend.generate(self.build_request(discovery, today))
        payload = parse_stage_response(response.text, WritingPayload, stage=STAGE)
        sources = sources_from_citations(response.citations)

        logger.info(
            "Writing complete | chars=%d sources=%d input_tokens=%d output_tokens=%d",
            len(payload.body),
            len(sources),
            response.input_tokens,
            response.output_tokens,
        )
        return WritingResult(
            payload=payload,
            sources=sources,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
        )
