"""PydanticAI-backed agents for the Spotlight briefing pipeline.

This package contains the backend and the two stage agents:

GeminiSearchBackend:
    Gemini with Google Search grounding. Returns raw text plus citations.

DiscoveryAgent:
    Fast structured scan: subject line, key facts, one highlighted post.

WriterAgent:
    Long-form Markdown body built on the discovery facts.

Example:
    >>> from agents import GeminiSearchBackend, DiscoveryAgent, WriterAgent
    >>> backend = GeminiSearchBackend(config)
    >>> discovery = DiscoveryAgent(config, backend)
"""

from agents.backend import GeminiSearchBackend, GroundedResponse, SearchBackend, StageRequest
from agents.discovery import DiscoveryAgent, DiscoveryResult
from agents.writer import WriterAgent, WritingResult

__all__ = [
    "GeminiSearchBackend",
    "GroundedResponse",
    "SearchBackend",
    "StageRequest",
    "DiscoveryAgent",
    "DiscoveryResult",
    "WriterAgent",
    "WritingResult",
]
