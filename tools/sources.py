"""Source registry: citation extraction and cross-stage deduplication."""

import logging
from typing import Any, Iterable

from models.report import NewsSource

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_TITLE = "News Source"
MAX_SOURCES = 15


def sources_from_citations(citations: Iterable[dict[str, Any]]) -> list[NewsSource]:
    """Convert grounding citations into NewsSource entries.

    Each citation with a web entry ({"web": {"title": ..., "uri": ...}})
    becomes one source. Titles default to a generic placeholder; entries
    without a URI are skipped since a source is identified by its URI.

    Args:
        citations: Grounding chunks attached to a backend response

    Returns:
        Sources in citation order (duplicates preserved)
    """
    sources: list[NewsSource] = []
    for chunk in citations:
        web = chunk.get("web") if isinstance(chunk, dict) else None
        if not web:
            continue
        uri = web.get("uri") or ""
        if not uri:
            logger.debug("Citation without uri skipped | title=%s", web.get("title"))
            continue
        title = (web.get("title") or "").strip() or DEFAULT_SOURCE_TITLE
        sources.append(NewsSource(title=title, uri=uri))
    return sources


def merge_sources(
    first: Iterable[NewsSource],
    second: Iterable[NewsSource],
    cap: int = MAX_SOURCES,
) -> list[NewsSource]:
    """Merge two source lists, keeping first-seen order and dropping duplicate URIs.

    Sources from ``first`` win over equal-URI sources from ``second``. The
    result is truncated to ``cap`` entries.

    Example:
        >>> a = [NewsSource(title="A", uri="https://a.com")]
        >>> b = [NewsSource(title="A2", uri="https://a.com")]
        >>> [s.title for s in merge_sources(a, b)]
        ['A']
    """
    seen: set[str] = set()
    merged: list[NewsSource] = []
    for source in [*first, *second]:
        if source.uri in seen:
            continue
        seen.add(source.uri)
        merged.append(source)
    return merged[:max(cap, 0)]
