"""Deterministic helpers used by the briefing pipeline.

extract_json / validate_shape / parse_stage_response:
    Pull a JSON payload out of raw model text and validate it against the
    stage's payload model.

sources_from_citations / merge_sources:
    Turn grounding citations into NewsSource entries and merge the sources
    of both stages (dedup by URI, capped).

Example:
    >>> from tools import extract_json, merge_sources
    >>> extract_json('Sure! {"body": "..."}')
    {'body': '...'}
"""

from tools.parsing import extract_json, validate_shape, parse_stage_response, required_fields
from tools.sources import DEFAULT_SOURCE_TITLE, MAX_SOURCES, merge_sources, sources_from_citations

__all__ = [
    "extract_json",
    "validate_shape",
    "parse_stage_response",
    "required_fields",
    "merge_sources",
    "sources_from_citations",
    "DEFAULT_SOURCE_TITLE",
    "MAX_SOURCES",
]
