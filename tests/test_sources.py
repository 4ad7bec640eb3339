from models.report import NewsSource
from tools.sources import DEFAULT_SOURCE_TITLE, MAX_SOURCES, merge_sources, sources_from_citations


def _sources(*uris: str, prefix: str = "T") -> list[NewsSource]:
    return [NewsSource(title=f"{prefix}{i}", uri=uri) for i, uri in enumerate(uris)]


def test_sources_from_citations_maps_web_entries() -> None:
    citations = [
        {"web": {"title": "Reuters", "uri": "https://reuters.com/a"}},
        {"retrievedContext": {"uri": "ignored"}},
        {"web": {"title": "  ", "uri": "https://b.com"}},
        {"web": {"uri": "https://c.com"}},
        {"web": {"title": "No link"}},
    ]
    sources = sources_from_citations(citations)
    assert sources == [
        NewsSource(title="Reuters", uri="https://reuters.com/a"),
        NewsSource(title=DEFAULT_SOURCE_TITLE, uri="https://b.com"),
        NewsSource(title=DEFAULT_SOURCE_TITLE, uri="https://c.com"),
    ]


def test_sources_from_citations_keeps_duplicates() -> None:
    citations = [{"web": {"title": "A", "uri": "https://a.com"}}] * 2
    assert len(sources_from_citations(citations)) == 2


def test_merge_sources_first_seen_wins() -> None:
    first = [NewsSource(title="Src", uri="https://a.com")]
    second = [
        NewsSource(title=DEFAULT_SOURCE_TITLE, uri="https://a.com"),
        NewsSource(title="B", uri="https://b.com"),
    ]
    assert merge_sources(first, second) == [
        NewsSource(title="Src", uri="https://a.com"),
        NewsSource(title="B", uri="https://b.com"),
    ]


def test_merge_sources_is_idempotent() -> None:
    items = _sources("https://a.com", "https://b.com", "https://a.com")
    once = merge_sources(items, [])
    assert merge_sources(once, once) == once
    assert merge_sources(once, []) == once


def test_merge_sources_uris_unique_and_capped() -> None:
    first = _sources(*(f"https://s{i}.com" for i in range(12)), prefix="A")
    second = _sources(*(f"https://s{i}.com" for i in range(6, 20)), prefix="B")
    merged = merge_sources(first, second)
    uris = [s.uri for s in merged]
    assert len(merged) == MAX_SOURCES
    assert len(set(uris)) == len(uris)
    assert uris == [f"https://s{i}.com" for i in range(15)]


def test_merge_sources_respects_custom_cap() -> None:
    items = _sources("https://a.com", "https://b.com", "https://c.com")
    assert [s.uri for s in merge_sources(items, [], cap=2)] == ["https://a.com", "https://b.com"]
    assert merge_sources(items, [], cap=0) == []


def test_merge_sources_empty() -> None:
    assert merge_sources([], []) == []
