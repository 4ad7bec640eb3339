"""Briefing export: Markdown, plain text, HTML and PDF.

Only completed reports are exported. The body is Markdown produced by the
writing stage; HTML rendering goes through ``markdown`` and the PDF is laid
out from that HTML with PyMuPDF's Story API.
"""

import logging
import re
from html import escape
from pathlib import Path

import markdown

from models.report import AgentReport

logger = logging.getLogger(__name__)

SOURCE_TITLE_LIMIT = 90

_HTML_TAG = re.compile(r"</?[A-Za-z][^<>]*>")

_HEADINGS = {
    "de": {
        "title": "Spotlight Briefing",
        "generated": "Erstellt",
        "facts": "Wichtige Fakten",
        "tweet": "Neuester Post",
        "summary": "Zusammenfassung",
        "sources": "Quellen",
    },
    "en": {
        "title": "Spotlight Briefing",
        "generated": "Generated",
        "facts": "Key Facts",
        "tweet": "Latest Post",
        "summary": "Summary",
        "sources": "Sources",
    },
}

_PDF_CSS = """
body { font-family: sans-serif; font-size: 11pt; color: #1e293b; }
h1 { font-size: 20pt; }
h2 { font-size: 13pt; color: #2563eb; }
.meta { font-size: 9pt; color: #64748b; }
.tweet { font-style: italic; }
.sources { font-size: 9pt; }
"""


def _esc(s: str | None) -> str:
    return escape(s or "", quote=True)


def _headings(language: str) -> dict[str, str]:
    return _HEADINGS.get(language, _HEADINGS["en"])


def _require_complete(report: AgentReport) -> None:
    if report.is_partial:
        raise ValueError("Only completed reports can be exported (body is empty)")


def strip_markup(text: str) -> str:
    """Remove bold and heading markers from Markdown text."""
    return text.replace("**", "").replace("#", "")


def truncate_title(title: str, limit: int = SOURCE_TITLE_LIMIT) -> str:
    """Shorten a source title for display lists."""
    if len(title) <= limit:
        return title
    return title[:limit].rstrip() + "..."


def export_filename(report: AgentReport, suffix: str) -> str:
    """File name for an export, e.g. Spotlight_2026-10-19.pdf."""
    return f"Spotlight_{report.generated_at.strftime('%Y-%m-%d')}{suffix}"


def render_report_markdown(report: AgentReport, language: str = "de") -> str:
    """Render a completed report as a standalone Markdown document."""
    _require_complete(report)
    h = _headings(language)
    lines = [
        f"# {h['title']}: {report.subject}",
        "",
        f"_{h['generated']}: {report.generated_at.strftime('%Y-%m-%d %H:%M UTC')}_",
        "",
        f"## {h['facts']}",
        "",
    ]
    lines.extend(f"- {fact}" for fact in report.key_facts)
    lines.append("")

    if report.tweet is not None:
        lines.append(f"## {h['tweet']}")
        lines.append("")
        lines.append(f"> {report.tweet.text}")
        lines.append(">")
        lines.append(f"> {report.tweet.date} | {report.tweet.url}")
        lines.append("")

    lines.append(report.body.strip())
    lines.append("")

    if report.sources:
        lines.append(f"## {h['sources']}")
        lines.append("")
        for source in report.sources:
            lines.append(f"- [{truncate_title(source.title)}]({source.uri})")
        lines.append("")

    return "\n".join(lines)


def render_report_text(report: AgentReport, language: str = "de") -> str:
    """Render a completed report as plain text (Markdown markers stripped)."""
    _require_complete(report)
    h = _headings(language)
    lines = [
        f"{h['title'].upper()}: {report.subject}",
        f"{h['generated']}: {report.generated_at.strftime('%Y-%m-%d %H:%M UTC')}",
        "",
        h["facts"].upper(),
    ]
    lines.extend(f"  • {fact}" for fact in report.key_facts)
    lines.append("")

    if report.tweet is not None:
        lines.append(h["tweet"].upper())
        lines.append(f"  {report.tweet.text}")
        lines.append(f"  {report.tweet.date}  {report.tweet.url}")
        lines.append("")

    lines.append(h["summary"].upper())
    lines.append(strip_markup(report.body).strip())
    lines.append("")

    if report.sources:
        lines.append(h["sources"].upper())
        for source in report.sources:
            lines.append(f"  - {truncate_title(source.title)} <{source.uri}>")

    return "\n".join(lines).rstrip() + "\n"


def render_body_html(body: str) -> str:
    """Convert the Markdown body to HTML; raw HTML tags in the body are dropped."""
    if not body.strip():
        return ""
    return markdown.markdown(
        _HTML_TAG.sub("", body),
        extensions=["sane_lists", "nl2br"],
    )


def render_report_html(report: AgentReport, language: str = "de") -> str:
    """Render a completed report as a complete HTML document."""
    h = _headings(language)
    return "\n".join([
        "<!DOCTYPE html>",
        "<html>",
        '<head><meta charset="UTF-8">',
        f"<title>{_esc(h['title'])}: {_esc(report.subject)}</title>",
        "</head>",
        "<body>",
        render_report_fragment(report, language),
        "</body>",
        "</html>",
    ])


def render_report_fragment(report: AgentReport, language: str = "de") -> str:
    """Render the report content as an HTML fragment (no html/body wrapper)."""
    _require_complete(report)
    h = _headings(language)

    html: list[str] = [
        f"<h1>{_esc(report.subject)}</h1>",
        f'<p class="meta">{_esc(h["generated"])}: '
        f"{_esc(report.generated_at.strftime('%Y-%m-%d %H:%M UTC'))}</p>",
        f"<h2>{_esc(h['facts'])}</h2>",
        "<ul>",
    ]
    html.extend(f"<li>{_esc(fact)}</li>" for fact in report.key_facts)
    html.append("</ul>")

    if report.tweet is not None:
        html.append(f"<h2>{_esc(h['tweet'])}</h2>")
        html.append(f'<p class="tweet">{_esc(report.tweet.text)}</p>')
        link = f'<a href="{_esc(report.tweet.url)}">{_esc(report.tweet.url)}</a>' if report.tweet.url else ""
        html.append(f'<p class="meta">{_esc(report.tweet.date)} {link}</p>')

    html.append(f"<h2>{_esc(h['summary'])}</h2>")
    html.append(render_body_html(report.body))

    if report.sources:
        html.append(f"<h2>{_esc(h['sources'])}</h2>")
        html.append('<ol class="sources">')
        for source in report.sources:
            html.append(
                f'<li><a href="{_esc(source.uri)}">{_esc(truncate_title(source.title))}</a></li>'
            )
        html.append("</ol>")

    return "\n".join(html)


def render_report_pdf(report: AgentReport, language: str = "de") -> bytes:
    """Lay out the HTML rendering on A4 pages and return the PDF bytes.

    Anchors in the HTML (source list, post link) become clickable PDF links.
    """
    import pymupdf

    story = pymupdf.Story(html=render_report_fragment(report, language), user_css=_PDF_CSS)
    mediabox = pymupdf.paper_rect("a4")
    where = mediabox + (50, 50, -50, -50)

    def rectfn(rect_num, filled):
        return mediabox, where, None

    doc = story.write_with_links(rectfn)
    try:
        data = doc.tobytes()
        logger.debug("PDF rendered | pages=%d bytes=%d", doc.page_count, len(data))
    finally:
        doc.close()
    return data


def save_report_pdf(report: AgentReport, target: Path, language: str = "de") -> Path:
    """Write the PDF export.

    Args:
        report: Completed report
        target: File path, or a directory to place Spotlight_<date>.pdf in
        language: Heading language

    Returns:
        Path of the written file
    """
    path = _resolve_target(report, Path(target), ".pdf")
    data = render_report_pdf(report, language)
    path.write_bytes(data)
    logger.info("Report exported | format=pdf path=%s", path)
    return path


def save_report_markdown(report: AgentReport, target: Path, language: str = "de") -> Path:
    """Write the Markdown export (file path or directory, as for PDF)."""
    path = _resolve_target(report, Path(target), ".md")
    path.write_text(render_report_markdown(report, language), encoding="utf-8")
    logger.info("Report exported | format=markdown path=%s", path)
    return path


def _resolve_target(report: AgentReport, target: Path, suffix: str) -> Path:
    _require_complete(report)
    if target.is_dir() or not target.suffix:
        target.mkdir(parents=True, exist_ok=True)
        return target / export_filename(report, suffix)
    target.parent.mkdir(parents=True, exist_ok=True)
    return target
