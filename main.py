#!/usr/bin/env python3
"""Spotlight: search-grounded briefings about a public figure.

This CLI tool asks a Gemini model with Google Search grounding for the
latest news about one person, prints the structured facts as soon as they
arrive, then prints the long-form briefing.

Commands:
    run         Generate one briefing (optionally export PDF/Markdown)
    status      Show configuration, last run and whether a briefing is due

Examples:
    python main.py run                    # German briefing
    python main.py run --lang en          # English output
    python main.py run --pdf out/         # Also write Spotlight_<date>.pdf
    python main.py run --export           # PDF + Markdown into EXPORT_DIR
    python main.py status                 # Show config and due state

Environment:
    GEMINI_API_KEY: Required for both stages
    See config.py for all configuration options
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlparse

from config import Config
from observability.logging import setup_logging
from schedule import LastRunMarker, hours_since, is_due

CONNECTION_ERROR = (
    "Connection error: unable to retrieve briefing. "
    "Check network connection and GEMINI_API_KEY configuration."
)


def print_partial(snapshot) -> None:
    """Print the discovery results while the writing stage runs."""
    report = snapshot.partial_report
    if report is None:
        return

    print(f"\n=== {report.subject} ===\n")
    for fact in report.key_facts:
        print(f"  • {fact}")
    if report.tweet is not None:
        print(f"\n  @ {report.tweet.text}")
        print(f"    {report.tweet.date}  {report.tweet.url}")
    if report.sources:
        print(f"\n  Sources ({len(report.sources)}):")
        for source in report.sources:
            host = urlparse(source.uri).netloc or source.uri
            print(f"    - {source.title} ({host})")
    print("\n... writing briefing ...\n", flush=True)


def cmd_run(args: argparse.Namespace, config: Config) -> int:
    """Generate one briefing.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success)
    """
    from export import render_report_text, save_report_markdown, save_report_pdf
    from pipeline import generate_report

    logger = logging.getLogger(__name__)

    try:
        report = asyncio.run(generate_report(config, on_progress=print_partial))
    except KeyboardInterrupt:
        logger.info("Stopped by user (Ctrl+C)")
        return 130  # Standard exit code for SIGINT
    except Exception as e:
        logger.error("Briefing failed | error=%s type=%s", e, type(e).__name__)
        print(CONNECTION_ERROR, file=sys.stderr)
        return 1

    print(render_report_text(report, config.language))
    LastRunMarker(config.state_file).write(report.generated_at)

    pdf_target = args.pdf or (config.export_dir if args.export else None)
    md_target = args.markdown or (config.export_dir if args.export else None)
    try:
        if pdf_target:
            path = save_report_pdf(report, Path(pdf_target), config.language)
            print(f"PDF written: {path}", file=sys.stderr)
        if md_target:
            path = save_report_markdown(report, Path(md_target), config.language)
            print(f"Markdown written: {path}", file=sys.stderr)
    except (OSError, ImportError) as e:
        logger.error("Export failed | error=%s type=%s", e, type(e).__name__, exc_info=True)
        print(f"Export failed: {e}", file=sys.stderr)
        return 1

    return 0


def cmd_status(args: argparse.Namespace, config: Config) -> int:
    """Display configuration and due state.

    Args:
        args: Parsed command line arguments
        config: Application configuration

    Returns:
        Exit code (0 for success)
    """
    now = datetime.now(timezone.utc)
    last_run = LastRunMarker(config.state_file).read()

    status = {
        "config": {
            "subject": config.subject_name,
            "handle": config.subject_handle,
            "topics": config.subject_topics,
            "language": config.language,
            "discovery_model": config.discovery_model,
            "writer_model": config.writer_model,
            "lookback_hours": config.lookback_hours,
            "max_sources": config.max_sources,
            "api_key_set": bool(config.gemini_api_key),
            "enable_logfire": config.enable_logfire,
        },
        "schedule": {
            "state_file": str(config.state_file),
            "last_run": last_run.isoformat() if last_run else None,
            "hours_since": round(hours_since(now, last_run), 1) if last_run else None,
            "due_after_hours": config.due_after_hours,
            "due": is_due(now, last_run, config.due_after_hours),
        },
    }

    print(json.dumps(status, indent=2))
    return 0


def main() -> int:
    """Main entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="Spotlight: search-grounded briefings about a public figure",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser("run", help="Generate one briefing")
    run_parser.add_argument(
        "--lang",
        choices=["de", "en"],
        help="Output language (overrides LANGUAGE)",
    )
    run_parser.add_argument(
        "--pdf",
        metavar="PATH",
        help="Write a PDF export (file or directory)",
    )
    run_parser.add_argument(
        "--markdown",
        metavar="PATH",
        help="Write a Markdown export (file or directory)",
    )
    run_parser.add_argument(
        "--export",
        action="store_true",
        help="Write PDF and Markdown exports into EXPORT_DIR",
    )

    # status command
    subparsers.add_parser("status", help="Show configuration and due state")

    args = parser.parse_args()

    # Load configuration
    config = Config.load()
    if getattr(args, "lang", None):
        config.language = args.lang

    # Setup logging
    setup_logging(config, verbose=args.verbose)

    # Validate configuration for commands that need it
    if args.command == "run":
        error = config.validate()
        if error:
            print(f"Configuration error: {error}", file=sys.stderr)
            return 1

    # Route to command handler
    commands = {
        "run": cmd_run,
        "status": cmd_status,
    }

    if args.command in commands:
        try:
            return commands[args.command](args, config)
        except Exception as e:
            logging.getLogger(__name__).error("Command failed | cmd=%s error=%s", args.command, e, exc_info=True)
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
