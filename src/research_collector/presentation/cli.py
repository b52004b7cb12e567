"""
Research Collector command line interface.

Usage:
    # Search the default sources
    research-collector search "soil carbon sequestration" --from 2020-01-01

    # Pick sources and languages, add literal pages
    research-collector search "permafrost" --source arxiv --source crossref \\
        --language en --url example.org/permafrost-report

    # Describe the request in a file
    research-collector search --request-file request.yaml

    # Inspect and export the store
    research-collector stats
    research-collector history --limit 5
    research-collector export --format csv --output records.csv
    research-collector keywords --top 20
    research-collector clear

Environment Variables:
    See ``research_collector.config``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from research_collector import __version__
from research_collector.application.export import FORMAT_EXTENSIONS, SUPPORTED_FORMATS, export_records
from research_collector.config import Settings, load_request_file
from research_collector.container import ApplicationContainer, create_container
from research_collector.core.exceptions import ResearchCollectorError
from research_collector.domain.entities import DEFAULT_MAX_RESULTS, SearchRequest
from research_collector.infrastructure.sources import ADAPTER_REGISTRY, CUSTOM_URL_SOURCE
from research_collector.shared.text import extract_keywords

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str, verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="research-collector",
        description="Collect research records from multiple open scholarly APIs",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--data-dir", help="Record store directory (env: RESEARCH_COLLECTOR_DATA_DIR)")
    parser.add_argument("--email", help="Contact email for polite API pools (env: RESEARCH_COLLECTOR_EMAIL)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Search sources and store the results")
    search.add_argument("keywords", nargs="?", help="Search keywords")
    search.add_argument("--request-file", help="YAML or JSON file describing the request")
    search.add_argument("--from", dest="date_from", help="Earliest publication date (YYYY-MM-DD)")
    search.add_argument("--to", dest="date_to", help="Latest publication date (YYYY-MM-DD)")
    search.add_argument(
        "--language", dest="languages", action="append", default=[],
        help="Accepted language code prefix (repeatable)",
    )
    search.add_argument(
        "--source", dest="sources", action="append", default=[],
        help=f"Source to query (repeatable): {', '.join(n for n in ADAPTER_REGISTRY if n != CUSTOM_URL_SOURCE)}",
    )
    search.add_argument(
        "--url", dest="custom_urls", action="append", default=[],
        help="Literal page to fetch (repeatable)",
    )
    search.add_argument(
        "--max-results", type=int, default=None,
        help=f"Per-source result cap (default: {DEFAULT_MAX_RESULTS})",
    )
    search.add_argument("--quiet", action="store_true", help="Do not print progress messages")

    export = subparsers.add_parser("export", help="Export stored records")
    export.add_argument("--format", choices=SUPPORTED_FORMATS, default="json", help="Export format (default: json)")
    export.add_argument("--output", help="Output file (default: stdout)")

    subparsers.add_parser("stats", help="Show counts by source, language and year")

    history = subparsers.add_parser("history", help="Show recent searches")
    history.add_argument("--limit", type=int, default=10, help="Number of entries (default: 10)")

    subparsers.add_parser("clear", help="Delete all stored records")

    keywords = subparsers.add_parser("keywords", help="Most frequent terms across stored records")
    keywords.add_argument("--top", type=int, default=10, help="Number of terms (default: 10)")

    return parser


def _build_request(args: argparse.Namespace) -> SearchRequest:
    if args.request_file:
        request = load_request_file(args.request_file)
        overrides = {
            "keywords": args.keywords,
            "date_from": args.date_from,
            "date_to": args.date_to,
            "languages": tuple(args.languages) or None,
            "sources": tuple(args.sources) or None,
            "custom_urls": tuple(args.custom_urls) or None,
            "max_results": args.max_results,
        }
        return replace(request, **{k: v for k, v in overrides.items() if v})

    return SearchRequest(
        keywords=args.keywords or "",
        date_from=args.date_from,
        date_to=args.date_to,
        languages=tuple(args.languages),
        sources=tuple(args.sources),
        custom_urls=tuple(args.custom_urls),
        max_results=args.max_results or DEFAULT_MAX_RESULTS,
    )


def cmd_search(container: ApplicationContainer, args: argparse.Namespace) -> int:
    request = _build_request(args)
    service = container.search_service()

    def on_progress(message: str) -> None:
        if not args.quiet:
            print(message)

    result = asyncio.run(service.search(request, on_progress=on_progress))

    for error in result.errors:
        print(f"  ! {error}", file=sys.stderr)
    for record in result.records:
        print(f"- [{record.source}] {record.date} {record.title}")
        print(f"  {record.url}")
    return 0


def cmd_export(container: ApplicationContainer, args: argparse.Namespace) -> int:
    records = container.record_store().load_all_records()
    content = export_records(records, args.format)

    if args.output:
        path = Path(args.output)
        if not path.suffix:
            path = path.with_suffix(FORMAT_EXTENSIONS[args.format])
        path.write_text(content, encoding="utf-8")
        print(f"Exported {len(records)} records to {path}")
    else:
        print(content)
    return 0


def cmd_stats(container: ApplicationContainer, args: argparse.Namespace) -> int:
    stats = container.record_store().get_statistics()
    print(json.dumps(stats, indent=2, ensure_ascii=False))
    return 0


def cmd_history(container: ApplicationContainer, args: argparse.Namespace) -> int:
    history = container.record_store().get_search_history()
    if not history:
        print("No searches yet.")
        return 0
    for entry in history[: args.limit]:
        errors = f" ({len(entry.errors)} errors)" if entry.errors else ""
        print(f"{entry.timestamp}  {entry.total:>4} records  {entry.request.keywords}{errors}")
    return 0


def cmd_clear(container: ApplicationContainer, args: argparse.Namespace) -> int:
    container.record_store().clear_all()
    print("All stored records deleted.")
    return 0


def cmd_keywords(container: ApplicationContainer, args: argparse.Namespace) -> int:
    records = container.record_store().load_all_records()
    text = " ".join(f"{r.title} {r.abstract}" for r in records)
    for keyword in extract_keywords(text, max_keywords=args.top):
        print(keyword)
    return 0


COMMANDS = {
    "search": cmd_search,
    "export": cmd_export,
    "stats": cmd_stats,
    "history": cmd_history,
    "clear": cmd_clear,
    "keywords": cmd_keywords,
}


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
        overrides = {"data_dir": args.data_dir, "email": args.email}
        settings = replace(settings, **{k: v for k, v in overrides.items() if v})

        configure_logging(settings.log_level, args.verbose)
        container = create_container(settings)
        return COMMANDS[args.command](container, args)
    except ResearchCollectorError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        if e.context.suggestion:
            print(f"Hint: {e.context.suggestion}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
