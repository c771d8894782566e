# =============================================================================
# src/cli/ingest.py — CLI Ingest Command (Knowledge Base Management)
# =============================================================================
#
# Standalone CLI for operators who need to feed or inspect the knowledge
# base outside of the HTTP API: seeding a fresh index, re-running the crawl
# sweep by hand, replaying a social post, or removing a page that no
# longer exists on the site.
#
# Supported subcommands:
#
#   url       — Fetch one webpage and replace its chunks
#   text      — Ingest raw text (or a URL) as a manual submission
#   post      — Ingest a social post from a JSON file
#   crawl     — Run the crawl sweep once, or forever with --loop
#   stats     — Display index statistics (chunk counts, doc types)
#   prune-url — Delete every chunk recorded for a URL
#   token     — Mint a bearer token for POST /api/v1/ingest
#
# Provider selection is shared with the web app through src.bootstrap, so
# the CLI always embeds with the same model as the deployed service.
# stats, prune-url and token only touch the chunk store or the secret and
# never build an embedding provider.
#
# Usage examples:
#   python -m src.cli.ingest url https://bmbcfamily.com/about-us
#   python -m src.cli.ingest text --title "Welcome" --file welcome.txt
#   python -m src.cli.ingest post --file post.json
#   python -m src.cli.ingest crawl --loop
#   python -m src.cli.ingest prune-url https://bmbcfamily.com/old-page --yes
# =============================================================================

"""Standalone CLI for building and maintaining the knowledge-base index.

Usage::

    python -m src.cli.ingest url https://bmbcfamily.com/about-us

    python -m src.cli.ingest text --text "Service starts at 10am" --title "Hours"

    python -m src.cli.ingest crawl

    python -m src.cli.ingest stats
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from src.config.settings import Settings
from src.models.knowledge import (
    DOC_TYPE_WEBPAGE,
    IngestionResult,
    IngestionStage,
    SocialPost,
    SourceDescriptor,
    SourceKind,
)


def _print_result(result: IngestionResult) -> int:
    """Print an ingestion summary and return the process exit code."""
    print("\nIngestion complete:" if result.stage is IngestionStage.DONE else "\nIngestion finished:")
    print(f"  Stage:          {result.stage.value}")
    print(f"  Title:          {result.title}")
    print(f"  URL:            {result.source_url or '-'}")
    print(f"  Chunks written: {result.chunk_count} of {result.chunks_attempted}")
    if result.chunks_dropped:
        print(f"  Chunks dropped: {result.chunks_dropped} (embedding failed)")
    print(f"  Time:           {result.ingestion_time:.2f}s")
    return 1 if result.stage is IngestionStage.FAILED else 0


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_url(args: argparse.Namespace, service) -> int:  # noqa: ANN001
    """Fetch a page and replace its indexed chunks."""
    print(f"Ingesting webpage: {args.url}")
    result = await service.ingest_url(args.url)
    return _print_result(result)


async def _handle_text(args: argparse.Namespace, service) -> int:  # noqa: ANN001
    """Ingest text passed inline, read from a file, or fetched from --url."""
    text = args.text
    if args.file:
        text = Path(args.file).read_text(encoding="utf-8")
    if not (text and text.strip()) and not args.url:
        print("Error: provide --text, --file or --url.", file=sys.stderr)
        return 1

    source = SourceDescriptor(
        kind=SourceKind.MANUAL,
        doc_type=args.source_type,
        url=args.url,
        text=text,
        title=args.title,
    )
    print(f"Ingesting manual submission ({args.source_type})")
    result = await service.ingest(source)
    return _print_result(result)


async def _handle_post(args: argparse.Namespace, service) -> int:  # noqa: ANN001
    """Ingest a social post stored as JSON.

    The file holds the post document itself; its id comes from ``--id`` or
    from an ``id`` key in the document.
    """
    raw: dict[str, Any] = json.loads(Path(args.file).read_text(encoding="utf-8"))
    post_id = args.id or raw.get("id")
    if not post_id:
        print("Error: post id missing (use --id or an 'id' key).", file=sys.stderr)
        return 1

    post = SocialPost.model_validate(raw)
    print(f"Ingesting social post: {post_id}")
    result = await service.ingest(SourceDescriptor.social_post(str(post_id), post))
    return _print_result(result)


async def _handle_crawl(args: argparse.Namespace, scheduler) -> int:  # noqa: ANN001
    """Run the crawl sweep once, or keep running it on its interval."""
    if args.loop:
        print(f"Crawling {len(scheduler.urls)} URLs every {args.interval or 'configured'} hours")
        await scheduler.run_forever()
        return 0

    print(f"Crawling {len(scheduler.urls)} URLs")
    batch = await scheduler.run_once()
    print("\nCrawl complete:")
    print(f"  Pages indexed:  {len(batch.results) - len(batch.failed_urls)}")
    print(f"  Chunks written: {batch.total_chunks}")
    if batch.failed_urls:
        print("  Failed URLs:")
        for url in batch.failed_urls:
            print(f"    {url}")
        return 1
    return 0


async def _handle_stats(store) -> int:  # noqa: ANN001
    """Print index statistics."""
    stats = await store.get_stats()

    print("Knowledge Base Statistics")
    print("=" * 40)
    print(f"  Total chunks:     {stats.total_chunks}")
    print(f"  Distinct URLs:    {stats.total_urls}")

    if stats.chunks_by_doc_type:
        print("\n  Chunks by doc type:")
        for doc_type, count in sorted(stats.chunks_by_doc_type.items()):
            print(f"    {doc_type:<15} {count}")
    return 0


async def _handle_prune_url(args: argparse.Namespace, store, index_writer) -> int:  # noqa: ANN001
    """Delete all chunks recorded for a URL.

    Destructive: requires confirmation unless --yes is passed.
    """
    count = await store.count_by_url(args.url)
    if count == 0:
        print(f"No chunks found for {args.url}. Nothing to prune.")
        return 0

    print(f"  Found {count} chunks for {args.url}")
    if not args.yes:
        confirm = input(f"  Delete all {count} chunks? [y/N] ").strip().lower()
        if confirm not in ("y", "yes"):
            print("  Aborted.")
            return 0

    deleted = await index_writer.delete_url(args.url)
    print(f"\n  Deleted {deleted} chunks.")
    return 0


def _handle_token(args: argparse.Namespace, app_settings: Settings) -> int:
    from src.api.auth import create_access_token

    print(create_access_token(app_settings.ingest_api_secret, args.subject))
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ingestion CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.ingest",
        description="Manage the knowledge-base chunk index.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Ingestion commands")

    # -- url --
    url_parser = subparsers.add_parser("url", help="Fetch a webpage and replace its chunks")
    url_parser.add_argument("url", help="Page URL")

    # -- text --
    text_parser = subparsers.add_parser("text", help="Ingest raw text as a manual submission")
    text_parser.add_argument("--text", default=None, help="Text to ingest")
    text_parser.add_argument("--file", default=None, help="Read the text from this file")
    text_parser.add_argument("--title", default=None, help="Title recorded on each chunk")
    text_parser.add_argument(
        "--url", default=None, help="Provenance URL (fetched when no text is given)"
    )
    text_parser.add_argument(
        "--source-type",
        dest="source_type",
        default=DOC_TYPE_WEBPAGE,
        help=f"Document type label (default: {DOC_TYPE_WEBPAGE})",
    )

    # -- post --
    post_parser = subparsers.add_parser("post", help="Ingest a social post from a JSON file")
    post_parser.add_argument("--file", required=True, help="Path to the post JSON document")
    post_parser.add_argument("--id", default=None, help="Post id (overrides the file's 'id')")

    # -- crawl --
    crawl_parser = subparsers.add_parser("crawl", help="Run the crawl sweep")
    crawl_parser.add_argument(
        "--loop", action="store_true", help="Keep sweeping on the configured interval"
    )
    crawl_parser.add_argument(
        "--interval", type=float, default=None, help="Override CRAWL_INTERVAL_HOURS"
    )

    # -- stats --
    subparsers.add_parser("stats", help="Show index statistics")

    # -- prune-url --
    prune_parser = subparsers.add_parser("prune-url", help="Delete all chunks for a URL")
    prune_parser.add_argument("url", help="URL whose chunks should be removed")
    prune_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")

    # -- token --
    token_parser = subparsers.add_parser("token", help="Mint an ingest API bearer token")
    token_parser.add_argument("--subject", default="operator", help="Token subject")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def _run_with_store(args: argparse.Namespace, app_settings: Settings) -> int:
    from src.providers.chunk_store.sqlite_chunk_store import SQLiteChunkStore
    from src.services.ingestion.index_writer import IndexWriter

    store = SQLiteChunkStore(
        db_path=app_settings.chunk_db_path,
        table=app_settings.chunk_table,
        batch_limit=app_settings.store_batch_limit,
    )
    await store.initialize()
    try:
        if args.command == "stats":
            return await _handle_stats(store)
        return await _handle_prune_url(args, store, IndexWriter(store))
    finally:
        await store.close()


async def _run_with_components(args: argparse.Namespace, app_settings: Settings) -> int:
    from src.bootstrap import build_components

    components = build_components(app_settings)
    print(f"Embedding provider: {components['provider_registry']['embedding']}")
    print(f"Vision LLM:         {components['provider_registry']['vision_llm'] or 'none'}")
    print()

    await components["chunk_store"].initialize()
    service = components["ingestion_service"]
    try:
        if args.command == "url":
            return await _handle_url(args, service)
        if args.command == "text":
            return await _handle_text(args, service)
        if args.command == "post":
            return await _handle_post(args, service)
        return await _handle_crawl(args, components["crawl_scheduler"])
    finally:
        await components["chunk_store"].close()
        await components["http_client"].aclose()


def main() -> None:
    """Parse CLI arguments and dispatch to the appropriate handler."""
    from src.utils.errors import KnowledgeBaseError
    from src.utils.logging import configure_logging

    parser = _build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(log_level=app_settings.log_level)

    if args.command == "crawl" and args.interval:
        app_settings = app_settings.model_copy(update={"crawl_interval_hours": args.interval})

    try:
        if args.command == "token":
            exit_code = _handle_token(args, app_settings)
        elif args.command in ("stats", "prune-url"):
            exit_code = asyncio.run(_run_with_store(args, app_settings))
        else:
            exit_code = asyncio.run(_run_with_components(args, app_settings))
    except KnowledgeBaseError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1
    except KeyboardInterrupt:
        exit_code = 130

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
