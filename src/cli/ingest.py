# =============================================================================
# src/cli/ingest.py - CLI Ingest Command (document ingestion)
# =============================================================================
#
# Standalone CLI for running document ingestion jobs against the local
# stores (uploads directory + SQLite chunk database).
#
# Supported subcommands:
#
#   process - Store a file as an upload and run an ingestion job for it
#   chunks  - Print the chunk table of an ingested document
#
# The ingestion job for each document:
#   1. Extract content by mime type (PDF pages, DOCX pages, XLSX sheets,
#      CSV rows, plain text/JSON, image caption)
#   2. Chunk it with the matching structural chunker
#   3. Embed chunks in batches (OpenAI text-embedding-3-small)
#   4. Store each batch in the SQLite chunk store as it completes
#   5. Mark the document READY (or FAILED, with exit code 1)
#
# Usage examples:
#   python -m src.cli.ingest process --file ./report.pdf --mime application/pdf
#   python -m src.cli.ingest process --file ./more.txt --mime text/plain \
#       --document-id 6f1c... --append
#   python -m src.cli.ingest chunks --document-id 6f1c...
# =============================================================================

"""Standalone CLI for document ingestion.

Usage::

    python -m src.cli.ingest process --file ./report.pdf --mime application/pdf

    python -m src.cli.ingest chunks --document-id <id>
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import uuid
from pathlib import Path
from typing import Any

from src.config.loader import load_config
from src.config.settings import Settings
from src.models.document import Document, DocumentStatus, ProcessDocumentJob
from src.models.pipeline import IngestionPhase
from src.utils.errors import IngestError
from src.utils.logging import configure_logging

# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


def _print_progress(document_id: str, phase: IngestionPhase, progress: float, message: str) -> None:
    suffix = f": {message}" if message else ""
    print(f"  [{phase.value:<10}] {progress:5.1f}%{suffix}")


async def _handle_process(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Store the file, register the document and run the job."""
    file_path = Path(args.file)
    if not file_path.is_file():
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        return 1

    chunk_store = components["chunk_store"]
    document_id = args.document_id or str(uuid.uuid4())
    storage_path = f"{document_id}/{file_path.name}"

    if args.append:
        existing = await chunk_store.get_document(document_id)
        if existing is None:
            print(f"Error: --append needs an existing document, {document_id} is unknown", file=sys.stderr)
            return 1
    else:
        await components["file_storage"].put(storage_path, file_path.read_bytes(), args.mime)
        await chunk_store.upsert_document(
            Document(
                id=document_id,
                mime_type=args.mime,
                storage_path=storage_path,
                collection_id=args.collection,
                status=DocumentStatus.UPLOADED,
            )
        )

    job = ProcessDocumentJob(
        document_id=document_id,
        storage_path=storage_path,
        mime_type=args.mime,
        collection_id=args.collection,
        append_only=args.append,
        # Append runs add the new file's text to the existing document.
        content=file_path.read_text(encoding="utf-8") if args.append else None,
    )

    print(f"Ingesting {file_path} as {document_id} ({args.mime})")
    tracker = components["progress_tracker"]
    tracker.register_listener(document_id, _print_progress)
    try:
        result = await components["runner"].submit(job)
    except IngestError as exc:
        print(f"\nIngestion failed: {exc}", file=sys.stderr)
        return 1
    finally:
        tracker.unregister_listener(document_id, _print_progress)
        await components["service"].drain_usage()

    print("\nIngestion complete:")
    print(f"  Document ID:    {result.document_id}")
    print(f"  Status:         {result.status.value}")
    print(f"  Chunks written: {result.chunks_written}")
    print(f"  First index:    {result.chunk_index_offset}")
    print(f"  Page count:     {result.page_count}")
    print(f"  Time:           {result.elapsed_seconds:.2f}s")
    return 0


async def _handle_chunks(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Print a document's chunk table."""
    chunk_store = components["chunk_store"]
    document = await chunk_store.get_document(args.document_id)
    if document is None:
        print(f"Error: unknown document {args.document_id}", file=sys.stderr)
        return 1

    chunks = await chunk_store.list_chunks(args.document_id)
    print(f"Document {document.id}: {document.status.value}, {len(chunks)} chunks")
    print(f"{'Index':>5}  {'Type':<6}  {'Chars':>6}  Preview")
    print("-" * 70)
    for chunk in chunks:
        preview = chunk.content[:48].replace("\n", " ")
        print(f"{chunk.chunk_index:>5}  {chunk.metadata.type:<6}  {len(chunk.content):>6}  {preview}")
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ingestion CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.ingest",
        description="Ingest documents into the local chunk store.",
    )
    parser.add_argument(
        "--config",
        default="config/ingestion.yaml",
        help="YAML defaults file (default: config/ingestion.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Ingestion commands")

    # -- process --
    process_parser = subparsers.add_parser("process", help="Upload a file and ingest it")
    process_parser.add_argument("--file", required=True, help="Path to the file")
    process_parser.add_argument("--mime", required=True, help="Mime type, e.g. application/pdf")
    process_parser.add_argument("--document-id", dest="document_id", help="Document ID (default: new UUID)")
    process_parser.add_argument("--collection", help="Collection ID")
    process_parser.add_argument(
        "--append",
        action="store_true",
        help="Add the file's text as new chunks of an existing document",
    )

    # -- chunks --
    chunks_parser = subparsers.add_parser("chunks", help="List a document's chunks")
    chunks_parser.add_argument("--document-id", dest="document_id", required=True, help="Document ID")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    # Deferred so ``--help`` never imports the provider stack.
    from src.main import build_pipeline, initialize_stores

    components = build_pipeline(app_settings)
    await initialize_stores(components)
    if args.command == "process":
        return await _handle_process(args, components)
    return await _handle_chunks(args, components)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for the ingestion tool; returns the exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        app_settings = load_config(args.config)
        configure_logging(
            log_level=app_settings.log_level,
            json_output=(app_settings.app_env == "production"),
        )
        return asyncio.run(_run(args, app_settings))
    except IngestError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
