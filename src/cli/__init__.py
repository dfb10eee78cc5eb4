# =============================================================================
# src/cli/__init__.py - CLI Module Overview
# =============================================================================
#
# Command-line tools for operating the ingestion worker outside of the
# queue consumer. Each submodule is runnable via `python -m src.cli.<module>`.
#
#   INGESTION (ingest.py)
#      Uploads a local file into the storage directory, registers it as a
#      document and runs one ingestion job (extract, chunk, embed, store).
#      Also lists the chunk table of an ingested document.
#
# Architecture Notes:
#   - argparse for argument parsing.
#   - The provider stack (OpenAI, SQLite) is imported inside the command
#     runner so `--help` stays fast.
# =============================================================================

"""CLI tools for the document ingestion pipeline.

- ``python -m src.cli.ingest process`` - upload and ingest one file
- ``python -m src.cli.ingest chunks`` - list a document's chunks
"""
