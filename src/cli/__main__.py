# =============================================================================
# src/cli/__main__.py - Package Entry Point
# =============================================================================
#
# Running the package itself (`python -m src.cli`) delegates to the
# ingestion CLI, the only command-line tool in this project:
#     python -m src.cli process --file ./report.pdf --mime application/pdf
# =============================================================================

"""Allow ``python -m src.cli`` execution."""

import sys

from src.cli.ingest import main

sys.exit(main())
