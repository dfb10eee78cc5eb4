"""Job execution and progress reporting for the ingestion pipeline."""

from src.pipeline.job_runner import IngestionJobRunner
from src.pipeline.progress_tracker import ProgressTracker

__all__ = [
    "IngestionJobRunner",
    "ProgressTracker",
]
