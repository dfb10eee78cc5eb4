"""Document ingestion: tokenizer, recursive splitter, structural chunkers,
content extraction and the ingestion job orchestrator."""

from src.services.ingestion.chunker import StructuralChunker
from src.services.ingestion.extraction import ContentExtractor
from src.services.ingestion.ingestion_service import DocumentIngestionService
from src.services.ingestion.text_splitter import RecursiveTextSplitter
from src.services.ingestion.tokenizer import TiktokenTokenizer

__all__ = [
    "ContentExtractor",
    "DocumentIngestionService",
    "RecursiveTextSplitter",
    "StructuralChunker",
    "TiktokenTokenizer",
]
