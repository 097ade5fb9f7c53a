"""Document chunking."""

from docrewrite.ingestion.chunker import (
    ParagraphChunker,
    WordChunker,
    chunk_text,
    count_words,
    split_paragraphs,
    tokenize,
)

__all__ = [
    "ParagraphChunker",
    "WordChunker",
    "chunk_text",
    "count_words",
    "split_paragraphs",
    "tokenize",
]
