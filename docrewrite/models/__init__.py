"""Data models for the document rewrite application."""

from docrewrite.models.chunk import (
    TERMINAL_STATUSES,
    Chunk,
    ChunkPreview,
    ChunkStats,
    ChunkStatus,
)
from docrewrite.models.document import (
    ChunkedDocument,
    DisplayChunk,
    Document,
    LiveDocument,
)
from docrewrite.models.run import (
    ChunkUpdate,
    OrchestrationRun,
    RewriteRequest,
    RewriteResponse,
    RunOutcome,
)

__all__ = [
    "TERMINAL_STATUSES",
    "Chunk",
    "ChunkPreview",
    "ChunkStats",
    "ChunkStatus",
    "ChunkUpdate",
    "ChunkedDocument",
    "DisplayChunk",
    "Document",
    "LiveDocument",
    "OrchestrationRun",
    "RewriteRequest",
    "RewriteResponse",
    "RunOutcome",
]
