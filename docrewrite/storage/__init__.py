"""Chunk storage and selection."""

from docrewrite.storage.chunk_store import ChunkStore

__all__ = ["ChunkStore"]
