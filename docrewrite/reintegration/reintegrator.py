"""Reintegration of rewritten chunks into documents and exports."""

import logging
import re

from pydantic import BaseModel

from docrewrite.exceptions import ConsistencyError, InputError
from docrewrite.models.chunk import Chunk, ChunkStatus
from docrewrite.models.document import Document, LiveDocument
from docrewrite.storage.chunk_store import ChunkStore

logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = "\n\n"

# Characters that are unsafe in file names on common platforms.
UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\s]+')


class ExportArtifact(BaseModel):
    """Plain text plus a file name stem, ready for an external encoder."""

    filename: str
    text: str
    chunk_count: int = 1


def start_live_document(document: Document, store: ChunkStore) -> LiveDocument:
    """Create a live view of ``document`` keyed by the store's chunk spans.

    Args:
        document: The source document the store was chunked from.
        store: The chunk store.

    Returns:
        A LiveDocument with no replacements applied.

    Raises:
        ConsistencyError: If a chunk span falls outside the document text.
    """
    spans: dict[int, tuple[int, int]] = {}
    for chunk in store.chunks():
        if chunk.char_end > len(document.text) or chunk.char_start > chunk.char_end:
            raise ConsistencyError(
                f"Chunk {chunk.index} span ({chunk.char_start}, {chunk.char_end}) "
                "does not fit the document"
            )
        spans[chunk.index] = (chunk.char_start, chunk.char_end)
    return LiveDocument(document=document, spans=spans)


def merge_into_document(live: LiveDocument, store: ChunkStore, index: int) -> LiveDocument:
    """Replace the span chunk ``index`` occupied with its rewritten output.

    The span is found by chunk ordinal, never by searching for the
    chunk's text, so duplicated passages cannot be confused.

    Args:
        live: The current live document.
        store: The chunk store holding the rewritten chunk.
        index: The chunk to apply.

    Returns:
        A new LiveDocument with the replacement applied.

    Raises:
        ConsistencyError: If the chunk is not rewritten or has no span in
            the live document.
    """
    chunk = store.get(index)
    if chunk.status != ChunkStatus.REWRITTEN or chunk.output is None:
        raise ConsistencyError(
            f"Chunk {index} is {chunk.status.value}; only rewritten chunks can be merged"
        )
    if index not in live.spans:
        raise ConsistencyError(f"Chunk {index} has no span in the live document")

    replacements = dict(live.replacements)
    replacements[index] = chunk.output
    logger.debug("Merged chunk %d into %s", index, live.document.title)
    return live.model_copy(update={"replacements": replacements})


def consolidate(store: ChunkStore, separator: str = DEFAULT_SEPARATOR) -> str:
    """Join the outputs of all rewritten chunks in index order.

    Chunks that are not rewritten are omitted.
    """
    return separator.join(chunk.output or "" for chunk in store.rewritten())


def _safe_stem(title: str) -> str:
    stem = UNSAFE_FILENAME_CHARS.sub("_", title.strip()).strip("_")
    return stem or "document"


def export_chunk(title: str, chunk: Chunk) -> ExportArtifact:
    """Build the export payload for a single chunk.

    Uses the rewritten output when there is one and the original text
    otherwise.
    """
    return ExportArtifact(
        filename=f"{_safe_stem(title)}_chunk_{chunk.index}_rewritten",
        text=chunk.output if chunk.output is not None else chunk.text,
    )


def export_consolidated(
    title: str, store: ChunkStore, separator: str = DEFAULT_SEPARATOR
) -> ExportArtifact:
    """Build the export payload for all rewritten chunks.

    Raises:
        InputError: If nothing has been rewritten yet.
    """
    rewritten = store.rewritten()
    if not rewritten:
        raise InputError("No rewritten content. Rewrite some chunks before exporting.")
    return ExportArtifact(
        filename=f"{_safe_stem(title)}_rewritten",
        text=consolidate(store, separator),
        chunk_count=len(rewritten),
    )
