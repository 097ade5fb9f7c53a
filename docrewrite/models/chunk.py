"""Chunk data models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ChunkStatus(str, Enum):
    """Lifecycle of a chunk across selection and rewrite runs."""

    PENDING = "pending"
    SELECTED = "selected"
    IN_PROGRESS = "in_progress"
    REWRITTEN = "rewritten"
    FAILED = "failed"


# Statuses reached at the end of a chunk's turn in a run
TERMINAL_STATUSES = frozenset({ChunkStatus.REWRITTEN, ChunkStatus.FAILED})


class Chunk(BaseModel):
    """A contiguous run of words from a document.

    Chunks are immutable; the store replaces whole records so that every
    status transition is observed atomically.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=1)  # 1-based ordinal, also the reintegration key
    text: str  # words joined by single spaces
    word_count: int
    status: ChunkStatus = ChunkStatus.PENDING
    selected: bool = False  # included in the next run
    output: str | None = None  # only set when status is REWRITTEN
    error: str | None = None  # only set when status is FAILED
    char_start: int = 0  # span of the chunk's words in the source text
    char_end: int = 0

    @property
    def words(self) -> list[str]:
        return self.text.split(" ") if self.text else []


class ChunkPreview(BaseModel):
    """Short per-chunk summary for list displays."""

    index: int
    words: int
    status: ChunkStatus
    preview: str


class ChunkStats(BaseModel):
    """Aggregate counts over a chunk store."""

    total_chunks: int = 0
    total_words: int = 0
    avg_words_per_chunk: int = 0
    selected_count: int = 0
    rewritten_count: int = 0
    failed_count: int = 0
    chunks: list[ChunkPreview] = Field(default_factory=list)
