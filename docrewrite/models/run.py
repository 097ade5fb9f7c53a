"""Rewrite run data models."""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from docrewrite.models.chunk import ChunkStatus


class RewriteRequest(BaseModel):
    """Payload sent to the rewrite service for one chunk."""

    text: str
    instructions: str
    provider: str


class RewriteResponse(BaseModel):
    """Successful rewrite service reply."""

    rewritten_text: str


class RunOutcome(str, Enum):
    """Terminal outcome of an orchestration run."""

    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    CANCELLED = "cancelled"


class ChunkUpdate(BaseModel):
    """A status change for one chunk, emitted in production order."""

    run_id: str
    index: int
    status: ChunkStatus
    output: str | None = None
    error: str | None = None
    message: str = ""


class OrchestrationRun(BaseModel):
    """Record of one sequential pass over a selection of chunks."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    indices: list[int]
    instruction: str
    provider: str
    outcome: RunOutcome = RunOutcome.RUNNING
    aborted_at: int | None = None  # index of the chunk that failed
    cancelled_before: int | None = None  # first index not attempted
    updates: list[ChunkUpdate] = Field(default_factory=list)
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: datetime | None = None

    @property
    def succeeded(self) -> list[int]:
        return [u.index for u in self.updates if u.status == ChunkStatus.REWRITTEN]

    @property
    def remaining(self) -> list[int]:
        """Indices of the run that never reached a terminal status."""
        attempted = {
            u.index
            for u in self.updates
            if u.status in (ChunkStatus.REWRITTEN, ChunkStatus.FAILED)
        }
        return [i for i in self.indices if i not in attempted]
