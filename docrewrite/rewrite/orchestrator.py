"""Sequential rewrite orchestration over selected chunks."""

import logging
import threading
from collections.abc import Callable, Generator, Iterable
from datetime import datetime

from docrewrite.exceptions import ConsistencyError, InputError, TransformError
from docrewrite.models.chunk import Chunk, ChunkStatus
from docrewrite.models.run import (
    ChunkUpdate,
    OrchestrationRun,
    RewriteRequest,
    RunOutcome,
)
from docrewrite.rewrite.service import RewriteService
from docrewrite.storage.chunk_store import ChunkStore

logger = logging.getLogger(__name__)


def validate_instruction(instruction: str, provider: str) -> None:
    """Reject a blank instruction or provider with ``InputError``."""
    if not instruction or not instruction.strip():
        raise InputError("Rewrite instructions are required.")
    if not provider or not provider.strip():
        raise InputError("A rewrite provider is required.")


class RewriteOrchestrator:
    """Submits selected chunks to a rewrite service one at a time.

    Chunks are processed in ascending index order with exactly one call in
    flight. The first failure marks that chunk failed and ends the run;
    chunks rewritten earlier keep their output and later chunks are left
    selected for a follow-up run. Cancellation is honoured only between
    chunks, never during a call.

    Args:
        store: The chunk store to update.
        service: The rewrite service to call for each chunk.
    """

    def __init__(self, store: ChunkStore, service: RewriteService) -> None:
        self._store = store
        self._service = service
        self.last_run: OrchestrationRun | None = None

    def run(
        self,
        selected_chunks: Iterable[Chunk],
        instruction: str,
        provider: str,
        on_update: Callable[[ChunkUpdate], None] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> OrchestrationRun:
        """Rewrite the selected chunks and return the finished run.

        Args:
            selected_chunks: Chunks to rewrite, ascending by index.
            instruction: Natural-language rewrite instruction.
            provider: Rewrite provider identifier.
            on_update: Called with every status change, in order.
            cancel_event: When set, the run stops before the next chunk.

        Returns:
            The run record. Its outcome is ``aborted`` when a chunk failed.

        Raises:
            InputError: If the selection or instruction is rejected.
            ConsistencyError: If a chunk is unknown to the store.
        """
        updates = self.iter_run(selected_chunks, instruction, provider, cancel_event)
        try:
            while True:
                try:
                    update = next(updates)
                except StopIteration as stop:
                    return stop.value
                if on_update is not None:
                    on_update(update)
        finally:
            updates.close()

    def iter_run(
        self,
        selected_chunks: Iterable[Chunk],
        instruction: str,
        provider: str,
        cancel_event: threading.Event | None = None,
    ) -> Generator[ChunkUpdate, None, OrchestrationRun]:
        """Validate the request and return a generator of status updates.

        Validation happens immediately, before any chunk is touched. The
        generator's return value is the finished ``OrchestrationRun``.
        ``last_run`` only changes once the generator is first advanced.
        """
        snapshot = self._validate(selected_chunks, instruction, provider)
        run = OrchestrationRun(
            indices=[chunk.index for chunk in snapshot],
            instruction=instruction.strip(),
            provider=provider.strip(),
        )
        return self._execute(run, snapshot, cancel_event)

    def _validate(
        self, selected_chunks: Iterable[Chunk], instruction: str, provider: str
    ) -> list[Chunk]:
        """Check preconditions and capture the store's current records."""
        requested = list(selected_chunks)
        if not requested:
            raise InputError("No chunks selected. Select at least one chunk to rewrite.")
        validate_instruction(instruction, provider)

        indices = [chunk.index for chunk in requested]
        for prev, curr in zip(indices, indices[1:]):
            if curr <= prev:
                raise InputError(
                    f"Chunks must be in strictly ascending index order, got {indices}"
                )

        snapshot: list[Chunk] = []
        for chunk in requested:
            current = self._store.get(chunk.index)
            if current.text != chunk.text:
                raise ConsistencyError(
                    f"Chunk {chunk.index} does not match the store's record"
                )
            if current.status != ChunkStatus.SELECTED:
                raise InputError(
                    f"Chunk {chunk.index} is {current.status.value}; "
                    "re-arm it before including it in a run"
                )
            snapshot.append(current)
        return snapshot

    def _execute(
        self,
        run: OrchestrationRun,
        snapshot: list[Chunk],
        cancel_event: threading.Event | None,
    ) -> Generator[ChunkUpdate, None, OrchestrationRun]:
        self.last_run = run
        logger.info(
            "Starting rewrite run %s: %d chunks, provider=%s",
            run.id,
            len(snapshot),
            run.provider,
        )
        active: Chunk | None = None
        try:
            for chunk in snapshot:
                if cancel_event is not None and cancel_event.is_set():
                    run.outcome = RunOutcome.CANCELLED
                    run.cancelled_before = chunk.index
                    logger.info("Run %s cancelled before chunk %d", run.id, chunk.index)
                    break

                active = chunk
                in_progress = chunk.model_copy(update={"status": ChunkStatus.IN_PROGRESS})
                self._store.replace(chunk.index, in_progress)
                yield self._record(run, in_progress, f"Rewriting chunk {chunk.index}.")

                try:
                    response = self._service.rewrite(
                        RewriteRequest(
                            text=chunk.text,
                            instructions=run.instruction,
                            provider=run.provider,
                        )
                    )
                    output = getattr(response, "rewritten_text", None)
                    if not isinstance(output, str):
                        raise TransformError("Malformed rewrite response", index=chunk.index)
                except Exception as exc:
                    error = str(exc) or type(exc).__name__
                    logger.error("Failed to rewrite chunk %d: %s", chunk.index, error)
                    failed = chunk.model_copy(
                        update={
                            "status": ChunkStatus.FAILED,
                            "selected": True,
                            "output": None,
                            "error": error,
                        }
                    )
                    self._store.replace(chunk.index, failed)
                    active = None
                    run.outcome = RunOutcome.ABORTED
                    run.aborted_at = chunk.index
                    yield self._record(run, failed, f"Failed to rewrite chunk {chunk.index}.")
                    break

                rewritten = chunk.model_copy(
                    update={
                        "status": ChunkStatus.REWRITTEN,
                        "selected": False,
                        "output": output,
                        "error": None,
                    }
                )
                self._store.replace(chunk.index, rewritten)
                active = None
                yield self._record(
                    run, rewritten, f"Chunk {chunk.index} has been successfully rewritten."
                )
            else:
                run.outcome = RunOutcome.COMPLETED
        finally:
            if run.outcome == RunOutcome.RUNNING:
                # Consumer stopped iterating or an error escaped the loop.
                run.outcome = RunOutcome.CANCELLED
                if active is not None:
                    self._store.replace(active.index, active)
                    run.cancelled_before = active.index
                else:
                    run.cancelled_before = next(iter(run.remaining), None)
            run.finished_at = datetime.now()

        logger.info(
            "Rewrite run %s finished: %s (%d/%d rewritten)",
            run.id,
            run.outcome.value,
            len(run.succeeded),
            len(run.indices),
        )
        return run

    def _record(self, run: OrchestrationRun, chunk: Chunk, message: str) -> ChunkUpdate:
        update = ChunkUpdate(
            run_id=run.id,
            index=chunk.index,
            status=chunk.status,
            output=chunk.output,
            error=chunk.error,
            message=message,
        )
        run.updates.append(update)
        return update
