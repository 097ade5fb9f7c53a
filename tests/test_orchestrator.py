"""Tests for the sequential rewrite orchestrator."""

import threading

import pytest

from docrewrite.exceptions import InputError, TransformError
from docrewrite.models.chunk import ChunkStatus
from docrewrite.models.run import ChunkUpdate, RewriteRequest, RewriteResponse, RunOutcome
from docrewrite.rewrite.orchestrator import RewriteOrchestrator
from docrewrite.rewrite.service import FunctionRewriteService
from docrewrite.storage.chunk_store import ChunkStore


class StubRewriteService:
    """Uppercases text and fails for any chunk text listed in ``fail_on``."""

    def __init__(self, store: ChunkStore | None = None, fail_on: tuple[str, ...] = ()) -> None:
        self.store = store
        self.fail_on = set(fail_on)
        self.requests: list[RewriteRequest] = []
        self.in_progress_seen: list[list[int]] = []

    def rewrite(self, request: RewriteRequest) -> RewriteResponse:
        self.requests.append(request)
        if self.store is not None:
            self.in_progress_seen.append(
                [c.index for c in self.store.chunks() if c.status == ChunkStatus.IN_PROGRESS]
            )
        if request.text in self.fail_on:
            raise TransformError(f"service rejected {request.text!r}")
        return RewriteResponse(rewritten_text=request.text.upper())


@pytest.fixture
def store() -> ChunkStore:
    # One word per chunk: chunk i has text "w{i}"
    return ChunkStore.from_text(" ".join(f"w{i}" for i in range(1, 9)), max_words=1)


def _select(store: ChunkStore, *indices: int) -> None:
    for index in indices:
        store.toggle(index)


class TestSequentialRun:
    def test_completed_run(self, store: ChunkStore) -> None:
        _select(store, 1, 3)
        service = StubRewriteService()
        run = RewriteOrchestrator(store, service).run(store.selection(), "uppercase", "deepseek")

        assert run.outcome == RunOutcome.COMPLETED
        assert run.indices == [1, 3]
        assert store.get(1).output == "W1"
        assert store.get(3).output == "W3"
        assert store.get(2).status == ChunkStatus.PENDING
        assert run.finished_at is not None

    def test_requests_carry_instruction_and_provider(self, store: ChunkStore) -> None:
        _select(store, 4)
        service = StubRewriteService()
        RewriteOrchestrator(store, service).run(store.selection(), "  make formal ", "openai")
        assert service.requests == [
            RewriteRequest(text="w4", instructions="make formal", provider="openai")
        ]

    def test_failure_aborts_remaining_queue(self, store: ChunkStore) -> None:
        _select(store, 2, 5, 7)
        service = StubRewriteService(fail_on=("w5",))
        run = RewriteOrchestrator(store, service).run(store.selection(), "uppercase", "deepseek")

        assert run.outcome == RunOutcome.ABORTED
        assert run.aborted_at == 5
        assert store.get(2).status == ChunkStatus.REWRITTEN
        assert store.get(2).output == "W2"
        assert store.get(5).status == ChunkStatus.FAILED
        assert store.get(5).output is None
        assert "w5" in (store.get(5).error or "")
        assert store.get(7).status == ChunkStatus.SELECTED
        assert [r.text for r in service.requests] == ["w2", "w5"]
        assert run.remaining == [7]

    def test_plain_exception_treated_as_failure(self, store: ChunkStore) -> None:
        def flaky(text: str, instructions: str, provider: str) -> str:
            raise ConnectionError("network down")

        _select(store, 1)
        run = RewriteOrchestrator(store, FunctionRewriteService(flaky)).run(
            store.selection(), "x", "deepseek"
        )
        assert run.outcome == RunOutcome.ABORTED
        assert store.get(1).error == "network down"

    def test_malformed_response_is_failure(self, store: ChunkStore) -> None:
        class BrokenService:
            def rewrite(self, request: RewriteRequest) -> object:
                return {"unexpected": True}

        _select(store, 1)
        run = RewriteOrchestrator(store, BrokenService()).run(  # type: ignore[arg-type]
            store.selection(), "x", "deepseek"
        )
        assert run.outcome == RunOutcome.ABORTED
        assert store.get(1).status == ChunkStatus.FAILED

    def test_failed_chunk_stays_included(self, store: ChunkStore) -> None:
        _select(store, 1, 2)
        service = StubRewriteService(fail_on=("w2",))
        RewriteOrchestrator(store, service).run(store.selection(), "x", "deepseek")
        assert [c.index for c in store.selection()] == [2]


class TestOrderingAndUpdates:
    def test_updates_emitted_in_order(self, store: ChunkStore) -> None:
        _select(store, 2, 5, 7)
        seen: list[tuple[int, ChunkStatus]] = []
        service = StubRewriteService(fail_on=("w5",))

        run = RewriteOrchestrator(store, service).run(
            store.selection(),
            "uppercase",
            "deepseek",
            on_update=lambda u: seen.append((u.index, u.status)),
        )

        assert seen == [
            (2, ChunkStatus.IN_PROGRESS),
            (2, ChunkStatus.REWRITTEN),
            (5, ChunkStatus.IN_PROGRESS),
            (5, ChunkStatus.FAILED),
        ]
        assert [(u.index, u.status) for u in run.updates] == seen

    def test_update_messages(self, store: ChunkStore) -> None:
        _select(store, 1, 2)
        service = StubRewriteService(fail_on=("w2",))
        run = RewriteOrchestrator(store, service).run(store.selection(), "x", "deepseek")
        messages = [u.message for u in run.updates]
        assert "Chunk 1 has been successfully rewritten." in messages
        assert "Failed to rewrite chunk 2." in messages

    def test_one_chunk_in_progress_during_each_call(self, store: ChunkStore) -> None:
        _select(store, 1, 2, 3)
        service = StubRewriteService(store=store)
        RewriteOrchestrator(store, service).run(store.selection(), "x", "deepseek")
        assert service.in_progress_seen == [[1], [2], [3]]

    def test_iter_run_returns_run_record(self, store: ChunkStore) -> None:
        _select(store, 1)
        orchestrator = RewriteOrchestrator(store, StubRewriteService())
        updates = orchestrator.iter_run(store.selection(), "x", "deepseek")
        collected: list[ChunkUpdate] = []
        with pytest.raises(StopIteration) as stop:
            while True:
                collected.append(next(updates))
        run = stop.value.value
        assert run.outcome == RunOutcome.COMPLETED
        assert run is orchestrator.last_run
        assert len(collected) == 2

    def test_selection_snapshot_taken_at_start(self, store: ChunkStore) -> None:
        _select(store, 1, 3)
        orchestrator = RewriteOrchestrator(store, StubRewriteService())
        updates = orchestrator.iter_run(store.selection(), "x", "deepseek")
        store.toggle(5)  # selected after the run captured its chunks
        list(updates)
        assert orchestrator.last_run is not None
        assert orchestrator.last_run.indices == [1, 3]
        assert store.get(5).status == ChunkStatus.SELECTED


class TestCancellation:
    def test_cancel_between_chunks(self, store: ChunkStore) -> None:
        _select(store, 1, 2, 3)
        cancel = threading.Event()

        def on_update(update: ChunkUpdate) -> None:
            if update.status == ChunkStatus.REWRITTEN:
                cancel.set()

        service = StubRewriteService()
        run = RewriteOrchestrator(store, service).run(
            store.selection(), "x", "deepseek", on_update=on_update, cancel_event=cancel
        )
        assert run.outcome == RunOutcome.CANCELLED
        assert run.cancelled_before == 2
        assert store.get(1).status == ChunkStatus.REWRITTEN
        assert store.get(2).status == ChunkStatus.SELECTED
        assert len(service.requests) == 1

    def test_cancel_does_not_interrupt_in_flight_call(self, store: ChunkStore) -> None:
        _select(store, 1, 2)
        cancel = threading.Event()

        def slow(text: str, instructions: str, provider: str) -> str:
            cancel.set()
            return text.upper()

        run = RewriteOrchestrator(store, FunctionRewriteService(slow)).run(
            store.selection(), "x", "deepseek", cancel_event=cancel
        )
        assert store.get(1).output == "W1"
        assert run.outcome == RunOutcome.CANCELLED
        assert run.cancelled_before == 2

    def test_abandoned_iteration_restores_chunk(self, store: ChunkStore) -> None:
        _select(store, 1, 2)
        orchestrator = RewriteOrchestrator(store, StubRewriteService())
        updates = orchestrator.iter_run(store.selection(), "x", "deepseek")
        first = next(updates)
        assert first.status == ChunkStatus.IN_PROGRESS
        updates.close()
        assert store.get(1).status == ChunkStatus.SELECTED
        assert orchestrator.last_run is not None
        assert orchestrator.last_run.outcome == RunOutcome.CANCELLED
        assert orchestrator.last_run.cancelled_before == 1

    def test_unstarted_iteration_leaves_no_run(self, store: ChunkStore) -> None:
        _select(store, 1)
        orchestrator = RewriteOrchestrator(store, StubRewriteService())
        updates = orchestrator.iter_run(store.selection(), "x", "deepseek")
        updates.close()
        assert orchestrator.last_run is None
        assert store.get(1).status == ChunkStatus.SELECTED


class TestPreconditions:
    def test_empty_selection(self, store: ChunkStore) -> None:
        service = StubRewriteService()
        with pytest.raises(InputError):
            RewriteOrchestrator(store, service).run([], "x", "deepseek")
        assert service.requests == []

    @pytest.mark.parametrize("instruction", ["", "   ", "\n\t"])
    def test_blank_instruction(self, store: ChunkStore, instruction: str) -> None:
        _select(store, 1)
        service = StubRewriteService()
        with pytest.raises(InputError):
            RewriteOrchestrator(store, service).run(store.selection(), instruction, "deepseek")
        assert store.get(1).status == ChunkStatus.SELECTED
        assert service.requests == []

    def test_blank_provider(self, store: ChunkStore) -> None:
        _select(store, 1)
        with pytest.raises(InputError):
            RewriteOrchestrator(store, StubRewriteService()).run(store.selection(), "x", " ")

    def test_descending_order_rejected(self, store: ChunkStore) -> None:
        _select(store, 1, 3)
        chunks = list(reversed(store.selection()))
        with pytest.raises(InputError):
            RewriteOrchestrator(store, StubRewriteService()).run(chunks, "x", "deepseek")

    def test_duplicate_index_rejected(self, store: ChunkStore) -> None:
        _select(store, 2)
        chunk = store.get(2)
        with pytest.raises(InputError):
            RewriteOrchestrator(store, StubRewriteService()).run([chunk, chunk], "x", "deepseek")

    def test_unselected_chunk_rejected(self, store: ChunkStore) -> None:
        with pytest.raises(InputError):
            RewriteOrchestrator(store, StubRewriteService()).run([store.get(1)], "x", "deepseek")

    def test_rewritten_chunk_must_be_rearmed(self, store: ChunkStore) -> None:
        _select(store, 1)
        orchestrator = RewriteOrchestrator(store, StubRewriteService())
        orchestrator.run(store.selection(), "x", "deepseek")
        store.toggle(1)
        with pytest.raises(InputError):
            orchestrator.run(store.selection(), "y", "deepseek")
        store.rearm(1)
        run = orchestrator.run(store.selection(), "y", "deepseek")
        assert run.outcome == RunOutcome.COMPLETED
        assert store.get(1).output == "W1"
