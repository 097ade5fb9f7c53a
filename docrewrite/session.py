"""Editing session that ties chunking, selection, rewriting and export together."""

import logging
import threading
from collections.abc import Callable

from docrewrite.config import AppConfig
from docrewrite.exceptions import InputError
from docrewrite.ingestion.chunker import ParagraphChunker
from docrewrite.models.chunk import Chunk, ChunkStats
from docrewrite.models.document import ChunkedDocument, Document, LiveDocument
from docrewrite.models.run import ChunkUpdate, OrchestrationRun
from docrewrite.reintegration.reintegrator import (
    ExportArtifact,
    consolidate,
    export_chunk,
    export_consolidated,
    merge_into_document,
    start_live_document,
)
from docrewrite.rewrite.orchestrator import RewriteOrchestrator, validate_instruction
from docrewrite.rewrite.service import LLMRewriteService, RewriteService
from docrewrite.storage.chunk_store import ChunkStore

logger = logging.getLogger(__name__)


class RewriteSession:
    """State held by an interactive application for one loaded document.

    Loading a document discards everything from the previous one.

    Args:
        config: Application configuration.
        service: Rewrite service. Defaults to ``LLMRewriteService(config)``.
    """

    def __init__(self, config: AppConfig, service: RewriteService | None = None) -> None:
        self._config = config
        self._service = service if service is not None else LLMRewriteService(config)
        self._document: Document | None = None
        self._store: ChunkStore | None = None
        self._live: LiveDocument | None = None
        self._orchestrator: RewriteOrchestrator | None = None

    @property
    def document(self) -> Document:
        if self._document is None:
            raise InputError("No document loaded.")
        return self._document

    @property
    def store(self) -> ChunkStore:
        if self._store is None:
            raise InputError("No document loaded.")
        return self._store

    @property
    def live_document(self) -> LiveDocument:
        if self._live is None:
            raise InputError("No document loaded.")
        return self._live

    @property
    def last_run(self) -> OrchestrationRun | None:
        return self._orchestrator.last_run if self._orchestrator else None

    def load(self, text: str, title: str = "document") -> list[Chunk]:
        """Chunk a new document for rewriting.

        Returns:
            The new chunks, all pending.
        """
        document = Document(title=title, text=text)
        store = ChunkStore.from_text(text, self._config.chunking.rewrite_max_words)

        self._document = document
        self._store = store
        self._live = start_live_document(document, store)
        self._orchestrator = RewriteOrchestrator(store, self._service)
        logger.info("Loaded %r: %d chunks", title, len(store))
        return store.chunks()

    def reset(self) -> None:
        """Drop all selections, results and applied replacements."""
        self.store.reset()
        self._live = start_live_document(self.document, self.store)

    def display_chunks(self) -> ChunkedDocument:
        """Group the loaded document's paragraphs for read-only display."""
        return ParagraphChunker(self._config.chunking.display_max_words).chunk(self.document.text)

    def toggle(self, index: int) -> Chunk:
        return self.store.toggle(index)

    def select_all(self) -> None:
        self.store.select_all()

    def deselect_all(self) -> None:
        self.store.deselect_all()

    def rewrite(
        self,
        instruction: str,
        provider: str | None = None,
        on_update: Callable[[ChunkUpdate], None] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> OrchestrationRun:
        """Rewrite the current selection.

        Included chunks that were already rewritten or failed are re-armed
        first, so their previous output is discarded. Nothing is re-armed
        when the request is rejected.

        Args:
            instruction: Natural-language rewrite instruction.
            provider: Rewrite provider. ``None`` means the configured default.
            on_update: Called with every status change, in order.
            cancel_event: When set, the run stops before the next chunk.

        Raises:
            InputError: If nothing is selected, or the instruction or
                provider is blank.
        """
        if self._orchestrator is None:
            raise InputError("No document loaded.")
        if provider is None:
            provider = self._config.rewrite.default_provider
        validate_instruction(instruction, provider)
        if not self.store.selection():
            raise InputError("No chunks selected. Select at least one chunk to rewrite.")

        selection = self.store.rearm_selected()
        return self._orchestrator.run(
            selection,
            instruction,
            provider,
            on_update=on_update,
            cancel_event=cancel_event,
        )

    def apply(self, index: int) -> LiveDocument:
        """Splice a rewritten chunk into the live document."""
        self._live = merge_into_document(self.live_document, self.store, index)
        return self._live

    def consolidate(self) -> str:
        return consolidate(self.store, self._config.export.paragraph_separator)

    def export_chunk(self, index: int) -> ExportArtifact:
        return export_chunk(self.document.title, self.store.get(index))

    def export_all(self) -> ExportArtifact:
        return export_consolidated(
            self.document.title, self.store, self._config.export.paragraph_separator
        )

    def stats(self) -> ChunkStats:
        return self.store.stats(self._config.chunking.preview_chars)
