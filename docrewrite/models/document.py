"""Document data models."""

from pydantic import BaseModel, ConfigDict, Field


class Document(BaseModel):
    """Immutable source text supplied by the ingestion layer."""

    model_config = ConfigDict(frozen=True)

    title: str = "document"  # original file name or title
    text: str

    @property
    def words(self) -> list[str]:
        return self.text.split()


class LiveDocument(BaseModel):
    """A document with rewritten chunks spliced in.

    ``spans`` maps each chunk index to the ``(start, end)`` character span
    its words occupied in the original text. Replacements are keyed by the
    same index, so the kth chunk always replaces the kth span no matter
    what text surrounds it. Characters outside the spans (including the
    whitespace between chunks) are kept verbatim.
    """

    model_config = ConfigDict(frozen=True)

    document: Document
    spans: dict[int, tuple[int, int]] = Field(default_factory=dict)
    replacements: dict[int, str] = Field(default_factory=dict)

    @property
    def text(self) -> str:
        return self._render()[0]

    def positions(self) -> dict[int, tuple[int, int]]:
        """Map each chunk index to its ``(start, end)`` span in ``text``."""
        return self._render()[1]

    def _render(self) -> tuple[str, dict[int, tuple[int, int]]]:
        source = self.document.text
        parts: list[str] = []
        positions: dict[int, tuple[int, int]] = {}
        cursor = 0
        length = 0

        for index in sorted(self.spans):
            start, end = self.spans[index]
            gap = source[cursor:start]
            parts.append(gap)
            length += len(gap)

            segment = self.replacements.get(index, source[start:end])
            parts.append(segment)
            positions[index] = (length, length + len(segment))
            length += len(segment)
            cursor = end

        parts.append(source[cursor:])
        return "".join(parts), positions


class DisplayChunk(BaseModel):
    """A read-only group of whole paragraphs shown while browsing."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=1)
    content: str
    word_count: int = Field(ge=0)
    start_position: int = Field(ge=0)
    end_position: int = Field(ge=0)


class ChunkedDocument(BaseModel):
    """A document split into display chunks.

    Positions are character offsets into ``original_content``.
    """

    model_config = ConfigDict(frozen=True)

    original_content: str
    chunks: list[DisplayChunk] = Field(default_factory=list)
    total_word_count: int = 0

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)

    def get(self, index: int) -> DisplayChunk | None:
        for chunk in self.chunks:
            if chunk.index == index:
                return chunk
        return None

    def chunk_at(self, position: int) -> DisplayChunk | None:
        """Return the chunk whose span contains ``position``, if any."""
        for chunk in self.chunks:
            if chunk.start_position <= position <= chunk.end_position:
                return chunk
        return None
