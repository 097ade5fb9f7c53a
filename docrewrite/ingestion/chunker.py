"""Word-count text chunkers.

``WordChunker`` produces the chunks that are selected and rewritten.
``ParagraphChunker`` produces coarser, paragraph-aligned chunks for
read-only browsing of long documents.
"""

import logging
import re

from docrewrite.exceptions import InputError
from docrewrite.models.chunk import Chunk
from docrewrite.models.document import ChunkedDocument, DisplayChunk

logger = logging.getLogger(__name__)

# A word is any maximal run of non-whitespace characters.
WORD_PATTERN = re.compile(r"\S+")

PARAGRAPH_BREAK = re.compile(r"\n\s*\n")


def tokenize(text: str) -> list[tuple[str, int, int]]:
    """Split text into words with their character spans.

    Args:
        text: The text to tokenize.

    Returns:
        List of ``(word, start, end)`` tuples in document order.
    """
    return [(m.group(), m.start(), m.end()) for m in WORD_PATTERN.finditer(text)]


def count_words(text: str) -> int:
    """Count whitespace-separated words in a text string.

    Args:
        text: The text to count words in.

    Returns:
        Number of words.
    """
    return len(text.split())


def validate_max_words(max_words: object) -> int:
    """Check that a chunk bound is a positive integer.

    Raises:
        InputError: If ``max_words`` is not an int greater than zero.
    """
    if isinstance(max_words, bool) or not isinstance(max_words, int) or max_words <= 0:
        raise InputError(f"max_words must be a positive integer, got {max_words!r}")
    return max_words


class WordChunker:
    """Splits text into consecutive chunks of at most ``max_words`` words.

    Words are accumulated greedily; a chunk is closed as soon as it holds
    ``max_words`` words, and any remainder becomes a final shorter chunk.
    Chunk text is the words joined by single spaces, while ``char_start``
    and ``char_end`` keep the span the words covered in the source so the
    original whitespace can be restored on reintegration.

    Args:
        max_words: Upper bound on words per chunk.

    Raises:
        InputError: If ``max_words`` is not a positive integer.
    """

    def __init__(self, max_words: int) -> None:
        self._max_words = validate_max_words(max_words)

    @property
    def max_words(self) -> int:
        return self._max_words

    def chunk(self, text: str) -> list[Chunk]:
        """Split text into chunks.

        Args:
            text: The document text.

        Returns:
            Chunks indexed from 1. Empty or whitespace-only text yields
            an empty list.
        """
        tokens = tokenize(text)
        if not tokens:
            return []

        chunks: list[Chunk] = []
        for pos in range(0, len(tokens), self._max_words):
            window = tokens[pos : pos + self._max_words]
            chunks.append(
                Chunk(
                    index=len(chunks) + 1,
                    text=" ".join(word for word, _, _ in window),
                    word_count=len(window),
                    char_start=window[0][1],
                    char_end=window[-1][2],
                )
            )

        logger.debug(
            "Chunked %d words into %d chunks (max_words=%d)",
            len(tokens),
            len(chunks),
            self._max_words,
        )
        return chunks


def chunk_text(text: str, max_words: int) -> list[Chunk]:
    """Split text into chunks of at most ``max_words`` words.

    Args:
        text: The document text.
        max_words: Upper bound on words per chunk.

    Returns:
        Ordered list of chunks, indexed from 1.
    """
    return WordChunker(max_words).chunk(text)


class ParagraphChunker:
    """Groups whole paragraphs into read-only display chunks.

    Paragraphs are separated by blank lines. They are added to the current
    chunk until the next one would push it past ``max_words``; a paragraph
    longer than ``max_words`` on its own becomes a chunk by itself rather
    than being split. A document that fits within ``max_words`` is returned
    as a single chunk covering the whole text.

    Args:
        max_words: Soft upper bound on words per display chunk.

    Raises:
        InputError: If ``max_words`` is not a positive integer.
    """

    def __init__(self, max_words: int) -> None:
        self._max_words = validate_max_words(max_words)

    @property
    def max_words(self) -> int:
        return self._max_words

    def chunk(self, text: str) -> ChunkedDocument:
        """Split text into display chunks.

        Args:
            text: The document text.

        Returns:
            The chunked document. Empty or whitespace-only text has no chunks.
        """
        total = count_words(text)
        if total == 0:
            return ChunkedDocument(original_content=text)

        if total <= self._max_words:
            whole = DisplayChunk(
                index=1,
                content=text.strip(),
                word_count=total,
                start_position=0,
                end_position=len(text),
            )
            return ChunkedDocument(original_content=text, chunks=[whole], total_word_count=total)

        chunks: list[DisplayChunk] = []
        group: list[tuple[str, int, int]] = []
        group_words = 0

        for para in split_paragraphs(text):
            para_words = count_words(para[0])
            if group and group_words + para_words > self._max_words:
                chunks.append(self._display_chunk(len(chunks) + 1, group, group_words))
                group = []
                group_words = 0
            group.append(para)
            group_words += para_words

        if group:
            chunks.append(self._display_chunk(len(chunks) + 1, group, group_words))

        logger.debug(
            "Grouped %d words into %d display chunks (max_words=%d)",
            total,
            len(chunks),
            self._max_words,
        )
        return ChunkedDocument(original_content=text, chunks=chunks, total_word_count=total)

    @staticmethod
    def _display_chunk(
        index: int, group: list[tuple[str, int, int]], word_count: int
    ) -> DisplayChunk:
        return DisplayChunk(
            index=index,
            content="\n\n".join(para for para, _, _ in group),
            word_count=word_count,
            start_position=group[0][1],
            end_position=group[-1][2],
        )


def split_paragraphs(text: str) -> list[tuple[str, int, int]]:
    """Split text on blank lines.

    Returns:
        List of ``(paragraph, start, end)`` tuples for each non-blank
        paragraph, stripped, with its span in ``text``.
    """
    breaks = [(m.start(), m.end()) for m in PARAGRAPH_BREAK.finditer(text)]
    starts = [0] + [end for _, end in breaks]
    ends = [start for start, _ in breaks] + [len(text)]

    paragraphs: list[tuple[str, int, int]] = []
    for seg_start, seg_end in zip(starts, ends):
        segment = text[seg_start:seg_end]
        stripped = segment.strip()
        if not stripped:
            continue
        start = seg_start + len(segment) - len(segment.lstrip())
        paragraphs.append((stripped, start, start + len(stripped)))
    return paragraphs
