"""
Text Chunking

Splits cleaned document text into bounded windows for strict-extraction
prompting. Windows are contiguous, non-overlapping and in document order, so
joining the chunk texts reproduces the input exactly.
"""

from dataclasses import dataclass

from medibrief.config import DEFAULT_CHUNK_SIZE
from medibrief.logging_config import debug_log


@dataclass(frozen=True)
class TextChunk:
    """
    One window of the source text.

    Attributes:
        index: Ordinal position (0-based)
        start: Offset of the first character in the source text
        end: Offset one past the last character
        text: source[start:end]
    """
    index: int
    start: int
    end: int
    text: str

    @property
    def number(self) -> int:
        """1-based position, for display."""
        return self.index + 1

    def __len__(self) -> int:
        return self.end - self.start


def chunk_text(text: str, max_chunk_size: int = DEFAULT_CHUNK_SIZE) -> list[TextChunk]:
    """
    Partition text into fixed-size windows of at most max_chunk_size characters.

    Args:
        text: Cleaned document text
        max_chunk_size: Maximum characters per chunk

    Returns:
        ceil(len(text) / max_chunk_size) chunks; [] for empty text

    Raises:
        ValueError: If max_chunk_size is not positive
    """
    if max_chunk_size < 1:
        raise ValueError(f"max_chunk_size must be positive, got {max_chunk_size}")
    if not text:
        return []

    chunks = [
        TextChunk(index=index, start=start, end=min(start + max_chunk_size, len(text)),
                  text=text[start:start + max_chunk_size])
        for index, start in enumerate(range(0, len(text), max_chunk_size))
    ]

    debug_log(f"[CHUNK] {len(text)} chars -> {len(chunks)} chunks of <= {max_chunk_size}")
    return chunks


def reassemble(chunks: list[TextChunk]) -> str:
    """Join chunk texts in ordinal order."""
    return ''.join(chunk.text for chunk in sorted(chunks, key=lambda c: c.index))
