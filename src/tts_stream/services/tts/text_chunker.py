"""
Text Chunker for long-form TTS synthesis.

Speech providers cap the number of characters accepted per request, so a
lesson transcript has to be cut into pieces before synthesis. The chunker
prefers natural boundaries, in order: paragraphs, sentences, words.

Algorithm:
    text ──▶ paragraphs (blank lines) ──▶ sentences (after . ! ?)
         ──▶ greedy fill into a running buffer ──▶ trimmed chunks

Sentences are packed into the running buffer until the next one would
overflow it. A sentence that cannot fit even on its own is packed word by
word instead. Paragraph breaks are kept as ``"\\n\\n"`` inside the buffer
rather than forcing a new chunk, so a chunk may span a paragraph boundary.

Usage:
    chunker = TextChunker(max_chunk_size=4000)
    for segment in chunker.segments(transcript):
        ...
"""

import re
from typing import List

from .models import Segment

PARAGRAPH_BREAK = "\n\n"


class TextChunker:
    """
    Split text into ordered chunks no longer than ``max_chunk_size``.

    The only chunk that may exceed the limit is one holding a single word
    longer than the limit; such words are never cut.

    Attributes:
        max_chunk_size: Maximum characters per chunk
    """

    PARAGRAPH_PATTERN = re.compile(r"\n\s*\n")
    SENTENCE_PATTERN = re.compile(r"(?<=[.!?])\s+")

    def __init__(self, max_chunk_size: int = 4000):
        if isinstance(max_chunk_size, bool) or not isinstance(max_chunk_size, int):
            raise TypeError("max_chunk_size must be an integer")
        if max_chunk_size < 1:
            raise ValueError("max_chunk_size must be positive")
        self.max_chunk_size = max_chunk_size

    def split(self, text: str) -> List[str]:
        """
        Split ``text`` into chunks.

        Text that already fits is returned as a single, untouched chunk.

        Args:
            text: Full text to split

        Returns:
            Ordered list of non-empty, stripped chunks (empty for empty text)
        """
        if not text:
            return []
        if len(text) <= self.max_chunk_size:
            return [text]

        limit = self.max_chunk_size
        chunks: List[str] = []
        current = ""

        for paragraph in self.PARAGRAPH_PATTERN.split(text):
            for sentence in self.SENTENCE_PATTERN.split(paragraph):
                # The separator is counted even when the buffer is empty
                if len(current) + len(sentence) + 1 > limit:
                    if current.strip():
                        chunks.append(current.strip())
                        current = ""

                    if len(sentence) > limit:
                        current = self._fill_words(sentence, chunks) or current
                    else:
                        current = sentence
                else:
                    current += (" " if current else "") + sentence

            if current.strip():
                current += PARAGRAPH_BREAK

        if current.strip():
            chunks.append(current.strip())

        return [chunk for chunk in chunks if chunk]

    def _fill_words(self, sentence: str, chunks: List[str]) -> str:
        """Pack the words of an over-long sentence, returning the tail."""
        word_chunk = ""
        for word in sentence.split(" "):
            if len(word_chunk) + len(word) + 1 > self.max_chunk_size:
                if word_chunk.strip():
                    chunks.append(word_chunk.strip())
                word_chunk = word
            else:
                word_chunk += (" " if word_chunk else "") + word

        return word_chunk if word_chunk.strip() else ""

    def segments(self, text: str) -> List[Segment]:
        """Split ``text`` and number the chunks from 1."""
        return [
            Segment(index=position, text=chunk)
            for position, chunk in enumerate(self.split(text), start=1)
        ]


def split_text_into_chunks(text: str, max_chunk_size: int) -> List[str]:
    """Functional shortcut for ``TextChunker(max_chunk_size).split(text)``."""
    return TextChunker(max_chunk_size).split(text)


__all__ = ["PARAGRAPH_BREAK", "TextChunker", "split_text_into_chunks"]
