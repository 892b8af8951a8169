"""Value objects passed between the chunker, the assembler and providers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Protocol


@dataclass(frozen=True, slots=True)
class Segment:
    """A bounded slice of the input text, numbered from 1."""

    index: int
    text: str

    @property
    def length(self) -> int:
        return len(self.text)


@dataclass(frozen=True, slots=True)
class SynthesisRequest:
    """Text to synthesize paired with the voice parameters."""

    text: str
    voice: str
    speed: float = 1.0


@dataclass(slots=True)
class AudioStream:
    """Single-segment result streamed straight from the provider."""

    segment: Segment
    chunks: AsyncIterator[bytes]

    @property
    def segment_count(self) -> int:
        return 1


@dataclass(frozen=True, slots=True)
class AssembledAudio:
    """Multi-segment result concatenated in segment order."""

    data: bytes
    segment_count: int

    def __len__(self) -> int:
        return len(self.data)


class AssemblyState(str, Enum):
    IDLE = "idle"
    CHUNKING = "chunking"
    SINGLE_CALL = "single_call"
    MULTI_CALL_LOOP = "multi_call_loop"
    ASSEMBLING = "assembling"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AssemblyState.DONE, AssemblyState.FAILED)


class SpeechSynthesizer(Protocol):
    """Anything able to turn a `SynthesisRequest` into audio bytes."""

    async def synthesize(self, request: SynthesisRequest) -> bytes:
        """Return the complete audio payload for one request."""
        ...

    async def open_stream(self, request: SynthesisRequest) -> AsyncIterator[bytes]:
        """Start a request and return an iterator over its audio body.

        Implementations must raise before returning when the provider
        rejects the request, so callers never stream a partial error.
        """
        ...


__all__ = [
    "AssembledAudio",
    "AssemblyState",
    "AudioStream",
    "Segment",
    "SpeechSynthesizer",
    "SynthesisRequest",
]
