"""Sequential synthesis of text segments into one audio payload."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Union

from .models import (
    AssembledAudio,
    AssemblyState,
    AudioStream,
    Segment,
    SpeechSynthesizer,
    SynthesisRequest,
)
from .text_chunker import TextChunker

logger = logging.getLogger(__name__)

AssemblyResult = Union[AudioStream, AssembledAudio]


class AssemblyJob:
    """
    One synthesis run for one transcript.

    A job owns its segments, its collected buffers and its state, so
    concurrent requests never share anything mutable.

    States:
        IDLE → CHUNKING → SINGLE_CALL | MULTI_CALL_LOOP → ASSEMBLING → DONE
        Any synthesizer failure moves the job straight to FAILED.
    """

    def __init__(
        self,
        synthesizer: SpeechSynthesizer,
        chunker: TextChunker,
        text: str,
        voice: str,
        speed: float,
    ):
        self._synthesizer = synthesizer
        self._chunker = chunker
        self.text = text
        self.voice = voice
        self.speed = speed
        self.state = AssemblyState.IDLE
        self.segments: List[Segment] = []
        self._buffers: List[bytes] = []
        self.error: Optional[Exception] = None

    def _transition(self, state: AssemblyState) -> None:
        logger.debug("Assembly %s -> %s", self.state.value, state.value)
        self.state = state

    def _request_for(self, segment: Segment) -> SynthesisRequest:
        return SynthesisRequest(text=segment.text, voice=self.voice, speed=self.speed)

    async def run(self) -> AssemblyResult:
        """Chunk the text, synthesize every segment and return the audio."""
        if self.state is not AssemblyState.IDLE:
            raise RuntimeError(f"Assembly job already {self.state.value}")

        self._transition(AssemblyState.CHUNKING)
        self.segments = self._chunker.segments(self.text)
        if not self.segments:
            self._transition(AssemblyState.FAILED)
            raise ValueError("Nothing to synthesize: text is empty")

        logger.info(
            f"Synthesizing {len(self.text)} chars in {len(self.segments)} segment(s) "
            f"(voice={self.voice}, speed={self.speed})"
        )

        try:
            if len(self.segments) == 1:
                return await self._run_single()
            return await self._run_multi()
        except Exception as exc:
            failed_in = self.state
            self._buffers.clear()
            self.error = exc
            self._transition(AssemblyState.FAILED)
            logger.error(
                f"Speech assembly failed during {failed_in.value} "
                f"after {len(self.segments)} segment(s) planned: {exc}"
            )
            raise

    async def _run_single(self) -> AudioStream:
        self._transition(AssemblyState.SINGLE_CALL)
        segment = self.segments[0]
        chunks = await self._synthesizer.open_stream(self._request_for(segment))
        self._transition(AssemblyState.DONE)
        return AudioStream(segment=segment, chunks=chunks)

    async def _run_multi(self) -> AssembledAudio:
        self._transition(AssemblyState.MULTI_CALL_LOOP)
        for segment in self.segments:
            logger.debug(
                f"Segment {segment.index}/{len(self.segments)} ({segment.length} chars)"
            )
            audio = await self._synthesizer.synthesize(self._request_for(segment))
            self._buffers.append(audio)

        self._transition(AssemblyState.ASSEMBLING)
        data = StreamAssembler.concatenate(self._buffers)
        self._buffers.clear()
        self._transition(AssemblyState.DONE)
        logger.info(f"Assembled {len(data)} bytes from {len(self.segments)} segments")
        return AssembledAudio(data=data, segment_count=len(self.segments))


class StreamAssembler:
    """Drive chunking and synthesis for long-form speech requests."""

    def __init__(self, synthesizer: SpeechSynthesizer, chunker: TextChunker):
        self.synthesizer = synthesizer
        self.chunker = chunker

    def create_job(self, text: str, voice: str, speed: float = 1.0) -> AssemblyJob:
        return AssemblyJob(self.synthesizer, self.chunker, text, voice, speed)

    async def assemble(self, text: str, voice: str, speed: float = 1.0) -> AssemblyResult:
        """Return an `AudioStream` for one segment, `AssembledAudio` otherwise."""
        return await self.create_job(text, voice, speed).run()

    @staticmethod
    def concatenate(buffers: Iterable[bytes]) -> bytes:
        """Join buffers in order using a single preallocated bytearray."""
        parts = list(buffers)
        total = sum(len(part) for part in parts)
        output = bytearray(total)
        offset = 0
        for part in parts:
            output[offset:offset + len(part)] = part
            offset += len(part)
        return bytes(output)


__all__ = ["AssemblyJob", "AssemblyResult", "StreamAssembler"]
