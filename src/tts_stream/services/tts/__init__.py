"""
TTS (Text-to-Speech) Services Package.

This package turns long-form text into a single audio payload:

- text_chunker: Splits text into provider-sized segments
- stream_assembler: Synthesizes segments in order and joins the audio
- openai_speech: HTTP client for OpenAI's speech endpoint

Architecture Overview:

    ┌────────────┐     ┌─────────────┐     ┌────────────────┐     ┌────────────┐
    │ Transcript │────▶│ TextChunker │────▶│ StreamAssembler│────▶│  Response  │
    └────────────┘     └─────────────┘     └────────────────┘     └────────────┘
                                                   │  ▲
                                                   ▼  │
                                           ┌──────────────────┐
                                           │ OpenAISpeechClient│
                                           └──────────────────┘

One segment is streamed straight through from the provider. Several
segments are synthesized one after another, each buffered in full, and
concatenated in order once the last one arrives. The first failure aborts
the whole request.
"""

from .models import (
    AssembledAudio,
    AssemblyState,
    AudioStream,
    Segment,
    SpeechSynthesizer,
    SynthesisRequest,
)
from .openai_speech import OpenAISpeechClient
from .stream_assembler import AssemblyJob, StreamAssembler
from .text_chunker import TextChunker, split_text_into_chunks

__all__ = [
    "AssembledAudio",
    "AssemblyJob",
    "AssemblyState",
    "AudioStream",
    "OpenAISpeechClient",
    "Segment",
    "SpeechSynthesizer",
    "StreamAssembler",
    "SynthesisRequest",
    "TextChunker",
    "split_text_into_chunks",
]
