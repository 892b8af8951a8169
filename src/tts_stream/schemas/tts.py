"""Request and response schemas for the speech endpoints."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

MIN_SPEED = 0.25
MAX_SPEED = 4.0


class SpeechRequest(BaseModel):
    """Body of ``POST /api/tts/stream``.

    Every field is optional at the schema level; the router decides how a
    missing ``text`` is reported.
    """

    text: Optional[str] = None
    voice: Optional[str] = Field(
        default=None,
        description="Voice name. Falls back to the configured default voice.",
    )
    speed: Optional[float] = Field(
        default=None,
        description=f"Playback speed between {MIN_SPEED} and {MAX_SPEED}.",
    )


class ChunkPreviewRequest(BaseModel):
    text: Optional[str] = None


class SegmentOut(BaseModel):
    index: int
    text: str
    length: int


class ChunkPreview(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    max_chunk_size: int = Field(serialization_alias="maxChunkSize")
    segments: List[SegmentOut]


class VoiceList(BaseModel):
    voices: List[str] = Field(
        description="Allowlist from TTS_VOICES; other voices get a local 400.",
    )
    default: str


__all__ = [
    "ChunkPreview",
    "ChunkPreviewRequest",
    "MAX_SPEED",
    "MIN_SPEED",
    "SegmentOut",
    "SpeechRequest",
    "VoiceList",
]
