"""Speech synthesis routes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import StreamingResponse

from ..config import Settings, get_settings
from ..errors import InvalidSpeechRequest, SpeechConfigurationError, SpeechError
from ..schemas.tts import (
    MAX_SPEED,
    MIN_SPEED,
    ChunkPreview,
    ChunkPreviewRequest,
    SegmentOut,
    SpeechRequest,
    VoiceList,
)
from ..services.audio_cache import AudioCache
from ..services.tts import AssembledAudio, StreamAssembler, TextChunker

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/tts", tags=["tts"])

TEXT_REQUIRED = "Text parameter is required"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


def get_stream_assembler(request: Request) -> StreamAssembler:
    assembler = getattr(request.app.state, "stream_assembler", None)
    if assembler is None:  # pragma: no cover - defensive
        raise RuntimeError("Stream assembler is not configured")
    return assembler


def get_audio_cache(request: Request) -> AudioCache:
    cache = getattr(request.app.state, "audio_cache", None)
    if cache is None:  # pragma: no cover - defensive
        raise RuntimeError("Audio cache is not configured")
    return cache


def _require_text(text: str | None) -> str:
    if not text or not text.strip():
        raise InvalidSpeechRequest(TEXT_REQUIRED)
    return text


def _resolve_voice(voice: str | None, settings: Settings) -> str:
    resolved = voice or settings.tts_default_voice
    if resolved not in settings.tts_voices:
        raise InvalidSpeechRequest(f"Unsupported voice: {resolved}")
    return resolved


def _resolve_speed(speed: float | None, settings: Settings) -> float:
    resolved = settings.tts_default_speed if speed is None else speed
    if not MIN_SPEED <= resolved <= MAX_SPEED:
        raise InvalidSpeechRequest(f"Speed must be between {MIN_SPEED} and {MAX_SPEED}")
    return resolved


def _audio_headers(
    settings: Settings, cache_status: str, segment_count: int | None = None
) -> dict[str, str]:
    headers = {
        "Cache-Control": f"public, max-age={settings.cache_control_max_age}",
        "X-Cache": cache_status,
    }
    if segment_count is not None:
        headers["X-Segment-Count"] = str(segment_count)
    return headers


@router.options("/stream", include_in_schema=False)
async def stream_speech_preflight() -> Response:
    return Response(content="ok", headers=CORS_HEADERS)


@router.post("/stream")
async def stream_speech(
    payload: SpeechRequest,
    settings: Settings = Depends(get_settings),
    assembler: StreamAssembler = Depends(get_stream_assembler),
    cache: AudioCache = Depends(get_audio_cache),
) -> Response:
    """Synthesize ``payload.text`` and return the audio.

    Short text is streamed straight from the provider. Longer text is
    split into segments that are synthesized in order and returned as one
    concatenated body.
    """
    text = _require_text(payload.text)
    if not settings.provider_configured:
        logger.error("OpenAI API key not configured")
        raise SpeechConfigurationError("OpenAI API key not configured")
    voice = _resolve_voice(payload.voice, settings)
    speed = _resolve_speed(payload.speed, settings)

    try:
        cache_key = cache.key_for(text, voice, speed, settings.tts_response_format)
        cached = cache.get(cache_key)
        if cached is not None:
            logger.info(f"TTS cache hit ({len(cached)} bytes)")
            return Response(
                content=cached,
                media_type=settings.audio_media_type,
                headers=_audio_headers(settings, "HIT"),
            )

        result = await assembler.assemble(text, voice, speed)

        if isinstance(result, AssembledAudio):
            cache.put(cache_key, result.data)
            return Response(
                content=result.data,
                media_type=settings.audio_media_type,
                headers=_audio_headers(settings, "MISS", result.segment_count),
            )

        return StreamingResponse(
            cache.capture(cache_key, result.chunks),
            media_type=settings.audio_media_type,
            headers=_audio_headers(settings, "MISS", result.segment_count),
        )
    except SpeechError:
        raise
    except Exception:
        logger.exception("TTS streaming error")
        raise SpeechError("Internal server error")


@router.post("/chunks", response_model=ChunkPreview)
async def preview_chunks(
    payload: ChunkPreviewRequest,
    assembler: StreamAssembler = Depends(get_stream_assembler),
) -> ChunkPreview:
    """Show how text would be segmented without calling the provider."""
    text = _require_text(payload.text)
    chunker: TextChunker = assembler.chunker
    segments = chunker.segments(text)
    return ChunkPreview(
        max_chunk_size=chunker.max_chunk_size,
        segments=[
            SegmentOut(index=segment.index, text=segment.text, length=segment.length)
            for segment in segments
        ],
    )


@router.get(
    "/voices",
    response_model=VoiceList,
    description=(
        "Voices accepted by POST /api/tts/stream. Requests naming any other "
        "voice are rejected locally with 400 before the provider is called. "
        "The list comes from TTS_VOICES; extend it when the configured "
        "TTS_MODEL supports more voices."
    ),
)
async def list_voices(settings: Settings = Depends(get_settings)) -> VoiceList:
    return VoiceList(voices=list(settings.tts_voices), default=settings.tts_default_voice)


__all__ = ["router", "get_audio_cache", "get_stream_assembler"]
