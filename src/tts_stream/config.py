"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, AnyHttpUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

# Available OpenAI TTS voices
OPENAI_VOICES = [
    "alloy",    # Neutral, balanced
    "ash",      # Warm
    "ballad",   # Soft
    "coral",    # Warm, friendly
    "echo",     # Neutral
    "fable",    # Expressive, British
    "nova",     # Warm, female
    "onyx",     # Deep, authoritative
    "sage",     # Calm
    "shimmer",  # Expressive, female
]

# Media types for the response formats the speech endpoint can return
AUDIO_MEDIA_TYPES = {
    "mp3": "audio/mpeg",
    "opus": "audio/ogg",
    "aac": "audio/aac",
    "flac": "audio/flac",
    "wav": "audio/wav",
    "pcm": "audio/pcm",
}


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    openai_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "openai_api_key"),
    )
    openai_base_url: AnyHttpUrl = Field(
        default_factory=lambda: AnyHttpUrl("https://api.openai.com/v1"),
        validation_alias=AliasChoices("OPENAI_BASE_URL", "openai_base_url"),
    )
    tts_model: str = Field(
        default="tts-1",
        validation_alias=AliasChoices("TTS_MODEL", "tts_model"),
    )
    tts_default_voice: str = Field(
        default="sage",
        validation_alias=AliasChoices("TTS_DEFAULT_VOICE", "tts_default_voice"),
    )
    tts_default_speed: float = Field(
        default=1.0,
        ge=0.25,
        le=4.0,
        validation_alias=AliasChoices("TTS_DEFAULT_SPEED", "tts_default_speed"),
    )
    tts_response_format: str = Field(
        default="mp3",
        validation_alias=AliasChoices("TTS_RESPONSE_FORMAT", "tts_response_format"),
    )
    # The provider rejects inputs above 4096 characters
    tts_max_chunk_size: int = Field(
        default=4000,
        ge=1,
        validation_alias=AliasChoices("TTS_MAX_CHUNK_SIZE", "tts_max_chunk_size"),
    )
    tts_voices: list[str] = Field(
        default_factory=lambda: list(OPENAI_VOICES),
        validation_alias=AliasChoices("TTS_VOICES", "tts_voices"),
        description="Voices accepted by the speech endpoint.",
    )
    request_timeout: float = Field(
        default=60.0,
        ge=1,
        validation_alias=AliasChoices("TTS_TIMEOUT", "request_timeout"),
    )
    cache_control_max_age: int = Field(
        default=3600,
        ge=0,
        validation_alias=AliasChoices(
            "TTS_CACHE_CONTROL_MAX_AGE",
            "cache_control_max_age",
        ),
    )
    audio_cache_max_entries: int = Field(
        default=128,
        ge=0,
        validation_alias=AliasChoices(
            "TTS_CACHE_MAX_ENTRIES",
            "audio_cache_max_entries",
        ),
    )
    audio_cache_ttl_seconds: int = Field(
        default=7 * 24 * 3600,
        ge=1,
        validation_alias=AliasChoices(
            "TTS_CACHE_TTL_SECONDS",
            "audio_cache_ttl_seconds",
        ),
    )
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        validation_alias=AliasChoices("CORS_ALLOW_ORIGINS", "cors_allow_origins"),
    )

    @property
    def provider_configured(self) -> bool:
        return bool(
            self.openai_api_key and self.openai_api_key.get_secret_value()
        )

    @property
    def audio_media_type(self) -> str:
        return AUDIO_MEDIA_TYPES.get(
            self.tts_response_format, "application/octet-stream"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


__all__ = ["AUDIO_MEDIA_TYPES", "OPENAI_VOICES", "Settings", "get_settings"]
