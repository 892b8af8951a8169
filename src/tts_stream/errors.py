"""Error types surfaced by the speech endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import status


class SpeechError(Exception):
    """Base error rendered to clients as ``{"error": message}``."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidSpeechRequest(SpeechError):
    status_code = status.HTTP_400_BAD_REQUEST


class SpeechConfigurationError(SpeechError):
    """Raised when the provider credential is missing."""


class SpeechProviderError(SpeechError):
    """Wrap a non-success response from the synthesis provider."""

    def __init__(self, status_code: int, detail: Any, provider: str = "OpenAI"):
        super().__init__(
            f"{provider} API error: {status_code} - {detail}",
            status_code=status_code,
        )
        self.detail = detail
        self.provider = provider


__all__ = [
    "InvalidSpeechRequest",
    "SpeechConfigurationError",
    "SpeechError",
    "SpeechProviderError",
]
