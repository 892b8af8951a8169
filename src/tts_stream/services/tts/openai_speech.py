"""OpenAI speech endpoint client."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Optional

import httpx

from ...config import Settings
from ...errors import SpeechConfigurationError, SpeechProviderError
from .models import SynthesisRequest

logger = logging.getLogger(__name__)


class OpenAISpeechClient:
    """
    Synthesize speech through OpenAI's ``/audio/speech`` endpoint.

    Uses a pooled httpx.AsyncClient keyed by base URL and timeout so that
    consecutive segment requests reuse connections. A client may also be
    injected directly, which is how tests supply a mock transport.
    """

    provider = "OpenAI"

    _client_lock: asyncio.Lock = asyncio.Lock()
    _client_pool: dict[tuple[str, float], httpx.AsyncClient] = {}

    def __init__(
        self,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings
        self._http_client = http_client

    @classmethod
    async def close_clients(cls) -> None:
        """Close all pooled HTTP clients. Call on app shutdown."""
        async with cls._client_lock:
            clients = list(cls._client_pool.values())
            cls._client_pool.clear()
        for client in clients:
            await client.aclose()
        if clients:
            logger.info(f"Closed {len(clients)} speech HTTP client(s)")

    def _client_key(self) -> tuple[str, float]:
        return (self._speech_url, float(self._settings.request_timeout))

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client

        key = self._client_key()
        client = self.__class__._client_pool.get(key)
        if client is not None:
            return client

        async with self.__class__._client_lock:
            client = self.__class__._client_pool.get(key)
            if client is None:
                timeout = httpx.Timeout(self._settings.request_timeout, connect=10.0)
                limits = httpx.Limits(
                    max_connections=20,
                    max_keepalive_connections=10,
                )
                client = httpx.AsyncClient(
                    timeout=timeout,
                    limits=limits,
                    http2=True,
                )
                self.__class__._client_pool[key] = client
                logger.info("Created pooled httpx.AsyncClient for speech synthesis")
        return client

    @property
    def _speech_url(self) -> str:
        return f"{str(self._settings.openai_base_url).rstrip('/')}/audio/speech"

    @property
    def _headers(self) -> dict[str, str]:
        api_key = self._settings.openai_api_key
        if api_key is None or not api_key.get_secret_value():
            raise SpeechConfigurationError(f"{self.provider} API key not configured")
        return {
            "Authorization": f"Bearer {api_key.get_secret_value()}",
            "Content-Type": "application/json",
        }

    def _payload(self, request: SynthesisRequest) -> dict[str, Any]:
        return {
            "model": self._settings.tts_model,
            "input": request.text,
            "voice": request.voice,
            "response_format": self._settings.tts_response_format,
            "speed": request.speed,
        }

    async def synthesize(self, request: SynthesisRequest) -> bytes:
        """Return the full audio body for ``request``."""
        headers = self._headers
        client = await self._get_http_client()
        response = await client.post(
            self._speech_url,
            headers=headers,
            json=self._payload(request),
        )
        if response.status_code >= 400:
            raise self._provider_error(response.status_code, response.content)

        audio = response.content
        logger.info(
            f"{self.provider} TTS synthesized {len(audio)} bytes for text: {request.text[:50]}..."
        )
        return audio

    async def open_stream(self, request: SynthesisRequest) -> AsyncIterator[bytes]:
        """Send ``request`` and return an iterator over the streamed body.

        The status is checked before returning; the response is closed when
        the iterator is exhausted or closed early.
        """
        headers = self._headers
        client = await self._get_http_client()
        http_request = client.build_request(
            "POST",
            self._speech_url,
            headers=headers,
            json=self._payload(request),
        )
        response = await client.send(http_request, stream=True)
        if response.status_code >= 400:
            try:
                body = await response.aread()
            finally:
                await response.aclose()
            raise self._provider_error(response.status_code, body)

        async def _stream() -> AsyncIterator[bytes]:
            streamed = 0
            try:
                async for chunk in response.aiter_bytes():
                    if chunk:
                        streamed += len(chunk)
                        yield chunk
            finally:
                await response.aclose()
                logger.info(f"{self.provider} TTS streamed {streamed} bytes")

        return _stream()

    def _provider_error(self, status_code: int, body: bytes) -> SpeechProviderError:
        detail = self._extract_error_detail(body)
        logger.error(f"{self.provider} TTS request failed ({status_code}): {detail}")
        return SpeechProviderError(status_code, detail, provider=self.provider)

    @staticmethod
    def _extract_error_detail(body: bytes) -> str:
        text = body.decode("utf-8", errors="replace").strip()
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            return text
        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if isinstance(error, str):
                return error
        return text


__all__ = ["OpenAISpeechClient"]
