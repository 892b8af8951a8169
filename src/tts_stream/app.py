"""Application factory for the FastAPI service."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .errors import SpeechError
from .routers.tts import CORS_HEADERS, TEXT_REQUIRED
from .routers.tts import router as tts_router
from .services.audio_cache import AudioCache
from .services.tts import OpenAISpeechClient, StreamAssembler, TextChunker

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Configure logging based on LOG_LEVEL environment variable."""
    # Load .env file first to ensure LOG_FILE is available
    load_dotenv()

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handlers: list[logging.Handler] = []

    log_file = os.getenv("LOG_FILE")
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    # Always add console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True,  # Override any existing configuration
    )

    logging.getLogger("tts_stream").setLevel(log_level)

    logging.getLogger("uvicorn").setLevel(log_level)
    logging.getLogger("uvicorn.access").setLevel(log_level)
    logging.getLogger("uvicorn.error").setLevel(log_level)

    # Request bodies are transcripts; keep httpx quiet unless debugging
    logging.getLogger("httpx").setLevel(log_level)
    logging.getLogger("httpcore").setLevel(log_level)
    if log_level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


async def _speech_error_handler(request: Request, exc: SpeechError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
        headers=CORS_HEADERS,
    )


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    message = "Invalid request body"
    for error in exc.errors():
        loc = tuple(error.get("loc", ()))
        if "text" in loc or (loc == ("body",) and error.get("type") == "missing"):
            message = TEXT_REQUIRED
            break
    logger.info(f"Rejected speech request: {message}")
    return JSONResponse(status_code=400, content={"error": message}, headers=CORS_HEADERS)


def create_app() -> FastAPI:
    # Configure logging first thing
    _configure_logging()

    settings = get_settings()

    speech_client = OpenAISpeechClient(settings)
    chunker = TextChunker(settings.tts_max_chunk_size)
    assembler = StreamAssembler(speech_client, chunker)
    audio_cache = AudioCache(
        max_entries=settings.audio_cache_max_entries,
        ttl_seconds=settings.audio_cache_ttl_seconds,
    )

    if not settings.provider_configured:
        logger.warning("OPENAI_API_KEY is not set. Speech requests will fail until it is.")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            audio_cache.clear()
            try:
                await OpenAISpeechClient.close_clients()
            except Exception as exc:
                logging.warning("Error closing speech HTTP clients: %s", exc)

    app = FastAPI(
        title="TTS Stream",
        version="0.1.0",
        description="Long-form text-to-speech: chunked synthesis with ordered audio assembly.",
        lifespan=lifespan,
    )

    app.state.stream_assembler = assembler
    app.state.audio_cache = audio_cache

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    app.add_exception_handler(SpeechError, _speech_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]

    app.include_router(tts_router)

    @app.get("/health", tags=["health"])
    async def healthcheck() -> dict[str, object]:
        audio_cache.purge_expired()
        return {
            "status": "ok",
            "provider_configured": settings.provider_configured,
            "cache": audio_cache.stats(),
        }

    return app


__all__ = ["create_app"]
