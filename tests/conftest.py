import pathlib
import sys
from typing import AsyncIterator

import anyio
import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from tts_stream.errors import SpeechProviderError  # noqa: E402
from tts_stream.services.tts import SynthesisRequest  # noqa: E402


class FakeSynthesizer:
    """Synthesizer stub returning a distinct marker per call."""

    def __init__(
        self,
        *,
        fail_on: int | None = None,
        fail_status: int = 429,
        delays: dict[int, float] | None = None,
        stream_parts: int = 2,
    ) -> None:
        self.fail_on = fail_on
        self.fail_status = fail_status
        self.delays = delays or {}
        self.stream_parts = stream_parts
        self.calls: list[SynthesisRequest] = []
        self.stream_calls: list[SynthesisRequest] = []

    @staticmethod
    def marker(call_number: int) -> bytes:
        return f"<audio-{call_number}>".encode()

    async def synthesize(self, request: SynthesisRequest) -> bytes:
        self.calls.append(request)
        call_number = len(self.calls)
        delay = self.delays.get(call_number)
        if delay:
            await anyio.sleep(delay)
        if self.fail_on == call_number:
            raise SpeechProviderError(self.fail_status, "Rate limit reached")
        return self.marker(call_number)

    async def open_stream(self, request: SynthesisRequest) -> AsyncIterator[bytes]:
        self.stream_calls.append(request)
        if self.fail_on == 1:
            raise SpeechProviderError(self.fail_status, "Rate limit reached")

        async def _chunks() -> AsyncIterator[bytes]:
            for part in range(self.stream_parts):
                yield f"[stream-{part}]".encode()

        return _chunks()

    @property
    def total_calls(self) -> int:
        return len(self.calls) + len(self.stream_calls)


@pytest.fixture
def synthesizer_factory() -> type[FakeSynthesizer]:
    return FakeSynthesizer
