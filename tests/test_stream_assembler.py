"""Tests for sequential segment synthesis and audio assembly."""

import anyio
import pytest

from tts_stream.errors import SpeechProviderError
from tts_stream.services.tts import (
    AssembledAudio,
    AssemblyState,
    AudioStream,
    StreamAssembler,
    TextChunker,
)

pytestmark = pytest.mark.anyio

SHORT = "Hello world."
LONG = "Hello world. This is a test of chunking."  # three segments at 20 chars


async def _drain(stream: AudioStream) -> bytes:
    return b"".join([chunk async for chunk in stream.chunks])


async def test_single_segment_uses_one_streaming_call(synthesizer_factory) -> None:
    synthesizer = synthesizer_factory()
    assembler = StreamAssembler(synthesizer, TextChunker(20))

    result = await assembler.assemble(SHORT, "sage", 1.0)

    assert isinstance(result, AudioStream)
    assert result.segment_count == 1
    assert synthesizer.total_calls == 1
    assert synthesizer.stream_calls[0].text == SHORT
    assert await _drain(result) == b"[stream-0][stream-1]"


async def test_multiple_segments_are_concatenated_in_order(synthesizer_factory) -> None:
    synthesizer = synthesizer_factory()
    assembler = StreamAssembler(synthesizer, TextChunker(20))

    result = await assembler.assemble(LONG, "nova", 1.25)

    assert isinstance(result, AssembledAudio)
    assert result.segment_count == 3
    assert result.data == b"<audio-1><audio-2><audio-3>"
    assert [call.text for call in synthesizer.calls] == [
        "Hello world.",
        "This is a test of",
        "chunking.",
    ]
    assert all(call.voice == "nova" and call.speed == 1.25 for call in synthesizer.calls)
    assert synthesizer.stream_calls == []


async def test_order_is_kept_when_calls_have_different_latency(synthesizer_factory) -> None:
    synthesizer = synthesizer_factory(delays={1: 0.03, 2: 0.0, 3: 0.01})
    assembler = StreamAssembler(synthesizer, TextChunker(20))

    result = await assembler.assemble(LONG, "sage")

    assert isinstance(result, AssembledAudio)
    assert result.data == b"<audio-1><audio-2><audio-3>"


async def test_assembled_length_matches_sum_of_buffers(synthesizer_factory) -> None:
    synthesizer = synthesizer_factory()
    assembler = StreamAssembler(synthesizer, TextChunker(20))

    result = await assembler.assemble(LONG, "sage")

    expected = sum(len(synthesizer_factory.marker(n)) for n in range(1, 4))
    assert len(result) == expected


async def test_failure_stops_remaining_segments(synthesizer_factory) -> None:
    synthesizer = synthesizer_factory(fail_on=2, fail_status=429)
    assembler = StreamAssembler(synthesizer, TextChunker(20))
    job = assembler.create_job(LONG, "sage", 1.0)

    with pytest.raises(SpeechProviderError) as exc_info:
        await job.run()

    assert exc_info.value.status_code == 429
    assert len(synthesizer.calls) == 2
    assert job.state is AssemblyState.FAILED
    assert job.error is exc_info.value
    assert job._buffers == []


async def test_single_segment_failure_propagates(synthesizer_factory) -> None:
    synthesizer = synthesizer_factory(fail_on=1, fail_status=401)
    job = StreamAssembler(synthesizer, TextChunker(100)).create_job(SHORT, "sage")

    with pytest.raises(SpeechProviderError):
        await job.run()

    assert job.state is AssemblyState.FAILED
    assert synthesizer.total_calls == 1


async def test_job_reaches_done_and_cannot_rerun(synthesizer_factory) -> None:
    job = StreamAssembler(synthesizer_factory(), TextChunker(20)).create_job(LONG, "sage")

    await job.run()

    assert job.state is AssemblyState.DONE
    assert job.state.is_terminal
    assert [segment.index for segment in job.segments] == [1, 2, 3]
    with pytest.raises(RuntimeError):
        await job.run()


async def test_empty_text_fails_without_calls(synthesizer_factory) -> None:
    synthesizer = synthesizer_factory()
    job = StreamAssembler(synthesizer, TextChunker(20)).create_job("", "sage")

    with pytest.raises(ValueError):
        await job.run()

    assert job.state is AssemblyState.FAILED
    assert synthesizer.total_calls == 0


async def test_jobs_do_not_share_state(synthesizer_factory) -> None:
    slow = synthesizer_factory(delays={1: 0.03, 2: 0.02, 3: 0.01})
    other = synthesizer_factory()
    first = StreamAssembler(slow, TextChunker(20)).create_job(LONG, "sage")
    second = StreamAssembler(other, TextChunker(20)).create_job(
        "Second job. Runs alongside.", "nova"
    )
    results: dict[str, object] = {}

    async def run(name, job) -> None:
        results[name] = await job.run()

    async with anyio.create_task_group() as tg:
        tg.start_soon(run, "first", first)
        tg.start_soon(run, "second", second)

    assert isinstance(results["first"], AssembledAudio)
    assert results["first"].data == b"<audio-1><audio-2><audio-3>"
    assert results["first"].segment_count == 3
    assert isinstance(results["second"], AssembledAudio)
    assert results["second"].data == b"<audio-1><audio-2>"
    assert [segment.text for segment in second.segments] == ["Second job.", "Runs alongside."]
    assert first.state is AssemblyState.DONE
    assert second.state is AssemblyState.DONE
    assert [call.voice for call in other.calls] == ["nova", "nova"]
    assert all(call.voice == "sage" for call in slow.calls)


async def test_concatenate_preserves_order_and_length() -> None:
    buffers = [b"abc", b"", b"defg", b"h"]

    joined = StreamAssembler.concatenate(buffers)

    assert joined == b"abcdefgh"
    assert StreamAssembler.concatenate([]) == b""
