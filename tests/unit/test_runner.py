import asyncio
import logging

import pytest

from bulk_translate.config import TranslateConfig
from bulk_translate.pipeline.client import ChunkResult
from bulk_translate.pipeline.runner import (
    BulkTranslator,
    RetryContext,
    RetryExhaustedError,
    RunStats,
    plan_round,
    reassemble,
    translate_lines,
)
from bulk_translate.utils.log_protocol import TRACE


class FakeTranslate:
    """Translates ``x`` to ``T:x``; ``drop`` decides when to lose the last line."""

    def __init__(self, drop=None, delay=None):
        self.drop = drop or (lambda chunk, call_no: False)
        self.delay = delay or (lambda chunk: 0)
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, chunk):
        call_no = len(self.calls)
        self.calls.append(chunk)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay(chunk))
        finally:
            self.in_flight -= 1
        translated = [f"T:{line}" for line in chunk.lines]
        if self.drop(chunk, call_no):
            translated = translated[:-1]
        return ChunkResult(
            sequence_index=chunk.sequence_index,
            original_lines=chunk.lines,
            translated_lines=translated,
            offset=chunk.offset,
        )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_translate_lines_output_matches_input():
    lines = [f"line {i}" for i in range(17)]
    fake = FakeTranslate()
    result = await translate_lines(lines, fake, chunk_size=4, concurrency=3)
    assert result == [f"T:{line}" for line in lines]
    assert len(fake.calls) == 5


@pytest.mark.unit
@pytest.mark.asyncio
async def test_translate_lines_empty_input_makes_no_requests():
    fake = FakeTranslate()
    assert await translate_lines([], fake, chunk_size=2, concurrency=2) == []
    assert fake.calls == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_translate_lines_order_independent_of_completion_order():
    lines = [str(i) for i in range(12)]
    # later chunks finish first
    fake = FakeTranslate(delay=lambda chunk: 0.002 * (12 - chunk.sequence_index))
    result = await translate_lines(lines, fake, chunk_size=1, concurrency=12)
    assert result == [f"T:{line}" for line in lines]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_translate_lines_one_short_chunk_retries_once_line_by_line():
    lines = ["a", "b", "c", "d", "e", "f"]
    fake = FakeTranslate(drop=lambda chunk, call_no: chunk.lines == ("a", "b", "c"))
    stats = RunStats()
    result = await translate_lines(lines, fake, chunk_size=3, concurrency=2, stats=stats)
    assert result == [f"T:{line}" for line in lines]
    retried = fake.calls[2:]
    assert [c.lines for c in retried] == [("a",), ("b",), ("c",)]
    assert stats.rounds == 2
    assert stats.retried_chunks == 1
    assert stats.requests == 5


@pytest.mark.unit
@pytest.mark.asyncio
async def test_translate_lines_five_lines_chunk_two_scenario():
    lines = ["a", "b", "c", "d", "e"]
    fake = FakeTranslate(drop=lambda chunk, call_no: chunk.sequence_index == 2 and len(chunk.lines) == 2)
    result = await translate_lines(lines, fake, chunk_size=2, concurrency=2)

    first_round = fake.calls[:3]
    assert [c.lines for c in first_round] == [("a", "b"), ("c", "d"), ("e",)]
    retry_round = fake.calls[3:]
    assert [(c.sequence_index, c.lines, c.offset) for c in retry_round] == [
        (1, ("c",), 2),
        (2, ("d",), 3),
    ]
    assert result == ["T:a", "T:b", "T:c", "T:d", "T:e"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_translate_lines_retry_fragments_recursively():
    lines = ["a", "b", "c", "d"]
    # depth 0 chunk loses a line, then "c" alone fails twice more
    fails = {"c": 2}

    def drop(chunk, call_no):
        if len(chunk.lines) > 1:
            return chunk.lines == ("c", "d")
        if fails.get(chunk.lines[0], 0) > 0:
            fails[chunk.lines[0]] -= 1
            return True
        return False

    stats = RunStats()
    fake = FakeTranslate(drop=drop)
    result = await translate_lines(lines, fake, chunk_size=2, concurrency=2, stats=stats)
    assert result == ["T:a", "T:b", "T:c", "T:d"]
    assert stats.max_depth_reached == 3
    assert [c.lines for c in fake.calls[-1:]] == [("c",)]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_translate_lines_persistent_mismatch_is_fatal():
    fake = FakeTranslate(drop=lambda chunk, call_no: True)
    with pytest.raises(RetryExhaustedError) as excinfo:
        await translate_lines(["only"], fake, chunk_size=1, concurrency=1, max_depth=5)
    assert excinfo.value.depth == 5
    assert excinfo.value.original_lines == ["only"]
    assert excinfo.value.translated_lines == []
    assert len(fake.calls) == 6


@pytest.mark.unit
@pytest.mark.asyncio
async def test_translate_lines_zero_depth_fails_on_first_mismatch():
    fake = FakeTranslate(drop=lambda chunk, call_no: chunk.sequence_index == 1)
    with pytest.raises(RetryExhaustedError):
        await translate_lines(["a", "b"], fake, chunk_size=1, concurrency=2, max_depth=0)
    assert len(fake.calls) == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_translate_lines_respects_concurrency_cap():
    fake = FakeTranslate(delay=lambda chunk: 0.001 * (chunk.sequence_index % 3 + 1))
    lines = [str(i) for i in range(30)]
    await translate_lines(lines, fake, chunk_size=2, concurrency=4)
    assert fake.max_in_flight == 4


@pytest.mark.unit
@pytest.mark.asyncio
async def test_translate_lines_rejects_invalid_sizes():
    with pytest.raises(ValueError):
        await translate_lines(["a"], FakeTranslate(), chunk_size=0, concurrency=1)
    with pytest.raises(ValueError):
        await translate_lines(["a"], FakeTranslate(), chunk_size=1, concurrency=0)


@pytest.mark.unit
def test_retry_context_next_is_a_copy():
    ctx = RetryContext(depth=0, max_depth=2)
    nxt = ctx.next()
    assert (ctx.depth, nxt.depth) == (0, 1)
    assert not nxt.exhausted
    assert nxt.next().exhausted


@pytest.mark.unit
def test_plan_round_numbers_across_segments():
    chunks = plan_round([(2, ("c", "d")), (7, ("h",))], 1)
    assert [(c.sequence_index, c.lines, c.offset) for c in chunks] == [
        (1, ("c",), 2),
        (2, ("d",), 3),
        (3, ("h",), 7),
    ]


@pytest.mark.unit
def test_reassemble_sorts_and_logs_mismatch(caplog):
    output = [None] * 4
    results = [
        ChunkResult(2, ("c", "d"), ["T:c"], offset=2),
        ChunkResult(1, ("a", "b"), ["T:a", "T:b"], offset=0),
    ]
    with caplog.at_level(TRACE):
        pending = reassemble(results, output, RetryContext(depth=1, max_depth=5))
    assert output == ["T:a", "T:b", None, None]
    assert pending == [(2, ("c", "d"))]
    messages = [record.getMessage() for record in caplog.records]
    assert "original: c" in messages
    assert "translated: T:c" in messages
    assert "translated line length error 1/2" in messages
    assert any(r.levelno == logging.ERROR for r in caplog.records)


class FakeClient:
    def __init__(self):
        self.fake = FakeTranslate()

    async def translate_chunk(self, chunk):
        return await self.fake(chunk)


@pytest.mark.unit
def test_bulk_translator_translate_sync_uses_config():
    config = TranslateConfig(target_language="Vietnamese", chunk_size=2, concurrency=2)
    client = FakeClient()
    translator = BulkTranslator(config, client=client)
    assert translator.translate_sync(["a", "b", "c"]) == ["T:a", "T:b", "T:c"]
    assert [c.lines for c in client.fake.calls] == [("a", "b"), ("c",)]
    assert translator.last_stats.requests == 2
    assert translator.last_stats.source_lines == 3
