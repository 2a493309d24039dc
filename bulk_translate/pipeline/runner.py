"""Bulk translation runner: chunk, dispatch, reassemble, retry."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
import logging
import time
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from bulk_translate.config import DEFAULT_MAX_RETRY_DEPTH, TranslateConfig
from bulk_translate.providers.base import BaseProvider
from bulk_translate.utils.log_protocol import TRACE, emit_final, emit_retry

from .chunker import Chunk, chunk_lines
from .client import ChunkResult, TranslationClient
from .dispatcher import dispatch

logger = logging.getLogger(__name__)

TranslateChunk = Callable[[Chunk], Awaitable[ChunkResult]]
# (offset into the original input, lines still to translate)
Segment = Tuple[int, Tuple[str, ...]]


class BulkTranslateError(RuntimeError):
    """Base class for failures the pipeline cannot recover from locally."""


class RetryExhaustedError(BulkTranslateError):
    """A chunk kept returning the wrong number of lines at the retry ceiling."""

    def __init__(
        self,
        *,
        depth: int,
        sequence_index: int,
        offset: int,
        original_lines: Sequence[str],
        translated_lines: Sequence[str],
    ) -> None:
        self.depth = depth
        self.sequence_index = sequence_index
        self.offset = offset
        self.original_lines = list(original_lines)
        self.translated_lines = list(translated_lines)
        super().__init__(
            "retry max error:"
            f" depth={depth}"
            f" offset={offset}"
            f" translated={len(self.translated_lines)}/{len(self.original_lines)}"
        )


@dataclass(frozen=True)
class RetryContext:
    depth: int = 0
    max_depth: int = DEFAULT_MAX_RETRY_DEPTH

    @property
    def exhausted(self) -> bool:
        return self.depth >= self.max_depth

    def next(self) -> "RetryContext":
        return replace(self, depth=self.depth + 1)


@dataclass
class RunStats:
    source_lines: int = 0
    requests: int = 0
    rounds: int = 0
    retried_chunks: int = 0
    max_depth_reached: int = 0
    elapsed: float = 0.0


def plan_round(segments: Sequence[Segment], chunk_size: int) -> List[Chunk]:
    """Chunk every pending segment, numbering chunks across the whole round."""
    chunks: List[Chunk] = []
    for offset, lines in segments:
        chunks.extend(
            chunk_lines(lines, chunk_size, offset=offset, start_index=len(chunks) + 1)
        )
    return chunks


def reassemble(
    results: Sequence[ChunkResult],
    output: List[Optional[str]],
    retry: RetryContext,
) -> List[Segment]:
    """Place matched results into ``output`` and return the segments to retry.

    Results are handled in sequence_index order. A mismatch at the retry
    ceiling raises ``RetryExhaustedError``.
    """
    mismatched: List[Segment] = []
    for result in sorted(results, key=lambda item: item.sequence_index):
        result.usage_stats.log(logger, result.sequence_index)
        if not result.mismatched:
            end = result.offset + len(result.translated_lines)
            output[result.offset : end] = result.translated_lines
            continue

        for line in result.original_lines:
            logger.log(TRACE, "original: %s", line)
        for line in result.translated_lines:
            logger.log(TRACE, "translated: %s", line)
        logger.error("retry depth: %d", retry.depth)
        logger.error(
            "translated line length error %d/%d",
            len(result.translated_lines),
            len(result.original_lines),
        )
        if retry.exhausted:
            raise RetryExhaustedError(
                depth=retry.depth,
                sequence_index=result.sequence_index,
                offset=result.offset,
                original_lines=result.original_lines,
                translated_lines=result.translated_lines,
            )
        emit_retry(
            result.sequence_index,
            retry.depth + 1,
            src_lines=len(result.original_lines),
            dst_lines=len(result.translated_lines),
        )
        mismatched.append((result.offset, tuple(result.original_lines)))
    return mismatched


async def translate_lines(
    lines: Sequence[str],
    translate_chunk: TranslateChunk,
    *,
    chunk_size: int,
    concurrency: int,
    max_depth: int = DEFAULT_MAX_RETRY_DEPTH,
    stats: Optional[RunStats] = None,
) -> List[str]:
    """Translate ``lines`` and return the translations in input order.

    The first round uses ``chunk_size``. Every chunk whose line count comes
    back wrong is re-sent in the next round one line per request, until the
    counts match or ``max_depth`` retry rounds have failed.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if concurrency < 1:
        raise ValueError(f"concurrency must be positive, got {concurrency}")
    stats = stats if stats is not None else RunStats()
    stats.source_lines = len(lines)
    logger.debug("line_length:%d", len(lines))
    if not lines:
        return []

    output: List[Optional[str]] = [None] * len(lines)
    retry = RetryContext(depth=0, max_depth=max_depth)
    segments: List[Segment] = [(0, tuple(lines))]
    round_chunk_size = chunk_size
    while segments:
        chunks = plan_round(segments, round_chunk_size)
        logger.info(
            "dispatching %d chunk(s) at depth %d (chunk_size=%d, concurrency=%d)",
            len(chunks),
            retry.depth,
            round_chunk_size,
            concurrency,
        )
        stats.rounds += 1
        stats.requests += len(chunks)
        stats.max_depth_reached = retry.depth
        results = await dispatch(chunks, translate_chunk, concurrency)
        segments = reassemble(results, output, retry)
        if segments:
            stats.retried_chunks += len(segments)
            retry = retry.next()
            round_chunk_size = 1

    missing = [idx for idx, line in enumerate(output) if line is None]
    if missing:
        raise BulkTranslateError(f"untranslated positions left after reassembly: {missing[:10]}")
    return [line for line in output if line is not None]


class BulkTranslator:
    def __init__(
        self,
        config: TranslateConfig,
        provider: Optional[BaseProvider] = None,
        client: Optional[TranslationClient] = None,
    ):
        self.config = config.validate()
        self.client = client or TranslationClient.from_config(config, provider)
        self.last_stats: Optional[RunStats] = None

    async def translate(self, lines: Sequence[str]) -> List[str]:
        stats = RunStats()
        self.last_stats = stats
        start = time.perf_counter()
        try:
            result = await translate_lines(
                list(lines),
                self.client.translate_chunk,
                chunk_size=self.config.chunk_size,
                concurrency=self.config.concurrency,
                max_depth=self.config.max_retry_depth,
                stats=stats,
            )
        finally:
            stats.elapsed = time.perf_counter() - start
        logger.info(
            "translated %d line(s) in %.1fs: %d request(s), %d round(s), %d retried chunk(s)",
            stats.source_lines,
            stats.elapsed,
            stats.requests,
            stats.rounds,
            stats.retried_chunks,
        )
        emit_final(
            total_time=stats.elapsed,
            source_lines=stats.source_lines,
            output_lines=len(result),
            total_requests=stats.requests,
            total_retries=stats.retried_chunks,
            max_depth_reached=stats.max_depth_reached,
        )
        return result

    def translate_sync(self, lines: Sequence[str]) -> List[str]:
        return asyncio.run(self.translate(lines))
