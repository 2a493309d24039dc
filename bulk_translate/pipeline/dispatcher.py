"""Bounded concurrent dispatch of chunk operations."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable, List, Set, TypeVar

from .chunker import Chunk

T = TypeVar("T")


async def dispatch(
    chunks: Iterable[Chunk],
    operation: Callable[[Chunk], Awaitable[T]],
    concurrency: int,
) -> List[T]:
    """Run ``operation`` over every chunk with at most ``concurrency`` in flight.

    A new chunk is admitted as soon as any running one finishes. Results are
    returned in completion order. If an operation raises, the rest of the
    in-flight operations are cancelled and the error propagates.
    """
    if concurrency < 1:
        raise ValueError(f"concurrency must be positive, got {concurrency}")

    queue = iter(chunks)
    exhausted = False
    pending: Set[asyncio.Future] = set()
    results: List[T] = []
    try:
        while True:
            while not exhausted and len(pending) < concurrency:
                chunk = next(queue, None)
                if chunk is None:
                    exhausted = True
                    break
                pending.add(asyncio.ensure_future(operation(chunk)))
            if not pending:
                break
            done, pending = await asyncio.wait(
                pending, return_when=asyncio.FIRST_COMPLETED
            )
            failed = [task for task in done if task.exception() is not None]
            if failed:
                raise failed[0].exception()
            results.extend(task.result() for task in done)
    except BaseException:
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        raise
    return results
