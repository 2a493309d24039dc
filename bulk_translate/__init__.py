"""Bounded-concurrency line-by-line batch translation."""

from bulk_translate.config import ConfigError, TranslateConfig, resolve_config
from bulk_translate.pipeline.chunker import Chunk, chunk_lines
from bulk_translate.pipeline.client import ChunkResult, TranslationClient
from bulk_translate.pipeline.dispatcher import dispatch
from bulk_translate.pipeline.runner import (
    BulkTranslateError,
    BulkTranslator,
    RetryContext,
    RetryExhaustedError,
    translate_lines,
)

__all__ = [
    "BulkTranslateError",
    "BulkTranslator",
    "Chunk",
    "ChunkResult",
    "ConfigError",
    "RetryContext",
    "RetryExhaustedError",
    "TranslateConfig",
    "TranslationClient",
    "chunk_lines",
    "dispatch",
    "resolve_config",
    "translate_lines",
]
