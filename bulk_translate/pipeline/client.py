"""Translation client: one chunk in, one ChunkResult out."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import Any, Dict, List, Optional, Tuple

from bulk_translate.config import TranslateConfig
from bulk_translate.parsers.base import BaseParser, ParserError
from bulk_translate.parsers.paragraphs import ParagraphJsonParser
from bulk_translate.prompts.builder import build_messages
from bulk_translate.providers.base import BaseProvider, ProviderError, ProviderRequest, ProviderResponse
from bulk_translate.providers.registry import create_provider
from bulk_translate.utils.errors import classify_provider_error, is_retryable
from bulk_translate.utils.usage_stats import UsageStats, generate_request_id

from .chunker import Chunk

logger = logging.getLogger(__name__)


@dataclass
class ChunkResult:
    sequence_index: int
    original_lines: Tuple[str, ...]
    translated_lines: List[str]
    usage_stats: UsageStats = field(default_factory=UsageStats)
    offset: int = 0

    @property
    def mismatched(self) -> bool:
        return len(self.translated_lines) != len(self.original_lines)


class TranslationClient:
    def __init__(
        self,
        provider: BaseProvider,
        *,
        target_language: str,
        settings: Optional[Dict[str, Any]] = None,
        prompt_template: Optional[str] = None,
        parser: Optional[BaseParser] = None,
        request_retries: int = 0,
        retry_delay: float = 1.0,
    ):
        self.provider = provider
        self.target_language = target_language
        self.settings = dict(settings or {})
        self.prompt_template = prompt_template
        self.parser = parser or ParagraphJsonParser()
        self.request_retries = max(0, int(request_retries))
        self.retry_delay = max(0.0, float(retry_delay))

    @classmethod
    def from_config(
        cls, config: TranslateConfig, provider: Optional[BaseProvider] = None
    ) -> "TranslationClient":
        return cls(
            provider or create_provider(config.provider_profile()),
            target_language=config.target_language,
            settings=config.request_settings(),
            prompt_template=config.prompt_template,
            request_retries=config.request_retries,
            retry_delay=config.retry_delay,
        )

    async def translate_chunk(self, chunk: Chunk) -> ChunkResult:
        messages = build_messages(
            chunk.lines, self.target_language, template=self.prompt_template
        )
        request_id = generate_request_id()
        request = self.provider.build_request(
            messages, {**self.settings, "request_id": request_id}
        )
        logger.debug(
            "[chunk %d] request lines=%d request_id=%s",
            chunk.sequence_index,
            len(chunk.lines),
            request_id,
        )
        response = await self._send(request, chunk.sequence_index)
        stats = UsageStats.from_usage(
            response.usage,
            request_id=request_id,
            model=request.model,
            duration_ms=response.duration_ms,
            status_code=response.status_code,
        )

        try:
            parsed = self.parser.parse(response.text)
        except ParserError as exc:
            # An empty result forces a line-count mismatch, so the retry path
            # treats unparseable output like any other miscount.
            logger.error(
                "[chunk %d] JSON parse error (%s): %s",
                chunk.sequence_index,
                exc,
                (response.text or "").strip(),
            )
            translated: List[str] = []
        else:
            translated = parsed.lines

        return ChunkResult(
            sequence_index=chunk.sequence_index,
            original_lines=chunk.lines,
            translated_lines=translated,
            usage_stats=stats,
            offset=chunk.offset,
        )

    async def _send(self, request: ProviderRequest, sequence_index: int) -> ProviderResponse:
        attempt = 0
        while True:
            try:
                return await asyncio.to_thread(self.provider.send, request)
            except ProviderError as exc:
                if attempt >= self.request_retries or not is_retryable(exc):
                    raise
                attempt += 1
                delay = self.retry_delay * attempt
                logger.warning(
                    "[chunk %d] provider error (%s), resend %d/%d in %.1fs: %s",
                    sequence_index,
                    classify_provider_error(exc),
                    attempt,
                    self.request_retries,
                    delay,
                    exc,
                )
                await asyncio.sleep(delay)
