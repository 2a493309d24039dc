"""Provider registry for bulk translation."""

from __future__ import annotations

from typing import Any, Dict, Type

from .base import BaseProvider, ProviderError
from .gemini import GeminiProvider
from .openai_compat import OpenAICompatProvider


PROVIDER_TYPES: Dict[str, Type[BaseProvider]] = {
    "gemini": GeminiProvider,
    "openai_compat": OpenAICompatProvider,
}


def create_provider(profile: Dict[str, Any]) -> BaseProvider:
    provider_type = str(profile.get("type") or profile.get("provider") or "gemini").strip().lower()
    provider_cls = PROVIDER_TYPES.get(provider_type)
    if provider_cls is None:
        raise ProviderError(f"Unsupported provider type: {provider_type}")
    return provider_cls(profile)

