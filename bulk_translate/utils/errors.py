"""Provider error classification."""

from __future__ import annotations

import re


_RATE_LIMIT_RE = re.compile(r"(?:\b429\b|rate\s*limit|rate_limited|resource[_\s]exhausted)", re.I)
_SERVER_ERROR_RE = re.compile(r"\b5\d{2}\b")
_TIMEOUT_RE = re.compile(r"(?:timeout|timed\s*out|network)", re.I)

RETRYABLE_KINDS = frozenset({"rate_limited", "server_error", "network"})


def classify_error(message: str | None) -> str:
    if not message:
        return "unknown"
    text = str(message)
    if _RATE_LIMIT_RE.search(text):
        return "rate_limited"
    if _SERVER_ERROR_RE.search(text) or "5xx" in text:
        return "server_error"
    if _TIMEOUT_RE.search(text):
        return "network"
    return "other"


def classify_provider_error(exc: BaseException) -> str:
    """Classify a ProviderError using its structured fields before its message."""
    error_type = getattr(exc, "error_type", None)
    status_code = getattr(exc, "status_code", None)
    if error_type in {"timeout", "network_error"}:
        return "network"
    if isinstance(status_code, int):
        if status_code == 429:
            return "rate_limited"
        if 500 <= status_code < 600:
            return "server_error"
        if 400 <= status_code < 500:
            return "other"
    return classify_error(str(exc))


def is_retryable(exc: BaseException) -> bool:
    return classify_provider_error(exc) in RETRYABLE_KINDS
