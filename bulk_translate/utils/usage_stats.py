"""Per-request usage statistics for bulk translation."""

from __future__ import annotations

from dataclasses import asdict, dataclass
import logging
from typing import Any, Dict, Optional
import uuid


def generate_request_id() -> str:
    """Return a request id suitable for correlating request lifecycle logs."""
    return uuid.uuid4().hex


def _is_sensitive_header_key(key: str) -> bool:
    normalized = str(key).strip().lower().replace("_", "-")
    return any(
        token in normalized
        for token in ("authorization", "api-key", "token", "secret", "password")
    )


def sanitize_headers(headers: Any) -> Dict[str, str] | None:
    """Mask sensitive header values before they reach any log."""
    if not isinstance(headers, dict):
        return None
    sanitized: Dict[str, str] = {}
    for key, value in headers.items():
        header_name = str(key).strip()
        if not header_name:
            continue
        if _is_sensitive_header_key(header_name):
            sanitized[header_name] = "[REDACTED]"
        else:
            sanitized[header_name] = str(value)
    return sanitized or None


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass
class UsageStats:
    """Opaque usage metadata that travels with a chunk result.

    The pipeline only logs it; nothing is summed across requests.
    """

    request_id: str = ""
    model: str = ""
    prompt_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    duration_ms: Optional[int] = None
    status_code: Optional[int] = None

    @classmethod
    def from_usage(
        cls,
        usage: Dict[str, Any] | None,
        *,
        request_id: str = "",
        model: str = "",
        duration_ms: Optional[int] = None,
        status_code: Optional[int] = None,
    ) -> "UsageStats":
        usage = usage if isinstance(usage, dict) else {}
        # Gemini reports camelCase counters, OpenAI-compatible APIs snake_case.
        prompt_tokens = _as_int(
            usage.get("promptTokenCount", usage.get("prompt_tokens"))
        )
        output_tokens = _as_int(
            usage.get("candidatesTokenCount", usage.get("completion_tokens"))
        )
        total_tokens = _as_int(usage.get("totalTokenCount", usage.get("total_tokens")))
        if total_tokens is None and prompt_tokens is not None and output_tokens is not None:
            total_tokens = prompt_tokens + output_tokens
        return cls(
            request_id=request_id,
            model=model,
            prompt_tokens=prompt_tokens,
            output_tokens=output_tokens,
            total_tokens=total_tokens,
            duration_ms=duration_ms,
            status_code=status_code,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def log(self, logger: logging.Logger, sequence_index: int | None = None) -> None:
        prefix = f"[chunk {sequence_index}] " if sequence_index is not None else ""
        logger.debug(
            "%susage model=%s prompt=%s output=%s total=%s duration_ms=%s request_id=%s",
            prefix,
            self.model or "-",
            self.prompt_tokens,
            self.output_tokens,
            self.total_tokens,
            self.duration_ms,
            self.request_id or "-",
        )
