"""Shared HTTP plumbing for the requests-based providers."""

from __future__ import annotations

from typing import Any, Dict, List, Tuple
import itertools
import json
import threading
import time

import requests

from bulk_translate.utils.usage_stats import sanitize_headers

from .base import ProviderError


DEFAULT_TIMEOUT_SECONDS = 60
MAX_ERROR_TEXT_CHARS = 4000


def parse_timeout_seconds(value: Any) -> int | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = int(float(text))
    except (ValueError, TypeError):
        return None
    return parsed if parsed > 0 else None


def parse_temperature(value: Any) -> float | None:
    if value is None or str(value).strip() == "":
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None


def normalize_keys(raw: Any) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, list):
        return [str(item).strip() for item in raw if str(item).strip()]
    if isinstance(raw, str):
        return [line.strip() for line in raw.splitlines() if line.strip()]
    return [str(raw).strip()] if str(raw).strip() else []


class ApiKeyCycle:
    """Round-robin over one or more API keys; safe to share across threads."""

    def __init__(self, raw: Any):
        self.keys = normalize_keys(raw)
        self._cycle = itertools.cycle(self.keys) if len(self.keys) > 1 else None
        self._lock = threading.Lock()

    def pick(self) -> str:
        if not self.keys:
            return ""
        if self._cycle is None:
            return self.keys[0]
        with self._lock:
            return next(self._cycle)


def merge_headers(*sources: Any) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    for source in sources:
        if isinstance(source, dict):
            headers.update({str(k): str(v) for k, v in source.items()})
    return headers


def post_json(
    session: requests.Session,
    url: str,
    headers: Dict[str, str],
    payload: Dict[str, Any],
    *,
    timeout: int | None,
    request_id: str | None,
    label: str,
) -> Tuple[Any, int, int]:
    """POST ``payload`` and return ``(data, status_code, duration_ms)``.

    Every transport, HTTP, or decoding failure surfaces as ``ProviderError``.
    """
    timeout_seconds = timeout or DEFAULT_TIMEOUT_SECONDS
    safe_request_headers = sanitize_headers(headers)

    start = time.perf_counter()
    try:
        resp = session.post(
            url,
            headers=headers,
            data=json.dumps(payload, ensure_ascii=False).encode("utf-8"),
            timeout=timeout_seconds,
        )
    except requests.Timeout as exc:
        duration_ms = int((time.perf_counter() - start) * 1000)
        raise ProviderError(
            f"{label} request timeout: {exc}",
            error_type="timeout",
            request_id=request_id,
            duration_ms=duration_ms,
            url=url,
            request_headers=safe_request_headers,
        ) from exc
    except requests.RequestException as exc:
        duration_ms = int((time.perf_counter() - start) * 1000)
        raise ProviderError(
            f"{label} request failed: {exc}",
            error_type="network_error",
            request_id=request_id,
            duration_ms=duration_ms,
            url=url,
            request_headers=safe_request_headers,
        ) from exc

    duration_ms = int((time.perf_counter() - start) * 1000)

    if resp.status_code >= 400:
        body_preview = (resp.text or "").strip()[:MAX_ERROR_TEXT_CHARS]
        raise ProviderError(
            f"{label} HTTP {resp.status_code}: {body_preview}",
            error_type="http_error",
            status_code=resp.status_code,
            request_id=request_id,
            duration_ms=duration_ms,
            url=url,
            response_text=body_preview,
            request_headers=safe_request_headers,
        )

    try:
        data = resp.json()
    except ValueError as exc:
        body_preview = (resp.text or "").strip()[:MAX_ERROR_TEXT_CHARS]
        raise ProviderError(
            f"{label} response is not JSON",
            error_type="invalid_json",
            status_code=resp.status_code,
            request_id=request_id,
            duration_ms=duration_ms,
            url=url,
            response_text=body_preview,
            request_headers=safe_request_headers,
        ) from exc

    return data, resp.status_code, duration_ms


def missing_content_error(
    label: str,
    data: Any,
    *,
    status_code: int,
    request_id: str | None,
    duration_ms: int,
    url: str,
) -> ProviderError:
    body_preview = json.dumps(data, ensure_ascii=False, default=str)[:MAX_ERROR_TEXT_CHARS]
    return ProviderError(
        f"{label} response missing content",
        error_type="invalid_response",
        status_code=status_code,
        request_id=request_id,
        duration_ms=duration_ms,
        url=url,
        response_text=body_preview,
    )
