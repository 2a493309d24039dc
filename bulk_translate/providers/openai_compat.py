"""OpenAI-compatible chat/completions provider."""

from __future__ import annotations

from typing import Any, Dict, List
from urllib.parse import urlparse

import requests

from .base import BaseProvider, ProviderError, ProviderRequest, ProviderResponse
from .http import (
    ApiKeyCycle,
    merge_headers,
    missing_content_error,
    parse_temperature,
    parse_timeout_seconds,
    post_json,
)


LABEL = "OpenAI-compatible"


def _normalize_base_url(base_url: str) -> str:
    base_url = base_url.strip().rstrip("/")
    if not base_url:
        return base_url
    if base_url.endswith("/v1/chat/completions"):
        return base_url.rsplit("/chat/completions", 1)[0]

    path = (urlparse(base_url).path or "").lower()
    if not path or path == "/":
        return f"{base_url}/v1"
    return base_url


def _build_url(base_url: str) -> str:
    base_url = base_url.strip().rstrip("/")
    if not base_url:
        return ""
    if base_url.endswith("/chat/completions"):
        return base_url
    return f"{_normalize_base_url(base_url)}/chat/completions"


class OpenAICompatProvider(BaseProvider):
    def __init__(self, profile: Dict[str, Any]):
        super().__init__(profile)
        self._api_keys = ApiKeyCycle(profile.get("api_key"))
        self._session = requests.Session()

    def build_request(
        self, messages: List[Dict[str, str]], settings: Dict[str, Any]
    ) -> ProviderRequest:
        model = str(settings.get("model") or self.profile.get("model") or "").strip()
        if not model:
            raise ProviderError(
                "OpenAI-compatible provider requires model",
                error_type="invalid_config",
            )

        temperature = parse_temperature(
            settings.get("temperature")
            if settings.get("temperature") is not None
            else self.profile.get("temperature")
        )
        extra: Dict[str, Any] = {"response_format": {"type": "json_object"}}
        for source in (self.profile.get("params"), settings.get("params")):
            if isinstance(source, dict):
                extra.update(source)
        headers = merge_headers(self.profile.get("headers"), settings.get("headers"))

        return ProviderRequest(
            model=model,
            messages=messages,
            temperature=temperature,
            extra=extra,
            headers=headers or None,
            timeout=parse_timeout_seconds(
                settings.get("timeout") or self.profile.get("timeout")
            ),
            request_id=str(settings.get("request_id") or "").strip() or None,
        )

    def send(self, request: ProviderRequest) -> ProviderResponse:
        base_url = str(self.profile.get("base_url") or "").strip()
        if not base_url:
            raise ProviderError(
                "OpenAI-compatible provider requires base_url",
                error_type="invalid_config",
                request_id=request.request_id,
            )

        url = _build_url(base_url)
        api_key = self._api_keys.pick()
        headers: Dict[str, str] = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        if request.headers:
            headers.update(request.headers)

        payload: Dict[str, Any] = {
            "model": request.model,
            "messages": request.messages,
        }
        if request.extra:
            payload.update(request.extra)
        if request.temperature is not None:
            payload["temperature"] = request.temperature

        data, status_code, duration_ms = post_json(
            self._session,
            url,
            headers,
            payload,
            timeout=request.timeout,
            request_id=request.request_id,
            label=LABEL,
        )

        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not isinstance(text, str):
            raise missing_content_error(
                LABEL,
                data,
                status_code=status_code,
                request_id=request.request_id,
                duration_ms=duration_ms,
                url=url,
            )
        usage = data.get("usage") if isinstance(data, dict) else None
        return ProviderResponse(
            text=text,
            raw=data,
            usage=usage if isinstance(usage, dict) else {},
            status_code=status_code,
            duration_ms=duration_ms,
            url=url,
        )
