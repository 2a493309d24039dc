"""Gemini generateContent provider."""

from __future__ import annotations

from typing import Any, Dict, List, Tuple

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


DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
LABEL = "Gemini"


def _build_url(base_url: str, model: str) -> str:
    base_url = (base_url or DEFAULT_BASE_URL).strip().rstrip("/")
    if model.startswith("models/"):
        model = model[len("models/") :]
    return f"{base_url}/models/{model}:generateContent"


def _to_contents(messages: List[Dict[str, str]]) -> Tuple[str, List[Dict[str, Any]]]:
    system_parts: List[str] = []
    contents: List[Dict[str, Any]] = []
    for message in messages:
        role = str(message.get("role") or "user")
        text = str(message.get("content") or "")
        if role == "system":
            system_parts.append(text)
            continue
        contents.append(
            {
                "role": "model" if role == "assistant" else "user",
                "parts": [{"text": text}],
            }
        )
    return "\n\n".join(part for part in system_parts if part), contents


def _extract_text(data: Any) -> str | None:
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(parts, list):
        return None
    texts = [str(part.get("text") or "") for part in parts if isinstance(part, dict)]
    if not texts:
        return None
    return "".join(texts)


class GeminiProvider(BaseProvider):
    def __init__(self, profile: Dict[str, Any]):
        super().__init__(profile)
        self._api_keys = ApiKeyCycle(profile.get("api_key"))
        self._session = requests.Session()

    def build_request(
        self, messages: List[Dict[str, str]], settings: Dict[str, Any]
    ) -> ProviderRequest:
        model = str(settings.get("model") or self.profile.get("model") or "").strip()
        if not model:
            raise ProviderError("Gemini provider requires model", error_type="invalid_config")

        temperature = parse_temperature(
            settings.get("temperature")
            if settings.get("temperature") is not None
            else self.profile.get("temperature")
        )
        extra: Dict[str, Any] = {}
        for source in (self.profile.get("params"), settings.get("params")):
            if isinstance(source, dict):
                extra.update(source)
        headers = merge_headers(self.profile.get("headers"), settings.get("headers"))

        return ProviderRequest(
            model=model,
            messages=messages,
            temperature=temperature,
            extra=extra or None,
            headers=headers or None,
            timeout=parse_timeout_seconds(
                settings.get("timeout") or self.profile.get("timeout")
            ),
            request_id=str(settings.get("request_id") or "").strip() or None,
        )

    def send(self, request: ProviderRequest) -> ProviderResponse:
        api_key = self._api_keys.pick()
        if not api_key:
            raise ProviderError(
                "Gemini provider requires api_key",
                error_type="invalid_config",
                request_id=request.request_id,
            )

        url = _build_url(str(self.profile.get("base_url") or ""), request.model)
        headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "x-goog-api-key": api_key,
        }
        if request.headers:
            headers.update(request.headers)

        system_text, contents = _to_contents(request.messages)
        generation_config: Dict[str, Any] = {"responseMimeType": "application/json"}
        if request.temperature is not None:
            generation_config["temperature"] = request.temperature
        payload: Dict[str, Any] = {
            "contents": contents,
            "generationConfig": generation_config,
        }
        if system_text:
            payload["systemInstruction"] = {"parts": [{"text": system_text}]}
        if request.extra:
            generation_config.update(request.extra.get("generationConfig") or {})
            payload.update(
                {k: v for k, v in request.extra.items() if k != "generationConfig"}
            )

        data, status_code, duration_ms = post_json(
            self._session,
            url,
            headers,
            payload,
            timeout=request.timeout,
            request_id=request.request_id,
            label=LABEL,
        )

        text = _extract_text(data)
        if text is None:
            raise missing_content_error(
                LABEL,
                data,
                status_code=status_code,
                request_id=request.request_id,
                duration_ms=duration_ms,
                url=url,
            )
        usage = data.get("usageMetadata") if isinstance(data, dict) else None
        return ProviderResponse(
            text=text,
            raw=data,
            usage=usage if isinstance(usage, dict) else {},
            status_code=status_code,
            duration_ms=duration_ms,
            url=url,
        )
