"""Configuration for bulk translation runs.

A run is described by a ``TranslateConfig``. The CLI builds one from YAML
profiles (see ``registry.profile_store``), environment variables and command
line overrides, in that increasing order of precedence.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Any, Dict, Mapping, Optional


DEFAULT_PROVIDER = "gemini"
DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_CHUNK_SIZE = 50
DEFAULT_CONCURRENCY = 4
DEFAULT_MAX_RETRY_DEPTH = 5
DEFAULT_RETRY_DELAY = 1.0

API_KEY_ENV = {
    "gemini": "GEMINI_API_KEY",
    "openai_compat": "OPENAI_API_KEY",
}
MODEL_ENV = "BULK_TRANSLATE_MODEL"
SUPPORTED_PROVIDERS = tuple(API_KEY_ENV)


class ConfigError(ValueError):
    """Raised when a run configuration is incomplete or out of range."""


def _coerce_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc


def _coerce_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc


@dataclass
class TranslateConfig:
    target_language: str
    model: str = DEFAULT_MODEL
    api_key: str = field(default="", repr=False)
    chunk_size: int = DEFAULT_CHUNK_SIZE
    concurrency: int = DEFAULT_CONCURRENCY
    max_retry_depth: int = DEFAULT_MAX_RETRY_DEPTH
    request_retries: int = 0
    retry_delay: float = DEFAULT_RETRY_DELAY
    provider: str = DEFAULT_PROVIDER
    base_url: str = ""
    timeout: Optional[int] = None
    temperature: Optional[float] = None
    prompt_template: Optional[str] = None

    def validate(self) -> "TranslateConfig":
        if self.provider not in SUPPORTED_PROVIDERS:
            raise ConfigError(
                f"provider must be one of {', '.join(SUPPORTED_PROVIDERS)}, got {self.provider!r}"
            )
        if not str(self.target_language or "").strip():
            raise ConfigError("target_language is required")
        if not str(self.model or "").strip():
            raise ConfigError("model is required")
        if self.chunk_size < 1:
            raise ConfigError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.concurrency < 1:
            raise ConfigError(f"concurrency must be positive, got {self.concurrency}")
        if self.max_retry_depth < 0:
            raise ConfigError(
                f"max_retry_depth must not be negative, got {self.max_retry_depth}"
            )
        if self.request_retries < 0:
            raise ConfigError(
                f"request_retries must not be negative, got {self.request_retries}"
            )
        if self.retry_delay < 0:
            raise ConfigError(f"retry_delay must not be negative, got {self.retry_delay}")
        return self

    def provider_profile(self) -> Dict[str, Any]:
        profile: Dict[str, Any] = {
            "type": self.provider,
            "api_key": self.api_key,
            "model": self.model,
        }
        if self.base_url:
            profile["base_url"] = self.base_url
        if self.timeout is not None:
            profile["timeout"] = self.timeout
        if self.temperature is not None:
            profile["temperature"] = self.temperature
        return profile

    def request_settings(self) -> Dict[str, Any]:
        settings: Dict[str, Any] = {"model": self.model}
        if self.temperature is not None:
            settings["temperature"] = self.temperature
        if self.timeout is not None:
            settings["timeout"] = self.timeout
        return settings


def _join_api_keys(value: Any) -> str:
    # key lists stay rotatable: ApiKeyCycle splits on newlines
    if isinstance(value, (list, tuple)):
        return "\n".join(str(item).strip() for item in value if str(item).strip())
    return str(value or "")


def _pick(key: str, *sources: Optional[Mapping[str, Any]]) -> Any:
    for source in sources:
        if not source:
            continue
        value = source.get(key)
        if value is not None and value != "":
            return value
    return None


def resolve_config(
    pipeline_profile: Optional[Mapping[str, Any]] = None,
    api_profile: Optional[Mapping[str, Any]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> TranslateConfig:
    """Merge profile data, environment and overrides into a validated config."""
    env = os.environ if env is None else env
    layers = (overrides, pipeline_profile, api_profile)

    provider = str(_pick("provider", overrides) or _pick("type", api_profile) or DEFAULT_PROVIDER)
    provider = provider.strip().lower()
    api_key_env = API_KEY_ENV.get(provider, "")

    api_key = _pick("api_key", *layers)
    if api_key is None and api_key_env:
        api_key = env.get(api_key_env)
    model = _pick("model", *layers) or env.get(MODEL_ENV) or DEFAULT_MODEL

    def _int_option(key: str, default: int) -> int:
        value = _pick(key, *layers)
        return default if value is None else _coerce_int(key, value)

    timeout = _pick("timeout", *layers)
    temperature = _pick("temperature", *layers)
    retry_delay = _pick("retry_delay", *layers)
    config = TranslateConfig(
        target_language=str(_pick("target_language", *layers) or ""),
        model=str(model),
        api_key=_join_api_keys(api_key),
        chunk_size=_int_option("chunk_size", DEFAULT_CHUNK_SIZE),
        concurrency=_int_option("concurrency", DEFAULT_CONCURRENCY),
        max_retry_depth=_int_option("max_retry_depth", DEFAULT_MAX_RETRY_DEPTH),
        request_retries=_int_option("request_retries", 0),
        retry_delay=(
            DEFAULT_RETRY_DELAY
            if retry_delay is None
            else _coerce_float("retry_delay", retry_delay)
        ),
        provider=provider,
        base_url=str(_pick("base_url", *layers) or ""),
        timeout=None if timeout is None else _coerce_int("timeout", timeout),
        temperature=None if temperature is None else _coerce_float("temperature", temperature),
        prompt_template=_pick("prompt", overrides, pipeline_profile),
    )
    return config.validate()
