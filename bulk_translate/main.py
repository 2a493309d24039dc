"""bulk-translate entrypoint."""

from __future__ import annotations

import argparse
import logging
import os
import re
import sys
from typing import Any, Dict, List, Optional, Tuple

import yaml

from bulk_translate.config import ConfigError, TranslateConfig, resolve_config
from bulk_translate.pipeline.runner import BulkTranslateError, BulkTranslator
from bulk_translate.providers.base import ProviderError
from bulk_translate.providers.registry import create_provider
from bulk_translate.registry.profile_store import ProfileStore
from bulk_translate.utils.log_protocol import emit_error, set_events_enabled, setup_logging

logger = logging.getLogger("bulk_translate")

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Translate a text file line by line with an LLM")
    parser.add_argument("--file", required=True, help="Input file path (UTF-8, one paragraph per line)")
    parser.add_argument("--output", help="Custom output path")
    parser.add_argument("--profiles-dir", help="Base directory for YAML profiles")
    parser.add_argument("--pipeline", help="Pipeline profile id or file name")
    parser.add_argument("--api", help="API profile id (defaults to the pipeline's provider)")
    parser.add_argument("--language", help="Target language, e.g. Vietnamese")
    parser.add_argument("--model", help="Model identifier")
    parser.add_argument("--api-key", dest="api_key", help="API key (prefer the env variable)")
    parser.add_argument("--provider-type", dest="provider_type", help="gemini or openai_compat")
    parser.add_argument("--base-url", dest="base_url", help="Provider base URL")
    parser.add_argument("--chunk-size", dest="chunk_size", type=int, help="Lines per request")
    parser.add_argument("--concurrency", type=int, help="Max requests in flight")
    parser.add_argument("--max-retry-depth", dest="max_retry_depth", type=int,
                        help="Retry rounds allowed for line-count mismatches")
    parser.add_argument("--request-retries", dest="request_retries", type=int,
                        help="Resends for rate-limit/5xx/network provider errors (default 0)")
    parser.add_argument("--timeout", type=int, help="HTTP timeout in seconds")
    parser.add_argument("--log-level", dest="log_level", default="INFO",
                        help="TRACE, DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--json-events", dest="json_events", action="store_true",
                        help="Emit JSON_* events on stdout")
    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides = {
        "target_language": args.language,
        "model": args.model,
        "api_key": args.api_key,
        "provider": args.provider_type,
        "base_url": args.base_url,
        "chunk_size": args.chunk_size,
        "concurrency": args.concurrency,
        "max_retry_depth": args.max_retry_depth,
        "request_retries": args.request_retries,
        "timeout": args.timeout,
    }
    return {key: value for key, value in overrides.items() if value is not None}


def load_profiles(
    args: argparse.Namespace,
) -> Tuple[Optional[Dict[str, Any]], Optional[Dict[str, Any]]]:
    if not args.profiles_dir:
        if args.pipeline or args.api:
            raise ConfigError("--pipeline/--api require --profiles-dir")
        return None, None
    store = ProfileStore(args.profiles_dir)
    pipeline_profile = store.load_profile("pipeline", args.pipeline) if args.pipeline else None
    api_ref = args.api or (pipeline_profile or {}).get("provider")
    api_profile = store.load_profile("api", str(api_ref)) if api_ref else None
    return pipeline_profile, api_profile


def default_output_path(input_path: str, language: str) -> str:
    stem, ext = os.path.splitext(input_path)
    suffix = re.sub(r"[^\w.-]+", "_", language.strip()) or "translated"
    return f"{stem}_{suffix}{ext or '.txt'}"


def read_lines(path: str) -> List[str]:
    with open(path, "r", encoding="utf-8") as f:
        return f.read().splitlines()


def write_lines(path: str, lines: List[str]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))
        if lines:
            f.write("\n")


def run(config: TranslateConfig, input_path: str, output_path: str,
        api_profile: Optional[Dict[str, Any]] = None) -> int:
    provider_profile = {**(api_profile or {}), **config.provider_profile()}
    translator = BulkTranslator(config, provider=create_provider(provider_profile))
    lines = read_lines(input_path)
    logger.info(
        "translating %s (%d lines) into %s with %s",
        input_path,
        len(lines),
        config.target_language,
        config.model,
    )
    translated = translator.translate_sync(lines)
    write_lines(output_path, translated)
    return len(translated)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        setup_logging(args.log_level)
    except ValueError as e:
        print(f"[Error] {e}", file=sys.stderr)
        return EXIT_CONFIG
    set_events_enabled(args.json_events)

    if not os.path.exists(args.file):
        logger.error("Input file not found: %s", args.file)
        return EXIT_FATAL

    try:
        pipeline_profile, api_profile = load_profiles(args)
        config = resolve_config(pipeline_profile, api_profile, overrides=_overrides(args))
    except (ConfigError, FileNotFoundError, ValueError, yaml.YAMLError) as e:
        logger.error("Invalid configuration: %s", e)
        emit_error(str(e), title="Invalid Configuration")
        return EXIT_CONFIG

    output_path = args.output or default_output_path(args.file, config.target_language)
    try:
        count = run(config, args.file, output_path, api_profile)
    except (ProviderError, BulkTranslateError) as e:
        logger.error("Fatal error: %s", e)
        emit_error(str(e), title="Bulk Translate Fatal Error")
        return EXIT_FATAL

    logger.info("Output saved: %s (%d lines)", output_path, count)
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
