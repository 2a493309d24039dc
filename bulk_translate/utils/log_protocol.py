"""Logging setup and JSON event protocol for bulk translation.

Protocol prefixes (stdout, only when events are enabled):
  JSON_RETRY:   - a chunk is re-dispatched after a line-count mismatch
  JSON_ERROR:   - fatal failure
  JSON_FINAL:   - summary statistics
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from typing import Any, Dict

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATEFMT = "%H:%M:%S"

_stdout_lock = threading.Lock()
_events_enabled = False


def parse_level(value: Any) -> int:
    if isinstance(value, int):
        return value
    name = str(value or "").strip().upper()
    if not name:
        return logging.INFO
    if name == "TRACE":
        return TRACE
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {value}")
    return level


def setup_logging(level: Any = logging.INFO) -> None:
    logging.basicConfig(
        level=parse_level(level),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        stream=sys.stderr,
    )


def set_events_enabled(enabled: bool) -> None:
    global _events_enabled
    _events_enabled = bool(enabled)


def emit(prefix: str, data: Dict[str, Any]) -> None:
    """Thread-safe JSON event emission; a no-op unless events are enabled."""
    if not _events_enabled:
        return
    with _stdout_lock:
        sys.stdout.write(f"\n{prefix}:{json.dumps(data, ensure_ascii=False)}\n")
        sys.stdout.flush()


def emit_retry(
    chunk: int,
    depth: int,
    *,
    src_lines: int = 0,
    dst_lines: int = 0,
) -> None:
    emit("JSON_RETRY", {
        "chunk": chunk,
        "depth": depth,
        "type": "line_mismatch",
        "src_lines": src_lines,
        "dst_lines": dst_lines,
    })


def emit_error(message: str, title: str = "Bulk Translate Error") -> None:
    emit("JSON_ERROR", {
        "title": title,
        "message": message,
    })


def emit_final(
    *,
    total_time: float,
    source_lines: int,
    output_lines: int,
    total_requests: int = 0,
    total_retries: int = 0,
    max_depth_reached: int = 0,
) -> None:
    emit("JSON_FINAL", {
        "totalTime": round(total_time, 2),
        "sourceLines": source_lines,
        "outputLines": output_lines,
        "totalRequests": total_requests,
        "totalRetries": total_retries,
        "maxDepthReached": max_depth_reached,
    })
