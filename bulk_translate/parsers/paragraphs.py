"""JSON paragraph-array response parser."""

from __future__ import annotations

from typing import Any, List
import ast
import json
import re

from bulk_translate.prompts.builder import PARAGRAPH_CLOSE, PARAGRAPH_OPEN

from .base import BaseParser, ParseOutput, ParserError


_CODE_FENCE_PATTERNS = [
    re.compile(r"```(?:json|text)?\s*([\s\S]*?)```", re.IGNORECASE),
    re.compile(r"'''(?:json|text)?\s*([\s\S]*?)'''", re.IGNORECASE),
]

_THINK_PATTERN_CLOSED = re.compile(r"<think>.*?</think>", re.IGNORECASE | re.DOTALL)
_THINK_PATTERN_OPEN = re.compile(r"<think>(.*?)(?:</think>|$)", re.IGNORECASE | re.DOTALL)


def _strip_think_tags(text: str) -> str:
    if not text:
        return text
    cleaned = _THINK_PATTERN_CLOSED.sub("", text)
    if cleaned == text:
        cleaned = _THINK_PATTERN_OPEN.sub("", text)
    cleaned = cleaned.replace("<think>", "").replace("</think>", "")
    return cleaned.strip()


def _strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    for pattern in _CODE_FENCE_PATTERNS:
        match = pattern.search(cleaned)
        if match:
            return match.group(1).strip()
    return cleaned


def _extract_first_json_block(text: str) -> str:
    if not text:
        return ""
    start = None
    stack: List[str] = []
    in_str = False
    escape = False
    for idx, ch in enumerate(text):
        if in_str:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == "\"":
                in_str = False
            continue
        if ch == "\"":
            in_str = True
            continue
        if ch in "{[":
            if not stack:
                start = idx
            stack.append(ch)
        elif ch in "}]":
            if not stack:
                continue
            stack.pop()
            if not stack and start is not None:
                return text[start : idx + 1]
    return ""


def _load_json_like(text: str) -> Any:
    cleaned = _strip_code_fence(text)
    candidates = [cleaned]
    extracted = _extract_first_json_block(cleaned)
    if extracted and extracted not in candidates:
        candidates.append(extracted)
    for candidate in candidates:
        if not candidate:
            continue
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            try:
                return ast.literal_eval(candidate)
            except (ValueError, SyntaxError, MemoryError, RecursionError, TypeError):
                continue
    raise ParserError("ParagraphJsonParser: invalid JSON")


def _strip_markers(text: str) -> str:
    return text.replace(PARAGRAPH_OPEN, "").replace(PARAGRAPH_CLOSE, "")


class ParagraphJsonParser(BaseParser):
    """Parse ``list[{"line": int, "text": list[str]}]`` into one string per paragraph.

    Sentence arrays are joined with newlines. A bare string ``text`` is
    accepted as a one-sentence paragraph.
    """

    def parse(self, text: str) -> ParseOutput:
        data = _load_json_like(_strip_think_tags(text or ""))
        if isinstance(data, dict) and "text" in data:
            # a lone paragraph object
            data = [data]
        elif isinstance(data, dict):
            # {"paragraphs": [...]} style wrappers
            values = [value for value in data.values() if isinstance(value, list)]
            if len(values) == 1:
                data = values[0]
        if not isinstance(data, list):
            raise ParserError("ParagraphJsonParser: expected JSON array")

        lines: List[str] = []
        for idx, entry in enumerate(data):
            if not isinstance(entry, dict) or "text" not in entry:
                raise ParserError(f"ParagraphJsonParser: entry {idx} has no text")
            value = entry["text"]
            if isinstance(value, str):
                sentences = [value]
            elif isinstance(value, list):
                sentences = [str(item) for item in value]
            else:
                raise ParserError(
                    f"ParagraphJsonParser: entry {idx} text must be a list of strings"
                )
            lines.append(_strip_markers("\n".join(sentences)))
        return ParseOutput(lines=lines)
