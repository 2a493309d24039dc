"""Parser base classes for bulk translation responses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List


@dataclass
class ParseOutput:
    lines: List[str]


class ParserError(RuntimeError):
    pass


class BaseParser:
    def __init__(self, profile: Dict[str, Any] | None = None):
        self.profile = profile or {}

    def parse(self, text: str) -> ParseOutput:
        raise NotImplementedError
