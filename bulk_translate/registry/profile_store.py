"""Profile store for bulk translation (YAML-based)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import os
import re

import yaml


# Legacy spellings accepted in profiles, mapped to their canonical keys.
_KEY_ALIASES: Dict[str, Dict[str, str]] = {
    "api": {
        "apiKey": "api_key",
        "baseUrl": "base_url",
    },
    "pipeline": {
        "language": "target_language",
        "lines": "chunk_size",
        "requests": "concurrency",
        "maxRetryDepth": "max_retry_depth",
    },
}


@dataclass
class ProfileRef:
    kind: str
    profile_id: str
    path: str
    name: str


class ProfileStore:
    def __init__(self, base_dir: str):
        self.base_dir = base_dir

    @staticmethod
    def is_safe_profile_id(value: str) -> bool:
        if not value:
            return False
        trimmed = str(value).strip()
        if not trimmed:
            return False
        if ".." in trimmed:
            return False
        if "/" in trimmed or "\\" in trimmed:
            return False
        return bool(re.match(r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$", trimmed))

    def _normalize_path(self, path: str) -> str:
        normalized = os.path.abspath(path)
        return normalized.lower() if os.name == "nt" else normalized

    def _is_within_base_dir(self, path: str) -> bool:
        base = self._normalize_path(self.base_dir)
        target = self._normalize_path(path)
        if target == base:
            return True
        return target.startswith(base + os.sep)

    def _kind_dir(self, kind: str) -> str:
        return os.path.join(self.base_dir, kind)

    @staticmethod
    def _normalize_profile_data(kind: str, data: Dict[str, Any]) -> None:
        for alias, key in _KEY_ALIASES.get(kind, {}).items():
            if alias in data:
                value = data.pop(alias)
                data.setdefault(key, value)

    def list_profiles(self, kind: str) -> List[ProfileRef]:
        result: List[ProfileRef] = []
        kind_dir = self._kind_dir(kind)
        if not os.path.isdir(kind_dir):
            return result
        for name in sorted(os.listdir(kind_dir)):
            if not name.endswith((".yaml", ".yml")):
                continue
            fallback_id = os.path.splitext(name)[0]
            if not self.is_safe_profile_id(fallback_id):
                continue
            path = os.path.join(kind_dir, name)
            data = self.load_profile_by_path(path)
            result.append(
                ProfileRef(
                    kind=kind,
                    profile_id=data["id"],
                    path=path,
                    name=str(data.get("name") or data["id"]),
                )
            )
        return result

    def load_profile(self, kind: str, ref: str) -> Dict[str, Any]:
        path = self.resolve_profile_path(kind, ref)
        if not path:
            raise FileNotFoundError(f"Profile not found: {kind}:{ref}")
        return self.load_profile_by_path(path)

    def load_profile_by_path(self, path: str) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Invalid profile YAML: {path}")
        fallback_id = os.path.splitext(os.path.basename(path))[0]
        if not self.is_safe_profile_id(fallback_id):
            raise ValueError(f"Invalid profile id: {fallback_id}")
        raw_id = str(data.get("id") or "").strip()
        data["id"] = raw_id if self.is_safe_profile_id(raw_id) else fallback_id
        data.setdefault("name", data["id"])
        self._normalize_profile_data(os.path.basename(os.path.dirname(path)), data)
        data.setdefault("_path", path)
        return data

    def resolve_profile_path(self, kind: str, ref: str) -> Optional[str]:
        if not ref:
            return None
        if os.path.isabs(ref) and os.path.exists(ref):
            return ref if self._is_within_base_dir(ref) else None
        if ref.endswith((".yaml", ".yml")):
            base = os.path.splitext(os.path.basename(ref))[0]
            if not self.is_safe_profile_id(base):
                return None
            if "/" in ref or "\\" in ref:
                return None
            candidate = os.path.join(self._kind_dir(kind), ref)
            if os.path.exists(candidate):
                return candidate
        if not self.is_safe_profile_id(ref):
            return None
        for ext in (".yaml", ".yml"):
            candidate = os.path.join(self._kind_dir(kind), f"{ref}{ext}")
            if os.path.exists(candidate):
                return candidate
        for profile in self.list_profiles(kind):
            if profile.profile_id == ref:
                return profile.path
        return None
