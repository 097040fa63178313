from __future__ import annotations

import json
import re
from contextlib import suppress
from pathlib import Path
from typing import Any, List, Optional


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-zA-Z0-9]+", "-", name.strip()).strip("-").lower()
    return slug or "document"


def write_json(path: Path, payload: Any) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        end_idx = text.rfind("```")
        if end_idx > 0:
            inner = text[text.find("\n") + 1 : end_idx]
            return inner.strip()
    return text


def parse_json_response(raw_text: str, context: str) -> Any:
    """Best-effort JSON extraction for replies that wrap the object in prose or code fences."""
    cleaned = raw_text.strip()
    decoder = json.JSONDecoder()

    def _try_load(text: str) -> Optional[Any]:
        with suppress(ValueError):
            return json.loads(text)
        with suppress(ValueError):
            obj, _ = decoder.raw_decode(text)
            return obj if isinstance(obj, (dict, list)) else None
        return None

    candidates: List[str] = []
    fenced = _strip_code_fence(cleaned)
    if fenced:
        candidates.append(fenced)
    if cleaned and cleaned != fenced:
        candidates.append(cleaned)
    for text in list(candidates):
        idx = text.find("{")
        while idx != -1:
            candidates.append(text[idx:])
            idx = text.find("{", idx + 1)

    for candidate in candidates:
        parsed = _try_load(candidate)
        if parsed is not None:
            return parsed

    raise ValueError(f"{context}: could not locate JSON object in model reply")
