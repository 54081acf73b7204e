"""Helpers shared by the per-source session scanners."""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Iterable, Iterator

logger = logging.getLogger("agf.parsers")

SUMMARY_MAX_CHARS = 100
_WHITESPACE_RE = re.compile(r"\s+")


def truncate(text: str, max_chars: int = SUMMARY_MAX_CHARS) -> str:
    if len(text) <= max_chars:
        return text
    return text[: max(0, max_chars - 1)].rstrip() + "…"


def normalize_summary(text: Any) -> str:
    """Collapse whitespace and truncate; returns "" for anything unusable."""
    if not isinstance(text, str):
        return ""
    normalized = _WHITESPACE_RE.sub(" ", text).strip()
    if not normalized:
        return ""
    return truncate(normalized)


def newest_first(entries: Iterable[tuple[float, str]], cap: int) -> list[str]:
    """Order ``(timestamp, text)`` pairs newest-first and keep at most ``cap``."""
    ordered = sorted(entries, key=lambda item: item[0], reverse=True)
    return [text for _, text in ordered][: max(0, cap)]


def project_name_from_path(path: str, default: str = "unknown") -> str:
    name = Path(path).name if path else ""
    return name or default


def iter_jsonl(path: Path) -> Iterator[dict[str, Any]]:
    """Yield each JSON object line of a JSONL file, skipping malformed lines."""
    with path.open("r", encoding="utf-8", errors="replace") as handle:
        for line in handle:
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(entry, dict):
                yield entry


def read_first_json_line(path: Path) -> dict[str, Any] | None:
    """Parse only the first line of a file; an empty first line means no header."""
    try:
        with path.open("r", encoding="utf-8", errors="replace") as handle:
            first_line = handle.readline().strip()
    except OSError:
        return None
    if not first_line:
        return None
    try:
        parsed = json.loads(first_line)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def read_capped(path: Path, max_bytes: int) -> tuple[str, bool] | None:
    """Read at most ``max_bytes`` of a file.

    Returns ``(text, truncated)``; ``None`` when the file cannot be read.
    """
    try:
        with path.open("rb") as handle:
            raw = handle.read(max_bytes + 1)
    except OSError:
        return None
    truncated = len(raw) > max_bytes
    if truncated:
        raw = raw[:max_bytes]
    return raw.decode("utf-8", errors="replace"), truncated


def extract_str_field(text: str, field: str) -> str | None:
    """Find ``"field":"value"`` in raw (possibly truncated) JSON text.

    The value runs to the next unescaped quote and is JSON-unescaped. Returns
    ``None`` when the field is absent, empty, or cut off before its closing quote.
    """
    match = re.search(r'"%s"\s*:\s*"' % re.escape(field), text)
    if not match:
        return None
    start = match.end()
    index = start
    length = len(text)
    while index < length:
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if char == '"':
            break
        index += 1
    else:
        return None
    raw = text[start:index]
    if not raw:
        return None
    try:
        return json.loads(f'"{raw}"')
    except json.JSONDecodeError:
        return raw


def hex_decode(value: Any) -> bytes | None:
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("ascii", errors="replace")
    if not isinstance(value, str):
        return None
    token = value.strip()
    if len(token) % 2 != 0:
        return None
    try:
        return bytes.fromhex(token)
    except ValueError:
        return None


def decode_hex_json(value: Any) -> dict[str, Any] | None:
    """Hex-decode a key-value blob and parse the resulting JSON object."""
    raw = hex_decode(value)
    if raw is None:
        return None
    try:
        parsed = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return parsed if isinstance(parsed, dict) else None


def walk_files(root: Path, pattern: str) -> list[Path]:
    """Recursively list files under ``root`` matching a glob pattern."""
    if not root.is_dir():
        return []
    try:
        return sorted(path for path in root.rglob(pattern) if path.is_file())
    except OSError as exc:
        logger.debug("Failed to walk %s: %s", root, exc)
        return []


def first_text_block(content: Any) -> str:
    """First non-empty text from a string or a list of ``{"text": ...}`` blocks."""
    if isinstance(content, str):
        return normalize_summary(content)
    if isinstance(content, list):
        for part in content:
            if isinstance(part, dict):
                summary = normalize_summary(part.get("text"))
                if summary:
                    return summary
            elif isinstance(part, str):
                summary = normalize_summary(part)
                if summary:
                    return summary
    return ""
