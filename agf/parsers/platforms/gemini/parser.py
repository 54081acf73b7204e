"""Gemini CLI sessions from ``~/.gemini/tmp/<project>/chats/session-*.json``.

``<project>`` is either a short name or the SHA-256 of the project path;
``~/.gemini/projects.json`` (``{"projects": {path: name}}``) is the only way
back to the real path. Session files embed full tool output and can reach
tens of megabytes, so only a capped prefix is read and a truncated prefix is
mined for fields by string search.
"""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from agf.date_utils import rfc3339_to_ms
from agf.models import CanonicalSession, ScanConfig, SessionSource
from agf.parsers.common import extract_str_field, first_text_block, normalize_summary, read_capped
from agf.parsers.file_ops import remove_files
from agf.parsers.path_decoding import build_hash_lookup, short_hash_name
from agf.parsers.platforms.base import DeletionStep, SessionAdapter

logger = logging.getLogger("agf.parsers.gemini")

TMP_DIR = "tmp"
CHATS_DIR = "chats"
PROJECTS_FILE = "projects.json"
SESSION_GLOB = "session-*.json"

# The header (sessionId, timestamps) fits in the first few hundred bytes and
# the first user message almost always lands in the first 64 KiB.
MAX_FILE_BYTES = 64 * 1024
USER_MESSAGE_WINDOW = 1024

_USER_MARKER_RE = re.compile(r'"type"\s*:\s*"user"')
_CONTENT_RE = re.compile(r'"content"\s*:\s*')


def build_path_map(gemini_dir: Path) -> dict[str, str]:
    """Directory name -> project path, for both named and hashed directories."""
    projects_file = gemini_dir / PROJECTS_FILE
    try:
        data = json.loads(projects_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {}
    projects = data.get("projects") if isinstance(data, dict) else None
    if not isinstance(projects, dict):
        return {}

    path_map: dict[str, str] = {}
    known_paths: list[str] = []
    for path, name in projects.items():
        if not isinstance(path, str) or not path:
            continue
        known_paths.append(path)
        if isinstance(name, str) and name:
            path_map[name] = path
    path_map.update(build_hash_lookup(known_paths))
    return path_map


def resolve_project(dir_name: str, path_map: dict[str, str]) -> tuple[str, str]:
    """``(project_path, project_name)``; unknown hashes get no path."""
    full_path = path_map.get(dir_name)
    if full_path:
        return full_path, Path(full_path).name or dir_name
    return "", short_hash_name(dir_name)


def _summary_from_messages(data: dict[str, Any]) -> str:
    messages = data.get("messages")
    if not isinstance(messages, list):
        return ""
    for message in messages:
        if not isinstance(message, dict) or message.get("type") != "user":
            continue
        summary = first_text_block(message.get("content"))
        if summary:
            return summary
    return ""


def _array_span(text: str) -> str:
    """``text`` (starting at ``[``) up to its matching ``]``, or all of it when cut off."""
    depth = 0
    in_string = False
    index = 0
    while index < len(text):
        char = text[index]
        if in_string:
            if char == "\\":
                index += 1
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
            if depth == 0:
                return text[: index + 1]
        index += 1
    return text


def extract_summary_partial(text: str) -> str:
    """First user message from truncated JSON.

    Only the ``content`` of the first user message is read: either a plain
    string or the first ``"text"`` inside its block array.
    """
    match = _USER_MARKER_RE.search(text)
    if not match:
        return ""
    window = text[match.end(): match.end() + USER_MESSAGE_WINDOW]
    content = _CONTENT_RE.search(window)
    if not content:
        return ""
    rest = window[content.end():]
    if rest.startswith('"'):
        value = extract_str_field(window[content.start():], "content")
    elif rest.startswith("["):
        value = extract_str_field(_array_span(rest), "text")
    else:
        return ""
    return normalize_summary(value)


def parse_session_text(text: str) -> tuple[str, int, str] | None:
    """``(session_id, timestamp_ms, summary)`` from full or truncated file text."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None

    if isinstance(data, dict):
        session_id = data.get("sessionId")
        raw_ts = data.get("lastUpdated") or data.get("startTime")
        summary = _summary_from_messages(data)
    else:
        session_id = extract_str_field(text, "sessionId")
        raw_ts = extract_str_field(text, "lastUpdated") or extract_str_field(text, "startTime")
        summary = extract_summary_partial(text)

    if not isinstance(session_id, str) or not session_id:
        return None
    timestamp = rfc3339_to_ms(raw_ts)
    if timestamp is None:
        return None
    return session_id, timestamp, summary


def read_session_file(path: Path) -> tuple[str, int, str] | None:
    capped = read_capped(path, MAX_FILE_BYTES)
    if capped is None:
        return None
    text, truncated = capped
    if truncated:
        logger.debug("Read only %d bytes of %s", MAX_FILE_BYTES, path)
    return parse_session_text(text)


def _session_files(tmp_dir: Path) -> list[tuple[str, Path]]:
    files: list[tuple[str, Path]] = []
    if not tmp_dir.is_dir():
        return files
    for project_dir in sorted(tmp_dir.iterdir()):
        chats_dir = project_dir / CHATS_DIR
        if not chats_dir.is_dir():
            continue
        for path in sorted(chats_dir.glob(SESSION_GLOB)):
            if path.is_file():
                files.append((project_dir.name, path))
    return files


class GeminiAdapter(SessionAdapter):
    source = SessionSource.GEMINI

    def scan_sync(self, config: ScanConfig) -> list[CanonicalSession]:
        gemini_dir = config.locations.gemini_dir
        tmp_dir = gemini_dir / TMP_DIR
        if not tmp_dir.is_dir():
            return []

        path_map = build_path_map(gemini_dir)
        # A migrated project can hold the same session under both its hash
        # directory and its named directory; the newest copy wins.
        by_id: dict[str, CanonicalSession] = {}
        for dir_name, path in _session_files(tmp_dir):
            parsed = read_session_file(path)
            if parsed is None:
                continue
            session_id, timestamp, summary = parsed
            project_path, project_name = resolve_project(dir_name, path_map)
            session = CanonicalSession(
                source=self.source,
                session_id=session_id,
                project_name=project_name,
                project_path=project_path,
                summaries=[summary] if summary and config.max_summaries > 0 else [],
                timestamp=timestamp,
            )
            existing = by_id.get(session_id)
            if existing is None or session.timestamp > existing.timestamp:
                by_id[session_id] = session

        return sorted(by_id.values(), key=lambda s: s.timestamp, reverse=True)

    def deletion_steps(self, session: CanonicalSession, config: ScanConfig) -> list[DeletionStep]:
        tmp_dir = config.locations.gemini_dir / TMP_DIR
        session_id = session.session_id

        def _files() -> None:
            matches = []
            for _, path in _session_files(tmp_dir):
                parsed = read_session_file(path)
                if parsed is not None and parsed[0] == session_id:
                    matches.append(path)
            remove_files(matches)

        return [DeletionStep("remove session files", _files)]
