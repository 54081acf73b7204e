"""Codex sessions from dated rollout files.

Layout: ``~/.codex/sessions/YYYY/MM/DD/rollout-*.jsonl``. Only the first line
of a rollout describes the session (``type == "session_meta"``). Prompts are
logged separately in ``~/.codex/history.jsonl`` keyed by ``session_id``.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from agf.date_utils import epoch_seconds_to_ms, rfc3339_to_ms
from agf.models import CanonicalSession, ScanConfig, SessionSource
from agf.parsers.common import (
    iter_jsonl,
    newest_first,
    normalize_summary,
    project_name_from_path,
    read_first_json_line,
    walk_files,
)
from agf.parsers.file_ops import remove_files, rewrite_jsonl_excluding
from agf.parsers.platforms.base import DeletionStep, SessionAdapter

logger = logging.getLogger("agf.parsers.codex")

SESSIONS_DIR = "sessions"
HISTORY_FILE = "history.jsonl"
SESSION_META_TYPE = "session_meta"


def read_history_summaries(history_path: Path, cap: int) -> dict[str, list[str]]:
    """``session_id`` -> prompt texts, newest first."""
    if not history_path.is_file():
        return {}
    grouped: dict[str, list[tuple[float, str]]] = {}
    try:
        for entry in iter_jsonl(history_path):
            session_id = entry.get("session_id")
            if not isinstance(session_id, str) or not session_id:
                continue
            text = normalize_summary(entry.get("text"))
            if not text:
                continue
            ts = epoch_seconds_to_ms(entry.get("ts")) or 0
            grouped.setdefault(session_id, []).append((ts, text))
    except OSError as exc:
        logger.debug("Failed to read %s: %s", history_path, exc)
        return {}
    return {session_id: newest_first(items, cap) for session_id, items in grouped.items()}


def _session_payload(header: dict[str, Any] | None) -> dict[str, Any] | None:
    if not header or header.get("type") != SESSION_META_TYPE:
        return None
    payload = header.get("payload")
    return payload if isinstance(payload, dict) else None


def rollout_session_id(path: Path) -> str:
    """``payload.id`` of a rollout file, or "" when it has no usable header."""
    header = read_first_json_line(path)
    payload = header.get("payload") if header else None
    if isinstance(payload, dict) and isinstance(payload.get("id"), str):
        return payload["id"]
    return ""


class CodexAdapter(SessionAdapter):
    source = SessionSource.CODEX

    def scan_sync(self, config: ScanConfig) -> list[CanonicalSession]:
        codex_dir = config.locations.codex_dir
        sessions_dir = codex_dir / SESSIONS_DIR
        if not sessions_dir.is_dir():
            return []

        summaries = read_history_summaries(codex_dir / HISTORY_FILE, config.max_summaries)
        by_id: dict[str, CanonicalSession] = {}

        for path in walk_files(sessions_dir, "*.jsonl"):
            payload = _session_payload(read_first_json_line(path))
            if payload is None:
                continue
            session_id = payload.get("id")
            cwd = payload.get("cwd")
            if not isinstance(session_id, str) or not session_id:
                continue
            if not isinstance(cwd, str) or not cwd:
                continue

            git_info = payload.get("git")
            branch = git_info.get("branch") if isinstance(git_info, dict) else None

            session = CanonicalSession(
                source=self.source,
                session_id=session_id,
                project_name=project_name_from_path(cwd),
                project_path=cwd,
                summaries=summaries.get(session_id, []),
                timestamp=rfc3339_to_ms(payload.get("timestamp")) or 0,
                git_branch=branch if isinstance(branch, str) and branch else None,
            )
            existing = by_id.get(session_id)
            if existing is None or session.timestamp > existing.timestamp:
                by_id[session_id] = session

        sessions = sorted(by_id.values(), key=lambda s: s.timestamp, reverse=True)
        logger.debug("Found %d Codex sessions", len(sessions))
        return sessions

    def deletion_steps(self, session: CanonicalSession, config: ScanConfig) -> list[DeletionStep]:
        codex_dir = config.locations.codex_dir
        session_id = session.session_id

        def _rollouts() -> None:
            matches = [
                path
                for path in walk_files(codex_dir / SESSIONS_DIR, "*.jsonl")
                if rollout_session_id(path) == session_id
            ]
            remove_files(matches)

        return [
            DeletionStep("remove rollout files", _rollouts),
            DeletionStep(
                "rewrite history.jsonl",
                lambda: rewrite_jsonl_excluding(codex_dir / HISTORY_FILE, "session_id", session_id),
            ),
        ]
