"""pi sessions: one JSONL file per session under ``~/.pi/agent/sessions``.

The first line is the header ``{"type": "session", "id", "timestamp", "cwd"}``.
``pi --resume`` only reopens the newest session of a directory, so only that
one is reported per project path.
"""
from __future__ import annotations

import logging
from pathlib import Path

from agf.date_utils import file_mtime_ms, rfc3339_to_ms
from agf.models import CanonicalSession, ScanConfig, SessionSource
from agf.parsers.common import project_name_from_path, read_first_json_line, walk_files
from agf.parsers.file_ops import remove_files
from agf.parsers.platforms.base import DeletionStep, SessionAdapter

logger = logging.getLogger("agf.parsers.pi")

HEADER_TYPE = "session"


def _header(path: Path) -> dict | None:
    header = read_first_json_line(path)
    if not header or header.get("type") != HEADER_TYPE:
        return None
    return header


class PiAdapter(SessionAdapter):
    source = SessionSource.PI

    def scan_sync(self, config: ScanConfig) -> list[CanonicalSession]:
        sessions_dir = config.locations.pi_sessions_dir
        if not sessions_dir.is_dir():
            return []

        sessions: list[CanonicalSession] = []
        for path in walk_files(sessions_dir, "*.jsonl"):
            header = _header(path)
            if header is None:
                continue
            session_id = header.get("id")
            cwd = header.get("cwd")
            if not isinstance(session_id, str) or not session_id:
                continue
            if not isinstance(cwd, str) or not cwd:
                continue
            timestamp = rfc3339_to_ms(header.get("timestamp"))
            if timestamp is None:
                timestamp = file_mtime_ms(path)
            sessions.append(
                CanonicalSession(
                    source=self.source,
                    session_id=session_id,
                    project_name=project_name_from_path(cwd),
                    project_path=cwd,
                    timestamp=timestamp,
                )
            )

        sessions.sort(key=lambda s: s.timestamp, reverse=True)
        seen: set[str] = set()
        latest: list[CanonicalSession] = []
        for session in sessions:
            if session.project_path in seen:
                continue
            seen.add(session.project_path)
            latest.append(session)
        logger.debug("Found %d pi sessions (%d before per-project collapse)", len(latest), len(sessions))
        return latest

    def deletion_steps(self, session: CanonicalSession, config: ScanConfig) -> list[DeletionStep]:
        sessions_dir = config.locations.pi_sessions_dir
        session_id = session.session_id

        def _session_files() -> None:
            matches = []
            for path in walk_files(sessions_dir, "*.jsonl"):
                header = _header(path)
                if header is not None and header.get("id") == session_id:
                    matches.append(path)
            remove_files(matches)

        return [DeletionStep("remove session files", _session_files)]
