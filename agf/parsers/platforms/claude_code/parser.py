"""Claude Code sessions from ``~/.claude/history.jsonl``.

Every prompt the user types is appended to the history log as
``{"display", "timestamp", "project", "sessionId"}``, so one session spans
many lines. The per-project event log ``projects/<encoded>/<sessionId>.jsonl``
records the working directory of each event, which reveals sessions that ran
inside a linked work-tree.
"""
from __future__ import annotations

import glob
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from agf.date_utils import epoch_ms
from agf.git import read_head_branch
from agf.models import CanonicalSession, ScanConfig, SessionSource
from agf.parsers.common import iter_jsonl, newest_first, normalize_summary
from agf.parsers.file_ops import remove_dirs_named, remove_files, rewrite_jsonl_excluding
from agf.parsers.path_decoding import encode_claude_project_path
from agf.parsers.platforms.base import DeletionStep, SessionAdapter

logger = logging.getLogger("agf.parsers.claude_code")

HISTORY_FILE = "history.jsonl"
PROJECTS_DIR = "projects"
WORKTREE_MARKER = "/.claude/worktrees/"
# Work-trees are entered early; only a prefix of the event log is checked.
WORKTREE_SCAN_LINES = 50


@dataclass
class _SessionAccumulator:
    project: str = ""
    timestamp: float = -1.0
    summaries: list[tuple[float, str]] = field(default_factory=list)


def _collect_history(history_path: Path) -> dict[str, _SessionAccumulator]:
    sessions: dict[str, _SessionAccumulator] = {}
    for entry in iter_jsonl(history_path):
        session_id = entry.get("sessionId")
        if not isinstance(session_id, str) or not session_id:
            continue
        ts = epoch_ms(entry.get("timestamp"))
        ts_value = float(ts) if ts is not None else 0.0

        acc = sessions.setdefault(session_id, _SessionAccumulator())
        summary = normalize_summary(entry.get("display"))
        if summary:
            acc.summaries.append((ts_value, summary))

        # Later lines win ties so the newest project field is kept.
        if ts_value >= acc.timestamp:
            acc.timestamp = ts_value
            project = entry.get("project")
            acc.project = project if isinstance(project, str) else ""
    return sessions


def _worktree_from_cwd(cwd: Any) -> str | None:
    if not isinstance(cwd, str) or WORKTREE_MARKER not in cwd:
        return None
    rest = cwd.split(WORKTREE_MARKER, 1)[1]
    name = rest.split("/", 1)[0].strip()
    return name or None


def _session_event_file(projects_dir: Path, project_path: str, session_id: str) -> Path | None:
    direct = projects_dir / encode_claude_project_path(project_path) / f"{session_id}.jsonl"
    if direct.is_file():
        return direct
    for candidate in projects_dir.glob(f"*/{glob.escape(session_id)}.jsonl"):
        if candidate.is_file():
            return candidate
    return None


def detect_worktree(event_file: Path, max_lines: int = WORKTREE_SCAN_LINES) -> str | None:
    """Name of the work-tree the session ran in, from the first ``cwd`` that has one."""
    try:
        with event_file.open("r", encoding="utf-8", errors="replace") as handle:
            for index, line in enumerate(handle):
                if index >= max_lines:
                    break
                line = line.strip()
                if not line or WORKTREE_MARKER not in line:
                    continue
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if not isinstance(entry, dict):
                    continue
                worktree = _worktree_from_cwd(entry.get("cwd"))
                if worktree:
                    return worktree
    except OSError:
        return None
    return None


def _branch_or_none(project_path: str) -> str | None:
    try:
        return read_head_branch(project_path)
    except OSError as exc:
        logger.debug("Could not read branch of %s: %s", project_path, exc)
        return None


class ClaudeCodeAdapter(SessionAdapter):
    source = SessionSource.CLAUDE_CODE

    def scan_sync(self, config: ScanConfig) -> list[CanonicalSession]:
        claude_dir = config.locations.claude_dir
        history_path = claude_dir / HISTORY_FILE
        if not history_path.is_file():
            return []

        projects_dir = claude_dir / PROJECTS_DIR
        has_projects = projects_dir.is_dir()
        branches: dict[str, str | None] = {}
        sessions: list[CanonicalSession] = []

        for session_id, acc in _collect_history(history_path).items():
            project_path = acc.project
            project_name = Path(project_path).name if project_path else ""
            if not project_name:
                continue

            if project_path not in branches:
                branches[project_path] = _branch_or_none(project_path)

            worktree = None
            if has_projects:
                try:
                    event_file = _session_event_file(projects_dir, project_path, session_id)
                except OSError as exc:
                    logger.debug("Skipping event log lookup for %s: %s", session_id, exc)
                    event_file = None
                if event_file is not None:
                    worktree = detect_worktree(event_file)

            sessions.append(
                CanonicalSession(
                    source=self.source,
                    session_id=session_id,
                    project_name=project_name,
                    project_path=project_path,
                    summaries=newest_first(acc.summaries, config.max_summaries),
                    timestamp=max(0, int(acc.timestamp)),
                    git_branch=branches[project_path],
                    worktree=worktree,
                )
            )

        sessions.sort(key=lambda s: s.timestamp, reverse=True)
        logger.debug("Found %d Claude Code sessions", len(sessions))
        return sessions

    def deletion_steps(self, session: CanonicalSession, config: ScanConfig) -> list[DeletionStep]:
        claude_dir = config.locations.claude_dir
        projects_dir = claude_dir / PROJECTS_DIR
        session_id = session.session_id

        def _event_files() -> None:
            if projects_dir.is_dir():
                remove_files(projects_dir.glob(f"*/{glob.escape(session_id)}.jsonl"))

        return [
            DeletionStep(
                "rewrite history.jsonl",
                lambda: rewrite_jsonl_excluding(claude_dir / HISTORY_FILE, "sessionId", session_id),
            ),
            DeletionStep(
                "remove project session directories",
                lambda: remove_dirs_named(projects_dir, session_id),
            ),
            DeletionStep("remove project event logs", _event_files),
        ]
