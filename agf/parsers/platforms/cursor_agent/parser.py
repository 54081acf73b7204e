"""Cursor CLI (cursor-agent) sessions.

Transcripts live at ``~/.cursor/projects/<encoded>/agent-transcripts/<id>.txt``
where ``<encoded>`` is the project path with ``/`` turned into ``-``. Session
metadata sits in ``~/.cursor/chats/<workspace-hash>/<id>/store.db``: a
key-value table whose value is hex-encoded JSON.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import shutil
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import aiosqlite

from agf.date_utils import epoch_ms, file_mtime_ms
from agf.models import CanonicalSession, ScanConfig, SessionSource
from agf.parsers.common import decode_hex_json, normalize_summary, project_name_from_path
from agf.parsers.file_ops import remove_files
from agf.parsers.path_decoding import DirOracle, decode_dash_path
from agf.parsers.platforms.base import DeletionStep, SessionAdapter
from agf.parsers.sqlite import open_readonly

logger = logging.getLogger("agf.parsers.cursor_agent")

PROJECTS_DIR = "projects"
CHATS_DIR = "chats"
TRANSCRIPTS_DIR = "agent-transcripts"
STORE_DB = "store.db"
TEMP_DIR_PREFIX = "var-folders"

# (table, key) pairs that have been seen holding the chat metadata blob.
META_LOCATIONS = (
    ("meta", "0"),
    ("cursorDiskKV", "composerData"),
)


@dataclass
class _Transcript:
    session_id: str
    project_path: str
    path: Path


@dataclass
class StoreMeta:
    name: str = ""
    created_at: int | None = None


def _blob_to_json(value: Any) -> dict[str, Any] | None:
    parsed = decode_hex_json(value)
    if parsed is not None:
        return parsed
    # Some stores keep the JSON unencoded.
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, str) and value.lstrip().startswith("{"):
        try:
            raw = json.loads(value)
        except json.JSONDecodeError:
            return None
        return raw if isinstance(raw, dict) else None
    return None


async def read_store_meta(store_path: Path) -> StoreMeta | None:
    try:
        async with open_readonly(store_path) as db:
            for table, key in META_LOCATIONS:
                try:
                    async with db.execute(f"SELECT value FROM {table} WHERE key = ?", (key,)) as cur:
                        row = await cur.fetchone()
                except aiosqlite.OperationalError:
                    continue
                if row is None:
                    continue
                parsed = _blob_to_json(row["value"])
                if parsed is None:
                    continue
                return StoreMeta(
                    name=normalize_summary(parsed.get("name")),
                    created_at=epoch_ms(parsed.get("createdAt")),
                )
    except aiosqlite.Error as exc:
        logger.debug("Failed to read %s: %s", store_path, exc)
    return None


def _index_store_dbs(chats_dir: Path) -> dict[str, Path]:
    """``session_id`` -> ``store.db`` across every workspace hash directory."""
    index: dict[str, Path] = {}
    if not chats_dir.is_dir():
        return index
    for workspace in chats_dir.iterdir():
        if not workspace.is_dir():
            continue
        for session_dir in workspace.iterdir():
            store = session_dir / STORE_DB
            if session_dir.name not in index and store.is_file():
                index[session_dir.name] = store
    return index


class CursorAgentAdapter(SessionAdapter):
    source = SessionSource.CURSOR_AGENT

    def __init__(self, is_dir: DirOracle = os.path.isdir):
        self._is_dir = is_dir

    def _discover(self, projects_dir: Path) -> list[_Transcript]:
        is_dir = lru_cache(maxsize=None)(self._is_dir)
        decoded: dict[str, str | None] = {}
        transcripts: list[_Transcript] = []

        for project_dir in sorted(projects_dir.iterdir()):
            encoded = project_dir.name
            if encoded.startswith(TEMP_DIR_PREFIX):
                continue
            transcripts_dir = project_dir / TRANSCRIPTS_DIR
            if not transcripts_dir.is_dir():
                continue
            files = sorted(p for p in transcripts_dir.glob("*.txt") if p.is_file())
            if not files:
                continue
            if encoded not in decoded:
                decoded[encoded] = decode_dash_path(encoded, is_dir)
            project_path = decoded[encoded]
            if project_path is None:
                logger.debug("Could not decode Cursor project directory %s", encoded)
                continue
            for path in files:
                transcripts.append(_Transcript(path.stem, project_path, path))
        return transcripts

    async def _scan(self, config: ScanConfig) -> list[CanonicalSession]:
        cursor_dir = config.locations.cursor_dir
        projects_dir = cursor_dir / PROJECTS_DIR
        if not projects_dir.is_dir():
            return []

        transcripts = await asyncio.to_thread(self._discover, projects_dir)
        stores = await asyncio.to_thread(_index_store_dbs, cursor_dir / CHATS_DIR)

        sessions: list[CanonicalSession] = []
        for transcript in transcripts:
            meta = None
            store = stores.get(transcript.session_id)
            if store is not None:
                meta = await read_store_meta(store)

            summaries: list[str] = []
            if meta is not None and meta.name and config.max_summaries > 0:
                summaries = [meta.name]
            timestamp = meta.created_at if meta is not None and meta.created_at else None
            if timestamp is None:
                timestamp = file_mtime_ms(transcript.path)

            sessions.append(
                CanonicalSession(
                    source=self.source,
                    session_id=transcript.session_id,
                    project_name=project_name_from_path(transcript.project_path),
                    project_path=transcript.project_path,
                    summaries=summaries,
                    timestamp=timestamp,
                )
            )
        return sessions

    def deletion_steps(self, session: CanonicalSession, config: ScanConfig) -> list[DeletionStep]:
        cursor_dir = config.locations.cursor_dir
        session_id = session.session_id

        def _transcripts() -> None:
            projects_dir = cursor_dir / PROJECTS_DIR
            if not projects_dir.is_dir():
                return
            remove_files(
                project_dir / TRANSCRIPTS_DIR / f"{session_id}.txt"
                for project_dir in projects_dir.iterdir()
                if project_dir.is_dir()
            )

        def _chat_stores() -> None:
            chats_dir = cursor_dir / CHATS_DIR
            if not chats_dir.is_dir():
                return
            for workspace in chats_dir.iterdir():
                target = workspace / session_id
                if target.is_dir():
                    shutil.rmtree(target)
                    logger.info("Removed Cursor chat store %s", target)

        return [
            DeletionStep("remove agent transcripts", _transcripts),
            DeletionStep("remove chat stores", _chat_stores),
        ]
