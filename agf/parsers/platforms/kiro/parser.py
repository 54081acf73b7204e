"""Kiro CLI conversations from ``data.sqlite3`` (``conversations_v2`` table).

``key`` holds the project directory, ``conversation_id`` the session id and
``value`` the whole conversation as JSON.
"""
from __future__ import annotations

import json
import logging
from typing import Any

import aiosqlite

from agf.date_utils import epoch_to_ms
from agf.models import CanonicalSession, ScanConfig, SessionSource
from agf.parsers.common import first_text_block, normalize_summary, project_name_from_path
from agf.parsers.platforms.base import DeletionStep, SessionAdapter
from agf.parsers.sqlite import delete_rows, open_readonly

logger = logging.getLogger("agf.parsers.kiro")

# conversations_v2 has no archive flag, so every row is listed.
CONVERSATIONS_QUERY = (
    "SELECT key, conversation_id, value, updated_at "
    "FROM conversations_v2 "
    "ORDER BY updated_at DESC"
)
DELETE_SQL = "DELETE FROM conversations_v2 WHERE conversation_id = ?"


def _prompt_from_history_turn(turn: Any) -> str:
    if not isinstance(turn, dict):
        return ""
    user = turn.get("user")
    if not isinstance(user, dict):
        return ""
    content = user.get("content")
    if isinstance(content, dict):
        prompt = content.get("Prompt")
        if isinstance(prompt, dict):
            return normalize_summary(prompt.get("prompt"))
        return ""
    return first_text_block(content)


def extract_summary(value: Any) -> str:
    """First user message of a conversation blob ("" if none)."""
    if isinstance(value, (bytes, bytearray)):
        value = bytes(value).decode("utf-8", errors="replace")
    if not isinstance(value, str):
        return ""
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return ""
    if not isinstance(parsed, dict):
        return ""

    messages = parsed.get("messages")
    if isinstance(messages, list):
        for message in messages:
            if isinstance(message, dict) and message.get("role") == "user":
                summary = first_text_block(message.get("content"))
                if summary:
                    return summary

    history = parsed.get("history")
    if isinstance(history, list):
        for turn in history:
            # Turns are either a dict or a [user, assistant] pair.
            candidates = turn if isinstance(turn, list) else [turn]
            for candidate in candidates:
                summary = _prompt_from_history_turn(candidate)
                if summary:
                    return summary
    return ""


class KiroAdapter(SessionAdapter):
    source = SessionSource.KIRO

    async def _scan(self, config: ScanConfig) -> list[CanonicalSession]:
        db_path = config.locations.kiro_db
        if not db_path.is_file():
            return []

        try:
            async with open_readonly(db_path) as db:
                async with db.execute(CONVERSATIONS_QUERY) as cur:
                    rows = await cur.fetchall()
        except aiosqlite.Error as exc:
            logger.warning("Failed to read Kiro database %s: %s", db_path, exc)
            return []

        sessions: list[CanonicalSession] = []
        for row in rows:
            directory = row["key"]
            conversation_id = row["conversation_id"]
            if not isinstance(conversation_id, str) or not conversation_id:
                continue
            if not isinstance(directory, str):
                directory = ""
            summary = extract_summary(row["value"]) if config.max_summaries > 0 else ""
            sessions.append(
                CanonicalSession(
                    source=self.source,
                    session_id=conversation_id,
                    project_name=project_name_from_path(directory),
                    project_path=directory,
                    summaries=[summary] if summary else [],
                    timestamp=epoch_to_ms(row["updated_at"]) or 0,
                )
            )
        return sessions

    def deletion_steps(self, session: CanonicalSession, config: ScanConfig) -> list[DeletionStep]:
        db_path = config.locations.kiro_db
        session_id = session.session_id

        async def _row() -> None:
            await delete_rows(db_path, DELETE_SQL, (session_id,))

        return [DeletionStep("delete conversation row", _row)]
