"""OpenCode sessions from ``opencode.db`` (``session`` table)."""
from __future__ import annotations

import glob
import logging

import aiosqlite

from agf.date_utils import epoch_ms
from agf.models import CanonicalSession, ScanConfig, SessionSource
from agf.parsers.common import normalize_summary, project_name_from_path, walk_files
from agf.parsers.file_ops import remove_files
from agf.parsers.platforms.base import DeletionStep, SessionAdapter
from agf.parsers.sqlite import delete_rows, open_readonly

logger = logging.getLogger("agf.parsers.opencode")

SESSIONS_QUERY = (
    "SELECT id, title, directory, time_updated "
    "FROM session "
    "WHERE time_archived IS NULL "
    "ORDER BY time_updated DESC"
)
DELETE_SQL = "DELETE FROM session WHERE id = ?"
STORAGE_MIRROR_DIR = "storage/session"


class OpenCodeAdapter(SessionAdapter):
    source = SessionSource.OPENCODE

    async def _scan(self, config: ScanConfig) -> list[CanonicalSession]:
        db_path = config.locations.opencode_db
        if not db_path.is_file():
            return []

        sessions: list[CanonicalSession] = []
        try:
            async with open_readonly(db_path) as db:
                async with db.execute(SESSIONS_QUERY) as cur:
                    rows = await cur.fetchall()
        except aiosqlite.Error as exc:
            logger.warning("Failed to read OpenCode database %s: %s", db_path, exc)
            return []

        for row in rows:
            session_id = row["id"]
            directory = row["directory"]
            if not isinstance(session_id, str) or not session_id:
                continue
            if not isinstance(directory, str):
                directory = ""
            title = normalize_summary(row["title"])
            sessions.append(
                CanonicalSession(
                    source=self.source,
                    session_id=session_id,
                    project_name=project_name_from_path(directory),
                    project_path=directory,
                    summaries=[title] if title and config.max_summaries > 0 else [],
                    timestamp=epoch_ms(row["time_updated"]) or 0,
                )
            )
        return sessions

    def deletion_steps(self, session: CanonicalSession, config: ScanConfig) -> list[DeletionStep]:
        locations = config.locations
        session_id = session.session_id

        async def _row() -> None:
            await delete_rows(locations.opencode_db, DELETE_SQL, (session_id,))

        def _mirror() -> None:
            remove_files(walk_files(locations.opencode_dir / STORAGE_MIRROR_DIR, f"{glob.escape(session_id)}.json"))

        return [
            DeletionStep("delete session row", _row),
            DeletionStep("remove JSON storage mirror", _mirror, critical=False),
        ]
