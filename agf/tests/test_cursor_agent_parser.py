import json
import os
import tempfile
import unittest
from pathlib import Path

import aiosqlite

from agf.models import CanonicalSession, SessionSource
from agf.parsers.platforms.cursor_agent.parser import CursorAgentAdapter, read_store_meta
from agf.tests.support import make_config

KNOWN_DIRS = {"/work", "/work/api", "/work/my-app"}


def _fake_is_dir(path: str) -> bool:
    return path in KNOWN_DIRS


async def _write_store(path: Path, table: str, key: str, value) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    async with aiosqlite.connect(str(path)) as db:
        await db.execute(f"CREATE TABLE {table} (key TEXT PRIMARY KEY, value BLOB)")
        await db.execute(f"INSERT INTO {table} VALUES (?, ?)", (key, value))
        await db.commit()


def _hex_json(data: dict) -> str:
    return json.dumps(data).encode("utf-8").hex()


class CursorAgentParserTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.config = make_config(self.root)
        self.cursor_dir = self.config.locations.cursor_dir
        self.adapter = CursorAgentAdapter(is_dir=_fake_is_dir)

    async def asyncTearDown(self) -> None:
        self._tmp.cleanup()

    def _transcript(self, encoded: str, session_id: str) -> Path:
        path = self.cursor_dir / "projects" / encoded / "agent-transcripts" / f"{session_id}.txt"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("user: hello\n", encoding="utf-8")
        return path

    async def test_missing_projects_dir_yields_nothing(self) -> None:
        self.assertEqual(await self.adapter.scan(self.config), [])

    async def test_scan_decodes_paths_and_reads_store_metadata(self) -> None:
        self._transcript("-work-api", "cs1")
        bare = self._transcript("work-my-app", "cs2")
        os.utime(bare, (1_600_000_000, 1_600_000_000))
        await _write_store(
            self.cursor_dir / "chats" / "hash1" / "cs1" / "store.db",
            "meta",
            "0",
            _hex_json({"name": "Refactor auth", "createdAt": 1_700_000_000_000}),
        )

        sessions = await self.adapter.scan(self.config)
        by_id = {s.session_id: s for s in sessions}

        self.assertEqual(set(by_id), {"cs1", "cs2"})
        cs1 = by_id["cs1"]
        self.assertEqual(cs1.source, SessionSource.CURSOR_AGENT)
        self.assertEqual(cs1.project_path, "/work/api")
        self.assertEqual(cs1.project_name, "api")
        self.assertEqual(cs1.summaries, ["Refactor auth"])
        self.assertEqual(cs1.timestamp, 1_700_000_000_000)
        cs2 = by_id["cs2"]
        self.assertEqual(cs2.project_path, "/work/my-app")
        self.assertEqual(cs2.summaries, [])
        self.assertEqual(cs2.timestamp, 1_600_000_000_000)

    async def test_temp_and_undecodable_directories_are_skipped(self) -> None:
        self._transcript("var-folders-xy-T-tmp", "tmp1")
        self._transcript("-nowhere-at-all", "lost1")
        (self.cursor_dir / "projects" / "-work-api").mkdir(parents=True)

        self.assertEqual(await self.adapter.scan(self.config), [])

    async def test_store_metadata_falls_back_to_raw_json(self) -> None:
        store = self.cursor_dir / "chats" / "h" / "cs9" / "store.db"
        await _write_store(store, "cursorDiskKV", "composerData", json.dumps({"name": "Plain JSON"}))

        meta = await read_store_meta(store)

        self.assertIsNotNone(meta)
        self.assertEqual(meta.name, "Plain JSON")
        self.assertIsNone(meta.created_at)

    async def test_delete_removes_transcripts_and_chat_store(self) -> None:
        transcript = self._transcript("-work-api", "cs1")
        other = self._transcript("-work-api", "cs2")
        store = self.cursor_dir / "chats" / "hash1" / "cs1" / "store.db"
        await _write_store(store, "meta", "0", _hex_json({"name": "x"}))
        (self.cursor_dir / "projects" / "stray-file").write_text("", encoding="utf-8")
        session = CanonicalSession(source=SessionSource.CURSOR_AGENT, session_id="cs1")

        result = await self.adapter.delete(session, self.config)

        self.assertTrue(result.ok)
        self.assertFalse(transcript.exists())
        self.assertFalse(store.parent.exists())
        self.assertTrue(other.exists())
        self.assertTrue((await self.adapter.delete(session, self.config)).ok)


if __name__ == "__main__":
    unittest.main()
