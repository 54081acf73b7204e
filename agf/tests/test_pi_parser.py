import os
import tempfile
import unittest
from pathlib import Path

from agf.date_utils import rfc3339_to_ms
from agf.models import CanonicalSession, SessionSource
from agf.parsers.platforms.pi.parser import PiAdapter
from agf.tests.support import make_config, write_jsonl


def _header(session_id: str, cwd: str, timestamp: str | None) -> dict:
    header = {"type": "session", "id": session_id, "cwd": cwd}
    if timestamp is not None:
        header["timestamp"] = timestamp
    return header


class PiParserTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.sessions_dir = self.root / ".pi" / "agent" / "sessions"
        self.adapter = PiAdapter()

    async def asyncTearDown(self) -> None:
        self._tmp.cleanup()

    async def test_only_newest_session_per_project_is_reported(self) -> None:
        write_jsonl(self.sessions_dir / "--work-api--" / "a.jsonl", [_header("p1", "/work/api", "2025-01-01T00:00:00Z")])
        write_jsonl(self.sessions_dir / "--work-api--" / "b.jsonl", [_header("p2", "/work/api", "2025-01-03T00:00:00Z")])
        write_jsonl(self.sessions_dir / "--work-web--" / "c.jsonl", [_header("p3", "/work/web", "2025-01-02T00:00:00Z")])

        sessions = await self.adapter.scan(make_config(self.root))

        self.assertEqual([s.session_id for s in sessions], ["p2", "p3"])
        self.assertEqual(sessions[0].source, SessionSource.PI)
        self.assertEqual(sessions[0].project_name, "api")
        self.assertEqual(sessions[0].timestamp, rfc3339_to_ms("2025-01-03T00:00:00Z"))
        self.assertEqual(sessions[0].summaries, [])

    async def test_missing_timestamp_falls_back_to_mtime(self) -> None:
        path = write_jsonl(self.sessions_dir / "x" / "a.jsonl", [_header("p1", "/work/api", None)])
        os.utime(path, (1_600_000_000, 1_600_000_000))

        sessions = await self.adapter.scan(make_config(self.root))

        self.assertEqual(sessions[0].timestamp, 1_600_000_000_000)

    async def test_non_session_headers_are_skipped(self) -> None:
        write_jsonl(self.sessions_dir / "x" / "a.jsonl", [{"type": "message", "id": "p1", "cwd": "/work/api"}])
        write_jsonl(self.sessions_dir / "x" / "b.jsonl", [_header("", "/work/api", "2025-01-01T00:00:00Z")])

        self.assertEqual(await self.adapter.scan(make_config(self.root)), [])

    async def test_delete_removes_matching_session_file(self) -> None:
        target = write_jsonl(self.sessions_dir / "x" / "a.jsonl", [_header("p1", "/work/api", "2025-01-01T00:00:00Z")])
        other = write_jsonl(self.sessions_dir / "x" / "b.jsonl", [_header("p2", "/work/api", "2025-01-02T00:00:00Z")])
        session = CanonicalSession(source=SessionSource.PI, session_id="p1")

        result = await self.adapter.delete(session, make_config(self.root))

        self.assertTrue(result.ok)
        self.assertFalse(target.exists())
        self.assertTrue(other.exists())


if __name__ == "__main__":
    unittest.main()
