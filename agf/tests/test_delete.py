import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from agf.delete import delete_session, delete_session_async
from agf.models import CanonicalSession, SessionSource
from agf.tests.support import make_config, write_jsonl


class _ExplodingAdapter:
    async def delete(self, session, config):
        raise RuntimeError("unexpected")


class DeleteCoordinatorTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.config = make_config(self.root)
        self.claude_dir = self.config.locations.claude_dir
        self.history = write_jsonl(
            self.claude_dir / "history.jsonl",
            [
                {"display": "a", "timestamp": 1, "project": "/work/api", "sessionId": "s1"},
                {"display": "b", "timestamp": 2, "project": "/work/api", "sessionId": "s2"},
            ],
        )
        self.session_dir = self.claude_dir / "projects" / "-work-api" / "s1"
        self.session_dir.mkdir(parents=True)
        self.session = CanonicalSession(source=SessionSource.CLAUDE_CODE, session_id="s1", project_path="/work/api")

    async def asyncTearDown(self) -> None:
        self._tmp.cleanup()

    async def test_delete_twice_succeeds_both_times(self) -> None:
        first = await delete_session_async(self.session, self.config)
        second = await delete_session_async(self.session, self.config)

        self.assertTrue(first.ok)
        self.assertTrue(second.ok)
        self.assertEqual(first.errors, [])
        self.assertNotIn('"s1"', self.history.read_text(encoding="utf-8"))
        self.assertFalse(self.session_dir.exists())

    async def test_partial_failure_reports_each_failed_step(self) -> None:
        with patch(
            "agf.parsers.platforms.claude_code.parser.rewrite_jsonl_excluding",
            side_effect=PermissionError("read-only file system"),
        ):
            result = await delete_session_async(self.session, self.config)

        self.assertFalse(result.ok)
        self.assertEqual(result.source, SessionSource.CLAUDE_CODE)
        self.assertEqual(len(result.errors), 1)
        self.assertTrue(result.errors[0].startswith("rewrite history.jsonl"))
        # Steps after the failed one still ran.
        self.assertFalse(self.session_dir.exists())

        retried = await delete_session_async(self.session, self.config)
        self.assertTrue(retried.ok)
        self.assertNotIn('"s1"', self.history.read_text(encoding="utf-8"))

    async def test_session_without_id_is_rejected(self) -> None:
        result = await delete_session_async(
            CanonicalSession(source=SessionSource.CODEX, session_id=""),
            self.config,
        )

        self.assertFalse(result.ok)
        self.assertTrue(result.errors)

    async def test_unexpected_adapter_error_is_reported(self) -> None:
        with patch("agf.delete.get_adapter", return_value=_ExplodingAdapter()):
            result = await delete_session_async(self.session, self.config)

        self.assertFalse(result.ok)
        self.assertEqual(result.errors, ["unexpected"])


class BlockingDeleteTests(unittest.TestCase):
    def test_blocking_entry_point(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = make_config(Path(tmp))
            history = write_jsonl(
                config.locations.codex_dir / "history.jsonl",
                [{"session_id": "c1", "text": "x", "ts": 1}],
            )

            result = delete_session(CanonicalSession(source=SessionSource.CODEX, session_id="c1"), config)

            self.assertTrue(result.ok)
            self.assertEqual(history.read_text(encoding="utf-8"), "")


if __name__ == "__main__":
    unittest.main()
