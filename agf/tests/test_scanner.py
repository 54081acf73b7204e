import asyncio
import tempfile
import time
import unittest
from pathlib import Path
from unittest.mock import patch

from agf import scanner
from agf.models import CanonicalSession, GitStatus, SessionSource
from agf.tests.support import make_config


def _session(session_id: str, timestamp: int, source=SessionSource.CODEX, path: str = "/work/api", **extra):
    return CanonicalSession(
        source=source,
        session_id=session_id,
        project_name=Path(path).name if path else "",
        project_path=path,
        timestamp=timestamp,
        **extra,
    )


class _FakeAdapter:
    def __init__(self, source: SessionSource, sessions=None, error: Exception | None = None, delay: float = 0.0):
        self.source = source
        self._sessions = sessions or []
        self._error = error
        self._delay = delay

    async def scan(self, config):
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return list(self._sessions)


class ScannerTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    async def asyncTearDown(self) -> None:
        self._tmp.cleanup()

    async def test_failing_adapter_contributes_nothing(self) -> None:
        adapter = _FakeAdapter(SessionSource.KIRO, error=RuntimeError("database is locked"))
        self.assertEqual(await scanner._run_adapter(adapter, make_config(self.root)), [])

    async def test_slow_adapter_times_out(self) -> None:
        adapter = _FakeAdapter(SessionSource.GEMINI, [_session("g1", 1)], delay=1.0)
        config = make_config(self.root, adapter_timeout=0.01)
        self.assertEqual(await scanner._run_adapter(adapter, config), [])

    async def test_scan_all_merges_sorts_and_limits(self) -> None:
        adapters = [
            _FakeAdapter(SessionSource.CODEX, [_session("c1", 1000), _session("c2", 3000)]),
            _FakeAdapter(SessionSource.KIRO, error=RuntimeError("boom")),
            _FakeAdapter(SessionSource.CODEX, [_session("c1", 5000), _session("c3", 2000)]),
            _FakeAdapter(SessionSource.PI, [_session("c1", 4000, source=SessionSource.PI)]),
        ]

        with patch("agf.scanner.iter_adapters", return_value=adapters):
            sessions = await scanner.scan_all_async(make_config(self.root))
            limited = await scanner.scan_all_async(make_config(self.root, limit=2))

        self.assertEqual(
            [(s.source.value, s.session_id, s.timestamp) for s in sessions],
            [("codex", "c1", 5000), ("pi", "c1", 4000), ("codex", "c2", 3000), ("codex", "c3", 2000)],
        )
        self.assertEqual([s.timestamp for s in limited], [5000, 4000])

    async def test_each_project_path_is_checked_once(self) -> None:
        sessions = [
            _session("a", 1, path="/work/api"),
            _session("b", 2, path="/work/api", source=SessionSource.PI),
            _session("c", 3, path=""),
        ]

        with patch("agf.git.inspect", return_value=GitStatus(branch="main", dirty=True)) as inspect:
            enriched = await scanner.enrich_sessions(sessions, timeout=1.0)

        inspect.assert_called_once_with("/work/api", 1.0)
        self.assertEqual([(s.git_branch, s.git_dirty) for s in enriched[:2]], [("main", True)] * 2)
        self.assertIsNone(enriched[2].git_branch)
        self.assertIsNone(enriched[2].git_dirty)

    async def test_queued_checks_are_not_timed_out(self) -> None:
        sessions = [_session(f"s{i}", i, path=f"/work/p{i}") for i in range(20)]

        def slow_inspect(path, timeout):
            time.sleep(0.2)
            return GitStatus(branch="main", dirty=True)

        with patch("agf.git.inspect", side_effect=slow_inspect):
            enriched = await scanner.enrich_sessions(sessions, timeout=0.5, max_workers=4)

        self.assertEqual([s.git_dirty for s in enriched], [True] * 20)

    async def test_stuck_check_reports_unknown(self) -> None:
        sessions = [_session("a", 1, path="/work/slow"), _session("b", 2, path="/work/fast")]

        def inspect(path, timeout):
            if path == "/work/slow":
                time.sleep(0.5)
            return GitStatus(branch="main", dirty=False)

        with patch("agf.git.inspect", side_effect=inspect):
            enriched = await scanner.enrich_sessions(sessions, timeout=0.1, max_workers=2)

        self.assertIsNone(enriched[0].git_dirty)
        self.assertFalse(enriched[1].git_dirty)

    async def test_unreadable_branch_keeps_recorded_branch(self) -> None:
        sessions = [_session("a", 1, git_branch="recorded")]

        with patch("agf.git.inspect", return_value=GitStatus(branch=None, dirty=False)):
            enriched = await scanner.enrich_sessions(sessions)

        self.assertEqual(enriched[0].git_branch, "recorded")
        self.assertFalse(enriched[0].git_dirty)

    async def test_git_failure_reports_unknown(self) -> None:
        sessions = [_session("a", 1, git_branch="recorded")]

        with patch("agf.git.inspect", side_effect=OSError("no git")):
            enriched = await scanner.enrich_sessions(sessions)

        self.assertEqual(enriched[0].git_branch, "recorded")
        self.assertIsNone(enriched[0].git_dirty)

    async def test_enrichment_runs_when_enabled(self) -> None:
        adapters = [_FakeAdapter(SessionSource.CODEX, [_session("c1", 1)])]

        with patch("agf.scanner.iter_adapters", return_value=adapters), patch(
            "agf.git.inspect", return_value=GitStatus(branch="dev", dirty=False)
        ) as inspect:
            sessions = await scanner.scan_all_async(make_config(self.root, git_enrichment=True))

        inspect.assert_called_once()
        self.assertEqual(sessions[0].git_branch, "dev")


class _StuckThreadAdapter:
    source = SessionSource.CURSOR_AGENT

    async def scan(self, config):
        await asyncio.to_thread(time.sleep, 1.5)
        return []


class MergeTests(unittest.TestCase):
    def test_newest_record_wins_per_identity(self) -> None:
        merged = scanner.merge_sessions([
            [_session("x", 1, path="/old")],
            [_session("x", 2, path="/new"), _session("x", 9, source=SessionSource.PI)],
        ])

        by_identity = {s.identity: s for s in merged}
        self.assertEqual(len(merged), 2)
        self.assertEqual(by_identity[(SessionSource.CODEX, "x")].project_path, "/new")

    def test_blocking_entry_point(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with patch("agf.scanner.iter_adapters", return_value=[_FakeAdapter(SessionSource.CODEX, [_session("c1", 1)])]):
                sessions = scanner.scan_all(make_config(Path(tmp)))
        self.assertEqual([s.session_id for s in sessions], ["c1"])

    def test_blocking_entry_point_honors_adapter_timeout(self) -> None:
        adapters = [_StuckThreadAdapter(), _FakeAdapter(SessionSource.CODEX, [_session("c1", 1)])]
        with tempfile.TemporaryDirectory() as tmp:
            config = make_config(Path(tmp), adapter_timeout=0.1)
            with patch("agf.scanner.iter_adapters", return_value=adapters):
                started = time.monotonic()
                sessions = scanner.scan_all(config)
                elapsed = time.monotonic() - started

        self.assertEqual([s.session_id for s in sessions], ["c1"])
        self.assertLess(elapsed, 1.0)


if __name__ == "__main__":
    unittest.main()
