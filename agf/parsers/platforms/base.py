"""Adapter interface implemented once per session source."""
from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, ClassVar

from agf.errors import DeletionError
from agf.models import CanonicalSession, DeleteResult, ScanConfig, SessionSource

logger = logging.getLogger("agf.parsers")


@dataclass
class DeletionStep:
    """One store mutation needed to erase a session.

    ``run`` may be a plain callable (executed in a worker thread) or a
    coroutine function. Non-critical steps clean up secondary mirrors: their
    failure is reported as a warning and never fails the deletion.
    """

    description: str
    run: Callable[[], Any]
    critical: bool = True


class SessionAdapter:
    """Reads one tool's session store and knows how to erase from it.

    Subclasses implement either ``scan_sync`` (blocking filesystem work, run in
    a worker thread) or override ``_scan`` (native async, e.g. aiosqlite), plus
    ``deletion_steps``.
    """

    source: ClassVar[SessionSource]

    async def scan(self, config: ScanConfig) -> list[CanonicalSession]:
        """Scan the source; never raises."""
        try:
            return await self._scan(config)
        except Exception as exc:
            logger.warning("%s scan failed: %s", self.source.display_name, exc)
            return []

    async def _scan(self, config: ScanConfig) -> list[CanonicalSession]:
        return await asyncio.to_thread(self.scan_sync, config)

    def scan_sync(self, config: ScanConfig) -> list[CanonicalSession]:
        raise NotImplementedError

    def deletion_steps(self, session: CanonicalSession, config: ScanConfig) -> list[DeletionStep]:
        raise NotImplementedError

    async def delete(self, session: CanonicalSession, config: ScanConfig) -> DeleteResult:
        """Run every deletion step independently.

        Raises ``DeletionError`` carrying each failed critical step's error.
        """
        errors: list[str] = []
        warnings: list[str] = []
        for step in self.deletion_steps(session, config):
            try:
                if inspect.iscoroutinefunction(step.run):
                    await step.run()
                else:
                    await asyncio.to_thread(step.run)
            except Exception as exc:
                message = f"{step.description}: {exc}"
                if step.critical:
                    errors.append(message)
                else:
                    logger.warning("Best-effort cleanup failed (%s)", message)
                    warnings.append(message)

        if errors:
            raise DeletionError(self.source.value, session.session_id, errors)
        return DeleteResult(
            ok=True,
            source=self.source,
            session_id=session.session_id,
            warnings=warnings,
        )
