"""Aggregate sessions from every source and enrich them with live git status.

All adapters run concurrently in one task group; so do the git checks (one
per distinct project path). A failing or timed-out adapter contributes an
empty list and a timed-out git check reports unknown; nothing aborts the
scan as a whole.
"""
from __future__ import annotations

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional

from agf import git
from agf.async_utils import run_sync
from agf.config import load_scan_config
from agf.models import CanonicalSession, GitStatus, ScanConfig
from agf.parsers.platforms.base import SessionAdapter
from agf.parsers.platforms.registry import iter_adapters

logger = logging.getLogger("agf.scanner")

GIT_WORKERS = 8


async def _run_adapter(adapter: SessionAdapter, config: ScanConfig) -> list[CanonicalSession]:
    started = time.monotonic()
    try:
        if config.adapter_timeout:
            sessions = await asyncio.wait_for(adapter.scan(config), timeout=config.adapter_timeout)
        else:
            sessions = await adapter.scan(config)
    except asyncio.TimeoutError:
        logger.warning(
            "%s scan timed out after %.1fs; reporting no sessions",
            adapter.source.display_name,
            config.adapter_timeout,
        )
        return []
    except Exception as exc:
        logger.warning("%s scan failed: %s", adapter.source.display_name, exc)
        return []
    logger.debug(
        "%s: %d sessions in %.0fms",
        adapter.source.display_name,
        len(sessions),
        (time.monotonic() - started) * 1000,
    )
    return sessions


def merge_sessions(batches: Iterable[list[CanonicalSession]]) -> list[CanonicalSession]:
    """Merge adapter outputs, keeping the newest record per ``(source, session_id)``."""
    merged: dict[tuple, CanonicalSession] = {}
    for batch in batches:
        for session in batch:
            existing = merged.get(session.identity)
            if existing is None or session.timestamp > existing.timestamp:
                merged[session.identity] = session
    return list(merged.values())


def _release(done: asyncio.Future, slots: asyncio.Semaphore) -> None:
    slots.release()
    if not done.cancelled() and done.exception() is not None:
        logger.debug("git check raised: %s", done.exception())


async def _inspect_path(
    project_path: str,
    timeout: Optional[float],
    executor: ThreadPoolExecutor,
    slots: asyncio.Semaphore,
) -> GitStatus:
    # The timeout only covers the check itself, not time spent waiting for a worker.
    await slots.acquire()
    loop = asyncio.get_running_loop()
    check = loop.run_in_executor(executor, git.inspect, project_path, timeout)
    check.add_done_callback(lambda done: _release(done, slots))
    try:
        if timeout:
            return await asyncio.wait_for(asyncio.shield(check), timeout=timeout)
        return await check
    except asyncio.TimeoutError:
        logger.warning("git check timed out for %s", project_path)
    except Exception as exc:
        logger.debug("git check failed for %s: %s", project_path, exc)
    return GitStatus()


async def enrich_sessions(
    sessions: list[CanonicalSession],
    timeout: Optional[float] = None,
    max_workers: int = GIT_WORKERS,
) -> list[CanonicalSession]:
    """Fill ``git_branch``/``git_dirty`` with one check per distinct project path.

    A live branch replaces whatever the adapter recorded; when none can be
    read the adapter's value is kept.
    """
    paths = sorted({session.project_path for session in sessions if session.project_path})
    if not paths:
        return sessions
    # A check stuck past its timeout keeps its worker until git itself gives up.
    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="agf-git")
    slots = asyncio.Semaphore(max_workers)
    try:
        results = await asyncio.gather(
            *(_inspect_path(path, timeout, executor, slots) for path in paths)
        )
    finally:
        executor.shutdown(wait=False)
    by_path = dict(zip(paths, results))
    for session in sessions:
        status = by_path.get(session.project_path)
        if status is None:
            continue
        if status.branch:
            session.git_branch = status.branch
        session.git_dirty = status.dirty
    return sessions


async def scan_all_async(config: ScanConfig) -> list[CanonicalSession]:
    adapters = iter_adapters(config.sources)
    batches = await asyncio.gather(*(_run_adapter(adapter, config) for adapter in adapters))
    sessions = merge_sessions(batches)

    if config.git_enrichment:
        sessions = await enrich_sessions(sessions, timeout=config.git_timeout)

    sessions.sort(key=lambda s: s.timestamp, reverse=True)
    if config.limit is not None and config.limit >= 0:
        sessions = sessions[: config.limit]
    logger.info("Scanned %d sessions from %d sources", len(sessions), len(adapters))
    return sessions


def scan_all(config: ScanConfig | None = None) -> list[CanonicalSession]:
    """Blocking entry point: scan every source and return sessions newest first."""
    if config is None:
        config = load_scan_config()
    return run_sync(scan_all_async(config))
