"""Deletion coordinator: erase a session's data from its source store.

Only session data is removed, never the project directory. Deleting an
already-absent session succeeds without touching anything, so a retry after
a partial failure is always safe.
"""
from __future__ import annotations

import logging

from agf.async_utils import run_sync
from agf.config import load_scan_config
from agf.errors import DeletionError
from agf.models import CanonicalSession, DeleteResult, ScanConfig
from agf.parsers.platforms.registry import get_adapter

logger = logging.getLogger("agf.delete")


async def delete_session_async(session: CanonicalSession, config: ScanConfig) -> DeleteResult:
    if not session.session_id:
        return DeleteResult(
            ok=False,
            source=session.source,
            session_id=session.session_id,
            errors=["session has no id"],
        )

    adapter = get_adapter(session.source)
    try:
        result = await adapter.delete(session, config)
    except DeletionError as exc:
        logger.error("%s", exc)
        return DeleteResult(
            ok=False,
            source=session.source,
            session_id=session.session_id,
            errors=exc.errors,
        )
    except Exception as exc:
        logger.exception("Unexpected failure deleting %s session %s", session.source.value, session.session_id)
        return DeleteResult(
            ok=False,
            source=session.source,
            session_id=session.session_id,
            errors=[str(exc) or exc.__class__.__name__],
        )

    logger.info("Deleted %s session %s", session.source.display_name, session.session_id)
    return result


def delete_session(session: CanonicalSession, config: ScanConfig | None = None) -> DeleteResult:
    """Blocking entry point used by the UI, one session at a time."""
    if config is None:
        config = load_scan_config()
    return run_sync(delete_session_async(session, config))
