"""Session discovery API consumed by the session picker UI."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from agf import config
from agf.delete import delete_session_async
from agf.errors import ConfigurationError
from agf.fuzzy import rank
from agf.models import (
    CanonicalSession,
    DeleteResult,
    RankedSession,
    RankOptions,
    ScanConfig,
    SearchScope,
    SessionSource,
)
from agf.scanner import scan_all_async

logger = logging.getLogger("agf.api")

sessions_router = APIRouter(prefix="/api/sessions", tags=["sessions"])


class SessionListResponse(BaseModel):
    items: list[RankedSession]
    total: int
    scanned: int


class SourceInfo(BaseModel):
    id: SessionSource
    name: str
    cli: str


def _scan_config(**overrides) -> ScanConfig:
    try:
        base = config.load_scan_config()
    except ConfigurationError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    return base.model_copy(update={k: v for k, v in overrides.items() if v is not None})


@sessions_router.get("", response_model=SessionListResponse)
async def list_sessions(
    q: str = "",
    scope: SearchScope = "name_path",
    summaryCount: int = 5,
    limit: Optional[int] = None,
    source: Optional[list[SessionSource]] = Query(None),
):
    """Scan every source, then rank the sessions against ``q``."""
    if summaryCount < 0:
        raise HTTPException(status_code=422, detail="summaryCount must be >= 0")
    scan_config = _scan_config(limit=limit, sources=source or None)
    sessions = await scan_all_async(scan_config)
    ranked = rank(sessions, q, RankOptions(max_summaries=summaryCount, scope=scope))
    return SessionListResponse(items=ranked, total=len(ranked), scanned=len(sessions))


@sessions_router.get("/sources", response_model=list[SourceInfo])
def list_sources():
    return [
        SourceInfo(id=source, name=source.display_name, cli=source.cli_name)
        for source in SessionSource
    ]


@sessions_router.post("/delete", response_model=DeleteResult)
async def delete_session(session: CanonicalSession):
    """Erase one session's data; a partial failure is reported as a 500."""
    result = await delete_session_async(session, _scan_config())
    if not result.ok:
        logger.error("Delete failed for %s/%s: %s", session.source.value, session.session_id, result.errors)
        raise HTTPException(status_code=500, detail=result.model_dump(mode="json"))
    return result
