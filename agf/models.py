"""Pydantic models shared by the scanners, ranking engine and API."""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field

# ── Sources ─────────────────────────────────────────────────────────


class SessionSource(str, Enum):
    CLAUDE_CODE = "claude_code"
    CODEX = "codex"
    PI = "pi"
    OPENCODE = "opencode"
    KIRO = "kiro"
    CURSOR_AGENT = "cursor_agent"
    GEMINI = "gemini"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def cli_name(self) -> str:
        """Executable used to launch the tool."""
        return _CLI_NAMES[self]


_DISPLAY_NAMES = {
    SessionSource.CLAUDE_CODE: "Claude Code",
    SessionSource.CODEX: "Codex",
    SessionSource.PI: "pi",
    SessionSource.OPENCODE: "OpenCode",
    SessionSource.KIRO: "Kiro",
    SessionSource.CURSOR_AGENT: "Cursor CLI",
    SessionSource.GEMINI: "Gemini",
}

_CLI_NAMES = {
    SessionSource.CLAUDE_CODE: "claude",
    SessionSource.CODEX: "codex",
    SessionSource.PI: "pi",
    SessionSource.OPENCODE: "opencode",
    SessionSource.KIRO: "kiro-cli",
    SessionSource.CURSOR_AGENT: "cursor-agent",
    SessionSource.GEMINI: "gemini",
}


# ── Session-related models ──────────────────────────────────────────


class CanonicalSession(BaseModel):
    source: SessionSource
    session_id: str
    project_name: str = ""
    project_path: str = ""
    summaries: list[str] = Field(default_factory=list)  # newest first
    timestamp: int = Field(default=0, ge=0)  # Unix ms, 0 = unknown
    git_branch: Optional[str] = None
    git_dirty: Optional[bool] = None
    worktree: Optional[str] = None

    @property
    def identity(self) -> tuple[SessionSource, str]:
        return (self.source, self.session_id)

    def display_path(self, home: Path | None = None) -> str:
        """Project path with the home directory abbreviated to ``~``."""
        home_str = str(home) if home is not None else ""
        if home_str and self.project_path.startswith(home_str):
            rest = self.project_path[len(home_str):]
            if not rest or rest.startswith("/"):
                return f"~{rest}"
        return self.project_path

    def search_text(self, max_summaries: int, include_summaries: bool) -> str:
        parts = [self.project_name, self.project_path]
        if include_summaries:
            parts.extend(self.summaries[: max(0, max_summaries)])
            if self.git_branch:
                parts.append(self.git_branch)
        return " ".join(parts)


class GitStatus(BaseModel):
    branch: Optional[str] = None
    dirty: Optional[bool] = None


# ── Configuration models ────────────────────────────────────────────


class SourceLocations(BaseModel):
    """Resolved on-disk root for every source."""

    claude_dir: Path
    codex_dir: Path
    pi_sessions_dir: Path
    opencode_dir: Path
    kiro_dir: Path
    cursor_dir: Path
    gemini_dir: Path

    @property
    def opencode_db(self) -> Path:
        return self.opencode_dir / "opencode.db"

    @property
    def kiro_db(self) -> Path:
        return self.kiro_dir / "data.sqlite3"


class ScanConfig(BaseModel):
    locations: SourceLocations
    max_summaries: int = Field(default=20, ge=0)
    adapter_timeout: Optional[float] = 10.0
    git_timeout: Optional[float] = 2.0
    git_enrichment: bool = True
    limit: Optional[int] = None
    sources: Optional[list[SessionSource]] = None


# ── Ranking / deletion results ──────────────────────────────────────


SearchScope = Literal["name_path", "all"]


class RankOptions(BaseModel):
    max_summaries: int = Field(default=5, ge=0)
    scope: SearchScope = "name_path"

    @property
    def include_summaries(self) -> bool:
        return self.scope == "all"


class RankedSession(BaseModel):
    index: int  # position in the input list
    session: CanonicalSession
    score: int = 0
    positions: list[int] = Field(default_factory=list)


class DeleteResult(BaseModel):
    ok: bool
    source: SessionSource
    session_id: str
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
