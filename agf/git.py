"""Best-effort live git status for project directories."""
from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Optional

from agf.models import GitStatus

logger = logging.getLogger("agf.git")

_HEAD_REF_PREFIX = "ref:"
_BRANCH_REF_PREFIX = "refs/heads/"


def _git_dir(project_path: Path) -> Path | None:
    """Resolve ``.git``, following the ``gitdir:`` pointer file of linked work-trees."""
    dot_git = project_path / ".git"
    try:
        if dot_git.is_dir():
            return dot_git
        if not dot_git.is_file():
            return None
        content = dot_git.read_text(encoding="utf-8", errors="replace").strip()
    except OSError:
        return None
    if not content.startswith("gitdir:"):
        return None
    target = Path(content[len("gitdir:"):].strip())
    if not target.is_absolute():
        target = project_path / target
    try:
        return target if target.is_dir() else None
    except OSError:
        return None


def read_head_branch(project_path: str) -> Optional[str]:
    """Current branch from ``.git/HEAD`` without spawning git.

    Returns ``None`` for non-repositories and detached HEADs.
    """
    if not project_path:
        return None
    git_dir = _git_dir(Path(project_path))
    if git_dir is None:
        return None
    try:
        head = (git_dir / "HEAD").read_text(encoding="utf-8", errors="replace").strip()
    except OSError:
        return None
    if not head.startswith(_HEAD_REF_PREFIX):
        return None
    ref = head[len(_HEAD_REF_PREFIX):].strip()
    if ref.startswith(_BRANCH_REF_PREFIX):
        return ref[len(_BRANCH_REF_PREFIX):] or None
    return ref or None


def is_dirty(project_path: str, timeout: float | None = None) -> Optional[bool]:
    """True if dirty, False if clean, None if not a repo or the check failed."""
    if not project_path:
        return None
    try:
        if not (Path(project_path) / ".git").exists():
            return None
    except OSError:
        return None
    try:
        result = subprocess.run(
            ["git", "-C", project_path, "status", "--porcelain"],
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning("git status timed out for %s", project_path)
        return None
    except OSError as exc:
        logger.debug("git status failed for %s: %s", project_path, exc)
        return None
    if result.returncode != 0:
        return None
    return bool(result.stdout.strip())


def inspect(project_path: str, timeout: float | None = None) -> GitStatus:
    return GitStatus(
        branch=read_head_branch(project_path),
        dirty=is_dirty(project_path, timeout=timeout),
    )
