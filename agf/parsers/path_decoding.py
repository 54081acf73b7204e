"""Recover real project paths from the directory names tools derive from them.

Two encodings are handled:

* dash-joined: ``/Users/alice/my-proj`` stored as ``Users-alice-my-proj``. The
  encoding is lossy (a dash may be a separator or part of a name), so the
  decoder searches segmentations against the filesystem.
* content-addressed: the directory is named by a hash of the path. Only a
  registry of known paths can reverse it.
"""
from __future__ import annotations

import hashlib
import os
import posixpath
import re
from typing import Callable, Iterable

DirOracle = Callable[[str], bool]

_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]")


def decode_dash_path(
    encoded: str,
    is_dir: DirOracle = os.path.isdir,
    root: str = "/",
) -> str | None:
    """Decode a dash-joined directory name into an existing directory path.

    Segments are tried longest-first; a candidate is only committed once the
    oracle confirms it is a directory, and the search backtracks when a
    branch cannot consume the rest of the name. Returns ``None`` when no
    segmentation names a real directory.
    """
    name = encoded.lstrip("-")
    if not name:
        return None
    parts = name.split("-")
    total = len(parts)
    dir_cache: dict[str, bool] = {}
    dead_ends: set[tuple[int, str]] = set()

    def check(path: str) -> bool:
        cached = dir_cache.get(path)
        if cached is None:
            try:
                cached = bool(is_dir(path))
            except OSError:
                cached = False
            dir_cache[path] = cached
        return cached

    def solve(index: int, current: str) -> str | None:
        if (index, current) in dead_ends:
            return None
        for end in range(total, index, -1):
            segment = "-".join(parts[index:end])
            if not segment:
                continue
            candidate = posixpath.join(current, segment)
            if not check(candidate):
                continue
            if end == total:
                return candidate
            result = solve(end, candidate)
            if result is not None:
                return result
        dead_ends.add((index, current))
        return None

    return solve(0, root)


def encode_claude_project_path(project_path: str) -> str:
    """Claude Code's per-project directory name: every non-alphanumeric becomes ``-``."""
    return _NON_ALNUM_RE.sub("-", project_path)


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def build_hash_lookup(
    known_paths: Iterable[str],
    digest: Callable[[str], str] = sha256_hex,
) -> dict[str, str]:
    """Map ``digest(path)`` back to ``path`` for every known real path."""
    return {digest(path): path for path in known_paths if path}


def short_hash_name(dir_name: str, length: int = 8) -> str:
    """Display name for a hashed directory whose real path is unknown."""
    return f"{dir_name[:length]}…"
