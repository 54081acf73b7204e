"""Filesystem mutations used when deleting sessions."""
from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Iterable

logger = logging.getLogger("agf.delete")


def _line_has_id(line: str, field: str, value: str) -> bool:
    try:
        entry = json.loads(line)
    except json.JSONDecodeError:
        return False
    if not isinstance(entry, dict):
        return False
    found = entry.get(field)
    return isinstance(found, str) and found == value


def _atomic_write(path: Path, content: str) -> None:
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        try:
            shutil.copymode(path, tmp_name)
        except OSError:
            pass
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def rewrite_jsonl_excluding(path: Path, field: str, value: str) -> int:
    """Drop every JSONL line whose ``field`` equals ``value``.

    Remaining lines keep their order; blank lines are dropped and the file ends
    with exactly one newline (or is empty). The file is only rewritten when a
    line was actually removed. Returns the number of removed lines.
    """
    if not path.exists():
        return 0
    content = path.read_text(encoding="utf-8")
    kept: list[str] = []
    removed = 0
    for raw_line in content.split("\n"):
        line = raw_line.rstrip("\r")
        trimmed = line.strip()
        if not trimmed:
            continue
        if _line_has_id(trimmed, field, value):
            removed += 1
            continue
        kept.append(line)

    if not removed:
        return 0
    new_content = "\n".join(kept) + "\n" if kept else ""
    _atomic_write(path, new_content)
    logger.info("Removed %d line(s) for %s from %s", removed, value, path)
    return removed


def remove_dirs_named(base: Path, name: str) -> int:
    """Remove every directory called ``name`` anywhere under ``base``."""
    if not name or not base.is_dir():
        return 0
    removed = 0
    for current, dirnames, _ in os.walk(base):
        if name in dirnames:
            target = Path(current) / name
            shutil.rmtree(target)
            dirnames.remove(name)
            removed += 1
            logger.info("Removed session directory %s", target)
    return removed


def remove_files(paths: Iterable[Path]) -> int:
    removed = 0
    for path in paths:
        try:
            path.unlink()
        except FileNotFoundError:
            continue
        removed += 1
        logger.info("Removed session file %s", path)
    return removed
