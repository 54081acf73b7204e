"""Fixture builders shared by the agf test modules."""
import json
from pathlib import Path

from agf.models import ScanConfig, SourceLocations


def make_locations(root: Path) -> SourceLocations:
    return SourceLocations(
        claude_dir=root / ".claude",
        codex_dir=root / ".codex",
        pi_sessions_dir=root / ".pi" / "agent" / "sessions",
        opencode_dir=root / "opencode",
        kiro_dir=root / "kiro-cli",
        cursor_dir=root / ".cursor",
        gemini_dir=root / ".gemini",
    )


def make_config(root: Path, **overrides) -> ScanConfig:
    values = {"locations": make_locations(root), "git_enrichment": False}
    values.update(overrides)
    return ScanConfig(**values)


def write_jsonl(path: Path, entries: list) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("".join(json.dumps(entry) + "\n" for entry in entries), encoding="utf-8")
    return path
