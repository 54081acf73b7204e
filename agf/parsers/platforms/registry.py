"""Session adapter registry: exactly one adapter per ``SessionSource``."""
from __future__ import annotations

from typing import Iterable

from agf.models import SessionSource
from agf.parsers.platforms.base import SessionAdapter
from agf.parsers.platforms.claude_code.parser import ClaudeCodeAdapter
from agf.parsers.platforms.codex.parser import CodexAdapter
from agf.parsers.platforms.cursor_agent.parser import CursorAgentAdapter
from agf.parsers.platforms.gemini.parser import GeminiAdapter
from agf.parsers.platforms.kiro.parser import KiroAdapter
from agf.parsers.platforms.opencode.parser import OpenCodeAdapter
from agf.parsers.platforms.pi.parser import PiAdapter

ADAPTERS: dict[SessionSource, SessionAdapter] = {
    adapter.source: adapter
    for adapter in (
        ClaudeCodeAdapter(),
        CodexAdapter(),
        OpenCodeAdapter(),
        PiAdapter(),
        KiroAdapter(),
        CursorAgentAdapter(),
        GeminiAdapter(),
    )
}


def get_adapter(source: SessionSource) -> SessionAdapter:
    try:
        return ADAPTERS[SessionSource(source)]
    except (KeyError, ValueError) as exc:
        raise ValueError(f"No adapter registered for source {source!r}") from exc


def iter_adapters(sources: Iterable[SessionSource] | None = None) -> list[SessionAdapter]:
    """Adapters for ``sources`` (all registered sources when ``None``)."""
    if sources is None:
        return list(ADAPTERS.values())
    wanted = {SessionSource(source) for source in sources}
    return [adapter for source, adapter in ADAPTERS.items() if source in wanted]
