"""agf configuration."""
import os
import sys
from pathlib import Path
from typing import Optional

from agf.errors import ConfigurationError
from agf.models import ScanConfig, SourceLocations


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_path(name: str) -> Optional[Path]:
    value = (os.getenv(name) or "").strip()
    if not value:
        return None
    return Path(value).expanduser()


# Scanning
MAX_SUMMARIES = _env_int("AGF_MAX_SUMMARIES", 20)
MAX_SESSIONS = _env_int("AGF_MAX_SESSIONS", None)
SCAN_TIMEOUT_SECONDS = _env_float("AGF_SCAN_TIMEOUT_SECONDS", 10.0)
GIT_TIMEOUT_SECONDS = _env_float("AGF_GIT_TIMEOUT_SECONDS", 2.0)
GIT_ENRICHMENT = _env_bool("AGF_GIT_ENRICHMENT", True)

# Ranking defaults
SUMMARY_SEARCH_COUNT = _env_int("AGF_SUMMARY_SEARCH_COUNT", 5)
SEARCH_SCOPE = os.getenv("AGF_SEARCH_SCOPE", "name_path")

# Server settings
HOST = os.getenv("AGF_HOST", "127.0.0.1")
PORT = int(os.getenv("AGF_PORT", "8765"))

# CORS
FRONTEND_ORIGIN = os.getenv("AGF_FRONTEND_ORIGIN", "http://localhost:3000")


def home_dir() -> Path:
    try:
        home = Path.home()
    except (KeyError, RuntimeError) as exc:
        raise ConfigurationError("No home directory found") from exc
    if not str(home).strip():
        raise ConfigurationError("No home directory found")
    return home


def _xdg_data_dir(home: Path) -> Path:
    xdg = (os.getenv("XDG_DATA_HOME") or "").strip()
    if xdg:
        return Path(xdg)
    return home / ".local" / "share"


def data_dir(home: Path) -> Path:
    """Platform data directory: Application Support on macOS, XDG elsewhere."""
    if sys.platform == "darwin":
        return home / "Library" / "Application Support"
    return _xdg_data_dir(home)


def resolve_locations(home: Path | None = None) -> SourceLocations:
    """Compute every source root, honoring ``AGF_<SOURCE>_DIR`` overrides."""
    home = home if home is not None else home_dir()
    data = data_dir(home)
    return SourceLocations(
        claude_dir=_env_path("AGF_CLAUDE_DIR") or home / ".claude",
        codex_dir=_env_path("AGF_CODEX_DIR") or home / ".codex",
        pi_sessions_dir=_env_path("AGF_PI_SESSIONS_DIR") or home / ".pi" / "agent" / "sessions",
        # OpenCode always uses the XDG layout, macOS included.
        opencode_dir=_env_path("AGF_OPENCODE_DIR") or _xdg_data_dir(home) / "opencode",
        kiro_dir=_env_path("AGF_KIRO_DIR") or data / "kiro-cli",
        cursor_dir=_env_path("AGF_CURSOR_DIR") or home / ".cursor",
        gemini_dir=_env_path("AGF_GEMINI_DIR") or home / ".gemini",
    )


def load_scan_config(home: Path | None = None) -> ScanConfig:
    return ScanConfig(
        locations=resolve_locations(home),
        max_summaries=max(0, MAX_SUMMARIES or 0),
        adapter_timeout=SCAN_TIMEOUT_SECONDS if SCAN_TIMEOUT_SECONDS > 0 else None,
        git_timeout=GIT_TIMEOUT_SECONDS if GIT_TIMEOUT_SECONDS > 0 else None,
        git_enrichment=GIT_ENRICHMENT,
        limit=MAX_SESSIONS,
    )
