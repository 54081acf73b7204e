"""Exception hierarchy shared by scanners and the deletion coordinator."""
from __future__ import annotations


class AgfError(Exception):
    """Base class for all agf errors."""


class ConfigurationError(AgfError):
    """No source location can be computed (e.g. the home directory is unknown)."""


class DeletionError(AgfError):
    """One or more critical deletion steps failed.

    ``errors`` holds the message of every failed step, in the order the steps
    were attempted.
    """

    def __init__(self, source: str, session_id: str, errors: list[str]):
        joined = "; ".join(errors) if errors else "unknown failure"
        super().__init__(f"Failed to delete {source} session {session_id}: {joined}")
        self.source = source
        self.session_id = session_id
        self.errors = list(errors)
