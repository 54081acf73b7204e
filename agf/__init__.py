"""agf: find, rank and delete AI coding agent sessions."""

__version__ = "0.1.0"
