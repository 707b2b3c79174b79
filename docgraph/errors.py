"""Exception types raised by docgraph's glue layers."""

from __future__ import annotations


class DocgraphError(Exception):
    """Base class for docgraph errors."""


class HistoryUnavailableError(DocgraphError):
    """Version-control history cannot be read (no git, not a repo, bad revision)."""


class CacheCorruptionError(DocgraphError):
    """A cache key exists but its content cannot be decoded."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"cache key '{key}' is unreadable: {reason}")
        self.key = key
        self.reason = reason
