"""Exception taxonomy for autositemap.

Defines a small hierarchy of exceptions raised while deriving and planning a
reconciliation pass. Errors that abort a pass (snapshot, name collision,
fingerprint) are caught at the pass boundary and logged; platform errors are
recovered per action by the executor.

All exceptions accept a human-readable message. ``str(exception)`` returns the
message unchanged.
"""

from __future__ import annotations


class SitemapError(Exception):
    """Base exception for autositemap errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(SitemapError):
    """Raised when settings fail validation."""


class SnapshotError(SitemapError):
    """Raised when the item tree cannot be fetched or the index root is missing."""


class NameCollisionError(SitemapError):
    """Raised when two containers derive the same index entry name."""

    def __init__(self, message: str, *, name: str) -> None:
        super().__init__(message)
        self.name = name


class FingerprintError(SitemapError):
    """Raised when an entry's children cannot be encoded for hashing."""


class PlatformError(SitemapError):
    """Raised by platform adapters when a single API call fails."""
