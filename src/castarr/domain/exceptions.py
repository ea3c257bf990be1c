"""Castarr domain exceptions."""

from __future__ import annotations


class CastarrError(Exception):
    """Base class for all Castarr errors."""


class OperationCancelled(CastarrError):
    """Raised when a cancel token fires while an operation is in flight."""


class ManifestFetchError(CastarrError):
    """Network or upstream status failure while fetching a playlist."""


class ManifestParseError(CastarrError):
    """Raised when playlist text is not a valid HLS playlist."""


class SessionLoadError(CastarrError):
    """Required session inputs are missing (no episodes, bad index)."""
