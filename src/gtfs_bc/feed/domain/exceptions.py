"""Errors raised while acquiring and indexing the static GTFS dataset."""

from typing import Optional


class GTFSDatasetError(Exception):
    """Base class for static dataset errors."""


class DatasetUnavailableError(GTFSDatasetError):
    """Raised when the remote source and every fallback are unavailable."""


class DatasetFetchError(GTFSDatasetError):
    """Raised on transport failure, non-2xx status or an empty archive body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DatasetIndexError(GTFSDatasetError):
    """Raised when the extracted tables cannot be read."""
