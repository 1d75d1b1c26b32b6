from typing import Optional


class LiveFeedError(Exception):
    """Raised when the live vehicle positions feed cannot be fetched or decoded."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
