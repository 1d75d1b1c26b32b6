from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional

DEFAULT_MONTHLY_LIMIT = 50


def _parse_timestamp(value) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("Expected timestamp, got boolean")
    if isinstance(value, (int, float)):
        # Epoch milliseconds; 0 means "never updated"
        if value <= 0:
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Timestamp out of range: {value!r}") from e
    if not isinstance(value, str):
        raise ValueError(f"Expected ISO timestamp string, got {type(value).__name__}")
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class DatasetMetadata:
    """Refresh bookkeeping for the cached static dataset.

    download_count only grows; nothing in the service ever resets it.
    monthly_limit is reported but never enforced.
    """

    last_update_time: Optional[datetime] = None
    download_count: int = 0
    is_synthetic: bool = False
    monthly_limit: int = DEFAULT_MONTHLY_LIMIT
    last_download: Optional[datetime] = None

    def age(self, now: datetime) -> Optional[timedelta]:
        if self.last_update_time is None:
            return None
        return now - self.last_update_time

    def next_scheduled_update(self, interval: timedelta) -> Optional[datetime]:
        if self.last_update_time is None:
            return None
        return self.last_update_time + interval

    def with_update(self, now: datetime, *, is_synthetic: bool) -> "DatasetMetadata":
        """Return a copy stamped with a new successful acquisition."""
        return replace(self, last_update_time=now, is_synthetic=is_synthetic)

    def with_remote_call(self, now: datetime) -> "DatasetMetadata":
        """Return a copy that counts one more call against the provider quota."""
        return replace(self, download_count=self.download_count + 1, last_download=now)

    def to_dict(self, refresh_interval: Optional[timedelta] = None) -> dict:
        next_update = self.next_scheduled_update(refresh_interval) if refresh_interval else None
        return {
            "lastUpdateTime": _format_timestamp(self.last_update_time),
            "downloadCount": self.download_count,
            "lastDownload": _format_timestamp(self.last_download),
            "monthlyLimit": self.monthly_limit,
            "nextScheduledUpdate": _format_timestamp(next_update),
            "isSynthetic": self.is_synthetic,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DatasetMetadata":
        """Build metadata from its persisted form.

        Raises ValueError / TypeError on malformed content. Older files
        stored lastUpdateTime as epoch milliseconds and the synthetic flag
        under "mockData"; both are still accepted.
        """
        if not isinstance(data, dict):
            raise TypeError("Metadata record must be a JSON object")

        download_count = data.get("downloadCount", 0)
        monthly_limit = data.get("monthlyLimit", DEFAULT_MONTHLY_LIMIT)
        if isinstance(download_count, bool) or not isinstance(download_count, int) or download_count < 0:
            raise ValueError(f"Invalid downloadCount: {download_count!r}")
        if isinstance(monthly_limit, bool) or not isinstance(monthly_limit, int):
            raise ValueError(f"Invalid monthlyLimit: {monthly_limit!r}")

        is_synthetic = data.get("isSynthetic", data.get("mockData", False))
        if not isinstance(is_synthetic, bool):
            raise ValueError(f"Invalid isSynthetic: {is_synthetic!r}")

        return cls(
            last_update_time=_parse_timestamp(data.get("lastUpdateTime")),
            download_count=download_count,
            is_synthetic=is_synthetic,
            monthly_limit=monthly_limit,
            last_download=_parse_timestamp(data.get("lastDownload")),
        )


@dataclass(frozen=True)
class AcquisitionResult:
    """Outcome of one acquisition attempt."""

    used_remote: bool
    is_synthetic: bool
    metadata: DatasetMetadata
