import asyncio
import json
import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Optional

from src.gtfs_bc.feed.domain.entities.dataset_metadata import DatasetMetadata

logger = logging.getLogger(__name__)


class MetadataStore:
    """Persists DatasetMetadata as a single JSON document.

    save() overwrites the whole record and returns only once the file has
    been replaced on disk.
    """

    def __init__(self, path: Path, refresh_interval: Optional[timedelta] = None):
        self.path = Path(path)
        self.refresh_interval = refresh_interval

    async def load(self) -> Optional[DatasetMetadata]:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self.load_sync)

    async def save(self, metadata: DatasetMetadata) -> None:
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self.save_sync, metadata)

    def load_sync(self) -> Optional[DatasetMetadata]:
        """Return the stored metadata, or None for a first run."""
        if not self.path.exists():
            logger.info(f"No GTFS metadata at {self.path}, treating as first run")
            return None
        try:
            with open(self.path, encoding="utf-8") as f:
                metadata = DatasetMetadata.from_dict(json.load(f))
        except (OSError, OverflowError, ValueError, TypeError) as e:
            logger.warning(f"Ignoring unreadable GTFS metadata {self.path}: {e}")
            return None

        logger.info(
            f"GTFS metadata: last update {metadata.last_update_time}, "
            f"{metadata.download_count} API calls so far (max {metadata.monthly_limit}/month)"
            + (" [synthetic data]" if metadata.is_synthetic else "")
        )
        return metadata

    def save_sync(self, metadata: DatasetMetadata) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(metadata.to_dict(self.refresh_interval), f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.path)
