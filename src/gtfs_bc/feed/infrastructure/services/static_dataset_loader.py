import logging
from datetime import datetime
from typing import Optional

from src.gtfs_bc.feed.domain.entities.dataset_metadata import DatasetMetadata
from src.gtfs_bc.feed.domain.exceptions import DatasetIndexError, DatasetUnavailableError
from src.gtfs_bc.feed.infrastructure.services.dataset_acquirer import DatasetAcquirer
from src.gtfs_bc.lookup.dataset_indexer import DatasetIndexer
from src.gtfs_bc.lookup.gtfs_lookup_store import GTFSLookupStore

logger = logging.getLogger(__name__)


class StaticDatasetLoader:
    """Acquire, index and publish the static dataset in one step."""

    def __init__(self, acquirer: DatasetAcquirer, indexer: DatasetIndexer, store: GTFSLookupStore):
        self.acquirer = acquirer
        self.indexer = indexer
        self.store = store

    @property
    def metadata(self) -> Optional[DatasetMetadata]:
        return self.acquirer.metadata

    @property
    def last_update_time(self) -> Optional[datetime]:
        metadata = self.acquirer.metadata
        return metadata.last_update_time if metadata else None

    @property
    def is_synthetic(self) -> bool:
        metadata = self.acquirer.metadata
        return bool(metadata and metadata.is_synthetic)

    async def load(self, force_refresh: bool = False) -> bool:
        """Returns False on failure; the previously published tables stay in place."""
        try:
            await self.acquirer.ensure_fresh(force_refresh)
            snapshot = await self.indexer.build()
        except (DatasetUnavailableError, DatasetIndexError) as e:
            logger.error(f"Error loading GTFS data: {e}")
            return False

        self.store.publish(snapshot)
        logger.info("GTFS data loaded and ready")
        return True

    async def refresh(self) -> bool:
        """Forced refresh requested by an operator."""
        logger.info("Manual GTFS refresh requested")
        metadata = await self.acquirer.metadata_store.load()
        download_count = metadata.download_count if metadata else 0
        monthly_limit = metadata.monthly_limit if metadata else self.acquirer.monthly_limit
        logger.warning(f"This uses one GTFS API call ({download_count + 1}/{monthly_limit} per month)")
        return await self.load(force_refresh=True)
