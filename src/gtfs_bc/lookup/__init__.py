from .gtfs_lookup_store import GTFSLookupStore, LookupSnapshot, EMPTY_SNAPSHOT
from .dataset_indexer import DatasetIndexer

__all__ = ["GTFSLookupStore", "LookupSnapshot", "EMPTY_SNAPSHOT", "DatasetIndexer"]
