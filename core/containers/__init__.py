from .gtfs_static_container import GTFSStaticContainer

__all__ = ["GTFSStaticContainer"]
