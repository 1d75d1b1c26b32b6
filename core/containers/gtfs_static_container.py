from datetime import timedelta

from dependency_injector import containers, providers

from src.gtfs_bc.feed.infrastructure.services.dataset_acquirer import DatasetAcquirer
from src.gtfs_bc.feed.infrastructure.services.metadata_store import MetadataStore
from src.gtfs_bc.feed.infrastructure.services.refresh_scheduler import RefreshScheduler
from src.gtfs_bc.feed.infrastructure.services.static_dataset_loader import StaticDatasetLoader
from src.gtfs_bc.lookup.dataset_indexer import DatasetIndexer
from src.gtfs_bc.lookup.gtfs_lookup_store import GTFSLookupStore
from src.gtfs_bc.realtime.infrastructure.services.gtfs_rt_fetcher import VehiclePositionsFetcher
from src.gtfs_bc.realtime.infrastructure.services.vehicle_identity_resolver import VehicleIdentityResolver
from src.gtfs_bc.realtime.infrastructure.services.vehicle_identity_tables import load_identity_tables


class GTFSStaticContainer(containers.DeclarativeContainer):
    """Dependency injection container for the static dataset and vehicle resolution.

    Everything is a Singleton: the lookup store and the scheduler must be
    shared by the lifespan, the routers and the refresh endpoint.
    """

    # External dependencies
    settings = providers.Dependency()
    # httpx transport override (tests inject httpx.MockTransport)
    transport = providers.Object(None)

    refresh_interval = providers.Callable(
        timedelta,
        days=settings.provided.GTFS_REFRESH_INTERVAL_DAYS,
    )

    # ===== Static dataset =====
    metadata_store = providers.Singleton(
        MetadataStore,
        path=settings.provided.metadata_path,
        refresh_interval=refresh_interval,
    )

    dataset_acquirer = providers.Singleton(
        DatasetAcquirer,
        metadata_store=metadata_store,
        extract_dir=settings.provided.extract_dir,
        archive_path=settings.provided.archive_path,
        static_url=settings.provided.GTFS_STATIC_URL,
        api_key=settings.provided.static_api_key,
        refresh_interval=refresh_interval,
        monthly_limit=settings.provided.GTFS_MONTHLY_LIMIT,
        synthetic_fallback=settings.provided.GTFS_SYNTHETIC_FALLBACK,
        timeout=settings.provided.GTFS_DOWNLOAD_TIMEOUT,
        transport=transport,
    )

    dataset_indexer = providers.Singleton(
        DatasetIndexer,
        extract_dir=settings.provided.extract_dir,
    )

    lookup_store = providers.Singleton(GTFSLookupStore)

    static_dataset_loader = providers.Singleton(
        StaticDatasetLoader,
        acquirer=dataset_acquirer,
        indexer=dataset_indexer,
        store=lookup_store,
    )

    refresh_scheduler = providers.Singleton(
        RefreshScheduler,
        loader=static_dataset_loader,
        refresh_interval=refresh_interval,
    )

    # ===== Vehicle resolution =====
    identity_tables = providers.Singleton(
        load_identity_tables,
        path=settings.provided.VEHICLE_IDENTITY_TABLES_PATH,
    )

    vehicle_identity_resolver = providers.Singleton(
        VehicleIdentityResolver,
        store=lookup_store,
        tables=identity_tables,
    )

    vehicle_positions_fetcher = providers.Singleton(
        VehiclePositionsFetcher,
        resolver=vehicle_identity_resolver,
        url=settings.provided.GTFS_RT_VEHICLE_POSITIONS_URL,
        api_key=settings.provided.API_KEY,
        timeout=settings.provided.GTFS_RT_TIMEOUT,
        transport=transport,
    )
