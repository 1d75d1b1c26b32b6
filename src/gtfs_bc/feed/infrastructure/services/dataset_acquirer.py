"""Keeps the on-disk static GTFS dataset fresh.

Decision order for ensure_fresh():
1. Cached copy younger than the refresh interval with files on disk: use it.
2. Otherwise download the archive. On failure keep existing files, else
   generate the synthetic dataset, else raise DatasetUnavailableError.
3. On success write the archive and unpack it; unpack failures fall back
   the same way as download failures.

The provider quota (monthly_limit) is tracked in the metadata but never
enforced here.
"""

import asyncio
import logging
import shutil
import zipfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional

import httpx

from src.gtfs_bc.feed.domain.entities.dataset_metadata import (
    AcquisitionResult,
    DatasetMetadata,
    DEFAULT_MONTHLY_LIMIT,
)
from src.gtfs_bc.feed.domain.exceptions import (
    DatasetFetchError,
    DatasetIndexError,
    DatasetUnavailableError,
)
from src.gtfs_bc.feed.infrastructure.services.metadata_store import MetadataStore
from src.gtfs_bc.feed.infrastructure.services.synthetic_dataset import write_synthetic_dataset

logger = logging.getLogger(__name__)

REQUIRED_FILES = ("routes.txt", "trips.txt")


def mask_key(key: str) -> str:
    """First and last four characters only."""
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}...{key[-4:]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DatasetAcquirer:
    def __init__(
        self,
        metadata_store: MetadataStore,
        extract_dir: Path,
        archive_path: Path,
        static_url: str,
        api_key: str,
        refresh_interval: timedelta = timedelta(days=7),
        monthly_limit: int = DEFAULT_MONTHLY_LIMIT,
        synthetic_fallback: bool = True,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.metadata_store = metadata_store
        self.extract_dir = Path(extract_dir)
        self.archive_path = Path(archive_path)
        self.static_url = static_url
        self.api_key = api_key
        self.refresh_interval = refresh_interval
        self.monthly_limit = monthly_limit
        self.synthetic_fallback = synthetic_fallback
        self.timeout = timeout
        self.transport = transport
        self.clock = clock
        self._metadata: Optional[DatasetMetadata] = None

    @property
    def metadata(self) -> Optional[DatasetMetadata]:
        """Metadata as of the last ensure_fresh() call."""
        return self._metadata

    def files_present(self) -> bool:
        return all((self.extract_dir / name).is_file() for name in REQUIRED_FILES)

    async def ensure_fresh(self, force_refresh: bool = False) -> AcquisitionResult:
        now = self.clock()
        metadata = await self.metadata_store.load()
        if metadata is None:
            metadata = DatasetMetadata(monthly_limit=self.monthly_limit)
        self._metadata = metadata

        files_exist = self.files_present()
        age = metadata.age(now)

        if not force_refresh and age is not None and age < self.refresh_interval and files_exist:
            days_left = (self.refresh_interval - age).days
            logger.info(
                f"GTFS data is {age.days} days old ({days_left} days until next update), "
                f"using cached copy ({metadata.download_count} of {metadata.monthly_limit} API calls used)"
            )
            return AcquisitionResult(used_remote=False, is_synthetic=metadata.is_synthetic, metadata=metadata)

        logger.info(
            f"GTFS data needs update (forced={force_refresh}, files present={files_exist}, "
            f"API usage {metadata.download_count}/{metadata.monthly_limit} this month)"
        )

        used_remote = False
        try:
            content = await self._download()
        except DatasetFetchError as e:
            if e.status_code is not None:
                metadata = metadata.with_remote_call(now)
            logger.warning(f"GTFS download failed: {e}")
            is_synthetic = await self._fall_back(files_exist, metadata)
        else:
            metadata = metadata.with_remote_call(now)
            try:
                await self._store_and_extract(content)
            except (zipfile.BadZipFile, DatasetIndexError, OSError) as e:
                logger.error(f"GTFS archive extraction failed: {e}")
                is_synthetic = await self._fall_back(files_exist, metadata)
            else:
                used_remote = True
                is_synthetic = False

        metadata = metadata.with_update(now, is_synthetic=is_synthetic)
        await self._save(metadata)
        self._metadata = metadata

        if used_remote:
            logger.info(
                f"GTFS API usage: download #{metadata.download_count} (max {metadata.monthly_limit}/month), "
                f"next update {metadata.next_scheduled_update(self.refresh_interval)}"
            )
        return AcquisitionResult(used_remote=used_remote, is_synthetic=is_synthetic, metadata=metadata)

    async def _fall_back(self, files_exist: bool, metadata: DatasetMetadata) -> bool:
        """Pick existing files or synthetic data; returns the new synthetic flag."""
        if files_exist:
            logger.warning("Keeping previously extracted GTFS data")
            return metadata.is_synthetic

        if self.synthetic_fallback:
            logger.warning("No GTFS data available, generating synthetic dataset")
            loop = asyncio.get_event_loop()
            try:
                await loop.run_in_executor(None, write_synthetic_dataset, self.extract_dir)
            except OSError as e:
                raise DatasetUnavailableError(f"Could not write synthetic GTFS data: {e}") from e
            return True

        # Keep the call count even though the load fails
        await self._save(metadata)
        self._metadata = metadata
        raise DatasetUnavailableError(
            "Could not obtain GTFS data and no previously extracted data is available"
        )

    async def _save(self, metadata: DatasetMetadata) -> None:
        try:
            await self.metadata_store.save(metadata)
        except OSError as e:
            raise DatasetUnavailableError(f"Could not save GTFS metadata to {self.metadata_store.path}: {e}") from e

    async def _download(self) -> bytes:
        if not self.api_key:
            logger.error(
                "GTFS API key missing. Set GTFS_API_KEY (or API_KEY) in the environment or .env file."
            )
            raise DatasetFetchError("No API key configured")

        logger.info(f"Downloading static GTFS data from {self.static_url}")
        try:
            async with httpx.AsyncClient(
                transport=self.transport,
                timeout=self.timeout,
                follow_redirects=True,
            ) as client:
                response = await client.get(
                    self.static_url,
                    params={"key": self.api_key},
                    headers={"Accept-Encoding": "gzip, deflate"},
                )
        except httpx.HTTPError as e:
            raise DatasetFetchError(f"Transport error: {e}") from e

        if response.status_code == 403:
            logger.error(
                f"GTFS API access denied (403 Forbidden). Check that the key is valid. "
                f"Key used: {mask_key(self.api_key)}"
            )
        elif not response.is_success:
            logger.error(f"GTFS API responded with status {response.status_code}: {response.text[:500]}")

        if not response.is_success:
            raise DatasetFetchError(
                f"GTFS API responded with status {response.status_code}",
                status_code=response.status_code,
            )
        if not response.content:
            raise DatasetFetchError("GTFS API returned an empty body", status_code=response.status_code)

        logger.info(f"Downloaded {len(response.content)} bytes of GTFS data")
        return response.content

    async def _store_and_extract(self, content: bytes) -> None:
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, self._store_and_extract_sync, content)

    def _store_and_extract_sync(self, content: bytes) -> None:
        self.archive_path.parent.mkdir(parents=True, exist_ok=True)
        self.archive_path.write_bytes(content)
        logger.info(f"GTFS archive saved to {self.archive_path}")

        # Unpack next to the target so a broken archive never touches the live files
        staging_dir = self.extract_dir.with_name(self.extract_dir.name + ".staging")
        if staging_dir.exists():
            shutil.rmtree(staging_dir)
        try:
            with zipfile.ZipFile(self.archive_path) as zf:
                zf.extractall(staging_dir)
            missing = [name for name in REQUIRED_FILES if not (staging_dir / name).is_file()]
            if missing:
                raise DatasetIndexError(f"Archive is missing {', '.join(missing)}")

            if self.extract_dir.exists():
                shutil.rmtree(self.extract_dir)
            staging_dir.rename(self.extract_dir)
        finally:
            if staging_dir.exists():
                shutil.rmtree(staging_dir, ignore_errors=True)

        logger.info(f"GTFS data extracted to {self.extract_dir}")
