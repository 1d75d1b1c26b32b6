"""Unit tests for the static dataset acquisition policy."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from src.gtfs_bc.feed.domain.entities.dataset_metadata import DatasetMetadata
from src.gtfs_bc.feed.domain.exceptions import DatasetUnavailableError
from src.gtfs_bc.feed.infrastructure.services.dataset_acquirer import DatasetAcquirer, mask_key
from src.gtfs_bc.feed.infrastructure.services.metadata_store import MetadataStore
from tests.gtfs_fixtures import make_archive, mock_transport, write_dataset

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
STATIC_URL = "https://example.test/gtfs/xt/xt.zip"
API_KEY = "abcd1234efgh5678"


def _fail_if_called(request):
    raise AssertionError(f"Unexpected request to {request.url}")


class AcquirerFactory:
    def __init__(self, tmp_path):
        self.extract_dir = tmp_path / "gtfs-data"
        self.archive_path = tmp_path / "gtfs-data.zip"
        self.metadata_store = MetadataStore(tmp_path / "gtfs-metadata.json", refresh_interval=timedelta(days=7))
        self.calls = []

    def seed(self, metadata: DatasetMetadata, files: bool = True):
        self.metadata_store.save_sync(metadata)
        if files:
            write_dataset(self.extract_dir)

    def build(self, handler=_fail_if_called, api_key=API_KEY, synthetic_fallback=True) -> DatasetAcquirer:
        return DatasetAcquirer(
            metadata_store=self.metadata_store,
            extract_dir=self.extract_dir,
            archive_path=self.archive_path,
            static_url=STATIC_URL,
            api_key=api_key,
            refresh_interval=timedelta(days=7),
            synthetic_fallback=synthetic_fallback,
            transport=mock_transport(handler, self.calls),
            clock=lambda: NOW,
        )

    def stored(self) -> DatasetMetadata:
        return self.metadata_store.load_sync()


@pytest.fixture
def factory(tmp_path):
    return AcquirerFactory(tmp_path)


class TestCacheHit:
    """Fresh cached data means no provider call."""

    def test_recent_update_with_files_skips_download(self, factory):
        factory.seed(DatasetMetadata(last_update_time=NOW - timedelta(days=2), download_count=5))

        result = asyncio.run(factory.build().ensure_fresh())

        assert result.used_remote is False
        assert result.is_synthetic is False
        assert factory.calls == []
        assert factory.stored().download_count == 5
        assert factory.stored().last_update_time == NOW - timedelta(days=2)

    def test_cached_synthetic_flag_is_reported(self, factory):
        factory.seed(DatasetMetadata(last_update_time=NOW - timedelta(days=1), is_synthetic=True))

        result = asyncio.run(factory.build().ensure_fresh())

        assert result.is_synthetic is True

    def test_recent_update_without_files_downloads(self, factory):
        factory.seed(DatasetMetadata(last_update_time=NOW - timedelta(days=2)), files=False)
        acquirer = factory.build(lambda r: httpx.Response(200, content=make_archive()))

        result = asyncio.run(acquirer.ensure_fresh())

        assert result.used_remote is True
        assert len(factory.calls) == 1

    def test_stale_data_downloads(self, factory):
        factory.seed(DatasetMetadata(last_update_time=NOW - timedelta(days=8), download_count=1))
        acquirer = factory.build(lambda r: httpx.Response(200, content=make_archive()))

        result = asyncio.run(acquirer.ensure_fresh())

        assert result.used_remote is True
        assert factory.stored().download_count == 2

    def test_forced_refresh_downloads(self, factory):
        factory.seed(DatasetMetadata(last_update_time=NOW - timedelta(hours=1)))
        acquirer = factory.build(lambda r: httpx.Response(200, content=make_archive()))

        result = asyncio.run(acquirer.ensure_fresh(force_refresh=True))

        assert result.used_remote is True
        assert len(factory.calls) == 1


class TestRemoteDownload:
    """Successful and failed provider calls."""

    def test_success_extracts_and_counts(self, factory):
        acquirer = factory.build(lambda r: httpx.Response(200, content=make_archive()))

        result = asyncio.run(acquirer.ensure_fresh())

        assert result.used_remote is True
        assert result.is_synthetic is False
        assert (factory.extract_dir / "routes.txt").is_file()
        assert (factory.extract_dir / "agency.txt").is_file()
        assert factory.archive_path.is_file()

        stored = factory.stored()
        assert stored.download_count == 1
        assert stored.last_update_time == NOW
        assert stored.last_download == NOW
        assert stored.is_synthetic is False

        request = factory.calls[0]
        assert request.url.params["key"] == API_KEY
        assert "gzip" in request.headers["Accept-Encoding"]

    def test_download_replaces_synthetic_data(self, factory):
        factory.seed(DatasetMetadata(last_update_time=NOW - timedelta(days=8), is_synthetic=True))
        acquirer = factory.build(lambda r: httpx.Response(200, content=make_archive()))

        result = asyncio.run(acquirer.ensure_fresh())

        assert result.is_synthetic is False
        assert factory.stored().is_synthetic is False

    def test_forbidden_keeps_existing_files(self, factory, caplog):
        factory.seed(DatasetMetadata(last_update_time=NOW - timedelta(days=8), download_count=3))
        acquirer = factory.build(lambda r: httpx.Response(403, text="Forbidden"))
        caplog.set_level(logging.ERROR)

        result = asyncio.run(acquirer.ensure_fresh())

        assert result.used_remote is False
        assert result.is_synthetic is False
        stored = factory.stored()
        assert stored.download_count == 4
        assert stored.last_update_time == NOW
        assert "abcd...5678" in caplog.text
        assert API_KEY not in caplog.text

    def test_server_error_without_files_generates_synthetic(self, factory):
        acquirer = factory.build(lambda r: httpx.Response(503))

        result = asyncio.run(acquirer.ensure_fresh())

        assert result.is_synthetic is True
        assert factory.stored().download_count == 1
        assert (factory.extract_dir / "trips.txt").is_file()

    def test_transport_error_is_not_counted(self, factory):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = asyncio.run(factory.build(handler).ensure_fresh())

        assert result.is_synthetic is True
        assert factory.stored().download_count == 0

    def test_empty_body_falls_back(self, factory):
        result = asyncio.run(factory.build(lambda r: httpx.Response(200, content=b"")).ensure_fresh())

        assert result.is_synthetic is True
        assert factory.stored().download_count == 1

    def test_bad_archive_keeps_existing_files(self, factory):
        factory.seed(DatasetMetadata(last_update_time=NOW - timedelta(days=8)))
        routes_before = (factory.extract_dir / "routes.txt").read_text(encoding="utf-8")
        acquirer = factory.build(lambda r: httpx.Response(200, content=b"this is not a zip"))

        result = asyncio.run(acquirer.ensure_fresh())

        assert result.used_remote is False
        assert result.is_synthetic is False
        assert (factory.extract_dir / "routes.txt").read_text(encoding="utf-8") == routes_before
        assert factory.stored().download_count == 1

    def test_archive_without_trips_falls_back(self, factory):
        import io
        import zipfile

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as zf:
            zf.writestr("routes.txt", "route_id,route_short_name\nR1,1\n")
        acquirer = factory.build(lambda r: httpx.Response(200, content=buffer.getvalue()))

        result = asyncio.run(acquirer.ensure_fresh())

        assert result.is_synthetic is True


class TestMissingCredentials:
    """No API key behaves like a failed download."""

    def test_no_key_no_files_generates_synthetic(self, factory, caplog):
        caplog.set_level(logging.ERROR)

        result = asyncio.run(factory.build(api_key="").ensure_fresh())

        assert result.used_remote is False
        assert result.is_synthetic is True
        assert factory.calls == []
        stored = factory.stored()
        assert stored.is_synthetic is True
        assert stored.download_count == 0
        assert stored.last_update_time == NOW
        assert "API key missing" in caplog.text

    def test_no_key_with_files_keeps_them(self, factory):
        factory.seed(DatasetMetadata(last_update_time=NOW - timedelta(days=9), download_count=2))

        result = asyncio.run(factory.build(api_key="").ensure_fresh())

        assert result.is_synthetic is False
        assert factory.stored().download_count == 2
        assert factory.stored().last_update_time == NOW

    def test_synthetic_disabled_raises(self, factory):
        acquirer = factory.build(api_key="", synthetic_fallback=False)

        with pytest.raises(DatasetUnavailableError):
            asyncio.run(acquirer.ensure_fresh())
        assert not factory.extract_dir.exists()

    def test_synthetic_disabled_still_records_call(self, factory):
        acquirer = factory.build(lambda r: httpx.Response(500), synthetic_fallback=False)

        with pytest.raises(DatasetUnavailableError):
            asyncio.run(acquirer.ensure_fresh())
        assert factory.stored().download_count == 1
        assert factory.stored().last_update_time is None


class TestFilesystemErrors:
    """Disk failures surface as DatasetUnavailableError."""

    def test_unwritable_data_dir(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        acquirer = AcquirerFactory(blocker).build(api_key="")

        with pytest.raises(DatasetUnavailableError, match="synthetic"):
            asyncio.run(acquirer.ensure_fresh())

    def test_metadata_save_failure(self, factory):
        factory.metadata_store.path.mkdir()
        acquirer = factory.build(api_key="")

        with pytest.raises(DatasetUnavailableError, match="metadata"):
            asyncio.run(acquirer.ensure_fresh())
        assert factory.extract_dir.joinpath("routes.txt").is_file()


def test_mask_key():
    assert mask_key("abcd1234efgh5678") == "abcd...5678"
    assert mask_key("short") == "*****"
