"""Pytest configuration and fixtures."""

from typing import Optional

import httpx
import pytest
from dependency_injector import providers
from fastapi.testclient import TestClient

from core.config import Settings
from core.containers import GTFSStaticContainer
from core.rate_limiter import limiter


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def make_settings(tmp_path, data_dir):
    def _make(**overrides) -> Settings:
        values = dict(
            ENVIRONMENT="development",
            ADMIN_TOKEN="t" * 32,
            API_KEY="",
            GTFS_API_KEY="",
            GTFS_DATA_DIR=str(data_dir),
            FRONTEND_DIR=str(tmp_path / "no-frontend"),
            VEHICLE_IDENTITY_TABLES_PATH="",
        )
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make


@pytest.fixture
def test_settings(make_settings):
    return make_settings()


@pytest.fixture
def make_container():
    def _make(settings: Settings, transport: Optional[httpx.MockTransport] = None) -> GTFSStaticContainer:
        container = GTFSStaticContainer(settings=settings)
        if transport is not None:
            container.transport.override(providers.Object(transport))
        return container
    return _make


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield


@pytest.fixture
def client(test_settings, make_container):
    """Test client with no provider credentials, so the synthetic dataset is served."""
    from app import create_app

    container = make_container(test_settings)
    with TestClient(create_app(container)) as c:
        yield c
