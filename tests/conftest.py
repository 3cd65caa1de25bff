"""
Pytest configuration and shared fixtures for Short Sileo tests.

Provides in-memory storage, a manually driven scheduler and sample
catalog payloads.
"""

import json
import random
import pytest
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# ============ Catalog Payloads ============

@pytest.fixture
def array_catalog():
    """Catalog with the package collection as a list."""
    return {
        "Name": "Tweaks Repo",
        "Packages": [
            {
                "name": "Alpha",
                "URL": "https://example.com/alpha",
                "Size": "3 MB",
                "min_ios": "15.0",
                "max_ios": "17.4",
                "description": "First package",
                "version": "2.0",
            },
            {"Name": "Beta", "size": "100 KB"},
            {"name": "Gamma", "url": "#", "minIOS": "12.0"},
        ],
    }


@pytest.fixture
def map_catalog():
    """Catalog with the package collection keyed by package name."""
    return {
        "name": "Themes",
        "packages": {
            "Zeta": {"url": "https://example.com/zeta", "version": "0.9"},
            "Eta": {"Size": "12 MB", "maxIOS": "16.0"},
            "Theta": {},
        },
    }


@pytest.fixture
def array_catalog_text(array_catalog):
    return json.dumps(array_catalog)


# ============ Store Fixtures ============

@pytest.fixture
def memory_kv():
    """Empty in-memory key-value store."""
    from store.persistence import MemoryKeyValueStore

    return MemoryKeyValueStore()


@pytest.fixture
def gateway(memory_kv):
    from store.persistence import PersistenceGateway

    return PersistenceGateway(memory_kv)


@pytest.fixture
def manual_scheduler():
    from store.scheduler import ManualScheduler

    return ManualScheduler()


@pytest.fixture
def simulated_backend(manual_scheduler):
    """Simulated install backend on the manual clock with a fixed seed."""
    from store.installer import SimulatedInstallBackend

    return SimulatedInstallBackend(
        manual_scheduler, interval=0.3, max_increment=40.0, rng=random.Random(1234)
    )


class RecordingOpener:
    """Opener that records URLs instead of launching a browser."""

    def __init__(self, fail=False):
        self.opened = []
        self.fail = fail

    def open_url(self, url):
        from common.exceptions import SideEffectFailure

        self.opened.append(url)
        if self.fail:
            raise SideEffectFailure(url, "popup blocked")


@pytest.fixture
def opener():
    return RecordingOpener()


@pytest.fixture
def failing_opener():
    return RecordingOpener(fail=True)


@pytest.fixture
def sample_package():
    from store.models import PackageRecord

    return PackageRecord(
        id="pkg-test",
        name="Test Tweak",
        url="https://example.com/test-tweak",
        repo_name="Test Repo",
    )


@pytest.fixture
def unlinked_package():
    from store.models import PackageRecord

    return PackageRecord(id="pkg-nolink", name="No Link", repo_name="Test Repo")


class StaticFetcher:
    """Fetcher returning canned payloads per URL."""

    def __init__(self, payloads=None, error=None):
        self.payloads = payloads or {}
        self.error = error
        self.requested = []

    def fetch(self, url):
        self.requested.append(url)
        if self.error is not None:
            raise self.error
        return self.payloads[url]


@pytest.fixture
def static_fetcher():
    """The StaticFetcher class, for tests that build their own payloads."""
    return StaticFetcher


@pytest.fixture
def make_service(memory_kv, manual_scheduler, opener):
    """Factory for a StoreService wired to in-memory collaborators."""
    from store.config import StoreConfig
    from store.installer import SimulatedInstallBackend
    from store.service import StoreService

    def _make(fetcher=None, kv=None, seed=99):
        backend = SimulatedInstallBackend(
            manual_scheduler, interval=0.3, max_increment=40.0, rng=random.Random(seed)
        )
        return StoreService(
            config=StoreConfig(),
            kv_store=kv or memory_kv,
            fetcher=fetcher or StaticFetcher(),
            opener=opener,
            backend=backend,
        )

    return _make


# ============ Marker Configuration ============

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "unit: fast unit tests with no external deps"
    )
    config.addinivalue_line(
        "markers", "integration: tests exercising several components together"
    )
