"""
Store Service - Application state shared by the store front ends.

Wires configuration, persistence, the repository catalog and the install
manager together. Front ends read state from here and change it only
through these methods.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from common.exceptions import PackageNotFoundError, SourceNotFoundError
from common.logging_config import LogContext

from .config import StoreConfig
from .fetcher import CatalogFetcher, HttpCatalogFetcher
from .installer import (
    BrowserOpener,
    InstallBackend,
    InstallManager,
    InstallState,
    NullOpener,
    ResourceOpener,
    SimulatedInstallBackend,
)
from .models import PackageRecord, RepositorySource
from .normalizer import normalize
from .persistence import JsonFileKeyValueStore, KeyValueStore, PersistenceGateway
from .repo_catalog import RepoCatalog
from .scheduler import AsyncioScheduler, Scheduler

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[RepositorySource], bool]


class StoreService:
    """
    The store's application state.

    Collaborators not given explicitly are built from the config: a JSON
    file store in config.data_dir, an httpx fetcher, the web browser
    opener and a simulated install backend on the asyncio loop.
    """

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        kv_store: Optional[KeyValueStore] = None,
        fetcher: Optional[CatalogFetcher] = None,
        opener: Optional[ResourceOpener] = None,
        scheduler: Optional[Scheduler] = None,
        backend: Optional[InstallBackend] = None,
    ):
        self.config = config or StoreConfig()
        self.gateway = PersistenceGateway(kv_store or JsonFileKeyValueStore(self.config.data_dir))
        self.fetcher = fetcher or HttpCatalogFetcher(timeout=self.config.fetch_timeout)

        if opener is None:
            opener = BrowserOpener() if self.config.open_links else NullOpener()
        if backend is None:
            backend = SimulatedInstallBackend(
                scheduler or AsyncioScheduler(),
                interval=self.config.tick_interval,
                max_increment=self.config.max_increment,
            )

        self.catalog = RepoCatalog(self.gateway.load_sources(), gateway=self.gateway)
        self.installs = InstallManager(
            backend,
            opener=opener,
            installed_ids=self.gateway.load_installed_ids(),
            gateway=self.gateway,
        )

    # -- sources ----------------------------------------------------------

    def add_source_from_url(self, url: str) -> RepositorySource:
        """
        Fetch, normalize and add a remote catalog.

        Raises:
            RetrievalError: If the catalog could not be fetched.
            MalformedCatalogError: If the fetched payload is not a catalog.
        """
        with LogContext(source_url=url, operation="add-source"):
            payload = self.fetcher.fetch(url)
            source = normalize(payload, origin_url=url)
            self.catalog.add_source(source)
        return source

    def add_source_from_json(self, text: str) -> RepositorySource:
        """
        Normalize and add a pasted catalog.

        Raises:
            MalformedCatalogError: If the text is not a catalog.
        """
        source = normalize(text)
        self.catalog.add_source(source)
        return source

    def remove_source(self, source_id: str, confirm: ConfirmCallback) -> bool:
        """
        Remove a source after the caller confirms.

        Removal cannot be undone. Installed ids of its packages are kept.

        Returns:
            True if the source existed, was confirmed and was removed.
        """
        source = self.catalog.get_source(source_id)
        if source is None:
            return False
        if not confirm(source):
            logger.debug(f"Removal of {source_id} not confirmed")
            return False
        return self.catalog.remove_source(source_id) is not None

    def get_source(self, source_id: str) -> RepositorySource:
        """
        Raises:
            SourceNotFoundError: If no source has this id.
        """
        source = self.catalog.get_source(source_id)
        if source is None:
            raise SourceNotFoundError(source_id)
        return source

    # -- packages ---------------------------------------------------------

    def get_package(self, package_id: str) -> PackageRecord:
        """
        Raises:
            PackageNotFoundError: If no source provides the package.
        """
        pkg = self.catalog.get_package(package_id)
        if pkg is None:
            raise PackageNotFoundError(package_id)
        return pkg

    def installed_packages(self) -> List[PackageRecord]:
        return self.catalog.installed_packages(self.installs.installed_ids)

    def search(self, query: str = "", installed_only: bool = False) -> List[PackageRecord]:
        scope = self.installed_packages() if installed_only else None
        return self.catalog.search(query, scope=scope)

    def package_state(self, package_id: str) -> InstallState:
        return self.installs.state_of(package_id)

    def install(self, package_id: str) -> bool:
        return self.installs.start_install(self.get_package(package_id))

    def uninstall(self, package_id: str) -> bool:
        return self.installs.uninstall(package_id)

    def open(self, package_id: str) -> bool:
        return self.installs.open(self.get_package(package_id))
