"""
Repository Catalog - The ordered set of repository sources.

Owns every RepositorySource and derives the flattened package list that
browsing and search work on.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from common.exceptions import DuplicateSourceError

from .models import PackageRecord, RepositorySource
from .persistence import PersistenceGateway

logger = logging.getLogger(__name__)


class RepoCatalog:
    """
    Repository source management.

    Sources keep their insertion order. The flattened package view is the
    concatenation of each source's packages in that order, with each
    source's own package order preserved.
    """

    def __init__(
        self,
        sources: Optional[Iterable[RepositorySource]] = None,
        gateway: Optional[PersistenceGateway] = None,
    ):
        """
        Initialize RepoCatalog.

        Args:
            sources: Initial sources, usually loaded through the gateway
            gateway: Where the source list is saved after every change
        """
        self._gateway = gateway
        self._sources: List[RepositorySource] = list(sources or [])
        self._packages: Tuple[PackageRecord, ...] = ()
        self._rebuild()

    def _rebuild(self) -> None:
        self._packages = tuple(
            pkg for source in self._sources for pkg in source.packages
        )

    def _persist(self) -> None:
        if self._gateway is not None:
            self._gateway.save_sources(self._sources)

    def __len__(self) -> int:
        return len(self._sources)

    @property
    def sources(self) -> Tuple[RepositorySource, ...]:
        return tuple(self._sources)

    @property
    def packages(self) -> Tuple[PackageRecord, ...]:
        """Flattened packages of all sources."""
        return self._packages

    def get_source(self, source_id: str) -> Optional[RepositorySource]:
        """Get source by ID."""
        for source in self._sources:
            if source.id == source_id:
                return source
        return None

    def get_package(self, package_id: str) -> Optional[PackageRecord]:
        """Get package by ID."""
        for pkg in self._packages:
            if pkg.id == package_id:
                return pkg
        return None

    def add_source(self, source: RepositorySource) -> None:
        """
        Append a source.

        Raises:
            DuplicateSourceError: If a source with the same id exists.
        """
        if self.get_source(source.id) is not None:
            raise DuplicateSourceError(source.id)

        self._sources.append(source)
        self._rebuild()
        logger.info(f"Added source '{source.name}' ({source.package_count} packages)")
        self._persist()

    def remove_source(self, source_id: str) -> Optional[RepositorySource]:
        """
        Remove a source together with its packages.

        Installed ids of the removed packages are left alone.

        Returns:
            The removed source, or None if no source has that id.
        """
        source = self.get_source(source_id)
        if source is None:
            return None

        self._sources = [s for s in self._sources if s.id != source_id]
        self._rebuild()
        logger.info(f"Removed source '{source.name}'")
        self._persist()
        return source

    def installed_packages(self, installed_ids: Iterable[str]) -> List[PackageRecord]:
        """Packages whose ids are installed, in catalog order."""
        wanted = set(installed_ids)
        return [pkg for pkg in self._packages if pkg.id in wanted]

    def search(
        self,
        query: str = "",
        scope: Optional[Sequence[PackageRecord]] = None,
    ) -> List[PackageRecord]:
        """
        Search packages by name or repository name.

        Args:
            query: Case-insensitive substring; empty matches everything
            scope: Packages to search instead of the whole catalog

        Returns:
            Matching packages in scope order.
        """
        candidates = self._packages if scope is None else scope
        if not query:
            return list(candidates)

        query_lower = query.lower()
        return [
            pkg for pkg in candidates
            if query_lower in pkg.name.lower() or query_lower in pkg.repo_name.lower()
        ]
