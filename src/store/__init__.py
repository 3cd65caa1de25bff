"""
Short Sileo Store

Repository catalog ingestion and package install tracking.
"""

from .models import PackageRecord, RepositorySource
from .normalizer import normalize
from .repo_catalog import RepoCatalog
from .installer import InstallManager, InstallState
from .service import StoreService

__all__ = [
    "PackageRecord",
    "RepositorySource",
    "normalize",
    "RepoCatalog",
    "InstallManager",
    "InstallState",
    "StoreService",
]
