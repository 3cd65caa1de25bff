"""
Package Model - Normalized package and repository source records.

Every catalog format accepted by the normalizer ends up as these two
shapes. Both are immutable; a source is only ever replaced or removed
as a whole.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional, Tuple, Dict, Any

# Link value meaning "no install/home page"
URL_SENTINEL = "#"

DEFAULT_SOURCE_NAME = "Untitled Repository"
DEFAULT_PACKAGE_NAME = "Unknown Package"
DEFAULT_SIZE = "Unknown"
DEFAULT_MIN_IOS = "0.0"
DEFAULT_MAX_IOS = "99.0"
DEFAULT_DESCRIPTION = "No description provided."
DEFAULT_VERSION = "1.0.0"


def new_package_id() -> str:
    """Generate a globally unique package id."""
    return f"pkg-{uuid.uuid4().hex}"


def new_source_id() -> str:
    """Generate a globally unique source id."""
    return f"repo-{uuid.uuid4().hex}"


def _required_text(data: Dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"'{key}' must be a string, got {type(value).__name__}")
    return value


def _text_or(value: Any, default: str) -> str:
    return value if isinstance(value, str) and value else default


@dataclass(frozen=True)
class PackageRecord:
    """Display-ready information about one installable package."""
    id: str
    name: str
    url: str = URL_SENTINEL
    size: str = DEFAULT_SIZE
    min_ios: str = DEFAULT_MIN_IOS
    max_ios: str = DEFAULT_MAX_IOS
    repo_name: str = ""
    description: str = DEFAULT_DESCRIPTION
    version: str = DEFAULT_VERSION

    @property
    def has_link(self) -> bool:
        """Whether the package points at a real resource."""
        return bool(self.url) and self.url != URL_SENTINEL

    @property
    def compatibility(self) -> str:
        return f"iOS {self.min_ios} - {self.max_ios}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted dictionary layout."""
        return {
            "id": self.id,
            "name": self.name,
            "url": self.url,
            "size": self.size,
            "minIOS": self.min_ios,
            "maxIOS": self.max_ios,
            "repoName": self.repo_name,
            "description": self.description,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageRecord":
        """Create from a persisted dictionary."""
        return cls(
            id=_required_text(data, "id"),
            name=_required_text(data, "name"),
            url=_text_or(data.get("url"), URL_SENTINEL),
            size=_text_or(data.get("size"), DEFAULT_SIZE),
            min_ios=_text_or(data.get("minIOS"), DEFAULT_MIN_IOS),
            max_ios=_text_or(data.get("maxIOS"), DEFAULT_MAX_IOS),
            repo_name=_text_or(data.get("repoName"), ""),
            description=_text_or(data.get("description"), DEFAULT_DESCRIPTION),
            version=_text_or(data.get("version"), DEFAULT_VERSION),
        )


@dataclass(frozen=True)
class RepositorySource:
    """A named origin of package metadata and the packages it owns."""
    id: str
    name: str
    url: Optional[str] = None  # only set for sources added by URL
    packages: Tuple[PackageRecord, ...] = field(default_factory=tuple)

    @property
    def is_remote(self) -> bool:
        return self.url is not None

    @property
    def package_count(self) -> int:
        return len(self.packages)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
        }
        if self.url is not None:
            data["url"] = self.url
        data["packages"] = [pkg.to_dict() for pkg in self.packages]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RepositorySource":
        """
        Create from a persisted dictionary.

        Raises:
            KeyError, TypeError: If a required field is missing or not text.
        """
        url = data.get("url")
        packages = data.get("packages") or []
        if not isinstance(packages, list):
            raise TypeError(f"'packages' must be a list, got {type(packages).__name__}")
        return cls(
            id=_required_text(data, "id"),
            name=_required_text(data, "name"),
            url=url if isinstance(url, str) and url else None,
            packages=tuple(PackageRecord.from_dict(p) for p in packages),
        )


def default_source() -> RepositorySource:
    """The built-in source seeded on first run."""
    name = "ShortSileo Official"
    return RepositorySource(
        id="default",
        name=name,
        packages=(
            PackageRecord(
                id="pkg-1",
                name="Cylinder Reborn",
                url="https://github.com/ryannair05/Cylinder-Reborn",
                size="1.2 MB",
                min_ios="14.0",
                max_ios="17.0",
                repo_name=name,
                description="The classic icon animation tweak, updated for modern iOS.",
                version="1.1.0",
            ),
            PackageRecord(
                id="pkg-2",
                name="SnowBoard",
                url="https://sparkdev.me/",
                size="2.5 MB",
                min_ios="7.0",
                max_ios="18.0",
                repo_name=name,
                description="Powerful theme engine for iOS.",
                version="1.5.21",
            ),
        ),
    )
