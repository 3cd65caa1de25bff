"""
Catalog Normalizer - Turns repository JSON into RepositorySource records.

Repositories publish their metadata in several loosely related layouts:
capitalized or lowercase keys, snake_case or camelCase compatibility
fields, and the package collection as either a list of objects or an
object keyed by package name. All of them are accepted here.

Example (array form):
    {"Name": "Test", "Packages": [{"name": "Foo", "Size": "1 MB"}]}

Example (map form):
    {"name": "Test", "packages": {"Foo": {"url": "https://..."}}}
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from common.exceptions import MalformedCatalogError

from .models import (
    PackageRecord,
    RepositorySource,
    new_package_id,
    new_source_id,
    URL_SENTINEL,
    DEFAULT_SOURCE_NAME,
    DEFAULT_PACKAGE_NAME,
    DEFAULT_SIZE,
    DEFAULT_MIN_IOS,
    DEFAULT_MAX_IOS,
    DEFAULT_DESCRIPTION,
    DEFAULT_VERSION,
)

logger = logging.getLogger(__name__)

SOURCE_NAME_KEYS = ("Name", "name")
PACKAGES_KEYS = ("Packages", "packages")

# Candidate keys are tried in order; the first usable value wins.
# Format: {record_field: (candidate_keys, default)}
PACKAGE_FIELDS: Dict[str, Tuple[Tuple[str, ...], str]] = {
    "url": (("url", "URL"), URL_SENTINEL),
    "size": (("size", "Size"), DEFAULT_SIZE),
    "min_ios": (("minIOS", "min_ios"), DEFAULT_MIN_IOS),
    "max_ios": (("maxIOS", "max_ios"), DEFAULT_MAX_IOS),
    "description": (("description",), DEFAULT_DESCRIPTION),
    "version": (("version",), DEFAULT_VERSION),
}
PACKAGE_NAME_KEYS = ("name", "Name")


def parse_catalog_text(text: Union[str, bytes]) -> Any:
    """
    Decode a raw catalog payload.

    Raises:
        MalformedCatalogError: If the payload is not valid JSON.
    """
    if isinstance(text, (bytes, bytearray)):
        try:
            text = bytes(text).decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedCatalogError("payload is not UTF-8 text", cause=e) from e

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedCatalogError(f"invalid JSON ({e.msg} at line {e.lineno})", cause=e) from e


def _scalar_text(value: Any) -> Optional[str]:
    """Return a display string for usable values, None for absent ones."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _resolve(data: Dict[str, Any], keys: Tuple[str, ...], default: str) -> str:
    for key in keys:
        text = _scalar_text(data.get(key))
        if text is not None:
            return text
    return default


def _resolve_packages(data: Dict[str, Any]) -> Any:
    for key in PACKAGES_KEYS:
        value = data.get(key)
        if value:
            return value
    return []


def _build_record(name: str, fields: Dict[str, Any], repo_name: str) -> PackageRecord:
    values = {
        attr: _resolve(fields, keys, default)
        for attr, (keys, default) in PACKAGE_FIELDS.items()
    }
    return PackageRecord(
        id=new_package_id(),
        name=name,
        repo_name=repo_name,
        **values,
    )


def _from_array(items: List[Any], repo_name: str) -> List[PackageRecord]:
    records = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise MalformedCatalogError(
                f"package #{index} is a {type(item).__name__}, expected an object"
            )
        name = _resolve(item, PACKAGE_NAME_KEYS, DEFAULT_PACKAGE_NAME)
        records.append(_build_record(name, item, repo_name))
    return records


def _from_map(entries: Dict[str, Any], repo_name: str) -> List[PackageRecord]:
    records = []
    for name, fields in entries.items():
        if not isinstance(fields, dict):
            raise MalformedCatalogError(
                f"package '{name}' is a {type(fields).__name__}, expected an object"
            )
        records.append(_build_record(name, fields, repo_name))
    return records


def normalize(raw: Any, origin_url: Optional[str] = None) -> RepositorySource:
    """
    Normalize a catalog into a RepositorySource.

    Args:
        raw: Decoded JSON value, or the raw text/bytes of a JSON document
        origin_url: URL the catalog was fetched from, if any

    Returns:
        A new source with freshly generated ids for itself and every package.

    Raises:
        MalformedCatalogError: If the payload does not parse, is not a JSON
            object, or its package collection has an unsupported shape.
    """
    if raw is None:
        raise MalformedCatalogError("catalog is empty")

    if isinstance(raw, (str, bytes, bytearray)):
        raw = parse_catalog_text(raw)

    if not isinstance(raw, dict):
        raise MalformedCatalogError(f"expected a JSON object, got {type(raw).__name__}")

    repo_name = _resolve(raw, SOURCE_NAME_KEYS, DEFAULT_SOURCE_NAME)
    collection = _resolve_packages(raw)

    if isinstance(collection, list):
        shape = "array"
        packages = _from_array(collection, repo_name)
    elif isinstance(collection, dict):
        shape = "map"
        packages = _from_map(collection, repo_name)
    else:
        raise MalformedCatalogError(
            f"packages must be a list or an object, got {type(collection).__name__}"
        )

    logger.debug(f"Normalized '{repo_name}' ({shape} form, {len(packages)} packages)")

    return RepositorySource(
        id=new_source_id(),
        name=repo_name,
        url=origin_url,
        packages=tuple(packages),
    )
