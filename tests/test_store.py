"""
Tests for Short Sileo Store - Package model and Repository Catalog
"""

import pytest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from common.exceptions import DuplicateSourceError
from store.models import PackageRecord, RepositorySource, default_source
from store.normalizer import normalize
from store.repo_catalog import RepoCatalog


def _source(source_id, name, package_names):
    return RepositorySource(
        id=source_id,
        name=name,
        packages=tuple(
            PackageRecord(id=f"{source_id}-{n}", name=n, repo_name=name)
            for n in package_names
        ),
    )


class TestPackageRecord:
    """Tests for PackageRecord dataclass."""

    def test_defaults(self):
        """Test default field values."""
        pkg = PackageRecord(id="p", name="P")

        assert pkg.url == "#"
        assert pkg.size == "Unknown"
        assert pkg.version == "1.0.0"
        assert pkg.has_link is False

    def test_has_link(self, sample_package):
        """Test link detection against the sentinel."""
        assert sample_package.has_link is True
        assert PackageRecord(id="p", name="P", url="").has_link is False

    def test_to_dict_uses_persisted_keys(self, sample_package):
        """Test serialization uses the stored key names."""
        data = sample_package.to_dict()

        assert data["minIOS"] == "0.0"
        assert data["maxIOS"] == "99.0"
        assert data["repoName"] == "Test Repo"

    def test_from_dict(self):
        """Test deserialization fills in defaults."""
        pkg = PackageRecord.from_dict({
            "id": "pkg-9",
            "name": "Nine",
            "minIOS": "13.0",
            "repoName": "R",
        })

        assert pkg.min_ios == "13.0"
        assert pkg.max_ios == "99.0"
        assert pkg.url == "#"

    def test_from_dict_null_fields_default(self):
        """Test null or non-text optional fields fall back to defaults."""
        pkg = PackageRecord.from_dict({
            "id": "p",
            "name": "P",
            "repoName": None,
            "size": None,
            "version": 3,
        })

        assert pkg.repo_name == ""
        assert pkg.size == "Unknown"
        assert pkg.version == "1.0.0"

    @pytest.mark.parametrize("data", [
        {"id": "p", "name": None},
        {"id": 7, "name": "P"},
        {"name": "P"},
    ])
    def test_from_dict_requires_text_id_and_name(self, data):
        """Test a record without a text id and name is refused."""
        with pytest.raises((KeyError, TypeError)):
            PackageRecord.from_dict(data)

    def test_immutable(self, sample_package):
        """Test records cannot be modified."""
        with pytest.raises(AttributeError):
            sample_package.name = "changed"


class TestRepositorySource:
    """Tests for RepositorySource dataclass."""

    def test_url_omitted_for_local_sources(self):
        """Test local sources are stored without a url."""
        data = _source("s", "S", ["a"]).to_dict()
        assert "url" not in data
        assert len(data["packages"]) == 1

    def test_round_trip_keeps_remote_url(self):
        """Test a remote source keeps its url through storage."""
        source = RepositorySource(id="r", name="R", url="https://r.example")
        restored = RepositorySource.from_dict(source.to_dict())

        assert restored == source
        assert restored.is_remote is True

    def test_from_dict_rejects_non_list_packages(self):
        """Test stored packages must be a list."""
        with pytest.raises(TypeError):
            RepositorySource.from_dict({"id": "s", "name": "S", "packages": {"a": {}}})

    def test_from_dict_rejects_unreadable_package(self):
        """Test one unreadable package makes the source unreadable."""
        with pytest.raises(TypeError):
            RepositorySource.from_dict({
                "id": "s",
                "name": "S",
                "packages": [{"id": "p", "name": None, "repoName": None}],
            })

    def test_default_source(self):
        """Test the built-in source."""
        source = default_source()

        assert source.id == "default"
        assert source.name == "ShortSileo Official"
        assert [p.id for p in source.packages] == ["pkg-1", "pkg-2"]
        assert source.packages[1].version == "1.5.21"


class TestRepoCatalog:
    """Tests for RepoCatalog."""

    @pytest.fixture
    def catalog(self):
        return RepoCatalog([
            _source("one", "First", ["a", "b"]),
            _source("two", "Second", ["c"]),
            _source("three", "Third", ["d", "e", "f"]),
        ])

    def test_flattened_order(self, catalog):
        """Test the flattened view keeps source then package order."""
        assert [p.name for p in catalog.packages] == ["a", "b", "c", "d", "e", "f"]

    def test_add_source_appends(self, catalog):
        """Test a new source goes to the end."""
        catalog.add_source(_source("four", "Fourth", ["g"]))

        assert len(catalog) == 4
        assert catalog.packages[-1].name == "g"

    def test_add_duplicate_id_rejected(self, catalog):
        """Test adding an existing source id fails and changes nothing."""
        with pytest.raises(DuplicateSourceError):
            catalog.add_source(_source("two", "Again", ["x"]))

        assert len(catalog) == 3
        assert catalog.get_package("two-x") is None

    def test_remove_source_cascades(self, catalog):
        """Test removing a source drops exactly its packages."""
        removed = catalog.remove_source("two")

        assert removed.name == "Second"
        assert [p.name for p in catalog.packages] == ["a", "b", "d", "e", "f"]
        assert [s.id for s in catalog.sources] == ["one", "three"]

    def test_remove_missing_source_is_noop(self, catalog):
        """Test removing an unknown source changes nothing."""
        before = catalog.packages
        assert catalog.remove_source("nope") is None
        assert catalog.packages == before

    def test_get_package(self, catalog):
        """Test looking up packages by id."""
        assert catalog.get_package("three-e").name == "e"
        assert catalog.get_package("missing") is None

    def test_installed_packages_in_catalog_order(self, catalog):
        """Test installed packages come back in catalog order."""
        result = catalog.installed_packages(["three-f", "one-a", "gone"])
        assert [p.name for p in result] == ["a", "f"]

    def test_search_empty_query_returns_scope(self, catalog):
        """Test an empty query returns everything."""
        assert len(catalog.search("")) == 6

    def test_search_case_insensitive_name(self, catalog):
        """Test name search ignores case."""
        catalog.add_source(normalize({"Name": "Misc", "Packages": [{"name": "SnowBoard"}]}))
        assert [p.name for p in catalog.search("snowb")] == ["SnowBoard"]

    def test_search_matches_repo_name(self, catalog):
        """Test search matches the source name."""
        results = catalog.search("THIRD")
        assert [p.name for p in results] == ["d", "e", "f"]

    def test_search_in_scope(self, catalog):
        """Test search limited to a scope."""
        scope = catalog.installed_packages(["one-a", "three-d"])

        assert catalog.search("", scope=scope) == scope
        assert [p.name for p in catalog.search("third", scope=scope)] == ["d"]

    def test_search_no_match(self, catalog):
        """Test a query with no match."""
        assert catalog.search("zzz") == []

    def test_mutations_persist(self, gateway, memory_kv):
        """Test every change is saved."""
        catalog = RepoCatalog([], gateway=gateway)
        catalog.add_source(_source("one", "First", ["a"]))
        assert [s.id for s in gateway.load_sources()] == ["one"]

        catalog.remove_source("one")
        assert gateway.load_sources() == []
