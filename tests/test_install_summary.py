"""Tests for install/summary.py module."""

import json

from slugbuilder.install.summary import list_top_level_dependencies
from slugbuilder.types import DependencySummaryItem


def add_package(root, name, version=None):
    path = root / "node_modules" / name
    path.mkdir(parents=True)
    if version is not None:
        payload = {"name": name, "version": version}
        (path / "package.json").write_text(json.dumps(payload))


class TestListTopLevelDependencies:
    """Tests for list_top_level_dependencies function."""

    def test_no_dependency_dir(self, tmp_path):
        """Should return nothing when nothing is installed."""
        assert list_top_level_dependencies(tmp_path) == []

    def test_lists_sorted_with_versions(self, tmp_path):
        """Should list packages with their versions, sorted by name."""
        add_package(tmp_path, "express", "4.19.2")
        add_package(tmp_path, "debug", "4.3.4")

        items = list_top_level_dependencies(tmp_path)

        assert items == [
            DependencySummaryItem("debug", "4.3.4"),
            DependencySummaryItem("express", "4.19.2"),
        ]
        assert str(items[0]) == "debug@4.3.4"

    def test_scoped_packages(self, tmp_path):
        """Scoped packages should be listed as @scope/name."""
        add_package(tmp_path, "@babel/core", "7.24.0")
        items = list_top_level_dependencies(tmp_path)
        assert [str(i) for i in items] == ["@babel/core@7.24.0"]

    def test_ignores_dot_dirs_and_files(self, tmp_path):
        """.bin and stray files should not be listed."""
        add_package(tmp_path, ".bin")
        (tmp_path / "node_modules" / ".package-lock.json").write_text("{}")
        add_package(tmp_path, "lodash", "4.17.21")
        assert [i.name for i in list_top_level_dependencies(tmp_path)] == ["lodash"]

    def test_missing_or_broken_manifest(self, tmp_path):
        """Packages without a readable manifest are listed without a version."""
        add_package(tmp_path, "nomanifest")
        add_package(tmp_path, "broken")
        (tmp_path / "node_modules" / "broken" / "package.json").write_text("{")

        items = list_top_level_dependencies(tmp_path)

        assert items == [
            DependencySummaryItem("broken", None),
            DependencySummaryItem("nomanifest", None),
        ]
        assert str(items[0]) == "broken"
