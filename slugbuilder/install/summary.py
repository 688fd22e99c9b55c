"""Summary of installed top-level dependencies."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from slugbuilder.types import DependencySummaryItem

logger = logging.getLogger(__name__)


def _read_version(package_dir: Path) -> str | None:
    manifest = package_dir / "package.json"
    try:
        data = json.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    version = data.get("version") if isinstance(data, dict) else None
    return version if isinstance(version, str) else None


def list_top_level_dependencies(
    project_dir: Path,
    dependency_dir: str = "node_modules",
) -> list[DependencySummaryItem]:
    """List packages installed directly under the dependency directory.

    Scoped packages (``@scope/name``) are listed individually; dot
    directories such as ``.bin`` are ignored.

    Returns:
        Items sorted by name.
    """
    root = project_dir / dependency_dir
    if not root.is_dir():
        return []

    items: list[DependencySummaryItem] = []
    for path in root.iterdir():
        if path.name.startswith(".") or not path.is_dir():
            continue
        if path.name.startswith("@"):
            for scoped in path.iterdir():
                if scoped.is_dir():
                    items.append(
                        DependencySummaryItem(
                            f"{path.name}/{scoped.name}", _read_version(scoped)
                        )
                    )
            continue
        items.append(DependencySummaryItem(path.name, _read_version(path)))
    return sorted(items, key=lambda item: item.name)


__all__ = ["list_top_level_dependencies"]
