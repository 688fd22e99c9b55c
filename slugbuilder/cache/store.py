"""Cache directory store.

This module handles:
- Resolving the set of cached directories for a build
- Restoring cached directories into the project tree
- Saving project directories into the cache, replacing the previous generation

Cached entries mirror their project-relative paths under
``<cache_dir>/<namespace>/entries``. Copy failures are fatal: a
half-written cache must never be mistaken for a valid one.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from dataclasses import replace
from pathlib import Path, PurePosixPath

from slugbuilder.cache import DEFAULT_NAMESPACE
from slugbuilder.errors import CacheStoreError
from slugbuilder.types import CacheEntry, CacheRoot, CacheStatus

logger = logging.getLogger(__name__)

ENTRIES_DIRNAME = "entries"

DEFAULT_CACHE_DIRECTORIES = ("node_modules", "bower_components")


def build_entries(
    declared: Iterable[str] | None,
    defaults: Iterable[str] = DEFAULT_CACHE_DIRECTORIES,
) -> tuple[CacheEntry, ...]:
    """Build the cache entry set for a build.

    Args:
        declared: Directories declared by the manifest (None if not declared).
        defaults: Directories used when the manifest declares none.

    Returns:
        Tuple of project-rooted entries, duplicates removed, order kept.
    """
    paths = list(declared) if declared is not None else list(defaults)
    seen: list[str] = []
    for path in paths:
        normalized = _validate_relative_path(path)
        if normalized not in seen:
            seen.append(normalized)
    return tuple(CacheEntry(relative_path=p) for p in seen)


def entries_root(cache_dir: Path, namespace: str = DEFAULT_NAMESPACE) -> Path:
    """Return the directory holding cached entries."""
    return cache_dir / namespace / ENTRIES_DIRNAME


def _validate_relative_path(relative_path: str) -> str:
    """Validate that an entry path stays inside its root.

    Raises:
        CacheStoreError: If the path is absolute, empty or contains '..'.
    """
    path = PurePosixPath(relative_path)
    if not relative_path or path.is_absolute() or ".." in path.parts:
        raise CacheStoreError(
            f"Cache entry path must be relative to the project: {relative_path!r}",
            code="path_traversal",
        )
    return path.as_posix()


def _locate(
    entry: CacheEntry,
    project_dir: Path,
    cache_root: Path,
) -> tuple[Path, Path]:
    """Return (source, destination) for copying an entry out of its root."""
    relative = _validate_relative_path(entry.relative_path)
    project_path = project_dir / relative
    cached_path = cache_root / relative
    if entry.source_root is CacheRoot.CACHE:
        return cached_path, project_path
    return project_path, cached_path


def _remove_path(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)


def _copy_entry(source: Path, dest: Path) -> None:
    """Copy one entry, replacing whatever exists at the destination.

    Symlinks inside the tree are preserved as links.

    Raises:
        CacheStoreError: If any filesystem operation fails.
    """
    try:
        _remove_path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        if source.is_dir():
            shutil.copytree(source, dest, symlinks=True)
        else:
            shutil.copy2(source, dest, follow_symlinks=False)
    except OSError as e:
        raise CacheStoreError(
            f"Failed to copy cache entry {source} -> {dest}: {e}",
            code="copy_failed",
        ) from e


def restore(
    project_dir: Path,
    cache_dir: Path,
    entries: Iterable[CacheEntry],
    namespace: str = DEFAULT_NAMESPACE,
) -> list[str]:
    """Copy cached entries into the project tree.

    Entries without a cached counterpart are skipped.

    Args:
        project_dir: Project root.
        cache_dir: Persistent cache directory.
        entries: Entries eligible for caching.
        namespace: Subdirectory owned by this builder.

    Returns:
        Relative paths that were restored.

    Raises:
        CacheStoreError: If copying fails.
    """
    root = entries_root(cache_dir, namespace)
    restored: list[str] = []
    for entry in entries:
        source, dest = _locate(
            replace(entry, source_root=CacheRoot.CACHE), project_dir, root
        )
        if not source.exists() and not source.is_symlink():
            logger.debug("- %s (not cached - skipping)", entry.relative_path)
            continue
        _copy_entry(source, dest)
        logger.debug("- %s", entry.relative_path)
        restored.append(entry.relative_path)
    return restored


def restore_if_valid(
    status: CacheStatus,
    project_dir: Path,
    cache_dir: Path,
    entries: Iterable[CacheEntry],
    namespace: str = DEFAULT_NAMESPACE,
) -> list[str]:
    """Restore entries only when the cache signature is valid.

    An invalid or missing cache is never partially restored.

    Returns:
        Relative paths that were restored (empty unless status is VALID).
    """
    if status is not CacheStatus.VALID:
        logger.debug("Skipping cache restore (%s)", status.value)
        return []
    return restore(project_dir, cache_dir, entries, namespace)


def clear(cache_dir: Path, namespace: str = DEFAULT_NAMESPACE) -> None:
    """Remove every cached entry. Safe to call on an empty cache.

    Raises:
        CacheStoreError: If removal fails.
    """
    root = entries_root(cache_dir, namespace)
    try:
        _remove_path(root)
    except OSError as e:
        raise CacheStoreError(
            f"Failed to clear cache at {root}: {e}",
            code="clear_failed",
        ) from e


def save(
    project_dir: Path,
    cache_dir: Path,
    entries: Iterable[CacheEntry],
    namespace: str = DEFAULT_NAMESPACE,
) -> list[str]:
    """Replace the cache contents with the entries present in the project.

    Args:
        project_dir: Project root.
        cache_dir: Persistent cache directory.
        entries: Entries eligible for caching.
        namespace: Subdirectory owned by this builder.

    Returns:
        Relative paths that were saved.

    Raises:
        CacheStoreError: If clearing or copying fails.
    """
    clear(cache_dir, namespace)
    root = entries_root(cache_dir, namespace)
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CacheStoreError(
            f"Failed to create cache directory {root}: {e}",
            code="copy_failed",
        ) from e

    saved: list[str] = []
    for entry in entries:
        source, dest = _locate(
            replace(entry, source_root=CacheRoot.PROJECT), project_dir, root
        )
        if not source.exists() and not source.is_symlink():
            logger.debug("- %s (nothing to cache)", entry.relative_path)
            continue
        _copy_entry(source, dest)
        logger.debug("- %s", entry.relative_path)
        saved.append(entry.relative_path)
    return saved


def list_cached(cache_dir: Path, namespace: str = DEFAULT_NAMESPACE) -> list[str]:
    """List top-level cached entries, sorted."""
    root = entries_root(cache_dir, namespace)
    if not root.is_dir():
        return []
    return sorted(p.relative_to(root).as_posix() for p in root.iterdir())


__all__ = [
    "DEFAULT_CACHE_DIRECTORIES",
    "ENTRIES_DIRNAME",
    "build_entries",
    "clear",
    "entries_root",
    "list_cached",
    "restore",
    "restore_if_valid",
    "save",
]
