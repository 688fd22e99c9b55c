"""Shared type definitions for slugbuilder.

This module contains dataclasses and enums shared across subpackages
to avoid circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class CacheStatus(str, Enum):
    """Validity of the persistent cache for the current build."""

    VALID = "valid"
    INVALID = "invalid"
    MISSING = "missing"


class CacheRoot(str, Enum):
    """Tree a cache entry is read from."""

    PROJECT = "project"
    CACHE = "cache"


class InstallDecision(str, Enum):
    """Strategy for materializing the dependency directory."""

    FRESH_INSTALL = "fresh-install"
    REBUILD_EXISTING = "rebuild-existing"


class PipelineState(str, Enum):
    """States of the build pipeline, in execution order."""

    INIT = "init"
    ENV_SETUP = "env-setup"
    TOOLCHAIN_INSTALL = "toolchain-install"
    EXTERNAL_DEPS_INSTALL = "external-deps-install"
    CACHE_RESTORE = "cache-restore"
    PRE_BUILD_HOOK = "pre-build-hook"
    DEPENDENCY_BUILD = "dependency-build"
    POST_BUILD_HOOK = "post-build-hook"
    CACHE_SAVE = "cache-save"
    SUMMARY = "summary"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class BuildContext:
    """Paths for one build invocation.

    Attributes:
        project_dir: Application tree being built.
        cache_dir: Persistent cache directory from previous builds.
        env_dir: Directory of files, one per exported variable.
        log_path: Diagnostic log file.
    """

    project_dir: Path
    cache_dir: Path
    env_dir: Path
    log_path: Path


@dataclass(frozen=True)
class CacheEntry:
    """A directory eligible for caching, relative to its source root."""

    relative_path: str
    source_root: CacheRoot = CacheRoot.PROJECT


@dataclass(frozen=True)
class ToolchainDescriptor:
    """Resolved toolchain versions for a build."""

    node_version: str
    npm_version: str


@dataclass(frozen=True)
class DependencySummaryItem:
    """One top-level installed dependency."""

    name: str
    version: str | None = None

    def __str__(self) -> str:
        return f"{self.name}@{self.version}" if self.version else self.name


@dataclass
class BuildOutcome:
    """Result of a pipeline run."""

    success: bool
    state: PipelineState
    message: str
    code: str | None = None
    category: str | None = None
    log_path: str | None = None
    stages_run: list[PipelineState] = field(default_factory=list)
    decision: InstallDecision | None = None
    cache_status: CacheStatus | None = None
    signature: str | None = None
    dependencies: list[DependencySummaryItem] = field(default_factory=list)
    remediation: list[str] = field(default_factory=list)


__all__ = [
    "BuildContext",
    "BuildOutcome",
    "CacheEntry",
    "CacheRoot",
    "CacheStatus",
    "DependencySummaryItem",
    "InstallDecision",
    "PipelineState",
    "ToolchainDescriptor",
]
