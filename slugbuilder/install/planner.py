"""Dependency install planning.

The decision is taken from the project tree as submitted, before any
cache restore: a dependency directory that exists at that point was
checked in with the source, and its compiled modules must be rebuilt
for the installed toolchain.
"""

from __future__ import annotations

from pathlib import Path

from slugbuilder.types import InstallDecision

DEFAULT_DEPENDENCY_DIR = "node_modules"


def decide(
    project_dir: Path,
    dependency_dir: str = DEFAULT_DEPENDENCY_DIR,
) -> InstallDecision:
    """Choose the install strategy.

    Args:
        project_dir: Project root.
        dependency_dir: Project-relative dependency directory.

    Returns:
        REBUILD_EXISTING if the dependency directory exists, FRESH_INSTALL otherwise.
    """
    if (project_dir / dependency_dir).is_dir():
        return InstallDecision.REBUILD_EXISTING
    return InstallDecision.FRESH_INSTALL


def plan_install_commands(
    decision: InstallDecision,
    project_dir: Path,
) -> list[list[str]]:
    """Compose the commands for an install decision.

    Args:
        decision: Strategy chosen by decide().
        project_dir: Project root, used for the npm userconfig path.

    Returns:
        Commands to run in order.
    """
    install = [
        "npm",
        "install",
        "--unsafe-perm",
        "--userconfig",
        str(project_dir / ".npmrc"),
    ]
    if decision is InstallDecision.REBUILD_EXISTING:
        return [["npm", "rebuild"], install]
    return [install]


__all__ = [
    "DEFAULT_DEPENDENCY_DIR",
    "decide",
    "plan_install_commands",
]
