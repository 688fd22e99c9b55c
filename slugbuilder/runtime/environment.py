"""Build environment construction.

The pipeline never mutates ``os.environ``: every collaborator receives an
explicit environment built here.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable, Mapping
from pathlib import Path

logger = logging.getLogger(__name__)

ENV_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

DEFAULT_BUILD_VARS = {
    "NPM_CONFIG_PRODUCTION": "true",
    "NODE_ENV": "production",
}


def load_env_dir(env_dir: Path, blacklist: Iterable[str] = ()) -> dict[str, str]:
    """Read exported variables from an environment directory.

    Each regular file is one variable: the file name is the variable name
    and its contents (without the trailing newline) the value. Bytes that
    are not valid UTF-8 are kept as surrogate escapes, so they reach child
    processes unchanged.

    Args:
        env_dir: Directory of variable files. May not exist.
        blacklist: Variable names that are never imported.

    Returns:
        Mapping of imported variables.
    """
    if not env_dir.is_dir():
        logger.debug("No environment directory at %s", env_dir)
        return {}

    blocked = set(blacklist)
    imported: dict[str, str] = {}
    for path in sorted(env_dir.iterdir()):
        name = path.name
        if not path.is_file() or name in blocked:
            continue
        if not ENV_NAME_PATTERN.match(name):
            logger.warning("Ignoring invalid environment variable name: %s", name)
            continue
        value = path.read_text(encoding="utf-8", errors="surrogateescape")
        if "\0" in value:
            logger.warning("Ignoring environment variable with a NUL byte: %s", name)
            continue
        imported[name] = value.rstrip("\n")
    return imported


def prepend_path(env: Mapping[str, str], *entries: Path) -> dict[str, str]:
    """Return a copy of env with directories prepended to PATH."""
    result = dict(env)
    current = result.get("PATH", "")
    parts = [str(e) for e in entries]
    if current:
        parts.append(current)
    result["PATH"] = os.pathsep.join(parts)
    return result


def build_environment(
    project_dir: Path,
    imported: Mapping[str, str],
    dependency_dir: str = "node_modules",
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Build the environment used by every command of the pipeline.

    Args:
        project_dir: Project root.
        imported: Variables from the environment directory.
        dependency_dir: Project-relative dependency directory; its .bin
            goes on PATH.
        base: Starting environment (defaults to the process environment).

    Returns:
        Complete environment mapping.
    """
    env = dict(os.environ if base is None else base)
    env.update(imported)
    for name, value in DEFAULT_BUILD_VARS.items():
        env.setdefault(name, value)
    env["HOME"] = env.get("HOME") or str(project_dir)
    return prepend_path(env, project_dir / dependency_dir / ".bin")


__all__ = [
    "DEFAULT_BUILD_VARS",
    "build_environment",
    "load_env_dir",
    "prepend_path",
]
