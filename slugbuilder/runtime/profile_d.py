"""Shell-profile fragments for the deployed runtime.

Fragments are written into ``<project>/.profile.d`` and sourced by the
runtime at boot. They are output only; the pipeline never reads them back.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Iterable, Mapping
from pathlib import Path

logger = logging.getLogger(__name__)

PROFILE_DIRNAME = ".profile.d"


def render_profile_fragment(
    exports: Mapping[str, str] | None = None,
    path_entries: Iterable[str] = (),
) -> str:
    """Render the body of a profile fragment.

    Values and path entries may reference ``$HOME`` and are emitted inside
    double quotes so the reference expands at boot.
    """
    lines: list[str] = []
    entries = list(path_entries)
    if entries:
        lines.append(f'export PATH="{":".join(entries)}:$PATH"')
    for name, value in sorted((exports or {}).items()):
        if "$" in value:
            lines.append(f'export {name}="{value}"')
        else:
            lines.append(f"export {name}={shlex.quote(value)}")
    return "\n".join(lines) + "\n"


def write_profile_fragment(
    project_dir: Path,
    name: str,
    exports: Mapping[str, str] | None = None,
    path_entries: Iterable[str] = (),
) -> Path:
    """Write ``<project>/.profile.d/<name>.sh``.

    Returns:
        Path of the written fragment.
    """
    path = project_dir / PROFILE_DIRNAME / f"{name}.sh"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_profile_fragment(exports, path_entries), encoding="utf-8")
    logger.debug("Wrote profile fragment %s", path)
    return path


__all__ = ["PROFILE_DIRNAME", "render_profile_fragment", "write_profile_fragment"]
