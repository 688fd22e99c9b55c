"""Lifecycle hook execution.

Hooks are entries of the manifest's ``scripts`` table run at fixed points
of the pipeline. An undeclared hook is a no-op; a failing hook fails the build.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING

from slugbuilder.errors import CommandError, HookError
from slugbuilder.runtime.runner import CommandRunner

if TYPE_CHECKING:
    from slugbuilder.manifest.schema import ManifestSchema
    from slugbuilder.pipeline.log import DiagnosticLog

logger = logging.getLogger(__name__)


def run_hook_if_present(
    manifest: ManifestSchema,
    hook_name: str,
    project_dir: Path,
    env: Mapping[str, str],
    log: DiagnosticLog,
    runner: CommandRunner | None = None,
) -> bool:
    """Run a named hook if the manifest declares it.

    Args:
        manifest: Validated manifest.
        hook_name: Key in the manifest's scripts table.
        project_dir: Working directory for the hook.
        env: Build environment, including the toolchain on PATH.
        log: Diagnostic log receiving the hook output.
        runner: Command runner (a default one if not provided).

    Returns:
        True if the hook ran, False if it is not declared.

    Raises:
        HookError: If the hook exits non-zero or cannot start.
    """
    script = manifest.script(hook_name)
    if script is None:
        log.write(f"No {hook_name} script declared")
        return False

    logger.info("Running %s (%s)", hook_name, script)
    runner = runner or CommandRunner()
    try:
        runner.run(["sh", "-c", script], cwd=project_dir, env=env, log=log)
    except CommandError as e:
        raise HookError(hook_name, exit_code=e.exit_code) from e
    return True


__all__ = ["run_hook_if_present"]
