"""Command runner for external build commands.

This module handles:
- Executing commands with an explicit working directory and environment
- Capturing stdout/stderr into the diagnostic log
- Turning non-zero exits into CommandError
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from slugbuilder.errors import CommandError
from slugbuilder.pipeline.log import DiagnosticLog

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result of a command execution.

    Attributes:
        command: The command that was executed.
        exit_code: Process exit code.
        output: Captured output, when requested.
    """

    command: str
    exit_code: int
    output: str | None = None


class CommandRunner:
    """Runs commands with output appended to a diagnostic log."""

    def run(
        self,
        cmd: Sequence[str],
        cwd: Path,
        env: Mapping[str, str],
        log: DiagnosticLog,
    ) -> CommandResult:
        """Run a command, appending its output to the log.

        Args:
            cmd: Command as list of strings.
            cwd: Working directory.
            env: Complete environment for the process.
            log: Diagnostic log receiving stdout and stderr.

        Returns:
            CommandResult for a zero exit.

        Raises:
            CommandError: If the command cannot start or exits non-zero.
        """
        cmd_str = shlex.join(cmd)
        logger.debug("Executing: %s (cwd=%s)", cmd_str, cwd)
        log.write(f"$ {cmd_str}")

        try:
            with log.stream() as log_file:
                result = subprocess.run(
                    list(cmd),
                    cwd=cwd,
                    env=dict(env),
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    check=False,
                )
        except (OSError, ValueError) as e:
            log.write(f"# Failed to execute: {e}")
            raise CommandError(
                f"Failed to execute {cmd_str}: {e}",
                exit_code=None,
                code="execution_error",
            ) from e

        if result.returncode != 0:
            log.write(f"# Exit code: {result.returncode}")
            raise CommandError(
                f"Command failed with exit code {result.returncode}: {cmd_str}",
                exit_code=result.returncode,
            )
        return CommandResult(command=cmd_str, exit_code=result.returncode)

    def capture(
        self,
        cmd: Sequence[str],
        cwd: Path,
        env: Mapping[str, str],
    ) -> CommandResult:
        """Run a command and return its stdout.

        Raises:
            CommandError: If the command cannot start or exits non-zero.
        """
        cmd_str = shlex.join(cmd)
        try:
            result = subprocess.run(
                list(cmd),
                cwd=cwd,
                env=dict(env),
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            raise CommandError(
                f"{cmd_str} failed: {e.stderr.strip()}",
                exit_code=e.returncode,
            ) from e
        except (OSError, ValueError) as e:
            raise CommandError(
                f"Failed to execute {cmd_str}: {e}",
                code="execution_error",
            ) from e
        return CommandResult(
            command=cmd_str, exit_code=result.returncode, output=result.stdout
        )


__all__ = ["CommandResult", "CommandRunner"]
