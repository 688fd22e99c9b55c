"""Node.js toolchain installation.

This module handles:
- Resolving engines.node / engines.npm ranges to concrete versions
- Downloading and extracting the Node.js binary distribution
- Installing a declared npm version over the bundled one
- Writing the runtime profile fragment for the toolchain
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from slugbuilder.errors import ToolchainError
from slugbuilder.runtime.environment import prepend_path
from slugbuilder.runtime.fetch import fetch_and_extract
from slugbuilder.runtime.profile_d import write_profile_fragment
from slugbuilder.runtime.runner import CommandRunner
from slugbuilder.types import ToolchainDescriptor

if TYPE_CHECKING:
    from slugbuilder.config import Settings
    from slugbuilder.manifest.schema import ManifestSchema
    from slugbuilder.pipeline.log import DiagnosticLog

logger = logging.getLogger(__name__)

EXACT_VERSION_PATTERN = re.compile(r"^v?(\d+\.\d+\.\d+)$")

# Timeout for resolver requests (seconds)
RESOLVE_TIMEOUT = 30


def node_tarball_url(dist_url: str, version: str) -> str:
    """Return the linux-x64 binary tarball URL for a Node.js version."""
    return f"{dist_url.rstrip('/')}/v{version}/node-v{version}-linux-x64.tar.gz"


def resolve_version(
    client: httpx.Client,
    kind: str,
    requested: str,
    resolver_url: str,
    timeout: float = RESOLVE_TIMEOUT,
) -> str:
    """Resolve a semver range to a concrete version.

    Exact versions (with or without a leading 'v') are returned as is;
    anything else is sent to the resolver service.

    Args:
        client: HTTPX client instance.
        kind: "node" or "npm".
        requested: Range or version from the manifest.
        resolver_url: Base URL of the resolver service.
        timeout: Request timeout in seconds.

    Returns:
        Concrete version string without a leading 'v'.

    Raises:
        ToolchainError: If the range cannot be resolved.
    """
    match = EXACT_VERSION_PATTERN.match(requested.strip())
    if match:
        return match.group(1)

    url = f"{resolver_url.rstrip('/')}/{kind}/resolve"
    try:
        response = client.get(url, params={"range": requested}, timeout=timeout)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise ToolchainError(
            f"Unable to resolve {kind} version range '{requested}': {e}",
            code="unresolved_range",
        ) from e

    match = EXACT_VERSION_PATTERN.match(response.text.strip())
    if not match:
        raise ToolchainError(
            f"Unable to resolve {kind} version range '{requested}'",
            code="unresolved_range",
        )
    return match.group(1)


class NodeToolchainInstaller:
    """Installs Node.js and npm into the project's vendor directory."""

    def __init__(
        self,
        settings: Settings,
        runner: CommandRunner | None = None,
        client_factory: Callable[[], httpx.Client] = httpx.Client,
    ) -> None:
        self.settings = settings
        self.runner = runner or CommandRunner()
        self.client_factory = client_factory

    def node_dir(self, project_dir: Path) -> Path:
        return project_dir / self.settings.vendor_dir / "node"

    def install(
        self,
        manifest: ManifestSchema,
        project_dir: Path,
        env: Mapping[str, str],
        log: DiagnosticLog,
    ) -> tuple[ToolchainDescriptor, dict[str, str]]:
        """Install the toolchain declared by the manifest.

        Args:
            manifest: Validated manifest.
            project_dir: Project root.
            env: Build environment before installation.
            log: Diagnostic log.

        Returns:
            Tuple of (resolved toolchain, environment with the toolchain on PATH).

        Raises:
            ToolchainError: If resolution or installation fails.
            DownloadError: If the binary download fails.
            ExtractionError: If the archive cannot be extracted.
            CommandError: If installing npm fails.
        """
        engines = manifest.engines
        node_range = engines.node or self.settings.default_node_range
        log.write(f"engines.node (package.json):  {engines.node or 'unspecified'}")
        log.write(f"engines.npm (package.json):   {engines.npm or 'unspecified'}")

        node_dir = self.node_dir(project_dir)
        with self.client_factory() as client:
            node_version = resolve_version(
                client, "node", node_range, self.settings.version_resolver_url
            )
            log.write(f"Resolved node version: {node_version}")

            if self.settings.offline:
                if not (node_dir / "bin" / "node").exists():
                    raise ToolchainError(
                        f"Offline mode: node {node_version} is not installed",
                        code="offline",
                    )
            else:
                url = node_tarball_url(self.settings.node_dist_url, node_version)
                log.write(f"Downloading and installing node {node_version}")
                fetch_and_extract(
                    client,
                    url,
                    node_dir,
                    timeout=self.settings.download_timeout,
                    retries=self.settings.download_retries,
                )

            build_env = prepend_path(env, node_dir / "bin")
            npm_version = self._installed_npm_version(project_dir, build_env)

            if engines.npm:
                wanted = resolve_version(
                    client, "npm", engines.npm, self.settings.version_resolver_url
                )
                if wanted != npm_version:
                    log.write(
                        f"Downloading and installing npm {wanted} "
                        f"(replacing version {npm_version})"
                    )
                    self.runner.run(
                        ["npm", "install", "--unsafe-perm", "--quiet", "-g"]
                        + [f"npm@{wanted}"],
                        cwd=project_dir,
                        env=build_env,
                        log=log,
                    )
                    npm_version = wanted
                else:
                    log.write(f"npm {npm_version} already installed with node")
            else:
                log.write(f"Using default npm version: {npm_version}")

        vendor = self.settings.vendor_dir
        write_profile_fragment(
            project_dir,
            "nodejs",
            exports={"NODE_HOME": f"$HOME/{vendor}/node"},
            path_entries=[
                f"$HOME/{vendor}/node/bin",
                "$HOME/bin",
                "$HOME/node_modules/.bin",
            ],
        )
        return ToolchainDescriptor(node_version, npm_version), build_env

    def _installed_npm_version(self, project_dir: Path, env: Mapping[str, str]) -> str:
        result = self.runner.capture(["npm", "--version"], cwd=project_dir, env=env)
        return (result.output or "").strip()


__all__ = [
    "EXACT_VERSION_PATTERN",
    "NodeToolchainInstaller",
    "node_tarball_url",
    "resolve_version",
]
