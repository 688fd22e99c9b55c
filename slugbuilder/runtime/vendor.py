"""External binary bundle installation.

Bundles are prebuilt tarballs (e.g. a geospatial library distribution)
extracted into ``<project>/<vendor_dir>/<name>`` and exposed to the
runtime through a profile fragment. Each bundle is installed once per build.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from slugbuilder.errors import DownloadError
from slugbuilder.runtime.environment import prepend_path
from slugbuilder.runtime.fetch import fetch_and_extract
from slugbuilder.runtime.profile_d import write_profile_fragment

if TYPE_CHECKING:
    from slugbuilder.config import Settings, VendorBundleSettings
    from slugbuilder.pipeline.log import DiagnosticLog

logger = logging.getLogger(__name__)


def unique_bundles(
    bundles: Iterable[VendorBundleSettings],
) -> list[VendorBundleSettings]:
    """Drop repeated bundles by name, keeping the first declaration."""
    seen: set[str] = set()
    result: list[VendorBundleSettings] = []
    for bundle in bundles:
        if bundle.name in seen:
            logger.debug("Skipping duplicate bundle %s", bundle.name)
            continue
        seen.add(bundle.name)
        result.append(bundle)
    return result


class VendorBundleInstaller:
    """Installs the configured external binary bundles."""

    def __init__(
        self,
        settings: Settings,
        client_factory: Callable[[], httpx.Client] = httpx.Client,
    ) -> None:
        self.settings = settings
        self.client_factory = client_factory

    def install(
        self,
        project_dir: Path,
        env: Mapping[str, str],
        log: DiagnosticLog,
    ) -> tuple[list[str], dict[str, str]]:
        """Install every configured bundle.

        Returns:
            Tuple of (installed bundle names, environment with bundle bins on PATH).

        Raises:
            DownloadError: If a download fails or offline mode forbids it.
            ExtractionError: If an archive cannot be extracted.
        """
        bundles = unique_bundles(self.settings.vendor_bundles)
        build_env = dict(env)
        if not bundles:
            log.write("No external bundles configured")
            return [], build_env

        if self.settings.offline:
            raise DownloadError(
                "Offline mode: cannot fetch external bundles", code="offline"
            )

        vendor = self.settings.vendor_dir
        installed: list[str] = []
        with self.client_factory() as client:
            for bundle in bundles:
                dest = project_dir / vendor / bundle.name
                log.write(f"Installing {bundle.name} from {bundle.url}")
                fetch_and_extract(
                    client,
                    bundle.url,
                    dest,
                    timeout=self.settings.download_timeout,
                    retries=self.settings.download_retries,
                )
                build_env = prepend_path(build_env, dest / bundle.bin_subdir)
                for name, value in bundle.env.items():
                    build_env[name] = value.replace("$HOME", str(project_dir))
                write_profile_fragment(
                    project_dir,
                    bundle.name,
                    exports=bundle.env,
                    path_entries=[f"$HOME/{vendor}/{bundle.name}/{bundle.bin_subdir}"],
                )
                installed.append(bundle.name)
        return installed, build_env


__all__ = ["VendorBundleInstaller", "unique_bundles"]
