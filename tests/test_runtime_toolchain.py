"""Tests for runtime/toolchain.py module.

HTTP is mocked with respx; npm commands go through a mocked runner.
"""

import io
import tarfile
from unittest.mock import MagicMock

import httpx
import pytest
import respx

from slugbuilder.config import Settings
from slugbuilder.errors import ToolchainError
from slugbuilder.manifest.schema import ManifestSchema
from slugbuilder.pipeline.log import DiagnosticLog
from slugbuilder.runtime.runner import CommandResult
from slugbuilder.runtime.toolchain import (
    NodeToolchainInstaller,
    node_tarball_url,
    resolve_version,
)

DIST = "https://nodejs.example.com/dist"
RESOLVER = "https://semver.example.com"


def node_tarball(version: str) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        content = b"#!/bin/sh\n"
        info = tarfile.TarInfo(f"node-v{version}-linux-x64/bin/node")
        info.size = len(content)
        info.mode = 0o755
        tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


@pytest.fixture
def settings() -> Settings:
    return Settings(node_dist_url=DIST, version_resolver_url=RESOLVER)


@pytest.fixture
def runner() -> MagicMock:
    """Runner whose bundled npm reports 10.2.4."""
    runner = MagicMock()
    runner.capture.return_value = CommandResult("npm --version", 0, "10.2.4\n")
    return runner


@pytest.fixture
def log(tmp_path) -> DiagnosticLog:
    log = DiagnosticLog(tmp_path / "build.log")
    log.reset()
    return log


@pytest.fixture
def project_dir(tmp_path):
    path = tmp_path / "app"
    path.mkdir()
    return path


class TestNodeTarballUrl:
    def test_url(self):
        assert (
            node_tarball_url(DIST + "/", "20.11.1")
            == f"{DIST}/v20.11.1/node-v20.11.1-linux-x64.tar.gz"
        )


class TestResolveVersion:
    """Tests for resolve_version function."""

    @pytest.mark.parametrize("requested", ["20.11.1", "v20.11.1", " 20.11.1 "])
    def test_exact_version_skips_resolver(self, requested):
        """Exact versions should not hit the network."""
        client = MagicMock()
        assert resolve_version(client, "node", requested, RESOLVER) == "20.11.1"
        client.get.assert_not_called()

    @respx.mock
    def test_range_resolved(self):
        route = respx.get(f"{RESOLVER}/node/resolve").mock(
            return_value=httpx.Response(200, text="20.11.1\n")
        )
        with httpx.Client() as client:
            assert resolve_version(client, "node", "20.x", RESOLVER) == "20.11.1"
        assert route.calls.last.request.url.params["range"] == "20.x"

    @respx.mock
    def test_unresolvable_range(self):
        respx.get(f"{RESOLVER}/npm/resolve").mock(
            return_value=httpx.Response(200, text="No Content")
        )
        with httpx.Client() as client, pytest.raises(ToolchainError) as exc_info:
            resolve_version(client, "npm", ">=99", RESOLVER)
        assert exc_info.value.code == "unresolved_range"
        assert "Unable to resolve npm version range '>=99'" in str(exc_info.value)

    @respx.mock
    def test_resolver_error(self):
        respx.get(f"{RESOLVER}/node/resolve").mock(return_value=httpx.Response(500))
        with httpx.Client() as client, pytest.raises(ToolchainError):
            resolve_version(client, "node", "20.x", RESOLVER)


class TestNodeToolchainInstaller:
    """Tests for NodeToolchainInstaller.install."""

    @respx.mock
    def test_install_node_with_bundled_npm(self, settings, runner, log, project_dir):
        """Should download node and keep the bundled npm."""
        respx.get(f"{DIST}/v20.11.1/node-v20.11.1-linux-x64.tar.gz").mock(
            return_value=httpx.Response(200, content=node_tarball("20.11.1"))
        )
        manifest = ManifestSchema.model_validate({"engines": {"node": "20.11.1"}})
        installer = NodeToolchainInstaller(settings, runner=runner)

        toolchain, env = installer.install(
            manifest, project_dir, {"PATH": "/usr/bin"}, log
        )

        assert toolchain.node_version == "20.11.1"
        assert toolchain.npm_version == "10.2.4"
        node_bin = project_dir / ".vendor" / "node" / "bin"
        assert (node_bin / "node").exists()
        assert env["PATH"].startswith(str(node_bin))
        runner.run.assert_not_called()
        assert "Using default npm version: 10.2.4" in log.read_text()

        fragment = project_dir / ".profile.d" / "nodejs.sh"
        assert "$HOME/.vendor/node/bin" in fragment.read_text()

    @respx.mock
    def test_installs_declared_npm(self, settings, runner, log, project_dir):
        """A declared npm version different from the bundled one is installed."""
        respx.get(f"{DIST}/v20.11.1/node-v20.11.1-linux-x64.tar.gz").mock(
            return_value=httpx.Response(200, content=node_tarball("20.11.1"))
        )
        respx.get(f"{RESOLVER}/npm/resolve").mock(
            return_value=httpx.Response(200, text="10.5.0")
        )
        manifest = ManifestSchema.model_validate(
            {"engines": {"node": "20.11.1", "npm": "10.x"}}
        )
        installer = NodeToolchainInstaller(settings, runner=runner)

        toolchain, env = installer.install(manifest, project_dir, {}, log)

        assert toolchain.npm_version == "10.5.0"
        cmd = runner.run.call_args.args[0]
        assert cmd[:2] == ["npm", "install"]
        assert cmd[-1] == "npm@10.5.0"
        assert runner.run.call_args.kwargs["env"] == env

    @respx.mock
    def test_default_node_range(self, runner, log, project_dir):
        """Without engines.node the configured default range is resolved."""
        settings = Settings(
            node_dist_url=DIST, version_resolver_url=RESOLVER, default_node_range="18.x"
        )
        route = respx.get(f"{RESOLVER}/node/resolve").mock(
            return_value=httpx.Response(200, text="18.19.1")
        )
        respx.get(f"{DIST}/v18.19.1/node-v18.19.1-linux-x64.tar.gz").mock(
            return_value=httpx.Response(200, content=node_tarball("18.19.1"))
        )
        installer = NodeToolchainInstaller(settings, runner=runner)

        toolchain, _ = installer.install(ManifestSchema(), project_dir, {}, log)

        assert toolchain.node_version == "18.19.1"
        assert route.calls.last.request.url.params["range"] == "18.x"

    def test_offline_without_installation(self, runner, log, project_dir):
        """Offline mode fails when node is not already installed."""
        settings = Settings(offline=True, node_dist_url=DIST)
        manifest = ManifestSchema.model_validate({"engines": {"node": "20.11.1"}})
        installer = NodeToolchainInstaller(settings, runner=runner)

        with pytest.raises(ToolchainError) as exc_info:
            installer.install(manifest, project_dir, {}, log)
        assert exc_info.value.code == "offline"
