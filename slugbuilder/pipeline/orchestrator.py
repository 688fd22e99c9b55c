"""Build orchestrator.

This module provides the staged build pipeline:
1. Load the manifest (a missing or invalid manifest fails before any stage)
2. Set up the build environment and decide the install strategy
3. Install the toolchain and external bundles
4. Restore cached directories if the cache signature is valid
5. Run the pre-build hook, the install/rebuild commands, the post-build hook
6. Save cached directories and the new signature
7. Summarize the installed dependencies

Stages run strictly in order. The first error moves the pipeline to
FAILED and skips every remaining stage. A failure before the cache save
leaves the cache untouched; a failure during it leaves the cache unsigned.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from rich.console import Console

from slugbuilder.cache import signature as signature_store
from slugbuilder.cache import store as cache_store
from slugbuilder.config import get_settings
from slugbuilder.errors import ManifestError, SlugBuilderError
from slugbuilder.install.hooks import run_hook_if_present
from slugbuilder.install.planner import decide, plan_install_commands
from slugbuilder.install.summary import list_top_level_dependencies
from slugbuilder.manifest.io import load_manifest
from slugbuilder.pipeline.failure import GENERIC_FAILURE_MESSAGE, scan_failure
from slugbuilder.pipeline.log import STAGE_PREFIX, DiagnosticLog
from slugbuilder.runtime.environment import build_environment, load_env_dir
from slugbuilder.runtime.runner import CommandRunner
from slugbuilder.runtime.toolchain import NodeToolchainInstaller
from slugbuilder.runtime.vendor import VendorBundleInstaller
from slugbuilder.types import (
    BuildContext,
    BuildOutcome,
    CacheEntry,
    CacheStatus,
    DependencySummaryItem,
    InstallDecision,
    PipelineState,
    ToolchainDescriptor,
)

if TYPE_CHECKING:
    from slugbuilder.config import Settings
    from slugbuilder.manifest.schema import ManifestSchema

logger = logging.getLogger(__name__)

T = TypeVar("T")

STAGE_TITLES: dict[PipelineState, str] = {
    PipelineState.ENV_SETUP: "Creating runtime environment",
    PipelineState.TOOLCHAIN_INSTALL: "Installing binaries",
    PipelineState.EXTERNAL_DEPS_INSTALL: "Installing external bundles",
    PipelineState.CACHE_RESTORE: "Restoring cache",
    PipelineState.PRE_BUILD_HOOK: "Running pre-build hook",
    PipelineState.DEPENDENCY_BUILD: "Building dependencies",
    PipelineState.POST_BUILD_HOOK: "Running post-build hook",
    PipelineState.CACHE_SAVE: "Caching build",
    PipelineState.SUMMARY: "Build succeeded!",
}


def _required(value: T | None, name: str) -> T:
    """Return a value produced by an earlier stage.

    Raises:
        SlugBuilderError: If the producing stage has not run.
    """
    if value is None:
        raise SlugBuilderError(
            f"{name} is not available before its stage has run",
            code="stage_order",
        )
    return value


@dataclass
class PipelineRun:
    """Mutable state accumulated while the stages run."""

    manifest: ManifestSchema
    env: dict[str, str] = field(default_factory=dict)
    decision: InstallDecision | None = None
    toolchain: ToolchainDescriptor | None = None
    entries: tuple[CacheEntry, ...] = ()
    signature: str | None = None
    cache_status: CacheStatus | None = None
    restored: list[str] = field(default_factory=list)
    saved: list[str] = field(default_factory=list)
    dependencies: list[DependencySummaryItem] = field(default_factory=list)


class BuildOrchestrator:
    """Runs the build pipeline for one project/cache directory pair."""

    def __init__(
        self,
        context: BuildContext,
        settings: Settings | None = None,
        toolchain_installer: NodeToolchainInstaller | None = None,
        vendor_installer: VendorBundleInstaller | None = None,
        runner: CommandRunner | None = None,
        console: Console | None = None,
    ) -> None:
        self.context = context
        self.settings = settings or get_settings()
        self.runner = runner or CommandRunner()
        self.toolchain_installer = toolchain_installer or NodeToolchainInstaller(
            self.settings, runner=self.runner
        )
        self.vendor_installer = vendor_installer or VendorBundleInstaller(self.settings)
        self.console = console or Console()
        self.log = DiagnosticLog(context.log_path)
        self.state = PipelineState.INIT
        self.stages_run: list[PipelineState] = []

    def _stages(self) -> list[tuple[PipelineState, Callable[[PipelineRun], None]]]:
        return [
            (PipelineState.ENV_SETUP, self._setup_environment),
            (PipelineState.TOOLCHAIN_INSTALL, self._install_toolchain),
            (PipelineState.EXTERNAL_DEPS_INSTALL, self._install_external_deps),
            (PipelineState.CACHE_RESTORE, self._restore_cache),
            (PipelineState.PRE_BUILD_HOOK, self._run_pre_build_hook),
            (PipelineState.DEPENDENCY_BUILD, self._build_dependencies),
            (PipelineState.POST_BUILD_HOOK, self._run_post_build_hook),
            (PipelineState.CACHE_SAVE, self._save_cache),
            (PipelineState.SUMMARY, self._summarize),
        ]

    def _enter(self, state: PipelineState, title: str | None = None) -> None:
        self.state = state
        self.stages_run.append(state)
        header = title or STAGE_TITLES[state]
        self.console.print(f"{STAGE_PREFIX}{header}", markup=False, highlight=False)
        self.log.stage(header)
        logger.debug("Entering stage %s", state.value)

    def _note(self, message: str) -> None:
        """Report a line both on the console and in the log."""
        self.console.print(f"       {message}", markup=False, highlight=False)
        self.log.write(message)

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.log.write(f"WARNING: {message}")

    def run(self) -> BuildOutcome:
        """Run every stage in order.

        Returns:
            BuildOutcome describing the final state. ``success`` is False
            when the manifest is invalid or any stage failed.
        """
        self.state = PipelineState.INIT
        self.stages_run = [PipelineState.INIT]
        self.log.reset()

        try:
            manifest = load_manifest(self.context.project_dir)
        except ManifestError as e:
            return self._fail(e, None)

        build = PipelineRun(manifest=manifest)
        try:
            for state, stage in self._stages():
                self._enter(state)
                stage(build)
        except (SlugBuilderError, OSError) as e:
            return self._fail(e, build)

        self.state = PipelineState.DONE
        logger.info("Build finished with %d dependencies", len(build.dependencies))
        return BuildOutcome(
            success=True,
            state=PipelineState.DONE,
            message="Build succeeded",
            log_path=str(self.context.log_path),
            stages_run=list(self.stages_run),
            decision=build.decision,
            cache_status=build.cache_status,
            signature=build.signature,
            dependencies=list(build.dependencies),
        )

    # Stages

    def _setup_environment(self, build: PipelineRun) -> None:
        project_dir = self.context.project_dir
        imported = load_env_dir(self.context.env_dir, self.settings.env_blacklist)
        dependency_dir = self.settings.dependency_dir
        build.env = build_environment(project_dir, imported, dependency_dir)
        for name in sorted(build.env):
            if name.startswith(("NPM_CONFIG_", "NODE_")):
                value = build.env[name].encode("utf-8", "backslashreplace")
                self._note(f"{name}={value.decode('utf-8')}")

        # Taken before anything can populate the dependency directory
        build.decision = decide(project_dir, dependency_dir)
        if build.decision is InstallDecision.REBUILD_EXISTING:
            self._warn(f"{dependency_dir} checked into source control")

    def _install_toolchain(self, build: PipelineRun) -> None:
        manifest = build.manifest
        if not manifest.engines.node:
            self._warn(
                "Node version not specified in package.json, "
                f"using {self.settings.default_node_range}"
            )
        build.toolchain, build.env = self.toolchain_installer.install(
            manifest, self.context.project_dir, build.env, self.log
        )
        self._note(
            f"Using node {build.toolchain.node_version} "
            f"and npm {build.toolchain.npm_version}"
        )
        if build.toolchain.npm_version.startswith("1."):
            self._warn(f"npm {build.toolchain.npm_version} has known issues")

    def _install_external_deps(self, build: PipelineRun) -> None:
        installed, build.env = self.vendor_installer.install(
            self.context.project_dir, build.env, self.log
        )
        for name in installed:
            self._note(f"Installed {name}")

    def _restore_cache(self, build: PipelineRun) -> None:
        toolchain = _required(build.toolchain, "Toolchain")
        namespace = self.settings.cache_namespace
        build.entries = cache_store.build_entries(
            build.manifest.cache_directories,
            self.settings.default_cache_directories,
        )
        build.signature = signature_store.compute_signature(
            signature_store.SignatureInputs(
                toolchain=toolchain,
                cache_directories=[e.relative_path for e in build.entries],
            )
        )
        build.cache_status = signature_store.signature_status(
            self.context.cache_dir, build.signature, namespace
        )

        if build.cache_status is CacheStatus.MISSING:
            self._note("Skipping cache restore (no previous cache)")
        elif build.cache_status is CacheStatus.INVALID:
            self._note("Skipping cache restore (new runtime signature)")
        else:
            self._note("Loading directories from cache:")

        build.restored = cache_store.restore_if_valid(
            build.cache_status,
            self.context.project_dir,
            self.context.cache_dir,
            build.entries,
            namespace,
        )
        for path in build.restored:
            self._note(f"- {path}")

    def _run_pre_build_hook(self, build: PipelineRun) -> None:
        run_hook_if_present(
            build.manifest,
            self.settings.pre_build_hook,
            self.context.project_dir,
            build.env,
            self.log,
            runner=self.runner,
        )

    def _build_dependencies(self, build: PipelineRun) -> None:
        decision = _required(build.decision, "Install decision")
        if decision is InstallDecision.REBUILD_EXISTING:
            self._note("Prebuild detected (dependency directory already exists)")
        commands = plan_install_commands(decision, self.context.project_dir)
        for cmd in commands:
            self.runner.run(
                cmd, cwd=self.context.project_dir, env=build.env, log=self.log
            )

    def _run_post_build_hook(self, build: PipelineRun) -> None:
        run_hook_if_present(
            build.manifest,
            self.settings.post_build_hook,
            self.context.project_dir,
            build.env,
            self.log,
            runner=self.runner,
        )

    def _save_cache(self, build: PipelineRun) -> None:
        signature = _required(build.signature, "Cache signature")
        namespace = self.settings.cache_namespace
        # Unsigned while the entries are rewritten
        signature_store.remove_signature(self.context.cache_dir, namespace)
        build.saved = cache_store.save(
            self.context.project_dir,
            self.context.cache_dir,
            build.entries,
            namespace,
        )
        for path in build.saved:
            self._note(f"- {path}")
        signature_store.save_signature(self.context.cache_dir, signature, namespace)

    def _summarize(self, build: PipelineRun) -> None:
        build.dependencies = list_top_level_dependencies(
            self.context.project_dir, self.settings.dependency_dir
        )
        for item in build.dependencies:
            self._note(f"├── {item}")

    # Failure path

    def _fail(self, error: Exception, build: PipelineRun | None) -> BuildOutcome:
        failed_at = self.state
        self.state = PipelineState.FAILED
        code = getattr(error, "code", "os_error")
        category = getattr(error, "category", "collaborator")

        self.log.write(f"# {error}")
        remediation = [r.message for r in scan_failure(self.log.read_text())]

        if isinstance(error, ManifestError):
            self.console.print(f"{STAGE_PREFIX}Invalid application", markup=False)
            self.console.print(f"       {error}", markup=False, highlight=False)
        else:
            logger.error("Build failed at %s: %s", failed_at.value, error)
            self.console.print(f"{STAGE_PREFIX}Build failed", markup=False)
            for message in remediation:
                self.console.print(f"       {message}", markup=False, highlight=False)
            self.console.print(
                f"       {GENERIC_FAILURE_MESSAGE}", markup=False, highlight=False
            )
        self.console.print(
            f"       Full build log: {self.context.log_path}",
            markup=False,
            highlight=False,
        )

        return BuildOutcome(
            success=False,
            state=PipelineState.FAILED,
            message=str(error),
            code=code,
            category=category,
            log_path=str(self.context.log_path),
            stages_run=list(self.stages_run),
            decision=build.decision if build else None,
            cache_status=build.cache_status if build else None,
            signature=build.signature if build else None,
            remediation=remediation,
        )


def run_build(
    context: BuildContext,
    settings: Settings | None = None,
    console: Console | None = None,
) -> BuildOutcome:
    """Run the pipeline with the default collaborators."""
    return BuildOrchestrator(context, settings=settings, console=console).run()


__all__ = ["STAGE_TITLES", "BuildOrchestrator", "PipelineRun", "run_build"]
