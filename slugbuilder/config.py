"""Configuration settings for slugbuilder.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class VendorBundleSettings(BaseModel):
    """An external binary bundle fetched into the project tree.

    Attributes:
        name: Bundle name, used as its directory under the vendor dir.
        url: Tarball URL.
        bin_subdir: Directory inside the bundle holding executables.
        env: Extra variables exported by the bundle's profile fragment.
            Values may reference ``$HOME``.
    """

    name: str
    url: str
    bin_subdir: str = "bin"
    env: dict[str, str] = Field(default_factory=dict)


def _default_log_path() -> Path:
    """Return the default diagnostic log path."""
    return Path("/tmp") / "slugbuilder-build.log"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the SLUGBUILDER_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="SLUGBUILDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    log_path: Path = Field(
        default_factory=_default_log_path,
        description="Diagnostic log file, truncated at the start of every build",
    )
    cache_namespace: str = Field(
        default="node",
        description="Subdirectory of the cache dir owned by this builder",
    )
    vendor_dir: str = Field(
        default=".vendor",
        description="Project-relative directory for installed toolchains",
    )

    # Caching
    default_cache_directories: list[str] = Field(
        default_factory=lambda: ["node_modules", "bower_components"],
        description="Cached directories when the manifest declares none",
    )
    dependency_dir: str = Field(
        default="node_modules",
        description="Directory whose prior presence selects rebuild over install",
    )

    # Lifecycle hooks
    pre_build_hook: str = Field(
        default="prebuild",
        description="Manifest script run before the dependency build",
    )
    post_build_hook: str = Field(
        default="postbuild",
        description="Manifest script run after the dependency build",
    )

    # Environment import
    env_blacklist: list[str] = Field(
        default_factory=lambda: [
            "PATH",
            "GIT_DIR",
            "CPATH",
            "CPPATH",
            "LD_PRELOAD",
            "LIBRARY_PATH",
        ],
        description="Variables never imported from the env directory",
    )

    # Toolchain
    node_dist_url: str = Field(
        default="https://nodejs.org/dist",
        description="Base URL for Node.js binary tarballs",
    )
    version_resolver_url: str = Field(
        default="https://semver.io",
        description="Service resolving semver ranges to concrete versions",
    )
    default_node_range: str = Field(
        default="20.x",
        description="Node.js range used when engines.node is not declared",
    )
    vendor_bundles: list[VendorBundleSettings] = Field(
        default_factory=list,
        description="External binary bundles installed into every build",
    )

    # Operational modes
    offline: bool = Field(
        default=False,
        description="Offline mode - never download toolchains or bundles",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Network
    download_timeout: int = Field(
        default=600,
        ge=10,
        description="Timeout for toolchain and bundle downloads (seconds)",
    )
    download_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per download before giving up on transient errors",
    )


def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "VendorBundleSettings", "get_settings", "print_settings_json"]
