"""Pydantic models for manifest validation.

Only the fields that drive the build pipeline are modelled; every other
package.json key is kept untouched as an extra field.
"""

from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EnginesSchema(BaseModel):
    """Toolchain version declaration.

    Attributes:
        node: Node.js semver range or exact version.
        npm: npm semver range or exact version.
    """

    model_config = ConfigDict(extra="allow")

    node: str | None = Field(default=None, description="Node.js version range")
    npm: str | None = Field(default=None, description="npm version range")


class ManifestSchema(BaseModel):
    """The subset of package.json consumed by the build pipeline.

    Attributes:
        name: Package name.
        version: Package version.
        engines: Toolchain version declaration.
        cache_directories: Explicit list of cached directories
            (``cacheDirectories`` in the file).
        scripts: Script table with named lifecycle hooks.
        dependencies: Runtime dependencies.
        dev_dependencies: Development dependencies.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str | None = Field(default=None)
    version: str | None = Field(default=None)
    engines: EnginesSchema = Field(default_factory=EnginesSchema)
    cache_directories: list[str] | None = Field(
        default=None,
        alias="cacheDirectories",
        description="Project-relative directories persisted between builds",
    )
    scripts: dict[str, str] = Field(default_factory=dict)
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(
        default_factory=dict, alias="devDependencies"
    )

    @field_validator("cache_directories")
    @classmethod
    def validate_cache_directories(cls, v: list[str] | None) -> list[str] | None:
        """Validate cache directories are relative paths inside the project."""
        if v is None:
            return v
        cleaned: list[str] = []
        for entry in v:
            path = PurePosixPath(entry.strip())
            if not entry.strip() or path.is_absolute() or ".." in path.parts:
                raise ValueError(
                    f"cacheDirectories entries must be relative paths "
                    f"inside the project, got '{entry}'"
                )
            normalized = path.as_posix()
            if normalized not in cleaned:
                cleaned.append(normalized)
        return cleaned

    def script(self, name: str) -> str | None:
        """Return the command for a named script, or None if not declared."""
        command = self.scripts.get(name)
        if command is None or not command.strip():
            return None
        return command


__all__ = ["EnginesSchema", "ManifestSchema"]
