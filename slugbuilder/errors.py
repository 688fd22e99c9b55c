"""Error taxonomy for the build pipeline.

Every error carries a stable ``code`` for programmatic handling and a
``category`` separating invalid input from pipeline failures.
"""

# Error categories
PRECONDITION = "precondition"
COLLABORATOR = "collaborator"


class SlugBuilderError(Exception):
    """Base error for build pipeline operations."""

    category = COLLABORATOR

    def __init__(self, message: str, code: str = "build_error") -> None:
        super().__init__(message)
        self.code = code


class ManifestError(SlugBuilderError):
    """Raised when the project manifest is missing or invalid."""

    category = PRECONDITION

    def __init__(self, message: str, code: str = "invalid_manifest") -> None:
        super().__init__(message, code=code)


class CacheStoreError(SlugBuilderError):
    """Raised when copying cache directories fails."""

    def __init__(self, message: str, code: str = "cache_store_error") -> None:
        super().__init__(message, code=code)


class ToolchainError(SlugBuilderError):
    """Raised when the toolchain cannot be resolved or installed."""

    def __init__(self, message: str, code: str = "toolchain_error") -> None:
        super().__init__(message, code=code)


class DownloadError(SlugBuilderError):
    """Raised when a binary download fails."""

    def __init__(self, message: str, code: str = "download_error") -> None:
        super().__init__(message, code=code)


class ExtractionError(SlugBuilderError):
    """Raised when archive extraction fails."""

    def __init__(self, message: str, code: str = "extraction_error") -> None:
        super().__init__(message, code=code)


class CommandError(SlugBuilderError):
    """Raised when an external command exits non-zero or cannot start."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str = "command_failed",
    ) -> None:
        super().__init__(message, code=code)
        self.exit_code = exit_code


class HookError(CommandError):
    """Raised when a lifecycle hook exits non-zero."""

    def __init__(self, hook_name: str, exit_code: int | None = None) -> None:
        super().__init__(
            f"Lifecycle hook '{hook_name}' failed with exit code {exit_code}",
            exit_code=exit_code,
            code="hook_failed",
        )
        self.hook_name = hook_name


__all__ = [
    "COLLABORATOR",
    "PRECONDITION",
    "CacheStoreError",
    "CommandError",
    "DownloadError",
    "ExtractionError",
    "HookError",
    "ManifestError",
    "SlugBuilderError",
    "ToolchainError",
]
