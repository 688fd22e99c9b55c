"""Cache signature computation and storage.

This module handles:
- Canonical input snapshot creation from the toolchain and cache directories
- Deterministic hash computation over normalized inputs
- Comparing the stored signature against a freshly computed one

A cache is reused only when it was saved by a build whose signature
matches the current one exactly.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from slugbuilder.cache import DEFAULT_NAMESPACE
from slugbuilder.errors import CacheStoreError
from slugbuilder.types import CacheStatus, ToolchainDescriptor

logger = logging.getLogger(__name__)

# Schema version for signature format; bump when the signature format changes
SIGNATURE_SCHEMA_VERSION = "1"

SIGNATURE_FILENAME = "signature"


@dataclass
class SignatureInputs:
    """Canonical representation of all inputs that affect cache validity.

    Attributes:
        toolchain: Resolved Node.js and npm versions.
        cache_directories: Directories persisted between builds.
        schema_version: Version of signature schema.
    """

    toolchain: ToolchainDescriptor
    cache_directories: list[str] = field(default_factory=list)
    schema_version: str = SIGNATURE_SCHEMA_VERSION

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        Returns:
            Dictionary representation suitable for JSON.
        """
        return {
            "schema_version": self.schema_version,
            "node": self.toolchain.node_version,
            "npm": self.toolchain.npm_version,
            # Order of declaration does not affect what is cached
            "cache_directories": sorted(set(self.cache_directories)),
        }


def compute_signature(inputs: SignatureInputs) -> str:
    """Compute a cache signature from its inputs.

    The signature is a SHA-256 hash of the canonical JSON representation
    of the inputs.

    Args:
        inputs: SignatureInputs instance.

    Returns:
        Signature as hex string (sha256:...).
    """
    canonical_json = json.dumps(
        inputs.to_dict(),
        sort_keys=True,
        separators=(",", ":"),
    )
    digest = hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()
    return f"sha256:{digest}"


def signature_path(cache_dir: Path, namespace: str = DEFAULT_NAMESPACE) -> Path:
    """Return the fixed location of the signature file in a cache dir."""
    return cache_dir / namespace / SIGNATURE_FILENAME


def read_signature(cache_dir: Path, namespace: str = DEFAULT_NAMESPACE) -> str | None:
    """Read the stored signature.

    Args:
        cache_dir: Persistent cache directory.
        namespace: Subdirectory owned by this builder.

    Returns:
        Stored signature, "" if the file exists but cannot be read,
        or None if no signature was ever saved.
    """
    path = signature_path(cache_dir, namespace)
    if not path.exists():
        return None
    try:
        return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Unreadable cache signature at %s: %s", path, e)
        return ""


def signature_status(
    cache_dir: Path,
    signature: str,
    namespace: str = DEFAULT_NAMESPACE,
) -> CacheStatus:
    """Compare the stored signature against the current one.

    Args:
        cache_dir: Persistent cache directory.
        signature: Signature computed for the current build.
        namespace: Subdirectory owned by this builder.

    Returns:
        MISSING if no signature was saved, VALID if it matches,
        INVALID otherwise.
    """
    stored = read_signature(cache_dir, namespace)
    if stored is None:
        return CacheStatus.MISSING
    if stored == signature:
        return CacheStatus.VALID
    return CacheStatus.INVALID


def save_signature(
    cache_dir: Path,
    signature: str,
    namespace: str = DEFAULT_NAMESPACE,
) -> Path:
    """Overwrite the stored signature.

    Args:
        cache_dir: Persistent cache directory.
        signature: Signature of the build whose cache was just saved.
        namespace: Subdirectory owned by this builder.

    Returns:
        Path to the signature file.
    """
    path = signature_path(cache_dir, namespace)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"{signature}\n", encoding="utf-8")
    logger.debug("Saved cache signature %s", signature[:23])
    return path


def remove_signature(cache_dir: Path, namespace: str = DEFAULT_NAMESPACE) -> None:
    """Delete the stored signature so the cache reads as MISSING.

    Raises:
        CacheStoreError: If the file exists but cannot be removed.
    """
    path = signature_path(cache_dir, namespace)
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        raise CacheStoreError(
            f"Failed to remove cache signature {path}: {e}",
            code="signature_remove_failed",
        ) from e


__all__ = [
    "SIGNATURE_FILENAME",
    "SIGNATURE_SCHEMA_VERSION",
    "SignatureInputs",
    "compute_signature",
    "read_signature",
    "remove_signature",
    "save_signature",
    "signature_path",
    "signature_status",
]
