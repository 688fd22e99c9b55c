"""Project manifest (package.json) loading and validation.

This module provides:
- Pydantic schema for the manifest fields the pipeline consumes
- Loading helpers that turn a missing or malformed manifest into a
  precondition failure
"""

from slugbuilder.manifest.io import MANIFEST_FILENAME, load_manifest
from slugbuilder.manifest.schema import EnginesSchema, ManifestSchema

__all__ = ["MANIFEST_FILENAME", "EnginesSchema", "ManifestSchema", "load_manifest"]
