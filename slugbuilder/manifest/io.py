"""Manifest loading.

A missing or malformed manifest is a precondition failure: it is reported
before any pipeline stage runs.
"""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from slugbuilder.errors import ManifestError
from slugbuilder.manifest.schema import ManifestSchema

MANIFEST_FILENAME = "package.json"


def load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file and return its contents as a dict.

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed JSON content as a dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the top-level value is not an object.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def parse_manifest_data(data: dict[str, Any]) -> ManifestSchema:
    """Parse and validate manifest data using the schema.

    Raises:
        ManifestError: If data does not match the schema.
    """
    try:
        return ManifestSchema.model_validate(data)
    except ValidationError as e:
        raise ManifestError(
            f"Invalid {MANIFEST_FILENAME}: {e.errors()[0]['msg']}",
            code="invalid_manifest",
        ) from e


def load_manifest(project_dir: Path) -> ManifestSchema:
    """Load and validate the manifest of a project tree.

    Args:
        project_dir: Project root.

    Returns:
        Validated ManifestSchema instance.

    Raises:
        ManifestError: If the manifest is absent, unreadable or invalid.
    """
    path = project_dir / MANIFEST_FILENAME
    if not path.is_file():
        raise ManifestError(
            f"Application has no {MANIFEST_FILENAME} at {path}",
            code="manifest_missing",
        )
    try:
        data = load_json(path)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestError(
            f"Unable to parse {MANIFEST_FILENAME}: {e}",
            code="manifest_not_json",
        ) from e
    except ValueError as e:
        raise ManifestError(str(e), code="invalid_manifest") from e
    except OSError as e:
        raise ManifestError(
            f"Unable to read {MANIFEST_FILENAME}: {e}",
            code="manifest_unreadable",
        ) from e
    return parse_manifest_data(data)


__all__ = ["MANIFEST_FILENAME", "load_json", "load_manifest", "parse_manifest_data"]
