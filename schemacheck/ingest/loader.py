"""Reading local JSON documents from disk."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import orjson

from schemacheck.errors import ParseError, ReadError

JsonDocument = Dict[str, Any]

# Metadata key naming a document's schema; never an entity type or a schema keyword to compile.
METADATA_KEY = "$schema"


def resolve_input_path(raw_path: str | Path, resources_dir: Path) -> Path:
    """Resolve an input path against the configured resource directory."""
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return candidate
    return resources_dir / candidate


def load_document(path: Path) -> Any:
    """Read and parse a JSON file.

    Raises ``ReadError`` when the file cannot be read and ``ParseError`` when
    its content is not well-formed JSON.
    """
    try:
        payload = path.read_bytes()
    except OSError as exc:
        raise ReadError(path, exc) from exc
    try:
        return orjson.loads(payload)
    except orjson.JSONDecodeError as exc:
        raise ParseError(path, exc) from exc
