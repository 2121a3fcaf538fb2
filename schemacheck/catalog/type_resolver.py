"""Inferring an input document's entity type from its top-level shape."""
from __future__ import annotations

from typing import Any, List

from schemacheck.errors import AmbiguousOrMissingEntityError
from schemacheck.ingest.loader import METADATA_KEY


def entity_candidates(document: Any) -> List[str]:
    """Return the top-level keys that could name the entity type."""
    if not isinstance(document, dict):
        return []
    return [key for key in document if key != METADATA_KEY]


def resolve_entity_type(document: Any) -> str:
    """Return the single non-metadata top-level key of ``document``.

    Zero or several candidate keys raise ``AmbiguousOrMissingEntityError``.
    Whether the type is in the catalog is checked by ``RefIndex.locator_for``.
    """
    candidates = entity_candidates(document)
    if len(candidates) != 1:
        raise AmbiguousOrMissingEntityError(candidates)
    return candidates[0]
