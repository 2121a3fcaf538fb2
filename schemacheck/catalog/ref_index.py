"""Discovering per-entity sub-schemas referenced from a parent schema catalog.

The parent schema lists one ``$ref`` per entity type, each pointing at a named
property of a network-hosted schema::

    "$ref": "https://host/path/invoice.json#/properties/invoice"

jsonschema cannot follow those references without network access of its own,
so instead of resolving them structurally the serialized parent text is
scanned for the pattern and each hit becomes an ``entity type -> URL`` entry.
Fetched sub-schemas are not scanned again.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

import orjson
import structlog

from schemacheck.errors import DuplicateEntityTypeError, UnknownEntityTypeError
from schemacheck.observability.metrics import MetricsRegistry

LOGGER = structlog.get_logger(__name__)

REF_PATTERN = re.compile(
    r'"\$ref"\s*:\s*"((?:https?|file)://[\w/.\-:%~]+)#/properties/([\w.\-]+)"'
)

DUPLICATE_POLICIES = ("last", "reject")


@dataclass
class RefIndex:
    """Mapping from entity-type key to the URL of its sub-schema."""

    entries: Dict[str, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self.entries

    def types(self) -> List[str]:
        return sorted(self.entries)

    def locator_for(self, entity_type: str) -> str:
        """Return the sub-schema URL for ``entity_type``."""
        try:
            return self.entries[entity_type]
        except KeyError:
            raise UnknownEntityTypeError(entity_type, self.types()) from None

    def as_dict(self) -> Dict[str, str]:
        return dict(sorted(self.entries.items()))


def canonical_text(document: Any) -> str:
    return orjson.dumps(document).decode("utf-8")


def scan_refs(text: str) -> Iterator[Tuple[str, str]]:
    """Yield ``(entity_type, url)`` for every reference in ``text``, in order."""
    for match in REF_PATTERN.finditer(text):
        yield match.group(2), match.group(1)


def index_refs(
    parent_schema: Mapping[str, Any],
    *,
    duplicate_policy: str = "last",
    metrics: Optional[MetricsRegistry] = None,
) -> RefIndex:
    """Build the entity-type index from a parent schema document.

    With ``duplicate_policy="last"`` a key that recurs keeps the locator of its
    last occurrence; ``"reject"`` raises ``DuplicateEntityTypeError`` instead.
    """
    if duplicate_policy not in DUPLICATE_POLICIES:
        raise ValueError(f"Unknown duplicate policy: {duplicate_policy}")

    index = RefIndex()
    for entity_type, url in scan_refs(canonical_text(parent_schema)):
        previous = index.entries.get(entity_type)
        if previous is not None and previous != url:
            if metrics is not None:
                metrics.incr("duplicate_refs")
            if duplicate_policy == "reject":
                raise DuplicateEntityTypeError(entity_type, previous, url)
            LOGGER.warning("duplicate_ref", entity_type=entity_type, previous=previous, locator=url)
        index.entries[entity_type] = url

    if metrics is not None:
        metrics.incr("refs_indexed", len(index))
    LOGGER.debug("refs_indexed", count=len(index), types=index.types())
    return index
