"""Error taxonomy for the schema resolution and validation pipeline."""
from __future__ import annotations

from typing import Optional

EXIT_VALID = 0
EXIT_INVALID = 1
EXIT_INPUT_ERROR = 2
EXIT_INFRASTRUCTURE_ERROR = 3


class SchemaCheckError(Exception):
    """Base class for failures that terminate a validation run."""

    exit_code = EXIT_INPUT_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        # Set by the pipeline to the state whose transition failed.
        self.stage: Optional[str] = None


class UsageError(SchemaCheckError):
    """Bad or missing command line arguments."""


class ConfigurationError(SchemaCheckError):
    """Settings file or overrides are invalid."""


class ReadError(SchemaCheckError):
    """A local document is absent or unreadable."""

    def __init__(self, path: object, cause: BaseException) -> None:
        super().__init__(f"Cannot read {path}: {cause}")
        self.path = path
        self.cause = cause


class ParseError(SchemaCheckError):
    """A local document is not well-formed JSON."""

    def __init__(self, path: object, cause: BaseException) -> None:
        super().__init__(f"Malformed JSON in {path}: {cause}")
        self.path = path
        self.cause = cause


class AmbiguousOrMissingEntityError(SchemaCheckError):
    """The input does not carry exactly one entity-type key."""

    def __init__(self, candidates: list[str]) -> None:
        if candidates:
            detail = f"found {len(candidates)} top-level keys: {', '.join(candidates)}"
        else:
            detail = "no top-level entity key found"
        super().__init__(f"Input must contain exactly one entity type ({detail})")
        self.candidates = candidates


class UnknownEntityTypeError(SchemaCheckError):
    """The resolved entity type has no sub-schema in the parent catalog."""

    def __init__(self, entity_type: str, known: list[str]) -> None:
        super().__init__(f"Unknown entity type '{entity_type}'")
        self.entity_type = entity_type
        self.known = known


class SchemaFetchError(SchemaCheckError):
    """A schema document could not be retrieved from its locator."""

    exit_code = EXIT_INFRASTRUCTURE_ERROR

    def __init__(self, locator: str, cause: BaseException | str, *, timed_out: bool = False) -> None:
        reason = "timed out" if timed_out else str(cause)
        super().__init__(f"Failed to fetch schema {locator}: {reason}")
        self.locator = locator
        self.cause = cause
        self.timed_out = timed_out


class DuplicateEntityTypeError(SchemaCheckError):
    """The parent catalog references one entity type from two locators."""

    exit_code = EXIT_INFRASTRUCTURE_ERROR

    def __init__(self, entity_type: str, first: str, second: str) -> None:
        super().__init__(f"Entity type '{entity_type}' is referenced twice: {first} and {second}")
        self.entity_type = entity_type
        self.locators = (first, second)


class SchemaCompileError(SchemaCheckError):
    """A fetched schema is not a valid JSON Schema."""

    exit_code = EXIT_INFRASTRUCTURE_ERROR

    def __init__(self, cause: BaseException | str, *, locator: Optional[str] = None) -> None:
        where = f" {locator}" if locator else ""
        super().__init__(f"Schema{where} does not compile: {cause}")
        self.cause = cause
        self.locator = locator
