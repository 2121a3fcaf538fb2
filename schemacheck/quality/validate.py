"""JSON Schema compilation and validation stage."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

import jsonschema
from jsonschema.exceptions import SchemaError
from jsonschema.protocols import Validator
from referencing import Registry
from referencing.exceptions import Unresolvable

from schemacheck.errors import SchemaCompileError


@dataclass(frozen=True)
class ValidationIssue:
    """A single violation found in a document."""

    path: str
    message: str
    keyword: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "message": self.message, "keyword": self.keyword}


@dataclass
class ValidationOutcome:
    """Outcome of validating a single document."""

    valid: bool
    errors: List[ValidationIssue] = field(default_factory=list)


def format_path(parts: Iterable[object]) -> str:
    """Render a jsonschema error path as ``invoice.lines[0].id``."""
    rendered = ""
    for part in parts:
        if isinstance(part, int):
            rendered += f"[{part}]"
        elif rendered:
            rendered += f".{part}"
        else:
            rendered = str(part)
    return rendered or "$"


class ValidationEngine:
    """Compiles schemas into reusable validators and applies them.

    One engine is built per process (or per test) and handed to the pipeline.
    ``dialect`` picks the draft when the schema's own ``$schema`` has been
    stripped; unknown dialects fall back to Draft 2020-12.
    """

    def __init__(self, *, check_formats: bool = True) -> None:
        self._check_formats = check_formats
        self._default_cls = jsonschema.Draft202012Validator

    def validator_class(self, dialect: Optional[str] = None) -> type[Validator]:
        if not dialect:
            return self._default_cls
        return jsonschema.validators.validator_for({"$schema": dialect}, default=self._default_cls)

    def compile(self, schema: Mapping[str, Any], *, dialect: Optional[str] = None, locator: Optional[str] = None) -> Validator:
        """Check ``schema`` against its meta-schema and build a validator."""
        cls = self.validator_class(dialect)
        try:
            cls.check_schema(schema)
        except SchemaError as exc:
            raise SchemaCompileError(exc.message, locator=locator) from exc
        format_checker = cls.FORMAT_CHECKER if self._check_formats else None
        # Empty registry: references outside the schema are never retrieved by jsonschema.
        return cls(schema, format_checker=format_checker, registry=Registry())

    def validate(self, validator: Optional[Validator], document: Any) -> ValidationOutcome:
        """Validate ``document``; non-conformance is reported, never raised."""
        if validator is None:
            raise TypeError("A compiled validator is required")
        try:
            raw_errors = sorted(validator.iter_errors(document), key=lambda error: (error.json_path, error.message))
        except Unresolvable as exc:
            raise SchemaCompileError(f"unresolvable reference {exc}") from exc
        errors = [
            ValidationIssue(
                path=format_path(error.absolute_path),
                message=error.message,
                keyword=str(error.validator) if error.validator is not None else None,
            )
            for error in raw_errors
        ]
        return ValidationOutcome(valid=not errors, errors=errors)
